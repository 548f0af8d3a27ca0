"""Energy measures used by the segment detector."""

from __future__ import annotations

import numpy as np

# Floor used when converting silence to decibels.
_MIN_AMPLITUDE = 1e-10


def window_rms(samples: np.ndarray, window: int) -> np.ndarray:
    """
    Root-mean-square energy of consecutive windows.

    Args:
        samples: Mono PCM samples
        window: Window length in samples (> 0); the last window may be shorter

    Returns:
        float64 array with one RMS value per window
    """
    if window <= 0:
        raise ValueError(f"window must be > 0, got {window}")
    pcm = np.asarray(samples, dtype=np.float64)
    if pcm.size == 0:
        return np.zeros(0, dtype=np.float64)

    n_full = pcm.size // window
    full = pcm[: n_full * window].reshape(n_full, window)
    rms = np.sqrt(np.mean(full ** 2, axis=1))

    tail = pcm[n_full * window:]
    if tail.size:
        rms = np.append(rms, np.sqrt(np.mean(tail ** 2)))
    return rms


def quietest_point(
    samples: np.ndarray,
    sample_rate: int,
    center_s: float,
    search_s: float,
    sub_window_s: float,
    lower_s: float,
    upper_s: float,
) -> float:
    """
    Find the quietest moment near center_s.

    Scans [center_s - search_s, center_s + search_s] (clamped to
    [lower_s, upper_s]) in sub-windows of sub_window_s and returns the middle of
    the sub-window with the lowest RMS. The earliest sub-window wins ties.
    Returns center_s when the range is too narrow to hold a sub-window.
    """
    lo = max(lower_s, center_s - search_s)
    hi = min(upper_s, center_s + search_s)
    sub = max(1, int(round(sub_window_s * sample_rate)))
    lo_idx = int(round(lo * sample_rate))
    hi_idx = min(int(round(hi * sample_rate)), len(samples))
    if hi_idx - lo_idx < sub:
        return center_s

    energies = window_rms(samples[lo_idx:hi_idx], sub)
    # Drop a short trailing window; it is not comparable with the full ones.
    if (hi_idx - lo_idx) % sub:
        energies = energies[:-1]
    best = int(np.argmin(energies))
    return (lo_idx + best * sub + sub / 2) / sample_rate


def amplitude_to_db(amplitude: float) -> float:
    """Linear amplitude -> dBFS."""
    return float(20.0 * np.log10(max(amplitude, _MIN_AMPLITUDE)))


def db_to_amplitude(db: float) -> float:
    """dBFS -> linear amplitude."""
    return float(10.0 ** (db / 20.0))
