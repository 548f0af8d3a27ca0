"""Silence-based segmentation of decoded audio into practice segments."""

from __future__ import annotations

import logging

from .energy import quietest_point, window_rms
from .types import AnalysisConfig, AudioSource, Segment, SegmentList

logger = logging.getLogger(__name__)


def detect_segments(source: AudioSource, cfg: AnalysisConfig = AnalysisConfig()) -> SegmentList:
    """
    Split an audio source into ordered, non-overlapping segments.

    Windows of cfg.window_s are classified as silence when their RMS falls
    below cfg.silence_amplitude. A silence of at least cfg.min_silence_duration
    closes the open segment; segments shorter than cfg.min_segment_duration are
    not emitted and their pause is absorbed into the next one; segments longer
    than cfg.max_segment_duration are split at a nearby energy minimum.

    Args:
        source: Decoded mono audio
        cfg: Segmentation parameters, validated before any work

    Returns:
        Tuple of segments indexed 0..N-1 in time order. Never empty: when
        nothing qualifies a single segment covers the whole source.

    Raises:
        AnalysisConfigError: If cfg is invalid
    """
    cfg.validate()

    sample_rate = source.sample_rate
    n_samples = len(source.samples)
    if sample_rate <= 0 or n_samples == 0:
        logger.info("Empty audio source, using a single fallback segment")
        return (Segment(start=0.0, end=source.duration, index=0),)

    window = max(1, int(round(sample_rate * cfg.window_s)))
    min_silence = int(round(cfg.min_silence_duration * sample_rate))
    min_segment = int(round(cfg.min_segment_duration * sample_rate))
    energies = window_rms(source.samples, window)

    # Boundaries are tracked as sample offsets so comparisons stay exact.
    spans: list[tuple[float, float]] = []
    segment_start = 0
    silence_start = 0
    in_silence = False

    for k, energy in enumerate(energies):
        pos = k * window
        if energy < cfg.silence_amplitude:
            if not in_silence:
                silence_start = pos
                in_silence = True
            continue

        if in_silence and pos - silence_start >= min_silence:
            if silence_start == segment_start:
                # Nothing but silence so far; start the segment where sound resumes.
                segment_start = pos
            elif silence_start - segment_start >= min_segment:
                spans.extend(_split(source, segment_start / sample_rate, silence_start / sample_rate, cfg))
                segment_start = pos
            # Otherwise too short: keep segment_start so the pause is absorbed.
        in_silence = False

    if n_samples - segment_start >= min_segment:
        spans.extend(_split(source, segment_start / sample_rate, n_samples / sample_rate, cfg))

    if not spans:
        logger.info("No segments qualified in %.2fs of audio, using the whole source", source.duration)
        return (Segment(start=0.0, end=source.duration, index=0),)

    segments = tuple(Segment(start=start, end=end, index=i) for i, (start, end) in enumerate(spans))
    logger.info("Detected %d segments in %.2fs of audio", len(segments), source.duration)
    return segments


def _split(source: AudioSource, start: float, end: float, cfg: AnalysisConfig) -> list[tuple[float, float]]:
    """Recursively split [start, end) at quiet points until no part exceeds the maximum."""
    length = end - start
    if length <= cfg.max_segment_duration:
        return [(start, end)]

    middle = start + length / 2
    lower, upper = start, end
    if length >= 2 * cfg.min_segment_duration:
        lower = start + cfg.min_segment_duration
        upper = end - cfg.min_segment_duration

    point = quietest_point(
        source.samples,
        source.sample_rate,
        center_s=middle,
        search_s=min(cfg.split_search_s, length / 4),
        sub_window_s=cfg.split_window_s,
        lower_s=lower,
        upper_s=upper,
    )
    if not start < point < end:
        point = middle
    logger.debug("Splitting %.2f-%.2f at %.2f", start, end, point)
    return _split(source, start, point, cfg) + _split(source, point, end, cfg)
