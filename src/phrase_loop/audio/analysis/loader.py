"""WAV file decoding into an AudioSource."""

from __future__ import annotations

import logging
import wave
from pathlib import Path
from typing import Union

import numpy as np

from .types import AudioSource

logger = logging.getLogger(__name__)

# sample width (bytes) -> (dtype, full-scale value)
_PCM_FORMATS = {
    1: (np.uint8, 128.0),
    2: (np.int16, 32768.0),
    4: (np.int32, 2147483648.0),
}


class AudioLoadError(Exception):
    """Raised when an audio file cannot be decoded."""


def load_wav(path: Union[str, Path]) -> AudioSource:
    """
    Decode a PCM WAV file into a mono float32 AudioSource.

    Multi-channel audio is down-mixed by averaging the channels.

    Raises:
        AudioLoadError: If the file is missing, malformed or uses an
            unsupported sample width
    """
    path = Path(path)
    try:
        with wave.open(str(path), "rb") as wav_file:
            channels = wav_file.getnchannels()
            sample_width = wav_file.getsampwidth()
            sample_rate = wav_file.getframerate()
            raw = wav_file.readframes(wav_file.getnframes())
    except (OSError, EOFError, wave.Error) as e:
        raise AudioLoadError(f"Cannot read {path}: {e}") from e

    if sample_width not in _PCM_FORMATS:
        raise AudioLoadError(f"Unsupported sample width {sample_width * 8} bits in {path}")

    dtype, full_scale = _PCM_FORMATS[sample_width]
    pcm = np.frombuffer(raw, dtype=dtype).astype(np.float32)
    if sample_width == 1:
        pcm -= 128.0  # 8-bit WAV is unsigned
    pcm /= full_scale

    if channels > 1:
        pcm = pcm[: len(pcm) - len(pcm) % channels].reshape(-1, channels).mean(axis=1)

    source = AudioSource(sample_rate=sample_rate, samples=np.clip(pcm, -1.0, 1.0).astype(np.float32))
    logger.info(
        "Loaded %s: %.2fs, %d Hz, %d channel(s)", path.name, source.duration, sample_rate, channels
    )
    return source
