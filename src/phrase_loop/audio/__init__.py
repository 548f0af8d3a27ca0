"""Audio subsystem for segment analysis and segment playback."""

from .analysis import AnalysisConfig, AudioSource, Segment, detect_segments, load_wav
from .playback import PlaybackSettings, SegmentScheduler

__all__ = [
    "AnalysisConfig",
    "AudioSource",
    "PlaybackSettings",
    "Segment",
    "SegmentScheduler",
    "detect_segments",
    "load_wav",
]
