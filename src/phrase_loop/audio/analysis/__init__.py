"""Signal analysis - turns decoded audio into practice segments.

Keep this module lightweight: import/export only.
"""

from .analyzer import detect_segments
from .energy import amplitude_to_db, db_to_amplitude, quietest_point, window_rms
from .loader import AudioLoadError, load_wav
from .types import AnalysisConfig, AnalysisConfigError, AudioSource, Segment, SegmentList

__all__ = [
    "AnalysisConfig",
    "AnalysisConfigError",
    "AudioLoadError",
    "AudioSource",
    "Segment",
    "SegmentList",
    "amplitude_to_db",
    "db_to_amplitude",
    "detect_segments",
    "load_wav",
    "quietest_point",
    "window_rms",
]
