"""Signal analysis data types and configuration."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


class AnalysisConfigError(ValueError):
    """Raised when an AnalysisConfig cannot be used for segmentation."""


@dataclass(frozen=True)
class AudioSource:
    """Decoded mono audio, samples float32 in [-1, 1]."""
    sample_rate: int
    samples: np.ndarray

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate


@dataclass(frozen=True)
class AnalysisConfig:
    """Silence-based segmentation configuration (all durations in seconds)."""
    silence_amplitude: float = 0.01
    min_silence_duration: float = 1.0
    min_segment_duration: float = 3.0
    max_segment_duration: float = 15.0
    window_s: float = 0.1           # energy window; 20-100 ms
    split_search_s: float = 1.0     # +/- radius searched around a split midpoint
    split_window_s: float = 0.05    # sub-window used by the split search

    @classmethod
    def from_db(cls, silence_db: float, **kwargs) -> "AnalysisConfig":
        """Build a config from a dBFS silence threshold (e.g. -40.0)."""
        from .energy import db_to_amplitude

        return cls(silence_amplitude=db_to_amplitude(silence_db), **kwargs)

    def validate(self) -> None:
        """
        Check the configuration before any analysis runs.

        Raises:
            AnalysisConfigError: If a field is out of range or the segment
                duration bounds are inconsistent.
        """
        if not 0.0 < self.silence_amplitude < 1.0:
            raise AnalysisConfigError(
                f"silence_amplitude must be in (0, 1), got {self.silence_amplitude}"
            )
        for name in ("min_silence_duration", "min_segment_duration", "max_segment_duration"):
            value = getattr(self, name)
            if value <= 0:
                raise AnalysisConfigError(f"{name} must be > 0, got {value}")
        if self.min_segment_duration >= self.max_segment_duration:
            raise AnalysisConfigError(
                "min_segment_duration must be smaller than max_segment_duration "
                f"({self.min_segment_duration} >= {self.max_segment_duration})"
            )
        if not 0.02 <= self.window_s <= 0.1:
            raise AnalysisConfigError(f"window_s must be within [0.02, 0.1], got {self.window_s}")
        if self.split_search_s <= 0 or self.split_window_s <= 0:
            raise AnalysisConfigError("split_search_s and split_window_s must be > 0")


@dataclass(frozen=True, order=True)
class Segment:
    """One practice unit: the half-open time range [start, end) of a source."""
    start: float
    end: float
    index: int

    @property
    def duration(self) -> float:
        return self.end - self.start


SegmentList = tuple[Segment, ...]
