"""Playback data types: media handle protocol, settings and scheduler state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

PositionListener = Callable[[float], None]


class PlaybackRejected(Exception):
    """Raised by a media handle when the host refuses to start playback."""


@runtime_checkable
class MediaHandle(Protocol):
    """Protocol for a single playable media source driven by the scheduler."""

    def seek(self, position_s: float) -> None:
        """Move the playhead to position_s."""
        ...

    async def play(self) -> None:
        """Start playing from the current position. May raise PlaybackRejected."""
        ...

    def pause(self) -> None:
        """Pause playback; the playhead stays where it is."""
        ...

    def set_rate(self, rate: float) -> None:
        """Set the playback rate multiplier (1.0 = normal speed)."""
        ...

    def current_position(self) -> float:
        """Current playhead position in seconds."""
        ...

    def add_position_listener(self, listener: PositionListener) -> Callable[[], None]:
        """Register a position-changed callback; returns a function that removes it."""
        ...


@dataclass(frozen=True)
class PlaybackSettings:
    """
    Caller-facing playback defaults.

    playback_speed: rate used when play() gets no explicit speed
    loop_target: passes per segment before moving on or stopping
    continuous_mode: advance to the next segment after the loop target
    """
    playback_speed: float = 1.0
    loop_target: int = 1
    continuous_mode: bool = False

    def __post_init__(self) -> None:
        if self.playback_speed <= 0:
            raise ValueError(f"playback_speed must be > 0, got {self.playback_speed}")
        if self.loop_target < 1:
            raise ValueError(f"loop_target must be >= 1, got {self.loop_target}")


@dataclass(frozen=True)
class PlaybackIntent:
    """One external play request; loop_target None means loop until stopped."""
    segment_index: int
    speed: float
    loop_target: Optional[int]
    continuous_mode: bool = False

    def __post_init__(self) -> None:
        if self.speed <= 0:
            raise ValueError(f"speed must be > 0, got {self.speed}")
        if self.loop_target is not None and self.loop_target < 1:
            raise ValueError(f"loop_target must be >= 1 or None, got {self.loop_target}")

    @property
    def infinite(self) -> bool:
        return self.loop_target is None


@dataclass
class SchedulerState:
    """Mutable bookkeeping owned by one SegmentScheduler."""
    active_index: Optional[int] = None  # None = idle
    loops_completed: int = 0
    generation: int = 0
    continuous_mode: bool = False

    @property
    def is_idle(self) -> bool:
        return self.active_index is None
