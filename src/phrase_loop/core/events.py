"""Scheduler lifecycle events delivered to subscribers."""

from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class SegmentStarted:
    """A segment began its first loop (not emitted on loop restarts)."""
    index: int


@dataclass(frozen=True)
class LoopCompleted:
    """One pass over a segment finished."""
    index: int
    loops_completed: int


@dataclass(frozen=True)
class SegmentEnded:
    """Loop target reached and no auto-advance followed; scheduler is idle."""
    index: int


@dataclass(frozen=True)
class AllStopped:
    """stop() was called."""


@dataclass(frozen=True)
class PlaybackError:
    """The media handle refused to play; scheduler is idle."""
    reason: str


# Type alias for everything a scheduler subscriber may receive
SchedulerEvent = Union[SegmentStarted, LoopCompleted, SegmentEnded, AllStopped, PlaybackError]

EventListener = Callable[[SchedulerEvent], None]
