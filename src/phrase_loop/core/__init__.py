from .events import (
    AllStopped,
    EventListener,
    LoopCompleted,
    PlaybackError,
    SchedulerEvent,
    SegmentEnded,
    SegmentStarted,
)

__all__ = [
    "AllStopped",
    "EventListener",
    "LoopCompleted",
    "PlaybackError",
    "SchedulerEvent",
    "SegmentEnded",
    "SegmentStarted",
]
