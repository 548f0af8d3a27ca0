"""Playback subsystem - segment scheduling against a media handle.

Keep this module lightweight: import/export only. The sounddevice-backed
handle lives in .device and is imported explicitly where a device is needed.
"""

from .scheduler import SegmentScheduler
from .types import MediaHandle, PlaybackIntent, PlaybackRejected, PlaybackSettings, SchedulerState

__all__ = [
    "MediaHandle",
    "PlaybackIntent",
    "PlaybackRejected",
    "PlaybackSettings",
    "SchedulerState",
    "SegmentScheduler",
]
