"""In-memory practice progress for one audio file's segments."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from ..core.events import SchedulerEvent, SegmentEnded, SegmentStarted

if TYPE_CHECKING:
    from ..audio.playback.scheduler import SegmentScheduler

logger = logging.getLogger(__name__)


@dataclass
class SegmentProgress:
    """Practice record of one segment."""
    segment_index: int
    attempts: int = 0
    completed: bool = False
    completed_at: Optional[float] = None


class PracticeSession:
    """
    Tracks attempts and completion per segment by listening to scheduler events.

    Nothing is persisted; a new session starts for every segment list.
    """

    def __init__(self, segment_count: int, auto_complete: bool = False):
        self._records = [SegmentProgress(segment_index=i) for i in range(segment_count)]
        self._auto_complete = auto_complete
        self._streak = 0
        self._detach: Optional[Callable[[], None]] = None

    @property
    def records(self) -> list[SegmentProgress]:
        return list(self._records)

    @property
    def completed_count(self) -> int:
        return sum(1 for r in self._records if r.completed)

    @property
    def current_streak(self) -> int:
        return self._streak

    @property
    def progress(self) -> float:
        """Completed fraction in [0, 1]."""
        if not self._records:
            return 0.0
        return self.completed_count / len(self._records)

    def attach(self, scheduler: "SegmentScheduler") -> None:
        """Start following a scheduler's events (replacing any previous one)."""
        self.detach()
        self._detach = scheduler.subscribe(self.on_event)

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None

    def on_event(self, event: SchedulerEvent) -> None:
        if isinstance(event, SegmentStarted):
            record = self._record(event.index)
            if record is not None:
                record.attempts += 1
        elif isinstance(event, SegmentEnded) and self._auto_complete:
            self.mark_completed(event.index)

    def mark_completed(self, segment_index: int) -> None:
        record = self._record(segment_index)
        if record is None or record.completed:
            return
        record.completed = True
        record.completed_at = time.time()
        self._streak += 1
        logger.info("Segment %d completed (%d/%d)", segment_index, self.completed_count, len(self._records))

    def toggle_completed(self, segment_index: int) -> None:
        record = self._record(segment_index)
        if record is None:
            return
        if record.completed:
            record.completed = False
            record.completed_at = None
            self._streak = 0
        else:
            self.mark_completed(segment_index)

    def _record(self, segment_index: int) -> Optional[SegmentProgress]:
        if 0 <= segment_index < len(self._records):
            return self._records[segment_index]
        return None
