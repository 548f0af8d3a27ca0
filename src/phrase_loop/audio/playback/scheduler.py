"""Segment scheduler: loopable, chainable playback of analysed segments."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from ...core.events import (
    AllStopped,
    EventListener,
    LoopCompleted,
    PlaybackError,
    SchedulerEvent,
    SegmentEnded,
    SegmentStarted,
)
from ..analysis.types import Segment, SegmentList
from .types import MediaHandle, PlaybackIntent, PlaybackSettings, SchedulerState

logger = logging.getLogger("Scheduler")

# Pause between two passes over the same segment (s)
LOOP_RESTART_DELAY_S = 0.2
# Pause before auto-advancing to the next segment (s)
ADVANCE_DELAY_S = 0.5
# Slack added to the backup timer on top of the segment's playing time (s)
BACKUP_EPSILON_S = 0.1


@dataclass
class _Watch:
    """Completion watcher armed for one pass over one segment."""
    generation: int
    index: int
    end: float
    timer: Optional[asyncio.TimerHandle] = None


class SegmentScheduler:
    """
    Drives one MediaHandle through one segment at a time.

    Every external play()/stop() bumps the generation counter. Asynchronous
    callbacks (play completion, position updates, backup timers, loop and
    advance continuations) carry the generation they were created under and
    are dropped when it no longer matches, so a superseded session can never
    touch state after a newer play() or a stop().

    Must be used from the thread running its asyncio event loop.
    """

    def __init__(
        self,
        media: MediaHandle,
        segments: Iterable[Segment] = (),
        settings: PlaybackSettings = PlaybackSettings(),
        *,
        loop_restart_delay_s: float = LOOP_RESTART_DELAY_S,
        advance_delay_s: float = ADVANCE_DELAY_S,
        backup_epsilon_s: float = BACKUP_EPSILON_S,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._media = media
        self._segments: SegmentList = tuple(segments)
        self._settings = settings
        self._loop_restart_delay_s = loop_restart_delay_s
        self._advance_delay_s = advance_delay_s
        self._backup_epsilon_s = backup_epsilon_s
        self._loop = loop

        self._state = SchedulerState(continuous_mode=settings.continuous_mode)
        self._intent: Optional[PlaybackIntent] = None
        self._watch: Optional[_Watch] = None
        self._pending: Optional[asyncio.TimerHandle] = None
        self._listeners: list[EventListener] = []

        # One listener for the scheduler's lifetime; _on_position checks the armed watch.
        self._remove_position_listener = media.add_position_listener(self._on_position)

    @property
    def segments(self) -> SegmentList:
        return self._segments

    @property
    def settings(self) -> PlaybackSettings:
        return self._settings

    @property
    def state(self) -> SchedulerState:
        """Snapshot of the scheduler state; mutating it has no effect."""
        return dataclasses.replace(self._state)

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register an event listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def configure(self, **changes) -> PlaybackSettings:
        """
        Replace playback settings (playback_speed, loop_target, continuous_mode).

        A session already playing keeps the settings it started with.
        """
        self._settings = dataclasses.replace(self._settings, **changes)
        if self._state.is_idle:
            self._state.continuous_mode = self._settings.continuous_mode
        logger.info("Playback settings: %s", self._settings)
        return self._settings

    def load_segments(self, segments: Iterable[Segment]) -> None:
        """Replace the segment list wholesale, stopping any active session."""
        if not self._state.is_idle:
            self.stop()
        self._segments = tuple(segments)
        logger.info("Loaded %d segments", len(self._segments))

    def play(self, segment_index: int, speed: Optional[float] = None, infinite_loop: bool = False) -> None:
        """
        Start playing a segment, superseding whatever is playing.

        Args:
            segment_index: Index into the loaded segments; out of range is a no-op
            speed: Playback rate, defaults to settings.playback_speed
            infinite_loop: Loop until stop() instead of settings.loop_target passes

        Raises:
            ValueError: If speed is not positive
        """
        if not 0 <= segment_index < len(self._segments):
            logger.debug("Ignoring play(%d): %d segments loaded", segment_index, len(self._segments))
            return

        intent = PlaybackIntent(
            segment_index=segment_index,
            speed=self._settings.playback_speed if speed is None else speed,
            loop_target=None if infinite_loop else self._settings.loop_target,
            continuous_mode=self._settings.continuous_mode,
        )
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._state.generation += 1
        self._cancel_armed()
        self._intent = intent
        self._state.continuous_mode = intent.continuous_mode
        logger.info(
            "Play segment %d (speed=%.2f, loops=%s, generation=%d)",
            segment_index,
            intent.speed,
            "inf" if intent.infinite else intent.loop_target,
            self._state.generation,
        )
        self._begin_segment(segment_index, self._state.generation)

    def stop(self) -> None:
        """Stop playback and invalidate every pending callback. Idempotent."""
        self._state.generation += 1
        self._cancel_armed()
        self._go_idle()
        logger.info("Playback stopped (generation=%d)", self._state.generation)
        self._emit(AllStopped())

    def play_next(self) -> None:
        """Play the segment after the active one (the first one when idle)."""
        current = -1 if self._state.is_idle else self._state.active_index
        self.play(current + 1)

    def play_previous(self) -> None:
        """Play the segment before the active one, wrapping to the last."""
        current = self._state.active_index
        if current is not None and current > 0:
            self.play(current - 1)
        else:
            self.play(len(self._segments) - 1)

    def toggle(self, segment_index: int) -> None:
        """Stop if segment_index is the active segment, otherwise play it."""
        if self._state.active_index == segment_index:
            self.stop()
        else:
            self.play(segment_index)

    def close(self) -> None:
        """Stop playback and detach from the media handle."""
        self.stop()
        self._remove_position_listener()

    def _begin_segment(self, index: int, generation: int) -> None:
        self._state.active_index = index
        self._state.loops_completed = 0
        self._start_pass(index, generation, first=True)

    def _start_pass(self, index: int, generation: int, first: bool) -> None:
        segment = self._segments[index]
        self._media.seek(segment.start)
        self._media.set_rate(self._intent.speed)
        self._loop.create_task(self._play_pass(segment, generation, first))

    async def _play_pass(self, segment: Segment, generation: int, first: bool) -> None:
        try:
            await self._media.play()
        except Exception as e:
            if generation != self._state.generation:
                logger.debug("Dropping playback failure of superseded generation %d: %s", generation, e)
                return
            reason = str(e) or type(e).__name__
            logger.warning("Playback of segment %d rejected: %s", segment.index, reason)
            self._cancel_armed()
            self._go_idle()
            self._emit(PlaybackError(reason=reason))
            return

        if generation != self._state.generation:
            logger.debug("Play request of generation %d resolved after being superseded", generation)
            if self._state.is_idle:
                self._media.pause()
            return

        self._arm(segment, generation)
        if first:
            self._emit(SegmentStarted(index=segment.index))

    def _arm(self, segment: Segment, generation: int) -> None:
        watch = _Watch(generation=generation, index=segment.index, end=segment.end)
        backup_s = segment.duration / self._intent.speed + self._backup_epsilon_s
        watch.timer = self._loop.call_later(backup_s, self._on_backup_timer, watch)
        self._watch = watch

    def _on_position(self, position_s: float) -> None:
        watch = self._watch
        if watch is None or watch.generation != self._state.generation:
            return
        if position_s >= watch.end:
            self._complete(watch)

    def _on_backup_timer(self, watch: _Watch) -> None:
        if watch is not self._watch or watch.generation != self._state.generation:
            logger.debug("Dropping stale backup timer for segment %d", watch.index)
            return
        logger.debug("Backup timer ended segment %d", watch.index)
        self._complete(watch)

    def _complete(self, watch: _Watch) -> None:
        self._watch = None
        if watch.timer is not None:
            watch.timer.cancel()
        self._media.pause()

        self._state.loops_completed += 1
        loops = self._state.loops_completed
        intent = self._intent
        generation = watch.generation
        self._emit(LoopCompleted(index=watch.index, loops_completed=loops))
        if generation != self._state.generation:
            # A listener called play() or stop().
            return

        if intent.infinite or loops < intent.loop_target:
            self._schedule(self._loop_restart_delay_s, self._restart_pass, generation, watch.index)
        elif intent.continuous_mode and watch.index + 1 < len(self._segments):
            self._schedule(self._advance_delay_s, self._advance, generation, watch.index + 1)
        else:
            self._go_idle()
            logger.info("Segment %d finished after %d loop(s)", watch.index, loops)
            self._emit(SegmentEnded(index=watch.index))

    def _schedule(self, delay_s: float, callback: Callable[[int, int], None], generation: int, index: int) -> None:
        self._pending = self._loop.call_later(delay_s, callback, generation, index)

    def _restart_pass(self, generation: int, index: int) -> None:
        self._pending = None
        if generation != self._state.generation:
            return
        self._start_pass(index, generation, first=False)

    def _advance(self, generation: int, index: int) -> None:
        self._pending = None
        if generation != self._state.generation:
            return
        self._begin_segment(index, generation)

    def _cancel_armed(self) -> None:
        """Pause media and release the armed watch and any pending continuation."""
        self._media.pause()
        if self._watch is not None:
            if self._watch.timer is not None:
                self._watch.timer.cancel()
            self._watch = None
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _go_idle(self) -> None:
        self._state.active_index = None
        self._state.loops_completed = 0
        self._state.continuous_mode = self._settings.continuous_mode
        self._intent = None

    def _emit(self, event: SchedulerEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Scheduler listener failed on %s", event)
