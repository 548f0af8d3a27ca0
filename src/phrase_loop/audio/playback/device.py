"""MediaHandle backed by a sounddevice output stream (callback mode)."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable, Optional

import numpy as np
import sounddevice as sd

from ..analysis.types import AudioSource
from .types import PlaybackRejected, PositionListener

logger = logging.getLogger("Playback")

# Callback block size: ~20 ms at 48 kHz
PLAYBACK_BLOCKSIZE = 1024

# How often position updates reach the event loop (s); coarse like a media element clock.
NOTIFY_INTERVAL_S = 0.25


class SoundDeviceMediaHandle:
    """
    Plays an AudioSource on an output device.

    The audio callback runs on the PortAudio thread: it resamples the source by
    linear interpolation to honour the playback rate, advances the playhead and
    posts position notifications onto the asyncio loop with
    call_soon_threadsafe. Listeners therefore always run on the loop thread.
    """

    def __init__(
        self,
        source: AudioSource,
        *,
        device: Optional[int] = None,
        blocksize: int = PLAYBACK_BLOCKSIZE,
        notify_interval_s: float = NOTIFY_INTERVAL_S,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._source = source
        self._device = device
        self._blocksize = blocksize
        self._notify_interval_s = notify_interval_s
        self._loop = loop

        self._samples = np.asarray(source.samples, dtype=np.float32)
        self._sample_index = np.arange(len(self._samples), dtype=np.float64)
        self._lock = threading.Lock()
        self._position_s = 0.0
        self._rate = 1.0
        self._playing = False
        self._last_notify = 0.0
        self._stream: Optional[sd.OutputStream] = None
        self._listeners: list[PositionListener] = []

    @property
    def is_playing(self) -> bool:
        with self._lock:
            return self._playing

    def seek(self, position_s: float) -> None:
        with self._lock:
            self._position_s = min(max(0.0, position_s), self._source.duration)

    def set_rate(self, rate: float) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be > 0, got {rate}")
        with self._lock:
            self._rate = rate

    def current_position(self) -> float:
        with self._lock:
            return self._position_s

    def add_position_listener(self, listener: PositionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def play(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        with self._lock:
            self._playing = True
        try:
            if self._stream is None:
                self._stream = sd.OutputStream(
                    samplerate=self._source.sample_rate,
                    channels=1,
                    dtype="float32",
                    blocksize=self._blocksize,
                    device=self._device,
                    callback=self._callback,
                )
            if not self._stream.active:
                self._stream.start()
        except sd.PortAudioError as e:
            with self._lock:
                self._playing = False
            raise PlaybackRejected(f"Output device refused to start: {e}") from e

    def pause(self) -> None:
        with self._lock:
            self._playing = False

    def close(self) -> None:
        """Stop and release the output stream."""
        self.pause()
        if self._stream is not None:
            try:
                if self._stream.active:
                    self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.warning("Error closing playback stream: %s", e)
            self._stream = None

    def _callback(self, outdata: np.ndarray, frames: int, time_info: object, status: sd.CallbackFlags) -> None:
        if status:
            logger.warning("Playback callback status: %s", status)

        with self._lock:
            if not self._playing:
                outdata.fill(0)
                return
            sample_rate = self._source.sample_rate
            start = self._position_s * sample_rate
            positions = start + np.arange(frames, dtype=np.float64) * self._rate
            outdata[:, 0] = np.interp(positions, self._sample_index, self._samples, right=0.0)

            self._position_s = min(self._source.duration, self._position_s + frames * self._rate / sample_rate)
            at_end = self._position_s >= self._source.duration
            if at_end:
                self._playing = False

            now = time.monotonic()
            notify = at_end or now - self._last_notify >= self._notify_interval_s
            if notify:
                self._last_notify = now

        loop = self._loop
        if notify and loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._notify_listeners)

    def _notify_listeners(self) -> None:
        position = self.current_position()
        for listener in list(self._listeners):
            listener(position)
