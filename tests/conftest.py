import asyncio
import time
from typing import Callable

import numpy as np
import pytest

from phrase_loop.audio.analysis.types import AudioSource
from phrase_loop.audio.playback.types import PlaybackRejected

SAMPLE_RATE = 8000


def generate_tone(seconds, sample_rate=SAMPLE_RATE, amplitude=0.3, frequency=220):
    """Generate a speech-band sine tone."""
    n_samples = int(round(seconds * sample_rate))
    t = np.arange(n_samples) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def generate_silence(seconds, sample_rate=SAMPLE_RATE):
    """Generate digital silence."""
    return np.zeros(int(round(seconds * sample_rate)), dtype=np.float32)


class FakeMedia:
    """
    In-memory MediaHandle.

    With time_scale > 0 a ticker task advances the playhead while playing
    (media seconds = real seconds * rate * time_scale) and reports every tick
    to the position listeners. With time_scale == 0 the playhead never moves,
    so only the scheduler's backup timer can end a segment.
    """

    def __init__(self, time_scale: float = 100.0, reject: bool = False, tick_s: float = 0.005):
        self.time_scale = time_scale
        self.reject = reject
        self.tick_s = tick_s
        self.position = 0.0
        self.rate = 1.0
        self.playing = False
        self.calls = []
        self.listeners = []
        self._ticker = None

    def seek(self, position_s: float) -> None:
        self.calls.append(("seek", position_s))
        self.position = position_s

    async def play(self) -> None:
        self.calls.append(("play",))
        if self.reject:
            raise PlaybackRejected("blocked by host")
        self.playing = True
        if self.time_scale > 0 and (self._ticker is None or self._ticker.done()):
            self._ticker = asyncio.get_running_loop().create_task(self._tick())

    def pause(self) -> None:
        self.calls.append(("pause",))
        self.playing = False

    def set_rate(self, rate: float) -> None:
        self.calls.append(("rate", rate))
        self.rate = rate

    def current_position(self) -> float:
        return self.position

    def add_position_listener(self, listener) -> Callable[[], None]:
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    def emit_position(self, position_s: float) -> None:
        self.position = position_s
        for listener in list(self.listeners):
            listener(position_s)

    async def _tick(self) -> None:
        while self.playing:
            await asyncio.sleep(self.tick_s)
            if not self.playing:
                break
            self.emit_position(self.position + self.tick_s * self.rate * self.time_scale)


async def wait_until(predicate, timeout=2.0):
    """Poll predicate on the running loop until it holds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def make_source():
    """Build an AudioSource from (kind, seconds) parts, kind in {'tone', 'silence'}."""
    def _make(*parts, sample_rate=SAMPLE_RATE):
        chunks = [
            generate_tone(seconds, sample_rate) if kind == "tone" else generate_silence(seconds, sample_rate)
            for kind, seconds in parts
        ]
        samples = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float32)
        return AudioSource(sample_rate=sample_rate, samples=samples)
    return _make


@pytest.fixture
def fake_media():
    return FakeMedia()


@pytest.fixture
def silent_media():
    """Media whose clock never reports progress."""
    return FakeMedia(time_scale=0.0)


@pytest.fixture
def wait():
    return wait_until
