"""Tests for the sounddevice-backed media handle."""

import asyncio
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

try:
    import sounddevice  # noqa: F401
except OSError:  # PortAudio shared library missing on this host
    pytest.skip("PortAudio not available", allow_module_level=True)

from phrase_loop.audio.analysis.types import AudioSource
from phrase_loop.audio.playback.device import SoundDeviceMediaHandle
from phrase_loop.audio.playback.types import MediaHandle, PlaybackRejected

MODULE = "phrase_loop.audio.playback.device"
SAMPLE_RATE = 1000


@pytest.fixture
def source():
    # Ramp makes interpolation results easy to predict: sample i == i / 1000.
    return AudioSource(sample_rate=SAMPLE_RATE, samples=(np.arange(2000) / 1000).astype(np.float32))


@pytest.fixture
def mock_stream():
    stream = MagicMock()
    stream.active = False
    return stream


def run_callback(handle, frames):
    outdata = np.zeros((frames, 1), dtype=np.float32)
    handle._callback(outdata, frames, None, None)
    return outdata[:, 0]


def test_implements_media_handle(source):
    assert isinstance(SoundDeviceMediaHandle(source), MediaHandle)


@pytest.mark.asyncio
async def test_play_opens_and_starts_stream(source, mock_stream):
    handle = SoundDeviceMediaHandle(source, blocksize=100)

    with patch(f"{MODULE}.sd.OutputStream", return_value=mock_stream) as output_stream:
        await handle.play()

    output_stream.assert_called_once()
    kwargs = output_stream.call_args.kwargs
    assert kwargs["samplerate"] == SAMPLE_RATE
    assert kwargs["channels"] == 1
    mock_stream.start.assert_called_once()
    assert handle.is_playing


@pytest.mark.asyncio
async def test_port_audio_error_becomes_playback_rejected(source):
    handle = SoundDeviceMediaHandle(source)

    with patch(f"{MODULE}.sd.OutputStream", side_effect=sounddevice.PortAudioError("no device")):
        with pytest.raises(PlaybackRejected):
            await handle.play()

    assert not handle.is_playing


@pytest.mark.asyncio
async def test_callback_plays_from_seek_position(source, mock_stream):
    handle = SoundDeviceMediaHandle(source)
    handle.seek(0.5)
    with patch(f"{MODULE}.sd.OutputStream", return_value=mock_stream):
        await handle.play()

    out = run_callback(handle, 10)

    assert np.allclose(out, np.arange(500, 510) / 1000, atol=1e-6)
    assert handle.current_position() == pytest.approx(0.51)


@pytest.mark.asyncio
async def test_rate_resamples_and_advances_faster(source, mock_stream):
    handle = SoundDeviceMediaHandle(source)
    handle.set_rate(2.0)
    with patch(f"{MODULE}.sd.OutputStream", return_value=mock_stream):
        await handle.play()

    out = run_callback(handle, 10)

    assert np.allclose(out, np.arange(0, 20, 2) / 1000, atol=1e-6)
    assert handle.current_position() == pytest.approx(0.02)


@pytest.mark.asyncio
async def test_paused_callback_outputs_silence(source, mock_stream):
    handle = SoundDeviceMediaHandle(source)
    handle.seek(1.0)
    with patch(f"{MODULE}.sd.OutputStream", return_value=mock_stream):
        await handle.play()
    handle.pause()

    out = run_callback(handle, 10)

    assert not out.any()
    assert handle.current_position() == 1.0


@pytest.mark.asyncio
async def test_position_listeners_run_on_event_loop(source, mock_stream):
    handle = SoundDeviceMediaHandle(source, notify_interval_s=0.0)
    positions = []
    handle.add_position_listener(positions.append)
    with patch(f"{MODULE}.sd.OutputStream", return_value=mock_stream):
        await handle.play()

    run_callback(handle, 100)
    assert positions == []
    await asyncio.sleep(0)

    assert positions == [pytest.approx(0.1)]


@pytest.mark.asyncio
async def test_reaching_end_pauses_and_notifies(source, mock_stream):
    handle = SoundDeviceMediaHandle(source, notify_interval_s=60.0)
    positions = []
    handle.add_position_listener(positions.append)
    handle.seek(1.95)
    with patch(f"{MODULE}.sd.OutputStream", return_value=mock_stream):
        await handle.play()

    out = run_callback(handle, 100)
    await asyncio.sleep(0)

    assert not handle.is_playing
    assert handle.current_position() == pytest.approx(2.0)
    assert out[60:].tolist() == [0.0] * 40
    assert positions == [pytest.approx(2.0)]


def test_seek_is_clamped_and_rate_validated(source):
    handle = SoundDeviceMediaHandle(source)

    handle.seek(-3.0)
    assert handle.current_position() == 0.0
    handle.seek(99.0)
    assert handle.current_position() == pytest.approx(2.0)
    with pytest.raises(ValueError):
        handle.set_rate(0.0)


@pytest.mark.asyncio
async def test_close_stops_stream(source, mock_stream):
    handle = SoundDeviceMediaHandle(source)
    with patch(f"{MODULE}.sd.OutputStream", return_value=mock_stream):
        await handle.play()
    mock_stream.active = True

    handle.close()

    mock_stream.stop.assert_called_once()
    mock_stream.close.assert_called_once()
