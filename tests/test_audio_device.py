import numpy as np
import pytest

try:
    import sounddevice as sd
except OSError:
    pytest.skip("PortAudio library not available", allow_module_level=True)

from tutor.services import audio_device
from tutor.services.audio_device import SoundDeviceOutput


class FakeStream:
    instances = []

    def __init__(self, samplerate, channels, dtype, device, callback, finished_callback):
        self.samplerate = samplerate
        self.channels = channels
        self.callback = callback
        self.finished_callback = finished_callback
        self.active = False
        self.aborted = False
        self.closed = False
        FakeStream.instances.append(self)

    def start(self):
        self.active = True

    def abort(self):
        self.aborted = True
        self.active = False

    def close(self):
        self.closed = True

    def pull(self, frames):
        outdata = np.full((frames, self.channels), 9.0, dtype=np.float32)
        self.callback(outdata, frames, None, None)
        return outdata[:, 0].tolist()


@pytest.fixture
def streams(monkeypatch):
    FakeStream.instances = []
    monkeypatch.setattr(audio_device.sd, "OutputStream", FakeStream)
    return FakeStream.instances


def samples(n):
    return np.arange(1, n + 1, dtype=np.float32)


def test_stream_plays_clip_then_stops_on_short_block(streams):
    finished = []
    output = SoundDeviceOutput()
    output.start(samples(6), 18000, lambda: finished.append(True))

    stream = streams[0]
    assert stream.samplerate == 18000
    assert stream.channels == 1
    assert output.is_active()

    assert stream.pull(4) == [1, 2, 3, 4]
    with pytest.raises(sd.CallbackStop):
        stream.pull(4)
    stream.finished_callback()
    assert finished == [True]


def test_clip_filling_whole_blocks_stops_on_next_silent_block(streams):
    output = SoundDeviceOutput()
    output.start(samples(8), 24000, lambda: None)
    stream = streams[0]

    assert stream.pull(4) == [1, 2, 3, 4]
    assert stream.pull(4) == [5, 6, 7, 8]
    outdata = np.ones((4, 1), dtype=np.float32)
    with pytest.raises(sd.CallbackStop):
        stream.callback(outdata, 4, None, None)
    assert outdata[:, 0].tolist() == [0, 0, 0, 0]


def test_stop_aborts_and_closes(streams):
    output = SoundDeviceOutput()
    output.start(samples(4), 24000, lambda: None)
    output.stop()

    assert streams[0].aborted and streams[0].closed
    assert output.is_active() is False
    output.stop()


def test_start_replaces_running_stream(streams):
    output = SoundDeviceOutput()
    output.start(samples(4), 24000, lambda: None)
    output.start(samples(4), 24000, lambda: None)

    assert streams[0].closed
    assert not streams[1].closed
    assert output.is_active()


def test_inactive_after_stream_finishes(streams):
    output = SoundDeviceOutput()
    output.start(samples(4), 24000, lambda: None)
    streams[0].active = False
    assert output.is_active() is False
