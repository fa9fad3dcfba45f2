import numpy as np
import pytest

from tutor.services.playback import AudioPlaybackEngine, BrowserAutoplayOutput
from tutor.utils.audio import decode_pcm16, fill_block

from conftest import FakeOutput, pcm


def test_decode_pcm16_scales_to_float():
    data = np.array([0, 16384, -32768], dtype="<i2").tobytes()
    samples = decode_pcm16(data)
    assert samples.dtype == np.float32
    assert samples.tolist() == [0.0, 0.5, -1.0]


@pytest.mark.parametrize("data", [b"", b"\x01\x02\x03"])
def test_decode_pcm16_rejects_bad_payload(data):
    with pytest.raises(ValueError):
        decode_pcm16(data)


def test_fill_block_zero_pads_the_tail():
    clip = np.array([0.1, 0.2, 0.3], dtype=np.float32)
    out = np.ones((2, 1), dtype=np.float32)

    assert fill_block(out, clip, 0) == 2
    assert out[:, 0].tolist() == pytest.approx([0.1, 0.2])
    assert fill_block(out, clip, 2) == 1
    assert out[:, 0].tolist() == pytest.approx([0.3, 0.0])
    assert fill_block(out, clip, 3) == 0
    assert out[:, 0].tolist() == [0.0, 0.0]


def test_play_sets_current_session(player, output):
    session = player.play(pcm(), "m1")
    assert session is not None
    assert player.currently_playing_id == "m1"
    assert player.previewing_voice is None
    assert output.starts[0]["sample_rate"] == 24000
    assert output.starts[0]["samples"].size == 2400


def test_play_stops_previous_output_first(player, output):
    player.play(pcm(), "m1")
    stops_before = output.stops
    player.play(pcm(), "m2")
    assert output.stops == stops_before + 1
    assert player.currently_playing_id == "m2"
    assert len(output.starts) == 2


def test_stop_when_idle_is_noop(player):
    player.stop()
    player.stop()
    assert player.current is None


def test_natural_completion_releases_slot(player, output):
    player.play(pcm(), "m1")
    output.finish()
    assert player.current is None


def test_stale_completion_is_ignored(output):
    player = AudioPlaybackEngine(output)
    player.play(pcm(), "m1")
    stale_finish = output._on_finished
    player.play(pcm(), "m2")
    stale_finish()
    assert player.currently_playing_id == "m2"


def test_speed_scales_sample_rate(player, output):
    player.play(pcm(), "m1", speed=0.75)
    assert output.starts[0]["sample_rate"] == 18000


def test_preview_session_tracks_voice(player):
    player.play(pcm(), "Puck", preview=True)
    assert player.previewing_voice == "Puck"
    assert player.currently_playing_id is None


def test_decode_failure_plays_nothing(player, output):
    assert player.play(b"\x00", "m1") is None
    assert output.starts == []
    assert player.current is None


def test_output_start_failure_plays_nothing():
    output = FakeOutput()
    output.fail_start = True
    player = AudioPlaybackEngine(output)
    assert player.play(pcm(), "m1") is None
    assert player.current is None


def test_browser_output_active_for_clip_duration():
    now = [100.0]
    output = BrowserAutoplayOutput(clock=lambda: now[0])
    player = AudioPlaybackEngine(output)

    player.play(pcm(24000), "m1")  # one second
    assert "<audio" in output.html()
    assert "audio/wav" in output.html()
    assert player.currently_playing_id == "m1"

    now[0] += 1.5
    assert output.html() == ""
    assert player.currently_playing_id is None


def test_browser_output_stop_clears_snippet():
    output = BrowserAutoplayOutput(clock=lambda: 0.0)
    player = AudioPlaybackEngine(output)
    player.play(pcm(24000), "m1")
    player.stop()
    assert output.html() == ""
    assert output.is_active() is False
