# tutor/utils/audio.py
from __future__ import annotations
import base64
import io
import uuid

import numpy as np
import soundfile as sf

SAMPLE_RATE = 24000
CHANNELS = 1


def decode_pcm16(data: bytes) -> np.ndarray:
    """Little-endian PCM16 mono bytes -> float32 samples in [-1, 1)."""
    if not data:
        raise ValueError("No audio data")
    if len(data) % 2:
        raise ValueError(f"PCM16 payload has odd length ({len(data)} bytes)")
    pcm = np.frombuffer(data, dtype="<i2")
    return pcm.astype(np.float32) / 32768.0


def wav_bytes(samples: np.ndarray, sample_rate: int) -> bytes:
    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


def autoplay_html(wav: bytes) -> str:
    """Return an HTML snippet that auto-plays WAV bytes (hidden)."""
    if not wav:
        return ""
    b64 = base64.b64encode(wav).decode("ascii")
    el_id = f"tts_{uuid.uuid4().hex}"
    return f"""
    <audio id="{el_id}" autoplay playsinline preload="auto" style="display:none">
      <source src="data:audio/wav;base64,{b64}" type="audio/wav">
    </audio>
    <script>
      (function() {{
        const a = document.getElementById("{el_id}");
        if (a) {{
          a.play().catch(() => {{
            // Autoplay blocked: the replay button acts as the user gesture later
          }});
        }}
      }})();
    </script>
    """


def fill_block(outdata: np.ndarray, samples: np.ndarray, position: int) -> int:
    """
    Copy the next block of `samples` into a (frames, channels) output buffer,
    zero-filling whatever the clip no longer covers. Returns the number of
    samples copied; fewer than len(outdata) means the clip is exhausted.
    """
    frames = len(outdata)
    chunk = samples[position : position + frames]
    outdata[: len(chunk), 0] = chunk
    outdata[len(chunk) :] = 0
    return len(chunk)
