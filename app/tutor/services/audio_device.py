"""
Purpose: Local sound-card output for the playback engine.
Imported only when TUTOR_AUDIO_OUTPUT=device, since loading sounddevice
needs the PortAudio library on the host.
"""

from __future__ import annotations
import logging
from typing import Optional

import sounddevice as sd

from ..utils.audio import CHANNELS, fill_block

logger = logging.getLogger(__name__)


class SoundDeviceOutput:
    def __init__(self, device=None) -> None:
        self.device = device
        self._stream: Optional[sd.OutputStream] = None

    def start(self, samples, sample_rate, on_finished) -> None:
        self.stop()
        position = 0

        def callback(outdata, frames, time_info, status):
            nonlocal position
            if status:
                logger.debug("Output stream status: %s", status)
            copied = fill_block(outdata, samples, position)
            position += copied
            if copied < frames:
                raise sd.CallbackStop()

        stream = sd.OutputStream(
            samplerate=sample_rate,
            channels=CHANNELS,
            dtype="float32",
            device=self.device,
            callback=callback,
            finished_callback=on_finished,
        )
        stream.start()
        self._stream = stream

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.abort()
        finally:
            stream.close()

    def is_active(self) -> bool:
        return self._stream is not None and bool(self._stream.active)
