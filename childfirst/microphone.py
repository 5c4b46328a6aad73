"""
Microphone capture via sounddevice.

Wraps a sounddevice InputStream capturing mono float32 audio in short
chunks and fans each chunk out to registered listeners (the speech
recognizer subscribes here).
"""

import logging
import threading
from typing import Callable

import numpy as np
import sounddevice as sd

from childfirst.audio import compute_rms
from childfirst.contracts import AudioDevice
from childfirst.errors import DeviceUnavailable

logger = logging.getLogger(__name__)

AudioListener = Callable[[np.ndarray, int], None]


class SoundDeviceMicrophone(AudioDevice):
    """
    Args:
        device: sounddevice input device index (None = system default)
        sample_rate: Capture rate in Hz (None = device default)
        chunk_dur: Duration of each delivered chunk in seconds
    """

    def __init__(
        self,
        device: int | None = None,
        sample_rate: int | None = None,
        chunk_dur: float = 0.02,
    ):
        self.device = device
        self.sample_rate = sample_rate
        self.chunk_dur = chunk_dur
        self.level = 0.0
        self._stream: sd.InputStream | None = None
        self._listeners: list[AudioListener] = []
        self._listeners_lock = threading.Lock()

    def add_listener(self, listener: AudioListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: AudioListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        chunk = indata[:, 0].copy()
        self.level = compute_rms(chunk)
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(chunk, self.sample_rate)

    def open(self) -> None:
        if self._stream is not None:
            return
        try:
            if self.sample_rate is None:
                info = sd.query_devices(self.device, "input")
                self.sample_rate = int(info["default_samplerate"])
            stream = sd.InputStream(
                device=self.device,
                channels=1,
                samplerate=self.sample_rate,
                blocksize=int(self.sample_rate * self.chunk_dur),
                dtype="float32",
                callback=self._callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceUnavailable(f"Microphone unavailable: {exc}") from exc
        self._stream = stream
        logger.info("Microphone stream started (%d Hz)", self.sample_rate)

    def pause(self) -> None:
        if self._stream is not None and self._stream.active:
            self._stream.stop()

    def resume(self) -> None:
        if self._stream is not None and not self._stream.active:
            self._stream.start()

    def close(self) -> None:
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        stream.stop()
        stream.close()
        self.level = 0.0
        logger.info("Microphone stream stopped")
