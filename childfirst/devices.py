"""
ChildFirst Device Wiring.

Concrete capabilities that need no hardware, plus build_controller(),
which assembles a SessionController from settings.

Rules:
    - voice recognition disabled -> no recognizer (typed transcript only)
    - location disabled -> no geolocator (no location recorded)
    - location enabled without a configured position -> NullGeolocator
      (session records the "not available" sentinel)
"""

import logging
import threading
from typing import Callable

from childfirst.config import Settings
from childfirst.contracts import AuthGate, Geolocator, Ticker
from childfirst.errors import LocationUnavailable
from childfirst.session import SessionController

logger = logging.getLogger(__name__)


class FixedGeolocator(Geolocator):
    """Returns a caregiver-configured position (e.g. home)."""

    def __init__(self, latitude: float, longitude: float):
        self.latitude = latitude
        self.longitude = longitude

    def locate(self) -> tuple[float, float]:
        return self.latitude, self.longitude


class NullGeolocator(Geolocator):
    """No position provider on this device."""

    def locate(self) -> tuple[float, float]:
        raise LocationUnavailable("No location provider configured")


class ThreadTicker(Ticker):
    """
    Calls back every `interval` seconds on a daemon thread.

    stop() never joins: a tick blocked on the controller's lock would
    otherwise deadlock a caller holding that lock. Each start() gets its
    own stop event so a superseded thread exits on its next wake-up.
    """

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self._stop_event: threading.Event | None = None

    def start(self, callback: Callable[[], None]) -> None:
        self.stop()
        stop_event = threading.Event()
        self._stop_event = stop_event
        threading.Thread(
            target=self._run, args=(callback, stop_event), name="childfirst-ticker", daemon=True
        ).start()

    def _run(self, callback: Callable[[], None], stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            callback()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None


class OpenGate(AuthGate):
    """Gate for front ends that authenticate before constructing the core."""

    def is_authenticated(self) -> bool:
        return True


def build_geolocator(settings: Settings) -> Geolocator | None:
    if not settings.gps_tracking:
        return None
    if settings.home_location:
        latitude, longitude = settings.home_location
        return FixedGeolocator(float(latitude), float(longitude))
    return NullGeolocator()


def build_controller(settings: Settings, auth_gate: AuthGate | None = None) -> SessionController:
    """
    Assemble a controller backed by the system microphone.

    sounddevice and SpeechRecognition are imported here so that the rest
    of the package works on machines without PortAudio.
    """
    from childfirst.microphone import SoundDeviceMicrophone

    microphone = SoundDeviceMicrophone(device=settings.input_device)
    recognizer = None
    if settings.voice_recognition:
        from childfirst.recognition import GoogleSpeechRecognizer

        recognizer = GoogleSpeechRecognizer(
            microphone,
            language=settings.recognition_language,
            chunk_seconds=settings.recognition_chunk_seconds,
        )
    else:
        logger.info("Voice recognition disabled; transcript must be typed")

    return SessionController(
        microphone=microphone,
        recognizer=recognizer,
        geolocator=build_geolocator(settings),
        ticker=ThreadTicker(),
        auth_gate=auth_gate or OpenGate(),
        geolocation_timeout=settings.geolocation_timeout,
    )
