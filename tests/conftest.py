"""
ChildFirst Test Configuration

Provides fake capability implementations (no audio hardware, no network),
a pushable audio source, and sample incidents.
"""

import threading
from typing import Callable

import numpy as np
import pytest

from childfirst.audio import CANONICAL_SAMPLE_RATE
from childfirst.contracts import (
    AudioDevice,
    AuthGate,
    Fragment,
    FragmentSink,
    Geolocator,
    SpeechRecognizer,
    Ticker,
)
from childfirst.errors import DeviceUnavailable, LocationUnavailable, RecognitionError
from childfirst.incident import Incident
from childfirst.session import SessionController

FIXED_TIMESTAMP = "2024-03-01T09:00:00+00:00"


# =============================================================================
# Fake capabilities
# =============================================================================


class FakeMicrophone(AudioDevice):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.open_count = 0
        self.close_count = 0
        self.is_open = False
        self.paused = False

    def open(self) -> None:
        if self.fail:
            raise DeviceUnavailable("Permission denied")
        self.open_count += 1
        self.is_open = True
        self.paused = False

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def close(self) -> None:
        if self.is_open:
            self.close_count += 1
        self.is_open = False


class FakeRecognizer(SpeechRecognizer):
    """Recognizer driven by the test through emit()."""

    def __init__(self, fail_start: bool = False):
        self.fail_start = fail_start
        self.start_count = 0
        self.sink: FragmentSink | None = None

    @property
    def active(self) -> bool:
        return self.sink is not None

    def start(self, sink: FragmentSink) -> None:
        if self.fail_start:
            raise RecognitionError("Speech engine unavailable")
        self.start_count += 1
        self.sink = sink

    def stop(self) -> None:
        self.sink = None

    def emit(self, *fragments: Fragment) -> None:
        assert self.sink is not None, "recognizer is not running"
        for fragment in fragments:
            self.sink(fragment)


class FakeGeolocator(Geolocator):
    """
    Args:
        position: (lat, lon) returned on success
        denied: Raise LocationUnavailable(denied=True)
        unavailable: Raise LocationUnavailable(denied=False)
        block: Wait on `release` before answering (timeout tests)
    """

    def __init__(
        self,
        position: tuple[float, float] = (-37.8136, 144.9631),
        denied: bool = False,
        unavailable: bool = False,
        block: bool = False,
    ):
        self.position = position
        self.denied = denied
        self.unavailable = unavailable
        self.release = threading.Event()
        if not block:
            self.release.set()

    def locate(self) -> tuple[float, float]:
        self.release.wait()
        if self.denied:
            raise LocationUnavailable("User denied Geolocation", denied=True)
        if self.unavailable:
            raise LocationUnavailable("Position unavailable")
        return self.position


class ManualTicker(Ticker):
    """Ticker advanced by the test through fire()."""

    def __init__(self):
        self.callback: Callable[[], None] | None = None
        self.start_count = 0

    @property
    def running(self) -> bool:
        return self.callback is not None

    def start(self, callback: Callable[[], None]) -> None:
        self.start_count += 1
        self.callback = callback

    def stop(self) -> None:
        self.callback = None

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self.callback is not None:
                self.callback()


class FakeSource:
    """Audio source pushed by the test; stands in for the microphone stream."""

    def __init__(self):
        self.listeners = []

    def add_listener(self, listener):
        self.listeners.append(listener)

    def remove_listener(self, listener):
        self.listeners.remove(listener)

    def push(self, samples, rate=CANONICAL_SAMPLE_RATE):
        for listener in list(self.listeners):
            listener(samples, rate)


def tone(seconds: float, rate: int = CANONICAL_SAMPLE_RATE, amplitude: float = 0.3) -> np.ndarray:
    t = np.arange(int(seconds * rate)) / rate
    return (amplitude * np.sin(2 * np.pi * 220 * t)).astype(np.float32)


class BlockingRecognize:
    """Recognize function that holds every request until `release` is set."""

    def __init__(self, text: str = "late words"):
        self.text = text
        self.release = threading.Event()
        self.entered = threading.Event()

    def __call__(self, raw, rate, language):
        self.entered.set()
        self.release.wait(5)
        return self.text


class SwitchGate(AuthGate):
    def __init__(self, authenticated: bool = True):
        self.authenticated = authenticated

    def is_authenticated(self) -> bool:
        return self.authenticated


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def microphone() -> FakeMicrophone:
    return FakeMicrophone()


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def geolocator() -> FakeGeolocator:
    return FakeGeolocator()


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def controller(microphone, recognizer, geolocator, ticker) -> SessionController:
    """Controller wired to fakes with a fixed clock."""
    return SessionController(
        microphone=microphone,
        recognizer=recognizer,
        geolocator=geolocator,
        ticker=ticker,
        geolocation_timeout=1.0,
        clock=lambda: FIXED_TIMESTAMP,
    )


def make_incident(
    incident_id: str,
    timestamp: str = "2024-01-01T10:00:00Z",
    category: str = "Meltdown",
    severity: int = 3,
    transcript: str = "Transcript text.",
    people: tuple[str, ...] = (),
    location: str | None = None,
) -> Incident:
    return Incident(
        id=incident_id,
        timestamp=timestamp,
        category=category,
        severity=severity,
        transcript=transcript,
        people_involved=people,
        location=location,
    )


@pytest.fixture
def scenario_incidents() -> list[Incident]:
    """Two Meltdown incidents, severities 2 and 5, one day apart."""
    return [
        make_incident("a", "2024-01-01T10:00:00Z", "Meltdown", 2, "t1"),
        make_incident("b", "2024-01-02T10:00:00Z", "Meltdown", 5, "t2", people=("Child",)),
    ]
