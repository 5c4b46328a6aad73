"""
ChildFirst Capability Contracts

Hardware and platform access is injected into the session controller
through these interfaces, so transition logic never touches a device
directly and every capability can be replaced by a fake in tests.

This module provides:
- Fragment: Tagged recognition result (final / interim / error)
- FragmentChannel: Ordered hand-off from recognizer threads to the assembler
- AudioDevice, SpeechRecognizer, Geolocator, Ticker, AuthGate: Capabilities

INVARIANTS:
- Every release method (close/stop) is idempotent
- Recognizers never write to the transcript directly; they only emit
  fragments into the sink they were started with
- Fragments are consumed in delivery order
"""

import queue
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable


# =============================================================================
# Fragment - Tagged Recognition Result
# =============================================================================


class FragmentKind(str, Enum):
    FINAL = "final"
    INTERIM = "interim"
    ERROR = "error"


@dataclass(frozen=True)
class Fragment:
    """
    One recognition result.
    
    Attributes:
        kind: final (stable), interim (provisional) or error
        text: Recognized text; for errors, the failure description
    """
    kind: FragmentKind
    text: str

    @classmethod
    def final(cls, text: str) -> "Fragment":
        return cls(FragmentKind.FINAL, text)

    @classmethod
    def interim(cls, text: str) -> "Fragment":
        return cls(FragmentKind.INTERIM, text)

    @classmethod
    def error(cls, message: str) -> "Fragment":
        return cls(FragmentKind.ERROR, message)


FragmentSink = Callable[[Fragment], None]


class FragmentChannel:
    """
    Thread-safe FIFO of fragments.
    
    Recognizer threads call put(); the controller drains the channel
    synchronously and feeds the assembler in arrival order. Each
    recognition stream gets its own channel, so fragments a stopped
    stream delivers late are never drained.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Fragment] = queue.SimpleQueue()

    def put(self, fragment: Fragment) -> None:
        self._queue.put(fragment)

    def drain(self) -> list[Fragment]:
        """Remove and return every pending fragment, oldest first."""
        fragments: list[Fragment] = []
        while True:
            try:
                fragments.append(self._queue.get_nowait())
            except queue.Empty:
                return fragments


# =============================================================================
# Capabilities
# =============================================================================


class AudioDevice(ABC):
    """Exclusive handle on the microphone."""

    @abstractmethod
    def open(self) -> None:
        """
        Acquire the device and start capturing.
        
        Raises:
            DeviceUnavailable: If the device cannot be acquired.
        """
        ...

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def resume(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call when already closed."""
        ...


class SpeechRecognizer(ABC):
    """Continuous speech-to-text stream with interim results."""

    @abstractmethod
    def start(self, sink: FragmentSink) -> None:
        """
        Begin a recognition stream delivering fragments to sink.
        
        Raises:
            RecognitionError: If the stream cannot be started.
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """End the stream. Safe to call when the stream already ended."""
        ...


class Geolocator(ABC):
    """One-shot position lookup."""

    @abstractmethod
    def locate(self) -> tuple[float, float]:
        """
        Return (latitude, longitude).
        
        May block; callers bound the wait.
        
        Raises:
            LocationUnavailable: If no position can be produced.
        """
        ...


class Ticker(ABC):
    """Once-per-second callback source for the elapsed-time counter."""

    @abstractmethod
    def start(self, callback: Callable[[], None]) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop ticking. Safe to call when not running."""
        ...


class AuthGate(ABC):
    """Authentication signal from the PIN/biometric gate."""

    @abstractmethod
    def is_authenticated(self) -> bool:
        ...
