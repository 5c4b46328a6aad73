"""
ChildFirst Recording Session Controller.

State machine (FIXED):

    Idle --start--> Recording --pause--> Paused --resume--> Recording
    Recording/Paused --stop--> Stopped --save/reset--> Idle
    any --reset--> Idle

Responsibilities:
- Own the single active capture session
- Coordinate the injected capabilities (microphone, recognizer,
  geolocator, ticker) with the transition rules
- Pump recognition fragments into the Transcript Assembler in order

Invariants:
- State-incompatible calls decline (return False); they never raise
- Only start() raises, and only DeviceUnavailable; the session is then
  back in Idle with nothing retained
- stop()/reset() release every resource and tolerate any of them being
  released already
- Recognition failures never touch the accumulated transcript
- Fragments from a stream that was stopped or discarded never reach a
  later session
- Geolocation never blocks start() longer than the configured timeout
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from childfirst.contracts import (
    AudioDevice,
    AuthGate,
    FragmentChannel,
    FragmentKind,
    Geolocator,
    SpeechRecognizer,
    Ticker,
)
from childfirst.errors import DeviceUnavailable, LocationUnavailable, RecognitionError
from childfirst.incident import LOCATION_DENIED, LOCATION_NOT_AVAILABLE, format_location
from childfirst.transcript import TranscriptAssembler
from childfirst.utils import format_elapsed, now_iso

logger = logging.getLogger(__name__)

DEFAULT_GEOLOCATION_TIMEOUT = 5.0


class SessionStatus(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RecordingSession:
    """
    Immutable snapshot of the session's domain data.

    Holds no device handles; those stay with the controller.
    """
    status: SessionStatus
    elapsed_seconds: int = 0
    pending_transcript: str = ""
    captured_location: str | None = None
    captured_timestamp: str | None = None


class SessionController:
    """
    Drives one capture session at a time.

    Args:
        microphone: Audio capture device
        recognizer: Speech recognizer, or None when voice recognition is
            disabled in settings (the caregiver types the transcript)
        geolocator: Position source, or None when location capture is
            disabled in settings (no location is recorded)
        ticker: Once-per-second callback source
        auth_gate: Authentication signal; start() declines while closed
        geolocation_timeout: Upper bound in seconds for the position lookup
        clock: Returns the current ISO-8601 timestamp
    """

    def __init__(
        self,
        microphone: AudioDevice,
        recognizer: SpeechRecognizer | None,
        geolocator: Geolocator | None,
        ticker: Ticker,
        auth_gate: AuthGate | None = None,
        geolocation_timeout: float = DEFAULT_GEOLOCATION_TIMEOUT,
        clock: Callable[[], str] = now_iso,
    ):
        self.microphone = microphone
        self.recognizer = recognizer
        self.geolocator = geolocator
        self.ticker = ticker
        self.auth_gate = auth_gate
        self.geolocation_timeout = geolocation_timeout
        self.clock = clock

        self._lock = threading.RLock()
        self._channel = FragmentChannel()
        self._assembler = TranscriptAssembler()
        self._status = SessionStatus.IDLE
        self._elapsed = 0
        self._location: str | None = None
        self._timestamp: str | None = None
        self._listening = False
        self.last_recognition_error: str | None = None

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_listening(self) -> bool:
        """True while a recognition stream is running."""
        return self._listening

    @property
    def session(self) -> RecordingSession:
        """Current session snapshot (pending fragments are applied first)."""
        with self._lock:
            self._pump()
            return RecordingSession(
                status=self._status,
                elapsed_seconds=self._elapsed,
                pending_transcript=self._assembler.text,
                captured_location=self._location,
                captured_timestamp=self._timestamp,
            )

    @property
    def elapsed_display(self) -> str:
        return format_elapsed(self._elapsed)

    def poll(self) -> str:
        """Apply pending fragments and return the live preview text."""
        with self._lock:
            self._pump()
            return self._assembler.preview

    # =========================================================================
    # Transitions
    # =========================================================================

    def start(self) -> bool:
        """
        Idle -> Recording.

        Returns:
            True if a session started, False if the call was declined.

        Raises:
            DeviceUnavailable: If the microphone cannot be acquired.
                The controller is left in Idle with no session data.
        """
        with self._lock:
            if self._status is not SessionStatus.IDLE:
                logger.debug("start() declined in state %s", self._status.value)
                return False
            if self.auth_gate is not None and not self.auth_gate.is_authenticated():
                logger.debug("start() declined: not authenticated")
                return False

            try:
                self.microphone.open()
            except DeviceUnavailable:
                logger.warning("Microphone unavailable; session not started")
                self._release_all()
                self._clear()
                raise

            self._clear()
            self._channel = FragmentChannel()
            self._timestamp = self.clock()
            self._location = self._acquire_location()
            self._status = SessionStatus.RECORDING
            self.ticker.start(self.tick)
            self._start_recognition()
            logger.info("Recording started at %s", self._timestamp)
            return True

    def pause(self) -> bool:
        """Recording -> Paused. Stops the counter and the recognition stream."""
        with self._lock:
            if self._status is not SessionStatus.RECORDING:
                logger.debug("pause() declined in state %s", self._status.value)
                return False
            self.ticker.stop()
            self._stop_recognition()
            self.microphone.pause()
            self._pump()
            self._status = SessionStatus.PAUSED
            logger.info("Recording paused at %s", self.elapsed_display)
            return True

    def resume(self) -> bool:
        """Paused -> Recording. Recognition is explicitly restarted."""
        with self._lock:
            if self._status is not SessionStatus.PAUSED:
                logger.debug("resume() declined in state %s", self._status.value)
                return False
            self.microphone.resume()
            self._status = SessionStatus.RECORDING
            self.ticker.start(self.tick)
            self._start_recognition()
            logger.info("Recording resumed")
            return True

    def toggle_pause(self) -> bool:
        """Pause when recording, resume when paused."""
        with self._lock:
            if self._status is SessionStatus.PAUSED:
                return self.resume()
            return self.pause()

    def stop(self) -> bool:
        """
        Recording/Paused -> Stopped.

        Releases all capture resources; transcript and captured metadata
        stay available for review before saving.
        """
        with self._lock:
            if self._status not in (SessionStatus.RECORDING, SessionStatus.PAUSED):
                logger.debug("stop() declined in state %s", self._status.value)
                return False
            self._release_all()
            self._pump()
            self._status = SessionStatus.STOPPED
            logger.info("Recording stopped after %s", self.elapsed_display)
            return True

    def reset(self) -> None:
        """Any state -> Idle, discarding all session data. Idempotent."""
        with self._lock:
            self._release_all()
            self._channel = FragmentChannel()
            self._clear()
            if self._status is not SessionStatus.IDLE:
                logger.info("Session discarded")
            self._status = SessionStatus.IDLE

    # =========================================================================
    # Caregiver actions
    # =========================================================================

    def edit_transcript(self, text: str) -> None:
        """Replace the accumulated transcript with edited text."""
        with self._lock:
            self._pump()
            self._assembler.replace(text)

    def retry_recognition(self) -> bool:
        """Restart recognition after a failure while still recording."""
        with self._lock:
            if self._status is not SessionStatus.RECORDING or self._listening:
                return False
            self._start_recognition()
            return self._listening

    def tick(self) -> None:
        """Ticker callback: pump fragments and advance the counter."""
        with self._lock:
            self._pump()
            if self._status is SessionStatus.RECORDING:
                self._elapsed += 1

    # =========================================================================
    # Internals
    # =========================================================================

    def _clear(self) -> None:
        self._assembler.reset()
        self._elapsed = 0
        self._location = None
        self._timestamp = None
        self.last_recognition_error = None

    def _pump(self) -> None:
        for fragment in self._channel.drain():
            self._assembler.accept(fragment)
            if fragment.kind is FragmentKind.ERROR:
                self._recognition_failed(fragment.text)

    def _start_recognition(self) -> None:
        if self.recognizer is None:
            return
        # Apply what the previous stream delivered, then give this stream its own channel.
        self._pump()
        channel = FragmentChannel()
        self._channel = channel
        try:
            self.recognizer.start(channel.put)
        except RecognitionError as exc:
            self._recognition_failed(exc.message)
            return
        self._listening = True

    def _stop_recognition(self) -> None:
        if self.recognizer is not None:
            self.recognizer.stop()
        self._listening = False

    def _recognition_failed(self, message: str) -> None:
        logger.warning("Speech recognition stopped: %s", message)
        self.last_recognition_error = message
        self._stop_recognition()

    def _release_all(self) -> None:
        releases = [("ticker", self.ticker.stop), ("microphone", self.microphone.close)]
        if self.recognizer is not None:
            releases.insert(1, ("recognizer", self.recognizer.stop))
        for name, release in releases:
            try:
                release()
            except Exception:
                logger.exception("Failed to release %s", name)
        self._listening = False

    def _acquire_location(self) -> str | None:
        """
        Bounded position lookup.

        Returns:
            "lat, lon", a sentinel on failure/timeout, or None when location
            capture is disabled.
        """
        if self.geolocator is None:
            return None

        outcome: dict = {}
        done = threading.Event()

        def lookup() -> None:
            try:
                outcome["position"] = self.geolocator.locate()
            except LocationUnavailable as exc:
                outcome["error"] = exc
            finally:
                done.set()

        threading.Thread(target=lookup, name="childfirst-geolocate", daemon=True).start()

        if not done.wait(self.geolocation_timeout):
            logger.warning("Geolocation timed out after %.1fs", self.geolocation_timeout)
            return LOCATION_DENIED
        if "position" in outcome:
            latitude, longitude = outcome["position"]
            return format_location(latitude, longitude)

        error = outcome.get("error")
        logger.warning("Geolocation unavailable: %s", error.message if error else "lookup failed")
        if error is not None and error.denied:
            return LOCATION_DENIED
        return LOCATION_NOT_AVAILABLE
