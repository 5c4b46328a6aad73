"""
Speech recognition via the SpeechRecognition package (Google Web API).

Microphone chunks are mixed to mono and buffered at the capture rate
into fixed-length segments. Each segment is resampled to 16 kHz once and
recognized on a single worker thread, so finals reach the sink in
capture order.

Failure handling:
    - No speech in a segment: skipped silently (debug log)
    - Service/network error: retried, then reported as an error fragment;
      the session controller stops recognition and keeps the transcript
    - Any other failure in the worker: reported as an error fragment
    - Worker outliving stop(): its later output is discarded
"""

import logging
import queue
import threading
import time
from typing import Callable, Protocol

import numpy as np
import speech_recognition as sr

from childfirst import audio
from childfirst.contracts import Fragment, FragmentSink, SpeechRecognizer

logger = logging.getLogger(__name__)

RETRY_LIMIT = 3
RETRY_DELAY = 0.25
MIN_SEGMENT_SECONDS = 0.5
SILENCE_RMS = 0.005
STOP_TIMEOUT = 10.0

RecognizeFn = Callable[[bytes, int, str], str]
Segment = tuple[np.ndarray, int]  # (mono samples, capture rate)


class AudioSource(Protocol):
    def add_listener(self, listener: Callable[[np.ndarray, int], None]) -> None: ...

    def remove_listener(self, listener: Callable[[np.ndarray, int], None]) -> None: ...


def google_recognize(raw_pcm: bytes, sample_rate: int, language: str) -> str:
    """Send raw PCM-16 mono audio to the Google Web Speech API."""
    data = sr.AudioData(raw_pcm, sample_rate, audio.SAMPLE_WIDTH)
    return sr.Recognizer().recognize_google(data, language=language)


def normalize_text(text: str) -> str:
    """Collapse whitespace, capitalize, and close the sentence."""
    t = " ".join(text.split())
    if t and t[-1] not in ".!?":
        t += "."
    return t[0].upper() + t[1:] if t else t


class GoogleSpeechRecognizer(SpeechRecognizer):
    """
    Args:
        source: Audio source delivering (samples, sample_rate) chunks
        language: BCP-47 language tag (e.g. "en-AU")
        chunk_seconds: Segment length sent per request
        recognize: Recognition function; defaults to google_recognize
        retry_limit: Attempts per segment on service errors
    """

    def __init__(
        self,
        source: AudioSource,
        language: str = "en-AU",
        chunk_seconds: float = 6.0,
        recognize: RecognizeFn = google_recognize,
        retry_limit: int = RETRY_LIMIT,
        retry_delay: float = RETRY_DELAY,
    ):
        self.source = source
        self.language = language
        self.chunk_seconds = chunk_seconds
        self.recognize = recognize
        self.retry_limit = retry_limit
        self.retry_delay = retry_delay

        self._segments: queue.Queue[Segment | None] = queue.Queue()
        self._buffer: list[np.ndarray] = []
        self._buffered = 0
        self._buffer_rate = audio.CANONICAL_SAMPLE_RATE
        self._buffer_lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._abandoned = threading.Event()

    @property
    def active(self) -> bool:
        return self._worker is not None

    def start(self, sink: FragmentSink) -> None:
        if self._worker is not None:
            return
        self._segments = queue.Queue()
        self._abandoned = threading.Event()
        with self._buffer_lock:
            self._buffer = []
            self._buffered = 0
        self._worker = threading.Thread(
            target=self._run,
            args=(self._segments, sink, self._abandoned),
            name="childfirst-recognizer",
            daemon=True,
        )
        self._worker.start()
        self.source.add_listener(self.feed)
        logger.info("Speech recognition started (%s)", self.language)

    def stop(self) -> None:
        """
        Flush the partial segment and wait for the worker.

        A worker still busy after STOP_TIMEOUT is abandoned: whatever it
        recognizes afterwards is dropped instead of reaching the sink.
        """
        if self._worker is None:
            return
        self.source.remove_listener(self.feed)
        with self._buffer_lock:
            if self._buffered >= MIN_SEGMENT_SECONDS * self._buffer_rate:
                self._flush()
            self._buffer = []
            self._buffered = 0
        self._segments.put(None)
        worker, self._worker = self._worker, None
        worker.join(STOP_TIMEOUT)
        if worker.is_alive():
            self._abandoned.set()
            logger.warning("Recognition worker still busy after %.1fs; discarding its output", STOP_TIMEOUT)
        logger.info("Speech recognition stopped")

    def feed(self, samples: np.ndarray, sample_rate: int) -> None:
        """Audio listener: buffer mono audio at the capture rate and queue full segments."""
        mono = audio.to_mono(samples)
        with self._buffer_lock:
            if self._buffer and sample_rate != self._buffer_rate:
                self._flush()
            self._buffer_rate = sample_rate
            self._buffer.append(mono)
            self._buffered += len(mono)
            if self._buffered >= self.chunk_seconds * sample_rate:
                self._flush()

    def _flush(self) -> None:
        # Caller holds _buffer_lock.
        self._segments.put((np.concatenate(self._buffer), self._buffer_rate))
        self._buffer = []
        self._buffered = 0

    def _run(
        self,
        segments: "queue.Queue[Segment | None]",
        sink: FragmentSink,
        abandoned: threading.Event,
    ) -> None:
        while True:
            item = segments.get()
            if item is None:
                return
            try:
                fragment = self._transcribe(*item)
            except Exception as exc:
                logger.exception("Recognition worker failed")
                fragment = Fragment.error(f"Speech recognition failed: {exc}")
            if fragment is not None and not abandoned.is_set():
                sink(fragment)

    def _transcribe(self, samples: np.ndarray, sample_rate: int) -> Fragment | None:
        segment = audio.prepare_segment(samples, sample_rate)
        if audio.compute_rms(segment) < SILENCE_RMS:
            logger.debug("Skipping silent segment")
            return None
        raw = audio.to_pcm16_bytes(segment)
        for attempt in range(1, self.retry_limit + 1):
            try:
                text = self.recognize(raw, audio.CANONICAL_SAMPLE_RATE, self.language)
            except sr.UnknownValueError:
                logger.debug("Segment could not be understood")
                return None
            except sr.RequestError as exc:
                if attempt < self.retry_limit:
                    logger.warning("Recognition retry %d/%d: %s", attempt, self.retry_limit, exc)
                    time.sleep(self.retry_delay)
                    continue
                return Fragment.error(f"Speech service unavailable: {exc}")
            text = normalize_text(text)
            return Fragment.final(text) if text else None
        return None
