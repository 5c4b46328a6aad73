"""
ChildFirst Speech Recognition Tests

The recognizer is driven by a fake audio source and an injected
recognize function; no microphone or network is touched.

Coverage:
- Segments recognized in capture order on one worker
- Silence and unintelligible audio skipped
- Service errors retried, then reported as an error fragment
- Unexpected worker failures reported as an error fragment
- Output of a worker abandoned at stop never reaches the sink
- Segments resampled once, at capture rate boundaries
- Audio preparation helpers
"""

import numpy as np
import pytest
import speech_recognition as sr

from childfirst import audio
from childfirst.contracts import FragmentKind
from childfirst.recognition import GoogleSpeechRecognizer, normalize_text

from conftest import BlockingRecognize, FakeSource, tone

RATE = audio.CANONICAL_SAMPLE_RATE


class ScriptedRecognize:
    """Returns (or raises) the scripted results in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []
        self.payloads = []

    def __call__(self, raw, rate, language):
        self.calls.append((len(raw), rate, language))
        self.payloads.append(raw)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def run(recognizer, source, *chunks):
    fragments = []
    recognizer.start(fragments.append)
    for chunk in chunks:
        source.push(chunk)
    recognizer.stop()
    return fragments


class TestRecognizer:

    def test_segments_in_order(self):
        source = FakeSource()
        recognize = ScriptedRecognize("first part", "second part")
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize)

        fragments = run(recognizer, source, tone(1.0), tone(1.0))

        assert [f.kind for f in fragments] == [FragmentKind.FINAL, FragmentKind.FINAL]
        assert [f.text for f in fragments] == ["First part.", "Second part."]
        assert recognize.calls[0] == (RATE * audio.SAMPLE_WIDTH, RATE, "en-AU")

    def test_remainder_flushed_on_stop(self):
        source = FakeSource()
        recognize = ScriptedRecognize("tail")
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=5.0, recognize=recognize)
        fragments = run(recognizer, source, tone(0.8))
        assert [f.text for f in fragments] == ["Tail."]

    def test_short_remainder_dropped(self):
        source = FakeSource()
        recognize = ScriptedRecognize()
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=5.0, recognize=recognize)
        assert run(recognizer, source, tone(0.2)) == []
        assert recognize.calls == []

    def test_silence_skipped(self):
        source = FakeSource()
        recognize = ScriptedRecognize()
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize)
        assert run(recognizer, source, np.zeros(RATE, dtype=np.float32)) == []
        assert recognize.calls == []

    def test_unintelligible_skipped(self):
        source = FakeSource()
        recognize = ScriptedRecognize(sr.UnknownValueError(), "clear words")
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize)
        fragments = run(recognizer, source, tone(1.0), tone(1.0))
        assert [f.text for f in fragments] == ["Clear words."]

    def test_request_error_retried(self):
        source = FakeSource()
        recognize = ScriptedRecognize(sr.RequestError("timeout"), "recovered")
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize, retry_delay=0)
        fragments = run(recognizer, source, tone(1.0))
        assert [f.text for f in fragments] == ["Recovered."]
        assert len(recognize.calls) == 2

    def test_request_error_reported_after_retries(self):
        source = FakeSource()
        recognize = ScriptedRecognize(*[sr.RequestError("offline")] * 3)
        recognizer = GoogleSpeechRecognizer(
            source, chunk_seconds=1.0, recognize=recognize, retry_limit=3, retry_delay=0
        )
        fragments = run(recognizer, source, tone(1.0))
        assert len(fragments) == 1
        assert fragments[0].kind is FragmentKind.ERROR
        assert "offline" in fragments[0].text

    def test_resampled_input(self):
        source = FakeSource()
        recognize = ScriptedRecognize("hello")
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize)
        recognizer.start(lambda fragment: None)
        source.push(tone(1.0, rate=48000), rate=48000)
        recognizer.stop()
        assert recognize.calls[0][0] == RATE * audio.SAMPLE_WIDTH

    def test_start_stop_idempotent(self):
        source = FakeSource()
        recognizer = GoogleSpeechRecognizer(source, recognize=ScriptedRecognize())
        recognizer.stop()
        recognizer.start(lambda fragment: None)
        recognizer.start(lambda fragment: None)
        assert len(source.listeners) == 1
        assert recognizer.active
        recognizer.stop()
        recognizer.stop()
        assert source.listeners == []
        assert not recognizer.active

    def test_unexpected_error_reported(self):
        source = FakeSource()
        recognize = ScriptedRecognize(ValueError("bad frame"), "still going")
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize)
        fragments = run(recognizer, source, tone(1.0), tone(1.0))
        assert [f.kind for f in fragments] == [FragmentKind.ERROR, FragmentKind.FINAL]
        assert "bad frame" in fragments[0].text
        assert fragments[1].text == "Still going."

    def test_output_after_stop_timeout_dropped(self, monkeypatch):
        monkeypatch.setattr("childfirst.recognition.STOP_TIMEOUT", 0.1)
        source = FakeSource()
        recognize = BlockingRecognize()
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize)
        fragments = []
        recognizer.start(fragments.append)
        source.push(tone(1.0))
        worker = recognizer._worker
        assert recognize.entered.wait(2)

        recognizer.stop()
        assert not recognizer.active
        recognize.release.set()
        worker.join(2)

        assert not worker.is_alive()
        assert fragments == []

    def test_blocks_resampled_as_one_segment(self):
        source = FakeSource()
        recognize = ScriptedRecognize("hello")
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize)
        signal = tone(1.0, rate=48000)
        recognizer.start(lambda fragment: None)
        for block in np.split(signal, 50):
            source.push(block, rate=48000)
        recognizer.stop()
        expected = audio.to_pcm16_bytes(audio.prepare_segment(signal, 48000))
        assert recognize.payloads == [expected]

    def test_rate_change_closes_segment(self):
        source = FakeSource()
        recognize = ScriptedRecognize("before", "after")
        recognizer = GoogleSpeechRecognizer(source, chunk_seconds=1.0, recognize=recognize)
        fragments = []
        recognizer.start(fragments.append)
        source.push(tone(0.6))
        source.push(tone(1.0, rate=48000), rate=48000)
        recognizer.stop()
        assert [call[0] for call in recognize.calls] == [int(0.6 * RATE) * 2, RATE * 2]
        assert [f.text for f in fragments] == ["Before.", "After."]


class TestNormalizeText:

    @pytest.mark.parametrize("raw,expected", [
        ("hello  world", "Hello world."),
        ("is he ok?", "Is he ok?"),
        ("  ", ""),
        ("Done.", "Done."),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_text(raw) == expected


class TestAudio:

    def test_stereo_downmix_and_resample(self):
        stereo = np.stack([tone(0.5, 48000), tone(0.5, 48000)], axis=1)
        out = audio.prepare_segment(stereo, 48000)
        assert out.ndim == 1
        assert out.dtype == np.float32
        assert len(out) == RATE // 2

    def test_mono_downmix_averages_channels(self):
        stereo = np.array([[0.2, 0.4], [-1.0, 1.0]], dtype=np.float32)
        assert audio.to_mono(stereo).tolist() == pytest.approx([0.3, 0.0])

    def test_canonical_rate_passes_through(self):
        signal = tone(0.1)
        assert np.array_equal(audio.resample(signal, RATE), signal)

    def test_odd_rate_resampled(self):
        assert len(audio.resample(tone(1.0, 44100), 44100)) == RATE

    def test_pcm16_clips(self):
        raw = audio.to_pcm16_bytes(np.array([2.0, -2.0, 0.0], dtype=np.float32))
        assert np.frombuffer(raw, dtype="<i2").tolist() == [32767, -32767, 0]

    def test_rms(self):
        assert audio.compute_rms(np.array([], dtype=np.float32)) == 0.0
        assert audio.compute_rms(np.ones(100, dtype=np.float32)) == pytest.approx(1.0)
