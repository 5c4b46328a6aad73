"""
ChildFirst Transcript Assembler.

Merges streaming recognition fragments into one stable transcript.

Rules:
    - Every final fragment is appended once, in arrival order
    - Interim fragments never reach the accumulator; the latest one is
      kept only as a live preview and is dropped when a final arrives
    - Error fragments are recorded and leave the accumulator untouched
    - Restarting recognition (pause -> resume) keeps appending to the
      same accumulator
"""

from typing import Iterable

from childfirst.contracts import Fragment, FragmentKind


def _join(head: str, tail: str) -> str:
    """Append tail to head, separated by one space unless head ends in whitespace."""
    if not head or head[-1].isspace():
        return head + tail
    return f"{head} {tail}"


class TranscriptAssembler:
    """Accumulates final recognition text for one session."""

    def __init__(self, text: str = ""):
        self._text = text
        self._interim = ""
        self.last_error: str | None = None

    @property
    def text(self) -> str:
        """The accumulated final transcript."""
        return self._text

    @property
    def interim(self) -> str:
        return self._interim

    @property
    def preview(self) -> str:
        """Accumulator plus the pending interim fragment, for live display."""
        pending = self._interim.strip()
        return _join(self._text, pending) if pending else self._text

    def accept(self, fragment: Fragment) -> None:
        if fragment.kind is FragmentKind.FINAL:
            # Fragment edges are whitespace-normalized; the separator is ours
            text = fragment.text.strip()
            if text:
                self._text = _join(self._text, text)
            self._interim = ""
        elif fragment.kind is FragmentKind.INTERIM:
            self._interim = fragment.text
        else:
            self.last_error = fragment.text
            self._interim = ""

    def extend(self, fragments: Iterable[Fragment]) -> None:
        for fragment in fragments:
            self.accept(fragment)

    def replace(self, text: str) -> None:
        """Overwrite the accumulator with caregiver-edited text."""
        self._text = text
        self._interim = ""

    def reset(self) -> None:
        self._text = ""
        self._interim = ""
        self.last_error = None
