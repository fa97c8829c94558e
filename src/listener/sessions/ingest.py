"""Transcript fragment cleanup before it reaches the context store.

Recognizers emit noisy partials: stray whitespace, lowercase starts, and the
same final result delivered twice in a row. TranscriptCleaner normalizes a
fragment and drops it when there is nothing new to record.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_WHITESPACE_RE = re.compile(r"\s+")

# "Alice: we should ship" -> speaker "Alice"; the text keeps its label
_SPEAKER_PREFIX_RE = re.compile(r"^([A-Z][A-Za-z .'-]{0,39}?):\s+\S")


@dataclass(frozen=True)
class CleanedFragment:
    text: str
    speaker: str | None = None


class TranscriptCleaner:
    """Normalizes fragments and suppresses consecutive duplicates."""

    def __init__(self) -> None:
        self._last_text: str | None = None

    def reset(self) -> None:
        self._last_text = None

    def clean(self, raw_text: str, speaker: str | None = None) -> CleanedFragment | None:
        """Return the cleaned fragment, or None when it should be skipped.

        An explicit speaker wins over one read from a "Name:" prefix. The
        prefix is never removed from the text, so lead-ins such as
        "Decision:" still reach the keyword heuristics.
        """
        text = _WHITESPACE_RE.sub(" ", raw_text or "").strip()
        if not text:
            return None

        if speaker is None:
            match = _SPEAKER_PREFIX_RE.match(text)
            if match:
                speaker = match.group(1).strip()

        text = text[0].upper() + text[1:]
        if text == self._last_text:
            return None
        self._last_text = text

        return CleanedFragment(text=text, speaker=(speaker or None))
