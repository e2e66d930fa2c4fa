"""
Local Analyzer - Offline heuristic suggestions

A deterministic, dependency-free analyzer used when no model is configured
(and by the test suite). It catches a small, high-precision set of issues:

- common misspellings (case preserving)
- doubled words ("the the")
- missing space after punctuation (",and")
- wordy phrases ("in order to" -> "to")
- intensifier fillers ("very ", "really ")

Every suggestion carries the offset it was found at as a hint.

Author: Engie contributors | 2025-05-14
"""

import logging
import re
import time
from typing import Iterator, List

from ..suggestions import Severity, Suggestion, SuggestionKind
from .base import AnalysisMode, AnalysisResult, BaseAnalyzer

logger = logging.getLogger(__name__)


COMMON_MISSPELLINGS = {
    "recieve": "receive",
    "recieved": "received",
    "occured": "occurred",
    "occurence": "occurrence",
    "seperate": "separate",
    "definately": "definitely",
    "teh": "the",
    "wich": "which",
    "untill": "until",
    "accomodate": "accommodate",
    "acheive": "achieve",
    "beleive": "believe",
    "goverment": "government",
    "neccessary": "necessary",
    "tommorow": "tomorrow",
    "wierd": "weird",
    "adress": "address",
    "begining": "beginning",
    "enviroment": "environment",
    "existance": "existence",
    "independant": "independent",
    "publically": "publicly",
    "truely": "truly",
}

WORDY_PHRASES = {
    "in order to": "to",
    "due to the fact that": "because",
    "at this point in time": "now",
    "for the purpose of": "for",
    "in the event that": "if",
    "in spite of the fact that": "although",
    "with regard to": "regarding",
}

FILLER_WORDS = ("very", "really", "basically", "actually")

_WORD_RE = re.compile(r"\b[A-Za-z']+\b")
_DOUBLED_RE = re.compile(r"\b(\w+)(\s+)\1\b", re.IGNORECASE)
_MISSING_SPACE_RE = re.compile(r"[,;:!?](?=[A-Za-z])|(?<=[a-z])\.(?=[A-Z][a-z])")


def _match_case(word: str, replacement: str) -> str:
    if word.isupper() and len(word) > 1:
        return replacement.upper()
    if word[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


class LocalAnalyzer(BaseAnalyzer):
    """
    Rule-based analyzer that never leaves the process.

    In SPELLING mode only the misspelling dictionary is consulted.
    """

    def __init__(self, mode: AnalysisMode = AnalysisMode.FULL, min_text_length: int = 3,
                 next_scan_in: float = 3.0):
        self.mode = AnalysisMode(mode)
        self.min_text_length = min_text_length
        self.next_scan_in = next_scan_in

    @property
    def name(self) -> str:
        return "local"

    def analyze(self, text: str) -> AnalysisResult:
        started = time.perf_counter()
        suggestions: List[Suggestion] = []
        if len(text.strip()) >= self.min_text_length:
            suggestions.extend(self._misspellings(text))
            if self.mode == AnalysisMode.FULL:
                suggestions.extend(self._doubled_words(text))
                suggestions.extend(self._missing_spaces(text))
                suggestions.extend(self._wordy_phrases(text))
                suggestions.extend(self._fillers(text))
            suggestions.sort(key=lambda s: s.hint)

        logger.debug(f"Local analysis found {len(suggestions)} suggestion(s)")
        return AnalysisResult(
            suggestions=suggestions,
            scan_time_ms=(time.perf_counter() - started) * 1000,
            next_scan_in=self.next_scan_in,
            source=self.name,
        )

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def _misspellings(self, text: str) -> Iterator[Suggestion]:
        for m in _WORD_RE.finditer(text):
            word = m.group(0)
            fix = COMMON_MISSPELLINGS.get(word.lower())
            if fix is None:
                continue
            yield Suggestion(
                original=word,
                replacement=_match_case(word, fix),
                kind=SuggestionKind.SPELLING,
                severity=Severity.HIGH,
                explanation=f'"{word}" is misspelled.',
                hint=m.start(),
            )

    def _doubled_words(self, text: str) -> Iterator[Suggestion]:
        for m in _DOUBLED_RE.finditer(text):
            first, gap = m.group(1), m.group(2)
            if "\n\n" in gap:
                continue
            yield Suggestion(
                original=m.group(0),
                replacement=first,
                kind=SuggestionKind.GRAMMAR,
                severity=Severity.HIGH,
                explanation=f'"{first}" is repeated.',
                hint=m.start(),
            )

    def _missing_spaces(self, text: str) -> Iterator[Suggestion]:
        for m in _MISSING_SPACE_RE.finditer(text):
            start = m.start()
            # Include the neighbouring characters so the fragment is distinctive
            lo = max(0, start - 1)
            fragment = text[lo:start + 2]
            yield Suggestion(
                original=fragment,
                replacement=text[lo:start + 1] + " " + text[start + 1:start + 2],
                kind=SuggestionKind.PUNCTUATION,
                severity=Severity.MEDIUM,
                explanation=f'Add a space after "{m.group(0)}".',
                hint=lo,
            )

    def _wordy_phrases(self, text: str) -> Iterator[Suggestion]:
        for phrase, concise in WORDY_PHRASES.items():
            for m in re.finditer(r"\b" + re.escape(phrase) + r"\b", text, re.IGNORECASE):
                found = m.group(0)
                yield Suggestion(
                    original=found,
                    replacement=_match_case(found, concise),
                    kind=SuggestionKind.CLARITY,
                    severity=Severity.LOW,
                    explanation=f'"{found}" can be shortened to "{concise}".',
                    hint=m.start(),
                )

    def _fillers(self, text: str) -> Iterator[Suggestion]:
        pattern = re.compile(r"\b(" + "|".join(FILLER_WORDS) + r") (?=\w)", re.IGNORECASE)
        for m in pattern.finditer(text):
            yield Suggestion(
                original=m.group(0),
                replacement="",
                kind=SuggestionKind.STYLE,
                severity=Severity.LOW,
                explanation=f'"{m.group(1)}" rarely adds meaning.',
                hint=m.start(),
            )
