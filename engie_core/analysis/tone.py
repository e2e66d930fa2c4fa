"""
Tone Analysis - Overall tone of a document and the passages that carry it
=========================================================================

The chat model names the dominant tone, its confidence, and a handful of
sentences that set it. Like suggestions, highlights come back as text
fragments; they are placed on the buffer with find_all/resolve_best and
re-placed after every edit, and a highlight whose text is gone is dropped.

Author: Engie contributors | 2025-06-14
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..offset_index import find_all, resolve_best
from ..suggestions import Anchor
from ..text_buffer import TextBuffer, TextRange
from .llm import ChatBackend
from .prompts import TONE_PROMPT
from .schema import decode_model_output

logger = logging.getLogger(__name__)

DEFAULT_TONE = "Neutral"


# =============================================================================
# Data Model
# =============================================================================

@dataclass(frozen=True)
class ToneHighlight:
    """One passage that contributes to the overall tone."""
    text: str
    tone: str
    score: float = 0.0
    hint: Optional[int] = None
    anchor: Optional[Anchor] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"text": self.text, "tone": self.tone, "score": self.score}
        if self.anchor is not None:
            data["startIndex"] = self.anchor.start_index
            data["endIndex"] = self.anchor.end_index
        return data


@dataclass
class ToneReport:
    """Result of one tone analysis."""
    overall_tone: str = DEFAULT_TONE
    overall_score: float = 0.0
    highlights: List[ToneHighlight] = field(default_factory=list)
    scan_time_ms: float = 0.0
    source: str = ""

    def anchored(self, buffer: TextBuffer) -> "ToneReport":
        """Copy of the report with highlights placed on ``buffer``."""
        return replace(self, highlights=anchor_highlights(self.highlights, buffer))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallTone": self.overall_tone,
            "overallScore": self.overall_score,
            "highlightedSentences": [h.to_dict() for h in self.highlights],
            "scanTime": self.scan_time_ms,
            "source": self.source,
        }


# =============================================================================
# Anchoring
# =============================================================================

def anchor_highlights(highlights: List[ToneHighlight], buffer: TextBuffer) -> List[ToneHighlight]:
    """
    Place every highlight on ``buffer``.

    A highlight already anchored to an occurrence that still matches keeps
    it. Otherwise the occurrence nearest its previous start (or the reported
    offset) wins; two highlights never share an occurrence. Highlights whose
    text is not in the buffer are dropped.
    """
    placed: List[ToneHighlight] = []
    taken: List[TextRange] = []
    for h in highlights:
        rng = _locate(h, buffer, taken)
        if rng is None:
            logger.debug(f"Dropping tone highlight not found in text: {h.text[:40]!r}")
            continue
        taken.append(rng)
        placed.append(replace(h, anchor=Anchor(rng.start, rng.end, buffer.version)))
    return placed


def _locate(h: ToneHighlight, buffer: TextBuffer, taken: List[TextRange]) -> Optional[TextRange]:
    hint = h.anchor.start_index if h.anchor is not None else h.hint
    best = resolve_best(buffer, h.text, hint)
    if best is None:
        return None
    if not any(best.overlaps(t) for t in taken):
        return best

    candidates = find_all(buffer, h.text)
    if hint is not None:
        candidates.sort(key=lambda r: (abs(r.start - hint), r.start))
    for rng in candidates:
        if not any(rng.overlaps(t) for t in taken):
            return rng
    return None


# =============================================================================
# Payload
# =============================================================================

class ToneHighlightPayload(BaseModel):
    """One highlighted sentence as returned by the service."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    text: str = Field(validation_alias=AliasChoices("text", "sentence"))
    tone: str = DEFAULT_TONE
    score: float = 0.0
    start_index: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("startIndex", "start_index")
    )

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value or value.isspace():
            raise ValueError("highlight text is empty")
        return value

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> float:
        return _clamp(value)

    @field_validator("start_index")
    @classmethod
    def _start_not_negative(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            return None
        return value

    def to_highlight(self) -> ToneHighlight:
        return ToneHighlight(text=self.text, tone=self.tone, score=self.score, hint=self.start_index)


def _clamp(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(max(score, 0.0), 1.0)


def parse_tone_payload(data: Any) -> ToneReport:
    """
    Turn a service payload into an unanchored ToneReport.

    Invalid highlights are dropped one by one; a payload that is not an
    object yields a neutral report.
    """
    if isinstance(data, str):
        data = decode_model_output(data)
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Tone payload is not an object, ignoring it")
        return ToneReport()

    highlights = []
    items = data.get("highlightedSentences") or data.get("highlights") or []
    if not isinstance(items, list):
        items = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            highlights.append(ToneHighlightPayload.model_validate(item).to_highlight())
        except ValidationError as e:
            logger.debug(f"Rejected tone highlight {item!r}: {e.error_count()} error(s)")

    tone = data.get("overallTone")
    return ToneReport(
        overall_tone=str(tone).strip() if tone else DEFAULT_TONE,
        overall_score=_clamp(data.get("overallScore", 0.0)),
        highlights=highlights,
    )


# =============================================================================
# Analyzer
# =============================================================================

class ToneAnalyzer:
    """
    Tone analysis through a chat model.

    Example:
        tone = ToneAnalyzer(OllamaChat("qwen2.5:7b"))
        report = tone.analyze("We will ship on Friday. No excuses.")
        print(report.overall_tone, [h.text for h in report.highlights])
    """

    def __init__(self, backend: ChatBackend, min_text_length: int = 3):
        self.backend = backend
        self.min_text_length = min_text_length

    @property
    def name(self) -> str:
        return f"tone:{self.backend.model}"

    def analyze(self, text: str) -> ToneReport:
        """
        Analyze the tone of ``text``. Highlights are not anchored yet.

        Raises:
            AnalysisTransportFailure: the chat backend failed
        """
        started = time.perf_counter()
        if len(text.strip()) < self.min_text_length:
            report = ToneReport()
        else:
            content = self.backend.complete(TONE_PROMPT, text)
            report = parse_tone_payload(decode_model_output(content))

        report.scan_time_ms = (time.perf_counter() - started) * 1000
        report.source = self.name
        logger.info(
            f"{self.name}: {report.overall_tone} ({report.overall_score:.2f}), "
            f"{len(report.highlights)} highlight(s)"
        )
        return report

    async def analyze_async(self, text: str) -> ToneReport:
        """Run :meth:`analyze` off the event loop."""
        return await asyncio.to_thread(self.analyze, text)

    def is_available(self) -> bool:
        return self.backend.is_available()
