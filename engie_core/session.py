"""
Editing Session - One open document on the suggestion side

The session is the seam to the editing surface. The surface pushes text
snapshots in; the session answers with suggestions and, when the user
applies one, with a replacement buffer. All buffer changes go through here,
one at a time, so the suggestion subsystem never races itself.

Failures stay inside: an unreachable analysis service means no new
suggestions, a stale suggestion means "this suggestion is no longer valid".

Author: Engie contributors | 2025-06-25
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Union

from .analysis.base import AnalysisResult, BaseAnalyzer
from .analysis.tone import ToneAnalyzer, ToneReport
from .applier import apply_suggestion, shift_anchors
from .config import EngieConfig
from .errors import AnchorMismatch, EngieError, SuggestionNotFound
from .logging_utils import ActivityLog
from .reconciler import SuggestionReconciler
from .scheduler import ScanScheduler, ScanState
from .suggestions import Suggestion, SuggestionKind
from .text_buffer import TextBuffer

logger = logging.getLogger(__name__)

STALE_NOTICE = "This suggestion is no longer valid."

# "Quick Fixes": grammar and spelling corrections applied as one batch
QUICK_FIX_KINDS = frozenset({SuggestionKind.GRAMMAR, SuggestionKind.SPELLING})

_ACTIVITY_EVENTS = {
    "added": "suggestion_added",
    "dismissed": "suggestion_dismissed",
    "invalidated": "suggestion_invalidated",
}


@dataclass
class ApplyOutcome:
    """What happened when the user applied a suggestion."""
    suggestion_id: str
    applied: bool
    buffer: TextBuffer
    delta: int = 0
    notice: Optional[str] = None
    invalidated: List[str] = field(default_factory=list)


class EditingSession:
    """
    Suggestion engine for one open document.

    Example:
        async with EditingSession("doc-1", LocalAnalyzer(), on_buffer_replaced=editor.set_text) as session:
            session.text_changed("I recieve emails.")
            await session.wait_for_scan()
            session.apply(session.suggestions[0].id)
    """

    def __init__(
        self,
        document_id: str,
        analyzer: BaseAnalyzer,
        config: Optional[EngieConfig] = None,
        initial_text: str = "",
        on_buffer_replaced: Optional[Callable[[TextBuffer], None]] = None,
        on_suggestions_changed: Optional[Callable[[List[Suggestion]], None]] = None,
        activity_log: Optional[ActivityLog] = None,
        tone_analyzer: Optional[ToneAnalyzer] = None,
    ):
        """
        Initialize session.

        Args:
            document_id: Identifier of the document
            analyzer: Analysis collaborator
            config: Engie configuration (defaults to EngieConfig())
            initial_text: Text of the document when opened (version 0)
            on_buffer_replaced: Receives the new buffer after an application
            on_suggestions_changed: Receives the display list after each change
            activity_log: Optional JSONL lifecycle log
            tone_analyzer: Optional tone collaborator for check_tone()
        """
        self.document_id = document_id
        self.analyzer = analyzer
        self.config = config or EngieConfig()
        self.buffer = TextBuffer(initial_text, 0)
        self.on_buffer_replaced = on_buffer_replaced
        self.on_suggestions_changed = on_suggestions_changed
        self.activity_log = activity_log
        self.tone_analyzer = tone_analyzer
        self.last_result: Optional[AnalysisResult] = None
        self.tone_report: Optional[ToneReport] = None

        self.reconciler = SuggestionReconciler(document_id, listener=self._on_suggestion_event)
        self.scheduler = ScanScheduler(
            analyzer.analyze_async,
            self._on_scan_results,
            interval=self.config.scan.interval,
            scan_timeout=self.config.scan.scan_timeout,
            auto_scan=self.config.scan.auto_scan,
            document_id=document_id,
            on_failure=self._on_scan_failure,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def suggestions(self) -> List[Suggestion]:
        """Live suggestions in display order."""
        return self.reconciler.suggestions.values()

    @property
    def scan_state(self) -> ScanState:
        return self.scheduler.state

    @property
    def closed(self) -> bool:
        return self.scheduler.closed

    # -------------------------------------------------------------------------
    # Editing surface -> session
    # -------------------------------------------------------------------------

    def text_changed(self, snapshot: Union[str, TextBuffer]) -> bool:
        """
        Accept a new snapshot from the editing surface.

        A plain string becomes the next version of the current buffer. A
        TextBuffer is taken as is, unless its version is not newer than the
        current one (a late snapshot), which is ignored.

        Returns:
            True when the snapshot was accepted
        """
        if self.closed:
            return False

        if isinstance(snapshot, TextBuffer):
            if snapshot.version <= self.buffer.version:
                logger.debug(
                    f"[{self.document_id}] Ignoring stale snapshot v{snapshot.version} "
                    f"(current v{self.buffer.version})"
                )
                return False
            buffer = snapshot
        else:
            if snapshot == self.buffer.text:
                return False
            buffer = self.buffer.with_text(snapshot)

        self._set_buffer(buffer)
        return True

    def apply(self, suggestion_id: str) -> ApplyOutcome:
        """
        Apply one suggestion to the current buffer.

        The suggestion leaves the set whatever happens. On success the new
        buffer is handed to ``on_buffer_replaced`` and every other anchor is
        shifted; overlapping suggestions are dropped. On mismatch nothing
        else changes and the outcome carries a notice.
        """
        try:
            _, suggestion = self.reconciler.apply(suggestion_id)
        except SuggestionNotFound:
            logger.debug(f"[{self.document_id}] Apply of unknown suggestion {suggestion_id}")
            return ApplyOutcome(suggestion_id, applied=False, buffer=self.buffer)

        try:
            result = apply_suggestion(self.buffer, suggestion)
        except AnchorMismatch as e:
            logger.info(f"[{self.document_id}] {e}")
            self._record(suggestion, "apply_rejected")
            self._suggestions_changed()
            return ApplyOutcome(suggestion_id, applied=False, buffer=self.buffer, notice=STALE_NOTICE)

        before = set(self.reconciler.suggestions.ids())
        shifted = shift_anchors(
            self.reconciler.suggestions,
            result.applied_range,
            result.delta,
            buffer_version=result.new_buffer.version,
        )
        self.reconciler.replace_suggestions(shifted)
        invalidated = sorted(before - set(self.reconciler.suggestions.ids()))

        self.buffer = result.new_buffer
        self._reanchor_tone()
        self._record(result.suggestion, "suggestion_applied", delta=result.delta)
        self.scheduler.text_changed(self.buffer)

        if self.on_buffer_replaced is not None:
            self.on_buffer_replaced(self.buffer)
        self._suggestions_changed()

        return ApplyOutcome(
            suggestion_id,
            applied=True,
            buffer=self.buffer,
            delta=result.delta,
            invalidated=invalidated,
        )

    def apply_all(self, kinds: Optional[Iterable[Union[SuggestionKind, str]]] = None) -> List[ApplyOutcome]:
        """
        Apply live suggestions in display order.

        Args:
            kinds: Only apply suggestions of these kinds (e.g.
                QUICK_FIX_KINDS); None applies every kind

        Returns:
            One outcome per suggestion attempted
        """
        wanted = None
        if kinds is not None:
            wanted = set()
            for kind in kinds:
                parsed = SuggestionKind.parse(kind)
                if parsed is None:
                    raise ValueError(f"Unknown suggestion kind: {kind!r}")
                wanted.add(parsed)

        outcomes = []
        for s in self.reconciler.suggestions.values():
            if wanted is not None and s.kind not in wanted:
                continue
            # An earlier application may have invalidated it
            if s.id in self.reconciler.suggestions:
                outcomes.append(self.apply(s.id))
        return outcomes

    def dismiss(self, suggestion_id: str) -> bool:
        """Reject a suggestion for the rest of the session."""
        try:
            self.reconciler.dismiss(suggestion_id)
        except SuggestionNotFound:
            return False
        self._suggestions_changed()
        return True

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    def scan_now(self) -> bool:
        """Scan the current buffer without waiting for the countdown."""
        return self.scheduler.scan_now(self.buffer)

    def set_auto_scan(self, enabled: bool) -> None:
        self.scheduler.set_auto_scan(enabled)

    async def wait_for_scan(self) -> None:
        await self.scheduler.wait_idle()

    def scan_blocking(self) -> Optional[AnalysisResult]:
        """
        Analyze the current buffer synchronously and merge the results.

        For callers without an event loop (the CLI). Returns None when the
        analysis failed.
        """
        buffer = self.buffer
        try:
            result = self.analyzer.analyze(buffer.text)
        except EngieError as e:
            self._on_scan_failure(e)
            return None
        self._on_scan_results(result, buffer)
        return result

    # -------------------------------------------------------------------------
    # Tone
    # -------------------------------------------------------------------------

    def check_tone(self) -> Optional[ToneReport]:
        """
        Analyze the tone of the current buffer and anchor its highlights.

        Returns None when no tone analyzer is configured or the analysis
        failed.
        """
        if self.tone_analyzer is None:
            return None
        try:
            report = self.tone_analyzer.analyze(self.buffer.text)
        except EngieError as e:
            logger.warning(f"[{self.document_id}] Tone analysis unavailable: {e}")
            return None
        return self._set_tone_report(report)

    async def check_tone_async(self) -> Optional[ToneReport]:
        """Same as :meth:`check_tone`, without blocking the event loop."""
        if self.tone_analyzer is None:
            return None
        try:
            report = await self.tone_analyzer.analyze_async(self.buffer.text)
        except EngieError as e:
            logger.warning(f"[{self.document_id}] Tone analysis unavailable: {e}")
            return None
        if self.closed:
            return None
        return self._set_tone_report(report)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Stop timers; results still in flight will be discarded."""
        self.scheduler.close()

    async def __aenter__(self) -> "EditingSession":
        return self

    async def aclose(self) -> None:
        """Close and wait for the in-flight scan to settle."""
        await self.scheduler.aclose()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def __enter__(self) -> "EditingSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _set_buffer(self, buffer: TextBuffer) -> None:
        before = len(self.reconciler.suggestions)
        self.buffer = buffer
        self.reconciler.on_buffer_changed(buffer)
        self._reanchor_tone()
        self.scheduler.text_changed(buffer)
        if len(self.reconciler.suggestions) != before:
            self._suggestions_changed()

    def _set_tone_report(self, report: ToneReport) -> ToneReport:
        # Anchored against the buffer current when the answer arrives
        self.tone_report = report.anchored(self.buffer)
        if self.activity_log is not None:
            self.activity_log.log_event("tone_checked", self.document_id, {
                "buffer_version": self.buffer.version,
                "overall_tone": self.tone_report.overall_tone,
                "highlights": len(self.tone_report.highlights),
            })
        return self.tone_report

    def _reanchor_tone(self) -> None:
        if self.tone_report is not None:
            self.tone_report = self.tone_report.anchored(self.buffer)

    def _on_scan_results(self, result: AnalysisResult, scanned: TextBuffer) -> None:
        # Results are anchored against the live buffer, not the scanned one
        self.last_result = result
        before = len(self.reconciler.suggestions)
        self.reconciler.merge_scan_results(result.suggestions, self.buffer)
        if self.activity_log is not None:
            self.activity_log.log_event("scan_completed", self.document_id, {
                "scanned_version": scanned.version,
                "buffer_version": self.buffer.version,
                "received": len(result.suggestions),
                "live": len(self.reconciler.suggestions),
                "scan_time_ms": round(result.scan_time_ms, 1),
                "cached": result.cached,
            })
        if len(self.reconciler.suggestions) != before:
            self._suggestions_changed()

    def _on_scan_failure(self, error: Exception) -> None:
        logger.warning(f"[{self.document_id}] Analysis unavailable: {error}")
        if self.activity_log is not None:
            self.activity_log.log_event("scan_failed", self.document_id, {
                "error": type(error).__name__,
                "status_code": getattr(error, "status_code", None),
            })

    def _on_suggestion_event(self, event: str, suggestion: Suggestion) -> None:
        name = _ACTIVITY_EVENTS.get(event)
        if name is not None:
            self._record(suggestion, name)

    def _record(self, suggestion: Suggestion, event: str, **extra) -> None:
        if self.activity_log is not None:
            self.activity_log.log_suggestion(event, self.document_id, suggestion, **extra)

    def _suggestions_changed(self) -> None:
        if self.on_suggestions_changed is not None:
            self.on_suggestions_changed(self.suggestions)
