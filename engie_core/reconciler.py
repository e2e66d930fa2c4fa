"""
Suggestion Reconciler - The authoritative suggestion set of one document

Mediates between scan results arriving late and the user editing in the
meantime:

- scan results are anchored against the *current* buffer, deduplicated and
  appended (insertion order is display order)
- after every edit, anchors are re-validated; a broken anchor gets exactly
  one re-anchoring attempt and is dropped if that fails
- dismissed suggestions are remembered for the whole session so that a
  later scan cannot bring them back

Never showing a suggestion that does not point at real text matters more
here than keeping the suggestion count stable.

Author: Engie contributors | 2025-06-18
"""

import logging
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Set, Tuple

from .anchors import anchor, is_valid
from .errors import SuggestionNotFound
from .offset_index import find_all
from .suggestions import (
    Anchor,
    Suggestion,
    SuggestionKind,
    SuggestionSet,
    SuggestionStatus,
    new_suggestion_id,
)
from .text_buffer import TextBuffer, TextRange

logger = logging.getLogger(__name__)

Signature = Tuple[str, str, SuggestionKind]
ReconcilerListener = Callable[[str, Suggestion], None]


class SuggestionReconciler:
    """
    Owns the SuggestionSet of one open document.

    Every operation returns the new set and also keeps it as
    ``self.suggestions``.

    Example:
        rec = SuggestionReconciler("doc-1")
        buf = TextBuffer("I recieve emails.")
        rec.merge_scan_results([Suggestion("recieve", "receive", SuggestionKind.SPELLING)], buf)
        buf = buf.with_text("Yesterday I recieve emails.")
        rec.on_buffer_changed(buf)     # anchor re-placed at offset 12
    """

    def __init__(self, document_id: str = "", listener: Optional[ReconcilerListener] = None):
        """
        Initialize reconciler.

        Args:
            document_id: Identifier of the document, used in logs
            listener: Optional callback ``(event, suggestion)`` for
                "added", "dismissed", "taken" and "invalidated" events
        """
        self.document_id = document_id
        self.listener = listener
        self.suggestions = SuggestionSet()
        self._dismissed_ids: Set[str] = set()
        self._dismissed_signatures: Set[Signature] = set()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def dismissed_ids(self) -> Set[str]:
        return set(self._dismissed_ids)

    def get(self, suggestion_id: str) -> Optional[Suggestion]:
        return self.suggestions.get(suggestion_id)

    def is_dismissed(self, suggestion: Suggestion) -> bool:
        return (
            suggestion.id in self._dismissed_ids
            or suggestion.signature in self._dismissed_signatures
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def merge_scan_results(
        self,
        incoming: Iterable[Suggestion],
        buffer: TextBuffer,
    ) -> SuggestionSet:
        """
        Fold one scan's suggestions into the set.

        Each incoming suggestion is anchored against ``buffer`` on the
        occurrence nearest its hint. It is skipped when it cannot be placed,
        was dismissed earlier, or a live suggestion with the same
        (original, replacement, kind) already overlaps that occurrence. Only
        suggestions of the same batch may push one another onto other
        occurrences. The rest are appended in arrival order.
        """
        current = self.suggestions
        added = 0
        for candidate in incoming:
            if self.is_dismissed(candidate):
                logger.debug(f"[{self.document_id}] Skipping dismissed {candidate.signature}")
                continue

            placed = self._place(candidate, buffer, current, candidate.hint, pinned=self.suggestions)
            if placed is None:
                continue

            if placed.id in current:
                placed = placed.with_id(new_suggestion_id())
            current = current.with_added(placed)
            added += 1
            self._notify("added", placed)

        if added:
            logger.info(f"[{self.document_id}] Merged {added} new suggestion(s), {len(current)} total")
        self.suggestions = current
        return current

    def on_buffer_changed(self, buffer: TextBuffer) -> SuggestionSet:
        """
        Re-validate every anchor against the new buffer.

        Anchors whose text survived are restamped to the new version. Broken
        anchors get one re-anchoring attempt near their old position;
        suggestions that still cannot be placed are dropped.
        """
        kept = SuggestionSet()
        dropped = 0
        for s in self.suggestions:
            if is_valid(s, buffer):
                a = s.anchor
                kept = kept.with_added(s.with_anchor(a.shifted(0, buffer.version)))
                continue

            hint = s.anchor.start_index if s.anchor is not None else s.hint
            placed = self._place(s, buffer, kept, hint)
            if placed is None:
                dropped += 1
                self._notify("invalidated", s.invalidated())
                continue
            kept = kept.with_added(placed)

        if dropped:
            logger.debug(f"[{self.document_id}] Dropped {dropped} stale suggestion(s) at v{buffer.version}")
        self.suggestions = kept
        return kept

    def dismiss(self, suggestion_id: str) -> SuggestionSet:
        """
        Remove a suggestion and exclude it from every later merge.

        Raises:
            SuggestionNotFound: no live suggestion has this id
        """
        s = self.suggestions.get(suggestion_id)
        if s is None:
            raise SuggestionNotFound(suggestion_id)

        self._dismissed_ids.add(s.id)
        self._dismissed_signatures.add(s.signature)
        self.suggestions = self.suggestions.without(suggestion_id)
        self._notify("dismissed", s.with_status(SuggestionStatus.DISMISSED))
        return self.suggestions

    def apply(self, suggestion_id: str) -> Tuple[SuggestionSet, Suggestion]:
        """
        Take a suggestion out of the set so the caller can apply it.

        The buffer is not touched here. Taking the same id twice raises.

        Raises:
            SuggestionNotFound: no live suggestion has this id
        """
        s = self.suggestions.get(suggestion_id)
        if s is None:
            raise SuggestionNotFound(suggestion_id)

        self.suggestions = self.suggestions.without(suggestion_id)
        self._notify("taken", s)
        return self.suggestions, s

    def replace_suggestions(self, suggestions: Iterable[Suggestion]) -> SuggestionSet:
        """
        Install a re-anchored list (e.g. after shifting), dropping invalidated entries.
        """
        kept = []
        for s in suggestions:
            if s.status == SuggestionStatus.INVALIDATED or s.anchor is None:
                self._notify("invalidated", s)
                continue
            kept.append(s)
        self.suggestions = SuggestionSet(kept)
        return self.suggestions

    def discard(self, suggestion_id: str) -> SuggestionSet:
        """Drop a suggestion found stale; unlike dismiss, it may come back on a later scan."""
        s = self.suggestions.get(suggestion_id)
        if s is not None:
            self.suggestions = self.suggestions.without(suggestion_id)
            self._notify("invalidated", s.invalidated())
        return self.suggestions

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _place(
        self,
        suggestion: Suggestion,
        buffer: TextBuffer,
        existing: SuggestionSet,
        hint: Optional[int],
        pinned: Optional[SuggestionSet] = None,
    ) -> Optional[Suggestion]:
        """
        Anchor ``suggestion`` on an occurrence no equal suggestion already covers.

        The best occurrence for ``hint`` is tried first. If an equal
        suggestion in ``pinned`` covers it, the candidate is a duplicate and
        is skipped. Otherwise the remaining occurrences are tried
        closest-to-hint first, so a fragment repeated in the text can carry
        one card per occurrence.

        Args:
            suggestion: Suggestion to place
            buffer: Buffer to anchor against
            existing: Suggestions already placed
            hint: Preferred start offset
            pinned: Suggestions whose first-choice collision means "duplicate"
                (None: every collision may be relocated)
        """
        occupied = _occupied(existing, suggestion)

        first = anchor(replace(suggestion, anchor=None, hint=hint), buffer)
        if first.anchor is None:
            return None
        if not _collides(first.anchor.range, occupied):
            return first
        if pinned is not None and _collides(first.anchor.range, _occupied(pinned, suggestion)):
            logger.debug(f"[{self.document_id}] Duplicate of existing suggestion: {suggestion.signature}")
            return None

        candidates = find_all(buffer, suggestion.original)
        if hint is not None:
            candidates.sort(key=lambda r: (abs(r.start - hint), r.start))
        for rng in candidates:
            if not _collides(rng, occupied):
                return first.with_anchor(
                    Anchor(start_index=rng.start, end_index=rng.end, buffer_version=buffer.version)
                )

        logger.debug(f"[{self.document_id}] No free occurrence for {suggestion.signature}")
        return None

    def _notify(self, event: str, suggestion: Suggestion) -> None:
        if self.listener is None:
            return
        try:
            self.listener(event, suggestion)
        except Exception as e:
            logger.warning(f"[{self.document_id}] Suggestion listener failed on {event}: {e}")


def _collides(rng: TextRange, occupied: List[TextRange]) -> bool:
    return any(rng.overlaps(other) for other in occupied)


def _occupied(suggestions: SuggestionSet, like: Suggestion) -> List[TextRange]:
    return [
        s.anchor.range for s in suggestions
        if s.anchor is not None and s.signature == like.signature
    ]
