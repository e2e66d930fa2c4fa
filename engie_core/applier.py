"""
Suggestion Applier - Splice a suggestion into the buffer and re-anchor the rest

Application is atomic: either a new buffer and a delta come back, or
AnchorMismatch is raised and nothing changed. The buffer itself is never
mutated; the caller hands the new snapshot to the editing surface.

Author: Engie contributors | 2025-05-28
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .errors import AnchorMismatch
from .suggestions import Suggestion, SuggestionStatus
from .text_buffer import TextBuffer, TextRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of a successful application."""
    new_buffer: TextBuffer
    delta: int
    applied_range: TextRange
    suggestion: Suggestion

    @property
    def replacement_range(self) -> TextRange:
        """Where the replacement text now sits in ``new_buffer``."""
        start = self.applied_range.start
        return TextRange(start, start + len(self.suggestion.replacement))


def apply_suggestion(buffer: TextBuffer, suggestion: Suggestion) -> ApplyResult:
    """
    Replace the anchored fragment with the suggestion's replacement.

    The text under the anchor is checked one last time right here, whatever
    the caller believes about the anchor: offsets held by the UI may be old.

    Raises:
        AnchorMismatch: the suggestion is unanchored, or the text at its
            range is no longer ``suggestion.original``
    """
    a = suggestion.anchor
    if a is None:
        raise AnchorMismatch(suggestion.id, suggestion.original, None)

    rng = a.range
    found = buffer.slice(rng) if buffer.contains_range(rng) else None
    if found != suggestion.original:
        raise AnchorMismatch(suggestion.id, suggestion.original, found)

    new_buffer = buffer.replace(rng, suggestion.replacement)
    delta = len(suggestion.replacement) - len(suggestion.original)
    logger.debug(
        f"Applied {suggestion.id} at [{rng.start}, {rng.end}) "
        f"v{buffer.version} -> v{new_buffer.version}, delta={delta:+d}"
    )
    return ApplyResult(
        new_buffer=new_buffer,
        delta=delta,
        applied_range=rng,
        suggestion=suggestion.with_status(SuggestionStatus.APPLIED),
    )


def shift_anchors(
    suggestions: Iterable[Suggestion],
    applied_range: TextRange,
    delta: int,
    buffer_version: Optional[int] = None,
) -> List[Suggestion]:
    """
    Re-anchor the other suggestions after an application.

    - anchors starting at or after ``applied_range.end`` move by ``delta``
    - anchors ending at or before ``applied_range.start`` stay put
    - anchors overlapping the applied range are invalidated, never shifted

    Args:
        suggestions: The remaining suggestions, in display order
        applied_range: Range that was replaced, in pre-application offsets
        delta: len(replacement) - len(original)
        buffer_version: When given, surviving anchors are restamped to it

    Returns:
        Suggestions in the same order; invalidated ones carry status
        INVALIDATED and no anchor.
    """
    result = []
    for s in suggestions:
        a = s.anchor
        if a is None:
            result.append(s)
        elif a.start_index >= applied_range.end:
            result.append(s.with_anchor(a.shifted(delta, buffer_version)))
        elif a.end_index <= applied_range.start:
            result.append(s.with_anchor(a.shifted(0, buffer_version)))
        else:
            logger.debug(f"Invalidating {s.id}: overlaps applied range [{applied_range.start}, {applied_range.end})")
            result.append(s.invalidated())
    return result
