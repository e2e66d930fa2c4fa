"""
Suggestion Anchors - Bind suggestions to ranges and track their validity

An anchor records where a suggestion's fragment sat in one buffer version.
It stays valid across later edits as long as the text under it is unchanged,
which covers every edit made strictly outside its range.

Author: Engie contributors | 2025-05-26
"""

import logging

from .errors import AnchorResolutionFailure
from .offset_index import resolve_best
from .suggestions import Anchor, Suggestion
from .text_buffer import TextBuffer

logger = logging.getLogger(__name__)


def anchor(suggestion: Suggestion, buffer: TextBuffer) -> Suggestion:
    """
    Resolve ``suggestion.original`` in ``buffer`` and attach the anchor.

    The previous anchor's start (or the service-reported offset when there
    is no anchor yet) is the hint used to choose among duplicates.

    Returns:
        The suggestion with a fresh anchor, or with ``anchor=None`` when the
        fragment cannot be placed in the current text. Callers drop those.
    """
    if suggestion.anchor is not None:
        hint = suggestion.anchor.start_index
    else:
        hint = suggestion.hint

    found = resolve_best(buffer, suggestion.original, hint)
    if found is None:
        logger.debug(f"Could not anchor {suggestion.id} ({suggestion.original!r}) in v{buffer.version}")
        return suggestion.with_anchor(None)

    return suggestion.with_anchor(
        Anchor(start_index=found.start, end_index=found.end, buffer_version=buffer.version)
    )


def require_anchor(suggestion: Suggestion, buffer: TextBuffer) -> Suggestion:
    """Like :func:`anchor` but raises AnchorResolutionFailure on failure."""
    placed = anchor(suggestion, buffer)
    if placed.anchor is None:
        raise AnchorResolutionFailure(suggestion.id, suggestion.original)
    return placed


def text_matches(suggestion: Suggestion, buffer: TextBuffer) -> bool:
    """True if the text under the anchor is exactly the suggestion's fragment."""
    a = suggestion.anchor
    if a is None or a.end_index > len(buffer.text):
        return False
    return buffer.text[a.start_index:a.end_index] == suggestion.original


def is_valid(suggestion: Suggestion, buffer: TextBuffer) -> bool:
    """
    Whether the suggestion's anchor can still be trusted against ``buffer``.

    Valid when the anchor was taken on this very version, or when re-slicing
    the buffer at the anchored range still yields the original fragment.
    """
    if suggestion.anchor is None:
        return False
    if suggestion.anchor.buffer_version == buffer.version:
        return True
    return text_matches(suggestion, buffer)
