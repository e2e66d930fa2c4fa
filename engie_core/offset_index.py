"""
Text Offset Index - Locate literal fragments in a text buffer

The analysis service answers with fragments ("recieve"), not offsets.
This module maps a fragment back to ``[start, end)`` ranges and picks one
when the fragment occurs more than once.

Matching is exact and case-sensitive. Lookups fail closed: an empty,
whitespace-only or over-long fragment simply has no occurrences.

Author: Engie contributors | 2025-06-16
"""

from typing import List, Optional, Union

from .text_buffer import TextBuffer, TextRange


def _text_of(buffer: Union[TextBuffer, str]) -> str:
    return buffer.text if isinstance(buffer, TextBuffer) else buffer


def _searchable(text: str, fragment: str) -> bool:
    return bool(fragment) and not fragment.isspace() and len(fragment) <= len(text)


def find_all(buffer: Union[TextBuffer, str], fragment: str) -> List[TextRange]:
    """
    Every non-overlapping occurrence of ``fragment``, left to right.

    Args:
        buffer: TextBuffer (or raw string) to search
        fragment: Literal text to find

    Returns:
        List of ranges, empty when nothing matches (never raises)
    """
    text = _text_of(buffer)
    if not _searchable(text, fragment):
        return []

    ranges = []
    pos = text.find(fragment)
    while pos != -1:
        ranges.append(TextRange(pos, pos + len(fragment)))
        pos = text.find(fragment, pos + len(fragment))
    return ranges


def resolve_best(
    buffer: Union[TextBuffer, str],
    fragment: str,
    hint: Optional[int] = None,
) -> Optional[TextRange]:
    """
    Pick one occurrence of ``fragment``.

    Without a hint the first occurrence wins. With a hint (a previous or
    reported offset) the occurrence whose start is closest to the hint wins;
    on equal distance the earlier one is kept.
    """
    ranges = find_all(buffer, fragment)
    if not ranges:
        return None
    if hint is None:
        return ranges[0]
    return min(ranges, key=lambda r: (abs(r.start - hint), r.start))
