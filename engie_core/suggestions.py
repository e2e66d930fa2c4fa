"""
Suggestions - Suggestion data model and the per-document SuggestionSet

A Suggestion is a proposed edit ("recieve" -> "receive") that may be bound
(anchored) to a range in one specific version of the text buffer.

Suggestion and SuggestionSet are immutable; every operation returns a new
value, so a set held by the UI is never changed behind its back.

Author: Engie contributors | 2025-05-12
"""

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .text_buffer import TextRange


# =============================================================================
# Enumerations
# =============================================================================

class SuggestionKind(str, Enum):
    """Category of a suggestion."""
    SPELLING = "spelling"
    GRAMMAR = "grammar"
    STYLE = "style"
    PUNCTUATION = "punctuation"
    CLARITY = "clarity"

    @classmethod
    def parse(cls, value: Any) -> Optional["SuggestionKind"]:
        """Case-insensitive lookup, None for unknown values."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Severity(str, Enum):
    """How urgent a suggestion is."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, value: Any) -> Optional["Severity"]:
        """Case-insensitive lookup accepting error/warning/suggestion synonyms."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        return _SEVERITY_SYNONYMS.get(key)


_SEVERITY_SYNONYMS = {
    "high": Severity.HIGH,
    "error": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "warning": Severity.MEDIUM,
    "low": Severity.LOW,
    "suggestion": Severity.LOW,
}


class SuggestionStatus(str, Enum):
    """Lifecycle: proposed -> anchored -> {applied | dismissed | invalidated}."""
    PROPOSED = "proposed"
    ANCHORED = "anchored"
    APPLIED = "applied"
    DISMISSED = "dismissed"
    INVALIDATED = "invalidated"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class Anchor:
    """Binding of a suggestion to ``[start_index, end_index)`` of one buffer version."""
    start_index: int
    end_index: int
    buffer_version: int

    @property
    def range(self) -> TextRange:
        return TextRange(self.start_index, self.end_index)

    def shifted(self, delta: int, buffer_version: Optional[int] = None) -> "Anchor":
        return Anchor(
            start_index=self.start_index + delta,
            end_index=self.end_index + delta,
            buffer_version=self.buffer_version if buffer_version is None else buffer_version,
        )


def new_suggestion_id() -> str:
    """Client-side id for suggestions the service did not name."""
    return f"sug-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Suggestion:
    """One proposed correction."""
    original: str
    replacement: str
    kind: SuggestionKind
    severity: Severity = Severity.MEDIUM
    explanation: str = ""
    id: str = field(default_factory=new_suggestion_id)
    anchor: Optional[Anchor] = None
    hint: Optional[int] = None  # offset reported by the service, if any
    status: SuggestionStatus = SuggestionStatus.PROPOSED

    @property
    def signature(self) -> Tuple[str, str, SuggestionKind]:
        """Identity used for dedup and dismissal: (original, replacement, kind)."""
        return (self.original, self.replacement, self.kind)

    @property
    def is_anchored(self) -> bool:
        return self.anchor is not None

    def with_anchor(self, anchor: Optional[Anchor]) -> "Suggestion":
        status = SuggestionStatus.ANCHORED if anchor is not None else SuggestionStatus.PROPOSED
        return replace(self, anchor=anchor, status=status)

    def with_status(self, status: SuggestionStatus) -> "Suggestion":
        return replace(self, status=status)

    def with_id(self, suggestion_id: str) -> "Suggestion":
        return replace(self, id=suggestion_id)

    def invalidated(self) -> "Suggestion":
        return replace(self, anchor=None, status=SuggestionStatus.INVALIDATED)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "original": self.original,
            "replacement": self.replacement,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "explanation": self.explanation,
            "status": self.status.value,
            "anchor": None,
        }
        if self.anchor is not None:
            data["anchor"] = {
                "startIndex": self.anchor.start_index,
                "endIndex": self.anchor.end_index,
                "bufferVersion": self.anchor.buffer_version,
            }
        return data


# =============================================================================
# Suggestion Set
# =============================================================================

class SuggestionSet:
    """
    Ordered mapping id -> Suggestion for one document.

    Insertion order is display order and survives every operation.
    """

    def __init__(self, suggestions: Iterable[Suggestion] = ()):
        self._items: Dict[str, Suggestion] = {}
        for s in suggestions:
            self._items[s.id] = s

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Suggestion]:
        return iter(list(self._items.values()))

    def __contains__(self, suggestion_id: object) -> bool:
        return suggestion_id in self._items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SuggestionSet):
            return NotImplemented
        return list(self._items.items()) == list(other._items.items())

    def __repr__(self) -> str:
        return f"SuggestionSet({list(self._items)})"

    def get(self, suggestion_id: str) -> Optional[Suggestion]:
        return self._items.get(suggestion_id)

    def ids(self) -> List[str]:
        return list(self._items)

    def values(self) -> List[Suggestion]:
        return list(self._items.values())

    def with_added(self, suggestion: Suggestion) -> "SuggestionSet":
        """New set with ``suggestion`` appended (or updated in place if the id exists)."""
        items = dict(self._items)
        items[suggestion.id] = suggestion
        return SuggestionSet(items.values())

    def without(self, suggestion_id: str) -> "SuggestionSet":
        return SuggestionSet(s for s in self._items.values() if s.id != suggestion_id)

    def to_list(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self._items.values()]
