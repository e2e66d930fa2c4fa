"""
Text Buffer - Immutable document snapshots

The editing surface owns the document. The suggestion subsystem only ever
sees TextBuffer snapshots and asks for a mutation by handing a new snapshot
back to the owner.

Author: Engie contributors | 2025-05-12
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TextRange:
    """Half-open character range ``[start, end)``."""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid range [{self.start}, {self.end})")

    def __len__(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TextRange") -> bool:
        return self.start < other.end and other.start < self.end

    def shifted(self, delta: int) -> "TextRange":
        return TextRange(self.start + delta, self.end + delta)


@dataclass(frozen=True)
class TextBuffer:
    """
    Snapshot of document text plus a monotonically increasing version.

    Example:
        buf = TextBuffer("I recieve emails.")
        nxt = buf.replace(TextRange(2, 9), "receive")
        assert nxt.version == buf.version + 1
    """
    text: str
    version: int = 0

    def __len__(self) -> int:
        return len(self.text)

    def slice(self, rng: TextRange) -> str:
        return self.text[rng.start:rng.end]

    def contains_range(self, rng: TextRange) -> bool:
        return rng.end <= len(self.text)

    def with_text(self, text: str) -> "TextBuffer":
        """Next version of this buffer holding ``text``."""
        return TextBuffer(text=text, version=self.version + 1)

    def replace(self, rng: TextRange, replacement: str) -> "TextBuffer":
        """Next version with ``rng`` replaced by ``replacement``."""
        if not self.contains_range(rng):
            raise ValueError(f"Range [{rng.start}, {rng.end}) outside buffer of length {len(self.text)}")
        return self.with_text(self.text[:rng.start] + replacement + self.text[rng.end:])
