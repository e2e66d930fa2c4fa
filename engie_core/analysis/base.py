"""
Analysis Base - Contract of the text-analysis collaborator

An analyzer takes the document text and returns unanchored suggestions.
Anchoring them against the live buffer is the reconciler's job, never the
analyzer's.

Author: Engie contributors | 2025-05-12
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List

from ..suggestions import Suggestion


class AnalysisMode(str, Enum):
    """What the analyzer looks for."""
    SPELLING = "spelling"  # fast spell-check pass
    FULL = "full"          # spelling, grammar, style, punctuation, clarity


DEFAULT_NEXT_SCAN_IN = 3.0


@dataclass
class AnalysisResult:
    """Suggestions produced by one scan."""
    suggestions: List[Suggestion] = field(default_factory=list)
    scan_time_ms: float = 0.0
    next_scan_in: float = DEFAULT_NEXT_SCAN_IN
    source: str = ""
    cached: bool = False

    def as_cached(self) -> "AnalysisResult":
        return replace(self, suggestions=list(self.suggestions), cached=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "scanTime": self.scan_time_ms,
            "nextScanIn": self.next_scan_in,
            "source": self.source,
            "cached": self.cached,
        }


class BaseAnalyzer(ABC):
    """
    Abstract base class for analysis collaborators.

    All analyzers must implement:
        - name: Short identifier used in logs and cache keys
        - analyze(): Return suggestions for a text (blocking)
    """

    mode: AnalysisMode = AnalysisMode.FULL

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the analyzer name."""
        pass

    @abstractmethod
    def analyze(self, text: str) -> AnalysisResult:
        """
        Analyze text.

        Raises:
            AnalysisTransportFailure: the underlying service failed
        """
        pass

    async def analyze_async(self, text: str) -> AnalysisResult:
        """Run :meth:`analyze` off the event loop."""
        return await asyncio.to_thread(self.analyze, text)

    def is_available(self) -> bool:
        """Check whether the analyzer can currently serve requests."""
        return True
