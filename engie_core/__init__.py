"""
Engie Core - Suggestion-offset reconciliation for an AI writing assistant

Keeps asynchronously produced writing suggestions bound to the right span
of a document that keeps changing underneath them.

Author: Engie contributors | 2025-06-02
"""

from .version import __version__

from .text_buffer import TextBuffer, TextRange
from .offset_index import find_all, resolve_best
from .suggestions import (
    Anchor,
    Severity,
    Suggestion,
    SuggestionKind,
    SuggestionSet,
    SuggestionStatus,
)
from .anchors import anchor, is_valid, require_anchor, text_matches
from .applier import ApplyResult, apply_suggestion, shift_anchors
from .reconciler import SuggestionReconciler
from .scheduler import ScanScheduler, ScanState
from .session import QUICK_FIX_KINDS, ApplyOutcome, EditingSession
from .errors import (
    AnalysisTransportFailure,
    AnchorMismatch,
    AnchorResolutionFailure,
    ConfigurationError,
    EngieError,
    SuggestionNotFound,
)
from .config import EngieConfig, get_config, load_config
from .analysis import (
    AnalysisResult,
    BaseAnalyzer,
    LLMAnalyzer,
    LocalAnalyzer,
    ToneAnalyzer,
    ToneHighlight,
    ToneReport,
    create_analyzer,
    create_tone_analyzer,
)

__all__ = [
    "__version__",
    # Buffer and offsets
    "TextBuffer",
    "TextRange",
    "find_all",
    "resolve_best",
    # Suggestions
    "Anchor",
    "Severity",
    "Suggestion",
    "SuggestionKind",
    "SuggestionSet",
    "SuggestionStatus",
    # Anchoring and application
    "anchor",
    "is_valid",
    "require_anchor",
    "text_matches",
    "ApplyResult",
    "apply_suggestion",
    "shift_anchors",
    # Orchestration
    "SuggestionReconciler",
    "ScanScheduler",
    "ScanState",
    "ApplyOutcome",
    "EditingSession",
    "QUICK_FIX_KINDS",
    # Errors
    "AnalysisTransportFailure",
    "AnchorMismatch",
    "AnchorResolutionFailure",
    "ConfigurationError",
    "EngieError",
    "SuggestionNotFound",
    # Configuration and analysis
    "EngieConfig",
    "get_config",
    "load_config",
    "AnalysisResult",
    "BaseAnalyzer",
    "LLMAnalyzer",
    "LocalAnalyzer",
    "ToneAnalyzer",
    "ToneHighlight",
    "ToneReport",
    "create_analyzer",
    "create_tone_analyzer",
]
