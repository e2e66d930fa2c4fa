"""
Engie Errors - Exception taxonomy for the suggestion engine

All recoverable failures of the suggestion subsystem derive from EngieError.
None of them is meant to reach the editing surface: the session and the
scan scheduler catch, log and degrade to "fewer suggestions".

Author: Engie contributors | 2025-06-09
"""

from typing import Optional


class EngieError(Exception):
    """Base class for all Engie errors."""


class ConfigurationError(EngieError):
    """Invalid configuration (unknown backend, missing API key, ...)."""


class AnchorResolutionFailure(EngieError):
    """A suggestion's fragment could not be located in the current buffer."""

    def __init__(self, suggestion_id: str, fragment: str):
        self.suggestion_id = suggestion_id
        self.fragment = fragment
        super().__init__(
            f"Could not place suggestion {suggestion_id}: "
            f"fragment {fragment!r} not found in current text"
        )


class AnchorMismatch(EngieError):
    """
    The text under a suggestion's anchor no longer equals its fragment.

    Raised before any mutation happens; the buffer is left untouched.
    """

    def __init__(self, suggestion_id: str, expected: str, found: Optional[str]):
        self.suggestion_id = suggestion_id
        self.expected = expected
        self.found = found
        super().__init__(
            f"Suggestion {suggestion_id} is stale: expected {expected!r}, "
            f"found {found!r}"
        )


class AnalysisTransportFailure(EngieError):
    """The analysis collaborator errored, timed out or answered non-2xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SuggestionNotFound(EngieError, KeyError):
    """No suggestion with this id in the live set (already applied or dismissed)."""

    def __init__(self, suggestion_id: str):
        self.suggestion_id = suggestion_id
        super().__init__(suggestion_id)

    def __str__(self) -> str:
        return f"Unknown suggestion: {self.suggestion_id}"
