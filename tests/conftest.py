"""
Pytest Configuration and Fixtures

Author: Engie contributors | 2025-05-13
"""

import sys
from pathlib import Path
from typing import List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from engie_core.analysis.base import AnalysisMode, AnalysisResult, BaseAnalyzer
from engie_core.config import EngieConfig, ScanConfig
from engie_core.errors import AnalysisTransportFailure
from engie_core.suggestions import Severity, Suggestion, SuggestionKind
from engie_core.text_buffer import TextBuffer


def make_suggestion(
    original: str,
    replacement: str,
    kind: SuggestionKind = SuggestionKind.SPELLING,
    id: Optional[str] = None,
    hint: Optional[int] = None,
    severity: Severity = Severity.HIGH,
) -> Suggestion:
    """Build an unanchored suggestion the way a scan would deliver it."""
    kwargs = {}
    if id is not None:
        kwargs["id"] = id
    return Suggestion(
        original=original,
        replacement=replacement,
        kind=kind,
        severity=severity,
        hint=hint,
        **kwargs,
    )


class StubAnalyzer(BaseAnalyzer):
    """Analyzer returning canned suggestions and recording every call."""

    def __init__(self, suggestions: Optional[List[Suggestion]] = None, error: Optional[Exception] = None):
        self.suggestions = list(suggestions or [])
        self.error = error
        self.calls: List[str] = []
        self.mode = AnalysisMode.FULL

    @property
    def name(self) -> str:
        return "stub"

    def analyze(self, text: str) -> AnalysisResult:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return AnalysisResult(suggestions=list(self.suggestions), source=self.name)

    async def analyze_async(self, text: str) -> AnalysisResult:
        return self.analyze(text)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Temporary directory for tests."""
    return tmp_path


@pytest.fixture
def recieve_buffer() -> TextBuffer:
    """Buffer with one misspelling."""
    return TextBuffer("I recieve emails.")


@pytest.fixture
def recieve_suggestion() -> Suggestion:
    return make_suggestion("recieve", "receive", id="s1")


@pytest.fixture
def stub_analyzer() -> StubAnalyzer:
    return StubAnalyzer()


@pytest.fixture
def failing_analyzer() -> StubAnalyzer:
    return StubAnalyzer(error=AnalysisTransportFailure("HTTP 503", status_code=503))


@pytest.fixture
def fast_config() -> EngieConfig:
    """Config with a short scan interval for async tests."""
    return EngieConfig(scan=ScanConfig(interval=0.05, auto_scan=True, scan_timeout=2.0))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of config tests."""
    for name in (
        "ENGIE_ANALYSIS_BACKEND",
        "ENGIE_ANALYSIS_MODEL",
        "ENGIE_ANALYSIS_BASE_URL",
        "ENGIE_ANALYSIS_MODE",
        "ENGIE_SCAN_INTERVAL",
        "ENGIE_AUTO_SCAN",
        "ENGIE_LOG_LEVEL",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
