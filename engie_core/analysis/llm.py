"""
LLM Analyzer - Suggestions from a chat-completion model
=======================================================

Two chat backends are provided:

1. OllamaChat  - LOCAL: the document never leaves your machine
2. OpenAIChat  - CLOUD: any OpenAI-compatible endpoint, text sent to the provider

PRIVACY WARNING:
    With a cloud backend the full document text is sent to an external API
    on every scan. Use OllamaChat (or the local analyzer) for private work.

Both backends speak plain HTTP through ``requests``; the analyzer turns the
model's JSON answer into validated suggestions.

Author: Engie contributors | 2025-05-14
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

import requests

from ..errors import AnalysisTransportFailure, ConfigurationError
from ..suggestions import Severity, SuggestionKind
from ..version import user_agent
from .base import AnalysisMode, AnalysisResult, BaseAnalyzer
from .prompts import FULL_PROMPT, SPELLING_PROMPT
from .schema import decode_model_output, parse_analysis_payload

logger = logging.getLogger(__name__)


# =============================================================================
# Data Locality
# =============================================================================

class DataLocality(str, Enum):
    """Indicates whether document text leaves the machine."""
    LOCAL = "local"
    CLOUD = "cloud"


# =============================================================================
# Chat Backends
# =============================================================================

class ChatBackend(ABC):
    """
    Minimal chat-completion transport.

    All backends must implement:
        - complete(): Send system prompt + user text, return the raw content
        - locality: Whether data leaves the machine
    """

    def __init__(self, model: str, base_url: str, timeout: float = 30.0,
                 temperature: float = 0.1, max_tokens: int = 1000):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    @abstractmethod
    def locality(self) -> DataLocality:
        pass

    @abstractmethod
    def complete(self, system_prompt: str, text: str) -> str:
        """
        Run one completion.

        Raises:
            AnalysisTransportFailure: transport error, timeout or non-2xx
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": user_agent(), "Content-Type": "application/json"}

    def _post(self, url: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """POST JSON; returns the decoded body, or None if it is not JSON."""
        try:
            r = requests.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise AnalysisTransportFailure(f"Analysis request timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise AnalysisTransportFailure(f"Analysis request failed: {e}") from e

        if not 200 <= r.status_code < 300:
            raise AnalysisTransportFailure(
                f"Analysis service answered HTTP {r.status_code}", status_code=r.status_code
            )

        try:
            return r.json()
        except ValueError:
            logger.warning(f"Analysis service at {url} returned a non-JSON body")
            return None


class OllamaChat(ChatBackend):
    """
    LOCAL: Ollama backend - 100% local execution.

    Requires Ollama running locally:
        ollama serve
    """

    def __init__(self, model: str = "qwen2.5:7b", base_url: str = "http://localhost:11434", **kwargs):
        super().__init__(model=model, base_url=base_url, **kwargs)
        logger.info(f"Initialized OllamaChat (LOCAL) with model: {model}")

    @property
    def locality(self) -> DataLocality:
        return DataLocality.LOCAL

    def complete(self, system_prompt: str, text: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
            "stream": False,
            "format": "json",
            "options": {"temperature": self.temperature, "num_predict": self.max_tokens},
        }
        data = self._post(f"{self.base_url}/api/chat", payload)
        try:
            return data["message"]["content"]
        except (KeyError, TypeError):
            logger.warning("Ollama response has no message content")
            return ""

    def is_available(self) -> bool:
        """Check if Ollama is running and the model is pulled."""
        try:
            r = requests.get(f"{self.base_url}/api/tags", timeout=5)
            if r.status_code == 200:
                models = [m.get("name", "") for m in r.json().get("models", [])]
                return any(self.model in m for m in models)
        except (requests.exceptions.RequestException, ValueError):
            pass
        return False


class OpenAIChat(ChatBackend):
    """
    CLOUD: OpenAI-compatible chat completions endpoint.

    Requires:
        export OPENAI_API_KEY="sk-..."
    """

    def __init__(self, model: str = "gpt-4o-mini", base_url: str = "https://api.openai.com/v1",
                 api_key: Optional[str] = None, **kwargs):
        super().__init__(model=model, base_url=base_url, **kwargs)
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self._api_key:
            raise ConfigurationError(
                "API key required for the openai backend. Set OPENAI_API_KEY "
                "or analysis.api_key in engie.yaml."
            )
        logger.warning(
            f"Initialized OpenAIChat (CLOUD) with model: {model} - "
            f"document text will be sent to {self.base_url}"
        )

    @property
    def locality(self) -> DataLocality:
        return DataLocality.CLOUD

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def complete(self, system_prompt: str, text: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        data = self._post(f"{self.base_url}/chat/completions", payload)
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            logger.warning("Chat completion response has no message content")
            return ""

    def is_available(self) -> bool:
        try:
            r = requests.get(f"{self.base_url}/models", headers=self._headers(), timeout=5)
            return r.status_code == 200
        except requests.exceptions.RequestException:
            return False


# =============================================================================
# Analyzer
# =============================================================================

class LLMAnalyzer(BaseAnalyzer):
    """
    Analyzer backed by a chat model.

    Example:
        analyzer = LLMAnalyzer(OllamaChat("qwen2.5:7b"), mode=AnalysisMode.SPELLING)
        result = analyzer.analyze("I recieve emails.")
        print([s.replacement for s in result.suggestions])
    """

    def __init__(
        self,
        backend: ChatBackend,
        mode: AnalysisMode = AnalysisMode.FULL,
        min_text_length: int = 3,
        next_scan_in: float = 3.0,
    ):
        self.backend = backend
        self.mode = AnalysisMode(mode)
        self.min_text_length = min_text_length
        self.next_scan_in = next_scan_in

    @property
    def name(self) -> str:
        return f"llm:{self.backend.model}"

    @property
    def system_prompt(self) -> str:
        return SPELLING_PROMPT if self.mode == AnalysisMode.SPELLING else FULL_PROMPT

    def analyze(self, text: str) -> AnalysisResult:
        started = time.perf_counter()
        if len(text.strip()) < self.min_text_length:
            logger.debug("Text too short, skipping analysis")
            return self._result([], started)

        content = self.backend.complete(self.system_prompt, text)
        data = decode_model_output(content)
        if data is None:
            logger.warning(f"{self.name} returned unparseable output ({len(content)} chars)")
            return self._result([], started)

        if self.mode == AnalysisMode.SPELLING:
            suggestions = parse_analysis_payload(
                data, default_kind=SuggestionKind.SPELLING, default_severity=Severity.HIGH
            )
        else:
            suggestions = parse_analysis_payload(data)

        result = self._result(suggestions, started)
        logger.info(f"{self.name} found {len(suggestions)} suggestion(s) in {result.scan_time_ms:.0f}ms")
        return result

    def is_available(self) -> bool:
        return self.backend.is_available()

    def _result(self, suggestions, started: float) -> AnalysisResult:
        return AnalysisResult(
            suggestions=suggestions,
            scan_time_ms=(time.perf_counter() - started) * 1000,
            next_scan_in=self.next_scan_in,
            source=self.name,
        )


def create_chat_backend(
    backend: str = "ollama",
    model: Optional[str] = None,
    **kwargs
) -> ChatBackend:
    """
    Factory function to create a chat backend.

    Args:
        backend: "ollama" (local) or "openai" (cloud, any compatible endpoint)
        model: Model name (optional, uses defaults)
        **kwargs: base_url, api_key, timeout, temperature, max_tokens

    Raises:
        ConfigurationError: unknown backend or missing API key
    """
    backend = backend.lower()
    kwargs = {k: v for k, v in kwargs.items() if v is not None}

    if backend == "ollama":
        kwargs.pop("api_key", None)
        return OllamaChat(model=model or "qwen2.5:7b", **kwargs)

    elif backend in ("openai", "chatgpt", "gpt"):
        return OpenAIChat(model=model or "gpt-4o-mini", **kwargs)

    raise ConfigurationError(f"Unknown chat backend: {backend}. Supported: ollama, openai")
