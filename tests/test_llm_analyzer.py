"""
Tests for the LLM analyzer and its chat backends

The HTTP layer is mocked; no service is contacted.

Author: Engie contributors | 2025-06-03
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from engie_core.analysis import create_analyzer
from engie_core.analysis.base import AnalysisMode
from engie_core.analysis.llm import (
    DataLocality,
    LLMAnalyzer,
    OllamaChat,
    OpenAIChat,
    create_chat_backend,
)
from engie_core.caching import CachedAnalyzer
from engie_core.analysis.local import LocalAnalyzer
from engie_core.config import AnalysisConfig
from engie_core.errors import AnalysisTransportFailure, ConfigurationError
from engie_core.suggestions import Severity, SuggestionKind


def http_response(status_code=200, body=None):
    """Build a fake requests.Response."""
    response = Mock()
    response.status_code = status_code
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


def ollama_body(payload) -> dict:
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return {"message": {"role": "assistant", "content": content}}


def openai_body(payload) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": json.dumps(payload)}}]}


SUGGESTIONS = {"suggestions": [
    {"original": "recieve", "replacement": "receive", "kind": "spelling", "severity": "high",
     "explanation": "Misspelled."},
    {"original": "emails", "replacement": "e-mails", "kind": "style"},
]}


class TestOllamaChat:
    """Tests for the Ollama backend."""

    def test_locality(self):
        assert OllamaChat().locality == DataLocality.LOCAL

    @patch("engie_core.analysis.llm.requests.post")
    def test_request_shape(self, mock_post):
        """Test the chat request sent to Ollama."""
        mock_post.return_value = http_response(body=ollama_body(SUGGESTIONS))
        chat = OllamaChat(model="llama3", base_url="http://ollama:11434/", timeout=5)

        content = chat.complete("system", "I recieve emails.")

        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        assert url == "http://ollama:11434/api/chat"
        assert payload["format"] == "json"
        assert payload["stream"] is False
        assert payload["messages"][1] == {"role": "user", "content": "I recieve emails."}
        assert mock_post.call_args.kwargs["timeout"] == 5
        assert json.loads(content) == SUGGESTIONS

    @patch("engie_core.analysis.llm.requests.get")
    def test_is_available(self, mock_get):
        """Test availability requires the model to be pulled."""
        mock_get.return_value = http_response(body={"models": [{"name": "qwen2.5:7b"}]})
        assert OllamaChat().is_available()
        assert not OllamaChat(model="mistral").is_available()

    @patch("engie_core.analysis.llm.requests.get")
    def test_is_available_never_raises(self, mock_get):
        """Test a connection error reads as unavailable."""
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        assert not OllamaChat().is_available()


class TestOpenAIChat:
    """Tests for the OpenAI-compatible backend."""

    def test_missing_key_raises(self):
        """Test construction fails without an API key."""
        with pytest.raises(ConfigurationError):
            OpenAIChat()

    def test_key_from_environment(self, monkeypatch):
        """Test OPENAI_API_KEY is picked up."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test-environment-key")
        chat = OpenAIChat()
        assert chat.locality == DataLocality.CLOUD
        assert chat._headers()["Authorization"] == "Bearer sk-test-environment-key"

    @patch("engie_core.analysis.llm.requests.post")
    def test_request_shape(self, mock_post):
        """Test the chat completions request."""
        mock_post.return_value = http_response(body=openai_body(SUGGESTIONS))
        chat = OpenAIChat(api_key="sk-test", base_url="https://llm.example/v1")

        content = chat.complete("system", "text")

        assert mock_post.call_args.args[0] == "https://llm.example/v1/chat/completions"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["response_format"] == {"type": "json_object"}
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert json.loads(content) == SUGGESTIONS


class TestTransportErrors:
    """Tests for transport failure mapping."""

    @patch("engie_core.analysis.llm.requests.post")
    def test_non_2xx_raises(self, mock_post):
        """Test HTTP errors become AnalysisTransportFailure with the status."""
        mock_post.return_value = http_response(status_code=503)
        with pytest.raises(AnalysisTransportFailure) as exc:
            OllamaChat().complete("system", "text")
        assert exc.value.status_code == 503

    @patch("engie_core.analysis.llm.requests.post")
    def test_timeout_raises(self, mock_post):
        """Test a request timeout becomes AnalysisTransportFailure."""
        mock_post.side_effect = requests.exceptions.Timeout()
        with pytest.raises(AnalysisTransportFailure):
            OllamaChat().complete("system", "text")

    @patch("engie_core.analysis.llm.requests.post")
    def test_connection_error_raises(self, mock_post):
        """Test a connection error becomes AnalysisTransportFailure."""
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(AnalysisTransportFailure) as exc:
            OllamaChat().complete("system", "text")
        assert exc.value.status_code is None


class TestLLMAnalyzer:
    """Tests for LLMAnalyzer."""

    @patch("engie_core.analysis.llm.requests.post")
    def test_full_mode(self, mock_post):
        """Test suggestions are parsed and left unanchored."""
        mock_post.return_value = http_response(body=ollama_body(SUGGESTIONS))
        analyzer = LLMAnalyzer(OllamaChat(model="llama3"))

        result = analyzer.analyze("I recieve emails.")

        assert [s.original for s in result.suggestions] == ["recieve", "emails"]
        assert result.suggestions[1].kind == SuggestionKind.STYLE
        assert all(s.anchor is None for s in result.suggestions)
        assert result.source == "llm:llama3"
        assert result.next_scan_in == 3.0
        assert not result.cached

    @patch("engie_core.analysis.llm.requests.post")
    def test_spelling_mode_forces_kind(self, mock_post):
        """Test spell-check results are all spelling/high."""
        payload = {"suggestions": [{"original": "recieve", "replacement": "receive"}]}
        mock_post.return_value = http_response(body=ollama_body(payload))
        analyzer = LLMAnalyzer(OllamaChat(), mode=AnalysisMode.SPELLING)

        (s,) = analyzer.analyze("I recieve emails.").suggestions

        assert s.kind == SuggestionKind.SPELLING
        assert s.severity == Severity.HIGH
        system = mock_post.call_args.kwargs["json"]["messages"][0]["content"]
        assert "spelling checker" in system

    @patch("engie_core.analysis.llm.requests.post")
    def test_short_text_skips_service(self, mock_post):
        """Test texts shorter than min_text_length are not sent."""
        result = LLMAnalyzer(OllamaChat()).analyze("  a ")
        assert result.suggestions == []
        mock_post.assert_not_called()

    @patch("engie_core.analysis.llm.requests.post")
    def test_malformed_output_is_empty(self, mock_post):
        """Test non-JSON model output yields no suggestions."""
        mock_post.return_value = http_response(body=ollama_body("Sorry, I cannot help with that."))
        assert LLMAnalyzer(OllamaChat()).analyze("I recieve emails.").suggestions == []

    @patch("engie_core.analysis.llm.requests.post")
    def test_non_json_body_is_empty(self, mock_post):
        """Test an HTTP body that is not JSON yields no suggestions."""
        mock_post.return_value = http_response(body=ValueError("not json"))
        assert LLMAnalyzer(OllamaChat()).analyze("I recieve emails.").suggestions == []

    @patch("engie_core.analysis.llm.requests.post")
    def test_transport_failure_propagates(self, mock_post):
        """Test the analyzer lets AnalysisTransportFailure through."""
        mock_post.return_value = http_response(status_code=500)
        with pytest.raises(AnalysisTransportFailure):
            LLMAnalyzer(OllamaChat()).analyze("I recieve emails.")

    @pytest.mark.asyncio
    @patch("engie_core.analysis.llm.requests.post")
    async def test_analyze_async(self, mock_post):
        """Test the async wrapper returns the same result."""
        mock_post.return_value = http_response(body=ollama_body(SUGGESTIONS))
        result = await LLMAnalyzer(OllamaChat()).analyze_async("I recieve emails.")
        assert len(result.suggestions) == 2


class TestFactories:
    """Tests for create_chat_backend and create_analyzer."""

    def test_create_ollama(self):
        chat = create_chat_backend("ollama", model="llama3", base_url=None, api_key="ignored")
        assert isinstance(chat, OllamaChat)
        assert chat.model == "llama3"
        assert chat.base_url == "http://localhost:11434"

    def test_create_openai(self):
        chat = create_chat_backend("openai", api_key="sk-test")
        assert isinstance(chat, OpenAIChat)
        assert chat.model == "gpt-4o-mini"

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_chat_backend("bard")

    def test_create_analyzer_local_cached(self):
        """Test the default config builds a cached local analyzer."""
        analyzer = create_analyzer(AnalysisConfig())
        assert isinstance(analyzer, CachedAnalyzer)
        assert isinstance(analyzer.inner, LocalAnalyzer)

    def test_create_analyzer_uncached(self):
        analyzer = create_analyzer(AnalysisConfig(backend="ollama", cache_enabled=False, mode="spelling"))
        assert isinstance(analyzer, LLMAnalyzer)
        assert analyzer.mode == AnalysisMode.SPELLING

    def test_create_analyzer_bad_mode(self):
        with pytest.raises(ConfigurationError):
            create_analyzer(AnalysisConfig(mode="poetry"))

    def test_create_analyzer_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_analyzer(AnalysisConfig(backend="bard"))
