"""
Engie Analysis - Text-analysis collaborators

Analyzers turn document text into unanchored suggestions:

- LocalAnalyzer: offline rules, no network
- LLMAnalyzer:   chat model over HTTP (Ollama or OpenAI-compatible)
- ToneAnalyzer:  overall tone and the sentences that set it (chat model)

Use create_analyzer() or create_tone_analyzer() to build one from
configuration.

Author: Engie contributors | 2025-05-12
"""

import logging

from ..errors import ConfigurationError
from .base import AnalysisMode, AnalysisResult, BaseAnalyzer
from .llm import ChatBackend, DataLocality, LLMAnalyzer, OllamaChat, OpenAIChat, create_chat_backend
from .local import LocalAnalyzer
from .schema import SuggestionPayload, decode_model_output, parse_analysis_payload
from .tone import ToneAnalyzer, ToneHighlight, ToneReport, anchor_highlights, parse_tone_payload

logger = logging.getLogger(__name__)


def create_analyzer(config=None) -> BaseAnalyzer:
    """
    Build the analyzer described by an AnalysisConfig.

    Args:
        config: AnalysisConfig (defaults to AnalysisConfig())

    Returns:
        Analyzer, wrapped in CachedAnalyzer when caching is enabled

    Raises:
        ConfigurationError: unknown backend or mode, missing API key
    """
    from ..caching import AnalysisCache, CachedAnalyzer
    from ..config import AnalysisConfig

    if config is None:
        config = AnalysisConfig()

    try:
        mode = AnalysisMode(config.mode)
    except ValueError:
        raise ConfigurationError(f"Unknown analysis mode: {config.mode}")

    backend = config.backend.lower()
    if backend == "local":
        analyzer: BaseAnalyzer = LocalAnalyzer(mode=mode, min_text_length=config.min_text_length)
    else:
        chat = create_chat_backend(
            backend,
            model=config.model,
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=config.timeout,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
        analyzer = LLMAnalyzer(chat, mode=mode, min_text_length=config.min_text_length)

    if config.cache_enabled:
        analyzer = CachedAnalyzer(
            analyzer, AnalysisCache(max_size=config.cache_size, default_ttl=config.cache_ttl)
        )

    logger.info(f"Using analyzer {analyzer.name} ({mode.value} mode)")
    return analyzer


def create_tone_analyzer(config=None) -> ToneAnalyzer:
    """
    Build a tone analyzer on the chat backend of an AnalysisConfig.

    Raises:
        ConfigurationError: the backend is "local" (no offline tone model),
            unknown, or missing its API key
    """
    from ..config import AnalysisConfig

    if config is None:
        config = AnalysisConfig()

    backend = config.backend.lower()
    if backend == "local":
        raise ConfigurationError("Tone analysis needs a chat backend (ollama or openai)")

    chat = create_chat_backend(
        backend,
        model=config.model,
        base_url=config.base_url,
        api_key=config.api_key,
        timeout=config.timeout,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )
    return ToneAnalyzer(chat, min_text_length=config.min_text_length)


__all__ = [
    "AnalysisMode",
    "AnalysisResult",
    "BaseAnalyzer",
    "ChatBackend",
    "DataLocality",
    "LLMAnalyzer",
    "LocalAnalyzer",
    "OllamaChat",
    "OpenAIChat",
    "SuggestionPayload",
    "ToneAnalyzer",
    "ToneHighlight",
    "ToneReport",
    "anchor_highlights",
    "create_analyzer",
    "create_chat_backend",
    "create_tone_analyzer",
    "decode_model_output",
    "parse_analysis_payload",
    "parse_tone_payload",
]
