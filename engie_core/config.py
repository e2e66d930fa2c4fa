"""
Engie Unified Configuration System
==================================

Loads and manages configuration from engie.yaml with environment variable overrides.

Author: Engie contributors | 2025-06-04
"""

import os
import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


VALID_BACKENDS = ("local", "ollama", "openai")
VALID_MODES = ("spelling", "full")
CONFIG_FILENAME = "engie.yaml"


# =============================================================================
# Configuration Data Classes
# =============================================================================

@dataclass
class AnalysisConfig:
    """Analysis collaborator configuration."""
    backend: str = "local"
    model: Optional[str] = None  # backend default when unset
    base_url: Optional[str] = None  # backend default when unset
    api_key: Optional[str] = None  # For cloud backends
    mode: str = "full"
    temperature: float = 0.1
    max_tokens: int = 1000
    timeout: float = 30.0
    min_text_length: int = 3
    cache_enabled: bool = True
    cache_ttl: float = 300.0
    cache_size: int = 256


@dataclass
class ScanConfig:
    """Scan scheduling configuration."""
    interval: float = 3.0  # quiet period before a scan, seconds
    auto_scan: bool = True
    scan_timeout: float = 60.0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_dir: str = ".engie/logs"
    activity_log: str = "activity.jsonl"
    log_file: Optional[str] = None
    max_log_size_mb: int = 10
    backup_count: int = 3


@dataclass
class EngieConfig:
    """Root configuration container."""
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loader
# =============================================================================

def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find engie.yaml by searching upward from start_path.

    Search order:
    1. start_path / engie.yaml
    2. start_path / .engie / engie.yaml
    3. Parent directories (recursive, at most 10 levels)
    4. ~/.config/engie/engie.yaml

    Args:
        start_path: Starting directory (defaults to cwd)

    Returns:
        Path to config file or None if not found
    """
    if start_path is None:
        start_path = Path.cwd()

    current = Path(start_path).resolve()
    for _ in range(10):
        for candidate in (current / CONFIG_FILENAME, current / ".engie" / CONFIG_FILENAME):
            if candidate.exists():
                return candidate

        parent = current.parent
        if parent == current:
            break
        current = parent

    user_config = Path.home() / ".config" / "engie" / CONFIG_FILENAME
    if user_config.exists():
        return user_config

    return None


def load_config(config_path: Optional[Path] = None) -> EngieConfig:
    """
    Load configuration from YAML file with environment variable overrides.

    Environment variables override config file values:
    - ENGIE_ANALYSIS_BACKEND -> analysis.backend
    - ENGIE_ANALYSIS_MODEL -> analysis.model
    - ENGIE_ANALYSIS_BASE_URL -> analysis.base_url
    - ENGIE_ANALYSIS_MODE -> analysis.mode
    - ENGIE_SCAN_INTERVAL -> scan.interval
    - ENGIE_AUTO_SCAN -> scan.auto_scan
    - ENGIE_LOG_LEVEL -> logging.level
    - OPENAI_API_KEY -> analysis.api_key (only when not set in the file)

    Args:
        config_path: Path to config file (auto-detected if None)

    Returns:
        EngieConfig instance
    """
    config = EngieConfig()

    if config_path is None:
        config_path = find_config_file()

    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
            config = _parse_config_dict(data)
        except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
            logger.warning(f"Failed to load config: {e}, using defaults")
            config = EngieConfig()
    else:
        logger.debug("No config file found, using defaults")

    config = _apply_env_overrides(config)
    _validate_config(config)

    return config


def _parse_config_dict(data: Dict[str, Any]) -> EngieConfig:
    """Parse configuration dictionary into EngieConfig."""
    config = EngieConfig()

    if "analysis" in data:
        a = data["analysis"] or {}
        config.analysis = AnalysisConfig(
            backend=a.get("backend", config.analysis.backend),
            model=a.get("model", config.analysis.model),
            base_url=a.get("base_url", config.analysis.base_url),
            api_key=a.get("api_key"),
            mode=a.get("mode", config.analysis.mode),
            temperature=a.get("temperature", config.analysis.temperature),
            max_tokens=a.get("max_tokens", config.analysis.max_tokens),
            timeout=a.get("timeout", config.analysis.timeout),
            min_text_length=a.get("min_text_length", config.analysis.min_text_length),
            cache_enabled=a.get("cache_enabled", config.analysis.cache_enabled),
            cache_ttl=a.get("cache_ttl", config.analysis.cache_ttl),
            cache_size=a.get("cache_size", config.analysis.cache_size),
        )

    if "scan" in data:
        scan = data["scan"] or {}
        config.scan = ScanConfig(
            interval=scan.get("interval", config.scan.interval),
            auto_scan=scan.get("auto_scan", config.scan.auto_scan),
            scan_timeout=scan.get("scan_timeout", config.scan.scan_timeout),
        )

    if "logging" in data:
        log = data["logging"] or {}
        config.logging = LoggingConfig(
            level=log.get("level", config.logging.level),
            log_dir=log.get("log_dir", config.logging.log_dir),
            activity_log=log.get("activity_log", config.logging.activity_log),
            log_file=log.get("log_file", config.logging.log_file),
            max_log_size_mb=log.get("max_log_size_mb", config.logging.max_log_size_mb),
            backup_count=log.get("backup_count", config.logging.backup_count),
        )

    return config


def _env_flag(name: str) -> bool:
    return os.environ[name].lower() in ("true", "1", "yes")


def _apply_env_overrides(config: EngieConfig) -> EngieConfig:
    """Apply environment variable overrides to config."""

    if os.environ.get("ENGIE_ANALYSIS_BACKEND"):
        config.analysis.backend = os.environ["ENGIE_ANALYSIS_BACKEND"]

    if os.environ.get("ENGIE_ANALYSIS_MODEL"):
        config.analysis.model = os.environ["ENGIE_ANALYSIS_MODEL"]

    if os.environ.get("ENGIE_ANALYSIS_BASE_URL"):
        config.analysis.base_url = os.environ["ENGIE_ANALYSIS_BASE_URL"]

    if os.environ.get("ENGIE_ANALYSIS_MODE"):
        config.analysis.mode = os.environ["ENGIE_ANALYSIS_MODE"]

    if os.environ.get("ENGIE_SCAN_INTERVAL"):
        try:
            config.scan.interval = float(os.environ["ENGIE_SCAN_INTERVAL"])
        except ValueError:
            logger.warning(f"Ignoring non-numeric ENGIE_SCAN_INTERVAL={os.environ['ENGIE_SCAN_INTERVAL']!r}")

    if os.environ.get("ENGIE_AUTO_SCAN"):
        config.scan.auto_scan = _env_flag("ENGIE_AUTO_SCAN")

    if os.environ.get("ENGIE_LOG_LEVEL"):
        config.logging.level = os.environ["ENGIE_LOG_LEVEL"]

    if not config.analysis.api_key and os.environ.get("OPENAI_API_KEY"):
        config.analysis.api_key = os.environ["OPENAI_API_KEY"]

    return config


def _validate_config(config: EngieConfig) -> None:
    """Validate configuration and log warnings."""

    if config.analysis.backend.lower() not in VALID_BACKENDS:
        logger.warning(f"Unknown analysis backend '{config.analysis.backend}', defaulting to 'local'")
        config.analysis.backend = "local"

    if config.analysis.mode not in VALID_MODES:
        logger.warning(f"Unknown analysis mode '{config.analysis.mode}', defaulting to 'full'")
        config.analysis.mode = "full"

    if config.scan.interval <= 0:
        logger.warning(f"Scan interval must be positive (got {config.scan.interval}), using 3.0")
        config.scan.interval = 3.0

    if config.analysis.backend == "openai" and not config.analysis.api_key:
        logger.warning("Backend 'openai' selected but no API key is configured")


def save_config(config: EngieConfig, path: Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: EngieConfig instance
        path: Output path
    """
    # api_key is never written
    data = {
        "analysis": {
            "backend": config.analysis.backend,
            "model": config.analysis.model,
            "base_url": config.analysis.base_url,
            "mode": config.analysis.mode,
            "temperature": config.analysis.temperature,
            "max_tokens": config.analysis.max_tokens,
            "timeout": config.analysis.timeout,
            "min_text_length": config.analysis.min_text_length,
            "cache_enabled": config.analysis.cache_enabled,
            "cache_ttl": config.analysis.cache_ttl,
            "cache_size": config.analysis.cache_size,
        },
        "scan": {
            "interval": config.scan.interval,
            "auto_scan": config.scan.auto_scan,
            "scan_timeout": config.scan.scan_timeout,
        },
        "logging": {
            "level": config.logging.level,
            "log_dir": config.logging.log_dir,
            "activity_log": config.logging.activity_log,
            "log_file": config.logging.log_file,
            "max_log_size_mb": config.logging.max_log_size_mb,
            "backup_count": config.logging.backup_count,
        },
    }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Configuration saved to: {path}")


def config_to_dict(config: EngieConfig) -> Dict[str, Any]:
    """Configuration as a plain dict, API key masked."""
    from dataclasses import asdict

    data = asdict(config)
    if data["analysis"]["api_key"]:
        data["analysis"]["api_key"] = "***"
    return data


# =============================================================================
# Global Config Instance
# =============================================================================

_global_config: Optional[EngieConfig] = None


def get_config() -> EngieConfig:
    """Get the process-wide configuration (lazy-loaded)."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reload_config(config_path: Optional[Path] = None) -> EngieConfig:
    """Reload configuration from file."""
    global _global_config
    _global_config = load_config(config_path)
    return _global_config
