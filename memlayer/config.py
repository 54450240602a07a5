"""
Settings for the relevance engine.

Sources, lowest precedence first:
1. Dataclass defaults below
2. YAML file (~/.memlayer/config/memlayer.yaml, or $MEMLAYER_CONFIG)
3. Environment variables (a local .env is loaded first, never overriding)
4. An explicit overrides dict passed by the caller
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from memlayer.log import get_logger

logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path.home() / ".memlayer" / "config" / "memlayer.yaml"


@dataclass(frozen=True)
class Settings:
    """All tunables in one place."""
    api_url: str = "http://localhost:4000"
    api_token: Optional[str] = None
    request_timeout_seconds: float = 10.0

    # Interactive timing
    suggestion_delay_ms: int = 2000          # debounce window
    min_presentation_interval_ms: int = 1000  # rate-limit floor
    cache_ttl_seconds: float = 300.0          # full-set cache, 5 minutes

    # Ranking
    suggestion_limit: int = 5
    min_relevance: float = 0.0
    context_radius: int = 10  # lines above and below the cursor

    auto_capture: bool = False
    log_level: str = "INFO"


# env var -> settings field
ENV_KEYS = {
    "MEMLAYER_API_URL": "api_url",
    "MEMLAYER_API_TOKEN": "api_token",
    "MEMLAYER_TIMEOUT": "request_timeout_seconds",
    "MEMLAYER_SUGGESTION_DELAY_MS": "suggestion_delay_ms",
    "MEMLAYER_MIN_INTERVAL_MS": "min_presentation_interval_ms",
    "MEMLAYER_CACHE_TTL": "cache_ttl_seconds",
    "MEMLAYER_SUGGESTION_LIMIT": "suggestion_limit",
    "MEMLAYER_MIN_RELEVANCE": "min_relevance",
    "MEMLAYER_CONTEXT_RADIUS": "context_radius",
    "MEMLAYER_AUTO_CAPTURE": "auto_capture",
    "MEMLAYER_LOG_LEVEL": "log_level",
}

_FIELD_TYPES = {f.name: f.type for f in fields(Settings)}


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw file/env value to the type of the named field."""
    target = _FIELD_TYPES[name]
    if value is None:
        return None
    if target is bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("true", "1", "yes", "on")
    if target is int:
        return int(value)
    if target is float:
        return float(value)
    return str(value)


def _apply(base: Dict[str, Any], raw: Dict[str, Any], source: str) -> None:
    for key, value in raw.items():
        if key not in _FIELD_TYPES:
            logger.debug(f"Ignoring unknown setting '{key}' from {source}")
            continue
        try:
            base[key] = _coerce(key, value)
        except (TypeError, ValueError) as e:
            logger.debug(f"Ignoring bad value for '{key}' from {source}: {e}")


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.debug(f"Could not load config file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.debug(f"Config file {path} is not a mapping, ignoring")
        return {}
    return data


def load_settings(
    overrides: Optional[Dict[str, Any]] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """Build Settings from defaults, the YAML file, the environment and overrides."""
    load_dotenv(override=False)

    values: Dict[str, Any] = {}

    if config_path is None:
        env_path = os.environ.get("MEMLAYER_CONFIG")
        config_path = Path(env_path).expanduser() if env_path else DEFAULT_CONFIG_PATH
    _apply(values, _load_file(Path(config_path)), str(config_path))

    env_values = {
        field_name: os.environ[env_key]
        for env_key, field_name in ENV_KEYS.items()
        if os.environ.get(env_key)
    }
    _apply(values, env_values, "environment")

    if overrides:
        _apply(values, overrides, "overrides")

    return replace(Settings(), **values)
