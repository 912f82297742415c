"""agent-trace configuration.

Config files:
  - Global:  ~/.config/agent-trace/config.json
  - Project: .agent-trace.json (current directory)

Merge order: global → project → environment variables (highest priority).

Keys:
  debug      verbose logging to the state-dir log file
  state_dir  where the hook log lives
  tools      per-tool switches, e.g. {"cursor": {"enabled": false}}
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)

from .tools import Scope


def config_path(scope: Scope) -> Path:
    if scope is Scope.PROJECT or scope is Scope.LOCAL:
        return Path.cwd() / ".agent-trace.json"
    return Path.home() / ".config" / "agent-trace" / "config.json"


def _read_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    return json.loads(path.read_text(encoding="utf-8"))


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


# config key, env var, converter
_ENV_OVERRIDES: list[tuple[str, str, Callable[[str], Any]]] = [
    ("debug", "AGENT_TRACE_DEBUG", _parse_bool),
    ("state_dir", "AGENT_TRACE_STATE_DIR", str),
]


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow merge; nested dicts are merged one level deep."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config() -> Dict[str, Any]:
    """Load merged config: global → project → env vars.

    Malformed JSON in either file raises ``json.JSONDecodeError``.
    """
    merged = _merge(_read_json(config_path(Scope.GLOBAL)), _read_json(config_path(Scope.PROJECT)))
    for key, env_var, convert in _ENV_OVERRIDES:
        raw = os.environ.get(env_var)
        if raw:
            merged[key] = convert(raw)
            logger.debug("config %s overridden by %s", key, env_var)
    return merged


def state_dir(config: Dict[str, Any]) -> Path | None:
    configured = config.get("state_dir")
    if configured:
        return Path(str(configured)).expanduser().resolve()
    return None


def is_tool_enabled(config: Dict[str, Any], tool: str) -> bool:
    """Tools record by default; ``{"tools": {"<name>": {"enabled": false}}}`` opts out."""
    tools = config.get("tools")
    if not isinstance(tools, dict):
        return True
    section = tools.get(tool)
    if not isinstance(section, dict):
        return True
    enabled = section.get("enabled", True)
    if isinstance(enabled, str):
        return _parse_bool(enabled)
    return bool(enabled)
