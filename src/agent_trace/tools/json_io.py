"""Shared JSON file helpers for tool configurations."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from agent_trace.file_io import atomic_write

logger = logging.getLogger(__name__)


def load_json(path: Path, default: dict[str, Any] | None = None) -> dict[str, Any]:
    if not path.exists():
        return default.copy() if default is not None else {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Cannot parse %s; treating as empty", path)
        return default.copy() if default is not None else {}


def save_json(path: Path, data: dict[str, Any], mode: int = 0o600) -> None:
    atomic_write(path, (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8"), mode)
