"""Append-only trace log.

Records are stored one JSON object per line in
``<workspace>/.agent-trace/traces.jsonl``.  The store never reads, rewrites
or truncates the log.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from agent_trace.attribution.record import TraceRecord
from agent_trace.file_io import append_line

logger = logging.getLogger(__name__)

TRACE_DIR = ".agent-trace"
TRACE_FILE = "traces.jsonl"


def trace_path(root: Path) -> Path:
    return root / TRACE_DIR / TRACE_FILE


def serialize(record: TraceRecord) -> str:
    """Compact single-line JSON; json.dumps escapes any newline inside strings."""
    return json.dumps(record.to_dict(), ensure_ascii=False, separators=(",", ":"))


def append_trace(record: TraceRecord, root: Path) -> Path:
    """Append *record* to the workspace trace log and return the log path.

    OSError (cannot create the directory or open the file) propagates.
    """
    path = trace_path(root)
    append_line(path, (serialize(record) + "\n").encode("utf-8"))
    logger.debug("appended trace %s to %s", record.id, path)
    return path


def iter_traces(path: Path) -> Iterator[dict[str, Any] | None]:
    """Stream records from a trace log; yields None for malformed lines.

    Reader side for consumers such as ``agent-trace show``.
    """
    with open(path, encoding="utf-8", errors="replace") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except ValueError:
                yield None
                continue
            yield entry if isinstance(entry, dict) else None
