"""Logging for agent-trace entrypoints.

Hooks run inside the AI tool's process tree, where stdout is not ours and
stderr is shown to the user.  Everything goes to a rotating file under the
state directory; only warnings and errors reach stderr.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

_PACKAGE = "agent_trace"
_LOG_BYTES = 1 * 1024 * 1024  # 1 MiB per file
_LOG_BACKUPS = 3
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_STDERR_PREFIX = "agent-trace: "

DEFAULT_STATE_DIR = Path.home() / ".config" / "agent-trace" / "state"
LOG_FILE_NAME = "agent_trace.log"


def log_file_for(state_dir: Path | None = None) -> Path:
    return (state_dir or DEFAULT_STATE_DIR) / LOG_FILE_NAME


def _file_handler(log_file: Path) -> logging.Handler | None:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=_LOG_BYTES,
            backupCount=_LOG_BACKUPS,
            encoding="utf-8",
        )
    except OSError as exc:
        print(f"{_STDERR_PREFIX}WARNING: could not open log file {log_file}: {exc}", file=sys.stderr)
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _stderr_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(f"{_STDERR_PREFIX}%(message)s"))
    return handler


def configure(log_file: Path, *, debug: bool = False, reconfigure: bool = False) -> None:
    """Attach handlers to the agent_trace package logger.

    A no-op when handlers are already attached, unless *reconfigure* is set
    (the hook calls it again once config has been read).
    """
    pkg_logger = logging.getLogger(_PACKAGE)
    if pkg_logger.handlers:
        if not reconfigure:
            return
        for handler in list(pkg_logger.handlers):
            pkg_logger.removeHandler(handler)
            handler.close()

    pkg_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    file_handler = _file_handler(log_file)
    if file_handler is not None:
        pkg_logger.addHandler(file_handler)
    pkg_logger.addHandler(_stderr_handler())
    pkg_logger.propagate = False
