"""Workspace, VCS and tool detection for trace records."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from agent_trace.attribution.record import ToolInfo, VcsInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceContext:
    """Process environment a trace record is built against."""

    workspace_root: Path
    tool: ToolInfo
    vcs: VcsInfo | None = None


def detect_context(env: Mapping[str, str] | None = None) -> TraceContext:
    env = os.environ if env is None else env
    root = get_workspace_root(env)
    return TraceContext(
        workspace_root=root,
        tool=get_tool_info(env),
        vcs=get_vcs_info(root),
    )


def get_workspace_root(env: Mapping[str, str] | None = None) -> Path:
    """Project directory from the tool's env var, else git toplevel, else cwd."""
    env = os.environ if env is None else env
    for var in ("CURSOR_PROJECT_DIR", "CLAUDE_PROJECT_DIR"):
        value = env.get(var)
        if value:
            return Path(value)
    cwd = Path.cwd()
    return _git_toplevel(cwd) or cwd


def get_tool_info(env: Mapping[str, str] | None = None) -> ToolInfo:
    env = os.environ if env is None else env
    if env.get("CURSOR_VERSION"):
        return ToolInfo(name="cursor", version=env["CURSOR_VERSION"])
    if env.get("CLAUDE_PROJECT_DIR"):
        return ToolInfo(name="claude-code")
    return ToolInfo(name="unknown")


def get_vcs_info(root: Path) -> VcsInfo | None:
    """Return the current git HEAD for *root*, or None outside a repository."""
    revision = _git(["rev-parse", "HEAD"], root)
    if not revision:
        return None
    return VcsInfo(type="git", revision=revision)


def to_relative_path(path: str | os.PathLike[str], root: Path) -> str:
    """Workspace-relative POSIX path; paths outside *root* are returned unchanged."""
    raw = os.fspath(path)
    candidate = Path(raw)
    if not candidate.is_absolute():
        return raw
    try:
        rel = candidate.relative_to(root)
    except ValueError:
        return raw
    return "" if rel == Path(".") else rel.as_posix()


def try_read_file(path: str | os.PathLike[str] | None) -> str | None:
    """File contents, or None if the file is missing or unreadable.

    Line endings are returned as stored so CRLF edits can be located.
    """
    if not path:
        return None
    try:
        with open(path, encoding="utf-8", newline="") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("cannot read %s: %s", path, e)
        return None


def _git_toplevel(directory: Path) -> Path | None:
    toplevel = _git(["rev-parse", "--show-toplevel"], directory)
    return Path(toplevel) if toplevel else None


def _git(args: list[str], cwd: Path) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip() or None
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git %s failed in %s: %s", " ".join(args), cwd, e)
    return None
