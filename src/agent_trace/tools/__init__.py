"""Tool registry: hook registration backends and per-event trace handlers.

Each supported tool module registers
  - a ToolConfig (where its hook settings live, how to install our command)
  - one EventHandler per hook event it emits.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Protocol, runtime_checkable

from agent_trace.attribution.ranges import EditRange, FileEdit

if TYPE_CHECKING:
    from agent_trace.attribution.record import TraceRecord
    from agent_trace.environment import TraceContext

logger = logging.getLogger(__name__)

HOOK_COMMAND = "agent-trace hook"


class Scope(str, Enum):
    GLOBAL = "global"
    PROJECT = "project"
    LOCAL = "local"


@dataclass(frozen=True)
class HookInput:
    """Union of the fields Cursor and Claude Code send on stdin."""

    hook_event_name: str
    model: str | None = None
    transcript_path: str | None = None
    conversation_id: str | None = None
    generation_id: str | None = None
    session_id: str | None = None
    file_path: str | None = None
    edits: tuple[FileEdit, ...] = ()
    command: str | None = None
    duration: float | None = None
    output: str | None = None
    is_background_agent: bool | None = None
    composer_mode: str | None = None
    reason: str | None = None
    duration_ms: float | None = None
    tool_name: str | None = None
    tool_input: Dict[str, Any] | None = None
    tool_use_id: str | None = None
    source: str | None = None
    cwd: str | None = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "HookInput | None":
        name = payload.get("hook_event_name")
        if not isinstance(name, str) or not name:
            return None
        tool_input = payload.get("tool_input")
        return cls(
            hook_event_name=name,
            model=_str(payload.get("model")),
            transcript_path=_str(payload.get("transcript_path")),
            conversation_id=_str(payload.get("conversation_id")),
            generation_id=_str(payload.get("generation_id")),
            session_id=_str(payload.get("session_id")),
            file_path=_str(payload.get("file_path")),
            edits=tuple(_parse_edits(payload.get("edits"))),
            command=_str(payload.get("command")),
            duration=_number(payload.get("duration")),
            output=_str(payload.get("output")),
            is_background_agent=payload.get("is_background_agent")
            if isinstance(payload.get("is_background_agent"), bool)
            else None,
            composer_mode=_str(payload.get("composer_mode")),
            reason=_str(payload.get("reason")),
            duration_ms=_number(payload.get("duration_ms")),
            tool_name=_str(payload.get("tool_name")),
            tool_input=tool_input if isinstance(tool_input, dict) else None,
            tool_use_id=_str(payload.get("tool_use_id")),
            source=_str(payload.get("source")),
            cwd=_str(payload.get("cwd")),
        )


def _str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _parse_edits(raw: Any) -> list[FileEdit]:
    if not isinstance(raw, list):
        return []
    edits: list[FileEdit] = []
    for item in raw:
        if not isinstance(item, dict):
            logger.debug("skipping malformed edit entry: %r", item)
            continue
        edits.append(
            FileEdit(
                old_string=item.get("old_string") or "",
                new_string=item.get("new_string") or "",
                range=_parse_edit_range(item.get("range")),
            )
        )
    return edits


def _parse_edit_range(raw: Any) -> EditRange | None:
    if not isinstance(raw, dict):
        return None
    start = raw.get("start_line_number")
    end = raw.get("end_line_number")
    if not isinstance(start, int) or not isinstance(end, int):
        return None
    return EditRange(
        start_line_number=start,
        end_line_number=end,
        start_column=raw.get("start_column") or 0,
        end_column=raw.get("end_column") or 0,
    )


@runtime_checkable
class EventHandler(Protocol):
    """Turns one kind of hook event into a TraceRecord (None to skip)."""

    event_name: str
    tool: str

    def build(self, event: HookInput, context: "TraceContext") -> "TraceRecord | None": ...


@runtime_checkable
class ToolConfig(Protocol):
    """Protocol for tool-specific hook settings backends."""

    @property
    def name(self) -> str: ...

    def settings_path(self, scope: Scope) -> Path: ...
    def load_settings(self, scope: Scope) -> Dict[str, Any]: ...
    def save_settings(self, settings: Dict[str, Any], scope: Scope) -> None: ...
    def register_hook(self, settings: Dict[str, Any], command: str | None = None) -> Dict[str, Any]: ...
    def unregister_hook(self, settings: Dict[str, Any]) -> Dict[str, Any]: ...
    def scopes(self) -> list[Scope]: ...
    def is_hook_registered(self, settings: Dict[str, Any]) -> bool: ...


TOOL_REGISTRY: Dict[str, type[ToolConfig]] = {}
HANDLER_REGISTRY: Dict[str, type[EventHandler]] = {}
_discovered = False


def register_tool(cls: type[ToolConfig]) -> type[ToolConfig]:
    """Class decorator to register a tool config."""
    instance = cls()
    TOOL_REGISTRY[instance.name] = cls
    return cls


def register_handler(cls: type[EventHandler]) -> type[EventHandler]:
    """Class decorator to register an event handler under its hook event name."""
    HANDLER_REGISTRY[cls.event_name] = cls
    return cls


def get_tool(name: str) -> ToolConfig:
    """Get a tool config instance by name."""
    _ensure_registered()
    if name not in TOOL_REGISTRY:
        raise ValueError(f"Unknown tool: {name}. Available: {list(TOOL_REGISTRY.keys())}")
    return TOOL_REGISTRY[name]()


def available_tools() -> list[str]:
    """Return names of all registered tools."""
    _ensure_registered()
    return sorted(TOOL_REGISTRY.keys())


def get_handler(event_name: str) -> EventHandler | None:
    """Handler instance for a hook event name, or None if unsupported."""
    _ensure_registered()
    cls = HANDLER_REGISTRY.get(event_name)
    return cls() if cls is not None else None


def _ensure_registered() -> None:
    """Import all tool modules to trigger the registration decorators."""
    global _discovered
    if _discovered:
        return
    _discovered = True
    package_name = __name__
    for module in pkgutil.iter_modules(__path__):
        if module.name.startswith("_") or module.name in {"json_io"}:
            continue
        importlib.import_module(f"{package_name}.{module.name}")
