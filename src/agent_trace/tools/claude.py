"""Claude Code hook configuration and event handlers.

Claude Code does not put the model in hook payloads; it is recovered from
the session transcript.

Reference:
  - https://code.claude.com/docs/en/hooks
"""

from pathlib import Path
from typing import Any, Dict

from agent_trace.attribution import create_trace
from agent_trace.attribution.model import resolve_model
from agent_trace.attribution.ranges import FileEdit, compute_range_positions
from agent_trace.attribution.record import ContributorType, TraceRecord
from agent_trace.environment import TraceContext, try_read_file

from . import HOOK_COMMAND, HookInput, Scope, register_handler, register_tool
from .json_io import load_json, save_json

# event name -> matcher (None: event has no matcher)
_HOOK_EVENTS: dict[str, str | None] = {
    "PostToolUse": "Write|Edit|Bash",
    "SessionStart": None,
    "SessionEnd": None,
}

_FILE_TOOLS = frozenset({"Write", "Edit"})


@register_tool
class ClaudeConfig:
    @property
    def name(self) -> str:
        return "claude"

    def scopes(self) -> list[Scope]:
        return [Scope.GLOBAL, Scope.PROJECT, Scope.LOCAL]

    def settings_path(self, scope: Scope) -> Path:
        if scope is Scope.GLOBAL:
            return Path.home() / ".claude" / "settings.json"
        if scope is Scope.PROJECT:
            return Path.cwd() / ".claude" / "settings.json"
        return Path.cwd() / ".claude" / "settings.local.json"

    def load_settings(self, scope: Scope) -> Dict[str, Any]:
        return load_json(self.settings_path(scope))

    def save_settings(self, settings: Dict[str, Any], scope: Scope) -> None:
        save_json(self.settings_path(scope), settings)

    def is_hook_registered(self, settings: Dict[str, Any]) -> bool:
        hooks = settings.get("hooks", {})
        return all(_has_command(hooks.get(event, []), HOOK_COMMAND) for event in _HOOK_EVENTS)

    def register_hook(self, settings: Dict[str, Any], command: str | None = None) -> Dict[str, Any]:
        cmd = command or HOOK_COMMAND
        hooks = settings.setdefault("hooks", {})
        for event, matcher in _HOOK_EVENTS.items():
            groups = hooks.setdefault(event, [])
            if _has_command(groups, cmd):
                continue
            group: Dict[str, Any] = {"hooks": [{"type": "command", "command": cmd}]}
            if matcher:
                group = {"matcher": matcher, **group}
            groups.append(group)
        return settings

    def unregister_hook(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        hooks = settings.get("hooks", {})
        for event in _HOOK_EVENTS:
            groups = hooks.get(event)
            if not groups:
                continue
            hooks[event] = [g for g in groups if not _has_command([g], HOOK_COMMAND)]
            if not hooks[event]:
                del hooks[event]
        return settings


def _has_command(groups: list[Dict[str, Any]], command: str) -> bool:
    for group in groups:
        for hook in group.get("hooks", []):
            if command in hook.get("command", ""):
                return True
    return False


@register_handler
class PostToolUseHandler:
    event_name = "PostToolUse"
    tool = "claude"

    def build(self, event: HookInput, context: TraceContext) -> TraceRecord | None:
        tool_name = event.tool_name or ""
        is_file_edit = tool_name in _FILE_TOOLS
        is_bash = tool_name == "Bash"
        if not is_file_edit and not is_bash:
            return None

        tool_input = event.tool_input or {}
        file_path = tool_input.get("file_path") if isinstance(tool_input.get("file_path"), str) else None
        path = ".shell-history" if is_bash else file_path or ".unknown"

        range_positions = None
        # Write carries the whole file as "content"
        new_string = tool_input.get("new_string") or tool_input.get("content")
        if is_file_edit and isinstance(new_string, str) and new_string:
            old_string = tool_input.get("old_string")
            edit = FileEdit(old_string=old_string if isinstance(old_string, str) else "", new_string=new_string)
            range_positions = compute_range_positions([edit], try_read_file(file_path))

        return create_trace(
            ContributorType.AI,
            path,
            context=context,
            model=resolve_model(event.model, event.transcript_path),
            range_positions=range_positions,
            transcript=event.transcript_path,
            metadata={
                "session_id": event.session_id,
                "tool_name": tool_name,
                "tool_use_id": event.tool_use_id,
                "command": tool_input.get("command") if is_bash else None,
            },
        )


@register_handler
class SessionStartHandler:
    event_name = "SessionStart"
    tool = "claude"

    def build(self, event: HookInput, context: TraceContext) -> TraceRecord:
        return create_trace(
            ContributorType.AI,
            ".sessions",
            context=context,
            model=resolve_model(event.model, event.transcript_path),
            metadata={"event": "session_start", "session_id": event.session_id, "source": event.source},
        )


@register_handler
class SessionEndHandler:
    event_name = "SessionEnd"
    tool = "claude"

    def build(self, event: HookInput, context: TraceContext) -> TraceRecord:
        return create_trace(
            ContributorType.AI,
            ".sessions",
            context=context,
            model=resolve_model(event.model, event.transcript_path),
            metadata={"event": "session_end", "session_id": event.session_id, "reason": event.reason},
        )
