"""Cursor hook configuration (.cursor/hooks.json) and event handlers.

Cursor sends the model and, for agent edits, the edit list with the
old/new strings directly in the payload.

Reference:
  - https://cursor.com/docs/agent/hooks
"""

import logging
from pathlib import Path
from typing import Any, Dict

from agent_trace.attribution import create_trace
from agent_trace.attribution.ranges import compute_range_positions
from agent_trace.attribution.record import ContributorType, TraceRecord
from agent_trace.environment import TraceContext, try_read_file

from . import HOOK_COMMAND, HookInput, Scope, register_handler, register_tool
from .json_io import load_json, save_json

logger = logging.getLogger(__name__)

_HOOK_EVENTS = ("afterFileEdit", "afterTabFileEdit", "afterShellExecution", "sessionStart", "sessionEnd")


@register_tool
class CursorConfig:
    @property
    def name(self) -> str:
        return "cursor"

    def scopes(self) -> list[Scope]:
        return [Scope.PROJECT]

    def settings_path(self, scope: Scope) -> Path:
        return Path.cwd() / ".cursor" / "hooks.json"

    def load_settings(self, scope: Scope) -> Dict[str, Any]:
        return load_json(self.settings_path(scope))

    def save_settings(self, settings: Dict[str, Any], scope: Scope) -> None:
        save_json(self.settings_path(scope), settings)

    def is_hook_registered(self, settings: Dict[str, Any]) -> bool:
        hooks = settings.get("hooks", {})
        return all(
            any(HOOK_COMMAND in h.get("command", "") for h in hooks.get(event, []))
            for event in _HOOK_EVENTS
        )

    def register_hook(self, settings: Dict[str, Any], command: str | None = None) -> Dict[str, Any]:
        cmd = command or HOOK_COMMAND
        settings.setdefault("version", 1)
        hooks = settings.setdefault("hooks", {})
        for event in _HOOK_EVENTS:
            entries = hooks.setdefault(event, [])
            if any(cmd in h.get("command", "") for h in entries):
                continue
            entries.append({"command": cmd})
        return settings

    def unregister_hook(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        hooks = settings.get("hooks", {})
        for event in _HOOK_EVENTS:
            entries = hooks.get(event)
            if not entries:
                continue
            hooks[event] = [h for h in entries if HOOK_COMMAND not in h.get("command", "")]
            if not hooks[event]:
                del hooks[event]
        return settings


def _generation_metadata(event: HookInput) -> Dict[str, Any]:
    return {"conversation_id": event.conversation_id, "generation_id": event.generation_id}


@register_handler
class AfterFileEditHandler:
    event_name = "afterFileEdit"
    tool = "cursor"

    def build(self, event: HookInput, context: TraceContext) -> TraceRecord | None:
        if not event.file_path:
            logger.warning("afterFileEdit without file_path; skipping")
            return None
        range_positions = compute_range_positions(event.edits, try_read_file(event.file_path))
        return create_trace(
            ContributorType.AI,
            event.file_path,
            context=context,
            model=event.model,
            range_positions=range_positions,
            transcript=event.transcript_path,
            metadata=_generation_metadata(event),
        )


@register_handler
class AfterTabFileEditHandler:
    """Tab completions report explicit ranges, so the file is not read."""

    event_name = "afterTabFileEdit"
    tool = "cursor"

    def build(self, event: HookInput, context: TraceContext) -> TraceRecord | None:
        if not event.file_path:
            logger.warning("afterTabFileEdit without file_path; skipping")
            return None
        return create_trace(
            ContributorType.AI,
            event.file_path,
            context=context,
            model=event.model,
            range_positions=compute_range_positions(event.edits),
            metadata=_generation_metadata(event),
        )


@register_handler
class AfterShellExecutionHandler:
    event_name = "afterShellExecution"
    tool = "cursor"

    def build(self, event: HookInput, context: TraceContext) -> TraceRecord:
        return create_trace(
            ContributorType.AI,
            ".shell-history",
            context=context,
            model=event.model,
            transcript=event.transcript_path,
            metadata={
                **_generation_metadata(event),
                "command": event.command,
                "duration_ms": event.duration,
            },
        )


@register_handler
class SessionStartHandler:
    event_name = "sessionStart"
    tool = "cursor"

    def build(self, event: HookInput, context: TraceContext) -> TraceRecord:
        return create_trace(
            ContributorType.AI,
            ".sessions",
            context=context,
            model=event.model,
            metadata={
                "event": "session_start",
                "session_id": event.session_id,
                "conversation_id": event.conversation_id,
                "is_background_agent": event.is_background_agent,
                "composer_mode": event.composer_mode,
            },
        )


@register_handler
class SessionEndHandler:
    event_name = "sessionEnd"
    tool = "cursor"

    def build(self, event: HookInput, context: TraceContext) -> TraceRecord:
        return create_trace(
            ContributorType.AI,
            ".sessions",
            context=context,
            model=event.model,
            metadata={
                "event": "session_end",
                "session_id": event.session_id,
                "conversation_id": event.conversation_id,
                "reason": event.reason,
                "duration_ms": event.duration_ms,
            },
        )
