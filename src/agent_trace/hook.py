# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Attribution hook entrypoint.

Reads one hook event from stdin, builds a TraceRecord with the handler
registered for ``hook_event_name`` and appends it to the workspace trace
log.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

from agent_trace.config import is_tool_enabled, load_config, state_dir
from agent_trace.environment import TraceContext, detect_context
from agent_trace.logging_setup import configure, log_file_for
from agent_trace.store import append_trace
from agent_trace.tools import HookInput, get_handler


def read_hook_payload() -> dict[str, Any] | None:
    """Read the JSON payload from stdin (provided by the parent AI tool process).

    Returns None for empty input.  Raises ValueError for malformed JSON.
    """
    data = sys.stdin.read()
    if not data.strip():
        return None
    payload = json.loads(data)
    if not isinstance(payload, dict):
        raise ValueError(f"hook payload must be a JSON object, got {type(payload).__name__}")
    return payload


def run_hook(
    payload: dict[str, Any],
    config: dict[str, Any],
    *,
    context_factory: Callable[[], TraceContext] = detect_context,
) -> int:
    start = time.time()
    configure(log_file_for(state_dir(config)), debug=bool(config.get("debug", False)), reconfigure=True)

    event = HookInput.from_payload(payload)
    if event is None:
        logger.debug("No hook_event_name in payload; exiting.")
        return 0

    handler = get_handler(event.hook_event_name)
    if handler is None:
        logger.debug("No handler for event %s; exiting.", event.hook_event_name)
        return 0

    if not is_tool_enabled(config, handler.tool):
        logger.debug("Recording disabled for %s; exiting.", handler.tool)
        return 0

    try:
        context = context_factory()
        record = handler.build(event, context)
    except Exception:
        logger.warning("Failed to build trace for %s", event.hook_event_name, exc_info=True)
        return 1

    if record is None:
        logger.debug("Handler for %s produced no record.", event.hook_event_name)
        return 0

    try:
        path = append_trace(record, context.workspace_root)
    except OSError:
        logger.error("Failed to append trace %s for %s", record.id, event.hook_event_name, exc_info=True)
        return 1

    logger.info(
        "Recorded %s in %.2fs (file=%s, trace=%s)",
        event.hook_event_name,
        time.time() - start,
        record.files[0].path if record.files else "-",
        path,
    )
    return 0


def main() -> int:
    configure(log_file_for())

    try:
        config = load_config()
    except (OSError, ValueError):
        logger.error("Failed to load agent-trace config", exc_info=True)
        return 1

    try:
        payload = read_hook_payload()
    except ValueError:
        logger.error("Hook error: invalid JSON payload on stdin", exc_info=True)
        return 1

    if payload is None:
        return 0

    return run_hook(payload, config)


if __name__ == "__main__":
    sys.exit(main())
