"""Agent-trace line attribution.

Builds a TraceRecord for a single edit event.  Emission is handled by
``agent_trace.store``.

Usage (from a hook handler):
    ranges = compute_range_positions(edits, try_read_file(file_path))
    record = create_trace(ContributorType.AI, file_path, context=ctx,
                          model=model, range_positions=ranges)
    append_trace(record, ctx.workspace_root)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from agent_trace.attribution.model import normalize_model_id
from agent_trace.attribution.ranges import RangePosition
from agent_trace.attribution.record import (
    TRACE_VERSION,
    Contributor,
    ContributorType,
    Conversation,
    FileEntry,
    Range,
    TraceRecord,
)

if TYPE_CHECKING:
    from agent_trace.environment import TraceContext

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_trace(
    contributor_type: ContributorType | str,
    file_path: str,
    *,
    context: TraceContext,
    model: str | None = None,
    range_positions: Sequence[RangePosition] | None = None,
    transcript: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> TraceRecord:
    """Assemble a single-file, single-conversation TraceRecord.

    - No computed ranges falls back to line 1 so every record carries one.
    - The raw model is normalized to ``provider/model`` here.
    - *file_path* is made workspace-relative when it lies under the root.
    """
    from agent_trace.environment import to_relative_path

    if range_positions:
        ranges = [Range(start_line=p.start_line, end_line=p.end_line) for p in range_positions]
    else:
        logger.debug("attribution: no ranges for %s; defaulting to line 1", file_path)
        ranges = [Range(start_line=1, end_line=1)]

    conversation = Conversation(
        url=f"file://{transcript}" if transcript else None,
        contributor=Contributor(
            type=ContributorType(contributor_type),
            model_id=normalize_model_id(model),
        ),
        ranges=ranges,
    )

    return TraceRecord(
        version=TRACE_VERSION,
        id=str(uuid.uuid4()),
        timestamp=_timestamp(),
        vcs=context.vcs,
        tool=context.tool,
        files=[
            FileEntry(
                path=to_relative_path(file_path, context.workspace_root),
                conversations=[conversation],
            )
        ],
        metadata=dict(metadata) if metadata is not None else None,
    )

