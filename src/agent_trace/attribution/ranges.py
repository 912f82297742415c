"""Line-range attribution for edit events.

Editing tools often resend unchanged lines around an edit (Claude Code's
Edit tool includes surrounding context in both ``old_string`` and
``new_string``).  ``compute_range_positions`` maps each edit to the lines of
the post-edit file that were actually added or modified, so context lines
are not credited to the editing model.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditRange:
    """Explicit position reported by the editing tool (Cursor)."""

    start_line_number: int
    end_line_number: int
    start_column: int = 0
    end_column: int = 0


@dataclass(frozen=True)
class FileEdit:
    old_string: str
    new_string: str
    range: EditRange | None = None


@dataclass(frozen=True)
class RangePosition:
    start_line: int
    end_line: int


def find_changed_lines(old: str, new: str) -> list[int]:
    """Return 0-indexed offsets of lines in *new* that are not context.

    Greedy forward alignment: a new line matching the next unconsumed old
    line, or any old line further ahead, is context.  Old lines skipped by
    a look-ahead match are treated as deleted.
    """
    old_lines = old.split("\n")
    new_lines = new.split("\n")
    changed: list[int] = []

    old_idx = 0
    for new_idx, line in enumerate(new_lines):
        if old_idx < len(old_lines) and old_lines[old_idx] == line:
            old_idx += 1
            continue
        try:
            old_idx = old_lines.index(line, old_idx) + 1
        except ValueError:
            changed.append(new_idx)

    return changed


def merge_offsets(offsets: list[int], start_line: int) -> list[RangePosition]:
    """Collapse sorted line offsets into inclusive ranges starting at *start_line*."""
    if not offsets:
        return []

    ranges: list[RangePosition] = []
    run_start = run_end = offsets[0]
    for offset in offsets[1:]:
        if offset == run_end + 1:
            run_end = offset
            continue
        ranges.append(RangePosition(start_line + run_start, start_line + run_end))
        run_start = run_end = offset
    ranges.append(RangePosition(start_line + run_start, start_line + run_end))
    return ranges


def _line_of(content: str, fragment: str) -> int | None:
    """1-indexed line on which the first occurrence of *fragment* starts."""
    idx = content.find(fragment)
    if idx == -1:
        return None
    return content.count("\n", 0, idx) + 1


def _edit_ranges(edit: FileEdit, file_content: str | None) -> list[RangePosition]:
    if edit.range is not None:
        return [RangePosition(edit.range.start_line_number, edit.range.end_line_number)]
    if edit.old_string == edit.new_string:
        return []

    start_line = _line_of(file_content, edit.new_string) if file_content else None

    if edit.old_string and start_line is not None:
        changed = find_changed_lines(edit.old_string, edit.new_string)
        return merge_offsets(changed, start_line)

    # Whole new_string, anchored at line 1 when it cannot be located.
    line_count = edit.new_string.count("\n") + 1
    if start_line is None:
        logger.debug("new_string not located in file content; anchoring range at line 1")
        start_line = 1
    return [RangePosition(start_line, start_line + line_count - 1)]


def compute_range_positions(
    edits: Iterable[FileEdit], file_content: str | None = None
) -> list[RangePosition]:
    """Compute attributed line ranges for *edits* against the post-edit file.

    Edits with an empty ``new_string`` (pure deletions) contribute nothing.
    """
    positions: list[RangePosition] = []
    for edit in edits:
        if not edit.new_string:
            continue
        positions.extend(_edit_ranges(edit, file_content))
    return positions
