"""Agent-trace record schema.

One TraceRecord is written per hook event.  ``to_dict`` produces the JSON
shape stored in the trace log; optional fields set to None are omitted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

TRACE_VERSION = "1.0"


class ContributorType(str, Enum):
    HUMAN = "human"
    AI = "ai"
    MIXED = "mixed"
    UNKNOWN = "unknown"


@dataclass
class Contributor:
    type: ContributorType
    model_id: str | None = None  # models.dev convention, e.g. "anthropic/claude-opus-4-5"


@dataclass
class Range:
    start_line: int  # 1-indexed, inclusive
    end_line: int
    content_hash: str | None = None
    contributor: Contributor | None = None


@dataclass
class RelatedResource:
    type: str
    url: str


@dataclass
class Conversation:
    ranges: list[Range]
    contributor: Contributor | None = None
    url: str | None = None
    related: list[RelatedResource] | None = None


@dataclass
class FileEntry:
    path: str  # workspace-relative, forward slashes
    conversations: list[Conversation]


@dataclass
class VcsInfo:
    type: str  # "git" | "jj" | "hg" | "svn"
    revision: str


@dataclass
class ToolInfo:
    name: str
    version: str | None = None


@dataclass
class TraceRecord:
    version: str
    id: str
    timestamp: str
    files: list[FileEntry]
    vcs: VcsInfo | None = None
    tool: ToolInfo | None = None
    metadata: dict[str, Any] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "version": self.version,
            "id": self.id,
            "timestamp": self.timestamp,
        }
        if self.vcs:
            d["vcs"] = {"type": self.vcs.type, "revision": self.vcs.revision}
        if self.tool:
            tool_d: dict[str, Any] = {"name": self.tool.name}
            if self.tool.version:
                tool_d["version"] = self.tool.version
            d["tool"] = tool_d
        d["files"] = [_file_to_dict(f) for f in self.files]
        if self.metadata is not None:
            d["metadata"] = {k: v for k, v in self.metadata.items() if v is not None}
        return d


def _file_to_dict(f: FileEntry) -> dict[str, Any]:
    return {
        "path": f.path,
        "conversations": [_conv_to_dict(c) for c in f.conversations],
    }


def _contributor_to_dict(c: Contributor) -> dict[str, Any]:
    d: dict[str, Any] = {"type": ContributorType(c.type).value}
    if c.model_id:
        d["model_id"] = c.model_id
    return d


def _range_to_dict(r: Range) -> dict[str, Any]:
    d: dict[str, Any] = {"start_line": r.start_line, "end_line": r.end_line}
    if r.content_hash:
        d["content_hash"] = r.content_hash
    if r.contributor:
        d["contributor"] = _contributor_to_dict(r.contributor)
    return d


def _conv_to_dict(c: Conversation) -> dict[str, Any]:
    d: dict[str, Any] = {}
    if c.url:
        d["url"] = c.url
    if c.contributor:
        d["contributor"] = _contributor_to_dict(c.contributor)
    d["ranges"] = [_range_to_dict(r) for r in c.ranges]
    if c.related:
        d["related"] = [{"type": r.type, "url": r.url} for r in c.related]
    return d
