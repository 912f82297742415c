"""End-to-end tests for the attribution hook: payload in, trace line out."""

from __future__ import annotations

import tests._path_setup  # noqa: F401

import io
import json
import logging
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from agent_trace import hook
from agent_trace.attribution.record import ToolInfo
from agent_trace.environment import TraceContext
from agent_trace.logging_setup import _PACKAGE
from agent_trace.store import trace_path


class RunHookTest(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name) / "workspace"
        self.root.mkdir()
        self.config = {"state_dir": str(Path(self._td.name) / "state")}

    def tearDown(self) -> None:
        pkg = logging.getLogger(_PACKAGE)
        for handler in pkg.handlers:
            handler.close()
        pkg.handlers.clear()
        self._td.cleanup()

    def _context(self, tool: str = "claude-code") -> TraceContext:
        return TraceContext(workspace_root=self.root, tool=ToolInfo(name=tool))

    def _run(self, payload: dict, tool: str = "claude-code", config: dict | None = None) -> int:
        return hook.run_hook(payload, config or self.config, context_factory=lambda: self._context(tool))

    def _records(self) -> list[dict]:
        path = trace_path(self.root)
        if not path.exists():
            return []
        return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]

    def test_claude_edit_records_changed_lines(self) -> None:
        target = self.root / "src" / "app.py"
        target.parent.mkdir()
        target.write_text("import os\n\ndef f():\n    return 2\n", encoding="utf-8")
        transcript = Path(self._td.name) / "session.jsonl"
        transcript.write_text(
            json.dumps({"type": "assistant", "message": {"model": "claude-sonnet-4-5"}}) + "\n",
            encoding="utf-8",
        )
        payload = {
            "hook_event_name": "PostToolUse",
            "session_id": "sess-1",
            "transcript_path": str(transcript),
            "tool_name": "Edit",
            "tool_use_id": "toolu_1",
            "tool_input": {
                "file_path": str(target),
                "old_string": "def f():\n    return 1",
                "new_string": "def f():\n    return 2",
            },
        }

        self.assertEqual(self._run(payload), 0)

        [record] = self._records()
        self.assertEqual(record["version"], "1.0")
        self.assertEqual(record["tool"], {"name": "claude-code"})
        file_entry = record["files"][0]
        self.assertEqual(file_entry["path"], "src/app.py")
        conv = file_entry["conversations"][0]
        self.assertEqual(conv["ranges"], [{"start_line": 4, "end_line": 4}])
        self.assertEqual(conv["contributor"], {"type": "ai", "model_id": "anthropic/claude-sonnet-4-5"})
        self.assertEqual(conv["url"], f"file://{transcript}")
        self.assertEqual(
            record["metadata"],
            {"session_id": "sess-1", "tool_name": "Edit", "tool_use_id": "toolu_1"},
        )

    def test_claude_write_attributes_content(self) -> None:
        target = self.root / "new.py"
        target.write_text("a = 1\nb = 2\n", encoding="utf-8")
        payload = {
            "hook_event_name": "PostToolUse",
            "tool_name": "Write",
            "tool_input": {"file_path": str(target), "content": "a = 1\nb = 2\n"},
        }
        self.assertEqual(self._run(payload), 0)
        [record] = self._records()
        self.assertEqual(record["files"][0]["conversations"][0]["ranges"], [{"start_line": 1, "end_line": 3}])

    def test_claude_edit_on_crlf_file(self) -> None:
        target = self.root / "win.txt"
        target.write_bytes(b"header\r\nline1\r\nNEW\r\nline3\r\n")
        payload = {
            "hook_event_name": "PostToolUse",
            "tool_name": "Edit",
            "tool_input": {
                "file_path": str(target),
                "old_string": "line1\r\nline2\r\nline3",
                "new_string": "line1\r\nNEW\r\nline3",
            },
        }
        self.assertEqual(self._run(payload), 0)
        [record] = self._records()
        self.assertEqual(record["files"][0]["conversations"][0]["ranges"], [{"start_line": 3, "end_line": 3}])

    def test_unparseable_transcript_still_records_without_model(self) -> None:
        transcript = Path(self._td.name) / "nested.jsonl"
        transcript.write_text("[" * 5000 + "\n", encoding="utf-8")
        payload = {"hook_event_name": "SessionStart", "session_id": "s", "transcript_path": str(transcript)}
        self.assertEqual(self._run(payload), 0)
        [record] = self._records()
        self.assertEqual(record["files"][0]["conversations"][0]["contributor"], {"type": "ai"})

    def test_claude_bash_goes_to_shell_history(self) -> None:
        payload = {
            "hook_event_name": "PostToolUse",
            "tool_name": "Bash",
            "session_id": "s",
            "tool_input": {"command": "npm test"},
        }
        self.assertEqual(self._run(payload), 0)
        [record] = self._records()
        self.assertEqual(record["files"][0]["path"], ".shell-history")
        self.assertEqual(record["files"][0]["conversations"][0]["ranges"], [{"start_line": 1, "end_line": 1}])
        self.assertEqual(record["metadata"]["command"], "npm test")
        self.assertEqual(record["metadata"]["tool_name"], "Bash")

    def test_claude_other_tools_are_ignored(self) -> None:
        payload = {"hook_event_name": "PostToolUse", "tool_name": "Read", "tool_input": {"file_path": "/x"}}
        self.assertEqual(self._run(payload), 0)
        self.assertEqual(self._records(), [])

    def test_claude_session_events(self) -> None:
        self.assertEqual(self._run({"hook_event_name": "SessionStart", "session_id": "s", "source": "startup"}), 0)
        self.assertEqual(self._run({"hook_event_name": "SessionEnd", "session_id": "s", "reason": "logout"}), 0)
        start, end = self._records()
        self.assertEqual(start["files"][0]["path"], ".sessions")
        self.assertEqual(start["metadata"], {"event": "session_start", "session_id": "s", "source": "startup"})
        self.assertEqual(end["metadata"], {"event": "session_end", "session_id": "s", "reason": "logout"})

    def test_cursor_file_edit(self) -> None:
        target = self.root / "lib.ts"
        target.write_text("const a = 1;\nconst b = 3;\n", encoding="utf-8")
        payload = {
            "hook_event_name": "afterFileEdit",
            "model": "gpt-4o",
            "conversation_id": "c1",
            "generation_id": "g1",
            "file_path": str(target),
            "edits": [{"old_string": "const b = 2;", "new_string": "const b = 3;"}],
        }
        self.assertEqual(self._run(payload, tool="cursor"), 0)
        [record] = self._records()
        conv = record["files"][0]["conversations"][0]
        self.assertEqual(record["files"][0]["path"], "lib.ts")
        self.assertEqual(conv["ranges"], [{"start_line": 2, "end_line": 2}])
        self.assertEqual(conv["contributor"]["model_id"], "openai/gpt-4o")
        self.assertEqual(record["metadata"], {"conversation_id": "c1", "generation_id": "g1"})

    def test_cursor_file_edit_on_crlf_file(self) -> None:
        target = self.root / "win.ts"
        target.write_bytes(b"// top\r\nconst a = 1;\r\nconst b = 3;\r\n")
        payload = {
            "hook_event_name": "afterFileEdit",
            "file_path": str(target),
            "edits": [{"old_string": "const a = 1;\r\nconst b = 2;", "new_string": "const a = 1;\r\nconst b = 3;"}],
        }
        self.assertEqual(self._run(payload, tool="cursor"), 0)
        [record] = self._records()
        self.assertEqual(record["files"][0]["conversations"][0]["ranges"], [{"start_line": 3, "end_line": 3}])

    def test_cursor_tab_edit_uses_reported_range(self) -> None:
        payload = {
            "hook_event_name": "afterTabFileEdit",
            "file_path": str(self.root / "missing.py"),
            "edits": [
                {
                    "old_string": "",
                    "new_string": "x = 1",
                    "range": {"start_line_number": 7, "end_line_number": 7, "start_column": 1, "end_column": 6},
                }
            ],
        }
        self.assertEqual(self._run(payload, tool="cursor"), 0)
        [record] = self._records()
        self.assertEqual(record["files"][0]["conversations"][0]["ranges"], [{"start_line": 7, "end_line": 7}])

    def test_cursor_edit_without_file_path_is_skipped(self) -> None:
        self.assertEqual(self._run({"hook_event_name": "afterFileEdit", "edits": []}, tool="cursor"), 0)
        self.assertEqual(self._records(), [])

    def test_cursor_shell_execution(self) -> None:
        payload = {"hook_event_name": "afterShellExecution", "command": "ls -la", "duration": 42}
        self.assertEqual(self._run(payload, tool="cursor"), 0)
        [record] = self._records()
        self.assertEqual(record["files"][0]["path"], ".shell-history")
        self.assertEqual(record["metadata"], {"command": "ls -la", "duration_ms": 42})

    def test_unknown_event_writes_nothing(self) -> None:
        self.assertEqual(self._run({"hook_event_name": "beforeSubmitPrompt"}), 0)
        self.assertEqual(self._records(), [])

    def test_missing_event_name_writes_nothing(self) -> None:
        self.assertEqual(self._run({"session_id": "s"}), 0)
        self.assertEqual(self._records(), [])

    def test_disabled_tool_writes_nothing(self) -> None:
        config = {**self.config, "tools": {"claude": {"enabled": False}}}
        self.assertEqual(self._run({"hook_event_name": "SessionStart"}, config=config), 0)
        self.assertEqual(self._records(), [])

    def test_store_failure_returns_nonzero(self) -> None:
        (self.root / ".agent-trace").write_text("blocker", encoding="utf-8")
        self.assertEqual(self._run({"hook_event_name": "SessionStart"}), 1)

    def test_handler_failure_returns_nonzero(self) -> None:
        def _boom() -> TraceContext:
            raise RuntimeError("no context")

        rc = hook.run_hook({"hook_event_name": "SessionStart"}, self.config, context_factory=_boom)
        self.assertEqual(rc, 1)


class HookMainTest(unittest.TestCase):
    def _main(self, stdin: str) -> tuple[int, object]:
        with patch.object(hook, "configure"), patch.object(hook, "load_config", return_value={}), patch.object(
            hook, "run_hook", return_value=0
        ) as run, patch("sys.stdin", io.StringIO(stdin)):
            rc = hook.main()
        return rc, run

    def test_empty_stdin_is_a_noop(self) -> None:
        rc, run = self._main("   \n")
        self.assertEqual(rc, 0)
        run.assert_not_called()

    def test_invalid_json_fails(self) -> None:
        rc, run = self._main("{not json")
        self.assertEqual(rc, 1)
        run.assert_not_called()

    def test_non_object_payload_fails(self) -> None:
        rc, run = self._main("[1, 2]")
        self.assertEqual(rc, 1)
        run.assert_not_called()

    def test_valid_payload_is_dispatched(self) -> None:
        rc, run = self._main(json.dumps({"hook_event_name": "SessionStart"}))
        self.assertEqual(rc, 0)
        run.assert_called_once_with({"hook_event_name": "SessionStart"}, {})

    def test_config_error_fails(self) -> None:
        with patch.object(hook, "configure"), patch.object(
            hook, "load_config", side_effect=ValueError("bad config")
        ), patch("sys.stdin", io.StringIO("{}")):
            self.assertEqual(hook.main(), 1)


if __name__ == "__main__":
    unittest.main()
