"""CLI for agent-trace."""

import argparse
import sys
from collections import deque
from concurrent.futures import ThreadPoolExecutor, as_completed
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Callable

import questionary
from rich.console import Console

from .environment import get_workspace_root
from .store import iter_traces, trace_path
from .tools import Scope, ToolConfig, available_tools, get_tool

console = Console(stderr=True)

TOOLS = available_tools()
TOOL_CHOICES = [*TOOLS, "all"]


class _NoTTYError(SystemExit):
    def __init__(self, flag: str) -> None:
        super().__init__(f"No TTY detected. Use {flag} to run non-interactively.")


def _is_tty() -> bool:
    return sys.stdin.isatty()


def _require_tty(flag: str) -> None:
    if not _is_tty():
        raise _NoTTYError(flag)


def _select(message: str, choices: list[str], flag: str) -> str:
    _require_tty(flag)
    selected = questionary.select(message, choices=choices).ask()
    if selected is None:
        raise SystemExit(1)
    return selected


def _resolve_tools(args: argparse.Namespace) -> list[str]:
    """Return list of tool names to operate on."""
    tool = getattr(args, "tool", None)
    if tool == "all":
        return list(TOOLS)
    if tool:
        return [tool]

    selected = _select("Which tool?", TOOL_CHOICES, "--tool")
    return list(TOOLS) if selected == "all" else [selected]


def _resolve_scope(args: argparse.Namespace, tool_cfg: ToolConfig | None = None) -> Scope:
    requested: Scope | None = None
    if getattr(args, "global_", False):
        requested = Scope.GLOBAL
    elif getattr(args, "project", False):
        requested = Scope.PROJECT
    elif getattr(args, "local", False):
        requested = Scope.LOCAL

    if tool_cfg is None:
        return requested or Scope.GLOBAL

    scopes = tool_cfg.scopes()
    if requested in scopes:
        return requested
    if Scope.GLOBAL in scopes:
        return Scope.GLOBAL
    return scopes[0]


def _run_tool_actions(
    tools: list[str],
    action: Callable[[str], int],
    *,
    failure_label: str,
    parallel: bool,
) -> int:
    rc = 0
    if not parallel or len(tools) <= 1:
        for tool_name in tools:
            try:
                rc |= action(tool_name)
            except Exception as e:
                console.print(f"[yellow]Warning:[/yellow] failed to {failure_label} {tool_name}: {e}")
                rc = 1
        return rc

    with ThreadPoolExecutor(max_workers=min(8, len(tools))) as ex:
        futures = {ex.submit(action, tool_name): tool_name for tool_name in tools}
        for fut in as_completed(futures):
            tool_name = futures[fut]
            try:
                rc |= fut.result()
            except Exception as e:
                console.print(f"[yellow]Warning:[/yellow] failed to {failure_label} {tool_name}: {e}")
                rc = 1
    return rc


def _add_scope_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--global", dest="global_", action="store_true",
                       help="Use global scope")
    group.add_argument("--project", action="store_true",
                       help="Use project scope")
    group.add_argument("--local", action="store_true",
                       help="Use local scope")


def _add_tool_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tool", choices=TOOL_CHOICES,
                        help="Target tool (claude, cursor or 'all')")


def _update_hook(tool_name: str, args: argparse.Namespace, *, enable: bool) -> int:
    """Register or remove the ``agent-trace hook`` command in one tool's settings."""
    tool_cfg = get_tool(tool_name)
    scope = _resolve_scope(args, tool_cfg)
    path = tool_cfg.settings_path(scope)

    tool_settings = tool_cfg.load_settings(scope)
    if enable and tool_cfg.is_hook_registered(tool_settings):
        console.print(f"[dim]{tool_name} ({scope.value}): already registered in {path}[/dim]")
        return 0

    if enable:
        tool_settings = tool_cfg.register_hook(tool_settings)
    else:
        tool_settings = tool_cfg.unregister_hook(tool_settings)
    tool_cfg.save_settings(tool_settings, scope)

    verb = "Enabled" if enable else "Disabled"
    console.print(f"[green]{verb}.[/green] {tool_name} ({scope.value}): {path}")
    return 0


def cmd_enable(args: argparse.Namespace) -> int:
    tools = _resolve_tools(args)
    return _run_tool_actions(
        tools,
        lambda tool_name: _update_hook(tool_name, args, enable=True),
        failure_label="enable",
        parallel=len(tools) > 1,
    )


def cmd_disable(args: argparse.Namespace) -> int:
    tools = _resolve_tools(args)
    return _run_tool_actions(
        tools,
        lambda tool_name: _update_hook(tool_name, args, enable=False),
        failure_label="disable",
        parallel=len(tools) > 1,
    )


def cmd_status(args: argparse.Namespace) -> int:
    from rich.table import Table

    tool = getattr(args, "tool", None)
    tools = list(TOOLS) if not tool or tool == "all" else [tool]

    table = Table(title="agent-trace status")
    table.add_column("Tool")
    table.add_column("Scope")
    table.add_column("Hook")
    table.add_column("Path")

    for name in tools:
        tool_cfg = get_tool(name)
        for scope in tool_cfg.scopes():
            tool_settings = tool_cfg.load_settings(scope)
            registered = tool_cfg.is_hook_registered(tool_settings)
            path = str(tool_cfg.settings_path(scope))
            status = "[green]registered[/green]" if registered else "[dim]not registered[/dim]"
            table.add_row(name, scope.value, status, path)

    console.print(table)

    log_path = trace_path(get_workspace_root())
    if log_path.exists():
        count = sum(1 for entry in iter_traces(log_path) if entry is not None)
        console.print(f"Trace log: [bold]{log_path}[/bold] ({count} records)")
    else:
        console.print(f"Trace log: [dim]{log_path} (not created yet)[/dim]")
    return 0


def _first_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return {}


def _summarize(entry: dict[str, Any]) -> tuple[str, str, str, str]:
    file_entry = _first_dict(entry.get("files"))
    conv = _first_dict(file_entry.get("conversations"))
    raw_ranges = conv.get("ranges")
    ranges = ", ".join(
        f"{r.get('start_line')}-{r.get('end_line')}"
        for r in (raw_ranges if isinstance(raw_ranges, list) else [])
        if isinstance(r, dict)
    )
    contributor = conv.get("contributor")
    if not isinstance(contributor, dict):
        contributor = {}
    model = contributor.get("model_id") or contributor.get("type") or "-"
    return (str(entry.get("timestamp", "-")), str(file_entry.get("path", "-")), ranges or "-", str(model))


def cmd_show(args: argparse.Namespace) -> int:
    from rich.table import Table

    log_path = trace_path(get_workspace_root())
    if not log_path.exists():
        console.print(f"[yellow]No trace log at {log_path}[/yellow]")
        return 1

    limit = max(1, getattr(args, "limit", 20) or 20)
    recent: deque[dict[str, Any]] = deque(maxlen=limit)
    malformed = 0
    for entry in iter_traces(log_path):
        if entry is None:
            malformed += 1
            continue
        recent.append(entry)

    table = Table(title=f"agent-trace: last {len(recent)} records")
    table.add_column("Timestamp")
    table.add_column("File")
    table.add_column("Lines")
    table.add_column("Contributor")
    for entry in recent:
        table.add_row(*_summarize(entry))

    console.print(table)
    if malformed:
        console.print(f"[yellow]Skipped {malformed} malformed line(s).[/yellow]")
    return 0


def cmd_hook(_args: argparse.Namespace) -> int:
    from .hook import main as hook_main
    return hook_main()


def cmd_version(_args: argparse.Namespace) -> int:
    try:
        console.print(version("agent-trace-hooks"))
    except PackageNotFoundError:
        console.print("unknown")
        return 1
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="agent-trace",
        description="Line-level attribution of AI coding tool edits",
    )
    sub = parser.add_subparsers(dest="command")

    p_enable = sub.add_parser("enable", help="Register the attribution hook")
    _add_scope_flags(p_enable)
    _add_tool_flag(p_enable)

    p_disable = sub.add_parser("disable", help="Remove the attribution hook")
    _add_scope_flags(p_disable)
    _add_tool_flag(p_disable)

    p_status = sub.add_parser("status", help="Show hook registration and trace log")
    _add_tool_flag(p_status)

    p_show = sub.add_parser("show", help="Show recent trace records")
    p_show.add_argument("--limit", "-n", type=int, default=20,
                        help="Number of records to show (default: 20)")

    sub.add_parser("hook", help="Run the attribution hook (called by AI tools)")

    sub.add_parser("version", help="Show version")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "enable": cmd_enable,
        "disable": cmd_disable,
        "status": cmd_status,
        "show": cmd_show,
        "hook": cmd_hook,
        "version": cmd_version,
    }
    sys.exit(commands[args.command](args))


if __name__ == "__main__":
    main()
