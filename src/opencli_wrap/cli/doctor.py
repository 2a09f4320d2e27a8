"""``opencli-wrap doctor``: environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether the runtime environment can run wrapped programs.

This module lives in the CLI layer.  It may import from ``infra`` and
``core``, and it renders via Rich.  It only collects and displays
diagnostic data.
"""

from __future__ import annotations

import importlib.util
import platform
import sys
from importlib import metadata

from opencli_wrap.cli import exit_codes
from opencli_wrap.cli.console import console
from opencli_wrap.infra.executable_resolver import detect_executable
from opencli_wrap.version import __version__

Check = tuple[str, str, str]
"""(label, value, status) for one table row."""


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> Check:
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _module_check(label: str, module: str) -> Check:
    """Optional UI dependencies only warn when missing."""
    if importlib.util.find_spec(module) is None:
        return label, "NOT INSTALLED", "[yellow]WARN[/yellow]"
    try:
        return label, metadata.version(module), "[green]OK[/green]"
    except metadata.PackageNotFoundError:
        return label, "installed", "[green]OK[/green]"


def _executable_check(name: str) -> Check:
    status = detect_executable(name)
    if status.found:
        return name, str(status.path) if status.path else "found", "[green]OK[/green]"
    return name, "not found", "[red]FAIL[/red]"


def _os_check() -> Check:
    system_raw = platform.system()
    system_display = {
        "Windows": "Windows",
        "Linux": "Linux",
        "Darwin": "macOS",
    }.get(system_raw, system_raw)
    value = f"{system_display} {platform.release()} ({platform.machine()})"
    return "OS", value, "[green]OK[/green]"


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    for word in ("FAIL", "WARN", "OK"):
        if word in status:
            return word
    return status


def collect_checks(executable: str | None = None) -> list[Check]:
    checks = [
        ("opencli-wrap", __version__, "[green]OK[/green]"),
        _python_version_check(),
        _module_check("rich", "rich"),
        _module_check("questionary", "questionary"),
        _os_check(),
    ]
    if executable:
        checks.append(_executable_check(executable))
    return checks


def _print_plain_doctor_table(checks: list[Check]) -> None:
    """Render doctor output without Rich."""
    print("\nopencli-wrap doctor", file=sys.stderr)
    print("=" * 60, file=sys.stderr)
    print(f"{'Component':<14} {'Value':<34} {'Status':<8}", file=sys.stderr)
    print("-" * 60, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<14} {value:<34} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(executable: str | None = None) -> int:
    """Execute all diagnostic checks and render a summary table.

    Parameters
    ----------
    executable:
        Optional program name or path to look up as well.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    checks = collect_checks(executable)
    has_failure = any("FAIL" in status for _, _, status in checks)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_doctor_table(checks)
        print("Some checks failed." if has_failure else "All checks passed.", file=sys.stderr)
        return exit_codes.GENERAL_ERROR if has_failure else exit_codes.SUCCESS

    table = Table(
        title="opencli-wrap doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR
    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
