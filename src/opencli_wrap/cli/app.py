"""CLI application entry point and command routing for opencli-wrap.

This module is the **sole error boundary** for the entire application.
It catches :class:`~opencli_wrap.exceptions.OpenCliWrapError`,
``KeyboardInterrupt`` and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here; all work is delegated to the core and
  infrastructure layers.
* Diagnostics go to stderr through the console proxy.  Only the wrapped
  program's formatted response is written to stdout.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys

from opencli_wrap.cli import exit_codes
from opencli_wrap.cli.console import configure_logging, console
from opencli_wrap.exceptions import ExecutableNotFoundError, InvalidParameterError, OpenCliWrapError
from opencli_wrap.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    * ``opencli-wrap describe SPEC``
    * ``opencli-wrap call SPEC [TOOL] --exe PATH -p NAME=VALUE ...``
    * ``opencli-wrap doctor [EXECUTABLE]``
    * ``opencli-wrap --version``
    """
    parser = argparse.ArgumentParser(
        prog="opencli-wrap",
        description="Run command-line programs described by an OpenCLI document.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )
    subparsers = parser.add_subparsers(dest="command")

    describe = subparsers.add_parser("describe", help="List the tools a spec exposes.")
    describe.add_argument("spec", help="Path to an *.opencli.json document.")

    call = subparsers.add_parser("call", help="Run one tool of a spec.")
    call.add_argument("spec", help="Path to an *.opencli.json document.")
    call.add_argument("tool", nargs="?", default=None, help="Tool name; prompts when omitted.")
    call.add_argument(
        "--exe",
        default=None,
        help="Program to run.  Defaults to the spec's lower-cased title.",
    )
    call.add_argument(
        "-p",
        "--param",
        dest="params",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Option or argument value (repeatable).",
    )
    call.add_argument(
        "--flag",
        dest="flags",
        action="append",
        default=[],
        metavar="NAME",
        help="Boolean flag to switch on (repeatable).",
    )
    call.add_argument("--timeout", type=float, default=None, help="Seconds before the program is killed.")
    call.add_argument(
        "--format",
        dest="response_format",
        choices=("json", "raw", "plain"),
        default=None,
        help="Output format (default: json).",
    )
    call.add_argument("--cwd", default=None, help="Working directory for the program.")
    call.add_argument(
        "--positionals-first",
        action="store_true",
        help="Pass positional arguments before options.",
    )
    call.add_argument("--no-spinner", action="store_true", help="Do not show a progress spinner.")

    doctor = subparsers.add_parser("doctor", help="Show environment diagnostics.")
    doctor.add_argument("executable", nargs="?", default=None, help="Program to look up as well.")
    return parser


def _parse_params(raw_params: list[str], flags: list[str]) -> dict[str, str | bool]:
    """Turn ``NAME=VALUE`` strings and flag names into a parameter mapping."""
    params: dict[str, str | bool] = {}
    for raw in raw_params:
        name, sep, value = raw.partition("=")
        if not sep or not name:
            raise InvalidParameterError(
                raw,
                f"Malformed parameter: {raw!r}",
                hint="Use -p NAME=VALUE.",
            )
        params[name] = value
    for flag in flags:
        params[flag] = True
    return params


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_describe(spec_path: str) -> int:
    from opencli_wrap.cli.tool_prompt import display_tool_table
    from opencli_wrap.core.tools import tool_definitions
    from opencli_wrap.infra.spec_loader import load_spec

    spec = load_spec(spec_path)
    display_tool_table(spec, tool_definitions(spec))
    return exit_codes.SUCCESS


def _default_executable(spec_title: str | None) -> str | None:
    """``"TaskManager Tool"`` → ``"taskmanager"``."""
    if not spec_title or not spec_title.strip():
        return None
    name = spec_title.strip()
    if name.lower().endswith(" tool"):
        name = name[: -len(" tool")]
    return name.lower()


def _handle_call(args: argparse.Namespace) -> int:
    """Dispatch one tool invocation.

    Flow:
    1. Load the spec and build the tool table.
    2. Pick the tool (prompting when none was given).
    3. Compile, run with a spinner and print the formatted response.
    """
    from opencli_wrap.cli.progress import running_status
    from opencli_wrap.cli.tool_prompt import prompt_missing_arguments, prompt_tool_selection
    from opencli_wrap.core.cli_executor import CliExecutor, ExecutorOptions, parse_response_format
    from opencli_wrap.core.response import format_response
    from opencli_wrap.core.tools import ToolTable
    from opencli_wrap.infra.executable_resolver import resolve_executable
    from opencli_wrap.infra.spec_loader import load_spec
    from opencli_wrap.infra.subprocess_executor import AsyncioProcessExecutor

    spec = load_spec(args.spec)

    options = ExecutorOptions.from_env()
    overrides: dict[str, object] = {}
    if args.timeout is not None:
        overrides["timeout_seconds"] = args.timeout
    if args.response_format is not None:
        overrides["response_format"] = parse_response_format(args.response_format)
    if args.cwd is not None:
        overrides["working_directory"] = args.cwd
    if overrides:
        options = dataclasses.replace(options, **overrides)

    executable = args.exe or _default_executable(spec.info.title if spec.info else None)
    if executable is None:
        raise ExecutableNotFoundError(
            "",
            "No executable given and the spec has no title to derive one from.",
            hint="Pass the program with --exe PATH.",
        )
    executable = resolve_executable(executable)

    executor = CliExecutor(executable, AsyncioProcessExecutor(), options)
    table = ToolTable.from_spec(spec, executor, positionals_first=args.positionals_first)
    params = _parse_params(args.params, args.flags)

    tool_name = args.tool
    if tool_name is None:
        tool_name = prompt_tool_selection(spec, list(table))
        params.update(prompt_missing_arguments(table.get(tool_name), params))

    argv = table.compile(tool_name, params)
    with running_status(" ".join(table.get(tool_name).path), enabled=not args.no_spinner):
        response = asyncio.run(executor.execute(argv))

    console.out(format_response(response, options.response_format))

    if response.success:
        return exit_codes.SUCCESS
    if (response.metadata or {}).get("outcome") == "timed_out":
        return exit_codes.TIMED_OUT
    if 0 < response.exit_code < 256:
        return response.exit_code
    return exit_codes.GENERAL_ERROR


def _handle_doctor(executable: str | None) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from opencli_wrap.cli.doctor import run_doctor

    return run_doctor(executable)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the opencli-wrap CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS
    if args.command == "describe":
        return _handle_describe(args.spec)
    if args.command == "doctor":
        return _handle_doctor(args.executable)
    return _handle_call(args)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except OpenCliWrapError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
