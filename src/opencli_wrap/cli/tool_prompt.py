"""Tool listing and interactive tool selection for the CLI layer.

This module is responsible for:

* Rendering a Rich table of the tools a spec exposes.
* Prompting the user to pick a tool via questionary arrow keys.
* Asking for required arguments the user did not pass.

All display-related logic lives here; nothing is executed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from opencli_wrap.cli.console import console
from opencli_wrap.core.compiler import parameter_key
from opencli_wrap.core.models import Spec
from opencli_wrap.core.tools import ToolDefinition, ToolParameter
from opencli_wrap.exceptions import EnvironmentError, UnknownCommandError


def _import_questionary() -> Any:
    """Import questionary lazily for interactive selection."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def _import_rich_table() -> tuple[type[Any], Any]:
    """Import rich table and markup escaping lazily for tool rendering."""
    try:
        from rich.markup import escape
        from rich.table import Table
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Table, escape


# ---------------------------------------------------------------------------
# Presentation helpers (pure transforms)
# ---------------------------------------------------------------------------

def _format_parameter(param: ToolParameter) -> str:
    """``title*`` for a required argument, ``--priority <value>``, ``--verbose``."""
    if param.kind == "argument":
        return f"{param.name}*" if param.required else f"[{param.name}]"
    flag = param.flag or f"--{param.name}"
    if param.kind == "option":
        return f"{flag} <value>"
    return flag


def _format_parameters(tool: ToolDefinition) -> str:
    return " ".join(_format_parameter(param) for param in tool.parameters) or "-"


def _build_choice_label(index: int, tool: ToolDefinition) -> str:
    """Build the single-line label shown in the questionary selector.

    Format: ``"  1.  task_add             Add a new task"``
    """
    description = tool.description or ""
    return f"  {index + 1}.  {tool.name:<24} {description}"


# ---------------------------------------------------------------------------
# Rich table display
# ---------------------------------------------------------------------------

def display_tool_table(spec: Spec, tools: Iterable[ToolDefinition]) -> None:
    """Print a Rich table summarising the tools of *spec*."""
    table_class, escape = _import_rich_table()

    console.print()
    if spec.info is not None and spec.info.title:
        version = f" {spec.info.version}" if spec.info.version else ""
        console.print(f"[bold cyan]Program:[/bold cyan]  {escape(spec.info.title + version)}")
        if spec.info.description:
            console.print(f"[bold cyan]About:[/bold cyan]    {escape(spec.info.description)}")
        console.print()

    table = table_class(
        title="Available Tools",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Tool", justify="left", min_width=12)
    table.add_column("Command", justify="left", min_width=10)
    table.add_column("Parameters", justify="left")
    table.add_column("Description", justify="left")

    for i, tool in enumerate(tools, start=1):
        table.add_row(
            str(i),
            tool.name,
            escape(" ".join(tool.path)),
            escape(_format_parameters(tool)),
            escape(tool.description or ""),
        )

    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# Public prompt functions
# ---------------------------------------------------------------------------

def prompt_tool_selection(spec: Spec, tools: list[ToolDefinition]) -> str:
    """Display the tools and prompt the user to choose one.

    Returns
    -------
    str
        The name of the chosen tool.

    Raises
    ------
    KeyboardInterrupt
        If the user presses Ctrl+C during selection.
    UnknownCommandError
        If the spec has no tools or the prompt is dismissed.
    """
    if not tools:
        raise UnknownCommandError(
            "",
            "The spec does not declare any commands.",
            hint="Add entries under 'commands' in the spec document.",
        )

    questionary = _import_questionary()

    display_tool_table(spec, tools)

    choices = [
        questionary.Choice(title=_build_choice_label(i, tool), value=tool.name)
        for i, tool in enumerate(tools)
    ]

    selected: str | None = questionary.select(
        "Select tool to run:",
        choices=choices,
        use_arrow_keys=True,
        use_shortcuts=False,
    ).ask()  # Returns None on Ctrl+C / Esc

    if selected is None:
        raise UnknownCommandError(
            "",
            "No tool selected.",
            hint="Use arrow keys to pick a tool, then press Enter.",
        )
    return selected


def prompt_missing_arguments(
    tool: ToolDefinition,
    provided: Mapping[str, object],
) -> dict[str, str]:
    """Ask for each required argument of *tool* absent from *provided*.

    Returns only the newly entered values; empty answers are dropped so
    the compiler reports the missing argument itself.
    """
    supplied = {parameter_key(name): value for name, value in provided.items()}
    missing = [
        param
        for param in tool.required_parameters
        if supplied.get(param.name) in (None, "")
    ]
    if not missing:
        return {}

    questionary = _import_questionary()
    answers: dict[str, str] = {}
    for param in missing:
        label = f"{param.name} ({param.description})" if param.description else param.name
        answer: str | None = questionary.text(f"{label}:").ask()
        if answer:
            answers[param.name] = answer
    return answers
