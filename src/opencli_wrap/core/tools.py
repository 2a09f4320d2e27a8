"""Call surface: one named tool per command of a parsed spec.

A :class:`ToolTable` is built once from a :class:`Spec` and a
:class:`CliExecutor`.  Each node of the command tree (parents included)
becomes a :class:`ToolDefinition` whose name is the command path joined
with ``_``.  Calling a tool compiles its parameters and runs the program.

:class:`ToolTableCache` rebuilds the table only when the spec actually
changed, using the structural hash to narrow and equality to decide.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from opencli_wrap.core.cli_executor import CliExecutor
from opencli_wrap.core.compiler import ArgumentCompiler, ParameterValue, command_parameters
from opencli_wrap.core.models import Command, Option, Spec, spec_equals, spec_hash
from opencli_wrap.exceptions import (
    CliExecutionError,
    InvalidParameterError,
    SpecParseError,
    UnknownCommandError,
)

ParameterKind = Literal["flag", "option", "argument"]


def tool_name(path: Sequence[str]) -> str:
    """``("task", "add")`` → ``"task_add"``; dashes and spaces become ``_``."""
    return "_".join(segment.strip().lower().replace("-", "_").replace(" ", "_") for segment in path)


@dataclass(frozen=True, slots=True)
class ToolParameter:
    """One accepted parameter of a tool.

    ``name`` is the key callers pass; ``flag`` is the spelling the program
    accepts on its command line (``None`` for positional arguments).
    """

    name: str
    kind: ParameterKind
    required: bool = False
    description: str | None = None
    flag: str | None = None


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """A callable command of the wrapped program."""

    name: str
    path: tuple[str, ...]
    description: str | None
    parameters: tuple[ToolParameter, ...]

    @property
    def required_parameters(self) -> tuple[ToolParameter, ...]:
        return tuple(param for param in self.parameters if param.required)


def _option_parameter(option: Option, key: str) -> ToolParameter:
    return ToolParameter(
        name=key,
        kind="option" if option.takes_value else "flag",
        required=False,
        description=option.description,
        flag=option.flag,
    )


def _build_definition(spec: Spec, path: tuple[str, ...], command: Command) -> ToolDefinition:
    accepted = command_parameters(spec, command)
    parameters = [
        _option_parameter(option, key)
        for option, key in zip(accepted.options, accepted.option_keys)
    ]
    for argument, key in zip(accepted.arguments, accepted.argument_keys):
        parameters.append(
            ToolParameter(
                name=key,
                kind="argument",
                required=argument.required,
                description=argument.description,
            )
        )
    return ToolDefinition(
        name=tool_name(path),
        path=path,
        description=command.description,
        parameters=tuple(parameters),
    )


def tool_definitions(spec: Spec) -> list[ToolDefinition]:
    """One definition per command node of *spec*, depth-first in declared order.

    Raises
    ------
    SpecParseError
        When two commands normalize to the same tool name.
    """
    tools: dict[str, ToolDefinition] = {}
    for path, command in spec.walk():
        definition = _build_definition(spec, path, command)
        existing = tools.get(definition.name)
        if existing is not None:
            raise SpecParseError(
                f"Commands '{' '.join(existing.path)}' and '{' '.join(path)}' "
                f"both map to tool '{definition.name}'.",
            )
        tools[definition.name] = definition
    return list(tools.values())


# ---------------------------------------------------------------------------
# Tool table
# ---------------------------------------------------------------------------

class ToolTable:
    """Named tools for one spec, bound to one executor."""

    def __init__(
        self,
        spec: Spec,
        executor: CliExecutor,
        tools: Mapping[str, ToolDefinition],
        *,
        positionals_first: bool = False,
    ) -> None:
        self._spec: Spec = spec
        self._executor: CliExecutor = executor
        self._tools: dict[str, ToolDefinition] = dict(tools)
        self._compiler: ArgumentCompiler = ArgumentCompiler(spec)
        self._positionals_first: bool = positionals_first

    @classmethod
    def from_spec(
        cls,
        spec: Spec,
        executor: CliExecutor,
        *,
        positionals_first: bool = False,
    ) -> ToolTable:
        """Build one tool per command node of *spec*.

        Raises
        ------
        SpecParseError
            When two commands normalize to the same tool name.
        """
        tools = {tool.name: tool for tool in tool_definitions(spec)}
        return cls(spec, executor, tools, positionals_first=positionals_first)

    @property
    def spec(self) -> Spec:
        return self._spec

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> ToolDefinition:
        """Return the tool called *name*.

        Raises
        ------
        UnknownCommandError
            When no such tool exists.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownCommandError(
                name,
                f"Unknown tool: {name}",
                hint=f"Available tools: {', '.join(self._tools) or 'none'}",
            ) from None

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def compile(self, name: str, arguments: Mapping[str, ParameterValue] | None = None) -> tuple[str, ...]:
        """Return the argv tail that calling *name* with *arguments* would run."""
        tool = self.get(name)
        return self._compiler.compile(
            tool.path, arguments or {}, positionals_first=self._positionals_first,
        )

    async def call(
        self,
        name: str,
        arguments: Mapping[str, ParameterValue] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Run tool *name* and return its output text.

        Raises
        ------
        UnknownCommandError
            When *name* is not a tool of this table.
        CompileError
            When *arguments* do not fit the tool.
        CliExecutionError
            When the program fails, is cancelled or times out.
        """
        argv = self.compile(name, arguments)
        response = await self._executor.execute(argv, cancel_event=cancel_event)
        if not response.success:
            raise CliExecutionError(response.error or f"Tool '{name}' failed", response)
        return response.output

    async def invoke(self, name: str, arguments_json: str) -> str:
        """String-in / string-out variant of :meth:`call`.

        *arguments_json* must decode to a JSON object.  Numbers are
        passed as their text form; ``null`` means absent.
        """
        return await self.call(name, _decode_arguments(arguments_json))


def _decode_arguments(arguments_json: str) -> dict[str, ParameterValue]:
    text = arguments_json.strip()
    if not text:
        return {}
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidParameterError(
            "arguments", f"Tool arguments are not valid JSON: {exc.msg}",
        ) from exc
    if not isinstance(raw, dict):
        raise InvalidParameterError("arguments", "Tool arguments must be a JSON object.")

    values: dict[str, ParameterValue] = {}
    for key, value in raw.items():
        values[key] = _coerce(key, value)
    return values


def _coerce(key: str, value: Any) -> ParameterValue:
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    raise InvalidParameterError(key, f"Parameter '{key}' must be a string, number or boolean.")


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class ToolTableCache:
    """Keeps the last built table and reuses it while the spec is unchanged."""

    def __init__(self) -> None:
        self._hash: int | None = None
        self._spec: Spec | None = None
        self._executor: CliExecutor | None = None
        self._table: ToolTable | None = None

    def get(self, spec: Spec, executor: CliExecutor) -> ToolTable:
        current_hash = spec_hash(spec)
        if (
            self._table is not None
            and self._spec is not None
            and self._executor is executor
            and self._hash == current_hash
            and spec_equals(self._spec, spec)
        ):
            return self._table

        self._table = ToolTable.from_spec(spec, executor)
        self._spec = spec
        self._hash = current_hash
        self._executor = executor
        return self._table

    def clear(self) -> None:
        self._hash = None
        self._spec = None
        self._executor = None
        self._table = None
