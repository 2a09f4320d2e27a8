"""Domain models for an OpenCLI command description.

All models are **frozen** dataclasses: immutable value objects parsed
once and only read afterwards.  Lists are stored as tuples and mappings
as read-only views so that no consumer can mutate a parsed spec.

Equality and hashing are structural and come from one shared utility
(:mod:`opencli_wrap.core.equality`), so two specs parsed independently
from the same document compare equal and hash equal.  Mapping order is
irrelevant for equality but is preserved for iteration.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from opencli_wrap.core.equality import structural_equals, structural_hash


def _freeze_mapping(value: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if isinstance(value, MappingProxyType):
        return value
    return MappingProxyType(dict(value or {}))


def _freeze_tuple(value: Iterable[Any] | None) -> tuple[Any, ...]:
    return tuple(value or ())


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


class _Structural:
    """Mixin giving dataclass entities structural ``==`` and ``hash()``."""

    __slots__ = ()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return structural_equals(self, other)

    def __hash__(self) -> int:
        return structural_hash(self)


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True, eq=False)
class Info(_Structural):
    """Descriptive information about the described program."""

    title: str | None = None
    version: str | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True, eq=False)
class Argument(_Structural):
    """A positional argument (or the value slot of an option)."""

    name: str
    description: str | None = None
    required: bool = False
    ordinal: int = 0
    """Zero-based declared position within the owning command."""


@dataclass(frozen=True, slots=True, eq=False)
class Option(_Structural):
    """A named option.  Without sub-arguments it is a boolean flag."""

    name: str
    aliases: tuple[str, ...] = ()
    description: str | None = None
    arguments: tuple[Argument, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "aliases", _freeze_tuple(self.aliases))
        object.__setattr__(self, "arguments", _freeze_tuple(self.arguments))

    @property
    def flag(self) -> str:
        """Canonical spelling passed on the command line (``--name``)."""
        if self.name.startswith("-"):
            return self.name
        return f"--{self.name}"

    @property
    def takes_value(self) -> bool:
        return len(self.arguments) > 0


@dataclass(frozen=True, slots=True, eq=False)
class ExitCode(_Structural):
    code: int
    description: str | None = None


@dataclass(frozen=True, slots=True, eq=False)
class Example(_Structural):
    command: str
    description: str | None = None


# ---------------------------------------------------------------------------
# Command tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True, eq=False)
class Command(_Structural):
    """One node of the command tree.  Subcommands nest recursively."""

    description: str | None = None
    arguments: tuple[Argument, ...] = ()
    options: tuple[Option, ...] = ()
    commands: Mapping[str, Command] = field(default_factory=_empty_mapping)
    exit_codes: tuple[ExitCode, ...] = ()
    examples: tuple[Example, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", _freeze_tuple(self.arguments))
        object.__setattr__(self, "options", _freeze_tuple(self.options))
        object.__setattr__(self, "commands", _freeze_mapping(self.commands))
        object.__setattr__(self, "exit_codes", _freeze_tuple(self.exit_codes))
        object.__setattr__(self, "examples", _freeze_tuple(self.examples))

    def ordered_arguments(self) -> tuple[Argument, ...]:
        """Positional arguments sorted by ascending ordinal."""
        return tuple(sorted(self.arguments, key=lambda arg: arg.ordinal))


@dataclass(frozen=True, slots=True, eq=False)
class Spec(_Structural):
    """Root of an OpenCLI document."""

    opencli: str | None = None
    info: Info | None = None
    commands: Mapping[str, Command] = field(default_factory=_empty_mapping)
    options: tuple[Option, ...] = ()
    """Global options, accepted by every command."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "commands", _freeze_mapping(self.commands))
        object.__setattr__(self, "options", _freeze_tuple(self.options))

    def find(self, path: Sequence[str]) -> Command | None:
        """Resolve *path* to a command node, or ``None`` if it does not exist.

        An empty *path* addresses the program itself and also returns
        ``None``; callers distinguish the two cases by the path length.
        """
        commands = self.commands
        node: Command | None = None
        for segment in path:
            node = commands.get(segment)
            if node is None:
                return None
            commands = node.commands
        return node

    def walk(self) -> Iterable[tuple[tuple[str, ...], Command]]:
        """Yield ``(path, command)`` for every node, depth-first, in declared order."""
        return _walk((), self.commands)


def _walk(
    prefix: tuple[str, ...],
    commands: Mapping[str, Command],
) -> Iterable[tuple[tuple[str, ...], Command]]:
    for name, command in commands.items():
        path = (*prefix, name)
        yield path, command
        yield from _walk(path, command.commands)


def spec_equals(left: Spec, right: Spec) -> bool:
    """Structural equality used as the "spec unchanged" check."""
    return structural_equals(left, right)


def spec_hash(spec: Spec) -> int:
    """Cheap summary hash; a bucket key, not a digest."""
    return structural_hash(spec)
