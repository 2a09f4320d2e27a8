"""Argument compiler: logical call parameters to a process argv tail.

The compiler is a pure function of ``(spec, command path, parameters)``.
It holds no state, performs no I/O and never quotes or escapes: every
returned token is handed to the process-creation primitive as one
discrete element, so values containing spaces, quotes or shell
metacharacters pass through unchanged.

Token layout
------------
1. The command path segments.
2. Options in the spec's declared order: global options first, then the
   resolved command's own options.  Boolean flags emit their canonical
   spelling when ``True``; value options emit ``flag, value`` when the
   value is a non-empty string.
3. Positional arguments in ascending ordinal order.

``positionals_first=True`` swaps steps 2 and 3 for programs that expect
positionals right after the command path.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from opencli_wrap.core.models import Argument, Command, Option, Spec
from opencli_wrap.exceptions import InvalidParameterError, MissingArgumentError, UnknownCommandError

ParameterValue = str | bool | None
"""``None`` means absent.  Booleans are only valid for flags."""


def parameter_key(name: str) -> str:
    """Normalize an option or argument name to its parameter key.

    ``--dry-run``, ``dry-run`` and ``dry_run`` all map to ``dry_run``.
    """
    return name.lstrip("-").replace("-", "_")


def _claim_key(name: str, used: set[str]) -> str:
    base = parameter_key(name)
    key = base
    suffix = 1
    while key in used:
        key = f"{base}_{suffix}"
        suffix += 1
    used.add(key)
    return key


@dataclass(frozen=True, slots=True)
class CommandParameters:
    """Options and positionals accepted at one command path.

    Every entry has a key unique within the command.  Positional arguments
    claim their keys first, in ordinal order; an option whose key is
    already taken gets a numeric suffix (``name`` then ``name_1``).
    """

    options: tuple[Option, ...]
    arguments: tuple[Argument, ...]
    option_keys: tuple[str, ...]
    argument_keys: tuple[str, ...]

    @property
    def keys(self) -> tuple[str, ...]:
        return (*self.option_keys, *self.argument_keys)


def command_parameters(spec: Spec, command: Command | None) -> CommandParameters:
    """Collect the parameters of *command* (``None`` for the program itself).

    Global options come before the command's own options; an option whose
    flag was already collected is skipped.
    """
    options: list[Option] = []
    seen_flags: set[str] = set()
    for option in (*spec.options, *(command.options if command else ())):
        if option.flag in seen_flags:
            continue
        seen_flags.add(option.flag)
        options.append(option)

    arguments = command.ordered_arguments() if command else ()
    used: set[str] = set()
    argument_keys = tuple(_claim_key(argument.name, used) for argument in arguments)
    option_keys = tuple(_claim_key(option.name, used) for option in options)
    return CommandParameters(
        options=tuple(options),
        arguments=arguments,
        option_keys=option_keys,
        argument_keys=argument_keys,
    )


class ArgumentCompiler:
    """Compiles calls against one parsed :class:`Spec`.

    Stateless apart from the read-only spec reference; safe to share
    between any number of concurrent callers.
    """

    def __init__(self, spec: Spec) -> None:
        self._spec: Spec = spec

    @property
    def spec(self) -> Spec:
        return self._spec

    def compile(
        self,
        path: Sequence[str],
        parameters: Mapping[str, ParameterValue] | None = None,
        positionals: Sequence[str | None] | None = None,
        *,
        positionals_first: bool = False,
    ) -> tuple[str, ...]:
        """Return the argv tail for *path* called with *parameters*.

        Parameters
        ----------
        path:
            Command names from the root; empty addresses the program itself.
        parameters:
            Sparse mapping of parameter key to value.  Names are matched
            after :func:`parameter_key` normalization; an option sharing
            its name with a positional is addressed by its suffixed key
            (see :class:`CommandParameters`).
        positionals:
            Optional positional values aligned to ascending ordinals.  A
            positional may be given here or by name, not both.
        positionals_first:
            Emit positional values before options.

        Raises
        ------
        UnknownCommandError
            If *path* does not exist in the spec.
        InvalidParameterError
            For unknown names or values of the wrong type.
        MissingArgumentError
            If a required positional (or a positional before a supplied
            one) is missing.
        """
        resolved = self._resolve(path)
        values = _normalize_parameters(parameters or {}, resolved)

        option_tokens = _option_tokens(resolved, values)
        positional_tokens = _positional_tokens(resolved, values, positionals)

        tokens: list[str] = list(path)
        if positionals_first:
            tokens.extend(positional_tokens)
            tokens.extend(option_tokens)
        else:
            tokens.extend(option_tokens)
            tokens.extend(positional_tokens)
        return tuple(tokens)

    def _resolve(self, path: Sequence[str]) -> CommandParameters:
        command: Command | None = None
        if path:
            command = self._spec.find(path)
            if command is None:
                joined = " ".join(path)
                raise UnknownCommandError(
                    joined,
                    hint=f"Known commands: {', '.join(sorted(self._spec.commands)) or 'none'}",
                )
        return command_parameters(self._spec, command)


# ---------------------------------------------------------------------------
# Emission (pure)
# ---------------------------------------------------------------------------

def _normalize_parameters(
    parameters: Mapping[str, ParameterValue],
    resolved: CommandParameters,
) -> dict[str, ParameterValue]:
    known = set(resolved.keys)

    values: dict[str, ParameterValue] = {}
    for name, value in parameters.items():
        key = parameter_key(name)
        if key not in known:
            raise InvalidParameterError(
                name,
                f"Unknown parameter: {name}",
                hint=f"Accepted parameters: {', '.join(sorted(known)) or 'none'}",
            )
        if key in values:
            raise InvalidParameterError(name, f"Parameter given twice: {name}")
        values[key] = value
    return values


def _option_tokens(
    resolved: CommandParameters,
    values: Mapping[str, ParameterValue],
) -> list[str]:
    tokens: list[str] = []
    for option, key in zip(resolved.options, resolved.option_keys):
        value = values.get(key)
        if option.takes_value:
            if value is None or value == "":
                continue
            if not isinstance(value, str):
                raise InvalidParameterError(
                    option.name, f"Option {option.flag} takes a string value.",
                )
            tokens.extend((option.flag, value))
        else:
            if value is not None and not isinstance(value, bool):
                raise InvalidParameterError(
                    option.name, f"Flag {option.flag} accepts only true or false.",
                )
            if value:
                tokens.append(option.flag)
    return tokens


def _positional_tokens(
    resolved: CommandParameters,
    values: Mapping[str, ParameterValue],
    positionals: Sequence[str | None] | None,
) -> list[str]:
    arguments = resolved.arguments
    if positionals is not None and len(positionals) > len(arguments):
        raise InvalidParameterError(
            "positionals",
            f"Expected at most {len(arguments)} positional values, got {len(positionals)}.",
        )

    supplied: list[str | None] = []
    for index, (argument, key) in enumerate(zip(arguments, resolved.argument_keys)):
        by_name = values.get(key)
        by_position = positionals[index] if positionals is not None and index < len(positionals) else None
        if by_name is not None and by_position is not None:
            raise InvalidParameterError(
                argument.name, f"Argument '{argument.name}' supplied both by name and by position.",
            )
        value = by_name if by_name is not None else by_position
        if value is not None and not isinstance(value, str):
            raise InvalidParameterError(argument.name, f"Argument '{argument.name}' must be a string.")
        if value == "" and not argument.required:
            value = None
        supplied.append(value)

    last_supplied = max((i for i, v in enumerate(supplied) if v is not None), default=-1)

    tokens: list[str] = []
    for index, (argument, value) in enumerate(zip(arguments, supplied)):
        if value is None:
            if argument.required:
                raise MissingArgumentError(argument.name)
            if index < last_supplied:
                raise MissingArgumentError(
                    argument.name,
                    f"Argument '{argument.name}' must be supplied before later positional arguments.",
                    hint="Only trailing optional arguments may be omitted.",
                )
            continue
        tokens.append(value)
    return tokens


def compile_arguments(
    spec: Spec,
    path: Sequence[str],
    parameters: Mapping[str, ParameterValue] | None = None,
    positionals: Sequence[str | None] | None = None,
    *,
    positionals_first: bool = False,
) -> tuple[str, ...]:
    """Functional shortcut for :meth:`ArgumentCompiler.compile`."""
    return ArgumentCompiler(spec).compile(
        path, parameters, positionals, positionals_first=positionals_first,
    )
