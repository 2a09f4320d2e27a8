"""Parse OpenCLI JSON text into the immutable :class:`~opencli_wrap.core.models.Spec`.

Guarantees
----------
* Pure: takes text, returns models.  Reading files is the job of
  :mod:`opencli_wrap.infra.spec_loader`.
* Every malformed input raises :class:`~opencli_wrap.exceptions.SpecParseError`
  naming the JSON location of the problem; nothing else escapes.
* Unknown fields are ignored so newer spec revisions still load.
"""

from __future__ import annotations

import json
from typing import Any

from opencli_wrap.core.models import Argument, Command, Example, ExitCode, Info, Option, Spec
from opencli_wrap.exceptions import SpecParseError


def parse_spec(raw_text: str) -> Spec:
    """Parse *raw_text* into a validated :class:`Spec`.

    Raises
    ------
    SpecParseError
        When the text is not JSON, a section has the wrong type, a
        required field is missing, a key is duplicated, or the command
        tree violates its naming / ordinal invariants.
    """
    try:
        root = json.loads(raw_text, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as exc:
        raise SpecParseError(
            f"Spec is not valid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})",
        ) from exc

    if not isinstance(root, dict):
        raise SpecParseError("Spec root must be a JSON object.")

    info_raw = _optional(root, "info", dict, "$")
    return Spec(
        opencli=_optional(root, "opencli", str, "$"),
        info=_parse_info(info_raw) if info_raw is not None else None,
        commands=_parse_commands(root.get("commands"), "$.commands"),
        options=_parse_options(root.get("options"), "$.options"),
    )


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------

def _parse_info(raw: dict[str, Any]) -> Info:
    return Info(
        title=_optional(raw, "title", str, "$.info"),
        version=_optional(raw, "version", str, "$.info"),
        description=_optional(raw, "description", str, "$.info"),
    )


def _parse_commands(raw: object, where: str) -> dict[str, Command]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SpecParseError(f"{where} must be an object mapping command names to commands.")

    seen: dict[str, str] = {}
    commands: dict[str, Command] = {}
    for name, body in raw.items():
        if not name.strip():
            raise SpecParseError(f"{where} contains an empty command name.")
        folded = name.casefold()
        if folded in seen:
            raise SpecParseError(
                f"{where} declares command '{name}' twice (also as '{seen[folded]}').",
                hint="Command names must be unique at each level, ignoring case.",
            )
        seen[folded] = name
        commands[name] = _parse_command(body, f"{where}.{name}")
    return commands


def _parse_command(raw: object, where: str) -> Command:
    if not isinstance(raw, dict):
        raise SpecParseError(f"{where} must be an object.")

    arguments = _parse_arguments(raw.get("arguments"), f"{where}.arguments")
    _validate_positionals(arguments, where)

    return Command(
        description=_optional(raw, "description", str, where),
        arguments=arguments,
        options=_parse_options(raw.get("options"), f"{where}.options"),
        commands=_parse_commands(raw.get("commands"), f"{where}.commands"),
        exit_codes=_parse_exit_codes(raw.get("exitCodes"), f"{where}.exitCodes"),
        examples=_parse_examples(raw.get("examples"), f"{where}.examples"),
    )


def _parse_arguments(raw: object, where: str) -> tuple[Argument, ...]:
    items = _array(raw, where)
    arguments: list[Argument] = []
    for index, item in enumerate(items):
        at = f"{where}[{index}]"
        if not isinstance(item, dict):
            raise SpecParseError(f"{at} must be an object.")
        ordinal = _optional(item, "ordinal", int, at)
        arguments.append(
            Argument(
                name=_required(item, "name", str, at),
                description=_optional(item, "description", str, at),
                required=bool(_optional(item, "required", bool, at)),
                ordinal=index if ordinal is None else ordinal,
            )
        )
    return tuple(arguments)


def _parse_options(raw: object, where: str) -> tuple[Option, ...]:
    items = _array(raw, where)
    options: list[Option] = []
    for index, item in enumerate(items):
        at = f"{where}[{index}]"
        if not isinstance(item, dict):
            raise SpecParseError(f"{at} must be an object.")
        aliases = _array(item.get("aliases"), f"{at}.aliases")
        if not all(isinstance(alias, str) for alias in aliases):
            raise SpecParseError(f"{at}.aliases must contain only strings.")
        options.append(
            Option(
                name=_required(item, "name", str, at),
                aliases=tuple(aliases),
                description=_optional(item, "description", str, at),
                arguments=_parse_arguments(item.get("arguments"), f"{at}.arguments"),
            )
        )
    return tuple(options)


def _parse_exit_codes(raw: object, where: str) -> tuple[ExitCode, ...]:
    codes: list[ExitCode] = []
    for index, item in enumerate(_array(raw, where)):
        at = f"{where}[{index}]"
        if not isinstance(item, dict):
            raise SpecParseError(f"{at} must be an object.")
        codes.append(
            ExitCode(
                code=_required(item, "code", int, at),
                description=_optional(item, "description", str, at),
            )
        )
    return tuple(codes)


def _parse_examples(raw: object, where: str) -> tuple[Example, ...]:
    examples: list[Example] = []
    for index, item in enumerate(_array(raw, where)):
        at = f"{where}[{index}]"
        if not isinstance(item, dict):
            raise SpecParseError(f"{at} must be an object.")
        examples.append(
            Example(
                command=_required(item, "command", str, at),
                description=_optional(item, "description", str, at),
            )
        )
    return tuple(examples)


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------

def _validate_positionals(arguments: tuple[Argument, ...], where: str) -> None:
    """Ordinals are unique and no optional positional precedes a required one."""
    ordinals = [arg.ordinal for arg in arguments]
    if len(set(ordinals)) != len(ordinals):
        raise SpecParseError(f"{where}.arguments declares the same ordinal twice.")

    optional_seen: Argument | None = None
    for arg in sorted(arguments, key=lambda a: a.ordinal):
        if not arg.required:
            optional_seen = optional_seen or arg
        elif optional_seen is not None:
            raise SpecParseError(
                f"{where}: required argument '{arg.name}' follows optional "
                f"argument '{optional_seen.name}'.",
                hint="Only trailing positional arguments may be optional.",
            )


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise SpecParseError(f"Duplicate key '{key}' in spec object.")
        result[key] = value
    return result


def _array(raw: object, where: str) -> list[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SpecParseError(f"{where} must be an array.")
    return raw


def _check_type(value: object, expected: type, key: str, where: str) -> None:
    # bool is a subclass of int; an ordinal of ``true`` is malformed.
    if expected is int and isinstance(value, bool):
        raise SpecParseError(f"{where}.{key} must be an integer.")
    if not isinstance(value, expected):
        raise SpecParseError(f"{where}.{key} must be of type {_json_type(expected)}.")


def _optional(raw: dict[str, Any], key: str, expected: type, where: str) -> Any:
    value = raw.get(key)
    if value is None:
        return None
    _check_type(value, expected, key, where)
    return value


def _required(raw: dict[str, Any], key: str, expected: type, where: str) -> Any:
    value = raw.get(key)
    if value is None:
        raise SpecParseError(f"{where} is missing required field '{key}'.")
    _check_type(value, expected, key, where)
    if expected is str and not value.strip():
        raise SpecParseError(f"{where}.{key} must not be empty.")
    return value


def _json_type(expected: type) -> str:
    return {str: "string", int: "integer", bool: "boolean", dict: "object", list: "array"}.get(
        expected, expected.__name__,
    )
