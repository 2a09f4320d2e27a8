"""Tests for the spec model (core/models.py, core/equality.py).

All models are frozen dataclasses; these tests verify immutability,
structural equality and hashing, and tree navigation.
"""

from __future__ import annotations

import pytest

from opencli_wrap.core.equality import structural_equals, structural_hash
from opencli_wrap.core.models import (
    Argument,
    Command,
    Info,
    Option,
    Spec,
    spec_equals,
    spec_hash,
)
from opencli_wrap.core.spec_parser import parse_spec


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def _make_command(**overrides: object) -> Command:
    defaults: dict[str, object] = {
        "description": "Add a new task",
        "arguments": (Argument(name="title", required=True, ordinal=0),),
        "options": (Option(name="priority", arguments=(Argument(name="level"),)),),
    }
    defaults.update(overrides)
    return Command(**defaults)  # type: ignore[arg-type]


def _make_spec(**overrides: object) -> Spec:
    defaults: dict[str, object] = {
        "opencli": "0.1",
        "info": Info(title="TaskManager", version="1.0.0"),
        "commands": {"task": Command(commands={"add": _make_command()}), "stats": Command()},
        "options": (Option(name="verbose"),),
    }
    defaults.update(overrides)
    return Spec(**defaults)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Immutability
# ---------------------------------------------------------------------------

class TestImmutability:
    def test_spec_frozen(self) -> None:
        spec = _make_spec()
        with pytest.raises(AttributeError):
            spec.opencli = "1.0"  # type: ignore[misc]

    def test_commands_mapping_is_read_only(self) -> None:
        spec = _make_spec()
        with pytest.raises(TypeError):
            spec.commands["new"] = Command()  # type: ignore[index]

    def test_lists_become_tuples(self) -> None:
        command = Command(arguments=[Argument(name="a")], options=[Option(name="x")])  # type: ignore[arg-type]
        assert isinstance(command.arguments, tuple)
        assert isinstance(command.options, tuple)

    def test_source_dict_mutation_does_not_leak(self) -> None:
        commands = {"stats": Command()}
        spec = Spec(commands=commands)
        commands["extra"] = Command()
        assert list(spec.commands) == ["stats"]


# ---------------------------------------------------------------------------
# Structural equality and hashing
# ---------------------------------------------------------------------------

class TestStructuralEquality:
    def test_independent_builds_are_equal_and_hash_equal(self) -> None:
        a = _make_spec()
        b = _make_spec()
        assert a is not b
        assert a == b
        assert spec_equals(a, b)
        assert hash(a) == hash(b)
        assert spec_hash(a) == spec_hash(b)

    def test_parsed_twice_is_equal(self, sample_spec_text: str) -> None:
        a = parse_spec(sample_spec_text)
        b = parse_spec(sample_spec_text)
        assert a == b
        assert spec_hash(a) == spec_hash(b)

    def test_mapping_order_is_irrelevant(self) -> None:
        a = _make_spec(commands={"a": Command(), "b": Command(description="B")})
        b = _make_spec(commands={"b": Command(description="B"), "a": Command()})
        assert a == b
        assert hash(a) == hash(b)

    def test_sequence_order_matters(self) -> None:
        a = _make_spec(options=(Option(name="x"), Option(name="y")))
        b = _make_spec(options=(Option(name="y"), Option(name="x")))
        assert a != b

    def test_deep_difference_detected(self) -> None:
        changed = _make_command(description="Add a task")
        a = _make_spec()
        b = _make_spec(commands={"task": Command(commands={"add": changed}), "stats": Command()})
        assert a != b
        assert not spec_equals(a, b)

    def test_int_never_equals_bool(self) -> None:
        assert not structural_equals(1, True)
        assert not structural_equals(0, False)

    def test_different_types_are_unequal(self) -> None:
        assert Argument(name="x") != Option(name="x")

    def test_extra_key_is_unequal(self) -> None:
        assert not structural_equals({"a": 1}, {"a": 1, "b": 2})

    def test_none_versus_empty(self) -> None:
        assert Spec(info=None) != Spec(info=Info())

    def test_hash_consistent_with_equality_on_leaves(self) -> None:
        assert structural_hash(Argument(name="t", required=True)) == structural_hash(
            Argument(name="t", required=True)
        )

    def test_usable_as_dict_key(self) -> None:
        cache = {_make_spec(): "table"}
        assert cache[_make_spec()] == "table"


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

class TestOption:
    def test_flag_adds_prefix(self) -> None:
        assert Option(name="priority").flag == "--priority"

    def test_flag_keeps_explicit_prefix(self) -> None:
        assert Option(name="--priority").flag == "--priority"
        assert Option(name="-p").flag == "-p"

    def test_takes_value(self) -> None:
        assert Option(name="priority", arguments=(Argument(name="level"),)).takes_value
        assert not Option(name="verbose").takes_value


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

class TestNavigation:
    def test_find_nested(self) -> None:
        spec = _make_spec()
        found = spec.find(["task", "add"])
        assert found is not None
        assert found.description == "Add a new task"

    def test_find_missing(self) -> None:
        assert _make_spec().find(["task", "remove"]) is None

    def test_find_empty_path(self) -> None:
        assert _make_spec().find([]) is None

    def test_walk_is_depth_first_in_declared_order(self) -> None:
        paths = [path for path, _ in _make_spec().walk()]
        assert paths == [("task",), ("task", "add"), ("stats",)]

    def test_ordered_arguments(self) -> None:
        command = Command(
            arguments=(Argument(name="second", ordinal=1), Argument(name="first", ordinal=0)),
        )
        assert [arg.name for arg in command.ordered_arguments()] == ["first", "second"]
