"""Tests for the argument compiler (core/compiler.py).

Every test is a pure function call.  These tests exercise:

* Token layout (path, options, positionals) in both orders
* Emission rules for flags and value options
* Positional handling by name and by position
* Rejection of unknown names, wrong types and missing arguments
* Determinism and shell-metacharacter passthrough
"""

from __future__ import annotations

import pytest

from opencli_wrap.core.compiler import (
    ArgumentCompiler,
    command_parameters,
    compile_arguments,
    parameter_key,
)
from opencli_wrap.core.models import Spec
from opencli_wrap.core.spec_parser import parse_spec
from opencli_wrap.exceptions import (
    CompileError,
    InvalidParameterError,
    MissingArgumentError,
    UnknownCommandError,
)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

class TestLayout:
    def test_command_without_parameters(self, sample_spec: Spec) -> None:
        assert compile_arguments(sample_spec, ["stats"], {}) == ("stats",)

    def test_options_before_positionals_by_default(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(
            sample_spec, ["task", "add"], {"title": "Buy milk", "priority": "high"},
        )
        assert tokens == ("task", "add", "--priority", "high", "Buy milk")

    def test_positionals_first(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(
            sample_spec,
            ["task", "add"],
            {"title": "Buy milk", "priority": "high"},
            positionals_first=True,
        )
        assert tokens == ("task", "add", "Buy milk", "--priority", "high")

    def test_global_options_precede_command_options(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(
            sample_spec,
            ["task", "add"],
            {"title": "x", "priority": "low", "verbose": True, "config": "c.json"},
        )
        assert tokens == (
            "task", "add", "--verbose", "--config", "c.json", "--priority", "low", "x",
        )

    def test_empty_path_takes_global_options(self, sample_spec: Spec) -> None:
        assert compile_arguments(sample_spec, [], {"verbose": True}) == ("--verbose",)

    def test_parent_command_is_callable(self, sample_spec: Spec) -> None:
        assert compile_arguments(sample_spec, ["task"]) == ("task",)

    def test_positionals_in_ordinal_order(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(sample_spec, ["task", "complete"], {"note": "done", "id": "7"})
        assert tokens == ("task", "complete", "7", "done")


# ---------------------------------------------------------------------------
# Emission rules
# ---------------------------------------------------------------------------

class TestEmission:
    @pytest.mark.parametrize("value", [None, ""])
    def test_absent_value_option_is_omitted(self, sample_spec: Spec, value: str | None) -> None:
        tokens = compile_arguments(sample_spec, ["task", "add"], {"title": "x", "priority": value})
        assert tokens == ("task", "add", "x")

    @pytest.mark.parametrize("value", ["0", "false"])
    def test_falsy_looking_string_is_emitted(self, sample_spec: Spec, value: str) -> None:
        tokens = compile_arguments(sample_spec, ["task", "add"], {"title": "x", "priority": value})
        assert tokens == ("task", "add", "--priority", value, "x")

    def test_flag_true_emits_one_token(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(sample_spec, ["task", "add"], {"title": "x", "dry_run": True})
        assert tokens.count("--dry-run") == 1

    @pytest.mark.parametrize("value", [False, None])
    def test_flag_false_or_absent_emits_nothing(self, sample_spec: Spec, value: bool | None) -> None:
        tokens = compile_arguments(sample_spec, ["task", "add"], {"title": "x", "dry_run": value})
        assert "--dry-run" not in tokens

    def test_value_with_shell_metacharacters_passes_through(self, sample_spec: Spec) -> None:
        title = "Buy \"milk\"; rm -rf / && echo $HOME"
        tokens = compile_arguments(sample_spec, ["task", "add"], {"title": title})
        assert tokens[-1] == title

    def test_optional_empty_positional_is_omitted(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(sample_spec, ["task", "complete"], {"id": "7", "note": ""})
        assert tokens == ("task", "complete", "7")

    def test_compile_is_deterministic(self, sample_spec: Spec) -> None:
        compiler = ArgumentCompiler(sample_spec)
        params = {"title": "x", "priority": "high", "dry_run": True, "verbose": True}
        assert compiler.compile(["task", "add"], params) == compiler.compile(["task", "add"], params)

    def test_returns_tuple_of_str(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(sample_spec, ["task", "add"], {"title": "x"})
        assert isinstance(tokens, tuple)
        assert all(isinstance(token, str) for token in tokens)


# ---------------------------------------------------------------------------
# Parameter names
# ---------------------------------------------------------------------------

class TestParameterNames:
    @pytest.mark.parametrize("name", ["--dry-run", "dry-run", "dry_run"])
    def test_parameter_key_normalizes(self, name: str) -> None:
        assert parameter_key(name) == "dry_run"

    def test_dashed_names_accepted(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(sample_spec, ["task", "add"], {"title": "x", "--dry-run": True})
        assert "--dry-run" in tokens

    def test_unknown_parameter(self, sample_spec: Spec) -> None:
        with pytest.raises(InvalidParameterError, match="Unknown parameter: colour") as exc_info:
            compile_arguments(sample_spec, ["task", "add"], {"title": "x", "colour": "red"})
        assert exc_info.value.parameter == "colour"
        assert exc_info.value.hint is not None and "priority" in exc_info.value.hint

    def test_same_key_twice(self, sample_spec: Spec) -> None:
        with pytest.raises(InvalidParameterError, match="given twice"):
            compile_arguments(sample_spec, ["task", "add"], {"title": "x", "dry-run": True, "dry_run": True})


# ---------------------------------------------------------------------------
# Option and positional sharing a name
# ---------------------------------------------------------------------------

_GREET = (
    '{"commands": {"greet": {'
    '"arguments": [{"name": "name", "required": true}],'
    '"options": [{"name": "name", "arguments": [{"name": "value"}]}, {"name": "loud"}]}}}'
)


class TestSharedNames:
    def test_positional_keeps_plain_key(self) -> None:
        spec = parse_spec(_GREET)
        assert compile_arguments(spec, ["greet"], {"name": "Ann"}) == ("greet", "Ann")

    def test_option_gets_suffixed_key(self) -> None:
        spec = parse_spec(_GREET)
        tokens = compile_arguments(spec, ["greet"], {"name": "Ann", "name_1": "Bob"})
        assert tokens == ("greet", "--name", "Bob", "Ann")

    def test_keys_are_unique_per_command(self) -> None:
        spec = parse_spec(_GREET)
        accepted = command_parameters(spec, spec.find(["greet"]))
        assert accepted.argument_keys == ("name",)
        assert accepted.option_keys == ("name_1", "loud")
        assert len(set(accepted.keys)) == len(accepted.keys)

    def test_suffix_skips_taken_keys(self) -> None:
        spec = parse_spec(
            '{"commands": {"x": {'
            '"arguments": [{"name": "tag"}, {"name": "tag_1"}],'
            '"options": [{"name": "tag"}]}}}'
        )
        accepted = command_parameters(spec, spec.find(["x"]))
        assert accepted.option_keys == ("tag_2",)
        assert compile_arguments(spec, ["x"], {"tag_2": True}) == ("x", "--tag")

    def test_suffixed_key_is_not_accepted_without_collision(self, sample_spec: Spec) -> None:
        with pytest.raises(InvalidParameterError, match="Unknown parameter: title_1"):
            compile_arguments(sample_spec, ["task", "add"], {"title": "x", "title_1": "y"})


# ---------------------------------------------------------------------------
# Positionals
# ---------------------------------------------------------------------------

class TestPositionals:
    def test_by_position(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(sample_spec, ["task", "complete"], positionals=["7", "done"])
        assert tokens == ("task", "complete", "7", "done")

    def test_by_position_with_trailing_none(self, sample_spec: Spec) -> None:
        tokens = compile_arguments(sample_spec, ["task", "complete"], positionals=["7", None])
        assert tokens == ("task", "complete", "7")

    def test_too_many_positionals(self, sample_spec: Spec) -> None:
        with pytest.raises(InvalidParameterError, match="at most 2"):
            compile_arguments(sample_spec, ["task", "complete"], positionals=["1", "2", "3"])

    def test_both_by_name_and_position(self, sample_spec: Spec) -> None:
        with pytest.raises(InvalidParameterError, match="both by name and by position"):
            compile_arguments(sample_spec, ["task", "complete"], {"id": "1"}, positionals=["2"])

    def test_missing_required(self, sample_spec: Spec) -> None:
        with pytest.raises(MissingArgumentError) as exc_info:
            compile_arguments(sample_spec, ["task", "add"], {"priority": "high"})
        assert exc_info.value.argument == "title"

    def test_missing_required_before_supplied_optional(self, sample_spec: Spec) -> None:
        with pytest.raises(MissingArgumentError) as exc_info:
            compile_arguments(sample_spec, ["task", "complete"], {"note": "n"})
        assert exc_info.value.argument == "id"

    def test_empty_required_is_passed_as_empty_token(self, sample_spec: Spec) -> None:
        assert compile_arguments(sample_spec, ["task", "add"], {"title": ""}) == ("task", "add", "")

    def test_gap_before_supplied_optional(self) -> None:
        spec = parse_spec(
            '{"commands": {"cp": {"arguments": ['
            '{"name": "src", "required": true},'
            '{"name": "mode"},'
            '{"name": "dst"}]}}}'
        )
        with pytest.raises(MissingArgumentError, match="mode") as exc_info:
            compile_arguments(spec, ["cp"], {"src": "a", "dst": "b"})
        assert exc_info.value.hint == "Only trailing optional arguments may be omitted."

    def test_non_string_positional(self, sample_spec: Spec) -> None:
        with pytest.raises(InvalidParameterError, match="must be a string"):
            compile_arguments(sample_spec, ["task", "add"], {"title": True})


# ---------------------------------------------------------------------------
# Type and command errors
# ---------------------------------------------------------------------------

class TestErrors:
    def test_unknown_command(self, sample_spec: Spec) -> None:
        with pytest.raises(UnknownCommandError, match="task remove") as exc_info:
            compile_arguments(sample_spec, ["task", "remove"])
        assert exc_info.value.command == "task remove"

    def test_bool_for_value_option(self, sample_spec: Spec) -> None:
        with pytest.raises(InvalidParameterError, match="takes a string value"):
            compile_arguments(sample_spec, ["task", "add"], {"title": "x", "priority": True})

    def test_string_for_flag(self, sample_spec: Spec) -> None:
        with pytest.raises(InvalidParameterError, match="accepts only true or false"):
            compile_arguments(sample_spec, ["task", "add"], {"title": "x", "dry_run": "yes"})

    def test_all_compile_errors_share_base(self) -> None:
        for cls in (InvalidParameterError, MissingArgumentError, UnknownCommandError):
            assert issubclass(cls, CompileError)
