"""Tests for the response envelope (core/response.py).

Coverage:
* Success / error construction and trimming.
* Wire format keys, timestamp shape and metadata omission.
* Decoding, including malformed input.
* Text rendering in every ResponseFormat.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from opencli_wrap.core.response import CliResponse, ResponseFormat, format_response
from opencli_wrap.exceptions import ResponseFormatError

_FIXED = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_success_trims_trailing_whitespace(self) -> None:
        response = CliResponse.create_success("out   \n\r\n")
        assert response.output == "out"
        assert response.success is True
        assert response.exit_code == 0
        assert response.error == ""

    def test_success_keeps_leading_whitespace(self) -> None:
        assert CliResponse.create_success("  indented\n").output == "  indented"

    def test_error_fields(self) -> None:
        response = CliResponse.create_error("boom", 126, "partial")
        assert response.to_dict() == {
            "success": False,
            "exitCode": 126,
            "output": "partial",
            "error": "boom",
            "timestamp": response.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }

    def test_error_defaults(self) -> None:
        response = CliResponse.create_error("boom\n")
        assert response.exit_code == -1
        assert response.error == "boom"
        assert response.output == ""

    def test_timestamp_is_utc_whole_seconds(self) -> None:
        response = CliResponse.create_success("x")
        assert response.timestamp.tzinfo is not None
        assert response.timestamp.utcoffset() == timezone.utc.utcoffset(None)
        assert response.timestamp.microsecond == 0

    def test_naive_timestamp_is_treated_as_utc(self) -> None:
        response = CliResponse(True, 0, "", "", timestamp=datetime(2024, 5, 1, 12, 30, 0, 999))
        assert response.timestamp == _FIXED

    def test_frozen(self) -> None:
        response = CliResponse.create_success("x")
        with pytest.raises(AttributeError):
            response.output = "y"  # type: ignore[misc]

    def test_with_changes_returns_new_instance(self) -> None:
        original = CliResponse.create_success("x")
        changed = original.with_changes(output="y")
        assert changed.output == "y"
        assert original.output == "x"
        assert changed.timestamp == original.timestamp

    def test_metadata_is_read_only(self) -> None:
        response = CliResponse.create_success("x", metadata={"outcome": "exited"})
        assert response.metadata is not None
        with pytest.raises(TypeError):
            response.metadata["outcome"] = "other"  # type: ignore[index]

    def test_hashable_with_metadata(self) -> None:
        first = CliResponse(True, 0, "x", "", timestamp=_FIXED, metadata={"outcome": "exited"})
        second = CliResponse(True, 0, "x", "", timestamp=_FIXED, metadata={"outcome": "exited"})
        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_metadata_still_counts_for_equality(self) -> None:
        first = CliResponse(True, 0, "x", "", timestamp=_FIXED, metadata={"outcome": "exited"})
        second = first.with_changes(metadata={"outcome": "cancelled"})
        assert first != second
        assert hash(first) == hash(second)


# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------

class TestSerialization:
    def test_keys_and_timestamp_shape(self) -> None:
        response = CliResponse(True, 0, "out", "", timestamp=_FIXED)
        data = json.loads(response.to_json())
        assert list(data) == ["success", "exitCode", "output", "error", "timestamp"]
        assert data["timestamp"] == "2024-05-01T12:30:00Z"

    def test_metadata_omitted_when_none(self) -> None:
        assert "metadata" not in CliResponse.create_success("x").to_dict()

    def test_metadata_included_when_present(self) -> None:
        data = CliResponse.create_success("x", metadata={"durationMs": 5}).to_dict()
        assert data["metadata"] == {"durationMs": 5}

    def test_to_json_indents_by_default(self) -> None:
        assert "\n  \"success\"" in CliResponse.create_success("x").to_json()

    def test_round_trip_is_value_equal(self) -> None:
        response = CliResponse.create_error("boom", 3, "partial", {"outcome": "exited"})
        decoded = CliResponse.from_json(response.to_json())
        assert decoded == response
        assert decoded.to_json() == response.to_json()

    def test_round_trip_without_metadata(self) -> None:
        decoded = CliResponse.from_json(CliResponse.create_success("x").to_json())
        assert decoded.metadata is None

    def test_unicode_output_preserved(self) -> None:
        response = CliResponse.create_success("héllo ✓")
        assert CliResponse.from_json(response.to_json()).output == "héllo ✓"

    def test_offset_timestamp_accepted(self) -> None:
        data = CliResponse.create_success("x").to_dict()
        data["timestamp"] = "2024-05-01T14:30:00+02:00"
        assert CliResponse.from_dict(data).timestamp == _FIXED


class TestDeserializationErrors:
    def test_invalid_json(self) -> None:
        with pytest.raises(ResponseFormatError, match="not valid JSON"):
            CliResponse.from_json("{")

    def test_not_an_object(self) -> None:
        with pytest.raises(ResponseFormatError, match="must be an object"):
            CliResponse.from_json("[1]")

    @pytest.mark.parametrize("key", ["success", "exitCode", "output", "error", "timestamp"])
    def test_missing_key(self, key: str) -> None:
        data = CliResponse.create_success("x").to_dict()
        del data[key]
        with pytest.raises(ResponseFormatError, match=key):
            CliResponse.from_dict(data)

    def test_wrong_exit_code_type(self) -> None:
        data = CliResponse.create_success("x").to_dict()
        data["exitCode"] = True
        with pytest.raises(ResponseFormatError, match="exitCode"):
            CliResponse.from_dict(data)

    def test_bad_timestamp(self) -> None:
        data = CliResponse.create_success("x").to_dict()
        data["timestamp"] = "yesterday"
        with pytest.raises(ResponseFormatError, match="Invalid timestamp"):
            CliResponse.from_dict(data)

    def test_bad_metadata(self) -> None:
        data = CliResponse.create_success("x").to_dict()
        data["metadata"] = [1, 2]
        with pytest.raises(ResponseFormatError, match="metadata"):
            CliResponse.from_dict(data)


# ---------------------------------------------------------------------------
# Text rendering
# ---------------------------------------------------------------------------

class TestFormatResponse:
    def test_json_is_default(self) -> None:
        response = CliResponse.create_success("x")
        assert format_response(response) == response.to_json()

    def test_raw_success(self) -> None:
        assert format_response(CliResponse.create_success("x"), ResponseFormat.RAW) == "x"

    def test_raw_error_prefers_error_text(self) -> None:
        response = CliResponse.create_error("boom", 1, "partial")
        assert format_response(response, ResponseFormat.RAW) == "boom"

    def test_raw_error_falls_back_to_output(self) -> None:
        response = CliResponse.create_error("", 1, "partial")
        assert format_response(response, ResponseFormat.RAW) == "partial"

    def test_plain_success(self) -> None:
        assert format_response(CliResponse.create_success("x"), ResponseFormat.PLAIN) == "x"

    def test_plain_failure_report(self) -> None:
        response = CliResponse.create_error("boom", 2, "partial")
        assert format_response(response, ResponseFormat.PLAIN) == (
            "Command failed with exit code 2\nError:\nboom\nOutput:\npartial"
        )

    def test_plain_cancelled(self) -> None:
        response = CliResponse.create_error(
            "Command execution was cancelled", metadata={"outcome": "cancelled"},
        )
        assert format_response(response, ResponseFormat.PLAIN).startswith("Command was cancelled")

    def test_plain_timed_out(self) -> None:
        response = CliResponse.create_error("late", metadata={"outcome": "timed_out"})
        assert format_response(response, ResponseFormat.PLAIN).startswith("Command timed out")
