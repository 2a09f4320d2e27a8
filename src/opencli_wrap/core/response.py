"""Structured response envelope for a completed (or failed) invocation.

:class:`CliResponse` is what the outside world sees.  It is immutable;
:meth:`CliResponse.with_changes` returns a modified copy.

Wire format
-----------
Fixed lower-camel-case keys ``success, exitCode, output, error,
timestamp, metadata``.  ``metadata`` is omitted entirely when absent and
``timestamp`` is an ISO-8601 UTC instant with second precision and a
literal ``Z`` suffix (``2024-05-01T12:30:00Z``).  Timestamps are
truncated to whole seconds at construction so that a serialized
response decodes to a value-equal one.
"""

from __future__ import annotations

import dataclasses
import enum
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from opencli_wrap.exceptions import ResponseFormatError

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _normalize_timestamp(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


class ResponseFormat(enum.Enum):
    """How a response is rendered for a caller that wants text."""

    JSON = "json"
    """The serialized :class:`CliResponse`."""

    RAW = "raw"
    """Output on success; error text (or output) on failure."""

    PLAIN = "plain"
    """Output on success; a readable failure report otherwise."""


@dataclass(frozen=True)
class CliResponse:
    """Outcome of one invocation in a stable, serializable shape."""

    success: bool
    exit_code: int
    output: str
    error: str
    timestamp: datetime = field(default_factory=_utc_now)
    metadata: Mapping[str, Any] | None = field(default=None, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", _normalize_timestamp(self.timestamp))
        if self.metadata is not None:
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    # ------------------------------------------------------------------
    # Construction paths
    # ------------------------------------------------------------------

    @classmethod
    def create_success(
        cls,
        output: str,
        exit_code: int = 0,
        metadata: Mapping[str, Any] | None = None,
    ) -> CliResponse:
        """Successful response; *exit_code* may carry a "soft success" code."""
        return cls(
            success=True,
            exit_code=exit_code,
            output=output.rstrip(),
            error="",
            metadata=metadata,
        )

    @classmethod
    def create_error(
        cls,
        error: str,
        exit_code: int = -1,
        output: str = "",
        metadata: Mapping[str, Any] | None = None,
    ) -> CliResponse:
        """Failed response carrying whatever partial *output* existed."""
        return cls(
            success=False,
            exit_code=exit_code,
            output=output.rstrip(),
            error=error.rstrip(),
            metadata=metadata,
        )

    def with_changes(self, **changes: Any) -> CliResponse:
        """Return a copy with *changes* applied; ``self`` is untouched."""
        return dataclasses.replace(self, **changes)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "exitCode": self.exit_code,
            "output": self.output,
            "error": self.error,
            "timestamp": self.timestamp.strftime(_TIMESTAMP_FORMAT),
        }
        if self.metadata is not None:
            data["metadata"] = dict(self.metadata)
        return data

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CliResponse:
        """Rebuild a response from its wire mapping.

        Raises
        ------
        ResponseFormatError
            When a key is missing or has the wrong type.
        """
        try:
            success = data["success"]
            exit_code = data["exitCode"]
            output = data["output"]
            error = data["error"]
            raw_timestamp = data["timestamp"]
        except KeyError as exc:
            raise ResponseFormatError(f"Response is missing key {exc.args[0]!r}.") from exc

        if not isinstance(success, bool):
            raise ResponseFormatError("'success' must be a boolean.")
        if not isinstance(exit_code, int) or isinstance(exit_code, bool):
            raise ResponseFormatError("'exitCode' must be an integer.")
        if not isinstance(output, str) or not isinstance(error, str):
            raise ResponseFormatError("'output' and 'error' must be strings.")

        metadata = data.get("metadata")
        if metadata is not None and not isinstance(metadata, Mapping):
            raise ResponseFormatError("'metadata' must be an object.")

        return cls(
            success=success,
            exit_code=exit_code,
            output=output,
            error=error,
            timestamp=_parse_timestamp(raw_timestamp),
            metadata=metadata,
        )

    @classmethod
    def from_json(cls, text: str) -> CliResponse:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ResponseFormatError(f"Response is not valid JSON: {exc.msg}") from exc
        if not isinstance(data, dict):
            raise ResponseFormatError("Response JSON must be an object.")
        return cls.from_dict(data)


def _parse_timestamp(raw: object) -> datetime:
    if not isinstance(raw, str):
        raise ResponseFormatError("'timestamp' must be a string.")
    try:
        parsed = datetime.strptime(raw, _TIMESTAMP_FORMAT)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ResponseFormatError(f"Invalid timestamp: {raw!r}") from exc
    return _normalize_timestamp(parsed)


# ---------------------------------------------------------------------------
# Text rendering
# ---------------------------------------------------------------------------

def format_response(response: CliResponse, fmt: ResponseFormat = ResponseFormat.JSON) -> str:
    """Render *response* as text according to *fmt*."""
    if fmt is ResponseFormat.RAW:
        if response.success:
            return response.output
        return response.error or response.output
    if fmt is ResponseFormat.PLAIN:
        return _format_plain(response)
    return response.to_json()


def _format_plain(response: CliResponse) -> str:
    if response.success:
        return response.output

    outcome = (response.metadata or {}).get("outcome")
    if outcome == "cancelled":
        lines = ["Command was cancelled"]
    elif outcome == "timed_out":
        lines = ["Command timed out"]
    else:
        lines = [f"Command failed with exit code {response.exit_code}"]

    if response.error:
        lines.extend(("Error:", response.error))
    if response.output:
        lines.extend(("Output:", response.output))
    return "\n".join(lines)
