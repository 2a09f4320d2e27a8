"""Custom exception hierarchy for opencli-wrap.

All exceptions that cross layer boundaries must inherit from
:class:`OpenCliWrapError`.  Raw OS and third-party exceptions (e.g.
``OSError`` from process creation, ``json.JSONDecodeError``) must NEVER
propagate beyond the layer that observed them; they are caught and
re-raised as a typed subclass defined here.

Hierarchy
---------
OpenCliWrapError
├── SpecParseError
├── CompileError
│   ├── MissingArgumentError
│   ├── InvalidParameterError
│   └── UnknownCommandError
├── ProcessError
│   ├── ProcessStartError
│   │   └── ExecutableNotFoundError
│   └── ProcessIOError
├── CliExecutionError
├── ResponseFormatError
├── ConfigurationError
└── EnvironmentError
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from opencli_wrap.core.response import CliResponse


class OpenCliWrapError(Exception):
    """Base exception for all opencli-wrap errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Spec loading ----------------------------------------------------------

class SpecParseError(OpenCliWrapError):
    """Raised when a spec document is malformed or misses a required field."""


# --- Argument compilation --------------------------------------------------

class CompileError(OpenCliWrapError):
    """Base for failures while turning call parameters into argv."""


class MissingArgumentError(CompileError):
    """Raised when a required positional argument was not supplied."""

    def __init__(self, argument: str, message: str | None = None, *, hint: str | None = None) -> None:
        super().__init__(message or f"Missing required argument: {argument}", hint=hint)
        self.argument: str = argument


class InvalidParameterError(CompileError):
    """Raised for unknown parameter names or values of the wrong type."""

    def __init__(self, parameter: str, message: str, *, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.parameter: str = parameter


class UnknownCommandError(CompileError):
    """Raised when a command path or tool name does not exist in the spec."""

    def __init__(self, command: str, message: str | None = None, *, hint: str | None = None) -> None:
        super().__init__(message or f"Unknown command: {command}", hint=hint)
        self.command: str = command


# --- Process execution -----------------------------------------------------

class ProcessError(OpenCliWrapError):
    """Base for failures of the process layer itself (not non-zero exits)."""


class ProcessStartError(ProcessError):
    """Raised when the executable cannot be launched."""


class ExecutableNotFoundError(ProcessStartError):
    """Raised when the executable cannot be located."""

    def __init__(self, executable: str, message: str | None = None, *, hint: str | None = None) -> None:
        super().__init__(message or f"Executable '{executable}' was not found", hint=hint)
        self.executable: str = executable


class ProcessIOError(ProcessError):
    """Raised when draining output or killing a process fails unexpectedly."""


class CliExecutionError(OpenCliWrapError):
    """Raised when a command fails and the caller asked for exceptions.

    The failed :class:`~opencli_wrap.core.response.CliResponse` is kept on
    :attr:`response` so callers can inspect exit code and output.
    """

    def __init__(self, message: str, response: CliResponse, *, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.response: CliResponse = response


# --- Serialization / configuration -----------------------------------------

class ResponseFormatError(OpenCliWrapError):
    """Raised when a serialized response cannot be decoded."""


class ConfigurationError(OpenCliWrapError):
    """Raised when executor options or other configuration hold invalid values."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(OpenCliWrapError):
    """Raised when an optional runtime dependency is not available."""
