"""CLI executor: runs one program and wraps the result in a :class:`CliResponse`.

The executor delegates process handling to a
:class:`~opencli_wrap.core.protocols.ProcessExecutor` injected at
construction time.  It is responsible for:

* Building a fresh :class:`ProcessRequest` per invocation.
* Mapping every outcome and every process failure to a response.
* Optionally raising :class:`~opencli_wrap.exceptions.CliExecutionError`
  for failed responses.

Guarantees
----------
* Process failures never escape as raw exceptions; they become failed
  responses with ``metadata["outcome"]`` naming what happened.
* No state shared between invocations.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from opencli_wrap.core.process import (
    DEFAULT_TIMEOUT_SECONDS,
    OutcomeKind,
    ProcessRequest,
    ProcessResult,
)
from opencli_wrap.core.protocols import ProcessExecutor, run_process
from opencli_wrap.core.response import CliResponse, ResponseFormat, format_response
from opencli_wrap.exceptions import (
    CliExecutionError,
    ConfigurationError,
    ExecutableNotFoundError,
    ProcessIOError,
    ProcessStartError,
)

logger = logging.getLogger(__name__)

EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126
EXIT_UNKNOWN = -1

CANCELLED_MESSAGE = "Command execution was cancelled"

ENV_TIMEOUT = "OPENCLI_WRAP_TIMEOUT"
ENV_WORKDIR = "OPENCLI_WRAP_WORKDIR"
ENV_FORMAT = "OPENCLI_WRAP_FORMAT"
ENV_RAISE_ON_ERROR = "OPENCLI_WRAP_RAISE_ON_ERROR"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ExecutorOptions:
    """Per-executor settings applied to every invocation."""

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    working_directory: str | None = None
    environment: Mapping[str, str] | None = None
    response_format: ResponseFormat = ResponseFormat.JSON
    raise_on_error: bool = False

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"Timeout must be positive, got {self.timeout_seconds}.",
            )
        if self.environment is not None:
            object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ExecutorOptions:
        """Build options from ``OPENCLI_WRAP_*`` environment variables.

        Unset variables keep their defaults.

        Raises
        ------
        ConfigurationError
            When a variable holds a value that cannot be interpreted.
        """
        env = os.environ if environ is None else environ

        timeout = DEFAULT_TIMEOUT_SECONDS
        raw_timeout = env.get(ENV_TIMEOUT)
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{ENV_TIMEOUT} must be a number of seconds, got {raw_timeout!r}.",
                ) from exc

        response_format = ResponseFormat.JSON
        raw_format = env.get(ENV_FORMAT)
        if raw_format:
            response_format = parse_response_format(raw_format)

        return cls(
            timeout_seconds=timeout,
            working_directory=env.get(ENV_WORKDIR) or None,
            response_format=response_format,
            raise_on_error=_parse_bool(ENV_RAISE_ON_ERROR, env.get(ENV_RAISE_ON_ERROR, "")),
        )


def parse_response_format(value: str) -> ResponseFormat:
    """Map ``json`` / ``raw`` / ``plain`` (any case) to a :class:`ResponseFormat`."""
    try:
        return ResponseFormat(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(fmt.value for fmt in ResponseFormat)
        raise ConfigurationError(
            f"Unknown response format {value!r}.",
            hint=f"Choose one of: {choices}",
        ) from exc


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be true or false, got {value!r}.")


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class CliExecutor:
    """Runs one external program per call.

    Parameters
    ----------
    executable:
        Path or name of the program, passed unchanged as ``argv[0]``.
    process_executor:
        Any object satisfying the :class:`ProcessExecutor` protocol.
    options:
        Timeout, working directory, environment and error behaviour.
    """

    def __init__(
        self,
        executable: str,
        process_executor: ProcessExecutor,
        options: ExecutorOptions | None = None,
    ) -> None:
        self._executable: str = executable
        self._process_executor: ProcessExecutor = process_executor
        self._options: ExecutorOptions = options or ExecutorOptions()

    @property
    def executable(self) -> str:
        return self._executable

    @property
    def options(self) -> ExecutorOptions:
        return self._options

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(
        self,
        arguments: Sequence[str],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> CliResponse:
        """Run the program with *arguments* and return its response.

        Raises
        ------
        CliExecutionError
            Only when ``options.raise_on_error`` is set and the response
            is a failure.
        """
        request = ProcessRequest(
            executable=self._executable,
            argv=tuple(arguments),
            working_directory=self._options.working_directory,
            environment=self._options.environment,
            timeout=self._options.timeout_seconds,
            cancel_event=cancel_event,
        )
        logger.debug("Executing %s with argv %r", self._executable, request.argv)

        started = time.monotonic()
        try:
            result = await run_process(self._process_executor, request)
        except ExecutableNotFoundError as exc:
            logger.error("Executable not found: %s", exc.executable)
            response = CliResponse.create_error(
                str(exc), EXIT_NOT_FOUND, metadata=_metadata("start_failed", started),
            )
        except ProcessStartError as exc:
            logger.error("Failed to start %s: %s", self._executable, exc)
            code = EXIT_NOT_EXECUTABLE if isinstance(exc.__cause__, PermissionError) else EXIT_UNKNOWN
            response = CliResponse.create_error(
                str(exc), code, metadata=_metadata("start_failed", started),
            )
        except ProcessIOError as exc:
            logger.error("I/O failure while running %s: %s", self._executable, exc)
            response = CliResponse.create_error(
                str(exc), EXIT_UNKNOWN, metadata=_metadata("io_failed", started),
            )
        else:
            response = self._to_response(result)

        if not response.success and self._options.raise_on_error:
            raise CliExecutionError(response.error or "Command failed", response)
        return response

    async def run(
        self,
        arguments: Sequence[str],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Like :meth:`execute` but rendered with ``options.response_format``."""
        response = await self.execute(arguments, cancel_event=cancel_event)
        return format_response(response, self._options.response_format)

    # ------------------------------------------------------------------
    # Outcome mapping
    # ------------------------------------------------------------------

    def _to_response(self, result: ProcessResult) -> CliResponse:
        outcome = result.outcome
        metadata = {
            "outcome": outcome.kind.value,
            "durationMs": int(round(result.duration * 1000)),
        }

        if outcome.kind is OutcomeKind.CANCELLED:
            logger.warning("Execution of %s was cancelled", self._executable)
            return CliResponse.create_error(
                CANCELLED_MESSAGE, EXIT_UNKNOWN, result.stdout, metadata,
            )
        if outcome.kind is OutcomeKind.TIMED_OUT:
            logger.warning(
                "Execution of %s timed out after %ss", self._executable, self._options.timeout_seconds,
            )
            return CliResponse.create_error(
                f"Command timed out after {self._options.timeout_seconds:g} seconds",
                EXIT_UNKNOWN,
                result.stdout,
                metadata,
            )

        exit_code = outcome.exit_code if outcome.exit_code is not None else EXIT_UNKNOWN
        logger.debug("%s exited with code %d", self._executable, exit_code)
        if exit_code == 0:
            return CliResponse.create_success(result.stdout, 0, metadata)
        error = result.stderr if result.stderr.strip() else f"Command exited with code {exit_code}"
        return CliResponse.create_error(error, exit_code, result.stdout, metadata)


def _metadata(outcome: str, started: float) -> dict[str, object]:
    return {
        "outcome": outcome,
        "durationMs": int(round((time.monotonic() - started) * 1000)),
    }
