"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols, never on concrete
implementations, so the operating-system-backed executor and the fake
used in tests are interchangeable.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol

from opencli_wrap.core.process import ProcessOutcome, ProcessRequest, ProcessResult
from opencli_wrap.exceptions import ProcessStartError


class ProcessHandle(Protocol):
    """Opaque per-invocation handle returned by :meth:`ProcessExecutor.start`."""

    @property
    def request(self) -> ProcessRequest:
        ...  # pragma: no cover


class ProcessExecutor(Protocol):
    """Contract for process execution backends.

    Any object that implements these coroutines satisfies the protocol
    structurally (no explicit inheritance required).  Implementations
    must keep no mutable state shared between invocations.
    """

    async def start(self, request: ProcessRequest) -> ProcessHandle | None:
        """Launch the process described by *request*.

        A ``None`` return is a legitimate "no handle" answer; callers
        treat it exactly like a start failure.

        Raises
        ------
        ExecutableNotFoundError
            When the executable does not exist.
        ProcessStartError
            For permission errors and any other launch failure.
        """
        ...  # pragma: no cover

    async def wait_for_exit(
        self,
        handle: ProcessHandle,
        cancel_event: asyncio.Event | None = None,
    ) -> ProcessOutcome:
        """Race exit, *cancel_event* and the request timeout.

        Exactly one outcome is returned.  On cancellation or timeout the
        process is killed (a no-op when it already exited).

        Raises
        ------
        ProcessIOError
            When killing or draining fails unexpectedly.
        """
        ...  # pragma: no cover

    async def read_output(self, handle: ProcessHandle) -> tuple[str, str]:
        """Return fully drained ``(stdout, stderr)`` once the wait resolved."""
        ...  # pragma: no cover

    async def close(self, handle: ProcessHandle) -> None:
        """Release every resource held by *handle*.  Idempotent."""
        ...  # pragma: no cover


async def run_process(executor: ProcessExecutor, request: ProcessRequest) -> ProcessResult:
    """Run *request* to completion on *executor*.

    Drives ``start → wait_for_exit → read_output`` and always closes the
    handle, whichever branch of the race fired and whether or not an
    exception escaped.

    Raises
    ------
    ProcessStartError
        When the process could not be started or no handle was returned.
    ProcessIOError
        When draining or killing failed.
    """
    started = time.monotonic()
    handle = await executor.start(request)
    if handle is None:
        raise ProcessStartError(f"Failed to start process: {request.executable}")

    try:
        outcome = await executor.wait_for_exit(handle, request.cancel_event)
        stdout, stderr = await executor.read_output(handle)
    finally:
        await executor.close(handle)

    return ProcessResult(
        outcome=outcome,
        stdout=stdout,
        stderr=stderr,
        duration=time.monotonic() - started,
    )
