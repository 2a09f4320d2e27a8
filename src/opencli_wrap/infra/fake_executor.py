"""In-memory :class:`~opencli_wrap.core.protocols.ProcessExecutor` for tests.

The fake is pre-loaded with the output, exit code and behaviour it should
produce and records every request it receives.  It can replace
:class:`~opencli_wrap.infra.subprocess_executor.AsyncioProcessExecutor`
anywhere without code changes.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field

from opencli_wrap.core.process import ProcessOutcome, ProcessRequest
from opencli_wrap.exceptions import ConfigurationError, ProcessError, ProcessStartError


class FakeMode(enum.Enum):
    COMPLETE = "complete"
    """Exit immediately with the configured exit code."""

    CANCEL = "cancel"
    """Resolve as cancelled without waiting."""

    TIMEOUT = "timeout"
    """Resolve as timed out without waiting."""

    HANG = "hang"
    """Never exit; resolve on the cancel event or the request timeout."""

    START_FAILURE = "start_failure"
    """Raise from :meth:`FakeProcessExecutor.start`."""

    NO_HANDLE = "no_handle"
    """Return ``None`` from :meth:`FakeProcessExecutor.start`."""


@dataclass(slots=True)
class FakeHandle:
    request: ProcessRequest
    closed: bool = False
    killed: bool = False


@dataclass
class FakeProcessExecutor:
    """Scripted process executor.

    Attributes
    ----------
    stdout, stderr:
        Text returned by :meth:`read_output`.
    exit_code:
        Exit code reported in ``complete`` mode.
    mode:
        One of :class:`FakeMode` (or its string value).
    start_error:
        Exception raised in ``start_failure`` mode.
    requests:
        Every request passed to :meth:`start`, in order.
    handles:
        Every handle returned by :meth:`start`, in order.
    """

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    mode: FakeMode | str = FakeMode.COMPLETE
    start_error: ProcessError | None = None
    requests: list[ProcessRequest] = field(default_factory=list)
    handles: list[FakeHandle] = field(default_factory=list)

    def __post_init__(self) -> None:
        try:
            self.mode = FakeMode(self.mode)
        except ValueError as exc:
            choices = ", ".join(mode.value for mode in FakeMode)
            raise ConfigurationError(
                f"Unknown fake executor mode: {self.mode!r}", hint=f"Choose one of: {choices}",
            ) from exc

    @property
    def last_request(self) -> ProcessRequest | None:
        return self.requests[-1] if self.requests else None

    async def start(self, request: ProcessRequest) -> FakeHandle | None:
        self.requests.append(request)
        if self.mode is FakeMode.START_FAILURE:
            raise self.start_error or ProcessStartError(
                f"Failed to start process: {request.executable}",
            )
        if self.mode is FakeMode.NO_HANDLE:
            return None
        handle = FakeHandle(request)
        self.handles.append(handle)
        return handle

    async def wait_for_exit(
        self,
        handle: FakeHandle,
        cancel_event: asyncio.Event | None = None,
    ) -> ProcessOutcome:
        if self.mode is FakeMode.CANCEL:
            handle.killed = True
            return ProcessOutcome.cancelled()
        if self.mode is FakeMode.TIMEOUT:
            handle.killed = True
            return ProcessOutcome.timed_out()
        if self.mode is FakeMode.HANG:
            handle.killed = True
            if cancel_event is None:
                await asyncio.sleep(handle.request.timeout)
                return ProcessOutcome.timed_out()
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=handle.request.timeout)
            except asyncio.TimeoutError:
                return ProcessOutcome.timed_out()
            return ProcessOutcome.cancelled()
        return ProcessOutcome.exited(self.exit_code)

    async def read_output(self, handle: FakeHandle) -> tuple[str, str]:
        return self.stdout, self.stderr

    async def close(self, handle: FakeHandle) -> None:
        handle.closed = True
