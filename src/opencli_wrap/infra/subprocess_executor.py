"""asyncio backed implementation of :class:`~opencli_wrap.core.protocols.ProcessExecutor`.

This module is the **only** place in the codebase that creates operating
system processes.  Every ``OSError`` raised while launching, killing or
draining a process is caught here and re-raised as a
:class:`~opencli_wrap.exceptions.ProcessError` subclass.

Rules
-----
* Arguments go to ``create_subprocess_exec`` as discrete tokens; no
  shell, no quoting.
* stdout and stderr are drained from the moment the process starts, so a
  chatty program can never block on a full pipe.
* Exit, cancellation and timeout are raced in ONE wait.  When the exit
  task is done at adjudication time it wins, whatever else fired.
* Killing an already exited process is a no-op.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os

from opencli_wrap.core.process import ProcessOutcome, ProcessRequest
from opencli_wrap.exceptions import ExecutableNotFoundError, ProcessIOError, ProcessStartError

logger = logging.getLogger(__name__)

KILL_GRACE_SECONDS: float = 2.0
"""How long a killed process and its pipes get to wind down."""

DRAIN_TIMEOUT_SECONDS: float = 5.0
"""How long output may keep flowing after a normal exit."""

_CHUNK_SIZE = 64 * 1024


async def _drain(stream: asyncio.StreamReader | None, sink: bytearray) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            return
        sink.extend(chunk)


def _decode(data: bytearray) -> str:
    return bytes(data).decode("utf-8", errors="replace")


class _SubprocessHandle:
    """Per-invocation state.  Never shared between invocations."""

    def __init__(self, request: ProcessRequest, process: asyncio.subprocess.Process) -> None:
        self._request = request
        self.process = process
        self.stdout = bytearray()
        self.stderr = bytearray()
        self.stdout_task: asyncio.Task[None] = asyncio.create_task(_drain(process.stdout, self.stdout))
        self.stderr_task: asyncio.Task[None] = asyncio.create_task(_drain(process.stderr, self.stderr))
        self.exit_task: asyncio.Task[int] | None = None
        self.killed = False
        self.closed = False

    @property
    def request(self) -> ProcessRequest:
        return self._request

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode


class AsyncioProcessExecutor:
    """Concrete :class:`ProcessExecutor` backed by :mod:`asyncio` subprocesses.

    This class satisfies the :class:`~opencli_wrap.core.protocols.ProcessExecutor`
    protocol structurally.  It holds no state of its own, so one instance
    can serve any number of concurrent invocations.
    """

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    async def start(self, request: ProcessRequest) -> _SubprocessHandle:
        """Spawn *request* and begin draining its output.

        Raises
        ------
        ExecutableNotFoundError
            When the executable does not exist.
        ProcessStartError
            For permission errors, a missing working directory and any
            other launch failure.
        """
        env = None
        if request.environment is not None:
            env = {**os.environ, **request.environment}

        if request.working_directory is not None and not os.path.isdir(request.working_directory):
            raise ProcessStartError(
                f"Working directory does not exist: {request.working_directory}",
            )

        try:
            process = await asyncio.create_subprocess_exec(
                request.executable,
                *request.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=request.working_directory,
                env=env,
            )
        except FileNotFoundError as exc:
            logger.error("Executable not found: %s", request.executable)
            raise ExecutableNotFoundError(
                request.executable,
                hint="Check the executable path or add its directory to PATH.",
            ) from exc
        except PermissionError as exc:
            logger.error("Permission denied starting %s", request.executable)
            raise ProcessStartError(
                f"Permission denied starting process: {request.executable}",
                hint="Make sure the file is executable.",
            ) from exc
        except (OSError, ValueError) as exc:
            logger.error("Failed to start %s: %s", request.executable, exc)
            raise ProcessStartError(
                f"Failed to start process {request.executable}: {exc}",
            ) from exc

        logger.debug("Started %s (pid %d) with argv %r", request.executable, process.pid, request.argv)
        return _SubprocessHandle(request, process)

    async def wait_for_exit(
        self,
        handle: _SubprocessHandle,
        cancel_event: asyncio.Event | None = None,
    ) -> ProcessOutcome:
        """Race exit against *cancel_event* and the request timeout.

        Raises
        ------
        ProcessIOError
            When the process cannot be killed.
        asyncio.CancelledError
            When the awaiting task itself is cancelled; the process is
            killed first.
        """
        exit_task = handle.exit_task
        if exit_task is None:
            exit_task = asyncio.create_task(handle.process.wait())
            handle.exit_task = exit_task

        cancel_task: asyncio.Task[bool] | None = None
        waiters: set[asyncio.Future[object]] = {exit_task}
        if cancel_event is not None:
            cancel_task = asyncio.create_task(cancel_event.wait())
            waiters.add(cancel_task)

        try:
            await asyncio.wait(
                waiters,
                timeout=handle.request.timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            logger.warning("Wait for pid %d was cancelled; killing process", handle.pid)
            with contextlib.suppress(ProcessIOError):
                self._kill(handle)
            raise
        finally:
            if cancel_task is not None and not cancel_task.done():
                cancel_task.cancel()

        if exit_task.done():
            return ProcessOutcome.exited(exit_task.result())

        if cancel_task is not None and cancel_task.done():
            logger.warning("Cancelling pid %d", handle.pid)
            outcome = ProcessOutcome.cancelled()
        else:
            logger.warning("pid %d timed out after %ss", handle.pid, handle.request.timeout)
            outcome = ProcessOutcome.timed_out()

        self._kill(handle)
        done, _ = await asyncio.wait({exit_task}, timeout=KILL_GRACE_SECONDS)
        if not done:
            raise ProcessIOError(f"Process {handle.pid} did not exit after being killed.")
        return outcome

    async def read_output(self, handle: _SubprocessHandle) -> tuple[str, str]:
        """Wait for both pipes to reach EOF and return the decoded text.

        Raises
        ------
        ProcessIOError
            When a pipe failed, or stayed open past the drain timeout
            after a normal exit.
        """
        drains = {handle.stdout_task, handle.stderr_task}
        grace = KILL_GRACE_SECONDS if handle.killed else DRAIN_TIMEOUT_SECONDS
        _, pending = await asyncio.wait(drains, timeout=grace)

        for task in pending:
            task.cancel()
        if pending and not handle.killed:
            raise ProcessIOError(
                f"Output of process {handle.pid} did not close within {grace:g} seconds.",
                hint="A child process may still hold the output pipes open.",
            )
        if pending:
            logger.warning("Returning partial output of killed pid %d", handle.pid)

        for task in drains - pending:
            exc = task.exception()
            if exc is not None:
                raise ProcessIOError(f"Failed to read output of process {handle.pid}: {exc}") from exc

        return _decode(handle.stdout), _decode(handle.stderr)

    async def close(self, handle: _SubprocessHandle) -> None:
        """Kill (if still running), cancel helper tasks and reap the process."""
        if handle.closed:
            return
        handle.closed = True

        try:
            self._kill(handle)
        except ProcessIOError as exc:
            logger.warning("%s", exc)

        tasks = [
            task
            for task in (handle.exit_task, handle.stdout_task, handle.stderr_task)
            if task is not None and not task.done()
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if handle.process.returncode is None:
            try:
                await asyncio.wait_for(handle.process.wait(), timeout=KILL_GRACE_SECONDS)
            except asyncio.TimeoutError:
                logger.warning("pid %d could not be reaped", handle.pid)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _kill(handle: _SubprocessHandle) -> None:
        process = handle.process
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        except OSError as exc:
            logger.warning("Failed to kill pid %d: %s", handle.pid, exc)
            raise ProcessIOError(f"Failed to kill process {handle.pid}: {exc}") from exc
        handle.killed = True
