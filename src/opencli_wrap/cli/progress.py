"""Rich spinner shown while a wrapped program runs.

The spinner renders on stderr so that the program's output on stdout
stays clean for pipes.

Design
------
* :class:`RunningStatus` manages a Rich :class:`~rich.status.Status`.
* Shutdown-safe: stopping twice is a no-op.
"""

from __future__ import annotations

import contextlib
from typing import Any

from opencli_wrap.cli.console import get_rich_console
from opencli_wrap.exceptions import EnvironmentError


class RunningStatus:
    """Spinner labelled with the command being run.

    Usage::

        with RunningStatus("task add") as status:
            response = await executor.execute(argv)
            status.update("done")
    """

    def __init__(self, label: str) -> None:
        try:
            from rich.status import Status
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "rich is not installed. Install with: pip install rich",
            ) from exc

        self._label = label
        self._status: Any = Status(
            f"[bold blue]Running[/bold blue] {label}",
            console=get_rich_console(),
            spinner="dots",
        )
        self._started: bool = False

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> RunningStatus:
        self.start()
        return self

    def __exit__(self, *_args: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if not self._started:
            self._status.start()
            self._started = True

    def stop(self) -> None:
        """Stop the spinner (idempotent)."""
        if self._started:
            self._status.stop()
            self._started = False

    def update(self, message: str) -> None:
        if self._started:
            self._status.update(f"[bold blue]{self._label}[/bold blue] {message}")


def running_status(label: str, *, enabled: bool = True) -> contextlib.AbstractContextManager[Any]:
    """Return a :class:`RunningStatus`, or a no-op context without Rich."""
    if not enabled:
        return contextlib.nullcontext()
    try:
        return RunningStatus(label)
    except EnvironmentError:
        return contextlib.nullcontext()
