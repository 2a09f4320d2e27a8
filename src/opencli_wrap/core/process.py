"""Value types exchanged with a process executor.

A :class:`ProcessRequest` is created fresh for every invocation and is
never reused.  The executor answers with exactly one
:class:`ProcessOutcome`; cancellation and timeouts are outcome kinds of
their own, never fabricated exit codes.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from opencli_wrap.exceptions import ConfigurationError

DEFAULT_TIMEOUT_SECONDS: float = 30.0


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ProcessRequest:
    """Everything needed to launch one external process."""

    executable: str
    """Executable path or name passed as ``argv[0]``."""

    argv: tuple[str, ...] = ()
    """Argument tokens after the executable name."""

    working_directory: str | None = None
    """Directory to run in; ``None`` inherits the caller's."""

    environment: Mapping[str, str] | None = None
    """Variables laid over the inherited environment."""

    timeout: float = DEFAULT_TIMEOUT_SECONDS
    """Seconds before the process is killed and reported as timed out."""

    cancel_event: asyncio.Event | None = field(default=None, compare=False)
    """Setting this event cancels the invocation."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "argv", tuple(self.argv))
        if self.environment is not None:
            object.__setattr__(self, "environment", MappingProxyType(dict(self.environment)))
        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}.")


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

class OutcomeKind(enum.Enum):
    EXITED = "exited"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class ProcessOutcome:
    """Terminal state of a process wait.  ``exit_code`` is set only for exits."""

    kind: OutcomeKind
    exit_code: int | None = None

    @classmethod
    def exited(cls, code: int) -> ProcessOutcome:
        return cls(OutcomeKind.EXITED, code)

    @classmethod
    def cancelled(cls) -> ProcessOutcome:
        return cls(OutcomeKind.CANCELLED)

    @classmethod
    def timed_out(cls) -> ProcessOutcome:
        return cls(OutcomeKind.TIMED_OUT)

    @property
    def finished(self) -> bool:
        """``True`` when the program ran to its own exit."""
        return self.kind is OutcomeKind.EXITED


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Outcome plus fully drained output of one invocation."""

    outcome: ProcessOutcome
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    """Wall-clock seconds from start to completion."""

    @property
    def success(self) -> bool:
        return self.outcome.finished and self.outcome.exit_code == 0
