"""Infrastructure layer: operating-system integration.

This layer creates processes, searches PATH and reads spec files.  Every
raw ``OSError`` must be caught here and re-raised as an
:class:`~opencli_wrap.exceptions.OpenCliWrapError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from opencli_wrap.infra.executable_resolver import (
    ConfiguredExecutableResolver,
    ExecutableStatus,
    detect_executable,
    require_executable,
    resolve_executable,
)
from opencli_wrap.infra.fake_executor import FakeMode, FakeProcessExecutor
from opencli_wrap.infra.spec_loader import load_spec
from opencli_wrap.infra.subprocess_executor import AsyncioProcessExecutor

__all__: list[str] = [
    "AsyncioProcessExecutor",
    "ConfiguredExecutableResolver",
    "ExecutableStatus",
    "FakeMode",
    "FakeProcessExecutor",
    "detect_executable",
    "load_spec",
    "require_executable",
    "resolve_executable",
]
