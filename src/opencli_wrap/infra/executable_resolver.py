"""Infrastructure: locating the program an OpenCLI spec describes.

Two strategies are offered:

* :func:`detect_executable` / :func:`require_executable` search the
  system PATH plus optional extra directories and the platform's common
  install locations.
* :class:`ConfiguredExecutableResolver` looks names up in an explicit,
  case-insensitive name → path map.

Rules
-----
* Detection via :func:`shutil.which` only; nothing is executed.
* No permanent PATH modification.
* No ``print()``; callers handle user-facing output.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from opencli_wrap.exceptions import ConfigurationError, ExecutableNotFoundError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Detection result
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ExecutableStatus:
    """Result of an executable detection check.

    Attributes
    ----------
    name : str
        The name or path that was looked up.
    found : bool
        Whether an executable file was located.
    path : Path | None
        Absolute path to the executable, or ``None``.
    status_hint : str
        Human-readable status string (e.g. ``"found at …"`` or ``"not found"``).
    searched : tuple[str, ...]
        Extra directories searched in addition to PATH.
    """

    name: str
    found: bool
    path: Path | None
    status_hint: str
    searched: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Detection logic
# ---------------------------------------------------------------------------

def common_search_paths() -> tuple[str, ...]:
    """Return install directories commonly missing from PATH on this OS."""
    home = Path.home()
    system = platform.system().lower()
    if system == "windows":
        local = os.environ.get("LOCALAPPDATA")
        paths = [str(Path(local) / "Programs")] if local else []
        paths.extend(
            value
            for value in (os.environ.get("ProgramFiles"), os.environ.get("ProgramFiles(x86)"))
            if value
        )
        return tuple(paths)
    return (
        "/usr/local/bin",
        "/usr/bin",
        "/bin",
        "/usr/local/sbin",
        "/usr/sbin",
        "/sbin",
        str(home / ".local" / "bin"),
    )


def detect_executable(
    name: str,
    search_paths: Sequence[str] = (),
    *,
    include_common_paths: bool = True,
) -> ExecutableStatus:
    """Probe for *name* on PATH, then in *search_paths* and common locations.

    Returns an :class:`ExecutableStatus` regardless of whether the
    executable is present; the caller decides whether to abort.
    """
    extra = list(search_paths)
    if include_common_paths:
        extra.extend(path for path in common_search_paths() if path not in extra)

    result = shutil.which(name)
    if result is None and extra:
        result = shutil.which(name, path=os.pathsep.join(extra))

    if result is not None:
        resolved = Path(result).resolve()
        logger.debug("Resolved executable %s to %s", name, resolved)
        return ExecutableStatus(
            name=name,
            found=True,
            path=resolved,
            status_hint=f"found at {resolved}",
            searched=tuple(extra),
        )

    logger.debug("Executable %s not found", name)
    return ExecutableStatus(
        name=name,
        found=False,
        path=None,
        status_hint="not found",
        searched=tuple(extra),
    )


def require_executable(name: str, search_paths: Sequence[str] = ()) -> Path:
    """Locate *name* or raise :class:`ExecutableNotFoundError`."""
    status = detect_executable(name, search_paths)
    if not status.found or status.path is None:
        hint_lines = ["Install the program or pass its full path with --exe."]
        if status.searched:
            hint_lines.append("Searched PATH and:")
            hint_lines.extend(f"  {path}" for path in status.searched)
        raise ExecutableNotFoundError(
            name,
            f"Executable '{name}' is not installed or not on PATH.",
            hint="\n".join(hint_lines),
        )
    return status.path


# ---------------------------------------------------------------------------
# Explicit configuration
# ---------------------------------------------------------------------------

class ConfiguredExecutableResolver:
    """Resolves executable names from an explicit name → path map.

    Lookups ignore case.  With ``raise_on_missing`` an unknown name
    raises :class:`ExecutableNotFoundError`; otherwise it resolves to
    ``None``.
    """

    def __init__(
        self,
        executables: Mapping[str, str] | None = None,
        *,
        raise_on_missing: bool = True,
    ) -> None:
        self._paths: dict[str, tuple[str, str]] = {}
        self._raise_on_missing = raise_on_missing
        for name, path in (executables or {}).items():
            self.add(name, path)

    def add(self, name: str, path: str) -> None:
        """Add or replace the path configured for *name*."""
        if not name or not path:
            raise ConfigurationError("Executable name and path must be non-empty.")
        self._paths[name.casefold()] = (name, path)
        logger.debug("Configured executable %s at %s", name, path)

    def remove(self, name: str) -> bool:
        """Forget *name*; returns whether it was configured."""
        removed = self._paths.pop(name.casefold(), None) is not None
        if removed:
            logger.debug("Removed executable %s from configuration", name)
        return removed

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._paths

    def configured(self) -> list[str]:
        return [name for name, _ in self._paths.values()]

    def resolve(self, name: str) -> str | None:
        entry = self._paths.get(name.casefold())
        if entry is not None:
            logger.debug("Resolved executable %s to %s", name, entry[1])
            return entry[1]

        logger.warning("Executable %s is not configured", name)
        if self._raise_on_missing:
            raise ExecutableNotFoundError(
                name,
                f"Executable '{name}' was not found in the configured paths.",
                hint=f"Configured executables: {', '.join(self.configured()) or 'none'}",
            )
        return None


def resolve_executable(
    name: str,
    configured: ConfiguredExecutableResolver | None = None,
    search_paths: Iterable[str] = (),
) -> str:
    """Resolve *name* via *configured* first, then PATH search.

    Names containing a path separator are returned unchanged so the
    process layer reports a missing file itself.
    """
    if os.sep in name or (os.altsep and os.altsep in name):
        return name
    if configured is not None and name in configured:
        return configured.resolve(name) or name
    return str(require_executable(name, tuple(search_paths)))
