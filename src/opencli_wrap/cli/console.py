"""CLI console helpers with optional Rich support.

This module intentionally avoids module-level imports of optional UI
dependencies so bootstrap paths (``--help``, ``--version``) remain
functional even when Rich is not installed.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from opencli_wrap.exceptions import EnvironmentError

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _load_rich_console_class() -> type[Any]:
	"""Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console


def get_rich_console() -> Any:
	"""Create a Rich console instance targeting stderr."""
	console_class = _load_rich_console_class()
	return console_class(stderr=True)


class _ConsoleProxy:
	"""Minimal ``print``-compatible proxy with Rich fallback.

	Diagnostics go to stderr; :meth:`out` writes command results to
	stdout unstyled so they can be piped.
	"""

	def print(self, *objects: object) -> None:
		"""Render with Rich when available, else plain stderr print."""
		try:
			rich_console = get_rich_console()
		except EnvironmentError:
			print(*objects, file=sys.stderr)
			return
		rich_console.print(*objects)

	def out(self, text: str) -> None:
		"""Write *text* to stdout verbatim (no markup, no highlighting)."""
		sys.stdout.write(text)
		if text and not text.endswith("\n"):
			sys.stdout.write("\n")
		sys.stdout.flush()


console = _ConsoleProxy()


def configure_logging(verbose: bool = False) -> logging.Handler:
	"""Install one handler on the ``opencli_wrap`` logger.

	Rich's ``RichHandler`` on stderr when Rich is importable, a plain
	``StreamHandler`` otherwise.  Calling again replaces the handler.
	"""
	try:
		from rich.logging import RichHandler
	except ModuleNotFoundError:
		handler: logging.Handler = logging.StreamHandler(sys.stderr)
		handler.setFormatter(logging.Formatter(_LOG_FORMAT))
	else:
		handler = RichHandler(
			console=get_rich_console(),
			show_time=False,
			show_path=verbose,
			rich_tracebacks=verbose,
		)
		handler.setFormatter(logging.Formatter("%(message)s"))

	package_logger = logging.getLogger("opencli_wrap")
	for existing in list(package_logger.handlers):
		package_logger.removeHandler(existing)
	package_logger.addHandler(handler)
	package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
	return handler
