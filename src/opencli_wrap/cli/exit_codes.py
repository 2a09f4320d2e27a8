"""Exit-code constants used by the CLI layer.

Centralised here so that every exit path uses a well-known, tested
value rather than magic integers scattered across the codebase.
"""

from __future__ import annotations

SUCCESS: int = 0
"""Clean exit; the command completed without error."""

GENERAL_ERROR: int = 1
"""A known OpenCliWrapError was caught, or the wrapped program failed."""

UNEXPECTED_ERROR: int = 2
"""An unhandled exception escaped all known error boundaries."""

TIMED_OUT: int = 124
"""The wrapped program was killed after its timeout (as ``timeout(1)``)."""

KEYBOARD_INTERRUPT: int = 130
"""User pressed Ctrl+C.  Follows POSIX convention (128 + SIGINT=2)."""
