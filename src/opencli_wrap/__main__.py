"""Allow ``python -m opencli_wrap`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m opencli_wrap`` behaves identically to the
``opencli-wrap`` console script.
"""

from __future__ import annotations

from opencli_wrap.cli.app import cli

if __name__ == "__main__":
    cli()
