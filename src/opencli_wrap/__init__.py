"""opencli-wrap: run command-line programs described by OpenCLI documents.

Compiles call parameters into argument vectors and runs the program
under asyncio with cancellation and timeouts, returning structured
responses.
"""

from opencli_wrap.version import __version__

__all__: list[str] = ["__version__"]
