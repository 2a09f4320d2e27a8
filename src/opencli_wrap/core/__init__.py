"""Core / service layer: spec model, argument compilation and responses.

Rules
-----
* No ``print()`` calls.
* No filesystem access and no process creation.
* No imports from ``cli`` or ``infra``.
"""

from opencli_wrap.core.cli_executor import CliExecutor, ExecutorOptions
from opencli_wrap.core.compiler import (
    ArgumentCompiler,
    CommandParameters,
    command_parameters,
    compile_arguments,
    parameter_key,
)
from opencli_wrap.core.models import (
    Argument,
    Command,
    Example,
    ExitCode,
    Info,
    Option,
    Spec,
    spec_equals,
    spec_hash,
)
from opencli_wrap.core.process import (
    OutcomeKind,
    ProcessOutcome,
    ProcessRequest,
    ProcessResult,
)
from opencli_wrap.core.protocols import ProcessExecutor, ProcessHandle, run_process
from opencli_wrap.core.response import CliResponse, ResponseFormat, format_response
from opencli_wrap.core.spec_parser import parse_spec
from opencli_wrap.core.tools import (
    ToolDefinition,
    ToolParameter,
    ToolTable,
    ToolTableCache,
    tool_definitions,
)

__all__: list[str] = [
    "Argument",
    "ArgumentCompiler",
    "CliExecutor",
    "CliResponse",
    "Command",
    "CommandParameters",
    "Example",
    "ExecutorOptions",
    "ExitCode",
    "Info",
    "Option",
    "OutcomeKind",
    "ProcessExecutor",
    "ProcessHandle",
    "ProcessOutcome",
    "ProcessRequest",
    "ProcessResult",
    "ResponseFormat",
    "Spec",
    "ToolDefinition",
    "ToolParameter",
    "ToolTable",
    "ToolTableCache",
    "command_parameters",
    "compile_arguments",
    "format_response",
    "parameter_key",
    "parse_spec",
    "run_process",
    "spec_equals",
    "spec_hash",
    "tool_definitions",
]
