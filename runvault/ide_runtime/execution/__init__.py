"""Execution pipeline: backend client, in-process interpreters, AI simulation and the router."""

from runvault.ide_runtime.execution.backend_client import RemoteBackendClient
from runvault.ide_runtime.execution.interpreters import (
    Interpreter,
    JavaScriptRuntime,
    PythonInterpreter,
    default_javascript_runtime,
    match_interpreter,
)
from runvault.ide_runtime.execution.router import ExecutionRouter
from runvault.ide_runtime.execution.simulation import AISimulator, Simulator

__all__ = [
    "AISimulator",
    "ExecutionRouter",
    "Interpreter",
    "JavaScriptRuntime",
    "PythonInterpreter",
    "RemoteBackendClient",
    "Simulator",
    "default_javascript_runtime",
    "match_interpreter",
]
