"""Shared enumerations used across the IDE runtime."""

from __future__ import annotations

from enum import StrEnum

# -- Terminal ----------------------------------------------------------------


class TerminalLineType(StrEnum):
    """Category of a terminal log line (drives colouring in the shell UI)."""

    INFO = "info"
    ERROR = "error"
    SUCCESS = "success"
    INPUT = "input"
    AI = "ai"


# -- Execution ---------------------------------------------------------------


class RouterState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


class ExecutionStrategy(StrEnum):
    """Which stage of the cascade handled a run."""

    BACKEND = "backend"
    INTERPRETER = "interpreter"
    SIMULATION = "simulation"


# -- Workspace ---------------------------------------------------------------


class TemplateKind(StrEnum):
    HTML = "html"
    PYTHON = "python"
    REACT = "react"
