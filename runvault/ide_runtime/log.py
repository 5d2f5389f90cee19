"""Logging configuration using loguru.

Intercepts stdlib logging so that uvicorn, httpx, pydantic-ai, etc. all flow
through loguru with a unified format.  Diagnostics always go to stderr: the
CLI keeps stdout for terminal lines and command output.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

_SERVICE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
# CLI runs are short; call-site detail would drown the terminal echo
_CLI_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "google_genai")


class _InterceptHandler(logging.Handler):
    """Bridge stdlib logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Map stdlib level name -> loguru level
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk the call stack so loguru reports the real call-site
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, compact: bool = False) -> None:
    """Configure loguru as the sole logging sink.

    The execution service calls this from its lifespan, the CLI once per
    command with ``compact=True``.
    """
    level = level.upper()

    # Replace whatever sinks a previous call (or loguru's default) installed
    logger.remove()
    logger.add(sys.stderr, level=level, format=_CLI_FORMAT if compact else _SERVICE_FORMAT)

    # Intercept all stdlib logging
    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    # Quiet down per-request chatter of the HTTP and model clients
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging initialised (level={}, compact={})", level, compact)
