"""Terminal line log.

Append-only sequence of ``TerminalLine`` for the life of a session, cleared
only on explicit request.  Consumers register callbacks instead of listening
on a process-wide event bus:

- ``subscribe`` -- called for every appended line (UI rendering, CLI echo).
- ``on_fix_request`` -- the single consumer of "fix this error" requests
  raised from an error line (normally the assistant).
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from loguru import logger

from runvault.ide_runtime.models.enums import TerminalLineType
from runvault.ide_runtime.models.terminal import TerminalLine

UNSERIALIZABLE = "[Unserializable Data]"

LineListener = Callable[[TerminalLine], None]
FixHandler = Callable[[str], Any]


def safe_stringify(value: object) -> str:
    """Render any value as display text.  Never raises."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, BaseException):
        return str(value) or type(value).__name__
    try:
        if isinstance(value, Mapping | list | tuple):
            return json.dumps(value, indent=2)
        return str(value)
    except Exception:
        return UNSERIALIZABLE


class TerminalLog:
    def __init__(self) -> None:
        self._lines: list[TerminalLine] = []
        self._listeners: list[LineListener] = []
        self._fix_handler: FixHandler | None = None

    @property
    def lines(self) -> list[TerminalLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    # -- Append ----------------------------------------------------------------

    def add(self, line: TerminalLine) -> TerminalLine:
        self._lines.append(line)
        for listener in list(self._listeners):
            try:
                listener(line)
            except Exception:
                logger.exception("Terminal listener failed")
        return line

    def append(self, line_type: TerminalLineType | str, value: object) -> TerminalLine:
        return self.add(TerminalLine(type=TerminalLineType(line_type), text=safe_stringify(value)))

    def info(self, value: object) -> TerminalLine:
        return self.append(TerminalLineType.INFO, value)

    def error(self, value: object) -> TerminalLine:
        return self.append(TerminalLineType.ERROR, value)

    def success(self, value: object) -> TerminalLine:
        return self.append(TerminalLineType.SUCCESS, value)

    def command(self, text: str) -> TerminalLine:
        """Record a command typed into the terminal prompt."""
        return self.append(TerminalLineType.INPUT, text)

    def clear(self) -> None:
        self._lines.clear()

    # -- Channels --------------------------------------------------------------

    def subscribe(self, listener: LineListener) -> Callable[[], None]:
        """Register a per-line callback.  Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def on_fix_request(self, handler: FixHandler | None) -> None:
        """Install (or remove with ``None``) the consumer of fix requests."""
        self._fix_handler = handler

    def request_fix(self, line: TerminalLine) -> Any:
        """Forward an error line to the fix handler.

        Returns whatever the handler returns (an awaitable for async
        handlers), or ``None`` when no handler is installed.
        """
        if line.type != TerminalLineType.ERROR:
            msg = f"Only error lines can be sent for fixing, got {line.type}"
            raise ValueError(msg)
        if self._fix_handler is None:
            logger.debug("Fix requested but no handler is installed")
            return None
        return self._fix_handler(line.text)
