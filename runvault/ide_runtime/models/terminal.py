"""Terminal line model emitted by the execution pipeline."""

from __future__ import annotations

from pydantic import BaseModel

from runvault.ide_runtime.models.enums import TerminalLineType


class TerminalLine(BaseModel):
    """One line of terminal output.  Ephemeral; never persisted."""

    type: TerminalLineType
    text: str

    @classmethod
    def info(cls, text: str) -> TerminalLine:
        return cls(type=TerminalLineType.INFO, text=text)

    @classmethod
    def error(cls, text: str) -> TerminalLine:
        return cls(type=TerminalLineType.ERROR, text=text)

    @classmethod
    def success(cls, text: str) -> TerminalLine:
        return cls(type=TerminalLineType.SUCCESS, text=text)

    @classmethod
    def input(cls, text: str) -> TerminalLine:
        return cls(type=TerminalLineType.INPUT, text=text)

    @classmethod
    def ai(cls, text: str) -> TerminalLine:
        return cls(type=TerminalLineType.AI, text=text)
