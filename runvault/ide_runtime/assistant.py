"""Coding assistant backed by a pydantic-ai Agent.

The assistant sees the active file (name, language, content) with every
request, and can be installed as the terminal's fix handler so that an
error line can be sent for fixing with one call.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from loguru import logger
from pydantic_ai import Agent, ModelSettings
from pydantic_ai.models import Model

if TYPE_CHECKING:
    from runvault.ide_runtime.models.workspace import FileRecord
    from runvault.ide_runtime.terminal import TerminalLog

ASSISTANT_INSTRUCTIONS = (
    "You are an expert developer companion working inside a browser IDE. "
    "Answer with production-ready code and short explanations. "
    "Always use markdown fenced blocks for code."
)
FALLBACK_REPLY = "The assistant could not be reached. Try again in a moment."
EMPTY_REPLY = "The assistant returned no answer."

_CODE_BLOCK = re.compile(r"```(?:[\w+-]+)?\n(.*?)```", re.DOTALL)


def build_prompt(request: str, active_file: FileRecord | None) -> str:
    if active_file is None:
        name, language, code = "none", "unknown", "no code open"
    else:
        name, language, code = active_file.name, active_file.language, active_file.content or "no code open"
    return (
        f"Current Workspace File: {name}\n"
        f"Language: {language}\n"
        f"Context Code: {code}\n\n"
        f"User Request: {request}"
    )


def code_blocks(reply: str) -> list[str]:
    """Fenced code snippets in a reply, ready for ``WorkspaceStore.append_content``."""
    return _CODE_BLOCK.findall(reply)


class Assistant:
    def __init__(self, model: Model | str, *, temperature: float = 0.7) -> None:
        self._agent: Agent[None, str] = Agent(
            model,
            output_type=str,
            instructions=ASSISTANT_INSTRUCTIONS,
            model_settings=ModelSettings(temperature=temperature),
            defer_model_check=True,
        )

    async def ask(self, request: str, active_file: FileRecord | None = None) -> str:
        """Answer *request* in the context of the active file.  Never raises."""
        if not request.strip():
            return EMPTY_REPLY
        try:
            result = await self._agent.run(build_prompt(request, active_file))
        except Exception:
            logger.exception("Assistant request failed")
            return FALLBACK_REPLY
        return result.output or EMPTY_REPLY

    async def fix_error(self, error_text: str, active_file: FileRecord | None = None) -> str:
        return await self.ask(f"Fix this execution error: {error_text}", active_file)

    def attach(
        self,
        log: TerminalLog,
        active_file: Callable[[], FileRecord | None] = lambda: None,
    ) -> None:
        """Install this assistant as *log*'s fix handler.

        *active_file* is called at request time so the prompt sees the file
        that is active when the fix is requested.
        """

        def _handler(text: str) -> Awaitable[str]:
            return self.fix_error(text, active_file())

        log.on_fix_request(_handler)
