"""AI simulation strategy (stage 3 of the execution cascade).

For languages with no native or in-process path, a generative model is
asked what the console would show if the code ran.  The output is a guess,
clearly tagged as simulated by the router.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger
from pydantic_ai import Agent, ModelSettings
from pydantic_ai.models import Model

SIMULATION_INSTRUCTIONS = """\
You are an intelligent code execution simulator.
Analyze the provided code and language, then output what the console or
terminal would show if this code was executed.
- If there are errors, describe them clearly.
- If there is output (print, console.log, etc.), show exactly that output.
- Format your response as clean terminal output.
- Be brief and precise."""


class Simulator(Protocol):
    async def simulate(self, code: str, language: str) -> str:
        """Return the simulated console text (may be empty)."""
        ...


def build_simulation_prompt(code: str, language: str) -> str:
    return f"Language: {language}\nCode:\n```\n{code}\n```"


class AISimulator:
    """pydantic-ai backed simulator.

    *model* is a pydantic-ai model name (``"google-gla:gemini-2.5-pro"``) or
    a ``Model`` instance.  Model resolution is deferred to the first call so
    a missing provider key surfaces as a run failure, not a startup crash.
    """

    def __init__(self, model: Model | str, *, temperature: float = 0.1) -> None:
        self._agent: Agent[None, str] = Agent(
            model,
            output_type=str,
            instructions=SIMULATION_INSTRUCTIONS,
            model_settings=ModelSettings(temperature=temperature),
            defer_model_check=True,
        )

    async def simulate(self, code: str, language: str) -> str:
        result = await self._agent.run(build_simulation_prompt(code, language))
        logger.debug("Simulated {} run ({} chars)", language, len(result.output))
        return result.output
