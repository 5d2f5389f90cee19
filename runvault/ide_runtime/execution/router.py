"""Execution router -- decides how a buffer is run.

Strict ordered cascade; each stage either fully handles the request or
falls through, and stage *n+1* never starts before stage *n* settled:

1. **Backend**: probe the execution service; if it answers, run natively
   and relay its output.  A transport failure during the run is reported
   and the cascade continues.
2. **Interpreter**: Python (direct) or JavaScript (lazily loaded V8).  A
   language match stops the cascade whatever the outcome.
3. **Simulation**: ask a generative model for plausible console output.

Every call first emits one ``input`` line (``exec <language> <file>``).
The router never touches the workspace store; it only yields lines.

The router owns an ``IDLE -> RUNNING -> IDLE`` state machine and rejects
overlapping calls with ``RouterBusyError``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from runvault.ide_runtime.errors import (
    BackendTransportError,
    InitializationFailure,
    RouterBusyError,
    ToolchainUnsupported,
)
from runvault.ide_runtime.execution.interpreters import (
    Interpreter,
    JavaScriptRuntime,
    PythonInterpreter,
    default_javascript_runtime,
    match_interpreter,
)
from runvault.ide_runtime.models.enums import ExecutionStrategy, RouterState
from runvault.ide_runtime.models.terminal import TerminalLine

if TYPE_CHECKING:
    from runvault.ide_runtime.execution.backend_client import RemoteBackendClient
    from runvault.ide_runtime.execution.simulation import Simulator
    from runvault.ide_runtime.terminal import TerminalLog

NO_OUTPUT = "Execution finished with no output."


@dataclass
class _StageOutcome:
    handled: bool = False


class ExecutionRouter:
    """Routes a source buffer to exactly one execution strategy."""

    def __init__(
        self,
        *,
        backend: RemoteBackendClient | None = None,
        simulator: Simulator | None = None,
        python: Interpreter | None = None,
        javascript: JavaScriptRuntime | None = None,
    ) -> None:
        self._backend = backend
        self._simulator = simulator
        self._interpreters: dict[str, Interpreter] = {
            "python": python or PythonInterpreter(),
            "javascript": javascript or default_javascript_runtime(),
        }
        self._state = RouterState.IDLE
        self._last_strategy: ExecutionStrategy | None = None

    @property
    def state(self) -> RouterState:
        return self._state

    @property
    def last_strategy(self) -> ExecutionStrategy | None:
        """Stage that handled the most recent run (``None`` before the first)."""
        return self._last_strategy

    # -- Entry points ----------------------------------------------------------

    async def execute(self, code: str, language: str, file_name: str) -> AsyncIterator[TerminalLine]:
        """Run *code* and yield terminal lines until the cascade settles.

        Raises ``RouterBusyError`` on first iteration if another run is in
        flight.
        """
        if self._state is RouterState.RUNNING:
            msg = "An execution is already running"
            raise RouterBusyError(msg)
        self._state = RouterState.RUNNING
        lang = (language or "").lower()
        try:
            yield TerminalLine.input(f"exec {lang} {file_name}")

            outcome = _StageOutcome()
            async for line in self._backend_stage(code, language, file_name, outcome):
                yield line
            if outcome.handled:
                self._last_strategy = ExecutionStrategy.BACKEND
                return

            kind = match_interpreter(lang, file_name)
            if kind is not None:
                self._last_strategy = ExecutionStrategy.INTERPRETER
                async for line in self._interpreter_stage(kind, code, file_name):
                    yield line
                return

            self._last_strategy = ExecutionStrategy.SIMULATION
            async for line in self._simulation_stage(code, lang):
                yield line
        finally:
            self._state = RouterState.IDLE

    async def run(self, code: str, language: str, file_name: str, log: TerminalLog) -> list[TerminalLine]:
        """Drain ``execute`` into *log* and return the emitted lines."""
        emitted: list[TerminalLine] = []
        async for line in self.execute(code, language, file_name):
            log.add(line)
            emitted.append(line)
        return emitted

    # -- Stage 1: execution service --------------------------------------------

    async def _backend_stage(
        self,
        code: str,
        language: str,
        file_name: str,
        outcome: _StageOutcome,
    ) -> AsyncIterator[TerminalLine]:
        if self._backend is None or not await self._backend.is_reachable():
            return

        yield TerminalLine.info("[Backend] Routing to native toolchain...")
        try:
            result = await self._backend.run(code, language, file_name)
        except ToolchainUnsupported as exc:
            outcome.handled = True
            yield TerminalLine.error(f"[Backend] {exc}")
            return
        except BackendTransportError as exc:
            logger.warning("Execution service run failed, falling back: {}", exc)
            yield TerminalLine.error(f"[Backend] Local bridge error: {exc}")
            return

        outcome.handled = True
        if result.output:
            yield TerminalLine.info(result.output)
        if result.error:
            yield TerminalLine.error(result.error)
        yield TerminalLine.success("[Backend] Native run finished.")

    # -- Stage 2: in-process interpreters --------------------------------------

    async def _interpreter_stage(self, kind: str, code: str, file_name: str) -> AsyncIterator[TerminalLine]:
        interpreter = self._interpreters[kind]
        try:
            async for line in interpreter.run(code, file_name):
                yield line
        except InitializationFailure as exc:
            # Already reported as an error line by the runtime itself.
            logger.warning("Run of {} aborted: {} runtime unavailable ({})", file_name, kind, exc)
        except Exception as exc:
            logger.exception("Interpreter {} crashed on {}", kind, file_name)
            yield TerminalLine.error(f"[{kind.capitalize()} Error]: {exc}")

    # -- Stage 3: AI simulation ------------------------------------------------

    async def _simulation_stage(self, code: str, language: str) -> AsyncIterator[TerminalLine]:
        yield TerminalLine.ai(f"[Simulator] Simulating runtime environment for {language}...")
        if self._simulator is None:
            yield TerminalLine.error("[Simulator] No simulation model configured.")
            return
        try:
            text = await self._simulator.simulate(code, language)
        except Exception as exc:
            logger.opt(exception=exc).warning("Simulation of {} failed", language)
            yield TerminalLine.error(f"[Simulator] Failed to simulate: {exc}")
            return
        yield TerminalLine.info(text or NO_OUTPUT)
        yield TerminalLine.success("[Simulator] Simulation finished.")
