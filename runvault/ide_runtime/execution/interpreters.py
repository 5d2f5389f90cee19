"""In-process interpreter strategies (stage 2 of the execution cascade).

Two strategies are provided:

- **Python** is invoked directly: the buffer runs via ``exec`` in a fresh
  namespace on a worker thread, with ``sys.stdout`` / ``sys.stderr``
  replaced by line writers and a ``console`` object injected whose
  ``log`` / ``error`` calls become terminal lines.
- **JavaScript** needs a heavyweight runtime image (a V8 isolate from
  ``mini-racer``).  It is loaded lazily on first use, exactly once per
  process, behind an ``asyncio.Lock`` so concurrent first calls share one
  initialisation.  A failed load leaves the handle unset so the next run
  retries.

Neither strategy lets executed code crash the host: every raised condition
is turned into an ``error`` line at this boundary.
"""

from __future__ import annotations

import asyncio
import contextlib
import io
import json
import traceback
from collections.abc import AsyncIterator, Callable
from functools import lru_cache, partial
from typing import Any, Protocol

from anyio import to_thread
from loguru import logger

from runvault.ide_runtime.errors import InitializationFailure, RuntimeFault
from runvault.ide_runtime.models.enums import TerminalLineType
from runvault.ide_runtime.models.terminal import TerminalLine


class Interpreter(Protocol):
    """A stage-2 strategy: runs a buffer and yields terminal lines."""

    def run(self, code: str, file_name: str) -> AsyncIterator[TerminalLine]: ...


def match_interpreter(language: str, file_name: str) -> str | None:
    """Return ``"python"`` / ``"javascript"`` when an in-process strategy applies."""
    lang = (language or "").lower()
    name = file_name.lower()
    if lang == "python" or name.endswith(".py"):
        return "python"
    if lang in ("javascript", "js") or name.endswith(".js"):
        return "javascript"
    return None


# ---------------------------------------------------------------------------
# Python (direct invocation)
# ---------------------------------------------------------------------------


class _LineWriter(io.TextIOBase):
    """Text stream that turns complete, non-blank lines into terminal lines."""

    def __init__(self, line_type: TerminalLineType, sink: list[TerminalLine]) -> None:
        self._type = line_type
        self._sink = sink
        self._buffer = ""

    def writable(self) -> bool:
        return True

    def write(self, s: str) -> int:
        self._buffer += s
        *complete, self._buffer = self._buffer.split("\n")
        for line in complete:
            self._emit(line)
        return len(s)

    def flush(self) -> None:
        if self._buffer:
            self._emit(self._buffer)
            self._buffer = ""

    def _emit(self, text: str) -> None:
        if text.strip():
            self._sink.append(TerminalLine(type=self._type, text=text.rstrip()))


class _Console:
    """``console`` object injected into executed Python code."""

    def __init__(self, sink: list[TerminalLine]) -> None:
        self._sink = sink

    def log(self, *args: Any) -> None:
        self._sink.append(TerminalLine.info(" ".join(str(a) for a in args)))

    def error(self, *args: Any) -> None:
        self._sink.append(TerminalLine.error(" ".join(str(a) for a in args)))


def _exec_python(code: str, file_name: str) -> list[TerminalLine]:
    """Run *code* with redirected streams.  Runs in a worker thread."""
    lines: list[TerminalLine] = []
    stdout = _LineWriter(TerminalLineType.INFO, lines)
    stderr = _LineWriter(TerminalLineType.ERROR, lines)
    namespace: dict[str, Any] = {
        "__name__": "__main__",
        "__file__": file_name,
        "console": _Console(lines),
    }

    fault: BaseException | None = None
    with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
        try:
            exec(compile(code, file_name, "exec"), namespace)  # noqa: S102
        except BaseException as exc:  # noqa: BLE001
            fault = exc
        finally:
            stdout.flush()
            stderr.flush()

    if fault is None:
        lines.append(TerminalLine.success("[Python] Execution finished."))
    elif isinstance(fault, SystemExit) and fault.code in (None, 0):
        lines.append(TerminalLine.success("[Python] Execution finished."))
    else:
        detail = "".join(traceback.format_exception_only(fault)).strip()
        lines.append(TerminalLine.error(f"[Python Error]: {detail}"))
    return lines


class PythonInterpreter:
    """Direct-invocation strategy for Python buffers."""

    async def run(self, code: str, file_name: str) -> AsyncIterator[TerminalLine]:
        lines = await to_thread.run_sync(partial(_exec_python, code, file_name))
        for line in lines:
            yield line


# ---------------------------------------------------------------------------
# JavaScript (lazily loaded V8 runtime)
# ---------------------------------------------------------------------------

_CONSOLE_SHIM = """
var __runvault_lines = [];
var __runvault_console = (function () {
  function emit(kind) {
    return function () {
      __runvault_lines.push([kind, Array.prototype.slice.call(arguments).map(String).join(" ")]);
    };
  }
  return { log: emit("info"), info: emit("info"), warn: emit("error"), error: emit("error") };
})();
"""

_DRAIN = "JSON.stringify(__runvault_lines.splice(0))"


def _default_factory() -> Any:
    from py_mini_racer import MiniRacer

    return MiniRacer()


class JavaScriptRuntime:
    """Heavyweight-runtime strategy for JavaScript buffers.

    The V8 context is created by *factory* on first use.  Use
    ``default_javascript_runtime()`` for the process-wide instance.
    """

    def __init__(self, factory: Callable[[], Any] = _default_factory) -> None:
        self._factory = factory
        self._context: Any = None
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._context is not None

    async def ensure_initialized(self) -> AsyncIterator[TerminalLine]:
        """Load the runtime once.  Yields progress lines on the first load only.

        Raises ``InitializationFailure`` (after yielding an error line) when
        the runtime cannot be created; the handle stays unset.
        """
        if self._context is not None:
            return
        async with self._init_lock:
            if self._context is not None:
                return
            yield TerminalLine.info("[System] Initializing JavaScript kernel...")
            try:
                context = await to_thread.run_sync(self._factory)
                await to_thread.run_sync(partial(context.eval, _CONSOLE_SHIM))
            except Exception as exc:
                logger.opt(exception=exc).warning("JavaScript kernel failed to initialise")
                yield TerminalLine.error(f"[System] Kernel init failed: {exc}")
                raise InitializationFailure(str(exc)) from exc
            self._context = context
            logger.info("JavaScript kernel initialised")
            yield TerminalLine.success("[System] JavaScript kernel active.")

    async def run(self, code: str, file_name: str) -> AsyncIterator[TerminalLine]:
        async for line in self.ensure_initialized():
            yield line

        wrapped = f"(function (console) {{\n{code}\n}})(__runvault_console);"
        fault: RuntimeFault | None = None
        try:
            await to_thread.run_sync(partial(self._context.eval, wrapped))
        except Exception as exc:
            fault = RuntimeFault(_js_error_text(exc))

        for line in await self._drain():
            yield line

        if fault is None:
            yield TerminalLine.success("[JavaScript] Run complete.")
        else:
            logger.debug("JavaScript run of {} raised: {}", file_name, fault)
            yield TerminalLine.error(f"[JavaScript Error]: {fault}")

    async def _drain(self) -> list[TerminalLine]:
        """Collect console lines buffered inside the isolate."""
        try:
            raw = await to_thread.run_sync(partial(self._context.eval, _DRAIN))
            pairs = json.loads(str(raw))
        except Exception as exc:
            return [TerminalLine.error(f"[JavaScript Error]: could not read console output: {exc}")]
        return [TerminalLine(type=TerminalLineType(kind), text=text) for kind, text in pairs]


def _js_error_text(exc: Exception) -> str:
    """First meaningful line of a V8 error report."""
    text = str(exc).strip()
    for line in text.splitlines():
        stripped = line.strip()
        if stripped and ("Error" in stripped or "Uncaught" in stripped):
            return stripped
    return text or type(exc).__name__


@lru_cache(maxsize=1)
def default_javascript_runtime() -> JavaScriptRuntime:
    """Process-wide JavaScript runtime.  Never torn down."""
    return JavaScriptRuntime()
