"""Execution cascade: backend -> interpreter -> simulation."""

from __future__ import annotations

import json

import httpx
import pytest

from runvault.exec_service.toolchains import SUPPORTED
from runvault.ide_runtime.errors import RouterBusyError
from runvault.ide_runtime.execution.router import NO_OUTPUT, ExecutionRouter
from runvault.ide_runtime.models import ExecutionStrategy, RouterState, TerminalLine
from runvault.ide_runtime.terminal import TerminalLog


async def _run(router: ExecutionRouter, code: str, language: str, file_name: str) -> list[TerminalLine]:
    return [line async for line in router.execute(code, language, file_name)]


def _backend_handler(run_response: httpx.Response, calls: list[str] | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(f"{request.method} {request.url.path}")
        if request.url.path == "/api/files":
            return httpx.Response(200, json=[])
        return run_response

    return handler


# -- Stage 2: interpreters (no backend) ----------------------------------------------


async def test_python_without_backend_runs_in_process(simulator, make_js_runtime) -> None:
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, 'print("hi")', "python", "main.py")

    assert lines == [
        TerminalLine.input("exec python main.py"),
        TerminalLine.info("hi"),
        TerminalLine.success("[Python] Execution finished."),
    ]
    assert simulator.calls == []
    assert router.last_strategy is ExecutionStrategy.INTERPRETER
    assert router.state is RouterState.IDLE


async def test_unreachable_backend_falls_through_silently(
    make_backend, unreachable, simulator, make_js_runtime
) -> None:
    router = ExecutionRouter(backend=make_backend(unreachable), simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, 'print("hi")', "python", "main.py")

    assert [line.type for line in lines] == ["input", "info", "success"]


async def test_javascript_throw_ends_with_error(simulator, make_js_runtime) -> None:
    runtime = make_js_runtime(fail_with=RuntimeError("Uncaught Error: boom"))
    router = ExecutionRouter(simulator=simulator, javascript=runtime)

    lines = await _run(router, 'throw new Error("boom")', "javascript", "app.js")

    assert lines[0] == TerminalLine.input("exec javascript app.js")
    assert lines[-1] == TerminalLine.error("[JavaScript Error]: Uncaught Error: boom")
    assert all(line.text != "[JavaScript] Run complete." for line in lines)
    assert simulator.calls == []


async def test_runtime_init_failure_stops_without_simulation(simulator) -> None:
    from runvault.ide_runtime.execution.interpreters import JavaScriptRuntime

    def factory():
        raise RuntimeError("no isolate")

    router = ExecutionRouter(simulator=simulator, javascript=JavaScriptRuntime(factory=factory))

    lines = await _run(router, "1", "javascript", "app.js")

    assert lines[-1] == TerminalLine.error("[System] Kernel init failed: no isolate")
    assert sum(1 for line in lines if line.type == "error") == 1
    assert simulator.calls == []
    assert router.state is RouterState.IDLE


async def test_file_extension_selects_interpreter(simulator, make_js_runtime) -> None:
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, 'print("by extension")', "plaintext", "tool.py")

    assert TerminalLine.info("by extension") in lines


async def test_keyboard_interrupt_in_user_code_is_reported(simulator, make_js_runtime) -> None:
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, "raise KeyboardInterrupt('user')", "python", "k.py")

    assert lines[-1] == TerminalLine.error("[Python Error]: KeyboardInterrupt: user")
    assert router.state is RouterState.IDLE
    assert simulator.calls == []


# -- Stage 3: simulation ---------------------------------------------------------------


async def test_unknown_language_is_simulated(simulator, make_js_runtime) -> None:
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, 'fn main() { println!("x"); }', "Rust", "main.rs")

    assert lines == [
        TerminalLine.input("exec rust main.rs"),
        TerminalLine.ai("[Simulator] Simulating runtime environment for rust..."),
        TerminalLine.info("simulated output"),
        TerminalLine.success("[Simulator] Simulation finished."),
    ]
    assert simulator.calls == [('fn main() { println!("x"); }', "rust")]
    assert router.last_strategy is ExecutionStrategy.SIMULATION


async def test_empty_simulation_uses_default_text(simulator, make_js_runtime) -> None:
    simulator.text = ""
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, "x", "go", "main.go")

    assert TerminalLine.info(NO_OUTPUT) in lines


async def test_simulation_failure_is_reported(simulator, make_js_runtime) -> None:
    simulator.error = RuntimeError("quota exceeded")
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, "x", "go", "main.go")

    assert lines[-1] == TerminalLine.error("[Simulator] Failed to simulate: quota exceeded")
    assert router.state is RouterState.IDLE


# -- Stage 1: execution service ----------------------------------------------------------


async def test_reachable_backend_runs_natively(make_backend, simulator, make_js_runtime) -> None:
    calls: list[str] = []
    backend = make_backend(_backend_handler(httpx.Response(200, json={"output": "native hi", "error": None}), calls))
    router = ExecutionRouter(backend=backend, simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, 'print("hi")', "python", "main.py")

    assert lines == [
        TerminalLine.input("exec python main.py"),
        TerminalLine.info("[Backend] Routing to native toolchain..."),
        TerminalLine.info("native hi"),
        TerminalLine.success("[Backend] Native run finished."),
    ]
    assert calls == ["GET /api/files", "POST /api/run"]
    assert simulator.calls == []
    assert router.last_strategy is ExecutionStrategy.BACKEND


_SAMPLE_FILES = {
    "python": "main.py",
    "javascript": "app.js",
    "c": "main.c",
    "cpp": "main.cpp",
    "rust": "main.rs",
    "java": "Main.java",
    "go": "main.go",
    "php": "index.php",
    "ruby": "main.rb",
}


@pytest.mark.parametrize("language", SUPPORTED)
async def test_reachable_backend_never_simulates(language: str, make_backend, simulator, make_js_runtime) -> None:
    backend = make_backend(_backend_handler(httpx.Response(200, json={"output": "ok", "error": None})))
    router = ExecutionRouter(backend=backend, simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, "source", language, _SAMPLE_FILES[language])

    assert lines[-1] == TerminalLine.success("[Backend] Native run finished.")
    assert simulator.calls == []
    assert router.last_strategy is ExecutionStrategy.BACKEND


async def test_backend_stderr_is_relayed_as_error(make_backend, simulator, make_js_runtime) -> None:
    backend = make_backend(_backend_handler(httpx.Response(200, json={"output": "", "error": "Traceback ..."})))
    router = ExecutionRouter(backend=backend, simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, "raise SystemExit(1)", "python", "main.py")

    assert TerminalLine.error("Traceback ...") in lines
    assert lines[-1] == TerminalLine.success("[Backend] Native run finished.")


async def test_unsupported_toolchain_ends_cascade(make_backend, simulator, make_js_runtime) -> None:
    backend = make_backend(_backend_handler(httpx.Response(400, json={"error": "No local toolchain for kotlin"})))
    router = ExecutionRouter(backend=backend, simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, "fun main() {}", "kotlin", "main.kt")

    assert lines[-1] == TerminalLine.error("[Backend] No local toolchain for kotlin")
    assert all(line.type != "success" for line in lines)
    assert simulator.calls == []


async def test_backend_transport_error_falls_back_to_interpreter(make_backend, simulator, make_js_runtime) -> None:
    backend = make_backend(_backend_handler(httpx.Response(500, json={"detail": "spawn failed"})))
    router = ExecutionRouter(backend=backend, simulator=simulator, javascript=make_js_runtime())

    lines = await _run(router, 'print("local")', "python", "main.py")

    assert lines[2].type == "error"
    assert lines[2].text.startswith("[Backend] Local bridge error:")
    assert TerminalLine.info("local") in lines
    assert lines[-1] == TerminalLine.success("[Python] Execution finished.")
    assert router.last_strategy is ExecutionStrategy.INTERPRETER


async def test_backend_run_request_body(make_backend, simulator, make_js_runtime) -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/run":
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"output": "ok"})
        return httpx.Response(200, json=[])

    router = ExecutionRouter(backend=make_backend(handler), simulator=simulator, javascript=make_js_runtime())
    await _run(router, "int main(){}", "cpp", "main.cpp")

    assert bodies == [{"code": "int main(){}", "language": "cpp", "fileName": "main.cpp"}]


# -- State machine ----------------------------------------------------------------------


async def test_overlapping_execute_is_rejected(simulator, make_js_runtime) -> None:
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())

    first = router.execute("x", "go", "main.go")
    assert await first.__anext__() == TerminalLine.input("exec go main.go")
    assert router.state is RouterState.RUNNING

    with pytest.raises(RouterBusyError):
        await router.execute('print("again")', "python", "main.py").__anext__()

    await first.aclose()
    assert router.state is RouterState.IDLE

    lines = await _run(router, 'print("again")', "python", "main.py")
    assert TerminalLine.info("again") in lines


async def test_run_drains_into_terminal_log(simulator, make_js_runtime) -> None:
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())
    log = TerminalLog()

    emitted = await router.run('print("hi")', "python", "main.py", log)

    assert log.lines == emitted
    assert len(emitted) == 3
