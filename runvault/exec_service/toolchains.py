"""Language -> native toolchain commands.

A run is a short chain of steps (compile, then execute).  Steps run one
after another as subprocesses with the workspace folder as working
directory; the first failing step ends the chain.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from runvault.ide_runtime.languages import language_for
from runvault.ide_runtime.models.api import RunResponse
from runvault.ide_runtime.settings import RunVaultSettings

_ALIASES = {
    "js": "javascript",
    "node": "javascript",
    "py": "python",
    "c++": "cpp",
    "rs": "rust",
    "golang": "go",
    "rb": "ruby",
}

SUPPORTED = ("python", "javascript", "c", "cpp", "rust", "java", "go", "php", "ruby")


def normalize_language(language: str, file_name: str) -> str:
    """Canonical language for a run request; the file extension decides when the tag is unknown."""
    lang = (language or "").strip().lower()
    lang = _ALIASES.get(lang, lang)
    if lang in SUPPORTED:
        return lang
    return language_for(file_name)


def plan(language: str, source: Path, settings: RunVaultSettings) -> list[list[str]] | None:
    """Command steps for *source*, or ``None`` when no toolchain is known."""
    binary = source.with_name(source.name + ".out")
    match language:
        case "python":
            return [[settings.python_bin, str(source)]]
        case "javascript":
            return [[settings.node_bin, str(source)]]
        case "c":
            return [[settings.gcc_bin, str(source), "-o", str(binary)], [str(binary)]]
        case "cpp":
            return [[settings.gxx_bin, str(source), "-o", str(binary)], [str(binary)]]
        case "rust":
            return [[settings.rustc_bin, str(source), "-o", str(binary)], [str(binary)]]
        case "java":
            return [[settings.javac_bin, str(source)], [settings.java_bin, "-cp", str(source.parent), source.stem]]
        case "go":
            return [[settings.go_bin, "run", str(source)]]
        case "php":
            return [[settings.php_bin, str(source)]]
        case "ruby":
            return [[settings.ruby_bin, str(source)]]
        case _:
            return None


async def run_steps(steps: list[list[str]], cwd: Path, timeout: float | None = None) -> RunResponse:
    """Run *steps* sequentially and collect their output.

    ``error`` carries the collected stderr, or a failure message when a step
    exits non-zero without writing to stderr, or ``None``.
    """
    stdout_parts: list[str] = []
    stderr_parts: list[str] = []
    failure: str | None = None

    for argv in steps:
        logger.debug("Running {}", argv)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            failure = f"Command not found: {argv[0]}"
            break
        except PermissionError as exc:
            failure = f"Cannot execute {argv[0]}: {exc}"
            break

        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            failure = f"Command timed out after {timeout}s: {' '.join(argv)}"
            break

        stdout_parts.append(out.decode("utf-8", errors="replace"))
        stderr_parts.append(err.decode("utf-8", errors="replace"))
        if proc.returncode != 0:
            failure = f"Command failed: {' '.join(argv)} (exit code {proc.returncode})"
            break

    stderr = "".join(stderr_parts)
    return RunResponse(output="".join(stdout_parts), error=stderr or failure)
