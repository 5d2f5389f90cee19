"""Native run endpoint."""

from __future__ import annotations

from functools import partial

from anyio import to_thread
from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse
from loguru import logger

from runvault.exec_service.deps import Settings, WorkspaceDir, resolve_in_workspace
from runvault.exec_service.routers.files import write_text
from runvault.exec_service.toolchains import normalize_language, plan, run_steps
from runvault.ide_runtime.models.api import RunRequest, RunResponse

router = APIRouter(tags=["run"])


@router.post("/run", response_model=RunResponse)
async def run_code(body: RunRequest, workspace: WorkspaceDir, settings: Settings) -> RunResponse | JSONResponse:
    """Write the code into the shared folder and run it with the matching toolchain.

    Unknown languages answer 400 ``{"error": ...}``; the caller then falls
    back to its in-process strategies.
    """
    source = resolve_in_workspace(workspace, body.file_name)
    language = normalize_language(body.language, body.file_name)
    steps = plan(language, source, settings)
    if steps is None:
        label = body.language or language
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"No local toolchain for {label}"},
        )

    try:
        await to_thread.run_sync(partial(write_text, source, body.code))
    except OSError as exc:
        logger.exception("Writing {} failed", source)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    logger.info("Running {} as {} ({} steps)", source.name, language, len(steps))
    return await run_steps(steps, cwd=workspace, timeout=settings.run_timeout)
