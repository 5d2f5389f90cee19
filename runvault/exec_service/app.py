from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger

from runvault.ide_runtime.log import setup_logging
from runvault.ide_runtime.settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    workspace = Path(settings.workspace_dir).resolve()
    workspace.mkdir(parents=True, exist_ok=True)
    logger.info("Execution service starting (host={}, port={})", settings.host, settings.port)
    logger.info("Shared workspace: {}", workspace)

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Execution service shutting down")


app = FastAPI(title="RunVault Execution Service", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from runvault.exec_service.routers.files import router as files_router  # noqa: E402
from runvault.exec_service.routers.run import router as run_router  # noqa: E402

api.include_router(files_router)
api.include_router(run_router)

app.include_router(api)
