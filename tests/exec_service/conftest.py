"""Shared fixtures for execution service tests."""

from __future__ import annotations

import sys
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from runvault.exec_service.app import app
from runvault.ide_runtime.settings import RunVaultSettings, get_settings


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    return tmp_path / "workspace"


@pytest.fixture
def settings(workspace: Path) -> RunVaultSettings:
    return RunVaultSettings(workspace_dir=str(workspace), python_bin=sys.executable, run_timeout=30)


@pytest.fixture
async def client(settings: RunVaultSettings) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with test settings.

    The app lifespan does NOT run under ``ASGITransport``; the workspace
    folder is created by the ``get_workspace_dir`` dependency instead.
    """
    app.dependency_overrides[get_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
