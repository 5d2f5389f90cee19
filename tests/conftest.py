"""Shared test fixtures.

Settings are cached process-wide by ``get_settings``; every test starts and
ends with an empty cache so env overrides made through ``monkeypatch`` are
picked up.  Tests that need real toolchains are marked with
``@pytest.mark.toolchain``.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from runvault.ide_runtime.settings import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
