"""Shared fakes for IDE runtime tests."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from runvault.ide_runtime.execution.backend_client import RemoteBackendClient
from runvault.ide_runtime.execution.interpreters import JavaScriptRuntime

BACKEND_URL = "http://backend.test"


class FakeSimulator:
    """Records calls and returns canned text (or raises)."""

    def __init__(self, text: str = "simulated output", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def simulate(self, code: str, language: str) -> str:
        self.calls.append((code, language))
        if self.error is not None:
            raise self.error
        return self.text


class FakeJsContext:
    """Stand-in for a V8 context: accepts every script, optionally throws on user code."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.sources: list[str] = []

    def eval(self, source: str) -> object:
        self.sources.append(source)
        if source.startswith("JSON.stringify"):
            return "[]"
        if self.fail_with is not None and source.startswith("(function"):
            raise self.fail_with
        return None


@pytest.fixture
def simulator() -> FakeSimulator:
    return FakeSimulator()


@pytest.fixture
def make_js_runtime() -> Callable[..., JavaScriptRuntime]:
    """Build a ``JavaScriptRuntime`` over a ``FakeJsContext``."""

    def _make(fail_with: Exception | None = None) -> JavaScriptRuntime:
        return JavaScriptRuntime(factory=lambda: FakeJsContext(fail_with))

    return _make


@pytest.fixture
def make_backend() -> Callable[..., RemoteBackendClient]:
    """Build a ``RemoteBackendClient`` whose HTTP traffic goes to *handler*."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> RemoteBackendClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RemoteBackendClient(BACKEND_URL, client=client)

    return _make


@pytest.fixture
def unreachable() -> Callable[[httpx.Request], httpx.Response]:
    """Transport handler that refuses every connection."""

    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return _handler
