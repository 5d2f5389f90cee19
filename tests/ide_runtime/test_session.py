"""Workspace session actions report through the terminal log and never raise."""

from __future__ import annotations

import io
from zipfile import ZIP_STORED, ZipFile

import httpx
import pytest
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from runvault.ide_runtime.assistant import Assistant
from runvault.ide_runtime.execution.router import ExecutionRouter
from runvault.ide_runtime.models import FileRecord, TerminalLine
from runvault.ide_runtime.store import MemoryKeyValueStore
from runvault.ide_runtime.sync.archive import pack
from runvault.ide_runtime.sync.github import GitHubSync
from runvault.ide_runtime.settings import RunVaultSettings
from runvault.ide_runtime.workspace.session import WorkspaceSession, open_session
from runvault.ide_runtime.workspace.store import WorkspaceStore


def _github(handler, token: str | None = "tok") -> GitHubSync:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubSync(token, api_url="https://api.github.test", client=client)


def _deploy_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/user/repos":
        return httpx.Response(201, json={"owner": {"login": "octo"}, "html_url": "https://github.com/octo/demo"})
    return httpx.Response(201, json={})


@pytest.fixture
def store() -> WorkspaceStore:
    store = WorkspaceStore(MemoryKeyValueStore(), debounce=60)
    store.load_template("python")
    return store


@pytest.fixture
def session(store: WorkspaceStore, simulator, make_js_runtime) -> WorkspaceSession:
    router = ExecutionRouter(simulator=simulator, javascript=make_js_runtime())
    return WorkspaceSession(store, router)


# -- Run -------------------------------------------------------------------------


async def test_run_active_file(session: WorkspaceSession) -> None:
    lines = await session.run_active_file()

    assert lines[0] == TerminalLine.input("exec python main.py")
    assert TerminalLine.info("Workspace active") in lines
    assert session.log.lines == lines


async def test_run_without_active_file(session: WorkspaceSession) -> None:
    session.store.delete_file("py-main")

    assert await session.run_active_file() == []
    assert session.log.lines == [TerminalLine.error("No active file to run.")]


async def test_run_while_busy_reports_error(session: WorkspaceSession) -> None:
    pending = session.router.execute("x", "go", "main.go")
    await pending.__anext__()

    assert await session.run_active_file() == []
    assert session.log.lines[-1].type == "error"
    assert session.log.lines[-1].text.startswith("Execution failed:")

    await pending.aclose()


# -- Deploy ------------------------------------------------------------------------


async def test_deploy_without_token(session: WorkspaceSession) -> None:
    session.sync = _github(_deploy_handler, token=None)

    assert await session.deploy("demo") is None
    assert session.log.lines[-1].type == "error"
    assert session.store.snapshots == []


async def test_deploy_records_snapshot(session: WorkspaceSession) -> None:
    session.sync = _github(_deploy_handler)

    result = await session.deploy("Demo")

    assert result is not None
    assert session.log.lines == [
        TerminalLine.info("[Git] Handshaking with GitHub API..."),
        TerminalLine.success("[System] Repository deployed: https://github.com/octo/demo"),
    ]
    snapshot = session.store.snapshots[0]
    assert snapshot.message == "Pushed to GitHub: demo"
    assert snapshot.branch == "main"


async def test_deploy_failure_is_reported(session: WorkspaceSession) -> None:
    session.sync = _github(lambda request: httpx.Response(422, json={"message": "name already exists"}))

    assert await session.deploy("demo") is None
    assert session.log.lines[-1] == TerminalLine.error("Deployment Failed: name already exists")
    assert session.store.snapshots == []


# -- Pull --------------------------------------------------------------------------


async def test_import_repository_appends_files(session: WorkspaceSession) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/repos/o/r/contents/":
            item = {"type": "file", "name": "a.py", "path": "a.py", "download_url": "https://raw.test/a.py"}
            return httpx.Response(200, json=[item])
        return httpx.Response(200, text="print('pulled')")

    session.sync = _github(handler)

    imported = await session.import_repository("o/r")

    assert [f.name for f in imported] == ["a.py"]
    assert [f.name for f in session.store.files] == ["main.py", "a.py"]
    assert session.store.active_file_id == imported[0].id
    assert session.log.lines[-1] == TerminalLine.success("[System] Successfully imported 1 modules from GitHub.")


async def test_import_empty_repository_is_an_error(session: WorkspaceSession) -> None:
    session.sync = _github(lambda request: httpx.Response(200, json=[]))

    assert await session.import_repository("o/empty") == []
    assert session.log.lines[-1] == TerminalLine.error("Import Failed: Repository appears empty or inaccessible.")
    assert len(session.store.files) == 1


async def test_import_missing_repository(session: WorkspaceSession) -> None:
    session.sync = _github(lambda request: httpx.Response(404, json={"message": "Not Found"}))

    assert await session.import_repository("o/missing") == []
    assert session.log.lines[-1].text.startswith("Import Failed:")


async def test_import_requires_owner_slash_name(session: WorkspaceSession) -> None:
    assert await session.import_repository("justaname") == []
    assert session.log.lines[-1].type == "error"


# -- Archives ----------------------------------------------------------------------


def test_export_archive(session: WorkspaceSession) -> None:
    data = session.export_archive()

    assert data is not None
    assert data[:2] == b"PK"
    assert session.log.lines[-1] == TerminalLine.success("[System] Workspace bundle exported successfully.")


def test_export_empty_workspace(session: WorkspaceSession) -> None:
    session.store.delete_file("py-main")

    assert session.export_archive() is None
    assert session.log.lines == []


def test_import_files(session: WorkspaceSession) -> None:
    bundle = pack([FileRecord(name="lib/a.js", content="1"), FileRecord(name="b.css", content="")])

    records = session.import_files([("bundle.zip", bundle), ("notes.md", b"# hi")])

    assert [r.name for r in records] == ["lib/a.js", "b.css", "notes.md"]
    assert session.store.active_file_id == records[0].id
    assert session.log.lines[-1] == TerminalLine.success("[System] Imported 3 local files.")


def test_import_corrupt_archive(session: WorkspaceSession) -> None:
    assert session.import_files([("broken.zip", b"nope")]) == []
    assert session.log.lines[-1].text.startswith("Import Failed:")
    assert len(session.store.files) == 1


def test_import_archive_with_corrupt_member(session: WorkspaceSession) -> None:
    payload = b"print('hello from a.py')"
    buffer = io.BytesIO()
    with ZipFile(buffer, "w", ZIP_STORED) as z:
        z.writestr("a.py", payload)
    data = bytearray(buffer.getvalue())
    data[data.index(payload)] ^= 0xFF

    assert session.import_files([("bundle.zip", bytes(data))]) == []
    assert session.log.lines[-1].type == "error"
    assert session.log.lines[-1].text.startswith("Import Failed: Cannot read a.py")
    assert len(session.store.files) == 1


# -- Assistant ---------------------------------------------------------------------


def _assistant(prompts: list[str], reply: str = "Use a defined name.") -> Assistant:
    def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        prompts.append(messages[-1].parts[-1].content)
        return ModelResponse(parts=[TextPart(reply)])

    return Assistant(FunctionModel(respond))


async def test_fix_last_error_sends_latest_error_with_active_file(store: WorkspaceStore, simulator) -> None:
    prompts: list[str] = []
    session = WorkspaceSession(store, ExecutionRouter(simulator=simulator), assistant=_assistant(prompts))
    session.log.error("[Python Error]: ValueError: old")
    session.log.info("still running")
    session.log.error("[Python Error]: NameError: name 'x' is not defined")

    reply = await session.fix_last_error()

    assert reply == "Use a defined name."
    assert "Fix this execution error: [Python Error]: NameError: name 'x' is not defined" in prompts[0]
    assert "Current Workspace File: main.py" in prompts[0]


async def test_fix_last_error_without_assistant(session: WorkspaceSession) -> None:
    session.log.error("[Python Error]: boom")

    assert await session.fix_last_error() is None
    assert session.log.lines[-1] == TerminalLine.error("Fix request ignored: no assistant is configured.")


async def test_fix_last_error_without_errors(session: WorkspaceSession) -> None:
    assert await session.fix_last_error() is None
    assert session.log.lines == []


async def test_ask_with_insert_appends_code_blocks(store: WorkspaceStore, simulator) -> None:
    prompts: list[str] = []
    reply = "Add this:\n```python\nprint('added')\n```"
    session = WorkspaceSession(store, ExecutionRouter(simulator=simulator), assistant=_assistant(prompts, reply))
    before = store.active_file.content

    assert await session.ask("add a greeting", insert=True) == reply
    assert store.active_file.content == f"{before}\nprint('added')\n"
    assert session.log.lines[-1] == TerminalLine.success("[AI] Inserted 1 code blocks into main.py.")
    assert prompts[0].endswith("User Request: add a greeting")


async def test_ask_without_assistant(session: WorkspaceSession) -> None:
    assert await session.ask("hello") is None
    assert session.log.lines[-1] == TerminalLine.error("Assistant is not configured.")


async def test_open_session_installs_assistant_as_fix_handler(tmp_path) -> None:
    settings = RunVaultSettings(data_root=str(tmp_path / "data"), backend_url="http://127.0.0.1:9")

    async with open_session(settings) as session:
        assert session.assistant is not None
        pending = session.log.request_fix(TerminalLine.error("[Python Error]: boom"))
        assert pending is not None
        pending.close()
