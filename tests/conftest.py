"""Shared fixtures: temp databases, a fake DevTools endpoint and an API client."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

# Imported for their schema registration side effects
from pidea.db.analysis_repo import AnalysisRepo
from pidea.db.chat_repo import ChatRepo
from pidea.db.database import Database
from pidea.db.project_interface_repo import ProjectInterfaceRepo
from pidea.db.project_repo import ProjectRepo
from pidea.services.event_bus import EventBus
from pidea.services.ide.detector import IDEDetectorFactory
from pidea.services.ide.ide_manager import IDEManager
from pidea.services.ide.starter import IDEStarterFactory


def devtools_transport(running: dict[int, str]) -> httpx.MockTransport:
    """Answer /json/version on the given ports with the given browser string"""

    def handler(request: httpx.Request) -> httpx.Response:
        browser = running.get(request.url.port)
        if browser is None:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(
            200,
            json={
                "Browser": browser,
                "Protocol-Version": "1.3",
                "webSocketDebuggerUrl": f"ws://127.0.0.1:{request.url.port}/devtools/browser/abc",
            },
        )

    return httpx.MockTransport(handler)


def busy_ports_checker(busy: set[int]):
    async def checker(host: str, port: int) -> bool:
        return port in busy

    return checker


def make_ide_manager(
    running: dict[int, str] | None = None,
    busy: set[int] | None = None,
    event_bus: EventBus | None = None,
    user_data_dir: str | None = None,
) -> IDEManager:
    running = running or {}
    detector_factory = IDEDetectorFactory(
        http_client=httpx.AsyncClient(transport=devtools_transport(running)),
        port_checker=busy_ports_checker(set(running) | (busy or set())),
        host="127.0.0.1",
    )
    return IDEManager(
        detector_factory=detector_factory,
        starter_factory=IDEStarterFactory(user_data_dir),
        event_bus=event_bus,
        enabled_ide_types=["cursor", "vscode", "windsurf"],
    )


class FakeProcess:
    _next_pid = 4000

    def __init__(self) -> None:
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.returncode = None
        self.terminated = False

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = 0

    def kill(self) -> None:
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode


@pytest.fixture
def spawned(monkeypatch) -> list:
    """Replace IDE process creation with a fake and record the launched commands"""
    commands = []

    async def fake_exec(*command, **kwargs):
        commands.append(list(command))
        return FakeProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    return commands


@pytest.fixture
def database(tmp_path) -> Database:
    db = Database(str(tmp_path / "pidea-test.db"))
    db.setup()
    return db


@pytest.fixture
def chat_repo(database) -> ChatRepo:
    return ChatRepo(database)


@pytest.fixture
def project_repo(database) -> ProjectRepo:
    return ProjectRepo(database)


@pytest.fixture
def interface_repo(database) -> ProjectInterfaceRepo:
    return ProjectInterfaceRepo(database)


@pytest.fixture
def analysis_repo(database) -> AnalysisRepo:
    return AnalysisRepo(database)


@pytest.fixture
def workspace(tmp_path):
    """A small mixed Python/JS workspace"""
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "web").mkdir()
    (root / "node_modules" / "left-pad").mkdir(parents=True)

    (root / "src" / "app.py").write_text(
        "import os\n\n\ndef main():\n    # TODO: read config\n    return os.getcwd()\n"
    )
    (root / "web" / "index.js").write_text("function hello() {\n  return 'hi';\n}\n")
    (root / "node_modules" / "left-pad" / "index.js").write_text("module.exports = 1;\n")
    (root / "README.md").write_text("# Demo\n")
    (root / "requirements.txt").write_text("fastapi>=0.110\nhttpx\n# comment\n-e .\n")
    return root


@pytest.fixture
def client(tmp_path, monkeypatch):
    """API client against a fresh database and a fake Cursor on port 9222"""
    from main import app
    from pidea.api import dependencies
    from pidea.settings import settings

    db = dependencies.get_database()
    monkeypatch.setattr(db, "db_path", str(tmp_path / "api.db"))
    monkeypatch.setattr(db, "_initialized", False)

    manager = make_ide_manager(
        running={9222: "Cursor/0.42.3"},
        user_data_dir=str(tmp_path / "profiles"),
    )
    monkeypatch.setattr(dependencies, "_ide_manager_instance", manager)
    monkeypatch.setitem(dependencies.get_service_registry()._services, "ide_manager", manager)

    with TestClient(app, headers={"X-API-Key": settings.api_key}) as test_client:
        yield test_client
