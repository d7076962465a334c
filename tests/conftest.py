"""Pytest fixtures for scanwell tests."""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import pytest

from scanwell.foundation.config.loader import ScanwellConfig, reset_config
from scanwell.foundation.types.config import LockConfig, PollConfig, RetryConfig, ScannerConfig
from scanwell.foundation.types.scan import ScanConfig
from scanwell.scanning.lock import AnalysisLock
from scanwell.scanning.runner import ProcessResult
from scanwell.sonar.client import SonarClient

SERVER_URL = "https://sonar.example.com"
TOKEN = "squ_0123456789abcdef"
PROJECT_KEY = "demo-project"


# =============================================================================
# Scanner processes
# =============================================================================


@dataclass(frozen=True, slots=True)
class RunCall:
    command: str
    args: list[str]
    cwd: Path
    timeout: float


class FakeRunner:
    """ScannerRunner double that replays scripted results per command.

    Each command maps to a list of ProcessResults or exceptions consumed in
    order; the last entry repeats. Unscripted commands succeed with no output.
    """

    def __init__(self, script: dict[str, list[ProcessResult | Exception]] | None = None):
        self.script = {command: list(items) for command, items in (script or {}).items()}
        self.calls: list[RunCall] = []

    async def run(self, command, args, *, cwd, timeout):
        self.calls.append(RunCall(command, list(args), Path(cwd), timeout))
        queue = self.script.get(command)
        if not queue:
            return ProcessResult(0, "", "")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def commands(self) -> list[str]:
        return [call.command for call in self.calls]

    def calls_to(self, command: str) -> list[RunCall]:
        return [call for call in self.calls if call.command == command]


def ok(stdout: str = "") -> ProcessResult:
    return ProcessResult(0, stdout, "")


def failed(stderr: str, returncode: int = 1) -> ProcessResult:
    return ProcessResult(returncode, "", stderr)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


# =============================================================================
# Time
# =============================================================================


class FakeSleep:
    """Records sleeps instead of waiting, advancing a shared fake clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.now += seconds

    def clock(self) -> float:
        return self.now


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep real SCANWELL_* / SONAR_* variables, config files and cached config out of tests."""
    import os

    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
    for key in list(os.environ):
        if key.startswith(("SCANWELL_", "SONAR_")) or key == "FORCE_CLI_SCANNER":
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def scan_config() -> ScanConfig:
    return ScanConfig(server_url=SERVER_URL, token=TOKEN, project_key=PROJECT_KEY)


@pytest.fixture
def settings() -> ScanwellConfig:
    """Fast settings: no real waiting anywhere."""
    return ScanwellConfig(
        retry=RetryConfig(max_retries=2, retry_delay=5.0),
        lock=LockConfig(stale_threshold=600.0, max_wait=1.0, poll_interval=0.01),
        poll=PollConfig(timeout=60.0, interval=2.0, cache_refresh=False),
        scanner=ScannerConfig(),
    )


@pytest.fixture
def fast_lock() -> AnalysisLock:
    return AnalysisLock(stale_threshold=600.0, max_wait=1.0, poll_interval=0.01)


# =============================================================================
# Projects on disk
# =============================================================================


def make_tree(root: Path, files: dict[str, str]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``; a trailing / makes a dir."""
    for relative, content in files.items():
        target = root / relative
        if relative.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def maven_project(tmp_path: Path) -> Path:
    """Compiled single-module Maven project."""
    return make_tree(tmp_path / "shop", {
        "pom.xml": "<project><properties>"
                   "<maven.compiler.source>17</maven.compiler.source>"
                   "</properties></project>",
        "src/main/java/com/shop/App.java": "class App {}",
        "src/test/java/com/shop/AppTest.java": "class AppTest {}",
        "target/classes/": "",
    })


@pytest.fixture
def python_project(tmp_path: Path) -> Path:
    return make_tree(tmp_path / "tool", {
        "pyproject.toml": '[project]\nname = "tool"\nrequires-python = ">=3.11"\n',
        "src/tool/__init__.py": "",
        "tests/test_tool.py": "",
    })


# =============================================================================
# Analysis server
# =============================================================================


class FakeSonarServer:
    """In-memory analysis server behind ``httpx.MockTransport``.

    ``tasks`` is consumed one entry per /api/ce/activity call (the last one
    repeats); ``failures`` maps an API path to an HTTP status to return.
    """

    def __init__(self) -> None:
        self.tasks: list[dict[str, Any] | None] = [{"id": "T1", "status": "SUCCESS"}]
        self.issues: list[dict[str, Any]] = []
        self.hotspots: dict[str, list[dict[str, Any]]] = {}
        self.measures: list[dict[str, Any]] = []
        self.rules: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, tuple[int, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if path in self.failures:
            status, body = self.failures[path]
            return httpx.Response(status, json=body)

        if path == "/api/ce/activity":
            task = self.tasks.pop(0) if len(self.tasks) > 1 else self.tasks[0]
            return httpx.Response(200, json={"tasks": [task] if task else []})

        if path == "/api/issues/search":
            page = int(params.get("p", "1"))
            size = int(params.get("ps", "500"))
            selected = self.issues
            if severities := params.get("severities"):
                selected = [i for i in selected if i.get("severity") in severities.split(",")]
            chunk = selected[(page - 1) * size: page * size]
            return httpx.Response(
                200, json={"total": len(selected), "p": page, "ps": size, "issues": chunk}
            )

        if path == "/api/hotspots/search":
            return httpx.Response(200, json={"hotspots": self.hotspots.get(params["status"], [])})

        if path == "/api/measures/component":
            return httpx.Response(
                200,
                json={"component": {"key": params["component"], "measures": self.measures}},
            )

        if path == "/api/rules/show":
            rule = self.rules.get(params["key"])
            if rule is None:
                return httpx.Response(404, json={"errors": [{"msg": "Rule not found"}]})
            return httpx.Response(200, json={"rule": rule})

        return httpx.Response(404, json={"errors": [{"msg": f"Unknown path {path}"}]})

    def client(self, config: ScanConfig | None = None, **kwargs: Any) -> SonarClient:
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url=SERVER_URL,
        )
        return SonarClient(
            config.server_url if config else SERVER_URL,
            config.token if config else TOKEN,
            config.project_key if config else PROJECT_KEY,
            http=http,
            **kwargs,
        )

    def factory(self) -> Callable[[ScanConfig], SonarClient]:
        return lambda config: self.client(config)


def issue(key: str, severity: str = "MAJOR", type_: str = "CODE_SMELL", **extra: Any) -> dict:
    return {
        "key": key,
        "rule": "java:S1000",
        "severity": severity,
        "type": type_,
        "message": f"Issue {key}",
        "component": f"{PROJECT_KEY}:src/main/java/App.java",
        "line": 10,
        **extra,
    }


@pytest.fixture
def sonar() -> FakeSonarServer:
    return FakeSonarServer()
