"""Shared pytest fixtures for homestack tests."""

from pathlib import Path

import pytest
import structlog

from homestack.core.settings import HomestackSettings
from homestack.core.subprocess_manager import SubprocessResult
from homestack.services.dispatcher import Dispatcher
from homestack.services.stack_operations import StackOperations

MEDIA_COMPOSE = """\
name: media
services:
  qbittorrent:
    image: lscr.io/linuxserver/qbittorrent:latest
    ports:
      - "8081:8080"
      - "6881:6881/udp"
  sonarr:
    image: lscr.io/linuxserver/sonarr:latest
    ports:
      - "8989:8989"
"""

SUPPORT_COMPOSE = """\
name: support-tools
services:
  portainer:
    image: portainer/portainer-ce
    ports:
      - target: 9000
        published: 9000
  watchtower:
    image: containrrr/watchtower
"""


class FakeRunner:
    """Records runtime calls instead of starting processes.

    Return codes are looked up by (stack directory name, verb); the system
    prune is keyed as (None, "prune").
    """

    def __init__(self):
        self.calls: list[tuple[list[str], str | None]] = []
        self.returncodes: dict[tuple[str | None, str], int] = {}
        self.stdout: dict[tuple[str | None, str], str] = {}
        self.errors: dict[tuple[str | None, str], Exception] = {}
        self.cleaned_up = False

    def fail(self, stack: str | None, verb: str, returncode: int = 1) -> None:
        self.returncodes[(stack, verb)] = returncode

    def raise_on(self, stack: str | None, verb: str, error: Exception) -> None:
        self.errors[(stack, verb)] = error

    @staticmethod
    def _key(cmd: list[str], cwd: str | None) -> tuple[str | None, str]:
        verb = "prune" if "prune" in cmd else cmd[2]
        return (Path(cwd).name if cwd else None, verb)

    @property
    def steps(self) -> list[tuple[str | None, str]]:
        return [self._key(cmd, cwd) for cmd, cwd in self.calls]

    async def run_command(
        self,
        cmd,
        *,
        cwd=None,
        timeout=None,
        check=True,
        capture_output=True,
        env=None,
        stdin=None,
    ) -> SubprocessResult:
        self.calls.append((list(cmd), cwd))
        key = self._key(cmd, cwd)
        if key in self.errors:
            raise self.errors[key]
        result = SubprocessResult(
            returncode=self.returncodes.get(key, 0),
            stdout=self.stdout.get(key, ""),
            stderr="",
            cmd=list(cmd),
            cwd=cwd,
        )
        if check:
            result.check_returncode()
        return result

    async def cleanup_all(self):
        self.cleaned_up = True


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the user's HOMESTACK_* variables and any .env file out of tests."""
    for var in (
        "HOMESTACK_ROOT",
        "HOMESTACK_FAN_OUT",
        "HOMESTACK_DETACH",
        "HOMESTACK_COMPOSE_COMMAND",
        "HOMESTACK_DOCKER_COMMAND",
        "HOMESTACK_COMMAND_TIMEOUT",
        "HOMESTACK_PASSWORD_LENGTH",
    ):
        monkeypatch.delenv(var, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


@pytest.fixture(autouse=True)
def captured_logs():
    """Capture structlog events so nothing is printed to stdout."""
    with structlog.testing.capture_logs() as logs:
        yield logs


@pytest.fixture
def stacks_root(tmp_path: Path) -> Path:
    """A stacks root with the 'media' and 'support' stacks."""
    root = tmp_path / "stacks"
    (root / "media").mkdir(parents=True)
    (root / "media" / "compose.yml").write_text(MEDIA_COMPOSE)
    (root / "support").mkdir()
    (root / "support" / "compose.yml").write_text(SUPPORT_COMPOSE)
    return root


@pytest.fixture
def empty_root(tmp_path: Path) -> Path:
    root = tmp_path / "empty"
    (root / "notes").mkdir(parents=True)
    return root


@pytest.fixture
def settings(stacks_root: Path) -> HomestackSettings:
    return HomestackSettings(root=stacks_root)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def operations(settings: HomestackSettings, runner: FakeRunner) -> StackOperations:
    return StackOperations(settings, runner=runner)


@pytest.fixture
def make_dispatcher(runner: FakeRunner):
    """Build a dispatcher for any settings, sharing the fake runner."""

    def factory(settings: HomestackSettings) -> Dispatcher:
        return Dispatcher(settings, operations=StackOperations(settings, runner=runner))

    return factory


@pytest.fixture
def dispatcher(make_dispatcher, settings: HomestackSettings) -> Dispatcher:
    return make_dispatcher(settings)
