"""Pytest fixtures for testing convoy."""

import shlex
from typing import Any

import pytest

from convoy.cluster.config import ClusterConfig
from convoy.host.transport import CommandResult, Transport
from convoy.utils.errors import KubectlCommandError


class FakeTransport(Transport):
    """In-memory transport that records commands and emulates remote files.

    ``sudo test -e``/``sudo cat``/``sudo tee`` operate on ``files``;
    ``systemctl is-active`` succeeds only for units in ``active_services``.
    Exact commands in ``exit_statuses`` return that status.
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        active_services: set[str] | None = None,
        exit_statuses: dict[str, int] | None = None,
    ):
        self.host_label = "10.0.0.1"
        self.files = dict(files or {})
        self.active_services = set(active_services or ())
        self.exit_statuses = dict(exit_statuses or {})
        self.commands: list[str] = []
        self.stdins: dict[str, str | None] = {}
        self.scripts: list[tuple[str, dict[str, str]]] = []

    def exec(self, command: str, stdin: str | None = None) -> CommandResult:
        self.commands.append(command)
        self.stdins[command] = stdin

        if command in self.exit_statuses:
            return CommandResult(command, self.exit_statuses[command], stderr="failed")

        argv = shlex.split(command)
        if argv[:4] == ["sudo", "systemctl", "is-active", "--quiet"]:
            return CommandResult(command, 0 if argv[4] in self.active_services else 3)
        if argv[:3] == ["sudo", "test", "-e"]:
            return CommandResult(command, 0 if argv[3] in self.files else 1)
        if argv[:2] == ["sudo", "cat"]:
            if argv[2] not in self.files:
                return CommandResult(command, 1, stderr="No such file or directory")
            return CommandResult(command, 0, stdout=self.files[argv[2]])
        if argv[:2] == ["sudo", "tee"]:
            self.files[argv[2]] = stdin or ""
        return CommandResult(command, 0)

    def exec_script(self, name, env=None, path=None):
        self.scripts.append((name, dict(env or {})))
        return super().exec_script(name, env=env, path=path)

    def script_names(self) -> list[str]:
        return [name for name, _ in self.scripts]


class FakeKubeClient:
    """Records applied and deleted resources; ``reject`` names fail with kubectl errors.

    ``stacks`` maps a stack name to the objects (``kind/name``) labelled with it,
    which ``delete_selected`` removes kind by kind. A kind listed in ``reject``
    fails selector deletes.
    """

    def __init__(
        self,
        reject: set[str] | None = None,
        absent: set[str] | None = None,
        stacks: dict[str, list[str]] | None = None,
    ):
        self.reject = set(reject or ())
        self.absent = set(absent or ())
        self.stacks = {name: list(objects) for name, objects in (stacks or {}).items()}
        self.applied: list[dict[str, Any]] = []
        self.deleted: list[dict[str, Any]] = []
        self.selectors: list[tuple[str, str]] = []

    @staticmethod
    def _name(resource: dict[str, Any]) -> str:
        return resource["metadata"]["name"]

    def apply(self, resource: dict[str, Any]) -> None:
        if self._name(resource) in self.reject:
            raise KubectlCommandError(f"admission webhook denied {self._name(resource)}")
        self.applied.append(resource)

    def delete(self, resource: dict[str, Any]) -> bool:
        if self._name(resource) in self.reject:
            raise KubectlCommandError(f"forbidden: {self._name(resource)}")
        if self._name(resource) in self.absent:
            return False
        self.deleted.append(resource)
        return True

    def delete_selected(self, kind: str, selector: str) -> list[str]:
        self.selectors.append((kind, selector))
        if kind in self.reject:
            raise KubectlCommandError(f"forbidden: {kind}")
        objects = self.stacks.get(selector.split("=", 1)[1], [])
        matched = [name for name in objects if name.split("/", 1)[0] == kind]
        for name in matched:
            objects.remove(name)
        return matched

    def kinds(self, resources: list[dict[str, Any]]) -> list[str]:
        return [f"{r['kind']}/{self._name(r)}" for r in resources]


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Create an empty fake transport for testing.

    Returns:
        FakeTransport with no files and no active services
    """
    return FakeTransport()


@pytest.fixture
def transport_factory():
    """Build fake transports with files, active services and scripted exit statuses."""
    return FakeTransport


@pytest.fixture
def kube_client() -> FakeKubeClient:
    """Create a fake kube client that accepts every resource."""
    return FakeKubeClient()


@pytest.fixture
def kube_client_factory():
    return FakeKubeClient


@pytest.fixture
def make_cluster():
    """Build a loaded ClusterConfig from host dicts and top-level overrides.

    Returns:
        Factory ``(hosts=None, **overrides) -> ClusterConfig``
    """

    def _make(hosts: list[dict[str, Any]] | None = None, **overrides: Any) -> ClusterConfig:
        raw = {
            "name": "test-cluster",
            "hosts": hosts or [{"address": "10.0.0.1", "role": "master"}],
            **overrides,
        }
        return ClusterConfig.load(raw)

    return _make


@pytest.fixture
def cluster(make_cluster) -> ClusterConfig:
    """Three-host cluster: one master and two workers across two regions."""
    return make_cluster(
        [
            {
                "address": "1.1.1.1",
                "private_address": "10.0.0.1",
                "role": "master",
                "region": "eu",
            },
            {
                "address": "1.1.1.2",
                "private_address": "10.0.0.2",
                "role": "worker",
                "region": "eu",
            },
            {"address": "1.1.1.3", "role": "worker", "region": "us"},
        ]
    )
