"""Host configurer contract and shared convergence routines."""

import json
import logging
import shlex
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, ClassVar

from convoy.cluster.config import ClusterConfig
from convoy.cluster.host import Host, OsRelease, Repository
from convoy.host.transport import CommandResult, RemoteFile, Transport
from convoy.utils.errors import ConfigError
from convoy.utils.shell import shell_escape, shell_unescape
from convoy.utils.signals import deferred_interrupts

logger = logging.getLogger(__name__)

SCRIPT_LIBRARY = Path(__file__).resolve().parent.parent / "scripts" / "convoy.sh"
SCRIPT_LIBRARY_INSTALL_PATH = "/usr/local/share/convoy"
ENV_FILE_PATH = "/etc/environment"
PAUSE_IMAGE_TAG = "3.9"


def parse_env_file(content: str) -> dict[str, str | None]:
    """Parse ``KEY=value`` lines. Comments and blank lines are skipped, empty values are None."""
    entries: dict[str, str | None] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        key, _, value = line.partition("=")
        if value.startswith('"'):
            value = value[1:]
            if value.endswith('"'):
                value = value[:-1]
        value = shell_unescape(value) if value else value
        entries[key] = value or None
    return entries


def render_env_file(entries: dict[str, str | None]) -> str:
    """Render entries as ``KEY="escaped-value"`` lines, dropping empty values.

    Raises:
        ConfigError: If a value spans several lines; the file holds one entry per line
    """
    for key, value in entries.items():
        if value and ("\n" in value or "\r" in value):
            raise ConfigError(f"Environment variable {key} must be a single line")
    lines = [f'{key}="{shell_escape(value)}"' for key, value in entries.items() if value]
    return "\n".join(lines) + "\n"


class Configurer(ABC):
    """OS-specific host provisioning over a remote transport.

    A concrete configurer declares the OS releases it handles in
    ``supported_os_releases`` and its shell scripts in ``script_dir``, and implements
    every abstract method. An instance is bound to one host for one run.
    """

    supported_os_releases: ClassVar[tuple[OsRelease, ...]] = ()
    script_dir: ClassVar[Path | None] = None

    def __init__(self, host: Host, transport: Transport):
        self.host = host
        self.transport = transport

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.host.address}>"

    @classmethod
    def supports(cls, os_release: OsRelease) -> bool:
        return any(
            release.id == os_release.id and release.version == os_release.version
            for release in cls.supported_os_releases
        )

    @property
    def config(self) -> ClusterConfig:
        if self.host.config is None:
            raise ConfigError(f"Host {self.host.address} is not bound to a cluster configuration")
        return self.host.config

    def log_info(self, message: str) -> None:
        logger.info(f"[{self.host.address}] {message}")

    def log_warn(self, message: str) -> None:
        logger.warning(f"[{self.host.address}] {message}")

    @abstractmethod
    def install_essentials(self) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def configure_repos(self) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def configure_netfilter(self) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def configure_cfssl(self) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    def kubelet_args(self) -> list[str]:
        return []

    @abstractmethod
    def ensure_kubelet(self, args: dict[str, Any]) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def install_kube_packages(self, args: dict[str, Any]) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def upgrade_kubeadm(self, version: str) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def configure_container_runtime(self) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def configure_container_runtime_safe(self) -> bool:
        """True if the runtime can be reconfigured in place without restarting workloads."""
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def configure_firewalld(self) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def reset(self) -> None:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    @abstractmethod
    def default_repositories(self) -> list[Repository]:
        raise NotImplementedError("This is an abstract base method. Implement in your subclass.")

    def ensure_container_runtime(self) -> None:
        """Converge the container runtime, purging docker containers only when required.

        A disruptive transition (existing host, managed runtime, unsafe in-place
        change, docker currently running) stops kubelet, purges docker containers
        and reconfigures. kubelet is always started again before this returns or
        raises, and SIGINT/SIGTERM are held back until it has been.
        """
        cleanup_needed = (
            not self.host.new
            and not self.custom_docker()
            and not self.configure_container_runtime_safe()
        )
        if not cleanup_needed:
            self.configure_container_runtime()
            return

        if not self.docker_running():
            self.log_info("Container runtime change needs no docker cleanup")
            self.configure_container_runtime()
            return

        self.log_warn("Container runtime change requires stopping kubelet and docker containers")
        with deferred_interrupts(), self.kubelet_stopped():
            self.purge_docker_containers()
            self.configure_container_runtime()

    @contextmanager
    def kubelet_stopped(self) -> Iterator[None]:
        """Stop kubelet for the duration of the block; it is always started again."""
        try:
            self.transport.exec_checked("sudo systemctl stop kubelet")
            yield
        finally:
            self.log_info("Starting kubelet")
            self.transport.exec_checked("sudo systemctl start kubelet")

    def purge_docker_containers(self) -> None:
        """Stop and remove all docker containers. Failures are tolerated."""
        for command in (
            "sudo docker ps -q | xargs -r sudo docker stop",
            "sudo docker ps -a -q | xargs -r sudo docker rm -f",
        ):
            result = self.transport.exec(command)
            if not result.success:
                self.log_warn(f"Ignoring failed docker cleanup: {result.output.strip()}")

    def docker(self) -> bool:
        return self.host.docker()

    def custom_docker(self) -> bool:
        return self.host.custom_docker()

    def containerd(self) -> bool:
        return self.host.containerd()

    def docker_running(self) -> bool:
        return self.transport.exec("sudo systemctl is-active --quiet docker").success

    def current_container_runtime(self) -> str | None:
        """Name of the managed runtime currently active on the host, if any."""
        if self.docker_running():
            return "docker"
        if self.transport.exec("sudo systemctl is-active --quiet containerd").success:
            return "containerd"
        return None

    def container_runtime_unchanged(self) -> bool:
        """True if no runtime is active yet or the active one is the desired one."""
        current = self.current_container_runtime()
        return current is None or current == self.host.container_runtime

    def host_repositories(self) -> list[Repository]:
        if not self.host.repositories:
            return self.default_repositories()
        return self.host.repositories

    def kube_minor_version(self) -> str:
        major, minor, *_ = self.config.kubernetes_version.split(".")
        return f"{major}.{minor}"

    def script_path(self, *path: str) -> Path:
        if self.script_dir is None:
            raise NotImplementedError(f"{type(self).__name__} does not define script_dir")
        return self.script_dir.joinpath(*path)

    def exec_script(self, script: str, **variables: Any) -> CommandResult:
        """Run one of this OS's scripts with the host environment plus ``variables``."""
        env = dict(self.host.environment or {})
        env.update({key: str(value) for key, value in variables.items()})
        return self.transport.exec_script(script, env=env, path=self.script_path(script))

    def configure_script_library(self) -> None:
        self.transport.exec_checked(f"sudo mkdir -p {SCRIPT_LIBRARY_INSTALL_PATH}")
        self.transport.file(f"{SCRIPT_LIBRARY_INSTALL_PATH}/util.sh").write(
            SCRIPT_LIBRARY.read_text()
        )

    def insecure_registries(self) -> str:
        """Insecure registries as a JSON array, shell-quoted for script environments."""
        return shlex.quote(json.dumps(self.config.container_runtime.insecure_registries))

    def pause_image(self) -> str:
        return f"{self.config.image_repository}/pause:{PAUSE_IMAGE_TAG}"

    def can_pull(self) -> bool:
        return self.transport.exec(f"sudo crictl pull {self.pause_image()}").success

    def env_file(self) -> RemoteFile:
        return self.transport.file(ENV_FILE_PATH)

    def update_env_file(self) -> None:
        """Merge the host's declared environment into /etc/environment.

        Declared values replace values already on disk; other existing entries are kept.
        """
        if not self.host.environment:
            return

        env_file = self.env_file()
        entries = parse_env_file(env_file.read()) if env_file.exists() else {}
        entries.update(self.host.environment)
        env_file.write(render_env_file(entries))
