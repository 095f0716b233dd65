"""Ubuntu host configurer (apt based)."""

import shlex
from pathlib import Path

from convoy.cluster.host import OsRelease, Repository
from convoy.host.scripted import ScriptedConfigurer

KEYRINGS_DIR = "/etc/apt/keyrings"
SOURCES_DIR = "/etc/apt/sources.list.d"


class UbuntuConfigurer(ScriptedConfigurer):
    """Provision Ubuntu LTS hosts."""

    supported_os_releases = (
        OsRelease(id="ubuntu", version="18.04"),
        OsRelease(id="ubuntu", version="20.04"),
        OsRelease(id="ubuntu", version="22.04"),
    )
    script_dir = Path(__file__).parent / "scripts"

    docker_version = "24.0"
    containerd_version = "1.7"
    cfssl_version = "1.6.4"

    def configure_repos(self) -> None:
        """Write apt source lists and signing keys, then refresh the package index."""
        self.transport.exec_checked(f"sudo install -m 0755 -d {KEYRINGS_DIR}")
        for repo in self.host_repositories():
            self.log_info(f"Configuring apt repository {repo.name}")
            self.transport.file(f"{SOURCES_DIR}/{repo.name}.list").write(repo.contents)
            if repo.key_url:
                keyring = shlex.quote(f"{KEYRINGS_DIR}/{repo.name}.gpg")
                self.transport.exec_checked(
                    f"curl -fsSL {shlex.quote(repo.key_url)} | sudo gpg --batch --yes "
                    f"--dearmor -o {keyring}"
                )
        self.transport.exec_checked("sudo DEBIAN_FRONTEND=noninteractive apt-get update -y")

    def default_repositories(self) -> list[Repository]:
        minor = self.kube_minor_version()
        return [
            Repository(
                name="kubernetes",
                contents=(
                    f"deb [signed-by={KEYRINGS_DIR}/kubernetes.gpg] "
                    f"https://pkgs.k8s.io/core:/stable:/v{minor}/deb/ /\n"
                ),
                key_url=f"https://pkgs.k8s.io/core:/stable:/v{minor}/deb/Release.key",
            ),
        ]
