"""Enterprise Linux 7 host configurers (yum based)."""

import shlex
from pathlib import Path

from convoy.cluster.host import OsRelease, Repository
from convoy.host.scripted import ScriptedConfigurer

REPOS_DIR = "/etc/yum.repos.d"


class El7Configurer(ScriptedConfigurer):
    """Shared provisioning for CentOS 7 and RHEL 7 hosts."""

    script_dir = Path(__file__).parent / "scripts"

    docker_version = "24.0"
    containerd_version = "1.6"
    cfssl_version = "1.6.4"

    def configure_repos(self) -> None:
        for repo in self.host_repositories():
            self.log_info(f"Configuring yum repository {repo.name}")
            self.transport.file(f"{REPOS_DIR}/{repo.name}.repo").write(repo.contents)
            if repo.key_url:
                self.transport.exec_checked(f"sudo rpm --import {shlex.quote(repo.key_url)}")
        self.transport.exec_checked("sudo yum makecache -y")

    def default_repositories(self) -> list[Repository]:
        minor = self.kube_minor_version()
        base_url = f"https://pkgs.k8s.io/core:/stable:/v{minor}/rpm"
        contents = "\n".join(
            [
                "[kubernetes]",
                "name=Kubernetes",
                f"baseurl={base_url}/",
                "enabled=1",
                "gpgcheck=1",
                f"gpgkey={base_url}/repodata/repomd.xml.key",
                "exclude=kubelet kubeadm kubectl cri-tools kubernetes-cni",
                "",
            ]
        )
        return [
            Repository(
                name="kubernetes",
                contents=contents,
                key_url=f"{base_url}/repodata/repomd.xml.key",
            ),
        ]


class CentosConfigurer(El7Configurer):
    supported_os_releases = (OsRelease(id="centos", version="7"),)


class RhelConfigurer(El7Configurer):
    """RHEL 7.x; extras are enabled before the shared essentials."""

    supported_os_releases = tuple(
        OsRelease(id="rhel", version=f"7.{minor}") for minor in range(4, 10)
    )

    def install_essentials(self) -> None:
        self.transport.exec_checked(
            "sudo subscription-manager repos --enable=rhel-7-server-extras-rpms || true"
        )
        super().install_essentials()
