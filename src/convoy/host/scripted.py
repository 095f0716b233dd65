"""Configurer steps driven by the per-OS shell scripts in ``<os module>/scripts``."""

from typing import Any, ClassVar

from convoy.host.configurer import Configurer


class ScriptedConfigurer(Configurer):
    """Runs each convergence step as the matching script of the OS family.

    Concrete OS handlers set ``script_dir`` and the pinned package versions, and
    implement the package manager specifics (``configure_repos``,
    ``default_repositories``).
    """

    docker_version: ClassVar[str]
    containerd_version: ClassVar[str]
    cfssl_version: ClassVar[str]

    def install_essentials(self) -> None:
        self.configure_script_library()
        self.exec_script("configure-essentials.sh")

    def configure_netfilter(self) -> None:
        self.exec_script("configure-netfilter.sh")

    def configure_cfssl(self) -> None:
        self.exec_script(
            "configure-cfssl.sh", ARCH=self.host.cpu_arch, CFSSL_VERSION=self.cfssl_version
        )

    def ensure_kubelet(self, args: dict[str, Any]) -> None:
        variables = {
            "KUBE_VERSION": self.config.kubernetes_version,
            "KUBELET_ARGS": " ".join(self.kubelet_args()),
            **args,
        }
        self.exec_script("ensure-kubelet.sh", **variables)

    def install_kube_packages(self, args: dict[str, Any]) -> None:
        variables = {"KUBE_VERSION": self.config.kubernetes_version, **args}
        self.exec_script("install-kube-packages.sh", **variables)

    def upgrade_kubeadm(self, version: str) -> None:
        self.exec_script("upgrade-kubeadm.sh", VERSION=version)

    def configure_container_runtime(self) -> None:
        if self.custom_docker():
            self.log_info("Container runtime is managed outside convoy, skipping")
            return

        if self.docker():
            self.exec_script(
                "configure-docker.sh",
                DOCKER_VERSION=self.docker_version,
                INSECURE_REGISTRIES=self.insecure_registries(),
            )
        else:
            self.exec_script(
                "configure-containerd.sh",
                CONTAINERD_VERSION=self.containerd_version,
                PAUSE_IMAGE=self.pause_image(),
                INSECURE_REGISTRIES=self.insecure_registries(),
            )

    def configure_container_runtime_safe(self) -> bool:
        if self.custom_docker():
            return True
        return self.container_runtime_unchanged()

    def configure_firewalld(self) -> None:
        firewalld = self.config.firewalld
        if not firewalld.enabled:
            return
        self.exec_script(
            "configure-firewalld.sh",
            ROLE=self.host.role,
            TRUSTED_SUBNETS=" ".join(firewalld.trusted_subnets),
        )

    def reset(self) -> None:
        self.exec_script("reset.sh")
