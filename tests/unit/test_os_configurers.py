"""Tests for the Ubuntu and EL7 configurers."""

import pytest

from convoy.host.el7 import CentosConfigurer, RhelConfigurer
from convoy.host.ubuntu import UbuntuConfigurer

SCRIPTS = [
    "configure-essentials.sh",
    "configure-netfilter.sh",
    "configure-cfssl.sh",
    "ensure-kubelet.sh",
    "install-kube-packages.sh",
    "upgrade-kubeadm.sh",
    "configure-docker.sh",
    "configure-containerd.sh",
    "configure-firewalld.sh",
    "reset.sh",
]


@pytest.fixture
def build(make_cluster, transport_factory):
    """Build ``configurer_class`` for a single master host."""

    def _build(configurer_class, host=None, cluster=None, transport=None):
        hosts = [{"address": "10.0.0.1", "role": "master", **(host or {})}]
        config = make_cluster(hosts, **(cluster or {}))
        return configurer_class(config.hosts[0], transport_factory(**(transport or {})))

    return _build


@pytest.mark.parametrize("configurer_class", [UbuntuConfigurer, CentosConfigurer])
@pytest.mark.parametrize("script", SCRIPTS)
def test_scripts_exist(configurer_class, script):
    assert configurer_class.script_dir.joinpath(script).is_file()


@pytest.mark.parametrize("configurer_class", [UbuntuConfigurer, CentosConfigurer, RhelConfigurer])
class TestSharedBehaviour:
    """Behaviour common to every shipped configurer."""

    def test_install_essentials(self, build, configurer_class):
        configurer = build(configurer_class)

        configurer.install_essentials()

        assert "/usr/local/share/convoy/util.sh" in configurer.transport.files
        assert configurer.transport.script_names() == ["configure-essentials.sh"]

    def test_ensure_kubelet(self, build, configurer_class):
        configurer = build(configurer_class, cluster={"kubernetes_version": "1.28.4"})

        configurer.ensure_kubelet({"NODE_IP": "10.0.0.1"})

        name, env = configurer.transport.scripts[0]
        assert name == "ensure-kubelet.sh"
        assert env == {"KUBE_VERSION": "1.28.4", "KUBELET_ARGS": "", "NODE_IP": "10.0.0.1"}

    def test_kubelet_args_override_defaults(self, build, configurer_class):
        configurer = build(configurer_class, cluster={"kubernetes_version": "1.28.4"})

        configurer.ensure_kubelet({"KUBE_VERSION": "1.29.0", "KUBELET_ARGS": "--v=2"})
        configurer.install_kube_packages({"KUBE_VERSION": "1.29.0"})

        kubelet_env = configurer.transport.scripts[0][1]
        assert kubelet_env == {"KUBE_VERSION": "1.29.0", "KUBELET_ARGS": "--v=2"}
        assert configurer.transport.scripts[1] == (
            "install-kube-packages.sh",
            {"KUBE_VERSION": "1.29.0"},
        )

    def test_upgrade_kubeadm(self, build, configurer_class):
        configurer = build(configurer_class)

        configurer.upgrade_kubeadm("1.29.0")

        assert configurer.transport.scripts == [("upgrade-kubeadm.sh", {"VERSION": "1.29.0"})]

    def test_configure_cfssl(self, build, configurer_class):
        configurer = build(configurer_class, host={"cpu_arch": "arm64"})

        configurer.configure_cfssl()

        name, env = configurer.transport.scripts[0]
        assert name == "configure-cfssl.sh"
        assert env["ARCH"] == "arm64"

    def test_containerd_runtime(self, build, configurer_class):
        configurer = build(configurer_class)

        configurer.configure_container_runtime()

        name, env = configurer.transport.scripts[0]
        assert name == "configure-containerd.sh"
        assert env["PAUSE_IMAGE"] == "registry.k8s.io/pause:3.9"
        assert env["INSECURE_REGISTRIES"] == "'[]'"

    def test_docker_runtime(self, build, configurer_class):
        configurer = build(
            configurer_class,
            host={"container_runtime": "docker"},
            cluster={"container_runtime": {"insecure_registries": ["reg.local:5000"]}},
        )

        configurer.configure_container_runtime()

        name, env = configurer.transport.scripts[0]
        assert name == "configure-docker.sh"
        assert env["INSECURE_REGISTRIES"] == "'[\"reg.local:5000\"]'"

    def test_custom_docker_is_left_alone(self, build, configurer_class):
        configurer = build(configurer_class, host={"container_runtime": "custom_docker"})

        configurer.configure_container_runtime()

        assert configurer.transport.scripts == []
        assert configurer.configure_container_runtime_safe() is True

    def test_runtime_switch_is_unsafe(self, build, configurer_class):
        configurer = build(configurer_class, transport={"active_services": {"docker"}})
        assert configurer.configure_container_runtime_safe() is False

    def test_same_runtime_is_safe(self, build, configurer_class):
        configurer = build(configurer_class, transport={"active_services": {"containerd"}})
        assert configurer.configure_container_runtime_safe() is True

    def test_firewalld_disabled(self, build, configurer_class):
        configurer = build(configurer_class)

        configurer.configure_firewalld()

        assert configurer.transport.commands == []

    def test_firewalld_enabled(self, build, configurer_class):
        firewalld = {"enabled": True, "trusted_subnets": ["10.0.0.0/8", "172.16.0.0/12"]}
        configurer = build(configurer_class, cluster={"firewalld": firewalld})

        configurer.configure_firewalld()

        name, env = configurer.transport.scripts[0]
        assert name == "configure-firewalld.sh"
        assert env == {"ROLE": "master", "TRUSTED_SUBNETS": "10.0.0.0/8 172.16.0.0/12"}

    def test_reset(self, build, configurer_class):
        configurer = build(configurer_class)

        configurer.reset()

        assert configurer.transport.script_names() == ["reset.sh"]

    def test_host_environment_reaches_scripts(self, build, configurer_class):
        configurer = build(configurer_class, host={"environment": {"HTTPS_PROXY": "http://p"}})

        configurer.configure_netfilter()

        assert configurer.transport.scripts == [
            ("configure-netfilter.sh", {"HTTPS_PROXY": "http://p"})
        ]


class TestUbuntuConfigurer:
    """Ubuntu specifics."""

    def test_supported_releases(self):
        versions = [r.version for r in UbuntuConfigurer.supported_os_releases]
        assert versions == ["18.04", "20.04", "22.04"]

    def test_default_repositories(self, build):
        configurer = build(UbuntuConfigurer, cluster={"kubernetes_version": "1.29.2"})

        (repo,) = configurer.default_repositories()

        assert repo.name == "kubernetes"
        assert "https://pkgs.k8s.io/core:/stable:/v1.29/deb/ /" in repo.contents
        assert repo.key_url == "https://pkgs.k8s.io/core:/stable:/v1.29/deb/Release.key"

    def test_configure_repos(self, build):
        configurer = build(UbuntuConfigurer)

        configurer.configure_repos()

        commands = configurer.transport.commands
        assert commands[0] == "sudo install -m 0755 -d /etc/apt/keyrings"
        assert "v1.28/deb" in configurer.transport.files["/etc/apt/sources.list.d/kubernetes.list"]
        assert any(c.startswith("curl -fsSL https://pkgs.k8s.io/") for c in commands)
        assert commands[-1] == "sudo DEBIAN_FRONTEND=noninteractive apt-get update -y"

    def test_configure_repos_host_override(self, build):
        repo = {"name": "mirror", "contents": "deb http://mirror.local/k8s /\n"}
        configurer = build(UbuntuConfigurer, host={"repositories": [repo]})

        configurer.configure_repos()

        assert "/etc/apt/sources.list.d/kubernetes.list" not in configurer.transport.files
        assert configurer.transport.files["/etc/apt/sources.list.d/mirror.list"] == repo["contents"]
        assert not any(c.startswith("curl") for c in configurer.transport.commands)


class TestEl7Configurer:
    """CentOS and RHEL specifics."""

    def test_supported_releases(self):
        assert [str(r) for r in CentosConfigurer.supported_os_releases] == ["centos 7"]
        assert [r.version for r in RhelConfigurer.supported_os_releases] == [
            "7.4",
            "7.5",
            "7.6",
            "7.7",
            "7.8",
            "7.9",
        ]

    def test_configure_repos(self, build):
        configurer = build(CentosConfigurer)

        configurer.configure_repos()

        repo = configurer.transport.files["/etc/yum.repos.d/kubernetes.repo"]
        assert repo.startswith("[kubernetes]\n")
        assert "baseurl=https://pkgs.k8s.io/core:/stable:/v1.28/rpm/" in repo
        assert configurer.transport.commands[-1] == "sudo yum makecache -y"
        assert any(c.startswith("sudo rpm --import") for c in configurer.transport.commands)

    def test_rhel_enables_extras_first(self, build):
        configurer = build(RhelConfigurer)

        configurer.install_essentials()

        assert configurer.transport.commands[0].startswith("sudo subscription-manager repos")
        assert configurer.transport.script_names() == ["configure-essentials.sh"]
