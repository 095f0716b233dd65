"""Host-level configuration models."""

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from convoy.utils.errors import ConfigError

if TYPE_CHECKING:
    from convoy.cluster.config import ClusterConfig

Role = Literal["master", "worker", "etcd"]
ContainerRuntimeName = Literal["docker", "custom_docker", "containerd"]


class OsRelease(BaseModel):
    """OS identity used to pick a configurer. Equality is exact on id and version."""

    model_config = ConfigDict(frozen=True)

    id: str
    version: str

    def __str__(self) -> str:
        return f"{self.id} {self.version}"


class Repository(BaseModel):
    """Package repository definition written to the host's package manager config."""

    model_config = ConfigDict(frozen=True)

    name: str
    contents: str
    key_url: str | None = None


class Host(BaseModel):
    """A single machine participating in the cluster."""

    model_config = ConfigDict(extra="forbid")

    address: str
    private_address: str | None = None
    role: Role = "worker"
    region: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    user: str | None = None
    ssh_key_path: str | None = None
    ssh_port: int = 22
    container_runtime: ContainerRuntimeName = "containerd"
    cpu_arch: str = "amd64"
    environment: dict[str, str] | None = None
    repositories: list[Repository] | None = None
    os_release: OsRelease | None = None

    _config: Any = PrivateAttr(default=None)
    _api_endpoint: str | None = PrivateAttr(default=None)
    _index: int = PrivateAttr(default=0)
    _checks: dict[str, Any] = PrivateAttr(default_factory=dict)

    @field_validator("environment")
    @classmethod
    def _check_environment(cls, value: dict[str, str] | None) -> dict[str, str] | None:
        for key, item in (value or {}).items():
            if "\n" in item or "\r" in item:
                raise ValueError(f"{key} must be a single line")
        return value

    def __str__(self) -> str:
        return self.address

    @property
    def peer_address(self) -> str:
        """Address used for private (same-region) traffic."""
        return self.private_address or self.address

    @property
    def config(self) -> "ClusterConfig | None":
        return self._config

    @property
    def api_endpoint(self) -> str | None:
        return self._api_endpoint

    def bind(self, config: "ClusterConfig", api_endpoint: str | None, index: int) -> None:
        """Attach the owning cluster configuration. Only the loader calls this, once.

        Raises:
            ConfigError: If the host is already bound to a cluster configuration
        """
        if self._config is not None:
            raise ConfigError(f"Host {self.address} is already bound to a cluster configuration")

        self._config = config
        self._api_endpoint = api_endpoint
        self._index = index

    @property
    def checks(self) -> dict[str, Any]:
        """Runtime facts reported by host checks (e.g. ``kubelet_configured``)."""
        return self._checks

    @property
    def new(self) -> bool:
        """True until the host reports an already configured kubelet."""
        return not self._checks.get("kubelet_configured", False)

    def master_sort_score(self) -> int:
        return self._index

    def etcd_sort_score(self) -> int:
        return self._index

    def docker(self) -> bool:
        return self.container_runtime == "docker"

    def custom_docker(self) -> bool:
        return self.container_runtime == "custom_docker"

    def containerd(self) -> bool:
        return self.container_runtime == "containerd"
