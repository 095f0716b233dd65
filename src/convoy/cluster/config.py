"""Cluster-wide configuration and derived topology queries."""

import copy
import logging
import math
from collections.abc import Callable
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any, TypeVar

import yaml
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PrivateAttr, ValidationError
from pydantic import field_validator, model_validator

from convoy.cluster.host import Host
from convoy.utils.errors import ConfigError, ConfigOverrideError, InvalidConfigError
from convoy.utils.validation import normalize_k8s_version, validate_cidr, validate_cluster_name

logger = logging.getLogger(__name__)

HOSTS_PER_DNS_REPLICA = 10

T = TypeVar("T")

Cidr = Annotated[str, AfterValidator(validate_cidr)]


class Network(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider: str = "calico"
    dns_replicas: int | None = Field(default=None, ge=1)
    service_cidr: Cidr = "10.96.0.0/12"
    pod_network_cidr: Cidr = "10.32.0.0/12"


class Etcd(BaseModel):
    """External etcd settings. When ``endpoints`` is set, etcd is not managed on hosts."""

    model_config = ConfigDict(extra="forbid")

    endpoints: list[str] | None = None
    certificate: str | None = None
    key: str | None = None
    ca_certificate: str | None = None


class Api(BaseModel):
    model_config = ConfigDict(extra="forbid")

    endpoint: str | None = None


class ContainerRuntime(BaseModel):
    model_config = ConfigDict(extra="forbid")

    insecure_registries: list[str] = Field(default_factory=list)


class Firewalld(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    trusted_subnets: list[Cidr] = Field(default_factory=list)


def format_validation_errors(error: ValidationError) -> dict[str, list[str]]:
    """Convert a pydantic ValidationError into a dotted field path -> messages map."""
    errors: dict[str, list[str]] = {}
    for detail in error.errors():
        path = ".".join(str(part) for part in detail["loc"]) or "__root__"
        errors.setdefault(path, []).append(detail["msg"])
    return errors


class ClusterConfig(BaseModel):
    """Cluster configuration: the host set plus cluster-wide settings.

    Topology queries (master, worker and etcd membership, regions) are derived from
    ``hosts`` on first access and cached. Values present in the raw input are frozen:
    :meth:`set` can only inject attributes the user did not declare.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    hosts: list[Host] = Field(min_length=1)
    network: Network = Field(default_factory=Network)
    api: Api = Field(default_factory=Api)
    etcd: Etcd | None = None
    container_runtime: ContainerRuntime = Field(default_factory=ContainerRuntime)
    firewalld: Firewalld = Field(default_factory=Firewalld)
    image_repository: str = "registry.k8s.io"
    kubernetes_version: str = "1.28.4"
    addon_paths: list[str] = Field(default_factory=list)
    addons: dict[str, dict[str, Any]] = Field(default_factory=dict)

    _data: MappingProxyType = PrivateAttr(default_factory=lambda: MappingProxyType({}))
    _attributes: dict[str, Any] = PrivateAttr(default_factory=dict)
    _cache: dict[str, Any] = PrivateAttr(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str | None) -> str | None:
        if value is not None:
            validate_cluster_name(value)
        return value

    @field_validator("kubernetes_version")
    @classmethod
    def _check_kubernetes_version(cls, value: str) -> str:
        return normalize_k8s_version(value)

    @model_validator(mode="after")
    def _check_master(self) -> "ClusterConfig":
        if not any(host.role == "master" for host in self.hosts):
            raise ValueError("at least one host with role 'master' is required")
        return self

    @classmethod
    def load(cls, raw_data: dict[str, Any]) -> "ClusterConfig":
        """Validate raw input and build a cluster configuration.

        Each host receives a back-reference to the configuration and the API endpoint
        once the host list is complete.

        Args:
            raw_data: Untyped configuration, e.g. parsed from YAML

        Returns:
            Loaded ClusterConfig

        Raises:
            InvalidConfigError: If the input does not pass schema validation
        """
        if not isinstance(raw_data, dict):
            raise InvalidConfigError(
                "Cluster configuration must be a mapping",
                {"__root__": [f"expected a mapping, got {type(raw_data).__name__}"]},
            )

        try:
            config = cls.model_validate(raw_data)
        except ValidationError as e:
            errors = format_validation_errors(e)
            summary = "; ".join(f"{path}: {', '.join(msgs)}" for path, msgs in errors.items())
            raise InvalidConfigError(f"Invalid cluster configuration: {summary}", errors) from e

        config._data = MappingProxyType(copy.deepcopy(raw_data))

        for index, host in enumerate(config.hosts):
            host.bind(config, config.api.endpoint, index)

        logger.debug(
            f"Loaded cluster configuration with {len(config.hosts)} hosts "
            f"({len(config.master_hosts)} masters, {len(config.worker_hosts)} workers)"
        )
        return config

    @classmethod
    def load_file(cls, path: Path | str) -> "ClusterConfig":
        """Load cluster configuration from a YAML file.

        Raises:
            ConfigError: If the file cannot be read or parsed
            InvalidConfigError: If the content does not pass schema validation
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(path) as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file {path}: {e}") from e

        return cls.load(raw_data or {})

    @property
    def data(self) -> MappingProxyType:
        """Raw input the configuration was loaded from (read-only)."""
        return self._data

    @property
    def attributes(self) -> dict[str, Any]:
        """Attributes injected after load through :meth:`set`."""
        return dict(self._attributes)

    def set(self, key: str, value: Any) -> None:
        """Inject a computed attribute.

        Raises:
            ConfigOverrideError: If ``key`` was declared in the raw input
        """
        if key in self._data:
            raise ConfigOverrideError(f"Cannot override {key}.")

        if key in type(self).model_fields:
            setattr(self, key, value)
        self._attributes[key] = value
        self._cache.clear()

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a declared field or an injected attribute."""
        if key in type(self).model_fields:
            return getattr(self, key)
        return self._attributes.get(key, default)

    def _cached(self, key: str, compute: Callable[[], T]) -> T:
        if key not in self._cache:
            self._cache[key] = compute()
        return self._cache[key]

    @property
    def master_hosts(self) -> list[Host]:
        return self._cached(
            "master_hosts",
            lambda: sorted(
                (h for h in self.hosts if h.role == "master"), key=lambda h: h.master_sort_score()
            ),
        )

    @property
    def master_host(self) -> Host | None:
        masters = self.master_hosts
        return masters[0] if masters else None

    @property
    def worker_hosts(self) -> list[Host]:
        return self._cached("worker_hosts", lambda: [h for h in self.hosts if h.role == "worker"])

    @property
    def etcd_hosts(self) -> list[Host]:
        """Hosts running etcd; empty when etcd is external."""
        return self._cached("etcd_hosts", self._compute_etcd_hosts)

    def _compute_etcd_hosts(self) -> list[Host]:
        if self.etcd and self.etcd.endpoints:
            return []

        etcd_hosts = [h for h in self.hosts if h.role == "etcd"] or self.master_hosts
        return sorted(etcd_hosts, key=lambda h: h.etcd_sort_score())

    @property
    def etcd_regions(self) -> list[str]:
        return self._cached("etcd_regions", lambda: _unique_regions(self.etcd_hosts))

    @property
    def regions(self) -> list[str]:
        return self._cached("regions", lambda: _unique_regions(self.hosts))

    def etcd_peer_address(self, peer: Host) -> str:
        """Address other etcd members use to reach ``peer``.

        The public address is used when etcd spans regions, the private one otherwise.
        """
        return peer.address if len(self.etcd_regions) > 1 else peer.peer_address

    @property
    def dns_replicas(self) -> int:
        if self.network.dns_replicas:
            return self.network.dns_replicas
        if len(self.hosts) == 1:
            return 1

        return 1 + math.ceil(len(self.hosts) / HOSTS_PER_DNS_REPLICA)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.model_dump(mode="json", exclude_none=True), sort_keys=False)

    def dig(self, *keys: str | int) -> Any:
        """Walk nested attributes and list indexes, returning None if any step is missing.

        Example:
            config.dig("network", "provider")
            config.dig("hosts", 0, "address")
        """
        memo: Any = self
        for key in keys:
            if isinstance(memo, list) and isinstance(key, int):
                memo = memo[key] if -len(memo) <= key < len(memo) else None
            elif isinstance(memo, dict):
                memo = memo.get(key)
            elif isinstance(key, str) and hasattr(memo, key):
                memo = getattr(memo, key)
            else:
                return None
            if memo is None:
                return None
        return memo


def _unique_regions(hosts: list[Host]) -> list[str]:
    return list(dict.fromkeys(h.region for h in hosts if h.region is not None))
