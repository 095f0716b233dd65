"""Base class for cluster addons."""

import inspect
import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel
from pytimeparse import parse as parse_duration

from convoy.addons.schema import AddonSchema, OpenConfig, ValidationResult, validate_config
from convoy.kube.stack import (
    STACK_KINDS,
    ResourceClient,
    ResourceRef,
    ResourceStack,
    delete_stack,
    render_stack,
)
from convoy.utils.errors import AddonError

if TYPE_CHECKING:
    from convoy.cluster.config import ClusterConfig

logger = logging.getLogger(__name__)

_NAME_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")

Hook = Callable[["Addon"], Any]


def derive_addon_name(identifier: str) -> str:
    """Convert a class identifier to a kebab-case addon name (``KubeRouter`` -> ``kube-router``)."""
    return _NAME_BOUNDARY.sub(r"\1-\2", identifier).lower()


def _addon_location(cls: type) -> Path | None:
    try:
        return Path(inspect.getfile(cls)).parent
    except (TypeError, OSError):
        return None


class Addon:
    """A versioned unit of cluster functionality applied through the Kubernetes API.

    Subclasses declare themselves with class attributes::

        class KubeRouter(Addon):
            version = "1.6.0"
            license = "Apache License 2.0"
            config_schema = KubeRouterSchema      # optional, extends AddonSchema
            config_class = KubeRouterConfig       # optional typed config
            install_hook = staticmethod(install)  # optional, receives the addon

    ``name`` defaults to the kebab-cased class name. Without hooks, enabling an
    addon applies the templates in ``<module dir>/resources`` and disabling it
    deletes every object labelled with the addon's stack name. Addons that
    create other kinds (CRDs, custom resources) extend ``stack_kinds``.
    """

    name: ClassVar[str] = "addon"
    version: ClassVar[str | None] = None
    license: ClassVar[str | None] = None
    config_schema: ClassVar[type[AddonSchema] | None] = None
    config_class: ClassVar[type[BaseModel] | None] = None
    install_hook: ClassVar[Hook | None] = None
    uninstall_hook: ClassVar[Hook | None] = None
    addon_location: ClassVar[Path | None] = None
    stack_kinds: ClassVar[tuple[str, ...]] = STACK_KINDS

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        if "name" not in cls.__dict__:
            cls.name = derive_addon_name(cls.__name__)
        if "addon_location" not in cls.__dict__:
            cls.addon_location = _addon_location(cls)

    @classmethod
    def to_dict(cls) -> dict[str, str | None]:
        return {"name": cls.name, "version": cls.version, "license": cls.license}

    @classmethod
    def hooks(cls) -> dict[str, Hook]:
        hooks = {"install": cls.install_hook, "uninstall": cls.uninstall_hook}
        return {event: hook for event, hook in hooks.items() if hook is not None}

    @classmethod
    def resource_dir(cls) -> Path | None:
        return cls.addon_location / "resources" if cls.addon_location else None

    @classmethod
    def validate(cls, config: Any) -> ValidationResult:
        """Validate a config block against the declared schema (or the bare base schema).

        Never raises for invalid input; inspect ``result.errors`` instead.
        """
        return validate_config(cls.config_schema or AddonSchema, config)

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        enabled: bool = True,
        kube_client: ResourceClient,
        cpu_arch: str | None,
        cluster_config: "ClusterConfig | None",
    ):
        """Initialize addon.

        Args:
            config: Addon configuration (validated beforehand with :meth:`validate`)
            enabled: Whether the addon should be installed or removed
            kube_client: Client used to apply and delete resources
            cpu_arch: CPU architecture of the cluster nodes
            cluster_config: Cluster configuration for the current run
        """
        config = dict(config or {})
        if self.config_class is None:
            self.config: Any = OpenConfig(config)
        elif enabled:
            self.config = self.config_class.model_validate(config)
        else:
            # Disabled addons are only removed, so their config is not validated.
            self.config = self.config_class.model_construct(**config)
        self._enabled = enabled
        self.kube_client = kube_client
        self.cpu_arch = cpu_arch
        self.cluster_config = cluster_config

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} enabled={self._enabled}>"

    @property
    def enabled(self) -> bool:
        return self._enabled

    def log_info(self, message: str) -> None:
        """Log info message with addon prefix."""
        logger.info(f"[{self.name}] {message}")

    def log_warn(self, message: str) -> None:
        """Log warning message with addon prefix."""
        logger.warning(f"[{self.name}] {message}")

    def log_error(self, message: str) -> None:
        """Log error message with addon prefix."""
        logger.error(f"[{self.name}] {message}")

    @staticmethod
    def duration(value: str) -> int | None:
        """Parse a duration string (``"1h30m"``) to seconds, or None if invalid."""
        return parse_duration(value)

    def validate_instance(self) -> None:
        """Cross-field checks against the cluster config; override when needed."""

    def apply(self) -> Any:
        """Converge the addon: install when enabled, uninstall otherwise."""
        if self.enabled:
            return self.apply_install()
        return self.apply_uninstall()

    def apply_install(self) -> Any:
        hook = self.hooks().get("install")
        self.log_info(f"Installing version {self.version or 'unversioned'}")
        if hook is not None:
            return hook(self)
        return self.apply_resources()

    def apply_uninstall(self) -> Any:
        hook = self.hooks().get("uninstall")
        self.log_info("Uninstalling")
        if hook is not None:
            return hook(self)
        return self.delete_resources()

    def kube_stack(self, **variables: Any) -> ResourceStack:
        """Render the addon's resources with the standard template variables."""
        resource_dir = self.resource_dir()
        if resource_dir is None:
            raise AddonError(f"Addon '{self.name}' has no resource directory")

        config = self.config.to_dict() if isinstance(self.config, OpenConfig) else self.config
        return render_stack(
            self.name,
            resource_dir,
            **{
                "name": self.name,
                "version": self.version,
                "config": config,
                "arch": self.cpu_arch,
                "cluster_config": self.cluster_config,
                **variables,
            },
        )

    def apply_resources(self, **variables: Any) -> list[ResourceRef]:
        return self.kube_stack(**variables).apply(self.kube_client)

    def delete_resources(self) -> list[str]:
        """Remove the addon's stack by label; the current config is not needed."""
        return delete_stack(self.name, self.kube_client, self.stack_kinds)
