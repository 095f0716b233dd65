"""Addon registry and batch convergence."""

import importlib
import inspect
import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from convoy.addons.base import Addon
from convoy.addons.schema import ValidationResult
from convoy.kube.stack import ResourceClient
from convoy.utils.errors import AddonError, ConvoyError, UnknownAddonError

if TYPE_CHECKING:
    from convoy.cluster.config import ClusterConfig

logger = logging.getLogger(__name__)


class AddonRegistry:
    """Known addon classes, keyed by addon name.

    Registration happens once at startup (see :func:`load_addons`); lookups after
    that are read-only and safe to share between workers.
    """

    def __init__(self):
        self._addons: dict[str, type[Addon]] = {}

    def register(self, addon_class: type[Addon]) -> type[Addon]:
        """Register an addon class. Registering the same class again is a no-op.

        Raises:
            AddonError: If the class is not an Addon or its name is taken by another class
        """
        if not (inspect.isclass(addon_class) and issubclass(addon_class, Addon)):
            raise AddonError(f"{addon_class!r} is not an Addon subclass")

        existing = self._addons.get(addon_class.name)
        if existing is addon_class:
            return addon_class
        if existing is not None:
            raise AddonError(
                f"Addon name '{addon_class.name}' is already registered by "
                f"{existing.__module__}.{existing.__qualname__}"
            )

        self._addons[addon_class.name] = addon_class
        logger.debug(f"Registered addon {addon_class.name} ({addon_class.version})")
        return addon_class

    def _validate_addon_name(self, name: str) -> str:
        """Validate and normalize addon name.

        Raises:
            UnknownAddonError: If addon name is not registered
        """
        name_lower = name.lower().strip()
        if name_lower not in self._addons:
            available = ", ".join(sorted(self._addons))
            raise UnknownAddonError(f"Unknown addon: '{name}'. Available addons: {available}")
        return name_lower

    def get(self, name: str) -> type[Addon]:
        return self._addons[self._validate_addon_name(name)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower().strip() in self._addons

    def __iter__(self) -> Iterator[type[Addon]]:
        return iter(self._addons.values())

    def __len__(self) -> int:
        return len(self._addons)

    def names(self) -> list[str]:
        return list(self._addons)

    def validate(self, configs: dict[str, Any]) -> dict[str, ValidationResult]:
        """Validate each addon config block; unknown names are reported as errors."""
        results = {}
        for name, config in configs.items():
            if name not in self:
                results[name] = ValidationResult(errors={name: ["is not a registered addon"]})
                continue
            results[name] = self.get(name).validate(config)
        return results

    def build(
        self,
        configs: dict[str, Any],
        *,
        kube_client: ResourceClient,
        cpu_arch: str | None,
        cluster_config: "ClusterConfig | None",
    ) -> list[Addon]:
        """Instantiate every registered addon for one convergence run.

        Addons with a config block are enabled according to its ``enabled`` flag;
        addons without one are built disabled so they are removed if present.
        """
        addons = []
        for addon_class in self:
            config = dict(configs.get(addon_class.name) or {})
            enabled = bool(config.pop("enabled", False))
            addons.append(
                addon_class(
                    config,
                    enabled=enabled,
                    kube_client=kube_client,
                    cpu_arch=cpu_arch,
                    cluster_config=cluster_config,
                )
            )
        return addons

    def converge(self, addons: Iterable[Addon]) -> dict[str, Any]:
        """Apply addons in order, continuing past individual failures.

        Returns:
            Dict with convergence results:
            - success: bool (True if every addon converged)
            - results: dict of addon_name -> result
            - failed: list of failed addon names
            - message: summary message
        """
        results: dict[str, dict[str, Any]] = {}
        failed: list[str] = []

        for addon in addons:
            action = "install" if addon.enabled else "uninstall"
            try:
                logger.info(f"Processing addon: {addon.name} ({action})")
                addon.validate_instance()
                outcome = addon.apply()
                results[addon.name] = {"success": True, "action": action, "result": outcome}
            except ConvoyError as e:
                addon.log_error(f"{action} failed: {e}")
                failed.append(addon.name)
                results[addon.name] = {
                    "success": False,
                    "action": action,
                    "error": str(e),
                    "applied": [str(ref) for ref in getattr(e, "applied", [])],
                    "deleted": [str(ref) for ref in getattr(e, "deleted", [])],
                }

        total = len(results)
        succeeded = total - len(failed)
        message = f"Addons: {succeeded}/{total} converged"
        if failed:
            message += f", {len(failed)} failed: {', '.join(failed)}"

        return {"success": not failed, "results": results, "failed": failed, "message": message}


addon_registry = AddonRegistry()


def load_addons(
    paths: Iterable[str] = (), registry: AddonRegistry | None = None
) -> AddonRegistry:
    """Register the built-in addons plus every Addon subclass found in ``paths``.

    Safe to call more than once.

    Args:
        paths: Importable module paths of addon plugins
        registry: Registry to populate (default: the process-wide registry)

    Returns:
        The populated registry

    Raises:
        AddonError: If a plugin module cannot be imported
    """
    from convoy.addons.builtin import BUILTIN_ADDONS

    registry = registry if registry is not None else addon_registry
    for addon_class in BUILTIN_ADDONS:
        registry.register(addon_class)

    for path in paths:
        try:
            module = importlib.import_module(path)
        except ImportError as e:
            raise AddonError(f"Cannot import addon plugin '{path}': {e}") from e

        for _, member in inspect.getmembers(module, inspect.isclass):
            defined_here = member.__module__ == module.__name__
            if defined_here and issubclass(member, Addon) and member is not Addon:
                registry.register(member)

    return registry
