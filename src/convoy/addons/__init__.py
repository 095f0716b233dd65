"""Cluster addon declarations, validation and convergence."""

from convoy.addons.base import Addon, derive_addon_name
from convoy.addons.registry import AddonRegistry, addon_registry, load_addons
from convoy.addons.schema import AddonSchema, Cron, Duration, OpenConfig, ValidationResult

__all__ = [
    "Addon",
    "AddonRegistry",
    "AddonSchema",
    "Cron",
    "Duration",
    "OpenConfig",
    "ValidationResult",
    "addon_registry",
    "derive_addon_name",
    "load_addons",
]
