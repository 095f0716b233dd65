"""Scheduled OS package upgrades on every node."""

from convoy.addons.base import Addon
from convoy.addons.schema import AddonSchema, Cron, Duration


class HostUpgradesSchema(AddonSchema):
    schedule: Cron
    schedule_window: Duration | None = None
    reboot: bool = False
    drain: bool = True


class HostUpgrades(Addon):
    version = "0.3.0"
    license = "Apache License 2.0"
    config_schema = HostUpgradesSchema
