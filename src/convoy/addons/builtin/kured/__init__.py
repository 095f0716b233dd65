"""Kured: coordinated node reboots after package upgrades."""

from typing import Any

from convoy.addons.base import Addon
from convoy.addons.schema import AddonSchema, Duration

DEFAULT_PERIOD = "1h"
DEFAULT_LOCK_TTL = "30m"


class KuredSchema(AddonSchema):
    period: Duration = DEFAULT_PERIOD
    lock_ttl: Duration = DEFAULT_LOCK_TTL
    reboot_days: list[str] = []
    start_time: str = "0:00"
    end_time: str = "23:59"


def install(addon: "Kured") -> Any:
    period = addon.config.get("period", DEFAULT_PERIOD)
    lock_ttl = addon.config.get("lock_ttl", DEFAULT_LOCK_TTL)
    addon.log_info(f"Checking for reboots every {period}, lock expires after {lock_ttl}")

    return addon.apply_resources(
        period_seconds=addon.duration(period),
        lock_ttl_seconds=addon.duration(lock_ttl),
        reboot_days=",".join(addon.config.get("reboot_days", [])) or "su,mo,tu,we,th,fr,sa",
        start_time=addon.config.get("start_time", "0:00"),
        end_time=addon.config.get("end_time", "23:59"),
    )


class Kured(Addon):
    version = "1.14.0"
    license = "Apache License 2.0"
    config_schema = KuredSchema
    install_hook = staticmethod(install)
