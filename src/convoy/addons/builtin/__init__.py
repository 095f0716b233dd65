"""Addons shipped with convoy."""

from convoy.addons.builtin.host_upgrades import HostUpgrades
from convoy.addons.builtin.ingress_nginx import IngressNginx
from convoy.addons.builtin.kured import Kured

BUILTIN_ADDONS = (IngressNginx, HostUpgrades, Kured)

__all__ = ["BUILTIN_ADDONS", "HostUpgrades", "IngressNginx", "Kured"]
