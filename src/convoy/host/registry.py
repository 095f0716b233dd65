"""Registry mapping OS releases to configurer classes."""

import logging
from collections.abc import Iterator

from convoy.cluster.host import Host, OsRelease
from convoy.host.configurer import Configurer
from convoy.host.transport import Transport
from convoy.utils.errors import UnsupportedOsError

logger = logging.getLogger(__name__)


class ConfigurerRegistry:
    """Ordered list of configurer classes; the first one supporting a release wins.

    Populated once at startup by :func:`load_configurers`, read-only afterwards.
    """

    def __init__(self):
        self._configurers: list[type[Configurer]] = []

    def register(self, configurer_class: type[Configurer]) -> type[Configurer]:
        """Register a configurer class. Registering the same class again is a no-op.

        Raises:
            ValueError: If the class declares no supported OS releases
        """
        if not configurer_class.supported_os_releases:
            raise ValueError(f"{configurer_class.__name__} declares no supported OS releases")

        if configurer_class not in self._configurers:
            self._configurers.append(configurer_class)
            releases = ", ".join(str(r) for r in configurer_class.supported_os_releases)
            logger.debug(f"Registered configurer {configurer_class.__name__} for {releases}")
        return configurer_class

    def __iter__(self) -> Iterator[type[Configurer]]:
        return iter(self._configurers)

    def __len__(self) -> int:
        return len(self._configurers)

    def for_os_release(self, os_release: OsRelease) -> type[Configurer] | None:
        return next((c for c in self._configurers if c.supports(os_release)), None)

    def configurer_for(self, host: Host, transport: Transport) -> Configurer:
        """Build the configurer for ``host``.

        Raises:
            UnsupportedOsError: If the host's OS release is unknown or unsupported
        """
        if host.os_release is None:
            host.os_release = detect_os_release(transport)

        configurer_class = self.for_os_release(host.os_release)
        if configurer_class is None:
            raise UnsupportedOsError(
                f"Host {host.address} runs unsupported OS {host.os_release}",
                os_release=host.os_release,
            )
        return configurer_class(host, transport)


def detect_os_release(transport: Transport) -> OsRelease:
    """Read the OS identity from /etc/os-release on the remote host.

    Raises:
        UnsupportedOsError: If the file is missing or has no ID/VERSION_ID
    """
    os_release_file = transport.file("/etc/os-release")
    if not os_release_file.exists():
        raise UnsupportedOsError(f"[{transport.host_label}] /etc/os-release not found")

    fields = {}
    for line in os_release_file.read().splitlines():
        key, sep, value = line.strip().partition("=")
        if sep:
            fields[key] = value.strip().strip("\"'")

    if not fields.get("ID") or not fields.get("VERSION_ID"):
        raise UnsupportedOsError(f"[{transport.host_label}] cannot determine OS release")
    return OsRelease(id=fields["ID"], version=fields["VERSION_ID"])


configurer_registry = ConfigurerRegistry()


def load_configurers(registry: ConfigurerRegistry | None = None) -> ConfigurerRegistry:
    """Register the built-in OS configurers. Safe to call more than once."""
    from convoy.host.el7 import CentosConfigurer, RhelConfigurer
    from convoy.host.ubuntu import UbuntuConfigurer

    registry = registry if registry is not None else configurer_registry
    for configurer_class in (UbuntuConfigurer, CentosConfigurer, RhelConfigurer):
        registry.register(configurer_class)
    return registry
