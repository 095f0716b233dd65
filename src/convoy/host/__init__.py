"""Host provisioning: transports, configurers and the OS registry."""

from convoy.host.configurer import Configurer, parse_env_file, render_env_file
from convoy.host.registry import (
    ConfigurerRegistry,
    configurer_registry,
    detect_os_release,
    load_configurers,
)
from convoy.host.transport import CommandResult, RemoteFile, SSHTransport, Transport

__all__ = [
    "CommandResult",
    "Configurer",
    "ConfigurerRegistry",
    "RemoteFile",
    "SSHTransport",
    "Transport",
    "configurer_registry",
    "detect_os_release",
    "load_configurers",
    "parse_env_file",
    "render_env_file",
]
