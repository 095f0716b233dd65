"""Custom exception classes for convoy."""

from typing import Any


class ConvoyError(Exception):
    """Base exception for convoy errors."""

    pass


class ConfigError(ConvoyError):
    """Raised when cluster configuration is invalid or cannot be loaded."""

    pass


class ConfigOverrideError(ConfigError):
    """Raised when a mutation would overwrite a user-declared configuration value."""

    pass


class InvalidConfigError(ConfigError):
    """Raised when raw cluster configuration fails schema validation.

    Attributes:
        errors: Field path (dotted) to list of messages
    """

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.errors = errors or {}


class UnsupportedOsError(ConvoyError):
    """Raised when no registered configurer handles a host's OS release."""

    def __init__(self, message: str, os_release: Any = None):
        super().__init__(message)
        self.os_release = os_release


class TransportError(ConvoyError):
    """Raised when a remote command exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        exit_status: int | None = None,
        output: str = "",
    ):
        super().__init__(message)
        self.command = command
        self.exit_status = exit_status
        self.output = output


class KubectlCommandError(ConvoyError):
    """Raised when a kubectl CLI command fails."""

    pass


class AddonError(ConvoyError):
    """Base exception for addon declaration and convergence errors."""

    pass


class UnknownAddonError(AddonError):
    """Raised when an addon name is not registered."""

    pass


class ApplyError(AddonError):
    """Raised when the API rejects a resource while applying an addon.

    Attributes:
        resource: Identity of the rejected resource
        applied: Resources that were applied before the failure
    """

    def __init__(self, message: str, resource: Any = None, applied: list[Any] | None = None):
        super().__init__(message)
        self.resource = resource
        self.applied = list(applied or [])


class DeleteError(AddonError):
    """Raised when the API rejects a resource deletion while removing an addon.

    Attributes:
        resource: Identity of the resource that could not be deleted
        deleted: Resources that were removed before the failure
    """

    def __init__(self, message: str, resource: Any = None, deleted: list[Any] | None = None):
        super().__init__(message)
        self.resource = resource
        self.deleted = list(deleted or [])
