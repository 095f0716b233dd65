"""Process settings for convoy.

Settings come from environment variables, optionally loaded from a ``.env`` file.
Cluster topology lives in the cluster YAML instead (see ``convoy.cluster.config``).
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@dataclass
class ConvoyConfig:
    """Convoy process configuration."""

    data_dir: str = "./data"
    kubeconfig: str | None = None
    log_level: str = "info"

    # SSH Configuration
    ssh_user: str = "ubuntu"
    ssh_key_path: str | None = None
    ssh_timeout: int = 30

    # kubectl Configuration
    kubectl_timeout: int = 60

    def __post_init__(self):
        """Load configuration from environment variables after initialization."""
        load_dotenv()

        self.data_dir = os.getenv("CONVOY_DATA_DIR", self.data_dir)
        self.kubeconfig = os.getenv("KUBECONFIG", self.kubeconfig)
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).lower()

        self.ssh_user = os.getenv("CONVOY_SSH_USER", self.ssh_user)
        self.ssh_key_path = os.getenv("CONVOY_SSH_KEY", self.ssh_key_path)
        self.ssh_timeout = int(os.getenv("CONVOY_SSH_TIMEOUT", self.ssh_timeout))

        self.kubectl_timeout = int(os.getenv("CONVOY_KUBECTL_TIMEOUT", self.kubectl_timeout))

    def validate(self) -> None:
        """Validate settings.

        Raises:
            ValueError: If a timeout is not positive or the log level is unknown.
        """
        if self.ssh_timeout <= 0:
            raise ValueError(
                f"SSH timeout must be positive, got {self.ssh_timeout}. "
                "Check the CONVOY_SSH_TIMEOUT environment variable."
            )
        if self.kubectl_timeout <= 0:
            raise ValueError(
                f"kubectl timeout must be positive, got {self.kubectl_timeout}. "
                "Check the CONVOY_KUBECTL_TIMEOUT environment variable."
            )
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {self.log_level}. Must be one of: {', '.join(LOG_LEVELS)}"
            )

    def get_kubeconfig_path(self) -> Path:
        """Get the kubeconfig used for addon convergence.

        Returns:
            ``KUBECONFIG`` if set, otherwise ``<data_dir>/kubeconfig``
        """
        if self.kubeconfig:
            return Path(self.kubeconfig).expanduser()
        return Path(self.data_dir) / "kubeconfig"
