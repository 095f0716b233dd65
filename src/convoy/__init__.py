"""Converge multi-host Kubernetes clusters to a declared state.

Host operating systems are configured over SSH by OS-specific configurers, and
cluster addons are applied through the Kubernetes API.
"""

from importlib.metadata import PackageNotFoundError, version

from convoy.cluster import ClusterConfig, Host, OsRelease

# Read version from package metadata with fallback
try:
    __version__ = version("convoy")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "ClusterConfig",
    "Host",
    "OsRelease",
    "__version__",
]
