"""Field checks shared by the cluster configuration models.

Each check raises ``ValueError`` so it can be used directly inside pydantic
validators, where the message ends up in the field-path error map.
"""

import ipaddress
import re

DNS_LABEL = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
K8S_VERSION = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


def validate_cluster_name(name: str) -> bool:
    """Check that a cluster name is a valid DNS label (RFC 1123).

    The name ends up in node labels and resource stack labels, so it has to be
    lowercase alphanumerics and hyphens, at most 63 characters.

    Raises:
        ValueError: If name is invalid
    """
    if not name:
        raise ValueError("Cluster name cannot be empty")

    if len(name) > 63:
        raise ValueError(f"Cluster name '{name[:20]}...' exceeds 63 characters")

    if not DNS_LABEL.match(name):
        raise ValueError(
            f"Cluster name '{name}' must be a DNS label: lowercase letters, digits and "
            "hyphens, beginning and ending with a letter or digit"
        )

    return True


def normalize_k8s_version(version: str) -> str:
    """Return a Kubernetes release as bare ``X.Y.Z``, dropping a leading ``v``.

    Raises:
        ValueError: If version is not a full release number
    """
    if not version:
        raise ValueError("Kubernetes version cannot be empty")

    match = K8S_VERSION.match(version)
    if not match:
        raise ValueError(f"Kubernetes version '{version}' must look like 1.28.4")

    return ".".join(match.groups())


def validate_cidr(value: str) -> str:
    """Check an IPv4 or IPv6 network in CIDR notation.

    Host bits must be zero, so ``10.0.0.1/8`` is rejected in favour of ``10.0.0.0/8``.

    Raises:
        ValueError: If value is not a network address
    """
    try:
        network = ipaddress.ip_network(value, strict=True)
    except ValueError as e:
        raise ValueError(f"'{value}' is not a valid network: {e}") from e

    return str(network)
