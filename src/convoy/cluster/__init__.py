"""Cluster and host topology model."""

from convoy.cluster.config import ClusterConfig
from convoy.cluster.host import Host, OsRelease, Repository

__all__ = ["ClusterConfig", "Host", "OsRelease", "Repository"]
