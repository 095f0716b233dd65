"""Kubernetes API access and addon resource stacks."""

from convoy.kube.client import KubeClient
from convoy.kube.stack import ResourceRef, ResourceStack, render_stack

__all__ = ["KubeClient", "ResourceRef", "ResourceStack", "render_stack"]
