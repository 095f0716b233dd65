"""NGINX Ingress Controller addon."""

from typing import Any

from pydantic import BaseModel, Field

from convoy.addons.base import Addon
from convoy.addons.schema import AddonSchema
from convoy.kube.stack import ResourceStack


class IngressNginxSchema(AddonSchema):
    replicas: int | None = Field(default=None, ge=1)
    host_ports: bool = True
    node_selector: dict[str, str] = Field(default_factory=dict)
    default_backend: str | None = None


class IngressNginxConfig(BaseModel):
    """Typed ingress-nginx configuration.

    ``replicas`` defaults to one controller per master host when unset.
    """

    replicas: int | None = None
    host_ports: bool = True
    node_selector: dict[str, str] = Field(default_factory=dict)
    default_backend: str | None = None


class IngressNginx(Addon):
    """NGINX Ingress Controller.

    Runs the controller as a Deployment in ``ingress-nginx`` exposing ports 80 and
    443 on the nodes through hostPort, so no external load balancer is needed.
    """

    version = "1.9.4"
    license = "Apache License 2.0"
    config_schema = IngressNginxSchema
    config_class = IngressNginxConfig

    NAMESPACE = "ingress-nginx"

    def replicas(self) -> int:
        if self.config.replicas:
            return self.config.replicas
        if self.cluster_config is None:
            return 1
        return max(1, len(self.cluster_config.master_hosts))

    def kube_stack(self, **variables: Any) -> ResourceStack:
        return super().kube_stack(**{"replicas": self.replicas(), **variables})
