"""Addon resource rendering and stack apply/delete."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from jinja2.exceptions import TemplateError

from convoy.utils.errors import AddonError, ApplyError, DeleteError, KubectlCommandError

logger = logging.getLogger(__name__)

STACK_LABEL = "convoy.io/stack"
RESOURCE_SUFFIXES = (".yml", ".yaml", ".yml.j2", ".yaml.j2")

# Removal order for stack uninstall: workloads first, namespaces last.
STACK_KINDS = (
    "daemonsets.apps",
    "deployments.apps",
    "statefulsets.apps",
    "cronjobs.batch",
    "jobs.batch",
    "services",
    "configmaps",
    "secrets",
    "ingresses.networking.k8s.io",
    "ingressclasses.networking.k8s.io",
    "rolebindings.rbac.authorization.k8s.io",
    "roles.rbac.authorization.k8s.io",
    "clusterrolebindings.rbac.authorization.k8s.io",
    "clusterroles.rbac.authorization.k8s.io",
    "serviceaccounts",
    "namespaces",
)


class ResourceClient(Protocol):
    def apply(self, resource: dict[str, Any]) -> None: ...

    def delete(self, resource: dict[str, Any]) -> bool: ...

    def delete_selected(self, kind: str, selector: str) -> list[str]: ...


@dataclass(frozen=True)
class ResourceRef:
    """Identity of a Kubernetes resource."""

    api_version: str
    kind: str
    name: str
    namespace: str | None = None

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "ResourceRef":
        metadata = resource.get("metadata") or {}
        return cls(
            api_version=resource.get("apiVersion", ""),
            kind=resource.get("kind", ""),
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
        )

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.name} (namespace {self.namespace})"
        return f"{self.kind}/{self.name}"


class ResourceStack:
    """Named, ordered set of resources that are applied and removed together."""

    def __init__(self, name: str, resources: list[dict[str, Any]] | None = None):
        self.name = name
        self.resources = [self._label(resource) for resource in resources or []]

    def _label(self, resource: dict[str, Any]) -> dict[str, Any]:
        metadata = resource.setdefault("metadata", {})
        labels = metadata.get("labels") or {}
        labels[STACK_LABEL] = self.name
        metadata["labels"] = labels
        return resource

    @property
    def refs(self) -> list[ResourceRef]:
        return [ResourceRef.from_resource(resource) for resource in self.resources]

    def apply(self, client: ResourceClient) -> list[ResourceRef]:
        """Apply every resource in declaration order.

        Returns:
            Identities of the applied resources

        Raises:
            ApplyError: On the first rejected resource; ``applied`` lists what
                already reached the API
        """
        applied: list[ResourceRef] = []
        for resource in self.resources:
            ref = ResourceRef.from_resource(resource)
            try:
                client.apply(resource)
            except KubectlCommandError as e:
                raise ApplyError(
                    f"Stack '{self.name}': {ref} was rejected after applying "
                    f"{len(applied)}/{len(self.resources)} resources: {e}",
                    resource=ref,
                    applied=applied,
                ) from e
            applied.append(ref)

        logger.info(f"Stack '{self.name}': applied {len(applied)} resources")
        return applied

    def delete(self, client: ResourceClient) -> list[ResourceRef]:
        """Delete every resource in reverse declaration order. Absent resources are skipped.

        Returns:
            Identities of resources that existed and were deleted

        Raises:
            DeleteError: On the first rejected deletion; ``deleted`` lists what
                was already removed
        """
        deleted: list[ResourceRef] = []
        for resource in reversed(self.resources):
            ref = ResourceRef.from_resource(resource)
            try:
                if client.delete(resource):
                    deleted.append(ref)
            except KubectlCommandError as e:
                raise DeleteError(
                    f"Stack '{self.name}': failed to delete {ref} after removing "
                    f"{len(deleted)} resources: {e}",
                    resource=ref,
                    deleted=deleted,
                ) from e

        logger.info(f"Stack '{self.name}': deleted {len(deleted)} resources")
        return deleted


def render_stack(stack_name: str, resource_dir: Path | str, /, **variables: Any) -> ResourceStack:
    """Render every resource template in ``resource_dir`` into a stack.

    Files are rendered with Jinja2 in name order; each file may hold several
    YAML documents. Undefined template variables are errors.

    Args:
        stack_name: Stack name, normally the addon name
        resource_dir: Directory holding ``*.yml``/``*.yaml`` (optionally ``.j2``) files
        **variables: Template variables

    Returns:
        ResourceStack with the rendered resources

    Raises:
        AddonError: If the directory is missing, or a template fails to render or parse
    """
    resource_dir = Path(resource_dir)
    if not resource_dir.is_dir():
        raise AddonError(f"Resource directory not found for stack '{stack_name}': {resource_dir}")

    environment = Environment(
        loader=FileSystemLoader(resource_dir),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )

    resources: list[dict[str, Any]] = []
    for path in sorted(resource_dir.iterdir()):
        if not path.is_file() or not path.name.endswith(RESOURCE_SUFFIXES):
            continue

        try:
            content = environment.get_template(path.name).render(**variables)
            documents = list(yaml.safe_load_all(content))
        except TemplateError as e:
            raise AddonError(f"Failed to render {path.name} for stack '{stack_name}': {e}") from e
        except yaml.YAMLError as e:
            raise AddonError(f"Invalid YAML in {path.name} for stack '{stack_name}': {e}") from e

        resources.extend(doc for doc in documents if doc)

    logger.debug(f"Rendered {len(resources)} resources for stack '{stack_name}'")
    return ResourceStack(stack_name, resources)


def delete_stack(
    stack_name: str, client: ResourceClient, kinds: Iterable[str] = STACK_KINDS
) -> list[str]:
    """Delete everything labelled as part of ``stack_name``, one kind at a time.

    Nothing is rendered, so a stack can be removed without the configuration it
    was installed with. Kinds with no labelled objects are skipped.

    Returns:
        Names (``kind/name``) of the deleted objects

    Raises:
        DeleteError: On the first kind the API refuses to delete; ``deleted`` lists
            what was already removed
    """
    selector = f"{STACK_LABEL}={stack_name}"
    deleted: list[str] = []
    for kind in kinds:
        try:
            deleted.extend(client.delete_selected(kind, selector))
        except KubectlCommandError as e:
            raise DeleteError(
                f"Stack '{stack_name}': failed to delete {kind} after removing "
                f"{len(deleted)} resources: {e}",
                resource=kind,
                deleted=deleted,
            ) from e

    logger.info(f"Stack '{stack_name}': deleted {len(deleted)} resources")
    return deleted
