"""Kubernetes API client backed by the kubectl CLI."""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from convoy.utils.errors import KubectlCommandError

logger = logging.getLogger(__name__)


class KubeClient:
    """Apply and delete individual resources against a cluster with kubectl."""

    def __init__(self, kubeconfig_path: Path | str, timeout: int = 60):
        """Initialize kube client.

        Args:
            kubeconfig_path: Path to the cluster's kubeconfig file
            timeout: Per-command timeout in seconds
        """
        self.kubeconfig_path = Path(kubeconfig_path)
        self.timeout = timeout

    def check_available(self) -> None:
        """Fail early when kubectl is missing or broken.

        Raises:
            KubectlCommandError: If `kubectl version --client` does not succeed
        """
        result = self._run_kubectl(["version", "--client"])
        if result.returncode != 0:
            raise KubectlCommandError(
                f"kubectl exited with {result.returncode}: {result.stderr.strip()}"
            )
        logger.debug(f"Using {result.stdout.strip()}")

    def _run_kubectl(
        self, args: list[str], manifest: dict[str, Any] | None = None
    ) -> subprocess.CompletedProcess[str]:
        """Run kubectl against the configured cluster.

        Args:
            args: Command arguments
            manifest: Optional resource passed to kubectl on stdin as JSON

        Returns:
            Completed subprocess

        Raises:
            KubectlCommandError: If kubectl cannot be run or times out
        """
        cmd = ["kubectl", "--kubeconfig", str(self.kubeconfig_path)] + args
        logger.debug(f"Running {' '.join(cmd)}")

        try:
            return subprocess.run(
                cmd,
                input=json.dumps(manifest) if manifest is not None else None,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise KubectlCommandError(
                f"kubectl command timed out after {self.timeout} seconds"
            ) from e
        except FileNotFoundError as e:
            raise KubectlCommandError(
                "kubectl CLI not found on PATH; convoy needs it to apply addon resources"
            ) from e

    def apply(self, resource: dict[str, Any]) -> None:
        """Create or update a resource.

        Raises:
            KubectlCommandError: If the API rejects the resource
        """
        result = self._run_kubectl(["apply", "-f", "-"], manifest=resource)

        if result.returncode != 0:
            output = result.stderr or result.stdout
            raise KubectlCommandError(f"Failed to apply {_describe(resource)}: {output.strip()}")

        logger.info(f"Applied {_describe(resource)}")

    def delete(self, resource: dict[str, Any]) -> bool:
        """Delete a resource. Deleting an absent resource is a no-op.

        Returns:
            True if the resource existed and was deleted, False if it was already gone

        Raises:
            KubectlCommandError: If the API rejects the deletion
        """
        result = self._run_kubectl(["delete", "-f", "-", "--ignore-not-found"], manifest=resource)

        if result.returncode != 0:
            stderr = result.stderr or ""
            if "NotFound" in stderr or "not found" in stderr.lower():
                logger.info(f"{_describe(resource)} not found (already deleted)")
                return False

            output = stderr or result.stdout
            raise KubectlCommandError(f"Failed to delete {_describe(resource)}: {output.strip()}")

        if not result.stdout.strip():
            logger.info(f"{_describe(resource)} not found (already deleted)")
            return False

        logger.info(f"Deleted {_describe(resource)}")
        return True

    def delete_selected(self, kind: str, selector: str) -> list[str]:
        """Delete every object of ``kind`` matching a label selector, in all namespaces.

        Returns:
            ``kind/name`` of each deleted object; empty when nothing matched

        Raises:
            KubectlCommandError: If the API rejects the deletion
        """
        args = ["delete", kind, "-l", selector, "--all-namespaces", "--ignore-not-found"]
        result = self._run_kubectl([*args, "-o", "name"])

        if result.returncode != 0:
            output = result.stderr or result.stdout
            raise KubectlCommandError(f"Failed to delete {kind} ({selector}): {output.strip()}")

        deleted = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        for name in deleted:
            logger.info(f"Deleted {name}")
        return deleted


def _describe(resource: dict[str, Any]) -> str:
    metadata = resource.get("metadata") or {}
    return f"{resource.get('kind', 'Unknown')}/{metadata.get('name', '?')}"
