"""
Kubectl invocation and the cluster gateway used by the reaper.

All cluster access goes through subprocess kubectl calls, so credential
resolution (in-cluster service account or kubeconfig) is whatever kubectl
decides. KubectlGateway is immutable after construction and safe to share
between worker threads: every call spawns its own process.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Optional, Protocol

from .config import KUBECTL_TIMEOUT
from .errors import ApiError, ConfigurationFailure

logger = logging.getLogger("ns_reaper.kubectl")


@dataclass(frozen=True)
class KubeObject:
    """The metadata of a cluster object that the reaper looks at."""

    kind: str
    name: str
    namespace: str = ""
    labels: dict = field(default_factory=dict, compare=False)
    owner_references: tuple = field(default=(), compare=False)

    def __str__(self):
        return f"{self.kind}/{self.name}"

    @classmethod
    def from_item(cls, kind: str, item: dict) -> "KubeObject":
        meta = item.get("metadata", {})
        return cls(
            kind=kind,
            name=meta.get("name", ""),
            namespace=meta.get("namespace") or "",
            labels=meta.get("labels") or {},
            owner_references=tuple(
                f"{o.get('kind', '')}/{o.get('name', '')}"
                for o in meta.get("ownerReferences") or []
            ),
        )


class ClusterGateway(Protocol):
    """List/delete capability the reaper needs from the cluster."""

    def list_namespaces(self, label_selector: Optional[str] = None) -> list[KubeObject]: ...

    def list_pods(self, namespace: str) -> list[KubeObject]: ...

    def list_secrets(self, namespace: str) -> list[KubeObject]: ...

    def list_services(self, namespace: str) -> list[KubeObject]: ...

    def delete_secret(self, namespace: str, name: str) -> None: ...

    def delete_service(self, namespace: str, name: str) -> None: ...


def run_kubectl(args: list[str], timeout: int = KUBECTL_TIMEOUT) -> subprocess.CompletedProcess:
    """
    Run kubectl with the given args.

    Args:
        args: List of arguments (e.g. ["get", "pods", "-n", "app", "-o", "json"]).
        timeout: Seconds before the call is abandoned.

    Returns:
        CompletedProcess with returncode, stdout, stderr.

    Raises:
        ApiError: kubectl could not be started or did not finish in time.
    """
    cmd = ["kubectl"] + args
    logger.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ApiError(f"kubectl {' '.join(args)} timed out after {timeout}s") from e
    except OSError as e:
        raise ApiError(f"could not run kubectl: {e}") from e


def items_of(obj: dict) -> list[dict]:
    """
    Return the items of a kubectl get -o json response.

    Handles both a list response (obj["items"]) and a single-item response
    (the object itself).
    """
    if "items" in obj:
        return list(obj["items"] or [])
    return [obj] if obj.get("metadata") else []


@dataclass(frozen=True)
class KubectlGateway:
    """ClusterGateway backed by the kubectl binary."""

    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    timeout: int = KUBECTL_TIMEOUT

    def verify(self) -> None:
        """
        Fail fast with ConfigurationFailure when the cluster cannot be reached.

        Checks that kubectl is on PATH, then asks the API server for its
        version with the configured kubeconfig and context, which fails on
        bad credentials, an unknown context or an unreachable server.
        """
        if shutil.which("kubectl") is None:
            raise ConfigurationFailure("kubectl is not installed or not available in PATH")
        try:
            self._run(["version", "-o", "json"])
        except ApiError as e:
            raise ConfigurationFailure(f"cannot reach the cluster: {e}") from e

    def _global_args(self) -> list[str]:
        args = []
        if self.kubeconfig:
            args.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            args.extend(["--context", self.context])
        return args

    def _run(self, args: list[str]) -> str:
        result = run_kubectl(self._global_args() + args, timeout=self.timeout)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise ApiError(
                f"kubectl {' '.join(args)} failed (exit {result.returncode}): {stderr}",
                returncode=result.returncode,
            )
        return result.stdout or ""

    def _get(self, kind: str, namespace: Optional[str] = None, selector: Optional[str] = None) -> list[KubeObject]:
        args = ["get", kind, "-o", "json"]
        if namespace:
            args.extend(["-n", namespace])
        if selector:
            args.extend(["-l", selector])
        stdout = self._run(args)
        try:
            obj = json.loads(stdout) if stdout.strip() else {}
        except json.JSONDecodeError as e:
            raise ApiError(f"invalid JSON from kubectl get {kind}: {e}") from e
        return [KubeObject.from_item(kind, item) for item in items_of(obj)]

    def _delete(self, kind: str, namespace: str, name: str) -> None:
        self._run(["delete", kind, name, "-n", namespace, "--ignore-not-found", "--wait=false"])

    def list_namespaces(self, label_selector: Optional[str] = None) -> list[KubeObject]:
        return self._get("namespaces", selector=label_selector)

    def list_pods(self, namespace: str) -> list[KubeObject]:
        return self._get("pods", namespace=namespace)

    def list_secrets(self, namespace: str) -> list[KubeObject]:
        return self._get("secrets", namespace=namespace)

    def list_services(self, namespace: str) -> list[KubeObject]:
        return self._get("services", namespace=namespace)

    def delete_secret(self, namespace: str, name: str) -> None:
        self._delete("secret", namespace, name)

    def delete_service(self, namespace: str, name: str) -> None:
        self._delete("service", namespace, name)
