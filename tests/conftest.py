"""Shared fixtures: an in-memory cluster standing in for kubectl."""

import threading

import pytest

from ns_reaper.errors import ApiError
from ns_reaper.kubectl import KubeObject


class FakeGateway:
    """Thread-safe in-memory ClusterGateway."""

    def __init__(self, namespaces=None, labels=None):
        # namespaces: {ns: {"pods": [...], "secrets": [...], "services": [...]}}
        self.state = {}
        self.labels = labels or {}
        self.failing_lists = set()      # (kind, ns)
        self.failing_deletes = set()    # (kind, ns, name)
        self.delete_calls = []
        self.lock = threading.Lock()
        for ns, kinds in (namespaces or {}).items():
            self.add_namespace(ns, **kinds)

    def add_namespace(self, ns, pods=(), secrets=(), services=()):
        self.state[ns] = {
            "pods": [KubeObject("pods", p, ns) for p in pods],
            "secrets": [
                s if isinstance(s, KubeObject) else KubeObject("secrets", s, ns) for s in secrets
            ],
            "services": [KubeObject("services", s, ns) for s in services],
        }

    def names(self, ns, kind):
        return sorted(o.name for o in self.state[ns][kind])

    def list_namespaces(self, label_selector=None):
        if ("namespaces", None) in self.failing_lists:
            raise ApiError("connection refused")
        key, _, value = (label_selector or "").partition("=")
        return [
            KubeObject("namespaces", ns)
            for ns in self.state
            if not label_selector or self.labels.get(ns, {}).get(key) == value
        ]

    def _list(self, kind, ns):
        if (kind, ns) in self.failing_lists:
            raise ApiError(f"cannot list {kind}")
        with self.lock:
            return list(self.state[ns][kind])

    def _delete(self, kind, ns, name):
        with self.lock:
            self.delete_calls.append((kind, ns, name))
            if (kind, ns, name) in self.failing_deletes:
                raise ApiError(f"forbidden: {kind} {name}")
            self.state[ns][kind] = [o for o in self.state[ns][kind] if o.name != name]

    def list_pods(self, namespace):
        return self._list("pods", namespace)

    def list_secrets(self, namespace):
        return self._list("secrets", namespace)

    def list_services(self, namespace):
        return self._list("services", namespace)

    def delete_secret(self, namespace, name):
        self._delete("secrets", namespace, name)

    def delete_service(self, namespace, name):
        self._delete("services", namespace, name)

    def verify(self):
        pass


@pytest.fixture
def scenario_gateway():
    """Namespace ns1 with one live workload and a mix of owned and orphaned resources."""
    return FakeGateway(
        {
            "ns1": {
                "pods": ["abcdefghij-an-123"],
                "secrets": [
                    "abcdefghij-certificate",
                    "zzzzzzzzzz-certificate",
                    "root-certificate",
                ],
                "services": [
                    "abcdefghij-an-config",
                    "zzzzzzzzzz-an-config",
                    "unrelated-service",
                ],
            }
        }
    )
