"""Tests for the kubectl gateway."""

import dataclasses
import json
import subprocess

import pytest

from ns_reaper import kubectl
from ns_reaper.errors import ApiError, ConfigurationFailure
from ns_reaper.kubectl import KubectlGateway, KubeObject, items_of


class FakeRun:
    """Records kubectl invocations and replays canned results."""

    def __init__(self, stdout="", returncode=0, stderr="", exc=None):
        self.calls = []
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr
        self.exc = exc

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if self.exc:
            raise self.exc
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


def _list_json(*items):
    return json.dumps({"kind": "List", "items": list(items)})


def test_list_secrets_parses_items(monkeypatch):
    fake = FakeRun(
        _list_json(
            {
                "metadata": {
                    "name": "abcdefghij-certificate",
                    "namespace": "ns1",
                    "ownerReferences": [{"kind": "Certificate", "name": "abcdefghij"}],
                }
            },
            {"metadata": {"name": "plain", "namespace": "ns1"}},
        )
    )
    monkeypatch.setattr(subprocess, "run", fake)
    secrets = KubectlGateway().list_secrets("ns1")
    assert fake.calls[0][0] == ["kubectl", "get", "secrets", "-o", "json", "-n", "ns1"]
    assert fake.calls[0][1]["timeout"] == 60
    assert [s.name for s in secrets] == ["abcdefghij-certificate", "plain"]
    assert secrets[0].owner_references == ("Certificate/abcdefghij",)
    assert secrets[1].owner_references == ()
    assert secrets[0].kind == "secrets"


def test_list_namespaces_with_selector_and_overrides(monkeypatch):
    fake = FakeRun(_list_json({"metadata": {"name": "ns1", "labels": {"a": "b"}}}))
    monkeypatch.setattr(subprocess, "run", fake)
    gateway = KubectlGateway(kubeconfig="/tmp/kc", context="prod", timeout=5)
    namespaces = gateway.list_namespaces("a=b")
    assert fake.calls[0][0] == [
        "kubectl", "--kubeconfig", "/tmp/kc", "--context", "prod",
        "get", "namespaces", "-o", "json", "-l", "a=b",
    ]
    assert fake.calls[0][1]["timeout"] == 5
    assert namespaces == [KubeObject("namespaces", "ns1")]
    assert namespaces[0].labels == {"a": "b"}


def test_delete_service(monkeypatch):
    fake = FakeRun()
    monkeypatch.setattr(subprocess, "run", fake)
    KubectlGateway().delete_service("ns1", "zzzzzzzzzz-an-config")
    assert fake.calls[0][0] == [
        "kubectl", "delete", "service", "zzzzzzzzzz-an-config", "-n", "ns1", "--ignore-not-found", "--wait=false",
    ]


def test_delete_of_vanished_resource_succeeds(monkeypatch):
    """A resource removed between list and delete is not a failure."""
    fake = FakeRun(stdout="")
    monkeypatch.setattr(subprocess, "run", fake)
    KubectlGateway(context="prod").delete_secret("ns1", "zzzzzzzzzz-certificate")
    cmd = fake.calls[0][0]
    assert cmd[:5] == ["kubectl", "--context", "prod", "delete", "secret"]
    assert "--ignore-not-found" in cmd


def test_nonzero_exit_raises_api_error(monkeypatch):
    monkeypatch.setattr(subprocess, "run", FakeRun(returncode=1, stderr="Error from server (Forbidden)\n"))
    with pytest.raises(ApiError) as excinfo:
        KubectlGateway().delete_secret("ns1", "x-certificate")
    assert excinfo.value.returncode == 1
    assert "Forbidden" in str(excinfo.value)


def test_timeout_raises_api_error(monkeypatch):
    monkeypatch.setattr(subprocess, "run", FakeRun(exc=subprocess.TimeoutExpired(["kubectl"], 60)))
    with pytest.raises(ApiError, match="timed out"):
        KubectlGateway().list_pods("ns1")


def test_missing_binary_raises_api_error(monkeypatch):
    monkeypatch.setattr(subprocess, "run", FakeRun(exc=FileNotFoundError("kubectl")))
    with pytest.raises(ApiError):
        KubectlGateway().list_pods("ns1")


def test_invalid_json_raises_api_error(monkeypatch):
    monkeypatch.setattr(subprocess, "run", FakeRun("not json"))
    with pytest.raises(ApiError, match="invalid JSON"):
        KubectlGateway().list_services("ns1")


def test_empty_output_is_empty_list(monkeypatch):
    monkeypatch.setattr(subprocess, "run", FakeRun(""))
    assert KubectlGateway().list_pods("ns1") == []


def test_items_of_single_object():
    obj = {"metadata": {"name": "x"}}
    assert items_of(obj) == [obj]
    assert items_of({"items": None}) == []
    assert items_of({}) == []


def test_verify_requires_kubectl(monkeypatch):
    fake = FakeRun()
    monkeypatch.setattr(subprocess, "run", fake)
    monkeypatch.setattr(kubectl.shutil, "which", lambda name: None)
    with pytest.raises(ConfigurationFailure, match="not installed"):
        KubectlGateway().verify()
    assert fake.calls == []


def test_verify_checks_cluster_access(monkeypatch):
    """verify() talks to the API server with the configured kubeconfig and context."""
    fake = FakeRun(stdout='{"serverVersion": {"gitVersion": "v1.29.0"}}')
    monkeypatch.setattr(subprocess, "run", fake)
    monkeypatch.setattr(kubectl.shutil, "which", lambda name: "/usr/bin/kubectl")
    KubectlGateway(kubeconfig="/tmp/kc", context="prod").verify()
    assert fake.calls[0][0] == [
        "kubectl", "--kubeconfig", "/tmp/kc", "--context", "prod", "version", "-o", "json",
    ]


def test_verify_bad_credentials(monkeypatch):
    monkeypatch.setattr(
        subprocess, "run", FakeRun(returncode=1, stderr='error: context "nope" does not exist')
    )
    monkeypatch.setattr(kubectl.shutil, "which", lambda name: "/usr/bin/kubectl")
    with pytest.raises(ConfigurationFailure, match="does not exist"):
        KubectlGateway(context="nope").verify()


def test_verify_unreachable_server(monkeypatch):
    monkeypatch.setattr(subprocess, "run", FakeRun(exc=subprocess.TimeoutExpired(["kubectl"], 5)))
    monkeypatch.setattr(kubectl.shutil, "which", lambda name: "/usr/bin/kubectl")
    with pytest.raises(ConfigurationFailure, match="cannot reach the cluster"):
        KubectlGateway(timeout=5).verify()


def test_gateway_is_read_only():
    """The gateway is shared by worker threads and cannot be reconfigured."""
    gateway = KubectlGateway(context="prod")
    with pytest.raises(dataclasses.FrozenInstanceError):
        gateway.context = "dev"
