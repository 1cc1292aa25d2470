"""
Reap one namespace: classify its secrets and services and delete orphans.

Dry-run and live mode run the same classification; the only difference is
whether the delete call is made. Delete failures are collected per resource
and never stop the rest of the namespace. A failure to list anything aborts
the namespace, since classifying against a partial view could delete
resources that are still in use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from .classify import Decision, classify_secret, classify_service
from .correlate import ownership_prefixes
from .errors import DeleteFailure, ListFailure, ReaperError
from .kubectl import ClusterGateway, KubeObject

logger = logging.getLogger("ns_reaper.reaper")


@dataclass(frozen=True)
class ExecutionPolicy:
    """
    Run-wide switches.

    dry_run: log what would be deleted without deleting anything.
    require_live_pods: delete nothing in a namespace with no conforming pods.
    """

    dry_run: bool = False
    require_live_pods: bool = False


@dataclass
class ReapResult:
    """Outcome of reaping a single namespace."""

    namespace: str
    prefixes: frozenset = frozenset()
    decisions: list[Decision] = field(default_factory=list)
    deleted: list[KubeObject] = field(default_factory=list)
    errors: list[ReaperError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def orphans(self) -> list[Decision]:
        return [d for d in self.decisions if d.delete]


def _delete(
    result: ReapResult,
    obj: KubeObject,
    delete_fn: Callable[[str, str], None],
    policy: ExecutionPolicy,
) -> None:
    if policy.dry_run:
        logger.info("DRY RUN: would delete %s in namespace %s", obj, obj.namespace)
        return
    logger.info("Deleting %s in namespace %s", obj, obj.namespace)
    try:
        delete_fn(obj.namespace, obj.name)
    except ReaperError as e:
        failure = DeleteFailure(obj.kind, obj.namespace, obj.name, e)
        logger.error("%s", failure)
        result.errors.append(failure)
        return
    result.deleted.append(obj)


def _reap_kind(
    result: ReapResult,
    objects: list[KubeObject],
    classify: Callable[[KubeObject], Decision],
    delete_fn: Callable[[str, str], None],
    policy: ExecutionPolicy,
    suppress: bool,
) -> None:
    for obj in objects:
        decision = classify(obj)
        result.decisions.append(decision)
        logger.info("[%s] %s", result.namespace, decision)
        if not decision.delete:
            continue
        if suppress:
            logger.warning(
                "[%s] Not deleting %s: namespace has no live workloads", result.namespace, obj
            )
            continue
        _delete(result, obj, delete_fn, policy)


def _list(
    result: ReapResult, kind: str, list_fn: Callable[[str], list[KubeObject]]
) -> Optional[list[KubeObject]]:
    try:
        objects = list_fn(result.namespace)
    except ReaperError as e:
        failure = ListFailure(kind, result.namespace, e)
        logger.error("%s", failure)
        result.errors.append(failure)
        return None
    # kubectl leaves namespace empty on some list responses; we asked for this one.
    return [obj if obj.namespace else replace(obj, namespace=result.namespace) for obj in objects]


def reap_namespace(gateway: ClusterGateway, namespace: str, policy: ExecutionPolicy) -> ReapResult:
    """
    Classify and conditionally delete the secrets and services of a namespace.

    Args:
        gateway: Cluster access, shared between concurrent callers.
        namespace: Namespace to reap.
        policy: Dry-run and safety switches.

    Returns:
        ReapResult with every decision, every deleted object and every failure.
        Never raises for cluster errors; they are recorded in result.errors.
    """
    result = ReapResult(namespace=namespace)
    logger.info("Processing namespace %s", namespace)

    pods = _list(result, "pods", gateway.list_pods)
    if pods is None:
        return result
    result.prefixes = ownership_prefixes(pods)
    logger.info("[%s] Live workload prefixes: %s", namespace, ", ".join(sorted(result.prefixes)) or "(none)")
    suppress = False
    if not result.prefixes:
        if policy.require_live_pods:
            suppress = True
        else:
            logger.warning("[%s] No live workloads found; every in-scope resource is an orphan", namespace)

    secrets = _list(result, "secrets", gateway.list_secrets)
    if secrets is None:
        return result
    _reap_kind(
        result,
        secrets,
        lambda s: classify_secret(s.name, result.prefixes, s.owner_references),
        gateway.delete_secret,
        policy,
        suppress,
    )

    services = _list(result, "services", gateway.list_services)
    if services is None:
        return result
    _reap_kind(
        result,
        services,
        lambda s: classify_service(s.name, result.prefixes),
        gateway.delete_service,
        policy,
        suppress,
    )
    return result
