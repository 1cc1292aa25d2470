"""
Reap many namespaces concurrently.

Namespaces are handed to a fixed-size thread pool; each worker runs the
namespace reaper synchronously. Results are drained in the calling thread
as they complete, so every failure from every namespace ends up in one
FleetResult.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .config import DEFAULT_WORKERS, ELIGIBLE_NAMESPACE_SELECTOR
from .errors import ListFailure, ReaperError
from .kubectl import ClusterGateway, KubeObject
from .reaper import ExecutionPolicy, ReapResult, reap_namespace

logger = logging.getLogger("ns_reaper.fleet")


@dataclass
class FleetResult:
    """Aggregate outcome of a run over one or more namespaces."""

    results: list[ReapResult] = field(default_factory=list)
    errors: list[ReaperError] = field(default_factory=list)

    @property
    def all_errors(self) -> list[ReaperError]:
        out = list(self.errors)
        for r in self.results:
            out.extend(r.errors)
        return out

    @property
    def deleted(self) -> list[KubeObject]:
        return [obj for r in self.results for obj in r.deleted]

    @property
    def ok(self) -> bool:
        return not self.all_errors


def eligible_namespaces(
    gateway: ClusterGateway, selector: str = ELIGIBLE_NAMESPACE_SELECTOR
) -> list[str]:
    """
    Names of the namespaces selected for cleanup.

    Raises:
        ListFailure: the namespaces could not be listed.
    """
    try:
        namespaces = gateway.list_namespaces(selector)
    except ReaperError as e:
        raise ListFailure("namespaces", None, e) from e
    names = sorted(ns.name for ns in namespaces)
    logger.info("Found %d namespaces matching %s", len(names), selector)
    return names


def reap_fleet(
    gateway: ClusterGateway,
    namespaces: Iterable[str],
    policy: ExecutionPolicy,
    workers: int = DEFAULT_WORKERS,
) -> FleetResult:
    """
    Run reap_namespace over every namespace with at most `workers` in flight.

    Args:
        gateway: Cluster access shared by all workers.
        namespaces: Namespace names; duplicates are reaped once.
        policy: Dry-run and safety switches.
        workers: Maximum number of namespaces processed at the same time.

    Returns:
        FleetResult holding one ReapResult per namespace. An unexpected
        exception in a worker is recorded against its namespace instead of
        aborting the other namespaces.
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    fleet = FleetResult()
    pending = list(dict.fromkeys(namespaces))
    if not pending:
        logger.info("No namespaces to process")
        return fleet

    logger.info(
        "Reaping %d namespaces with %d workers (dry-run: %s)",
        len(pending),
        min(workers, len(pending)),
        policy.dry_run,
    )
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reaper") as executor:
        future_to_namespace = {
            executor.submit(reap_namespace, gateway, ns, policy): ns for ns in pending
        }
        for future in as_completed(future_to_namespace):
            ns = future_to_namespace[future]
            try:
                result = future.result()
            except Exception as e:
                logger.exception("Unexpected error processing namespace %s", ns)
                result = ReapResult(namespace=ns, errors=[ReaperError(f"namespace {ns}: {e}")])
            fleet.results.append(result)

    fleet.results.sort(key=lambda r: r.namespace)
    return fleet


def reap_all(
    gateway: ClusterGateway,
    policy: ExecutionPolicy,
    workers: int = DEFAULT_WORKERS,
    selector: Optional[str] = None,
) -> FleetResult:
    """List the eligible namespaces and reap all of them."""
    try:
        namespaces = eligible_namespaces(gateway, selector or ELIGIBLE_NAMESPACE_SELECTOR)
    except ListFailure as e:
        logger.error("%s", e)
        return FleetResult(errors=[e])
    return reap_fleet(gateway, namespaces, policy, workers)
