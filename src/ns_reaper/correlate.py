"""
Pod-to-workload correlation.

A pod named ``abcdefghij-an-7f9c`` belongs to the workload ``abcdefghij``.
Secrets and services carry that prefix in their names, which is the only
link the reaper has between them and the pods that use them.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .config import OWNERSHIP_PREFIX_LENGTH, POD_NAME_SEPARATOR
from .kubectl import KubeObject

logger = logging.getLogger("ns_reaper.correlate")


def pod_prefix(name: str) -> Optional[str]:
    """
    Return the ownership prefix of a pod name, or None if it does not conform.

    The name must contain the separator exactly once and the part before it
    must be exactly OWNERSHIP_PREFIX_LENGTH characters long.
    """
    parts = name.split(POD_NAME_SEPARATOR)
    if len(parts) == 2 and len(parts[0]) == OWNERSHIP_PREFIX_LENGTH:
        return parts[0]
    return None


def ownership_prefixes(pods: Iterable[KubeObject]) -> frozenset[str]:
    """Prefixes of every live workload among the given pods."""
    prefixes = set()
    for pod in pods:
        prefix = pod_prefix(pod.name)
        if prefix is None:
            logger.debug("Pod %s does not carry an ownership prefix", pod.name)
            continue
        prefixes.add(prefix)
    return frozenset(prefixes)
