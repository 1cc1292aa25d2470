"""
Keep/delete rules for secrets and services.

Both classifiers are conservative: anything outside the narrow naming
convention they manage is kept, and a resource is deleted only when no live
workload prefix appears in its name. Rules are evaluated in order and the
first match wins.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Optional

from .config import (
    PROTECTED_SECRET_PATTERNS,
    PROTECTED_SECRET_SUBSTRINGS,
    SECRET_SCOPE_MARKER,
    SERVICE_SCOPE_MARKER,
)


class Verdict(enum.Enum):
    """Outcome of classifying one resource."""

    KEEP = "keep"
    DELETE = "delete"


@dataclass(frozen=True)
class Decision:
    """A keep/delete verdict for one resource and the rule that produced it."""

    kind: str
    name: str
    verdict: Verdict
    reason: str

    @property
    def delete(self) -> bool:
        """True when the resource is an orphan that should be removed."""
        return self.verdict is Verdict.DELETE

    def __str__(self):
        return f"{self.verdict.name} {self.kind}/{self.name}: {self.reason}"


def _claimed_by(name: str, prefixes: AbstractSet[str]) -> Optional[str]:
    # Sorted so the reported prefix does not depend on set iteration order.
    for prefix in sorted(prefixes):
        if prefix in name:
            return prefix
    return None


def is_protected_secret(name: str) -> bool:
    """True for secrets that must never be deleted whatever else holds."""
    if any(s in name for s in PROTECTED_SECRET_SUBSTRINGS):
        return True
    return any(p.search(name) for p in PROTECTED_SECRET_PATTERNS)


def classify_secret(
    name: str,
    prefixes: AbstractSet[str],
    owner_references: Iterable[str] = (),
) -> Decision:
    """
    Decide whether a secret is an orphaned workload certificate.

    Args:
        name: Secret name.
        prefixes: Ownership prefixes of the live pods in the secret's namespace.
        owner_references: "Kind/name" of the secret's owners, if any. An owned
            secret is kept; owners never make a secret deletable.

    Returns:
        Decision with verdict KEEP or DELETE and the rule that produced it.
    """
    if is_protected_secret(name):
        return Decision("secrets", name, Verdict.KEEP, "protected secret")
    if SECRET_SCOPE_MARKER not in name:
        return Decision("secrets", name, Verdict.KEEP, f"not a {SECRET_SCOPE_MARKER} secret")
    owners = list(owner_references)
    if owners:
        return Decision("secrets", name, Verdict.KEEP, f"owned by {', '.join(owners)}")
    prefix = _claimed_by(name, prefixes)
    if prefix is not None:
        return Decision("secrets", name, Verdict.KEEP, f"used by live workload {prefix}")
    return Decision("secrets", name, Verdict.DELETE, "not used by any pod")


def classify_service(name: str, prefixes: AbstractSet[str]) -> Decision:
    """
    Decide whether a service is an orphaned workload config service.

    Prefix correlation is the only signal for services, so this must not be
    called with the prefixes of a namespace whose pods could not be listed.
    """
    if SERVICE_SCOPE_MARKER not in name:
        return Decision("services", name, Verdict.KEEP, f"not an {SERVICE_SCOPE_MARKER} service")
    prefix = _claimed_by(name, prefixes)
    if prefix is not None:
        return Decision("services", name, Verdict.KEEP, f"used by live workload {prefix}")
    return Decision("services", name, Verdict.DELETE, "not associated with any pod")
