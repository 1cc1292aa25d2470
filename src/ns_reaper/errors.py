"""Exception hierarchy for ns-reaper."""

from __future__ import annotations

from typing import Optional


class ReaperError(Exception):
    """Base exception for reaper-related errors."""
    pass


class ConfigurationFailure(ReaperError):
    """Raised before any cluster call when the run cannot be set up."""
    pass


class ApiError(ReaperError):
    """A cluster call failed (kubectl error, timeout, unparsable output)."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class ListFailure(ReaperError):
    """Could not enumerate a kind of resource in a namespace."""

    def __init__(self, kind: str, namespace: Optional[str], cause: Exception):
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"failed to list {kind}{where}: {cause}")
        self.kind = kind
        self.namespace = namespace
        self.cause = cause


class DeleteFailure(ReaperError):
    """A single resource could not be deleted."""

    def __init__(self, kind: str, namespace: str, name: str, cause: Exception):
        super().__init__(f"failed to delete {kind}/{name} in namespace {namespace}: {cause}")
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.cause = cause
