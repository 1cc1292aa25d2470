"""
Constants for ns-reaper.

Defines ANSI codes for the run summary, the label that marks namespaces as
eligible for cleanup, and the naming conventions that tie secrets and
services to the pods that own them.
"""

import re

# ANSI escape sequences for terminal output
BOLD = "\033[1m"   # Start bold
SGR0 = "\033[0m"   # Reset (end bold)

# Namespaces selected by --all.
ELIGIBLE_NAMESPACE_SELECTOR = "cloud.timescale.com/is-customer-resource=true"

# Pod names look like <prefix>-an-<suffix>; the prefix identifies the workload.
POD_NAME_SEPARATOR = "-an-"
OWNERSHIP_PREFIX_LENGTH = 10

# Only secrets and services following these conventions are ever deleted.
SECRET_SCOPE_MARKER = "-certificate"
SERVICE_SCOPE_MARKER = "an-config"

# Secrets matching any of these are never deleted.
PROTECTED_SECRET_SUBSTRINGS = ("root",)
PROTECTED_SECRET_PATTERNS = (
    re.compile(r"^default-token-"),
    re.compile(r"-token-[a-z0-9]{5}$"),
    re.compile(r"^sh\.helm\.release\."),
)

DEFAULT_WORKERS = 10
KUBECTL_TIMEOUT = 60
