"""
ns_reaper: Garbage-collect orphaned certificate secrets and config services.

Lists the pods of each managed namespace, derives the ownership prefixes of
the workloads that are still alive, and deletes the secrets and services
whose names place them under a workload that no longer exists.
"""

__version__ = "0.1.0"
