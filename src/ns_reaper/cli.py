"""
CLI entry point for ns-reaper.

Parses options, builds the kubectl gateway, then delegates to reap_fleet()
for the given namespaces or reap_all() for every eligible namespace. Exits
non-zero if any listing or deletion failed.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click

from .config import BOLD, DEFAULT_WORKERS, ELIGIBLE_NAMESPACE_SELECTOR, KUBECTL_TIMEOUT, SGR0
from .errors import ConfigurationFailure
from .fleet import FleetResult, reap_all, reap_fleet
from .kubectl import KubectlGateway
from .reaper import ExecutionPolicy

logger = logging.getLogger("ns_reaper")

# Shown at the bottom of ns-reaper --help / ns-reaper -h
EPILOG = f"""
Examples:

  ns-reaper -h                        # Show help (same as --help)
  ns-reaper -n my-ns --dry-run        # Show what would be deleted in my-ns
  ns-reaper -n my-ns                  # Delete orphaned secrets/services in my-ns
  ns-reaper -n ns1 -n ns2             # Several namespaces
  ns-reaper --all --dry-run           # Every namespace labelled {ELIGIBLE_NAMESPACE_SELECTOR}
  ns-reaper --all -w 15               # Every eligible namespace, 15 at a time
  ns-reaper --all --kubeconfig ~/.kube/prod --context prod

Inside a pod the service account is used; otherwise the current kubeconfig context.
"""


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Set up logging configuration.

    Args:
        verbose: Enable DEBUG logging (includes every kubectl command).
        quiet: Only show warnings and errors.
    """
    if verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    logging.basicConfig(level=log_level, format=log_format)


def print_summary(fleet: FleetResult, dry_run: bool) -> None:
    """Print a short report of what was (or would be) deleted and every failure."""
    click.echo()
    click.echo(f"{BOLD}ns-reaper summary{' (dry run)' if dry_run else ''}{SGR0}")
    click.echo("----------------------------------------")
    orphans = sum(len(r.orphans) for r in fleet.results)
    click.echo(f"  Namespaces processed: {len(fleet.results)}")
    click.echo(f"  Orphans found:        {orphans}")
    click.echo(f"  Deleted:              {len(fleet.deleted)}")
    errors = fleet.all_errors
    if errors:
        click.echo(f"  Failures:             {len(errors)}")
        for e in errors:
            click.echo(f"    {e}")
    click.echo()


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.option(
    "-n",
    "--namespace",
    "namespaces",
    metavar="NS",
    multiple=True,
    help="Namespace to clean up (repeatable)",
)
@click.option(
    "--all",
    "all_namespaces",
    is_flag=True,
    help=f"Clean up every namespace labelled {ELIGIBLE_NAMESPACE_SELECTOR}",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Print what would be deleted without deleting anything",
)
@click.option(
    "--kubeconfig",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the kubeconfig file to use",
)
@click.option("--context", "kube_context", metavar="NAME", help="Kubeconfig context to use")
@click.option(
    "-w",
    "--workers",
    type=click.IntRange(min=1),
    default=DEFAULT_WORKERS,
    show_default=True,
    envvar="NS_REAPER_WORKERS",
    help="Namespaces processed concurrently",
)
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    default=KUBECTL_TIMEOUT,
    show_default=True,
    envvar="NS_REAPER_TIMEOUT",
    help="Seconds before a single kubectl call is abandoned",
)
@click.option(
    "--require-live-pods",
    is_flag=True,
    help="Delete nothing in namespaces without any live workload pod",
)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging, including kubectl commands")
@click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors")
@click.pass_context
def main(
    ctx: click.Context,
    namespaces: tuple[str, ...],
    all_namespaces: bool,
    dry_run: bool,
    kubeconfig: Optional[str],
    kube_context: Optional[str],
    workers: int,
    timeout: int,
    require_live_pods: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """
    Delete certificate secrets and config services orphaned by removed pods.

    A secret (*-certificate*) or service (*an-config*) is an orphan when no
    running pod in its namespace carries the 10-character workload prefix
    found in its name. Secrets containing "root" are never deleted.
    """
    if not namespaces and not all_namespaces:
        raise click.UsageError("Please specify the namespace using -n/--namespace, or --all.")
    if namespaces and all_namespaces:
        raise click.UsageError("-n/--namespace and --all are mutually exclusive.")

    setup_logging(verbose, quiet)
    gateway = KubectlGateway(kubeconfig=kubeconfig, context=kube_context, timeout=timeout)
    try:
        gateway.verify()
    except ConfigurationFailure as e:
        raise click.ClickException(str(e)) from e

    policy = ExecutionPolicy(dry_run=dry_run, require_live_pods=require_live_pods)
    if all_namespaces:
        fleet = reap_all(gateway, policy, workers)
    else:
        fleet = reap_fleet(gateway, namespaces, policy, workers)

    print_summary(fleet, dry_run)
    if not fleet.ok:
        logger.error("Cleanup finished with %d failures", len(fleet.all_errors))
        ctx.exit(1)


if __name__ == "__main__":
    sys.exit(main())
