"""Click commands: serve, healthcheck, version."""

from __future__ import annotations

import asyncio
import sys

import click
import httpx

from cluster_reflector import BUILD_DATE, GIT_COMMIT, __version__
from cluster_reflector.config import load_config, with_overrides
from cluster_reflector.errors import ConfigError

_HEALTHCHECK_TIMEOUT_SECONDS = 10.0


@click.group()
def cli() -> None:
    """Kubernetes cluster metadata and application version reflector.

    \b
    Serves:
      GET /cluster-info  nodes and application versions
      GET /healthz       health check
      GET /metrics       Prometheus metrics (with --metrics)

    Every flag falls back to its REFLECTOR_* environment variable.
    """


@cli.command()
@click.option("--listen", default=None, help="Address to listen on (default :8080).")
@click.option("--cache-ttl", default=None, help="Cache TTL for cluster data, e.g. 10s (default 10s).")
@click.option(
    "--namespace-selector",
    default=None,
    help="Comma separated namespaces for app discovery (empty = all namespaces).",
)
@click.option("--prefer-crd/--no-prefer-crd", default=None, help="Discover apps from AppVersion CRDs.")
@click.option(
    "--fallback-workloads/--no-fallback-workloads",
    default=None,
    help="Discover apps from workload labels and images.",
)
@click.option("--crd-only/--no-crd-only", default=None, help="Only use AppVersion CRDs; ignore workloads.")
@click.option("--workload-kinds", default=None, help="Workload kinds to scan (default Deployment,StatefulSet).")
@click.option("--log-level", default=None, help="debug, info, warn or error (default info).")
@click.option("--metrics/--no-metrics", default=None, help="Expose the Prometheus /metrics endpoint.")
def serve(**overrides: object) -> None:
    """Run the reflector service."""
    from cluster_reflector.app import main

    try:
        config = with_overrides(load_config(), **overrides)  # type: ignore[arg-type]
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc
    asyncio.run(main(config))


@cli.command()
@click.option("--listen", default=":8080", help="Address of the server to check.")
def healthcheck(listen: str) -> None:
    """Query the local /healthz endpoint and exit non-zero if unhealthy."""
    addr = f"localhost{listen}" if listen.startswith(":") else listen
    url = f"http://{addr}/healthz"
    try:
        response = httpx.get(url, timeout=_HEALTHCHECK_TIMEOUT_SECONDS)
    except httpx.HTTPError as exc:
        click.echo(f"Health check failed: {exc}", err=True)
        sys.exit(1)
    if response.status_code != 200:
        click.echo(f"Health check failed: HTTP {response.status_code}", err=True)
        sys.exit(1)
    click.echo("Health check passed")


@cli.command()
def version() -> None:
    """Print version information."""
    click.echo(f"cluster-reflector version {__version__}")
    click.echo(f"Git commit: {GIT_COMMIT}")
    click.echo(f"Build date: {BUILD_DATE}")
