"""End-to-end flows: post-create check, CI pre-flight and the creation watch."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from powervs_check.discovery import Resolver
from powervs_check.errors import SetupError
from powervs_check.model import ReadinessReport, ResourceKind
from powervs_check.phases import (
    CAPI_KUBECONFIG,
    capi_phases,
    internal_pool_probe,
    openshift_phases,
)
from powervs_check.registry import CI_KINDS, CREATE_KINDS, initialize_resources
from powervs_check.services import Services
from powervs_check.status import evaluate_absence, evaluate_readiness
from powervs_check.status_source import FileStatusSource, OcStatusSource, StatusSource
from powervs_check.watch import PhaseResult, PhaseWatcher, watch_phases


async def check_create(
    services: Services,
    *,
    kinds: Iterable[ResourceKind] = CREATE_KINDS,
    resolver: Resolver | None = None,
) -> list[ReadinessReport]:
    """Discover every created resource and report its readiness, highest priority first."""
    resources = await initialize_resources(kinds, services, resolver=resolver)
    reports: list[ReadinessReport] = []
    for resource in resources:
        reports.append(await evaluate_readiness(resource, services))
    return reports


async def check_ci(
    services: Services,
    *,
    clean: bool = False,
    resolver: Resolver | None = None,
) -> list[ReadinessReport]:
    """Verify the CI resources hold nothing from a previous run."""
    if not services.metadata.ci_mode:
        raise SetupError("CI checks need CI metadata")
    resources = await initialize_resources(CI_KINDS, services, resolver=resolver)
    reports: list[ReadinessReport] = []
    for resource in resources:
        reports.append(await evaluate_absence(resource, services, clean=clean))
    return reports


def default_status_source(services: Services) -> StatusSource:
    watch = services.settings.watch
    if watch.saved_json_dir is not None:
        return FileStatusSource(watch.saved_json_dir)
    return OcStatusSource(
        binary=watch.oc_binary,
        timeout_seconds=watch.command_timeout_seconds,
        logger=services.logger.getChild("status_source"),
    )


async def watch_create(
    install_dir: Path,
    services: Services,
    *,
    source: StatusSource | None = None,
    watcher: PhaseWatcher | None = None,
) -> list[PhaseResult]:
    """Follow cluster creation through the cluster API and OpenShift phases.

    Stops at the first phase that does not succeed.
    """
    install_dir = Path(install_dir)
    source = source or default_status_source(services)
    if not isinstance(source, FileStatusSource):
        kubeconfig = install_dir / CAPI_KUBECONFIG
        if not kubeconfig.exists():
            raise SetupError(f"kubeconfig not found: {kubeconfig}")

    watcher = watcher or PhaseWatcher(
        source,
        sink=services.sink,
        logger=services.logger.getChild("watch"),
        metrics=services.metrics,
    )
    settings = services.settings.watch

    probe = None
    if services.clients.vpc is not None:
        probe = internal_pool_probe(services)
    else:
        services.logger.info("No VPC client is configured; skipping the load balancer pool phase")

    phases = [
        *capi_phases(install_dir, settings),
        *openshift_phases(install_dir, settings, pool_probe=probe),
    ]
    return await watch_phases(phases, watcher)
