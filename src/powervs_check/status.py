"""Readiness and absence evaluation of managed resources."""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from powervs_check.kinds import (
    dns,
    load_balancer,
    network,
    object_store,
    service_instance,
    transit_gateway,
    vm_instance,
)
from powervs_check.kinds._evaluation import Evaluation
from powervs_check.model import ManagedResource, ReadinessReport, ResourceKind

if TYPE_CHECKING:
    from powervs_check.services import Services


async def initialize_resource(resource: ManagedResource, services: Services) -> None:
    """Prepare a resource for evaluation.

    Failures are kept on the resource and surface as failed sub-checks.
    """
    try:
        match resource.kind:
            case ResourceKind.COMPUTE_SERVICE_INSTANCE:
                await service_instance.initialize(resource, services)
            case ResourceKind.OBJECT_STORE:
                await object_store.initialize(resource, services)
            case ResourceKind.LOAD_BALANCER:
                await load_balancer.initialize(resource, services)
            case (
                ResourceKind.NETWORK
                | ResourceKind.TRANSIT_GATEWAY
                | ResourceKind.VM_INSTANCE
                | ResourceKind.DNS_ZONE
            ):
                if resource.resolved:
                    resource.name = resource.provider_name
            case _:
                assert_never(resource.kind)
    except Exception as exc:
        services.logger.error(
            "Could not initialize %s %s: %s", resource.object_name, resource.name, exc
        )
        resource.extras["initialize_error"] = exc


async def evaluate_readiness(resource: ManagedResource, services: Services) -> ReadinessReport:
    """Run every sub-check of ``resource`` and emit its verdict."""
    ev = Evaluation(resource, services)
    if not resource.resolved:
        report = ev.unresolved()
        _observe(services, report)
        return report

    try:
        match resource.kind:
            case ResourceKind.NETWORK:
                await network.check(ev)
            case ResourceKind.TRANSIT_GATEWAY:
                await transit_gateway.check(ev)
            case ResourceKind.COMPUTE_SERVICE_INSTANCE:
                await service_instance.check(ev)
            case ResourceKind.VM_INSTANCE:
                await vm_instance.check(ev)
            case ResourceKind.LOAD_BALANCER:
                await load_balancer.check(ev)
            case ResourceKind.OBJECT_STORE:
                await object_store.check(ev)
            case ResourceKind.DNS_ZONE:
                await dns.check(ev)
            case _:
                assert_never(resource.kind)
    except Exception as exc:
        services.logger.debug("Readiness check of %s failed", ev.prefix, exc_info=True)
        ev.failed("evaluation", str(exc))

    report = ev.conclude()
    _observe(services, report)
    return report


async def evaluate_absence(
    resource: ManagedResource,
    services: Services,
    *,
    clean: bool = False,
) -> ReadinessReport:
    """CI pre-flight: a workspace must not hold leftovers from an earlier run.

    With ``clean`` every stray object is deleted; delete failures are
    reported and the sweep goes on.
    """
    ev = Evaluation(resource, services)
    match resource.kind:
        case ResourceKind.COMPUTE_SERVICE_INSTANCE:
            if not resource.resolved:
                report = ev.unresolved()
                _observe(services, report)
                return report
            try:
                await service_instance.sweep(ev, clean)
            except Exception as exc:
                ev.failed("sweep", str(exc))
            report = ev.conclude()
        case (
            ResourceKind.NETWORK
            | ResourceKind.TRANSIT_GATEWAY
            | ResourceKind.VM_INSTANCE
            | ResourceKind.LOAD_BALANCER
            | ResourceKind.OBJECT_STORE
            | ResourceKind.DNS_ZONE
        ):
            # Only the workspace holds children to sweep.
            ev.passed("preflight")
            report = ev.report
        case _:
            assert_never(resource.kind)

    _observe(services, report)
    return report


def _observe(services: Services, report: ReadinessReport) -> None:
    services.metrics_recorder().observe_verdict(resource=report.kind.value, ok=report.ok)
