"""Readiness phases watched while a cluster is being created."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from powervs_check.conditions import (
    extract_cluster,
    extract_cluster_operator,
    extract_conditions,
    extract_deployment,
    extract_machines,
)
from powervs_check.config.models import WatchSettings
from powervs_check.discovery import Resolver
from powervs_check.errors import DiscoveryError
from powervs_check.faults import FaultCollector
from powervs_check.kinds import load_balancer
from powervs_check.model import ClusterOperatorStatus, ManagedResource, ResourceKind
from powervs_check.watch import Document, Phase, PhaseStyle, Probe, StatusExtractor

if TYPE_CHECKING:
    from powervs_check.services import Services

CAPI_NAMESPACE = "openshift-cluster-api-guests"
CAPI_KUBECONFIG = Path(".clusterapi_output") / "envtest.kubeconfig"
OPENSHIFT_KUBECONFIG = Path("auth") / "kubeconfig"

CLUSTER_CONDITION_TYPES = (
    "COSInstanceCreated",
    "LoadBalancerReady",
    "NetworkReady",
    "ServiceInstanceReady",
    "TransitGatewayReady",
    "VPCReady",
    "VPCSecurityGroupReady",
    "VPCSubnetReady",
)


def _capi_get(resource: str) -> tuple[str, ...]:
    return ("get", resource, "-n", CAPI_NAMESPACE, "-o", "json")


def _header(kind: str) -> str:
    return f"Querying the {kind}: 8<--------8<--------"


def _polling(settings: WatchSettings) -> dict[str, float | int | None]:
    return {
        "interval_seconds": settings.interval_seconds,
        "max_attempts": settings.max_attempts,
        "timeout_seconds": settings.timeout_seconds,
    }


def capi_phases(install_dir: Path, settings: WatchSettings | None = None) -> list[Phase]:
    """Cluster API infrastructure, image import and machine provisioning."""
    polling = _polling(settings or WatchSettings())
    kubeconfig = Path(install_dir) / CAPI_KUBECONFIG
    return [
        Phase(
            ordinal=1,
            name="cluster-infrastructure-ready",
            style=PhaseStyle.CONDITIONS,
            command=_capi_get("ibmpowervscluster"),
            kubeconfig=kubeconfig,
            header=_header("IBMPowerVSCluster"),
            extract=extract_cluster,
            required_count=len(CLUSTER_CONDITION_TYPES),
            required_types=CLUSTER_CONDITION_TYPES,
            requires_ready_flag=True,
            **polling,
        ),
        Phase(
            ordinal=2,
            name="image-import-ready",
            style=PhaseStyle.CONDITIONS,
            command=_capi_get("ibmpowervsimage"),
            kubeconfig=kubeconfig,
            header=_header("IBMPowerVSImage"),
            extract=extract_conditions,
            required_count=2,
            **polling,
        ),
        Phase(
            ordinal=3,
            name="node-provisioning-ready",
            style=PhaseStyle.MACHINES,
            command=_capi_get("ibmpowervsmachines"),
            kubeconfig=kubeconfig,
            header=_header("IBMPowerVSMachines"),
            extract=extract_machines,
            required_count=4,
            check_addresses=True,
            **polling,
        ),
    ]


def _operator_phase(
    ordinal: int,
    operator: str,
    kubeconfig: Path,
    polling: dict[str, float | int | None],
) -> Phase:
    return Phase(
        ordinal=ordinal,
        name=f"{operator}-operator-available",
        style=PhaseStyle.OPERATOR,
        command=("--request-timeout=5s", "get", "co", "-o", "json"),
        kubeconfig=kubeconfig,
        subject=f"{operator} cluster operator",
        extract_status=_cluster_operator(operator),
        **polling,
    )


def _cluster_operator(operator: str) -> StatusExtractor:
    def extract(document: Document, faults: FaultCollector) -> ClusterOperatorStatus:
        return extract_cluster_operator(document, operator, faults)

    return extract


def openshift_phases(
    install_dir: Path,
    settings: WatchSettings | None = None,
    *,
    pool_probe: Probe | None = None,
) -> list[Phase]:
    """Machine config pool, platform operators and the cloud controller manager."""
    polling = _polling(settings or WatchSettings())
    kubeconfig = Path(install_dir) / OPENSHIFT_KUBECONFIG
    phases: list[Phase] = []

    if pool_probe is not None:
        phases.append(
            Phase(
                ordinal=4,
                name="machine-config-pool-healthy",
                style=PhaseStyle.PROBE,
                probe=pool_probe,
                **polling,
            )
        )

    phases.append(_operator_phase(5, "network", kubeconfig, polling))
    phases.append(
        Phase(
            ordinal=6,
            name="cloud-controller-manager-available",
            style=PhaseStyle.OPERATOR,
            command=(
                "get",
                "deployment/powervs-cloud-controller-manager",
                "-n",
                "openshift-cloud-controller-manager",
                "-o",
                "json",
            ),
            kubeconfig=kubeconfig,
            subject="deployment of powervs-cloud-controller-manager",
            extract_status=extract_deployment,
            status_labels=(("available", "AVAILABLE"),),
            **polling,
        )
    )
    phases.append(_operator_phase(7, "authentication", kubeconfig, polling))
    return phases


def internal_pool_probe(services: Services, resolver: Resolver | None = None) -> Probe:
    """Probe the machine config pool of the internal load balancer.

    The internal load balancer is discovered on the first pass and reused.
    """
    found: dict[str, ManagedResource] = {}

    async def probe() -> tuple[bool, str]:
        internal = found.get("internal")
        if internal is None:
            slots, _ = await load_balancer.create(services, resolver or Resolver(services))
            internal = next(
                (slot for slot in slots if slot.extras.get("role") == "internal" and slot.resolved),
                None,
            )
            if internal is None:
                raise DiscoveryError(ResourceKind.LOAD_BALANCER.value, "no internal load balancer yet")
            found["internal"] = internal

        ok, message = await load_balancer.check_pool(
            internal, services, load_balancer.MACHINE_CONFIG_POOL
        )
        return ok, f"{internal.object_name} {internal.name} {message}"

    return probe
