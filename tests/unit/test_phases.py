"""Tests for the readiness phase definitions."""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import HealthyCluster

from powervs_check.config.models import WatchSettings
from powervs_check.errors import DiscoveryError
from powervs_check.phases import (
    CAPI_NAMESPACE,
    CLUSTER_CONDITION_TYPES,
    capi_phases,
    internal_pool_probe,
    openshift_phases,
)
from powervs_check.services import Services
from powervs_check.status_source import saved_document_name
from powervs_check.watch import PhaseStyle


async def _probe() -> tuple[bool, str]:
    return True, "ok"


class TestCapiPhases:
    def test_order_and_commands(self, tmp_path: Path) -> None:
        phases = capi_phases(tmp_path)

        assert [p.ordinal for p in phases] == [1, 2, 3]
        assert [p.name for p in phases] == [
            "cluster-infrastructure-ready",
            "image-import-ready",
            "node-provisioning-ready",
        ]
        assert phases[0].command == (
            "get", "ibmpowervscluster", "-n", CAPI_NAMESPACE, "-o", "json"
        )
        assert {p.kubeconfig for p in phases} == {
            tmp_path / ".clusterapi_output" / "envtest.kubeconfig"
        }
        assert [saved_document_name(p.command) for p in phases] == [
            "ibmpowervscluster.json",
            "ibmpowervsimage.json",
            "ibmpowervsmachines.json",
        ]

    def test_completion_predicates(self, tmp_path: Path) -> None:
        cluster, image, machines = capi_phases(tmp_path)

        assert cluster.required_count == 8
        assert cluster.required_types == CLUSTER_CONDITION_TYPES
        assert cluster.requires_ready_flag
        assert image.required_count == 2
        assert not image.requires_ready_flag
        assert machines.style is PhaseStyle.MACHINES
        assert machines.required_count == 4
        assert machines.check_addresses

    def test_polling_comes_from_settings(self, tmp_path: Path) -> None:
        settings = WatchSettings(interval_seconds=3, max_attempts=7, timeout_seconds=90)

        for phase in capi_phases(tmp_path, settings):
            assert phase.interval_seconds == 3
            assert phase.max_attempts == 7
            assert phase.timeout_seconds == 90

    def test_default_polls_until_ready(self, tmp_path: Path) -> None:
        phase = capi_phases(tmp_path)[0]

        assert phase.interval_seconds == 10.0
        assert phase.max_attempts is None
        assert phase.timeout_seconds is None


class TestOpenShiftPhases:
    def test_without_probe(self, tmp_path: Path) -> None:
        phases = openshift_phases(tmp_path)

        assert [p.ordinal for p in phases] == [5, 6, 7]
        assert all(p.style is PhaseStyle.OPERATOR for p in phases)
        assert {p.kubeconfig for p in phases} == {tmp_path / "auth" / "kubeconfig"}
        assert [saved_document_name(p.command) for p in phases] == [
            "co.json",
            "deployment-powervs-cloud-controller-manager.json",
            "co.json",
        ]

    def test_with_probe(self, tmp_path: Path) -> None:
        phases = openshift_phases(tmp_path, pool_probe=_probe)

        assert [p.ordinal for p in phases] == [4, 5, 6, 7]
        assert phases[0].style is PhaseStyle.PROBE
        assert phases[0].name == "machine-config-pool-healthy"
        assert phases[0].probe is _probe

    def test_operator_subjects(self, tmp_path: Path) -> None:
        network, deployment, authentication = openshift_phases(tmp_path)

        assert network.command == ("--request-timeout=5s", "get", "co", "-o", "json")
        assert network.subject == "network cluster operator"
        assert authentication.subject == "authentication cluster operator"
        assert deployment.status_labels == (("available", "AVAILABLE"),)


class TestInternalPoolProbe:
    async def test_reports_machine_config_pool(self, services: Services) -> None:
        ok, message = await internal_pool_probe(services)()

        assert ok
        assert "rdr-x7k2p-loadbalancer-int" in message
        assert message.endswith("found 1 healthy members of pool machine config server.")

    async def test_internal_load_balancer_is_cached(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        probe = internal_pool_probe(services)
        await probe()

        cluster.vpc.load_balancers = [
            lb for lb in cluster.vpc.load_balancers if lb["id"] != "lb-int"
        ]
        cluster.vpc.members[("lb-int", "p-mcs")] = [{"health": "faulted"}]

        ok, message = await probe()
        assert not ok
        assert message.endswith("did not find a healthy member of pool machine config server.")

    async def test_missing_internal_load_balancer_raises(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        cluster.vpc.load_balancers = [
            lb for lb in cluster.vpc.load_balancers if lb["id"] != "lb-int"
        ]

        with pytest.raises(DiscoveryError, match="no internal load balancer yet"):
            await internal_pool_probe(services)()
