"""Tests for managed resource creation and initialization."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fakes import CLUSTER, INFRA_ID, HealthyCluster

import powervs_check.registry as registry_module
from powervs_check.errors import ResourceNotFoundError, SetupError
from powervs_check.metadata import ClusterMetadata
from powervs_check.model import ManagedResource, ResourceKind
from powervs_check.registry import (
    CREATE_KINDS,
    initialize_resources,
    new_managed_resources,
    register_factory,
    reset_resource_factories,
)
from powervs_check.services import Services

# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def restore_factories() -> Iterator[None]:
    original_factories = dict(registry_module._RESOURCE_FACTORIES)
    original_registered = registry_module._BUILTIN_FACTORIES_REGISTERED
    try:
        yield
    finally:
        reset_resource_factories()
        registry_module._RESOURCE_FACTORIES.update(original_factories)
        registry_module._BUILTIN_FACTORIES_REGISTERED = original_registered


def _lb(identifier: str, name: str) -> dict:
    return {"id": identifier, "name": name, "crn": f"crn-{identifier}", "operating_status": "online"}


# ── Factory registry ─────────────────────────────────────────────────


class TestFactories:
    def test_builtin_factories_cover_every_kind(self, restore_factories: None) -> None:
        reset_resource_factories()
        registry_module._ensure_builtin_factories()

        assert set(registry_module._RESOURCE_FACTORIES) == set(ResourceKind)

    async def test_registered_factory_replaces_builtin(
        self, restore_factories: None, services: Services
    ) -> None:
        reset_resource_factories()
        registry_module._BUILTIN_FACTORIES_REGISTERED = True

        async def stub(services: Services, resolver) -> tuple[list[ManagedResource], list]:
            return [ManagedResource(kind=ResourceKind.DNS_ZONE, name="stub")], [None]

        register_factory(ResourceKind.DNS_ZONE, stub)
        resources, errors = await new_managed_resources(ResourceKind.DNS_ZONE, services)

        assert [r.name for r in resources] == ["stub"]
        assert errors == [None]

    async def test_unregistered_kind_is_setup_error(
        self, restore_factories: None, services: Services
    ) -> None:
        reset_resource_factories()
        registry_module._BUILTIN_FACTORIES_REGISTERED = True

        with pytest.raises(SetupError, match="No factory registered for Domain Name Service"):
            await new_managed_resources(ResourceKind.DNS_ZONE, services)


# ── Creation per kind ────────────────────────────────────────────────


class TestCreation:
    async def test_network_found(self, services: Services) -> None:
        resources, errors = await new_managed_resources(ResourceKind.NETWORK, services)

        assert errors == [None]
        assert resources[0].name == f"vpc-{CLUSTER}"
        assert resources[0].handle_field("id") == "vpc-1"

    async def test_not_found_yields_placeholder_and_error(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        cluster.transit_gateway.gateways.clear()

        resources, errors = await new_managed_resources(ResourceKind.TRANSIT_GATEWAY, services)

        assert len(resources) == len(errors) == 1
        assert resources[0].resolved is False
        assert resources[0].name == f"{INFRA_ID}-tg"
        assert isinstance(errors[0], ResourceNotFoundError)
        assert str(errors[0]) == f"Unable to find Transit Gateway named {INFRA_ID}-tg"

    async def test_service_instance_not_found_by_guid(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        cluster.resource_controller.instances.pop(0)

        resources, errors = await new_managed_resources(ResourceKind.COMPUTE_SERVICE_INSTANCE, services)

        assert resources[0].resolved is False
        assert str(errors[0]) == "Unable to find Power Service Instance with a guid of si-guid"

    async def test_service_instance_with_unknown_type(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        cluster.resource_controller.instances[0]["type"] = "resource_alias"

        resources, errors = await new_managed_resources(ResourceKind.COMPUTE_SERVICE_INSTANCE, services)

        assert resources[0].resolved is False
        assert "has unknown type resource_alias" in str(errors[0])

    async def test_service_instance_carries_child_names(self, services: Services) -> None:
        resources, _ = await new_managed_resources(ResourceKind.COMPUTE_SERVICE_INSTANCE, services)

        assert resources[0].extras == {
            "dhcp_name": f"DHCPSERVER{INFRA_ID}",
            "rhcos_name": f"rhcos-{INFRA_ID}",
            "ssh_key_name": f"{INFRA_ID}-sshkey",
            "network_name": f"{INFRA_ID}-network",
        }

    async def test_vm_instances_are_optional(self, services: Services) -> None:
        assert await new_managed_resources(ResourceKind.VM_INSTANCE, services) == ([], [])

    async def test_vm_instances_found(self, services: Services, cluster: HealthyCluster) -> None:
        cluster.vpc.instances = [
            {"id": "vm-1", "name": f"{CLUSTER}-bastion", "health_state": "ok"},
            {"id": "vm-2", "name": "unrelated"},
        ]

        resources, errors = await new_managed_resources(ResourceKind.VM_INSTANCE, services)

        assert [r.name for r in resources] == [f"{CLUSTER}-bastion"]
        assert errors == [None]

    async def test_discovery_failure_keeps_slot(self, services: Services) -> None:
        services.clients.vpc = None

        resources, errors = await new_managed_resources(ResourceKind.NETWORK, services)

        assert resources[0].resolved is False
        assert "no VPC client is configured" in str(errors[0])

    async def test_ci_metadata_rejects_other_kinds(self, services: Services) -> None:
        services.metadata = ClusterMetadata.from_ci_document({"region": "dal", "serviceInstance": "ws"})

        resources, errors = await new_managed_resources(ResourceKind.OBJECT_STORE, services)

        assert resources[0].resolved is False
        assert isinstance(errors[0], SetupError)

    async def test_empty_ci_target_is_skipped(self, services: Services) -> None:
        services.metadata = ClusterMetadata.from_ci_document({"region": "dal", "serviceInstance": "ws"})
        assert await new_managed_resources(ResourceKind.TRANSIT_GATEWAY, services) == ([], [])

    async def test_dns_without_records_client(self, services: Services) -> None:
        services.clients.dns_records = None

        resources, errors = await new_managed_resources(ResourceKind.DNS_ZONE, services)

        assert resources[0].name == "rdr.example.com"
        assert resources[0].resolved is False
        assert isinstance(errors[0], ResourceNotFoundError)


class TestLoadBalancerSlots:
    async def test_three_of_five_are_classified(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        cluster.vpc.load_balancers = [
            _lb("lb-old", f"{CLUSTER}-loadbalancer-old"),
            _lb("lb-kube", f"kube-{CLUSTER}-1"),
            _lb("lb-ext", f"{CLUSTER}-loadbalancer"),
            _lb("lb-misc", f"{CLUSTER}-bastion-lb"),
            _lb("lb-int", f"{CLUSTER}-loadbalancer-int"),
        ]

        resources, errors = await new_managed_resources(ResourceKind.LOAD_BALANCER, services)

        assert [r.extras["role"] for r in resources] == ["internal", "external", "ingress"]
        assert [r.handle_field("id") for r in resources] == ["lb-int", "lb-ext", "lb-kube"]
        assert errors == [None, None, None]

    async def test_missing_role_keeps_placeholder(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        cluster.vpc.load_balancers = [_lb("lb-int", f"{CLUSTER}-loadbalancer-int")]

        resources, errors = await new_managed_resources(ResourceKind.LOAD_BALANCER, services)

        assert [r.name for r in resources] == [
            f"{CLUSTER}-loadbalancer-int",
            "(external load balancer)",
            "(kube load balancer)",
        ]
        assert errors[0] is None
        assert str(errors[1]) == f"Unable to find Load Balancer named {CLUSTER} (external)"
        assert str(errors[2]) == f"Unable to find Load Balancer named {CLUSTER} (ingress)"

    async def test_discovery_error_fills_every_slot(self, services: Services) -> None:
        services.clients.vpc = None

        resources, errors = await new_managed_resources(ResourceKind.LOAD_BALANCER, services)

        assert len(resources) == 3
        assert not any(r.resolved for r in resources)
        assert all(isinstance(error, SetupError) for error in errors)


class TestInitializeResources:
    async def test_ordered_and_initialized(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        resources = await initialize_resources(CREATE_KINDS, services)

        assert [r.kind for r in resources] == [
            ResourceKind.NETWORK,
            ResourceKind.TRANSIT_GATEWAY,
            ResourceKind.COMPUTE_SERVICE_INSTANCE,
            ResourceKind.LOAD_BALANCER,
            ResourceKind.LOAD_BALANCER,
            ResourceKind.LOAD_BALANCER,
            ResourceKind.OBJECT_STORE,
            ResourceKind.DNS_ZONE,
        ]
        service_instance = resources[2]
        assert service_instance.name == f"{CLUSTER}-power-iaas"
        assert service_instance.extras["client"] is cluster.power_iaas
        assert resources[6].extras["client"] is cluster.object_storage
        assert resources[6].name == f"{INFRA_ID}-cos"

    async def test_unresolved_resources_are_kept(
        self, services: Services, cluster: HealthyCluster
    ) -> None:
        cluster.vpc.vpcs.clear()

        resources = await initialize_resources([ResourceKind.NETWORK], services)

        assert len(resources) == 1
        assert resources[0].resolved is False

    async def test_initialize_failure_is_recorded(self, services: Services) -> None:
        services.clients.power_iaas_factory = None

        resources = await initialize_resources([ResourceKind.COMPUTE_SERVICE_INSTANCE], services)

        error = resources[0].extras["initialize_error"]
        assert isinstance(error, SetupError)
        assert "Power IaaS" in str(error)

