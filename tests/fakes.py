"""In-memory provider clients used by the unit tests."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from powervs_check.discovery import POWER_IAAS_RESOURCE_ID
from powervs_check.metadata import ClusterMetadata
from powervs_check.providers import Page, ProviderClients, Record

CLUSTER = "rdr"
INFRA_ID = "rdr-x7k2p"
BASE_DOMAIN = "example.com"
SERVICE_INSTANCE_GUID = "si-guid"


def paginate(items: list[Record], start: str | None, limit: int) -> Page:
    offset = int(start or 0)
    end = offset + limit
    return Page(items=list(items[offset:end]), next_start=str(end) if end < len(items) else None)


def crn(service: str, resource: str) -> str:
    return f"crn:v1:bluemix:public:{service}:us-south:a/acct::{service}:{resource}"


@dataclass
class FakeVpcClient:
    vpcs: list[Record] = field(default_factory=list)
    subnets: list[Record] = field(default_factory=list)
    security_groups: dict[str, Record] = field(default_factory=dict)
    load_balancers: list[Record] = field(default_factory=list)
    pools: dict[str, list[Record]] = field(default_factory=dict)
    members: dict[tuple[str, str], list[Record]] = field(default_factory=dict)
    instances: list[Record] = field(default_factory=list)
    vpc_pages: int = 0

    async def list_vpcs(self, *, start: str | None, limit: int) -> Page:
        self.vpc_pages += 1
        return paginate(self.vpcs, start, limit)

    async def get_vpc(self, vpc_id: str) -> Record:
        return _by_key(self.vpcs, "id", vpc_id)

    async def list_subnets(self, *, resource_group_id: str, start: str | None, limit: int) -> Page:
        del resource_group_id
        return paginate(self.subnets, start, limit)

    async def get_vpc_default_security_group(self, vpc_id: str) -> Record:
        return self.security_groups.get(vpc_id, {"rules": []})

    async def list_load_balancers(self) -> list[Record]:
        return [{"id": lb["id"], "name": lb["name"]} for lb in self.load_balancers]

    async def get_load_balancer(self, load_balancer_id: str) -> Record:
        return _by_key(self.load_balancers, "id", load_balancer_id)

    async def list_load_balancer_pools(self, load_balancer_id: str) -> list[Record]:
        return list(self.pools.get(load_balancer_id, []))

    async def list_load_balancer_pool_members(self, load_balancer_id: str, pool_id: str) -> list[Record]:
        return list(self.members.get((load_balancer_id, pool_id), []))

    async def list_instances(self, *, resource_group_id: str, start: str | None, limit: int) -> Page:
        del resource_group_id
        return paginate(self.instances, start, limit)

    async def get_instance(self, instance_id: str) -> Record:
        return _by_key(self.instances, "id", instance_id)


@dataclass
class FakeResourceController:
    instances: list[Record] = field(default_factory=list)

    async def list_resource_instances(
        self,
        *,
        start: str | None,
        limit: int,
        resource_group_id: str | None = None,
        resource_id: str | None = None,
        type: str | None = None,
    ) -> Page:
        wanted = {"resource_group_id": resource_group_id, "resource_id": resource_id, "type": type}
        matching = [
            record
            for record in self.instances
            if all(value is None or record.get(key) == value for key, value in wanted.items())
        ]
        return paginate(matching, start, limit)

    async def get_resource_instance(self, instance_id: str) -> Record:
        for record in self.instances:
            if instance_id in (record.get("id"), record.get("guid")):
                return record
        raise LookupError(f"no resource instance {instance_id}")


@dataclass
class FakeResourceManager:
    groups: list[Record] = field(default_factory=lambda: [{"id": "rg-1", "name": "ci-group"}])
    calls: int = 0

    async def list_resource_groups(self) -> list[Record]:
        self.calls += 1
        return list(self.groups)


@dataclass
class FakeTransitGatewayClient:
    gateways: list[Record] = field(default_factory=list)
    connections: list[Record] = field(default_factory=list)

    async def list_transit_gateways(self, *, start: str | None, limit: int) -> Page:
        return paginate(self.gateways, start, limit)

    async def get_transit_gateway(self, transit_gateway_id: str) -> Record:
        return _by_key(self.gateways, "id", transit_gateway_id)

    async def list_connections(self, *, start: str | None, limit: int) -> Page:
        return paginate(self.connections, start, limit)


@dataclass
class FakeGlobalSearch:
    """Returns every item whose tags contain the cluster tag of the query."""

    items: list[Record] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)

    async def search(self, *, query: str, limit: int, cursor: str | None) -> Page:
        self.queries.append(query)
        tag = query.split(" AND ", 1)[0].removeprefix("tags:")
        scope = query.split(" AND ")[2]
        matching = [
            item
            for item in self.items
            if tag in item.get("tags", ()) and item.get("type") == scope.removeprefix("type:")
        ]
        return paginate(matching, cursor, limit)


@dataclass
class FakePowerIaas:
    instances: list[Record] = field(default_factory=list)
    dhcp_servers: list[Record] = field(default_factory=list)
    images: list[Record] = field(default_factory=list)
    ssh_keys: list[Record] = field(default_factory=list)
    networks: list[Record] = field(default_factory=list)
    ports: dict[str, list[Record]] = field(default_factory=dict)
    fail_deletes: set[str] = field(default_factory=set)
    deleted: list[tuple[str, str]] = field(default_factory=list)

    async def list_instances(self) -> list[Record]:
        return [
            {"pvmInstanceID": i["pvmInstanceID"], "serverName": i["serverName"]}
            for i in self.instances
        ]

    async def get_instance(self, instance_id: str) -> Record:
        return _by_key(self.instances, "pvmInstanceID", instance_id)

    async def delete_instance(self, instance_id: str) -> None:
        self._delete("instance", instance_id)

    async def list_dhcp_servers(self) -> list[Record]:
        return list(self.dhcp_servers)

    async def delete_dhcp_server(self, dhcp_server_id: str) -> None:
        self._delete("dhcp", dhcp_server_id)

    async def list_images(self) -> list[Record]:
        return list(self.images)

    async def delete_image(self, image_id: str) -> None:
        self._delete("image", image_id)

    async def list_ssh_keys(self) -> list[Record]:
        return list(self.ssh_keys)

    async def list_networks(self) -> list[Record]:
        return list(self.networks)

    async def list_network_ports(self, network_id: str) -> list[Record]:
        return list(self.ports.get(network_id, []))

    async def delete_network(self, network_id: str) -> None:
        self._delete("network", network_id)

    def _delete(self, noun: str, identifier: str) -> None:
        if identifier in self.fail_deletes:
            raise RuntimeError(f"{noun} {identifier} is locked")
        self.deleted.append((noun, identifier))


@dataclass
class FakeDnsRecords:
    records: list[Record] = field(default_factory=list)
    pages: list[int] = field(default_factory=list)

    async def list_dns_records(self, *, page: int, per_page: int) -> Page:
        self.pages.append(page)
        offset = (page - 1) * per_page
        return Page(items=list(self.records[offset:offset + per_page]))


@dataclass
class FakeObjectStorage:
    buckets: dict[str, list[Record]] = field(default_factory=dict)

    async def bucket_exists(self, bucket: str) -> bool:
        return bucket in self.buckets

    async def list_objects(self, bucket: str) -> list[Record]:
        return list(self.buckets[bucket])


def _by_key(records: list[Record], key: str, value: str) -> Record:
    for record in records:
        if record.get(key) == value:
            return record
    raise LookupError(f"no record with {key}={value}")


def create_metadata(**overrides: Any) -> ClusterMetadata:
    values: dict[str, Any] = {
        "cluster_name": CLUSTER,
        "infra_id": INFRA_ID,
        "base_domain": BASE_DOMAIN,
        "cis_instance_crn": crn("internet-svcs", "cis-1"),
        "region": "dal",
        "zone": "dal10",
        "resource_group": "ci-group",
        "service_instance_guid": SERVICE_INSTANCE_GUID,
    }
    values.update(overrides)
    return ClusterMetadata(**values)


def healthy_power_iaas() -> FakePowerIaas:
    def instance(instance_id: str, name: str) -> dict[str, Any]:
        return {
            "pvmInstanceID": instance_id,
            "serverName": name,
            "status": "ACTIVE",
            "health": {"status": "OK"},
        }

    return FakePowerIaas(
        instances=[
            instance("m0", f"{INFRA_ID}-master-0"),
            instance("m1", f"{INFRA_ID}-master-1"),
            instance("m2", f"{INFRA_ID}-master-2"),
            instance("w0", f"{INFRA_ID}-worker-a"),
            instance("w1", f"{INFRA_ID}-worker-b"),
        ],
        dhcp_servers=[{"id": "d1", "network": {"name": f"DHCPSERVER{INFRA_ID}_Private"}}],
        images=[{"imageID": "i1", "name": f"rhcos-{INFRA_ID}", "state": "active"}],
        ssh_keys=[{"name": f"{INFRA_ID}-sshkey"}],
    )


@dataclass
class HealthyCluster:
    """Provider state of a cluster whose every resource is ready."""

    vpc: FakeVpcClient
    resource_controller: FakeResourceController
    resource_manager: FakeResourceManager
    transit_gateway: FakeTransitGatewayClient
    global_search: FakeGlobalSearch
    dns_records: FakeDnsRecords
    power_iaas: FakePowerIaas
    object_storage: FakeObjectStorage

    def clients(self) -> ProviderClients:
        return ProviderClients(
            vpc=self.vpc,
            resource_controller=self.resource_controller,
            resource_manager=self.resource_manager,
            transit_gateway=self.transit_gateway,
            global_search=self.global_search,
            dns_records=self.dns_records,
            power_iaas_factory=lambda *, service_instance_id, zone: self.power_iaas,
            object_storage_factory=lambda *, service_instance_id: self.object_storage,
        )


def healthy_cluster() -> HealthyCluster:
    vpc = FakeVpcClient(
        vpcs=[
            {"id": "vpc-0", "name": "vpc-other", "crn": crn("is", "vpc-0"), "health_state": "ok"},
            {"id": "vpc-1", "name": f"vpc-{CLUSTER}", "crn": crn("is", "vpc-1"), "health_state": "ok"},
        ],
        subnets=[
            {"name": f"{INFRA_ID}-subnet-{zone}", "status": "available", "vpc": {"id": "vpc-1"}}
            for zone in ("1", "2", "3")
        ]
        + [{"name": "unrelated", "status": "pending", "vpc": {"id": "vpc-0"}}],
        security_groups={
            "vpc-1": {"rules": [{"protocol": "tcp", "port_min": 22, "port_max": 22}]},
        },
        load_balancers=[
            {
                "id": "lb-int",
                "name": f"{INFRA_ID}-loadbalancer-int",
                "crn": crn("is", "lb-int"),
                "operating_status": "online",
            },
            {
                "id": "lb-ext",
                "name": f"{INFRA_ID}-loadbalancer",
                "crn": crn("is", "lb-ext"),
                "operating_status": "online",
            },
            {
                "id": "lb-kube",
                "name": f"kube-{INFRA_ID}-a1b2",
                "crn": crn("is", "lb-kube"),
                "operating_status": "online",
            },
        ],
        pools={
            "lb-int": [
                {"id": "p-api", "name": "pool-6443"},
                {"id": "p-mcs", "name": "additional-pool-22623"},
            ],
            "lb-ext": [{"id": "p-ext", "name": "pool-6443"}],
            "lb-kube": [
                {"id": "p-80", "name": "tcp-80-abc"},
                {"id": "p-443", "name": "tcp-443-abc"},
            ],
        },
        members={
            ("lb-int", "p-api"): [{"health": "ok"}, {"health": "ok"}],
            ("lb-int", "p-mcs"): [{"health": "ok"}],
            ("lb-ext", "p-ext"): [{"health": "ok"}],
            ("lb-kube", "p-80"): [{"health": "ok"}],
            ("lb-kube", "p-443"): [{"health": "faulted"}, {"health": "ok"}],
        },
    )
    resource_controller = FakeResourceController(
        instances=[
            {
                "id": "si-id",
                "guid": SERVICE_INSTANCE_GUID,
                "name": f"{CLUSTER}-power-iaas",
                "state": "active",
                "type": "service_instance",
                "resource_group_id": "rg-1",
                "resource_id": POWER_IAAS_RESOURCE_ID,
                "crn": crn("power-iaas", SERVICE_INSTANCE_GUID),
            },
            {
                "id": "cos-id",
                "guid": "cos-guid",
                "name": f"{INFRA_ID}-cos",
                "state": "active",
                "type": "service_instance",
                "resource_group_id": "rg-1",
                "resource_id": "cloud-object-storage",
                "crn": crn("cloud-object-storage", "cos-guid"),
            },
        ]
    )
    transit_gateway = FakeTransitGatewayClient(
        gateways=[
            {
                "id": "tg-1",
                "name": f"{INFRA_ID}-tg",
                "status": "available",
                "crn": crn("transit", "tg-1"),
            },
        ],
        connections=[
            {"transit_gateway": {"id": "tg-1"}, "network_type": "power_virtual_server"},
            {"transit_gateway": {"id": "tg-1"}, "network_type": "vpc"},
            {"transit_gateway": {"id": "tg-9"}, "network_type": "vpc"},
        ],
    )
    dns_records = FakeDnsRecords(
        records=[
            {"id": "r1", "name": f"api-int.{CLUSTER}.{BASE_DOMAIN}", "content": "10.0.0.4"},
            {"id": "r2", "name": f"api.{CLUSTER}.{BASE_DOMAIN}", "content": "150.1.2.3"},
            {"id": "r3", "name": f"*.apps.{CLUSTER}.{BASE_DOMAIN}", "content": "150.1.2.4"},
            {"id": "r4", "name": f"www.{BASE_DOMAIN}", "content": "150.1.2.9"},
        ]
    )
    object_storage = FakeObjectStorage(
        buckets={
            f"{INFRA_ID}-bootstrap-ign": [
                {"key": "bootstrap.ign", "size": 300000},
                {"key": "master-0.ign", "size": 1700},
                {"key": "master-1.ign", "size": 1700},
                {"key": "master-2.ign", "size": 1700},
            ],
        }
    )
    return HealthyCluster(
        vpc=vpc,
        resource_controller=resource_controller,
        resource_manager=FakeResourceManager(),
        transit_gateway=transit_gateway,
        global_search=FakeGlobalSearch(),
        dns_records=dns_records,
        power_iaas=healthy_power_iaas(),
        object_storage=object_storage,
    )


def healthy_clients_factory(*, metadata: ClusterMetadata, settings: Any) -> ProviderClients:
    """Provider factory importable as ``fakes:healthy_clients_factory``."""
    del metadata, settings
    return healthy_cluster().clients()


def cluster_document(conditions: Mapping[str, Any], *, ready: Any = True) -> dict[str, Any]:
    return {
        "items": [
            {
                "status": {
                    "ready": ready,
                    "conditions": [
                        {"type": condition_type, "status": status}
                        for condition_type, status in conditions.items()
                    ],
                }
            }
        ]
    }
