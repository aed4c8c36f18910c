"""Provider client contracts consumed by discovery and readiness checks.

Concrete clients wrap the cloud SDKs and live outside this package. Records
are plain mappings that carry the provider's own field names (``id``,
``name``, ``crn``, ``state``, ``health_state``...). Listing calls are cursor
driven and return :class:`Page`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

Record = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Page:
    """One page of a provider listing. ``next_start`` is ``None`` on the last page."""

    items: list[Record] = field(default_factory=list)
    next_start: str | None = None


@runtime_checkable
class VpcClient(Protocol):
    """Subset of the VPC API used for networks, load balancers and VM instances."""

    async def list_vpcs(self, *, start: str | None, limit: int) -> Page:
        ...

    async def get_vpc(self, vpc_id: str) -> Record:
        ...

    async def list_subnets(self, *, resource_group_id: str, start: str | None, limit: int) -> Page:
        ...

    async def get_vpc_default_security_group(self, vpc_id: str) -> Record:
        ...

    async def list_load_balancers(self) -> list[Record]:
        ...

    async def get_load_balancer(self, load_balancer_id: str) -> Record:
        ...

    async def list_load_balancer_pools(self, load_balancer_id: str) -> list[Record]:
        ...

    async def list_load_balancer_pool_members(
        self,
        load_balancer_id: str,
        pool_id: str,
    ) -> list[Record]:
        ...

    async def list_instances(
        self,
        *,
        resource_group_id: str,
        start: str | None,
        limit: int,
    ) -> Page:
        ...

    async def get_instance(self, instance_id: str) -> Record:
        ...


@runtime_checkable
class ResourceControllerClient(Protocol):
    """Resource controller listing used for service instances and object storage."""

    async def list_resource_instances(
        self,
        *,
        start: str | None,
        limit: int,
        resource_group_id: str | None = None,
        resource_id: str | None = None,
        type: str | None = None,
    ) -> Page:
        ...

    async def get_resource_instance(self, instance_id: str) -> Record:
        ...


@runtime_checkable
class ResourceManagerClient(Protocol):
    """Resource group lookup."""

    async def list_resource_groups(self) -> list[Record]:
        ...


@runtime_checkable
class TransitGatewayClient(Protocol):
    async def list_transit_gateways(self, *, start: str | None, limit: int) -> Page:
        ...

    async def get_transit_gateway(self, transit_gateway_id: str) -> Record:
        ...

    async def list_connections(self, *, start: str | None, limit: int) -> Page:
        ...


@runtime_checkable
class GlobalSearchClient(Protocol):
    """Indexed tag search. ``next_start`` carries the opaque search cursor."""

    async def search(self, *, query: str, limit: int, cursor: str | None) -> Page:
        ...


@runtime_checkable
class PowerIaasClient(Protocol):
    """Workspace-scoped Power IaaS API of one compute service instance.

    Records keep the API field names: instances carry ``pvmInstanceID``,
    ``serverName``, ``status`` and ``health``; DHCP servers ``id`` and
    ``network``; images ``imageID``, ``name`` and ``state``; networks
    ``networkID`` and ``name``; network ports an optional ``pvmInstance``.
    """

    async def list_instances(self) -> list[Record]:
        ...

    async def get_instance(self, instance_id: str) -> Record:
        ...

    async def delete_instance(self, instance_id: str) -> None:
        ...

    async def list_dhcp_servers(self) -> list[Record]:
        ...

    async def delete_dhcp_server(self, dhcp_server_id: str) -> None:
        ...

    async def list_images(self) -> list[Record]:
        ...

    async def delete_image(self, image_id: str) -> None:
        ...

    async def list_ssh_keys(self) -> list[Record]:
        ...

    async def list_networks(self) -> list[Record]:
        ...

    async def list_network_ports(self, network_id: str) -> list[Record]:
        ...

    async def delete_network(self, network_id: str) -> None:
        ...


class PowerIaasClientFactory(Protocol):
    def __call__(self, *, service_instance_id: str, zone: str) -> PowerIaasClient:
        ...


@runtime_checkable
class DnsRecordsClient(Protocol):
    """DNS records of the cluster's base domain zone, paged by page number."""

    async def list_dns_records(self, *, page: int, per_page: int) -> Page:
        ...


@runtime_checkable
class ObjectStorageClient(Protocol):
    """S3-compatible view of one object storage instance."""

    async def bucket_exists(self, bucket: str) -> bool:
        ...

    async def list_objects(self, bucket: str) -> list[Record]:
        ...


class ObjectStorageClientFactory(Protocol):
    def __call__(self, *, service_instance_id: str) -> ObjectStorageClient:
        ...


@dataclass(slots=True)
class ProviderClients:
    """Authenticated clients shared read-only for one run.

    A client left as ``None`` makes every check that needs it fail with a
    reportable message instead of aborting the run.
    """

    vpc: VpcClient | None = None
    resource_controller: ResourceControllerClient | None = None
    resource_manager: ResourceManagerClient | None = None
    transit_gateway: TransitGatewayClient | None = None
    global_search: GlobalSearchClient | None = None
    dns_records: DnsRecordsClient | None = None
    power_iaas_factory: PowerIaasClientFactory | None = None
    object_storage_factory: ObjectStorageClientFactory | None = None
