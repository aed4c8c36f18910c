"""Transit gateway discovery and connection checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from powervs_check.discovery import TRANSIT_GATEWAY_PAGE_SIZE, Resolver, iter_pages
from powervs_check.kinds._evaluation import Evaluation
from powervs_check.model import ManagedResource, ResourceKind
from powervs_check.providers import Record
from powervs_check.registry import SlotResult, resolve_resources
from powervs_check.services import require_client

if TYPE_CHECKING:
    from powervs_check.services import Services

POWER_VIRTUAL_SERVER = "power_virtual_server"
VPC = "vpc"

POWER_VS_LABEL = ResourceKind.COMPUTE_SERVICE_INSTANCE.label


async def create(services: Services, resolver: Resolver) -> SlotResult:
    client = services.clients.transit_gateway

    async def fetch(identifier: str) -> Record:
        return await require_client(client, "transit gateway").get_transit_gateway(identifier)

    return await resolve_resources(ResourceKind.TRANSIT_GATEWAY, services, resolver, fetch)


async def count_connections(resource: ManagedResource, services: Services) -> tuple[int, int]:
    """Return ``(power_vs, vpc)`` connection counts attached to this gateway."""
    client = require_client(services.clients.transit_gateway, "transit gateway")
    gateway_id = resource.handle_field("id")
    kind = resource.kind.value
    power_vs_count = vpc_count = 0

    async def fetch(start: str | None):
        return await services.call(
            kind,
            "list_connections",
            client.list_connections(start=start, limit=TRANSIT_GATEWAY_PAGE_SIZE),
        )

    async for page in iter_pages(fetch, deadline=services.deadline(), kind=kind):
        for connection in page.items:
            if (connection.get("transit_gateway") or {}).get("id") != gateway_id:
                continue
            match connection.get("network_type"):
                case "power_virtual_server":
                    power_vs_count += 1
                case "vpc":
                    vpc_count += 1
    return power_vs_count, vpc_count


async def check(ev: Evaluation) -> None:
    resource, services = ev.resource, ev.services

    status = resource.handle_field("status")
    if status == "available":
        ev.passed("status")
    else:
        ev.failed("status", f"The status is {status}")

    try:
        power_vs_count, vpc_count = await count_connections(resource, services)
    except Exception as exc:
        ev.failed("connections", f"Received {exc} checking the connections")
        return

    if power_vs_count == 1:
        ev.passed("power_vs_connection", f"has a connection to a {POWER_VS_LABEL}")
    else:
        ev.failed(
            "power_vs_connection",
            f"expecting 1 connection to a {POWER_VS_LABEL}, found {power_vs_count}",
        )

    if vpc_count == 1:
        ev.passed("vpc_connection", f"has a connection to a {ResourceKind.NETWORK.label}")
    else:
        ev.failed(
            "vpc_connection",
            f"expecting 1 connection to a {ResourceKind.NETWORK.label}, found {vpc_count}",
        )
