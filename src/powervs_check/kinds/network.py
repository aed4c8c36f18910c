"""Virtual Private Cloud discovery and readiness checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from powervs_check.discovery import Resolver, iter_pages
from powervs_check.kinds._evaluation import Evaluation
from powervs_check.model import ManagedResource, ResourceKind
from powervs_check.providers import Record, VpcClient
from powervs_check.registry import SlotResult, resolve_resources
from powervs_check.services import require_client

if TYPE_CHECKING:
    from powervs_check.services import Services

SUBNET_PAGE_SIZE = 64
MIN_SUBNETS = 3
WANTED_PORTS = frozenset({22, 443, 5000, 6443, 10258, 22623})


async def create(services: Services, resolver: Resolver) -> SlotResult:
    vpc = services.clients.vpc

    async def fetch(identifier: str) -> Record:
        return await require_client(vpc, "VPC").get_vpc(identifier)

    return await resolve_resources(ResourceKind.NETWORK, services, resolver, fetch)


async def list_subnets(resource: ManagedResource, services: Services) -> list[Record]:
    """Subnets of the resource group that belong to this VPC."""
    client: VpcClient = require_client(services.clients.vpc, "VPC")
    vpc_id = resource.handle_field("id")
    group_id = await services.resource_group_id()
    kind = resource.kind.value
    subnets: list[Record] = []

    async def fetch(start: str | None):
        return await services.call(
            kind,
            "list_subnets",
            client.list_subnets(resource_group_id=group_id, start=start, limit=SUBNET_PAGE_SIZE),
        )

    async for page in iter_pages(fetch, deadline=services.deadline(), kind=kind):
        for subnet in page.items:
            if (subnet.get("vpc") or {}).get("id") == vpc_id:
                subnets.append(subnet)
    return subnets


def uncovered_ports(rules: list[Record]) -> set[int]:
    """Wanted ports not opened by any TCP/UDP rule of the default security group."""
    remaining = set(WANTED_PORTS)
    for rule in rules:
        if rule.get("protocol") not in ("tcp", "udp"):
            continue
        low, high = rule.get("port_min"), rule.get("port_max")
        if isinstance(low, int) and isinstance(high, int):
            remaining.difference_update(range(low, high + 1))
    return remaining


async def check(ev: Evaluation) -> None:
    resource, services = ev.resource, ev.services

    health = resource.handle_field("health_state")
    if health == "ok":
        ev.passed("health_state")
    else:
        ev.failed("health_state", f"The health state is not ok but {health}")

    try:
        subnets = await list_subnets(resource, services)
    except Exception as exc:
        ev.failed("subnets", f"Received {exc} querying subnets")
    else:
        for subnet in subnets:
            name, status = subnet.get("name"), subnet.get("status")
            if status == "available":
                ev.passed("subnets", f"found subnet {name}")
            else:
                ev.failed("subnets", f"subnet {name} has status {status}")
        if len(subnets) < MIN_SUBNETS:
            ev.failed("subnets", f"expecting at least {MIN_SUBNETS} subnets, found {len(subnets)}")
        else:
            ev.passed("subnets")

    try:
        client = require_client(services.clients.vpc, "VPC")
        group = await services.call(
            resource.kind.value,
            "get_vpc_default_security_group",
            client.get_vpc_default_security_group(str(resource.handle_field("id"))),
        )
    except Exception as exc:
        ev.failed("security_group", f"Received {exc} querying the default security group")
    else:
        rules = list(group.get("rules") or [])
        ev.passed("security_group")
        services.logger.debug(
            "%s default security group has %d rules, ports without a rule: %s",
            ev.prefix,
            len(rules),
            sorted(uncovered_ports(rules)),
        )
