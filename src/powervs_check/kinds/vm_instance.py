"""Cloud VM instances of the cluster."""

from __future__ import annotations

from typing import TYPE_CHECKING

from powervs_check.discovery import Resolver
from powervs_check.kinds._evaluation import Evaluation
from powervs_check.model import ResourceKind
from powervs_check.providers import Record
from powervs_check.registry import SlotResult, resolve_resources
from powervs_check.services import require_client

if TYPE_CHECKING:
    from powervs_check.services import Services


async def create(services: Services, resolver: Resolver) -> SlotResult:
    client = services.clients.vpc

    async def fetch(identifier: str) -> Record:
        return await require_client(client, "VPC").get_instance(identifier)

    # A cluster without VM instances is valid.
    return await resolve_resources(
        ResourceKind.VM_INSTANCE, services, resolver, fetch, required=False
    )


async def check(ev: Evaluation) -> None:
    health = ev.resource.handle_field("health_state")
    if health == "ok":
        ev.passed("health_state")
    else:
        ev.failed("health_state", f"The health state is not ok but {health}")
