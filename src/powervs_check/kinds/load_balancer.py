"""Load balancer discovery into role slots and pool health checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from powervs_check.discovery import Resolver, load_balancer_role
from powervs_check.errors import ResourceNotFoundError, SetupError
from powervs_check.kinds._evaluation import Evaluation
from powervs_check.model import DiscoveryQuery, ManagedResource, ResourceKind
from powervs_check.providers import Record
from powervs_check.registry import SlotResult, placeholder
from powervs_check.services import require_client

if TYPE_CHECKING:
    from powervs_check.services import Services

KIND = ResourceKind.LOAD_BALANCER

# Slot order is fixed: internal, external, ingress.
ROLE_PLACEHOLDERS: dict[str, str] = {
    "internal": "(internal load balancer)",
    "external": "(external load balancer)",
    "ingress": "(kube load balancer)",
}


@dataclass(frozen=True, slots=True)
class PoolCheck:
    """Pool name fragments to look for and how the pool is called in messages."""

    fragments: tuple[str, ...]
    user_name: str


API_POOL = PoolCheck(("pool-6443",), "port 6443")
MACHINE_CONFIG_POOL = PoolCheck(
    ("machine-config-server", "additional-pool-22623"), "machine config server"
)
HTTP_POOL = PoolCheck(("tcp-80",), "port 80")
HTTPS_POOL = PoolCheck(("tcp-443",), "port 443")

POOLS_BY_ROLE: dict[str, tuple[PoolCheck, ...]] = {
    "internal": (API_POOL, MACHINE_CONFIG_POOL),
    "external": (API_POOL,),
    "ingress": (HTTP_POOL, HTTPS_POOL),
}


async def create(services: Services, resolver: Resolver) -> SlotResult:
    """Always three slots; a role nobody matched keeps its placeholder."""
    logger = services.logger.getChild("load_balancer")
    slots = {role: placeholder(KIND, name) for role, name in ROLE_PLACEHOLDERS.items()}
    for role, resource in slots.items():
        resource.extras["role"] = role
    errors: dict[str, Exception | None] = dict.fromkeys(slots)

    def result() -> SlotResult:
        return list(slots.values()), list(errors.values())

    try:
        target = services.metadata.target_name(KIND)
        vpc = require_client(services.clients.vpc, "VPC")
        identifiers = await resolver.discover(
            DiscoveryQuery(kind=KIND, target=target, strategy=services.strategy)
        )
    except Exception as exc:
        errors = dict.fromkeys(slots, exc)
        return result()

    for identifier in identifiers:
        try:
            record = await services.call(KIND.value, "get", vpc.get_load_balancer(identifier))
        except Exception as exc:
            logger.error("Could not get load balancer %s: %s", identifier, exc)
            continue

        name = str(record.get("name", ""))
        role = load_balancer_role(name)
        if role is None:
            logger.warning("Ignoring load balancer %s with an unknown role", name)
            continue
        slots[role] = ManagedResource(kind=KIND, name=name, handle=record, extras={"role": role})

    for role, resource in slots.items():
        if not resource.resolved and errors[role] is None:
            errors[role] = ResourceNotFoundError(KIND.label, f"{target} ({role})")
    return result()


async def initialize(resource: ManagedResource, services: Services) -> None:
    if resource.resolved:
        resource.name = resource.provider_name


async def check_pool(
    resource: ManagedResource, services: Services, pool: PoolCheck
) -> tuple[bool, str]:
    """Look for the first pool whose name contains a fragment and count healthy members.

    Returns the verdict and the message describing it.
    """
    if not resource.resolved:
        return False, f"could not find pool {pool.user_name}."

    vpc = require_client(services.clients.vpc, "VPC")
    deadline = services.deadline()
    balancer_id = str(resource.handle_field("id"))

    pools = await services.call(KIND.value, "list_pools", vpc.list_load_balancer_pools(balancer_id))
    found: Record | None = None
    for candidate in pools:
        deadline.check(KIND.value)
        name = str(candidate.get("name", ""))
        if any(fragment in name for fragment in pool.fragments):
            found = candidate
            break
    if found is None:
        return False, f"could not find pool {pool.user_name}."

    members = await services.call(
        KIND.value,
        "list_pool_members",
        vpc.list_load_balancer_pool_members(balancer_id, str(found["id"])),
    )
    deadline.check(KIND.value)
    healthy = sum(1 for member in members if member.get("health") == "ok")
    if healthy == 0:
        return False, f"did not find a healthy member of pool {pool.user_name}."
    return True, f"found {healthy} healthy members of pool {pool.user_name}."


async def check(ev: Evaluation) -> None:
    resource = ev.resource

    status = resource.handle_field("operating_status")
    if status != "online":
        ev.failed("operating_status", f"The status is {status}")
        return
    ev.passed("operating_status")

    role = resource.extras.get("role")
    if role not in POOLS_BY_ROLE:
        raise SetupError(f"{resource.name} has no load balancer role")

    for pool in POOLS_BY_ROLE[role]:
        check_name = f"pool {pool.user_name}"
        try:
            ok, message = await check_pool(resource, ev.services, pool)
        except Exception as exc:
            ev.failed(check_name, f"could not get load balancer pool: {exc}")
            continue
        if ok:
            ev.passed(check_name, message)
        else:
            ev.failed(check_name, message)
