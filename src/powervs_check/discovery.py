"""Resolve logical resource names into provider identifiers.

Two interchangeable strategies exist. Name matching walks a provider listing
page by page and compares names, ids and CRNs against the target. Tag search
issues one indexed query scoped by resource family/type and the cluster tag.
Both return identifiers in provider order and treat zero matches as an empty
result, never as an error.
"""

from __future__ import annotations

import re
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, assert_never

from powervs_check.errors import DeadlineExceededError, DiscoveryError
from powervs_check.model import DiscoveryQuery, DiscoveryStrategy, ResourceKind
from powervs_check.observability._observable import ObservableMixin
from powervs_check.providers import Page, Record

if TYPE_CHECKING:
    from powervs_check.observability.metrics import MetricsRecorder
    from powervs_check.services import Services

POWER_IAAS_RESOURCE_ID = "abd259f0-9990-11e8-acc8-b9f54a8f1661"

TAG_SEARCH_PAGE_SIZE = 100

# Page sizes of the name-matching listings.
VPC_PAGE_SIZE = 64
TRANSIT_GATEWAY_PAGE_SIZE = 32
SERVICE_INSTANCE_PAGE_SIZE = 10
OBJECT_STORE_PAGE_SIZE = 64
VM_INSTANCE_PAGE_SIZE = 64

_TAG_FILTERS: dict[ResourceKind, str] = {
    ResourceKind.NETWORK: "family:is AND type:vpc",
    ResourceKind.LOAD_BALANCER: "family:is AND type:load-balancer",
    ResourceKind.VM_INSTANCE: "family:is AND type:instance",
    ResourceKind.TRANSIT_GATEWAY: "family:resource_controller AND type:gateway",
    ResourceKind.COMPUTE_SERVICE_INSTANCE: (
        "family:resource_controller AND type:resource-instance"
        " AND crn:crn\\:v1\\:bluemix\\:public\\:power-iaas*"
    ),
    ResourceKind.OBJECT_STORE: (
        "family:resource_controller AND type:resource-instance"
        " AND crn:crn\\:v1\\:bluemix\\:public\\:cloud-object-storage*"
    ),
}


@dataclass(frozen=True, slots=True)
class Deadline:
    """Absolute point in monotonic time after which discovery gives up."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self, kind: str) -> None:
        if self.expired():
            raise DeadlineExceededError(kind, "deadline exceeded")


@dataclass(frozen=True, slots=True)
class CRN:
    """The ten colon separated segments of a cloud resource name."""

    version: str
    cname: str
    ctype: str
    service_name: str
    location: str
    scope: str
    service_instance: str
    resource_type: str
    resource: str

    @classmethod
    def parse(cls, value: str) -> CRN:
        parts = value.split(":", 9)
        if len(parts) != 10 or parts[0] != "crn":
            raise ValueError(f"not a CRN: {value!r}")
        return cls(*parts[1:])


def identifier_from_crn(value: str) -> str:
    """Resource segment of a CRN, or the whole CRN when that segment is empty."""
    parsed = CRN.parse(value)
    return parsed.resource or value


def tag_query(kind: ResourceKind, cluster_name: str) -> str:
    try:
        scope = _TAG_FILTERS[kind]
    except KeyError:
        raise DiscoveryError(kind.value, "tag search is not supported for this kind") from None
    return f"tags:{cluster_name} AND {scope}"


async def iter_pages(
    fetch: Callable[[str | None], Awaitable[Page]],
    *,
    deadline: Deadline,
    kind: str,
    max_pages: int | None = None,
) -> AsyncIterator[Page]:
    """Stream pages of a cursor-driven listing, re-checking ``deadline`` per page."""
    if max_pages is not None and max_pages <= 0:
        raise ValueError("max_pages must be > 0 when provided")

    start: str | None = None
    pages_seen = 0
    while True:
        deadline.check(kind)
        page = await fetch(start)
        pages_seen += 1
        yield page
        if not page.next_start:
            return
        if max_pages is not None and pages_seen >= max_pages:
            return
        start = page.next_start


def _matches(
    record: Record,
    target: str,
    *,
    substring_keys: tuple[str, ...],
    exact_keys: tuple[str, ...],
) -> bool:
    if not target:
        return False
    for key in substring_keys:
        value = record.get(key)
        if isinstance(value, str) and target in value:
            return True
    for key in exact_keys:
        if record.get(key) == target:
            return True
    return False


class Resolver(ObservableMixin):
    """Discovery entry point bound to one run's :class:`Services`."""

    _resource_name: ClassVar[str] = "discovery"

    def __init__(self, services: Services, *, metrics: MetricsRecorder | None = None) -> None:
        self._services = services
        self._logger = services.logger.getChild("discovery")
        self._metrics = metrics if metrics is not None else services.metrics

    async def discover(self, query: DiscoveryQuery) -> list[str]:
        """Return provider identifiers for ``query``; empty when nothing matched."""
        operation = f"discover_{query.kind.value}"
        try:
            with self._timed(operation):
                match query.strategy:
                    case DiscoveryStrategy.NAME_MATCH:
                        found = await self._name_match(query)
                    case DiscoveryStrategy.TAG_SEARCH:
                        found = await self._tag_search(query)
                    case _:
                        assert_never(query.strategy)
        except DiscoveryError:
            raise
        except Exception as exc:
            raise DiscoveryError(query.kind.value, str(exc)) from exc

        self._logger.debug("%s %s resolved to %s", query.kind.label, query.target, found)
        return found

    async def _tag_search(self, query: DiscoveryQuery) -> list[str]:
        services = self._services
        client = services.clients.global_search
        if client is None:
            raise DiscoveryError(query.kind.value, "no global search client is configured")

        search = tag_query(query.kind, services.metadata.cluster_name)
        self._logger.debug("Tag search query: %s", search)
        deadline = services.deadline()
        cursor = query.cursor
        result: list[str] = []

        while True:
            deadline.check(query.kind.value)
            page = await services.call(
                query.kind.value,
                "search",
                client.search(query=search, limit=TAG_SEARCH_PAGE_SIZE, cursor=cursor),
            )
            for item in page.items:
                crn = item.get("crn")
                try:
                    result.append(identifier_from_crn(str(crn)))
                except ValueError as exc:
                    raise DiscoveryError(query.kind.value, f"could not parse CRN {crn!r}") from exc

            if len(page.items) != TAG_SEARCH_PAGE_SIZE or not page.next_start:
                return result
            cursor = page.next_start

    async def _name_match(self, query: DiscoveryQuery) -> list[str]:
        match query.kind:
            case ResourceKind.NETWORK:
                return await self._find_vpcs(query)
            case ResourceKind.TRANSIT_GATEWAY:
                return await self._find_transit_gateway(query)
            case ResourceKind.COMPUTE_SERVICE_INSTANCE:
                return await self._find_service_instance(query)
            case ResourceKind.OBJECT_STORE:
                return await self._find_object_store(query)
            case ResourceKind.LOAD_BALANCER:
                return await self._find_load_balancers(query)
            case ResourceKind.VM_INSTANCE:
                return await self._find_vm_instances(query)
            case ResourceKind.DNS_ZONE:
                # The zone is addressed through the metadata CIS instance, not listed.
                return [query.target] if query.target else []
            case _:
                assert_never(query.kind)

    async def _walk(
        self,
        query: DiscoveryQuery,
        operation: str,
        fetch: Callable[[str | None], Awaitable[Page]],
        *,
        substring_keys: tuple[str, ...],
        exact_keys: tuple[str, ...],
        id_key: str,
        first_only: bool,
    ) -> list[str]:
        kind = query.kind.value
        deadline = self._services.deadline()
        found: list[str] = []
        seen: list[str] = []

        async def guarded(start: str | None) -> Page:
            return await self._services.call(kind, operation, fetch(start))

        async for page in iter_pages(guarded, deadline=deadline, kind=kind):
            for record in page.items:
                deadline.check(kind)
                if not _matches(
                    record, query.target, substring_keys=substring_keys, exact_keys=exact_keys
                ):
                    seen.append(str(record.get("name", "")))
                    continue
                found.append(str(record[id_key]))
                if first_only:
                    return found

        if not found:
            self._logger.debug(
                "No %s matched %s; candidates were %s", query.kind.label, query.target, seen
            )
        return found

    async def _find_vpcs(self, query: DiscoveryQuery) -> list[str]:
        client = self._services.clients.vpc
        if client is None:
            raise DiscoveryError(query.kind.value, "no VPC client is configured")
        return await self._walk(
            query,
            "list_vpcs",
            lambda start: client.list_vpcs(start=start, limit=VPC_PAGE_SIZE),
            substring_keys=("name",),
            exact_keys=("crn",),
            id_key="id",
            first_only=False,
        )

    async def _find_transit_gateway(self, query: DiscoveryQuery) -> list[str]:
        client = self._services.clients.transit_gateway
        if client is None:
            raise DiscoveryError(query.kind.value, "no transit gateway client is configured")
        return await self._walk(
            query,
            "list_transit_gateways",
            lambda start: client.list_transit_gateways(start=start, limit=TRANSIT_GATEWAY_PAGE_SIZE),
            substring_keys=("name",),
            exact_keys=("crn",),
            id_key="id",
            first_only=True,
        )

    async def _find_service_instance(self, query: DiscoveryQuery) -> list[str]:
        client = self._services.clients.resource_controller
        if client is None:
            raise DiscoveryError(query.kind.value, "no resource controller client is configured")
        resource_group_id = await self._services.resource_group_id()
        return await self._walk(
            query,
            "list_resource_instances",
            lambda start: client.list_resource_instances(
                start=start,
                limit=SERVICE_INSTANCE_PAGE_SIZE,
                resource_group_id=resource_group_id,
                resource_id=POWER_IAAS_RESOURCE_ID,
            ),
            substring_keys=("name",),
            exact_keys=("guid", "crn"),
            id_key="id",
            first_only=True,
        )

    async def _find_object_store(self, query: DiscoveryQuery) -> list[str]:
        client = self._services.clients.resource_controller
        if client is None:
            raise DiscoveryError(query.kind.value, "no resource controller client is configured")
        return await self._walk(
            query,
            "list_resource_instances",
            lambda start: client.list_resource_instances(
                start=start,
                limit=OBJECT_STORE_PAGE_SIZE,
                type="service_instance",
            ),
            substring_keys=(),
            exact_keys=("name",),
            id_key="guid",
            first_only=True,
        )

    async def _find_load_balancers(self, query: DiscoveryQuery) -> list[str]:
        client = self._services.clients.vpc
        if client is None:
            raise DiscoveryError(query.kind.value, "no VPC client is configured")
        kind = query.kind.value
        deadline = self._services.deadline()
        deadline.check(kind)
        records = await self._services.call(kind, "list_load_balancers", client.list_load_balancers())

        found: list[str] = []
        for record in records:
            deadline.check(kind)
            if _matches(record, query.target, substring_keys=("name",), exact_keys=()):
                found.append(str(record["id"]))

        if not found:
            self._logger.debug(
                "No %s matched %s; candidates were %s",
                query.kind.label,
                query.target,
                [record.get("name") for record in records],
            )
        return found

    async def _find_vm_instances(self, query: DiscoveryQuery) -> list[str]:
        client = self._services.clients.vpc
        if client is None:
            raise DiscoveryError(query.kind.value, "no VPC client is configured")
        resource_group_id = await self._services.resource_group_id()
        return await self._walk(
            query,
            "list_instances",
            lambda start: client.list_instances(
                resource_group_id=resource_group_id,
                start=start,
                limit=VM_INSTANCE_PAGE_SIZE,
            ),
            substring_keys=("name",),
            exact_keys=(),
            id_key="id",
            first_only=False,
        )


LOAD_BALANCER_ROLES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("internal", re.compile(r"loadbalancer-int$")),
    ("external", re.compile(r"loadbalancer$")),
    ("ingress", re.compile(r"^kube-")),
)


def load_balancer_role(name: str) -> str | None:
    """Classify a load balancer name; ``None`` when it belongs to no known role."""
    for role, pattern in LOAD_BALANCER_ROLES:
        if pattern.search(name):
            return role
    return None
