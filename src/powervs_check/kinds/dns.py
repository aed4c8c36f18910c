"""DNS records of the cluster in the base domain zone."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from powervs_check.discovery import Resolver
from powervs_check.errors import ResourceNotFoundError
from powervs_check.kinds._evaluation import Evaluation
from powervs_check.model import DiscoveryQuery, DiscoveryStrategy, ManagedResource, ResourceKind
from powervs_check.registry import SlotResult, placeholder
from powervs_check.services import require_client

if TYPE_CHECKING:
    from powervs_check.services import Services

KIND = ResourceKind.DNS_ZONE
RECORDS_PER_PAGE = 20
EXPECTED_PREFIXES = ("api-int", "api", "*.apps")


async def create(services: Services, resolver: Resolver) -> SlotResult:
    """The zone is never listed; it resolves whenever a records client exists."""
    try:
        target = services.metadata.target_name(KIND)
        names = await resolver.discover(
            DiscoveryQuery(kind=KIND, target=target, strategy=DiscoveryStrategy.NAME_MATCH)
        )
    except Exception as exc:
        return [placeholder(KIND, "")], [exc]

    if not names:
        return [placeholder(KIND, target)], [ResourceNotFoundError(KIND.label, target)]
    if services.clients.dns_records is None:
        return [placeholder(KIND, target)], [ResourceNotFoundError(KIND.label, target)]

    handle = {"name": names[0], "crn": services.metadata.cis_instance_crn}
    return [ManagedResource(kind=KIND, name=names[0], handle=handle)], [None]


def record_matcher(cluster_name: str, base_domain: str) -> re.Pattern[str]:
    return re.compile(f".*{re.escape(f'{cluster_name}.{base_domain}')}$")


async def list_cluster_records(resource: ManagedResource, services: Services) -> list[str]:
    """Names of every record whose name or content ends in the cluster domain."""
    client = require_client(services.clients.dns_records, "DNS records")
    metadata = services.metadata
    matcher = record_matcher(metadata.cluster_name, metadata.base_domain)
    deadline = services.deadline()
    result: list[str] = []
    page_number = 1

    while True:
        deadline.check(KIND.value)
        page = await services.call(
            KIND.value,
            "list_dns_records",
            client.list_dns_records(page=page_number, per_page=RECORDS_PER_PAGE),
        )
        for record in page.items:
            name = str(record.get("name", ""))
            content = str(record.get("content", ""))
            if matcher.match(name) or matcher.match(content):
                services.logger.debug("Found DNS record %s (%s)", record.get("id"), name)
                result.append(name)
            else:
                services.logger.debug("Skipping DNS record %s", name)
        if len(page.items) != RECORDS_PER_PAGE:
            return result
        page_number += 1


async def check(ev: Evaluation) -> None:
    metadata = ev.services.metadata
    try:
        records = await list_cluster_records(ev.resource, ev.services)
    except Exception as exc:
        ev.failed("records", f"Could not list DNS records: {exc}")
        return

    if len(records) == len(EXPECTED_PREFIXES):
        ev.passed("records")
    else:
        ev.failed(
            "records",
            f"Expecting {len(EXPECTED_PREFIXES)} DNS records, found {len(records)} ({records})",
        )

    for prefix in EXPECTED_PREFIXES:
        name = f"{prefix}.{metadata.cluster_name}.{metadata.base_domain}"
        if name in records:
            ev.passed(f"record {name}")
        else:
            ev.failed(f"record {name}", f"Expecting DNS record {name} to exist")
