"""Cloud Object Storage instance and bootstrap ignition bucket checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from powervs_check.discovery import Resolver
from powervs_check.kinds._evaluation import Evaluation
from powervs_check.model import ManagedResource, ResourceKind
from powervs_check.providers import ObjectStorageClient, Record
from powervs_check.registry import SlotResult, resolve_resources
from powervs_check.services import require_client

if TYPE_CHECKING:
    from powervs_check.services import Services

KIND = ResourceKind.OBJECT_STORE
EXPECTED_IGNITION_KEYS = ("master-0", "master-1", "master-2")


def bootstrap_bucket(services: Services) -> str:
    return f"{services.metadata.infra_id}-bootstrap-ign"


async def create(services: Services, resolver: Resolver) -> SlotResult:
    client = services.clients.resource_controller

    async def fetch(identifier: str) -> Record:
        return await require_client(client, "resource controller").get_resource_instance(identifier)

    return await resolve_resources(
        KIND,
        services,
        resolver,
        fetch,
        extras=lambda: {"bucket": bootstrap_bucket(services)},
    )


async def initialize(resource: ManagedResource, services: Services) -> None:
    """Build the S3 client of a resolved instance."""
    if not resource.resolved:
        return
    factory = require_client(services.clients.object_storage_factory, "object storage")
    resource.extras["client"] = factory(service_instance_id=str(resource.handle_field("guid")))
    resource.name = resource.provider_name


async def examine_bucket(ev: Evaluation, client: ObjectStorageClient) -> None:
    """The bootstrap bucket must exist and hold one ignition file per master."""
    bucket = ev.resource.extras["bucket"]
    services = ev.services

    if not await services.call(KIND.value, "bucket_exists", client.bucket_exists(bucket)):
        ev.failed("bucket", f"bucket {bucket} not found!")
        return

    objects = await services.call(KIND.value, "list_objects", client.list_objects(bucket))
    seen = dict.fromkeys(EXPECTED_IGNITION_KEYS, False)
    for item in objects:
        key = str(item.get("key", ""))
        ev.emit(f"Found {key} (size {item.get('size', 0)}) in {bucket}")
        for expected in seen:
            if expected in key:
                seen[expected] = True

    services.logger.debug("Expected ignition objects in %s: %s", bucket, seen)
    if all(seen.values()):
        ev.passed("bucket")
    else:
        ev.failed("bucket", "Did not find all master ignition files")


async def check(ev: Evaluation) -> None:
    resource = ev.resource

    state = resource.handle_field("state")
    if state != "active":
        ev.failed("state", f"state is not active ({state})")
        return
    ev.passed("state")

    if "initialize_error" in resource.extras:
        error = resource.extras["initialize_error"]
        ev.failed("bucket", f"Could not create the object storage client ({error})")
        return

    try:
        await examine_bucket(ev, resource.extras["client"])
    except Exception as exc:
        ev.failed("bucket", str(exc))
