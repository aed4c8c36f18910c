"""Creation of managed resources per kind and the initialization pass."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Coroutine, Iterable
from typing import TYPE_CHECKING, Any

from powervs_check.discovery import Resolver
from powervs_check.errors import ResourceNotFoundError, SetupError
from powervs_check.model import DiscoveryQuery, ManagedResource, ResourceKind
from powervs_check.providers import Record
from powervs_check.scheduler import order

if TYPE_CHECKING:
    from powervs_check.services import Services

SlotResult = tuple[list[ManagedResource], list[Exception | None]]
ResourceFactory = Callable[["Services", Resolver], Coroutine[Any, Any, SlotResult]]

_RESOURCE_FACTORIES: dict[ResourceKind, ResourceFactory] = {}
_BUILTIN_FACTORIES_REGISTERED = False

# Kinds checked after cluster creation, in the order they are discovered.
CREATE_KINDS: tuple[ResourceKind, ...] = (
    ResourceKind.NETWORK,
    ResourceKind.OBJECT_STORE,
    ResourceKind.TRANSIT_GATEWAY,
    ResourceKind.LOAD_BALANCER,
    ResourceKind.COMPUTE_SERVICE_INSTANCE,
    ResourceKind.VM_INSTANCE,
    ResourceKind.DNS_ZONE,
)

# Kinds checked by the CI pre-flight sweep.
CI_KINDS: tuple[ResourceKind, ...] = (
    ResourceKind.NETWORK,
    ResourceKind.TRANSIT_GATEWAY,
    ResourceKind.COMPUTE_SERVICE_INSTANCE,
)


def register_factory(kind: ResourceKind, factory: ResourceFactory) -> None:
    """Register the async factory that builds managed resources of ``kind``."""
    _RESOURCE_FACTORIES[kind] = factory


def reset_resource_factories() -> None:
    """Drop every registered factory; built-ins register again on next use."""
    global _BUILTIN_FACTORIES_REGISTERED
    _RESOURCE_FACTORIES.clear()
    _BUILTIN_FACTORIES_REGISTERED = False


def _ensure_builtin_factories() -> None:
    """Register built-in kind factories once."""
    global _BUILTIN_FACTORIES_REGISTERED
    if _BUILTIN_FACTORIES_REGISTERED:
        return

    from powervs_check.kinds import (
        dns,
        load_balancer,
        network,
        object_store,
        service_instance,
        transit_gateway,
        vm_instance,
    )

    builtins: dict[ResourceKind, ResourceFactory] = {
        ResourceKind.NETWORK: network.create,
        ResourceKind.TRANSIT_GATEWAY: transit_gateway.create,
        ResourceKind.COMPUTE_SERVICE_INSTANCE: service_instance.create,
        ResourceKind.VM_INSTANCE: vm_instance.create,
        ResourceKind.LOAD_BALANCER: load_balancer.create,
        ResourceKind.OBJECT_STORE: object_store.create,
        ResourceKind.DNS_ZONE: dns.create,
    }
    for kind, factory in builtins.items():
        _RESOURCE_FACTORIES.setdefault(kind, factory)
    _BUILTIN_FACTORIES_REGISTERED = True


def placeholder(kind: ResourceKind, name: str) -> ManagedResource:
    """An unresolved resource that still reports (as NOTOK) downstream."""
    return ManagedResource(kind=kind, name=name, handle=None)


async def resolve_resources(
    kind: ResourceKind,
    services: Services,
    resolver: Resolver,
    fetch: Callable[[str], Awaitable[Record]],
    *,
    target: str | None = None,
    not_found_by: str = "named",
    required: bool = True,
    validate: Callable[[Record], None] | None = None,
    extras: Callable[[], dict[str, Any]] | None = None,
) -> SlotResult:
    """Discover ``kind`` and fetch one provider record per identifier.

    Results are index aligned: every failure still yields a placeholder
    resource next to its error. A required kind with no match yields a single
    placeholder and a :class:`ResourceNotFoundError`.
    """
    try:
        name = target if target is not None else services.metadata.target_name(kind)
    except SetupError as exc:
        return [placeholder(kind, "")], [exc]

    if not name:
        return [], []

    def build(resource_name: str, handle: Record | None) -> ManagedResource:
        resource = ManagedResource(kind=kind, name=resource_name, handle=handle)
        if extras is not None:
            resource.extras.update(extras())
        return resource

    try:
        identifiers = await resolver.discover(
            DiscoveryQuery(kind=kind, target=name, strategy=services.strategy)
        )
    except Exception as exc:
        return [build(name, None)], [exc]

    if not identifiers:
        if not required:
            return [], []
        return [build(name, None)], [ResourceNotFoundError(kind.label, name, by=not_found_by)]

    resources: list[ManagedResource] = []
    errors: list[Exception | None] = []
    for identifier in identifiers:
        try:
            record = await services.call(kind.value, "get", fetch(identifier))
            if validate is not None:
                validate(record)
        except Exception as exc:
            resources.append(build(name, None))
            errors.append(exc)
            continue
        resources.append(build(str(record.get("name") or name), record))
        errors.append(None)
    return resources, errors


async def new_managed_resources(
    kind: ResourceKind,
    services: Services,
    *,
    resolver: Resolver | None = None,
) -> SlotResult:
    """Build the managed resources of ``kind`` with index-aligned error slots."""
    _ensure_builtin_factories()
    factory = _RESOURCE_FACTORIES.get(kind)
    if factory is None:
        raise SetupError(f"No factory registered for {kind.label}")
    return await factory(services, resolver or Resolver(services))


async def initialize_resources(
    kinds: Iterable[ResourceKind],
    services: Services,
    *,
    resolver: Resolver | None = None,
) -> list[ManagedResource]:
    """Create every requested kind, order by priority and initialize each resource.

    Slot errors are logged and skipped over; only setup faults propagate.
    """
    from powervs_check.status import initialize_resource

    logger = services.logger.getChild("registry")
    shared_resolver = resolver or Resolver(services)
    collected: list[ManagedResource] = []

    for kind in kinds:
        logger.info("Querying the %s...", kind.label)
        resources, errors = await new_managed_resources(kind, services, resolver=shared_resolver)
        for error in errors:
            if error is not None:
                logger.error("Could not create a %s object (%s)", kind.label, error)
        for resource in resources:
            logger.debug(
                "Appending %s %s (%s)", resource.object_name, resource.name, resource.identifier
            )
            collected.append(resource)

    ordered = order(collected)
    for resource in ordered:
        logger.info("Running the %s...", resource.object_name)
        await initialize_resource(resource, services)
    return ordered
