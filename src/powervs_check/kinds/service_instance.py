"""Power Service Instance (compute workspace) checks and CI pre-flight sweep."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from powervs_check.discovery import Resolver
from powervs_check.errors import DiscoveryError
from powervs_check.kinds._evaluation import Evaluation
from powervs_check.model import ManagedResource, ResourceKind
from powervs_check.providers import PowerIaasClient, Record
from powervs_check.registry import SlotResult, resolve_resources
from powervs_check.services import require_client

if TYPE_CHECKING:
    from powervs_check.services import Services

KIND = ResourceKind.COMPUTE_SERVICE_INSTANCE
INSTANCE_TYPES = frozenset({"service_instance", "composite_instance"})
MASTER_COUNT = 3


def child_names(services: Services) -> dict[str, Any]:
    """Names of the objects the installer creates inside the workspace."""
    infra_id = services.metadata.infra_id
    return {
        "dhcp_name": f"DHCPSERVER{infra_id}",
        "rhcos_name": f"rhcos-{infra_id}",
        "ssh_key_name": f"{infra_id}-sshkey",
        "network_name": f"{infra_id}-network",
    }


def validate_instance(record: Record) -> None:
    instance_type = record.get("type")
    if instance_type is None:
        raise DiscoveryError(KIND.value, f"{KIND.label} has type nil for {record.get('id')}")
    if instance_type not in INSTANCE_TYPES:
        raise DiscoveryError(
            KIND.value, f"{KIND.label} has unknown type {instance_type} for {record.get('id')}"
        )
    if not record.get("guid"):
        raise DiscoveryError(KIND.value, f"{KIND.label} has guid nil for {record.get('id')}")


async def create(services: Services, resolver: Resolver) -> SlotResult:
    client = services.clients.resource_controller
    guid = services.metadata.service_instance_guid

    async def fetch(identifier: str) -> Record:
        return await require_client(client, "resource controller").get_resource_instance(identifier)

    return await resolve_resources(
        KIND,
        services,
        resolver,
        fetch,
        target=guid or None,
        not_found_by="with a guid of" if guid else "named",
        validate=validate_instance,
        extras=lambda: child_names(services),
    )


async def initialize(resource: ManagedResource, services: Services) -> None:
    """Bind the workspace-scoped Power IaaS client of a resolved instance."""
    if not resource.resolved:
        return
    factory = require_client(services.clients.power_iaas_factory, "Power IaaS")
    resource.extras["client"] = factory(
        service_instance_id=str(resource.handle_field("guid")),
        zone=services.metadata.zone,
    )


def _client(resource: ManagedResource) -> PowerIaasClient:
    client = resource.extras.get("client")
    if client is None:
        raise DiscoveryError(KIND.value, f"no Power IaaS client for {resource.name}")
    return client


async def _call(ev: Evaluation, operation: str, awaitable: Awaitable[Any]) -> Any:
    return await ev.services.call(KIND.value, operation, awaitable)


async def list_dhcp_servers(ev: Evaluation) -> list[Record]:
    """DHCP servers with a named network; entries missing one are skipped."""
    servers = await _call(ev, "list_dhcp_servers", _client(ev.resource).list_dhcp_servers())
    result: list[Record] = []
    for server in servers:
        if not server.get("id") or not (server.get("network") or {}).get("name"):
            ev.services.logger.debug("Skipping DHCP server without id or network: %s", server)
            continue
        result.append(server)
    return result


async def find_instances(ev: Evaluation, pattern: str) -> list[Record]:
    """Full records of every instance whose server name matches ``pattern``."""
    client = _client(ev.resource)
    expression = re.compile(pattern)
    references = await _call(ev, "list_instances", client.list_instances())
    matched: list[Record] = []
    for reference in references:
        name = str(reference.get("serverName") or "")
        if expression.search(name):
            instance_id = str(reference["pvmInstanceID"])
            matched.append(await _call(ev, "get_instance", client.get_instance(instance_id)))
    return matched


def _describe(instance: Record) -> str:
    health = (instance.get("health") or {}).get("status")
    return f"(status: {instance.get('status')}, health: {health})"


async def check(ev: Evaluation) -> None:
    resource = ev.resource
    extras = resource.extras

    state = resource.handle_field("state")
    if state != "active":
        ev.failed("state", f"The status is {state}")
        return
    ev.passed("state")

    if "initialize_error" in extras:
        error = extras["initialize_error"]
        ev.failed("client", f"Could not create the Power IaaS client ({error})")
        return

    try:
        servers = await list_dhcp_servers(ev)
    except Exception as exc:
        ev.failed("dhcp_server", f"returned this error searching for DHCP servers: {exc}")
    else:
        if any(extras["dhcp_name"] in server["network"]["name"] for server in servers):
            ev.passed("dhcp_server", "has a DHCP server.")
        else:
            ev.failed("dhcp_server", "Did not find a DHCP server.")
        if len(servers) > 1:
            ev.failed("dhcp_server_count", f"Found more than 1 DHCP server ({len(servers)}).")
        else:
            ev.passed("dhcp_server_count")

    try:
        images = await _call(ev, "list_images", _client(resource).list_images())
    except Exception as exc:
        ev.failed("rhcos_image", f"returned this error searching for images: {exc}")
    else:
        image = next((i for i in images if extras["rhcos_name"] in str(i.get("name", ""))), None)
        if image is None:
            ev.failed("rhcos_image", "does not have an RHCOS image.")
        elif image.get("state") == "active":
            ev.passed("rhcos_image", "has an active RHCOS image.")
        else:
            ev.failed("rhcos_image", f"does not have an active RHCOS image. ({image.get('state')})")

    try:
        keys = await _call(ev, "list_ssh_keys", _client(resource).list_ssh_keys())
    except Exception as exc:
        ev.failed("ssh_key", f"returned this error searching for ssh keys: {exc}")
    else:
        if any(extras["ssh_key_name"] in str(key.get("name", "")) for key in keys):
            ev.passed("ssh_key", "has an ssh key.")
        else:
            ev.failed("ssh_key", f"did not find the ssh key {extras['ssh_key_name']}")

    cluster = re.escape(ev.services.metadata.cluster_name)
    for index in range(MASTER_COUNT):
        check_name = f"master-{index}"
        try:
            masters = await find_instances(ev, f"{cluster}-.*-master-{index}")
        except Exception as exc:
            ev.failed(check_name, f"did not have a master-{index} instance got error: {exc}")
            continue
        if len(masters) != 1:
            ev.failed(check_name, f"did not have 1 master-{index} instance, found {len(masters)}.")
        elif masters[0].get("status") == "ACTIVE":
            ev.passed(
                check_name, f"found a healthy master-{index} instance {_describe(masters[0])}."
            )
        else:
            ev.failed(
                check_name, f"found an unhealthy master-{index} instance {_describe(masters[0])}."
            )

    try:
        workers = await find_instances(ev, f"{cluster}-.*-worker-")
    except Exception as exc:
        ev.failed("workers", f"did not have a worker instance got error: {exc}")
        return
    if not workers:
        ev.failed("workers", "did not find any worker instances.")
        return
    ev.passed("workers", f"found {len(workers)} worker instances.")
    for worker in workers:
        name = worker.get("serverName")
        if worker.get("status") == "ACTIVE":
            ev.info(f"found a healthy worker instance {name} {_describe(worker)}.")
        else:
            ev.failed("workers", f"found an unhealthy worker instance {name} {_describe(worker)}.")


async def _delete_each(
    ev: Evaluation,
    noun: str,
    identifiers: list[str],
    delete: Callable[[str], Awaitable[None]],
) -> None:
    operation = f"delete_{noun.replace(' ', '_')}"
    for identifier in identifiers:
        try:
            await ev.services.call(KIND.value, operation, delete(identifier))
        except Exception as exc:
            ev.info(f"returned this error deleting {noun} {identifier}: {exc}")


async def sweep(ev: Evaluation, clean: bool) -> None:
    """Report (and with ``clean`` delete) stray children left in a CI workspace."""
    resource = ev.resource
    if "initialize_error" in resource.extras:
        error = resource.extras["initialize_error"]
        ev.failed("client", f"Could not create the Power IaaS client ({error})")
        return
    client = _client(resource)

    try:
        instances = await _call(ev, "list_instances", client.list_instances())
    except Exception as exc:
        ev.failed("instances", f"returned this error searching for instances: {exc}")
    else:
        if instances:
            ev.failed("instances", f"Found {len(instances)} instances.")
            if clean:
                ids = [str(i["pvmInstanceID"]) for i in instances]
                await _delete_each(ev, "instance", ids, client.delete_instance)
        else:
            ev.passed("instances")

    try:
        servers = await list_dhcp_servers(ev)
    except Exception as exc:
        ev.failed("dhcp_servers", f"returned this error searching for DHCP servers: {exc}")
    else:
        if servers:
            names = [server["network"]["name"] for server in servers]
            ev.failed("dhcp_servers", f"Found {len(servers)} DHCP servers ({names}).")
            if clean:
                ids = [str(server["id"]) for server in servers]
                await _delete_each(ev, "DHCP server", ids, client.delete_dhcp_server)
        else:
            ev.passed("dhcp_servers")

    try:
        images = await _call(ev, "list_images", client.list_images())
    except Exception as exc:
        ev.failed("images", f"returned this error searching for images: {exc}")
    else:
        if images:
            names = [image.get("name") for image in images]
            ev.failed("images", f"Found {len(images)} images ({names}).")
            if clean:
                ids = [str(image["imageID"]) for image in images]
                await _delete_each(ev, "image", ids, client.delete_image)
        else:
            ev.passed("images")

    try:
        networks = await _call(ev, "list_networks", client.list_networks())
    except Exception as exc:
        ev.failed("networks", f"returned this error searching for networks: {exc}")
        return
    if not networks:
        ev.passed("networks")
        return

    names = [network.get("name") for network in networks]
    ev.failed("networks", f"Found {len(networks)} networks ({names})")
    for network in networks:
        await _sweep_network_ports(ev, client, network, clean)
    if clean:
        ids = [str(network["networkID"]) for network in networks]
        await _delete_each(ev, "network", ids, client.delete_network)


async def _sweep_network_ports(
    ev: Evaluation,
    client: PowerIaasClient,
    network: Record,
    clean: bool,
) -> None:
    network_id = str(network["networkID"])
    try:
        ports = await _call(ev, "list_network_ports", client.list_network_ports(network_id))
    except Exception as exc:
        ev.info(f"returned this error listing the ports of network {network_id}: {exc}")
        return

    ev.info(f"Network {network.get('name')} has {len(ports)} NetworkPorts")
    for port in ports:
        attached = port.get("pvmInstance")
        if not attached:
            continue
        instance_id = str(attached["pvmInstanceID"])
        server_name = instance_id
        try:
            instance = await _call(ev, "get_instance", client.get_instance(instance_id))
        except Exception as exc:
            ev.services.logger.debug("Could not look up instance %s: %s", instance_id, exc)
        else:
            server_name = str(instance.get("serverName") or instance_id)
        ev.info(f"Found a server instance ({server_name}) on the network")
        if clean:
            await _delete_each(ev, "instance", [instance_id], client.delete_instance)
