"""Run-scoped context shared by discovery, checks and phase watching."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

from powervs_check.config.models import AppSettings
from powervs_check.discovery import Deadline
from powervs_check.errors import DeadlineExceededError, DiscoveryError, SetupError
from powervs_check.metadata import ClusterMetadata
from powervs_check.model import DiscoveryStrategy
from powervs_check.observability._observable import timed
from powervs_check.observability.metrics import MetricsRecorder, get_metrics_recorder
from powervs_check.providers import ProviderClients
from powervs_check.sinks import ConsoleSink, StatusSink

T = TypeVar("T")


@dataclass(slots=True)
class Services:
    """Metadata, provider clients and diagnostics handed to every component.

    Provider clients are created once per run and only read afterwards.
    """

    metadata: ClusterMetadata
    clients: ProviderClients = field(default_factory=ProviderClients)
    settings: AppSettings = field(default_factory=AppSettings)
    sink: StatusSink = field(default_factory=ConsoleSink)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("powervs_check"))
    metrics: MetricsRecorder | None = None
    _resource_group_id: str | None = field(default=None, init=False, repr=False)

    @property
    def call_timeout(self) -> float:
        return self.settings.discovery.call_timeout_seconds

    @property
    def strategy(self) -> DiscoveryStrategy:
        return self.settings.discovery.strategy

    def metrics_recorder(self) -> MetricsRecorder:
        return get_metrics_recorder() if self.metrics is None else self.metrics

    def deadline(self) -> Deadline:
        """Fresh deadline for one discovery or check operation."""
        return Deadline.after(self.call_timeout)

    def emit(self, element: str, text: str) -> None:
        self.sink.update(element, text)

    async def call(self, resource: str, operation: str, awaitable: Awaitable[T]) -> T:
        """Await one provider call under the per-call timeout and record metrics."""
        try:
            with timed(self.metrics_recorder(), resource, operation):
                async with asyncio.timeout(self.call_timeout):
                    return await awaitable
        except TimeoutError as exc:
            raise DeadlineExceededError(
                resource, f"{operation} did not finish within {self.call_timeout:g}s"
            ) from exc

    async def resource_group_id(self) -> str:
        """Resolve the metadata resource group name into its id (cached)."""
        if self._resource_group_id is not None:
            return self._resource_group_id

        name = self.metadata.resource_group
        manager = self.clients.resource_manager
        if manager is None:
            raise SetupError("No resource manager client is configured")

        groups = await self.call(
            "resource_group", "list_resource_groups", manager.list_resource_groups()
        )
        for group in groups:
            if group.get("name") == name:
                self._resource_group_id = str(group["id"])
                self.logger.debug("Resolved resource group %s to %s", name, self._resource_group_id)
                return self._resource_group_id

        raise DiscoveryError("resource_group", f"resource group name ({name}) not found")


def require_client(client: T | None, description: str) -> T:
    """Return ``client`` or raise ``SetupError`` naming the missing client."""
    if client is None:
        raise SetupError(f"No {description} client is configured")
    return client
