"""Shared fixtures for the powervs-check test suite."""

from __future__ import annotations

import logging

import pytest
from fakes import HealthyCluster, create_metadata, healthy_cluster

from powervs_check.metadata import ClusterMetadata
from powervs_check.observability.metrics import reset_metrics_recorder
from powervs_check.services import Services
from powervs_check.sinks import MemorySink


@pytest.fixture(autouse=True)
def _reset_metrics():
    yield
    reset_metrics_recorder()


@pytest.fixture()
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture()
def metadata() -> ClusterMetadata:
    return create_metadata()


@pytest.fixture()
def cluster() -> HealthyCluster:
    return healthy_cluster()


@pytest.fixture()
def services(metadata: ClusterMetadata, cluster: HealthyCluster, sink: MemorySink) -> Services:
    return Services(
        metadata=metadata,
        clients=cluster.clients(),
        sink=sink,
        logger=logging.getLogger("powervs_check.tests"),
    )
