"""Tests for status document projection."""

from __future__ import annotations

import pytest
from fakes import cluster_document

from powervs_check.conditions import (
    decode_bool,
    extract_cluster,
    extract_cluster_operator,
    extract_conditions,
    extract_deployment,
    extract_machines,
    format_status,
    operator_conditions,
)
from powervs_check.errors import ExtractionError
from powervs_check.faults import FaultCollector
from powervs_check.model import ClusterOperatorStatus, Condition
from powervs_check.phases import CLUSTER_CONDITION_TYPES


def _machine(name: str, ready: object, addresses: list[dict[str, str]] | None = None) -> dict:
    status: dict = {"ready": ready}
    if addresses is not None:
        status["addresses"] = addresses
    return {"metadata": {"name": name}, "status": status}


def _operator(name: str, **conditions: str) -> dict:
    return {
        "metadata": {"name": name},
        "status": {
            "conditions": [{"type": kind, "status": value} for kind, value in conditions.items()]
        },
    }


class TestDecodeBool:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(True, True), (False, False), ("True", True), ("False", False)],
    )
    def test_accepted_values(self, value: object, expected: bool) -> None:
        assert decode_bool(value) is expected

    @pytest.mark.parametrize("value", ["true", "yes", "", 1, None])
    def test_other_values_fault(self, value: object) -> None:
        with pytest.raises(ExtractionError, match="Could not decode boolean value"):
            decode_bool(value)


class TestFormatStatus:
    def test_values(self) -> None:
        assert format_status("True", "AVAILABLE") == "AVAILABLE"
        assert format_status("False", "DEGRADED") == "NOT DEGRADED"
        assert format_status("", "PROGRESSING") == "(EMPTY) PROGRESSING"
        assert format_status("Unknown", "UPGRADEABLE") == "(ERROR Unknown) UPGRADEABLE"


class TestExtractCluster:
    def test_all_conditions_and_ready_flag(self) -> None:
        faults = FaultCollector()
        document = cluster_document(dict.fromkeys(CLUSTER_CONDITION_TYPES, "True"))

        result = extract_cluster(document, faults)

        assert not faults
        assert [c.type for c in result.conditions] == list(CLUSTER_CONDITION_TYPES)
        assert all(c.status for c in result.conditions)
        assert result.ready is True

    def test_native_and_string_booleans_mix(self) -> None:
        faults = FaultCollector()
        document = cluster_document({"VPCReady": True, "NetworkReady": "False"}, ready="False")

        result = extract_cluster(document, faults)

        assert not faults
        assert result.conditions == [
            Condition(type="VPCReady", status=True),
            Condition(type="NetworkReady", status=False),
        ]
        assert result.ready is False

    def test_bad_token_is_a_fault_and_reads_as_false(self) -> None:
        faults = FaultCollector()
        document = cluster_document({"VPCReady": "Yes", "NetworkReady": "True"})

        result = extract_cluster(document, faults)

        assert len(faults) == 1
        assert result.conditions[0] == Condition(type="VPCReady", status=False)
        assert result.conditions[1].status is True

    def test_empty_condition_entry_is_a_fault_and_kept(self) -> None:
        faults = FaultCollector()
        document = {"items": [{"status": {"conditions": [{"type": "A", "status": True}, {}], "ready": True}}]}

        result = extract_cluster(document, faults)

        assert len(faults) == 2
        assert result.conditions == [
            Condition(type="A", status=True),
            Condition(type="", status=False),
        ]
        assert "condition type is not a string: None" in str(faults.drain())

    def test_missing_conditions_is_a_fault(self) -> None:
        faults = FaultCollector()

        result = extract_cluster({"items": [{"status": {"ready": True}}]}, faults)

        assert result.conditions == []
        assert "'conditions' is not an array" in str(faults.drain())

    def test_requires_exactly_one_item(self) -> None:
        faults = FaultCollector()
        document = {"items": cluster_document({})["items"] * 2}

        result = extract_cluster(document, faults)

        assert result.conditions == []
        assert "expected exactly 1 item, found 2" in str(faults.drain())

    def test_missing_items_is_a_fault(self) -> None:
        faults = FaultCollector()
        extract_cluster({"kind": "List"}, faults)
        assert "'items' is not an array" in str(faults.drain())

    def test_extraction_is_deterministic(self) -> None:
        document = cluster_document(dict.fromkeys(CLUSTER_CONDITION_TYPES, "True"))
        first = extract_cluster(document, FaultCollector())
        second = extract_cluster(document, FaultCollector())
        assert first == second


class TestExtractConditions:
    def test_conditions_of_every_item_in_order(self) -> None:
        document = {
            "items": [
                {"status": {"conditions": [{"type": "ImageImported", "status": "True"}]}},
                {"status": {"conditions": [{"type": "Ready", "status": False}]}},
            ]
        }
        faults = FaultCollector()

        result = extract_conditions(document, faults)

        assert not faults
        assert result.conditions == [
            Condition(type="ImageImported", status=True),
            Condition(type="Ready", status=False),
        ]

    def test_item_without_conditions_is_not_a_fault(self) -> None:
        faults = FaultCollector()
        result = extract_conditions({"items": [{"status": {}}]}, faults)
        assert result.conditions == []
        assert not faults

    def test_item_without_status_is_a_fault(self) -> None:
        faults = FaultCollector()
        extract_conditions({"items": [{"metadata": {}}]}, faults)
        assert "'status' is not an object" in str(faults.drain())


class TestExtractMachines:
    def test_internal_ip_is_preferred(self) -> None:
        document = {
            "items": [
                _machine(
                    "rdr-master-0",
                    True,
                    [
                        {"type": "ExternalIP", "address": "150.1.1.1"},
                        {"type": "InternalIP", "address": "192.168.0.10"},
                    ],
                ),
                _machine("rdr-worker-0", "False", [{"type": "Hostname", "address": "worker-0"}]),
                _machine("rdr-worker-1", True),
            ]
        }
        faults = FaultCollector()

        result = extract_machines(document, faults)

        assert not faults
        assert [(c.name, c.status, c.address) for c in result.conditions] == [
            ("rdr-master-0", True, "192.168.0.10"),
            ("rdr-worker-0", False, "worker-0"),
            ("rdr-worker-1", True, ""),
        ]

    def test_missing_ready_flag_reads_as_not_ready(self) -> None:
        faults = FaultCollector()
        result = extract_machines({"items": [{"metadata": {"name": "m"}, "status": {}}]}, faults)
        assert result.conditions[0].status is False
        assert not faults


class TestOperators:
    def test_finds_named_operator(self) -> None:
        document = {
            "items": [
                _operator("authentication", Available="False"),
                _operator("network", Available="True", Degraded="False", Progressing="True"),
            ]
        }
        faults = FaultCollector()

        status = extract_cluster_operator(document, "network", faults)

        assert not faults
        assert status == ClusterOperatorStatus(
            available="True", degraded="False", progressing="True", upgradeable=""
        )
        assert status.is_available

    def test_missing_operator_is_a_fault(self) -> None:
        faults = FaultCollector()
        status = extract_cluster_operator({"items": []}, "network", faults)
        assert status == ClusterOperatorStatus()
        assert str(faults.drain()) == "Could not find cluster operator named network"

    def test_malformed_condition_is_a_fault(self) -> None:
        document = {"items": [{"metadata": {"name": "network"}, "status": {"conditions": [
            {"type": "Available", "status": True},
        ]}}]}
        faults = FaultCollector()

        extract_cluster_operator(document, "network", faults)

        assert "malformed condition" in str(faults.drain())

    def test_deployment(self) -> None:
        faults = FaultCollector()
        status = extract_deployment(
            {"status": {"conditions": [{"type": "Available", "status": "True"},
                                       {"type": "Progressing", "status": "True"}]}},
            faults,
        )
        assert not faults
        assert status.available == "True"
        assert status.progressing == "True"

    def test_operator_conditions(self) -> None:
        conditions = operator_conditions(ClusterOperatorStatus(available="True", degraded="False"))
        assert [(c.type, c.status) for c in conditions] == [
            ("Available", True),
            ("Degraded", False),
            ("Progressing", False),
            ("Upgradeable", False),
        ]
