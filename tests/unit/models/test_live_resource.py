"""Unit tests for LiveResource model and workflow state enums."""

from __future__ import annotations

import pytest

from provisioner.models.descriptor import ResourceKind
from provisioner.models.live_resource import LiveResource
from provisioner.models.workflow_state import LifecycleOperation, WorkflowState


@pytest.fixture
def vnet() -> LiveResource:
    return LiveResource(
        id="/subscriptions/sub/resourceGroups/g/providers/Microsoft.Network/virtualNetworks/vnet",
        name="vnet",
        kind=ResourceKind.VIRTUAL_NETWORK,
        resource_type="Microsoft.Network/virtualNetworks",
        location="westus",
        properties={
            "address_space": {"address_prefixes": ["10.0.0.0/16"]},
            "subnets": [{"name": "default", "id": "subnet-id"}],
        },
    )


class TestLiveResourceLookup:
    """Tests for dotted path lookup."""

    def test_id(self, vnet):
        assert vnet.lookup("id") == vnet.id

    def test_location(self, vnet):
        assert vnet.lookup("location") == "westus"

    def test_nested_mapping(self, vnet):
        assert vnet.lookup("address_space.address_prefixes") == ["10.0.0.0/16"]

    def test_list_index(self, vnet):
        assert vnet.lookup("subnets.0.id") == "subnet-id"

    def test_missing_key(self, vnet):
        with pytest.raises(KeyError):
            vnet.lookup("dhcp_options.dns_servers")

    def test_index_out_of_range(self, vnet):
        with pytest.raises(KeyError):
            vnet.lookup("subnets.3.id")

    def test_non_integer_index(self, vnet):
        with pytest.raises(KeyError):
            vnet.lookup("subnets.first.id")

    def test_properties_ignored_in_equality(self, vnet):
        other = LiveResource(
            id=vnet.id,
            name=vnet.name,
            kind=vnet.kind,
            resource_type=vnet.resource_type,
            location=vnet.location,
        )

        assert other == vnet

    def test_to_dict(self, vnet):
        data = vnet.to_dict()

        assert data["kind"] == "VirtualNetwork"
        assert data["properties"]["subnets"][0]["name"] == "default"

    def test_to_dict_without_kind(self):
        disk = LiveResource(id="disk-id", name="osdisk", resource_type="Microsoft.Compute/disks")

        assert disk.to_dict()["kind"] is None


class TestLifecycleOperation:
    """Tests for lifecycle state rules."""

    def test_stop_requires_ready(self):
        assert LifecycleOperation.STOP.required_states == (WorkflowState.READY,)

    def test_start_allowed_from_stopped_or_ready(self):
        assert set(LifecycleOperation.START.required_states) == {WorkflowState.STOPPED, WorkflowState.READY}

    def test_restart_requires_ready(self):
        assert LifecycleOperation.RESTART.required_states == (WorkflowState.READY,)

    @pytest.mark.parametrize(
        "operation,transient,final",
        [
            (LifecycleOperation.STOP, WorkflowState.STOPPING, WorkflowState.STOPPED),
            (LifecycleOperation.START, WorkflowState.STARTING, WorkflowState.READY),
            (LifecycleOperation.RESTART, WorkflowState.RESTARTING, WorkflowState.READY),
        ],
    )
    def test_transitions(self, operation, transient, final):
        assert operation.transient_state == transient
        assert operation.final_state == final
