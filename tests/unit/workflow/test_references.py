"""Tests for reference checking and resolution."""

from __future__ import annotations

import pytest

from provisioner.exceptions import ValidationError
from provisioner.models.descriptor import ResourceKind
from provisioner.models.live_resource import LiveResource
from provisioner.workflow.references import check_references, lookup, resolve_descriptor, resolve_value
from tests.fixtures.descriptors import create_descriptor


@pytest.fixture
def live() -> dict:
    return {
        "vnet": LiveResource(
            id="vnet-id",
            name="vnet",
            kind=ResourceKind.VIRTUAL_NETWORK,
            properties={"subnets": [{"name": "default", "id": "subnet-id"}]},
        ),
        "stor": LiveResource(
            id="stor-id",
            name="stor",
            kind=ResourceKind.STORAGE_ACCOUNT,
            properties={"primary_endpoints": {"blob": "https://stor.blob.core.windows.net/"}},
        ),
    }


class TestLookup:
    """Tests for reference target lookup."""

    def test_bare_name_resolves_to_id(self, live):
        assert lookup("vnet", live) == "vnet-id"

    def test_path(self, live):
        assert lookup("vnet.subnets.0.id", live) == "subnet-id"

    def test_resource_not_created(self, live):
        with pytest.raises(ValidationError, match="has not been created"):
            lookup("nic", live)

    def test_attribute_not_found(self, live):
        with pytest.raises(ValidationError, match="'vnet.subnets.0.missing' not found"):
            lookup("vnet.subnets.0.missing", live)


class TestResolveValue:
    """Tests for reference substitution in property values."""

    def test_whole_string_reference(self, live):
        assert resolve_value("ref:stor", live) == "stor-id"

    def test_inline_reference(self, live):
        uri = resolve_value("{ref:stor.primary_endpoints.blob}vhds/vm.vhd", live)

        assert uri == "https://stor.blob.core.windows.net/vhds/vm.vhd"

    def test_whole_string_reference_keeps_type(self, live):
        assert resolve_value("ref:vnet.subnets", live) == [{"name": "default", "id": "subnet-id"}]

    def test_nested_structures(self, live):
        value = {"ip_configurations": [{"subnet": {"id": "ref:vnet.subnets.0.id"}, "primary": True}]}

        assert resolve_value(value, live) == {
            "ip_configurations": [{"subnet": {"id": "subnet-id"}, "primary": True}]
        }

    def test_plain_values_unchanged(self, live):
        assert resolve_value("Dynamic", live) == "Dynamic"
        assert resolve_value(4, live) == 4


class TestResolveDescriptor:
    """Tests for descriptor-level resolution."""

    def test_descriptor_without_references_is_returned_as_is(self, live):
        descriptor = create_descriptor("vnet2", depends_on=["vnet"])

        assert resolve_descriptor(descriptor, live) is descriptor

    def test_resolved_copy(self, live):
        descriptor = create_descriptor(
            "nic",
            kind=ResourceKind.NETWORK_INTERFACE,
            depends_on=["vnet"],
            properties={"ip_configurations": [{"name": "ipconfig", "subnet": {"id": "ref:vnet.subnets.0.id"}}]},
        )

        resolved = resolve_descriptor(descriptor, live)

        assert resolved.properties["ip_configurations"][0]["subnet"]["id"] == "subnet-id"
        assert descriptor.properties["ip_configurations"][0]["subnet"]["id"] == "ref:vnet.subnets.0.id"
        assert resolved.name == "nic"
        assert resolved.depends_on == descriptor.depends_on


class TestCheckReferences:
    """Tests for reference declaration checks."""

    def test_declared_reference_passes(self):
        descriptor = create_descriptor(
            "nic",
            kind=ResourceKind.NETWORK_INTERFACE,
            depends_on=["vnet"],
            properties={"ip_configurations": [{"subnet": {"id": "ref:vnet.subnets.0.id"}}]},
        )

        check_references([descriptor])

    def test_undeclared_reference_fails(self):
        descriptor = create_descriptor(
            "nic",
            kind=ResourceKind.NETWORK_INTERFACE,
            properties={"ip_configurations": [{"public_ip_address": {"id": "ref:pip"}}]},
        )

        with pytest.raises(ValidationError, match="references pip without declaring it in depends_on"):
            check_references([descriptor])
