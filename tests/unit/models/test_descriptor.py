"""Unit tests for ResourceDescriptor model."""

from __future__ import annotations

import pytest

from provisioner.exceptions import CyclicDependencyError, ValidationError
from provisioner.models.descriptor import ResourceDescriptor, ResourceKind


class TestResourceKind:
    """Tests for ResourceKind parsing."""

    def test_parse_value(self):
        assert ResourceKind.parse("VirtualMachine") == ResourceKind.VIRTUAL_MACHINE

    def test_parse_member_name(self):
        assert ResourceKind.parse("PUBLIC_ADDRESS") == ResourceKind.PUBLIC_ADDRESS

    def test_parse_kind_passthrough(self):
        assert ResourceKind.parse(ResourceKind.STORAGE_ACCOUNT) == ResourceKind.STORAGE_ACCOUNT

    def test_parse_unknown(self):
        with pytest.raises(ValidationError, match="Unrecognized resource kind"):
            ResourceKind.parse("LoadBalancer")


class TestResourceDescriptor:
    """Tests for ResourceDescriptor validation and serialization."""

    def test_create_minimal(self):
        descriptor = ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name="my-group", location="westus")

        assert descriptor.name == "my-group"
        assert descriptor.properties == {}
        assert descriptor.depends_on == frozenset()
        assert descriptor.tags == {}

    def test_kind_string_is_normalized(self):
        descriptor = ResourceDescriptor(kind="StorageAccount", name="stor1", location="westus")

        assert descriptor.kind == ResourceKind.STORAGE_ACCOUNT

    def test_depends_on_list_becomes_frozenset(self):
        descriptor = ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_NETWORK, name="vnet", location="westus", depends_on=["g", "g"]
        )

        assert descriptor.depends_on == frozenset({"g"})

    def test_is_immutable(self):
        descriptor = ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name="g", location="westus")

        with pytest.raises(AttributeError):
            descriptor.name = "other"

    def test_property_bag_is_read_only(self):
        descriptor = ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_NETWORK,
            name="vnet",
            location="westus",
            properties={"address_space": {"address_prefixes": ["10.0.0.0/16"]}},
            tags={"env": "dev"},
        )

        with pytest.raises(TypeError):
            descriptor.properties["dhcp_options"] = {"dns_servers": ["10.0.0.4"]}
        with pytest.raises(TypeError):
            descriptor.properties["address_space"]["address_prefixes"] = ["0.0.0.0/0"]
        with pytest.raises(AttributeError):
            descriptor.properties["address_space"]["address_prefixes"].append("0.0.0.0/0")
        with pytest.raises(TypeError):
            descriptor.tags["env"] = "prod"

    def test_caller_changes_do_not_leak_in(self):
        properties = {"address_space": {"address_prefixes": ["10.0.0.0/16"]}}
        descriptor = ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_NETWORK, name="vnet", location="westus", properties=properties
        )

        properties["address_space"]["address_prefixes"].append("192.168.0.0/16")
        properties["subnets"] = {"not": "validated"}

        assert descriptor.properties["address_space"]["address_prefixes"] == ("10.0.0.0/16",)
        assert "subnets" not in descriptor.properties

    def test_to_dict_returns_plain_containers(self):
        descriptor = ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_NETWORK,
            name="vnet",
            location="westus",
            properties={"subnets": [{"name": "default"}]},
        )

        data = descriptor.to_dict()

        assert data["properties"] == {"subnets": [{"name": "default"}]}
        assert type(data["properties"]["subnets"]) is list
        assert type(data["properties"]["subnets"][0]) is dict

    @pytest.mark.parametrize(
        "field_name,value,message",
        [
            ("properties", ["a", "b"], "Properties of 'vnet' must be a mapping"),
            ("tags", "env=dev", "Tags of 'vnet' must be a mapping"),
            ("depends_on", "my-group", "depends_on of 'vnet' must be a list"),
            ("depends_on", 5, "depends_on of 'vnet' must be a list"),
            ("depends_on", ["g", 3], "non-string entry"),
        ],
    )
    def test_malformed_containers(self, field_name, value, message):
        with pytest.raises(ValidationError, match=message):
            ResourceDescriptor(
                kind=ResourceKind.VIRTUAL_NETWORK, name="vnet", location="westus", **{field_name: value}
            )

    @pytest.mark.parametrize("name", ["", "   ", "has space", "dotted.name", "-leading-dash", "x" * 91])
    def test_invalid_name(self, name):
        with pytest.raises(ValidationError):
            ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name=name, location="westus")

    def test_name_at_max_length(self):
        descriptor = ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name="x" * 90, location="westus")

        assert len(descriptor.name) == 90

    @pytest.mark.parametrize("location", ["", "West US", "west-us", "WESTUS"])
    def test_invalid_location(self, location):
        with pytest.raises(ValidationError, match="Invalid location"):
            ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name="g", location=location)

    def test_unknown_property_key_for_kind(self):
        with pytest.raises(ValidationError, match="Unknown properties for VirtualNetwork 'vnet': vm_size"):
            ResourceDescriptor(
                kind=ResourceKind.VIRTUAL_NETWORK,
                name="vnet",
                location="westus",
                properties={"vm_size": "Standard_DS2_v2"},
            )

    def test_unsupported_property_value(self):
        with pytest.raises(ValidationError, match="address_space.address_prefixes"):
            ResourceDescriptor(
                kind=ResourceKind.VIRTUAL_NETWORK,
                name="vnet",
                location="westus",
                properties={"address_space": {"address_prefixes": {"10.0.0.0/16"}}},
            )

    def test_nested_lists_and_mappings_are_accepted(self):
        descriptor = ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_NETWORK,
            name="vnet",
            location="westus",
            properties={
                "address_space": {"address_prefixes": ["10.0.0.0/16"]},
                "subnets": [{"name": "default", "address_prefix": "10.0.0.0/24"}],
                "enable_ddos_protection": False,
            },
        )

        assert descriptor.properties["subnets"][0]["name"] == "default"

    def test_non_string_tags(self):
        with pytest.raises(ValidationError, match="Tags"):
            ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name="g", location="westus", tags={"env": 1})

    def test_self_dependency_is_a_cycle(self):
        with pytest.raises(CyclicDependencyError) as exc_info:
            ResourceDescriptor(
                kind=ResourceKind.VIRTUAL_NETWORK, name="vnet", location="westus", depends_on={"vnet"}
            )

        assert exc_info.value.resources == ["vnet"]

    def test_equal_descriptors_hash_alike(self):
        first = ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name="g", location="westus")
        second = ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name="g", location="westus")

        assert first == second
        assert len({first, second}) == 1

    def test_references(self):
        descriptor = ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_MACHINE,
            name="vm",
            location="westus",
            properties={
                "network_profile": {"network_interfaces": [{"id": "ref:nic"}]},
                "storage_profile": {"os_disk": {"vhd": {"uri": "{ref:stor.primary_endpoints.blob}vhds/vm.vhd"}}},
            },
            depends_on={"nic", "stor"},
        )

        assert descriptor.references() == {"nic", "stor"}

    def test_references_ignores_plain_strings(self):
        descriptor = ResourceDescriptor(
            kind=ResourceKind.PUBLIC_ADDRESS,
            name="pip",
            location="westus",
            properties={"public_ip_allocation_method": "Dynamic", "dns_settings": {"domain_name_label": "refs"}},
        )

        assert descriptor.references() == set()

    def test_to_dict(self):
        descriptor = ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_NETWORK,
            name="vnet",
            location="westus",
            depends_on={"g"},
            tags={"env": "test"},
        )

        assert descriptor.to_dict() == {
            "kind": "VirtualNetwork",
            "name": "vnet",
            "location": "westus",
            "properties": {},
            "depends_on": ["g"],
            "tags": {"env": "test"},
        }

    def test_from_dict(self):
        descriptor = ResourceDescriptor.from_dict(
            {"kind": "VirtualNetwork", "name": "vnet", "depends_on": ["g"]},
            default_location="eastus",
        )

        assert descriptor.kind == ResourceKind.VIRTUAL_NETWORK
        assert descriptor.location == "eastus"
        assert descriptor.depends_on == frozenset({"g"})

    def test_from_dict_round_trips_to_dict(self):
        original = ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name="g", location="westus")

        assert ResourceDescriptor.from_dict(original.to_dict()) == original

    def test_from_dict_missing_name(self):
        with pytest.raises(ValidationError, match="missing required key: name"):
            ResourceDescriptor.from_dict({"kind": "ResourceGroup"}, default_location="westus")
