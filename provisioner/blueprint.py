"""Descriptor sets: the built-in sample deployment and YAML blueprints.

The sample provisions a resource group holding a storage account, a virtual
network, a public IP address, a network interface and an Ubuntu virtual
machine whose OS disk lives in the storage account.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .exceptions import ValidationError
from .models.descriptor import ResourceDescriptor, ResourceKind

logger = logging.getLogger(__name__)

DEFAULT_SSH_KEY_PATH = Path.home() / ".ssh" / "id_rsa.pub"

PUBLIC_IMAGE = {"publisher": "canonical", "offer": "UbuntuServer", "sku": "16.04.0-LTS", "version": "latest"}
STACK_IMAGE = {"publisher": "Canonical", "offer": "UbuntuServer", "sku": "16.04-LTS", "version": "16.04.201801260"}


@dataclass
class SampleNames:
    """Names used by the sample deployment.

    Attributes:
        group: Resource group name
        storage: Storage account name
        vnet: Virtual network name
        subnet: Subnet name inside the virtual network
        public_ip: Public IP address name
        nic: Network interface name
        vm: Virtual machine resource name
        computer_name: Guest OS host name
        dns_label: DNS label on the public IP address
    """

    group: str
    storage: str
    vnet: str
    subnet: str
    public_ip: str
    nic: str
    vm: str
    computer_name: str
    dns_label: str

    @classmethod
    def for_vm(cls, group_name: str, vm_name: str, suffix: Optional[int] = None) -> "SampleNames":
        """Derive every resource name from the group and VM name."""
        if suffix is None:
            suffix = random.randint(0, 999)
        return cls(
            group=group_name,
            storage=f"azprovstor{suffix}",
            vnet="sample-vnet",
            subnet="sample-subnet",
            public_ip="sample-pubip",
            nic=f"sample-nic-{vm_name}",
            vm=f"sample-vm-{vm_name}",
            computer_name=vm_name,
            dns_label=f"sample-dns-{suffix}",
        )


@dataclass
class SampleOptions:
    """Options shaping the sample deployment.

    Attributes:
        location: Region for every resource
        vm_name: Short VM name used in derived names
        admin_username: Guest OS admin user
        admin_password: Guest OS admin password (generated when empty)
        vm_size: Virtual machine size
        sovereign: Target Azure Stack or another sovereign cloud
        ssh_key_path: Public key installed when the file exists
        suffix: Numeric suffix for globally unique names (random when None)
        tags: Tags applied to every resource
    """

    location: str = "westus"
    vm_name: str = "firstvm"
    admin_username: str = "notAdmin"
    admin_password: str = ""
    vm_size: str = "Standard_DS2_v2"
    sovereign: bool = False
    ssh_key_path: Optional[Path] = field(default_factory=lambda: DEFAULT_SSH_KEY_PATH)
    suffix: Optional[int] = None
    tags: Dict[str, str] = field(default_factory=dict)


def build_sample_descriptors(group_name: str, options: Optional[SampleOptions] = None) -> List[ResourceDescriptor]:
    """Build the sample descriptor set.

    Args:
        group_name: Resource group that owns every resource
        options: Sample options (default: public cloud, westus)

    Returns:
        Descriptor set (unordered; the workflow orders it)
    """
    options = options or SampleOptions()
    names = SampleNames.for_vm(group_name, options.vm_name, options.suffix)
    location = options.location
    tags = dict(options.tags)

    storage_properties: Dict[str, Any] = {"kind": "Storage"}
    if options.sovereign:
        # Azure Stack only supports standard storage and blob encryption settings are not accepted
        storage_properties["sku"] = {"name": "Standard_LRS"}
    else:
        storage_properties["sku"] = {"name": "Premium_LRS"}
        storage_properties["encryption"] = {
            "services": {"blob": {"enabled": False}},
            "key_source": "Microsoft.Storage",
        }

    password = options.admin_password or str(uuid.uuid4())
    os_profile: Dict[str, Any] = {
        "computer_name": names.computer_name,
        "admin_username": options.admin_username,
        "admin_password": password,
    }
    public_key = _read_public_key(options.ssh_key_path)
    if public_key:
        os_profile["linux_configuration"] = {
            "disable_password_authentication": True,
            "ssh": {
                "public_keys": [
                    {
                        "key_data": public_key,
                        "path": f"/home/{options.admin_username}/.ssh/authorized_keys",
                    }
                ]
            },
        }

    return [
        ResourceDescriptor(kind=ResourceKind.RESOURCE_GROUP, name=names.group, location=location, tags=tags),
        ResourceDescriptor(
            kind=ResourceKind.STORAGE_ACCOUNT,
            name=names.storage,
            location=location,
            properties=storage_properties,
            depends_on=frozenset({names.group}),
            tags=tags,
        ),
        ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_NETWORK,
            name=names.vnet,
            location=location,
            properties={
                "address_space": {"address_prefixes": ["10.0.0.0/16"]},
                "dhcp_options": {"dns_servers": ["8.8.8.8"]},
                "subnets": [{"name": names.subnet, "address_prefix": "10.0.0.0/24"}],
            },
            depends_on=frozenset({names.group}),
            tags=tags,
        ),
        ResourceDescriptor(
            kind=ResourceKind.PUBLIC_ADDRESS,
            name=names.public_ip,
            location=location,
            properties={
                "public_ip_allocation_method": "Dynamic",
                "dns_settings": {"domain_name_label": names.dns_label},
            },
            depends_on=frozenset({names.group}),
            tags=tags,
        ),
        ResourceDescriptor(
            kind=ResourceKind.NETWORK_INTERFACE,
            name=names.nic,
            location=location,
            properties={
                "ip_configurations": [
                    {
                        "name": names.nic,
                        "private_ip_allocation_method": "Dynamic",
                        "subnet": {"id": f"ref:{names.vnet}.subnets.0.id"},
                        "public_ip_address": {"id": f"ref:{names.public_ip}"},
                    }
                ]
            },
            depends_on=frozenset({names.vnet, names.public_ip}),
            tags=tags,
        ),
        ResourceDescriptor(
            kind=ResourceKind.VIRTUAL_MACHINE,
            name=names.vm,
            location=location,
            properties={
                "hardware_profile": {"vm_size": options.vm_size},
                "os_profile": os_profile,
                "storage_profile": {
                    "image_reference": dict(STACK_IMAGE if options.sovereign else PUBLIC_IMAGE),
                    "os_disk": {
                        "name": f"sample-os-disk-{options.vm_name}",
                        "caching": "None",
                        "create_option": "FromImage",
                        "vhd": {
                            "uri": f"{{ref:{names.storage}.primary_endpoints.blob}}vhds/{options.vm_name}.vhd"
                        },
                    },
                },
                "network_profile": {"network_interfaces": [{"id": f"ref:{names.nic}", "primary": True}]},
            },
            depends_on=frozenset({names.nic, names.storage}),
            tags=tags,
        ),
    ]


def load_blueprint(path: Union[str, Path], default_location: str = "westus") -> List[ResourceDescriptor]:
    """Load a descriptor set from a YAML blueprint.

    Blueprint format::

        location: westus
        resources:
          - kind: ResourceGroup
            name: my-group
          - kind: VirtualNetwork
            name: my-vnet
            depends_on: [my-group]
            properties:
              address_space: {address_prefixes: ["10.0.0.0/16"]}

    Args:
        path: Blueprint file path
        default_location: Location for resources that do not set one

    Raises:
        ValidationError: If the file is missing, malformed or describes invalid resources
    """
    blueprint_path = Path(path).expanduser()
    if not blueprint_path.exists():
        raise ValidationError(f"Blueprint not found: {blueprint_path}")

    try:
        with open(blueprint_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid blueprint YAML in {blueprint_path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("resources"), list):
        raise ValidationError(f"Blueprint {blueprint_path} must define a 'resources' list")

    location = data.get("location") or default_location
    descriptors = []
    for index, entry in enumerate(data["resources"]):
        if not isinstance(entry, dict):
            raise ValidationError(f"Blueprint resource #{index + 1} must be a mapping")
        descriptors.append(ResourceDescriptor.from_dict(entry, default_location=location))

    logger.info(f"Loaded {len(descriptors)} resource(s) from blueprint {blueprint_path}")
    return descriptors


def _read_public_key(path: Optional[Path]) -> Optional[str]:
    if path is None:
        return None
    key_path = Path(path).expanduser()
    if not key_path.is_file():
        return None
    logger.info(f"Found SSH public key in {key_path}, disabling password authentication")
    return key_path.read_text().strip()
