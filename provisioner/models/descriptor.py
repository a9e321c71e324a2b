"""Resource descriptor model.

Declarative description of one cloud resource, independent of any live
provider state. Descriptors are immutable and validated at construction time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Union

from ..exceptions import CyclicDependencyError, ValidationError

PropertyValue = Union[str, int, float, bool, Dict[str, Any], List[Any]]

REFERENCE_PREFIX = "ref:"
# "{ref:name.path}" placeholders interpolated into larger strings
INLINE_REFERENCE_PATTERN = re.compile(r"\{ref:([^{}]+)\}")

NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_()-]*$")
LOCATION_PATTERN = re.compile(r"^[a-z][a-z0-9]*$")
MAX_NAME_LENGTH = 90


class ResourceKind(Enum):
    """Resource kinds the workflow knows how to provision."""

    RESOURCE_GROUP = "ResourceGroup"
    STORAGE_ACCOUNT = "StorageAccount"
    VIRTUAL_NETWORK = "VirtualNetwork"
    PUBLIC_ADDRESS = "PublicAddress"
    NETWORK_INTERFACE = "NetworkInterface"
    VIRTUAL_MACHINE = "VirtualMachine"

    @classmethod
    def parse(cls, value: Union[str, "ResourceKind"]) -> "ResourceKind":
        """Parse a kind from its value ("VirtualMachine") or member name ("VIRTUAL_MACHINE")."""
        if isinstance(value, ResourceKind):
            return value
        for kind in cls:
            if value in (kind.value, kind.name):
                return kind
        raise ValidationError(f"Unrecognized resource kind: {value!r}")


# Top-level property keys accepted per kind (Azure SDK attribute names).
KIND_PROPERTY_KEYS: Dict[ResourceKind, FrozenSet[str]] = {
    ResourceKind.RESOURCE_GROUP: frozenset({"managed_by"}),
    ResourceKind.STORAGE_ACCOUNT: frozenset(
        {
            "sku",
            "kind",
            "encryption",
            "access_tier",
            "enable_https_traffic_only",
            "minimum_tls_version",
            "allow_blob_public_access",
        }
    ),
    ResourceKind.VIRTUAL_NETWORK: frozenset(
        {"address_space", "dhcp_options", "subnets", "enable_ddos_protection"}
    ),
    ResourceKind.PUBLIC_ADDRESS: frozenset(
        {
            "public_ip_allocation_method",
            "public_ip_address_version",
            "dns_settings",
            "sku",
            "idle_timeout_in_minutes",
        }
    ),
    ResourceKind.NETWORK_INTERFACE: frozenset(
        {"ip_configurations", "network_security_group", "enable_accelerated_networking", "dns_settings"}
    ),
    ResourceKind.VIRTUAL_MACHINE: frozenset(
        {
            "hardware_profile",
            "storage_profile",
            "os_profile",
            "network_profile",
            "diagnostics_profile",
            "priority",
            "zones",
        }
    ),
}


def _check_value(value: Any, path: str) -> None:
    """Check that a property value belongs to the closed PropertyValue variant."""
    if isinstance(value, (str, bool, int, float)):
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValidationError(f"Property key at '{path}' must be a string, got {type(key).__name__}")
            _check_value(item, f"{path}.{key}")
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _check_value(item, f"{path}[{index}]")
        return
    raise ValidationError(f"Unsupported property value at '{path}': {type(value).__name__}")


def _freeze(value: Any) -> Any:
    """Read-only copy of a property value: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Plain dict/list copy of a frozen property value, for SDK calls and serialization."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def _check_containers(name: Any, properties: Any, depends_on: Any, tags: Any) -> None:
    if not isinstance(properties, Mapping):
        raise ValidationError(f"Properties of '{name}' must be a mapping, got {type(properties).__name__}")
    if not isinstance(tags, Mapping):
        raise ValidationError(f"Tags of '{name}' must be a mapping, got {type(tags).__name__}")
    if isinstance(depends_on, (str, bytes)) or not isinstance(depends_on, Iterable):
        raise ValidationError(
            f"depends_on of '{name}' must be a list of resource names, got {type(depends_on).__name__}"
        )
    for item in depends_on:
        if not isinstance(item, str):
            raise ValidationError(f"depends_on of '{name}' contains a non-string entry: {item!r}")


@dataclass(frozen=True)
class ResourceDescriptor:
    """Declarative description of one cloud resource.

    Validation rules:
        - name is non-empty, at most 90 characters, letters, digits, "_", "-",
          "(" and ")" only (no dots, they separate reference paths)
        - location is a lowercase region name (e.g. "westus", "local")
        - properties only use the keys known for the kind, with values drawn
          from str, int, float, bool, nested mappings and lists
        - a resource cannot depend on itself

    Attributes:
        kind: Resource kind
        name: Resource name, unique within a descriptor set
        location: Region the resource is created in
        properties: Kind-specific property bag
        depends_on: Names of resources that must exist before this one
        tags: Resource tags
    """

    kind: ResourceKind
    name: str
    location: str
    properties: Mapping[str, Any] = field(default_factory=dict)
    depends_on: FrozenSet[str] = field(default_factory=frozenset)
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_containers(self.name, self.properties, self.depends_on, self.tags)
        # Normalize inputs; frozen dataclasses need object.__setattr__
        object.__setattr__(self, "kind", ResourceKind.parse(self.kind))
        object.__setattr__(self, "depends_on", frozenset(self.depends_on))
        object.__setattr__(self, "properties", _freeze(self.properties))
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))
        self.validate()

    def __hash__(self) -> int:
        return hash((self.kind, self.name))

    def validate(self) -> bool:
        """Validate descriptor invariants.

        Returns:
            True if validation passes

        Raises:
            ValidationError: If any validation rule fails
        """
        if not self.name or not self.name.strip():
            raise ValidationError("Resource name must not be empty")
        if len(self.name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Resource name '{self.name}' exceeds {MAX_NAME_LENGTH} characters")
        if not NAME_PATTERN.match(self.name):
            raise ValidationError(f"Invalid resource name: {self.name!r}")

        if not isinstance(self.location, str) or not LOCATION_PATTERN.match(self.location):
            raise ValidationError(f"Invalid location for '{self.name}': {self.location!r}")

        allowed = KIND_PROPERTY_KEYS[self.kind]
        unknown = sorted(set(self.properties) - allowed)
        if unknown:
            raise ValidationError(
                f"Unknown properties for {self.kind.value} '{self.name}': {', '.join(unknown)}"
            )
        for key, value in self.properties.items():
            _check_value(value, key)

        for key, value in self.tags.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ValidationError(f"Tags on '{self.name}' must map strings to strings")

        if self.name in self.depends_on:
            raise CyclicDependencyError([self.name])

        return True

    def references(self) -> set[str]:
        """Names of resources referenced by "ref:" property values."""
        found: set[str] = set()

        def walk(value: Any) -> None:
            if isinstance(value, str):
                if value.startswith(REFERENCE_PREFIX):
                    found.add(value[len(REFERENCE_PREFIX):].split(".", 1)[0])
                for target in INLINE_REFERENCE_PATTERN.findall(value):
                    found.add(target.split(".", 1)[0])
            elif isinstance(value, Mapping):
                for item in value.values():
                    walk(item)
            elif isinstance(value, (list, tuple)):
                for item in value:
                    walk(item)

        walk(self.properties)
        return found

    def to_dict(self) -> Dict[str, Any]:
        """Convert descriptor to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "name": self.name,
            "location": self.location,
            "properties": thaw(self.properties),
            "depends_on": sorted(self.depends_on),
            "tags": dict(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_location: str = "") -> "ResourceDescriptor":
        """Create descriptor from dictionary.

        Args:
            data: Dictionary with kind, name and optional location, properties,
                depends_on and tags
            default_location: Location used when the dictionary has none

        Raises:
            ValidationError: If required keys are missing or values are invalid
        """
        for key in ("kind", "name"):
            if key not in data:
                raise ValidationError(f"Resource definition missing required key: {key}")
        return cls(
            kind=ResourceKind.parse(data["kind"]),
            name=str(data["name"]),
            location=data.get("location") or default_location,
            properties=data.get("properties") or {},
            depends_on=data.get("depends_on") or (),
            tags=data.get("tags") or {},
        )
