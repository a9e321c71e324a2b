"""Live resource model.

Provider-confirmed, materialized instance of a descriptor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .descriptor import ResourceKind


@dataclass(frozen=True)
class LiveResource:
    """Provider-returned handle for a created resource.

    Attributes:
        id: Provider-assigned identifier
        name: Resource name
        kind: Resource kind, None for provider-managed types (e.g. OS disks)
        resource_type: Provider type string (e.g. "Microsoft.Compute/virtualMachines")
        location: Region the resource lives in
        properties: Properties echoed back by the provider
    """

    id: str
    name: str
    kind: Optional[ResourceKind] = None
    resource_type: str = ""
    location: str = ""
    properties: Dict[str, Any] = field(default_factory=dict, compare=False)

    def lookup(self, path: str) -> Any:
        """Resolve a dotted path against this resource.

        "id", "name" and "location" resolve to the handle's own fields; any other
        path walks the echoed properties. Integer segments index into lists.

        Raises:
            KeyError: If the path does not exist
        """
        if path in ("id", "name", "location"):
            return getattr(self, path)

        value: Any = self.properties
        for segment in path.split("."):
            if isinstance(value, list):
                try:
                    value = value[int(segment)]
                except (ValueError, IndexError):
                    raise KeyError(f"{self.name}.{path}")
            elif isinstance(value, dict) and segment in value:
                value = value[segment]
            else:
                raise KeyError(f"{self.name}.{path}")
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Convert live resource to dictionary for display."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value if self.kind else None,
            "resource_type": self.resource_type,
            "location": self.location,
            "properties": self.properties,
        }
