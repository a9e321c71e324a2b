"""Provider client interface.

The workflow drives every side effect through this interface; concrete
clients wrap a cloud SDK and are supplied already authenticated.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..models.descriptor import ResourceDescriptor
from ..models.live_resource import LiveResource

ALL_RESOURCES = ("*",)


class ProviderClient(ABC):
    """Abstract base class for cloud provider clients.

    Every method blocks until the provider confirms completion. Failed remote
    calls raise ProviderError; calls exceeding the client's bound raise
    OperationTimeoutError.
    """

    @abstractmethod
    def create_or_update(self, group_name: str, resource_name: str, descriptor: ResourceDescriptor) -> LiveResource:
        """Create or update one resource.

        Args:
            group_name: Owning resource group
            resource_name: Resource name
            descriptor: Descriptor with all references already resolved

        Returns:
            Live resource handle reported by the provider
        """

    @abstractmethod
    def delete(self, group_name: str) -> None:
        """Delete a resource group and, by cascade, everything in it."""

    @abstractmethod
    def list_resources(self, group_name: str) -> List[LiveResource]:
        """List resources inside a resource group."""

    @abstractmethod
    def power_off(self, group_name: str, vm_name: str) -> None:
        """Power off a virtual machine."""

    @abstractmethod
    def start(self, group_name: str, vm_name: str) -> None:
        """Start a virtual machine."""

    @abstractmethod
    def restart(self, group_name: str, vm_name: str) -> None:
        """Restart a virtual machine."""

    @abstractmethod
    def export_template(self, group_name: str, resource_filter: Sequence[str] = ALL_RESOURCES) -> str:
        """Export the resource group's template as serialized text."""
