"""Azure provider client.

Maps resource kinds to Azure management SDK calls and waits on long-running
operations with an explicit timeout.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from azure.core.exceptions import AzureError, HttpResponseError, ResourceNotFoundError
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.storage import StorageManagementClient

from ..exceptions import OperationTimeoutError, ProviderError
from ..models.descriptor import ResourceDescriptor, ResourceKind, thaw
from ..models.live_resource import LiveResource
from .base import ALL_RESOURCES, ProviderClient
from .credentials import AzureSession

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 1800.0


class AzureProviderClient(ProviderClient):
    """Azure Resource Manager provider client.

    Handles creation of each supported resource kind through the matching
    management client, plus power operations, template export and resource
    group deletion.

    Attributes:
        session: Authenticated session (credential, subscription, endpoints)
        timeout: Seconds to wait for any long-running operation
    """

    # Creation method mapping: kind -> (client, operations group, method, long-running)
    CREATE_METHODS = {
        ResourceKind.RESOURCE_GROUP: ("resource", "resource_groups", "create_or_update", False),
        ResourceKind.STORAGE_ACCOUNT: ("storage", "storage_accounts", "begin_create", True),
        ResourceKind.VIRTUAL_NETWORK: ("network", "virtual_networks", "begin_create_or_update", True),
        ResourceKind.PUBLIC_ADDRESS: ("network", "public_ip_addresses", "begin_create_or_update", True),
        ResourceKind.NETWORK_INTERFACE: ("network", "network_interfaces", "begin_create_or_update", True),
        ResourceKind.VIRTUAL_MACHINE: ("compute", "virtual_machines", "begin_create_or_update", True),
    }

    # Provider type string -> kind, for resources listed back from a group
    TYPE_KINDS = {
        "microsoft.resources/resourcegroups": ResourceKind.RESOURCE_GROUP,
        "microsoft.storage/storageaccounts": ResourceKind.STORAGE_ACCOUNT,
        "microsoft.network/virtualnetworks": ResourceKind.VIRTUAL_NETWORK,
        "microsoft.network/publicipaddresses": ResourceKind.PUBLIC_ADDRESS,
        "microsoft.network/networkinterfaces": ResourceKind.NETWORK_INTERFACE,
        "microsoft.compute/virtualmachines": ResourceKind.VIRTUAL_MACHINE,
    }

    CLIENT_CLASSES = {
        "resource": ResourceManagementClient,
        "storage": StorageManagementClient,
        "network": NetworkManagementClient,
        "compute": ComputeManagementClient,
    }

    def __init__(self, session: AzureSession, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        """Initialize Azure provider client.

        Args:
            session: Authenticated session
            timeout: Seconds to wait for long-running operations (default: 1800)
        """
        self.session = session
        self.timeout = timeout
        self._clients: Dict[str, Any] = {}

    def _client(self, name: str) -> Any:
        """Lazy-load a management client."""
        if name not in self._clients:
            client_class = self.CLIENT_CLASSES[name]
            self._clients[name] = client_class(
                self.session.credential,
                self.session.subscription_id,
                **self.session.client_kwargs(),
            )
        return self._clients[name]

    def create_or_update(self, group_name: str, resource_name: str, descriptor: ResourceDescriptor) -> LiveResource:
        client_name, operations_name, method, long_running = self.CREATE_METHODS[descriptor.kind]
        operations = getattr(self._client(client_name), operations_name)
        parameters = self._build_parameters(descriptor)
        logger.debug(f"{operations_name}.{method}({group_name}, {resource_name}): {parameters}")

        try:
            if descriptor.kind == ResourceKind.RESOURCE_GROUP:
                result = getattr(operations, method)(resource_name, parameters)
            else:
                result = getattr(operations, method)(group_name, resource_name, parameters)
            if long_running:
                result = self._wait(result, method, resource_name, descriptor.kind.value, "apply")
        except AzureError as e:
            raise self._provider_error(e, resource_name, descriptor.kind.value, "apply") from e

        return self._to_live_resource(result, descriptor.kind, fallback_name=resource_name)

    def delete(self, group_name: str) -> None:
        try:
            poller = self._client("resource").resource_groups.begin_delete(group_name)
            self._wait(poller, "delete", group_name, ResourceKind.RESOURCE_GROUP.value, "teardown")
        except ResourceNotFoundError:
            logger.info(f"Resource group {group_name} already deleted")
            return
        except AzureError as e:
            raise self._provider_error(e, group_name, ResourceKind.RESOURCE_GROUP.value, "teardown") from e
        logger.info(f"Deleted resource group {group_name}")

    def list_resources(self, group_name: str) -> List[LiveResource]:
        try:
            items = list(self._client("resource").resources.list_by_resource_group(group_name))
        except AzureError as e:
            raise self._provider_error(e, group_name, ResourceKind.RESOURCE_GROUP.value, "list") from e

        resources = []
        for item in items:
            resource_type = getattr(item, "type", "") or ""
            resources.append(
                self._to_live_resource(item, self.TYPE_KINDS.get(resource_type.lower()), fallback_name="")
            )
        logger.debug(f"Listed {len(resources)} resources in {group_name}")
        return resources

    def power_off(self, group_name: str, vm_name: str) -> None:
        self._power_operation("begin_power_off", "stop", group_name, vm_name)

    def start(self, group_name: str, vm_name: str) -> None:
        self._power_operation("begin_start", "start", group_name, vm_name)

    def restart(self, group_name: str, vm_name: str) -> None:
        self._power_operation("begin_restart", "restart", group_name, vm_name)

    def export_template(self, group_name: str, resource_filter: Sequence[str] = ALL_RESOURCES) -> str:
        kind = ResourceKind.RESOURCE_GROUP.value
        try:
            poller = self._client("resource").resource_groups.begin_export_template(
                group_name, {"resources": list(resource_filter)}
            )
            result = self._wait(poller, "export_template", group_name, kind, "export")
        except AzureError as e:
            raise self._provider_error(e, group_name, kind, "export") from e

        error = getattr(result, "error", None)
        if error is not None:
            logger.warning(f"Template export for {group_name} reported: {getattr(error, 'message', error)}")

        template = getattr(result, "template", None)
        if isinstance(template, str):
            return template
        return json.dumps(template or {}, indent=2, sort_keys=True)

    def _power_operation(self, method: str, operation: str, group_name: str, vm_name: str) -> None:
        kind = ResourceKind.VIRTUAL_MACHINE.value
        try:
            poller = getattr(self._client("compute").virtual_machines, method)(group_name, vm_name)
            self._wait(poller, method, vm_name, kind, operation)
        except AzureError as e:
            raise self._provider_error(e, vm_name, kind, operation) from e
        logger.info(f"Virtual machine {vm_name}: {operation} completed")

    def _wait(self, poller: Any, operation: str, target: str, kind: str, phase: str) -> Any:
        """Block on a long-running operation for at most self.timeout seconds.

        Raises:
            OperationTimeoutError: If the operation has not finished in time
        """
        poller.wait(timeout=self.timeout)
        if not poller.done():
            logger.error(f"{operation} on {target} did not complete within {self.timeout}s")
            raise OperationTimeoutError(operation, target, self.timeout, kind=kind, phase=phase)
        return poller.result()

    def _build_parameters(self, descriptor: ResourceDescriptor) -> Dict[str, Any]:
        """Build the request body for a create call.

        Args:
            descriptor: Descriptor with references resolved

        Returns:
            Request body using SDK attribute names
        """
        parameters: Dict[str, Any] = {"location": descriptor.location}
        if descriptor.tags:
            parameters["tags"] = dict(descriptor.tags)
        parameters.update(thaw(descriptor.properties))
        return parameters

    def _to_live_resource(
        self, result: Any, kind: Optional[ResourceKind], fallback_name: str
    ) -> LiveResource:
        """Convert an SDK model into a LiveResource."""
        if hasattr(result, "as_dict"):
            properties = result.as_dict()
        elif isinstance(result, dict):
            properties = dict(result)
        else:
            properties = {}

        return LiveResource(
            id=getattr(result, "id", None) or properties.get("id", ""),
            name=getattr(result, "name", None) or properties.get("name") or fallback_name,
            kind=kind,
            resource_type=getattr(result, "type", None) or properties.get("type", ""),
            location=getattr(result, "location", None) or properties.get("location", ""),
            properties=properties,
        )

    def _provider_error(self, error: AzureError, resource_name: str, kind: str, phase: str) -> ProviderError:
        """Wrap an Azure SDK error with workflow context."""
        status_code = None
        error_code = None
        if isinstance(error, HttpResponseError):
            status_code = error.status_code
            error_code = getattr(error.error, "code", None) if error.error else None
        message = getattr(error, "message", None) or str(error)
        logger.debug(f"Azure error during {phase} of {resource_name}: {status_code} {error_code} {message}")
        return ProviderError(
            message,
            status_code=status_code,
            error_code=error_code,
            resource_name=resource_name,
            kind=kind,
            phase=phase,
        )
