"""Terminal rendering of plans, live resources and exported templates."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping

from rich.console import Console
from rich.table import Table

from .models.descriptor import ResourceDescriptor
from .models.live_resource import LiveResource
from .models.workflow_state import WorkflowState

# Property keys whose values never reach the terminal
SECRET_KEYS = {"admin_password", "client_secret", "key_data"}

STATE_STYLES = {
    WorkflowState.READY: "green",
    WorkflowState.STOPPED: "yellow",
    WorkflowState.DELETED: "cyan",
    WorkflowState.FAILED: "red",
}


def mask_secrets(value: Any) -> Any:
    """Return a copy of value with secret-looking keys masked."""
    if isinstance(value, Mapping):
        return {
            key: ("********" if key in SECRET_KEYS and item else mask_secrets(item))
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [mask_secrets(item) for item in value]
    return value


class WorkflowReporter:
    """Render workflow data as Rich tables captured to strings."""

    def __init__(self, width: int = 120) -> None:
        self.width = width

    def format_plan(self, ordered: List[ResourceDescriptor], tiers: Dict[int, List[str]]) -> str:
        """Format the creation plan.

        Args:
            ordered: Descriptors in creation order
            tiers: Creation tier per resource name

        Returns:
            Formatted string for terminal display
        """
        tier_of = {name: tier for tier, names in tiers.items() for name in names}

        table = Table(title="Provisioning Plan")
        table.add_column("#", justify="right")
        table.add_column("Tier", justify="right")
        table.add_column("Kind", style="bold")
        table.add_column("Name")
        table.add_column("Location")
        table.add_column("Depends On")

        for index, descriptor in enumerate(ordered, start=1):
            table.add_row(
                str(index),
                str(tier_of.get(descriptor.name, "")),
                descriptor.kind.value,
                descriptor.name,
                descriptor.location,
                ", ".join(sorted(descriptor.depends_on)) or "-",
            )

        return self._render(table)

    def format_resources(self, resources: Iterable[LiveResource], title: str = "Live Resources") -> str:
        """Format live resources as a table."""
        resources = list(resources)
        if not resources:
            return "No resources found."

        table = Table(title=title)
        table.add_column("Name", style="bold")
        table.add_column("Kind")
        table.add_column("Type")
        table.add_column("Location")
        table.add_column("ID", overflow="fold")

        for resource in resources:
            table.add_row(
                resource.name,
                resource.kind.value if resource.kind else "-",
                resource.resource_type or "-",
                resource.location or "-",
                resource.id,
            )

        return self._render(table)

    def format_resource_detail(self, resource: LiveResource) -> str:
        """Format one live resource with its echoed properties, secrets masked."""
        details = mask_secrets(resource.to_dict())
        return json.dumps(details, indent=2, sort_keys=True, default=str)

    def format_state(self, state: WorkflowState) -> str:
        style = STATE_STYLES.get(state, "white")
        return f"[{style}]{state.value}[/{style}]"

    def _render(self, table: Table) -> str:
        console = Console(width=self.width)
        with console.capture() as capture:
            console.print(table)
        return capture.get()
