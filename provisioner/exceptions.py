"""Error taxonomy for provisioning workflows.

Every error carries enough context (resource name, kind, phase) for the caller
to diagnose the failure without inspecting provider internals.
"""

from __future__ import annotations

from typing import Iterable, Optional


class ProvisioningError(Exception):
    """Base class for all provisioning errors."""


class ValidationError(ProvisioningError, ValueError):
    """Descriptor or descriptor set is invalid. Raised before any provider call."""


class CyclicDependencyError(ValidationError):
    """Dependency graph contains a cycle."""

    def __init__(self, resources: Iterable[str]) -> None:
        self.resources = sorted(resources)
        super().__init__(f"Circular dependency detected between resources: {', '.join(self.resources)}")


class UnknownDependencyError(ValidationError):
    """A descriptor depends on a name that is not part of the set."""

    def __init__(self, resource: str, missing: str) -> None:
        self.resource = resource
        self.missing = missing
        super().__init__(f"Resource '{resource}' depends on unknown resource '{missing}'")


class CredentialError(ProvisioningError):
    """Required credentials are missing or endpoint discovery failed."""


class ProviderError(ProvisioningError):
    """A remote provider call failed.

    Attributes:
        message: Provider error message
        status_code: HTTP status code reported by the provider (optional)
        error_code: Provider error code, e.g. "ResourceGroupNotFound" (optional)
        resource_name: Resource the call targeted (optional)
        kind: Resource kind value the call targeted (optional)
        phase: Workflow phase in which the call was made (optional)
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        resource_name: Optional[str] = None,
        kind: Optional[str] = None,
        phase: Optional[str] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.resource_name = resource_name
        self.kind = kind
        self.phase = phase
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.phase:
            parts.append(f"[{self.phase}]")
        if self.kind or self.resource_name:
            parts.append(f"{self.kind or 'resource'} '{self.resource_name or '?'}':")
        if self.status_code is not None or self.error_code:
            parts.append(f"{self.status_code if self.status_code is not None else '-'} {self.error_code or ''}".strip())
        parts.append(self.message)
        return " ".join(parts)

    def with_context(
        self,
        resource_name: Optional[str] = None,
        kind: Optional[str] = None,
        phase: Optional[str] = None,
    ) -> "ProviderError":
        """Return a copy of this error with missing context fields filled in."""
        return type(self)(
            self.message,
            status_code=self.status_code,
            error_code=self.error_code,
            resource_name=self.resource_name or resource_name,
            kind=self.kind or kind,
            phase=self.phase or phase,
        )


class InvalidStateError(ProvisioningError):
    """Operation attempted outside its valid workflow state."""

    def __init__(self, operation: str, state: str, allowed: Iterable[str] = ()) -> None:
        self.operation = operation
        self.state = state
        self.allowed = list(allowed)
        message = f"Cannot {operation} while workflow is {state}"
        if self.allowed:
            message += f" (allowed: {', '.join(self.allowed)})"
        super().__init__(message)


class OperationTimeoutError(ProviderError):
    """A long-running provider operation did not complete within its bound."""

    def __init__(
        self,
        operation: str,
        target: str,
        timeout: float,
        kind: Optional[str] = None,
        phase: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.target = target
        self.timeout = timeout
        super().__init__(
            f"{operation} did not complete within {timeout:g}s",
            resource_name=target,
            kind=kind,
            phase=phase,
        )

    def with_context(
        self,
        resource_name: Optional[str] = None,
        kind: Optional[str] = None,
        phase: Optional[str] = None,
    ) -> "OperationTimeoutError":
        return OperationTimeoutError(
            self.operation,
            self.target,
            self.timeout,
            kind=self.kind or kind,
            phase=self.phase or phase,
        )


class TeardownError(ProvisioningError):
    """Resource group deletion failed. The workflow stays in Deleting for a retry."""

    def __init__(self, group_name: str, cause: Exception) -> None:
        self.group_name = group_name
        self.cause = cause
        super().__init__(f"Failed to delete resource group '{group_name}': {cause}")


class WorkflowCancelledError(ProvisioningError):
    """The cancellation token was set between workflow steps."""

    def __init__(self, completed: int, remaining: int) -> None:
        self.completed = completed
        self.remaining = remaining
        super().__init__(f"Workflow cancelled after {completed} step(s), {remaining} step(s) not executed")
