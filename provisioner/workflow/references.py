"""Resolution of "ref:" property values against live resources.

A string value ``ref:<name>`` resolves to the id of the live resource called
``name``; ``ref:<name>.<path>`` resolves a dotted path into its echoed
properties (integer segments index lists). Inside longer strings a
``{ref:<name>.<path>}`` placeholder is replaced by the resolved text.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, Mapping

from ..exceptions import ValidationError
from ..models.descriptor import INLINE_REFERENCE_PATTERN, REFERENCE_PREFIX, ResourceDescriptor
from ..models.live_resource import LiveResource


def check_references(descriptors: Iterable[ResourceDescriptor]) -> None:
    """Ensure every referenced resource is a declared dependency.

    Raises:
        ValidationError: If a descriptor references a resource it does not depend on
    """
    for descriptor in descriptors:
        undeclared = sorted(descriptor.references() - descriptor.depends_on)
        if undeclared:
            raise ValidationError(
                f"Resource '{descriptor.name}' references {', '.join(undeclared)} "
                f"without declaring it in depends_on"
            )


def lookup(target: str, live: Mapping[str, LiveResource]) -> Any:
    """Resolve "name" or "name.path" against live resources."""
    name, _, path = target.partition(".")
    if name not in live:
        raise ValidationError(f"Referenced resource '{name}' has not been created")
    try:
        return live[name].lookup(path or "id")
    except KeyError:
        raise ValidationError(f"Referenced attribute '{target}' not found on live resource '{name}'")


def resolve_value(value: Any, live: Mapping[str, LiveResource]) -> Any:
    """Resolve references inside a single property value."""
    if isinstance(value, str):
        if value.startswith(REFERENCE_PREFIX):
            return lookup(value[len(REFERENCE_PREFIX):], live)
        return INLINE_REFERENCE_PATTERN.sub(lambda match: str(lookup(match.group(1), live)), value)
    if isinstance(value, Mapping):
        return {key: resolve_value(item, live) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_value(item, live) for item in value]
    return value


def resolve_descriptor(descriptor: ResourceDescriptor, live: Mapping[str, LiveResource]) -> ResourceDescriptor:
    """Return a copy of the descriptor with all references replaced by live values."""
    if not descriptor.references():
        return descriptor
    return replace(descriptor, properties=resolve_value(descriptor.properties, live))
