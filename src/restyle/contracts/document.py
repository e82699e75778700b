"""Domain types for document content.

Host objects are loosely typed. The host adapter converts them into these
types immediately on retrieval; nothing past the adapter sees a raw mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

TEXT_NODE_TYPE = "TEXT"


def _freeze(mapping: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, slots=True)
class DocumentNode:
    """A content node that may reference a shared resource and bound values.

    Attributes:
        id: Host node id
        name: Human-readable label, used in failure records
        node_type: Host node type (e.g. "TEXT", "FRAME")
        resource_id: Id of the shared resource (style) applied to the node, if any
        bound_variables: Property name -> bound value id set directly on the node
    """

    id: str
    name: str
    node_type: str
    resource_id: str | None = None
    bound_variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "bound_variables", _freeze(self.bound_variables))

    @property
    def is_text(self) -> bool:
        return self.node_type == TEXT_NODE_TYPE

    def properties_bound_to(self, value_id: str, property_types: frozenset[str] | None = None) -> tuple[str, ...]:
        """Return the node properties directly bound to value_id, in sorted order."""
        return _matching_properties(self.bound_variables, value_id, property_types)


@dataclass(frozen=True, slots=True)
class SharedResource:
    """A named, reusable attribute bundle referenced by many nodes.

    Attributes:
        id: Host resource id
        name: Display name; clones derive their name from it
        resource_type: Host resource type (e.g. "TEXT", "PAINT")
        is_remote: True when owned by a library rather than this document
        bound_variables: Property name -> bound value id on the resource
    """

    id: str
    name: str
    resource_type: str
    is_remote: bool = False
    bound_variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "bound_variables", _freeze(self.bound_variables))

    def properties_bound_to(self, value_id: str, property_types: frozenset[str] | None = None) -> tuple[str, ...]:
        """Return the resource properties bound to value_id, in sorted order."""
        return _matching_properties(self.bound_variables, value_id, property_types)

    def rebound_variables(self, source_id: str, target_id: str, property_types: frozenset[str] | None = None) -> dict[str, str]:
        """Copy of bound_variables with every matching source binding pointed at target_id."""
        rewritten = set(self.properties_bound_to(source_id, property_types))
        return {prop: (target_id if prop in rewritten else value) for prop, value in self.bound_variables.items()}


@dataclass(frozen=True, slots=True)
class BoundValue:
    """An external value source (a variable) that properties can bind to."""

    id: str
    name: str


def _matching_properties(
    bound_variables: Mapping[str, str],
    value_id: str,
    property_types: frozenset[str] | None,
) -> tuple[str, ...]:
    return tuple(
        sorted(prop for prop, bound in bound_variables.items() if bound == value_id and (property_types is None or prop in property_types))
    )
