"""Boundary protocol for the host document-mutation API.

Hosts return loosely typed mappings; restyle only talks to them through
HostAdapter, which converts payloads into domain types on retrieval.

Payload shapes:
    node:      {"id", "name", "type", "style_id"?, "bound_variables"?: {prop: value_id}}
    resource:  {"id", "name", "type", "remote"?: bool, "bound_variables"?: {prop: value_id}}
    value:     {"id", "name"}

All methods are coroutines and may raise host-specific exceptions; those are
classified by message, never by type.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

HostPayload = Mapping[str, Any]

# Node property that carries the applied shared style
STYLE_PROPERTY = "style_id"


@runtime_checkable
class DocumentHost(Protocol):
    """Async document API a replacement run mutates."""

    async def lookup_node(self, node_id: str) -> HostPayload | None:
        """Return the node payload, or None when the id does not resolve."""
        ...

    async def get_shared_resource(self, resource_id: str) -> HostPayload | None:
        """Return the shared resource (style) payload, or None."""
        ...

    async def get_bound_value(self, value_id: str) -> HostPayload | None:
        """Return the bound value (variable) payload, or None."""
        ...

    async def list_local_resource_names(self) -> Iterable[str]:
        """Names of all locally owned shared resources, for clone naming."""
        ...

    async def rebind_node(self, node_id: str, property_name: str, resource_id: str | None) -> None:
        """Point a node property at resource_id (None unbinds it).

        ``STYLE_PROPERTY`` rebinds the node's shared style; any other
        property name rebinds a bound value.
        """
        ...

    async def clone_resource(self, resource_id: str, *, name: str, bound_variables: Mapping[str, str]) -> HostPayload:
        """Create a locally owned copy of a shared resource.

        Every property is copied verbatim except the name and the bound
        variables, which are replaced by the given values. The original is
        never modified. Returns the new resource payload.
        """
        ...

    async def create_snapshot(self, label: str) -> None:
        """Save a recoverable point in the host's version history."""
        ...
