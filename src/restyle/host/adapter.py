"""Typed adapter over a DocumentHost.

This is the trust boundary with the host: payloads are validated and
converted into DocumentNode / SharedResource / BoundValue here, and a
payload with the wrong shape raises HostContractError instead of leaking
a half-typed object into the engine.
"""

from __future__ import annotations

from collections.abc import Mapping

from restyle.contracts.document import BoundValue, DocumentNode, SharedResource
from restyle.contracts.errors import HostContractError, NodeNotFoundError
from restyle.core.logging import get_logger
from restyle.host.protocol import STYLE_PROPERTY, DocumentHost, HostPayload

logger = get_logger(__name__)


def _require_str(payload: HostPayload, key: str, kind: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise HostContractError(f"{kind} payload has no usable '{key}': {dict(payload)!r}")
    return value


def _bindings(payload: HostPayload, kind: str) -> dict[str, str]:
    raw = payload.get("bound_variables")
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise HostContractError(f"{kind} 'bound_variables' must be a mapping, got {type(raw).__name__}")
    bindings: dict[str, str] = {}
    for prop, value_id in raw.items():
        if not isinstance(prop, str) or not isinstance(value_id, str):
            raise HostContractError(f"{kind} binding {prop!r} -> {value_id!r} is not str -> str")
        bindings[prop] = value_id
    return bindings


def to_node(payload: HostPayload) -> DocumentNode:
    """Convert a host node payload into a DocumentNode."""
    style_id = payload.get(STYLE_PROPERTY)
    if style_id is not None and not isinstance(style_id, str):
        raise HostContractError(f"node '{STYLE_PROPERTY}' must be a string, got {type(style_id).__name__}")
    node_id = _require_str(payload, "id", "node")
    return DocumentNode(
        id=node_id,
        name=str(payload.get("name") or node_id),
        node_type=_require_str(payload, "type", "node"),
        resource_id=style_id or None,
        bound_variables=_bindings(payload, "node"),
    )


def to_resource(payload: HostPayload) -> SharedResource:
    """Convert a host resource payload into a SharedResource."""
    return SharedResource(
        id=_require_str(payload, "id", "resource"),
        name=_require_str(payload, "name", "resource"),
        resource_type=_require_str(payload, "type", "resource"),
        is_remote=bool(payload.get("remote", False)),
        bound_variables=_bindings(payload, "resource"),
    )


def to_bound_value(payload: HostPayload) -> BoundValue:
    """Convert a host value payload into a BoundValue."""
    value_id = _require_str(payload, "id", "value")
    return BoundValue(id=value_id, name=str(payload.get("name") or value_id))


class HostAdapter:
    """Domain-typed facade over a DocumentHost.

    Every engine component talks to the host through this class.
    """

    def __init__(self, host: DocumentHost) -> None:
        self._host = host

    @property
    def host(self) -> DocumentHost:
        return self._host

    async def get_node(self, node_id: str) -> DocumentNode:
        """Look up a node.

        Raises:
            NodeNotFoundError: If the id does not resolve
            HostContractError: If the payload is malformed
        """
        payload = await self._host.lookup_node(node_id)
        if payload is None:
            raise NodeNotFoundError(node_id)
        return to_node(payload)

    async def find_resource(self, resource_id: str) -> SharedResource | None:
        payload = await self._host.get_shared_resource(resource_id)
        return to_resource(payload) if payload is not None else None

    async def find_bound_value(self, value_id: str) -> BoundValue | None:
        payload = await self._host.get_bound_value(value_id)
        return to_bound_value(payload) if payload is not None else None

    async def local_resource_names(self) -> set[str]:
        return set(await self._host.list_local_resource_names())

    async def set_node_style(self, node_id: str, resource_id: str) -> None:
        await self._host.rebind_node(node_id, STYLE_PROPERTY, resource_id)

    async def set_node_binding(self, node_id: str, property_name: str, value_id: str | None) -> None:
        if property_name == STYLE_PROPERTY:
            raise HostContractError(f"'{STYLE_PROPERTY}' is reserved for style rebinding")
        await self._host.rebind_node(node_id, property_name, value_id)

    async def clone_resource(self, resource: SharedResource, *, name: str, bound_variables: Mapping[str, str]) -> SharedResource:
        """Clone a shared resource and return the typed clone.

        Raises:
            HostContractError: If the host hands back the original or a malformed payload
        """
        payload = await self._host.clone_resource(resource.id, name=name, bound_variables=dict(bound_variables))
        clone = to_resource(payload)
        if clone.id == resource.id:
            raise HostContractError(f"host clone of '{resource.id}' returned the original id")
        logger.debug("resource_cloned", source_resource=resource.id, clone_resource=clone.id, clone_name=clone.name)
        return clone

    async def create_snapshot(self, label: str) -> None:
        await self._host.create_snapshot(label)

