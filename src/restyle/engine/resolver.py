# src/restyle/engine/resolver.py
"""Per-node rebinding: direct style swaps and clone-and-rebind for shared resources.

A shared resource (style) is referenced by many nodes, some of which are
not part of the request. Rewriting it in place would silently change those
unrelated nodes, so a binding held through a shared resource is migrated by
cloning the resource ONCE per run and pointing the affected nodes at the clone.

Invariant: within one run a given shared resource is cloned at most once,
and every node that referenced it converges on the same clone.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass

from restyle.contracts import (
    DocumentNode,
    SharedResource,
    SourceReferenceNotFoundError,
    WrongNodeTypeError,
)
from restyle.core.logging import get_logger
from restyle.host.adapter import HostAdapter

logger = get_logger(__name__)


def resolve_clone_name(base_name: str, taken: set[str]) -> str:
    """Deterministic, collision-free name for a clone.

    "Heading/H1" -> "Heading/H1 (Copy)" -> "Heading/H1 (Copy 2)" -> ...
    The base name itself is skipped only when taken.
    """
    if base_name not in taken:
        return base_name
    candidate = f"{base_name} (Copy)"
    if candidate not in taken:
        return candidate
    counter = 2
    while f"{base_name} (Copy {counter})" in taken:
        counter += 1
    return f"{base_name} (Copy {counter})"


class ResolvedResourceMap:
    """Original shared-resource id -> replacement resource id, for ONE run.

    Created empty when processing starts, grows monotonically, and is
    discarded when the run terminates. Never share an instance between runs:
    a stale entry would rebind nodes to a clone from an unrelated operation.

    Also owns the per-resource locks that serialize cloning, and the set of
    clone names claimed in this run.
    """

    def __init__(self, existing_names: set[str] | None = None) -> None:
        self._replacements: dict[str, str] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._claimed_names: set[str] = set(existing_names or ())

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._replacements

    def __len__(self) -> int:
        return len(self._replacements)

    def __iter__(self) -> Iterator[str]:
        return iter(self._replacements)

    def get(self, resource_id: str) -> str | None:
        return self._replacements.get(resource_id)

    def record(self, resource_id: str, replacement_id: str) -> None:
        """Record the replacement for a resource.

        Raises:
            ValueError: If the resource already has a different replacement
        """
        existing = self._replacements.get(resource_id)
        if existing is not None and existing != replacement_id:
            raise ValueError(f"Resource '{resource_id}' already replaced by '{existing}', refusing '{replacement_id}'")
        self._replacements[resource_id] = replacement_id

    def lock_for(self, resource_id: str) -> asyncio.Lock:
        lock = self._locks.get(resource_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[resource_id] = lock
        return lock

    def claim_name(self, base_name: str) -> str:
        """Pick and reserve a clone name that collides with nothing local or claimed."""
        name = resolve_clone_name(base_name, self._claimed_names)
        self._claimed_names.add(name)
        return name

    def release_name(self, name: str) -> None:
        """Give back a name claimed for a clone that was never created."""
        self._claimed_names.discard(name)

    def as_dict(self) -> dict[str, str]:
        return dict(self._replacements)


@dataclass(frozen=True, slots=True)
class Resolution:
    """What happened to one node.

    ``migrated`` is the single authoritative per-node fact: a node counts as
    one update however many of its properties moved.

    Attributes:
        node_id: The node
        direct_properties: Node properties rebound directly to the target
        local_resource_id: Clone (or target style) the node now references, if it changed
        cloned: True if THIS resolution created the clone
    """

    node_id: str
    direct_properties: tuple[str, ...] = ()
    local_resource_id: str | None = None
    cloned: bool = False

    @property
    def migrated(self) -> bool:
        return bool(self.direct_properties) or self.local_resource_id is not None


class CloneAndRebindResolver:
    """Migrates a node's bindings from a source value to a target value.

    Only this class creates shared resources during a run.
    """

    def __init__(self, adapter: HostAdapter, resource_map: ResolvedResourceMap) -> None:
        self._adapter = adapter
        self._map = resource_map
        self._clones_created = 0

    @property
    def clones_created(self) -> int:
        return self._clones_created

    @property
    def resource_map(self) -> ResolvedResourceMap:
        return self._map

    async def resolve(
        self,
        node: DocumentNode,
        source_id: str,
        target_id: str,
        property_types: frozenset[str] | None = None,
    ) -> Resolution:
        """Rebind every reference to source_id reachable from node.

        1. Properties bound directly on the node are rebound in place.
        2. If the node's shared resource binds source_id, the node is
           pointed at that resource's per-run clone, creating it first on
           a cache miss.

        Raises:
            SourceReferenceNotFoundError: Neither the node nor its resource references source_id
        """
        direct = node.properties_bound_to(source_id, property_types)
        for prop in direct:
            await self._adapter.set_node_binding(node.id, prop, target_id)

        local_resource_id: str | None = None
        cloned = False
        if node.resource_id is not None:
            local_resource_id, cloned = await self._resolve_inherited(node, node.resource_id, source_id, target_id, property_types)

        resolution = Resolution(node_id=node.id, direct_properties=direct, local_resource_id=local_resource_id, cloned=cloned)
        if not resolution.migrated:
            raise SourceReferenceNotFoundError(node.id, source_id)
        return resolution

    async def _resolve_inherited(
        self,
        node: DocumentNode,
        resource_id: str,
        source_id: str,
        target_id: str,
        property_types: frozenset[str] | None,
    ) -> tuple[str | None, bool]:
        cached = self._map.get(resource_id)
        if cached is not None:
            await self._adapter.set_node_style(node.id, cached)
            return cached, False

        # Concurrent items in one batch may share the resource; only one may clone it
        async with self._map.lock_for(resource_id):
            cached = self._map.get(resource_id)
            cloned = False
            if cached is None:
                resource = await self._adapter.find_resource(resource_id)
                if resource is None or not resource.properties_bound_to(source_id, property_types):
                    return None, False
                clone = await self._clone(resource, source_id, target_id, property_types)
                self._map.record(resource_id, clone.id)
                cached = clone.id
                cloned = True

        await self._adapter.set_node_style(node.id, cached)
        return cached, cloned

    async def _clone(
        self,
        resource: SharedResource,
        source_id: str,
        target_id: str,
        property_types: frozenset[str] | None,
    ) -> SharedResource:
        name = self._map.claim_name(resource.name)
        bindings = resource.rebound_variables(source_id, target_id, property_types)
        try:
            clone = await self._adapter.clone_resource(resource, name=name, bound_variables=bindings)
        except Exception:
            # A retried clone must get the same name
            self._map.release_name(name)
            raise
        self._clones_created += 1
        logger.info(
            "shared_resource_cloned",
            source_resource=resource.id,
            clone_resource=clone.id,
            clone_name=clone.name,
            remote=resource.is_remote,
        )
        return clone


class StyleRebinder:
    """Direct style swap for style-class requests.

    The node must be a text node that currently references the source
    style; it is pointed at the target style. With preserve_overrides=False
    the node's own variable bindings are cleared so it fully takes on the
    target style.
    """

    def __init__(self, adapter: HostAdapter) -> None:
        self._adapter = adapter

    async def rebind(self, node: DocumentNode, source_id: str, target_id: str, *, preserve_overrides: bool = True) -> Resolution:
        """Swap the node's style.

        Raises:
            WrongNodeTypeError: The node cannot carry a text style
            SourceReferenceNotFoundError: The node does not reference source_id
        """
        if not node.is_text:
            raise WrongNodeTypeError(node.id, node.node_type)
        if node.resource_id != source_id:
            raise SourceReferenceNotFoundError(node.id, source_id)

        await self._adapter.set_node_style(node.id, target_id)

        cleared: tuple[str, ...] = ()
        if not preserve_overrides:
            cleared = tuple(sorted(node.bound_variables))
            for prop in cleared:
                await self._adapter.set_node_binding(node.id, prop, None)

        return Resolution(node_id=node.id, direct_properties=cleared, local_resource_id=target_id)
