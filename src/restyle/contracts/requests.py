"""Mutation request contracts.

A request is created by the caller and consumed once by a controller run.
Structural invariants (source != target, non-empty node list) are checked
by the controller's validation phase rather than at construction, so an
invalid request still produces an observable ``validating -> error``
transition.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from restyle.contracts.enums import ReplacementKind


@dataclass(frozen=True, slots=True)
class MutationRequest:
    """Common shape of every replacement request.

    Attributes:
        source_resource_id: Resource being replaced
        target_resource_id: Resource replacing it
        affected_node_ids: Nodes to migrate, in processing order
    """

    source_resource_id: str
    target_resource_id: str
    affected_node_ids: tuple[str, ...]

    kind = ReplacementKind.STYLE
    operation_name = "Replacement"

    @property
    def is_self_replacement(self) -> bool:
        return self.source_resource_id == self.target_resource_id


@dataclass(frozen=True, slots=True)
class StyleReplacementRequest(MutationRequest):
    """Replace one shared style with another on every affected node.

    Attributes:
        preserve_overrides: Keep variable bindings set directly on the node.
            When False, those node-level bindings are cleared so the node
            fully takes on the target style.
    """

    preserve_overrides: bool = True

    kind = ReplacementKind.STYLE
    operation_name = "Style Replacement"

    @classmethod
    def create(
        cls,
        source_style_id: str,
        target_style_id: str,
        affected_node_ids: Iterable[str],
        *,
        preserve_overrides: bool = True,
    ) -> StyleReplacementRequest:
        return cls(
            source_resource_id=source_style_id,
            target_resource_id=target_style_id,
            affected_node_ids=tuple(affected_node_ids),
            preserve_overrides=preserve_overrides,
        )


@dataclass(frozen=True, slots=True)
class BindingReplacementRequest(MutationRequest):
    """Replace one bound value (variable) with another on every affected node.

    Bindings held through a shared style are migrated by cloning the style
    once and rebinding nodes to the clone.

    Attributes:
        property_types: Restrict migration to these property names (None = all)
    """

    property_types: frozenset[str] | None = None

    kind = ReplacementKind.BINDING
    operation_name = "Binding Replacement"

    @classmethod
    def create(
        cls,
        source_binding_id: str,
        target_binding_id: str,
        affected_node_ids: Iterable[str],
        *,
        property_types: Iterable[str] | None = None,
    ) -> BindingReplacementRequest:
        return cls(
            source_resource_id=source_binding_id,
            target_resource_id=target_binding_id,
            affected_node_ids=tuple(affected_node_ids),
            property_types=frozenset(property_types) if property_types is not None else None,
        )
