"""
Composition resolver for allOf/oneOf/anyOf and discriminators.

allOf members are merged into one node (fields, required names and
additional properties, with per-field provenance). oneOf/anyOf become union
descriptors; a discriminated schema that other schemas extend through allOf
becomes an inheritance union over those schemas. Finally every member of a
discriminated union is annotated with the views through which it is
reachable.
"""

from __future__ import annotations

import copy
import logging

from ..errors import ErrorCollector, ErrorKind
from ..schema_ast.nodes import (
    DiscriminatorDescriptor,
    DiscriminatorView,
    Field,
    NodeKind,
    SchemaNode,
    UnionDescriptor,
    UnionExclusivity,
    UnionOrigin,
)
from .reference_resolver import SchemaGraph

logger = logging.getLogger(__name__)

_SHAPED_KINDS = (NodeKind.PRIMITIVE, NodeKind.ENUM, NodeKind.ARRAY)


def is_null_only(node: SchemaNode) -> bool:
    """Return True if a schema admits nothing but null."""
    schema_type = node.raw.get("type")
    if schema_type == "null" or schema_type == ["null"]:
        return True
    enum = node.raw.get("enum")
    return isinstance(enum, list) and bool(enum) and all(v is None for v in enum)


class CompositionResolver:
    """Resolves composition keywords of every node in a schema graph."""

    def __init__(self, graph: SchemaGraph, errors: ErrorCollector):
        self.graph = graph
        self.errors = errors
        self._done: set[str] = set()
        self._in_progress: list[SchemaNode] = []
        self._views_done: set[str] = set()
        self._containers: dict[str, list[SchemaNode]] | None = None

    def resolve(self) -> None:
        """Run composition over the whole graph."""
        nodes = list(self.graph)
        for node in nodes:
            self._merge(node)
        for node in nodes:
            self._resolve_inheritance(node, nodes)
        self._check_union_cycles(nodes)
        for node in nodes:
            if node.union is not None and node.union.discriminator is not None:
                self._complete_mapping(node)
        for node in nodes:
            self._views(node, [])
        logger.debug("Composition resolved for %d nodes", len(nodes))

    # ------------------------------------------------------------------
    # allOf merge
    # ------------------------------------------------------------------

    def _merge(self, node: SchemaNode) -> None:
        if node.location in self._done or node.unresolved:
            return
        if node in self._in_progress:
            chain = " -> ".join(n.location for n in self._in_progress[self._in_progress.index(node) :])
            self.errors.add(
                ErrorKind.CYCLIC_UNSUPPORTED,
                node.location,
                f"allOf cycle without indirection: {chain} -> {node.location}",
            )
            return

        self._in_progress.append(node)
        try:
            for member in node.all_of:
                self._merge(member)
            if node.all_of:
                self._merge_all_of(node)
            else:
                for f in node.fields:
                    node.provenance[f.name] = f.source
            self._build_union(node)
            self._settle_kind(node)
        finally:
            self._in_progress.pop()
        self._done.add(node.location)

    def _merge_all_of(self, node: SchemaNode) -> None:
        """Merge allOf members, then the node's own keywords, into ``node``."""
        merged: dict[str, Field] = {}
        required: set[str] = set()
        typed_additional: list[SchemaNode] = []
        additional_owner: SchemaNode | None = None

        for contributor in [*node.all_of, node]:
            if contributor.unresolved:
                continue
            own = contributor is node
            required |= contributor.required
            for f in contributor.fields:
                # Last contributor wins, first position is kept
                merged[f.name] = f if own else copy.copy(f)
            if contributor.has_additional_properties:
                if contributor.additional_properties is not None:
                    typed_additional.append(contributor)
                additional_owner = contributor

        if len({c.additional_properties.location for c in typed_additional}) > 1:
            logger.warning(
                "%s: several allOf members declare typed additionalProperties, using the last one",
                node.location,
            )
        if additional_owner is not None and additional_owner is not node:
            node.has_additional_properties = True
            node.additional_properties_raw = additional_owner.additional_properties_raw
            node.additional_properties = additional_owner.additional_properties

        node.required = required
        node.fields = list(merged.values())
        for f in node.fields:
            f.required = f.name in required
            node.provenance[f.name] = f.source

        self._adopt_shape(node)

    def _adopt_shape(self, node: SchemaNode) -> None:
        """Take the shape of the allOf members (object, or a single non-object shape)."""
        members = [m for m in node.all_of if not m.unresolved]
        objects = [m for m in members if m.kind is NodeKind.OBJECT or m.fields]
        shaped = [m for m in members if m.kind in _SHAPED_KINDS]
        own_object = node.kind is NodeKind.OBJECT or bool(node.raw.get("properties"))

        if shaped and (objects or own_object):
            self.errors.add(
                ErrorKind.INCOMPATIBLE_COMPOSITION,
                node.location,
                "allOf mixes object and non-object members: "
                + ", ".join(f"{m.location} ({m.kind.value})" for m in members if m.kind),
            )
            return

        if shaped:
            if len({(m.kind, m.type_name) for m in shaped}) > 1:
                self.errors.add(
                    ErrorKind.INCOMPATIBLE_COMPOSITION,
                    node.location,
                    "allOf members have different shapes: " + ", ".join(m.location for m in shaped),
                )
                return
            source = shaped[-1]
            if node.kind is None or node.kind is NodeKind.ANY:
                node.kind = source.kind
            node.type_name = node.type_name or source.type_name
            node.format = node.format or source.format
            if not node.enum_values:
                node.enum_values = list(source.enum_values)
            if node.items is None:
                node.items = source.items
            node.nullable = node.nullable or source.nullable
            if not node.has_default and source.has_default:
                node.default = source.default
                node.has_default = True
        elif objects and node.kind in (None, NodeKind.ANY):
            node.kind = NodeKind.OBJECT

    # ------------------------------------------------------------------
    # Unions
    # ------------------------------------------------------------------

    def _build_union(self, node: SchemaNode) -> None:
        """Build the explicit union of a node from its own and inherited oneOf/anyOf."""
        sources: list[tuple[list[SchemaNode], UnionExclusivity, DiscriminatorDescriptor | None]] = []

        for member in node.all_of:
            union = member.union
            if union is None or union.origin is not UnionOrigin.EXPLICIT:
                continue
            if union.index_of(node) >= 0:
                continue
            sources.append((list(union.members), union.exclusivity, union.discriminator))

        own_discriminator = node.discriminator
        if node.one_of:
            sources.append((node.one_of, UnionExclusivity.EXACTLY_ONE, own_discriminator))
        if node.any_of:
            sources.append((node.any_of, UnionExclusivity.ANY_OF, own_discriminator))
        if not sources:
            return

        members: list[SchemaNode] = []
        for source_members, _, _ in sources:
            for member in source_members:
                if is_null_only(member):
                    node.nullable = True
                elif member not in members:
                    members.append(member)

        exclusivity = (
            UnionExclusivity.EXACTLY_ONE
            if all(e is UnionExclusivity.EXACTLY_ONE for _, e, _ in sources)
            else UnionExclusivity.ANY_OF
        )
        discriminators = [d for _, _, d in sources if d is not None]
        discriminator = own_discriminator if own_discriminator is not None and (node.one_of or node.any_of) else None
        if discriminator is None and len(sources) == 1 and discriminators:
            discriminator = discriminators[0]

        if not members:
            # Nothing but null members
            node.kind = node.kind or NodeKind.ANY
            return
        node.union = UnionDescriptor(
            members=members,
            exclusivity=exclusivity,
            discriminator=discriminator,
            origin=UnionOrigin.EXPLICIT,
        )

    def _check_union_cycles(self, nodes: list[SchemaNode]) -> None:
        """Report unions whose members lead back to the union without an object or array in between."""
        finished: set[str] = set()

        def visit(node: SchemaNode, stack: list[SchemaNode]) -> None:
            if node in stack:
                chain = " -> ".join(n.location for n in stack[stack.index(node) :])
                self.errors.add(
                    ErrorKind.CYCLIC_UNSUPPORTED,
                    node.location,
                    f"union cycle without indirection: {chain} -> {node.location}",
                )
                return
            if node.location in finished or node.union is None or node.unresolved:
                return
            stack.append(node)
            for member in node.union.members:
                visit(member, stack)
            stack.pop()
            finished.add(node.location)

        for node in nodes:
            visit(node, [])

    def _settle_kind(self, node: SchemaNode) -> None:
        if node.union is not None and node.union.origin is UnionOrigin.EXPLICIT:
            if not node.fields and node.kind in (None, NodeKind.ANY, NodeKind.OBJECT) and not node.raw.get(
                "properties"
            ):
                node.kind = NodeKind.UNION
            elif node.kind is None:
                node.kind = NodeKind.OBJECT
        if node.kind is None:
            node.kind = NodeKind.OBJECT if (node.discriminator is not None or node.fields) else NodeKind.ANY

    def _resolve_inheritance(self, node: SchemaNode, nodes: list[SchemaNode]) -> None:
        """Turn a discriminated base schema into an inheritance union."""
        if node.discriminator is None or node.union is not None or node.unresolved:
            return
        discriminator = node.discriminator
        if discriminator.explicit:
            members: list[SchemaNode] = []
            for target in discriminator.mapping.values():
                if target is not node and target not in members:
                    members.append(target)
        else:
            extenders = [n for n in nodes if n.component_name and any(m is node for m in n.all_of)]
            members = sorted(extenders, key=lambda n: (n.component_name, n.location))
        if not members:
            logger.debug("%s has a discriminator but no variants", node.location)
            return
        node.union = UnionDescriptor(
            members=members,
            exclusivity=UnionExclusivity.EXACTLY_ONE,
            discriminator=discriminator,
            origin=UnionOrigin.INHERITANCE,
        )
        if node.kind in (None, NodeKind.ANY):
            node.kind = NodeKind.OBJECT

    def _complete_mapping(self, node: SchemaNode) -> None:
        """Add implicit tags (component names) for members missing from the mapping."""
        union = node.union
        discriminator = union.discriminator
        for member in union.members:
            if discriminator.tag_for(member) is not None:
                continue
            if member.component_name is None:
                logger.warning(
                    "%s: union member %s has no component name and cannot be tagged by %r",
                    node.location,
                    member.location,
                    discriminator.property_name,
                )
                continue
            if member.component_name in discriminator.mapping:
                logger.warning(
                    "%s: implicit tag %r of %s is already mapped",
                    node.location,
                    member.component_name,
                    member.location,
                )
                continue
            discriminator.mapping[member.component_name] = member

    # ------------------------------------------------------------------
    # Discriminator views
    # ------------------------------------------------------------------

    def _views(self, node: SchemaNode, stack: list[SchemaNode]) -> list[DiscriminatorView]:
        """Compute (memoized) every discriminator view of ``node``."""
        if node.location in self._views_done or node in stack:
            return node.discriminator_views
        stack = [*stack, node]
        views: list[DiscriminatorView] = []
        for union_node in self._containing_unions(node):
            discriminator = union_node.union.discriminator
            tag = discriminator.tag_for(node)
            if tag is None:
                continue
            views.append(DiscriminatorView(union_node, discriminator.property_name, tag, node))
            for upper in self._views(union_node, stack):
                if not any(v.union is upper.union for v in views):
                    views.append(upper)
        node.discriminator_views = views
        self._views_done.add(node.location)
        return views

    def _containing_unions(self, node: SchemaNode) -> list[SchemaNode]:
        if self._containers is None:
            containers: dict[str, list[SchemaNode]] = {}
            for candidate in self.graph:
                if candidate.union is None or candidate.union.discriminator is None:
                    continue
                for member in candidate.union.members:
                    containers.setdefault(member.location, []).append(candidate)
            self._containers = containers
        return self._containers.get(node.location, [])
