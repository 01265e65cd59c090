"""
Reference resolver for $ref resolution.

Builds the schema graph: every schema location becomes exactly one
``SchemaNode`` in a ``SchemaGraph`` arena, and every ``$ref`` (including
chains of references and references into sibling documents) resolves to the
node registered for its final target. Nodes are registered before their
children are expanded, so recursive schemas resolve to the same node object
instead of being expanded again.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterator

from ...utils import join_pointer, split_pointer
from ..document import DocumentSet
from ..document.loader import join_document_path, normalize_document_path
from ..errors import (
    CyclicUnsupportedError,
    ErrorCollector,
    TypeModelError,
    UnresolvedReferenceError,
)
from ..schema_ast.nodes import DiscriminatorDescriptor, Field, NodeKind, SchemaNode

logger = logging.getLogger(__name__)

_MISSING = object()

COMPONENT_SCHEMAS_POINTER = "/components/schemas"


def make_location(document: str, pointer: str) -> str:
    """Build the canonical location string of a document position."""
    return f"{document}#{pointer}"


def split_location(location: str) -> tuple[str, str]:
    """Split a canonical location into (document, pointer)."""
    document, _, pointer = location.partition("#")
    return document, pointer


def mapping_ref(target: str) -> str:
    """Expand a bare schema name used as a discriminator mapping value."""
    if "#" in target or "/" in target or target.endswith((".yaml", ".yml", ".json")):
        return target
    return f"#{COMPONENT_SCHEMAS_POINTER}/{target}"


@dataclass
class ResolvedRef:
    """A $ref followed to its final target."""

    ref: str = ""  # The reference as written
    key: str = ""  # Canonical form of the reference itself
    document: str = ""  # Document of the final target
    pointer: str = ""  # Pointer of the final target
    value: Any = None  # Raw value at the final target

    @property
    def location(self) -> str:
        return make_location(self.document, self.pointer)


class SchemaGraph:
    """Arena of schema nodes keyed by location (insert-if-absent)."""

    def __init__(self) -> None:
        self._nodes: dict[str, SchemaNode] = {}

    def get(self, location: str) -> SchemaNode | None:
        return self._nodes.get(location)

    def add(self, node: SchemaNode) -> SchemaNode:
        """Register a node, returning the already registered one if present."""
        return self._nodes.setdefault(node.location, node)

    def __contains__(self, location: str) -> bool:
        return location in self._nodes

    def __iter__(self) -> Iterator[SchemaNode]:
        return iter(list(self._nodes.values()))

    def __len__(self) -> int:
        return len(self._nodes)


class ReferenceResolver:
    """Resolves $ref to nodes of the schema graph."""

    def __init__(self, documents: DocumentSet, errors: ErrorCollector, graph: SchemaGraph | None = None):
        """
        Initialize the resolver.

        Args:
            documents: Root document and referenced sibling documents
            errors: Collector receiving resolution errors
            graph: Arena to register nodes in (a new one by default)
        """
        self.documents = documents
        self.errors = errors
        self.graph = graph if graph is not None else SchemaGraph()

        # Canonical reference -> node it resolves to
        self.references: dict[str, SchemaNode] = {}

        # Canonical reference -> location of a resolved non-schema object
        self.object_references: dict[str, str] = {}

        self._pending: deque[SchemaNode] = deque()
        self._placeholders: dict[str, SchemaNode] = {}

    # ------------------------------------------------------------------
    # Locations and documents
    # ------------------------------------------------------------------

    def canonical_document(self, path: str) -> str:
        """Map a document path to its canonical key ("" for the root)."""
        path = normalize_document_path(path)
        if path in ("", self.documents.root_path):
            return ""
        return path

    def lookup(self, document: str, pointer: str) -> Any:
        """Return the raw value at a document position, or ``_MISSING``."""
        doc = self.documents.get(document)
        if doc is None:
            return _MISSING
        value: Any = doc
        for token in split_pointer(pointer):
            if isinstance(value, dict) and token in value:
                value = value[token]
            elif isinstance(value, list) and token.isdigit() and int(token) < len(value):
                value = value[int(token)]
            else:
                return _MISSING
        return value

    def parse_ref(self, ref: str, base_document: str) -> tuple[str, str]:
        """Split a reference into (canonical document, pointer)."""
        doc_part, _, pointer = ref.partition("#")
        if doc_part:
            base = base_document or self.documents.root_path
            document = self.canonical_document(join_document_path(base, doc_part))
        else:
            document = base_document
        return document, pointer

    # ------------------------------------------------------------------
    # Reference following
    # ------------------------------------------------------------------

    def follow(self, ref: str, base_document: str = "") -> ResolvedRef:
        """
        Follow a reference (and any chain of references) to its final target.

        Args:
            ref: The $ref value as written
            base_document: Document the reference appears in

        Returns:
            ResolvedRef describing the final target

        Raises:
            UnresolvedReferenceError: If a document or pointer does not exist
            CyclicUnsupportedError: If the chain revisits a location
        """
        document, pointer = self.parse_ref(ref, base_document)
        key = make_location(document, pointer)
        visited: list[str] = []
        current = ref
        while True:
            location = make_location(document, pointer)
            if location in visited:
                chain = " -> ".join(visited + [location])
                raise CyclicUnsupportedError(f"reference cycle without indirection: {chain}", key)
            visited.append(location)

            if not self.documents.has(document) and document:
                raise UnresolvedReferenceError(f"no document registered for {current!r}", key)
            value = self.lookup(document, pointer)
            if value is _MISSING:
                raise UnresolvedReferenceError(f"{current!r} does not point to anything", key)

            next_ref = value.get("$ref") if isinstance(value, dict) else None
            if not isinstance(next_ref, str):
                return ResolvedRef(ref=ref, key=key, document=document, pointer=pointer, value=value)
            current = next_ref
            document, pointer = self.parse_ref(next_ref, document)

    def resolve(self, ref: str, base_document: str = "", site: str = "") -> SchemaNode:
        """
        Resolve a schema reference to its node.

        Errors are collected; a placeholder node is returned in their place
        so that later stages can keep collecting errors.

        Args:
            ref: The $ref value as written
            base_document: Document the reference appears in
            site: Location of the referring schema (for error messages)

        Returns:
            The identity-stable node of the final target
        """
        try:
            resolved = self.follow(ref, base_document)
        except TypeModelError as e:
            self.errors.add(e.kind, site or e.location, e.message)
            return self._placeholder(ref, base_document)

        node = self.node_for(resolved.document, resolved.pointer, resolved.value)
        self.references.setdefault(resolved.key, node)
        return node

    def resolve_object(self, ref: str, base_document: str = "", site: str = "") -> ResolvedRef | None:
        """Resolve a reference to a non-schema object (parameter, response...)."""
        try:
            resolved = self.follow(ref, base_document)
        except TypeModelError as e:
            self.errors.add(e.kind, site or e.location, e.message)
            return None
        self.object_references.setdefault(resolved.key, resolved.location)
        return resolved

    def _placeholder(self, ref: str, base_document: str) -> SchemaNode:
        document, pointer = self.parse_ref(ref, base_document)
        key = make_location(document, pointer)
        if key not in self._placeholders:
            self._placeholders[key] = SchemaNode(
                location=f"<unresolved>{key}",
                kind=NodeKind.ANY,
                unresolved=True,
            )
        return self._placeholders[key]

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def node_for(self, document: str, pointer: str, raw: Any = _MISSING) -> SchemaNode:
        """Return the node for a schema location, registering it if new."""
        location = make_location(document, pointer)
        existing = self.graph.get(location)
        if existing is not None:
            return existing
        if raw is _MISSING:
            raw = self.lookup(document, pointer)
        node = SchemaNode(
            location=location,
            raw=raw if isinstance(raw, dict) else {},
            document=document,
        )
        tokens = split_pointer(pointer)
        if len(tokens) == 3 and tokens[0] == "components" and tokens[1] == "schemas":
            node.component_name = tokens[2]
        node = self.graph.add(node)
        self._pending.append(node)
        return node

    def schema_at(self, raw: Any, document: str, pointer: str) -> SchemaNode:
        """Return the node for a schema written at ``pointer`` (inline or $ref)."""
        if isinstance(raw, dict) and isinstance(raw.get("$ref"), str):
            return self.resolve(raw["$ref"], document, site=make_location(document, pointer))
        return self.node_for(document, pointer, raw)

    def build(self) -> None:
        """Expand every registered node until the graph is closed."""
        while self._pending:
            self._expand(self._pending.popleft())

    def _expand(self, node: SchemaNode) -> None:
        """Expand a node's keywords into links to child nodes."""
        raw = node.raw
        doc, pointer = split_location(node.location)

        node.extensions = {k: v for k, v in raw.items() if isinstance(k, str) and k.startswith("x-")}
        override = raw.get("x-oapi-codegen-type-name-override", raw.get("x-go-type-name"))
        if isinstance(override, str) and override:
            node.name_override = override

        self._expand_type(node)

        if "default" in raw:
            node.default = raw["default"]
            node.has_default = True

        required = raw.get("required")
        if isinstance(required, list):
            node.required = {r for r in required if isinstance(r, str)}

        properties = raw.get("properties")
        if isinstance(properties, dict):
            for name, prop_raw in properties.items():
                node.fields.append(self._make_field(node, str(name), prop_raw, doc, pointer))

        items = raw.get("items")
        if isinstance(items, list):
            items = items[0] if items else {}
        if isinstance(items, (dict, bool)):
            node.items = self.schema_at(items, doc, join_pointer(pointer, "items"))

        if "additionalProperties" in raw:
            value = raw["additionalProperties"]
            node.has_additional_properties = True
            node.additional_properties_raw = value
            if isinstance(value, dict):
                node.additional_properties = self.schema_at(value, doc, join_pointer(pointer, "additionalProperties"))

        for keyword, target in (("allOf", node.all_of), ("oneOf", node.one_of), ("anyOf", node.any_of)):
            members = raw.get(keyword)
            if isinstance(members, list):
                for i, member in enumerate(members):
                    target.append(self.schema_at(member, doc, join_pointer(pointer, keyword, i)))

        discriminator = raw.get("discriminator")
        if isinstance(discriminator, dict) and isinstance(discriminator.get("propertyName"), str):
            node.discriminator = self._make_discriminator(node, discriminator, doc)

    def _expand_type(self, node: SchemaNode) -> None:
        """Set the preliminary kind, primitive type and nullability."""
        raw = node.raw
        if raw.get("nullable") is True or raw.get("x-nullable") is True:
            node.nullable = True

        schema_type = raw.get("type")
        types = schema_type if isinstance(schema_type, list) else ([schema_type] if schema_type else [])
        if "null" in types:
            node.nullable = True
        types = [t for t in types if t != "null"]
        node.format = str(raw.get("format", "") or "")

        if isinstance(raw.get("enum"), list):
            values = raw["enum"]
            if None in values:
                node.nullable = True
            node.enum_values = [v for v in values if v is not None]
            node.type_name = types[0] if len(types) == 1 else ""
            node.kind = NodeKind.ENUM
        elif "const" in raw:
            node.enum_values = [raw["const"]]
            node.type_name = types[0] if len(types) == 1 else ""
            node.kind = NodeKind.ENUM
        elif len(types) > 1:
            logger.debug("%s declares several types %s, treating as any", node.location, types)
            node.kind = NodeKind.ANY
        elif types == ["object"]:
            node.kind = NodeKind.OBJECT
        elif types == ["array"]:
            node.kind = NodeKind.ARRAY
        elif types:
            node.kind = NodeKind.PRIMITIVE
            node.type_name = types[0]
        elif "properties" in raw or "additionalProperties" in raw:
            node.kind = NodeKind.OBJECT
        elif "items" in raw:
            node.kind = NodeKind.ARRAY
        elif not any(k in raw for k in ("allOf", "oneOf", "anyOf", "discriminator")):
            node.kind = NodeKind.ANY
        # Composed schemas get their kind from the composition stage

    def _make_field(self, owner: SchemaNode, name: str, prop_raw: Any, doc: str, pointer: str) -> Field:
        prop_pointer = join_pointer(pointer, "properties", name)
        target = self.schema_at(prop_raw, doc, prop_pointer)
        f = Field(
            name=name,
            target=target,
            required=name in owner.required,
            source=owner.location,
        )
        if isinstance(prop_raw, dict) and "$ref" in prop_raw:
            f.site_nullable = prop_raw.get("nullable") is True or prop_raw.get("x-nullable") is True
            if "default" in prop_raw:
                f.site_default = prop_raw["default"]
                f.has_site_default = True
            f.extensions = {k: v for k, v in prop_raw.items() if isinstance(k, str) and k.startswith("x-")}
        elif isinstance(prop_raw, dict):
            f.extensions = {k: v for k, v in prop_raw.items() if isinstance(k, str) and k.startswith("x-")}
        return f

    def _make_discriminator(self, node: SchemaNode, discriminator: dict, doc: str) -> DiscriminatorDescriptor:
        descriptor = DiscriminatorDescriptor(property_name=discriminator["propertyName"])
        mapping = discriminator.get("mapping")
        if isinstance(mapping, dict) and mapping:
            descriptor.explicit = True
            for tag, target in mapping.items():
                if not isinstance(target, str):
                    continue
                descriptor.mapping[str(tag)] = self.resolve(mapping_ref(target), doc, site=node.location)
        return descriptor
