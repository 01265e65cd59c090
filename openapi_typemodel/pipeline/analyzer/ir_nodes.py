"""
Type-model node definitions.

These represent the resolved document: every schema that renders as a type
has exactly one ``NamedType``, and every reference and operation body is
bound to the node (and therefore the name) it resolves to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..schema_ast.nodes import Namespace, NodeKind, SchemaNode


@dataclass(eq=False)
class NamedType:
    """A schema node with its final, unique name."""

    node: SchemaNode
    name: str = ""
    namespace: Namespace = Namespace.SCHEMA
    origin: str = ""  # Location the name was derived from
    operation_id: str | None = None
    role: str = ""  # "params", "request", "response" for operation types
    overridden: bool = False  # Name taken from an extension or substitution

    def __repr__(self) -> str:
        return f"NamedType({self.name!r}, {self.namespace.value}, {self.node.location!r})"


@dataclass
class BodyType:
    """A request or response body of an operation."""

    content_type: str
    node: SchemaNode
    status: str | None = None


@dataclass
class OperationBinding:
    """Types bound to one operation."""

    operation_id: str
    method: str
    path: str
    params: SchemaNode | None = None
    request_bodies: list[BodyType] = field(default_factory=list)
    responses: list[BodyType] = field(default_factory=list)


class TypeModel:
    """The resolved, named type model of a document. Read-only once built."""

    def __init__(
        self,
        named_types: list[NamedType],
        references: dict[str, NamedType] | None = None,
        operations: list[OperationBinding] | None = None,
        openapi_version: str = "",
    ):
        self.named_types = list(named_types)
        self.references = dict(references or {})
        self.operations = list(operations or [])
        self.openapi_version = openapi_version
        self.by_name: dict[str, list[NamedType]] = {}
        self.by_node: dict[str, NamedType] = {}
        for named in self.named_types:
            self.by_name.setdefault(named.name, []).append(named)
            self.by_node[named.node.location] = named

    def get(self, name: str, namespace: Namespace | None = None) -> NamedType:
        """
        Look up a named type.

        Args:
            name: Final type name
            namespace: Required when the namespaces do not share one scope
                and the name exists in several of them

        Returns:
            The named type

        Raises:
            KeyError: If no (single) type has that name
        """
        candidates = self.by_name.get(name, [])
        if namespace is not None:
            candidates = [c for c in candidates if c.namespace is namespace]
        if len(candidates) != 1:
            raise KeyError(name if not candidates else f"{name} is ambiguous, pass a namespace")
        return candidates[0]

    def __contains__(self, name: str) -> bool:
        return name in self.by_name

    def __iter__(self):
        return iter(self.named_types)

    def __len__(self) -> int:
        return len(self.named_types)

    def node(self, name: str) -> SchemaNode:
        return self.get(name).node

    def name_of(self, node: SchemaNode | None) -> str | None:
        if node is None:
            return None
        named = self.by_node.get(node.location)
        return named.name if named else None

    def for_reference(self, ref: str) -> NamedType:
        """Return the named type a (canonical) reference resolves to."""
        return self.references[ref]

    def operation(self, operation_id: str) -> OperationBinding:
        for op in self.operations:
            if op.operation_id == operation_id:
                return op
        raise KeyError(operation_id)

    def describe(self, node: SchemaNode | None) -> str:
        """Short type expression for a node ("Pet", "array[Pet]", "string")."""
        if node is None:
            return "any"
        name = self.name_of(node)
        if name is not None:
            return name
        return self.describe_structure(node)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dump of the model."""
        types = []
        for named in self.named_types:
            node = named.node
            entry: dict[str, Any] = {
                "name": named.name,
                "namespace": named.namespace.value,
                "kind": node.kind.value if node.kind else None,
                "origin": named.origin,
            }
            if named.operation_id:
                entry["operation"] = named.operation_id
                entry["role"] = named.role
            if named.overridden:
                entry["overridden"] = True
            if node.nullable:
                entry["nullable"] = True
            if node.kind is NodeKind.ENUM:
                entry["values"] = list(node.enum_values)
            if node.kind in (NodeKind.PRIMITIVE, NodeKind.ARRAY, NodeKind.MAP):
                entry["type"] = self.describe_structure(node)
            if node.fields:
                entry["fields"] = [
                    {
                        "name": f.name,
                        "type": self.describe(f.target),
                        "presence": f.presence.value if f.presence else None,
                        **({"default": f.default} if f.has_default else {}),
                    }
                    for f in node.fields
                ]
            if node.additional_properties_mode is not None:
                entry["additional_properties"] = node.additional_properties_mode.value
                if node.additional_properties is not None:
                    entry["additional_properties_type"] = self.describe(node.additional_properties)
            if node.union is not None:
                union = node.union
                entry["union"] = {
                    "exclusivity": union.exclusivity.value,
                    "origin": union.origin.value,
                    "members": [
                        {"label": label, "type": self.describe(member)}
                        for label, member in zip(union.member_labels, union.members)
                    ],
                }
                if union.discriminator is not None:
                    entry["union"]["discriminator"] = {
                        "property": union.discriminator.property_name,
                        "mapping": {
                            tag: self.describe(member) for tag, member in union.discriminator.mapping.items()
                        },
                    }
            if node.discriminator_views:
                entry["discriminator_views"] = [
                    {"union": self.describe(v.union), "property": v.property_name, "tag": v.tag}
                    for v in node.discriminator_views
                ]
            types.append(entry)

        operations = []
        for op in self.operations:
            operations.append(
                {
                    "operation_id": op.operation_id,
                    "method": op.method,
                    "path": op.path,
                    "params": self.describe(op.params) if op.params is not None else None,
                    "request_bodies": {b.content_type: self.describe(b.node) for b in op.request_bodies},
                    "responses": [
                        {"status": b.status, "content_type": b.content_type, "type": self.describe(b.node)}
                        for b in op.responses
                    ],
                }
            )

        return {
            "openapi": self.openapi_version,
            "types": types,
            "references": {ref: named.name for ref, named in sorted(self.references.items())},
            "operations": operations,
        }

    def describe_structure(self, node: SchemaNode) -> str:
        """Like ``describe`` but never collapses the node itself to its name."""
        if node.kind is NodeKind.ARRAY:
            return f"array[{self.describe(node.items)}]"
        if node.kind is NodeKind.MAP:
            return f"map[{self.describe(node.additional_properties)}]"
        if node.kind is NodeKind.PRIMITIVE:
            return f"{node.type_name}({node.format})" if node.format else node.type_name
        return node.kind.value if node.kind else "any"
