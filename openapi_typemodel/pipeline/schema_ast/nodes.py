"""
Schema graph node definitions.

A ``SchemaNode`` is identified by the location it was defined at
(``"<document>#<json-pointer>"``); two references to the same location
yield the same node object. Fields hold shared links to their target nodes,
which is what lets self-referencing and mutually referencing schemas be
represented without infinite expansion.

Nodes are created by the reference resolver and annotated in place by the
later stages; a node's location never changes after creation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    """Kind of a resolved schema."""

    OBJECT = "object"
    ARRAY = "array"
    PRIMITIVE = "primitive"
    ENUM = "enum"
    MAP = "map"
    UNION = "union"
    ANY = "any"


class AdditionalPropertiesMode(str, Enum):
    """How an object schema treats keys it does not declare."""

    CLOSED = "closed"  # additionalProperties: false
    OPEN_ANY = "open-any"  # additionalProperties: true, or absent
    OPEN_TYPED = "open-typed"  # additionalProperties: {schema}


class FieldPresence(str, Enum):
    """Combined required/nullable state of a field."""

    REQUIRED = "required"  # present
    OPTIONAL = "optional"  # unspecified | present
    REQUIRED_NULLABLE = "required-nullable"  # explicit-null | present
    OPTIONAL_NULLABLE = "optional-nullable"  # unspecified | explicit-null | present

    @staticmethod
    def of(required: bool, nullable: bool) -> FieldPresence:
        if required:
            return FieldPresence.REQUIRED_NULLABLE if nullable else FieldPresence.REQUIRED
        return FieldPresence.OPTIONAL_NULLABLE if nullable else FieldPresence.OPTIONAL


class UnionExclusivity(str, Enum):
    EXACTLY_ONE = "exactly-one"  # oneOf
    ANY_OF = "any-of-one-or-more"  # anyOf


class UnionOrigin(str, Enum):
    EXPLICIT = "explicit"  # oneOf / anyOf keywords
    INHERITANCE = "inheritance"  # discriminated base extended through allOf


class Namespace(str, Enum):
    """Independent naming scopes of resolved types."""

    SCHEMA = "schema"
    PARAMETER = "parameter"
    REQUEST_BODY = "requestBody"
    RESPONSE = "response"


@dataclass(eq=False)
class Field:
    """A named property of an object schema."""

    name: str = ""
    target: SchemaNode | None = None  # Shared, not owned
    required: bool = False
    nullable: bool = False
    presence: FieldPresence | None = None
    default: Any = None
    has_default: bool = False

    # Location of the schema this field was merged from
    source: str = ""

    # Keywords written next to a $ref at the field site
    site_nullable: bool = False
    site_default: Any = None
    has_site_default: bool = False
    extensions: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        target = self.target.location if self.target else None
        return f"Field({self.name!r}, target={target!r}, presence={self.presence})"


@dataclass(eq=False)
class DiscriminatorDescriptor:
    """Tag property and tag value -> member mapping of a discriminated union."""

    property_name: str = ""
    mapping: dict[str, SchemaNode] = field(default_factory=dict)
    explicit: bool = False  # True when taken from an explicit `mapping`

    def member_for(self, tag: Any) -> SchemaNode | None:
        if not isinstance(tag, str):
            return None
        return self.mapping.get(tag)

    def tag_for(self, node: SchemaNode) -> str | None:
        for tag, member in self.mapping.items():
            if member is node:
                return tag
        return None


@dataclass(eq=False)
class UnionDescriptor:
    """Ordered members of a oneOf/anyOf (or inheritance) union."""

    members: list[SchemaNode] = field(default_factory=list)
    exclusivity: UnionExclusivity = UnionExclusivity.EXACTLY_ONE
    discriminator: DiscriminatorDescriptor | None = None
    origin: UnionOrigin = UnionOrigin.EXPLICIT

    # Tagged-variant case label per member, assigned with the final names
    member_labels: list[str] = field(default_factory=list)

    @property
    def is_exclusive(self) -> bool:
        return self.exclusivity is UnionExclusivity.EXACTLY_ONE

    def index_of(self, node: SchemaNode) -> int:
        for i, member in enumerate(self.members):
            if member is node:
                return i
        return -1

    def label_for(self, node: SchemaNode) -> str | None:
        i = self.index_of(node)
        if i < 0 or i >= len(self.member_labels):
            return None
        return self.member_labels[i]

    def member_by_label(self, label: str) -> SchemaNode | None:
        for i, candidate in enumerate(self.member_labels):
            if candidate == label:
                return self.members[i]
        return None

    def __repr__(self) -> str:
        members = [m.location for m in self.members]
        return f"UnionDescriptor({self.exclusivity.value}, members={members!r})"


@dataclass(eq=False)
class DiscriminatorView:
    """One discriminated union through which a concrete node is reachable."""

    union: SchemaNode
    property_name: str
    tag: str
    via: SchemaNode  # Direct member of `union` the node was reached through

    def __repr__(self) -> str:
        return f"DiscriminatorView({self.union.location!r}, {self.property_name}={self.tag!r})"


@dataclass(eq=False, repr=False)
class SchemaNode:
    """A resolved schema, identified by its originating location."""

    location: str = ""
    raw: dict[str, Any] = field(default_factory=dict)
    document: str = ""

    kind: NodeKind | None = None
    type_name: str = ""  # "string", "integer", "number", "boolean" for primitives
    format: str = ""

    fields: list[Field] = field(default_factory=list)
    required: set[str] = field(default_factory=set)
    nullable: bool = False
    default: Any = None
    has_default: bool = False
    enum_values: list[Any] = field(default_factory=list)
    items: SchemaNode | None = None

    # Composition links (resolver output, consumed by the composition stage)
    all_of: list[SchemaNode] = field(default_factory=list)
    one_of: list[SchemaNode] = field(default_factory=list)
    any_of: list[SchemaNode] = field(default_factory=list)

    # Additional properties, as declared and as classified
    has_additional_properties: bool = False
    additional_properties_raw: Any = None
    additional_properties_mode: AdditionalPropertiesMode | None = None
    additional_properties: SchemaNode | None = None

    union: UnionDescriptor | None = None
    discriminator: DiscriminatorDescriptor | None = None
    discriminator_views: list[DiscriminatorView] = field(default_factory=list)

    # Field name -> location of the schema that contributed it
    provenance: dict[str, str] = field(default_factory=dict)
    known_field_names: frozenset[str] = frozenset()

    extensions: dict[str, Any] = field(default_factory=dict)
    name_override: str | None = None
    component_name: str | None = None  # "Cat" for #/components/schemas/Cat
    unresolved: bool = False

    def get_field(self, name: str) -> Field | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def __repr__(self) -> str:
        kind = self.kind.value if self.kind else None
        return f"SchemaNode({self.location!r}, kind={kind})"
