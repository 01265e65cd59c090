"""
Encoding and decoding of JSON values against a type model.

Decoded objects are ``ObjectValue`` instances, unions are ``UnionValue``
instances, and nullable fields hold ``Nullable`` containers so that an absent
key, an explicit null and a value stay distinguishable. Everything else
decodes to plain Python values.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from ..pipeline.analyzer.ir_nodes import NamedType, TypeModel
from ..pipeline.errors import (
    AdditionalPropertyTypeMismatchError,
    AmbiguousUnionMatchError,
    DiscriminatorTagUnknownError,
    ValueMismatchError,
)
from ..pipeline.schema_ast.nodes import (
    AdditionalPropertiesMode,
    Field,
    NodeKind,
    SchemaNode,
    UnionOrigin,
)
from .values import Nullable, ObjectValue, UnionValue

logger = logging.getLogger(__name__)

_ABSENT = object()

_PRIMITIVE_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
}


def _is_primitive(type_name: str, value: Any) -> bool:
    expected = _PRIMITIVE_TYPES.get(type_name)
    if expected is None:
        return True
    if isinstance(value, bool) and type_name != "boolean":
        return False
    return isinstance(value, expected)


def _same_json_value(a: Any, b: Any) -> bool:
    return a == b and isinstance(a, bool) == isinstance(b, bool)


class TypeCodec:
    """Encodes, decodes and applies defaults for the types of a model."""

    def __init__(self, model: TypeModel):
        self.model = model

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _node(self, type_ref: str | NamedType | SchemaNode) -> SchemaNode:
        if isinstance(type_ref, SchemaNode):
            return type_ref
        if isinstance(type_ref, NamedType):
            return type_ref.node
        return self.model.node(type_ref)

    def _type_name(self, node: SchemaNode) -> str:
        return self.model.name_of(node) or node.location

    def _label(self, union_node: SchemaNode, member: SchemaNode) -> str:
        label = union_node.union.label_for(member)
        if label is None:
            label = self._type_name(member)
        return label

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def decode(self, type_ref: str | NamedType | SchemaNode, data: Any) -> Any:
        """
        Decode a JSON-compatible value as the given type.

        Args:
            type_ref: Type name, named type or schema node
            data: Parsed JSON value

        Returns:
            The decoded value

        Raises:
            ValueMismatchError: If the value does not fit the type (or one of
                its subclasses for union and additional-properties failures)
        """
        return self._decode(self._node(type_ref), data, "$")

    def _decode(self, node: SchemaNode, data: Any, path: str, strict: bool = False) -> Any:
        if data is None:
            if node.nullable or node.kind is NodeKind.ANY:
                return None
            raise ValueMismatchError("null is not allowed", path)

        kind = node.kind
        if kind is NodeKind.ANY or kind is None:
            return copy.deepcopy(data)
        if kind is NodeKind.PRIMITIVE:
            if not _is_primitive(node.type_name, data):
                raise ValueMismatchError(f"expected {node.type_name}, got {type(data).__name__}", path)
            return data
        if kind is NodeKind.ENUM:
            if node.type_name and not _is_primitive(node.type_name, data):
                raise ValueMismatchError(f"expected {node.type_name}, got {type(data).__name__}", path)
            if not any(_same_json_value(data, v) for v in node.enum_values):
                raise ValueMismatchError(f"{data!r} is not one of {node.enum_values!r}", path)
            return data
        if kind is NodeKind.ARRAY:
            if not isinstance(data, list):
                raise ValueMismatchError(f"expected array, got {type(data).__name__}", path)
            if node.items is None:
                return copy.deepcopy(data)
            return [self._decode(node.items, item, f"{path}[{i}]") for i, item in enumerate(data)]
        if kind is NodeKind.MAP:
            if not isinstance(data, dict):
                raise ValueMismatchError(f"expected object, got {type(data).__name__}", path)
            return {key: self._decode_additional(node, key, value, path) for key, value in data.items()}
        if kind is NodeKind.UNION:
            return self._decode_union(node, data, path, strict)
        if node.union is not None and node.union.origin is UnionOrigin.INHERITANCE:
            return self._decode_inheritance(node, data, path, strict)
        return self._decode_object(node, data, path, strict)

    def _decode_object(self, node: SchemaNode, data: Any, path: str, strict: bool = False) -> ObjectValue:
        if not isinstance(data, dict):
            raise ValueMismatchError(f"expected object, got {type(data).__name__}", path)

        known = node.known_field_names
        mode = node.additional_properties_mode
        extra_keys = [k for k in data if k not in known]
        if strict and extra_keys and mode is AdditionalPropertiesMode.CLOSED:
            raise ValueMismatchError(f"unexpected properties {extra_keys!r}", path)

        value = ObjectValue(self._type_name(node))
        for f in node.fields:
            decoded = self._decode_field(f, data, path)
            if decoded is not _ABSENT:
                value.fields[f.name] = decoded

        for key in extra_keys:
            if mode is AdditionalPropertiesMode.OPEN_TYPED:
                value.extra[key] = self._decode_additional(node, key, data[key], path)
            else:
                value.extra[key] = copy.deepcopy(data[key])

        if node.union is not None and node.union.origin is UnionOrigin.EXPLICIT:
            value.union = self._decode_union(node, data, path, strict)
        return value

    def _decode_field(self, f: Field, data: dict[str, Any], path: str) -> Any:
        field_path = f"{path}.{f.name}"
        if f.name not in data:
            if f.required:
                raise ValueMismatchError("required property is missing", field_path)
            return Nullable.unspecified() if f.nullable else _ABSENT
        raw = data[f.name]
        if raw is None:
            if not f.nullable:
                raise ValueMismatchError("null is not allowed", field_path)
            return Nullable.null()
        decoded = self._decode(f.target, raw, field_path)
        return Nullable.of(decoded) if f.nullable else decoded

    def _decode_additional(self, node: SchemaNode, key: str, raw: Any, path: str) -> Any:
        target = node.additional_properties
        if target is None:
            return copy.deepcopy(raw)
        try:
            return self._decode(target, raw, f"{path}.{key}")
        except ValueMismatchError as e:
            raise AdditionalPropertyTypeMismatchError(
                f"additional property {key!r} does not match {self._type_name(target)}: {e.message}", path
            ) from e

    def _decode_union(self, node: SchemaNode, data: Any, path: str, strict: bool = False) -> UnionValue:
        union = node.union
        name = self._type_name(node)
        discriminator = union.discriminator

        if discriminator is not None and isinstance(data, dict):
            prop = discriminator.property_name
            if prop not in data:
                raise DiscriminatorTagUnknownError(f"discriminator property {prop!r} is missing", path)
            tag = data[prop]
            member = discriminator.member_for(tag)
            if member is None:
                raise DiscriminatorTagUnknownError(f"unknown {prop} value {tag!r}", path)
            member_data = self._variant_data(node, member, data)
            return UnionValue(name, {self._label(node, member): self._decode(member, member_data, path)})

        matches: dict[str, Any] = {}
        failures: list[str] = []
        for member, label in zip(union.members, union.member_labels or [None] * len(union.members)):
            label = label or self._type_name(member)
            try:
                matches[label] = self._decode(member, self._variant_data(node, member, data), path, strict=True)
            except ValueMismatchError as e:
                failures.append(f"{label}: {e}")

        if union.is_exclusive and len(matches) != 1:
            if matches:
                raise AmbiguousUnionMatchError(f"oneOf matched {len(matches)} members: {', '.join(matches)}", path)
            raise AmbiguousUnionMatchError(f"oneOf matched no member ({'; '.join(failures)})", path)
        if not matches:
            raise AmbiguousUnionMatchError(f"anyOf matched no member ({'; '.join(failures)})", path)
        return UnionValue(name, matches)

    @staticmethod
    def _variant_data(node: SchemaNode, member: SchemaNode, data: Any) -> Any:
        """Input of a variant, without the enclosing object's own structural fields."""
        if not node.fields or not isinstance(data, dict):
            return data
        structural = set(node.field_names) - set(member.known_field_names or member.field_names)
        return {k: v for k, v in data.items() if k not in structural}

    def _decode_inheritance(self, node: SchemaNode, data: Any, path: str, strict: bool = False) -> Any:
        """Decode a discriminated base type, dispatching on the tag when it names a subtype."""
        if not isinstance(data, dict):
            raise ValueMismatchError(f"expected object, got {type(data).__name__}", path)
        discriminator = node.union.discriminator
        prop = discriminator.property_name
        if prop not in data:
            return self._decode_object(node, data, path, strict)
        member = discriminator.member_for(data[prop])
        if member is None:
            raise DiscriminatorTagUnknownError(f"unknown {prop} value {data[prop]!r}", path)
        if member is node:
            return self._decode_object(node, data, path, strict)
        return UnionValue(self._type_name(node), {self._label(node, member): self._decode(member, data, path, strict)})

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    def encode(self, type_ref: str | NamedType | SchemaNode, value: Any) -> Any:
        """
        Encode a value of the given type into a JSON-compatible value.

        Unspecified nullable fields are omitted, explicit nulls are emitted
        as null, and additional properties are merged into the object.

        Raises:
            ValueMismatchError: If the value does not fit the type
        """
        return self._encode(self._node(type_ref), value, "$")

    def _encode(self, node: SchemaNode, value: Any, path: str) -> Any:
        if isinstance(value, Nullable):
            if value.is_unspecified:
                raise ValueMismatchError("unspecified value cannot be encoded", path)
            value = value.value
        if value is None:
            if node.nullable or node.kind is NodeKind.ANY:
                return None
            raise ValueMismatchError("null is not allowed", path)

        kind = node.kind
        if kind is NodeKind.ANY or kind is None:
            return copy.deepcopy(value)
        if kind in (NodeKind.PRIMITIVE, NodeKind.ENUM):
            return self._decode(node, value, path)
        if kind is NodeKind.ARRAY:
            if not isinstance(value, (list, tuple)):
                raise ValueMismatchError(f"expected list, got {type(value).__name__}", path)
            if node.items is None:
                return copy.deepcopy(list(value))
            return [self._encode(node.items, item, f"{path}[{i}]") for i, item in enumerate(value)]
        if kind is NodeKind.MAP:
            if not isinstance(value, dict):
                raise ValueMismatchError(f"expected dict, got {type(value).__name__}", path)
            return {key: self._encode_additional(node, key, item, path) for key, item in value.items()}
        if isinstance(value, UnionValue):
            if node.union is None:
                raise ValueMismatchError(f"{self._type_name(node)} is not a union", path)
            return self._encode_union(node, value, path)
        if kind is NodeKind.UNION:
            raise ValueMismatchError(f"expected UnionValue, got {type(value).__name__}", path)
        if isinstance(value, dict):
            value = ObjectValue(self._type_name(node), fields=dict(value))
        if not isinstance(value, ObjectValue):
            raise ValueMismatchError(f"expected ObjectValue, got {type(value).__name__}", path)
        return self._encode_object(node, value, path)

    def _encode_object(self, node: SchemaNode, value: ObjectValue, path: str) -> dict[str, Any]:
        declared = set(node.field_names)
        unknown = [name for name in value.fields if name not in declared]
        if unknown:
            raise ValueMismatchError(f"{self._type_name(node)} has no fields {unknown!r}", path)

        out: dict[str, Any] = {}
        for f in node.fields:
            field_path = f"{path}.{f.name}"
            item = value.fields.get(f.name, _ABSENT)
            if isinstance(item, Nullable):
                if item.is_unspecified:
                    item = _ABSENT
                elif item.is_null:
                    item = None
                else:
                    item = item.value
            if item is _ABSENT:
                if f.required:
                    raise ValueMismatchError("required property is missing", field_path)
                continue
            if item is None:
                if f.nullable:
                    out[f.name] = None
                    continue
                if not f.required:
                    continue
                raise ValueMismatchError("null is not allowed", field_path)
            out[f.name] = self._encode(f.target, item, field_path)

        if value.union is not None:
            if node.union is None:
                raise ValueMismatchError(f"{self._type_name(node)} is not a union", path)
            variant = self._encode_union(node, value.union, path)
            if isinstance(variant, dict):
                for key, item in variant.items():
                    out.setdefault(key, item)

        for key, item in value.extra.items():
            if key in node.known_field_names or key in out:
                raise ValueMismatchError(f"extra property {key!r} duplicates a declared field", path)
            out[key] = self._encode_additional(node, key, item, path)
        return out

    def _encode_additional(self, node: SchemaNode, key: str, item: Any, path: str) -> Any:
        target = node.additional_properties
        if target is None or node.additional_properties_mode is not AdditionalPropertiesMode.OPEN_TYPED:
            return copy.deepcopy(item)
        try:
            return self._encode(target, item, f"{path}.{key}")
        except ValueMismatchError as e:
            raise AdditionalPropertyTypeMismatchError(
                f"additional property {key!r} does not match {self._type_name(target)}: {e.message}", path
            ) from e

    def _encode_union(self, node: SchemaNode, value: UnionValue, path: str) -> Any:
        union = node.union
        populated = [(label, item) for label, item in value.members.items() if item is not None]
        if not populated or (union.is_exclusive and len(populated) != 1):
            raise AmbiguousUnionMatchError(
                f"{self._type_name(node)} needs {'exactly one' if union.is_exclusive else 'at least one'} "
                f"populated variant, got {len(populated)}",
                path,
            )

        result: Any = _ABSENT
        for label, item in populated:
            member = union.member_by_label(label)
            if member is None:
                raise ValueMismatchError(f"{self._type_name(node)} has no variant {label!r}", path)
            encoded = self._encode(member, item, path)
            if union.discriminator is not None and isinstance(encoded, dict):
                tag = union.discriminator.tag_for(member)
                if tag is not None:
                    encoded[union.discriminator.property_name] = tag
            if isinstance(result, dict) and isinstance(encoded, dict):
                # anyOf: later variants win on shared keys
                result.update(encoded)
            else:
                result = encoded
        return result

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    def apply_defaults(self, type_ref: str | NamedType | SchemaNode, value: Any) -> Any:
        """
        Fill unset fields that declare a default, then recurse into present values.

        Applying defaults twice gives the same result as applying them once.

        Returns:
            The value, updated in place where it is an ObjectValue/list/dict
        """
        self._apply_defaults(self._node(type_ref), value, "$")
        return value

    def _apply_defaults(self, node: SchemaNode, value: Any, path: str) -> None:
        if isinstance(value, Nullable):
            if value.is_specified and not value.is_null:
                self._apply_defaults(node, value.value, path)
            return
        if isinstance(value, UnionValue):
            if node.union is None:
                return
            for label, item in value.members.items():
                member = node.union.member_by_label(label)
                if member is not None:
                    self._apply_defaults(member, item, path)
            return
        if isinstance(value, ObjectValue):
            for f in node.fields:
                current = value.fields.get(f.name, _ABSENT)
                unset = current is _ABSENT or (isinstance(current, Nullable) and current.is_unspecified)
                if unset and f.has_default:
                    default = copy.deepcopy(f.default)
                    if default is None:
                        value.fields[f.name] = Nullable.null() if f.nullable else None
                    else:
                        decoded = self._decode(f.target, default, f"{path}.{f.name}")
                        value.fields[f.name] = Nullable.of(decoded) if f.nullable else decoded
            for f in node.fields:
                current = value.fields.get(f.name, _ABSENT)
                if current is not _ABSENT and f.target is not None:
                    self._apply_defaults(f.target, current, f"{path}.{f.name}")
            if node.additional_properties is not None:
                for key, item in value.extra.items():
                    self._apply_defaults(node.additional_properties, item, f"{path}.{key}")
            if value.union is not None:
                self._apply_defaults(node, value.union, path)
            return
        if isinstance(value, list) and node.items is not None:
            for i, item in enumerate(value):
                self._apply_defaults(node.items, item, f"{path}[{i}]")
        elif isinstance(value, dict) and node.kind is NodeKind.MAP and node.additional_properties is not None:
            for key, item in value.items():
                self._apply_defaults(node.additional_properties, item, f"{path}.{key}")

    # ------------------------------------------------------------------
    # Discriminators
    # ------------------------------------------------------------------

    def discriminator(self, value: UnionValue | ObjectValue) -> Any:
        """Return the discriminator tag of a decoded union (or base object) value."""
        node = self.model.node(value.type_name)
        if node.union is None or node.union.discriminator is None:
            return None
        discriminator = node.union.discriminator
        if isinstance(value, UnionValue):
            member = node.union.member_by_label(value.variant)
            return discriminator.tag_for(member) if member is not None else None
        return value.get(discriminator.property_name)

    def value_by_discriminator(self, value: UnionValue | ObjectValue) -> Any:
        """
        Return the concrete value selected by the discriminator.

        Raises:
            DiscriminatorTagUnknownError: If the value is not a dispatched union
        """
        if isinstance(value, UnionValue):
            node = self.model.node(value.type_name)
            if node.union is None or node.union.discriminator is None:
                raise DiscriminatorTagUnknownError(f"{value.type_name} has no discriminator")
            return value.as_variant(value.variant)
        tag = self.discriminator(value)
        if tag is None:
            raise DiscriminatorTagUnknownError(f"{value.type_name} value carries no discriminator tag")
        return value

    def view(self, value: ObjectValue, union_type: str) -> UnionValue:
        """
        Present a concrete value as a variant of one of the unions it belongs to.

        Args:
            value: Decoded value of a union member type
            union_type: Name of the discriminated union to view it through

        Returns:
            The union value (nested through intermediate unions as needed)

        Raises:
            ValueMismatchError: If the value's type is not reachable from the union
        """
        node = self.model.node(value.type_name)
        target = self.model.node(union_type)
        return self._view(node, value, target)

    def _view(self, node: SchemaNode, value: Any, target: SchemaNode) -> UnionValue:
        for view in node.discriminator_views:
            if view.union is not target:
                continue
            if view.via is node:
                inner = value
            else:
                inner = self._view(node, value, view.via)
            return UnionValue(self._type_name(target), {self._label(target, view.via): inner})
        raise ValueMismatchError(f"{self._type_name(node)} is not a variant of {self._type_name(target)}")
