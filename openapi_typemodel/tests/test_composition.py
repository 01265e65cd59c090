"""
Tests for allOf merging, oneOf/anyOf unions and shape adoption.
"""

import logging

import pytest

from openapi_typemodel.pipeline import ResolutionFailed, build_type_model
from openapi_typemodel.pipeline.errors import ErrorKind
from openapi_typemodel.pipeline.schema_ast import FieldPresence, NodeKind, UnionExclusivity, UnionOrigin


def build(schemas, **kwargs):
    return build_type_model({"openapi": "3.0.3", "components": {"schemas": schemas}}, **kwargs)


def ref(name):
    return {"$ref": f"#/components/schemas/{name}"}


class TestAllOfMerge:
    """Test allOf merging into a single object"""

    def test_merged_fields_and_provenance(self):
        """Fields of every member end up on the composite, each with its source"""
        model = build(
            {
                "Base": {
                    "type": "object",
                    "required": ["id"],
                    "properties": {"id": {"type": "string"}, "createdAt": {"type": "string", "format": "date-time"}},
                },
                "Named": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {"name": {"type": "string"}},
                },
                "Document": {
                    "allOf": [
                        ref("Base"),
                        ref("Named"),
                        {"type": "object", "properties": {"description": {"type": "string"}}},
                    ]
                },
            }
        )
        document = model.node("Document")
        assert document.kind is NodeKind.OBJECT
        assert document.field_names == ["id", "createdAt", "name", "description"]
        assert document.required == {"id", "name"}
        assert document.provenance["id"] == "#/components/schemas/Base"
        assert document.provenance["createdAt"] == "#/components/schemas/Base"
        assert document.provenance["name"] == "#/components/schemas/Named"
        assert document.provenance["description"] == "#/components/schemas/Document/allOf/2"
        assert document.get_field("id").presence is FieldPresence.REQUIRED
        assert document.get_field("description").presence is FieldPresence.OPTIONAL

    def test_members_are_not_modified(self):
        """Merging copies member fields instead of mutating the shared members"""
        model = build(
            {
                "Base": {"type": "object", "properties": {"id": {"type": "string"}}},
                "Strict": {"allOf": [ref("Base")], "required": ["id"]},
            }
        )
        assert model.node("Strict").get_field("id").required
        assert not model.node("Base").get_field("id").required

    def test_own_properties_win(self):
        """A field redeclared by the composite replaces the inherited one, keeping its position"""
        model = build(
            {
                "Base": {"type": "object", "properties": {"kind": {"type": "string"}, "id": {"type": "string"}}},
                "Derived": {"allOf": [ref("Base")], "properties": {"kind": {"type": "integer"}}},
            }
        )
        derived = model.node("Derived")
        assert derived.field_names == ["kind", "id"]
        assert derived.get_field("kind").target.type_name == "integer"
        assert derived.provenance["kind"] == "#/components/schemas/Derived"

    def test_transitive_all_of(self):
        """allOf chains merge transitively"""
        model = build(
            {
                "A": {"type": "object", "properties": {"a": {"type": "string"}}},
                "B": {"allOf": [ref("A"), {"properties": {"b": {"type": "string"}}}]},
                "C": {"allOf": [ref("B"), {"properties": {"c": {"type": "string"}}}]},
            }
        )
        c = model.node("C")
        assert c.field_names == ["a", "b", "c"]
        assert c.provenance["a"] == "#/components/schemas/A"

    def test_single_shape_is_adopted(self):
        """allOf over a non-object schema takes that schema's shape"""
        model = build(
            {
                "Color": {"type": "string", "enum": ["red", "green"]},
                "Paint": {
                    "type": "object",
                    "properties": {"color": {"allOf": [ref("Color")], "description": "main color"}},
                },
            }
        )
        color = model.node("Paint").get_field("color").target
        assert color.kind is NodeKind.ENUM
        assert color.enum_values == ["red", "green"]

    def test_mixed_object_and_primitive_members(self):
        """An object and a string cannot be merged"""
        with pytest.raises(ResolutionFailed) as exc_info:
            build(
                {
                    "Weird": {
                        "allOf": [
                            {"type": "string"},
                            {"type": "object", "properties": {"a": {"type": "string"}}},
                        ]
                    }
                }
            )
        error = exc_info.value.errors[0]
        assert error.kind is ErrorKind.INCOMPATIBLE_COMPOSITION
        assert error.location == "#/components/schemas/Weird"

    def test_all_of_cycle(self):
        """Schemas that include each other through allOf are rejected"""
        with pytest.raises(ResolutionFailed) as exc_info:
            build({"X": {"allOf": [ref("Y")]}, "Y": {"allOf": [ref("X")]}})
        assert ErrorKind.CYCLIC_UNSUPPORTED in {e.kind for e in exc_info.value.errors}

    def test_several_typed_additional_properties(self, caplog):
        """The last typed additionalProperties wins, with a warning"""
        with caplog.at_level(logging.WARNING):
            model = build(
                {
                    "A": {"type": "object", "additionalProperties": {"type": "string"}},
                    "B": {"type": "object", "additionalProperties": {"type": "integer"}},
                    "C": {"allOf": [ref("A"), ref("B")]},
                }
            )
        c = model.node("C")
        assert c.kind is NodeKind.MAP
        assert c.additional_properties.type_name == "integer"
        assert "several allOf members" in caplog.text


class TestUnions:
    """Test oneOf/anyOf union descriptors"""

    def test_one_of(self):
        """oneOf becomes an exactly-one union in declaration order"""
        model = build(
            {
                "Cat": {"type": "object", "properties": {"meow": {"type": "boolean"}}},
                "Dog": {"type": "object", "properties": {"bark": {"type": "boolean"}}},
                "Pet": {"oneOf": [ref("Cat"), ref("Dog")]},
            }
        )
        pet = model.node("Pet")
        assert pet.kind is NodeKind.UNION
        assert pet.union.exclusivity is UnionExclusivity.EXACTLY_ONE
        assert pet.union.origin is UnionOrigin.EXPLICIT
        assert pet.union.members == [model.node("Cat"), model.node("Dog")]
        assert pet.union.member_labels == ["Cat", "Dog"]

    def test_any_of(self):
        """anyOf becomes a one-or-more union"""
        model = build({"Flexible": {"anyOf": [{"type": "string"}, {"type": "integer"}]}})
        union = model.node("Flexible").union
        assert union.exclusivity is UnionExclusivity.ANY_OF
        assert union.member_labels == ["string", "integer"]

    def test_null_member_makes_union_nullable(self):
        """A null-only member is dropped and the union admits null"""
        model = build({"Choice": {"oneOf": [{"type": "string"}, {"type": "integer"}, {"enum": [None]}]}})
        choice = model.node("Choice")
        assert choice.nullable
        assert len(choice.union.members) == 2

    def test_union_inherited_through_all_of(self):
        """An allOf composite exposes the oneOf of its members next to its own fields"""
        model = build(
            {
                "Base": {"type": "object", "properties": {"id": {"type": "string"}}},
                "OptA": {"type": "object", "properties": {"a": {"type": "string"}}},
                "OptB": {"type": "object", "properties": {"b": {"type": "string"}}},
                "Variant": {"oneOf": [ref("OptA"), ref("OptB")]},
                "Composite": {"allOf": [ref("Base"), ref("Variant")]},
            }
        )
        composite = model.node("Composite")
        assert composite.kind is NodeKind.OBJECT
        assert composite.field_names == ["id"]
        assert composite.union.members == [model.node("OptA"), model.node("OptB")]
        assert composite.known_field_names == frozenset({"id", "a", "b"})

    def test_anonymous_members_are_named_after_the_union(self):
        """Inline object members get numbered names under the union"""
        model = build(
            {
                "Payload": {
                    "oneOf": [
                        {"type": "object", "properties": {"a": {"type": "string"}}},
                        {"type": "object", "properties": {"b": {"type": "string"}}},
                    ]
                }
            }
        )
        assert "PayloadOneOf0" in model
        assert "PayloadOneOf1" in model
        assert model.node("Payload").union.member_labels == ["PayloadOneOf0", "PayloadOneOf1"]


if __name__ == "__main__":
    pytest.main([__file__])
