"""
Tests for $ref resolution and the schema graph.
"""

from pathlib import Path

import pytest

from openapi_typemodel.pipeline import DocumentCache, DocumentSet, ResolutionFailed, TypeModelBuilder, build_type_model
from openapi_typemodel.pipeline.errors import ErrorKind
from openapi_typemodel.pipeline.schema_ast import FieldPresence, NodeKind

TEST_DATA = Path(__file__).parent / "test_data"


def build(schemas, **kwargs):
    return build_type_model({"openapi": "3.0.3", "components": {"schemas": schemas}}, **kwargs)


class TestReferenceResolver:
    """Test reference resolution into identity-stable nodes"""

    def test_self_reference_shares_one_node(self):
        """A recursive schema resolves to the same node object"""
        model = build(
            {
                "Node": {
                    "type": "object",
                    "properties": {
                        "value": {"type": "integer"},
                        "next": {"$ref": "#/components/schemas/Node"},
                        "children": {"type": "array", "items": {"$ref": "#/components/schemas/Node"}},
                    },
                }
            }
        )
        node = model.node("Node")
        assert node.get_field("next").target is node
        assert node.get_field("children").target.items is node

    def test_mutual_references(self):
        """Mutually referencing schemas resolve without infinite expansion"""
        model = build(
            {
                "Parent": {"type": "object", "properties": {"child": {"$ref": "#/components/schemas/Child"}}},
                "Child": {"type": "object", "properties": {"parent": {"$ref": "#/components/schemas/Parent"}}},
            }
        )
        parent = model.node("Parent")
        child = model.node("Child")
        assert parent.get_field("child").target is child
        assert child.get_field("parent").target is parent

    def test_reference_chain_resolves_to_final_target(self):
        """A -> B -> C resolves to C, and every reference maps to its type"""
        model = build(
            {
                "Holder": {"type": "object", "properties": {"item": {"$ref": "#/components/schemas/Alias"}}},
                "Alias": {"$ref": "#/components/schemas/Middle"},
                "Middle": {"$ref": "#/components/schemas/Target"},
                "Target": {"type": "object", "properties": {"id": {"type": "string"}}},
            }
        )
        target = model.node("Target")
        assert model.node("Holder").get_field("item").target is target
        assert model.references["#/components/schemas/Alias"].name == "Target"
        assert model.for_reference("#/components/schemas/Middle").name == "Target"
        assert "Alias" not in model

    def test_reference_to_nested_schema_gets_a_name(self):
        """A reference into a property of another schema is named after the last pointer segment"""
        model = build(
            {
                "Pet": {
                    "type": "object",
                    "properties": {"status": {"type": "string", "enum": ["available", "sold"]}},
                },
                "Order": {
                    "type": "object",
                    "properties": {"petStatus": {"$ref": "#/components/schemas/Pet/properties/status"}},
                },
            }
        )
        named = model.references["#/components/schemas/Pet/properties/status"]
        assert named.node is model.node("Pet").get_field("status").target
        assert named.node.kind is NodeKind.ENUM

    def test_ref_siblings_stay_on_the_field(self):
        """nullable and default next to a $ref annotate the field, not the shared target"""
        model = build(
            {
                "Owner": {
                    "type": "object",
                    "properties": {
                        "pet": {"$ref": "#/components/schemas/Tag", "nullable": True},
                        "tag": {"$ref": "#/components/schemas/Tag"},
                    },
                },
                "Tag": {"type": "object", "properties": {"label": {"type": "string"}}},
            }
        )
        owner = model.node("Owner")
        tag = model.node("Tag")
        assert owner.get_field("pet").target is tag
        assert owner.get_field("pet").presence is FieldPresence.OPTIONAL_NULLABLE
        assert owner.get_field("tag").presence is FieldPresence.OPTIONAL
        assert not tag.nullable

    def test_escaped_pointer_tokens(self):
        """~1 and ~0 in reference pointers are unescaped"""
        model = build(
            {
                "a/b": {"type": "object", "properties": {"x": {"type": "string"}}},
                "c~d": {"type": "object", "properties": {"y": {"type": "string"}}},
                "Holder": {
                    "type": "object",
                    "properties": {
                        "first": {"$ref": "#/components/schemas/a~1b"},
                        "second": {"$ref": "#/components/schemas/c~0d"},
                    },
                },
            }
        )
        holder = model.node("Holder")
        assert holder.get_field("first").target.get_field("x") is not None
        assert holder.get_field("second").target.get_field("y") is not None

    def test_malformed_required_is_ignored(self):
        """A required keyword that is not a list marks no field as required"""
        model = build({"Holder": {"type": "object", "required": "name", "properties": {"na": {"type": "string"}}}})
        assert not model.node("Holder").get_field("na").required


class TestResolutionErrors:
    """Test collection of structural errors"""

    def test_unresolved_reference(self):
        """A $ref to a missing pointer is reported at the referring site"""
        with pytest.raises(ResolutionFailed) as exc_info:
            build({"Broken": {"type": "object", "properties": {"x": {"$ref": "#/components/schemas/Missing"}}}})
        errors = exc_info.value.errors
        assert [e.kind for e in errors] == [ErrorKind.UNRESOLVED_REFERENCE]
        assert errors[0].location == "#/components/schemas/Broken/properties/x"

    def test_unregistered_document(self):
        """A $ref into a document that is not part of the set is unresolved"""
        with pytest.raises(ResolutionFailed) as exc_info:
            build({"Holder": {"type": "object", "properties": {"x": {"$ref": "other.yaml#/components/schemas/X"}}}})
        assert exc_info.value.errors[0].kind is ErrorKind.UNRESOLVED_REFERENCE

    def test_self_alias_is_cyclic(self):
        """A schema that is a pure reference to itself has no indirection point"""
        with pytest.raises(ResolutionFailed) as exc_info:
            build({"Loop": {"$ref": "#/components/schemas/Loop"}})
        assert exc_info.value.errors[0].kind is ErrorKind.CYCLIC_UNSUPPORTED

    def test_self_union_is_cyclic(self):
        """A oneOf member referring back to its union never reaches an object or array"""
        with pytest.raises(ResolutionFailed) as exc_info:
            build({"A": {"oneOf": [{"$ref": "#/components/schemas/A"}, {"type": "string"}]}})
        errors = [e for e in exc_info.value.errors if e.kind is ErrorKind.CYCLIC_UNSUPPORTED]
        assert [e.location for e in errors] == ["#/components/schemas/A"]

    def test_mutual_union_is_cyclic(self):
        """Two anyOf unions listing each other form a cycle without indirection"""
        with pytest.raises(ResolutionFailed) as exc_info:
            build(
                {
                    "A": {"anyOf": [{"$ref": "#/components/schemas/B"}]},
                    "B": {"anyOf": [{"$ref": "#/components/schemas/A"}]},
                }
            )
        errors = [e for e in exc_info.value.errors if e.kind is ErrorKind.CYCLIC_UNSUPPORTED]
        assert len(errors) == 1
        assert "#/components/schemas/B" in errors[0].message

    def test_union_through_object_is_not_cyclic(self):
        """A union member that reaches the union through a property is a valid recursion"""
        model = build(
            {
                "Node": {
                    "oneOf": [
                        {"type": "string"},
                        {"type": "object", "properties": {"child": {"$ref": "#/components/schemas/Node"}}},
                    ]
                }
            }
        )
        assert model.node("Node").kind is NodeKind.UNION

    def test_inheritance_is_not_cyclic(self):
        """A discriminated base listing subtypes that extend it through allOf is valid"""
        model = build(
            {
                "Pet": {
                    "type": "object",
                    "required": ["petType"],
                    "properties": {"petType": {"type": "string"}},
                    "oneOf": [{"$ref": "#/components/schemas/Cat"}],
                    "discriminator": {"propertyName": "petType"},
                },
                "Cat": {"allOf": [{"$ref": "#/components/schemas/Pet"}, {"properties": {"lives": {"type": "integer"}}}]},
            }
        )
        assert model.node("Cat").get_field("lives") is not None

    def test_all_errors_are_collected(self):
        """One run reports every structural problem of the document"""
        documents = DocumentSet.from_file(TEST_DATA / "cycles.yaml")
        with pytest.raises(ResolutionFailed) as exc_info:
            TypeModelBuilder(documents).build()
        kinds = {e.kind for e in exc_info.value.errors}
        assert kinds == {ErrorKind.CYCLIC_UNSUPPORTED, ErrorKind.UNRESOLVED_REFERENCE}
        locations = {e.location for e in exc_info.value.errors}
        assert "#/components/schemas/A" in locations
        assert "#/components/schemas/Broken/properties/missing" in locations

    def test_error_converts_to_exception(self):
        """Each collected error maps to its exception class"""
        with pytest.raises(ResolutionFailed) as exc_info:
            build({"Loop": {"$ref": "#/components/schemas/Loop"}})
        error = exc_info.value.errors[0]
        exception = error.to_exception()
        assert exception.kind is ErrorKind.CYCLIC_UNSUPPORTED
        assert error.to_dict()["kind"] == "CyclicUnsupported"


class TestExternalDocuments:
    """Test references into sibling documents"""

    def test_from_file_follows_sibling_documents(self):
        """Types from a referenced sibling file are resolved and named"""
        documents = DocumentSet.from_file(TEST_DATA / "external" / "root.yaml")
        assert documents.has("common/schemas.yaml")

        model = TypeModelBuilder(documents).build()
        thing = model.references["common/schemas.yaml#/components/schemas/Thing"]
        assert thing.name == "Thing"
        assert model.node("Wrapper").get_field("thing").target is thing.node
        assert model.name_of(thing.node.get_field("owner").target) == "Owner"

    def test_same_component_name_in_two_documents(self):
        """The root document's component keeps its name, the sibling's gets a numeric suffix"""
        model = TypeModelBuilder(DocumentSet.from_file(TEST_DATA / "external" / "root.yaml")).build()
        assert model.get("Error").origin == "#/components/schemas/Error"
        external = model.references["common/schemas.yaml#/components/schemas/Error"]
        assert external.name == "Error2"

    def test_in_memory_sibling_documents(self):
        """Sibling documents may be raw YAML text, relative to the root path"""
        root = {
            "openapi": "3.0.3",
            "components": {
                "schemas": {
                    "Holder": {
                        "type": "object",
                        "properties": {"item": {"$ref": "shared/common.yaml#/components/schemas/Item"}},
                    }
                }
            },
        }
        common = "components:\n  schemas:\n    Item:\n      type: object\n      properties:\n        id:\n          type: string\n"
        cache = DocumentCache()
        model = build_type_model(
            root,
            {"specs/shared/common.yaml": common},
            root_path="specs/root.yaml",
            cache=cache,
        )
        assert model.name_of(model.node("Holder").get_field("item").target) == "Item"
        assert "specs/shared/common.yaml" in cache


if __name__ == "__main__":
    pytest.main([__file__])
