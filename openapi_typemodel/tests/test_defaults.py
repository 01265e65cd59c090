"""
Tests for default propagation and application.
"""

import copy
from pathlib import Path

import pytest

from openapi_typemodel.pipeline import DocumentSet, TypeModelBuilder, build_type_model
from openapi_typemodel.runtime import Nullable, TypeCodec

TEST_DATA = Path(__file__).parent / "test_data"


@pytest.fixture(scope="module")
def model():
    return TypeModelBuilder(DocumentSet.from_file(TEST_DATA / "nullable_31.yaml")).build()


@pytest.fixture(scope="module")
def codec(model):
    return TypeCodec(model)


def test_defaults_recorded_on_fields(model):
    profile = model.node("Profile")
    assert profile.get_field("age").has_default
    assert profile.get_field("age").default == 30
    assert profile.get_field("level").default == "low"
    assert not profile.get_field("bio").has_default
    assert not profile.get_field("settings").has_default


def test_site_default_does_not_leak_into_target(model):
    """A default next to a $ref belongs to that field only"""
    assert not model.node("Level").has_default


def test_site_default_wins():
    model = build_type_model(
        {
            "openapi": "3.0.3",
            "components": {
                "schemas": {
                    "Size": {"type": "integer", "default": 1},
                    "Box": {
                        "type": "object",
                        "properties": {
                            "width": {"$ref": "#/components/schemas/Size", "default": 5},
                            "height": {"$ref": "#/components/schemas/Size"},
                        },
                    },
                }
            },
        }
    )
    box = model.node("Box")
    assert box.get_field("width").default == 5
    assert box.get_field("height").default == 1


def test_apply_defaults_fills_unset_fields(codec):
    value = codec.apply_defaults("Profile", codec.decode("Profile", {"id": "1", "nickname": None}))
    assert value["age"] == 30
    assert value["level"] == "low"
    assert value["nullableString"] == Nullable.unspecified()
    assert "settings" not in value.fields
    assert "bio" not in value.fields


def test_apply_defaults_keeps_set_values(codec):
    value = codec.decode("Profile", {"id": "1", "nickname": None, "age": 5, "level": "high"})
    codec.apply_defaults("Profile", value)
    assert value["age"] == 5
    assert value["level"] == "high"


def test_apply_defaults_recurses_into_present_objects(codec):
    value = codec.decode("Profile", {"id": "1", "nickname": "n", "settings": {}})
    codec.apply_defaults("Profile", value)
    assert value["settings"]["theme"] == "dark"
    assert "fontSize" not in value["settings"].fields


def test_apply_defaults_is_idempotent(codec):
    value = codec.decode("Profile", {"id": "1", "nickname": None, "settings": {"fontSize": 12}})
    codec.apply_defaults("Profile", value)
    once = copy.deepcopy(value)
    codec.apply_defaults("Profile", value)
    assert value == once
    assert codec.encode("Profile", value) == codec.encode("Profile", once)


def test_defaults_are_not_shared_between_values():
    """Mutable defaults are copied per value"""
    model = build_type_model(
        {
            "openapi": "3.0.3",
            "components": {
                "schemas": {
                    "Tags": {
                        "type": "object",
                        "properties": {"names": {"type": "array", "items": {"type": "string"}, "default": ["a"]}},
                    }
                }
            },
        }
    )
    codec = TypeCodec(model)
    first = codec.apply_defaults("Tags", codec.decode("Tags", {}))
    second = codec.apply_defaults("Tags", codec.decode("Tags", {}))
    first["names"].append("b")
    assert second["names"] == ["a"]


if __name__ == "__main__":
    pytest.main([__file__])
