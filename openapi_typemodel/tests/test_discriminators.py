"""
Tests for discriminated unions, inheritance unions and discriminator views.
"""

from pathlib import Path

import pytest

from openapi_typemodel.pipeline import DocumentSet, TypeModelBuilder
from openapi_typemodel.pipeline.errors import DiscriminatorTagUnknownError, ValueMismatchError
from openapi_typemodel.pipeline.schema_ast import UnionOrigin
from openapi_typemodel.runtime import ObjectValue, TypeCodec, UnionValue

TEST_DATA = Path(__file__).parent / "test_data"


def load(name):
    return TypeModelBuilder(DocumentSet.from_file(TEST_DATA / name)).build()


class TestExplicitDiscriminator:
    """Test oneOf unions with a discriminator"""

    @pytest.fixture(scope="class")
    def model(self):
        return load("pets.yaml")

    @pytest.fixture(scope="class")
    def codec(self, model):
        return TypeCodec(model)

    def test_implicit_mapping(self, model):
        """Members without a mapping entry are tagged with their component name"""
        discriminator = model.node("Pet").union.discriminator
        assert discriminator.property_name == "petType"
        assert {tag: model.name_of(node) for tag, node in discriminator.mapping.items()} == {
            "Cat": "Cat",
            "Dog": "Dog",
            "Mouse": "Mouse",
        }

    def test_explicit_mapping(self, model):
        """Mapping values may be full references or bare schema names"""
        discriminator = model.node("Pest").union.discriminator
        assert discriminator.member_for("mouse") is model.node("Mouse")
        assert discriminator.member_for("termite") is model.node("Termite")
        assert discriminator.member_for("Mouse") is None

    def test_member_in_two_unions(self, model):
        """A schema reachable through two discriminated unions has one view per union"""
        views = {(model.name_of(v.union), v.property_name, v.tag) for v in model.node("Mouse").discriminator_views}
        assert views == {("Pet", "petType", "Mouse"), ("Pest", "pestType", "mouse")}

    def test_decode_dispatches_on_tag(self, codec):
        value = codec.decode("Pet", {"petType": "Dog", "name": "Rex", "bark": True})
        assert isinstance(value, UnionValue)
        assert value.variant == "Dog"
        assert value.is_variant("Dog") and not value.is_variant("Cat")
        assert value.as_variant("Dog") == ObjectValue("Dog", fields={"petType": "Dog", "name": "Rex", "bark": True})
        assert codec.discriminator(value) == "Dog"
        assert codec.value_by_discriminator(value) is value.as_variant("Dog")

    def test_unknown_tag(self, codec):
        with pytest.raises(DiscriminatorTagUnknownError):
            codec.decode("Pet", {"petType": "Parrot", "name": "Polly"})

    def test_missing_tag(self, codec):
        with pytest.raises(DiscriminatorTagUnknownError):
            codec.decode("Pet", {"name": "Polly"})

    def test_wrong_variant_access(self, codec):
        value = codec.decode("Pet", {"petType": "Cat", "name": "Tom"})
        with pytest.raises(ValueMismatchError):
            value.as_variant("Dog")

    def test_encode_sets_tag(self, codec):
        """The tag of the populated variant replaces whatever the value holds"""
        value = UnionValue("Pet", {"Cat": {"name": "Tom", "petType": "ignored"}})
        assert codec.encode("Pet", value) == {"petType": "Cat", "name": "Tom"}

    def test_view(self, codec):
        mouse = codec.decode("Mouse", {"petType": "Mouse", "pestType": "mouse", "name": "Jerry"})
        assert codec.view(mouse, "Pet") == UnionValue("Pet", {"Mouse": mouse})
        assert codec.view(mouse, "Pest") == UnionValue("Pest", {"Mouse": mouse})
        with pytest.raises(ValueMismatchError):
            codec.view(mouse, "Error")

    def test_key_order_does_not_matter(self, codec):
        a = codec.decode("Pet", {"petType": "Cat", "name": "Tom", "meow": False})
        b = codec.decode("Pet", {"meow": False, "name": "Tom", "petType": "Cat"})
        assert a == b


class TestInheritance:
    """Test discriminated base schemas extended through allOf"""

    @pytest.fixture(scope="class")
    def model(self):
        return load("animals.yaml")

    @pytest.fixture(scope="class")
    def codec(self, model):
        return TypeCodec(model)

    def test_inheritance_union(self, model):
        animal = model.node("Animal")
        assert animal.union.origin is UnionOrigin.INHERITANCE
        assert [model.name_of(m) for m in animal.union.members] == ["DomesticAnimal", "WildAnimal"]
        assert animal.is_polymorphic

    def test_subtype_fields(self, model):
        assert model.node("HouseCat").field_names == ["animalType", "name", "domesticType", "owner", "indoor"]
        assert model.node("HouseCat").required == {"animalType", "name", "domesticType"}

    def test_implicit_subtypes(self, model):
        """Without a mapping, the schemas extending the base are its members, sorted by name"""
        shape = model.node("Shape")
        assert [model.name_of(m) for m in shape.union.members] == ["Circle", "Square"]
        assert set(shape.union.discriminator.mapping) == {"Circle", "Square"}

    def test_multi_level_views(self, model):
        """A leaf is viewed through its direct union and every union above it"""
        views = model.node("HouseCat").discriminator_views
        assert [(model.name_of(v.union), v.tag, model.name_of(v.via)) for v in views] == [
            ("DomesticAnimal", "housecat", "HouseCat"),
            ("Animal", "domestic", "DomesticAnimal"),
        ]

    def test_nested_decode(self, codec):
        data = {"animalType": "domestic", "name": "Tom", "domesticType": "housecat", "indoor": True}
        value = codec.decode("Animal", data)
        house_cat = value.as_variant("DomesticAnimal").as_variant("HouseCat")
        assert house_cat == ObjectValue(
            "HouseCat",
            fields={"animalType": "domestic", "name": "Tom", "domesticType": "housecat", "indoor": True},
        )
        assert codec.encode("Animal", value) == data

    def test_view_matches_decode(self, codec):
        data = {"animalType": "wild", "name": "Leo", "wildType": "lion", "maneColor": "gold"}
        lion = codec.decode("Lion", data)
        assert codec.view(lion, "Animal") == codec.decode("Animal", data)
        assert codec.view(lion, "WildAnimal") == UnionValue("WildAnimal", {"Lion": lion})

    def test_implicit_subtype_decode(self, codec):
        value = codec.decode("Shape", {"shapeType": "Circle", "radius": 2.5})
        assert value.variant == "Circle"
        assert value.as_variant("Circle")["radius"] == 2.5
        with pytest.raises(DiscriminatorTagUnknownError):
            codec.decode("Shape", {"shapeType": "Triangle"})


if __name__ == "__main__":
    pytest.main([__file__])
