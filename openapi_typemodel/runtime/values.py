"""
Runtime value containers for decoded documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..pipeline.errors import ValueMismatchError


class NullableState(str, Enum):
    UNSPECIFIED = "unspecified"
    NULL = "null"
    VALUE = "value"


@dataclass(frozen=True)
class Nullable:
    """Tri-state field value: unspecified, explicit null, or a value."""

    state: NullableState = NullableState.UNSPECIFIED
    value: Any = None

    @staticmethod
    def unspecified() -> Nullable:
        return Nullable(NullableState.UNSPECIFIED)

    @staticmethod
    def null() -> Nullable:
        return Nullable(NullableState.NULL)

    @staticmethod
    def of(value: Any) -> Nullable:
        return Nullable(NullableState.VALUE, value)

    @property
    def is_specified(self) -> bool:
        return self.state is not NullableState.UNSPECIFIED

    @property
    def is_unspecified(self) -> bool:
        return self.state is NullableState.UNSPECIFIED

    @property
    def is_null(self) -> bool:
        return self.state is NullableState.NULL

    def get(self) -> Any:
        """Return the value, raising if unspecified or null."""
        if self.state is not NullableState.VALUE:
            raise ValueMismatchError(f"nullable value is {self.state.value}")
        return self.value

    def __repr__(self) -> str:
        if self.state is NullableState.VALUE:
            return f"Nullable.of({self.value!r})"
        return f"Nullable.{self.state.value}()"


def _specified(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if not (isinstance(v, Nullable) and v.is_unspecified)}


@dataclass(eq=False)
class ObjectValue:
    """
    A decoded object.

    Attributes:
        type_name: Name of the object type
        fields: Declared field name -> value (``Nullable`` for nullable fields)
        extra: Keys not declared by the type (additional properties)
        union: Decoded variant part, for objects that also carry oneOf/anyOf
    """

    type_name: str
    fields: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    union: UnionValue | None = None

    def get(self, name: str, default: Any = None) -> Any:
        value = self.fields.get(name, default)
        if isinstance(value, Nullable):
            return value.value if value.is_specified else default
        return value

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def __contains__(self, name: str) -> bool:
        value = self.fields.get(name)
        if isinstance(value, Nullable):
            return value.is_specified
        return name in self.fields

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectValue):
            return NotImplemented
        return (
            self.type_name == other.type_name
            and _specified(self.fields) == _specified(other.fields)
            and self.extra == other.extra
            and self.union == other.union
        )

    def __repr__(self) -> str:
        parts = [f"{self.type_name}", f"fields={self.fields!r}"]
        if self.extra:
            parts.append(f"extra={self.extra!r}")
        if self.union is not None:
            parts.append(f"union={self.union!r}")
        return f"ObjectValue({', '.join(parts)})"


@dataclass
class UnionValue:
    """
    A decoded union: one populated variant for oneOf, one or more for anyOf.

    Attributes:
        type_name: Name of the union type
        members: Variant label -> value, in member order
    """

    type_name: str
    members: dict[str, Any] = field(default_factory=dict)

    @property
    def variant(self) -> str:
        """Label of the single populated variant."""
        if len(self.members) != 1:
            raise ValueMismatchError(f"{self.type_name} has {len(self.members)} populated variants")
        return next(iter(self.members))

    @property
    def variants(self) -> list[str]:
        return list(self.members)

    def is_variant(self, label: str) -> bool:
        return label in self.members

    def as_variant(self, label: str) -> Any:
        if label not in self.members:
            raise ValueMismatchError(f"{self.type_name} is not a {label} (variants: {', '.join(self.members)})")
        return self.members[label]
