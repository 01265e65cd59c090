"""
Runtime module.

Encodes and decodes JSON values against a resolved type model.
"""

from __future__ import annotations

from .codec import TypeCodec
from .values import Nullable, NullableState, ObjectValue, UnionValue

__all__ = [
    "TypeCodec",
    "Nullable",
    "NullableState",
    "ObjectValue",
    "UnionValue",
]
