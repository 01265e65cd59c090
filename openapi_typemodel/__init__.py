"""OpenAPI Type Model

A Python package that resolves the schemas of an OpenAPI 3.0/3.1 document
into a named type model: references, allOf/oneOf/anyOf composition,
discriminators, nullability, additional properties, defaults and
conflict-free type names, plus a runtime codec for the resolved types.
"""

__version__ = "1.0.0"

from .pipeline import (
    DocumentCache,
    DocumentSet,
    ResolutionFailed,
    ResolverConfig,
    TypeModel,
    TypeModelBuilder,
    build_type_model,
)
from .runtime import Nullable, ObjectValue, TypeCodec, UnionValue

__all__ = [
    "TypeModelBuilder",
    "build_type_model",
    "ResolverConfig",
    "DocumentCache",
    "DocumentSet",
    "TypeModel",
    "ResolutionFailed",
    "TypeCodec",
    "Nullable",
    "ObjectValue",
    "UnionValue",
]
