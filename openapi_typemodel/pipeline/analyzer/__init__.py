"""
Analyzer module.

Contains reference resolution, composition, nullability, additional
properties, defaults, gathering and name resolution.
"""

from __future__ import annotations

from .additional_properties import classify_additional_properties
from .composition_resolver import CompositionResolver
from .defaults import propagate_defaults
from .gather import Gatherer, TypeClaim
from .ir_nodes import BodyType, NamedType, OperationBinding, TypeModel
from .name_resolver import NameResolver, assign_member_labels
from .nullability import model_presence
from .reference_resolver import ReferenceResolver, SchemaGraph

__all__ = [
    "ReferenceResolver",
    "SchemaGraph",
    "CompositionResolver",
    "model_presence",
    "classify_additional_properties",
    "propagate_defaults",
    "Gatherer",
    "TypeClaim",
    "NameResolver",
    "assign_member_labels",
    "NamedType",
    "BodyType",
    "OperationBinding",
    "TypeModel",
]
