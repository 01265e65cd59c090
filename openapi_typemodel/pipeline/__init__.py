"""
Pipeline - OpenAPI schema resolution and type-model engine.

This module provides a multi-phase architecture for turning an OpenAPI
document into a resolved, named type model:

1. Phase 1 (Reference Resolver): Resolve $ref into an identity-stable graph
2. Phase 2 (Composition Resolver): Merge allOf, build oneOf/anyOf unions
3. Phase 3 (Nullability): Model required/nullable presence per field
4. Phase 4 (Additional Properties): Classify closed/open objects
5. Phase 5 (Defaults): Record per-field defaults
6. Phase 6 (Name Resolver): Assign unique names across namespaces
"""

from __future__ import annotations

from .analyzer import NamedType, OperationBinding, TypeModel
from .builder import TypeModelBuilder, build_type_model
from .config import NameSuffixConfig, ResolverConfig
from .document import DocumentCache, DocumentSet
from .errors import ErrorKind, ResolutionError, ResolutionFailed, TypeModelError

__all__ = [
    "TypeModelBuilder",
    "build_type_model",
    "ResolverConfig",
    "NameSuffixConfig",
    "DocumentCache",
    "DocumentSet",
    "TypeModel",
    "NamedType",
    "OperationBinding",
    "ErrorKind",
    "ResolutionError",
    "ResolutionFailed",
    "TypeModelError",
]
