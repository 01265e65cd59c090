"""
Schema graph module.

Contains the node types shared by every resolution stage.
"""

from __future__ import annotations

from .nodes import (
    AdditionalPropertiesMode,
    DiscriminatorDescriptor,
    DiscriminatorView,
    Field,
    FieldPresence,
    Namespace,
    NodeKind,
    SchemaNode,
    UnionDescriptor,
    UnionExclusivity,
    UnionOrigin,
)

__all__ = [
    "AdditionalPropertiesMode",
    "DiscriminatorDescriptor",
    "DiscriminatorView",
    "Field",
    "FieldPresence",
    "Namespace",
    "NodeKind",
    "SchemaNode",
    "UnionDescriptor",
    "UnionExclusivity",
    "UnionOrigin",
]
