"""
Nullability and optionality modeling.

Every field gets one of four presence states from two independent facts:
whether the enclosing schema requires it, and whether its schema (or the
referring site) admits null.
"""

from __future__ import annotations

import logging

from ..schema_ast.nodes import Field, FieldPresence, SchemaNode
from .reference_resolver import SchemaGraph

logger = logging.getLogger(__name__)


def admits_null(node: SchemaNode | None) -> bool:
    """Return True if a schema admits the JSON null value."""
    if node is None:
        return False
    if node.nullable:
        return True
    raw = node.raw
    if raw.get("nullable") is True or raw.get("x-nullable") is True:
        return True
    schema_type = raw.get("type")
    if isinstance(schema_type, list) and "null" in schema_type:
        return True
    enum = raw.get("enum")
    return isinstance(enum, list) and None in enum


def field_nullable(f: Field) -> bool:
    return f.site_nullable or admits_null(f.target)


def model_presence(graph: SchemaGraph) -> None:
    """Assign nullability and presence to every field in the graph."""
    count = 0
    for node in graph:
        for f in node.fields:
            f.required = f.name in node.required
            f.nullable = field_nullable(f)
            f.presence = FieldPresence.of(f.required, f.nullable)
            count += 1
    logger.debug("Modeled presence of %d fields", count)
