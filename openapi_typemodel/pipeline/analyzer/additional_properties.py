"""
Additional-properties classification.
"""

from __future__ import annotations

import logging

from ..schema_ast.nodes import AdditionalPropertiesMode, NodeKind, SchemaNode
from .reference_resolver import SchemaGraph

logger = logging.getLogger(__name__)


def classify_node(node: SchemaNode, default_open: bool = True) -> AdditionalPropertiesMode:
    """
    Classify how an object schema treats undeclared keys.

    Args:
        node: Schema node after composition
        default_open: Mode used when additionalProperties is absent
            (True: open-any, False: closed)

    Returns:
        The additional-properties mode
    """
    if not node.has_additional_properties:
        return AdditionalPropertiesMode.OPEN_ANY if default_open else AdditionalPropertiesMode.CLOSED
    raw = node.additional_properties_raw
    if raw is False:
        return AdditionalPropertiesMode.CLOSED
    if isinstance(raw, dict) and raw and node.additional_properties is not None:
        return AdditionalPropertiesMode.OPEN_TYPED
    # true, or the empty schema {}
    return AdditionalPropertiesMode.OPEN_ANY


def classify_additional_properties(graph: SchemaGraph, default_open: bool = True) -> None:
    """Classify every object-like node and record its known field names."""
    for node in graph:
        if node.kind not in (NodeKind.OBJECT, NodeKind.MAP, NodeKind.UNION):
            continue
        mode = classify_node(node, default_open)
        node.additional_properties_mode = mode
        if mode is not AdditionalPropertiesMode.OPEN_TYPED:
            node.additional_properties = None
        elif node.kind is NodeKind.OBJECT and not node.fields and node.union is None:
            node.kind = NodeKind.MAP

        names = set(node.field_names)
        if node.union is not None:
            for member in node.union.members:
                names.update(member.field_names)
        node.known_field_names = frozenset(names)
        logger.debug("%s: additional properties %s", node.location, mode.value)
