"""
Type-model builder.

Runs the resolution stages over a document set:

0. Gather: register schema roots of components and operations
1. Reference resolution: build the schema graph
2. Composition: allOf merge, unions, discriminators
3. Nullability and optionality
4. Additional-properties classification
5. Default propagation
6. Name collision resolution

Errors are collected across stages; if any were found, ``ResolutionFailed``
is raised with all of them and no model is returned.
"""

from __future__ import annotations

import logging
from typing import Any

from .analyzer import (
    CompositionResolver,
    Gatherer,
    NameResolver,
    ReferenceResolver,
    assign_member_labels,
    classify_additional_properties,
    model_presence,
    propagate_defaults,
)
from .analyzer.ir_nodes import NamedType, OperationBinding, TypeModel
from .config import ResolverConfig
from .document import DocumentCache, DocumentSet
from .errors import ErrorCollector, ErrorKind

logger = logging.getLogger(__name__)


class TypeModelBuilder:
    """Builds a ``TypeModel`` from an OpenAPI document set."""

    def __init__(self, documents: DocumentSet, config: ResolverConfig | None = None):
        """
        Initialize the builder.

        Args:
            documents: Root document and referenced sibling documents
            config: Resolution options (defaults when omitted)
        """
        self.documents = documents
        self.config = config if config is not None else ResolverConfig()

    def build(self) -> TypeModel:
        """
        Run every stage and return the type model.

        Returns:
            The resolved, named type model

        Raises:
            ResolutionFailed: If any stage reported an error
        """
        errors = ErrorCollector()
        resolver = ReferenceResolver(self.documents, errors)
        gatherer = Gatherer(resolver, self.config)

        gatherer.collect()
        resolver.build()
        graph = resolver.graph
        logger.debug("Schema graph has %d nodes", len(graph))

        CompositionResolver(graph, errors).resolve()
        model_presence(graph)
        classify_additional_properties(graph, self.config.default_additional_properties)
        propagate_defaults(graph)

        named_types = NameResolver(self.config, errors).resolve(gatherer.claims())
        by_node = {named.node.location: named for named in named_types}
        assign_member_labels(list(graph), {loc: named.name for loc, named in by_node.items()})

        references: dict[str, NamedType] = {}
        for key in sorted(resolver.references):
            node = resolver.references[key]
            if node.unresolved:
                continue
            named = by_node.get(node.location)
            if named is None:
                errors.add(ErrorKind.UNRESOLVED_REFERENCE, key, "reference target has no named type")
                continue
            references[key] = named

        errors.raise_if_any()

        operations = [
            OperationBinding(
                operation_id=site.operation_id,
                method=site.method,
                path=site.path,
                params=site.params,
                request_bodies=list(site.request_bodies),
                responses=list(site.responses),
            )
            for site in gatherer.operations
        ]
        logger.info("Resolved %d named types, %d operations", len(named_types), len(operations))
        return TypeModel(
            named_types,
            references=references,
            operations=operations,
            openapi_version=self.documents.openapi_version,
        )


def build_type_model(
    root: Any,
    documents: dict[str, Any] | None = None,
    config: ResolverConfig | None = None,
    root_path: str = "",
    cache: DocumentCache | None = None,
) -> TypeModel:
    """
    Build a type model from a root document and its sibling documents.

    Args:
        root: Parsed root document, or its raw JSON/YAML content
        documents: Relative path -> raw or parsed sibling document
        config: Resolution options
        root_path: Path of the root document relative to the sibling paths
        cache: Caller-owned cache of parsed documents

    Returns:
        The resolved type model
    """
    document_set = DocumentSet(root=root, documents=documents or {}, root_path=root_path, cache=cache)
    return TypeModelBuilder(document_set, config).build()
