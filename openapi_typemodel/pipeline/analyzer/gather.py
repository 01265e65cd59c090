"""
Gathering of the schemas that need named types.

Walks components and operations of the root document in a stable order.
``collect()`` registers every schema root in the graph before it is built
(and synthesizes one parameters object per operation); ``claims()`` runs
after composition and produces the ordered list of naming claims, including
names for nested inline types.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterator

from ...utils import content_type_suffix, join_pointer, split_pointer, to_type_name
from ..config import ResolverConfig
from ..schema_ast.nodes import Field, Namespace, NodeKind, SchemaNode, UnionExclusivity
from .ir_nodes import BodyType
from .reference_resolver import COMPONENT_SCHEMAS_POINTER, ReferenceResolver, make_location, mapping_ref

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

# Parameter locations that become fields of the operation parameters object
_PARAMS_OBJECT_LOCATIONS = ("query", "header", "cookie")

_COMPONENT_SECTIONS = (
    ("parameters", Namespace.PARAMETER),
    ("requestBodies", Namespace.REQUEST_BODY),
    ("responses", Namespace.RESPONSE),
)


@dataclass
class TypeClaim:
    """A request for a named type, in claim order."""

    node: SchemaNode
    candidate: str
    namespace: Namespace
    origin: str  # Location the name derives from
    operation_id: str | None = None
    role: str = ""
    privileged: bool = False  # Component schemas keep their bare name


@dataclass
class OperationSite:
    """Schemas bound to one operation."""

    operation_id: str
    method: str
    path: str
    params: SchemaNode | None = None
    path_params: list[Field] = field(default_factory=list)
    request_bodies: list[BodyType] = field(default_factory=list)
    responses: list[BodyType] = field(default_factory=list)


def needs_name(node: SchemaNode) -> bool:
    """Return True for schemas rendered as named types."""
    if node.unresolved:
        return False
    return node.component_name is not None or node.kind in (NodeKind.OBJECT, NodeKind.UNION, NodeKind.ENUM)


def operation_name(operation: dict[str, Any], method: str, path: str) -> str:
    """Operation id, or one derived from method and path."""
    op_id = operation.get("operationId")
    if isinstance(op_id, str) and op_id:
        return op_id
    return f"{method} {path}"


def operation_has_tag(operation: dict[str, Any], tags: list[str]) -> bool:
    """Return True if the operation is tagged with any of ``tags``."""
    op_tags = operation.get("tags")
    return isinstance(op_tags, list) and any(t in tags for t in op_tags)


def component_location(document: str, pointer: str) -> str | None:
    """Location of the root-document component containing a position, if any."""
    tokens = split_pointer(pointer)
    if document or len(tokens) < 3 or tokens[0] != "components":
        return None
    return make_location("", join_pointer("", *tokens[:3]))


def _status_part(status: str) -> str:
    return status.upper() if status[:1].isdigit() else to_type_name(status)


class Gatherer:
    """Collects schema roots, operations and naming claims of a document."""

    def __init__(self, resolver: ReferenceResolver, config: ResolverConfig):
        self.resolver = resolver
        self.config = config
        self.operations: list[OperationSite] = []

        # Schema roots in claim order (claims are computed once kinds are known)
        self._roots: list[TypeClaim] = []

        # Components reachable from the operations, when pruning
        self._used: set[str] | None = None

    # ------------------------------------------------------------------
    # Collection (before the graph is built)
    # ------------------------------------------------------------------

    def collect(self) -> None:
        """Register every schema reachable from components and operations."""
        operations = list(self._operations())
        if self.config.prune_unused_components:
            self._used = self._used_components(operations)
        self._collect_component_schemas()
        self._collect_components()
        for path, method, item, operation in operations:
            self._collect_operation(path, method, item, operation)
        logger.debug("Gathered %d roots and %d operations", len(self._roots), len(self.operations))

    def _pruned(self, pointer: str) -> bool:
        if self._used is None or make_location("", pointer) in self._used:
            return False
        logger.debug("Pruning unused component %s", pointer)
        return True

    def _collect_component_schemas(self) -> None:
        schemas = self.resolver.lookup("", COMPONENT_SCHEMAS_POINTER)
        if not isinstance(schemas, dict):
            return
        for name in sorted(schemas):
            pointer = join_pointer(COMPONENT_SCHEMAS_POINTER, name)
            if self._pruned(pointer):
                continue
            node = self.resolver.schema_at(schemas[name], "", pointer)
            self._roots.append(
                TypeClaim(
                    node=node,
                    candidate=to_type_name(name),
                    namespace=Namespace.SCHEMA,
                    origin=make_location("", pointer),
                    privileged=node.location == make_location("", pointer),
                )
            )

    def _collect_components(self) -> None:
        for section, namespace in _COMPONENT_SECTIONS:
            components = self.resolver.lookup("", f"/components/{section}")
            if not isinstance(components, dict):
                continue
            for name in sorted(components):
                pointer = join_pointer(f"/components/{section}", name)
                if self._pruned(pointer):
                    continue
                value = components[name]
                for node in self._component_schemas(value, "", pointer, section):
                    self._roots.append(
                        TypeClaim(
                            node=node,
                            candidate=to_type_name(name),
                            namespace=namespace,
                            origin=make_location("", pointer),
                        )
                    )

    def _component_schemas(self, value: Any, doc: str, pointer: str, section: str) -> list[SchemaNode]:
        """Schemas of a component parameter, request body or response."""
        if isinstance(value, dict) and isinstance(value.get("$ref"), str):
            resolved = self.resolver.resolve_object(value["$ref"], doc, make_location(doc, pointer))
            if resolved is None:
                return []
            value, doc, pointer = resolved.value, resolved.document, resolved.pointer
        if not isinstance(value, dict):
            return []
        if section == "parameters":
            node = self._parameter_schema(value, doc, pointer)
            return [node] if node is not None else []
        return [node for _, node in self._content_schemas(value, doc, pointer)]

    def _parameter_schema(self, param: dict[str, Any], doc: str, pointer: str) -> SchemaNode | None:
        if "schema" in param:
            return self.resolver.schema_at(param["schema"], doc, join_pointer(pointer, "schema"))
        content = param.get("content")
        if isinstance(content, dict):
            for content_type in sorted(content):
                media = content[content_type]
                if isinstance(media, dict) and "schema" in media:
                    return self.resolver.schema_at(
                        media["schema"], doc, join_pointer(pointer, "content", content_type, "schema")
                    )
        return None

    def _content_schemas(self, value: dict[str, Any], doc: str, pointer: str) -> list[tuple[str, SchemaNode]]:
        """Schemas of the matching media types of a request body or response."""
        content = value.get("content")
        if not isinstance(content, dict):
            return []
        result = []
        for content_type in sorted(content):
            if not self.config.matches_content_type(content_type):
                logger.debug("Skipping %s body at %s", content_type, pointer)
                continue
            media = content[content_type]
            if isinstance(media, dict) and "schema" in media:
                node = self.resolver.schema_at(
                    media["schema"], doc, join_pointer(pointer, "content", content_type, "schema")
                )
                result.append((content_type, node))
        return result

    def _operations(self) -> Iterator[tuple[str, str, dict, dict]]:
        """Operations of the root document that pass the tag filters, in path order."""
        paths = self.resolver.lookup("", "/paths")
        if not isinstance(paths, dict):
            return
        for path in sorted(paths):
            item = paths[path]
            item_pointer = join_pointer("/paths", path)
            if isinstance(item, dict) and isinstance(item.get("$ref"), str):
                resolved = self.resolver.resolve_object(item["$ref"], "", make_location("", item_pointer))
                if resolved is None:
                    continue
                item = resolved.value
            if not isinstance(item, dict):
                continue
            for method in HTTP_METHODS:
                operation = item.get(method)
                if not isinstance(operation, dict):
                    continue
                if not self._keeps_operation(operation):
                    logger.debug("Skipping %s %s by tag", method, path)
                    continue
                yield path, method, item, operation

    def _keeps_operation(self, operation: dict[str, Any]) -> bool:
        if self.config.exclude_tags and operation_has_tag(operation, self.config.exclude_tags):
            return False
        return not self.config.include_tags or operation_has_tag(operation, self.config.include_tags)

    def _used_components(self, operations: list[tuple[str, str, dict, dict]]) -> set[str]:
        """
        Locations of the root-document components reachable from the operations.

        Every $ref and discriminator mapping value is followed, across
        documents. A component schema that extends a reachable discriminated
        schema through allOf is one of its variants and is reachable as well.
        """
        used: set[str] = set()
        visited: set[str] = set()
        self._walk_refs(
            [(value, "") for _, _, item, operation in operations for value in (item.get("parameters"), operation)],
            used,
            visited,
        )

        schemas = self.resolver.lookup("", COMPONENT_SCHEMAS_POINTER)
        if not isinstance(schemas, dict):
            return used
        changed = True
        while changed:
            changed = False
            for name in sorted(schemas):
                location = make_location("", join_pointer(COMPONENT_SCHEMAS_POINTER, name))
                if location not in used and self._extends_used_base(schemas[name], used):
                    used.add(location)
                    self._walk_refs([(schemas[name], "")], used, visited)
                    changed = True
        return used

    def _walk_refs(self, values: list[tuple[Any, str]], used: set[str], visited: set[str]) -> None:
        stack = list(values)
        while stack:
            value, doc = stack.pop()
            if isinstance(value, list):
                stack.extend((v, doc) for v in value)
                continue
            if not isinstance(value, dict):
                continue
            refs = [value["$ref"]] if isinstance(value.get("$ref"), str) else []
            discriminator = value.get("discriminator")
            if isinstance(discriminator, dict) and isinstance(discriminator.get("mapping"), dict):
                refs.extend(mapping_ref(t) for t in discriminator["mapping"].values() if isinstance(t, str))
            for ref in refs:
                document, pointer = self.resolver.parse_ref(ref, doc)
                location = make_location(document, pointer)
                if location in visited:
                    continue
                visited.add(location)
                component = component_location(document, pointer)
                if component is not None:
                    used.add(component)
                stack.append((self.resolver.lookup(document, pointer), document))
            stack.extend((v, doc) for k, v in value.items() if k != "$ref")

    def _extends_used_base(self, raw: Any, used: set[str]) -> bool:
        all_of = raw.get("allOf") if isinstance(raw, dict) else None
        if not isinstance(all_of, list):
            return False
        for member in all_of:
            ref = member.get("$ref") if isinstance(member, dict) else None
            if not isinstance(ref, str):
                continue
            document, pointer = self.resolver.parse_ref(ref, "")
            base = self.resolver.lookup(document, pointer)
            if component_location(document, pointer) in used and isinstance(base, dict) and "discriminator" in base:
                return True
        return False

    def _collect_operation(self, path: str, method: str, item: dict, operation: dict) -> None:
        op_id = operation_name(operation, method, path)
        op_name = to_type_name(op_id)
        pointer = join_pointer("/paths", path, method)
        suffixes = self.config.suffixes
        site = OperationSite(operation_id=op_id, method=method, path=path)

        # Operation-level parameters override path-level ones by (name, in)
        params: dict[tuple[str, str], tuple[dict, str, str]] = {}
        for owner, owner_pointer in ((item, join_pointer("/paths", path)), (operation, pointer)):
            for i, param in enumerate(owner.get("parameters") or []):
                resolved = self._resolve_parameter(param, join_pointer(owner_pointer, "parameters", i))
                if resolved is not None:
                    params[(resolved[0]["name"], resolved[0].get("in", "query"))] = resolved

        params_node = SchemaNode(location=make_location("", join_pointer(pointer, "parameters")))
        params_node.kind = NodeKind.OBJECT
        for (name, location), (param, doc, param_pointer) in params.items():
            target = self._parameter_schema(param, doc, param_pointer)
            if target is None:
                target = self.resolver.node_for(doc, join_pointer(param_pointer, "schema"), {})
            required = location == "path" or param.get("required") is True
            f = Field(name=name, target=target, required=required, source=params_node.location)
            if location in _PARAMS_OBJECT_LOCATIONS:
                params_node.fields.append(f)
                if required:
                    params_node.required.add(name)
            else:
                site.path_params.append(f)

        if params_node.fields:
            params_node = self.resolver.graph.add(params_node)
            site.params = params_node
            self._roots.append(
                TypeClaim(
                    node=params_node,
                    candidate=op_name + suffixes.operation_params,
                    namespace=Namespace.PARAMETER,
                    origin=params_node.location,
                    operation_id=op_id,
                    role="params",
                )
            )

        body = operation.get("requestBody")
        if isinstance(body, dict):
            body_doc, body_pointer = "", join_pointer(pointer, "requestBody")
            if isinstance(body.get("$ref"), str):
                resolved = self.resolver.resolve_object(body["$ref"], "", make_location("", body_pointer))
                body = resolved.value if resolved is not None else {}
                if resolved is not None:
                    body_doc, body_pointer = resolved.document, resolved.pointer
            bodies = self._content_schemas(body, body_doc, body_pointer) if isinstance(body, dict) else []
            for content_type, node in bodies:
                site.request_bodies.append(BodyType(content_type, node))
                ct = content_type_suffix(content_type) if len(bodies) > 1 else ""
                self._roots.append(
                    TypeClaim(
                        node=node,
                        candidate=op_name + ct + suffixes.operation_request,
                        namespace=Namespace.REQUEST_BODY,
                        origin=make_location(body_doc, body_pointer),
                        operation_id=op_id,
                        role="request",
                    )
                )

        responses = operation.get("responses")
        if isinstance(responses, dict):
            collected: list[tuple[str, str, SchemaNode, str, str]] = []
            for status in sorted(str(s) for s in responses):
                response = responses.get(status, responses.get(int(status)) if status.isdigit() else None)
                resp_doc, resp_pointer = "", join_pointer(pointer, "responses", status)
                if isinstance(response, dict) and isinstance(response.get("$ref"), str):
                    resolved = self.resolver.resolve_object(response["$ref"], "", make_location("", resp_pointer))
                    if resolved is None:
                        continue
                    response, resp_doc, resp_pointer = resolved.value, resolved.document, resolved.pointer
                if not isinstance(response, dict):
                    continue
                bodies = self._content_schemas(response, resp_doc, resp_pointer)
                for content_type, node in bodies:
                    ct = content_type_suffix(content_type) if len(bodies) > 1 else ""
                    collected.append((status, content_type, node, ct, make_location(resp_doc, resp_pointer)))

            several = len({status for status, *_ in collected}) > 1
            for status, content_type, node, ct, origin in collected:
                site.responses.append(BodyType(content_type, node, status))
                self._roots.append(
                    TypeClaim(
                        node=node,
                        candidate=op_name + (_status_part(status) if several else "") + ct + suffixes.operation_response,
                        namespace=Namespace.RESPONSE,
                        origin=origin,
                        operation_id=op_id,
                        role="response",
                    )
                )

        self.operations.append(site)

    def _resolve_parameter(self, param: Any, pointer: str) -> tuple[dict, str, str] | None:
        doc = ""
        if isinstance(param, dict) and isinstance(param.get("$ref"), str):
            resolved = self.resolver.resolve_object(param["$ref"], "", make_location("", pointer))
            if resolved is None:
                return None
            param, doc, pointer = resolved.value, resolved.document, resolved.pointer
        if not isinstance(param, dict) or not isinstance(param.get("name"), str):
            return None
        return param, doc, pointer

    # ------------------------------------------------------------------
    # Claims (after composition)
    # ------------------------------------------------------------------

    def claims(self) -> list[TypeClaim]:
        """
        Produce the ordered naming claims.

        Each node is claimed at most once, by the first root (or nested
        position) that reaches it. Nested inline types are named after
        their parent.

        Returns:
            Claims in deterministic order
        """
        claimed: dict[str, TypeClaim] = {}
        result: list[TypeClaim] = []

        def claim(c: TypeClaim) -> None:
            if c.node.location not in claimed:
                claimed[c.node.location] = c
                result.append(c)

        for root in self._roots:
            if root.node.location in claimed:
                continue
            if root.node.component_name is not None and not root.privileged:
                # A $ref to a component schema, named by that component
                continue
            if needs_name(root.node):
                claim(root)
            self._claim_nested(root, claim, claimed)

        # Reference targets not reached from any root
        for key in sorted(self.resolver.references):
            node = self.resolver.references[key]
            if node.unresolved or node.location in claimed:
                continue
            last = key.rsplit("/", 1)[-1]
            c = TypeClaim(
                node=node,
                candidate=to_type_name(node.component_name or last),
                namespace=Namespace.SCHEMA,
                origin=node.location,
                privileged=node.component_name is not None,
            )
            claim(c)
            self._claim_nested(c, claim, claimed)
        return result

    def _claim_nested(self, root: TypeClaim, claim, claimed: dict[str, TypeClaim]) -> None:
        """Claim names for inline types nested under ``root``."""
        queue: deque[tuple[SchemaNode, str]] = deque([(root.node, root.candidate)])
        seen: set[str] = set()
        while queue:
            node, base = queue.popleft()
            if node.location in seen:
                continue
            seen.add(node.location)
            for child, suffix in self._children(node):
                if child.unresolved or child.location in seen:
                    continue
                if child.component_name is not None or child.location in claimed:
                    # Named by its own root
                    continue
                name = base + suffix
                if needs_name(child):
                    claim(
                        TypeClaim(
                            node=child,
                            candidate=name,
                            namespace=root.namespace,
                            origin=child.location,
                            operation_id=root.operation_id,
                            role=root.role,
                        )
                    )
                queue.append((child, name))

    @staticmethod
    def _children(node: SchemaNode) -> list[tuple[SchemaNode, str]]:
        children: list[tuple[SchemaNode, str]] = []
        for f in node.fields:
            if f.target is not None:
                children.append((f.target, to_type_name(f.name)))
        if node.items is not None:
            children.append((node.items, "Item"))
        if node.additional_properties is not None:
            children.append((node.additional_properties, "AdditionalProperties"))
        if node.union is not None:
            keyword = "OneOf" if node.union.exclusivity is UnionExclusivity.EXACTLY_ONE else "AnyOf"
            for i, member in enumerate(node.union.members):
                children.append((member, f"{keyword}{i}"))
        return children
