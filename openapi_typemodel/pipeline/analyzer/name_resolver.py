"""
Name collision resolution.

Turns the ordered naming claims into final, unique type names:

1. Overrides (schema extensions or configured substitutions) are fixed.
2. Component schemas keep their bare name.
3. Other claimants whose name is taken get their namespace suffix
   ("Parameter", "RequestBody", "Response").
4. Anything still colliding gets a numeric suffix (2, 3, ...) in claim order.
"""

from __future__ import annotations

import logging

from ..config import ResolverConfig
from ..errors import ErrorCollector, ErrorKind
from ..schema_ast.nodes import Namespace, NodeKind, SchemaNode
from .gather import TypeClaim
from .ir_nodes import NamedType

logger = logging.getLogger(__name__)


class NameResolver:
    """Assigns unique names to claimed types."""

    def __init__(self, config: ResolverConfig, errors: ErrorCollector):
        self.config = config
        self.errors = errors
        # Scope -> name -> claimant
        self._scopes: dict[str, dict[str, NamedType]] = {}

    def _scope(self, namespace: Namespace) -> dict[str, NamedType]:
        key = "" if self.config.shared_name_scope else namespace.value
        return self._scopes.setdefault(key, {})

    def _namespace_suffix(self, namespace: Namespace) -> str:
        suffixes = self.config.suffixes
        return {
            Namespace.SCHEMA: "",
            Namespace.PARAMETER: suffixes.parameter,
            Namespace.REQUEST_BODY: suffixes.request_body,
            Namespace.RESPONSE: suffixes.response,
        }[namespace]

    def _override(self, claim: TypeClaim) -> str | None:
        if claim.node.name_override:
            return claim.node.name_override
        return self.config.name_substitutions.get(claim.candidate)

    def resolve(self, claims: list[TypeClaim]) -> list[NamedType]:
        """
        Resolve claims into named types.

        Args:
            claims: Naming claims in deterministic order

        Returns:
            Named types in claim order
        """
        named: dict[int, NamedType] = {}

        # Overrides first, they are never renamed
        for i, claim in enumerate(claims):
            override = self._override(claim)
            if override is None:
                continue
            scope = self._scope(claim.namespace)
            if override in scope:
                other = scope[override]
                self.errors.add(
                    ErrorKind.NAME_COLLISION_UNRESOLVABLE,
                    claim.origin,
                    f"override name {override!r} is also claimed by {other.origin}",
                )
                continue
            named[i] = scope[override] = self._named(claim, override, overridden=True)

        # Component schemas keep their bare name when possible
        for i, claim in enumerate(claims):
            if i in named or not claim.privileged:
                continue
            named[i] = self._take(claim, claim.candidate)

        for i, claim in enumerate(claims):
            if i in named or self._override(claim) is not None:
                continue
            name = claim.candidate
            scope = self._scope(claim.namespace)
            suffix = self._namespace_suffix(claim.namespace)
            if name in scope and suffix and not name.endswith(suffix):
                name += suffix
            named[i] = self._take(claim, name)

        result = [named[i] for i in sorted(named)]
        for named_type in result:
            logger.debug("%s -> %s", named_type.node.location, named_type.name)
        return result

    def _take(self, claim: TypeClaim, name: str) -> NamedType:
        scope = self._scope(claim.namespace)
        final = name
        n = 2
        while final in scope:
            final = f"{name}{n}"
            n += 1
        if final != claim.candidate:
            logger.debug("Renamed %s from %s to %s", claim.origin, claim.candidate, final)
        named_type = scope[final] = self._named(claim, final)
        return named_type

    @staticmethod
    def _named(claim: TypeClaim, name: str, overridden: bool = False) -> NamedType:
        return NamedType(
            node=claim.node,
            name=name,
            namespace=claim.namespace,
            origin=claim.origin,
            operation_id=claim.operation_id,
            role=claim.role,
            overridden=overridden,
        )


def assign_member_labels(nodes: list[SchemaNode], names: dict[str, str]) -> None:
    """
    Label the members of every union.

    Named members are labeled with their type name, anonymous members with
    their schema type ("string", "array"...), numbered on duplicates.
    """
    for node in nodes:
        if node.union is None:
            continue
        labels: list[str] = []
        for member in node.union.members:
            label = names.get(member.location)
            if label is None:
                if member.kind is NodeKind.PRIMITIVE and member.type_name:
                    label = member.type_name
                else:
                    label = member.kind.value if member.kind else "any"
            base, n = label, 2
            while label in labels:
                label = f"{base}{n}"
                n += 1
            labels.append(label)
        node.union.member_labels = labels
