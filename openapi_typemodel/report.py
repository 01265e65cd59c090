"""
Markdown report of a type model.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jinja2

from .pipeline.analyzer.ir_nodes import NamedType, TypeModel
from .pipeline.schema_ast.nodes import NodeKind


class ModelReportRenderer:
    """Renders a type model as a Markdown summary."""

    TEMPLATE_NAME = "report.md.jinja2"

    def __init__(self, header: str = ""):
        """
        Initialize the renderer.

        Args:
            header: Command line (or other text) shown at the top of the report
        """
        self.header = header
        self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent / "templates"
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
        )
        self.jinja_env.filters["code"] = self._code
        self.template = self.jinja_env.get_template(self.TEMPLATE_NAME)

    @staticmethod
    def _code(value: Any) -> str:
        """Format a value as inline Markdown code."""
        text = value if isinstance(value, str) else repr(value)
        return f"`{text}`"

    def _type_context(self, model: TypeModel, named: NamedType) -> dict[str, Any]:
        node = named.node
        context: dict[str, Any] = {
            "name": named.name,
            "namespace": named.namespace.value,
            "kind": node.kind.value if node.kind else "any",
            "origin": named.origin,
            "operation": named.operation_id,
            "overridden": named.overridden,
            "nullable": node.nullable,
            "enum_values": node.enum_values if node.kind is NodeKind.ENUM else [],
            "structure": model.describe_structure(node)
            if node.kind in (NodeKind.PRIMITIVE, NodeKind.ARRAY, NodeKind.MAP)
            else "",
            "additional_properties": node.additional_properties_mode.value
            if node.additional_properties_mode is not None
            else "",
            "fields": [
                {
                    "name": f.name,
                    "type": model.describe(f.target),
                    "presence": f.presence.value if f.presence else "",
                    "default": f.default,
                    "has_default": f.has_default,
                }
                for f in node.fields
            ],
            "union": None,
            "views": [
                {"union": model.describe(v.union), "property": v.property_name, "tag": v.tag}
                for v in node.discriminator_views
            ],
        }
        if node.union is not None:
            union = node.union
            discriminator = union.discriminator
            context["union"] = {
                "exclusivity": union.exclusivity.value,
                "origin": union.origin.value,
                "property": discriminator.property_name if discriminator else None,
                "members": [
                    {
                        "label": label,
                        "type": model.describe(member),
                        "tag": discriminator.tag_for(member) if discriminator else None,
                    }
                    for label, member in zip(union.member_labels, union.members)
                ],
            }
        return context

    def render(self, model: TypeModel) -> str:
        """
        Render the report.

        Args:
            model: The type model

        Returns:
            Markdown text
        """
        operations = [
            {
                "operation_id": op.operation_id,
                "method": op.method.upper(),
                "path": op.path,
                "params": model.describe(op.params) if op.params is not None else "",
                "request_bodies": [(b.content_type, model.describe(b.node)) for b in op.request_bodies],
                "responses": [(b.status, b.content_type, model.describe(b.node)) for b in op.responses],
            }
            for op in model.operations
        ]
        return self.template.render(
            header=self.header,
            openapi_version=model.openapi_version,
            types=[self._type_context(model, named) for named in model.named_types],
            operations=operations,
        )
