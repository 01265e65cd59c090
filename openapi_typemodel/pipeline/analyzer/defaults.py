"""
Default propagation.

Records on each field the default declared at the field site (next to a
$ref) or, failing that, on the field's schema. Applying defaults to values
is the codec's job.
"""

from __future__ import annotations

import copy

from .reference_resolver import SchemaGraph


def propagate_defaults(graph: SchemaGraph) -> None:
    for node in graph:
        for f in node.fields:
            if f.has_site_default:
                f.default = copy.deepcopy(f.site_default)
                f.has_default = True
            elif f.target is not None and f.target.has_default:
                f.default = copy.deepcopy(f.target.default)
                f.has_default = True
            else:
                f.default = None
                f.has_default = False
