"""
Document module.

Holds the root OpenAPI document and its referenced sibling documents.
"""

from __future__ import annotations

from .loader import DocumentCache, DocumentLoadError, DocumentSet, parse_document

__all__ = [
    "DocumentCache",
    "DocumentLoadError",
    "DocumentSet",
    "parse_document",
]
