"""
Document loading for the resolution pipeline.

A ``DocumentSet`` is the root OpenAPI document plus every sibling document it
references, keyed by path relative to the root. Documents may be given as raw
bytes/str (JSON or YAML) or already parsed mappings; raw documents are parsed
lazily and memoized in a caller-owned ``DocumentCache``.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..errors import ErrorKind, TypeModelError

logger = logging.getLogger(__name__)


class DocumentLoadError(TypeModelError):
    """A document could not be read or parsed."""

    kind = ErrorKind.UNRESOLVED_REFERENCE


class DocumentCache:
    """Parsed documents keyed by path.

    Owned by the caller: build one, pass it to as many ``DocumentSet``
    instances as needed, and ``clear()`` it when the documents change.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        return self._documents.get(key)

    def put(self, key: str, document: dict[str, Any]) -> None:
        self._documents.setdefault(key, document)

    def clear(self) -> None:
        self._documents.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._documents

    def __len__(self) -> int:
        return len(self._documents)


def normalize_document_path(path: str) -> str:
    """Normalize a relative document path ("./a/../b.yaml" -> "b.yaml")."""
    if not path:
        return ""
    if "://" in path:
        return path
    return posixpath.normpath(path.replace("\\", "/"))


def join_document_path(base: str, relative: str) -> str:
    """Resolve ``relative`` against the document path ``base``."""
    if "://" in relative or not base:
        return normalize_document_path(relative)
    return normalize_document_path(posixpath.join(posixpath.dirname(base), relative))


def parse_document(raw: Any, path: str = "") -> dict[str, Any]:
    """Parse raw JSON/YAML content into a mapping."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if not isinstance(raw, str):
        raise DocumentLoadError(f"unsupported document content of type {type(raw).__name__}", path)
    try:
        # YAML is a superset of JSON, so one parser covers both
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise DocumentLoadError(f"invalid JSON/YAML: {e}", path) from e
    if not isinstance(parsed, dict):
        raise DocumentLoadError("document root is not a mapping", path)
    return parsed


@dataclass
class DocumentSet:
    """The root document and the sibling documents it references.

    Attributes:
        root: The root document (raw or parsed)
        documents: Relative path -> raw or parsed sibling document
        root_path: Path of the root document relative to the same base as
            ``documents`` (used to resolve relative references from the root)
        cache: Optional caller-owned cache of parsed documents
    """

    root: Any
    documents: dict[str, Any] = field(default_factory=dict)
    root_path: str = ""
    cache: DocumentCache | None = None

    def __post_init__(self) -> None:
        if self.root is None:
            raise DocumentLoadError("no root document", self.root_path or "#")
        self.root = parse_document(self.root, self.root_path)
        self.root_path = normalize_document_path(self.root_path)
        self.documents = {normalize_document_path(k): v for k, v in self.documents.items()}
        if self.cache is None:
            self.cache = DocumentCache()

    @property
    def openapi_version(self) -> str:
        return str(self.root.get("openapi", self.root.get("swagger", "")))

    def has(self, path: str) -> bool:
        path = normalize_document_path(path)
        return path in ("", self.root_path) or path in self.documents

    def get(self, path: str) -> dict[str, Any] | None:
        """Return the parsed document at ``path`` ("" is the root)."""
        path = normalize_document_path(path)
        if path in ("", self.root_path):
            return self.root
        if path not in self.documents:
            return None
        cached = self.cache.get(path)
        if cached is not None:
            return cached
        document = parse_document(self.documents[path], path)
        self.cache.put(path, document)
        return self.cache.get(path)

    @classmethod
    def from_file(cls, path: str | Path, cache: DocumentCache | None = None) -> DocumentSet:
        """Load a root document from disk together with every referenced sibling file.

        References are followed transitively; files that do not exist are
        skipped here and reported by the reference resolver.
        """
        root_file = Path(path)
        if not root_file.is_file():
            raise DocumentLoadError("root document not found", str(root_file))
        base_dir = root_file.parent
        root_key = root_file.name
        root = parse_document(root_file.read_bytes(), root_key)

        documents: dict[str, Any] = {}
        pending = [(root_key, root)]
        while pending:
            doc_path, document = pending.pop()
            for ref in sorted(_external_refs(document)):
                target = join_document_path(doc_path, ref.split("#", 1)[0])
                if target == root_key or target in documents or "://" in target:
                    continue
                target_file = base_dir / target
                if not target_file.is_file():
                    logger.warning("Referenced document %s not found (from %s)", target, doc_path)
                    continue
                logger.debug("Loading referenced document %s", target)
                parsed = parse_document(target_file.read_bytes(), target)
                documents[target] = parsed
                pending.append((target, parsed))

        return cls(root=root, documents=documents, root_path=root_key, cache=cache)


def _external_refs(node: Any) -> set[str]:
    """Collect every ``$ref`` value that points outside its own document."""
    refs: set[str] = set()
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            ref = current.get("$ref")
            if isinstance(ref, str) and not ref.startswith("#"):
                refs.add(ref)
            stack.extend(current.values())
        elif isinstance(current, list):
            stack.extend(current)
    return refs
