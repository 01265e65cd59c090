"""
Configuration for the type-model pipeline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


def default_content_types() -> list[str]:
    """Media type patterns for which request/response bodies get types."""
    return [
        r"^application/json$",
        r"^application/.*\+json$",
    ]


@dataclass
class NameSuffixConfig:
    """Suffixes used when naming operation types and settling collisions."""

    # Appended to the synthesized per-operation parameters object
    operation_params: str = "Params"

    # Appended to inline request/response bodies of an operation
    operation_request: str = "Request"
    operation_response: str = "Response"

    # Appended to a colliding type according to its namespace
    parameter: str = "Parameter"
    request_body: str = "RequestBody"
    response: str = "Response"


@dataclass
class ResolverConfig:
    """Configuration options for type-model resolution."""

    # Whether the four namespaces render into one scope (names unique
    # across all of them) or each namespace is its own scope
    shared_name_scope: bool = True

    # Regex patterns of media types whose bodies are gathered
    content_types: list[str] = field(default_factory=default_content_types)

    # Candidate type name -> replacement name
    name_substitutions: dict[str, str] = field(default_factory=dict)

    # Mode used for object schemas that do not declare additionalProperties
    default_additional_properties: bool = True

    # Operations tagged with any of these are skipped
    exclude_tags: list[str] = field(default_factory=list)

    # When set, only operations tagged with one of these are gathered
    include_tags: list[str] = field(default_factory=list)

    # Drop components that the gathered operations never reach
    prune_unused_components: bool = False

    # Suffixes for operation and collision naming
    suffixes: NameSuffixConfig = field(default_factory=NameSuffixConfig)

    def __post_init__(self) -> None:
        self._content_type_patterns = [re.compile(p) for p in self.content_types]

    def matches_content_type(self, content_type: str) -> bool:
        """Return True if a media type matches one of the configured patterns."""
        media_type = content_type.split(";", 1)[0].strip().lower()
        return any(p.search(media_type) for p in self._content_type_patterns)

    @staticmethod
    def from_dict(d: dict) -> ResolverConfig:
        """Create a config from a dictionary."""
        config = ResolverConfig()
        for k, v in d.items():
            if k == "suffixes" and isinstance(v, dict):
                config.suffixes = NameSuffixConfig(**v)
            elif hasattr(config, k) and not k.startswith("_"):
                setattr(config, k, v)
        config.__post_init__()
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "shared_name_scope": self.shared_name_scope,
            "content_types": list(self.content_types),
            "name_substitutions": dict(self.name_substitutions),
            "default_additional_properties": self.default_additional_properties,
            "exclude_tags": list(self.exclude_tags),
            "include_tags": list(self.include_tags),
            "prune_unused_components": self.prune_unused_components,
            "suffixes": {
                "operation_params": self.suffixes.operation_params,
                "operation_request": self.suffixes.operation_request,
                "operation_response": self.suffixes.operation_response,
                "parameter": self.suffixes.parameter,
                "request_body": self.suffixes.request_body,
                "response": self.suffixes.response,
            },
        }
