"""
Utility functions for naming and JSON pointer handling.
"""

import re
from urllib.parse import unquote

# Regex pattern to split text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[a-z]+|[A-Z][a-z]*|[0-9]+")

# Media type fragments and the suffix each one contributes to a type name
_CONTENT_TYPE_SUFFIXES = (
    ("json", "JSON"),
    ("xml", "XML"),
    ("form", "Form"),
    ("text", "Text"),
    ("octet", "Binary"),
    ("yaml", "YAML"),
)


def _normalize_separators(text: str) -> str:
    """Normalize separators (underscores, hyphens, dots, slashes...) to spaces."""
    return re.sub(r"[^A-Za-z0-9]+", " ", text)


def _split_into_words(text: str) -> list[str]:
    """Split text into words, handling camelCase boundaries."""
    return _WORD_PATTERN.findall(text)


def _capitalize_and_join(words: list[str]) -> str:
    """Capitalize the first letter of each word and join them together."""
    return "".join(word[0].upper() + word[1:] for word in words if word)


def to_type_name(text: str) -> str:
    """Convert a component name or operation id to a PascalCase type name.

    Examples:
        "pet_type" -> "PetType"
        "postFoo" -> "PostFoo"
        "get /pets/{id}" -> "GetPetsId"
        "404" -> "N404"

    Args:
        text: The text to convert

    Returns:
        PascalCase identifier, never starting with a digit
    """
    if not text:
        return ""
    words = _split_into_words(_normalize_separators(text))
    result = _capitalize_and_join(words)
    if result and result[0].isdigit():
        result = "N" + result
    return result


def content_type_suffix(content_type: str) -> str:
    """Return a short type-name suffix for a media type."""
    if not content_type:
        return ""
    lowered = content_type.lower()
    for fragment, suffix in _CONTENT_TYPE_SUFFIXES:
        if fragment in lowered:
            return suffix
    return to_type_name(lowered)


def escape_pointer_token(token: str) -> str:
    """Escape a single JSON pointer reference token (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


def unescape_pointer_token(token: str) -> str:
    """Unescape a single JSON pointer reference token (RFC 6901)."""
    return unquote(token).replace("~1", "/").replace("~0", "~")


def join_pointer(pointer: str, *tokens: str | int) -> str:
    """Append reference tokens to a JSON pointer."""
    return pointer + "".join("/" + escape_pointer_token(str(t)) for t in tokens)


def split_pointer(pointer: str) -> list[str]:
    """Split a JSON pointer into unescaped reference tokens."""
    if not pointer or pointer == "/":
        return []
    return [unescape_pointer_token(t) for t in pointer.lstrip("/").split("/")]
