"""
Error kinds and exceptions raised while building or using a type model.

Resolution stages collect ``ResolutionError`` records instead of failing on
the first problem; the builder raises them together as ``ResolutionFailed``.
Each kind also has an exception class, used for fail-fast conditions and by
the value codec at encode/decode time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Kind of structural or value error."""

    UNRESOLVED_REFERENCE = "UnresolvedReference"
    CYCLIC_UNSUPPORTED = "CyclicUnsupported"
    AMBIGUOUS_UNION_MATCH = "AmbiguousUnionMatch"
    DISCRIMINATOR_TAG_UNKNOWN = "DiscriminatorTagUnknown"
    ADDITIONAL_PROPERTY_TYPE_MISMATCH = "AdditionalPropertyTypeMismatch"
    NAME_COLLISION_UNRESOLVABLE = "NameCollisionUnresolvable"
    INCOMPATIBLE_COMPOSITION = "IncompatibleComposition"
    VALUE_MISMATCH = "ValueMismatch"


class TypeModelError(Exception):
    """Base class for every error raised by this package."""

    kind: ErrorKind = ErrorKind.VALUE_MISMATCH

    def __init__(self, message: str, location: str = ""):
        super().__init__(f"{location}: {message}" if location else message)
        self.message = message
        self.location = location


class UnresolvedReferenceError(TypeModelError):
    kind = ErrorKind.UNRESOLVED_REFERENCE


class CyclicUnsupportedError(TypeModelError):
    kind = ErrorKind.CYCLIC_UNSUPPORTED


class IncompatibleCompositionError(TypeModelError):
    kind = ErrorKind.INCOMPATIBLE_COMPOSITION


class NameCollisionUnresolvableError(TypeModelError):
    kind = ErrorKind.NAME_COLLISION_UNRESOLVABLE


class ValueMismatchError(TypeModelError, ValueError):
    """A value does not fit the type it is encoded or decoded as."""

    kind = ErrorKind.VALUE_MISMATCH


class AmbiguousUnionMatchError(ValueMismatchError):
    kind = ErrorKind.AMBIGUOUS_UNION_MATCH


class DiscriminatorTagUnknownError(ValueMismatchError):
    kind = ErrorKind.DISCRIMINATOR_TAG_UNKNOWN


class AdditionalPropertyTypeMismatchError(ValueMismatchError):
    kind = ErrorKind.ADDITIONAL_PROPERTY_TYPE_MISMATCH


_EXCEPTIONS: dict[ErrorKind, type[TypeModelError]] = {
    cls.kind: cls
    for cls in (
        UnresolvedReferenceError,
        CyclicUnsupportedError,
        IncompatibleCompositionError,
        NameCollisionUnresolvableError,
        ValueMismatchError,
        AmbiguousUnionMatchError,
        DiscriminatorTagUnknownError,
        AdditionalPropertyTypeMismatchError,
    )
}


@dataclass(frozen=True)
class ResolutionError:
    """A structural problem found while resolving a document."""

    kind: ErrorKind
    location: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.location}: {self.message}"

    def to_exception(self) -> TypeModelError:
        return _EXCEPTIONS[self.kind](self.message, self.location)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "location": self.location, "message": self.message}


class ResolutionFailed(TypeModelError):
    """Raised when resolution collected one or more errors.

    Attributes:
        errors: Every collected error, in discovery order
    """

    def __init__(self, errors: list[ResolutionError]):
        self.errors = list(errors)
        lines = "\n".join(f"  {e}" for e in self.errors)
        super().__init__(f"{len(self.errors)} resolution error(s):\n{lines}")
        self.kind = self.errors[0].kind if self.errors else ErrorKind.VALUE_MISMATCH


class ErrorCollector:
    """Ordered, de-duplicated list of resolution errors."""

    def __init__(self) -> None:
        self._errors: list[ResolutionError] = []
        self._seen: set[ResolutionError] = set()

    def add(self, kind: ErrorKind, location: str, message: str) -> None:
        error = ResolutionError(kind, location, message)
        if error not in self._seen:
            self._seen.add(error)
            self._errors.append(error)

    @property
    def errors(self) -> list[ResolutionError]:
        return list(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def raise_if_any(self) -> None:
        if self._errors:
            raise ResolutionFailed(self._errors)
