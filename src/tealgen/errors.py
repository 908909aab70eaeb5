"""Domain-specific errors for tealgen."""

from __future__ import annotations


class TealGenError(Exception):
    """Base error for tealgen."""


class DecodingError(TealGenError):
    """Raised when a raw name cannot be interpreted as UTF-8 text."""


class DuplicateMemberError(TealGenError):
    """Raised when two fields/methods share a name within one record."""


class CyclicTypeError(TealGenError):
    """Raised when a type descriptor references itself."""


class GenericsMismatchError(TealGenError):
    """Raised when a function's generics do not cover its params/returns."""


class ConflictingRegistrationError(TealGenError):
    """Raised when a different descriptor is registered under a known name."""


class WalkerStateError(TealGenError):
    """Raised when registering into a walker that has already rendered."""


class DocumentError(TealGenError):
    """Raised when a structured descriptor document cannot be loaded."""


class UnsupportedTypeError(TealGenError):
    """Raised when a host type has no descriptor mapping."""
