"""
Repository-layer exceptions for entity and identifier flows.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base exception for entity/identifier registry failures."""


class DuplicateIdentifierError(RegistryError):
    """Raised when (org_id, type, value) is already live."""

    def __init__(self, identifier_type: str, value: str) -> None:
        super().__init__(f"identifier {identifier_type}:{value} already exists")
        self.identifier_type = identifier_type
        self.value = value


class InvalidIdentifierTypeError(RegistryError):
    """Raised when an identifier type is outside the allowed set."""

    def __init__(self, identifier_type: str, allowed: tuple[str, ...]) -> None:
        super().__init__(
            f"invalid identifier type '{identifier_type}'. Allowed values: {', '.join(allowed)}."
        )
        self.identifier_type = identifier_type
        self.allowed = allowed


class InvalidIdentifierValueError(RegistryError):
    """Raised when an identifier value is empty or too long."""


class IdentifierTargetError(RegistryError):
    """Raised when an identifier is not linked to exactly one asset or location."""


class EntityNotFoundError(RegistryError):
    """Raised when an entity id does not resolve to a live row in the caller's org."""


class DuplicateEntityError(RegistryError):
    """Raised when a customer identifier is already live in the org."""

    def __init__(self, kind: str, customer_identifier: str) -> None:
        super().__init__(f"{kind} with identifier {customer_identifier} already exists")
        self.kind = kind
        self.customer_identifier = customer_identifier


class EntityPersistenceError(RegistryError):
    """Raised when a write fails for a reason other than a known constraint."""
