"""
app/validators/identifier_validator.py

Type and value checks for tag identifiers, shared by every write path.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache

from app.config import get_identifier_settings
from db.repositories.errors import InvalidIdentifierTypeError, InvalidIdentifierValueError
from db.repositories.types import IdentifierSpec


class IdentifierValidator:
    """
    Immutable after construction; one instance is shared across requests.
    """

    __slots__ = ("_allowed_types", "_max_value_length")

    def __init__(self, *, allowed_types: Iterable[str], max_value_length: int = 255) -> None:
        self._allowed_types = tuple(dict.fromkeys(t.strip().lower() for t in allowed_types if t.strip()))
        self._max_value_length = max(1, max_value_length)

    @property
    def allowed_types(self) -> tuple[str, ...]:
        return self._allowed_types

    def validate(self, identifier_type: str, value: str) -> IdentifierSpec:
        """
        Return the normalized (type, value) pair or raise.

        Types are matched case-insensitively and stored lowercase. Values are
        stripped of surrounding whitespace but otherwise kept verbatim.
        """

        normalized_type = (identifier_type or "").strip().lower()
        if normalized_type not in self._allowed_types:
            raise InvalidIdentifierTypeError(identifier_type, self._allowed_types)

        normalized_value = (value or "").strip()
        if not normalized_value:
            raise InvalidIdentifierValueError(f"{normalized_type} identifier value cannot be empty")
        if len(normalized_value) > self._max_value_length:
            raise InvalidIdentifierValueError(
                f"{normalized_type} identifier value exceeds {self._max_value_length} characters"
            )

        return IdentifierSpec(type=normalized_type, value=normalized_value)

    def validate_many(self, specs: Iterable[IdentifierSpec]) -> list[IdentifierSpec]:
        return [self.validate(spec.type, spec.value) for spec in specs]


@lru_cache(maxsize=1)
def get_identifier_validator() -> IdentifierValidator:
    settings = get_identifier_settings()
    return IdentifierValidator(
        allowed_types=settings.allowed_types,
        max_value_length=settings.max_value_length,
    )
