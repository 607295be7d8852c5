"""
app/validators/csv_validator.py

Header checks, value parsing and row-level validation for CSV bulk import.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from app.domain.bulk_import import ParsedRow, RowValidationError
from app.validators.identifier_validator import IdentifierValidator, get_identifier_validator
from db.repositories.errors import InvalidIdentifierTypeError, InvalidIdentifierValueError
from db.repositories.types import EntityFields, IdentifierSpec

REQUIRED_HEADERS: tuple[str, ...] = (
    "identifier",
    "name",
    "type",
    "valid_from",
    "valid_to",
    "is_active",
)

OPTIONAL_HEADERS: tuple[str, ...] = ("description", "tags")

# Tried in order; the first format that parses wins. "02/01/2025" is
# therefore read month-first and "13/01/2025" falls through to day-first.
DATE_FORMATS: tuple[tuple[str, str], ...] = (
    ("%Y-%m-%d", "YYYY-MM-DD"),
    ("%m/%d/%Y", "MM/DD/YYYY"),
    ("%d/%m/%Y", "DD/MM/YYYY"),
    ("%d-%m-%Y", "DD-MM-YYYY"),
)

_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no"}

_TAG_SEPARATORS = re.compile(r"[;|]")


class CSVHeaderValidationError(ValueError):
    """
    Raised when the CSV header row is empty or lacks required columns.
    """

    def __init__(self, message: str, *, missing: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.missing = tuple(missing)


def normalize_header(name: str | None) -> str:
    return (name or "").strip().lower()


def validate_headers(headers: Sequence[str] | None) -> dict[str, str]:
    """
    Check the header row and return canonical name -> header as written.

    Matching is case-insensitive and order-independent; unknown columns are
    ignored. When several headers normalize to the same name the first wins.
    """

    if not headers or all(not normalize_header(header) for header in headers):
        raise CSVHeaderValidationError("CSV header row is missing.")

    header_map: dict[str, str] = {}
    for header in headers:
        header_map.setdefault(normalize_header(header), header)

    missing = [column for column in REQUIRED_HEADERS if column not in header_map]
    if missing:
        raise CSVHeaderValidationError(
            f"CSV is missing required columns: {', '.join(missing)}. "
            f"Required columns are: {', '.join(REQUIRED_HEADERS)} "
            "(order doesn't matter, case-insensitive).",
            missing=missing,
        )

    return {
        column: header_map[column]
        for column in (*REQUIRED_HEADERS, *OPTIONAL_HEADERS)
        if column in header_map
    }


def parse_csv_date(value: str | None) -> datetime:
    """
    Parse a CSV date into a UTC midnight timestamp.

    Raises ValueError naming every accepted format when nothing matches.
    """

    raw = (value or "").strip()
    if not raw:
        raise ValueError("date cannot be empty")

    for fmt, _label in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    expected = ", ".join(label for _fmt, label in DATE_FORMATS)
    raise ValueError(f"invalid date format '{raw}'. Expected formats: {expected}")


def parse_csv_bool(value: str | None) -> bool:
    raw = (value or "").strip().lower()
    if not raw:
        raise ValueError("boolean value cannot be empty")
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(
        f"invalid boolean value '{raw}': expected true, false, 1, 0, yes or no (case-insensitive)"
    )


def parse_tags(value: str | None) -> list[tuple[str, str]]:
    """
    Split a tags cell like "rfid:E200001;ble:AA:BB:CC" into (type, value)
    pairs. Only the first colon separates type from value.
    """

    pairs: list[tuple[str, str]] = []
    for chunk in _TAG_SEPARATORS.split(value or ""):
        chunk = chunk.strip()
        if not chunk:
            continue
        identifier_type, sep, identifier_value = chunk.partition(":")
        if not sep or not identifier_type.strip() or not identifier_value.strip():
            raise ValueError(f"invalid tag '{chunk}': expected type:value")
        pairs.append((identifier_type.strip(), identifier_value.strip()))
    return pairs


class CSVRowValidator:
    """
    Validates and parses one CSV row into entity fields and tag identifiers.
    """

    def __init__(self, identifier_validator: IdentifierValidator | None = None) -> None:
        self._identifier_validator = identifier_validator or get_identifier_validator()

    def is_completely_empty_row(self, row: Mapping[str | None, Any]) -> bool:
        return all(self._is_blank(value) for value in row.values())

    def validate_row(
        self,
        *,
        row: Mapping[str | None, Any],
        header_map: Mapping[str, str],
        row_number: int,
    ) -> tuple[ParsedRow | None, list[RowValidationError]]:
        errors: list[RowValidationError] = []

        def cell(column: str) -> str | None:
            header = header_map.get(column)
            if header is None:
                return None
            value = row.get(header)
            if value is None:
                return None
            return str(value).strip()

        customer_identifier = self._parse_required_string(cell("identifier"), row_number, "identifier", errors)
        name = self._parse_required_string(cell("name"), row_number, "name", errors)
        entity_type = self._parse_required_string(cell("type"), row_number, "type", errors)

        valid_from = self._parse_date(cell("valid_from"), row_number, "valid_from", errors, required=True)
        valid_to = self._parse_date(cell("valid_to"), row_number, "valid_to", errors, required=False)
        is_active = self._parse_bool(cell("is_active"), row_number, errors)

        if valid_from is not None and valid_to is not None and valid_to < valid_from:
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column="valid_to",
                    message="valid_to must be after valid_from",
                    value=cell("valid_to"),
                )
            )

        identifiers = self._parse_identifiers(cell("tags"), row_number, errors)
        description = cell("description") or None

        if errors:
            return None, errors

        return (
            ParsedRow(
                row_number=row_number,
                fields=EntityFields(
                    customer_identifier=customer_identifier,
                    name=name,
                    type=entity_type,
                    description=description,
                    valid_from=valid_from,
                    valid_to=valid_to,
                    is_active=bool(is_active),
                ),
                identifiers=tuple(identifiers),
            ),
            [],
        )

    def _parse_required_string(
        self,
        value: str | None,
        row_number: int,
        column: str,
        errors: list[RowValidationError],
    ) -> str:
        if self._is_blank(value):
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column=column,
                    message=f"{column} cannot be empty",
                    value=value,
                )
            )
            return ""
        return str(value)

    def _parse_date(
        self,
        value: str | None,
        row_number: int,
        column: str,
        errors: list[RowValidationError],
        *,
        required: bool,
    ) -> datetime | None:
        if self._is_blank(value) and not required:
            return None
        try:
            return parse_csv_date(value)
        except ValueError as exc:
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column=column,
                    message=f"invalid {column}: {exc}",
                    value=value,
                )
            )
            return None

    def _parse_bool(
        self,
        value: str | None,
        row_number: int,
        errors: list[RowValidationError],
    ) -> bool | None:
        try:
            return parse_csv_bool(value)
        except ValueError as exc:
            errors.append(
                RowValidationError(
                    row_number=row_number,
                    column="is_active",
                    message=f"invalid is_active: {exc}",
                    value=value,
                )
            )
            return None

    def _parse_identifiers(
        self,
        value: str | None,
        row_number: int,
        errors: list[RowValidationError],
    ) -> list[IdentifierSpec]:
        if self._is_blank(value):
            return []
        try:
            pairs = parse_tags(value)
        except ValueError as exc:
            errors.append(RowValidationError(row_number=row_number, column="tags", message=str(exc), value=value))
            return []

        identifiers: list[IdentifierSpec] = []
        for identifier_type, identifier_value in pairs:
            try:
                identifiers.append(self._identifier_validator.validate(identifier_type, identifier_value))
            except (InvalidIdentifierTypeError, InvalidIdentifierValueError) as exc:
                errors.append(
                    RowValidationError(row_number=row_number, column="tags", message=str(exc), value=value)
                )
        return identifiers

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, (list, tuple)):
            return all(str(item).strip() == "" for item in value)
        return str(value).strip() == ""
