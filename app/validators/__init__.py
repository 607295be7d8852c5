"""
app/validators package marker.
"""

from app.validators.csv_validator import (
    CSVHeaderValidationError,
    CSVRowValidator,
    parse_csv_bool,
    parse_csv_date,
    validate_headers,
)
from app.validators.identifier_validator import IdentifierValidator, get_identifier_validator

__all__ = [
    "CSVHeaderValidationError",
    "CSVRowValidator",
    "IdentifierValidator",
    "get_identifier_validator",
    "parse_csv_bool",
    "parse_csv_date",
    "validate_headers",
]
