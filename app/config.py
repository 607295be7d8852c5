"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files
from db.models.identifier import VALUE_MAX_LENGTH, IdentifierType


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_list_env(name: str) -> tuple[str, ...]:
    """
    Read a comma-separated list, lowercased, blanks dropped.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if not raw_value:
        return ()
    return tuple(part.strip().lower() for part in raw_value.split(",") if part.strip())


@dataclass(frozen=True)
class BulkImportSettings:
    """
    Runtime settings for CSV bulk import.
    """

    max_upload_bytes: int = 5 * 1024 * 1024
    max_rows: int = 1000
    progress_update_interval: int = 10
    max_errors: int = 500
    log_row_errors: bool = True


@dataclass(frozen=True)
class IdentifierSettings:
    """
    Allowed tag identifier types and value limits.
    """

    allowed_types: tuple[str, ...] = IdentifierType.BUILTIN
    max_value_length: int = VALUE_MAX_LENGTH


@dataclass(frozen=True)
class PaginationSettings:
    default_limit: int = 50
    max_limit: int = 500


@lru_cache(maxsize=1)
def get_bulk_import_settings() -> BulkImportSettings:
    """
    Return cached bulk import settings from environment variables.
    """

    return BulkImportSettings(
        max_upload_bytes=max(1, _get_int_env("BULK_IMPORT_MAX_UPLOAD_BYTES", 5 * 1024 * 1024)),
        max_rows=max(1, _get_int_env("BULK_IMPORT_MAX_ROWS", 1000)),
        progress_update_interval=max(1, _get_int_env("BULK_IMPORT_PROGRESS_INTERVAL", 10)),
        max_errors=max(1, _get_int_env("BULK_IMPORT_MAX_ERRORS", 500)),
        log_row_errors=_get_bool_env("BULK_IMPORT_LOG_ROW_ERRORS", True),
    )


@lru_cache(maxsize=1)
def get_identifier_settings() -> IdentifierSettings:
    """
    Return identifier settings. IDENTIFIER_EXTRA_TYPES extends the built-in
    rfid/ble/barcode set; it never removes from it.
    """

    allowed = list(IdentifierType.BUILTIN)
    for extra in _get_list_env("IDENTIFIER_EXTRA_TYPES"):
        if extra not in allowed:
            allowed.append(extra)

    return IdentifierSettings(
        allowed_types=tuple(allowed),
        max_value_length=min(
            VALUE_MAX_LENGTH,
            max(1, _get_int_env("IDENTIFIER_MAX_VALUE_LENGTH", VALUE_MAX_LENGTH)),
        ),
    )


@lru_cache(maxsize=1)
def get_pagination_settings() -> PaginationSettings:
    max_limit = max(1, _get_int_env("PAGINATION_MAX_LIMIT", 500))
    default_limit = max(1, _get_int_env("PAGINATION_DEFAULT_LIMIT", 50))
    return PaginationSettings(
        default_limit=min(default_limit, max_limit),
        max_limit=max_limit,
    )


def get_log_level() -> str:
    return _get_str_env("LOG_LEVEL", "INFO").upper()
