"""
Helpers for mapping IntegrityError back to the constraint that raised it.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from db.models.identifier import SINGLE_TARGET_CONSTRAINT, UNIQUE_LIVE_VALUE_INDEX

ASSET_CUSTOMER_IDENTIFIER_INDEX = "uq_assets_org_customer_identifier_live"
LOCATION_CUSTOMER_IDENTIFIER_INDEX = "uq_locations_org_customer_identifier_live"

# SQLite names the failing columns rather than the index.
_SQLITE_UNIQUE_COLUMNS: dict[str, str] = {
    "identifiers.org_id, identifiers.type, identifiers.value": UNIQUE_LIVE_VALUE_INDEX,
    "assets.org_id, assets.customer_identifier": ASSET_CUSTOMER_IDENTIFIER_INDEX,
    "locations.org_id, locations.customer_identifier": LOCATION_CUSTOMER_IDENTIFIER_INDEX,
}

_SQLITE_CHECK_MARKER = "CHECK constraint failed: "


def violated_constraint(exc: IntegrityError) -> str | None:
    """
    Return the name of the violated constraint or index, if it can be told.
    """

    diag = getattr(exc.orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name:
        return constraint_name

    message = str(exc.orig)
    for columns, name in _SQLITE_UNIQUE_COLUMNS.items():
        if columns in message:
            return name

    if _SQLITE_CHECK_MARKER in message:
        return message.split(_SQLITE_CHECK_MARKER, 1)[1].strip()

    if SINGLE_TARGET_CONSTRAINT in message:
        return SINGLE_TARGET_CONSTRAINT
    return None
