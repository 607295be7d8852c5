"""
Import a CSV of assets or locations from the command line.

Rows are processed inline, so the printed status is final.

    python -m scripts.run_bulk_import assets.csv --org-id 42 --kind asset
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from fastapi import UploadFile

from app.config import get_log_level
from app.services.bulk_import_service import BulkImportService, InlineTaskExecutor, MalformedUploadError, UploadTooLargeError
from db.repositories.types import EntityKind
from db.session import build_session_factory, create_db_engine, session_scope

logger = logging.getLogger("scripts.run_bulk_import")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a bulk CSV import for one organization.")
    parser.add_argument("csv_path", type=Path, help="Path to the CSV file.")
    parser.add_argument("--org-id", dest="org_id", type=int, required=True, help="Target organization id.")
    parser.add_argument(
        "--kind",
        dest="kind",
        choices=[kind.value for kind in EntityKind],
        default=EntityKind.ASSET.value,
        help="Entity kind the rows describe.",
    )
    parser.add_argument(
        "--database-url",
        dest="database_url",
        default=None,
        help="Override DATABASE_URL for this run.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    logging.basicConfig(
        level=getattr(logging, get_log_level(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if args.org_id <= 0:
        logger.error("--org-id must be a positive integer")
        return 1
    if not args.csv_path.is_file():
        logger.error("CSV file not found: %s", args.csv_path)
        return 1

    session_factory = build_session_factory(create_db_engine(args.database_url))
    service = BulkImportService(session_factory=session_factory)

    try:
        with session_scope(session_factory) as db, args.csv_path.open("rb") as file_handle:
            job = service.submit(
                db=db,
                org_id=args.org_id,
                upload_file=UploadFile(file=file_handle, filename=args.csv_path.name),
                executor=InlineTaskExecutor(),
                kind=EntityKind(args.kind),
            )
    except (MalformedUploadError, UploadTooLargeError) as exc:
        logger.error("Upload rejected: %s", exc)
        return 1

    # The worker wrote through its own session; read the final state fresh.
    with session_scope(session_factory) as db:
        job = service.get_status(db=db, job_id=job.id, org_id=args.org_id)
        if job is None:
            return 1
        payload = {
            "job_id": str(job.id),
            "status": job.status,
            "total_rows": job.total_rows,
            "processed_rows": job.processed_rows,
            "failed_rows": job.failed_rows,
            "tags_created": job.tags_created,
            "errors": job.errors,
        }

    print(json.dumps(payload, indent=2))
    return 0 if job.failed_rows == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
