"""
tests/test_api.py

HTTP behaviour of the entity, lookup and bulk import routers against a
SQLite store. Background tasks run before TestClient returns, so bulk jobs
are finished by the time the status endpoint is called.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from app.api.routers import ROUTERS
from app.config import BulkImportSettings, PaginationSettings, get_pagination_settings
from app.services.bulk_import_service import BulkImportService, get_bulk_import_service
from app.services.entity_creation_service import EntityCreationService, get_entity_creation_service
from app.services.identifier_service import IdentifierService, get_identifier_service
from app.services.view_assembler import ViewAssembler, get_view_assembler
from app.validators.csv_validator import CSVRowValidator
from app.validators.identifier_validator import IdentifierValidator
from db.session import get_db
from tests.conftest import ORG_ID, OTHER_ORG_ID

HEADERS = {"X-Org-ID": str(ORG_ID)}
OTHER_HEADERS = {"X-Org-ID": str(OTHER_ORG_ID)}


@pytest.fixture()
def client(
    session_factory: sessionmaker[Session],
    identifier_validator: IdentifierValidator,
    view_assembler: ViewAssembler,
    creation_service: EntityCreationService,
    identifier_service: IdentifierService,
) -> Iterator[TestClient]:
    app = FastAPI()
    for router in ROUTERS:
        app.include_router(router)

    def _get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    bulk_service = BulkImportService(
        session_factory=session_factory,
        creation_service=creation_service,
        row_validator=CSVRowValidator(identifier_validator),
        settings=BulkImportSettings(max_upload_bytes=4096, max_rows=10),
    )

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_view_assembler] = lambda: view_assembler
    app.dependency_overrides[get_entity_creation_service] = lambda: creation_service
    app.dependency_overrides[get_identifier_service] = lambda: identifier_service
    app.dependency_overrides[get_bulk_import_service] = lambda: bulk_service
    app.dependency_overrides[get_pagination_settings] = lambda: PaginationSettings(default_limit=2, max_limit=3)

    with TestClient(app) as test_client:
        yield test_client


def _create_asset(client: TestClient, identifier: str, *tags: tuple[str, str], headers=HEADERS) -> dict:
    response = client.post(
        "/api/v1/assets",
        json={
            "identifier": identifier,
            "name": f"Asset {identifier}",
            "type": "trolley",
            "identifiers": [{"type": t, "value": v} for t, v in tags],
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_asset_returns_identifiers(client: TestClient) -> None:
    body = _create_asset(client, "AV-1", ("rfid", "E2001"), ("ble", "AA:BB"))

    assert body["kind"] == "asset"
    assert body["identifier"] == "AV-1"
    assert body["org_id"] == ORG_ID
    assert [(i["type"], i["value"]) for i in body["identifiers"]] == [("rfid", "E2001"), ("ble", "AA:BB")]


def test_create_conflicts_and_validation(client: TestClient) -> None:
    _create_asset(client, "AV-1", ("rfid", "E2001"))

    duplicate_tag = client.post(
        "/api/v1/locations",
        json={"identifier": "LOC-1", "name": "Dock", "type": "zone", "identifiers": [{"type": "rfid", "value": "E2001"}]},
        headers=HEADERS,
    )
    duplicate_entity = client.post(
        "/api/v1/assets",
        json={"identifier": "AV-1", "name": "Again", "type": "trolley"},
        headers=HEADERS,
    )
    bad_type = client.post(
        "/api/v1/assets",
        json={"identifier": "AV-2", "name": "x", "type": "t", "identifiers": [{"type": "nfc", "value": "1"}]},
        headers=HEADERS,
    )
    bad_window = client.post(
        "/api/v1/assets",
        json={
            "identifier": "AV-3",
            "name": "x",
            "type": "t",
            "valid_from": "2025-06-01T00:00:00Z",
            "valid_to": "2025-01-01T00:00:00Z",
        },
        headers=HEADERS,
    )

    assert duplicate_tag.status_code == 409
    assert "rfid:E2001" in duplicate_tag.json()["detail"]
    assert duplicate_entity.status_code == 409
    assert bad_type.status_code == 422
    assert bad_window.status_code == 422
    assert client.get("/api/v1/locations", headers=HEADERS).json()["total_count"] == 0


def test_org_header_is_required(client: TestClient) -> None:
    assert client.get("/api/v1/assets").status_code == 401
    assert client.get("/api/v1/assets", headers={"X-Org-ID": "acme"}).status_code == 400
    assert client.get("/api/v1/assets", headers={"X-Org-ID": "0"}).status_code == 400


def test_list_pages_with_clamped_limit(client: TestClient) -> None:
    for index in range(4):
        _create_asset(client, f"AV-{index}")

    default_page = client.get("/api/v1/assets", headers=HEADERS).json()
    clamped_page = client.get("/api/v1/assets", params={"limit": 100, "offset": 1}, headers=HEADERS).json()

    assert default_page["count"] == 2
    assert default_page["limit"] == 2
    assert default_page["total_count"] == 4
    assert [item["identifier"] for item in default_page["data"]] == ["AV-3", "AV-2"]
    assert clamped_page["limit"] == 3
    assert [item["identifier"] for item in clamped_page["data"]] == ["AV-2", "AV-1", "AV-0"]


def test_get_and_delete_are_org_scoped(client: TestClient) -> None:
    asset = _create_asset(client, "AV-1", ("rfid", "E2001"))
    url = f"/api/v1/assets/{asset['id']}"

    assert client.get(url, headers=HEADERS).status_code == 200
    assert client.get(url, headers=OTHER_HEADERS).status_code == 404
    assert client.get(f"/api/v1/locations/{asset['id']}", headers=HEADERS).status_code == 404
    assert client.delete(url, headers=OTHER_HEADERS).status_code == 404

    assert client.delete(url, headers=HEADERS).status_code == 204
    assert client.get(url, headers=HEADERS).status_code == 404
    assert client.delete(url, headers=HEADERS).status_code == 404
    assert client.get("/api/v1/lookup/tag", params={"type": "rfid", "value": "E2001"}, headers=HEADERS).status_code == 404


def test_add_and_remove_identifier(client: TestClient) -> None:
    asset = _create_asset(client, "AV-1")
    base = f"/api/v1/assets/{asset['id']}/identifiers"

    added = client.post(base, json={"type": "barcode", "value": "  123  "}, headers=HEADERS)
    assert added.status_code == 201
    identifier = added.json()
    assert identifier["value"] == "123"

    assert client.post(base, json={"type": "barcode", "value": "123"}, headers=HEADERS).status_code == 409
    assert client.post(base, json={"type": "barcode", "value": "9"}, headers=OTHER_HEADERS).status_code == 404

    assert client.delete(f"/api/v1/locations/{asset['id']}/identifiers/{identifier['id']}", headers=HEADERS).status_code == 404
    assert client.delete(f"{base}/{identifier['id']}", headers=HEADERS).status_code == 204
    assert client.delete(f"{base}/{identifier['id']}", headers=HEADERS).status_code == 404
    assert client.get(f"/api/v1/assets/{asset['id']}", headers=HEADERS).json()["identifiers"] == []


def test_lookup_single_and_batch(client: TestClient) -> None:
    asset = _create_asset(client, "AV-1", ("rfid", "000E2001"))

    single = client.get("/api/v1/lookup/tag", params={"type": "rfid", "value": "E2001"}, headers=HEADERS)
    foreign = client.get("/api/v1/lookup/tag", params={"type": "rfid", "value": "E2001"}, headers=OTHER_HEADERS)
    unknown_type = client.get("/api/v1/lookup/tag", params={"type": "nfc", "value": "E2001"}, headers=HEADERS)
    batch = client.post(
        "/api/v1/lookup/tags",
        json={"type": "rfid", "values": ["E2001", "MISSING"]},
        headers=HEADERS,
    )

    assert single.status_code == 200
    assert single.json()["id"] == asset["id"]
    assert foreign.status_code == 404
    assert unknown_type.status_code == 422
    assert batch.status_code == 200
    assert batch.json()["data"]["E2001"]["id"] == asset["id"]
    assert batch.json()["not_found"] == ["MISSING"]


def test_bulk_upload_runs_and_reports_status(client: TestClient) -> None:
    content = (
        "identifier,name,type,valid_from,valid_to,is_active,tags\n"
        "AV-1,Forklift,vehicle,2025-01-01,,true,rfid:E1\n"
        "AV-2,Crate,container,bad-date,,true,\n"
    )

    accepted = client.post(
        "/api/v1/assets/bulk",
        files={"file": ("assets.csv", content.encode("utf-8"), "text/csv")},
        headers=HEADERS,
    )

    assert accepted.status_code == 202
    job_id = accepted.json()["job_id"]
    assert accepted.json()["total_rows"] == 2

    job = client.get(f"/api/v1/assets/bulk/{job_id}", headers=HEADERS).json()
    assert job["status"] == "completed"
    assert job["processed_rows"] == 2
    assert job["successful_rows"] == 1
    assert job["tags_created"] == 1
    assert job["errors"][0]["row"] == 3
    assert job["errors"][0]["field"] == "valid_from"

    assert client.get(f"/api/v1/assets/bulk/{job_id}", headers=OTHER_HEADERS).status_code == 404
    assert client.get(f"/api/v1/locations/bulk/{job_id}", headers=HEADERS).status_code == 404
    assert [item["job_id"] for item in client.get("/api/v1/assets/bulk", headers=HEADERS).json()["jobs"]] == [job_id]
    assert client.get("/api/v1/locations/bulk", headers=HEADERS).json()["jobs"] == []


def test_bulk_upload_rejections(client: TestClient) -> None:
    missing_column = client.post(
        "/api/v1/assets/bulk",
        files={"file": ("assets.csv", b"identifier,name,type,valid_to,is_active\nA,b,c,,true\n", "text/csv")},
        headers=HEADERS,
    )
    not_csv = client.post(
        "/api/v1/assets/bulk",
        files={"file": ("assets.json", b"{}", "application/json")},
        headers=HEADERS,
    )
    too_large = client.post(
        "/api/v1/assets/bulk",
        files={"file": ("assets.csv", b"x" * 5000, "text/csv")},
        headers=HEADERS,
    )

    assert missing_column.status_code == 400
    assert "valid_from" in missing_column.json()["detail"]
    assert not_csv.status_code == 400
    assert too_large.status_code == 413
    assert client.get("/api/v1/assets/bulk", headers=HEADERS).json()["jobs"] == []


def test_mixed_naive_and_aware_validity_bounds(client: TestClient) -> None:
    accepted = client.post(
        "/api/v1/assets",
        json={
            "identifier": "AV-1",
            "name": "x",
            "type": "t",
            "valid_from": "2025-01-01T00:00:00Z",
            "valid_to": "2025-02-01T00:00:00",
        },
        headers=HEADERS,
    )
    reversed_window = client.post(
        "/api/v1/assets",
        json={
            "identifier": "AV-2",
            "name": "x",
            "type": "t",
            "valid_from": "2025-02-01T00:00:00",
            "valid_to": "2025-01-01T00:00:00+00:00",
        },
        headers=HEADERS,
    )

    assert accepted.status_code == 201
    assert reversed_window.status_code == 422


def test_bulk_job_list_limit_applies_per_kind(client: TestClient) -> None:
    content = b"identifier,name,type,valid_from,valid_to,is_active\nX-1,n,t,2025-01-01,,true\n"
    asset_job = client.post(
        "/api/v1/assets/bulk",
        files={"file": ("assets.csv", content, "text/csv")},
        headers=HEADERS,
    ).json()["job_id"]
    location_job = client.post(
        "/api/v1/locations/bulk",
        files={"file": ("locations.csv", content, "text/csv")},
        headers=HEADERS,
    ).json()["job_id"]

    assets = client.get("/api/v1/assets/bulk", params={"limit": 1}, headers=HEADERS).json()["jobs"]
    locations = client.get("/api/v1/locations/bulk", params={"limit": 1}, headers=HEADERS).json()["jobs"]

    assert [job["job_id"] for job in assets] == [asset_job]
    assert [job["job_id"] for job in locations] == [location_job]
