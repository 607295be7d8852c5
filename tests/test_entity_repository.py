"""
tests/test_entity_repository.py

Entity store CRUD, soft delete and ordering.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session

from db.repositories.entity_repository import EntityRepository
from db.repositories.errors import DuplicateEntityError
from db.repositories.types import EntityFields, EntityKind, EntityUpdate
from tests.conftest import ORG_ID, OTHER_ORG_ID


def _fields(customer_identifier: str, **overrides) -> EntityFields:
    values = {"customer_identifier": customer_identifier, "name": f"Entity {customer_identifier}", "type": "device"}
    values.update(overrides)
    return EntityFields(**values)


@pytest.fixture()
def assets(db: Session) -> EntityRepository:
    return EntityRepository(db, EntityKind.ASSET)


@pytest.fixture()
def locations(db: Session) -> EntityRepository:
    return EntityRepository(db, EntityKind.LOCATION)


def test_create_fills_store_defaults(db: Session, assets: EntityRepository) -> None:
    asset = assets.create(org_id=ORG_ID, fields=_fields("AV-1", metadata={"color": "red"}))
    db.commit()

    assert asset.id is not None
    assert asset.valid_from is not None
    assert asset.valid_to is None
    assert asset.is_active is True
    assert asset.metadata_json == {"color": "red"}
    assert asset.deleted_at is None


def test_duplicate_customer_identifier_is_rejected(db: Session, assets: EntityRepository) -> None:
    assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    db.commit()

    with pytest.raises(DuplicateEntityError) as exc_info:
        assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    db.rollback()

    assert exc_info.value.customer_identifier == "AV-1"


def test_customer_identifier_is_reusable_after_soft_delete(db: Session, assets: EntityRepository) -> None:
    first = assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    db.commit()
    assert assets.soft_delete(first.id, org_id=ORG_ID) is True
    db.commit()

    second = assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    db.commit()

    assert second.id != first.id
    assert assets.get_by_customer_identifier(ORG_ID, "AV-1").id == second.id


def test_same_customer_identifier_allowed_in_other_org(db: Session, assets: EntityRepository) -> None:
    assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    assets.create(org_id=OTHER_ORG_ID, fields=_fields("AV-1"))
    db.commit()

    assert assets.count(ORG_ID) == 1
    assert assets.count(OTHER_ORG_ID) == 1


def test_get_by_id_is_org_scoped_and_hides_deleted(db: Session, assets: EntityRepository) -> None:
    asset = assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    db.commit()

    assert assets.get_by_id(asset.id, org_id=ORG_ID) is not None
    assert assets.get_by_id(asset.id, org_id=OTHER_ORG_ID) is None

    assets.soft_delete(asset.id)
    db.commit()
    assert assets.get_by_id(asset.id) is None
    assert assets.soft_delete(asset.id) is False


def test_list_orders_newest_first_and_pages(db: Session, assets: EntityRepository) -> None:
    created = [assets.create(org_id=ORG_ID, fields=_fields(f"AV-{index}")) for index in range(5)]
    db.commit()

    first_page = assets.list(ORG_ID, limit=2)
    second_page = assets.list(ORG_ID, limit=2, offset=2)

    expected = [entity.id for entity in reversed(created)]
    assert [entity.id for entity in first_page] == expected[:2]
    assert [entity.id for entity in second_page] == expected[2:4]
    assert assets.count(ORG_ID) == 5


def test_get_many_returns_only_live_rows(db: Session, assets: EntityRepository) -> None:
    keep = assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    drop = assets.create(org_id=ORG_ID, fields=_fields("AV-2"))
    db.commit()
    assets.soft_delete(drop.id)
    db.commit()

    result = assets.get_many([keep.id, drop.id, 12345])

    assert list(result) == [keep.id]
    assert assets.get_many([]) == {}


def test_update_writes_changed_columns(db: Session, assets: EntityRepository) -> None:
    asset = assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    db.commit()

    valid_to = datetime(2030, 1, 1, tzinfo=timezone.utc)
    updated = assets.update(
        asset.id,
        org_id=ORG_ID,
        changes=EntityUpdate({"name": "Renamed", "valid_to": valid_to, "is_active": False}),
    )
    db.commit()

    assert updated is not None
    assert updated.name == "Renamed"
    assert updated.is_active is False
    assert assets.update(asset.id, org_id=OTHER_ORG_ID, changes=EntityUpdate({"name": "x"})) is None


def test_update_rejects_unknown_and_foreign_columns(db: Session, assets: EntityRepository) -> None:
    asset = assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    db.commit()

    with pytest.raises(ValueError):
        assets.update(asset.id, org_id=ORG_ID, changes=EntityUpdate({"org_id": 9}))
    with pytest.raises(ValueError):
        assets.update(asset.id, org_id=ORG_ID, changes=EntityUpdate({"parent_id": 1}))


def test_update_to_taken_customer_identifier_is_rejected(db: Session, assets: EntityRepository) -> None:
    assets.create(org_id=ORG_ID, fields=_fields("AV-1"))
    other = assets.create(org_id=ORG_ID, fields=_fields("AV-2"))
    db.commit()

    with pytest.raises(DuplicateEntityError):
        assets.update(other.id, org_id=ORG_ID, changes=EntityUpdate({"customer_identifier": "AV-1"}))
    db.rollback()


def test_location_hierarchy_reference(db: Session, locations: EntityRepository) -> None:
    parent = locations.create(org_id=ORG_ID, fields=_fields("WH-1"))
    db.commit()

    child = locations.create(org_id=ORG_ID, fields=_fields("WH-1-A", parent_id=parent.id))
    db.commit()

    assert child.parent_id == parent.id
    with pytest.raises(ValueError):
        locations.create(org_id=ORG_ID, fields=_fields("WH-2", current_location_id=parent.id))
