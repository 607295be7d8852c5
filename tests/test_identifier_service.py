"""
tests/test_identifier_service.py

Standalone add/remove of identifiers and lookup by tag.
"""

from __future__ import annotations

import threading

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from app.domain.entity import EntityCreateInput, EntityView
from app.services.entity_creation_service import EntityCreationService
from app.services.identifier_service import IdentifierService
from db.models.identifier import TagIdentifier
from db.repositories.errors import DuplicateIdentifierError, EntityNotFoundError, InvalidIdentifierTypeError
from db.repositories.types import EntityFields, EntityKind, EntityRef, IdentifierSpec
from tests.conftest import ORG_ID, OTHER_ORG_ID


@pytest.fixture()
def asset(db: Session, creation_service: EntityCreationService) -> EntityView:
    return creation_service.create_with_identifiers(
        db=db,
        org_id=ORG_ID,
        kind=EntityKind.ASSET,
        payload=EntityCreateInput(
            fields=EntityFields(customer_identifier="AV-1", name="Cart", type="cart"),
            identifiers=(IdentifierSpec(type="rfid", value="0000E2001"),),
        ),
    )


def test_add_identifier_to_existing_entity(db: Session, identifier_service: IdentifierService, asset: EntityView) -> None:
    identifier = identifier_service.add_identifier(
        db=db,
        org_id=ORG_ID,
        ref=asset.ref,
        identifier_type="Barcode",
        value="123456",
    )

    assert identifier.type == "barcode"
    assert identifier.asset_id == asset.entity.id


def test_add_identifier_rejects_duplicate(db: Session, identifier_service: IdentifierService, asset: EntityView) -> None:
    with pytest.raises(DuplicateIdentifierError):
        identifier_service.add_identifier(
            db=db,
            org_id=ORG_ID,
            ref=asset.ref,
            identifier_type="rfid",
            value="0000E2001",
        )


def test_add_identifier_to_foreign_entity_is_not_found(
    db: Session,
    identifier_service: IdentifierService,
    asset: EntityView,
) -> None:
    with pytest.raises(EntityNotFoundError):
        identifier_service.add_identifier(
            db=db,
            org_id=OTHER_ORG_ID,
            ref=asset.ref,
            identifier_type="rfid",
            value="NEW",
        )


def test_remove_identifier_checks_owner(db: Session, identifier_service: IdentifierService, asset: EntityView) -> None:
    identifier_id = asset.identifiers[0].id

    assert identifier_service.remove_identifier(
        db=db,
        org_id=ORG_ID,
        identifier_id=identifier_id,
        ref=EntityRef.location(asset.entity.id),
    ) is False
    assert identifier_service.remove_identifier(db=db, org_id=OTHER_ORG_ID, identifier_id=identifier_id) is False
    assert identifier_service.remove_identifier(
        db=db,
        org_id=ORG_ID,
        identifier_id=identifier_id,
        ref=asset.ref,
    ) is True
    assert identifier_service.remove_identifier(db=db, org_id=ORG_ID, identifier_id=identifier_id) is False


def test_lookup_by_tag_returns_view(db: Session, identifier_service: IdentifierService, asset: EntityView) -> None:
    view = identifier_service.lookup_by_tag(db=db, org_id=ORG_ID, identifier_type="RFID", value="E2001")

    assert view is not None
    assert view.ref == asset.ref
    assert [identifier.value for identifier in view.identifiers] == ["0000E2001"]
    assert identifier_service.lookup_by_tag(db=db, org_id=OTHER_ORG_ID, identifier_type="rfid", value="E2001") is None


def test_lookup_rejects_unknown_type(db: Session, identifier_service: IdentifierService) -> None:
    with pytest.raises(InvalidIdentifierTypeError):
        identifier_service.lookup_by_tag(db=db, org_id=ORG_ID, identifier_type="nfc", value="E2001")


def test_lookup_by_tags_batch(db: Session, identifier_service: IdentifierService, asset: EntityView) -> None:
    views = identifier_service.lookup_by_tags(
        db=db,
        org_id=ORG_ID,
        identifier_type="rfid",
        values=["E2001", "00E2001", "MISSING", "  "],
    )

    assert set(views) == {"E2001", "00E2001"}
    assert views["E2001"].ref == asset.ref


def test_racing_adds_of_same_tag(
    session_factory: sessionmaker[Session],
    identifier_service: IdentifierService,
    asset: EntityView,
) -> None:
    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    lock = threading.Lock()

    def _worker() -> None:
        with session_factory() as session:
            barrier.wait()
            try:
                result: object = identifier_service.add_identifier(
                    db=session,
                    org_id=ORG_ID,
                    ref=asset.ref,
                    identifier_type="ble",
                    value="AA:BB:CC:DD",
                )
            except DuplicateIdentifierError as exc:
                result = exc
            with lock:
                outcomes.append(result)

    threads = [threading.Thread(target=_worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    errors = [outcome for outcome in outcomes if isinstance(outcome, DuplicateIdentifierError)]
    assert len(outcomes) == 2
    assert len(errors) == 1

    with session_factory() as session:
        live = session.scalar(
            select(func.count())
            .select_from(TagIdentifier)
            .where(TagIdentifier.type == "ble", TagIdentifier.deleted_at.is_(None))
        )
        assert live == 1
