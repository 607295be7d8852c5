"""
tests/test_view_assembler.py

Read-side composition: completeness, ordering and tenant isolation.
"""

from __future__ import annotations

import pytest
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.domain.entity import EntityCreateInput
from app.services.entity_creation_service import EntityCreationService
from app.services.view_assembler import ViewAssembler
from db.repositories.types import EntityFields, EntityKind, EntityRef, IdentifierSpec
from tests.conftest import ORG_ID, OTHER_ORG_ID


def _create(
    service: EntityCreationService,
    db: Session,
    kind: EntityKind,
    customer_identifier: str,
    *values: str,
    org_id: int = ORG_ID,
):
    return service.create_with_identifiers(
        db=db,
        org_id=org_id,
        kind=kind,
        payload=EntityCreateInput(
            fields=EntityFields(customer_identifier=customer_identifier, name=customer_identifier, type="zone"),
            identifiers=tuple(IdentifierSpec(type="rfid", value=value) for value in values),
        ),
    )


@pytest.fixture()
def statement_counter(engine: Engine):
    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    yield statements
    event.remove(engine, "before_cursor_execute", _record)


def test_get_view_returns_entity_with_identifiers(
    db: Session,
    creation_service: EntityCreationService,
    view_assembler: ViewAssembler,
) -> None:
    created = _create(creation_service, db, EntityKind.ASSET, "AV-1", "T1", "T2")

    view = view_assembler.get_view(db=db, org_id=ORG_ID, ref=created.ref)

    assert view is not None
    assert view.entity.customer_identifier == "AV-1"
    assert [identifier.value for identifier in view.identifiers] == ["T1", "T2"]


def test_get_view_hides_missing_deleted_and_foreign(
    db: Session,
    creation_service: EntityCreationService,
    view_assembler: ViewAssembler,
) -> None:
    created = _create(creation_service, db, EntityKind.ASSET, "AV-1")

    assert view_assembler.get_view(db=db, org_id=OTHER_ORG_ID, ref=created.ref) is None
    assert view_assembler.get_view(db=db, org_id=ORG_ID, ref=EntityRef.asset(999)) is None
    assert view_assembler.get_view(db=db, org_id=ORG_ID, ref=EntityRef.location(created.entity.id)) is None

    creation_service.delete_with_identifiers(db=db, org_id=ORG_ID, ref=created.ref)
    assert view_assembler.get_view(db=db, org_id=ORG_ID, ref=created.ref) is None


def test_list_views_preserves_page_order_and_empty_lists(
    db: Session,
    creation_service: EntityCreationService,
    view_assembler: ViewAssembler,
) -> None:
    first = _create(creation_service, db, EntityKind.ASSET, "AV-1", "A")
    second = _create(creation_service, db, EntityKind.ASSET, "AV-2")
    third = _create(creation_service, db, EntityKind.ASSET, "AV-3", "C1", "C2")
    _create(creation_service, db, EntityKind.ASSET, "AV-9", "Z", org_id=OTHER_ORG_ID)

    views = view_assembler.list_views(db=db, org_id=ORG_ID, kind=EntityKind.ASSET, limit=10)

    assert [view.entity.id for view in views] == [third.entity.id, second.entity.id, first.entity.id]
    assert [[identifier.value for identifier in view.identifiers] for view in views] == [["C1", "C2"], [], ["A"]]
    assert view_assembler.count(db=db, org_id=ORG_ID, kind=EntityKind.ASSET) == 3


def test_list_views_uses_one_identifier_query(
    db: Session,
    creation_service: EntityCreationService,
    view_assembler: ViewAssembler,
    statement_counter: list[str],
) -> None:
    for index in range(6):
        _create(creation_service, db, EntityKind.LOCATION, f"LOC-{index}", f"L{index}")
    statement_counter.clear()

    views = view_assembler.list_views(db=db, org_id=ORG_ID, kind=EntityKind.LOCATION, limit=6)

    identifier_queries = [sql for sql in statement_counter if "FROM identifiers" in sql]
    assert len(views) == 6
    assert len(identifier_queries) == 1


def test_views_for_skips_foreign_refs(
    db: Session,
    creation_service: EntityCreationService,
    view_assembler: ViewAssembler,
) -> None:
    ours = _create(creation_service, db, EntityKind.ASSET, "AV-1", "T1")
    theirs = _create(creation_service, db, EntityKind.ASSET, "AV-2", org_id=OTHER_ORG_ID)

    views = view_assembler.views_for(db=db, org_id=ORG_ID, refs=[ours.ref, theirs.ref])

    assert set(views) == {ours.ref}
    assert [identifier.value for identifier in views[ours.ref].identifiers] == ["T1"]
