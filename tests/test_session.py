from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from db.models.entity import Location
from db.session import session_scope
from tests.conftest import ORG_ID


def _location(customer_identifier: str) -> Location:
    return Location(org_id=ORG_ID, customer_identifier=customer_identifier, name="Dock", type="zone")


def _count(session_factory: sessionmaker[Session]) -> int:
    with session_factory() as session:
        return int(session.scalar(select(func.count()).select_from(Location)) or 0)


def test_session_scope_commits_on_success(session_factory: sessionmaker[Session]) -> None:
    with session_scope(session_factory) as session:
        session.add(_location("LOC-1"))

    assert _count(session_factory) == 1


def test_session_scope_rolls_back_on_error(session_factory: sessionmaker[Session]) -> None:
    with pytest.raises(RuntimeError):
        with session_scope(session_factory) as session:
            session.add(_location("LOC-1"))
            session.flush()
            raise RuntimeError("abort")

    assert _count(session_factory) == 0
