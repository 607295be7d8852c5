"""
tests/conftest.py

Shared fixtures. Every test gets a fresh SQLite database file so the
partial unique indexes and the single-target CHECK constraint are enforced
by a real store.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

import db.models  # noqa: F401 registers all ORM models on Base.metadata
from app.services.entity_creation_service import EntityCreationService
from app.services.identifier_service import IdentifierService
from app.services.view_assembler import ViewAssembler
from app.validators.identifier_validator import IdentifierValidator
from db.base import Base
from db.session import build_session_factory

ORG_ID = 1
OTHER_ORG_ID = 2


@pytest.fixture()
def engine(tmp_path) -> Iterator[Engine]:
    db_engine = create_engine(
        f"sqlite:///{tmp_path / 'registry.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def db(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def identifier_validator() -> IdentifierValidator:
    return IdentifierValidator(allowed_types=("rfid", "ble", "barcode"), max_value_length=255)


@pytest.fixture()
def view_assembler() -> ViewAssembler:
    return ViewAssembler()


@pytest.fixture()
def creation_service(identifier_validator: IdentifierValidator) -> EntityCreationService:
    return EntityCreationService(identifier_validator=identifier_validator)


@pytest.fixture()
def identifier_service(
    identifier_validator: IdentifierValidator,
    view_assembler: ViewAssembler,
) -> IdentifierService:
    return IdentifierService(identifier_validator=identifier_validator, view_assembler=view_assembler)
