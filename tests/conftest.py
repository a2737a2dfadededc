# tests/conftest.py

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.events import EventBus
from app.db.models import Base
from app.repositories.storage_repository import StorageRepository
from app.services.import_export_service import ImportExportService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(db_session):
    return StorageRepository(db_session)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def service(storage, event_bus):
    return ImportExportService(storage=storage, event_bus=event_bus, timeout_seconds=0)


@pytest.fixture
def client(session_factory):
    from app.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def acme(storage):
    """An existing client with a manual code."""
    client_id = storage.insert(
        "clienti",
        {
            "ragione_sociale": "Acme S.p.A.",
            "partita_iva": "01234567890",
            "codice_cliente_custom": "ACME01",
            "citta": "Milano",
        },
    )
    return client_id


@pytest.fixture
def vigilux(storage):
    """An existing supplier with a manual code."""
    return storage.insert(
        "fornitori",
        {
            "ragione_sociale": "Vigilux S.r.l.",
            "codice_cliente_associato": "VGX",
        },
    )
