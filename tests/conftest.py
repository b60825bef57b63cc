import os
from datetime import datetime, timezone

# Antes de importar la app: base en memoria, sin archivo de log, correo simulado
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("MAIL_TRANSPORT", "console")
os.environ.setdefault("STORE_BACKEND", "sql")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.database import create_engine_from_url, init_db
from app.dependencies import get_email_dispatcher, get_store
from app.main import app
from app.services.email_dispatch import EmailDispatcher
from app.services.participant_store import SqlParticipantStore
from tests.fakes import APP_URL, SENDER, FakeTransport


@pytest.fixture
def engine():
    engine = create_engine_from_url("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return SqlParticipantStore(db)


@pytest.fixture
def event(store):
    return store.create_event(
        name="Launch",
        date=datetime(2024, 12, 1, 10, 0, tzinfo=timezone.utc),
        location="Hall A",
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def dispatcher(store, transport):
    return EmailDispatcher(store, transport, app_url=APP_URL, sender=SENDER)


@pytest.fixture
def client(store, dispatcher):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_email_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()
