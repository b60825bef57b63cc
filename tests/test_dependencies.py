import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.dependencies import get_lark_client, get_store
from app.main import app
from app.services.lark_store import LarkParticipantStore
from app.services.participant_store import SqlParticipantStore


@pytest.fixture
def lark_settings(monkeypatch):
    monkeypatch.setattr(settings, "STORE_BACKEND", "lark")
    monkeypatch.setattr(settings, "LARK_APP_ID", "cli_shared")
    monkeypatch.setattr(settings, "LARK_APP_SECRET", "secret")
    monkeypatch.setattr(settings, "LARK_BASE_ID", "bascnShared")
    get_lark_client.cache_clear()
    yield
    if get_lark_client.cache_info().currsize:
        get_lark_client().close()
    get_lark_client.cache_clear()


def test_lark_stores_share_one_client(lark_settings):
    first = get_store(db=None)
    second = get_store(db=None)

    assert isinstance(first, LarkParticipantStore)
    assert first._client is second._client
    assert get_lark_client.cache_info().currsize == 1


def test_sql_store_by_default(db):
    assert isinstance(get_store(db=db), SqlParticipantStore)


def test_app_starts_and_stops_with_lifespan():
    with TestClient(app) as client:
        assert client.get("/health").json()["status"] == "healthy"
