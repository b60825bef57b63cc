from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.core import tokens
from app.core.email_templates import DEFAULT_QR_INSTRUCTIONS, DEFAULT_QR_SUBJECT
from app.core.exceptions import ConflictError, ServiceUnavailableError
from app.models import EmailLog


def test_create_participant_normalizes_email_and_issues_token(store, event):
    participant = store.create_participant(event.id, "  Alice  ", " Alice@Acme.IO ", "Acme")

    assert participant.email == "alice@acme.io"
    assert participant.name == "Alice"
    assert participant.checked_in is False
    assert participant.checked_in_at is None
    assert tokens.validate_format(participant.qr_token)
    assert store.find_by_token(participant.qr_token).id == participant.id


def test_duplicate_email_in_same_event_conflicts(store, event):
    store.create_participant(event.id, "Alice", "alice@acme.io")

    with pytest.raises(ConflictError):
        store.create_participant(event.id, "Alice Again", "ALICE@acme.io")

    assert len(store.list_by_event(event.id)) == 1


def test_same_email_allowed_in_another_event(store, event):
    other = store.create_event("Other", datetime(2025, 1, 1, tzinfo=timezone.utc), "Hall B")

    store.create_participant(event.id, "Alice", "alice@acme.io")
    store.create_participant(other.id, "Alice", "alice@acme.io")

    assert len(store.list_by_event(other.id)) == 1


def test_find_returns_none_when_missing(store):
    assert store.find_by_token("x" * 43) is None
    assert store.find_by_id("missing") is None
    assert store.get_event("missing") is None


def test_mark_checked_in_only_once(store, event):
    participant = store.create_participant(event.id, "Alice", "alice@acme.io")
    first_at = datetime(2024, 12, 1, 9, 30, tzinfo=timezone.utc)

    updated = store.mark_checked_in(participant.id, first_at, "scanner-1")
    second = store.mark_checked_in(participant.id, datetime.now(timezone.utc), "scanner-2")

    assert updated.checked_in is True
    assert second is None

    logs = store.list_checkin_logs(participant.id)
    assert len(logs) == 1
    assert logs[0].device_info == "scanner-1"

    current = store.find_by_id(participant.id)
    assert current.checked_in_at.replace(tzinfo=None) == first_at.replace(tzinfo=None)


def test_reissue_token_invalidates_old_token(store, event):
    participant = store.create_participant(event.id, "Alice", "alice@acme.io")
    old_token = participant.qr_token

    updated = store.reissue_token(participant.id)

    assert updated.qr_token != old_token
    assert store.find_by_token(old_token) is None
    assert store.find_by_token(updated.qr_token).id == participant.id


def test_reissue_token_unknown_participant(store):
    assert store.reissue_token("missing") is None


def test_email_settings_created_with_defaults(store, event):
    email_settings = store.get_email_settings(event.id)

    assert email_settings.qr_subject == DEFAULT_QR_SUBJECT
    assert email_settings.qr_instructions == DEFAULT_QR_INSTRUCTIONS
    assert email_settings.reminder_enabled is False
    # La segunda lectura devuelve la misma fila
    assert store.get_email_settings(event.id).id == email_settings.id


def test_save_email_settings_updates_only_given_fields(store, event):
    saved = store.save_email_settings(
        event.id, {"qr_subject": "Tu QR para {{eventName}}", "reminder_enabled": True}
    )

    assert saved.qr_subject == "Tu QR para {{eventName}}"
    assert saved.reminder_enabled is True
    assert saved.qr_instructions == DEFAULT_QR_INSTRUCTIONS


def test_email_logs_are_listed_per_participant(store, event):
    participant = store.create_participant(event.id, "Alice", "alice@acme.io")

    store.add_email_log(participant.id, "qr", "sent", provider_id="msg-1")
    store.add_email_log(participant.id, "reminder", "failed", error_message="bounced")

    logs = store.list_email_logs(participant.id)
    assert {(log.type, log.status) for log in logs} == {("qr", "sent"), ("reminder", "failed")}
    assert all(isinstance(log, EmailLog) for log in logs)


def test_backend_failure_maps_to_service_unavailable(store, db, monkeypatch):
    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(db, "query", broken_query)

    with pytest.raises(ServiceUnavailableError) as exc_info:
        store.find_by_token("x" * 43)

    assert exc_info.value.retryable is True
