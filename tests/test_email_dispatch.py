import pytest

from app.core.exceptions import NotFoundError
from app.models import EmailLog
from app.services.email_dispatch import EmailDispatcher, batched
from tests.fakes import APP_URL, SENDER, FakeTransport


def _add_people(store, event, count):
    return [
        store.create_participant(event.id, f"Person {i}", f"person{i}@acme.io", "Acme")
        for i in range(1, count + 1)
    ]


def test_batched_splits_in_order():
    assert list(batched(list(range(12)), 5)) == [[0, 1, 2, 3, 4], [5, 6, 7, 8, 9], [10, 11]]
    assert list(batched([], 5)) == []


def test_bulk_send_goes_in_batches_of_five_and_reports_failures(store, db, event, monkeypatch):
    _add_people(store, event, 12)
    transport = FakeTransport(failures={"person7@acme.io": "Domain not verified"}, delay=0.01)
    dispatcher = EmailDispatcher(store, transport, app_url=APP_URL, sender=SENDER)

    sizes = []
    original = dispatcher._send_batch

    def spy(pool, batch, compose):
        sizes.append(len(batch))
        return original(pool, batch, compose)

    monkeypatch.setattr(dispatcher, "_send_batch", spy)

    summary = dispatcher.send_qr_bulk(event.id)

    assert sizes == [5, 5, 2]
    assert transport.max_in_flight <= 5
    assert summary.total == 12
    assert summary.success == 11
    assert summary.errors == 1
    assert summary.failed == [{"email": "person7@acme.io", "error": "Domain not verified"}]
    assert "person7@acme.io" not in transport.recipients

    logs = db.query(EmailLog).all()
    assert len(logs) == 12
    failed = [log for log in logs if log.status == "failed"]
    assert len(failed) == 1
    assert failed[0].error_message == "Domain not verified"
    assert all(log.type == "qr" for log in logs)


def test_transport_exception_is_a_recipient_failure(store, event):
    _add_people(store, event, 3)
    transport = FakeTransport(failures={"person2@acme.io": RuntimeError("connection reset")})
    dispatcher = EmailDispatcher(store, transport, app_url=APP_URL, sender=SENDER)

    summary = dispatcher.send_qr_bulk(event.id)

    assert summary.success == 2
    assert summary.failed == [{"email": "person2@acme.io", "error": "connection reset"}]


def test_bulk_send_to_empty_event(dispatcher, transport, event):
    summary = dispatcher.send_qr_bulk(event.id)

    assert (summary.total, summary.success, summary.errors) == (0, 0, 0)
    assert transport.sent == []


def test_send_qr_single(store, event, dispatcher, transport):
    alice = store.create_participant(event.id, "Alice", "alice@acme.io")

    result = dispatcher.send_qr(alice.id)

    assert result.ok
    assert result.email == "alice@acme.io"
    assert result.email_id == "msg-1"

    message = transport.sent[0]
    assert message.sender == SENDER
    assert message.subject == "Launch - Check-in QR code"
    assert "data:image/png;base64," in message.html
    assert f"{APP_URL}/qr/{alice.qr_token}" in message.html

    logs = store.list_email_logs(alice.id)
    assert [(log.type, log.status, log.provider_id) for log in logs] == [("qr", "sent", "msg-1")]


def test_send_qr_unknown_participant(dispatcher):
    with pytest.raises(NotFoundError):
        dispatcher.send_qr("missing")


def test_bulk_send_unknown_event(dispatcher):
    with pytest.raises(NotFoundError):
        dispatcher.send_qr_bulk("missing")


def test_reminder_to_selected_participants(store, event, dispatcher, transport):
    people = _add_people(store, event, 4)

    summary = dispatcher.send_reminder(event.id, [people[0].id, people[2].id])

    assert summary.total == 2
    assert sorted(transport.recipients) == ["person1@acme.io", "person3@acme.io"]
    assert transport.sent[0].subject == "[Reminder] Launch is coming up"
    # El mensaje por defecto no pide el QR
    assert "data:image/png" not in transport.sent[0].html
    assert store.list_email_logs(people[0].id)[0].type == "reminder"
    assert store.list_email_logs(people[1].id) == []


def test_reminder_embeds_qr_when_message_asks_for_it(store, event, dispatcher, transport):
    _add_people(store, event, 1)
    store.save_email_settings(event.id, {"reminder_message": "<p>Hi {{NAME}}</p>{{QR_CODE}}"})

    summary = dispatcher.send_reminder(event.id)

    assert summary.success == 1
    assert "Hi Person 1" in transport.sent[0].html
    assert "data:image/png;base64," in transport.sent[0].html
