from datetime import datetime, timezone

from app.services.stats_service import event_stats


def test_empty_event_has_zero_rate(store, event):
    stats = event_stats(store, event.id)

    assert (stats.total, stats.checked_in, stats.not_checked_in, stats.rate) == (0, 0, 0, 0)


def test_rate_is_rounded_percentage(store, event):
    people = [store.create_participant(event.id, f"P{i}", f"p{i}@acme.io") for i in range(3)]
    store.mark_checked_in(people[0].id, datetime.now(timezone.utc))

    stats = event_stats(store, event.id)
    assert (stats.total, stats.checked_in, stats.not_checked_in, stats.rate) == (3, 1, 2, 33)

    store.mark_checked_in(people[1].id, datetime.now(timezone.utc))
    assert event_stats(store, event.id).rate == 67


def test_stats_only_count_the_given_event(store, event):
    other = store.create_event("Other", datetime(2025, 1, 1, tzinfo=timezone.utc), "Hall B")
    store.create_participant(other.id, "Alice", "alice@acme.io")

    assert event_stats(store, event.id).total == 0
    assert event_stats(store, other.id).total == 1
