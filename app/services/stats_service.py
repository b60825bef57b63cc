# app/services/stats_service.py

from dataclasses import dataclass

from app.services.participant_store import ParticipantStore


@dataclass
class EventStats:
    total: int
    checked_in: int
    rate: int

    @property
    def not_checked_in(self) -> int:
        return self.total - self.checked_in


def event_stats(store: ParticipantStore, event_id: str) -> EventStats:
    """Cuenta presentes sobre la lista actual de participantes (sin caché)."""
    participants = store.list_by_event(event_id)
    total = len(participants)
    checked_in = sum(1 for p in participants if p.checked_in)
    rate = round(checked_in / total * 100) if total > 0 else 0
    return EventStats(total=total, checked_in=checked_in, rate=rate)
