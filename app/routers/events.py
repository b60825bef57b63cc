from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
import logging

from app.dependencies import get_store
from app.schemas.event import (
    EmailSettingsResponse,
    EmailSettingsUpdate,
    EventCreate,
    EventResponse,
    EventWithStatsResponse,
)
from app.services.participant_store import ParticipantStore
from app.services.stats_service import event_stats

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/", response_model=List[EventWithStatsResponse])
def listar_eventos(store: ParticipantStore = Depends(get_store)):
    """Eventos con el conteo de participantes y presentes"""
    eventos = []
    for event in store.list_events():
        stats = event_stats(store, event.id)
        eventos.append(
            EventWithStatsResponse(
                id=event.id,
                name=event.name,
                date=event.date,
                location=event.location,
                created_at=event.created_at,
                total_participants=stats.total,
                checked_in_count=stats.checked_in,
            )
        )
    return eventos

@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def crear_evento(event_data: EventCreate, store: ParticipantStore = Depends(get_store)):
    return store.create_event(
        name=event_data.name.strip(),
        date=event_data.date,
        location=event_data.location.strip(),
    )

@router.get("/{event_id}", response_model=EventResponse)
def obtener_evento(event_id: str, store: ParticipantStore = Depends(get_store)):
    event = store.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Evento no encontrado")
    return event

@router.get("/{event_id}/email-settings", response_model=EmailSettingsResponse)
def obtener_configuracion_correo(event_id: str, store: ParticipantStore = Depends(get_store)):
    """Si el evento no tiene configuración se crea con los valores por defecto"""
    if not store.get_event(event_id):
        raise HTTPException(status_code=404, detail="Evento no encontrado")
    return store.get_email_settings(event_id)

@router.post("/{event_id}/email-settings", response_model=EmailSettingsResponse)
def guardar_configuracion_correo(
    event_id: str,
    settings_data: EmailSettingsUpdate,
    store: ParticipantStore = Depends(get_store)
):
    if not store.get_event(event_id):
        raise HTTPException(status_code=404, detail="Evento no encontrado")
    return store.save_email_settings(event_id, settings_data.model_dump(exclude_unset=True))
