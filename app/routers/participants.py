from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional
import logging

from app.dependencies import get_store
from app.schemas.participant import (
    ParticipantCreate,
    ParticipantImportRequest,
    ParticipantImportResponse,
    ParticipantResponse,
)
from app.services.participant_import import import_participants
from app.services.participant_store import ParticipantStore

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/", response_model=List[ParticipantResponse])
def listar_participantes(
    event_id: Optional[str] = Query(None, description="Filtrar por evento"),
    store: ParticipantStore = Depends(get_store)
):
    if event_id:
        return store.list_by_event(event_id)

    participantes = []
    for event in store.list_events():
        participantes.extend(store.list_by_event(event.id))
    return participantes

@router.post("/", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
def crear_participante(participant_data: ParticipantCreate, store: ParticipantStore = Depends(get_store)):
    if not store.get_event(participant_data.event_id):
        raise HTTPException(status_code=404, detail="Evento no encontrado")

    # Un email duplicado en el evento sale como ConflictError (409)
    return store.create_participant(
        event_id=participant_data.event_id,
        name=participant_data.name,
        email=participant_data.email,
        company=participant_data.company,
    )

@router.post("/import", response_model=ParticipantImportResponse)
def importar_participantes(request: ParticipantImportRequest, store: ParticipantStore = Depends(get_store)):
    """Alta masiva a partir de filas ya parseadas (por ejemplo, de un CSV)"""
    summary = import_participants(
        store,
        request.event_id,
        [row.model_dump() for row in request.participants],
    )
    return {
        "message": "Import completed",
        "summary": {
            "total": summary.total,
            "success": len(summary.created),
            "errors": len(summary.errors),
            "duplicates": len(summary.duplicates),
        },
        "details": {
            "success": summary.created,
            "errors": summary.errors,
            "duplicates": summary.duplicates,
        },
    }

@router.get("/{participant_id}", response_model=ParticipantResponse)
def obtener_participante(participant_id: str, store: ParticipantStore = Depends(get_store)):
    participant = store.find_by_id(participant_id)
    if not participant:
        raise HTTPException(status_code=404, detail="Participante no encontrado")
    return participant

@router.post("/{participant_id}/reissue-token", response_model=ParticipantResponse)
def reemitir_token(participant_id: str, store: ParticipantStore = Depends(get_store)):
    """
    Genera un token QR nuevo. Los QR enviados antes dejan de funcionar,
    por eso es una operación explícita y separada.
    """
    participant = store.reissue_token(participant_id)
    if not participant:
        raise HTTPException(status_code=404, detail="Participante no encontrado")
    return participant
