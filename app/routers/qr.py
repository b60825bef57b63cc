from fastapi import APIRouter, Depends, HTTPException

from app.core import tokens
from app.dependencies import get_store
from app.schemas.checkin import QRLookupResponse
from app.services.participant_store import ParticipantStore

router = APIRouter()

@router.get("/token/{token}", response_model=QRLookupResponse)
def obtener_qr_por_token(token: str, store: ParticipantStore = Depends(get_store)):
    """Datos para la página que muestra el QR del participante"""
    if not tokens.validate_format(token):
        raise HTTPException(status_code=400, detail="Invalid token format")

    participant = store.find_by_token(token)
    if not participant:
        raise HTTPException(status_code=404, detail="Participant not found")

    event = store.get_event(participant.event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    return {
        "participant": {
            "id": participant.id,
            "name": participant.name,
            "email": participant.email,
            "company": participant.company,
        },
        "event": {
            "name": event.name,
            "date": event.date,
            "location": event.location,
        },
        "qr_code": tokens.render(participant.qr_token),
        "token": participant.qr_token,
    }
