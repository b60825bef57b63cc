from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from app.dependencies import get_checkin_service, get_store
from app.schemas.checkin import CheckInRequest, CheckInResponse, CheckInStatsResponse
from app.services.checkin_service import CheckInOutcome, CheckInService
from app.services.participant_store import ParticipantStore
from app.services.stats_service import event_stats

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=CheckInResponse)
def registrar_checkin(
    request: CheckInRequest,
    service: CheckInService = Depends(get_checkin_service)
):
    """
    Check-in por token QR.

    400 token inválido, 404 no encontrado, 409 ya registrado (con la hora
    original del check-in).
    """
    if not request.token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is required")

    result = service.check_in(request.token, request.device_info)

    if result.outcome == CheckInOutcome.INVALID_TOKEN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid token format")

    if result.outcome == CheckInOutcome.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")

    participant = result.participant
    if result.outcome == CheckInOutcome.ALREADY_CHECKED_IN:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "Already checked in",
                "participant": {
                    "id": participant.id,
                    "name": participant.name,
                    "email": participant.email,
                    "checked_in_at": participant.checked_in_at.isoformat() if participant.checked_in_at else None,
                },
            },
        )

    event = result.event
    return {
        "success": True,
        "message": f"Check-in registrado para {participant.name}",
        "participant": {
            "id": participant.id,
            "name": participant.name,
            "email": participant.email,
            "company": participant.company,
            "checked_in_at": participant.checked_in_at,
            "event": {"name": event.name, "date": event.date} if event else None,
        },
    }

@router.get("/stats", response_model=CheckInStatsResponse)
def estadisticas_checkin(
    event_id: str = Query(..., description="ID del evento"),
    store: ParticipantStore = Depends(get_store)
):
    if not store.get_event(event_id):
        raise HTTPException(status_code=404, detail="Evento no encontrado")

    stats = event_stats(store, event_id)
    return {
        "total": stats.total,
        "checked_in": stats.checked_in,
        "not_checked_in": stats.not_checked_in,
        "check_in_rate": stats.rate,
    }
