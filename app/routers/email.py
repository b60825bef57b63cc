from fastapi import APIRouter, Depends, HTTPException, status
import logging

from app.dependencies import get_email_dispatcher
from app.schemas.email import (
    DispatchResponse,
    SendQRBulkRequest,
    SendQRRequest,
    SendQRResponse,
    SendReminderRequest,
)
from app.services.email_dispatch import DispatchSummary, EmailDispatcher

logger = logging.getLogger(__name__)
router = APIRouter()


def _summary_response(message: str, summary: DispatchSummary) -> dict:
    return {
        "message": message,
        "summary": {
            "total": summary.total,
            "success": summary.success,
            "errors": summary.errors,
        },
        "details": {
            "success": summary.sent,
            "errors": summary.failed,
        },
    }

@router.post("/send-qr", response_model=SendQRResponse)
def enviar_qr(request: SendQRRequest, dispatcher: EmailDispatcher = Depends(get_email_dispatcher)):
    """Envía el QR a un participante"""
    result = dispatcher.send_qr(request.participant_id)
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": "Failed to send email", "recipient": result.email, "error": result.error},
        )
    return {
        "success": True,
        "message": "Email sent successfully",
        "email_id": result.email_id,
        "recipient": result.email,
    }

@router.put("/send-qr", response_model=DispatchResponse)
def enviar_qr_masivo(request: SendQRBulkRequest, dispatcher: EmailDispatcher = Depends(get_email_dispatcher)):
    """Envía el QR a todos los participantes del evento, en lotes"""
    summary = dispatcher.send_qr_bulk(request.event_id)
    return _summary_response("Bulk email sending completed", summary)

@router.post("/send-reminder", response_model=DispatchResponse)
def enviar_recordatorio(request: SendReminderRequest, dispatcher: EmailDispatcher = Depends(get_email_dispatcher)):
    summary = dispatcher.send_reminder(request.event_id, request.participant_ids)
    return _summary_response("Reminder sending completed", summary)
