from .event import *
from .participant import *
from .checkin import *
from .email import *

__all__ = [
    # Evento
    "EventBase", "EventCreate", "EventResponse", "EventWithStatsResponse",
    "EmailSettingsBase", "EmailSettingsUpdate", "EmailSettingsResponse",

    # Participante
    "ParticipantBase", "ParticipantCreate", "ParticipantResponse",
    "ParticipantImportRow", "ParticipantImportRequest", "ParticipantImportResponse",

    # Check-in
    "CheckInRequest", "CheckInResponse", "CheckInStatsResponse", "QRLookupResponse",

    # Correo
    "SendQRRequest", "SendQRBulkRequest", "SendReminderRequest",
    "SendQRResponse", "DispatchResponse",
]
