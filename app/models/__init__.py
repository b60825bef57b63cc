from .event import Event
from .participant import Participant
from .checkin_log import CheckInLog
from .email_settings import EmailSettings
from .email_log import EmailLog

__all__ = [
    "Event", "Participant", "CheckInLog", "EmailSettings", "EmailLog"
]
