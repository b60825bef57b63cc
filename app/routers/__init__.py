from .events import router as events_router
from .participants import router as participants_router
from .checkin import router as checkin_router
from .qr import router as qr_router
from .email import router as email_router

__all__ = [
    "events_router", "participants_router", "checkin_router", "qr_router", "email_router"
]
