# app/dependencies.py

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import settings
from app.core.email_service import get_mail_transport
from app.core.exceptions import ConfigurationError
from app.database import get_db
from app.services.checkin_service import CheckInService
from app.services.email_dispatch import EmailDispatcher
from app.services.lark_store import LarkClient, LarkParticipantStore
from app.services.participant_store import ParticipantStore, SqlParticipantStore


@lru_cache(maxsize=1)
def get_lark_client() -> LarkClient:
    """Un solo cliente por proceso: reutiliza el pool de conexiones de requests."""
    return LarkClient.from_settings(settings)


def get_store(db: Session = Depends(get_db)) -> ParticipantStore:
    if settings.STORE_BACKEND == "sql":
        return SqlParticipantStore(db)
    if settings.STORE_BACKEND == "lark":
        return LarkParticipantStore(get_lark_client(), settings.lark_tables)
    raise ConfigurationError(f"STORE_BACKEND desconocido: {settings.STORE_BACKEND}")


def get_checkin_service(store: ParticipantStore = Depends(get_store)) -> CheckInService:
    return CheckInService(store)


def get_email_dispatcher(store: ParticipantStore = Depends(get_store)) -> EmailDispatcher:
    return EmailDispatcher(
        store,
        get_mail_transport(),
        app_url=settings.APP_URL,
        sender=settings.EMAIL_FROM,
        batch_size=settings.EMAIL_BATCH_SIZE,
    )
