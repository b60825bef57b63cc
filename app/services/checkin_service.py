# app/services/checkin_service.py

import enum
import logging
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.core import tokens
from app.core.exceptions import CheckinAppError, ServiceUnavailableError
from app.core.locks import KeyedLock
from app.models import Event, Participant
from app.services.participant_store import ParticipantStore

logger = logging.getLogger(__name__)

# Compartido por todo el proceso: serializa escaneos del mismo token cuando el
# store no tiene update condicional.
checkin_locks = KeyedLock()


class CheckInOutcome(str, enum.Enum):
    SUCCESS = "success"
    ALREADY_CHECKED_IN = "already_checked_in"
    INVALID_TOKEN = "invalid_token"
    NOT_FOUND = "not_found"


@dataclass
class CheckInResult:
    outcome: CheckInOutcome
    participant: Optional[Participant] = None
    event: Optional[Event] = None

    @property
    def checked_in_at(self) -> Optional[datetime]:
        return self.participant.checked_in_at if self.participant else None


class CheckInService:
    """
    Transición NOT_CHECKED_IN -> CHECKED_IN de un participante.

    Un escaneo repetido devuelve ALREADY_CHECKED_IN con la hora original; no
    es un error ni agrega otra fila al log. Solo un escaneo puede ganar.
    """

    def __init__(self, store: ParticipantStore, locks: Optional[KeyedLock] = None):
        self._store = store
        self._locks = locks or checkin_locks

    def check_in(self, token: str, device_info: Optional[str] = None) -> CheckInResult:
        if not tokens.validate_format(token):
            logger.warning("❌ Check-in rechazado: formato de token inválido")
            return CheckInResult(CheckInOutcome.INVALID_TOKEN)

        participant = self._store.find_by_token(token)
        if participant is None:
            logger.warning(f"❌ Check-in rechazado: token no encontrado {token[:8]}...")
            return CheckInResult(CheckInOutcome.NOT_FOUND)

        if participant.checked_in:
            return self._already(participant)

        # Con update condicional la base decide quién gana; si no, lock por token
        guard = nullcontext() if self._store.supports_conditional_update else self._locks.hold(token)
        with guard:
            if not self._store.supports_conditional_update:
                participant = self._store.find_by_token(token)
                if participant is None:
                    return CheckInResult(CheckInOutcome.NOT_FOUND)
                if participant.checked_in:
                    return self._already(participant)

            checked_in_at = datetime.now(timezone.utc)
            try:
                updated = self._store.mark_checked_in(participant.id, checked_in_at, device_info)
            except ServiceUnavailableError as e:
                logger.error(
                    f"❌ Falla al registrar check-in de {participant.id}; estado desconocido: {e.detail}"
                )
                raise ServiceUnavailableError(
                    "No se pudo confirmar el check-in. Vuelva a escanear para verificar el estado.",
                    retryable=False,
                ) from e

        if updated is None:
            # Otro escaneo concurrente ganó: se devuelve su hora
            current = self._store.find_by_id(participant.id) or participant
            return self._already(current)

        # El check-in ya quedó guardado: si falla la lectura del evento se
        # responde SUCCESS sin evento, nunca como error reintentable
        try:
            event = self._store.get_event(updated.event_id)
        except CheckinAppError as e:
            logger.error(f"❌ Check-in de {updated.id} guardado pero no se pudo leer el evento: {e.detail}")
            event = None
        logger.info(f"✅ Check-in registrado: {updated.name} ({updated.id})")
        return CheckInResult(CheckInOutcome.SUCCESS, participant=updated, event=event)

    def _already(self, participant: Participant) -> CheckInResult:
        logger.warning(
            f"⚠️ Participante ya registrado: {participant.name} a las {participant.checked_in_at}"
        )
        return CheckInResult(CheckInOutcome.ALREADY_CHECKED_IN, participant=participant)
