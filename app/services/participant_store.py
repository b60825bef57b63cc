# app/services/participant_store.py

import abc
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from app.core import tokens
from app.core.email_templates import default_email_settings
from app.core.exceptions import ConflictError, ServiceUnavailableError
from app.models import CheckInLog, EmailLog, EmailSettings, Event, Participant

logger = logging.getLogger(__name__)

EMAIL_SETTINGS_FIELDS = (
    "qr_subject",
    "qr_greeting",
    "qr_main_message",
    "qr_instructions",
    "qr_footer",
    "reminder_enabled",
    "reminder_days_before",
    "reminder_subject",
    "reminder_message",
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class ParticipantStore(abc.ABC):
    """
    Acceso al record store externo (base relacional o Lark Base).

    Los finders devuelven None si no existe el registro. Las fallas
    transitorias del backend se elevan como ServiceUnavailableError y los
    duplicados como ConflictError.
    """

    # True si el backend puede hacer "marcar como presente solo si no lo estaba"
    # en una sola operación atómica.
    supports_conditional_update = False

    # Eventos
    @abc.abstractmethod
    def create_event(self, name: str, date: datetime, location: str) -> Event: ...

    @abc.abstractmethod
    def get_event(self, event_id: str) -> Optional[Event]: ...

    @abc.abstractmethod
    def list_events(self) -> List[Event]: ...

    # Participantes
    @abc.abstractmethod
    def find_by_token(self, token: str) -> Optional[Participant]: ...

    @abc.abstractmethod
    def find_by_id(self, participant_id: str) -> Optional[Participant]: ...

    @abc.abstractmethod
    def list_by_event(self, event_id: str) -> List[Participant]: ...

    @abc.abstractmethod
    def create_participant(
        self, event_id: str, name: str, email: str, company: Optional[str] = None
    ) -> Participant: ...

    @abc.abstractmethod
    def mark_checked_in(
        self, participant_id: str, checked_in_at: datetime, device_info: Optional[str] = None
    ) -> Optional[Participant]:
        """
        Marca al participante como presente y agrega el CheckInLog.

        Devuelve None si el participante ya estaba marcado (otro escaneo ganó).
        """

    @abc.abstractmethod
    def reissue_token(self, participant_id: str) -> Optional[Participant]:
        """Reemplaza el token QR. Invalida los códigos ya enviados."""

    @abc.abstractmethod
    def list_checkin_logs(self, participant_id: str) -> List[CheckInLog]: ...

    # Correo
    @abc.abstractmethod
    def get_email_settings(self, event_id: str) -> EmailSettings:
        """Devuelve la configuración del evento, creándola con valores por defecto."""

    @abc.abstractmethod
    def save_email_settings(self, event_id: str, values: dict) -> EmailSettings: ...

    @abc.abstractmethod
    def add_email_log(
        self,
        participant_id: str,
        email_type: str,
        status: str,
        error_message: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> EmailLog: ...

    @abc.abstractmethod
    def list_email_logs(self, participant_id: str) -> List[EmailLog]: ...


class SqlParticipantStore(ParticipantStore):
    """
    Store sobre SQLAlchemy.

    La unicidad de (event_id, email) y de qr_token la garantizan las
    restricciones de la base. El check-in es un UPDATE condicional
    (compare-and-set sobre checked_in) en la misma transacción que el log.
    """

    supports_conditional_update = True

    def __init__(self, db: Session) -> None:
        self._db = db

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except (OperationalError, InterfaceError) as e:
            self._db.rollback()
            logger.error(f"❌ Base de datos no disponible durante {action}: {e}")
            raise ServiceUnavailableError(f"Base de datos no disponible ({action})") from e

    # ---------------- Eventos ----------------

    def create_event(self, name: str, date: datetime, location: str) -> Event:
        with self._guard("create_event"):
            event = Event(name=name, date=date, location=location)
            self._db.add(event)
            self._db.commit()
            self._db.refresh(event)
        logger.info(f"Evento creado: {event.id} ({event.name})")
        return event

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._guard("get_event"):
            return self._db.query(Event).filter(Event.id == event_id).first()

    def list_events(self) -> List[Event]:
        with self._guard("list_events"):
            return self._db.query(Event).order_by(Event.date.desc()).all()

    # ---------------- Participantes ----------------

    def find_by_token(self, token: str) -> Optional[Participant]:
        with self._guard("find_by_token"):
            return (
                self._db.query(Participant)
                .populate_existing()
                .filter(Participant.qr_token == token)
                .first()
            )

    def find_by_id(self, participant_id: str) -> Optional[Participant]:
        with self._guard("find_by_id"):
            return (
                self._db.query(Participant)
                .populate_existing()
                .filter(Participant.id == participant_id)
                .first()
            )

    def list_by_event(self, event_id: str) -> List[Participant]:
        with self._guard("list_by_event"):
            return (
                self._db.query(Participant)
                .populate_existing()
                .filter(Participant.event_id == event_id)
                .order_by(Participant.created_at, Participant.id)
                .all()
            )

    def create_participant(
        self, event_id: str, name: str, email: str, company: Optional[str] = None
    ) -> Participant:
        email = normalize_email(email)
        participant = Participant(
            event_id=event_id,
            name=name.strip(),
            email=email,
            company=(company or "").strip() or None,
            qr_token=tokens.issue(event_id, email),
            checked_in=False,
        )
        with self._guard("create_participant"):
            self._db.add(participant)
            try:
                self._db.commit()
            except IntegrityError as e:
                self._db.rollback()
                logger.warning(f"⚠️ Participante duplicado en evento {event_id}: {email}")
                raise ConflictError(
                    "Ya existe un participante con este email en el evento"
                ) from e
            self._db.refresh(participant)
        logger.info(f"Participante creado: {participant.id} en evento {event_id}")
        return participant

    def mark_checked_in(
        self, participant_id: str, checked_in_at: datetime, device_info: Optional[str] = None
    ) -> Optional[Participant]:
        with self._guard("mark_checked_in"):
            updated = (
                self._db.query(Participant)
                .filter(Participant.id == participant_id, Participant.checked_in == False)  # noqa: E712
                .update(
                    {"checked_in": True, "checked_in_at": checked_in_at},
                    synchronize_session=False,
                )
            )
            if updated == 0:
                self._db.rollback()
                return None

            self._db.add(
                CheckInLog(
                    participant_id=participant_id,
                    checked_in_at=checked_in_at,
                    device_info=device_info,
                )
            )
            self._db.commit()
        return self.find_by_id(participant_id)

    def reissue_token(self, participant_id: str) -> Optional[Participant]:
        with self._guard("reissue_token"):
            participant = self._db.query(Participant).filter(Participant.id == participant_id).first()
            if not participant:
                return None
            participant.qr_token = tokens.issue(participant.event_id, participant.email)
            try:
                self._db.commit()
            except IntegrityError as e:
                self._db.rollback()
                raise ConflictError("Colisión de token QR, intente de nuevo") from e
            self._db.refresh(participant)
        logger.warning(f"Token QR re-emitido para participante {participant_id}")
        return participant

    def list_checkin_logs(self, participant_id: str) -> List[CheckInLog]:
        with self._guard("list_checkin_logs"):
            return (
                self._db.query(CheckInLog)
                .filter(CheckInLog.participant_id == participant_id)
                .order_by(CheckInLog.checked_in_at)
                .all()
            )

    # ---------------- Correo ----------------

    def get_email_settings(self, event_id: str) -> EmailSettings:
        with self._guard("get_email_settings"):
            email_settings = (
                self._db.query(EmailSettings).filter(EmailSettings.event_id == event_id).first()
            )
            if email_settings:
                return email_settings

            email_settings = EmailSettings(event_id=event_id, **default_email_settings())
            self._db.add(email_settings)
            try:
                self._db.commit()
            except IntegrityError:
                # Otro request la creó primero
                self._db.rollback()
                return self._db.query(EmailSettings).filter(EmailSettings.event_id == event_id).one()
            self._db.refresh(email_settings)
            return email_settings

    def save_email_settings(self, event_id: str, values: dict) -> EmailSettings:
        email_settings = self.get_email_settings(event_id)
        with self._guard("save_email_settings"):
            for field in EMAIL_SETTINGS_FIELDS:
                if field not in values:
                    continue
                # Estas columnas no aceptan NULL: None deja el valor actual
                if values[field] is None and field in ("reminder_enabled", "reminder_days_before"):
                    continue
                setattr(email_settings, field, values[field])
            self._db.commit()
            self._db.refresh(email_settings)
        logger.info(f"Configuración de correo guardada para evento {event_id}")
        return email_settings

    def add_email_log(
        self,
        participant_id: str,
        email_type: str,
        status: str,
        error_message: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> EmailLog:
        with self._guard("add_email_log"):
            log = EmailLog(
                participant_id=participant_id,
                type=email_type,
                status=status,
                error_message=error_message,
                provider_id=provider_id,
            )
            self._db.add(log)
            self._db.commit()
            return log

    def list_email_logs(self, participant_id: str) -> List[EmailLog]:
        with self._guard("list_email_logs"):
            return (
                self._db.query(EmailLog)
                .filter(EmailLog.participant_id == participant_id)
                .order_by(EmailLog.created_at)
                .all()
            )
