# app/services/email_dispatch.py

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from app.core import tokens
from app.core.email_service import MailMessage, MailSendResult
from app.core.email_templates import needs_qr_image, render_qr_email, render_reminder_email
from app.core.exceptions import CheckinAppError, NotFoundError
from app.models import Event, Participant
from app.models.email_log import (
    EMAIL_STATUS_FAILED,
    EMAIL_STATUS_SENT,
    EMAIL_TYPE_QR,
    EMAIL_TYPE_REMINDER,
)
from app.services.participant_store import ParticipantStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


@dataclass
class SendResult:
    participant_id: str
    email: str
    ok: bool
    email_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class DispatchSummary:
    total: int = 0
    sent: List[str] = field(default_factory=list)
    failed: List[dict] = field(default_factory=list)  # {"email", "error"}

    @property
    def success(self) -> int:
        return len(self.sent)

    @property
    def errors(self) -> int:
        return len(self.failed)

    def add(self, result: SendResult) -> None:
        if result.ok:
            self.sent.append(result.email)
        else:
            self.failed.append({"email": result.email, "error": result.error})


def batched(items: Sequence, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


class EmailDispatcher:
    """
    Envío de correos de QR y recordatorio.

    Los envíos masivos van en lotes de `batch_size`: cada lote se envía en
    paralelo y se espera completo antes de empezar el siguiente, para no
    pasar el límite del proveedor. Un fallo de un destinatario queda en el
    resumen y en EmailLog; nunca corta el lote.
    """

    def __init__(
        self,
        store: ParticipantStore,
        transport,
        app_url: str,
        sender: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self._store = store
        self._transport = transport
        self._app_url = app_url.rstrip("/")
        self._sender = sender
        self._batch_size = max(1, batch_size)

    def qr_page_url(self, token: str) -> str:
        return f"{self._app_url}/qr/{token}"

    # ---------------- API pública ----------------

    def send_qr(self, participant_id: str) -> SendResult:
        participant = self._store.find_by_id(participant_id)
        if not participant:
            raise NotFoundError("Participante no encontrado")
        event = self._require_event(participant.event_id)
        email_settings = self._store.get_email_settings(event.id)

        _, results = self._dispatch(
            [participant],
            lambda p: self._compose_qr(email_settings, event, p),
            EMAIL_TYPE_QR,
        )
        return results[0]

    def send_qr_bulk(self, event_id: str) -> DispatchSummary:
        event = self._require_event(event_id)
        email_settings = self._store.get_email_settings(event.id)
        participants = self._store.list_by_event(event.id)
        logger.info(f"📧 Envío masivo de QR: evento {event.id}, {len(participants)} destinatarios")

        summary, _ = self._dispatch(
            participants,
            lambda p: self._compose_qr(email_settings, event, p),
            EMAIL_TYPE_QR,
        )
        return summary

    def send_reminder(self, event_id: str, participant_ids: Optional[List[str]] = None) -> DispatchSummary:
        event = self._require_event(event_id)
        email_settings = self._store.get_email_settings(event.id)
        participants = self._store.list_by_event(event.id)
        if participant_ids:
            wanted = set(participant_ids)
            participants = [p for p in participants if p.id in wanted]
        logger.info(f"📧 Recordatorio: evento {event.id}, {len(participants)} destinatarios")

        with_qr = needs_qr_image(email_settings.reminder_message)

        def compose(p: Participant) -> MailMessage:
            qr_data_uri = tokens.render(p.qr_token) if with_qr else None
            subject, html = render_reminder_email(
                email_settings, event, p, self.qr_page_url(p.qr_token), qr_data_uri=qr_data_uri
            )
            return MailMessage(sender=self._sender, to=p.email, subject=subject, html=html)

        summary, _ = self._dispatch(participants, compose, EMAIL_TYPE_REMINDER)
        return summary

    # ---------------- Internos ----------------

    def _require_event(self, event_id: str) -> Event:
        event = self._store.get_event(event_id)
        if not event:
            raise NotFoundError("Evento no encontrado")
        return event

    def _compose_qr(self, email_settings, event: Event, participant: Participant) -> MailMessage:
        qr_data_uri = tokens.render(participant.qr_token)
        subject, html = render_qr_email(
            email_settings, event, participant, qr_data_uri, self.qr_page_url(participant.qr_token)
        )
        return MailMessage(sender=self._sender, to=participant.email, subject=subject, html=html)

    def _dispatch(self, participants: Sequence[Participant], compose: Callable, email_type: str):
        summary = DispatchSummary(total=len(participants))
        results: List[SendResult] = []

        with ThreadPoolExecutor(max_workers=self._batch_size) as pool:
            for batch in batched(list(participants), self._batch_size):
                for result in self._send_batch(pool, batch, compose):
                    self._record(result, email_type)
                    summary.add(result)
                    results.append(result)

        logger.info(
            f"📊 Envío {email_type} completado: total={summary.total}, "
            f"ok={summary.success}, errores={summary.errors}"
        )
        return summary, results

    def _send_batch(self, pool: ThreadPoolExecutor, batch: Sequence[Participant], compose: Callable):
        # Se arma el mensaje en este hilo; los workers solo hablan con el proveedor
        pending = []
        ready = []
        for participant in batch:
            try:
                message = compose(participant)
            except Exception as e:
                logger.error(f"❌ Error armando correo para {participant.email}: {e}")
                pending.append((participant, None, str(e) or type(e).__name__))
                continue
            pending.append((participant, message, None))
            ready.append(message)

        outcomes = iter(list(pool.map(self._deliver, ready)))

        results = []
        for participant, message, compose_error in pending:
            if message is None:
                results.append(SendResult(participant.id, participant.email, ok=False, error=compose_error))
                continue
            outcome = next(outcomes)
            results.append(
                SendResult(
                    participant.id,
                    participant.email,
                    ok=outcome.ok,
                    email_id=outcome.id,
                    error=outcome.error,
                )
            )
        return results

    def _deliver(self, message: MailMessage) -> MailSendResult:
        try:
            return self._transport.send(message)
        except Exception as e:
            logger.error(f"❌ Error enviando correo a {message.to}: {e}")
            return MailSendResult(error=str(e) or type(e).__name__)

    def _record(self, result: SendResult, email_type: str) -> None:
        try:
            self._store.add_email_log(
                participant_id=result.participant_id,
                email_type=email_type,
                status=EMAIL_STATUS_SENT if result.ok else EMAIL_STATUS_FAILED,
                error_message=result.error,
                provider_id=result.email_id,
            )
        except CheckinAppError as e:
            logger.error(f"❌ No se pudo guardar EmailLog de {result.email}: {e.detail}")
