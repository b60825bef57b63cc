# app/core/email_service.py

import logging
from dataclasses import dataclass
from typing import Optional

import resend

from app.config import settings
from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class MailMessage:
    sender: str
    to: str
    subject: str
    html: str


@dataclass
class MailSendResult:
    id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResendMailTransport:
    """
    Envía correos usando Resend API.

    Nunca lanza por un error del proveedor: devuelve MailSendResult con
    `error` para que el que llama lo registre por destinatario.
    """

    def __init__(self, api_key: Optional[str]):
        if not api_key:
            raise ConfigurationError(
                "Servicio de correo no configurado. Defina RESEND_API_KEY."
            )
        resend.api_key = api_key

    def send(self, message: MailMessage) -> MailSendResult:
        params = {
            "from": message.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        try:
            email = resend.Emails.send(params)
        except Exception as e:
            logger.error(f"❌ [RESEND] Error enviando a {message.to}: {e}")
            return MailSendResult(error=str(e) or type(e).__name__)

        email_id = email.get("id") if isinstance(email, dict) else getattr(email, "id", None)
        logger.info(f"✅ [RESEND] Email enviado a {message.to}. ID: {email_id}")
        return MailSendResult(id=email_id)


class ConsoleMailTransport:
    """Modo desarrollo: no envía nada, solo deja el correo en el log."""

    def send(self, message: MailMessage) -> MailSendResult:
        logger.warning(
            f"⚠️ MODO DEV: email NO enviado (solo simulado). "
            f"Para: {message.to} | Asunto: {message.subject}"
        )
        logger.debug(message.html)
        return MailSendResult(id=f"console-{abs(hash((message.to, message.subject)))}")


def get_mail_transport():
    if settings.MAIL_TRANSPORT == "console":
        return ConsoleMailTransport()
    if settings.MAIL_TRANSPORT == "resend":
        return ResendMailTransport(settings.RESEND_API_KEY)
    raise ConfigurationError(f"MAIL_TRANSPORT desconocido: {settings.MAIL_TRANSPORT}")
