# app/core/tokens.py

import base64
import io
import logging
import re
import secrets

import qrcode

logger = logging.getLogger(__name__)

# secrets.token_urlsafe(32) -> 43 caracteres base64url sin padding
TOKEN_BYTES = 32
TOKEN_LENGTH = 43
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{%d}$" % TOKEN_LENGTH)


def issue(event_id: str, email: str) -> str:
    """
    Genera un token QR nuevo para un participante.

    El token es aleatorio: no se deriva del email ni del evento, porque es la
    credencial que se presenta en el check-in.
    """
    token = secrets.token_urlsafe(TOKEN_BYTES)
    logger.debug(f"Token QR emitido para evento {event_id}")
    return token


def validate_format(token) -> bool:
    """Chequeo barato de forma (longitud y alfabeto), sin tocar el store."""
    if not isinstance(token, str):
        return False
    return _TOKEN_RE.match(token) is not None


def render_png(token: str) -> bytes:
    """Genera la imagen PNG del QR"""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(token)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffered = io.BytesIO()
    img.save(buffered, format="PNG")
    return buffered.getvalue()


def render(token: str) -> str:
    """QR como data URI, listo para un <img src=...>"""
    qr_base64 = base64.b64encode(render_png(token)).decode()
    return f"data:image/png;base64,{qr_base64}"
