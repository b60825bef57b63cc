# app/core/email_templates.py
"""
Plantillas de correo para el QR de check-in y el recordatorio.

La sustitución es literal y de una sola pasada sobre una lista fija de
placeholders: un valor ya sustituido nunca se vuelve a expandir. No es un
motor de plantillas.
"""

import re
from html import escape
from typing import Optional

# Placeholders reconocidos
PLACEHOLDERS = (
    "{{QR_CODE}}",        # imagen QR (solo en el cuerpo)
    "{{QR_PAGE_URL}}",    # URL de la página del QR
    "{{NAME}}",
    "{{EMAIL}}",
    "{{COMPANY}}",
    "{{EVENT_NAME}}",
    "{{EVENT_DATE}}",
    "{{EVENT_LOCATION}}",
    "{{eventName}}",      # alias usado en los asuntos
)
_PLACEHOLDER_RE = re.compile("|".join(re.escape(p) for p in PLACEHOLDERS))

DEFAULT_QR_SUBJECT = "{{eventName}} - Check-in QR code"
DEFAULT_QR_GREETING = "Thank you for registering!"
DEFAULT_QR_MESSAGE = """
<p>Please show the QR code below at the check-in counter.</p>
{{QR_CODE}}
"""
DEFAULT_QR_INSTRUCTIONS = [
    "This QR code is for your personal use only",
    "Please keep it safe until check-in",
    "Display it on your smartphone or print this email",
]
DEFAULT_QR_FOOTER = "We look forward to seeing you!"

DEFAULT_REMINDER_SUBJECT = "[Reminder] {{eventName}} is coming up"
DEFAULT_REMINDER_MESSAGE = """
<p>Dear {{NAME}},</p>
<p>{{EVENT_NAME}} is coming up soon. We look forward to seeing you there.</p>
"""


def default_email_settings() -> dict:
    return {
        "qr_subject": DEFAULT_QR_SUBJECT,
        "qr_greeting": DEFAULT_QR_GREETING,
        "qr_main_message": DEFAULT_QR_MESSAGE.strip(),
        "qr_instructions": list(DEFAULT_QR_INSTRUCTIONS),
        "qr_footer": DEFAULT_QR_FOOTER,
        "reminder_enabled": False,
        "reminder_days_before": 1,
        "reminder_subject": DEFAULT_REMINDER_SUBJECT,
        "reminder_message": DEFAULT_REMINDER_MESSAGE.strip(),
    }


def format_event_date(value) -> str:
    if hasattr(value, "strftime"):
        return value.strftime("%Y/%m/%d %H:%M")
    return str(value or "")


def placeholder_values(event, participant, qr_page_url: str) -> dict:
    return {
        "{{QR_PAGE_URL}}": qr_page_url,
        "{{NAME}}": participant.name,
        "{{EMAIL}}": participant.email,
        "{{COMPANY}}": participant.company or "",
        "{{EVENT_NAME}}": event.name,
        "{{EVENT_DATE}}": format_event_date(event.date),
        "{{EVENT_LOCATION}}": event.location,
        "{{eventName}}": event.name,
    }


def qr_image_tag(qr_data_uri: str) -> str:
    return f'<div class="qr-code"><img src="{qr_data_uri}" alt="Check-in QR code" /></div>'


def substitute(template: str, values: dict, qr_data_uri: Optional[str] = None, html: bool = True) -> str:
    """Reemplaza los placeholders conocidos; los desconocidos quedan tal cual."""
    def replace(match):
        placeholder = match.group(0)
        if placeholder == "{{QR_CODE}}":
            return qr_image_tag(qr_data_uri) if (html and qr_data_uri) else ""
        value = values.get(placeholder) or ""
        return escape(value) if html else value

    return _PLACEHOLDER_RE.sub(replace, template)


def needs_qr_image(*templates) -> bool:
    return any(t and "{{QR_CODE}}" in t for t in templates)


_LAYOUT = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
      body {{ font-family: 'Helvetica Neue', Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f5f5f5; }}
      .container {{ background-color: #ffffff; border-radius: 16px; overflow: hidden; }}
      .header {{ background: #667eea; color: white; padding: 30px; text-align: center; }}
      .header h1 {{ margin: 0; font-size: 24px; }}
      .content {{ padding: 30px; }}
      .qr-section {{ background-color: #f8f9fa; border-radius: 12px; padding: 25px; margin: 20px 0; text-align: center; }}
      .qr-code img {{ max-width: 250px; height: auto; }}
      .qr-link-box {{ background: #e3f2fd; border-radius: 10px; padding: 20px; margin: 20px 0; text-align: center; }}
      .footer {{ background-color: #f8f9fa; padding: 20px 30px; font-size: 13px; color: #666; }}
    </style>
  </head>
  <body>
    <div class="container">
      <div class="header">
        <h1>{event_name}</h1>
        <p>{event_date}</p>
        <p>{event_location}</p>
      </div>
      <div class="content">
{content}
      </div>
      <div class="footer">
{footer}
      </div>
    </div>
  </body>
</html>
"""


def _layout(values: dict, content: str, footer: str) -> str:
    return _LAYOUT.format(
        event_name=escape(values["{{EVENT_NAME}}"]),
        event_date=escape(values["{{EVENT_DATE}}"]),
        event_location=escape(values["{{EVENT_LOCATION}}"]),
        content=content,
        footer=footer,
    )


def _qr_link_box(qr_page_url: str) -> str:
    url = escape(qr_page_url)
    return (
        '<div class="qr-link-box">'
        f'<a href="{url}">View your QR code online</a>'
        "<p>Save this link to open your QR code from any device.</p>"
        f'<p style="font-size: 11px; color: #999; word-break: break-all;">{url}</p>'
        "</div>"
    )


def render_qr_email(email_settings, event, participant, qr_data_uri: str, qr_page_url: str) -> tuple:
    """Devuelve (asunto, html) del correo con el QR de check-in."""
    values = placeholder_values(event, participant, qr_page_url)

    subject = substitute(email_settings.qr_subject or DEFAULT_QR_SUBJECT, values, html=False)
    message = email_settings.qr_main_message or DEFAULT_QR_MESSAGE
    greeting = email_settings.qr_greeting or DEFAULT_QR_GREETING

    parts = [
        f"<p>{substitute(greeting, values)}</p>",
        substitute(message, values, qr_data_uri=qr_data_uri),
    ]

    # Si el mensaje no incluye el QR, se agrega la sección estándar
    if "{{QR_CODE}}" not in message:
        company = values["{{COMPANY}}"]
        parts.append(
            '<div class="qr-section">'
            + qr_image_tag(qr_data_uri)
            + f"<div><strong>{escape(participant.name)}</strong></div>"
            + (f"<div>{escape(company)}</div>" if company else "")
            + f"<div>{escape(participant.email)}</div>"
            + "</div>"
        )
    parts.append(_qr_link_box(qr_page_url))

    instructions = email_settings.qr_instructions
    if instructions is None:
        instructions = DEFAULT_QR_INSTRUCTIONS
    footer_parts = []
    if instructions:
        items = "".join(f"<li>{substitute(item, values)}</li>" for item in instructions)
        footer_parts.append(f"<p><strong>Important notes:</strong></p><ul>{items}</ul>")
    footer = email_settings.qr_footer or DEFAULT_QR_FOOTER
    footer_parts.append(f'<p style="text-align: center;">{substitute(footer, values)}</p>')

    return subject, _layout(values, "\n".join(parts), "\n".join(footer_parts))


def render_reminder_email(email_settings, event, participant, qr_page_url: str,
                          qr_data_uri: Optional[str] = None) -> tuple:
    """Devuelve (asunto, html) del recordatorio."""
    values = placeholder_values(event, participant, qr_page_url)

    subject = substitute(email_settings.reminder_subject or DEFAULT_REMINDER_SUBJECT, values, html=False)
    message = email_settings.reminder_message or DEFAULT_REMINDER_MESSAGE

    content = "\n".join([
        substitute(message, values, qr_data_uri=qr_data_uri),
        f"<p><strong>Date:</strong> {escape(values['{{EVENT_DATE}}'])}</p>",
        f"<p><strong>Location:</strong> {escape(values['{{EVENT_LOCATION}}'])}</p>",
        _qr_link_box(qr_page_url),
    ])
    footer = "<p>Please bring your QR code with you.</p>"
    return subject, _layout(values, content, footer)
