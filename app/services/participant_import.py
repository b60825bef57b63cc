# app/services/participant_import.py

import logging
from dataclasses import dataclass, field
from typing import List

from email_validator import EmailNotValidError, validate_email

from app.core.exceptions import ConflictError, NotFoundError, ServiceUnavailableError
from app.services.participant_store import ParticipantStore, normalize_email

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    total: int = 0
    created: List[str] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)  # {"row", "email", "error"}
    duplicates: List[str] = field(default_factory=list)


def import_participants(store: ParticipantStore, event_id: str, rows: List[dict]) -> ImportSummary:
    """
    Alta masiva de participantes ya parseados (nombre, email, empresa).

    Filas inválidas y duplicados se informan por fila; el resto se crea.
    """
    if not store.get_event(event_id):
        raise NotFoundError("Evento no encontrado")

    summary = ImportSummary(total=len(rows))
    for row_number, row in enumerate(rows, start=1):
        name = (row.get("name") or "").strip()
        email = (row.get("email") or "").strip()

        if not name or not email:
            summary.errors.append({"row": row_number, "email": email or "unknown", "error": "Missing name or email"})
            continue
        try:
            # Misma validación que EmailStr en el alta individual
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            summary.errors.append({"row": row_number, "email": email, "error": "Invalid email format"})
            continue

        try:
            store.create_participant(event_id, name, email, row.get("company"))
        except ConflictError:
            summary.duplicates.append(normalize_email(email))
            continue
        except ServiceUnavailableError as e:
            logger.error(f"❌ Error creando participante {email}: {e.detail}")
            summary.errors.append({"row": row_number, "email": email, "error": "Database error"})
            continue
        summary.created.append(normalize_email(email))

    logger.info(
        f"Importación en evento {event_id}: total={summary.total}, creados={len(summary.created)}, "
        f"errores={len(summary.errors)}, duplicados={len(summary.duplicates)}"
    )
    return summary
