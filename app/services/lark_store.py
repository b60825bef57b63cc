# app/services/lark_store.py
"""
Record store sobre Lark Base (Bitable).

Lark no tiene update condicional, así que `supports_conditional_update` es
False: el servicio de check-in serializa por token y este store vuelve a leer
el registro antes de escribir.
"""

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

import requests

from app.core import tokens
from app.core.email_templates import default_email_settings
from app.core.exceptions import ConfigurationError, ConflictError, ServiceUnavailableError
from app.core.locks import KeyedLock
from app.models import CheckInLog, EmailLog, EmailSettings, Event, Participant
from app.services.participant_store import EMAIL_SETTINGS_FIELDS, ParticipantStore, normalize_email

logger = logging.getLogger(__name__)

# El token se renueva 5 minutos antes de que Lark lo dé por vencido
EARLY_REFRESH_SECONDS = 300
PAGE_SIZE = 500

# Códigos de Lark para tenant_access_token inválido o vencido
TOKEN_ERROR_CODES = {99991661, 99991663, 99991664, 99991668, 99991677}


@dataclass
class AccessToken:
    value: str
    expires_at: float


class TenantTokenCache:
    """
    tenant_access_token compartido por el proceso.

    Se renueva solo al vencer y bajo un lock: si varios hilos lo encuentran
    vencido a la vez, uno solo llama a Lark y el resto reutiliza el nuevo.
    """

    def __init__(self, fetch: Callable[[], Tuple[str, int]], clock: Callable[[], float] = time.monotonic):
        self._fetch = fetch
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[AccessToken] = None

    def _valid(self, token: Optional[AccessToken]) -> bool:
        return token is not None and token.expires_at > self._clock()

    def get(self) -> str:
        token = self._token
        if self._valid(token):
            return token.value

        with self._lock:
            token = self._token
            if self._valid(token):
                return token.value
            value, expire = self._fetch()
            self._token = AccessToken(value, self._clock() + max(expire - EARLY_REFRESH_SECONDS, 0))
            logger.info("Lark tenant_access_token renovado")
            return value

    def invalidate(self, rejected: Optional[str] = None) -> None:
        """Descarta el token; con `rejected`, solo si sigue siendo ese (otro hilo pudo renovarlo)."""
        with self._lock:
            if rejected is None or (self._token is not None and self._token.value == rejected):
                self._token = None


_token_caches = {}
_token_caches_lock = threading.Lock()


def shared_token_cache(key: str, fetch: Callable[[], Tuple[str, int]]) -> TenantTokenCache:
    with _token_caches_lock:
        cache = _token_caches.get(key)
        if cache is None:
            cache = TenantTokenCache(fetch)
            _token_caches[key] = cache
        return cache


class LarkClient:
    def __init__(
        self,
        api_base: str,
        app_id: str,
        app_secret: str,
        base_id: str,
        timeout: int = 15,
        http=None,
        token_cache: Optional[TenantTokenCache] = None,
    ):
        self._api_base = api_base.rstrip("/")
        self._app_id = app_id
        self._app_secret = app_secret
        self._base_id = base_id
        self._timeout = timeout
        self._http = http or requests.Session()
        self._tokens = token_cache or shared_token_cache(f"{self._api_base}|{app_id}", self._fetch_tenant_token)

    @classmethod
    def from_settings(cls, settings) -> "LarkClient":
        if not settings.LARK_APP_ID or not settings.LARK_APP_SECRET or not settings.LARK_BASE_ID:
            raise ConfigurationError(
                "Falta configuración de Lark. Defina LARK_APP_ID, LARK_APP_SECRET y LARK_BASE_ID"
            )
        return cls(
            settings.LARK_API_BASE,
            settings.LARK_APP_ID,
            settings.LARK_APP_SECRET,
            settings.LARK_BASE_ID,
            timeout=settings.LARK_TIMEOUT_SECONDS,
        )

    def _fetch_tenant_token(self) -> Tuple[str, int]:
        try:
            response = self._http.post(
                f"{self._api_base}/auth/v3/tenant_access_token/internal",
                json={"app_id": self._app_id, "app_secret": self._app_secret},
                timeout=self._timeout,
            )
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise ServiceUnavailableError(f"Lark no disponible al pedir access token: {e}") from e

        if data.get("code") != 0:
            raise ConfigurationError(f"No se pudo obtener el access token de Lark: {data.get('msg')}")
        return data["tenant_access_token"], int(data.get("expire", 7200))

    def close(self) -> None:
        self._http.close()

    def request(self, method: str, path: str, params: Optional[dict] = None, body: Optional[dict] = None) -> dict:
        token, data = self._send(method, path, params, body)
        if data.get("code") in TOKEN_ERROR_CODES:
            # Lark revocó el token antes de su vencimiento: se pide otro una vez
            logger.warning(f"⚠️ Lark rechazó el tenant_access_token ({data.get('code')}), renovando")
            self._tokens.invalidate(token)
            _, data = self._send(method, path, params, body)

        if data.get("code") != 0:
            logger.error(f"❌ Lark API Error: {data}")
            raise ServiceUnavailableError(f"Lark API Error: {data.get('msg')}")
        return data.get("data") or {}

    def _send(self, method: str, path: str, params: Optional[dict], body: Optional[dict]) -> Tuple[str, dict]:
        token = self._tokens.get()
        try:
            response = self._http.request(
                method,
                f"{self._api_base}{path}",
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                params=params,
                json=body,
                timeout=self._timeout,
            )
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"❌ Lark API no disponible: {method} {path}: {e}")
            raise ServiceUnavailableError(f"Lark API no disponible: {e}") from e
        return token, data

    # ---------------- Registros ----------------

    def _records_path(self, table_id: str) -> str:
        return f"/bitable/v1/apps/{self._base_id}/tables/{table_id}/records"

    def list_records(self, table_id: str, filter_formula: Optional[str] = None) -> List[dict]:
        items = []
        page_token = None
        while True:
            params = {"page_size": PAGE_SIZE}
            if filter_formula:
                params["filter"] = filter_formula
            if page_token:
                params["page_token"] = page_token
            data = self.request("GET", self._records_path(table_id), params=params)
            items.extend(data.get("items") or [])
            page_token = data.get("page_token")
            if not data.get("has_more") or not page_token:
                return items

    def create_record(self, table_id: str, fields: dict) -> dict:
        data = self.request("POST", self._records_path(table_id), body={"fields": fields})
        return data.get("record") or {}

    def update_record(self, table_id: str, record_id: str, fields: dict) -> dict:
        data = self.request("PUT", f"{self._records_path(table_id)}/{record_id}", body={"fields": fields})
        return data.get("record") or {}


def equals(field: str, value: str) -> str:
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'CurrentValue.[{field}]="{escaped}"'


def all_of(*conditions: str) -> str:
    return f"AND({', '.join(conditions)})"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_datetime(value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        # Los campos fecha de Lark vienen en milisegundos
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return datetime.fromisoformat(str(value))


def _as_bool(value) -> bool:
    return value is True or value == "true"


def _as_int(value, default: int) -> int:
    if value in (None, ""):
        return default
    return int(value)


# Locks del proceso para altas que Lark no puede hacer únicas por sí mismo
_create_locks = KeyedLock()


class LarkParticipantStore(ParticipantStore):
    supports_conditional_update = False

    def __init__(self, client: LarkClient, tables: dict):
        self._client = client
        self._tables = tables

    def _table(self, name: str) -> str:
        table_id = self._tables.get(name)
        if not table_id:
            raise ConfigurationError(f"Falta el ID de la tabla Lark '{name}' (LARK_TABLE_{name.upper()})")
        return table_id

    def _first(self, table: str, filter_formula: str) -> Optional[dict]:
        items = self._client.list_records(self._table(table), filter_formula)
        return items[0] if items else None

    # ---------------- Mapeos ----------------

    @staticmethod
    def _to_event(item: dict) -> Event:
        f = item.get("fields", {})
        return Event(
            id=f.get("id") or item.get("record_id"),
            name=f.get("name", ""),
            date=_parse_datetime(f.get("date")),
            location=f.get("location", ""),
            created_at=_parse_datetime(f.get("createdAt")),
        )

    @staticmethod
    def _to_participant(item: dict) -> Participant:
        f = item.get("fields", {})
        checked_in = _as_bool(f.get("checkedIn"))
        return Participant(
            id=f.get("id") or item.get("record_id"),
            event_id=f.get("eventId", ""),
            name=f.get("name", ""),
            email=f.get("email", ""),
            company=f.get("company") or None,
            qr_token=f.get("qrToken", ""),
            checked_in=checked_in,
            checked_in_at=_parse_datetime(f.get("checkedInAt")) if checked_in else None,
            created_at=_parse_datetime(f.get("createdAt")),
        )

    @staticmethod
    def _to_email_settings(item: dict) -> EmailSettings:
        f = item.get("fields", {})
        instructions = f.get("qrInstructions")
        if isinstance(instructions, str):
            instructions = json.loads(instructions) if instructions else []
        return EmailSettings(
            id=f.get("id") or item.get("record_id"),
            event_id=f.get("eventId", ""),
            qr_subject=f.get("qrSubject") or None,
            qr_greeting=f.get("qrGreeting") or None,
            qr_main_message=f.get("qrMainMessage") or None,
            qr_instructions=instructions,
            qr_footer=f.get("qrFooter") or None,
            reminder_enabled=_as_bool(f.get("reminderEnabled")),
            reminder_days_before=_as_int(f.get("reminderDaysBefore"), 1),
            reminder_subject=f.get("reminderSubject") or None,
            reminder_message=f.get("reminderMessage") or None,
            updated_at=_parse_datetime(f.get("updatedAt")),
        )

    @staticmethod
    def _email_settings_fields(values: dict) -> dict:
        names = {
            "qr_subject": "qrSubject",
            "qr_greeting": "qrGreeting",
            "qr_main_message": "qrMainMessage",
            "qr_instructions": "qrInstructions",
            "qr_footer": "qrFooter",
            "reminder_enabled": "reminderEnabled",
            "reminder_days_before": "reminderDaysBefore",
            "reminder_subject": "reminderSubject",
            "reminder_message": "reminderMessage",
        }
        fields = {}
        for field in EMAIL_SETTINGS_FIELDS:
            if field not in values:
                continue
            value = values[field]
            if field == "qr_instructions" and value is not None:
                value = json.dumps(value, ensure_ascii=False)
            fields[names[field]] = value
        return fields

    # ---------------- Eventos ----------------

    def create_event(self, name: str, date: datetime, location: str) -> Event:
        fields = {
            "id": str(uuid.uuid4()),
            "name": name,
            "date": date.isoformat(),
            "location": location,
            "createdAt": _now_iso(),
        }
        record = self._client.create_record(self._table("events"), fields)
        logger.info(f"Evento creado en Lark: {fields['id']} ({name})")
        return self._to_event({"record_id": record.get("record_id"), "fields": fields})

    def get_event(self, event_id: str) -> Optional[Event]:
        item = self._first("events", equals("id", event_id))
        return self._to_event(item) if item else None

    def list_events(self) -> List[Event]:
        items = self._client.list_records(self._table("events"))
        events = [self._to_event(item) for item in items]
        return sorted(events, key=lambda e: e.date or datetime.min.replace(tzinfo=timezone.utc), reverse=True)

    # ---------------- Participantes ----------------

    def find_by_token(self, token: str) -> Optional[Participant]:
        item = self._first("participants", equals("qrToken", token))
        return self._to_participant(item) if item else None

    def find_by_id(self, participant_id: str) -> Optional[Participant]:
        item = self._first("participants", equals("id", participant_id))
        return self._to_participant(item) if item else None

    def list_by_event(self, event_id: str) -> List[Participant]:
        items = self._client.list_records(self._table("participants"), equals("eventId", event_id))
        return [self._to_participant(item) for item in items]

    def create_participant(
        self, event_id: str, name: str, email: str, company: Optional[str] = None
    ) -> Participant:
        email = normalize_email(email)
        with _create_locks.hold(("participant", event_id, email)):
            existing = self._first("participants", all_of(equals("eventId", event_id), equals("email", email)))
            if existing:
                raise ConflictError("Ya existe un participante con este email en el evento")

            fields = {
                "id": str(uuid.uuid4()),
                "eventId": event_id,
                "name": name.strip(),
                "email": email,
                "company": (company or "").strip(),
                "qrToken": tokens.issue(event_id, email),
                "checkedIn": False,
                "createdAt": _now_iso(),
            }
            record = self._client.create_record(self._table("participants"), fields)
        logger.info(f"Participante creado en Lark: {fields['id']} en evento {event_id}")
        return self._to_participant({"record_id": record.get("record_id"), "fields": fields})

    def mark_checked_in(
        self, participant_id: str, checked_in_at: datetime, device_info: Optional[str] = None
    ) -> Optional[Participant]:
        item = self._first("participants", equals("id", participant_id))
        if item is None or _as_bool(item.get("fields", {}).get("checkedIn")):
            return None

        fields = {"checkedIn": True, "checkedInAt": checked_in_at.isoformat()}
        self._client.update_record(self._table("participants"), item["record_id"], fields)
        item["fields"].update(fields)

        # El flag ya quedó guardado: si falla el log, no se deshace el check-in
        try:
            self._client.create_record(
                self._table("checkin_logs"),
                {
                    "id": str(uuid.uuid4()),
                    "participantId": participant_id,
                    "checkedInAt": checked_in_at.isoformat(),
                    "deviceInfo": device_info or "",
                },
            )
        except (ServiceUnavailableError, ConfigurationError) as e:
            logger.error(f"❌ Check-in de {participant_id} guardado pero falló el CheckInLog: {e.detail}")

        return self._to_participant(item)

    def reissue_token(self, participant_id: str) -> Optional[Participant]:
        item = self._first("participants", equals("id", participant_id))
        if item is None:
            return None
        fields = item.get("fields", {})
        new_token = tokens.issue(fields.get("eventId", ""), fields.get("email", ""))
        self._client.update_record(self._table("participants"), item["record_id"], {"qrToken": new_token})
        fields["qrToken"] = new_token
        logger.warning(f"Token QR re-emitido para participante {participant_id}")
        return self._to_participant(item)

    def list_checkin_logs(self, participant_id: str) -> List[CheckInLog]:
        items = self._client.list_records(self._table("checkin_logs"), equals("participantId", participant_id))
        logs = []
        for item in items:
            f = item.get("fields", {})
            logs.append(
                CheckInLog(
                    id=f.get("id") or item.get("record_id"),
                    participant_id=f.get("participantId", ""),
                    checked_in_at=_parse_datetime(f.get("checkedInAt")),
                    device_info=f.get("deviceInfo") or None,
                )
            )
        return logs

    # ---------------- Correo ----------------

    def get_email_settings(self, event_id: str) -> EmailSettings:
        with _create_locks.hold(("email_settings", event_id)):
            item = self._first("email_settings", equals("eventId", event_id))
            if item:
                return self._to_email_settings(item)

            fields = self._email_settings_fields(default_email_settings())
            fields.update({"id": str(uuid.uuid4()), "eventId": event_id, "updatedAt": _now_iso()})
            record = self._client.create_record(self._table("email_settings"), fields)
        return self._to_email_settings({"record_id": record.get("record_id"), "fields": fields})

    def save_email_settings(self, event_id: str, values: dict) -> EmailSettings:
        self.get_email_settings(event_id)
        item = self._first("email_settings", equals("eventId", event_id))
        fields = self._email_settings_fields(values)
        fields["updatedAt"] = _now_iso()
        self._client.update_record(self._table("email_settings"), item["record_id"], fields)
        item.setdefault("fields", {}).update(fields)
        logger.info(f"Configuración de correo guardada en Lark para evento {event_id}")
        return self._to_email_settings(item)

    def add_email_log(
        self,
        participant_id: str,
        email_type: str,
        status: str,
        error_message: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> EmailLog:
        fields = {
            "id": str(uuid.uuid4()),
            "participantId": participant_id,
            "type": email_type,
            "status": status,
            "errorMessage": error_message or "",
            "providerId": provider_id or "",
            "createdAt": _now_iso(),
        }
        self._client.create_record(self._table("email_logs"), fields)
        return self._to_email_log({"fields": fields})

    def list_email_logs(self, participant_id: str) -> List[EmailLog]:
        items = self._client.list_records(self._table("email_logs"), equals("participantId", participant_id))
        return [self._to_email_log(item) for item in items]

    @staticmethod
    def _to_email_log(item: dict) -> EmailLog:
        f = item.get("fields", {})
        return EmailLog(
            id=f.get("id") or item.get("record_id"),
            participant_id=f.get("participantId", ""),
            type=f.get("type", ""),
            status=f.get("status", ""),
            error_message=f.get("errorMessage") or None,
            provider_id=f.get("providerId") or None,
            created_at=_parse_datetime(f.get("createdAt")),
        )
