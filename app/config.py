# app/config.py

from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./checkin.db"

    # Record store backend: "sql" (SQLAlchemy) or "lark" (Lark Base / Bitable)
    STORE_BACKEND: str = "sql"

    # Lark Base
    LARK_API_BASE: str = "https://open.larksuite.com/open-apis"
    LARK_APP_ID: Optional[str] = None
    LARK_APP_SECRET: Optional[str] = None
    LARK_BASE_ID: Optional[str] = None
    LARK_TABLE_EVENTS: str = ""
    LARK_TABLE_PARTICIPANTS: str = ""
    LARK_TABLE_CHECKIN_LOGS: str = ""
    LARK_TABLE_EMAIL_SETTINGS: str = ""
    LARK_TABLE_EMAIL_LOGS: str = ""
    LARK_TIMEOUT_SECONDS: int = 15

    # Email: "resend" sends for real, "console" only logs the message
    MAIL_TRANSPORT: str = "resend"
    RESEND_API_KEY: Optional[str] = None
    EMAIL_FROM: str = "Event Check-in <noreply@example.com>"
    EMAIL_BATCH_SIZE: int = 5

    # Public URL used for the QR display page links in emails
    APP_URL: str = "http://localhost:8000"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = "logs"

    # CORS
    FRONTEND_URLS: str = "http://localhost:5173,http://localhost:3000"

    @property
    def allowed_origins(self) -> List[str]:
        urls = self.FRONTEND_URLS.split(",")
        all_urls = []
        for url in urls:
            url = url.strip()
            if url:
                all_urls.append(url)
                # Añadir versión HTTPS si es HTTP
                if url.startswith("http://"):
                    all_urls.append(url.replace("http://", "https://"))
        return all_urls

    @property
    def lark_tables(self) -> dict:
        return {
            "events": self.LARK_TABLE_EVENTS,
            "participants": self.LARK_TABLE_PARTICIPANTS,
            "checkin_logs": self.LARK_TABLE_CHECKIN_LOGS,
            "email_settings": self.LARK_TABLE_EMAIL_SETTINGS,
            "email_logs": self.LARK_TABLE_EMAIL_LOGS,
        }

    class Config:
        env_file = ".env"

settings = Settings()
