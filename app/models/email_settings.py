import uuid
from sqlalchemy import Column, String, Integer, Boolean, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base

class EmailSettings(Base):
    __tablename__ = "event_email_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id"), unique=True, nullable=False)

    # Correo con el QR
    qr_subject = Column(String(255), nullable=True)
    qr_greeting = Column(Text, nullable=True)
    qr_main_message = Column(Text, nullable=True)
    qr_instructions = Column(JSON, nullable=True)  # lista de strings
    qr_footer = Column(Text, nullable=True)

    # Recordatorio
    reminder_enabled = Column(Boolean, default=False, nullable=False)
    reminder_days_before = Column(Integer, default=1, nullable=False)
    reminder_subject = Column(String(255), nullable=True)
    reminder_message = Column(Text, nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event = relationship("Event", back_populates="email_settings")
