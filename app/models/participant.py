import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base

def utcnow():
    return datetime.now(timezone.utc)

class Participant(Base):
    __tablename__ = "participants"
    __table_args__ = (
        # Un email por evento; el chequeo lo hace la base, no la aplicación
        UniqueConstraint("event_id", "email", name="uq_participant_event_email"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    company = Column(String(200), nullable=True)
    qr_token = Column(String(64), unique=True, index=True, nullable=False)
    checked_in = Column(Boolean, default=False, nullable=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relaciones
    event = relationship("Event", back_populates="participants")
    checkin_logs = relationship("CheckInLog", back_populates="participant")
    email_logs = relationship("EmailLog", back_populates="participant")
