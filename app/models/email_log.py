import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base

EMAIL_TYPE_QR = "qr"
EMAIL_TYPE_REMINDER = "reminder"

EMAIL_STATUS_SENT = "sent"
EMAIL_STATUS_FAILED = "failed"

class EmailLog(Base):
    __tablename__ = "email_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    participant_id = Column(String(36), ForeignKey("participants.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # qr, reminder
    status = Column(String(20), nullable=False)  # sent, failed
    error_message = Column(Text, nullable=True)
    provider_id = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participant = relationship("Participant", back_populates="email_logs")
