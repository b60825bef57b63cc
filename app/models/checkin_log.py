import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base

class CheckInLog(Base):
    """Registro de auditoría: una fila por check-in aceptado."""
    __tablename__ = "checkin_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    participant_id = Column(String(36), ForeignKey("participants.id"), nullable=False, index=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=False)
    device_info = Column(String(500), nullable=True)

    participant = relationship("Participant", back_populates="checkin_logs")
