from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

class EventBase(BaseModel):
    name: str = Field(..., min_length=1, description="Nombre del evento")
    date: datetime = Field(..., description="Fecha y hora del evento")
    location: str = Field(..., min_length=1, description="Lugar del evento")

class EventCreate(EventBase):
    pass

class EventResponse(EventBase):
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class EventWithStatsResponse(EventResponse):
    total_participants: int
    checked_in_count: int

class EmailSettingsBase(BaseModel):
    qr_subject: Optional[str] = None
    qr_greeting: Optional[str] = None
    qr_main_message: Optional[str] = None
    qr_instructions: Optional[List[str]] = None
    qr_footer: Optional[str] = None
    reminder_enabled: Optional[bool] = None
    reminder_days_before: Optional[int] = Field(None, ge=0, description="Días antes del evento")
    reminder_subject: Optional[str] = None
    reminder_message: Optional[str] = None

class EmailSettingsUpdate(EmailSettingsBase):
    pass

class EmailSettingsResponse(EmailSettingsBase):
    event_id: str
    reminder_enabled: bool
    reminder_days_before: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
