from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

class CheckInRequest(BaseModel):
    token: str = Field(..., description="Token leído del QR")
    device_info: Optional[str] = Field(None, max_length=500, description="User-agent del escáner")

class CheckInEvent(BaseModel):
    name: str
    date: datetime

class CheckInParticipant(BaseModel):
    id: str
    name: str
    email: str
    company: Optional[str] = None
    checked_in_at: Optional[datetime] = None
    event: Optional[CheckInEvent] = None

class CheckInResponse(BaseModel):
    success: bool
    message: str
    participant: Optional[CheckInParticipant] = None

class CheckInStatsResponse(BaseModel):
    total: int
    checked_in: int
    not_checked_in: int
    check_in_rate: int

class QRLookupParticipant(BaseModel):
    id: str
    name: str
    email: str
    company: Optional[str] = None

class QRLookupEvent(BaseModel):
    name: str
    date: datetime
    location: str

class QRLookupResponse(BaseModel):
    participant: QRLookupParticipant
    event: QRLookupEvent
    qr_code: str
    token: str
