from pydantic import BaseModel, Field
from typing import List, Optional

class SendQRRequest(BaseModel):
    participant_id: str = Field(..., min_length=1)

class SendQRBulkRequest(BaseModel):
    event_id: str = Field(..., min_length=1)

class SendReminderRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    participant_ids: Optional[List[str]] = Field(None, description="Vacío = todos los participantes")

class SendQRResponse(BaseModel):
    success: bool
    message: str
    email_id: Optional[str] = None
    recipient: str

class FailedRecipient(BaseModel):
    email: str
    error: str

class DispatchCounts(BaseModel):
    total: int
    success: int
    errors: int

class DispatchDetails(BaseModel):
    success: List[str]
    errors: List[FailedRecipient]

class DispatchResponse(BaseModel):
    message: str
    summary: DispatchCounts
    details: DispatchDetails
