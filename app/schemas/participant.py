from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import List, Optional

class ParticipantBase(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    company: Optional[str] = None

class ParticipantCreate(ParticipantBase):
    event_id: str = Field(..., min_length=1, description="ID del evento")

class ParticipantResponse(BaseModel):
    # str y no EmailStr: lo ya guardado (import, Lark) siempre se puede listar
    id: str
    name: str
    email: str
    company: Optional[str] = None
    event_id: str
    qr_token: str
    checked_in: bool
    checked_in_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ParticipantImportRow(BaseModel):
    # Sin validación estricta: las filas inválidas se informan en el resumen
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None

class ParticipantImportRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    participants: List[ParticipantImportRow]

class ImportRowError(BaseModel):
    row: int
    email: str
    error: str

class ImportSummaryCounts(BaseModel):
    total: int
    success: int
    errors: int
    duplicates: int

class ImportDetails(BaseModel):
    success: List[str]
    errors: List[ImportRowError]
    duplicates: List[str]

class ParticipantImportResponse(BaseModel):
    message: str
    summary: ImportSummaryCounts
    details: ImportDetails
