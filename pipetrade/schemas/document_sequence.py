from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from pipetrade.schemas.base import BaseResponseSchema


class DocumentSequenceResponse(BaseResponseSchema):
    id: UUID
    document_type: str
    description: Optional[str] = None
    prefix: str
    financial_year: str
    current_number: int
    padding_length: int
    updated_at: datetime


class DocumentNumberPreview(BaseModel):
    document_type: str
    next_number: str
