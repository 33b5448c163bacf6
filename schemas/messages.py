"""Pydantic schemas for messages."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from uuid import UUID


class MessageResponse(BaseModel):
    """Schema for a persisted conversation turn."""
    id: UUID
    thread_id: UUID
    role: str
    content: str
    model_id: Optional[str] = None
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)
