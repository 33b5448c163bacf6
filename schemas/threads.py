"""Pydantic schemas for thread-related requests and responses."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID


class ThreadCreate(BaseModel):
    """Schema for creating a thread."""
    title: str = Field(default="New Conversation", max_length=255)
    system_prompt: Optional[str] = None


class ThreadUpdate(BaseModel):
    """Schema for renaming a thread or changing its system prompt."""
    title: Optional[str] = Field(default=None, max_length=255)
    system_prompt: Optional[str] = None


class ThreadResponse(BaseModel):
    """Schema for thread responses."""
    id: UUID
    user_id: str
    title: str
    system_prompt: Optional[str]
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)
