"""Schemas for the settings flow."""
from typing import Optional
from pydantic import BaseModel, Field


class ApiKeyUpdate(BaseModel):
    """Schema for storing the OpenRouter API key."""
    api_key: str = Field(..., min_length=1)


class ApiKeyStatus(BaseModel):
    """The stored key is only ever shown masked."""
    configured: bool
    api_key_masked: Optional[str] = None
