"""Schemas for the model picker: built-in catalog and custom models."""
from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID


class ModelInfo(BaseModel):
    """A built-in model entry."""
    id: str
    name: str
    provider: str
    description: str
    tier: Literal["free", "premium", "enterprise"]


class CustomModelCreate(BaseModel):
    """Schema for adding a custom model."""
    name: str = Field(..., min_length=1, max_length=255)
    model_id: str = Field(..., min_length=1)
    provider: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class CustomModelUpdate(BaseModel):
    """Schema for editing a custom model."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    model_id: Optional[str] = Field(default=None, min_length=1)
    provider: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class CustomModelResponse(BaseModel):
    """Schema for custom model responses."""
    id: UUID
    user_id: str
    name: str
    model_id: str
    provider: str
    description: Optional[str]
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class ModelListResponse(BaseModel):
    """Everything the model picker can offer."""
    builtin: List[ModelInfo]
    custom: List[CustomModelResponse]
