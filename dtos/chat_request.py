from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from uuid import UUID

from services.relay import DEFAULT_MODEL_ID


class ChatRequest(BaseModel):
    thread_id: Optional[UUID] = Field(default=None, description="Omit to start a new conversation")
    message: str = Field(..., max_length=32000)
    model: str = Field(default=DEFAULT_MODEL_ID, min_length=1, description="OpenRouter model identifier")


class RelayMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class RelayRequest(BaseModel):
    messages: Optional[List[RelayMessage]] = None
    model: Optional[str] = None
