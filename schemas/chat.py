"""Schemas for the send-message flow."""
from typing import Optional
from pydantic import BaseModel

from .threads import ThreadResponse
from .messages import MessageResponse


class ChatResponse(BaseModel):
    """Result of one send: the user turn and its paired assistant turn."""
    sent: bool
    thread_created: bool = False
    thread: Optional[ThreadResponse] = None
    user_message: Optional[MessageResponse] = None
    assistant_message: Optional[MessageResponse] = None
    error: Optional[str] = None  # Relay failure recorded as the assistant turn


class RelayResponse(BaseModel):
    """Successful relay proxy response."""
    content: str
    model: Optional[str] = None
    usage: Optional[dict] = None
