"""Message model for conversation turns."""
import enum
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from .threads import Base, utcnow


class MessageRole(str, enum.Enum):
    """Roles that are persisted. System prompts are only sent to the relay."""
    USER = "user"
    ASSISTANT = "assistant"


class Message(Base):
    """
    SQLAlchemy model for a single conversation turn.
    
    Messages are never updated after creation and only disappear when their
    thread is deleted.
    """
    __tablename__ = "messages"
    
    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    thread_id = Column(Uuid, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(16), nullable=False)
    content = Column(Text, nullable=False, default="")
    model_id = Column(String, nullable=True)  # Only set on assistant turns
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    
    thread = relationship("Thread", back_populates="messages")
