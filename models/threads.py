"""Thread model for conversation management."""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Text, Uuid
from sqlalchemy.orm import declarative_base, relationship
from uuid import uuid4

Base = declarative_base()

DEFAULT_THREAD_TITLE = "New Conversation"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back without tzinfo; treat those as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Thread(Base):
    """
    SQLAlchemy model for conversation threads.
    
    Each thread is one named conversation owned by a single user. Its messages
    are stored in the messages table and are deleted together with it.
    """
    __tablename__ = "threads"
    
    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String(255), nullable=False, default=DEFAULT_THREAD_TITLE)
    system_prompt = Column(Text, nullable=True, default=DEFAULT_SYSTEM_PROMPT)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    
    messages = relationship(
        "Message",
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )
