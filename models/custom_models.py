"""User-defined entries for the model picker."""
from sqlalchemy import Column, String, DateTime, Text, Uuid
from uuid import uuid4
from .threads import Base, utcnow


class CustomModel(Base):
    """
    SQLAlchemy model for custom models.
    
    Pure reference data: model_id is passed to the relay as-is.
    """
    __tablename__ = "custom_models"
    
    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    model_id = Column(String, nullable=False)  # OpenRouter identifier, e.g. mistralai/mistral-7b
    provider = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
