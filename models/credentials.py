"""Stored API credential, one per user."""
from sqlalchemy import Column, String, DateTime
from .threads import Base, utcnow


class Credential(Base):
    """
    SQLAlchemy model for a user's OpenRouter API key.
    
    The key is read by the relay only and never returned unmasked.
    """
    __tablename__ = "credentials"
    
    user_id = Column(String, primary_key=True)
    api_key = Column(String, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Credential user_id={self.user_id!r}>"
