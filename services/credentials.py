"""Credential service: one OpenRouter API key per user."""
from typing import Optional
from sqlalchemy.orm import Session
import logging

from database import store_call
from models.credentials import Credential
from services.threads import require_user

logger = logging.getLogger(__name__)


def mask_api_key(api_key: str) -> str:
    """Show only the last four characters of a key."""
    if len(api_key) <= 4:
        return "*" * len(api_key)
    return "*" * (len(api_key) - 4) + api_key[-4:]


class CredentialService:
    """Service class for the stored API key."""

    @staticmethod
    def get_api_key(db: Session, user_id: str) -> Optional[str]:
        """Return the user's API key, or None if none is stored."""
        require_user(user_id)
        with store_call(db, "load API key"):
            credential = db.query(Credential).filter(Credential.user_id == user_id).first()

        if not credential or not credential.api_key.strip():
            return None
        return credential.api_key

    @staticmethod
    def set_api_key(db: Session, user_id: str, api_key: str) -> Credential:
        """Store the user's API key, replacing any previous one."""
        require_user(user_id)
        with store_call(db, "save API key"):
            credential = db.query(Credential).filter(Credential.user_id == user_id).first()
            if credential is None:
                credential = Credential(user_id=user_id, api_key=api_key)
                db.add(credential)
            else:
                credential.api_key = api_key
            db.commit()
            db.refresh(credential)

        logger.info(f"Stored API key for user {user_id}")
        return credential
