"""Message service: append-only storage of conversation turns."""
from datetime import timedelta
from typing import Optional, List
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import desc
import logging

from database import store_call
from errors import Unauthorized, ValidationError
from models.messages import Message, MessageRole
from models.threads import Thread, utcnow, as_utc
from services.threads import require_user

logger = logging.getLogger(__name__)


class MessageService:
    """Service class for reading and appending messages."""

    @staticmethod
    def _owned_thread(db: Session, thread_id: UUID, user_id: str) -> Thread:
        require_user(user_id)
        with store_call(db, "load conversation"):
            thread = db.query(Thread).filter(Thread.id == thread_id).first()

        if not thread or thread.user_id != user_id:
            raise Unauthorized("Thread is not owned by the current user")
        return thread

    @staticmethod
    def get_thread_messages(db: Session, thread_id: UUID, user_id: str) -> List[Message]:
        """Retrieve a thread's messages, oldest first."""
        MessageService._owned_thread(db, thread_id, user_id)
        with store_call(db, "load messages"):
            return db.query(Message).filter(
                Message.thread_id == thread_id
            ).order_by(Message.created_at).all()

    @staticmethod
    def append_message(
        db: Session,
        thread_id: UUID,
        user_id: str,
        role: str,
        content: str,
        model_id: Optional[str] = None
    ) -> Message:
        """
        Append a message to a thread.

        created_at is kept strictly increasing within the thread, so reading
        the thread back by created_at always gives the order of the appends.
        """
        try:
            role = MessageRole(role).value
        except ValueError:
            raise ValidationError(f"Unsupported message role: {role}")

        MessageService._owned_thread(db, thread_id, user_id)

        with store_call(db, "save message"):
            last = db.query(Message.created_at).filter(
                Message.thread_id == thread_id
            ).order_by(desc(Message.created_at)).first()

            created_at = utcnow()
            if last is not None and as_utc(last[0]) >= created_at:
                created_at = as_utc(last[0]) + timedelta(microseconds=1)

            db_message = Message(
                thread_id=thread_id,
                role=role,
                content=content if content is not None else "",
                model_id=model_id,
                created_at=created_at
            )
            db.add(db_message)
            db.commit()
            db.refresh(db_message)

        return db_message
