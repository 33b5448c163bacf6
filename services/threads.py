"""Thread service for CRUD operations."""
from typing import Optional, List
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import desc
import logging

from database import store_call
from errors import Unauthorized, NotFound
from models.threads import Thread, DEFAULT_THREAD_TITLE, DEFAULT_SYSTEM_PROMPT, utcnow, as_utc
from schemas.threads import ThreadUpdate

logger = logging.getLogger(__name__)


def require_user(user_id: Optional[str]) -> str:
    """Every store call needs the signed-in user."""
    if not user_id:
        raise Unauthorized()
    return user_id


def _bump(thread: Thread) -> None:
    # updated_at never moves backwards, even if the clock does
    now = utcnow()
    if thread.updated_at is not None and as_utc(thread.updated_at) >= now:
        return
    thread.updated_at = now


class ThreadService:
    """Service class for thread CRUD operations."""

    @staticmethod
    def create_thread(
        db: Session,
        user_id: str,
        title: str = DEFAULT_THREAD_TITLE,
        system_prompt: Optional[str] = None
    ) -> Thread:
        """Create a new thread for a user."""
        require_user(user_id)
        now = utcnow()
        db_thread = Thread(
            user_id=user_id,
            title=title or DEFAULT_THREAD_TITLE,
            system_prompt=system_prompt if system_prompt is not None else DEFAULT_SYSTEM_PROMPT,
            created_at=now,
            updated_at=now
        )

        with store_call(db, "create conversation"):
            db.add(db_thread)
            db.commit()
            db.refresh(db_thread)

        logger.info(f"Created thread {db_thread.id} for user {user_id}")
        return db_thread

    @staticmethod
    def get_thread(db: Session, thread_id: UUID, user_id: str) -> Thread:
        """Retrieve a thread by ID, raising NotFound if the user does not own it."""
        require_user(user_id)
        with store_call(db, "load conversation"):
            thread = db.query(Thread).filter(
                Thread.id == thread_id,
                Thread.user_id == user_id
            ).first()

        if not thread:
            raise NotFound("Thread not found")
        return thread

    @staticmethod
    def get_user_threads(db: Session, user_id: str, skip: int = 0, limit: Optional[int] = None) -> List[Thread]:
        """Retrieve all threads for a specific user, most recently updated first."""
        require_user(user_id)
        query = db.query(Thread).filter(
            Thread.user_id == user_id
        ).order_by(
            desc(Thread.updated_at)
        ).offset(skip)

        if limit is not None:
            query = query.limit(limit)

        with store_call(db, "load conversations"):
            return query.all()

    @staticmethod
    def update_thread(db: Session, thread_id: UUID, user_id: str, thread_update: ThreadUpdate) -> Thread:
        """Update a thread's title or system prompt."""
        thread = ThreadService.get_thread(db, thread_id, user_id)

        if thread_update.title is not None:
            thread.title = thread_update.title

        if thread_update.system_prompt is not None:
            thread.system_prompt = thread_update.system_prompt

        _bump(thread)

        with store_call(db, "update conversation"):
            db.commit()
            db.refresh(thread)

        return thread

    @staticmethod
    def touch_thread(db: Session, thread_id: UUID, user_id: str) -> Thread:
        """Move a thread's updated_at to now after a message exchange."""
        thread = ThreadService.get_thread(db, thread_id, user_id)
        _bump(thread)

        with store_call(db, "update conversation"):
            db.commit()
            db.refresh(thread)

        return thread

    @staticmethod
    def delete_thread(db: Session, thread_id: UUID, user_id: str) -> bool:
        """Delete a thread and its messages. Unknown ids are a no-op."""
        require_user(user_id)
        with store_call(db, "delete conversation"):
            thread = db.query(Thread).filter(
                Thread.id == thread_id,
                Thread.user_id == user_id
            ).first()

            if not thread:
                return False

            db.delete(thread)
            db.commit()

        logger.info(f"Deleted thread {thread_id} for user {user_id}")
        return True
