"""
Conversation orchestration.

Coordinates one user's session: which thread is selected, the thread list and
the selected thread's messages, and the send pipeline that turns a user's
input into a persisted user turn, a relay call and a persisted assistant turn.

Relay failures are stored as an assistant message carrying a fixed apology, so
a reloaded thread still shows why the assistant did not answer.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from errors import ChatError, PersistenceFailure, StoreUnavailable, ThreadBusy, Unauthorized
from models.messages import Message, MessageRole
from models.threads import Thread, DEFAULT_THREAD_TITLE
from schemas.threads import ThreadUpdate
from services.messages import MessageService
from services.relay import ModelRelay, DEFAULT_MODEL_ID
from services.threads import ThreadService

logger = logging.getLogger(__name__)

RELAY_ERROR_MESSAGE = (
    "Sorry, I encountered an error. Please check that your OpenRouter API key "
    "is configured correctly in Settings."
)

TITLE_MAX_LENGTH = 50
TITLE_EXCERPT_LENGTH = 47


def derive_title(content: str) -> str:
    """Title for a thread created by its first message."""
    if len(content) > TITLE_MAX_LENGTH:
        return content[:TITLE_EXCERPT_LENGTH] + "..."
    return content or DEFAULT_THREAD_TITLE


class SendGuard:
    """Thread ids with a send in flight. Shared by every session in the process."""

    def __init__(self):
        self._in_flight: Set[UUID] = set()

    def acquire(self, thread_id: UUID) -> bool:
        if thread_id in self._in_flight:
            return False
        self._in_flight.add(thread_id)
        return True

    def release(self, thread_id: UUID) -> None:
        self._in_flight.discard(thread_id)

    def is_busy(self, thread_id: UUID) -> bool:
        return thread_id in self._in_flight


@dataclass
class ConversationSession:
    """Per-session state: the signed-in user and what they are looking at."""
    user_id: Optional[str]
    selected_model: str = DEFAULT_MODEL_ID
    threads: List[Thread] = field(default_factory=list)
    current_thread: Optional[Thread] = None
    messages: List[Message] = field(default_factory=list)
    is_sending: bool = False
    listeners: List[Callable[[List[Thread]], None]] = field(default_factory=list)
    generation: int = 0  # Bumped on clear; sends started earlier stop touching session state

    def clear(self) -> None:
        self.generation += 1
        self.threads = []
        self.current_thread = None
        self.messages = []
        self.is_sending = False


@dataclass
class SendResult:
    """What one send_message call stored."""
    thread: Thread
    user_message: Message
    assistant_message: Message
    thread_created: bool = False
    error: Optional[str] = None


class ConversationOrchestrator:
    """Drives threads and messages for a ConversationSession."""

    def __init__(self, session: ConversationSession, db: Session, relay: ModelRelay, guard: Optional[SendGuard] = None):
        self.session = session
        self.db = db
        self.relay = relay
        self.guard = guard or SendGuard()

    @property
    def user_id(self) -> str:
        if not self.session.user_id:
            raise Unauthorized()
        return self.session.user_id

    @property
    def is_loading(self) -> bool:
        return self.session.is_sending

    def subscribe(self, listener: Callable[[List[Thread]], None]) -> None:
        """Called with the thread list whenever thread metadata changes."""
        self.session.listeners.append(listener)

    def _notify(self) -> None:
        for listener in self.session.listeners:
            listener(list(self.session.threads))

    def _put_thread_first(self, thread: Thread) -> None:
        others = [t for t in self.session.threads if t.id != thread.id]
        self.session.threads = [thread] + others

    # Session lifecycle

    def on_auth_change(self, user_id: Optional[str]) -> None:
        """React to sign-in/sign-out from the identity provider."""
        if user_id == self.session.user_id:
            return
        self.session.clear()
        self.session.user_id = user_id
        if user_id:
            self.load_threads()
        else:
            self._notify()

    def sign_out(self) -> None:
        self.on_auth_change(None)

    def set_model(self, model_id: str) -> None:
        self.session.selected_model = model_id or DEFAULT_MODEL_ID

    # Threads

    def load_threads(self) -> List[Thread]:
        self.session.threads = ThreadService.get_user_threads(self.db, self.user_id)
        self._notify()
        return self.session.threads

    def select_thread(self, thread_id: UUID) -> Thread:
        """Make a thread current and load its messages."""
        thread = ThreadService.get_thread(self.db, thread_id, self.user_id)
        self.session.current_thread = thread
        self.session.messages = MessageService.get_thread_messages(self.db, thread.id, self.user_id)
        return thread

    def new_thread(self) -> None:
        """Clear the selection; the next send creates a thread."""
        self.session.current_thread = None
        self.session.messages = []

    def create_thread(self, title: str = DEFAULT_THREAD_TITLE, system_prompt: Optional[str] = None) -> Thread:
        thread = ThreadService.create_thread(self.db, self.user_id, title, system_prompt)
        self._put_thread_first(thread)
        self.session.current_thread = thread
        self.session.messages = []
        self._notify()
        return thread

    def rename_thread(self, thread_id: UUID, title: str) -> Optional[Thread]:
        """Blank titles are ignored."""
        if not title or not title.strip():
            return None
        thread = ThreadService.update_thread(self.db, thread_id, self.user_id, ThreadUpdate(title=title.strip()))
        self._put_thread_first(thread)
        if self._is_current(thread_id):
            self.session.current_thread = thread
        self._notify()
        return thread

    def delete_thread(self, thread_id: UUID) -> bool:
        deleted = ThreadService.delete_thread(self.db, thread_id, self.user_id)
        self.session.threads = [t for t in self.session.threads if t.id != thread_id]
        if self._is_current(thread_id):
            self.new_thread()
        self._notify()
        return deleted

    # Sending

    def _history(self, thread: Thread, user_message: Message) -> List[Dict[str, str]]:
        history = []
        if thread.system_prompt:
            history.append({"role": "system", "content": thread.system_prompt})
        history.extend({"role": m.role, "content": m.content} for m in self.session.messages)
        history.append({"role": user_message.role, "content": user_message.content})
        return history

    def _resolve_thread(self, content: str) -> Thread:
        try:
            return self.create_thread(derive_title(content))
        except StoreUnavailable as e:
            logger.error(f"Failed to create conversation for user {self.user_id}")
            raise PersistenceFailure("Failed to create conversation") from e

    def _discard_empty_thread(self, thread: Thread) -> None:
        try:
            ThreadService.delete_thread(self.db, thread.id, self.user_id)
        except StoreUnavailable:
            logger.error(f"Could not remove empty thread {thread.id}")
        self.session.threads = [t for t in self.session.threads if t.id != thread.id]
        self.new_thread()
        self._notify()

    def _is_current(self, thread_id: UUID) -> bool:
        current = self.session.current_thread
        return current is not None and current.id == thread_id

    async def send_message(self, content: str) -> Optional[SendResult]:
        """
        Send one user message and record the assistant's reply.

        Returns None for blank input. Raises ThreadBusy if a send is already
        in flight for the thread and PersistenceFailure if the thread or the
        user turn could not be stored; in that case the relay is not called.
        """
        if not content or not content.strip():
            return None
        user_id = self.user_id

        current = self.session.current_thread
        if self.session.is_sending or (current is not None and self.guard.is_busy(current.id)):
            raise ThreadBusy(current.id if current is not None else None)

        generation = self.session.generation
        self.session.is_sending = True
        try:
            created = current is None
            thread = current if current is not None else self._resolve_thread(content)
            if not self.guard.acquire(thread.id):
                raise ThreadBusy(thread.id)

            try:
                try:
                    if not created:
                        # Another session may have added turns since this one loaded the thread
                        self.session.messages = MessageService.get_thread_messages(self.db, thread.id, user_id)
                    user_message = MessageService.append_message(
                        self.db, thread.id, user_id, MessageRole.USER.value, content
                    )
                except StoreUnavailable as e:
                    if created:
                        self._discard_empty_thread(thread)
                    raise PersistenceFailure("Failed to save message") from e

                return await self._relay_and_record(thread, user_message, created, user_id, generation)
            finally:
                self.guard.release(thread.id)
        finally:
            # After a sign-out the flag belongs to the next user's sends
            if self.session.generation == generation:
                self.session.is_sending = False

    async def _relay_and_record(
        self,
        thread: Thread,
        user_message: Message,
        created: bool,
        user_id: str,
        generation: int
    ) -> SendResult:
        thread_id = thread.id
        model_id = self.session.selected_model
        history = self._history(thread, user_message)
        self.session.messages.append(user_message)

        error = None
        try:
            reply = await self.relay.complete(history, model_id)
        except ChatError as e:
            logger.error(f"Relay failed for thread {thread_id}: {type(e).__name__}: {e}")
            reply = RELAY_ERROR_MESSAGE
            error = str(e)

        # Persist for the user who sent, whatever the session looks like now
        assistant_message = MessageService.append_message(
            self.db, thread_id, user_id, MessageRole.ASSISTANT.value, reply, model_id
        )
        thread = ThreadService.touch_thread(self.db, thread_id, user_id)

        if self.session.generation == generation:
            if self._is_current(thread_id):
                self.session.messages.append(assistant_message)
                self.session.current_thread = thread
            self._put_thread_first(thread)
            self._notify()

        return SendResult(
            thread=thread,
            user_message=user_message,
            assistant_message=assistant_message,
            thread_created=created,
            error=error,
        )
