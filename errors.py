"""Error taxonomy shared by the stores, the relay and the orchestrator."""
from typing import Optional


class ChatError(Exception):
    """Base class for every error raised by the chat services."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(ChatError):
    """Input rejected before anything was persisted."""


class Unauthorized(ChatError):
    """No session context, or the record belongs to another user."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class NotFound(ChatError):
    """Record does not exist for this user."""


class StoreUnavailable(ChatError):
    """The backing database could not be reached or rejected the write."""


class PersistenceFailure(ChatError):
    """A send was aborted because a record could not be stored."""


class ThreadBusy(ChatError):
    """A message is already being sent on this thread."""

    def __init__(self, thread_id):
        super().__init__(f"A message is already being sent on thread {thread_id}")
        self.thread_id = thread_id


class RelayError(ChatError):
    """Base class for failures of the model relay."""


class MissingCredential(RelayError):
    """The user has no stored API key."""

    def __init__(self, message: str = "OpenRouter API key not found. Please add it in Settings."):
        super().__init__(message)


class UpstreamError(RelayError):
    """The completion API answered with a non-success status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or "OpenRouter API error")

    def __str__(self) -> str:
        return f"{self.message} ({self.status_code})"


class InvalidUpstreamResponse(RelayError):
    """The completion API answered 2xx without a completion."""

    def __init__(self, message: str = "Invalid response from OpenRouter API"):
        super().__init__(message)


class RelayTransportError(RelayError):
    """The completion API could not be reached."""
