from .threads import Thread, Base, DEFAULT_THREAD_TITLE, DEFAULT_SYSTEM_PROMPT
from .messages import Message, MessageRole
from .custom_models import CustomModel
from .credentials import Credential

__all__ = ["Thread", "Message", "MessageRole", "CustomModel", "Credential", "Base",
           "DEFAULT_THREAD_TITLE", "DEFAULT_SYSTEM_PROMPT"]
