from .threads import ThreadService
from .messages import MessageService
from .credentials import CredentialService
from .custom_models import CustomModelService
from .auth import AuthService
from .relay import ModelRelay
from .conversation import ConversationOrchestrator, ConversationSession, SendGuard

__all__ = ["ThreadService", "MessageService", "CredentialService", "CustomModelService", "AuthService",
           "ModelRelay", "ConversationOrchestrator", "ConversationSession", "SendGuard"]
