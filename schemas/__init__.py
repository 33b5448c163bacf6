from .threads import ThreadCreate, ThreadUpdate, ThreadResponse
from .messages import MessageResponse
from .catalog import ModelInfo, CustomModelCreate, CustomModelUpdate, CustomModelResponse, ModelListResponse
from .settings import ApiKeyUpdate, ApiKeyStatus
from .chat import ChatResponse, RelayResponse

__all__ = ["ThreadCreate", "ThreadUpdate", "ThreadResponse", "MessageResponse",
           "ModelInfo", "CustomModelCreate", "CustomModelUpdate", "CustomModelResponse", "ModelListResponse",
           "ApiKeyUpdate", "ApiKeyStatus", "ChatResponse", "RelayResponse"]
