from fastapi import FastAPI, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from contextlib import asynccontextmanager
import os
from typing import List, Optional
from uuid import UUID
import logging

import httpx

logger = logging.getLogger(__name__)

# Local imports
from database import get_db, engine
from dtos.chat_request import ChatRequest, RelayRequest
from errors import (
    ChatError, ValidationError, Unauthorized, NotFound, StoreUnavailable, PersistenceFailure, ThreadBusy,
    MissingCredential, UpstreamError, InvalidUpstreamResponse, RelayTransportError,
)
from models import Base
from schemas import (
    ThreadCreate, ThreadUpdate, ThreadResponse, MessageResponse,
    CustomModelCreate, CustomModelUpdate, CustomModelResponse, ModelListResponse,
    ApiKeyUpdate, ApiKeyStatus, ChatResponse, RelayResponse,
)
from services import (
    ThreadService, MessageService, CredentialService, CustomModelService, AuthService,
    ModelRelay, ConversationOrchestrator, ConversationSession, SendGuard,
)
from services.catalog import BUILTIN_MODELS
from services.credentials import mask_api_key
from services.relay import OPENROUTER_API_URL, RELAY_TIMEOUT_SECONDS
from sqlalchemy.orm import Session
from sqlalchemy import text


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables if they don't exist
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")

    app.state.send_guard = SendGuard()
    async with httpx.AsyncClient(timeout=RELAY_TIMEOUT_SECONDS) as client:
        app.state.http_client = client
        yield


app = FastAPI(
    title="Chat Worlds API",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
origins = os.getenv("ALLOWED_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins if origins != ["*"] else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600
)


ERROR_STATUS = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ThreadBusy, status.HTTP_409_CONFLICT),
    (PersistenceFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return JSONResponse(status_code=status_code, content={"detail": exc.message})
    logger.error(f"Unhandled chat error on {request.url.path}: {exc!r}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal server error"})


@app.get("/")
async def root():
    return {"message": "Chat Worlds API", "status": "running"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "chat-worlds"}


@app.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Health of the database and relay configuration."""
    health_status = {
        "status": "healthy",
        "service": "chat-worlds",
        "checks": {}
    }

    # Check database connection
    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy"}
    except Exception as e:
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    health_status["checks"]["relay"] = {"status": "configured", "url": OPENROUTER_API_URL}

    return health_status


bearer_scheme = HTTPBearer(auto_error=False)


# Dependency to get the signed-in user's id from the provider's JWT
async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    """Get current user id from the bearer token."""
    user_id = AuthService.get_user_id(credentials.credentials if credentials else None)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_send_guard(request: Request) -> SendGuard:
    return request.app.state.send_guard


# Chat endpoints
@app.post("/chat", response_model=ChatResponse)
async def send_message(
    req: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    guard: SendGuard = Depends(get_send_guard)
) -> ChatResponse:
    """
    Send a message and get the assistant's reply.

    Without thread_id a new thread is created, titled after the message.
    Relay failures come back as a stored assistant message plus `error`.
    """
    session = ConversationSession(user_id=user_id, selected_model=req.model)
    orchestrator = ConversationOrchestrator(session, db, ModelRelay(db, user_id, http_client), guard)

    if req.thread_id is not None:
        orchestrator.select_thread(req.thread_id)

    result = await orchestrator.send_message(req.message)
    if result is None:
        return ChatResponse(sent=False)

    return ChatResponse(
        sent=True,
        thread_created=result.thread_created,
        thread=ThreadResponse.model_validate(result.thread),
        user_message=MessageResponse.model_validate(result.user_message),
        assistant_message=MessageResponse.model_validate(result.assistant_message),
        error=result.error
    )


@app.post("/relay/chat", response_model=RelayResponse)
async def relay_chat(
    req: RelayRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    http_client: httpx.AsyncClient = Depends(get_http_client)
):
    """
    Forward a message list to OpenRouter with the user's stored key.

    Every failure, authentication included, is answered as {"error": ...}.
    """
    user_id = AuthService.get_user_id(credentials.credentials if credentials else None)
    if user_id is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "User not authenticated"})

    if not req.messages:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Messages array is required"})

    relay = ModelRelay(db, user_id, http_client)
    history = [m.model_dump() for m in req.messages]

    try:
        completion = await relay.complete_raw(history, req.model or "")
    except MissingCredential as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})
    except UpstreamError as e:
        return JSONResponse(status_code=e.status_code, content={"error": str(e)})
    except InvalidUpstreamResponse as e:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": e.message})
    except RelayTransportError as e:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": e.message})

    return RelayResponse(content=completion.content, model=completion.model, usage=completion.usage)


# Thread management endpoints
@app.post("/threads", response_model=ThreadResponse)
async def create_thread(
    thread: ThreadCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> ThreadResponse:
    """Create a new conversation thread."""
    db_thread = ThreadService.create_thread(
        db=db,
        user_id=user_id,
        title=thread.title,
        system_prompt=thread.system_prompt
    )

    return ThreadResponse.model_validate(db_thread)


@app.get("/threads", response_model=List[ThreadResponse])
async def list_threads(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> List[ThreadResponse]:
    """List the user's threads, most recently updated first."""
    threads = ThreadService.get_user_threads(
        db=db,
        user_id=user_id,
        skip=skip,
        limit=limit
    )

    return [ThreadResponse.model_validate(thread) for thread in threads]


@app.get("/threads/{thread_id}", response_model=ThreadResponse)
async def get_thread(
    thread_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> ThreadResponse:
    """Get a specific thread by ID."""
    thread = ThreadService.get_thread(db=db, thread_id=thread_id, user_id=user_id)
    return ThreadResponse.model_validate(thread)


@app.get("/threads/{thread_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    thread_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> List[MessageResponse]:
    """A thread's messages in conversation order."""
    ThreadService.get_thread(db=db, thread_id=thread_id, user_id=user_id)
    messages = MessageService.get_thread_messages(db=db, thread_id=thread_id, user_id=user_id)
    return [MessageResponse.model_validate(message) for message in messages]


@app.patch("/threads/{thread_id}", response_model=ThreadResponse)
async def update_thread(
    thread_id: UUID,
    thread_update: ThreadUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> ThreadResponse:
    """Rename a thread or change its system prompt."""
    if thread_update.title is not None and not thread_update.title.strip():
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Title cannot be empty")

    updated_thread = ThreadService.update_thread(
        db=db,
        thread_id=thread_id,
        user_id=user_id,
        thread_update=thread_update
    )

    return ThreadResponse.model_validate(updated_thread)


@app.delete("/threads/{thread_id}")
async def delete_thread(
    thread_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> dict:
    """Delete a thread and all of its messages."""
    deleted = ThreadService.delete_thread(
        db=db,
        thread_id=thread_id,
        user_id=user_id
    )

    return {"message": "Conversation deleted", "deleted": deleted}


# Settings endpoints
@app.get("/settings/api-key", response_model=ApiKeyStatus)
async def get_api_key_status(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> ApiKeyStatus:
    """Whether a key is stored, shown masked."""
    api_key = CredentialService.get_api_key(db, user_id)
    if api_key is None:
        return ApiKeyStatus(configured=False)
    return ApiKeyStatus(configured=True, api_key_masked=mask_api_key(api_key))


@app.put("/settings/api-key", response_model=ApiKeyStatus)
async def set_api_key(
    update: ApiKeyUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> ApiKeyStatus:
    """Store the OpenRouter API key, replacing any previous one."""
    credential = CredentialService.set_api_key(db, user_id, update.api_key.strip())
    return ApiKeyStatus(configured=True, api_key_masked=mask_api_key(credential.api_key))


# Model picker endpoints
@app.get("/models", response_model=ModelListResponse)
async def list_models(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> ModelListResponse:
    """Built-in catalog plus the user's custom models."""
    custom = CustomModelService.list_models(db, user_id)
    return ModelListResponse(
        builtin=BUILTIN_MODELS,
        custom=[CustomModelResponse.model_validate(m) for m in custom]
    )


@app.get("/models/custom", response_model=List[CustomModelResponse])
async def list_custom_models(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> List[CustomModelResponse]:
    return [CustomModelResponse.model_validate(m) for m in CustomModelService.list_models(db, user_id)]


@app.post("/models/custom", response_model=CustomModelResponse, status_code=status.HTTP_201_CREATED)
async def create_custom_model(
    model: CustomModelCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> CustomModelResponse:
    """Add a custom model to the picker."""
    db_model = CustomModelService.create_model(db, user_id, model)
    return CustomModelResponse.model_validate(db_model)


@app.patch("/models/custom/{model_id}", response_model=CustomModelResponse)
async def update_custom_model(
    model_id: UUID,
    model_update: CustomModelUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> CustomModelResponse:
    db_model = CustomModelService.update_model(db, model_id, user_id, model_update)
    return CustomModelResponse.model_validate(db_model)


@app.delete("/models/custom/{model_id}")
async def delete_custom_model(
    model_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> dict:
    if not CustomModelService.delete_model(db, model_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Custom model not found"
        )

    return {"message": "Custom model deleted"}
