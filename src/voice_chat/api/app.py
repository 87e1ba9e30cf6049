"""
FastAPI Application Module

HTTP front door for the voice chat backend. Route handlers map JSON bodies
to the chat use cases and translate domain errors into status codes.

Key Features:
- Async request handling with FastAPI
- Per-requester rate limiting
- Structured logging and Prometheus metrics
- CORS and OpenTelemetry support

The requesting user is identified by the ``X-User-Id`` header set by the
authenticating proxy in front of this service.
"""

import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CollectorRegistry, Counter, generate_latest
from structlog import get_logger

from ..assistants import Assistant, AssistantCatalog
from ..config import Settings, get_settings
from ..domain.errors import (
    AuthorizationError,
    ChatAlreadyExistsError,
    ChatError,
    NotFoundError,
    ValidationError,
)
from ..domain.models import Chat
from ..logging_config import configure_logging
from ..repositories.base import ChatRepository
from ..repositories.file import FileSystemChatRepository
from ..repositories.memory import InMemoryChatRepository
from ..use_cases.chat import (
    CreateChatUseCase,
    DeleteChatUseCase,
    GetAssistantChatsUseCase,
    GetChatByIdUseCase,
    GetUserChatsUseCase,
    SendMessageUseCase,
    UpdateChatSettingsUseCase,
)
from .rate_limiter import USER_HEADER, RateLimiter, RateLimitExceeded, rate_limit_middleware
from .schemas import (
    ChatCreate,
    ChatDetail,
    ChatListItem,
    ChatSettingsUpdate,
    ChatSummary,
    ErrorResponse,
    MessageCreate,
    MessageResponse,
)

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

REQUESTS = Counter("requests_total", "Total requests by endpoint", ["endpoint"], registry=CUSTOM_REGISTRY)
ERRORS = Counter("errors_total", "Total errors by endpoint", ["endpoint"], registry=CUSTOM_REGISTRY)
PROCESSING_TIME = Counter(
    "processing_time_seconds", "Total processing time by endpoint", ["endpoint"], registry=CUSTOM_REGISTRY
)

STATUS_CODES = {
    ValidationError: 400,
    AuthorizationError: 403,
    NotFoundError: 404,
    ChatAlreadyExistsError: 409,
}

REMAINING_HEADER = "X-RateLimit-Remaining"

logger = get_logger()


def build_repository(settings: Settings) -> ChatRepository:
    """Pick the storage backend named in the settings."""
    if settings.repository_backend == "memory":
        return InMemoryChatRepository()
    return FileSystemChatRepository(settings.data_file)


# Composition root
settings = get_settings()
configure_logging(settings.log_level, settings.json_logs)
repository = build_repository(settings)
assistant_catalog = AssistantCatalog.load(settings.assistants_file)
rate_limiter = RateLimiter(
    rate_limit=settings.rate_limit,
    time_window=settings.rate_limit_window,
    trust_user_header=settings.trust_user_header,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles app startup/shutdown and resource management"""
    limiter = app.state.rate_limiter
    if limiter is not None:
        await limiter.start()
    logger.info("application_startup_complete", repository_backend=settings.repository_backend)

    yield

    if limiter is not None:
        await limiter.stop()
    logger.info("application_shutdown_complete")


def get_repository() -> ChatRepository:
    """Returns the chat storage instance"""
    return repository


def get_assistant_catalog() -> AssistantCatalog:
    return assistant_catalog


def get_user_id(x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER)) -> str:
    """Returns the requesting user's id"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id


def get_create_chat_use_case(
    repository: ChatRepository = Depends(get_repository),
    assistants: AssistantCatalog = Depends(get_assistant_catalog),
    config: Settings = Depends(get_settings),
) -> CreateChatUseCase:
    return CreateChatUseCase(
        repository,
        max_chats_per_user=config.max_chats_per_user,
        assistants=assistants,
    )


app = FastAPI(
    title="Voice Chat API",
    description="Chat sessions and message history for voice assistants",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.rate_limiter = rate_limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Set up request tracing
FastAPIInstrumentor.instrument_app(app)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Tracks requests, enforces rate limits and turns unexpected errors into 500s"""
    logger.info("request_started", method=request.method, path=request.url.path)
    started = time.perf_counter()
    try:
        remaining = await rate_limit_middleware(request, request.app.state.rate_limiter)
        response = await call_next(request)
        if remaining is not None:
            response.headers[REMAINING_HEADER] = str(remaining)
    except RateLimitExceeded as e:
        response = JSONResponse(
            status_code=429,
            content=ErrorResponse(error=str(e), code="RATE_LIMITED").model_dump(exclude_none=True),
        )
    except Exception as e:
        logger.error("request_failed", path=request.url.path, error=str(e), exc_info=True)
        response = JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error", code="INTERNAL_ERROR").model_dump(
                exclude_none=True
            ),
        )

    endpoint = getattr(request.scope.get("route"), "path", request.url.path)
    REQUESTS.labels(endpoint=endpoint).inc()
    PROCESSING_TIME.labels(endpoint=endpoint).inc(time.perf_counter() - started)
    if response.status_code >= 500:
        ERRORS.labels(endpoint=endpoint).inc()
    return response


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Maps domain errors to status codes"""
    status_code = STATUS_CODES.get(type(exc), 400)
    logger.warning(
        "request_rejected",
        path=request.url.path,
        status_code=status_code,
        code=exc.code,
        error=exc.message,
    )
    body = ErrorResponse(error=exc.message, code=exc.code, details=getattr(exc, "details", None))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def ensure_owner(chat: Chat, user_id: str) -> None:
    if chat.user_id != user_id:
        raise AuthorizationError("Forbidden")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post("/chats", response_model=ChatSummary, status_code=201)
async def create_chat(
    body: ChatCreate,
    user_id: str = Depends(get_user_id),
    use_case: CreateChatUseCase = Depends(get_create_chat_use_case),
) -> ChatSummary:
    """Starts a new chat for the requesting user"""
    chat = await use_case.execute(
        {
            "user_id": user_id,
            "assistant_id": body.assistant_id,
            "title": body.title,
            "voice_style": body.voice_style,
            "topic": body.topic,
            "instructions": body.instructions or "",
        }
    )
    return ChatSummary.from_entity(chat)


@app.get("/chats", response_model=List[ChatListItem])
async def list_chats(
    user_id: str = Depends(get_user_id),
    repository: ChatRepository = Depends(get_repository),
) -> List[ChatListItem]:
    """Lists the requesting user's chats, most recently updated first"""
    chats = await GetUserChatsUseCase(repository).execute(user_id)
    return [ChatListItem.from_entity(chat) for chat in chats]


@app.get("/chats/{chat_id}", response_model=ChatDetail)
async def get_chat(
    chat_id: str,
    user_id: str = Depends(get_user_id),
    repository: ChatRepository = Depends(get_repository),
) -> ChatDetail:
    """Retrieves one chat with its messages"""
    chat = await GetChatByIdUseCase(repository).execute(chat_id)
    ensure_owner(chat, user_id)
    return ChatDetail.from_entity(chat)


@app.patch("/chats/{chat_id}", response_model=ChatDetail)
async def update_chat(
    chat_id: str,
    body: ChatSettingsUpdate,
    user_id: str = Depends(get_user_id),
    repository: ChatRepository = Depends(get_repository),
) -> ChatDetail:
    """Updates the settings of a chat owned by the requester"""
    existing = await GetChatByIdUseCase(repository).execute(chat_id)
    ensure_owner(existing, user_id)

    chat = await UpdateChatSettingsUseCase(repository).execute(
        {
            "chat_id": chat_id,
            "title": body.title,
            "voice_style": body.voice_style,
            "topic": body.topic,
            "instructions": body.instructions,
        }
    )
    return ChatDetail.from_entity(chat)


@app.delete("/chats/{chat_id}")
async def delete_chat(
    chat_id: str,
    user_id: str = Depends(get_user_id),
    repository: ChatRepository = Depends(get_repository),
) -> dict:
    await DeleteChatUseCase(repository).execute(chat_id, user_id)
    return {"success": True}


@app.post("/chats/{chat_id}/messages", response_model=MessageResponse)
async def send_message(
    chat_id: str,
    body: MessageCreate,
    user_id: str = Depends(get_user_id),
    repository: ChatRepository = Depends(get_repository),
) -> MessageResponse:
    """Appends a message to a chat and returns the new message"""
    existing = await GetChatByIdUseCase(repository).execute(chat_id)
    ensure_owner(existing, user_id)

    chat = await SendMessageUseCase(repository).execute(
        {
            "chat_id": chat_id,
            "role": body.role,
            "content": body.content,
            "type": body.type,
            "audio_url": body.audio_url,
            "duration": body.duration,
        }
    )
    return MessageResponse.from_entity(chat.get_last_message())


@app.get("/assistants", response_model=List[Assistant])
async def list_assistants(assistants: AssistantCatalog = Depends(get_assistant_catalog)) -> List[Assistant]:
    return assistants.all()


@app.get("/assistants/{assistant_id}/chats", response_model=List[ChatListItem])
async def list_assistant_chats(
    assistant_id: str,
    user_id: str = Depends(get_user_id),
    repository: ChatRepository = Depends(get_repository),
    assistants: AssistantCatalog = Depends(get_assistant_catalog),
) -> List[ChatListItem]:
    """Lists the requester's chats with one assistant"""
    if assistant_id not in assistants:
        raise NotFoundError("Assistant", assistant_id)
    chats = await GetAssistantChatsUseCase(repository).execute(user_id, assistant_id)
    return [ChatListItem.from_entity(chat) for chat in chats]


@app.get("/metrics")
async def metrics():
    """Provides Prometheus metrics for system monitoring"""
    return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")
