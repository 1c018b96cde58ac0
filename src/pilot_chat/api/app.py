"""
FastAPI Application Module

HTTP surface of the GWS Productivity Pilot chat widget. Each conversation
is a session held in memory; the widget posts typed text or speech
transcripts and renders the returned view, including the pending
placeholder while a reply is outstanding.

Key Features:
- One outstanding bot exchange per conversation (409 while busy)
- Markup rendering of every message for direct insertion
- Structured logging, Prometheus metrics and OpenTelemetry tracing
"""

from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Awaitable, Callable, List, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CollectorRegistry, Counter, generate_latest
from pydantic import BaseModel
from structlog import get_logger

from ..config import Settings, get_settings
from ..domain.exceptions import ChatError, ConversationNotFoundError
from ..domain.models import Message, Sender
from ..repositories.base import Repository
from ..repositories.memory import InMemoryRepository
from ..services.conversation import ConversationStore
from ..services.fetcher import ResponseFetcher, build_fetcher
from ..services.markup import render_markup
from ..services.speech import RecognizerOptions, route_transcript

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

REQUESTS = Counter("requests_total", "Total requests", registry=CUSTOM_REGISTRY)
ERRORS = Counter("errors_total", "Total failed requests", registry=CUSTOM_REGISTRY)
EXCHANGES = Counter(
    "bot_exchanges_total",
    "Settled bot exchanges by outcome",
    ["outcome"],
    registry=CUSTOM_REGISTRY,
)

logger = get_logger()


class MessageCreate(BaseModel):
    """Typed user input"""
    text: str


class TranscriptCreate(BaseModel):
    """Speech recognition result"""
    transcript: str


class MessageView(BaseModel):
    text: Optional[str]
    sender: Sender
    html: Optional[str]


class ConversationView(BaseModel):
    id: UUID
    created_at: datetime
    updated_at: datetime
    busy: bool
    messages: List[MessageView]


class CapabilitiesView(BaseModel):
    speech_input: bool
    recognizer: dict


def to_view(store: ConversationStore) -> ConversationView:
    """Builds the display view, including the pending placeholder"""
    conversation = store.conversation
    return ConversationView(
        id=conversation.id,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
        busy=conversation.busy,
        messages=[
            MessageView(text=m.text, sender=m.sender, html=render_markup(m.text))
            for m in store.display_messages()
        ],
    )


settings = get_settings()
repository = InMemoryRepository(greeting=settings.greeting)
_fetcher: Optional[ResponseFetcher] = None


def get_repository() -> Repository:
    """Returns the conversation storage instance"""
    return repository


def get_fetcher() -> ResponseFetcher:
    """Returns the shared response fetcher, creating it on first use"""
    global _fetcher
    if _fetcher is None:
        _fetcher = build_fetcher(settings)
    return _fetcher


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Releases the fetcher's transport on shutdown"""
    logger.info("application_startup_complete", backend=settings.fetcher_backend)

    yield

    if _fetcher is not None:
        await _fetcher.aclose()
    logger.info("application_shutdown_complete")


app = FastAPI(
    title="GWS Productivity Pilot Chat API",
    description="Chat backend for the Google Workspace assistant widget",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Set up request tracing
FastAPIInstrumentor.instrument_app(app)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Maps domain errors onto their HTTP status"""
    logger.warning("chat_error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.message})


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Tracks requests and failures"""
    REQUESTS.inc()
    logger.info("request_started", path=request.url.path, method=request.method)
    try:
        response = await call_next(request)
    except Exception as e:
        ERRORS.inc()
        logger.error("request_failed", path=request.url.path, error=str(e))
        raise
    if response.status_code >= 500:
        ERRORS.inc()
    return response


async def _get_store(repository: Repository, conversation_id: UUID) -> ConversationStore:
    store = await repository.get_conversation(conversation_id)
    if store is None:
        raise ConversationNotFoundError(conversation_id)
    return store


async def _exchange(
    store: ConversationStore,
    submit: Callable[[], Awaitable[Optional[Message]]],
) -> ConversationView:
    """Runs one submission and maps its outcome onto the response"""
    try:
        reply = await submit()
    except ChatError:
        raise
    except Exception as e:
        logger.error("create_message_error", conversation_id=str(store.id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to process message")

    if reply is None:
        EXCHANGES.labels(outcome="ignored").inc()
    elif reply.fallback:
        EXCHANGES.labels(outcome="fallback").inc()
    else:
        EXCHANGES.labels(outcome="answered").inc()
    return to_view(store)


@app.get("/capabilities", response_model=CapabilitiesView)
async def get_capabilities(settings: Settings = Depends(get_settings)) -> CapabilitiesView:
    """Tells the widget whether to offer the microphone control"""
    return CapabilitiesView(
        speech_input=settings.speech_input_enabled,
        recognizer=asdict(RecognizerOptions()),
    )


@app.get("/conversations", response_model=List[ConversationView])
async def list_conversations(
    limit: int = 100,
    offset: int = 0,
    repository: Repository = Depends(get_repository)
) -> List[ConversationView]:
    """Gets paginated conversation list with specified limit and offset"""
    stores = await repository.list_conversations(limit=limit, offset=offset)
    return [to_view(store) for store in stores]


@app.post("/conversations", response_model=ConversationView)
async def create_conversation(
    repository: Repository = Depends(get_repository),
    fetcher: ResponseFetcher = Depends(get_fetcher),
) -> ConversationView:
    """Starts a new conversation seeded with the greeting"""
    store = await repository.create_conversation(fetcher)
    return to_view(store)


@app.get("/conversations/{conversation_id}", response_model=ConversationView)
async def get_conversation(
    conversation_id: UUID,
    repository: Repository = Depends(get_repository)
) -> ConversationView:
    """Retrieves a specific conversation by its ID"""
    return to_view(await _get_store(repository, conversation_id))


@app.post("/conversations/{conversation_id}/messages", response_model=ConversationView)
async def create_message(
    conversation_id: UUID,
    message: MessageCreate,
    repository: Repository = Depends(get_repository)
) -> ConversationView:
    """
    Appends typed user text and waits for the bot reply.
    Blank text leaves the conversation unchanged.
    """
    store = await _get_store(repository, conversation_id)
    return await _exchange(store, lambda: store.submit_user_text(message.text))


@app.post("/conversations/{conversation_id}/transcripts", response_model=ConversationView)
async def create_transcript(
    conversation_id: UUID,
    transcript: TranscriptCreate,
    repository: Repository = Depends(get_repository)
) -> ConversationView:
    """Routes a speech recognition result through the same path as typed text"""
    store = await _get_store(repository, conversation_id)
    return await _exchange(store, lambda: route_transcript(store, transcript.transcript))


@app.get("/metrics")
async def metrics():
    """Provides Prometheus metrics for system monitoring"""
    return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")
