from __future__ import annotations

import random
import threading

import structlog
from fastapi import FastAPI, HTTPException, Response

from surrogateagent.config import Settings, settings
from surrogateagent.errors import (
    ArtifactNotFoundError,
    ArtifactTransitionError,
    ChatNotFoundError,
    SpeechSynthesisError,
)
from surrogateagent.logging_setup import configure_logging
from surrogateagent.models import (
    ChatDetail,
    ChatSummary,
    EventActionResponse,
    EventOut,
    SpeechRequest,
    TurnOut,
    TurnRequest,
    TurnResponse,
    UserContextModel,
)
from surrogateagent.services.artifacts import ArtifactChange, ArtifactLifecycleManager
from surrogateagent.services.chat_sessions import ChatSessionService
from surrogateagent.services.completion_client import Attachment, CompletionClient
from surrogateagent.services.market_data import (
    CoinGeckoProvider,
    MarketDataService,
    YahooChartProvider,
)
from surrogateagent.services.orchestrator import AgentOrchestrator
from surrogateagent.services.session_store import InMemorySessionStore, SessionStore
from surrogateagent.services.speech import BufferedAudioPlayer, SpeechService
from surrogateagent.tools import (
    AgentType,
    ChatTool,
    CommandSpec,
    DocsTool,
    EmailTool,
    FinanceTool,
    JinaReaderClient,
    PaymentTool,
    ScheduleTool,
    SearchTool,
    ToolDefinition,
    ToolRegistry,
)

configure_logging(level=settings.log_level, json_output=settings.log_json)
logger = structlog.get_logger()

app = FastAPI(title="SurrogateAgent API", version="0.1.0")


def build_tool_registry(
    *,
    store: SessionStore,
    completion: CompletionClient,
    cfg: Settings,
    rng: random.Random | None = None,
) -> ToolRegistry:
    market_data = MarketDataService(
        crypto=CoinGeckoProvider(cfg.coingecko_api_base_url, cfg.market_data_timeout_seconds),
        equities=YahooChartProvider(
            cfg.yahoo_chart_api_base_url,
            cfg.market_data_timeout_seconds,
            api_key=cfg.market_data_api_key,
        ),
    )
    return ToolRegistry(
        [
            ToolDefinition(
                agent=AgentType.SCHEDULE,
                label="Schedule Agent",
                description="Manage the calendar.",
                tool=ScheduleTool(store, tz_name=cfg.timezone),
                commands=(
                    CommandSpec(
                        name="create_event",
                        params={
                            "title": "event title",
                            "time": 'e.g. "14:00"',
                            "date": "YYYY-MM-DD",
                            "description": "optional details",
                        },
                        required=("title", "time"),
                    ),
                    CommandSpec(name="list_events"),
                ),
            ),
            ToolDefinition(
                agent=AgentType.DOCS,
                label="Docs Agent",
                description="Write content.",
                tool=DocsTool(store),
                commands=(
                    CommandSpec(
                        name="create_doc",
                        params={"title": "document title", "content": "markdown supported"},
                        required=("content",),
                        notes=("If the user provides a topic, draft the full content yourself.",),
                    ),
                ),
            ),
            ToolDefinition(
                agent=AgentType.EMAIL,
                label="Email Agent",
                description="Prepare emails for the user to send.",
                tool=EmailTool(store),
                commands=(
                    CommandSpec(
                        name="send_email",
                        params={"to": "email address", "subject": "subject line", "body": "email body"},
                        required=("to", "subject", "body"),
                        notes=(
                            "Only call this once you have a real email address and a topic.",
                            "Tell the user the draft is ready to edit and send.",
                        ),
                    ),
                ),
            ),
            ToolDefinition(
                agent=AgentType.SEARCH,
                label="Search Agent",
                description="Find information on the web.",
                tool=SearchTool(
                    JinaReaderClient(cfg.search_reader_base_url, cfg.search_timeout_seconds),
                    completion,
                    min_content_chars=cfg.search_min_content_chars,
                ),
                commands=(
                    CommandSpec(name="web_search", params={"query": "search query"}, required=("query",)),
                ),
            ),
            ToolDefinition(
                agent=AgentType.PAYMENT,
                label="Payment Agent",
                description="Simulate financial transactions.",
                tool=PaymentTool(store),
                commands=(
                    CommandSpec(
                        name="make_payment",
                        params={
                            "amount": "number",
                            "recipient": "who receives the payment",
                            "description": "what the payment is for",
                            "currency": "ISO code, default USD",
                        },
                        required=("amount", "recipient"),
                        notes=("Never invent an amount; ask for it when missing.",),
                    ),
                ),
            ),
            ToolDefinition(
                agent=AgentType.FINANCE,
                label="Financial Agent",
                description="Analyze markets, stocks and crypto.",
                tool=FinanceTool(market_data, completion, rng=rng),
                commands=(
                    CommandSpec(
                        name="analyze_stock",
                        params={"symbol": "ticker such as AAPL, BTC-USD, ETH-USD"},
                        required=("symbol",),
                        notes=("Use it whenever the user asks about stocks, crypto or markets.",),
                    ),
                ),
            ),
            ToolDefinition(
                agent=AgentType.CHAT,
                label="Chat Agent",
                description="General conversation. No command.",
                tool=ChatTool(),
            ),
        ]
    )


def build_chat_service(cfg: Settings, store: SessionStore) -> ChatSessionService:
    completion = CompletionClient.from_settings(cfg)
    registry = build_tool_registry(store=store, completion=completion, cfg=cfg)
    orchestrator = AgentOrchestrator(completion, registry, store, tz_name=cfg.timezone)
    return ChatSessionService(
        store,
        orchestrator,
        completion,
        ArtifactLifecycleManager(store),
    )


store = InMemorySessionStore()
chat_service = build_chat_service(settings, store)
audio_player = BufferedAudioPlayer()
speech_service = SpeechService.from_settings(settings, audio_player)
# speak and drain share one buffer, so a request holds this across both.
speech_lock = threading.Lock()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/v1/chats", response_model=ChatDetail, status_code=201)
def create_chat() -> ChatDetail:
    return ChatDetail.from_session(chat_service.create_chat())


@app.get("/v1/chats", response_model=list[ChatSummary])
def list_chats() -> list[ChatSummary]:
    return [ChatSummary.from_session(chat) for chat in chat_service.list_chats()]


@app.get("/v1/chats/{chat_id}", response_model=ChatDetail)
def get_chat(chat_id: str) -> ChatDetail:
    try:
        return ChatDetail.from_session(chat_service.get_chat(chat_id))
    except ChatNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.delete("/v1/chats/{chat_id}", status_code=204)
def delete_chat(chat_id: str) -> Response:
    try:
        chat_service.delete_chat(chat_id)
    except ChatNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.post("/v1/chats/{chat_id}/turns", response_model=TurnResponse)
def send_turn(chat_id: str, payload: TurnRequest) -> TurnResponse:
    attachment = None
    if payload.attachment is not None:
        attachment = Attachment(
            mime_type=payload.attachment.mime_type,
            data_base64=payload.attachment.data_base64,
        )
    try:
        exchange = chat_service.send_turn(chat_id, payload.text, attachment)
    except ChatNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TurnResponse(
        chat_id=exchange.session.id,
        title=exchange.session.title,
        user_turn=TurnOut.from_turn(exchange.user_turn),
        agent_turn=TurnOut.from_turn(exchange.agent_turn),
    )


@app.delete("/v1/chats/{chat_id}/turns", response_model=ChatDetail)
def clear_turns(chat_id: str) -> ChatDetail:
    try:
        return ChatDetail.from_session(chat_service.clear_transcript(chat_id))
    except ChatNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/v1/chats/{chat_id}/events/{event_id}/confirm", response_model=EventActionResponse)
def confirm_event(chat_id: str, event_id: str) -> EventActionResponse:
    return _event_action(chat_service.confirm_event, chat_id, event_id)


@app.post("/v1/chats/{chat_id}/events/{event_id}/cancel", response_model=EventActionResponse)
def cancel_event(chat_id: str, event_id: str) -> EventActionResponse:
    return _event_action(chat_service.cancel_event, chat_id, event_id)


@app.get("/v1/events", response_model=list[EventOut])
def list_events() -> list[EventOut]:
    return [EventOut(**event.to_dict()) for event in store.get_events()]


@app.get("/v1/user-context", response_model=UserContextModel)
def get_user_context() -> UserContextModel:
    return UserContextModel.from_record(store.get_user_context())


@app.put("/v1/user-context", response_model=UserContextModel)
def put_user_context(payload: UserContextModel) -> UserContextModel:
    store.save_user_context(payload.to_record())
    return payload


@app.delete("/v1/data", status_code=204)
def clear_all_data() -> Response:
    store.clear_all_data()
    logger.warning("data.cleared")
    return Response(status_code=204)


@app.post("/v1/speech")
def synthesize_speech(payload: SpeechRequest) -> Response:
    with speech_lock:
        try:
            result = speech_service.speak(payload.text, payload.message_id)
        except SpeechSynthesisError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        audio = audio_player.drain() or b""
    return Response(
        content=audio,
        media_type="audio/mpeg",
        headers={"X-Speech-Provider": result.provider},
    )


def _event_action(action, chat_id: str, event_id: str) -> EventActionResponse:
    try:
        change: ArtifactChange = action(chat_id, event_id)
    except (ChatNotFoundError, ArtifactNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ArtifactTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return EventActionResponse(
        event_id=change.event_id,
        status=change.status,
        patched_copies=change.patched_copies,
    )
