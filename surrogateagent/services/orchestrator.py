from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from surrogateagent.errors import CompletionError
from surrogateagent.records import Turn
from surrogateagent.tools.base import AgentType, PayloadType
from surrogateagent.tools.registry import ToolRegistry
from .completion_client import Attachment, CompletionClient
from .intent_extractor import parse_intent
from .session_store import SessionStore

logger = structlog.get_logger()

OFFLINE_TEXT = "I'm offline. Please check the LLM API configuration."
PROCESSING_ERROR_TEXT = "I encountered a processing error. Please try again."
EMPTY_REPLY_TEXT = "Processed."
DEFAULT_TONE = "Neutral"
ERROR_TONE = "Error"
DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class TurnReply:
    text: str
    tone: str
    language: str
    agent: AgentType
    payload: Any = None
    payload_type: PayloadType | None = None


def processing_error_reply() -> TurnReply:
    return TurnReply(
        text=PROCESSING_ERROR_TEXT,
        tone=ERROR_TONE,
        language=DEFAULT_LANGUAGE,
        agent=AgentType.CHAT,
    )


class AgentOrchestrator:
    """Turns one user message into an agent reply.

    Holds no per-turn state; everything a turn needs comes from the arguments
    and the session store.
    """

    def __init__(
        self,
        completion: CompletionClient,
        registry: ToolRegistry,
        store: SessionStore,
        *,
        tz_name: str = "UTC",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.completion = completion
        self.registry = registry
        self.store = store
        self._tz = _load_zone(tz_name)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def handle_turn(
        self,
        message: str,
        history: Sequence[Turn],
        attachment: Attachment | None = None,
    ) -> TurnReply:
        if not self.completion.configured:
            logger.warning("turn.offline")
            return TurnReply(
                text=OFFLINE_TEXT,
                tone=DEFAULT_TONE,
                language=DEFAULT_LANGUAGE,
                agent=AgentType.CHAT,
            )

        user_context = self.store.get_user_context()
        try:
            raw = self.completion.generate_reply(
                message,
                history,
                attachment=attachment,
                user_name=user_context.name,
                events=self.store.get_events(),
                now=self._clock().astimezone(self._tz),
                catalogue=self.registry.render_for_prompt(),
            )
        except CompletionError as exc:
            logger.error("turn.completion_failed", error=str(exc))
            return processing_error_reply()

        intent = parse_intent(raw)
        text = intent.response
        payload: Any = None
        payload_type: PayloadType | None = None

        if intent.wants_dispatch:
            result = self.registry.dispatch(intent.active_agent, intent.command, intent.parameters)
            if result.success:
                payload = result.data
                payload_type = result.payload_type
                if result.message:
                    text += f"\n\n{result.message}"
            else:
                text += f" (System: {result.message})"

        agent = intent.active_agent or AgentType.CHAT
        logger.info(
            "turn.handled",
            agent=agent.value,
            command=intent.command if intent.wants_dispatch else None,
            payload_type=payload_type.value if payload_type else None,
        )
        return TurnReply(
            text=text or EMPTY_REPLY_TEXT,
            tone=intent.detected_tone or DEFAULT_TONE,
            language=intent.detected_language or DEFAULT_LANGUAGE,
            agent=agent,
            payload=payload,
            payload_type=payload_type,
        )


def _load_zone(tz_name: str) -> ZoneInfo | timezone:
    name = (tz_name or "").strip()
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("turn.timezone_fallback", timezone=name)
        return timezone.utc
