from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

import structlog

from surrogateagent.errors import ChatNotFoundError, IntentParseError
from surrogateagent.records import (
    SENDER_AGENT,
    SENDER_USER,
    ChatSession,
    Turn,
    new_id,
    utc_now,
)
from .artifacts import ArtifactChange, ArtifactLifecycleManager, TranscriptIndex
from .completion_client import Attachment, CompletionClient
from .orchestrator import AgentOrchestrator, TurnReply, processing_error_reply
from .session_store import SessionStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class TurnExchange:
    session: ChatSession
    user_turn: Turn
    agent_turn: Turn


class ChatSessionService:
    """Owns transcript mutation: turns, titles and event lifecycle actions.

    Every read-modify-save of one chat runs under that chat's lock, and the
    session is re-read inside the lock, so a concurrent turn or event action
    never writes back a stale copy. Completion calls run outside the lock.
    """

    def __init__(
        self,
        store: SessionStore,
        orchestrator: AgentOrchestrator,
        completion: CompletionClient,
        artifacts: ArtifactLifecycleManager,
        *,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.completion = completion
        self.artifacts = artifacts
        self._new_id = id_factory
        self._locks_guard = threading.Lock()
        self._chat_locks: dict[str, threading.Lock] = {}

    def create_chat(self) -> ChatSession:
        session = self.store.create_chat()
        logger.info("chat.created", chat_id=session.id)
        return session

    def list_chats(self) -> list[ChatSession]:
        return self.store.get_chats()

    def get_chat(self, chat_id: str) -> ChatSession:
        session = self.store.get_chat(chat_id)
        if session is None:
            raise ChatNotFoundError(f"Chat '{chat_id}' was not found.")
        return session

    def delete_chat(self, chat_id: str) -> None:
        with self._chat_lock(chat_id):
            self.get_chat(chat_id)
            self.store.delete_chat(chat_id)
        with self._locks_guard:
            self._chat_locks.pop(chat_id, None)
        logger.info("chat.deleted", chat_id=chat_id)

    def clear_transcript(self, chat_id: str) -> ChatSession:
        with self._chat_lock(chat_id):
            session = self.get_chat(chat_id)
            session.clear_turns()
            self.store.save_chat(session)
        logger.info("chat.cleared", chat_id=chat_id)
        return session

    def send_turn(
        self,
        chat_id: str,
        text: str,
        attachment: Attachment | None = None,
    ) -> TurnExchange:
        if not text.strip() and attachment is None:
            raise ValueError("A turn needs text or an attachment.")

        user_turn = Turn(id=self._new_id(), sender=SENDER_USER, text=text, timestamp=utc_now())
        with self._chat_lock(chat_id):
            session = self.get_chat(chat_id)
            history = list(session.turns)
            needs_title = not session.has_title and not any(
                turn.sender == SENDER_USER for turn in history
            )
            session.append_turn(user_turn)
            self.store.save_chat(session)

        title = None
        if needs_title:
            title = self.completion.generate_title(text.strip() or "Shared attachment")

        try:
            reply = self.orchestrator.handle_turn(text, history, attachment)
        except IntentParseError as exc:
            logger.error(
                "turn.intent_parse_failed",
                chat_id=chat_id,
                error=str(exc),
                candidate_chars=len(exc.candidate),
            )
            reply = processing_error_reply()

        agent_turn = _agent_turn(self._new_id(), reply)
        with self._chat_lock(chat_id):
            session = self.get_chat(chat_id)
            if title and not session.has_title:
                session.title = title
            session.append_turn(agent_turn)
            self.store.save_chat(session)
        logger.info(
            "turn.recorded",
            chat_id=chat_id,
            agent=reply.agent.value,
            payload_type=reply.payload_type.value if reply.payload_type else None,
            turns=len(session.turns),
        )
        return TurnExchange(session=session, user_turn=user_turn, agent_turn=agent_turn)

    def confirm_event(self, chat_id: str, event_id: str) -> ArtifactChange:
        with self._chat_lock(chat_id):
            session = self.get_chat(chat_id)
            change = self.artifacts.confirm(event_id, TranscriptIndex(session))
            self.store.save_chat(session)
        return change

    def cancel_event(self, chat_id: str, event_id: str) -> ArtifactChange:
        with self._chat_lock(chat_id):
            session = self.get_chat(chat_id)
            change = self.artifacts.cancel(event_id, TranscriptIndex(session))
            self.store.save_chat(session)
        return change

    @contextmanager
    def _chat_lock(self, chat_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._chat_locks.setdefault(chat_id, threading.Lock())
        with lock:
            yield


def _agent_turn(turn_id: str, reply: TurnReply) -> Turn:
    return Turn(
        id=turn_id,
        sender=SENDER_AGENT,
        text=reply.text,
        timestamp=utc_now(),
        tone=reply.tone,
        language=reply.language,
        processing_agent=reply.agent.value,
        payload=reply.payload,
        payload_type=reply.payload_type.value if reply.payload_type else None,
    )
