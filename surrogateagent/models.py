from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from surrogateagent.records import ChatSession, Turn, UserContext


class AttachmentIn(BaseModel):
    mime_type: str = Field(min_length=1, max_length=200)
    data_base64: str = Field(min_length=1)


class TurnRequest(BaseModel):
    text: str = Field(default="", max_length=6000)
    attachment: AttachmentIn | None = None


class TurnOut(BaseModel):
    id: str
    sender: str
    text: str
    timestamp: datetime
    tone: str | None = None
    language: str | None = None
    processing_agent: str | None = None
    payload: Any = None
    payload_type: str | None = None

    @classmethod
    def from_turn(cls, turn: Turn) -> "TurnOut":
        return cls(
            id=turn.id,
            sender=turn.sender,
            text=turn.text,
            timestamp=turn.timestamp,
            tone=turn.tone,
            language=turn.language,
            processing_agent=turn.processing_agent,
            payload=turn.payload,
            payload_type=turn.payload_type,
        )


class ChatSummary(BaseModel):
    id: str
    title: str
    last_message: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: ChatSession) -> "ChatSummary":
        return cls(
            id=session.id,
            title=session.title,
            last_message=session.last_message,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class ChatDetail(ChatSummary):
    turns: list[TurnOut] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: ChatSession) -> "ChatDetail":
        return cls(
            id=session.id,
            title=session.title,
            last_message=session.last_message,
            created_at=session.created_at,
            updated_at=session.updated_at,
            turns=[TurnOut.from_turn(turn) for turn in session.turns],
        )


class TurnResponse(BaseModel):
    chat_id: str
    title: str
    user_turn: TurnOut
    agent_turn: TurnOut


class EventActionResponse(BaseModel):
    event_id: str
    status: str
    patched_copies: int


class EventOut(BaseModel):
    id: str
    title: str
    date: str
    time: str
    description: str = ""
    status: str


class UserContextModel(BaseModel):
    name: str = Field(default="", max_length=200)
    preferred_language: str = Field(default="en", max_length=20)
    has_seen_intro: bool = False
    theme: str = Field(default="dark", max_length=20)

    @classmethod
    def from_record(cls, context: UserContext) -> "UserContextModel":
        return cls(**context.to_dict())

    def to_record(self) -> UserContext:
        return UserContext(
            name=self.name,
            preferred_language=self.preferred_language,
            has_seen_intro=self.has_seen_intro,
            theme=self.theme,
        )


class SpeechRequest(BaseModel):
    text: str = Field(min_length=1, max_length=6000)
    message_id: str = Field(min_length=1, max_length=200)
