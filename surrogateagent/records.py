from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

SENDER_USER = "user"
SENDER_AGENT = "agent"

EVENT_PENDING = "pending"
EVENT_CONFIRMED = "confirmed"
EVENT_CANCELLED = "cancelled"
EVENT_STATUSES = {EVENT_PENDING, EVENT_CONFIRMED, EVENT_CANCELLED}

DEFAULT_CHAT_TITLE = "New Conversation"


def new_id() -> str:
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Turn:
    id: str
    sender: str
    text: str
    timestamp: datetime
    tone: str | None = None
    language: str | None = None
    processing_agent: str | None = None
    payload: Any = None
    payload_type: str | None = None


@dataclass
class ChatSession:
    id: str
    title: str = DEFAULT_CHAT_TITLE
    turns: list[Turn] = field(default_factory=list)
    last_message: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def has_title(self) -> bool:
        return self.title != DEFAULT_CHAT_TITLE

    def append_turn(self, turn: Turn) -> None:
        self.turns.append(turn)
        self.touch()

    def clear_turns(self) -> None:
        self.turns = []
        self.touch()

    def touch(self) -> None:
        # last_message/updated_at always follow the final turn.
        if self.turns:
            final = self.turns[-1]
            self.last_message = final.text
            self.updated_at = final.timestamp
        else:
            self.last_message = ""
            self.updated_at = utc_now()


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    title: str
    date: str
    time: str
    description: str = ""
    status: str = EVENT_PENDING

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TextDocument:
    id: str
    title: str
    content: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EmailRecord:
    id: str
    to: str
    subject: str
    body: str
    sent_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PaymentTransaction:
    id: str
    amount: float
    currency: str
    recipient: str
    description: str
    status: str
    timestamp: str
    reference: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SearchHit:
    title: str
    snippet: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UserContext:
    name: str = ""
    preferred_language: str = "en"
    has_seen_intro: bool = False
    theme: str = "dark"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
