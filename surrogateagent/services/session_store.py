from __future__ import annotations

import copy
import threading
from dataclasses import replace
from typing import Any, Protocol

from surrogateagent.records import (
    CalendarEvent,
    ChatSession,
    EmailRecord,
    PaymentTransaction,
    TextDocument,
    UserContext,
    new_id,
)


class SessionStore(Protocol):
    def get_chats(self) -> list[ChatSession]: ...

    def get_chat(self, chat_id: str) -> ChatSession | None: ...

    def save_chat(self, session: ChatSession) -> None: ...

    def delete_chat(self, chat_id: str) -> None: ...

    def create_chat(self) -> ChatSession: ...

    def get_events(self) -> list[CalendarEvent]: ...

    def add_event(self, event: CalendarEvent) -> None: ...

    def update_event(self, event_id: str, patch: dict[str, Any]) -> None: ...

    def delete_event(self, event_id: str) -> None: ...

    def add_document(self, document: TextDocument) -> None: ...

    def add_email(self, email: EmailRecord) -> None: ...

    def add_payment(self, payment: PaymentTransaction) -> None: ...

    def get_user_context(self) -> UserContext: ...

    def save_user_context(self, context: UserContext) -> None: ...

    def clear_all_data(self) -> None: ...


class InMemorySessionStore:
    """Process-local SessionStore; every write is serialised by one lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._chats: dict[str, ChatSession] = {}
        self._events: dict[str, CalendarEvent] = {}
        self._documents: list[TextDocument] = []
        self._emails: list[EmailRecord] = []
        self._payments: list[PaymentTransaction] = []
        self._user_context = UserContext()

    def get_chats(self) -> list[ChatSession]:
        with self._lock:
            chats = [copy.deepcopy(chat) for chat in self._chats.values()]
        return sorted(chats, key=lambda chat: chat.updated_at, reverse=True)

    def get_chat(self, chat_id: str) -> ChatSession | None:
        with self._lock:
            chat = self._chats.get(chat_id)
            return copy.deepcopy(chat) if chat is not None else None

    def save_chat(self, session: ChatSession) -> None:
        with self._lock:
            self._chats[session.id] = copy.deepcopy(session)

    def delete_chat(self, chat_id: str) -> None:
        with self._lock:
            self._chats.pop(chat_id, None)

    def create_chat(self) -> ChatSession:
        session = ChatSession(id=new_id())
        self.save_chat(session)
        return session

    def get_events(self) -> list[CalendarEvent]:
        with self._lock:
            return list(self._events.values())

    def add_event(self, event: CalendarEvent) -> None:
        with self._lock:
            self._events[event.id] = event

    def update_event(self, event_id: str, patch: dict[str, Any]) -> None:
        with self._lock:
            current = self._events.get(event_id)
            if current is None:
                return
            allowed = {
                key: value
                for key, value in patch.items()
                if key in {"title", "date", "time", "description", "status"}
            }
            self._events[event_id] = replace(current, **allowed)

    def delete_event(self, event_id: str) -> None:
        with self._lock:
            self._events.pop(event_id, None)

    def add_document(self, document: TextDocument) -> None:
        with self._lock:
            self._documents.append(document)

    def get_documents(self) -> list[TextDocument]:
        with self._lock:
            return list(self._documents)

    def add_email(self, email: EmailRecord) -> None:
        with self._lock:
            self._emails.append(email)

    def get_emails(self) -> list[EmailRecord]:
        with self._lock:
            return list(self._emails)

    def add_payment(self, payment: PaymentTransaction) -> None:
        with self._lock:
            self._payments.append(payment)

    def get_payments(self) -> list[PaymentTransaction]:
        with self._lock:
            return list(self._payments)

    def get_user_context(self) -> UserContext:
        with self._lock:
            return self._user_context

    def save_user_context(self, context: UserContext) -> None:
        with self._lock:
            self._user_context = context

    def clear_all_data(self) -> None:
        with self._lock:
            self._chats.clear()
            self._events.clear()
            self._documents.clear()
            self._emails.clear()
            self._payments.clear()
            self._user_context = UserContext()
