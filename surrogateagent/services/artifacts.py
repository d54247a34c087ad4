from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

import structlog

from surrogateagent.errors import ArtifactNotFoundError, ArtifactTransitionError
from surrogateagent.records import (
    EVENT_CANCELLED,
    EVENT_CONFIRMED,
    EVENT_PENDING,
    CalendarEvent,
    ChatSession,
    Turn,
)
from surrogateagent.tools.base import PayloadType
from .session_store import SessionStore

logger = structlog.get_logger()


def _event_rows(turn: Turn) -> list[dict[str, Any]]:
    if turn.payload_type != PayloadType.EVENT.value:
        return []
    payload = turn.payload
    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    return []


class TranscriptIndex:
    """Maps event ids to the positions of turns whose payload embeds them.

    The session's turn list is the arena; positions stay valid because turns
    are only ever appended or cleared as a whole.

    An index is a view over one loaded session. The store hands out copies,
    so each locked read-modify-save builds one index with a single scan and
    keeps it current through ``append``/``clear`` instead of rescanning.
    """

    def __init__(self, session: ChatSession) -> None:
        self.session = session
        self._positions: dict[str, set[int]] = {}
        for position, turn in enumerate(session.turns):
            self._track(position, turn)

    def append(self, turn: Turn) -> None:
        self.session.append_turn(turn)
        self._track(len(self.session.turns) - 1, turn)

    def clear(self) -> None:
        self.session.clear_turns()
        self._positions.clear()

    def positions(self, event_id: str) -> list[int]:
        return sorted(self._positions.get(event_id, ()))

    def embedded_copies(self, event_id: str) -> Iterator[dict[str, Any]]:
        for position in self.positions(event_id):
            for row in _event_rows(self.session.turns[position]):
                if row.get("id") == event_id:
                    yield row

    def embedded_status(self, event_id: str) -> str | None:
        for row in self.embedded_copies(event_id):
            return str(row.get("status") or EVENT_PENDING)
        return None

    def patch_status(self, event_id: str, status: str) -> int:
        patched = 0
        for row in self.embedded_copies(event_id):
            row["status"] = status
            patched += 1
        if patched:
            self.session.touch()
        return patched

    def _track(self, position: int, turn: Turn) -> None:
        for row in _event_rows(turn):
            event_id = row.get("id")
            if isinstance(event_id, str) and event_id:
                self._positions.setdefault(event_id, set()).add(position)


@dataclass(frozen=True)
class ArtifactChange:
    event_id: str
    status: str
    patched_copies: int


class ArtifactLifecycleManager:
    """Moves calendar events from pending to confirmed or cancelled.

    Both end states are terminal.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def confirm(self, event_id: str, index: TranscriptIndex) -> ArtifactChange:
        stored = self._require_pending(event_id, index, EVENT_CONFIRMED)
        if stored is not None:
            self._store.update_event(event_id, {"status": EVENT_CONFIRMED})
        return self._relabel(event_id, index, EVENT_CONFIRMED)

    def cancel(self, event_id: str, index: TranscriptIndex) -> ArtifactChange:
        stored = self._require_pending(event_id, index, EVENT_CANCELLED)
        if stored is not None:
            self._store.delete_event(event_id)
        return self._relabel(event_id, index, EVENT_CANCELLED)

    def _find_stored(self, event_id: str) -> CalendarEvent | None:
        for event in self._store.get_events():
            if event.id == event_id:
                return event
        return None

    def _require_pending(
        self, event_id: str, index: TranscriptIndex, target: str
    ) -> CalendarEvent | None:
        stored = self._find_stored(event_id)
        current = stored.status if stored is not None else index.embedded_status(event_id)
        if current is None:
            raise ArtifactNotFoundError(f"Event '{event_id}' was not found.")
        if current != EVENT_PENDING:
            raise ArtifactTransitionError(event_id, current, target)
        return stored

    def _relabel(self, event_id: str, index: TranscriptIndex, status: str) -> ArtifactChange:
        patched = index.patch_status(event_id, status)
        logger.info(
            "artifact.transitioned",
            event_id=event_id,
            status=status,
            patched_copies=patched,
        )
        return ArtifactChange(event_id=event_id, status=status, patched_copies=patched)
