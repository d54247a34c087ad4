from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable
from urllib import parse as urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from surrogateagent.records import EVENT_CANCELLED, EVENT_PENDING, CalendarEvent, new_id
from surrogateagent.services.session_store import SessionStore
from .base import AgentType, PayloadType, Tool, ToolResult, failure, param_text

logger = structlog.get_logger()

CALENDAR_TEMPLATE_URL = "https://calendar.google.com/calendar/render"
_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I %p", "%I%p")


class ScheduleTool(Tool):
    agent = AgentType.SCHEDULE

    def __init__(
        self,
        store: SessionStore,
        tz_name: str = "UTC",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._tz = _load_zone(tz_name)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run(self, action: str, params: dict[str, Any]) -> ToolResult:
        if action == "create_event":
            return self._create_event(params)
        if action == "list_events":
            return self._list_events()
        return failure("Unknown schedule action.")

    def _create_event(self, params: dict[str, Any]) -> ToolResult:
        title = param_text(params, "title")
        event_time = param_text(params, "time")
        if not title or not event_time:
            return failure("Missing title or time for event.")

        event = CalendarEvent(
            id=new_id(),
            title=title,
            date=param_text(params, "date") or self._today().isoformat(),
            time=event_time,
            description=param_text(params, "description"),
            status=EVENT_PENDING,
        )
        self._store.add_event(event)
        return ToolResult(
            success=True,
            message=(
                f'Event created! Add "{event.title}" to your Google Calendar '
                "to get reminders."
            ),
            data=self._with_calendar_url(event),
            payload_type=PayloadType.EVENT,
        )

    def _list_events(self) -> ToolResult:
        active = [
            event for event in self._store.get_events() if event.status != EVENT_CANCELLED
        ]
        active.sort(key=_event_sort_key)
        count = len(active)
        if count:
            message = f"You have {count} scheduled event{'s' if count > 1 else ''}."
        else:
            message = "Your schedule is clear. No events scheduled."
        return ToolResult(
            success=True,
            message=message,
            data=[self._with_calendar_url(event) for event in active],
            payload_type=PayloadType.EVENT,
        )

    def _with_calendar_url(self, event: CalendarEvent) -> dict[str, Any]:
        payload = event.to_dict()
        payload["gcal_url"] = build_calendar_url(event, self._tz)
        return payload

    def _today(self) -> date:
        return self._clock().astimezone(self._tz).date()


def build_calendar_url(event: CalendarEvent, tz: timezone | ZoneInfo = timezone.utc) -> str | None:
    start_local = combine_event_datetime(event.date, event.time)
    if start_local is None:
        logger.warning("schedule.calendar_url_failed", event_id=event.id)
        return None
    start = start_local.replace(tzinfo=tz).astimezone(timezone.utc)
    end = start + timedelta(hours=1)
    dates = f"{_calendar_stamp(start)}/{_calendar_stamp(end)}"
    return (
        f"{CALENDAR_TEMPLATE_URL}?action=TEMPLATE"
        f"&text={encode_component(event.title)}"
        f"&dates={dates}"
        f"&details={encode_component(event.description or '')}"
    )


def combine_event_datetime(raw_date: str, raw_time: str) -> datetime | None:
    try:
        day = date.fromisoformat((raw_date or "").strip())
    except ValueError:
        return None
    parsed_time = parse_event_time(raw_time)
    if parsed_time is None:
        return None
    return datetime.combine(day, parsed_time)


def parse_event_time(raw: str) -> time | None:
    cleaned = (raw or "").strip().upper()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).time()
        except ValueError:
            continue
    return None


def encode_component(value: str) -> str:
    return urlparse.quote(value, safe="!*'()")


def _calendar_stamp(moment: datetime) -> str:
    return moment.strftime("%Y%m%dT%H%M%SZ")


def _event_sort_key(event: CalendarEvent) -> tuple[datetime, str, str]:
    combined = combine_event_datetime(event.date, event.time)
    return (combined or datetime.max, event.date, event.time)


def _load_zone(tz_name: str) -> timezone | ZoneInfo:
    name = (tz_name or "").strip()
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("schedule.unknown_timezone", timezone=name)
        return timezone.utc
