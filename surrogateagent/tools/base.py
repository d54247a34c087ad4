from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class AgentType(str, Enum):
    CHAT = "Chat"
    SCHEDULE = "Schedule"
    DOCS = "Docs"
    EMAIL = "Email"
    PAYMENT = "Payment"
    FINANCE = "Finance"
    SEARCH = "Search"


class PayloadType(str, Enum):
    EVENT = "EVENT"
    DOC = "DOC"
    EMAIL = "EMAIL"
    PAYMENT = "PAYMENT"
    FINANCE_REPORT = "FINANCE_REPORT"
    SEARCH_RESULT = "SEARCH_RESULT"


class DataQuality(str, Enum):
    LIVE = "live"
    SYNTHETIC = "synthetic"
    UNVERIFIED = "unverified"


_AGENT_ALIASES = {
    "chat": AgentType.CHAT,
    "general": AgentType.CHAT,
    "schedule": AgentType.SCHEDULE,
    "scheduler": AgentType.SCHEDULE,
    "scheduling": AgentType.SCHEDULE,
    "calendar": AgentType.SCHEDULE,
    "docs": AgentType.DOCS,
    "doc": AgentType.DOCS,
    "document": AgentType.DOCS,
    "documents": AgentType.DOCS,
    "email": AgentType.EMAIL,
    "mail": AgentType.EMAIL,
    "payment": AgentType.PAYMENT,
    "payments": AgentType.PAYMENT,
    "finance": AgentType.FINANCE,
    "financial": AgentType.FINANCE,
    "market": AgentType.FINANCE,
    "search": AgentType.SEARCH,
    "web search": AgentType.SEARCH,
    "web": AgentType.SEARCH,
}


def resolve_agent_type(raw: object) -> AgentType | None:
    if isinstance(raw, AgentType):
        return raw
    if not isinstance(raw, str):
        return None
    lowered = re.sub(r"\s+", " ", raw.strip().lower())
    if lowered.endswith(" agent"):
        lowered = lowered[: -len(" agent")].strip()
    return _AGENT_ALIASES.get(lowered)


@dataclass(frozen=True)
class ToolResult:
    success: bool
    message: str
    data: Any = None
    payload_type: PayloadType | None = None


def failure(message: str) -> ToolResult:
    return ToolResult(success=False, message=message)


class Tool(ABC):
    agent: AgentType

    @abstractmethod
    def run(self, action: str, params: dict[str, Any]) -> ToolResult:
        raise NotImplementedError


def param_text(params: dict[str, Any], key: str) -> str:
    value = params.get(key)
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""
