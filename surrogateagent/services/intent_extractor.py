from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from surrogateagent.errors import IntentParseError
from surrogateagent.tools.base import AgentType, resolve_agent_type

_STATE_NORMAL = "normal"
_STATE_IN_STRING = "in_string"
_STATE_ESCAPED = "escaped"


@dataclass(frozen=True)
class Intent:
    response: str
    detected_tone: str
    detected_language: str
    active_agent: AgentType | None
    command: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def wants_dispatch(self) -> bool:
        return (
            self.active_agent is not None
            and self.active_agent is not AgentType.CHAT
            and bool(self.command)
        )


def strip_code_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "")


def extract_json_span(text: str) -> str:
    """Return the first balanced top-level JSON object found in ``text``.

    Braces inside string literals are ignored. A truncated object yields the
    span up to the last closing brace; text without any ``{`` comes back
    unchanged so the JSON decoder reports the failure.
    """
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    if start == -1:
        return text

    state = _STATE_NORMAL
    depth = 0
    for idx in range(start, len(cleaned)):
        char = cleaned[idx]
        if state == _STATE_ESCAPED:
            state = _STATE_IN_STRING
            continue
        if state == _STATE_IN_STRING:
            if char == "\\":
                state = _STATE_ESCAPED
            elif char == '"':
                state = _STATE_NORMAL
            continue

        if char == '"':
            state = _STATE_IN_STRING
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return cleaned[start : idx + 1]

    last = cleaned.rfind("}")
    if last > start:
        return cleaned[start : last + 1]
    return cleaned


def parse_intent(raw_text: str) -> Intent:
    candidate = extract_json_span(raw_text or "")
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise IntentParseError(f"Completion is not valid JSON: {exc.msg}", candidate=candidate) from exc
    if not isinstance(parsed, dict):
        raise IntentParseError("Completion JSON is not an object.", candidate=candidate)

    command = parsed.get("command")
    parameters = parsed.get("parameters")
    return Intent(
        response=_as_text(parsed.get("response")),
        detected_tone=_as_text(parsed.get("detectedTone")),
        detected_language=_as_text(parsed.get("detectedLanguage")),
        active_agent=resolve_agent_type(parsed.get("activeAgent")),
        command=(command.strip() or None) if isinstance(command, str) else None,
        parameters=parameters if isinstance(parameters, dict) else {},
    )


def _as_text(value: object) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return str(value)
