from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

import structlog

from surrogateagent.config import Settings
from surrogateagent.errors import CompletionError, EmptyCompletionError
from surrogateagent.records import CalendarEvent, SearchHit, Turn
from .llm_client import OpenAICompatibleClient, OpenAICompatibleConfig

logger = structlog.get_logger()

TITLE_MAX_CHARS = 50
TITLE_FALLBACK_CHARS = 30
INLINE_MIME_PREFIXES = ("image/", "audio/")
INLINE_MIME_TYPES = ("application/pdf",)

OUTPUT_SCHEMA = """{
  "response": "Natural language response.",
  "detectedTone": "Emotion",
  "detectedLanguage": "en, ur, pa",
  "activeAgent": "Agent value from the list above",
  "command": "string (optional)",
  "parameters": { ... } (optional)
}"""


@dataclass(frozen=True)
class Attachment:
    mime_type: str
    data_base64: str

    @property
    def inlineable(self) -> bool:
        mime = self.mime_type.strip().lower()
        return mime in INLINE_MIME_TYPES or mime.startswith(INLINE_MIME_PREFIXES)


def flatten_events(events: Sequence[CalendarEvent]) -> str:
    rendered = "; ".join(f"{event.date} {event.time}: {event.title}" for event in events)
    return rendered or "None"


def fallback_title(message: str) -> str:
    text = message.strip()
    if len(text) > TITLE_FALLBACK_CHARS:
        return text[:TITLE_FALLBACK_CHARS] + "..."
    return text


def format_digest_hits(hits: Sequence[SearchHit]) -> str:
    return "\n\n".join(
        f"{idx}. **{hit.title}**\n   {hit.snippet}\n   Source: {hit.source}"
        for idx, hit in enumerate(hits, start=1)
    )


def build_system_instruction(
    *,
    now: datetime,
    user_name: str,
    events: Sequence[CalendarEvent],
    catalogue: str,
) -> str:
    return f"""You are the "AI Surrogate Human Clone", an intelligent agentic system.
Current Time: {now.strftime("%Y-%m-%d %H:%M %Z").strip()}
User Name: {user_name}
Existing Events in DB: {flatten_events(events)}

**CAPABILITIES:**
- You can view images, read PDFs and listen to audio messages.
- If the user sends audio, transcribe it internally and respond to the spoken content.
- Review attached PDFs to answer questions about them.

**AGENTS & TOOLS:**
{catalogue}

**RULES:**
- Email: you MUST have a valid email address. If the user only gives a name, ask for the address (e.g. "What is the email address for Bob?"). You must have a topic before drafting. When ready, use the Email agent with "send_email" instead of writing the email in the response. Sign off the body with "Best regards,\\n{user_name}". Use '\\n' for newlines in the body.
- Payment: if the user does not state an amount, ask "What is the amount to be paid?". Never invent an amount.
- Docs: if the user gives a topic, draft the full content yourself.
- If critical parameters are missing, ask the user instead of selecting a command.

**OUTPUT FORMAT (JSON ONLY):**
{OUTPUT_SCHEMA}
"""


class CompletionClient:
    """Prompt construction on top of an OpenAI-style chat completion transport."""

    def __init__(
        self,
        llm: OpenAICompatibleClient | None,
        *,
        title_model: str | None = None,
        search_model: str | None = None,
        analysis_model: str | None = None,
        context_turns: int = 40,
        aux_timeout_seconds: int | None = None,
    ) -> None:
        self.llm = llm
        self.title_model = title_model
        self.search_model = search_model
        self.analysis_model = analysis_model
        self.context_turns = max(1, context_turns)
        self.aux_timeout_seconds = aux_timeout_seconds
        self._log = logger.bind(component="completion_client")

    @classmethod
    def from_settings(cls, cfg: Settings) -> "CompletionClient":
        llm: OpenAICompatibleClient | None = None
        if cfg.llm_api_key:
            llm = OpenAICompatibleClient(
                OpenAICompatibleConfig(
                    provider=cfg.llm_provider,
                    model=cfg.llm_model,
                    api_key=cfg.llm_api_key,
                    timeout_seconds=cfg.llm_timeout_seconds,
                    api_base_url=cfg.llm_api_base_url,
                )
            )
        return cls(
            llm,
            title_model=cfg.title_llm_model,
            search_model=cfg.search_llm_model,
            analysis_model=cfg.analysis_llm_model,
            context_turns=cfg.context_turns,
            aux_timeout_seconds=cfg.aux_llm_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return self.llm is not None

    def build_messages(
        self,
        message: str,
        history: Sequence[Turn],
        *,
        attachment: Attachment | None,
        user_name: str,
        events: Sequence[CalendarEvent],
        now: datetime,
        catalogue: str,
    ) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = [
            {
                "role": "system",
                "content": build_system_instruction(
                    now=now,
                    user_name=user_name or "User",
                    events=events,
                    catalogue=catalogue,
                ),
            }
        ]

        recent = list(history)[-self.context_turns :]
        if recent:
            context = "\n".join(f"{turn.sender}: {turn.text}" for turn in recent)
            messages.append({"role": "user", "content": f"Previous Context:\n{context}"})

        content: list[dict[str, Any]] = [{"type": "text", "text": message}]
        if attachment is not None:
            if attachment.inlineable:
                content.append(
                    {
                        "type": "image_url",
                        "image_url": {
                            "url": f"data:{attachment.mime_type};base64,{attachment.data_base64}"
                        },
                    }
                )
                self._log.info(
                    "completion.attachment_inlined",
                    mime_type=attachment.mime_type,
                    size=len(attachment.data_base64),
                )
            else:
                self._log.warning(
                    "completion.attachment_dropped",
                    mime_type=attachment.mime_type,
                )
        messages.append({"role": "user", "content": content})
        messages.append({"role": "user", "content": "Respond in valid JSON."})
        return messages

    def generate_reply(
        self,
        message: str,
        history: Sequence[Turn],
        *,
        attachment: Attachment | None = None,
        user_name: str = "",
        events: Sequence[CalendarEvent] = (),
        now: datetime,
        catalogue: str,
    ) -> str:
        if self.llm is None:
            raise CompletionError("No completion client is configured.")
        messages = self.build_messages(
            message,
            history,
            attachment=attachment,
            user_name=user_name,
            events=events,
            now=now,
            catalogue=catalogue,
        )
        self._log.info(
            "completion.requested",
            history_turns=min(len(history), self.context_turns),
            message_chars=len(message),
        )
        return self.llm.complete(messages=messages)

    def generate_title(self, first_user_message: str) -> str:
        if self.llm is None:
            return fallback_title(first_user_message)
        prompt = (
            "Generate a very short, concise title (3-5 words) for a chat conversation "
            "based on this first message. Return ONLY the title, nothing else. "
            f'Do NOT include quotes.\n\nMessage: "{first_user_message}"'
        )
        try:
            raw = self.llm.complete(
                messages=[{"role": "user", "content": prompt}],
                temperature=0.3,
                max_tokens=50,
                model=self.title_model,
                timeout_seconds=self.aux_timeout_seconds,
            )
        except CompletionError as exc:
            self._log.warning("completion.title_failed", error=str(exc))
            return fallback_title(first_user_message)

        title = raw.strip().strip("\"'").strip()
        if not title or len(title) > TITLE_MAX_CHARS:
            return fallback_title(first_user_message)
        return title

    def craft_search_digest(self, query: str, hits: Sequence[SearchHit]) -> str:
        results_text = format_digest_hits(hits)
        listing = f'I found information about "{query}":\n\n{results_text}'
        if self.llm is None:
            return listing
        prompt = (
            f'Based on these real search results about "{query}", provide a helpful, '
            "natural response that synthesizes the information. Be concise and informative."
            f"\n\nSearch Results:\n{results_text}"
        )
        try:
            crafted = self.llm.complete(
                messages=[{"role": "user", "content": prompt}],
                temperature=0.7,
                max_tokens=300,
                model=self.search_model,
                timeout_seconds=self.aux_timeout_seconds,
            )
        except EmptyCompletionError:
            self._log.info("completion.search_digest_empty")
            return listing
        except CompletionError as exc:
            self._log.warning("completion.search_digest_failed", error=str(exc))
            return (
                f'I found information about "{query}" but couldn\'t synthesize it. '
                f"Here are the raw results:\n\n{results_text}"
            )
        return crafted

    def generate_market_analysis(self, symbol: str, price: float, change_percent: float) -> str:
        if self.llm is None:
            return "Analysis unavailable (Missing API Key)."
        prompt = f"""Asset: {symbol}
Current Price: ${price}
24h Change: {change_percent:.2f}%

You are a cautious financial analyst. Provide a structured trade setup with technical reasoning.

Required Output Format:
"Prediction: [Bullish/Bearish/Neutral]
Reasoning: [Brief technical reason e.g., RSI divergence, bouncing off 200 EMA, breaking resistance at $X].
Key Levels: Support $[price] | Resistance $[price]
Setup: SL: $[price] | TP: $[price]"

Keep the entire response under 60 words. Use financial terminology but remain concise."""
        try:
            return self.llm.complete(
                messages=[{"role": "user", "content": prompt}],
                model=self.analysis_model,
                timeout_seconds=self.aux_timeout_seconds,
            )
        except CompletionError as exc:
            self._log.warning("completion.market_analysis_failed", symbol=symbol, error=str(exc))
            return f"Unable to generate analysis for {symbol} at this time."
