from __future__ import annotations

from typing import Any

from surrogateagent.records import EmailRecord, new_id, utc_now
from surrogateagent.services.session_store import SessionStore
from .base import AgentType, PayloadType, Tool, ToolResult, failure, param_text
from .schedule import encode_component

GMAIL_COMPOSE_URL = "https://mail.google.com/mail/"


class EmailTool(Tool):
    """Prepares drafts only; the user sends from the rendered widget."""

    agent = AgentType.EMAIL

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def run(self, action: str, params: dict[str, Any]) -> ToolResult:
        if action != "send_email":
            return failure("Unknown email action.")

        to = param_text(params, "to")
        subject = param_text(params, "subject")
        body = params.get("body") if isinstance(params.get("body"), str) else ""
        if not to or not subject or not body.strip():
            return failure("Missing 'to', 'subject', or 'body' for email.")

        record = EmailRecord(
            id=new_id(),
            to=to,
            subject=subject,
            body=body,
            sent_at=utc_now().isoformat(),
        )
        self._store.add_email(record)

        data = record.to_dict()
        data["mailto"] = build_mailto_link(to=to, subject=subject, body=body)
        data["gmail"] = build_gmail_link(to=to, subject=subject, body=body)
        return ToolResult(
            success=True,
            message=f"Email draft prepared for {to}.",
            data=data,
            payload_type=PayloadType.EMAIL,
        )


def build_mailto_link(*, to: str, subject: str, body: str) -> str:
    # Mail clients expect CRLF line breaks in mailto bodies.
    crlf_body = body.replace("\r\n", "\n").replace("\n", "\r\n")
    return (
        f"mailto:{to}?subject={encode_component(subject)}"
        f"&body={encode_component(crlf_body)}"
    )


def build_gmail_link(*, to: str, subject: str, body: str) -> str:
    return (
        f"{GMAIL_COMPOSE_URL}?view=cm&fs=1"
        f"&to={encode_component(to)}"
        f"&su={encode_component(subject)}"
        f"&body={encode_component(body)}"
    )
