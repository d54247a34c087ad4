from __future__ import annotations

from typing import Any

from surrogateagent.records import TextDocument, new_id, utc_now
from surrogateagent.services.session_store import SessionStore
from .base import AgentType, PayloadType, Tool, ToolResult, failure, param_text

DEFAULT_DOC_TITLE = "Untitled Draft"


class DocsTool(Tool):
    agent = AgentType.DOCS

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def run(self, action: str, params: dict[str, Any]) -> ToolResult:
        if action != "create_doc":
            return failure("Unknown doc action.")

        content = params.get("content")
        if not isinstance(content, str) or not content.strip():
            return failure("No content provided for document.")

        document = TextDocument(
            id=new_id(),
            title=param_text(params, "title") or DEFAULT_DOC_TITLE,
            content=content,
            created_at=utc_now().isoformat(),
        )
        self._store.add_document(document)
        return ToolResult(
            success=True,
            message=f'Document "{document.title}" created successfully.',
            data=document.to_dict(),
            payload_type=PayloadType.DOC,
        )
