from __future__ import annotations

from typing import Any

from .base import AgentType, Tool, ToolResult


class ChatTool(Tool):
    agent = AgentType.CHAT

    def run(self, action: str, params: dict[str, Any]) -> ToolResult:
        return ToolResult(success=True, message="")
