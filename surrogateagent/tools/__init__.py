from .base import AgentType, DataQuality, PayloadType, Tool, ToolResult
from .chat import ChatTool
from .docs import DocsTool
from .email import EmailTool
from .finance import FinanceTool
from .payment import PaymentTool
from .registry import CommandSpec, ToolDefinition, ToolRegistry
from .schedule import ScheduleTool
from .search import JinaReaderClient, SearchTool

__all__ = [
    "AgentType",
    "ChatTool",
    "CommandSpec",
    "DataQuality",
    "DocsTool",
    "EmailTool",
    "FinanceTool",
    "JinaReaderClient",
    "PaymentTool",
    "PayloadType",
    "ScheduleTool",
    "SearchTool",
    "Tool",
    "ToolDefinition",
    "ToolRegistry",
    "ToolResult",
]
