from .completion_client import Attachment, CompletionClient
from .fallback import FallbackOutcome, FallbackResolver, ProviderAttempt
from .llm_client import OpenAICompatibleClient, OpenAICompatibleConfig
from .market_data import CoinGeckoProvider, MarketDataService, YahooChartProvider
from .session_store import InMemorySessionStore, SessionStore

__all__ = [
    "Attachment",
    "CompletionClient",
    "FallbackOutcome",
    "FallbackResolver",
    "ProviderAttempt",
    "OpenAICompatibleClient",
    "OpenAICompatibleConfig",
    "CoinGeckoProvider",
    "MarketDataService",
    "YahooChartProvider",
    "InMemorySessionStore",
    "SessionStore",
    "AgentOrchestrator",
    "TurnReply",
    "ChatSessionService",
]


def __getattr__(name: str):
    if name in {"AgentOrchestrator", "TurnReply"}:
        from .orchestrator import AgentOrchestrator, TurnReply

        return {"AgentOrchestrator": AgentOrchestrator, "TurnReply": TurnReply}[name]
    if name == "ChatSessionService":
        from .chat_sessions import ChatSessionService

        return ChatSessionService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
