from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Protocol, Sequence
from urllib import parse as urlparse

import requests

from surrogateagent.records import SearchHit
from surrogateagent.services.fallback import FallbackResolver, ProviderAttempt
from .base import AgentType, DataQuality, PayloadType, Tool, ToolResult, failure, param_text

WIKI_EXCERPT_CHARS = 800
WIKI_SNIPPET_CHARS = 200
WEB_EXCERPT_CHARS = 1000
WEB_SNIPPET_CHARS = 300

KNOWLEDGE_PREFIX = "Based on my knowledge: "
KNOWLEDGE_NOTE = "\n\n*Note: Unable to fetch live internet data. This is from my training data.*"


class SearchDigester(Protocol):
    def craft_search_digest(self, query: str, hits: Sequence[SearchHit]) -> str:
        ...


@dataclass(frozen=True)
class SearchTier:
    """One resolved search tier: what the digest sees and what the payload shows."""

    digest_hit: SearchHit
    result_hit: SearchHit
    data_quality: DataQuality


class JinaReaderClient:
    name = "jina_reader"

    def __init__(self, base_url: str, timeout_seconds: int) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = max(1, timeout_seconds)

    def read(self, url: str) -> str:
        response = requests.get(
            f"{self.base_url}/{url}",
            headers={"Accept": "application/json", "X-Return-Format": "markdown"},
            timeout=self.timeout_seconds,
        )
        if not response.ok:
            raise RuntimeError(f"Jina reader failed ({response.status_code})")
        payload = response.json()
        if not isinstance(payload, dict):
            return ""
        data = payload.get("data")
        content = data.get("content") if isinstance(data, dict) else None
        if not content:
            content = payload.get("content")
        return content.strip() if isinstance(content, str) else ""


def wiki_slug(query: str) -> str:
    words = re.split(r"\s+", query.strip())
    return "_".join(word[:1].upper() + word[1:] for word in words if word)


def wikipedia_url(query: str) -> str:
    return f"https://en.wikipedia.org/wiki/{urlparse.quote(wiki_slug(query), safe='_()')}"


def google_search_url(query: str) -> str:
    return f"https://www.google.com/search?{urlparse.urlencode({'q': query})}"


class SearchTool(Tool):
    agent = AgentType.SEARCH

    def __init__(
        self,
        reader: JinaReaderClient,
        digester: SearchDigester,
        min_content_chars: int = 100,
    ) -> None:
        self._reader = reader
        self._digester = digester
        self._min_content_chars = max(1, min_content_chars)

    def run(self, action: str, params: dict[str, Any]) -> ToolResult:
        if action != "web_search":
            return failure("Unknown search action.")

        query = param_text(params, "query") or "Unknown"
        outcome = FallbackResolver(
            "search",
            [
                ProviderAttempt(
                    name="wikipedia",
                    fetch=lambda: self._wikipedia_tier(query),
                ),
                ProviderAttempt(
                    name="web",
                    fetch=lambda: self._web_tier(query),
                ),
            ],
            degraded=lambda: _knowledge_tier(query),
        ).resolve()
        tier = outcome.value

        digest = self._digester.craft_search_digest(query, [tier.digest_hit])
        if tier.data_quality is DataQuality.UNVERIFIED:
            message = f"{KNOWLEDGE_PREFIX}{digest}{KNOWLEDGE_NOTE}"
        else:
            message = digest

        return ToolResult(
            success=True,
            message=message,
            data={
                "query": query,
                "results": [tier.result_hit.to_dict()],
                "data_quality": tier.data_quality.value,
            },
            payload_type=PayloadType.SEARCH_RESULT,
        )

    def _read_excerpt(self, url: str, limit: int) -> str | None:
        content = self._reader.read(url)
        if len(content) <= self._min_content_chars:
            return None
        return content[:limit].strip()

    def _wikipedia_tier(self, query: str) -> SearchTier | None:
        excerpt = self._read_excerpt(wikipedia_url(query), WIKI_EXCERPT_CHARS)
        if excerpt is None:
            return None
        title = f"Wikipedia: {query}"
        return SearchTier(
            digest_hit=SearchHit(title=title, snippet=excerpt, source="wikipedia.org"),
            result_hit=SearchHit(
                title=title,
                snippet=excerpt[:WIKI_SNIPPET_CHARS] + "...",
                source="wikipedia.org",
            ),
            data_quality=DataQuality.LIVE,
        )

    def _web_tier(self, query: str) -> SearchTier | None:
        excerpt = self._read_excerpt(google_search_url(query), WEB_EXCERPT_CHARS)
        if excerpt is None:
            return None
        return SearchTier(
            digest_hit=SearchHit(
                title=f'Search results for "{query}"',
                snippet=excerpt,
                source="google.com",
            ),
            result_hit=SearchHit(
                title=f"Web search: {query}",
                snippet=excerpt[:WEB_SNIPPET_CHARS] + "...",
                source="web search",
            ),
            data_quality=DataQuality.LIVE,
        )


def _knowledge_tier(query: str) -> SearchTier:
    return SearchTier(
        digest_hit=SearchHit(
            title=f'Information about "{query}"',
            snippet=f"Based on general knowledge about {query}",
            source="AI Knowledge Base",
        ),
        result_hit=SearchHit(
            title=query,
            snippet="Information from AI knowledge base",
            source="AI Training Data",
        ),
        data_quality=DataQuality.UNVERIFIED,
    )
