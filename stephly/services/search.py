"""
Web Search for the Assistant

Questions about the outside world ("what is the dollar rate today?")
get a quick web lookup before the LLM answers. Providers are tried in
order until one returns something:

1. Google Custom Search (best quality, needs an API key and engine id)
2. DuckDuckGo instant answers (free, no key)
3. Wikipedia page summary (factual fallback)

A failing provider is logged and skipped. search() never raises.
"""

import re
from typing import Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel

from stephly.config import get_settings


logger = structlog.get_logger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
DUCKDUCKGO_URL = "https://api.duckduckgo.com/"
WIKIPEDIA_SUMMARY_URL = "https://en.wikipedia.org/api/rest_v1/page/summary/"

# Matched against the lower-cased query
SEARCH_PATTERNS = [
    re.compile(p)
    for p in (
        r"what (is|are|was|were)",
        r"who (is|are|was|were)",
        r"when (did|is|was)",
        r"where (is|are|was)",
        r"how (much|many|does)",
        r"latest",
        r"current",
        r"today",
        r"now",
        r"recent",
        r"price",
        r"cost",
        r"rate",
        r"weather",
        r"news",
        r"bitcoin",
        r"crypto",
        r"dollar",
        r"exchange",
        r"president",
        r"capital",
    )
]


class SearchError(Exception):
    """A search provider failed or returned something unusable."""
    pass


class SearchResult(BaseModel):
    title: str
    snippet: str
    link: str = ""


def needs_web_search(query: str) -> bool:
    """Whether a chat message looks like it needs fresh facts from the web."""
    lowered = query.lower()
    return any(pattern.search(lowered) for pattern in SEARCH_PATTERNS)


def format_search_results(results: list[SearchResult]) -> str:
    """Render results as a block of context for the LLM prompt."""
    if not results:
        return ""

    blocks = [
        f"{i}. {r.title}\n   {r.snippet}\n   Source: {r.link}"
        for i, r in enumerate(results, start=1)
    ]
    return "🔍 Web Search Results:\n" + "\n\n".join(blocks) + "\n"


class SearchService:
    """Search with a provider fallback chain."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        max_results: Optional[int] = None,
    ):
        settings = get_settings()
        search_settings = settings.search
        self._client = client
        self._api_key = api_key or search_settings.api_key
        self._engine_id = engine_id or search_settings.engine_id
        self._max_results = max_results or search_settings.max_results
        self._timeout = settings.app.http_timeout_seconds

    @property
    def google_configured(self) -> bool:
        return bool(self._api_key and self._engine_id)

    async def _get_json(self, url: str, params: Optional[dict] = None) -> dict:
        if self._client is not None:
            response = await self._client.get(url, params=params, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, params=params)

        if response.status_code >= 400:
            raise SearchError(f"HTTP {response.status_code} from {url}")
        try:
            data = response.json()
        except ValueError as e:
            raise SearchError(f"Invalid JSON from {url}: {e}")
        if not isinstance(data, dict):
            raise SearchError(f"Unexpected payload from {url}")
        return data

    async def search_google(self, query: str) -> list[SearchResult]:
        if not self.google_configured:
            return []

        data = await self._get_json(
            GOOGLE_SEARCH_URL,
            params={
                "key": self._api_key,
                "cx": self._engine_id,
                "q": query,
                "num": self._max_results,
            },
        )
        return [
            SearchResult(
                title=item.get("title") or "Result",
                snippet=item.get("snippet") or "",
                link=item.get("link") or "",
            )
            for item in (data.get("items") or [])[: self._max_results]
        ]

    async def search_duckduckgo(self, query: str) -> list[SearchResult]:
        data = await self._get_json(
            DUCKDUCKGO_URL,
            params={
                "q": query,
                "format": "json",
                "no_html": 1,
                "skip_disambig": 1,
            },
        )

        results = []
        if data.get("Abstract"):
            results.append(SearchResult(
                title=data.get("Heading") or "Web Result",
                snippet=data["Abstract"],
                link=data.get("AbstractURL") or "",
            ))

        for topic in (data.get("RelatedTopics") or [])[: self._max_results]:
            # Topic groups have no Text/FirstURL of their own
            if isinstance(topic, dict) and topic.get("Text") and topic.get("FirstURL"):
                results.append(SearchResult(
                    title=topic["Text"].split(" - ")[0] or "Result",
                    snippet=topic["Text"],
                    link=topic["FirstURL"],
                ))

        return results[: self._max_results]

    async def search_wikipedia(self, query: str) -> list[SearchResult]:
        data = await self._get_json(WIKIPEDIA_SUMMARY_URL + quote(query, safe=""))
        if not data.get("extract"):
            return []
        link = ((data.get("content_urls") or {}).get("desktop") or {}).get("page") or ""
        return [SearchResult(
            title=data.get("title") or query,
            snippet=data["extract"],
            link=link,
        )]

    async def search(self, query: str) -> list[SearchResult]:
        """Try each provider in turn; first non-empty answer wins."""
        providers = (
            ("google", self.search_google),
            ("duckduckgo", self.search_duckduckgo),
            ("wikipedia", self.search_wikipedia),
        )
        for name, provider in providers:
            try:
                results = await provider(query)
            except (SearchError, httpx.HTTPError) as e:
                logger.warning("search_provider_failed", provider=name, error=str(e))
                continue
            if results:
                logger.info("search_succeeded", provider=name, count=len(results))
                return results

        return []
