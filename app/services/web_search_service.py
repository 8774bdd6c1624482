"""Web search adapter backed by Tavily or SerpAPI.

Tavily provides AI-optimized search results, while SerpAPI gives
structured Google results. Tavily is preferred when both are configured.
With neither configured every search returns an empty list.
"""

import asyncio
import logging
import os
from collections.abc import Sequence
from typing import Any

import httpx

from app.services.errors import SourceUnavailable
from app.services.source_fetchers import SearchHit

logger = logging.getLogger(__name__)

# API Configuration
TAVILY_API_KEY = os.getenv("TAVILY_API_KEY", "")
SERP_API_KEY = os.getenv("SERP_API_KEY", "")

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
SERP_API_URL = "https://serpapi.com/search"

MAX_RESULTS = 10
REQUEST_TIMEOUT = 30.0
MAX_RETRIES = 2
RETRY_DELAY = 1.0  # seconds


class WebSearchService:
    """Implements the Searcher interface over a hosted search API."""

    def __init__(
        self,
        tavily_api_key: str | None = None,
        serp_api_key: str | None = None,
    ) -> None:
        self.tavily_api_key = tavily_api_key if tavily_api_key is not None else TAVILY_API_KEY
        self.serp_api_key = serp_api_key if serp_api_key is not None else SERP_API_KEY
        self._http_client: httpx.AsyncClient | None = None

        logger.info(
            f"WebSearchService initialized: "
            f"Tavily={bool(self.tavily_api_key)}, SerpAPI={bool(self.serp_api_key)}"
        )

    @property
    def is_configured(self) -> bool:
        """Check if at least one API is configured."""
        return bool(self.tavily_api_key or self.serp_api_key)

    @property
    def provider(self) -> str:
        if self.tavily_api_key:
            return "tavily"
        if self.serp_api_key:
            return "serpapi"
        return "none"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def search(self, query: str, allowed_sources: Sequence[str] | None = None) -> list[SearchHit]:
        """
        Run one search.

        Args:
            query: Search query
            allowed_sources: Optional domains to restrict results to

        Returns:
            Ranked results; empty when no provider is configured

        Raises:
            SourceUnavailable: On transport errors or non-2xx responses
        """
        if not self.is_configured:
            logger.warning("No search API configured (set TAVILY_API_KEY or SERP_API_KEY)")
            return []

        try:
            if self.tavily_api_key:
                return await self._search_tavily(query, allowed_sources)
            return await self._search_serp(query, allowed_sources)
        except httpx.HTTPStatusError as e:
            raise SourceUnavailable(self.provider, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(self.provider, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise SourceUnavailable(self.provider, "invalid JSON response") from e

    async def _request(self, method: str, url: str, retry_count: int = 0, **kwargs: Any) -> dict[str, Any]:
        client = await self._get_client()
        response = await client.request(method, url, **kwargs)

        # Handle rate limiting with retry
        if response.status_code == 429 and retry_count < MAX_RETRIES:
            logger.warning(f"Rate limited by {self.provider}, retrying in {RETRY_DELAY * (retry_count + 1)}s...")
            await asyncio.sleep(RETRY_DELAY * (retry_count + 1))
            return await self._request(method, url, retry_count + 1, **kwargs)

        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, dict) else {}

    async def _search_tavily(self, query: str, allowed_sources: Sequence[str] | None) -> list[SearchHit]:
        """Search using Tavily API."""
        payload: dict[str, Any] = {
            "api_key": self.tavily_api_key,
            "query": query,
            "search_depth": "advanced",
            "include_answer": False,
            "include_raw_content": False,
            "max_results": MAX_RESULTS,
        }
        if allowed_sources:
            payload["include_domains"] = list(allowed_sources)

        data = await self._request("POST", TAVILY_SEARCH_URL, json=payload)

        return [
            SearchHit(
                title=result.get("title", "") or "",
                snippet=result.get("content", "") or "",
                url=result.get("url", "") or "",
            )
            for result in data.get("results", [])
            if isinstance(result, dict)
        ]

    async def _search_serp(self, query: str, allowed_sources: Sequence[str] | None) -> list[SearchHit]:
        """Search using SerpAPI (Google engine)."""
        if allowed_sources and "site:" not in query:
            sites = " OR ".join(f"site:{domain}" for domain in allowed_sources)
            query = f"{query} ({sites})" if len(allowed_sources) > 1 else f"{query} {sites}"

        params = {
            "api_key": self.serp_api_key,
            "q": query,
            "engine": "google",
            "num": MAX_RESULTS,
        }

        data = await self._request("GET", SERP_API_URL, params=params)

        return [
            SearchHit(
                title=result.get("title", "") or "",
                snippet=result.get("snippet", "") or "",
                url=result.get("link", "") or "",
            )
            for result in data.get("organic_results", [])
            if isinstance(result, dict)
        ]


_web_search_service: WebSearchService | None = None


def get_web_search_service() -> WebSearchService:
    """Get the singleton WebSearchService instance."""
    global _web_search_service
    if _web_search_service is None:
        _web_search_service = WebSearchService()
    return _web_search_service
