"""
Search and fetch capabilities consumed by the account-mapping pipeline.

The pipeline never talks to the network itself. Callers pass in objects that
satisfy ``Searcher`` and ``Fetcher``; the concrete adapters live in
web_search_service.py and page_fetch_service.py.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    """One ranked search result."""

    title: str
    snippet: str
    url: str

    @property
    def text(self) -> str:
        return f"{self.title}\n{self.snippet}".strip()


@runtime_checkable
class Searcher(Protocol):
    async def search(self, query: str, allowed_sources: Sequence[str] | None = None) -> Any:
        """Return ranked results for a query.

        May return ``{"results": [...]}``, a list of result dicts or
        ``SearchHit`` objects, or raise on a transient failure.
        """
        ...


@runtime_checkable
class Fetcher(Protocol):
    async def fetch(self, url: str, instruction: str) -> str:
        """Return free text for a URL, honoring the extraction instruction."""
        ...


def _field(item: Any, *names: str) -> str:
    for name in names:
        value = item.get(name) if isinstance(item, dict) else getattr(item, name, None)
        if value:
            return str(value).strip()
    return ""


def coerce_search_hits(raw: Any) -> list[SearchHit]:
    """
    Turn whatever a searcher returned into a list of SearchHit.

    Accepts ``{"results": [...]}``, plain lists, SearchHit instances and
    objects with title/snippet/url attributes. Unusable entries are dropped.
    """
    if raw is None:
        return []

    if isinstance(raw, dict):
        raw = raw.get("results") or raw.get("organic_results") or []

    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        logger.debug(f"Ignoring unexpected search payload of type {type(raw).__name__}")
        return []

    hits: list[SearchHit] = []
    for item in raw:
        if isinstance(item, SearchHit):
            hits.append(item)
            continue
        if item is None or isinstance(item, (str, bytes, int, float)):
            continue
        title = _field(item, "title")
        snippet = _field(item, "snippet", "content", "description")
        url = _field(item, "url", "link")
        if not (title or snippet):
            continue
        hits.append(SearchHit(title=title, snippet=snippet, url=url))
    return hits
