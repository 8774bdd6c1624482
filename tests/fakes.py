"""In-memory search and fetch adapters for pipeline tests."""

from app.services.account_mapping_service import AccountMappingService
from app.services.request_throttle import RequestThrottle


class FakeSearcher:
    """In-memory Searcher.

    ``responses`` maps a query substring to the results returned for any
    query containing it. ``failures`` lists substrings that raise instead.
    """

    def __init__(self, responses=None, failures=None):
        self.responses = responses or {}
        self.failures = failures or []
        self.calls = []

    async def search(self, query, allowed_sources=None):
        self.calls.append((query, allowed_sources))
        for fragment in self.failures:
            if fragment in query:
                raise ConnectionError(f"search backend down for {fragment}")
        for fragment, results in self.responses.items():
            if fragment in query:
                return {"results": results}
        return {"results": []}


class FakeFetcher:
    """In-memory Fetcher keyed by exact URL."""

    def __init__(self, pages=None, failures=None):
        self.pages = pages or {}
        self.failures = failures or set()
        self.calls = []

    async def fetch(self, url, instruction):
        self.calls.append((url, instruction))
        if url in self.failures:
            raise ConnectionError(f"cannot reach {url}")
        return self.pages.get(url, "")


def make_service(searcher=None, fetcher=None, **kwargs):
    """Build an AccountMappingService with no throttling and short timeouts."""
    options = {
        "throttle": RequestThrottle(0),
        "call_timeout": 5,
        "phase_timeout": 10,
        "verify": False,
    }
    options.update(kwargs)
    return AccountMappingService(
        searcher=searcher or FakeSearcher(),
        fetcher=fetcher or FakeFetcher(),
        **options,
    )
