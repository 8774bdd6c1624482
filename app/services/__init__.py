"""Services package for the Account Mapping service."""

from app.services.account_mapping_service import (
    AccountMappingService,
    get_account_mapping_service,
)
from app.services.openrouter_service import OpenRouterService, get_openrouter_service
from app.services.page_fetch_service import WebPageFetcher, get_web_page_fetcher
from app.services.source_fetchers import Fetcher, Searcher, SearchHit
from app.services.web_search_service import WebSearchService, get_web_search_service

__all__ = [
    "AccountMappingService",
    "get_account_mapping_service",
    "OpenRouterService",
    "get_openrouter_service",
    "WebPageFetcher",
    "get_web_page_fetcher",
    "WebSearchService",
    "get_web_search_service",
    "Searcher",
    "Fetcher",
    "SearchHit",
]
