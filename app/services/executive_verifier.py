"""
Best-effort verification of canonical executives.

One targeted search per person. A non-empty result raises confidence to
High; anything else leaves the record as it was. Verification never
lowers confidence.
"""

import logging
from dataclasses import replace

from app.models import ConfidenceTier, SourceKind
from app.services.executive_merger import CanonicalExecutive
from app.services.record_extractors import Source
from app.services.source_fetchers import Searcher, coerce_search_hits

logger = logging.getLogger(__name__)

MAX_VERIFICATION_SOURCES = 2


def verification_query(executive: CanonicalExecutive, company_name: str) -> str:
    """Targeted query that excludes former-employee mentions."""
    name = executive.name.replace('"', "")
    company = company_name.replace('"', "")
    title = executive.title.replace('"', "")
    return f'"{name}" "{company}" "{title}" -former -ex-'


class ExecutiveVerifier:
    def __init__(self, searcher: Searcher, max_sources: int = MAX_VERIFICATION_SOURCES):
        self.searcher = searcher
        self.max_sources = max_sources

    async def verify(self, executive: CanonicalExecutive, company_name: str) -> CanonicalExecutive:
        """
        Re-query one executive.

        Args:
            executive: Canonical executive to corroborate
            company_name: Target organization name

        Returns:
            A new record with High confidence and extra sources when the
            search returned anything, otherwise the input unchanged
        """
        query = verification_query(executive, company_name)
        try:
            raw = await self.searcher.search(query)
        except Exception as e:
            logger.warning(f"Verification search failed for {executive.name}: {e}")
            return executive

        hits = coerce_search_hits(raw)
        if not hits:
            logger.debug(f"No verification results for {executive.name}")
            return executive

        sources = list(executive.sources)
        for hit in hits:
            if not hit.url:
                continue
            source = Source(hit.url, SourceKind.SEARCH_RESULT)
            if source not in sources:
                sources.append(source)
            if len(sources) - len(executive.sources) >= self.max_sources:
                break

        logger.info(f"Verified {executive.name} with {len(hits)} results")
        return replace(
            executive,
            sources=tuple(sources),
            confidence=ConfidenceTier.HIGH,
            verified=True,
        )
