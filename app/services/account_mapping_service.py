"""
Account mapping orchestrator.

Runs the discovery pipeline for one company:

    search -> org_chart_fetch -> site_crawl -> merge -> verify
           -> hierarchy -> roles -> assemble

Calls within a phase run concurrently under a semaphore and a per-target
request throttle. Every call returns its own result; only this module
combines them. A failed call contributes nothing, a phase that runs out of
time contributes nothing, and both are reported as gaps. map_account always
returns an AccountMap.
"""

import asyncio
import logging
import os
from collections.abc import Coroutine, Sequence
from dataclasses import dataclass, field
from typing import Any

from app.models import AccountMap, SourceKind
from app.services.account_assembler import AccountAssembler, get_account_assembler
from app.services.errors import SourceUnavailable
from app.services.executive_merger import CanonicalExecutive, ExecutiveMerger, get_executive_merger
from app.services.executive_verifier import ExecutiveVerifier
from app.services.hierarchy_builder import HierarchyBuilder, get_hierarchy_builder
from app.services.page_fetch_service import get_web_page_fetcher
from app.services.query_planner import (
    CHANNEL_COMPANY_FACTS,
    CHANNEL_ORG_CHART,
    ORG_CHART_FETCH_LIMIT,
    PlannedQuery,
    QueryPlanner,
    org_chart_fetch_instruction,
    site_fetch_instruction,
)
from app.services.record_extractors import (
    CandidateRecord,
    CompanyFactsExtractor,
    PageTextExtractor,
    SearchSnippetExtractor,
    Source,
    StructuredRecordExtractor,
)
from app.services.request_throttle import RequestThrottle
from app.services.role_classifier import RoleClassifier, get_role_classifier
from app.services.source_fetchers import Fetcher, Searcher, SearchHit, coerce_search_hits
from app.services.web_search_service import get_web_search_service

logger = logging.getLogger(__name__)

# Configuration
REQUEST_SPACING = float(os.getenv("ACCOUNT_MAP_REQUEST_SPACING", "2.0"))
MAX_CONCURRENCY = int(os.getenv("ACCOUNT_MAP_MAX_CONCURRENCY", "4"))
CALL_TIMEOUT = float(os.getenv("ACCOUNT_MAP_CALL_TIMEOUT", "30"))
PHASE_TIMEOUT = float(os.getenv("ACCOUNT_MAP_PHASE_TIMEOUT", "180"))
VERIFY_ENABLED = os.getenv("ACCOUNT_MAP_VERIFY", "true").strip().lower() in ("1", "true", "yes", "on")

# Throttle key shared by every search call
SEARCH_TARGET = "search"


@dataclass(frozen=True)
class CallResult:
    """What one search or fetch call produced."""

    records: tuple[CandidateRecord, ...] = ()
    query: PlannedQuery | None = None
    hits: tuple[SearchHit, ...] = ()
    failed: bool = False


@dataclass(frozen=True)
class PhaseOutcome:
    name: str
    results: tuple[Any, ...] = ()
    calls: int = 0
    timed_out: bool = False

    @property
    def records(self) -> list[CandidateRecord]:
        return [
            record
            for result in self.results
            if isinstance(result, CallResult)
            for record in result.records
        ]

    @property
    def failed_calls(self) -> int:
        return sum(
            1 for result in self.results
            if isinstance(result, BaseException) or (isinstance(result, CallResult) and result.failed)
        )


@dataclass
class _Run:
    """Per-run state; never shared between runs."""

    company_name: str
    semaphore: asyncio.Semaphore
    failures: list[str] = field(default_factory=list)


class _GuardedSearcher:
    """Searcher view of the orchestrator's throttled, timed search."""

    def __init__(self, service: "AccountMappingService", run: _Run):
        self._service = service
        self._run = run

    async def search(self, query: str, allowed_sources: Sequence[str] | None = None) -> list[SearchHit]:
        return await self._service._guarded_search(self._run, query, allowed_sources)


class AccountMappingService:
    """Discovers and maps the executives of a target company."""

    def __init__(
        self,
        searcher: Searcher,
        fetcher: Fetcher,
        planner: QueryPlanner | None = None,
        merger: ExecutiveMerger | None = None,
        hierarchy_builder: HierarchyBuilder | None = None,
        role_classifier: RoleClassifier | None = None,
        assembler: AccountAssembler | None = None,
        throttle: RequestThrottle | None = None,
        max_concurrency: int = MAX_CONCURRENCY,
        call_timeout: float = CALL_TIMEOUT,
        phase_timeout: float = PHASE_TIMEOUT,
        verify: bool = VERIFY_ENABLED,
    ) -> None:
        self.searcher = searcher
        self.fetcher = fetcher
        self.planner = planner or QueryPlanner()
        self.merger = merger or get_executive_merger()
        self.hierarchy_builder = hierarchy_builder or get_hierarchy_builder()
        self.role_classifier = role_classifier or get_role_classifier()
        self.assembler = assembler or get_account_assembler()
        self.throttle = throttle or RequestThrottle(REQUEST_SPACING)
        self.max_concurrency = max(1, max_concurrency)
        self.call_timeout = call_timeout
        self.phase_timeout = phase_timeout
        self.verify_enabled = verify

        self.snippet_extractor = SearchSnippetExtractor()
        self.page_extractor = PageTextExtractor()
        self.structured_extractor = StructuredRecordExtractor()
        self.facts_extractor = CompanyFactsExtractor()

    def plan(self, company_name: str, company_domain: str | None = None) -> list[PlannedQuery]:
        return self.planner.plan(company_name, company_domain)

    async def close(self) -> None:
        """Close adapters that hold network clients."""
        for adapter in (self.searcher, self.fetcher):
            close = getattr(adapter, "close", None)
            if close is not None:
                await close()

    async def map_account(
        self,
        company_name: str,
        company_domain: str | None = None,
        verify: bool | None = None,
    ) -> AccountMap:
        """
        Run the full discovery pipeline for a company.

        Args:
            company_name: Target organization name
            company_domain: Optional web domain; derived from the name when omitted
            verify: Override the configured verification setting

        Returns:
            The assembled AccountMap. Discovery failures show up as gaps.

        Raises:
            ValueError: If company_name is blank
        """
        company = (company_name or "").strip()
        if not company:
            raise ValueError("company_name is required")

        run = _Run(company_name=company, semaphore=asyncio.Semaphore(self.max_concurrency))
        do_verify = self.verify_enabled if verify is None else verify
        logger.info(f"Mapping account for {company} (domain={company_domain or 'derived'}, verify={do_verify})")

        plan = self.plan(company, company_domain)
        search_queries = [query for query in plan if not query.is_fetch]
        site_queries = [query for query in plan if query.is_fetch]

        searched = await self._run_phase(
            run, "search", [self._search_call(run, query) for query in search_queries]
        )

        org_chart_urls = self._org_chart_urls(searched)
        instruction = org_chart_fetch_instruction(company)
        org_charts = await self._run_phase(
            run,
            "org_chart_fetch",
            [self._fetch_call(run, url, instruction) for url in org_chart_urls],
        )

        instruction = site_fetch_instruction(company)
        crawled = await self._run_phase(
            run,
            "site_crawl",
            [self._fetch_call(run, query.query, instruction) for query in site_queries],
        )

        candidates = searched.records + org_charts.records + crawled.records
        executives = self.merger.merge(candidates)

        if do_verify and executives:
            executives = await self._verify(run, executives)

        executives = self.hierarchy_builder.build(executives)
        roles = self.role_classifier.classify_all(executives, company)
        facts = self.facts_extractor.extract(self._facts_hits(searched))

        return self.assembler.assemble(
            company,
            executives,
            roles,
            facts=facts,
            failures=run.failures,
        )

    async def _run_phase(
        self, run: _Run, name: str, calls: list[Coroutine[Any, Any, Any]]
    ) -> PhaseOutcome:
        if not calls:
            return PhaseOutcome(name)

        logger.info(f"Phase {name}: {len(calls)} calls")
        try:
            results = await asyncio.wait_for(
                asyncio.gather(*calls, return_exceptions=True),
                timeout=self.phase_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Phase {name} exceeded {self.phase_timeout}s; treating as zero results")
            run.failures.append(
                f"Phase '{name}' exceeded its {self.phase_timeout:g}s budget; treated as zero results"
            )
            return PhaseOutcome(name, calls=len(calls), timed_out=True)

        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error in phase {name}: {result}")

        outcome = PhaseOutcome(name, tuple(results), calls=len(calls))
        if outcome.failed_calls:
            run.failures.append(
                f"{outcome.failed_calls} of {outcome.calls} {name} calls failed or timed out; "
                "treated as zero results"
            )
        logger.info(
            f"Phase {name} done: {len(outcome.records)} candidates, "
            f"{outcome.failed_calls}/{outcome.calls} failed"
        )
        return outcome

    async def _search_call(self, run: _Run, query: PlannedQuery) -> CallResult:
        try:
            hits = await self._guarded_search(run, query.query, query.target_sources)
        except SourceUnavailable as e:
            logger.warning(str(e))
            return CallResult(query=query, failed=True)

        if query.channel == CHANNEL_COMPANY_FACTS:
            return CallResult(query=query, hits=tuple(hits))

        # Snippets are search results even when the query targets org-chart pages
        kind = query.kind if query.kind in (SourceKind.FILING, SourceKind.PRESS) else SourceKind.SEARCH_RESULT
        records = [
            record
            for hit in hits
            for record in self.snippet_extractor.extract_hit(hit, run.company_name, kind)
        ]
        return CallResult(records=tuple(records), query=query, hits=tuple(hits))

    async def _fetch_call(self, run: _Run, url: str, instruction: str) -> CallResult:
        try:
            text = await self._guarded_fetch(run, url, instruction)
        except SourceUnavailable as e:
            logger.warning(str(e))
            return CallResult(failed=True)

        source = Source(url, SourceKind.PAGE_FETCH)
        # Instruction-following output is structured; otherwise parse as plain page text
        records = self.structured_extractor.extract(text, run.company_name, source)
        if not records:
            records = self.page_extractor.extract(text, run.company_name, source)
        return CallResult(records=tuple(records))

    async def _guarded_search(
        self, run: _Run, query: str, allowed_sources: Sequence[str] | None = None
    ) -> list[SearchHit]:
        """Throttled, time-bounded search. Any failure becomes SourceUnavailable."""
        async with run.semaphore:
            await self.throttle.wait_for_turn(SEARCH_TARGET)
            try:
                raw = await asyncio.wait_for(
                    self.searcher.search(query, list(allowed_sources) if allowed_sources else None),
                    timeout=self.call_timeout,
                )
            except SourceUnavailable:
                raise
            except asyncio.TimeoutError as e:
                raise SourceUnavailable(query, "timed out") from e
            except Exception as e:
                raise SourceUnavailable(query, str(e) or type(e).__name__) from e
        return coerce_search_hits(raw)

    async def _guarded_fetch(self, run: _Run, url: str, instruction: str) -> str:
        """Throttled, time-bounded fetch. Any failure becomes SourceUnavailable."""
        async with run.semaphore:
            await self.throttle.wait_for_turn(url)
            try:
                text = await asyncio.wait_for(
                    self.fetcher.fetch(url, instruction),
                    timeout=self.call_timeout,
                )
            except SourceUnavailable:
                raise
            except asyncio.TimeoutError as e:
                raise SourceUnavailable(url, "timed out") from e
            except Exception as e:
                raise SourceUnavailable(url, str(e) or type(e).__name__) from e
        return text if isinstance(text, str) else ""

    async def _verify(self, run: _Run, executives: list[CanonicalExecutive]) -> list[CanonicalExecutive]:
        verifier = ExecutiveVerifier(_GuardedSearcher(self, run))
        outcome = await self._run_phase(
            run,
            "verify",
            [verifier.verify(executive, run.company_name) for executive in executives],
        )
        if outcome.timed_out:
            return executives
        # Positional: a failed verification keeps the original record
        return [
            result if isinstance(result, CanonicalExecutive) else executive
            for executive, result in zip(executives, outcome.results)
        ]

    def _org_chart_urls(self, searched: PhaseOutcome) -> list[str]:
        urls: list[str] = []
        for result in searched.results:
            if not isinstance(result, CallResult) or not result.query:
                continue
            if result.query.channel != CHANNEL_ORG_CHART:
                continue
            for hit in [hit for hit in result.hits if hit.url][:ORG_CHART_FETCH_LIMIT]:
                if hit.url not in urls:
                    urls.append(hit.url)
        return urls

    def _facts_hits(self, searched: PhaseOutcome) -> list[SearchHit]:
        return [
            hit
            for result in searched.results
            if isinstance(result, CallResult) and result.query
            and result.query.channel == CHANNEL_COMPANY_FACTS
            for hit in result.hits
        ]


_account_mapping_service: AccountMappingService | None = None


def get_account_mapping_service() -> AccountMappingService:
    """Get the singleton AccountMappingService wired to the web adapters."""
    global _account_mapping_service
    if _account_mapping_service is None:
        _account_mapping_service = AccountMappingService(
            searcher=get_web_search_service(),
            fetcher=get_web_page_fetcher(),
        )
    return _account_mapping_service
