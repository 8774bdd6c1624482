"""
Query planner for account mapping.

Builds the fixed battery of searches and company-site fetches for one target
organization. Output is a pure function of the inputs.
"""

import re
from dataclasses import dataclass

from app.models import SourceKind

MAX_PLANNED_QUERIES = 25

# How a planned query is executed by the orchestrator
CHANNEL_SEARCH = "search"
CHANNEL_ORG_CHART = "org_chart"
CHANNEL_COMPANY_FACTS = "company_facts"
CHANNEL_SITE_FETCH = "site_fetch"

# Number of top org-chart search results that get fetched
ORG_CHART_FETCH_LIMIT = 3

LEGAL_SUFFIXES = {"inc", "llc", "corp", "ltd", "co", "company"}

COMPANY_SITE_PATHS = [
    "/about",
    "/leadership",
    "/team",
    "/about-us",
    "/executives",
    "/management",
    "/our-team",
    "/company/leadership",
    "/company/team",
]

SITE_FETCH_INSTRUCTION = (
    "Extract executive leadership information from this page. Find all C-level "
    "executives (CEO, CTO, CISO, CFO, COO), VPs, and Directors. Focus only on "
    "current employees of {company}. Output one person per line formatted as: "
    "Name: [Full Name], Title: [Exact Title], Department: [Department], "
    "Reports To: [Manager if stated]. Only include verified current executives."
)

ORG_CHART_FETCH_INSTRUCTION = (
    "Extract all executive and leadership information from this organizational "
    "chart. Find every C-level executive, VP, Director, and senior leader of "
    "{company}, current employees only. Output one person per line formatted as: "
    "Name: [Name], Title: [Title], Department: [Dept], Reports To: [Manager]."
)


@dataclass(frozen=True)
class PlannedQuery:
    """One planned search or fetch.

    For site fetches ``query`` is the URL to fetch.
    """

    query: str
    target_sources: tuple[str, ...]
    kind: SourceKind
    channel: str

    @property
    def is_fetch(self) -> bool:
        return self.channel == CHANNEL_SITE_FETCH


def derive_company_domain(company_name: str) -> str | None:
    """
    Derive a likely web domain from a company name.

    Lower-cases, drops non-alphanumerics, removes trailing legal-suffix
    tokens and appends ".com". Suffixes are only removed as whole words,
    so "Cisco" stays "cisco.com".

    Returns:
        The domain, or None when nothing usable is left
    """
    cleaned = re.sub(r"[^a-z0-9\s]", "", (company_name or "").lower())
    tokens = cleaned.split()
    while len(tokens) > 1 and tokens[-1] in LEGAL_SUFFIXES:
        tokens.pop()
    if not tokens:
        return None
    return "".join(tokens) + ".com"


def normalize_domain(domain: str | None) -> str | None:
    """Strip scheme, path and "www." from a user-supplied domain."""
    if not domain:
        return None
    value = domain.strip().lower()
    value = re.sub(r"^[a-z]+://", "", value)
    value = value.split("/")[0]
    if value.startswith("www."):
        value = value[4:]
    return value or None


def company_slug(company_name: str) -> str:
    return re.sub(r"\s+", "-", company_name.strip().lower())


class QueryPlanner:
    """Generates the deterministic query battery for a company."""

    def __init__(self, max_queries: int = MAX_PLANNED_QUERIES):
        self.max_queries = max_queries

    def plan(self, company_name: str, company_domain: str | None = None) -> list[PlannedQuery]:
        """
        Plan searches and fetches for a company.

        Args:
            company_name: Target organization name
            company_domain: Optional domain; derived from the name when omitted

        Returns:
            Ordered list of planned queries, capped at ``max_queries``
        """
        company = company_name.replace('"', "").strip()
        domain = normalize_domain(company_domain) or derive_company_domain(company)

        queries = self._people_queries(company)
        queries += self._registry_queries(company)
        queries.append(
            PlannedQuery(
                query=f'"{company}" headquarters industry "about us"',
                target_sources=(),
                kind=SourceKind.SEARCH_RESULT,
                channel=CHANNEL_COMPANY_FACTS,
            )
        )
        if domain:
            queries += [
                PlannedQuery(
                    query=f"https://{domain}{path}",
                    target_sources=(domain,),
                    kind=SourceKind.PAGE_FETCH,
                    channel=CHANNEL_SITE_FETCH,
                )
                for path in COMPANY_SITE_PATHS
            ]

        return queries[: self.max_queries]

    def _people_queries(self, company: str) -> list[PlannedQuery]:
        linkedin = ("linkedin.com",)
        people = [
            f'site:linkedin.com "{company}" CEO "Chief Executive Officer"',
            f'site:linkedin.com "{company}" CTO "Chief Technology Officer"',
            f'site:linkedin.com "{company}" CISO "Chief Information Security Officer"',
            f'site:linkedin.com "{company}" CFO "Chief Financial Officer"',
            f'site:linkedin.com "{company}" COO "Chief Operating Officer"',
            f'site:linkedin.com "{company}" "VP Engineering" OR "VP Security" OR "VP Product"',
            f'site:linkedin.com "{company}" "VP Sales" OR "VP Marketing" "Vice President"',
            f'site:linkedin.com "{company}" "Director Security" "Director Engineering"',
            f'site:linkedin.com "{company}" "Head of Security" "Head of Engineering"',
            f'site:linkedin.com "{company}" "Principal Engineer" OR "Staff Engineer" OR "Principal Architect"',
            f"site:linkedin.com/company/{company_slug(company)}/people/",
        ]
        planned = [
            PlannedQuery(q, linkedin, SourceKind.SEARCH_RESULT, CHANNEL_SEARCH) for q in people
        ]
        planned += [
            PlannedQuery(
                query=f'site:theorg.com "{company}" organizational chart leadership',
                target_sources=("theorg.com",),
                kind=SourceKind.PAGE_FETCH,
                channel=CHANNEL_ORG_CHART,
            ),
            PlannedQuery(
                query=f'site:crunchbase.com "{company}" CEO CTO CFO executives leadership team',
                target_sources=("crunchbase.com",),
                kind=SourceKind.PAGE_FETCH,
                channel=CHANNEL_ORG_CHART,
            ),
        ]
        return planned

    def _registry_queries(self, company: str) -> list[PlannedQuery]:
        return [
            PlannedQuery(
                query=f'site:sec.gov "{company}" "executive officer" 10-K DEF 14A',
                target_sources=("sec.gov",),
                kind=SourceKind.FILING,
                channel=CHANNEL_SEARCH,
            ),
            PlannedQuery(
                query=(
                    f'"{company}" "executive team" leadership '
                    "site:prnewswire.com OR site:businesswire.com"
                ),
                target_sources=("prnewswire.com", "businesswire.com"),
                kind=SourceKind.PRESS,
                channel=CHANNEL_SEARCH,
            ),
        ]


def site_fetch_instruction(company_name: str) -> str:
    return SITE_FETCH_INSTRUCTION.format(company=company_name)


def org_chart_fetch_instruction(company_name: str) -> str:
    return ORG_CHART_FETCH_INSTRUCTION.format(company=company_name)
