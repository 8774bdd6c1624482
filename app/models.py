"""Pydantic models and closed enumerations for the Account Mapping service.

The wire models mirror the structure consumed by the presentation layer,
so field names are snake_case and must not be renamed.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ExecutiveLevel(str, Enum):
    """Seniority tier inferred from a title, most senior first."""

    C_SUITE = "C-Suite"
    VP = "VP"
    DIRECTOR = "Director"
    SENIOR = "Senior"
    MANAGER = "Manager"
    INDIVIDUAL_CONTRIBUTOR = "Individual Contributor"

    @property
    def rank(self) -> int:
        """Position in the hierarchy; 0 is the top."""
        return list(ExecutiveLevel).index(self)

    def is_above(self, other: "ExecutiveLevel") -> bool:
        return self.rank < other.rank


class StakeholderRole(str, Enum):
    """Sales-stakeholder taxonomy."""

    ECONOMIC_BUYER = "economic_buyer"
    CHAMPION = "champion"
    EVALUATOR = "evaluator"
    INFLUENCER = "influencer"
    BLOCKER = "blocker"
    USER = "user"
    UNCLASSIFIED = "unclassified"


class ConfidenceTier(str, Enum):
    """Coarse confidence derived from corroborating source count."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return list(ConfidenceTier).index(self)

    @classmethod
    def from_source_count(cls, count: int) -> "ConfidenceTier":
        if count >= 3:
            return cls.HIGH
        if count == 2:
            return cls.MEDIUM
        return cls.LOW


class SourceKind(str, Enum):
    """Where an observation came from."""

    SEARCH_RESULT = "search_result"
    PAGE_FETCH = "page_fetch"
    FILING = "filing"
    PRESS = "press"


class CompanySnapshot(BaseModel):
    """Company-level facts, either discovered or labeled as unverified."""

    industry: str
    hq: str
    size: str
    revenue: str
    structure_summary: str
    last_updated: str | None = None
    total_sources: int | None = None


class OrgMember(BaseModel):
    """One node of the inferred organization tree."""

    name: str
    title: str
    reports_to: str
    level: ExecutiveLevel
    region_function: str
    sources: list[str] = Field(default_factory=list)


class RoleAnalysis(BaseModel):
    """Stakeholder classification for one person."""

    name: str
    title: str
    role: StakeholderRole
    notes: str
    sources: list[str] = Field(default_factory=list)


class AccountMap(BaseModel):
    """The account-mapping pipeline's only output.

    Immutable once returned; serialize with ``model_dump(mode="json")``.
    """

    model_config = ConfigDict(frozen=True)

    company_snapshot: CompanySnapshot
    org_tree: list[OrgMember] = Field(default_factory=list)
    role_analysis: list[RoleAnalysis] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    citations: list[str] = Field(default_factory=list)


class AccountMapRequest(BaseModel):
    """Request body for an account-mapping run."""

    company_name: str = Field(
        ..., min_length=1, max_length=200, description="Target organization name"
    )
    company_domain: str | None = Field(
        default=None,
        max_length=253,
        description="Company web domain; derived from the name when omitted",
    )
    verify: bool = Field(
        default=True,
        description="Run the per-person verification queries",
    )


class PlannedQueryResponse(BaseModel):
    """One entry of the planned query battery."""

    query: str
    target_sources: list[str]
    kind: SourceKind
    channel: str
