"""
Account map assembly.

Builds the final AccountMap from the pipeline's outputs. Always returns a
structurally valid map: missing data becomes labeled placeholders and gaps,
never an error.
"""

import logging
from collections import Counter
from datetime import datetime, timezone

from app.models import (
    AccountMap,
    CompanySnapshot,
    ExecutiveLevel,
    OrgMember,
    RoleAnalysis,
    StakeholderRole,
)
from app.services.executive_merger import CanonicalExecutive
from app.services.record_extractors import CompanyFacts
from app.services.role_classifier import RoleAssignment
from app.services.title_norm import has_keyword, normalize_title

logger = logging.getLogger(__name__)

UNVERIFIED_INDUSTRY = "Unverified: industry not found in searched sources"
UNVERIFIED_HQ = "Unverified: headquarters not found in searched sources"
UNVERIFIED_SIZE = "Unverified: headcount not found in searched sources"
UNVERIFIED_REVENUE = "Unverified: revenue not disclosed in searched sources"
UNVERIFIED_STRUCTURE = "Unverified: no organizational structure could be discovered"

# Areas that need a director-level (or more senior) contact
COVERAGE_AREAS = ("Security", "Engineering", "Compliance")


def _covers(executive: CanonicalExecutive, area: str) -> bool:
    if executive.department == area:
        return True
    return has_keyword(normalize_title(executive.title), area.lower())


class AccountAssembler:
    """Assembles company snapshot, org tree, role analysis, gaps and citations."""

    def assemble(
        self,
        company_name: str,
        executives: list[CanonicalExecutive],
        roles: list[RoleAssignment],
        facts: CompanyFacts | None = None,
        failures: list[str] | None = None,
        now: datetime | None = None,
    ) -> AccountMap:
        """
        Build the AccountMap.

        Args:
            company_name: Target organization name
            executives: Executives with reporting lines set
            roles: One role assignment per executive
            facts: Company-level facts, if any were discovered
            failures: Human-readable descriptions of failed searches or phases
            now: Timestamp for the snapshot; defaults to the current UTC time

        Returns:
            The assembled AccountMap
        """
        citations = self._citations(executives)
        account_map = AccountMap(
            company_snapshot=self._snapshot(executives, facts, len(citations), now),
            org_tree=[
                OrgMember(
                    name=executive.name,
                    title=executive.title,
                    reports_to=executive.reports_to,
                    level=executive.level,
                    region_function=executive.department,
                    sources=executive.source_urls,
                )
                for executive in executives
            ],
            role_analysis=[
                RoleAnalysis(
                    name=assignment.name,
                    title=assignment.title,
                    role=assignment.role,
                    notes=assignment.rationale,
                    sources=[source.url_or_label for source in assignment.sources],
                )
                for assignment in roles
            ],
            gaps=self._gaps(company_name, executives, roles, facts, failures or []),
            citations=citations,
        )
        logger.info(
            f"Assembled account map for {company_name}: {len(executives)} people, "
            f"{len(account_map.gaps)} gaps, {len(citations)} citations"
        )
        return account_map

    def _snapshot(
        self,
        executives: list[CanonicalExecutive],
        facts: CompanyFacts | None,
        total_sources: int,
        now: datetime | None,
    ) -> CompanySnapshot:
        facts = facts or CompanyFacts()
        timestamp = (now or datetime.now(timezone.utc)).isoformat()
        return CompanySnapshot(
            industry=facts.industry or UNVERIFIED_INDUSTRY,
            hq=facts.headquarters or UNVERIFIED_HQ,
            size=facts.size or UNVERIFIED_SIZE,
            revenue=facts.revenue or UNVERIFIED_REVENUE,
            structure_summary=self._structure_summary(executives),
            last_updated=timestamp,
            total_sources=total_sources,
        )

    def _structure_summary(self, executives: list[CanonicalExecutive]) -> str:
        if not executives:
            return UNVERIFIED_STRUCTURE

        departments = {executive.department for executive in executives}
        levels = Counter(executive.level for executive in executives)
        breakdown = ", ".join(
            f"{levels[level]} {level.value}" for level in ExecutiveLevel if levels[level]
        )
        confirmed = sum(1 for executive in executives if executive.reports_to_confirmed)
        return (
            f"{len(executives)} people identified across {len(departments)} departments "
            f"({breakdown}). Reporting lines are inferred from titles unless a source "
            f"stated them ({confirmed} confirmed)."
        )

    def _gaps(
        self,
        company_name: str,
        executives: list[CanonicalExecutive],
        roles: list[RoleAssignment],
        facts: CompanyFacts | None,
        failures: list[str],
    ) -> list[str]:
        gaps: list[str] = []

        if not executives:
            gaps.append(f"No verified people found for {company_name}")

        gaps.extend(failures)

        if facts is None or facts.is_empty:
            gaps.append("No company-level facts (industry, headquarters, size, revenue) found")

        if executives:
            gaps.extend(self._coverage_gaps(executives, roles))

        # Keep first occurrence order
        return list(dict.fromkeys(gaps))

    def _coverage_gaps(
        self, executives: list[CanonicalExecutive], roles: list[RoleAssignment]
    ) -> list[str]:
        gaps = []
        found_roles = {assignment.role for assignment in roles}

        if not any(has_keyword(normalize_title(executive.title), "ceo") for executive in executives):
            gaps.append("No CEO identified")
        if StakeholderRole.ECONOMIC_BUYER not in found_roles:
            gaps.append("No economic buyer (CEO/CFO) identified")
        if StakeholderRole.CHAMPION not in found_roles:
            gaps.append("No champion (CTO/CISO/VP Security/VP Engineering) identified")

        for area in COVERAGE_AREAS:
            senior = [
                executive
                for executive in executives
                if _covers(executive, area) and not ExecutiveLevel.DIRECTOR.is_above(executive.level)
            ]
            if not senior:
                gaps.append(f"No director-level {area} contact found")

        unclassified = [assignment.name for assignment in roles if assignment.needs_validation]
        if unclassified:
            gaps.append(f"Stakeholder role needs validation for: {', '.join(unclassified)}")

        for executive in executives:
            if executive.ambiguous:
                gaps.append(f"Conflicting titles for {executive.name}: {executive.title}")

        single_source = [
            executive for executive in executives
            if len(executive.sources) < 2 and not executive.verified
        ]
        if single_source:
            gaps.append(
                f"{len(single_source)} of {len(executives)} people are supported by a single source"
            )

        inferred = sum(1 for executive in executives if not executive.reports_to_confirmed)
        if inferred:
            gaps.append(
                f"{inferred} reporting lines are inferred from title heuristics, not confirmed by a source"
            )
        return gaps

    def _citations(self, executives: list[CanonicalExecutive]) -> list[str]:
        citations: dict[str, None] = {}
        for executive in executives:
            for url in executive.source_urls:
                citations.setdefault(url, None)
        return list(citations)


_account_assembler: AccountAssembler | None = None


def get_account_assembler() -> AccountAssembler:
    """Get the singleton AccountAssembler instance."""
    global _account_assembler
    if _account_assembler is None:
        _account_assembler = AccountAssembler()
    return _account_assembler
