"""Tests for account map assembly.

Tests cover:
- A well-formed map when nothing was found
- Snapshot placeholders and discovered facts
- Org tree, role analysis and citations from executives
- Gap reporting
"""

from datetime import datetime, timezone

from app.models import ConfidenceTier, StakeholderRole
from app.services.account_assembler import (
    UNVERIFIED_HQ,
    UNVERIFIED_INDUSTRY,
    UNVERIFIED_STRUCTURE,
    AccountAssembler,
    get_account_assembler,
)
from app.services.executive_merger import CanonicalExecutive
from app.services.hierarchy_builder import BOARD_OF_DIRECTORS
from app.services.record_extractors import CompanyFacts, Source
from app.services.role_classifier import RoleClassifier
from app.services.title_norm import infer_department, infer_level

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def _exec(name, title, urls, reports_to=BOARD_OF_DIRECTORS, **kwargs):
    return CanonicalExecutive(
        name=name,
        title=title,
        level=infer_level(title),
        department=infer_department(title),
        sources=tuple(Source(url) for url in urls),
        confidence=ConfidenceTier.from_source_count(len(urls)),
        reports_to=reports_to,
        **kwargs,
    )


class TestEmptyAccountMap:
    """Test assembly when discovery found nothing."""

    def setup_method(self):
        """Set up assembler for each test."""
        self.assembler = AccountAssembler()

    def test_well_formed_empty_map(self):
        """Test an empty run still returns a complete map with gaps."""
        account_map = self.assembler.assemble("Acme", [], [], now=NOW)

        assert account_map.org_tree == []
        assert account_map.role_analysis == []
        assert account_map.citations == []
        assert account_map.gaps[0] == "No verified people found for Acme"
        assert "No company-level facts (industry, headquarters, size, revenue) found" in account_map.gaps

    def test_placeholders(self):
        """Test missing facts are labeled as unverified."""
        snapshot = self.assembler.assemble("Acme", [], [], now=NOW).company_snapshot

        assert snapshot.industry == UNVERIFIED_INDUSTRY
        assert snapshot.hq == UNVERIFIED_HQ
        assert snapshot.structure_summary == UNVERIFIED_STRUCTURE
        assert snapshot.last_updated == "2026-01-15T12:00:00+00:00"
        assert snapshot.total_sources == 0

    def test_failures_listed(self):
        """Test failure descriptions become gaps, without duplicates."""
        failures = ["3 of 16 search calls failed or timed out; treated as zero results"] * 2
        account_map = self.assembler.assemble("Acme", [], [], failures=failures, now=NOW)

        assert account_map.gaps.count(failures[0]) == 1
        assert account_map.gaps[1] == failures[0]


class TestPopulatedAccountMap:
    """Test assembly with discovered executives."""

    def setup_method(self):
        """Set up a small leadership team."""
        self.assembler = AccountAssembler()
        self.executives = [
            _exec("Jane Doe", "Chief Executive Officer", ["https://a", "https://b"]),
            _exec("John Smith", "CTO", ["https://b", "https://c"], reports_to_confirmed=True),
            _exec("Kim Park", "VP Sales", ["https://d"], reports_to="Jane Doe"),
        ]
        self.roles = RoleClassifier().classify_all(self.executives, "Acme")

    def test_org_tree(self):
        """Test each executive becomes an org member."""
        account_map = self.assembler.assemble("Acme", self.executives, self.roles, now=NOW)

        kim = account_map.org_tree[2]
        assert kim.name == "Kim Park"
        assert kim.reports_to == "Jane Doe"
        assert kim.region_function == "Sales"
        assert kim.sources == ["https://d"]

    def test_role_analysis(self):
        """Test roles and notes come from the classifier."""
        account_map = self.assembler.assemble("Acme", self.executives, self.roles, now=NOW)

        roles = {r.name: r for r in account_map.role_analysis}
        assert roles["Jane Doe"].role == StakeholderRole.ECONOMIC_BUYER
        assert roles["John Smith"].role == StakeholderRole.CHAMPION
        assert roles["Kim Park"].notes.endswith("Needs validation.")

    def test_citations_are_source_union(self):
        """Test citations are the ordered, de-duplicated union of people's sources."""
        account_map = self.assembler.assemble("Acme", self.executives, self.roles, now=NOW)

        assert account_map.citations == ["https://a", "https://b", "https://c", "https://d"]
        assert account_map.company_snapshot.total_sources == 4

    def test_every_member_source_is_cited(self):
        """Test no org member cites a source missing from citations."""
        account_map = self.assembler.assemble("Acme", self.executives, self.roles, now=NOW)

        for member in account_map.org_tree:
            assert set(member.sources) <= set(account_map.citations)

    def test_coverage_gaps(self):
        """Test missing coverage and weak evidence are reported."""
        gaps = self.assembler.assemble("Acme", self.executives, self.roles, now=NOW).gaps

        assert "No CEO identified" not in gaps
        assert "No director-level Security contact found" in gaps
        assert "No director-level Engineering contact found" not in gaps
        assert "Stakeholder role needs validation for: Kim Park" in gaps
        assert "1 of 3 people are supported by a single source" in gaps
        assert (
            "2 reporting lines are inferred from title heuristics, not confirmed by a source"
            in gaps
        )

    def test_missing_buyer_and_champion(self):
        """Test gaps for missing buying roles."""
        executives = [self.executives[2]]
        roles = RoleClassifier().classify_all(executives, "Acme")

        gaps = self.assembler.assemble("Acme", executives, roles, now=NOW).gaps

        assert "No CEO identified" in gaps
        assert "No economic buyer (CEO/CFO) identified" in gaps
        assert "No champion (CTO/CISO/VP Security/VP Engineering) identified" in gaps

    def test_ambiguous_titles_reported(self):
        """Test conflicting titles are listed."""
        executives = [_exec("Sam Lee", "CTO / VP Sales", ["https://x"], ambiguous=True)]
        roles = RoleClassifier().classify_all(executives, "Acme")

        gaps = self.assembler.assemble("Acme", executives, roles, now=NOW).gaps

        assert "Conflicting titles for Sam Lee: CTO / VP Sales" in gaps

    def test_facts_used(self):
        """Test discovered facts replace placeholders."""
        facts = CompanyFacts(industry="Software", headquarters="Austin, Texas", sources=("https://f",))
        account_map = self.assembler.assemble(
            "Acme", self.executives, self.roles, facts=facts, now=NOW
        )

        snapshot = account_map.company_snapshot
        assert snapshot.industry == "Software"
        assert snapshot.hq == "Austin, Texas"
        assert "No company-level facts (industry, headquarters, size, revenue) found" not in account_map.gaps
        assert snapshot.structure_summary.startswith("3 people identified across 3 departments")

    def test_singleton(self):
        """Test get_account_assembler returns one instance."""
        assert get_account_assembler() is get_account_assembler()
