"""Tests for the record extractors.

Tests cover:
- Structured "Name: X, Title: Y" output, inline and multi-line
- "Name - Title - Company" lines, including other employers
- Title/name proximity in prose
- Rejection of emails, former employees and company names
- Company facts extraction from search snippets
"""

import pytest

from app.models import ConfidenceTier, SourceKind
from app.services.record_extractors import (
    CompanyFactsExtractor,
    DashLineLayer,
    KeywordProximityLayer,
    PageTextExtractor,
    SearchSnippetExtractor,
    Source,
    StructuredLayer,
    StructuredRecordExtractor,
    mentions_company,
)
from app.services.source_fetchers import SearchHit


PAGE = Source("https://acme.com/leadership", SourceKind.PAGE_FETCH)


class TestMentionsCompany:
    """Test mentions_company."""

    def test_word_boundary(self):
        """Test the company must appear as whole words."""
        assert mentions_company("VP at Acme, Inc.", "Acme Inc")
        assert not mentions_company("Acmeware", "Acme")

    def test_suffix_ignored(self):
        """Test legal suffixes on the company name are not required."""
        assert mentions_company("Acme | LinkedIn", "Acme Corp")


class TestUnusableText:
    """Test extractors on text without people."""

    def setup_method(self):
        """Set up extractor for each test."""
        self.extractor = PageTextExtractor()

    def test_email_only_text(self):
        """Test an email address is never a candidate name."""
        assert self.extractor.extract("Contact us at info@acme.com", "Acme", PAGE) == []

    def test_email_in_dash_line(self):
        """Test an email on the name side of a dash line is rejected."""
        assert self.extractor.extract("jane.doe@acme.com - CEO", "Acme", PAGE) == []

    @pytest.mark.parametrize("text", [None, "", "   ", "12345 67890", 42])
    def test_empty_or_non_text(self, text):
        """Test empty or non-text input gives no records."""
        assert self.extractor.extract(text, "Acme", PAGE) == []


class TestStructuredExtraction:
    """Test the structured layer through StructuredRecordExtractor."""

    def setup_method(self):
        """Set up extractor for each test."""
        self.extractor = StructuredRecordExtractor()

    def test_inline_fields(self):
        """Test one-line key/value output with hints."""
        text = (
            "Name: Jane Doe, Title: Chief Executive Officer, "
            "Department: Executive, Reports To: Board of Directors"
        )
        records = self.extractor.extract(text, "Acme", PAGE)

        assert len(records) == 1
        record = records[0]
        assert record.raw_name == "Jane Doe"
        assert record.raw_title == "Chief Executive Officer"
        assert record.department_hint == "Executive"
        assert record.reports_to_hint == "Board of Directors"
        assert record.extraction_confidence == ConfidenceTier.HIGH
        assert record.source_ref == PAGE

    def test_bracketed_values_and_unstated_manager(self):
        """Test template brackets are stripped and N/A managers dropped."""
        text = "Name: [Lee Chen], Title: [Director of Security], Reports To: [N/A]"
        records = self.extractor.extract(text, "Acme", PAGE)

        assert records[0].raw_name == "Lee Chen"
        assert records[0].raw_title == "Director of Security"
        assert records[0].reports_to_hint is None

    def test_multi_line_blocks(self):
        """Test key/value blocks spread over several lines."""
        text = (
            "Name: John Smith\n"
            "Title: CTO\n"
            "Department: Engineering\n"
            "\n"
            "Name: Lee Chen\n"
            "Title: Director of Security\n"
        )
        records = self.extractor.extract(text, "Acme", PAGE)

        assert [(r.raw_name, r.raw_title) for r in records] == [
            ("John Smith", "CTO"),
            ("Lee Chen", "Director of Security"),
        ]
        assert records[0].department_hint == "Engineering"

    def test_block_without_title_ignored(self):
        """Test a name with no title yields nothing."""
        assert self.extractor.extract("Name: Jane Doe\nDepartment: Sales", "Acme", PAGE) == []

    def test_layer_only_reads_unclaimed_lines(self):
        """Test claimed lines are skipped."""
        lines = ["Name: Jane Doe, Title: CEO"]
        assert StructuredLayer().scan(lines, claimed={0}) == []


class TestDashLines:
    """Test 'Name - Title - Company' extraction from search results."""

    def setup_method(self):
        """Set up extractor for each test."""
        self.extractor = SearchSnippetExtractor()

    def test_linkedin_result(self):
        """Test a typical LinkedIn result title."""
        hit = SearchHit(
            title="Jane Doe - Chief Executive Officer - Acme | LinkedIn",
            snippet="Jane Doe leads Acme.",
            url="https://www.linkedin.com/in/janedoe",
        )
        records = self.extractor.extract_hit(hit, "Acme")

        assert len(records) == 1
        assert records[0].raw_name == "Jane Doe"
        assert records[0].raw_title == "Chief Executive Officer"
        assert records[0].extraction_confidence == ConfidenceTier.MEDIUM
        assert records[0].source_ref == Source("https://www.linkedin.com/in/janedoe")

    def test_source_kind_override(self):
        """Test the caller can mark snippets as press results."""
        hit = SearchHit(title="John Smith - CTO - Acme", snippet="", url="https://news.example/1")
        records = self.extractor.extract_hit(hit, "Acme", SourceKind.PRESS)
        assert records[0].source_ref.kind == SourceKind.PRESS

    def test_other_employer_skipped(self):
        """Test people listed at another company are not extracted by any layer."""
        hit = SearchHit(title="Jane Doe - CEO - Globex | LinkedIn", snippet="", url="https://x")
        assert self.extractor.extract_hit(hit, "Acme") == []

    def test_at_other_employer_in_title(self):
        """Test 'Title at OtherCo' is skipped."""
        layer = DashLineLayer("Acme")
        matches = layer.scan(["Jane Doe - VP Sales at Globex"], set())
        assert [m.skip_reason for m in matches] == ["another employer"]

    def test_non_title_right_side_ignored(self):
        """Test dash lines whose right side is not a title are ignored."""
        layer = DashLineLayer("Acme")
        assert layer.scan(["Acme - Home Page"], set()) == []

    def test_dash_in_prose_not_claimed(self):
        """Test a dash line without a person name on the left is left unclaimed."""
        layer = DashLineLayer("Acme")
        assert layer.scan(["Update – Acme appointed Jane Doe as Chief Technology Officer."], set()) == []

    def test_dash_in_prose_still_extracted(self):
        """Test prose containing a dash still yields the person it names."""
        source = Source("https://news.example/acme", SourceKind.PRESS)
        text = "Update – Acme appointed Jane Doe as Chief Technology Officer."
        records = self.extractor.extract(text, "Acme", source)

        assert [(r.raw_name, r.raw_title) for r in records] == [
            ("Jane Doe", "Chief Technology Officer")
        ]

    def test_former_title_rejected(self):
        """Test 'Former CEO' titles are not current executives."""
        hit = SearchHit(title="Jane Doe - Former CEO - Acme", snippet="", url="https://x")
        assert self.extractor.extract_hit(hit, "Acme") == []

    def test_company_as_name_rejected(self):
        """Test the company name is never taken as a person."""
        hit = SearchHit(title="Acme Labs - Director of Engineering", snippet="", url="https://x")
        assert self.extractor.extract_hit(hit, "Acme") == []


class TestKeywordProximity:
    """Test title/name proximity extraction in prose."""

    def setup_method(self):
        """Set up extractor for each test."""
        self.extractor = SearchSnippetExtractor()
        self.source = Source("https://news.example/acme", SourceKind.PRESS)

    def test_two_people_in_one_sentence(self):
        """Test each title binds to the name that follows it."""
        text = "Acme announced that CEO Jane Doe and CTO John Smith will speak."
        records = self.extractor.extract(text, "Acme", self.source)

        assert [(r.raw_name, r.raw_title) for r in records] == [
            ("Jane Doe", "CEO"),
            ("John Smith", "CTO"),
        ]
        assert all(r.extraction_confidence == ConfidenceTier.LOW for r in records)

    def test_name_then_title(self):
        """Test 'Name, Title' order."""
        records = self.extractor.extract("Jane Doe, Chief Technology Officer", "Acme", self.source)
        assert [(r.raw_name, r.raw_title) for r in records] == [
            ("Jane Doe", "Chief Technology Officer")
        ]

    def test_former_prefix_rejected(self):
        """Test 'Former CEO Jane Doe' is not extracted."""
        text = "Former CEO Jane Doe joined Globex."
        assert self.extractor.extract(text, "Acme", self.source) == []

    def test_best_name_trims_noise(self):
        """Test leading capitalized noise is trimmed from a name run."""
        layer = KeywordProximityLayer()
        assert layer._best_name("Meet Jane Doe", from_end=True) == "Jane Doe"
        assert layer._best_name("Jane Doe Joins", from_end=False) == "Jane Doe"


class TestPageTextExtractor:
    """Test all layers together on page text."""

    def test_layers_combined(self):
        """Test dash lines and prose on one page."""
        text = (
            "Our Team\n"
            "- Jane Doe - Chief Executive Officer\n"
            "John Smith, CTO\n"
            "Contact us at info@acme.com\n"
        )
        records = PageTextExtractor().extract(text, "Acme", PAGE)

        assert [(r.raw_name, r.raw_title, r.extraction_confidence) for r in records] == [
            ("Jane Doe", "Chief Executive Officer", ConfidenceTier.MEDIUM),
            ("John Smith", "CTO", ConfidenceTier.LOW),
        ]

    def test_structured_line_wins(self):
        """Test a structured line yields one high-confidence record."""
        text = "Name: Jane Doe, Title: Chief Executive Officer - Acme"
        records = PageTextExtractor().extract(text, "Acme", PAGE)

        assert len(records) == 1
        assert records[0].raw_title == "Chief Executive Officer"
        assert records[0].extraction_confidence == ConfidenceTier.HIGH


class TestCompanyFactsExtractor:
    """Test company facts extraction."""

    def setup_method(self):
        """Set up extractor for each test."""
        self.extractor = CompanyFactsExtractor()

    def test_facts_from_snippet(self):
        """Test industry, headquarters, size and revenue phrases."""
        hits = [
            SearchHit(
                title="About Acme",
                snippet=(
                    "Acme is a cybersecurity software company headquartered in Austin, Texas. "
                    "The company has 1,200 employees and annual revenue of $300 million."
                ),
                url="https://acme.com/about",
            )
        ]
        facts = self.extractor.extract(hits)

        assert facts.industry == "cybersecurity software"
        assert facts.headquarters == "Austin, Texas"
        assert facts.size == "1,200 employees"
        assert facts.revenue == "$300 million"
        assert facts.sources == ("https://acme.com/about",)
        assert not facts.is_empty

    def test_first_match_wins(self):
        """Test later hits only fill missing facts and are only cited if used."""
        hits = [
            SearchHit(title="Acme", snippet="Acme is a logistics company.", url="https://a"),
            SearchHit(title="Acme", snippet="Acme is a mining company.", url="https://b"),
        ]
        facts = self.extractor.extract(hits)

        assert facts.industry == "logistics"
        assert facts.sources == ("https://a",)

    def test_no_hits(self):
        """Test no hits gives empty facts."""
        facts = self.extractor.extract([])
        assert facts.is_empty
        assert facts.sources == ()
