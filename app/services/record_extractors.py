"""
Record extractors for account mapping.

Turn free text from searches and page fetches into CandidateRecords. Each
extractor runs a stack of layers over the text's lines, most explicit first:

1. StructuredLayer - "Name: X, Title: Y" lines and multi-line key/value blocks
2. DashLineLayer - "Name - Title" lines, bulleted or not
3. KeywordProximityLayer - a known title phrase directly next to a name

A line claimed by an earlier layer is not offered to later ones. Extractors
never raise: unusable input yields an empty list.
"""

import logging
import re
from dataclasses import dataclass

from app.models import ConfidenceTier, SourceKind
from app.services.errors import UnparseableContent
from app.services.query_planner import LEGAL_SUFFIXES
from app.services.source_fetchers import SearchHit
from app.services.title_norm import clean_title, has_keyword, normalize_title
from app.services.validation_service import CandidateNameValidator, validator

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 120
MAX_NAME_TOKENS_FROM_PROSE = 3

# Title vocabulary that makes the right side of a dash line a job title
TITLE_VOCABULARY = (
    "ceo", "cto", "cfo", "coo", "ciso", "cio", "cmo", "cpo", "cro",
    "chief", "president", "founder", "cofounder", "co-founder", "chair", "chairman",
    "vp", "director", "head", "principal", "staff", "senior", "lead",
    "manager", "officer", "engineer", "architect", "counsel", "partner", "general manager",
)

# Known title phrases for the proximity layer (case-sensitive on purpose)
_DEPT = r"[A-Z][\w&]*(?:\s+(?:&\s+)?[A-Z][\w&]*)?"
TITLE_PHRASE = (
    r"(?:Chief\s+\w+(?:\s+\w+)?\s+Officer"
    r"|CEO|CTO|CFO|COO|CISO"
    r"|Co-?[Ff]ounder|Founder"
    r"|(?:Senior\s+|Executive\s+)?(?:VP|Vice\s+President)(?:,?\s+(?:of\s+)?" + _DEPT + r")?"
    r"|(?:Senior\s+)?Director(?:,?\s+(?:of\s+)?" + _DEPT + r")?"
    r"|Head\s+of\s+" + _DEPT +
    r"|(?:Principal|Staff)\s+[A-Z]\w*(?:\s+[A-Z]\w*)?"
    r"|President)"
)
_NAME_RUN = r"[A-Z][\w'.\-]*(?:\s+[A-Z][\w'.\-]*){1,4}"

_NAME_THEN_TITLE = re.compile(
    rf"(?P<name>{_NAME_RUN})\s*(?:,|\(|\s[-–—]|\s+is|\s+as|\s+serves\s+as)?\s*"
    rf"(?:(?:the|our|its)\s+)?(?P<title>{TITLE_PHRASE})\b"
)
_TITLE_THEN_NAME = re.compile(
    rf"(?P<title>{TITLE_PHRASE})(?P<sep>\s*(?:,|:|\s[-–—])?\s*)(?P<name>{_NAME_RUN})"
)

_KEY_VALUE = re.compile(
    r"^(?P<key>name|title|department|dept|reports\s*to|level|linkedin)\s*:\s*(?P<value>.*)$",
    re.IGNORECASE,
)
_INLINE_FIELD = re.compile(
    r"\b(?P<key>name|title|department|dept|reports\s*to)\s*:\s*"
    r"(?P<value>.*?)\s*(?=,?\s*\b(?:name|title|department|dept|reports\s*to|level|linkedin)\s*:|$)",
    re.IGNORECASE,
)
_DASH_LINE = re.compile(
    r"^(?P<name>[^|\n]+?)\s+[-–—]\s+(?P<title>[^|\n]+?)"
    r"(?:\s+[-–—]\s+(?P<rest>[^|\n]+?))?\s*(?:\|.*)?$"
)
_BULLET_PREFIX = re.compile(r"^\s*(?:[-•*▪◦]|\d+[.)])\s+")
_MARKDOWN = re.compile(r"[*_`#]+")
_FORMER = re.compile(r"(?:\bformer(?:ly)?\b|\bex-\s*|\bprevious(?:ly)?\b)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class Source:
    """Where an observation came from. Value type, shared freely."""

    url_or_label: str
    kind: SourceKind = SourceKind.SEARCH_RESULT


@dataclass(frozen=True)
class CandidateRecord:
    """One unverified observation of a person from one source."""

    raw_name: str
    raw_title: str
    source_ref: Source
    extraction_confidence: ConfidenceTier = ConfidenceTier.LOW
    department_hint: str | None = None
    reports_to_hint: str | None = None


@dataclass(frozen=True)
class LayerMatch:
    line_indices: frozenset[int]
    name: str
    title: str
    department_hint: str | None = None
    reports_to_hint: str | None = None
    # Text immediately before the name on its line
    prefix: str = ""
    # Set when the line is consumed but must not yield a record
    skip_reason: str | None = None


def _strip_brackets(value: str) -> str:
    return value.strip().strip("[]()\"'.,;").strip()


def _normalize_line(line: str) -> str:
    line = _MARKDOWN.sub("", line)
    line = _BULLET_PREFIX.sub("", line)
    return re.sub(r"\s+", " ", line).strip()


def _clean_name(name: str) -> str:
    return re.sub(r"\s+", " ", name).strip(" ,;:-–—")


def _looks_like_title(title: str) -> bool:
    normalized = normalize_title(title)
    return any(has_keyword(normalized, keyword) for keyword in TITLE_VOCABULARY)


def _company_core(company_name: str) -> str:
    tokens = re.sub(r"[^a-z0-9\s]", " ", company_name.lower()).split()
    while len(tokens) > 1 and tokens[-1] in LEGAL_SUFFIXES:
        tokens.pop()
    return " ".join(tokens)


def mentions_company(text: str, company_name: str) -> bool:
    core = _company_core(company_name)
    if not core:
        return False
    flat = " ".join(re.sub(r"[^a-z0-9\s]", " ", text.lower()).split())
    return re.search(rf"(?<![a-z0-9]){re.escape(core)}(?![a-z0-9])", flat) is not None


class ExtractionLayer:
    """One heuristic over a list of lines."""

    name = "layer"
    confidence = ConfidenceTier.LOW

    def scan(self, lines: list[str], claimed: set[int]) -> list[LayerMatch]:
        raise NotImplementedError


class StructuredLayer(ExtractionLayer):
    """Explicit key/value output, e.g. from an instruction-following fetcher."""

    name = "structured"
    confidence = ConfidenceTier.HIGH

    def scan(self, lines: list[str], claimed: set[int]) -> list[LayerMatch]:
        matches = []
        i = 0
        while i < len(lines):
            if i in claimed:
                i += 1
                continue
            line = lines[i]
            fields = self._inline_fields(line)
            if "name" in fields and "title" in fields:
                matches.append(self._to_match(fields, frozenset({i})))
                i += 1
                continue

            kv = _KEY_VALUE.match(line)
            if kv and kv.group("key").lower() == "name":
                fields = {"name": kv.group("value")}
                indices = {i}
                j = i + 1
                while j < len(lines) and j not in claimed:
                    nxt = _KEY_VALUE.match(lines[j])
                    if not nxt or nxt.group("key").lower() == "name":
                        break
                    fields.setdefault(self._key(nxt.group("key")), nxt.group("value"))
                    indices.add(j)
                    j += 1
                if "title" in fields:
                    matches.append(self._to_match(fields, frozenset(indices)))
                    i = j
                    continue
            i += 1
        return matches

    @staticmethod
    def _key(raw_key: str) -> str:
        key = re.sub(r"\s+", " ", raw_key.lower())
        return {"dept": "department", "reportsto": "reports to"}.get(key.replace(" ", ""), key)

    def _inline_fields(self, line: str) -> dict[str, str]:
        fields: dict[str, str] = {}
        for match in _INLINE_FIELD.finditer(line):
            fields.setdefault(self._key(match.group("key")), match.group("value"))
        return fields

    def _to_match(self, fields: dict[str, str], indices: frozenset[int]) -> LayerMatch:
        department = _strip_brackets(fields.get("department", "")) or None
        reports_to = _strip_brackets(fields.get("reports to", "")) or None
        if reports_to and reports_to.lower() in {"n/a", "none", "unknown", "not stated"}:
            reports_to = None
        return LayerMatch(
            line_indices=indices,
            name=_strip_brackets(fields["name"]),
            title=_strip_brackets(fields["title"]),
            department_hint=department,
            reports_to_hint=reports_to,
        )


class DashLineLayer(ExtractionLayer):
    """'Jane Doe - Chief Executive Officer - Acme | LinkedIn' style lines."""

    name = "dash_line"
    confidence = ConfidenceTier.MEDIUM

    def __init__(
        self,
        company_name: str | None = None,
        name_validator: CandidateNameValidator = validator,
    ):
        self.company_name = company_name
        self.name_validator = name_validator

    def scan(self, lines: list[str], claimed: set[int]) -> list[LayerMatch]:
        matches = []
        for i, line in enumerate(lines):
            if i in claimed:
                continue
            match = _DASH_LINE.match(line)
            if not match:
                continue
            title = match.group("title")
            if not _looks_like_title(title):
                continue
            # Prose with a dash is left for the proximity layer
            if not self.name_validator.is_valid_name(_clean_name(match.group("name"))):
                continue
            if self._other_employer(title, match.group("rest")):
                matches.append(
                    LayerMatch(frozenset({i}), match.group("name"), title, skip_reason="another employer")
                )
                continue
            matches.append(LayerMatch(frozenset({i}), match.group("name"), title))
        return matches

    def _other_employer(self, title: str, rest: str | None) -> bool:
        if not self.company_name:
            return False
        # Third segment is the employer
        if rest and not mentions_company(rest, self.company_name):
            return True
        employer = re.search(r"\s(?:at|@)\s+(.+)$", title)
        return bool(employer) and not mentions_company(employer.group(1), self.company_name)


class KeywordProximityLayer(ExtractionLayer):
    """A known title phrase directly before or after a capitalized name."""

    name = "keyword_proximity"
    confidence = ConfidenceTier.LOW

    def __init__(self, name_validator: CandidateNameValidator = validator):
        self.name_validator = name_validator

    def scan(self, lines: list[str], claimed: set[int]) -> list[LayerMatch]:
        matches = []
        for i, line in enumerate(lines):
            if i in claimed:
                continue
            matches.extend(self._scan_line(i, line))
        return matches

    def _scan_line(self, index: int, line: str) -> list[LayerMatch]:
        # "CEO Jane Doe" binds tighter than "Jane Doe, CEO", which binds
        # tighter than "CEO, Jane Doe". Each name and title is used once.
        tight, loose = [], []
        for found in _TITLE_THEN_NAME.finditer(line):
            (tight if found.group("sep").strip() in ("", ":") else loose).append((found, False))
        ordered = tight + [(found, True) for found in _NAME_THEN_TITLE.finditer(line)] + loose

        used: list[tuple[int, int]] = []
        matches = []
        for found, name_first in ordered:
            run = found.group("name")
            name = self._best_name(run, from_end=name_first)
            if not name:
                continue
            name_start = found.start("name") + (len(run) - len(name) if name_first else 0)
            spans = [(name_start, name_start + len(name)), found.span("title")]
            if any(start < u_end and u_start < end for start, end in spans for u_start, u_end in used):
                continue
            used.extend(spans)
            first = min(name_start, found.start("title"))
            matches.append(
                LayerMatch(
                    line_indices=frozenset({index}),
                    name=name,
                    title=found.group("title"),
                    prefix=line[max(0, first - 16):first],
                )
            )
        return matches

    def _best_name(self, run: str, from_end: bool) -> str | None:
        """Pick the longest valid name of at most three tokens from a capitalized run.

        Prose puts noise next to names ("Meet Jane Doe", "Jane Doe Joins"), so
        the run is trimmed from the side away from the title.
        """
        tokens = run.split()
        for size in range(min(MAX_NAME_TOKENS_FROM_PROSE, len(tokens)), 1, -1):
            candidate = " ".join(tokens[-size:] if from_end else tokens[:size])
            if self.name_validator.is_valid_name(candidate):
                return candidate
        return None


class RecordExtractor:
    """Runs a fixed stack of layers over raw text.

    Subclasses pick the layers suited to their source family.
    """

    source_kind = SourceKind.SEARCH_RESULT

    def __init__(self, name_validator: CandidateNameValidator = validator):
        self.name_validator = name_validator

    def layers(self, company_name: str) -> list[ExtractionLayer]:
        return [
            StructuredLayer(),
            DashLineLayer(company_name, self.name_validator),
            KeywordProximityLayer(self.name_validator),
        ]

    def extract(self, text: str | None, company_name: str, source: Source) -> list[CandidateRecord]:
        """
        Extract candidate records from free text.

        Args:
            text: Raw text returned by a search or fetch
            company_name: Target organization name
            source: Source cited by every record produced

        Returns:
            Zero or more CandidateRecords; never raises
        """
        try:
            return self._extract(text, company_name, source)
        except UnparseableContent as e:
            logger.debug(f"No candidates from {source.url_or_label}: {e}")
            return []
        except Exception as e:
            logger.warning(f"Extractor failed on {source.url_or_label}: {e}")
            return []

    def _extract(self, text: str | None, company_name: str, source: Source) -> list[CandidateRecord]:
        if not isinstance(text, str) or not re.search(r"[A-Za-z]", text):
            raise UnparseableContent("empty or non-text content")

        lines = [_normalize_line(line) for line in text.splitlines()]
        claimed: set[int] = set()
        records: list[CandidateRecord] = []

        for layer in self.layers(company_name):
            for match in layer.scan(lines, claimed):
                claimed |= match.line_indices
                if match.skip_reason:
                    logger.debug(f"Skipping {match.name[:60]!r}: {match.skip_reason}")
                    continue
                record = self._to_record(match, layer.confidence, company_name, source)
                if record:
                    records.append(record)

        if not records:
            raise UnparseableContent("no valid candidates")
        return records

    def _to_record(
        self,
        match: LayerMatch,
        confidence: ConfidenceTier,
        company_name: str,
        source: Source,
    ) -> CandidateRecord | None:
        name = _clean_name(match.name)
        is_valid, reason = self.name_validator.validate_name(name)
        if not is_valid:
            logger.debug(f"Rejected candidate name {name[:60]!r}: {reason}")
            return None
        if mentions_company(name, company_name):
            logger.debug(f"Rejected candidate name {name!r}: contains company name")
            return None
        if _FORMER.search(match.prefix):
            logger.debug(f"Rejected former employee {name!r}")
            return None

        title = clean_title(match.title, company_name)
        if not title or len(title) > MAX_TITLE_LENGTH:
            return None
        if re.match(r"(?:former|ex-|previous)", title, re.IGNORECASE):
            logger.debug(f"Rejected former employee {name!r}: {title}")
            return None

        return CandidateRecord(
            raw_name=name,
            raw_title=title,
            source_ref=source,
            extraction_confidence=confidence,
            department_hint=match.department_hint,
            reports_to_hint=match.reports_to_hint,
        )


class SearchSnippetExtractor(RecordExtractor):
    """Search results: result titles and snippets carry no key/value output."""

    def layers(self, company_name: str) -> list[ExtractionLayer]:
        return [DashLineLayer(company_name, self.name_validator), KeywordProximityLayer(self.name_validator)]

    def extract_hit(
        self, hit: SearchHit, company_name: str, kind: SourceKind | None = None
    ) -> list[CandidateRecord]:
        source = Source(hit.url or hit.title, kind or self.source_kind)
        return self.extract(hit.text, company_name, source)


class PageTextExtractor(RecordExtractor):
    """Fetched pages: all three layers."""

    source_kind = SourceKind.PAGE_FETCH


class StructuredRecordExtractor(RecordExtractor):
    """Only explicit "Name: X, Title: Y" output is trusted."""

    source_kind = SourceKind.PAGE_FETCH

    def layers(self, company_name: str) -> list[ExtractionLayer]:
        return [StructuredLayer()]


@dataclass(frozen=True)
class CompanyFacts:
    """Company-level facts found in search results, with citing URLs."""

    industry: str | None = None
    headquarters: str | None = None
    size: str | None = None
    revenue: str | None = None
    sources: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.industry or self.headquarters or self.size or self.revenue)


class CompanyFactsExtractor:
    """Pulls industry, headquarters, headcount and revenue phrases from snippets."""

    INDUSTRY_PATTERNS = [
        re.compile(r"(?:industry|sector|field)[\s:]+([^.,;\n]+)", re.IGNORECASE),
        re.compile(r"(?:specializes in|focuses on|operates in)[\s:]+([^.,;\n]+)", re.IGNORECASE),
        re.compile(r"\bis (?:a|an)\s+([^.,;\n]+?)\s+(?:company|corporation|firm)\b", re.IGNORECASE),
    ]
    HQ_PATTERNS = [
        re.compile(
            r"(?:headquarters|headquartered|based|located)(?:\s+(?:is|are))?(?:\s+in)?[\s:]+"
            r"([A-Z][^.;\n]+?)(?=[.;\n]|,\s*(?:and|with|is|has|the)\b|$)",
        ),
    ]
    SIZE_PATTERN = re.compile(
        r"(\d[\d,]*\+?(?:\s*[-–]\s*\d[\d,]*)?\s+(?:employees|staff|people|team members))",
        re.IGNORECASE,
    )
    REVENUE_PATTERN = re.compile(
        r"(?:revenue|annual sales)[^$\d\n]{0,30}"
        r"(\$\s?\d[\d.,]*\s*(?:billion|million|thousand|bn|[BMK])?\b)",
        re.IGNORECASE,
    )

    MAX_VALUE_LENGTH = 80

    def extract(self, hits: list[SearchHit]) -> CompanyFacts:
        found: dict[str, str] = {}
        sources: list[str] = []

        for hit in hits:
            text = f"{hit.title}. {hit.snippet}"
            cited = False
            for key, value in (
                ("industry", self._first(self.INDUSTRY_PATTERNS, text)),
                ("headquarters", self._first(self.HQ_PATTERNS, text)),
                ("size", self._first([self.SIZE_PATTERN], text)),
                ("revenue", self._first([self.REVENUE_PATTERN], text)),
            ):
                if value and key not in found:
                    found[key] = value
                    cited = True
            if cited and hit.url and hit.url not in sources:
                sources.append(hit.url)

        return CompanyFacts(sources=tuple(sources), **found)

    def _first(self, patterns: list[re.Pattern[str]], text: str) -> str | None:
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                value = re.sub(r"\s+", " ", match.group(1)).strip(" :-")
                if value and len(value) <= self.MAX_VALUE_LENGTH:
                    return value
        return None
