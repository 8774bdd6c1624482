"""Deduplication and merging of candidate records into canonical executives."""

import logging
import re
from dataclasses import dataclass, field

from rapidfuzz import fuzz

from app.models import ConfidenceTier, ExecutiveLevel
from app.services.errors import AmbiguousMerge
from app.services.record_extractors import CandidateRecord, Source
from app.services.title_norm import canonical_department, infer_department, infer_level, normalize_title
from app.services.validation_service import to_title_case

logger = logging.getLogger(__name__)

# Titles with different level or department are still the same role above this
TITLE_SIMILARITY_THRESHOLD = 60
TITLE_SEPARATOR = " / "


@dataclass(frozen=True)
class CanonicalExecutive:
    """The deduplicated representation of one person across all sources."""

    name: str
    title: str
    level: ExecutiveLevel
    department: str
    sources: tuple[Source, ...]
    confidence: ConfidenceTier
    reports_to: str = ""
    reports_to_hint: str | None = None
    reports_to_confirmed: bool = False
    ambiguous: bool = False
    verified: bool = False

    @property
    def key(self) -> str:
        return name_key(self.name)

    @property
    def source_urls(self) -> list[str]:
        return [source.url_or_label for source in self.sources]


@dataclass
class _Group:
    name: str
    titles: list[str] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)
    department_hint: str | None = None
    reports_to_hint: str | None = None
    reports_to: str = ""
    reports_to_confirmed: bool = False
    ambiguous: bool = False
    verified: bool = False


def name_key(name: str) -> str:
    """Dedup key: lowercase, punctuation removed, whitespace collapsed.

    "john   SMITH", "John Smith" and "John, Smith" share the key "john smith".
    """
    lowered = re.sub(r"[^\w\s]", "", (name or "").lower())
    return " ".join(lowered.split())


def display_name(raw_name: str) -> str:
    """Title-cased name with stray punctuation removed ("john, SMITH" -> "John Smith")."""
    return to_title_case(re.sub(r"[^\w\s'\-.]", " ", raw_name or ""))


def titles_conflict(first: str, second: str) -> bool:
    """True when two titles describe materially different roles."""
    if infer_level(first) == infer_level(second) and infer_department(first) == infer_department(second):
        return False
    similarity = fuzz.token_set_ratio(normalize_title(first), normalize_title(second))
    return similarity < TITLE_SIMILARITY_THRESHOLD


def confidence_for(source_count: int, ambiguous: bool = False, verified: bool = False) -> ConfidenceTier:
    if verified:
        return ConfidenceTier.HIGH
    if ambiguous:
        return ConfidenceTier.LOW
    return ConfidenceTier.from_source_count(source_count)


class ExecutiveMerger:
    """Collapses observations of the same person into one CanonicalExecutive.

    Accepts CandidateRecords and already-merged CanonicalExecutives, so feeding
    the output back in returns the same result.
    """

    def merge(self, records: list[CandidateRecord | CanonicalExecutive]) -> list[CanonicalExecutive]:
        groups: dict[str, _Group] = {}

        for record in records:
            if isinstance(record, CanonicalExecutive):
                raw_name, title, sources = record.name, record.title, list(record.sources)
                department_hint = record.department
            else:
                raw_name, title, sources = record.raw_name, record.raw_title, [record.source_ref]
                department_hint = record.department_hint

            key = name_key(raw_name)
            if not key:
                continue

            group = groups.get(key)
            if group is None:
                group = groups[key] = _Group(name=display_name(raw_name))

            if title and title.strip():
                group.titles.append(title.strip())
            for source in sources:
                if source not in group.sources:
                    group.sources.append(source)
            if not group.department_hint and department_hint and department_hint.strip():
                group.department_hint = department_hint.strip()
            if not group.reports_to_hint and record.reports_to_hint:
                group.reports_to_hint = record.reports_to_hint

            if isinstance(record, CanonicalExecutive):
                group.ambiguous = group.ambiguous or record.ambiguous
                group.verified = group.verified or record.verified
                if record.reports_to and not group.reports_to:
                    group.reports_to = record.reports_to
                    group.reports_to_confirmed = record.reports_to_confirmed

        merged = [self._build(group) for group in groups.values()]
        logger.info(f"Merged {len(records)} observations into {len(merged)} executives")
        return merged

    def _build(self, group: _Group) -> CanonicalExecutive:
        ambiguous = group.ambiguous
        try:
            title = self._resolve_title(group.name, group.titles)
        except AmbiguousMerge as e:
            logger.info(str(e))
            title = TITLE_SEPARATOR.join(e.titles)
            ambiguous = True

        return CanonicalExecutive(
            name=group.name,
            title=title,
            level=infer_level(title),
            department=(
                canonical_department(group.department_hint)
                if group.department_hint
                else infer_department(title)
            ),
            sources=tuple(group.sources),
            confidence=confidence_for(len(group.sources), ambiguous, group.verified),
            reports_to=group.reports_to,
            reports_to_hint=group.reports_to_hint,
            reports_to_confirmed=group.reports_to_confirmed,
            ambiguous=ambiguous,
            verified=group.verified,
        )

    def _resolve_title(self, name: str, titles: list[str]) -> str:
        """Pick the most information-rich title.

        Compatible titles collapse to the longest (first seen on ties). More
        than one incompatible title raises AmbiguousMerge with all of them.
        """
        representatives: list[str] = []
        for title in titles:
            for i, existing in enumerate(representatives):
                if title == existing or not titles_conflict(title, existing):
                    if len(title) > len(existing):
                        representatives[i] = title
                    break
            else:
                representatives.append(title)

        if len(representatives) > 1:
            raise AmbiguousMerge(name, representatives)
        return representatives[0] if representatives else ""


_executive_merger: ExecutiveMerger | None = None


def get_executive_merger() -> ExecutiveMerger:
    """Get the singleton ExecutiveMerger instance."""
    global _executive_merger
    if _executive_merger is None:
        _executive_merger = ExecutiveMerger()
    return _executive_merger
