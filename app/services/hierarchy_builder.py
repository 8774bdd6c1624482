"""
Reporting-line inference for canonical executives.

Edges come from explicit source statements when available, otherwise from
level/department heuristics. Inferred edges are plausible, not verified;
``reports_to_confirmed`` marks the ones a source actually stated.
"""

import logging
from dataclasses import replace

from app.models import ExecutiveLevel
from app.services.errors import HierarchyCycle
from app.services.executive_merger import CanonicalExecutive, name_key
from app.services.title_norm import canonical_department, has_keyword, normalize_title

logger = logging.getLogger(__name__)

BOARD_OF_DIRECTORS = "Board of Directors"
EXECUTIVE_LEADERSHIP = "Executive Leadership"
SENTINELS = (BOARD_OF_DIRECTORS, EXECUTIVE_LEADERSHIP)

_BOARD_ALIASES = {"board", "the board", "board of directors", "board of directors and ceo"}
_UNSTATED = {"n/a", "na", "none", "unknown", "not stated", "-"}


def is_sentinel(name: str) -> bool:
    return name in SENTINELS


def _first_with_keyword(executives: list[CanonicalExecutive], keyword: str) -> CanonicalExecutive | None:
    for executive in executives:
        if has_keyword(normalize_title(executive.title), keyword):
            return executive
    return None


class HierarchyBuilder:
    """Assigns a reports_to target to every executive without creating cycles."""

    def build(self, executives: list[CanonicalExecutive]) -> list[CanonicalExecutive]:
        """
        Infer the reporting tree.

        Args:
            executives: Canonical executives in discovery order

        Returns:
            The same executives, in the same order, with reports_to set
        """
        by_key = {executive.key: executive for executive in executives}
        edges: dict[str, str] = {}
        result = []

        for executive in executives:
            target, confirmed = self._resolve(executive, executives, by_key)
            try:
                self._check_cycle(executive, target, edges)
            except HierarchyCycle as e:
                logger.warning(f"{e}; reporting to {BOARD_OF_DIRECTORS} instead")
                target, confirmed = BOARD_OF_DIRECTORS, False

            edges[executive.key] = target
            result.append(replace(executive, reports_to=target, reports_to_confirmed=confirmed))

        inferred = sum(1 for executive in result if not executive.reports_to_confirmed)
        logger.info(f"Built hierarchy for {len(result)} executives ({inferred} inferred edges)")
        return result

    def _resolve(
        self,
        executive: CanonicalExecutive,
        executives: list[CanonicalExecutive],
        by_key: dict[str, CanonicalExecutive],
    ) -> tuple[str, bool]:
        if executive.level == ExecutiveLevel.C_SUITE:
            return BOARD_OF_DIRECTORS, False

        stated = self._from_hint(executive, executives, by_key)
        if stated:
            return stated, True

        others = [other for other in executives if other.key != executive.key]

        superior = self._same_department_superior(executive, others)
        if superior:
            return superior.name, False

        department = canonical_department(executive.department)
        if department == "Security":
            fallback = _first_with_keyword(others, "ciso") or _first_with_keyword(others, "cto")
            if fallback:
                return fallback.name, False
        elif department == "Engineering":
            fallback = _first_with_keyword(others, "cto")
            if fallback:
                return fallback.name, False

        ceo = _first_with_keyword(others, "ceo")
        if ceo:
            return ceo.name, False

        for other in others:
            if other.level == ExecutiveLevel.C_SUITE:
                return other.name, False

        return EXECUTIVE_LEADERSHIP, False

    def _from_hint(
        self,
        executive: CanonicalExecutive,
        executives: list[CanonicalExecutive],
        by_key: dict[str, CanonicalExecutive],
    ) -> str | None:
        """Resolve a source-stated manager to a member name or the Board."""
        hint = (executive.reports_to_hint or "").strip()
        if not hint or hint.lower() in _UNSTATED:
            return None
        if hint.lower() in _BOARD_ALIASES:
            return BOARD_OF_DIRECTORS

        key = name_key(hint)
        if key == executive.key:
            return None
        if key in by_key:
            return by_key[key].name

        # Hints like "CEO" or "VP Engineering" name a role, not a person
        normalized_hint = normalize_title(hint)
        for other in executives:
            if other.key != executive.key and normalize_title(other.title) == normalized_hint:
                return other.name
        return None

    def _same_department_superior(
        self, executive: CanonicalExecutive, others: list[CanonicalExecutive]
    ) -> CanonicalExecutive | None:
        department = canonical_department(executive.department)
        superiors = [
            other
            for other in others
            if canonical_department(other.department) == department and other.level.is_above(executive.level)
        ]
        if not superiors:
            return None
        # Nearest level first, then discovery order
        return min(superiors, key=lambda other: executive.level.rank - other.level.rank)

    def _check_cycle(self, executive: CanonicalExecutive, target: str, edges: dict[str, str]) -> None:
        """Raise HierarchyCycle if following target leads back to executive."""
        seen = set()
        current = target
        while current and not is_sentinel(current):
            key = name_key(current)
            if key == executive.key:
                raise HierarchyCycle(executive.name, target)
            if key in seen:
                raise HierarchyCycle(executive.name, target)
            seen.add(key)
            current = edges.get(key, "")


_hierarchy_builder: HierarchyBuilder | None = None


def get_hierarchy_builder() -> HierarchyBuilder:
    """Get the singleton HierarchyBuilder instance."""
    global _hierarchy_builder
    if _hierarchy_builder is None:
        _hierarchy_builder = HierarchyBuilder()
    return _hierarchy_builder
