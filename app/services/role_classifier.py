"""Stakeholder role classification from titles."""

from dataclasses import dataclass

from app.models import StakeholderRole
from app.services.executive_merger import CanonicalExecutive
from app.services.record_extractors import Source
from app.services.title_norm import has_keyword, normalize_title

# Checked in order, first match wins
ROLE_KEYWORDS: list[tuple[StakeholderRole, tuple[str, ...]]] = [
    (StakeholderRole.ECONOMIC_BUYER, ("ceo", "cfo")),
    (StakeholderRole.CHAMPION, ("cto", "ciso", "vp security", "vp engineering")),
    (
        StakeholderRole.EVALUATOR,
        ("director security", "director engineering", "head of security"),
    ),
    (StakeholderRole.INFLUENCER, ("principal", "architect", "staff engineer")),
    (StakeholderRole.BLOCKER, ("legal", "compliance", "procurement")),
]


@dataclass(frozen=True)
class RoleAssignment:
    """Derived stakeholder view of one canonical executive."""

    name: str
    title: str
    role: StakeholderRole
    rationale: str
    sources: tuple[Source, ...]

    @property
    def needs_validation(self) -> bool:
        return self.role == StakeholderRole.UNCLASSIFIED


def classify_title(title: str | None) -> StakeholderRole:
    """Map a title to a stakeholder role. Pure function of the title."""
    normalized = normalize_title(title)
    for role, keywords in ROLE_KEYWORDS:
        if any(has_keyword(normalized, keyword) for keyword in keywords):
            return role
    return StakeholderRole.UNCLASSIFIED


def rationale_for(title: str, company_name: str, role: StakeholderRole) -> str:
    rationale = f"{title} at {company_name}; classified {role.value} from title keywords."
    if role == StakeholderRole.UNCLASSIFIED:
        rationale += " Needs validation."
    return rationale


class RoleClassifier:
    def classify(self, executive: CanonicalExecutive, company_name: str) -> RoleAssignment:
        role = classify_title(executive.title)
        return RoleAssignment(
            name=executive.name,
            title=executive.title,
            role=role,
            rationale=rationale_for(executive.title, company_name, role),
            sources=executive.sources,
        )

    def classify_all(self, executives: list[CanonicalExecutive], company_name: str) -> list[RoleAssignment]:
        return [self.classify(executive, company_name) for executive in executives]


_role_classifier: RoleClassifier | None = None


def get_role_classifier() -> RoleClassifier:
    """Get the singleton RoleClassifier instance."""
    global _role_classifier
    if _role_classifier is None:
        _role_classifier = RoleClassifier()
    return _role_classifier
