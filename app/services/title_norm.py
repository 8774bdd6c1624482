"""Title normalization and keyword inference for executive titles.

Titles are reduced to a canonical keyword string before any keyword check:
long C-level forms collapse to their abbreviation, "vice president" to
"vp", filler words and punctuation are dropped. Keywords are normalized the
same way and matched on word boundaries, so "Director" never matches "cto".
"""

import re
from functools import lru_cache

from app.models import ExecutiveLevel

# Canonical phrase mappings, applied longest first
TITLE_NORMALIZATIONS: dict[str, str] = {
    # CEO variations
    "chief executive officer": "ceo",
    "chief exec officer": "ceo",
    "chief executive": "ceo",
    "c e o": "ceo",
    # CFO variations
    "chief financial officer": "cfo",
    "chief finance officer": "cfo",
    "c f o": "cfo",
    # COO variations
    "chief operating officer": "coo",
    "chief operations officer": "coo",
    "c o o": "coo",
    # CTO variations
    "chief technology officer": "cto",
    "chief tech officer": "cto",
    "chief technical officer": "cto",
    "c t o": "cto",
    # CISO variations
    "chief information security officer": "ciso",
    "chief info security officer": "ciso",
    # VP variations
    "vice president": "vp",
    "vice-president": "vp",
    "v p": "vp",
    "svp": "senior vp",
    "evp": "executive vp",
    # Abbreviated prefixes
    "sr": "senior",
    "dir": "director",
}

FILLER_WORDS = frozenset({"of", "the", "and", "for", "at", "a", "an"})

# Ordered level checks, first match wins
LEVEL_KEYWORDS: list[tuple[ExecutiveLevel, tuple[str, ...]]] = [
    (ExecutiveLevel.C_SUITE, ("ceo", "cto", "cfo", "coo", "ciso", "chief")),
    (ExecutiveLevel.VP, ("president", "vp", "vice president")),
    (ExecutiveLevel.DIRECTOR, ("director",)),
    (ExecutiveLevel.SENIOR, ("principal", "staff", "head of", "senior")),
]

# Ordered department checks, first match wins
DEPARTMENT_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Security", ("security", "compliance", "risk", "ciso")),
    (
        "Engineering",
        ("engineering", "technical", "technology", "software", "devops", "cto"),
    ),
    ("Finance", ("finance", "financial", "accounting", "cfo")),
    ("Sales", ("sales", "revenue")),
    ("Marketing", ("marketing", "brand")),
    ("Product", ("product",)),
    ("Human Resources", ("hr", "human resources", "people", "talent")),
    ("Legal", ("legal", "counsel")),
]

DEFAULT_DEPARTMENT = "Executive"

_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize_title(title: str | None) -> str:
    """Reduce a title to its canonical keyword string.

    Examples:
        "Chief Executive Officer" -> "ceo"
        "VP of Engineering" -> "vp engineering"
        "Head of Security & Risk" -> "head security risk"
    """
    if not title:
        return ""

    text = title.lower().replace("&", " and ").replace("/", " ")
    text = _NON_WORD.sub(" ", text)
    text = _collapse(text)

    for phrase in sorted(TITLE_NORMALIZATIONS, key=len, reverse=True):
        text = re.sub(
            rf"(?<![\w-]){re.escape(phrase)}(?![\w-])",
            TITLE_NORMALIZATIONS[phrase],
            text,
        )

    words = [word for word in text.split() if word not in FILLER_WORDS]
    return " ".join(words)


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    normalized = normalize_title(keyword)
    return re.compile(rf"(?<![\w-]){re.escape(normalized)}(?![\w-])")


def has_keyword(normalized_title: str, keyword: str) -> bool:
    """Check a normalized title for a keyword on word boundaries."""
    if not normalized_title or not keyword:
        return False
    return _keyword_pattern(keyword).search(normalized_title) is not None


def infer_level(title: str | None) -> ExecutiveLevel:
    normalized = normalize_title(title)
    for level, keywords in LEVEL_KEYWORDS:
        if any(has_keyword(normalized, keyword) for keyword in keywords):
            return level
    return ExecutiveLevel.MANAGER


def infer_department(title: str | None) -> str:
    normalized = normalize_title(title)
    for department, keywords in DEPARTMENT_KEYWORDS:
        if any(has_keyword(normalized, keyword) for keyword in keywords):
            return department
    return DEFAULT_DEPARTMENT


def canonical_department(department: str | None) -> str:
    """Map a source-stated department onto the inferred department names.

    "Technology" and "engineering" both become "Engineering". Departments
    with no known keyword keep their stated text.
    """
    text = _collapse(department or "")
    if not text:
        return DEFAULT_DEPARTMENT
    normalized = normalize_title(text)
    for name, keywords in DEPARTMENT_KEYWORDS:
        if any(has_keyword(normalized, keyword) for keyword in keywords):
            return name
    return text


def clean_title(title: str | None, company_name: str | None = None) -> str:
    """Tidy a raw title for display.

    Collapses whitespace, drops trailing site labels ("| LinkedIn") and a
    trailing "at <company>" / "of <company>" / "- <company>".
    """
    if not title:
        return ""

    text = _collapse(title)
    text = re.split(r"\s+[|·]\s+", text)[0]
    if company_name:
        company = re.escape(_collapse(company_name))
        text = re.sub(
            rf"\s*(?:,|\bat\b|\bof\b|@|[-–—])\s*{company}\b.*$",
            "",
            text,
            flags=re.IGNORECASE,
        )
    text = re.sub(r"\s+(?:at|@)\s+[A-Z][\w&.\- ]*$", "", text)
    return text.strip(" ,;:.-–—")
