"""
Candidate name validation service.

Decides whether a string pulled out of unstructured text is a plausible
person name. Rejections are silent: callers get (False, reason) and drop
the candidate.
"""

import re


class CandidateNameValidator:
    """Validates candidate person names extracted from noisy sources."""

    MIN_TOKENS = 2
    MAX_TOKENS = 5
    MIN_TOKEN_LENGTH = 2
    MAX_TOKEN_LENGTH = 25

    # Navigation and filler words that show up capitalized next to names
    STOP_WORDS = {
        'the', 'and', 'for', 'with', 'at', 'in', 'on', 'to', 'from',
        'view', 'add', 'send', 'more',
    }

    # Common titles that shouldn't be names
    TITLE_WORDS = {
        'chief', 'executive', 'officer', 'president', 'vice', 'senior',
        'director', 'manager', 'head', 'lead', 'principal', 'chairman',
        'chairwoman', 'chairperson', 'founder', 'co-founder', 'partner',
        'vp', 'svp', 'evp', 'staff', 'engineer', 'architect',
        'ceo', 'cfo', 'coo', 'cto', 'cmo', 'cio', 'cpo', 'cro', 'cso', 'ciso',
    }

    # Action verbs that indicate sentence fragments, not names
    ACTION_VERBS = {
        'joined', 'appointed', 'named', 'hired', 'promoted', 'left', 'departed',
        'resigned', 'retired', 'assumed', 'became', 'takes', 'took', 'joins',
        'appoints', 'names', 'hires', 'promotes', 'leaves', 'departs', 'resigns',
        'announced', 'announces', 'says', 'said', 'meet', 'welcome', 'welcomes',
        'contact', 'read', 'learn', 'click', 'follow', 'connect', 'about',
    }

    # Business jargon that should not appear in names
    BUSINESS_JARGON = {
        'leadership', 'team', 'management', 'company', 'corporation', 'inc',
        'llc', 'ltd', 'corp', 'group', 'holdings', 'linkedin', 'news',
        'security', 'engineering', 'product', 'sales', 'marketing',
        'operations', 'technology', 'finance', 'board', 'directors',
    }

    # Allowed characters inside a token (letters, apostrophes, hyphens, dots)
    TOKEN_PATTERN = re.compile(r"^(?:[^\W\d_]|['\-.])+$")

    def validate_name(self, name: str | None) -> tuple[bool, str]:
        """
        Validate if a string is a plausible person name.

        Returns:
            tuple[bool, str]: (is_valid, reason)
        """
        if not name or not isinstance(name, str):
            return False, "Name is empty or not a string"

        name = name.strip()
        if not name:
            return False, "Name is empty or not a string"

        lowered = name.lower()
        if '@' in name or 'http' in lowered:
            return False, "Name contains an email or URL fragment"

        tokens = name.split()
        if len(tokens) < self.MIN_TOKENS:
            return False, "Name should have at least first and last name"
        if len(tokens) > self.MAX_TOKENS:
            return False, f"Name has too many words (max {self.MAX_TOKENS} words)"

        for token in tokens:
            if not self.MIN_TOKEN_LENGTH <= len(token) <= self.MAX_TOKEN_LENGTH:
                return False, f"Token length out of range: {token}"
            if not token[0].isupper():
                return False, f"Token does not start uppercase: {token}"
            if not self.TOKEN_PATTERN.match(token):
                return False, f"Token contains invalid characters: {token}"

        words = [token.lower().strip(".") for token in tokens]

        for word in words:
            if word in self.STOP_WORDS:
                return False, f"Name contains stop word: {word}"

        if all(word in self.TITLE_WORDS for word in words):
            return False, "Name consists only of title words"
        if words[0] in self.TITLE_WORDS or words[-1] in self.TITLE_WORDS:
            return False, "Name starts or ends with a title word"

        for word in words:
            if word in self.ACTION_VERBS:
                return False, f"Name contains action verb: {word}"
            if word in self.BUSINESS_JARGON:
                return False, f"Name contains business jargon: {word}"

        # Acronym pairs like "IT HR"
        if all(token.isupper() for token in tokens):
            return False, "Name consists of acronyms"

        return True, "Valid name format"

    def is_valid_name(self, name: str | None) -> bool:
        is_valid, _ = self.validate_name(name)
        return is_valid


def to_title_case(name: str) -> str:
    """Title-case a name token by token, keeping apostrophes, hyphens and initials.

    "john   SMITH" -> "John Smith", "mary-anne o'neil" -> "Mary-Anne O'Neil",
    "J.R. Smith" -> "J.R. Smith".
    Mixed-case parts such as "McDonald" are kept as written.
    """
    def _cap(part: str) -> str:
        if part.isupper() or part.islower():
            return part[:1].upper() + part[1:].lower()
        return part[:1].upper() + part[1:]

    tokens = []
    for token in name.split():
        pieces = re.split(r"([\-'.])", token)
        tokens.append("".join(piece if piece in ("-", "'", ".") else _cap(piece) for piece in pieces))
    return " ".join(tokens)


# Singleton instance for easy importing
validator = CandidateNameValidator()
