"""Error taxonomy for the account-mapping pipeline.

None of these abort a run. Each is raised where the problem is detected and
caught at the nearest recovery point.
"""


class AccountMappingError(Exception):
    """Base class for account-mapping pipeline errors."""


class SourceUnavailable(AccountMappingError):
    """A search or fetch call failed or timed out."""

    def __init__(self, target: str, reason: str = "") -> None:
        self.target = target
        self.reason = reason
        message = f"Source unavailable: {target}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UnparseableContent(AccountMappingError):
    """An extractor found no usable text in a source's output."""


class AmbiguousMerge(AccountMappingError):
    """Observations of one name carry materially different titles."""

    def __init__(self, name: str, titles: list[str]) -> None:
        self.name = name
        self.titles = titles
        super().__init__(f"Conflicting titles for {name}: {' / '.join(titles)}")


class HierarchyCycle(AccountMappingError):
    """A reporting edge would close a cycle."""

    def __init__(self, name: str, target: str) -> None:
        self.name = name
        self.target = target
        super().__init__(f"Reporting edge {name} -> {target} would create a cycle")
