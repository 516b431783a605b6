"""
Filter chain applied to loaded records before aggregation.

Each predicate is a small value object with its own enabled flag; a
disabled predicate accepts everything. The chain keeps a record only when
every predicate accepts it, and preserves the input order.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .loader import FileRecord

DEFAULT_MAX_BUDGET = 10_000
DEFAULT_MIN_BUDGET = 0


@dataclass(frozen=True)
class HighBudgetFilter:
    """Keeps records strictly under max_budget tokens."""

    max_budget: int = DEFAULT_MAX_BUDGET
    enabled: bool = True

    def __call__(self, record: FileRecord) -> bool:
        if not self.enabled:
            return True
        return record.tokens < self.max_budget


@dataclass(frozen=True)
class LowBudgetFilter:
    """Keeps records with at least min_budget tokens."""

    min_budget: int = DEFAULT_MIN_BUDGET
    enabled: bool = True

    def __call__(self, record: FileRecord) -> bool:
        if not self.enabled:
            return True
        return record.tokens >= self.min_budget


@dataclass(frozen=True)
class EmptyContentFilter:
    """Drops unreadable records and records with empty content."""

    enabled: bool = True

    def __call__(self, record: FileRecord) -> bool:
        if not self.enabled:
            return True
        if record.error:
            return False
        return record.content != ""


@dataclass(frozen=True)
class BudgetOptions:
    max_budget: int = DEFAULT_MAX_BUDGET
    min_budget: int = DEFAULT_MIN_BUDGET
    limit_by_high_budget: bool = False
    limit_by_low_budget: bool = False


class FilterChain:
    """Logical AND over an ordered list of predicates."""

    def __init__(self, predicates: Sequence = ()):
        self.predicates = list(predicates)

    def accepts(self, record: FileRecord) -> bool:
        return all(predicate(record) for predicate in self.predicates)

    def apply(self, records: Iterable[FileRecord]) -> List[FileRecord]:
        return [r for r in records if self.accepts(r)]


def static_filters(options: BudgetOptions) -> FilterChain:
    """The standard chain: high budget, low budget, then empty content."""
    return FilterChain(
        [
            HighBudgetFilter(options.max_budget, enabled=options.limit_by_high_budget),
            LowBudgetFilter(options.min_budget, enabled=options.limit_by_low_budget),
            EmptyContentFilter(),
        ]
    )
