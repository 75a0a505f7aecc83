"""Filtering, search and pagination over the unified case list.

All functions return new lists and leave their input untouched, so callers
can keep references to the full list across repeated filter calls.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Generic, Iterable, List, Optional, Sequence, TypeVar
from zoneinfo import ZoneInfo

from ops_case_service.core.clock import end_of_day, start_of_day
from ops_case_service.core.statuses import matches_class
from ops_case_service.models.case import CaseType, UnifiedCase
from ops_case_service.models.requests import CaseFilterCriteria

T = TypeVar("T")


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle.casefold() in (haystack or "").casefold()


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def matches_criteria(case: UnifiedCase, criteria: CaseFilterCriteria, tz: ZoneInfo) -> bool:
    """AND of every criterion that is set."""
    if criteria.case_type is not None and case.type is not CaseType(criteria.case_type):
        return False

    handler = _clean(criteria.handler)
    if handler and not _contains(case.handler_name, handler):
        return False

    if criteria.status_class is not None and not matches_class(case.status, criteria.status_class):
        return False

    customer = _clean(criteria.customer)
    if customer and not _contains(case.customer_name, customer):
        return False

    if criteria.date_from is not None or criteria.date_to is not None:
        # Range applies to the start date only
        if case.start_date is None:
            return False
        if criteria.date_from is not None and case.start_date < start_of_day(criteria.date_from, tz):
            return False
        if criteria.date_to is not None and case.start_date > end_of_day(criteria.date_to, tz):
            return False

    return True


def filter_cases(
    cases: Iterable[UnifiedCase],
    criteria: Optional[CaseFilterCriteria],
    tz: ZoneInfo,
) -> List[UnifiedCase]:
    if criteria is None:
        return list(cases)
    return [case for case in cases if matches_criteria(case, criteria, tz)]


def matches_search(case: UnifiedCase, term: str) -> bool:
    return any(
        _contains(value, term)
        for value in (
            case.title,
            case.description,
            case.handler_name,
            case.customer_name,
            case.case_type,
        )
    )


def search_cases(cases: Iterable[UnifiedCase], term: Optional[str]) -> List[UnifiedCase]:
    """Free-text search across the displayed text fields."""
    term = _clean(term)
    if not term:
        return list(cases)
    return [case for case in cases if matches_search(case, term)]


@dataclass
class Page(Generic[T]):
    """One page of a list."""

    items: List[T] = field(default_factory=list)
    page: int = 1
    page_size: int = 15
    total: int = 0
    total_pages: int = 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total > 0 else 0


def clamp_page(page: int, pages: int) -> int:
    """Pull an out-of-range page number back to the nearest valid page."""
    if pages <= 0 or page < 1:
        return 1
    return min(page, pages)


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice a 1-indexed page out of ``items``.

    Page numbers below 1 clamp to the first page and numbers past the end
    clamp to the last. An empty list yields page 1 with zero pages.

    Raises:
        ValueError: if page_size is not positive
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    total = len(items)
    pages = total_pages(total, page_size)
    page = clamp_page(page, pages)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=total,
        total_pages=pages,
    )


def count_by_type(cases: Iterable[UnifiedCase]) -> Dict[str, int]:
    """Per-family badge counts; every family is present, zero included."""
    counts = {case_type.value: 0 for case_type in CaseType}
    for case in cases:
        counts[case.type.value] += 1
    return counts
