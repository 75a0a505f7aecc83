"""Stateful list view: tab, filters, search and current page.

Any change to what is shown (criteria, search term, tab or the underlying
lists) sends the view back to page 1, so a stale page number can never
point past the end of a freshly filtered list.
"""

from typing import List, Optional
from zoneinfo import ZoneInfo

from ops_case_service.core.clock import reference_tz
from ops_case_service.core.filtering import Page, filter_cases, paginate, search_cases
from ops_case_service.models.case import UnifiedCase
from ops_case_service.models.requests import CaseFilterCriteria, CaseView


class CaseListView:
    """Filter, search and paginate the "all" and "today" lists."""

    def __init__(
        self,
        all_cases: List[UnifiedCase],
        today_cases: Optional[List[UnifiedCase]] = None,
        tz: Optional[ZoneInfo] = None,
        page_size: int = 15,
    ):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._all = list(all_cases)
        self._today = list(today_cases or [])
        self._tz = tz or reference_tz()
        self.page_size = page_size
        self.view = CaseView.ALL
        self.criteria = CaseFilterCriteria()
        self.search_term = ""
        self.page = 1

    @property
    def source(self) -> List[UnifiedCase]:
        return self._today if self.view is CaseView.TODAY else self._all

    @property
    def visible(self) -> List[UnifiedCase]:
        """Every case that passes the current tab, criteria and search term."""
        return search_cases(filter_cases(self.source, self.criteria, self._tz), self.search_term)

    def current_page(self) -> Page[UnifiedCase]:
        result = paginate(self.visible, self.page, self.page_size)
        self.page = result.page
        return result

    def set_view(self, view: CaseView) -> None:
        self.view = CaseView(view)
        self.page = 1

    def set_criteria(self, criteria: CaseFilterCriteria) -> None:
        self.criteria = criteria
        self.page = 1

    def update_criteria(self, **changes) -> None:
        """Change individual criteria fields, e.g. ``update_criteria(handler="An")``."""
        self.set_criteria(
            CaseFilterCriteria.model_validate({**self.criteria.model_dump(), **changes})
        )

    def set_search(self, term: str) -> None:
        self.search_term = term or ""
        self.page = 1

    def clear_filters(self) -> None:
        self.criteria = CaseFilterCriteria()
        self.search_term = ""
        self.page = 1

    def replace_cases(
        self, all_cases: List[UnifiedCase], today_cases: Optional[List[UnifiedCase]] = None
    ) -> None:
        self._all = list(all_cases)
        self._today = list(today_cases or [])
        self.page = 1

    def go_to_page(self, page: int) -> Page[UnifiedCase]:
        self.page = page
        return self.current_page()

    def next_page(self) -> Page[UnifiedCase]:
        return self.go_to_page(self.page + 1)

    def previous_page(self) -> Page[UnifiedCase]:
        return self.go_to_page(self.page - 1)
