"""Case business logic manager.

Fetches the seven case families from the upstream application, merges them
through the normalizer and serves filtered pages, status changes and admin
evaluations on top of the merged list.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ops_case_service.config.settings import Settings
from ops_case_service.core.clock import Clock, reference_tz, system_clock
from ops_case_service.core.evaluation import (
    EvaluationCatalog,
    admin_evaluation_payload,
    combined_score,
    total_score,
)
from ops_case_service.core.filtering import count_by_type, filter_cases, paginate, search_cases
from ops_case_service.core.mappers import MappingContext
from ops_case_service.core.normalizer import (
    AggregationResult,
    normalize_payloads,
    normalize_record,
)
from ops_case_service.core.sources import (
    CASE_SOURCES,
    CASE_TYPE_LIST_PATHS,
    EMPLOYEES_PATH,
    EVALUATION_CONFIGS_PATH,
    PARTNERS_PATH,
    CaseSource,
    get_source,
)
from ops_case_service.core.statuses import classify
from ops_case_service.core.timeline import CaseTimeline, validate_transition
from ops_case_service.infrastructure.cache import TimeBoxedCache
from ops_case_service.infrastructure.upstream import UpstreamClient, UpstreamError
from ops_case_service.models import (
    AdminEvaluationRequest,
    CaseFilterCriteria,
    CaseListResponse,
    CaseSummaryResponse,
    CaseType,
    CaseView,
    EvaluationResponse,
    EvaluationType,
    StatusChangeRequest,
    StatusClass,
    TransitionResponse,
    UnifiedCase,
)

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = "unknown"


class UnsupportedReferenceError(LookupError):
    """A case family has no configurable type list."""


def _as_list(payload: Any) -> List[Any]:
    """Reference endpoints answer with a bare list or a ``{data: [...]}`` envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    return []


def _unwrap_record(payload: Any) -> Optional[Dict[str, Any]]:
    """Find the case record in a detail or update response."""
    if not isinstance(payload, dict):
        return None
    if "id" in payload:
        return payload
    for value in payload.values():
        if isinstance(value, dict) and "id" in value:
            return value
    return None


class CaseManager:
    """Business logic for the unified case dashboard.

    The manager holds no case state of its own: every list call fetches the
    seven families fresh. Only reference lists go through the cache.
    """

    def __init__(
        self,
        client: UpstreamClient,
        cache: Optional[TimeBoxedCache] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize case manager.

        Args:
            client: Upstream application client
            cache: Reference data cache (a private one is created if omitted)
            settings: Service settings (global settings if omitted)
            clock: Source of "now" in the reference time zone
        """
        if settings is None:
            from ops_case_service.config import settings as global_settings

            settings = global_settings
        self.client = client
        self.cache = cache or TimeBoxedCache()
        self.settings = settings
        self.tz = reference_tz(settings.reference_timezone)
        self.clock = clock or system_clock(self.tz)
        self.context = MappingContext(
            tz=self.tz, organization_name=settings.internal_organization_name
        )

    # =========================================================================
    # Aggregation
    # =========================================================================

    async def aggregate(self) -> AggregationResult:
        """Fetch every case family concurrently and merge the results.

        A failing family is logged and reported in ``failed_sources``; the
        remaining families are still returned.
        """
        sources = list(CASE_SOURCES.values())
        results = await asyncio.gather(
            *(self.client.fetch_collection(source) for source in sources),
            return_exceptions=True,
        )

        payloads: Dict[CaseType, Any] = {}
        failed: List[CaseType] = []
        for source, result in zip(sources, results):
            if isinstance(result, Exception):
                logger.warning(f"Fetching {source.case_type.value} cases failed: {result}")
                failed.append(source.case_type)
            elif isinstance(result, BaseException):
                raise result
            else:
                payloads[source.case_type] = result

        aggregation = normalize_payloads(payloads, self.context, now=self.clock(), failed=failed)
        if aggregation.total_failure:
            logger.error("All case sources failed; returning an empty list")
        elif aggregation.failed_sources:
            names = ", ".join(case_type.value for case_type in aggregation.failed_sources)
            logger.warning(f"Partial case list, missing sources: {names}")
        else:
            logger.info(f"Aggregated {len(aggregation.cases)} cases from {len(sources)} sources")
        return aggregation

    def _page_size(self, page_size: Optional[int]) -> int:
        if page_size is None:
            return self.settings.default_page_size
        return max(1, min(page_size, self.settings.max_page_size))

    async def list_cases(
        self,
        view: CaseView = CaseView.ALL,
        criteria: Optional[CaseFilterCriteria] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> CaseListResponse:
        """List one page of the unified cases.

        Args:
            view: "all" cases or the "today" subset
            criteria: Structured filters
            search: Free-text search term
            page: 1-indexed page number (clamped to the valid range)
            page_size: Items per page (settings default if omitted)

        Returns:
            CaseListResponse with the page and per-source outcome
        """
        aggregation = await self.aggregate()
        cases = aggregation.today if CaseView(view) is CaseView.TODAY else aggregation.cases
        visible = search_cases(filter_cases(cases, criteria, self.tz), search)
        result = paginate(visible, page, self._page_size(page_size))

        return CaseListResponse(
            cases=result.items,
            total=result.total,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
            counts_by_type=count_by_type(visible),
            failed_sources=aggregation.failed_sources,
            error=aggregation.error,
        )

    async def summarize(self) -> CaseSummaryResponse:
        """Counters for the dashboard header."""
        aggregation = await self.aggregate()

        by_status = {status_class.value: 0 for status_class in StatusClass}
        by_status[UNKNOWN_STATUS] = 0
        for case in aggregation.cases:
            status_class = classify(case.status)
            by_status[status_class.value if status_class else UNKNOWN_STATUS] += 1

        return CaseSummaryResponse(
            total=len(aggregation.cases),
            today=len(aggregation.today),
            by_type=count_by_type(aggregation.cases),
            by_status=by_status,
            failed_sources=aggregation.failed_sources,
            error=aggregation.error,
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    async def get_case(self, case_type: CaseType, case_id: str) -> UnifiedCase:
        """Fetch and normalize one case.

        Raises:
            UpstreamError: if the case cannot be fetched or is malformed
        """
        source = get_source(case_type)
        record = _unwrap_record(await self.client.fetch_case(source, case_id))
        if record is None:
            raise UpstreamError(f"Unexpected payload for {source.case_type.value} case {case_id}")
        try:
            return normalize_record(source.case_type, record, self.context)
        except ValueError as e:
            raise UpstreamError(str(e)) from e

    def _normalize_response(self, source: CaseSource, payload: Any) -> Optional[UnifiedCase]:
        record = _unwrap_record(payload)
        if record is None:
            return None
        try:
            return normalize_record(source.case_type, record, self.context)
        except ValueError:
            logger.warning(f"Could not read updated {source.case_type.value} case from response")
            return None

    async def change_status(
        self,
        case_type: CaseType,
        case_id: str,
        request: StatusChangeRequest,
    ) -> TransitionResponse:
        """Validate and apply a status/end-time change.

        Validation runs against the current upstream state; a rejected change
        never reaches the update endpoint.

        Raises:
            TimelineValidationError: if the change breaks the timeline rules
            UpstreamError: if the upstream application fails
        """
        source = get_source(case_type)
        current = await self.get_case(source.case_type, case_id)
        result = validate_transition(
            CaseTimeline.from_case(current), request, clock=self.clock, tz=self.tz
        )

        body = result.payload.model_dump(by_alias=True, mode="json")
        response = await self.client.update_case(source, case_id, body)

        updated = self._normalize_response(source, response)
        if updated is None:
            updated = current.model_copy(
                update={
                    "status": result.payload.status,
                    "end_date": result.payload.end_date,
                    "in_progress_at": result.payload.in_progress_at,
                }
            )

        logger.info(
            f"Updated {source.case_type.value} case {case_id}: "
            f"{current.status} -> {result.payload.status}"
        )
        return TransitionResponse(payload=result.payload, notices=result.notices, case=updated)

    async def submit_admin_evaluation(
        self,
        case_type: CaseType,
        case_id: str,
        request: AdminEvaluationRequest,
    ) -> EvaluationResponse:
        """Store the admin assessment of a case.

        Raises:
            EvaluationError: if a value is not a configured option
            UpstreamError: if the upstream application fails
        """
        source = get_source(case_type)
        score = request.to_score()

        catalog = await self.get_evaluation_catalog()
        catalog.validate(EvaluationType.ADMIN, score)

        response = await self.client.update_evaluation(
            source, case_id, admin_evaluation_payload(score)
        )
        updated = self._normalize_response(source, response)

        logger.info(f"Stored admin evaluation for {source.case_type.value} case {case_id}")
        return EvaluationResponse(
            case_type=source.case_type,
            case_id=case_id,
            admin=score,
            admin_total=total_score(score),
            combined_score=combined_score(updated.evaluation) if updated else None,
            case=updated,
        )

    # =========================================================================
    # Reference data
    # =========================================================================

    async def get_employees(self, force_refresh: bool = False) -> List[Any]:
        async def fetch():
            return _as_list(await self.client.fetch_reference(EMPLOYEES_PATH))

        return await self.cache.get_or_fetch(
            "employees", self.settings.employees_ttl_seconds, fetch, force_refresh
        )

    async def get_partners(self, force_refresh: bool = False) -> List[Any]:
        async def fetch():
            return _as_list(await self.client.fetch_reference(PARTNERS_PATH))

        return await self.cache.get_or_fetch(
            "partners", self.settings.partners_ttl_seconds, fetch, force_refresh
        )

    async def get_case_types(self, case_type: CaseType, force_refresh: bool = False) -> List[Any]:
        """Configured subtypes of one case family.

        Raises:
            UnsupportedReferenceError: for families without a type list
        """
        case_type = CaseType(case_type)
        path = CASE_TYPE_LIST_PATHS.get(case_type)
        if path is None:
            raise UnsupportedReferenceError(f"{case_type.value} cases have no type list")

        async def fetch():
            return _as_list(await self.client.fetch_reference(path))

        return await self.cache.get_or_fetch(
            ("case-types", case_type), self.settings.case_types_ttl_seconds, fetch, force_refresh
        )

    async def get_evaluation_catalog(self, force_refresh: bool = False) -> EvaluationCatalog:
        async def fetch():
            return EvaluationCatalog.from_payload(
                await self.client.fetch_reference(EVALUATION_CONFIGS_PATH)
            )

        return await self.cache.get_or_fetch(
            "evaluation-configs",
            self.settings.evaluation_configs_ttl_seconds,
            fetch,
            force_refresh,
        )
