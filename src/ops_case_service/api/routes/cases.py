"""Case API routes."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ops_case_service.api.dependencies import get_case_manager
from ops_case_service.core.case_manager import CaseManager
from ops_case_service.core.evaluation import EvaluationError
from ops_case_service.core.timeline import TimelineValidationError
from ops_case_service.infrastructure.upstream import UpstreamError
from ops_case_service.models import (
    AdminEvaluationRequest,
    CaseFilterCriteria,
    CaseListResponse,
    CaseSummaryResponse,
    CaseType,
    CaseView,
    EvaluationResponse,
    StatusChangeRequest,
    StatusClass,
    TransitionResponse,
    UnifiedCase,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/cases", tags=["cases"])


def upstream_http_error(e: UpstreamError, what: str) -> HTTPException:
    """Translate an upstream failure into the response for our caller."""
    if e.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")
    logger.error(f"Upstream failure for {what}: {e}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Upstream application error: {e.detail}",
    )


# =============================================================================
# Listing
# =============================================================================

@router.get(
    "",
    response_model=CaseListResponse,
    summary="List unified cases with filters and pagination",
    description="""
Returns one page of the merged case list across all seven case families
(internal, delivery, receiving, maintenance, incident, warranty, deployment).

**Query Parameters**:
- `view` (default: all): `all` or `today` (open cases plus cases started today)
- `case_type` (optional): Restrict to one family
- `handler` (optional): Case-insensitive substring of the handler name
- `status_class` (optional): received/in_progress/completed/cancelled
- `customer` (optional): Case-insensitive substring of the customer name
- `date_from` / `date_to` (optional): Inclusive start date range
- `search` (optional): Free text over title, description, handler, customer, type
- `page` (default: 1): 1-indexed; out-of-range pages are clamped
- `page_size` (default: 15, max: 100)

**Response Example**:
```json
{
  "cases": [
    {
      "id": "42",
      "type": "incident",
      "title": "Mất kết nối VPN",
      "handlerName": "Nguyễn An",
      "customerName": "ACME",
      "status": "REPORTED",
      "statusClass": "received",
      "startDate": "2025-03-01T09:00:00+07:00",
      ...
    }
  ],
  "total": 23,
  "page": 1,
  "pageSize": 15,
  "totalPages": 2,
  "countsByType": {"incident": 5, ...},
  "failedSources": [],
  "error": null
}
```

**Partial Failure**: A family whose upstream endpoint fails is listed in
`failedSources` and the other families are still returned. When every
family fails, `cases` is empty and `error` is set.

**Sorting**: Newest `startDate` first; cases without a start date last
    """,
    responses={
        200: {"description": "Page of cases returned (possibly partial, see failedSources)"},
        422: {"description": "Invalid query parameters"},
    }
)
async def list_cases(
    view: CaseView = Query(CaseView.ALL),
    case_type: Optional[CaseType] = Query(None),
    handler: Optional[str] = Query(None, max_length=100),
    status_class: Optional[StatusClass] = Query(None),
    customer: Optional[str] = Query(None, max_length=100),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    case_manager: CaseManager = Depends(get_case_manager),
):
    """List unified cases."""
    criteria = CaseFilterCriteria(
        case_type=case_type,
        handler=handler,
        status_class=status_class,
        customer=customer,
        date_from=date_from,
        date_to=date_to,
    )
    return await case_manager.list_cases(
        view=view,
        criteria=criteria,
        search=search,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/summary",
    response_model=CaseSummaryResponse,
    summary="Dashboard counters",
    description="""
Returns total and "today" counts plus breakdowns by case family and by
status class. Statuses outside the known equivalence table are counted
under `unknown`.

**Response Example**:
```json
{
  "total": 120,
  "today": 37,
  "byType": {"internal": 10, "delivery": 22, ...},
  "byStatus": {"received": 12, "in_progress": 25, "completed": 80, "cancelled": 3, "unknown": 0},
  "failedSources": [],
  "error": null
}
```
    """,
    responses={
        200: {"description": "Counters returned (possibly partial, see failedSources)"},
    }
)
async def get_summary(case_manager: CaseManager = Depends(get_case_manager)):
    """Get dashboard counters."""
    return await case_manager.summarize()


@router.get(
    "/{case_type}/{case_id}",
    response_model=UnifiedCase,
    summary="Get one case",
    description="""
Fetches one case from its family endpoint and returns it in unified form.

Case ids are only unique within a family, so both path segments are needed.
    """,
    responses={
        200: {"description": "Case returned successfully"},
        404: {"description": "Case not found upstream"},
        502: {"description": "Upstream application error"},
    }
)
async def get_case(
    case_type: CaseType,
    case_id: str,
    case_manager: CaseManager = Depends(get_case_manager),
):
    """Get one case in unified form."""
    try:
        return await case_manager.get_case(case_type, case_id)
    except UpstreamError as e:
        raise upstream_http_error(e, f"Case {case_type.value}/{case_id}")


# =============================================================================
# Mutations
# =============================================================================

@router.patch(
    "/{case_type}/{case_id}/status",
    response_model=TransitionResponse,
    summary="Change case status and/or end time",
    description="""
Validates a status change against the case timeline, then forwards the
validated payload to the upstream application.

**Rules**:
- Completed or cancelled cases cannot change (`ALREADY_TERMINAL`)
- Cancelling is always accepted
- `endDate` must be after `startDate` (`END_BEFORE_START`) and after the
  in-progress time if one is recorded (`END_BEFORE_IN_PROGRESS`)
- An `endDate` with a non-completed status promotes the status to
  `COMPLETED` (notice `STATUS_AUTO_COMPLETED`)
- Moving into the in-progress class records `inProgressAt` once
  (notice `IN_PROGRESS_STAMPED`)
- Completing without an `endDate` records the current time as `endDate`
  (notice `END_DATE_STAMPED`), checked by the same ordering rules
- A `status` outside the known status classes is rejected with 422

**Request Example**:
```json
{
  "status": "IN_PROGRESS",
  "endDate": null
}
```

**Error Example (422)**:
```json
{
  "detail": {
    "code": "END_BEFORE_START",
    "message": "Thời gian kết thúc phải lớn hơn thời gian bắt đầu!"
  }
}
```

Rejected changes never reach the upstream application.
    """,
    responses={
        200: {"description": "Change accepted and stored"},
        404: {"description": "Case not found upstream"},
        422: {"description": "Change rejected by timeline rules"},
        502: {"description": "Upstream application error"},
    }
)
async def change_case_status(
    case_type: CaseType,
    case_id: str,
    request: StatusChangeRequest,
    case_manager: CaseManager = Depends(get_case_manager),
):
    """Validate and apply a status change."""
    try:
        return await case_manager.change_status(case_type, case_id, request)
    except TimelineValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": e.code.value, "message": e.message},
        )
    except UpstreamError as e:
        raise upstream_http_error(e, f"Case {case_type.value}/{case_id}")


@router.put(
    "/{case_type}/{case_id}/evaluation",
    response_model=EvaluationResponse,
    summary="Submit admin evaluation",
    description="""
Stores the admin assessment (difficulty, estimated time, impact, urgency) of
a case. Each value must be one of the point values configured in the
evaluation settings for that dimension.

**Request Example**:
```json
{
  "difficulty": 3,
  "estimatedTime": 2,
  "impact": 4,
  "urgency": 1
}
```

The response carries the admin total and, when the handler has already
self-assessed, the combined score (40% user, 60% admin, one decimal).
    """,
    responses={
        200: {"description": "Evaluation stored"},
        404: {"description": "Case not found upstream"},
        422: {"description": "A value is not a configured option"},
        502: {"description": "Upstream application error"},
    }
)
async def submit_evaluation(
    case_type: CaseType,
    case_id: str,
    request: AdminEvaluationRequest,
    case_manager: CaseManager = Depends(get_case_manager),
):
    """Store the admin evaluation of a case."""
    try:
        return await case_manager.submit_admin_evaluation(case_type, case_id, request)
    except EvaluationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"category": e.category.value, "points": e.points, "message": str(e)},
        )
    except UpstreamError as e:
        raise upstream_http_error(e, f"Case {case_type.value}/{case_id}")
