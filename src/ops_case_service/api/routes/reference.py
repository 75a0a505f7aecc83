"""Reference data routes (employees, partners, type lists, evaluation configs)."""

import logging
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ops_case_service.api.dependencies import get_case_manager
from ops_case_service.api.routes.cases import upstream_http_error
from ops_case_service.core.case_manager import CaseManager, UnsupportedReferenceError
from ops_case_service.infrastructure.upstream import UpstreamError
from ops_case_service.models import CaseType, EvaluationConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/reference", tags=["reference"])


@router.get(
    "/employees",
    summary="List employees",
    description="""
Employee list used for handler pickers and filters.

**Caching**: Served from memory for 5 minutes; `force_refresh=true` bypasses
the cached copy.
    """,
    responses={
        200: {"description": "Employee list returned"},
        502: {"description": "Upstream application error"},
    }
)
async def list_employees(
    force_refresh: bool = Query(False),
    case_manager: CaseManager = Depends(get_case_manager),
) -> List[Any]:
    try:
        return await case_manager.get_employees(force_refresh=force_refresh)
    except UpstreamError as e:
        raise upstream_http_error(e, "Employee list")


@router.get(
    "/partners",
    summary="List partners",
    description="""
Customer and supplier list used for customer pickers and filters.

**Caching**: Served from memory for 10 minutes; `force_refresh=true` bypasses
the cached copy.
    """,
    responses={
        200: {"description": "Partner list returned"},
        502: {"description": "Upstream application error"},
    }
)
async def list_partners(
    force_refresh: bool = Query(False),
    case_manager: CaseManager = Depends(get_case_manager),
) -> List[Any]:
    try:
        return await case_manager.get_partners(force_refresh=force_refresh)
    except UpstreamError as e:
        raise upstream_http_error(e, "Partner list")


@router.get(
    "/case-types/{case_type}",
    summary="List configured subtypes of a case family",
    description="""
Configurable subtype list of one case family (internal, maintenance,
incident, warranty, deployment). Delivery and receiving cases have no
subtypes and return 404.

**Caching**: Served from memory for 2 minutes; `force_refresh=true` bypasses
the cached copy.
    """,
    responses={
        200: {"description": "Subtype list returned"},
        404: {"description": "Case family has no subtype list"},
        502: {"description": "Upstream application error"},
    }
)
async def list_case_types(
    case_type: CaseType,
    force_refresh: bool = Query(False),
    case_manager: CaseManager = Depends(get_case_manager),
) -> List[Any]:
    try:
        return await case_manager.get_case_types(case_type, force_refresh=force_refresh)
    except UnsupportedReferenceError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except UpstreamError as e:
        raise upstream_http_error(e, f"{case_type.value} type list")


@router.get(
    "/evaluation-configs",
    response_model=List[EvaluationConfig],
    summary="List evaluation option sets",
    description="""
Configured point options per assessment type (USER/ADMIN) and dimension
(DIFFICULTY, TIME, IMPACT, URGENCY, FORM), options sorted by display order.

**Caching**: Served from memory for 10 minutes; `force_refresh=true` bypasses
the cached copy.
    """,
    responses={
        200: {"description": "Evaluation configs returned"},
        502: {"description": "Upstream application error"},
    }
)
async def list_evaluation_configs(
    force_refresh: bool = Query(False),
    case_manager: CaseManager = Depends(get_case_manager),
):
    try:
        catalog = await case_manager.get_evaluation_catalog(force_refresh=force_refresh)
    except UpstreamError as e:
        raise upstream_http_error(e, "Evaluation configs")
    return catalog.configs()
