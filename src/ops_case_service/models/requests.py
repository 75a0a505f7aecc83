"""API request and response models."""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from .case import CamelModel, CaseType, StatusClass, UnifiedCase
from .evaluation import EvaluationScore


class CaseView(str, Enum):
    """Dashboard tabs."""

    TODAY = "today"
    ALL = "all"


class CaseFilterCriteria(CamelModel):
    """Structured list filters. Empty fields mean "no constraint"."""

    case_type: Optional[CaseType] = None
    handler: Optional[str] = None
    status_class: Optional[StatusClass] = None
    customer: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class StatusChangeRequest(CamelModel):
    """Requested status and/or end time for a case."""

    status: Optional[str] = Field(None, max_length=50)
    end_date: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, value: Optional[str]) -> Optional[str]:
        from ops_case_service.core.statuses import classify

        if value is not None and classify(value) is None:
            raise ValueError(f"Unknown status: {value}")
        return value


class CaseUpdatePayload(CamelModel):
    """Validated body sent to the upstream update endpoint."""

    status: str
    end_date: Optional[datetime] = None
    in_progress_at: Optional[datetime] = None


class NoticeCode(str, Enum):
    """Automatic corrections surfaced to the user."""

    STATUS_AUTO_COMPLETED = "STATUS_AUTO_COMPLETED"
    IN_PROGRESS_STAMPED = "IN_PROGRESS_STAMPED"
    END_DATE_STAMPED = "END_DATE_STAMPED"


class Notice(CamelModel):
    """User-facing notice about an automatic correction."""

    code: NoticeCode
    message: str


class TransitionResponse(CamelModel):
    """Result of an accepted status change."""

    payload: CaseUpdatePayload
    notices: List[Notice] = Field(default_factory=list)
    case: Optional[UnifiedCase] = None


class AdminEvaluationRequest(CamelModel):
    """Admin assessment of a case; all four dimensions are required."""

    difficulty: int
    estimated_time: int
    impact: int
    urgency: int

    def to_score(self) -> EvaluationScore:
        return EvaluationScore(
            difficulty=self.difficulty,
            estimated_time=self.estimated_time,
            impact=self.impact,
            urgency=self.urgency,
        )


class CaseListResponse(CamelModel):
    """Response containing a page of unified cases."""

    cases: List[UnifiedCase]
    total: int
    page: int
    page_size: int
    total_pages: int
    counts_by_type: Dict[str, int] = Field(default_factory=dict)
    failed_sources: List[CaseType] = Field(default_factory=list)
    error: Optional[str] = None


class CaseSummaryResponse(CamelModel):
    """Aggregate counters for the dashboard header."""

    total: int
    today: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    failed_sources: List[CaseType] = Field(default_factory=list)
    error: Optional[str] = None


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    service: str
    version: str
    upstream: str


class EvaluationResponse(CamelModel):
    """Result of a stored admin assessment."""

    case_type: CaseType
    case_id: str
    admin: EvaluationScore
    admin_total: Optional[int] = None
    combined_score: Optional[float] = None
    case: Optional[UnifiedCase] = None
