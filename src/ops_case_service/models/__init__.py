"""Models package."""

from .case import UNASSIGNED_HANDLER, CaseType, StatusClass, UnifiedCase
from .evaluation import (
    CaseEvaluation,
    EvaluationCategory,
    EvaluationConfig,
    EvaluationOption,
    EvaluationScore,
    EvaluationType,
)
from .requests import (
    AdminEvaluationRequest,
    CaseFilterCriteria,
    CaseListResponse,
    CaseSummaryResponse,
    CaseUpdatePayload,
    CaseView,
    EvaluationResponse,
    HealthResponse,
    Notice,
    NoticeCode,
    StatusChangeRequest,
    TransitionResponse,
)

__all__ = [
    "UNASSIGNED_HANDLER",
    "CaseType",
    "StatusClass",
    "UnifiedCase",
    "CaseEvaluation",
    "EvaluationCategory",
    "EvaluationConfig",
    "EvaluationOption",
    "EvaluationScore",
    "EvaluationType",
    "AdminEvaluationRequest",
    "CaseFilterCriteria",
    "CaseListResponse",
    "CaseSummaryResponse",
    "CaseUpdatePayload",
    "CaseView",
    "EvaluationResponse",
    "HealthResponse",
    "Notice",
    "NoticeCode",
    "StatusChangeRequest",
    "TransitionResponse",
]
