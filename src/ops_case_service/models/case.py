"""Unified case data models.

Every upstream case family (internal, delivery, receiving, maintenance,
incident, warranty, deployment) is materialized into one ``UnifiedCase`` shape
so the dashboard, the filters and the timeline rules can treat them alike.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from .evaluation import CaseEvaluation

UNASSIGNED_HANDLER = "Chưa phân công"


class CaseType(str, Enum):
    """Structural case family tag."""

    INTERNAL = "internal"
    DELIVERY = "delivery"
    RECEIVING = "receiving"
    MAINTENANCE = "maintenance"
    INCIDENT = "incident"
    WARRANTY = "warranty"
    DEPLOYMENT = "deployment"


class StatusClass(str, Enum):
    """Canonical status buckets that literal status strings map onto."""

    RECEIVED = "received"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class UnifiedCase(CamelModel):
    """Normalized, type-agnostic case record."""

    id: str
    type: CaseType
    title: str = ""
    description: str = ""
    handler_name: str = UNASSIGNED_HANDLER
    handler_avatar: Optional[str] = None
    customer_name: str = ""
    status: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    in_progress_at: Optional[datetime] = None
    case_type: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    evaluation: Optional[CaseEvaluation] = Field(default=None)

    @computed_field  # type: ignore[misc]
    @property
    def status_class(self) -> Optional[StatusClass]:
        from ops_case_service.core.statuses import classify

        return classify(self.status)

    @property
    def key(self) -> Tuple[CaseType, str]:
        """Identity of a case; ids are only unique within their family."""
        return (self.type, self.id)
