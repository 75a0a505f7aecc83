"""Evaluation (self/admin assessment) models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EvaluationType(str, Enum):
    """Who submitted the assessment."""

    USER = "USER"
    ADMIN = "ADMIN"


class EvaluationCategory(str, Enum):
    """Assessed dimension."""

    DIFFICULTY = "DIFFICULTY"
    TIME = "TIME"
    IMPACT = "IMPACT"
    URGENCY = "URGENCY"
    FORM = "FORM"


class EvaluationOption(BaseModel):
    """One selectable value of a dimension."""

    model_config = ConfigDict(extra="ignore")

    label: str
    points: int
    order: int = 0


class EvaluationConfig(BaseModel):
    """Configured option set for one (type, category) pair."""

    model_config = ConfigDict(extra="ignore")

    type: EvaluationType
    category: EvaluationCategory
    options: List[EvaluationOption] = Field(default_factory=list)


class EvaluationScore(BaseModel):
    """Point values of one assessment. Missing dimensions stay ``None``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    difficulty: Optional[int] = None
    estimated_time: Optional[int] = None
    impact: Optional[int] = None
    urgency: Optional[int] = None
    form: Optional[int] = None


class CaseEvaluation(BaseModel):
    """User-submitted and admin-submitted scores of a case."""

    user: EvaluationScore = Field(default_factory=EvaluationScore)
    admin: EvaluationScore = Field(default_factory=EvaluationScore)
