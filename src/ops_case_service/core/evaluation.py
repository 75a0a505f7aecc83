"""Case evaluation scoring.

A case carries two independent assessments: the handler's self assessment
(difficulty, estimated time, impact, urgency and work form) and the admin
assessment (the same four dimensions without work form). Legal point values
come from the externally managed evaluation configuration, loaded into an
``EvaluationCatalog``.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from ops_case_service.models.evaluation import (
    CaseEvaluation,
    EvaluationCategory,
    EvaluationConfig,
    EvaluationOption,
    EvaluationScore,
    EvaluationType,
)

logger = logging.getLogger(__name__)

NOT_EVALUATED = "Chưa đánh giá"

USER_WEIGHT = 0.4
ADMIN_WEIGHT = 0.6

CORE_DIMENSIONS = ("difficulty", "estimated_time", "impact", "urgency")

CATEGORY_FIELDS: Dict[EvaluationCategory, str] = {
    EvaluationCategory.DIFFICULTY: "difficulty",
    EvaluationCategory.TIME: "estimated_time",
    EvaluationCategory.IMPACT: "impact",
    EvaluationCategory.URGENCY: "urgency",
    EvaluationCategory.FORM: "form",
}

# Upstream record field names per assessment side
USER_FIELDS = {
    "difficulty": "userDifficultyLevel",
    "estimated_time": "userEstimatedTime",
    "impact": "userImpactLevel",
    "urgency": "userUrgencyLevel",
    "form": "userFormScore",
}
ADMIN_FIELDS = {
    "difficulty": "adminDifficultyLevel",
    "estimated_time": "adminEstimatedTime",
    "impact": "adminImpactLevel",
    "urgency": "adminUrgencyLevel",
}


class EvaluationError(ValueError):
    """Submitted points are not part of the configured option set."""

    def __init__(self, category: EvaluationCategory, points: int):
        self.category = category
        self.points = points
        super().__init__(f"{points} is not a configured {category.value} option")


def _points(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _read_score(raw: Dict[str, Any], fields: Dict[str, str]) -> EvaluationScore:
    return EvaluationScore(**{name: _points(raw.get(key)) for name, key in fields.items()})


def extract_evaluation(raw: Dict[str, Any]) -> Optional[CaseEvaluation]:
    """Read both assessments from a raw case record.

    Returns None when the record carries no evaluation fields at all.
    """
    keys = list(USER_FIELDS.values()) + list(ADMIN_FIELDS.values())
    if not any(key in raw for key in keys):
        return None
    return CaseEvaluation(
        user=_read_score(raw, USER_FIELDS),
        admin=_read_score(raw, ADMIN_FIELDS),
    )


def _has_core_dimensions(score: Optional[EvaluationScore]) -> bool:
    if score is None:
        return False
    return all(getattr(score, name) is not None for name in CORE_DIMENSIONS)


def is_admin_evaluated(score: Optional[EvaluationScore]) -> bool:
    """An admin assessment counts once all four dimensions are set."""
    return _has_core_dimensions(score)


def total_score(score: Optional[EvaluationScore]) -> Optional[int]:
    """Sum of the assessed points.

    ``None`` means "not yet evaluated" and is distinct from a score of zero.
    """
    if not _has_core_dimensions(score):
        return None
    total = sum(getattr(score, name) for name in CORE_DIMENSIONS)
    if score.form is not None:
        total += score.form
    return total


def combined_score(evaluation: Optional[CaseEvaluation]) -> Optional[float]:
    """Weighted blend of the user (40%) and admin (60%) totals."""
    if evaluation is None:
        return None
    user_total = total_score(evaluation.user)
    admin_total = total_score(evaluation.admin)
    if user_total is None or admin_total is None:
        return None
    return round(user_total * USER_WEIGHT + admin_total * ADMIN_WEIGHT, 1)


def score_display(score: Optional[EvaluationScore]) -> str:
    total = total_score(score)
    return NOT_EVALUATED if total is None else str(total)


def admin_evaluation_payload(score: EvaluationScore) -> Dict[str, Optional[int]]:
    """Request body for the upstream admin evaluation endpoint."""
    return {key: getattr(score, name) for name, key in ADMIN_FIELDS.items()}


class EvaluationCatalog:
    """Lookup table of configured evaluation options."""

    def __init__(self, configs: Iterable[EvaluationConfig] = ()):
        self._options: Dict[Tuple[EvaluationType, EvaluationCategory], List[EvaluationOption]] = {}
        for config in configs:
            self._options[(config.type, config.category)] = sorted(
                config.options, key=lambda option: option.order
            )

    @classmethod
    def from_payload(cls, payload: Any) -> "EvaluationCatalog":
        """Build from the ``/api/evaluation-configs`` envelope (or a bare list)."""
        items = payload.get("data") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            logger.warning("Evaluation config payload has no config list")
            return cls()

        configs = []
        for item in items:
            try:
                configs.append(EvaluationConfig.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed evaluation config: {e}")
        return cls(configs)

    def __len__(self) -> int:
        return len(self._options)

    def configs(self) -> List[EvaluationConfig]:
        return [
            EvaluationConfig(type=evaluation_type, category=category, options=list(options))
            for (evaluation_type, category), options in self._options.items()
        ]

    def options(
        self, evaluation_type: EvaluationType, category: EvaluationCategory
    ) -> List[EvaluationOption]:
        return list(self._options.get((evaluation_type, category), []))

    def label_for(
        self,
        evaluation_type: EvaluationType,
        category: EvaluationCategory,
        points: Optional[int],
    ) -> str:
        if points is None:
            return NOT_EVALUATED
        for option in self._options.get((evaluation_type, category), []):
            if option.points == points:
                return option.label
        return NOT_EVALUATED

    def validate(self, evaluation_type: EvaluationType, score: EvaluationScore) -> None:
        """Reject points that are not offered for their dimension.

        Dimensions without a configured option set are not checked.
        """
        for category, name in CATEGORY_FIELDS.items():
            if category is EvaluationCategory.FORM and evaluation_type is EvaluationType.ADMIN:
                continue
            points = getattr(score, name)
            if points is None:
                continue
            options = self._options.get((evaluation_type, category))
            if not options:
                continue
            if all(option.points != points for option in options):
                raise EvaluationError(category, points)
