"""Case normalizer.

Turns the seven upstream collection envelopes into one unified, sorted case
list plus the derived "today" view. A broken source only removes its own
family from the result.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional
from zoneinfo import ZoneInfo

from ops_case_service.core.clock import EPOCH_FLOOR, local_date
from ops_case_service.core.mappers import MappingContext
from ops_case_service.core.sources import CASE_SOURCES, get_source
from ops_case_service.core.statuses import is_closed
from ops_case_service.models.case import CaseType, UnifiedCase

logger = logging.getLogger(__name__)


class MalformedSourceError(ValueError):
    """An upstream envelope does not have the expected shape."""


@dataclass
class AggregationResult:
    """Unified case list with the per-source outcome."""

    cases: List[UnifiedCase] = field(default_factory=list)
    today: List[UnifiedCase] = field(default_factory=list)
    failed_sources: List[CaseType] = field(default_factory=list)

    @property
    def total_failure(self) -> bool:
        """Every source failed; an empty list must not be read as "no cases"."""
        return len(self.failed_sources) == len(CASE_SOURCES)

    @property
    def error(self) -> Optional[str]:
        if self.total_failure:
            return "Không thể tải danh sách cases. Vui lòng thử lại sau."
        return None


def extract_records(case_type: CaseType, payload: Any) -> List[Dict[str, Any]]:
    """Pull the raw record list out of a source envelope.

    Raises:
        MalformedSourceError: if the envelope or its collection key is missing
    """
    source = get_source(case_type)
    if not isinstance(payload, dict):
        raise MalformedSourceError(f"{case_type.value}: envelope is not an object")
    if source.requires_success and not payload.get("success"):
        raise MalformedSourceError(f"{case_type.value}: envelope not marked successful")

    records = payload.get(source.collection_key)
    if not isinstance(records, list):
        raise MalformedSourceError(
            f"{case_type.value}: '{source.collection_key}' is missing or not a list"
        )
    return records


def normalize_record(case_type: CaseType, raw: Dict[str, Any], ctx: MappingContext) -> UnifiedCase:
    return get_source(case_type).mapper(raw, ctx)


def normalize_source(case_type: CaseType, payload: Any, ctx: MappingContext) -> List[UnifiedCase]:
    """Normalize one envelope. Records that are not objects or lack an id are skipped."""
    cases = []
    for raw in extract_records(case_type, payload):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping non-object {case_type.value} record")
            continue
        try:
            cases.append(normalize_record(case_type, raw, ctx))
        except ValueError as e:
            logger.warning(f"Skipping {case_type.value} record: {e}")
    return cases


def sort_by_start_date(cases: Iterable[UnifiedCase]) -> List[UnifiedCase]:
    """Newest first; equal start dates keep their incoming order."""
    return sorted(cases, key=lambda case: case.start_date or EPOCH_FLOOR, reverse=True)


def is_today_case(case: UnifiedCase, today: datetime, tz: ZoneInfo) -> bool:
    if not is_closed(case.status):
        return True
    if case.start_date is None:
        return False
    return local_date(case.start_date, tz) == local_date(today, tz)


def today_view(cases: Iterable[UnifiedCase], now: datetime, tz: ZoneInfo) -> List[UnifiedCase]:
    """Open cases plus anything that started today (closed ones included)."""
    return [case for case in cases if is_today_case(case, now, tz)]


def normalize_payloads(
    payloads: Mapping[CaseType, Any],
    ctx: MappingContext,
    now: datetime,
    failed: Iterable[CaseType] = (),
) -> AggregationResult:
    """Merge every source envelope into one sorted list.

    ``payloads`` maps a case type to its decoded envelope; types that are
    absent or listed in ``failed`` contribute nothing and are reported.
    """
    failed_sources = list(dict.fromkeys(failed))
    merged: List[UnifiedCase] = []

    for case_type in CASE_SOURCES:
        if case_type in failed_sources:
            continue
        if case_type not in payloads:
            failed_sources.append(case_type)
            continue
        try:
            merged.extend(normalize_source(case_type, payloads[case_type], ctx))
        except MalformedSourceError as e:
            logger.warning(f"Source {case_type.value} dropped: {e}")
            failed_sources.append(case_type)
        except Exception:
            logger.exception(f"Failed to normalize {case_type.value} cases")
            failed_sources.append(case_type)

    cases = sort_by_start_date(merged)
    return AggregationResult(
        cases=cases,
        today=today_view(cases, now, ctx.tz),
        failed_sources=failed_sources,
    )
