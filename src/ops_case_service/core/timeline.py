"""Case status and timeline validation.

Runs before any update reaches the upstream application. A rejected change
raises ``TimelineValidationError`` and nothing is sent; an accepted change
yields the exact payload to send plus the notices to show the user about
automatic corrections.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional
from zoneinfo import ZoneInfo

from ops_case_service.core.clock import Clock, ensure_aware, reference_tz, system_clock
from ops_case_service.core.statuses import CLOSED_CLASSES, canonical_status, classify
from ops_case_service.models.case import StatusClass, UnifiedCase
from ops_case_service.models.requests import (
    CaseUpdatePayload,
    Notice,
    NoticeCode,
    StatusChangeRequest,
)

logger = logging.getLogger(__name__)


class TimelineErrorCode(str, Enum):
    """Reasons a status change is rejected."""

    END_BEFORE_START = "END_BEFORE_START"
    END_BEFORE_IN_PROGRESS = "END_BEFORE_IN_PROGRESS"
    ALREADY_TERMINAL = "ALREADY_TERMINAL"


ERROR_MESSAGES = {
    TimelineErrorCode.END_BEFORE_START: "Thời gian kết thúc phải lớn hơn thời gian bắt đầu!",
    TimelineErrorCode.END_BEFORE_IN_PROGRESS: "Thời gian kết thúc phải lớn hơn thời gian đang xử lý!",
    TimelineErrorCode.ALREADY_TERMINAL: "Case đã kết thúc, không thể thay đổi trạng thái!",
}

NOTICE_MESSAGES = {
    NoticeCode.STATUS_AUTO_COMPLETED: (
        'Trạng thái đã được tự động chuyển thành "Hoàn thành" vì đã có ngày kết thúc'
    ),
    NoticeCode.IN_PROGRESS_STAMPED: "Thời gian đang xử lý đã được tự động cập nhật",
    NoticeCode.END_DATE_STAMPED: "Thời gian kết thúc đã được tự động cập nhật",
}


class TimelineValidationError(Exception):
    """A status change violates the case timeline rules."""

    def __init__(self, code: TimelineErrorCode):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        super().__init__(self.message)


@dataclass(frozen=True)
class CaseTimeline:
    """Current lifecycle state of a case."""

    status: str
    start_date: Optional[datetime] = None
    in_progress_at: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_case(cls, case: UnifiedCase) -> "CaseTimeline":
        return cls(
            status=case.status,
            start_date=case.start_date,
            in_progress_at=case.in_progress_at,
            end_date=case.end_date,
        )


@dataclass
class TransitionResult:
    """Accepted change: payload to persist and notices to display."""

    payload: CaseUpdatePayload
    notices: List[Notice] = field(default_factory=list)

    @property
    def notice_codes(self) -> List[NoticeCode]:
        return [notice.code for notice in self.notices]


def _notice(code: NoticeCode) -> Notice:
    return Notice(code=code, message=NOTICE_MESSAGES[code])


def _aware(value: Optional[datetime], tz: ZoneInfo) -> Optional[datetime]:
    return ensure_aware(value, tz) if value is not None else None


def validate_transition(
    current: CaseTimeline,
    change: StatusChangeRequest,
    clock: Optional[Clock] = None,
    tz: Optional[ZoneInfo] = None,
) -> TransitionResult:
    """Validate a requested status/end-time change.

    Args:
        current: Lifecycle state as currently stored
        change: Requested status and/or end time
        clock: Source of "now" for the in-progress and end stamps
        tz: Zone used to read naive timestamps

    Returns:
        TransitionResult with the payload to send upstream

    Raises:
        TimelineValidationError: if the change must be rejected
    """
    tz = tz or reference_tz()
    clock = clock or system_clock(tz)

    current_class = classify(current.status)
    if current_class in CLOSED_CLASSES:
        logger.info(f"Rejected change on closed case (status={current.status})")
        raise TimelineValidationError(TimelineErrorCode.ALREADY_TERMINAL)

    target_status = change.status or current.status
    target_class = classify(target_status)
    start_date = _aware(current.start_date, tz)
    in_progress_at = _aware(current.in_progress_at, tz)
    end_date = _aware(change.end_date, tz)
    notices: List[Notice] = []

    if target_class is StatusClass.CANCELLED:
        payload = CaseUpdatePayload(
            status=target_status, end_date=end_date, in_progress_at=in_progress_at
        )
        return TransitionResult(payload=payload, notices=notices)

    if end_date is None and target_class is StatusClass.COMPLETED:
        end_date = ensure_aware(clock(), tz)
        notices.append(_notice(NoticeCode.END_DATE_STAMPED))

    if end_date is not None:
        if start_date is not None and end_date <= start_date:
            logger.info(f"Rejected end date {end_date.isoformat()} before start")
            raise TimelineValidationError(TimelineErrorCode.END_BEFORE_START)
        if in_progress_at is not None and end_date <= in_progress_at:
            logger.info(f"Rejected end date {end_date.isoformat()} before in-progress stamp")
            raise TimelineValidationError(TimelineErrorCode.END_BEFORE_IN_PROGRESS)
        if target_class is not StatusClass.COMPLETED:
            target_status = canonical_status(StatusClass.COMPLETED)
            target_class = StatusClass.COMPLETED
            notices.append(_notice(NoticeCode.STATUS_AUTO_COMPLETED))

    if (
        target_class is StatusClass.IN_PROGRESS
        and current_class is not StatusClass.IN_PROGRESS
        and in_progress_at is None
    ):
        in_progress_at = ensure_aware(clock(), tz)
        notices.append(_notice(NoticeCode.IN_PROGRESS_STAMPED))

    payload = CaseUpdatePayload(
        status=target_status, end_date=end_date, in_progress_at=in_progress_at
    )
    return TransitionResult(payload=payload, notices=notices)
