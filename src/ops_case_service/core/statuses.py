"""Status equivalence classes.

Upstream case families spell the same lifecycle state differently
(``RESOLVED`` for incidents, ``COMPLETED`` elsewhere, Vietnamese labels in
older rows). All status comparisons go through this table.
"""

import unicodedata
from typing import Dict, FrozenSet, Optional, Union

from ops_case_service.models.case import StatusClass

STATUS_EQUIVALENCE: Dict[StatusClass, FrozenSet[str]] = {
    StatusClass.RECEIVED: frozenset({"RECEIVED", "REPORTED", "Tiếp nhận"}),
    StatusClass.IN_PROGRESS: frozenset(
        {"IN_PROGRESS", "INVESTIGATING", "PROCESSING", "Đang xử lý"}
    ),
    StatusClass.COMPLETED: frozenset({"COMPLETED", "RESOLVED", "Hoàn thành"}),
    StatusClass.CANCELLED: frozenset({"CANCELLED", "Hủy"}),
}

CANONICAL_STATUS: Dict[StatusClass, str] = {
    StatusClass.RECEIVED: "RECEIVED",
    StatusClass.IN_PROGRESS: "IN_PROGRESS",
    StatusClass.COMPLETED: "COMPLETED",
    StatusClass.CANCELLED: "CANCELLED",
}

STATUS_LABELS: Dict[StatusClass, str] = {
    StatusClass.RECEIVED: "Tiếp nhận",
    StatusClass.IN_PROGRESS: "Đang xử lý",
    StatusClass.COMPLETED: "Hoàn thành",
    StatusClass.CANCELLED: "Hủy",
}

CLOSED_CLASSES = frozenset({StatusClass.COMPLETED, StatusClass.CANCELLED})


def _fold(literal: str) -> str:
    return unicodedata.normalize("NFC", literal.strip()).upper()


_LOOKUP: Dict[str, StatusClass] = {
    _fold(literal): status_class
    for status_class, literals in STATUS_EQUIVALENCE.items()
    for literal in literals
}


def classify(status: Optional[str]) -> Optional[StatusClass]:
    """Return the equivalence class of a literal status, or None if unknown."""
    if not status:
        return None
    return _LOOKUP.get(_fold(status))


def matches_class(status: Optional[str], status_class: Union[StatusClass, str]) -> bool:
    return classify(status) is StatusClass(status_class)


def is_closed(status: Optional[str]) -> bool:
    """True for completed or cancelled cases."""
    return classify(status) in CLOSED_CLASSES


def canonical_status(status_class: Union[StatusClass, str]) -> str:
    return CANONICAL_STATUS[StatusClass(status_class)]


def status_label(status: Optional[str]) -> str:
    """Vietnamese display label; unknown literals are shown as-is."""
    status_class = classify(status)
    if status_class is None:
        return status or ""
    return STATUS_LABELS[status_class]
