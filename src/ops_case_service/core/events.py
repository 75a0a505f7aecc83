"""List transitions applied after a successful round trip to upstream."""

from dataclasses import dataclass
from typing import List, Sequence, Union

from ops_case_service.models.case import CaseType, UnifiedCase


@dataclass(frozen=True)
class CaseCreated:
    case: UnifiedCase


@dataclass(frozen=True)
class CaseUpdated:
    case: UnifiedCase


@dataclass(frozen=True)
class CaseDeleted:
    case_type: CaseType
    case_id: str


CaseEvent = Union[CaseCreated, CaseUpdated, CaseDeleted]


def apply_event(cases: Sequence[UnifiedCase], event: CaseEvent) -> List[UnifiedCase]:
    """Return a new list with ``event`` applied; ``cases`` is not modified.

    Created cases go to the front (newest first). Updates replace the case
    with the same (type, id) in place. Updates and deletes for a case that
    is not in the list leave it unchanged.
    """
    if isinstance(event, CaseCreated):
        return [event.case] + [case for case in cases if case.key != event.case.key]

    if isinstance(event, CaseUpdated):
        key = event.case.key
        return [event.case if case.key == key else case for case in cases]

    if isinstance(event, CaseDeleted):
        key = (CaseType(event.case_type), event.case_id)
        return [case for case in cases if case.key != key]

    raise TypeError(f"Unsupported case event: {type(event).__name__}")
