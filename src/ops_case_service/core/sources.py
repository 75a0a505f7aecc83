"""Registry of upstream case sources.

One entry per case family: where its collection lives, which envelope key
carries the records (the upstream naming is inconsistent) and which mapper
turns a record into a UnifiedCase. Adding a family means adding an entry.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict

from ops_case_service.core import mappers
from ops_case_service.models.case import CaseType, UnifiedCase

Mapper = Callable[[Dict[str, Any], mappers.MappingContext], UnifiedCase]


@dataclass(frozen=True)
class CaseSource:
    """How to fetch and map one case family."""

    case_type: CaseType
    path: str
    collection_key: str
    mapper: Mapper
    requires_success: bool = False

    def detail_path(self, case_id: str) -> str:
        return f"{self.path}/{case_id}"

    def evaluation_path(self, case_id: str) -> str:
        return f"{self.path}/{case_id}/evaluation"


CASE_SOURCES: Dict[CaseType, CaseSource] = {
    source.case_type: source
    for source in (
        CaseSource(CaseType.INTERNAL, "/api/internal-cases", "data", mappers.map_internal),
        CaseSource(CaseType.DELIVERY, "/api/delivery-cases", "deliveryCases", mappers.map_delivery),
        CaseSource(CaseType.RECEIVING, "/api/receiving-cases", "receivingCases", mappers.map_receiving),
        CaseSource(
            CaseType.MAINTENANCE,
            "/api/maintenance-cases",
            "data",
            mappers.map_maintenance,
            requires_success=True,
        ),
        CaseSource(CaseType.INCIDENT, "/api/incidents", "data", mappers.map_incident),
        CaseSource(CaseType.WARRANTY, "/api/warranties", "data", mappers.map_warranty),
        CaseSource(CaseType.DEPLOYMENT, "/api/deployment-cases", "data", mappers.map_deployment),
    )
}


def get_source(case_type: CaseType) -> CaseSource:
    return CASE_SOURCES[CaseType(case_type)]


# Reference lists served by the upstream application
EMPLOYEES_PATH = "/api/employees/list"
PARTNERS_PATH = "/api/partners/list"
EVALUATION_CONFIGS_PATH = "/api/evaluation-configs"

# Configurable subtype lists; delivery and receiving have none
CASE_TYPE_LIST_PATHS: Dict[CaseType, str] = {
    CaseType.INTERNAL: "/api/case-types",
    CaseType.MAINTENANCE: "/api/maintenance-types",
    CaseType.INCIDENT: "/api/incident-types",
    CaseType.WARRANTY: "/api/warranty-types",
    CaseType.DEPLOYMENT: "/api/deployment-types",
}
