"""Unit tests for CaseManager against a scripted upstream

The upstream application is replaced by ``httpx.MockTransport``; the clock is
fixed at 2025-03-10 09:00 in the reference time zone.
"""

import json

import pytest

from ops_case_service.core.case_manager import UnsupportedReferenceError
from ops_case_service.core.evaluation import EvaluationError
from ops_case_service.core.sources import CASE_SOURCES, EMPLOYEES_PATH, EVALUATION_CONFIGS_PATH
from ops_case_service.core.timeline import TimelineErrorCode, TimelineValidationError
from ops_case_service.infrastructure.upstream import UpstreamError
from ops_case_service.models import (
    AdminEvaluationRequest,
    CaseFilterCriteria,
    CaseType,
    CaseView,
    NoticeCode,
    StatusChangeRequest,
)

from factories import NOW, at

INCIDENTS = "/api/incidents"
DELIVERIES = "/api/delivery-cases"


def incident(case_id, status="REPORTED", start="2025-03-05T08:00:00", **extra):
    return {"id": case_id, "title": f"Incident {case_id}", "status": status, "startDate": start, **extra}


@pytest.mark.unit
class TestAggregate:
    """Concurrent fetch of all families"""

    @pytest.mark.asyncio
    async def test_fetches_every_family(self, case_manager, upstream):
        upstream.serve_collections(
            {
                CaseType.INCIDENT: [incident("1")],
                CaseType.DELIVERY: [{"id": "d1", "startDate": "2025-03-07T08:00:00"}],
            }
        )

        result = await case_manager.aggregate()

        assert [(case.type, case.id) for case in result.cases] == [
            (CaseType.DELIVERY, "d1"),
            (CaseType.INCIDENT, "1"),
        ]
        assert result.failed_sources == []
        assert len(upstream.calls("GET")) == len(CASE_SOURCES)

    @pytest.mark.asyncio
    async def test_collection_requests_bypass_caches(self, case_manager, upstream):
        upstream.serve_collections()

        await case_manager.aggregate()

        request = upstream.calls("GET", INCIDENTS)[0]
        assert request.headers["Cache-Control"] == "no-cache"
        assert request.url.params["limit"] == "100"

    @pytest.mark.asyncio
    async def test_http_error_in_one_family_is_isolated(self, case_manager, upstream):
        upstream.serve_collections({CaseType.DELIVERY: [{"id": "d1"}]})
        upstream.fail("GET", INCIDENTS)

        result = await case_manager.aggregate()

        assert result.failed_sources == [CaseType.INCIDENT]
        assert [case.id for case in result.cases] == ["d1"]
        assert result.error is None

    @pytest.mark.asyncio
    async def test_connection_error_in_one_family_is_isolated(self, case_manager, upstream):
        upstream.serve_collections({CaseType.INCIDENT: [incident("1")]})
        upstream.refuse("GET", DELIVERIES)

        result = await case_manager.aggregate()

        assert result.failed_sources == [CaseType.DELIVERY]
        assert [case.id for case in result.cases] == ["1"]

    @pytest.mark.asyncio
    async def test_malformed_envelope_is_isolated(self, case_manager, upstream):
        upstream.serve_collections({CaseType.INCIDENT: [incident("1")]})
        upstream.add("GET", "/api/maintenance-cases", {"success": False, "error": "db down"})

        result = await case_manager.aggregate()

        assert result.failed_sources == [CaseType.MAINTENANCE]
        assert [case.id for case in result.cases] == ["1"]

    @pytest.mark.asyncio
    async def test_all_families_failing_is_reported(self, case_manager, upstream):
        for source in CASE_SOURCES.values():
            upstream.fail("GET", source.path, status_code=503)

        result = await case_manager.aggregate()

        assert result.total_failure is True
        assert result.cases == []
        assert result.error is not None
        assert set(result.failed_sources) == set(CaseType)


@pytest.mark.unit
class TestListing:

    @pytest.fixture(autouse=True)
    def collections(self, upstream):
        upstream.serve_collections(
            {
                CaseType.INCIDENT: [
                    incident(str(i), start=f"2025-03-0{1 + i % 9}T08:00:00") for i in range(20)
                ]
                + [incident("done", status="RESOLVED", start="2025-03-01T08:00:00")],
                CaseType.WARRANTY: [
                    {"id": "w1", "status": "COMPLETED", "startDate": "2025-03-10T07:00:00"},
                    {"id": "w2", "status": "COMPLETED", "startDate": "2025-03-09T07:00:00"},
                ],
            }
        )

    @pytest.mark.asyncio
    async def test_default_page(self, case_manager):
        response = await case_manager.list_cases()

        assert response.total == 23
        assert response.page == 1
        assert response.page_size == 15
        assert response.total_pages == 2
        assert len(response.cases) == 15
        assert response.counts_by_type["incident"] == 21
        assert response.counts_by_type["warranty"] == 2

    @pytest.mark.asyncio
    async def test_page_is_clamped(self, case_manager):
        response = await case_manager.list_cases(page=7, page_size=10)
        assert response.page == 3
        assert len(response.cases) == 3

    @pytest.mark.asyncio
    async def test_page_size_is_capped(self, case_manager):
        response = await case_manager.list_cases(page_size=1000)
        assert response.page_size == 100

    @pytest.mark.asyncio
    async def test_today_view(self, case_manager):
        response = await case_manager.list_cases(view=CaseView.TODAY, page_size=100)

        ids = {case.id for case in response.cases}
        assert "w1" in ids
        assert "w2" not in ids
        assert "done" not in ids
        assert response.total == 21

    @pytest.mark.asyncio
    async def test_filter_and_search(self, case_manager):
        criteria = CaseFilterCriteria(case_type=CaseType.WARRANTY)
        response = await case_manager.list_cases(criteria=criteria)
        assert {case.id for case in response.cases} == {"w1", "w2"}

        response = await case_manager.list_cases(search="incident 1")
        assert {case.id for case in response.cases} == {
            "1", "10", "11", "12", "13", "14", "15", "16", "17", "18", "19"
        }

    @pytest.mark.asyncio
    async def test_summary(self, case_manager):
        summary = await case_manager.summarize()

        assert summary.total == 23
        assert summary.today == 21
        assert summary.by_type["incident"] == 21
        assert summary.by_status == {
            "received": 20,
            "in_progress": 0,
            "completed": 3,
            "cancelled": 0,
            "unknown": 0,
        }


@pytest.mark.unit
class TestChangeStatus:
    """Validate first, then PUT"""

    DETAIL = f"{INCIDENTS}/42"

    @pytest.mark.asyncio
    async def test_rejected_change_never_reaches_upstream(self, case_manager, upstream):
        upstream.add("GET", self.DETAIL, {"success": True, "data": incident("42", start="2025-03-05T10:00:00")})

        with pytest.raises(TimelineValidationError) as exc_info:
            await case_manager.change_status(
                CaseType.INCIDENT, "42", StatusChangeRequest(end_date=at(5, 9))
            )

        assert exc_info.value.code is TimelineErrorCode.END_BEFORE_START
        assert upstream.calls("PUT") == []

    @pytest.mark.asyncio
    async def test_terminal_case_is_rejected(self, case_manager, upstream):
        upstream.add("GET", self.DETAIL, incident("42", status="RESOLVED"))

        with pytest.raises(TimelineValidationError) as exc_info:
            await case_manager.change_status(
                CaseType.INCIDENT, "42", StatusChangeRequest(status="INVESTIGATING")
            )

        assert exc_info.value.code is TimelineErrorCode.ALREADY_TERMINAL
        assert upstream.calls("PUT") == []

    @pytest.mark.asyncio
    async def test_accepted_change_sends_validated_payload(self, case_manager, upstream):
        upstream.add("GET", self.DETAIL, incident("42"))
        upstream.add(
            "PUT",
            self.DETAIL,
            {"success": True, "data": incident("42", status="INVESTIGATING", inProgressAt="2025-03-10T09:00:00")},
        )

        response = await case_manager.change_status(
            CaseType.INCIDENT, "42", StatusChangeRequest(status="INVESTIGATING")
        )

        body = json.loads(upstream.calls("PUT", self.DETAIL)[0].content)
        assert body["status"] == "INVESTIGATING"
        assert body["endDate"] is None
        assert body["inProgressAt"].startswith("2025-03-10T09:00:00")
        assert [notice.code for notice in response.notices] == [NoticeCode.IN_PROGRESS_STAMPED]
        assert response.case.status == "INVESTIGATING"
        assert response.case.in_progress_at == NOW

    @pytest.mark.asyncio
    async def test_end_date_auto_completes(self, case_manager, upstream):
        upstream.add("GET", self.DETAIL, incident("42", status="INVESTIGATING"))
        upstream.add("PUT", self.DETAIL, {"success": True})

        response = await case_manager.change_status(
            CaseType.INCIDENT, "42", StatusChangeRequest(end_date=at(6, 8))
        )

        body = json.loads(upstream.calls("PUT", self.DETAIL)[0].content)
        assert body["status"] == "COMPLETED"
        assert response.notices[0].code is NoticeCode.STATUS_AUTO_COMPLETED
        # Upstream answered without the record; the local copy is patched instead
        assert response.case.status == "COMPLETED"
        assert response.case.end_date == at(6, 8)

    @pytest.mark.asyncio
    async def test_missing_case(self, case_manager):
        with pytest.raises(UpstreamError) as exc_info:
            await case_manager.change_status(
                CaseType.INCIDENT, "404", StatusChangeRequest(status="CANCELLED")
            )
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_upstream_update_failure(self, case_manager, upstream):
        upstream.add("GET", self.DETAIL, incident("42"))
        upstream.fail("PUT", self.DETAIL)

        with pytest.raises(UpstreamError) as exc_info:
            await case_manager.change_status(
                CaseType.INCIDENT, "42", StatusChangeRequest(status="CANCELLED")
            )
        assert exc_info.value.status_code == 500


@pytest.mark.unit
class TestAdminEvaluation:

    EVALUATION = "/api/receiving-cases/7/evaluation"

    @pytest.fixture(autouse=True)
    def configs(self, upstream):
        upstream.add(
            "GET",
            EVALUATION_CONFIGS_PATH,
            {
                "success": True,
                "data": [
                    {
                        "type": "ADMIN",
                        "category": "DIFFICULTY",
                        "options": [{"label": "Dễ", "points": 1}, {"label": "Khó", "points": 3}],
                    }
                ],
            },
        )

    @pytest.mark.asyncio
    async def test_invalid_points_are_rejected_before_upstream(self, case_manager, upstream):
        request = AdminEvaluationRequest(difficulty=2, estimated_time=1, impact=1, urgency=1)

        with pytest.raises(EvaluationError):
            await case_manager.submit_admin_evaluation(CaseType.RECEIVING, "7", request)

        assert upstream.calls("PUT") == []

    @pytest.mark.asyncio
    async def test_valid_evaluation_is_stored(self, case_manager, upstream):
        upstream.add(
            "PUT",
            self.EVALUATION,
            {
                "success": True,
                "data": {
                    "id": "7",
                    "userDifficultyLevel": 1,
                    "userEstimatedTime": 2,
                    "userImpactLevel": 2,
                    "userUrgencyLevel": 2,
                    "adminDifficultyLevel": 3,
                    "adminEstimatedTime": 2,
                    "adminImpactLevel": 2,
                    "adminUrgencyLevel": 2,
                },
            },
        )
        request = AdminEvaluationRequest(difficulty=3, estimated_time=2, impact=2, urgency=2)

        response = await case_manager.submit_admin_evaluation(CaseType.RECEIVING, "7", request)

        body = json.loads(upstream.calls("PUT", self.EVALUATION)[0].content)
        assert body == {
            "adminDifficultyLevel": 3,
            "adminEstimatedTime": 2,
            "adminImpactLevel": 2,
            "adminUrgencyLevel": 2,
        }
        assert response.admin_total == 9
        assert response.combined_score == 8.2
        assert response.case.id == "7"

    @pytest.mark.asyncio
    async def test_catalog_is_cached(self, case_manager, upstream):
        upstream.add("PUT", self.EVALUATION, {"success": True})
        request = AdminEvaluationRequest(difficulty=1, estimated_time=1, impact=1, urgency=1)

        await case_manager.submit_admin_evaluation(CaseType.RECEIVING, "7", request)
        response = await case_manager.submit_admin_evaluation(CaseType.RECEIVING, "7", request)

        assert len(upstream.calls("GET", EVALUATION_CONFIGS_PATH)) == 1
        assert response.case is None
        assert response.combined_score is None


@pytest.mark.unit
class TestReferenceData:

    @pytest.mark.asyncio
    async def test_employees_are_cached_until_forced(self, case_manager, upstream):
        upstream.add("GET", EMPLOYEES_PATH, [{"id": "e1", "fullName": "Nguyễn An"}])

        first = await case_manager.get_employees()
        await case_manager.get_employees()
        await case_manager.get_employees(force_refresh=True)

        assert first == [{"id": "e1", "fullName": "Nguyễn An"}]
        assert len(upstream.calls("GET", EMPLOYEES_PATH)) == 2

    @pytest.mark.asyncio
    async def test_case_types_accept_envelopes(self, case_manager, upstream):
        upstream.add("GET", "/api/incident-types", {"success": True, "data": [{"id": 1, "name": "Mạng"}]})

        types = await case_manager.get_case_types(CaseType.INCIDENT)

        assert types == [{"id": 1, "name": "Mạng"}]

    @pytest.mark.asyncio
    async def test_families_without_type_list(self, case_manager):
        with pytest.raises(UnsupportedReferenceError):
            await case_manager.get_case_types(CaseType.DELIVERY)

    @pytest.mark.asyncio
    async def test_reference_failure_propagates(self, case_manager, upstream):
        upstream.fail("GET", "/api/partners/list", status_code=502)

        with pytest.raises(UpstreamError):
            await case_manager.get_partners()
