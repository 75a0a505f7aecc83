"""Unit tests for list updates after successful round trips"""

import pytest

from ops_case_service.core.events import CaseCreated, CaseDeleted, CaseUpdated, apply_event
from ops_case_service.models import CaseType

from factories import build_case


@pytest.fixture
def cases():
    return [
        build_case("1", CaseType.INCIDENT, status="RECEIVED"),
        build_case("1", CaseType.DELIVERY, status="RECEIVED"),
        build_case("2", CaseType.INCIDENT, status="PROCESSING"),
    ]


def keys(items):
    return [(case.type.value, case.id) for case in items]


@pytest.mark.unit
class TestApplyEvent:

    def test_created_case_is_prepended(self, cases):
        new = build_case("3", CaseType.WARRANTY)
        result = apply_event(cases, CaseCreated(new))
        assert keys(result) == [
            ("warranty", "3"),
            ("incident", "1"),
            ("delivery", "1"),
            ("incident", "2"),
        ]

    def test_created_case_replaces_existing_copy(self, cases):
        again = build_case("2", CaseType.INCIDENT, status="COMPLETED")
        result = apply_event(cases, CaseCreated(again))
        assert keys(result) == [("incident", "2"), ("incident", "1"), ("delivery", "1")]

    def test_update_replaces_in_place(self, cases):
        updated = build_case("1", CaseType.DELIVERY, status="COMPLETED")
        result = apply_event(cases, CaseUpdated(updated))

        assert keys(result) == keys(cases)
        assert result[1].status == "COMPLETED"
        assert result[0].status == "RECEIVED"

    def test_update_of_unknown_case_is_a_no_op(self, cases):
        result = apply_event(cases, CaseUpdated(build_case("99", CaseType.INCIDENT)))
        assert result == cases

    def test_delete_matches_type_and_id(self, cases):
        result = apply_event(cases, CaseDeleted(CaseType.INCIDENT, "1"))
        assert keys(result) == [("delivery", "1"), ("incident", "2")]

    def test_delete_of_unknown_case_is_a_no_op(self, cases):
        assert apply_event(cases, CaseDeleted(CaseType.WARRANTY, "1")) == cases

    def test_input_is_not_mutated(self, cases):
        before = list(cases)
        apply_event(cases, CaseDeleted(CaseType.INCIDENT, "2"))
        apply_event(cases, CaseUpdated(build_case("1", CaseType.INCIDENT, status="COMPLETED")))
        assert all(a is b for a, b in zip(cases, before))
        assert len(cases) == 3
        assert cases[0].status == "RECEIVED"

    def test_unknown_event_type(self, cases):
        with pytest.raises(TypeError):
            apply_event(cases, object())
