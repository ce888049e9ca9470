"""
tests/test_assessment_service.py
--------------------------------
Unit tests for services/api/assessment/assessment_service.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import pytest

from core.aggregator import AssessmentAggregator
from services.api.assessment import AssessmentService
from shared.errors import NotFoundError
from shared.models import ComplexityTier, IssueSeverity, IssueStatus, MigrationStatus, ObjectKind


@pytest.fixture
def service(storage) -> AssessmentService:
    return AssessmentService(storage, AssessmentAggregator(
        unsupported_types=["XML_PARSER"], legacy_functions=["DECODE", "SUBSTR"],
    ))


@pytest.fixture
def discovered(storage, project, make_object):
    objects = [
        make_object(
            ObjectKind.TRANSFORMATION, "xml_feed", project_id=project.id, subtype="XML_PARSER",
            status=MigrationStatus.MANUAL_REDESIGN, coverage=20,
        ),
        make_object(name="m_orders", project_id=project.id),
        make_object(name="m_customers", project_id=project.id),
    ]
    return storage.bulk_create_objects(project.id, objects)


class TestRunAssessment:
    def test_stores_result(self, service, storage, project, discovered) -> None:
        result = service.run_assessment(project.id)
        assert result.automation_coverage == 67
        assert result.result == ComplexityTier.MEDIUM
        assert result.estimated_effort == 6
        assert storage.list_assessments(project.id) == [result]

    def test_tracks_one_issue_per_finding(self, service, storage, project, discovered) -> None:
        service.run_assessment(project.id)
        issues = storage.list_issues(project.id)
        assert len(issues) == 1
        assert issues[0].object_id == discovered[0].id
        assert issues[0].severity == IssueSeverity.HIGH
        assert issues[0].status == IssueStatus.OPEN
        assert not issues[0].is_auto_fixable

    def test_direct_function_mapping_is_auto_fixable(self, service, storage, project, make_object) -> None:
        storage.bulk_create_objects(project.id, [
            make_object(name="m_trim", project_id=project.id, metadata={"expressions": ["SUBSTR(NAME, 1, 5)"]}),
            make_object(name="m_flag", project_id=project.id, metadata={"expressions": ["DECODE(F, 1, 'Y', 'N')"]}),
        ])
        service.run_assessment(project.id)
        fixable = {i.description: i.is_auto_fixable for i in storage.list_issues(project.id)}
        assert fixable == {
            "Complex expression requiring manual conversion: m_trim": True,
            "Complex expression requiring manual conversion: m_flag": False,
        }

    def test_history_accumulates(self, service, project, discovered) -> None:
        service.run_assessment(project.id)
        service.run_assessment(project.id)
        assert len(service.list_assessments(project.id)) == 2

    def test_project_without_objects(self, service, project) -> None:
        result = service.run_assessment(project.id)
        assert result.automation_coverage == 0
        assert result.result == ComplexityTier.SIMPLE

    def test_unknown_project(self, service) -> None:
        with pytest.raises(NotFoundError):
            service.run_assessment("missing")
