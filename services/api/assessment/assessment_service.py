"""
Assessment service: runs the project-level complexity assessment.
"""
from typing import List, Optional

from core.aggregator import AssessmentAggregator, Finding
from core.function_catalog import get_function_mapping
from shared.errors import NotFoundError
from shared.models import AssessmentResult, FunctionComplexity, MigrationIssue
from shared.utils import setup_logger

logger = setup_logger(__name__)


class AssessmentService:
    """Builds, stores and reads assessment results and their issues."""

    def __init__(self, storage, aggregator: Optional[AssessmentAggregator] = None):
        """
        Initialize assessment service.

        Args:
            storage: Storage facade
            aggregator: Assessment aggregator
        """
        self.storage = storage
        self.aggregator = aggregator or AssessmentAggregator()

    def run_assessment(self, project_id: str) -> AssessmentResult:
        """
        Assess a project's currently discovered objects.

        The result is appended to the project's assessment history and one
        open issue is tracked per finding.

        Args:
            project_id: Project to assess

        Returns:
            The stored assessment result
        """
        if self.storage.get_project(project_id) is None:
            raise NotFoundError("Migration project", project_id)

        objects = self.storage.list_objects(project_id)
        assessment = self.aggregator.assess(project_id, objects)
        result = self.storage.create_assessment(assessment.result)

        for finding in assessment.findings:
            self.storage.create_issue(self._issue_for(project_id, finding))

        logger.info(
            f"Assessment stored for project {project_id}: {result.result.value}, "
            f"{result.automation_coverage}% coverage, {len(assessment.findings)} issue(s)"
        )
        return result

    def list_assessments(self, project_id: str) -> List[AssessmentResult]:
        if self.storage.get_project(project_id) is None:
            raise NotFoundError("Migration project", project_id)
        return self.storage.list_assessments(project_id)

    @staticmethod
    def _issue_for(project_id: str, finding: Finding) -> MigrationIssue:
        # Auto-fixable only when every legacy function has a direct equivalent
        mappings = [get_function_mapping(name) for name in finding.functions]
        auto_fixable = bool(mappings) and all(
            m is not None and m.complexity == FunctionComplexity.DIRECT for m in mappings
        )
        return MigrationIssue(
            project_id=project_id,
            object_id=finding.object_id,
            issue_type=finding.issue_type,
            severity=finding.severity,
            description=finding.description,
            suggested_fix=finding.suggested_fix,
            is_auto_fixable=auto_fixable
        )
