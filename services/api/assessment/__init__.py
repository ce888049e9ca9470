"""Project assessment service."""
from services.api.assessment.assessment_service import AssessmentService

__all__ = ['AssessmentService']
