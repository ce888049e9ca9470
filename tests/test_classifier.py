"""
tests/test_classifier.py
------------------------
Unit tests for core/classifier.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import pytest

from core.classifier import (
    DEFAULT_RULES,
    ClassificationRule,
    ComplexityClassifier,
    always,
    validate_rules,
)
from shared.models import ComplexityTier, MigrationStatus, ObjectKind, coverage_consistent


@pytest.fixture
def classifier() -> ComplexityClassifier:
    return ComplexityClassifier(unsupported_types=["XML_PARSER", "MQSERIES"])


class TestClassifyByKind:
    @pytest.mark.parametrize("kind, coverage", [
        (ObjectKind.WORKFLOW, 85),
        (ObjectKind.MAPPING, 90),
        (ObjectKind.SESSION, 95),
        (ObjectKind.SOURCE, 95),
        (ObjectKind.TARGET, 95),
    ])
    def test_fully_automatic_kinds(self, classifier: ComplexityClassifier, kind: ObjectKind, coverage: int) -> None:
        result = classifier.classify(kind)
        assert result.status == MigrationStatus.FULLY_AUTO
        assert result.coverage == coverage
        assert not result.low_confidence

    def test_supported_transformation_is_partial(self, classifier: ComplexityClassifier) -> None:
        result = classifier.classify(ObjectKind.TRANSFORMATION, "Expression")
        assert result.status == MigrationStatus.PARTIAL
        assert result.coverage == 75
        assert result.tier is None

    def test_unsupported_transformation_needs_redesign(self, classifier: ComplexityClassifier) -> None:
        result = classifier.classify(ObjectKind.TRANSFORMATION, "XML_PARSER")
        assert result.status == MigrationStatus.MANUAL_REDESIGN
        assert result.coverage == 20
        assert result.tier == ComplexityTier.COMPLEX
        assert result.rule == "unsupported-transformation"

    def test_subtype_match_ignores_case_and_whitespace(self, classifier: ComplexityClassifier) -> None:
        result = classifier.classify(ObjectKind.TRANSFORMATION, "  mqseries ")
        assert result.status == MigrationStatus.MANUAL_REDESIGN

    def test_unsupported_subtype_only_matters_for_transformations(self, classifier: ComplexityClassifier) -> None:
        result = classifier.classify(ObjectKind.SOURCE, "XML_PARSER")
        assert result.status == MigrationStatus.FULLY_AUTO

    def test_kind_given_as_string(self, classifier: ComplexityClassifier) -> None:
        assert classifier.classify("mapping").coverage == 90


class TestUnrecognizedKinds:
    def test_unknown_kind_is_low_confidence_partial(self, classifier: ComplexityClassifier) -> None:
        result = classifier.classify("MAPPLET")
        assert result.status == MigrationStatus.PARTIAL
        assert result.coverage == 50
        assert result.low_confidence

    def test_kind_without_rule_is_low_confidence(self) -> None:
        rules = [ClassificationRule("mapping", ObjectKind.MAPPING, always, MigrationStatus.FULLY_AUTO, 90)]
        classifier = ComplexityClassifier(unsupported_types=[], rules=rules)
        assert classifier.classify(ObjectKind.WORKFLOW).low_confidence


class TestCoverageBands:
    def test_classification_is_idempotent(self, classifier: ComplexityClassifier) -> None:
        first = classifier.classify(ObjectKind.TRANSFORMATION, "XML_PARSER")
        second = classifier.classify(ObjectKind.TRANSFORMATION, "XML_PARSER")
        assert first == second

    def test_default_rules_respect_coverage_bands(self) -> None:
        for rule in DEFAULT_RULES:
            assert coverage_consistent(rule.status, rule.coverage), rule.name

    def test_fully_auto_below_band_rejected(self) -> None:
        bad = ClassificationRule("bad", ObjectKind.WORKFLOW, always, MigrationStatus.FULLY_AUTO, 70)
        with pytest.raises(ValueError, match="bad"):
            validate_rules([bad])

    def test_manual_redesign_above_band_rejected(self) -> None:
        bad = ClassificationRule("bad", ObjectKind.TRANSFORMATION, always, MigrationStatus.MANUAL_REDESIGN, 40)
        with pytest.raises(ValueError):
            ComplexityClassifier(unsupported_types=[], rules=[bad])

    def test_unsupported_set_comes_from_constructor(self) -> None:
        classifier = ComplexityClassifier(unsupported_types=["java"])
        assert classifier.is_unsupported("Java")
        assert not classifier.is_unsupported("XML_PARSER")
