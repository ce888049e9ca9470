"""
tests/test_normalizer.py
------------------------
Unit tests for core/normalizer.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import pytest

from core.classifier import ComplexityClassifier
from core.normalizer import ObjectNormalizer, complexity_of
from shared.models import (
    ComplexityTier,
    MigrationStatus,
    ObjectKind,
    RawDiscoveryPayload,
)


@pytest.fixture
def normalizer() -> ObjectNormalizer:
    return ObjectNormalizer(ComplexityClassifier(unsupported_types=["XML_PARSER"]))


class TestComplexityOf:
    def test_no_components_is_simple(self) -> None:
        assert complexity_of({}) == ComplexityTier.SIMPLE

    def test_up_to_five_components_is_medium(self) -> None:
        record = {"transformations": ["a", "b"], "sessions": ["s"], "dependencies": ["d1", "d2"]}
        assert complexity_of(record) == ComplexityTier.MEDIUM

    def test_more_than_five_components_is_complex(self) -> None:
        record = {"transformations": [f"t{i}" for i in range(6)]}
        assert complexity_of(record) == ComplexityTier.COMPLEX

    def test_comma_separated_strings_are_counted(self) -> None:
        assert complexity_of({"sessions": "s1, s2"}) == ComplexityTier.MEDIUM


class TestNormalizeRecord:
    def test_workflow(self, normalizer: ObjectNormalizer) -> None:
        record = {"name": "wf_load", "folder": "SALES", "sessions": ["s1", "s2"], "dependencies": ["m_orders"]}
        obj = normalizer.normalize_record(ObjectKind.WORKFLOW, record, "p1")
        assert obj.name == "wf_load"
        assert obj.folder == "SALES"
        assert obj.complexity == ComplexityTier.MEDIUM
        assert obj.migration_status == MigrationStatus.FULLY_AUTO
        assert obj.automation_coverage == 85
        assert obj.dependencies == ["m_orders"]
        assert obj.metadata == record

    def test_cli_shaped_workflow_is_simple(self, normalizer: ObjectNormalizer) -> None:
        record = {"name": "wf_load", "folder": "SALES", "isValid": True, "sessions": [], "dependencies": []}
        obj = normalizer.normalize_record(ObjectKind.WORKFLOW, record, "p1")
        assert obj.complexity == ComplexityTier.SIMPLE

    def test_unsupported_transformation(self, normalizer: ObjectNormalizer) -> None:
        record = {"name": "xml_in", "folder": "SALES", "type": "XML_PARSER", "mappingName": "m_orders"}
        obj = normalizer.normalize_record(ObjectKind.TRANSFORMATION, record, "p1")
        assert obj.subtype == "XML_PARSER"
        assert obj.migration_status == MigrationStatus.MANUAL_REDESIGN
        assert obj.automation_coverage == 20
        assert obj.complexity == ComplexityTier.COMPLEX
        assert obj.dependencies == ["m_orders"]

    def test_supported_transformation_is_medium(self, normalizer: ObjectNormalizer) -> None:
        record = {"name": "exp_calc", "folder": "SALES", "type": "Expression"}
        obj = normalizer.normalize_record(ObjectKind.TRANSFORMATION, record, "p1")
        assert obj.migration_status == MigrationStatus.PARTIAL
        assert obj.complexity == ComplexityTier.MEDIUM
        assert obj.dependencies == []

    def test_session_subtype_and_dependency(self, normalizer: ObjectNormalizer) -> None:
        record = {"name": "s_m_orders", "folder": "SALES", "mappingName": "m_orders", "sessionType": "session"}
        obj = normalizer.normalize_record(ObjectKind.SESSION, record, "p1")
        assert obj.subtype == "session"
        assert obj.dependencies == ["m_orders"]
        assert obj.complexity == ComplexityTier.SIMPLE

    def test_source_has_no_dependencies(self, normalizer: ObjectNormalizer) -> None:
        record = {"name": "ORDERS", "folder": "SALES", "type": "Oracle", "connectionName": "ORA_SRC"}
        obj = normalizer.normalize_record(ObjectKind.SOURCE, record, "p1")
        assert obj.subtype == "Oracle"
        assert obj.dependencies == []
        assert obj.automation_coverage == 95

    def test_alternative_name_keys(self, normalizer: ObjectNormalizer) -> None:
        obj = normalizer.normalize_record(ObjectKind.MAPPING, {"objectName": "m_x", "folderName": "HR"}, "p1")
        assert obj.name == "m_x"
        assert obj.folder == "HR"

    def test_record_without_name_is_skipped(self, normalizer: ObjectNormalizer) -> None:
        assert normalizer.normalize_record(ObjectKind.MAPPING, {"folder": "SALES"}, "p1") is None


class TestNormalizePayload:
    def test_kind_order_and_count(self, normalizer: ObjectNormalizer, sample_payload: RawDiscoveryPayload) -> None:
        objects = normalizer.normalize(sample_payload, "p1")
        assert [o.kind for o in objects] == [
            ObjectKind.WORKFLOW, ObjectKind.MAPPING, ObjectKind.MAPPING, ObjectKind.TRANSFORMATION,
        ]
        assert all(o.project_id == "p1" for o in objects)

    def test_unusable_records_are_dropped(self, normalizer: ObjectNormalizer) -> None:
        payload = RawDiscoveryPayload(mappings=[{"name": "m_ok"}, {"name": ""}, {}])
        objects = normalizer.normalize(payload, "p1")
        assert [o.name for o in objects] == ["m_ok"]

    def test_empty_payload(self, normalizer: ObjectNormalizer) -> None:
        assert normalizer.normalize(RawDiscoveryPayload(), "p1") == []

    def test_every_object_respects_coverage_bands(self, normalizer: ObjectNormalizer, sample_payload: RawDiscoveryPayload) -> None:
        for obj in normalizer.normalize(sample_payload, "p1"):
            if obj.migration_status == MigrationStatus.FULLY_AUTO:
                assert obj.automation_coverage >= 80
            if obj.migration_status == MigrationStatus.MANUAL_REDESIGN:
                assert obj.automation_coverage <= 30
