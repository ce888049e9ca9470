"""
core/normalizer.py
------------------
Conversion of adapter-specific raw records into canonical
:class:`shared.models.DiscoveredObject` instances.

Design Decisions:
    * Field mapping tolerates both record shapes the adapters emit:
      camelCase JSON from the REST service and tokenized CLI lines.
    * Normalization is pure. It never contacts the adapter or storage,
      so the sync monitor can reuse it to build diff snapshots.
    * Classification (core/classifier.py) is applied per record here, so
      every object leaves the normalizer fully classified.
"""
from __future__ import annotations

from typing import Any

from core.classifier import ComplexityClassifier
from logger import get_logger
from shared.models import (
    ComplexityTier,
    DiscoveredObject,
    ObjectKind,
    RawDiscoveryPayload,
)

log = get_logger(__name__)

# Kinds whose tier is computed from their sub-structure
_STRUCTURED_KINDS = (ObjectKind.WORKFLOW, ObjectKind.MAPPING)

# Kinds with no sub-structure
_FLAT_KINDS = (ObjectKind.SESSION, ObjectKind.SOURCE, ObjectKind.TARGET)


def _as_list(value: Any) -> list[str]:
    """Coerce a list, comma-separated string, or missing value into a list of names."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return []


def _first(record: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def complexity_of(record: dict[str, Any]) -> ComplexityTier:
    """
    Structural tier from the number of sub-components.

    ``transformations + sessions + dependencies``: 0 is SIMPLE, up to 5 is
    MEDIUM, anything above is COMPLEX.
    """
    count = (
        len(_as_list(record.get("transformations")))
        + len(_as_list(record.get("sessions")))
        + len(_as_list(record.get("dependencies")))
    )
    if count == 0:
        return ComplexityTier.SIMPLE
    if count <= 5:
        return ComplexityTier.MEDIUM
    return ComplexityTier.COMPLEX


class ObjectNormalizer:
    """Maps a :class:`RawDiscoveryPayload` onto canonical objects."""

    def __init__(self, classifier: ComplexityClassifier | None = None) -> None:
        self.classifier = classifier or ComplexityClassifier()

    def normalize(self, payload: RawDiscoveryPayload, project_id: str) -> list[DiscoveredObject]:
        """
        Normalize and classify every record of a payload.

        Args:
            payload:    Raw adapter output.
            project_id: Project the objects will belong to.

        Returns:
            Objects in kind order (workflows, mappings, sessions,
            transformations, sources, targets), input order within a kind.
        """
        objects: list[DiscoveredObject] = []
        for kind in ObjectKind:
            for record in payload.records_for(kind):
                obj = self.normalize_record(kind, record, project_id)
                if obj is not None:
                    objects.append(obj)
        dropped = payload.total - len(objects)
        if dropped:
            log.warning("Dropped %d unusable record(s) during normalization", dropped)
        return objects

    def normalize_record(
        self, kind: ObjectKind, record: dict[str, Any], project_id: str
    ) -> DiscoveredObject | None:
        """Normalize one record; returns None when the record has no name."""
        name = _first(record, "name", "objectName")
        if not name:
            log.debug("Skipping %s record without a name: %r", kind.value.lower(), record)
            return None

        subtype = self._subtype_of(kind, record)
        classification = self.classifier.classify(kind, subtype)

        if kind in _STRUCTURED_KINDS:
            tier = complexity_of(record)
        elif kind in _FLAT_KINDS:
            tier = ComplexityTier.SIMPLE
        else:
            tier = classification.tier or ComplexityTier.MEDIUM

        return DiscoveredObject(
            project_id=project_id,
            name=name,
            folder=_first(record, "folder", "folderName"),
            kind=kind,
            subtype=subtype,
            complexity=tier,
            migration_status=classification.status,
            automation_coverage=classification.coverage,
            dependencies=self._dependencies_of(kind, record),
            metadata=dict(record),
            low_confidence=classification.low_confidence,
        )

    @staticmethod
    def _subtype_of(kind: ObjectKind, record: dict[str, Any]) -> str | None:
        if kind == ObjectKind.SESSION:
            return _first(record, "sessionType") or None
        if kind in (ObjectKind.TRANSFORMATION, ObjectKind.SOURCE, ObjectKind.TARGET):
            return _first(record, "type", "subtype") or None
        return None

    @staticmethod
    def _dependencies_of(kind: ObjectKind, record: dict[str, Any]) -> list[str]:
        if kind in _STRUCTURED_KINDS:
            return _as_list(record.get("dependencies"))
        if kind in (ObjectKind.SESSION, ObjectKind.TRANSFORMATION):
            mapping_name = _first(record, "mappingName")
            return [mapping_name] if mapping_name else []
        return []
