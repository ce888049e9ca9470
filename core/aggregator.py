"""
core/aggregator.py
------------------
Project-level complexity assessment from a project's discovered objects.

Algorithm:
    1. Every object starts worth one automation point, except objects
       whose subtype is unsupported (an issue is recorded instead).
    2. Every object whose expressions call a legacy-only function costs
       half a point and records an issue.
    3. Coverage is ``max(0, score / total) * 100`` rounded half up; tier follows from
       coverage (> 80 SIMPLE, > 50 MEDIUM, else COMPLEX).
    4. Effort is a flat ``hours_per_object`` per object, rounded up.

Design Decisions:
    * Zero objects: coverage 0, tier SIMPLE (there is nothing to migrate),
      effort 0, baseline confidence.
    * Confidence starts at the configured baseline (85) and is scaled by the
      share of objects whose classification was not low-confidence.
    * The aggregator only builds results; appending them to the assessment
      history is the caller's job. Input objects are never mutated.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from config import CONFIG
from core.function_catalog import get_function_mapping
from logger import get_logger
from shared.models import (
    AssessmentResult,
    AssessmentType,
    ComplexityTier,
    DiscoveredObject,
    IssueSeverity,
    IssueType,
)

log = get_logger(__name__)

UNSUPPORTED_ISSUE = "Unsupported transformation: {name} ({subtype})"
EXPRESSION_ISSUE = "Complex expression requiring manual conversion: {name}"


@dataclass(frozen=True)
class Finding:
    """One issue raised for one object during aggregation."""
    object_id: str
    object_name: str
    issue_type: IssueType
    severity: IssueSeverity
    description: str
    suggested_fix: str
    functions: tuple[str, ...] = ()
    subtype: str | None = None


@dataclass
class Assessment:
    """Aggregation output: the result record plus the per-object findings behind it."""
    result: AssessmentResult
    findings: list[Finding] = field(default_factory=list)


def tier_for_coverage(coverage: int) -> ComplexityTier:
    if coverage > 80:
        return ComplexityTier.SIMPLE
    if coverage > 50:
        return ComplexityTier.MEDIUM
    return ComplexityTier.COMPLEX


def _expressions_of(obj: DiscoveredObject) -> list[str]:
    raw = obj.metadata.get("expressions") if obj.metadata else None
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, (list, tuple)):
        return [str(expr) for expr in raw if expr]
    return []


class AssessmentAggregator:
    """
    Builds one :class:`AssessmentResult` per project.

    Example::

        aggregator = AssessmentAggregator()
        result = aggregator.aggregate(project_id, objects)
        result.result               # ComplexityTier.MEDIUM
        result.automation_coverage  # 67
    """

    def __init__(
        self,
        unsupported_types: Iterable[str] | None = None,
        legacy_functions: Iterable[str] | None = None,
        baseline_confidence: int | None = None,
        hours_per_object: float | None = None,
    ) -> None:
        settings = CONFIG.classification
        if unsupported_types is None:
            unsupported_types = settings.unsupported_transformation_types
        if legacy_functions is None:
            legacy_functions = settings.legacy_expression_functions
        self.unsupported = frozenset(t.strip().upper() for t in unsupported_types)
        self.legacy_functions = tuple(f.strip().upper() for f in legacy_functions if f.strip())
        self.baseline_confidence = (
            baseline_confidence if baseline_confidence is not None else settings.baseline_confidence
        )
        self.hours_per_object = (
            hours_per_object if hours_per_object is not None else settings.hours_per_object
        )
        self._function_call = (
            re.compile(
                r"\b(" + "|".join(map(re.escape, self.legacy_functions)) + r")\s*\(",
                re.IGNORECASE,
            )
            if self.legacy_functions else None
        )

    # ------------------------------------------------------------------
    # Detection helpers
    # ------------------------------------------------------------------

    def is_unsupported(self, obj: DiscoveredObject) -> bool:
        return bool(obj.subtype) and obj.subtype.strip().upper() in self.unsupported

    def legacy_functions_in(self, obj: DiscoveredObject) -> tuple[str, ...]:
        """Legacy-only functions called by the object's expressions, in first-seen order."""
        if self._function_call is None:
            return ()
        found: list[str] = []
        for expr in _expressions_of(obj):
            for match in self._function_call.finditer(expr):
                name = match.group(1).upper()
                if name not in found:
                    found.append(name)
        return tuple(found)

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def aggregate(self, project_id: str, objects: Sequence[DiscoveredObject]) -> AssessmentResult:
        return self.assess(project_id, objects).result

    def assess(self, project_id: str, objects: Sequence[DiscoveredObject]) -> Assessment:
        """
        Run the full assessment for one project.

        Args:
            project_id: Project being assessed.
            objects:    All currently discovered objects of the project.

        Returns:
            The immutable result plus the findings it was built from.
        """
        total = len(objects)
        score = 0.0
        unsupported: list[Finding] = []
        expressions: list[Finding] = []

        for obj in objects:
            if self.is_unsupported(obj):
                unsupported.append(self._unsupported_finding(obj))
            else:
                score += 1

        for obj in objects:
            functions = self.legacy_functions_in(obj)
            if functions:
                expressions.append(self._expression_finding(obj, functions))
                score -= 0.5

        coverage = math.floor(max(0.0, score / total) * 100 + 0.5) if total else 0
        tier = tier_for_coverage(coverage) if total else ComplexityTier.SIMPLE
        findings = unsupported + expressions

        result = AssessmentResult(
            project_id=project_id,
            assessment_type=AssessmentType.COMPLEXITY,
            result=tier,
            confidence=self._confidence(objects),
            automation_coverage=coverage,
            recommendations=self._recommendations(unsupported, expressions),
            issues=[finding.description for finding in findings],
            estimated_effort=math.ceil(total * self.hours_per_object),
        )
        log.info(
            "Assessed project %s: %d object(s), coverage %d%%, tier %s, %d issue(s)",
            project_id, total, coverage, tier.value, len(findings),
        )
        return Assessment(result=result, findings=findings)

    def _confidence(self, objects: Sequence[DiscoveredObject]) -> int:
        total = len(objects)
        low = sum(1 for obj in objects if obj.low_confidence)
        if total == 0 or low == 0:
            return self.baseline_confidence
        return round(self.baseline_confidence * (total - low) / total)

    @staticmethod
    def _unsupported_finding(obj: DiscoveredObject) -> Finding:
        return Finding(
            object_id=obj.id,
            object_name=obj.name,
            issue_type=IssueType.UNSUPPORTED_FUNCTION,
            severity=IssueSeverity.HIGH,
            description=UNSUPPORTED_ISSUE.format(name=obj.name, subtype=obj.subtype),
            suggested_fix=f"Redesign {obj.name} with a native component of the target platform",
            subtype=obj.subtype,
        )

    @staticmethod
    def _expression_finding(obj: DiscoveredObject, functions: tuple[str, ...]) -> Finding:
        fixes = []
        for name in functions:
            mapping = get_function_mapping(name)
            if mapping:
                fixes.append(f"Rewrite {name} as {mapping.target_equivalent}: {mapping.syntax}")
            else:
                fixes.append(f"Rewrite {name} by hand")
        return Finding(
            object_id=obj.id,
            object_name=obj.name,
            issue_type=IssueType.UNSUPPORTED_FUNCTION,
            severity=IssueSeverity.MEDIUM,
            description=EXPRESSION_ISSUE.format(name=obj.name),
            suggested_fix="; ".join(fixes),
            functions=functions,
        )

    @staticmethod
    def _recommendations(unsupported: list[Finding], expressions: list[Finding]) -> list[str]:
        """One recommendation per distinct finding, most severe first."""
        recommendations: list[str] = []

        by_subtype: dict[str, int] = {}
        for finding in unsupported:
            by_subtype[finding.subtype or "unknown"] = by_subtype.get(finding.subtype or "unknown", 0) + 1
        for subtype, count in sorted(by_subtype.items(), key=lambda item: (-item[1], item[0])):
            recommendations.append(
                f"Redesign {count} {subtype} transformation(s) manually; no automated equivalent exists"
            )

        by_function: dict[str, int] = {}
        for finding in expressions:
            for name in finding.functions:
                by_function[name] = by_function.get(name, 0) + 1
        for name, count in sorted(by_function.items(), key=lambda item: (-item[1], item[0])):
            mapping = get_function_mapping(name)
            if mapping:
                recommendations.append(
                    f"Convert {name} in {count} object(s) to {mapping.target_equivalent}: {mapping.notes}"
                )
            else:
                recommendations.append(f"Convert {name} in {count} object(s) by hand")

        if not recommendations:
            recommendations.append("No blocking issues found; objects can be converted automatically")
        return recommendations
