"""
core/classifier.py
------------------
Migration-automation classification of discovered objects.

Design Decisions:
    * The heuristics live in a rule table (kind → predicate → status /
      coverage) evaluated first-match-wins, so the status/coverage band
      invariant can be checked mechanically by :func:`validate_rules`
      instead of by reading conditionals.
    * The set of unsupported transformation subtypes is configuration
      (``UNSUPPORTED_TRANSFORMATION_TYPES``), not code.
    * ``classify`` never raises. Unknown kinds get a neutral PARTIAL/50
      classification flagged ``low_confidence`` for the aggregator.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from config import CONFIG
from logger import get_logger
from shared.models import (
    ComplexityTier,
    MigrationStatus,
    ObjectKind,
    coverage_consistent,
)

log = get_logger(__name__)

# (subtype, unsupported subtypes) -> does the rule apply?
Predicate = Callable[[str | None, frozenset[str]], bool]


def unsupported_subtype(subtype: str | None, unsupported: frozenset[str]) -> bool:
    return bool(subtype) and subtype.strip().upper() in unsupported


def always(subtype: str | None, unsupported: frozenset[str]) -> bool:
    return True


@dataclass(frozen=True)
class ClassificationRule:
    """
    One row of the classification table.

    Attributes:
        name:      Identifier used in logs and tests.
        kind:      Object kind the rule applies to.
        predicate: Extra condition on the object's subtype.
        status:    Migration status assigned on match.
        coverage:  Automation coverage assigned on match.
        tier:      Optional structural tier override (transformations only).
    """
    name: str
    kind: ObjectKind
    predicate: Predicate
    status: MigrationStatus
    coverage: int
    tier: ComplexityTier | None = None


@dataclass(frozen=True)
class Classification:
    status: MigrationStatus
    coverage: int
    tier: ComplexityTier | None = None
    low_confidence: bool = False
    rule: str = ""


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "unsupported-transformation", ObjectKind.TRANSFORMATION, unsupported_subtype,
        MigrationStatus.MANUAL_REDESIGN, 20, ComplexityTier.COMPLEX,
    ),
    ClassificationRule(
        "transformation", ObjectKind.TRANSFORMATION, always, MigrationStatus.PARTIAL, 75,
    ),
    ClassificationRule("workflow", ObjectKind.WORKFLOW, always, MigrationStatus.FULLY_AUTO, 85),
    ClassificationRule("mapping", ObjectKind.MAPPING, always, MigrationStatus.FULLY_AUTO, 90),
    ClassificationRule("session", ObjectKind.SESSION, always, MigrationStatus.FULLY_AUTO, 95),
    ClassificationRule("source", ObjectKind.SOURCE, always, MigrationStatus.FULLY_AUTO, 95),
    ClassificationRule("target", ObjectKind.TARGET, always, MigrationStatus.FULLY_AUTO, 95),
)

UNRECOGNIZED = Classification(
    status=MigrationStatus.PARTIAL, coverage=50, low_confidence=True, rule="unrecognized-kind"
)


def validate_rules(rules: Iterable[ClassificationRule]) -> None:
    """
    Check every rule against the status/coverage bands.

    Raises:
        ValueError: If a rule would produce FULLY_AUTO below 80 or
            MANUAL_REDESIGN above 30 (or coverage outside 0-100).
    """
    for rule in rules:
        if not coverage_consistent(rule.status, rule.coverage):
            raise ValueError(
                f"Rule '{rule.name}' assigns coverage {rule.coverage} to {rule.status.value}"
            )


validate_rules(DEFAULT_RULES)


class ComplexityClassifier:
    """
    Assigns migration status and automation coverage per object.

    Example::

        classifier = ComplexityClassifier()
        result = classifier.classify(ObjectKind.TRANSFORMATION, "XML_PARSER")
        result.status     # MigrationStatus.MANUAL_REDESIGN
        result.coverage   # 20
    """

    def __init__(
        self,
        unsupported_types: Iterable[str] | None = None,
        rules: Iterable[ClassificationRule] | None = None,
    ) -> None:
        if unsupported_types is None:
            unsupported_types = CONFIG.classification.unsupported_transformation_types
        self.unsupported = frozenset(t.strip().upper() for t in unsupported_types)
        self.rules = tuple(rules) if rules is not None else DEFAULT_RULES
        validate_rules(self.rules)

    def is_unsupported(self, subtype: str | None) -> bool:
        return unsupported_subtype(subtype, self.unsupported)

    def classify(self, kind: ObjectKind | str, subtype: str | None = None) -> Classification:
        """
        Classify one object. Pure: the same input always yields the same output.

        Args:
            kind:    Object kind (enum or its name, any case).
            subtype: Transformation/source/target type, if known.
        """
        try:
            kind = kind if isinstance(kind, ObjectKind) else ObjectKind(str(kind).strip().upper())
        except ValueError:
            log.debug("Unrecognized object kind %r; using low-confidence default", kind)
            return UNRECOGNIZED

        for rule in self.rules:
            if rule.kind == kind and rule.predicate(subtype, self.unsupported):
                return Classification(
                    status=rule.status, coverage=rule.coverage, tier=rule.tier, rule=rule.name
                )
        return UNRECOGNIZED
