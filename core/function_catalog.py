"""
core/function_catalog.py
------------------------
Reference table of legacy expression functions and their equivalents on the
target cloud platform. Served read-only by the API and used by the
assessment aggregator to word its recommendations.
"""
from __future__ import annotations

from shared.models import FunctionComplexity, FunctionMapping

FUNCTION_MAPPINGS: tuple[FunctionMapping, ...] = (
    FunctionMapping(
        id="1",
        legacy_function="DECODE",
        target_equivalent="IIF",
        syntax="IIF(condition, true_value, false_value)",
        examples=[{
            "legacy": 'DECODE(STATUS, 1, "Active", 2, "Inactive", "Unknown")',
            "target": 'IIF(STATUS = 1, "Active", IIF(STATUS = 2, "Inactive", "Unknown"))',
        }],
        complexity=FunctionComplexity.MODIFIED,
        notes="DECODE requires conversion to nested IIF statements",
    ),
    FunctionMapping(
        id="2",
        legacy_function="SUBSTR",
        target_equivalent="SUBSTRING",
        syntax="SUBSTRING(string, start_position, length)",
        examples=[{"legacy": "SUBSTR(NAME, 1, 5)", "target": "SUBSTRING(NAME, 1, 5)"}],
        complexity=FunctionComplexity.DIRECT,
        notes="Direct mapping with same functionality",
    ),
    FunctionMapping(
        id="3",
        legacy_function="INSTR",
        target_equivalent="CHARINDEX",
        syntax="CHARINDEX(search_string, source_string)",
        examples=[{"legacy": 'INSTR(EMAIL, "@")', "target": 'CHARINDEX("@", EMAIL)'}],
        complexity=FunctionComplexity.MODIFIED,
        notes="Parameter order is reversed on the target platform",
    ),
)

_BY_NAME = {mapping.legacy_function: mapping for mapping in FUNCTION_MAPPINGS}


def list_function_mappings() -> list[FunctionMapping]:
    return list(FUNCTION_MAPPINGS)


def get_function_mapping(legacy_function: str) -> FunctionMapping | None:
    """Case-insensitive lookup by legacy function name."""
    return _BY_NAME.get(legacy_function.strip().upper())
