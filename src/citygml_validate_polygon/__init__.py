"""Public API for CityGML polygon validation."""

from citygml_validate_polygon.contracts import (
    DegenerateNormal,
    DegenerateRing,
    GeometryError,
    Plane,
    PolygonRings,
    ProjectionFrame,
    Ring,
    RuleId,
    RuleOutcome,
    RuleStatus,
    TriangulationFailed,
    ValidationConfig,
    ValidationReport,
)
from citygml_validate_polygon.validator import RULES, report_to_json, validate_polygon

__all__ = [
    "DegenerateNormal",
    "DegenerateRing",
    "GeometryError",
    "Plane",
    "PolygonRings",
    "ProjectionFrame",
    "RULES",
    "Ring",
    "RuleId",
    "RuleOutcome",
    "RuleStatus",
    "TriangulationFailed",
    "ValidationConfig",
    "ValidationReport",
    "report_to_json",
    "validate_polygon",
]
