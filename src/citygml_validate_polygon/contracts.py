"""Contracts for CityGML polygon validation.

Rings, the polygon ring set, planes, projection frames, the QIE rule
catalogue and the per-rule report returned by the validator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

Point2 = Tuple[float, float]
Point3 = Tuple[float, float, float]


# ─── Errors ──────────────────────────────────────────────────────────────────


class GeometryError(ValueError):
    """Geometry that a rule cannot evaluate."""

    kind = "GeometryError"


class DegenerateRing(GeometryError):
    """Ring without three non-collinear points."""

    kind = "DegenerateRing"


class DegenerateNormal(GeometryError):
    """Three collinear points passed to the plane fitter."""

    kind = "DegenerateNormal"


class TriangulationFailed(GeometryError):
    """The triangulator could not triangulate a ring."""

    kind = "TriangulationFailed"


# ─── Configuration ───────────────────────────────────────────────────────────

PLANE_FIT_STRATEGIES = ("three_point", "least_squares")
INTERSECTION_METHODS = ("sampling", "exact")


@dataclass(frozen=True)
class ValidationConfig:
    """Tolerances and strategies for polygon validation."""

    distance_tolerance_m: float = 0.001  # 1mm
    angle_tolerance_deg: float = 1.0
    plane_fit: str = "three_point"
    intersection_method: str = "sampling"
    boundary_inclusive: bool = True
    boundary_tolerance: float = 1e-9
    equality_tolerance: float = 1e-9
    parallel: bool = False
    max_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if self.plane_fit not in PLANE_FIT_STRATEGIES:
            raise ValueError(
                f"Unknown plane_fit {self.plane_fit!r}, expected one of {PLANE_FIT_STRATEGIES}"
            )
        if self.intersection_method not in INTERSECTION_METHODS:
            raise ValueError(
                f"Unknown intersection_method {self.intersection_method!r}, "
                f"expected one of {INTERSECTION_METHODS}"
            )
        for name in (
            "distance_tolerance_m",
            "angle_tolerance_deg",
            "boundary_tolerance",
            "equality_tolerance",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")


# ─── Geometry ────────────────────────────────────────────────────────────────


def _coerce_points(values: Iterable[Any]) -> List[Point3]:
    if isinstance(values, str):
        values = values.split()
    values = list(values)
    if values and not isinstance(values[0], (list, tuple, np.ndarray)):
        # flat gml:posList style sequence
        if len(values) % 3 != 0:
            raise ValueError(
                f"Flat coordinate list length {len(values)} is not a multiple of 3"
            )
        values = [values[i:i + 3] for i in range(0, len(values), 3)]
    points = []
    for value in values:
        if len(value) != 3:
            raise ValueError(f"Expected 3D coordinates, got {value!r}")
        points.append((float(value[0]), float(value[1]), float(value[2])))
    return points


@dataclass(frozen=True)
class Ring:
    """Closed ring of 3D points, stored without the closing duplicate."""

    points: Tuple[Point3, ...]

    @classmethod
    def from_points(cls, values: Iterable[Any]) -> "Ring":
        """Build a ring from triples, a flat ``x y z x y z ...`` sequence or
        a whitespace separated ``gml:posList`` string.

        An explicit closing point equal to the first one is dropped.
        """
        points = _coerce_points(values)
        if len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]
        if len(set(points)) < 3:
            raise DegenerateRing(
                f"Ring needs at least 3 distinct points, got {len(set(points))}"
            )
        return cls(points=tuple(points))

    def as_array(self) -> np.ndarray:
        return np.asarray(self.points, dtype=float)

    def __len__(self) -> int:
        return len(self.points)


def _as_ring(value: Any) -> Ring:
    if isinstance(value, Ring):
        return value
    return Ring.from_points(value)


@dataclass(frozen=True)
class PolygonRings:
    """Exterior ring plus ordered interior rings of one polygon."""

    exterior: Ring
    interior: Tuple[Ring, ...] = ()

    @classmethod
    def from_boundaries(cls, boundaries: Mapping[str, Sequence[Any]]) -> "PolygonRings":
        """Build from ``{"exterior": [ring], "interior": [ring, ...]}``."""
        exterior = list(boundaries.get("exterior") or [])
        if len(exterior) != 1:
            raise ValueError(
                f"Polygon needs exactly one exterior ring, got {len(exterior)}"
            )
        interior = boundaries.get("interior") or []
        return cls(
            exterior=_as_ring(exterior[0]),
            interior=tuple(_as_ring(r) for r in interior),
        )

    def all_rings(self) -> Tuple[Ring, ...]:
        return (self.exterior,) + tuple(self.interior)


@dataclass(frozen=True)
class Plane:
    """Plane with unit normal such that ``normal . p + offset == 0``."""

    normal: np.ndarray  # (3,) unit normal
    offset: float

    def signed_distance_to(self, point: Sequence[float]) -> float:
        return float(np.dot(self.normal, np.asarray(point, dtype=float)) + self.offset)

    def distance_to(self, point: Sequence[float]) -> float:
        return abs(self.signed_distance_to(point))


@dataclass(frozen=True)
class ProjectionFrame:
    """Shared 2D basis (origin + in-plane axes) for comparing rings."""

    origin: np.ndarray  # (3,)
    axis_u: np.ndarray  # (3,)
    axis_v: np.ndarray  # (3,)
    normal: np.ndarray  # (3,)

    def project(self, points: np.ndarray) -> np.ndarray:
        """Project ``(n, 3)`` points to ``(n, 2)`` frame coordinates."""
        d = np.asarray(points, dtype=float) - self.origin
        return np.column_stack([d @ self.axis_u, d @ self.axis_v])


# ─── Rule catalogue ──────────────────────────────────────────────────────────


class RuleId(str, Enum):
    """QIE polygon error identifiers, in catalogue order."""

    INTERSECTION_RINGS = "GE_P_INTERSECTION_RINGS"
    DUPLICATED_RINGS = "GE_P_DUPLICATED_RINGS"
    NON_PLANAR_POLYGON_DISTANCE_PLANE = "GE_P_NON_PLANAR_POLYGON_DISTANCE_PLANE"
    NON_PLANAR_POLYGON_NORMALS_DEVIATION = "GE_P_NON_PLANAR_POLYGON_NORMALS_DEVIATION"
    INTERIOR_DISCONNECTED = "GE_P_INTERIOR_DISCONNECTED"
    HOLE_OUTSIDE = "GE_P_HOLE_OUTSIDE"
    INNER_RINGS_NESTED = "GE_P_INNER_RINGS_NESTED"
    ORIENTATION_RINGS_SAME = "GE_P_ORIENTATION_RINGS_SAME"

    @property
    def code(self) -> int:
        return _RULE_CODES[self]

    @property
    def message(self) -> str:
        return _RULE_MESSAGES[self]


_RULE_CODES: Dict[RuleId, int] = {
    RuleId.INTERSECTION_RINGS: 201,
    RuleId.DUPLICATED_RINGS: 202,
    RuleId.NON_PLANAR_POLYGON_DISTANCE_PLANE: 203,
    RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION: 204,
    RuleId.INTERIOR_DISCONNECTED: 205,
    RuleId.HOLE_OUTSIDE: 206,
    RuleId.INNER_RINGS_NESTED: 207,
    RuleId.ORIENTATION_RINGS_SAME: 208,
}

_RULE_MESSAGES: Dict[RuleId, str] = {
    RuleId.INTERSECTION_RINGS: "Two or more rings intersect",
    RuleId.DUPLICATED_RINGS: "Two or more rings are identical",
    RuleId.NON_PLANAR_POLYGON_DISTANCE_PLANE: "A polygon must be planar",
    RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION: (
        "The orientation of the normal of each triangle must not deviate "
        "more than the angle tolerance"
    ),
    RuleId.INTERIOR_DISCONNECTED: "The interior of a polygon must be connected (not implemented)",
    RuleId.HOLE_OUTSIDE: (
        "One or more interior rings are located completely outside the exterior ring"
    ),
    RuleId.INNER_RINGS_NESTED: (
        "One or more interior rings are located completely inside another interior ring"
    ),
    RuleId.ORIENTATION_RINGS_SAME: (
        "The interior rings must have the opposite direction when viewed "
        "from a given point-of-view"
    ),
}


class RuleStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"
    NOT_IMPLEMENTED = "not_implemented"


def _jsonable(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (np.floating, np.integer)):
        return value.item()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class RuleOutcome:
    """Outcome of a single rule: pass, violation, local error or stub."""

    rule_id: RuleId
    status: RuleStatus
    message: str = ""
    evidence: Tuple[Any, ...] = ()
    error_kind: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status in (RuleStatus.PASS, RuleStatus.NOT_IMPLEMENTED)

    @classmethod
    def ok(cls, rule_id: RuleId) -> "RuleOutcome":
        return cls(rule_id=rule_id, status=RuleStatus.PASS)

    @classmethod
    def violation(cls, rule_id: RuleId, evidence: Sequence[Any]) -> "RuleOutcome":
        return cls(
            rule_id=rule_id,
            status=RuleStatus.FAIL,
            message=f"{rule_id.value}: {rule_id.message}",
            evidence=tuple(evidence),
        )

    @classmethod
    def failure(
        cls,
        rule_id: RuleId,
        error: GeometryError,
        evidence: Sequence[Any] = (),
    ) -> "RuleOutcome":
        return cls(
            rule_id=rule_id,
            status=RuleStatus.ERROR,
            message=f"{rule_id.value}: {error}",
            evidence=tuple(evidence),
            error_kind=error.kind,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id.value,
            "code": self.rule_id.code,
            "status": self.status.value,
            "message": self.message,
            "evidence": _jsonable(list(self.evidence)),
            "error_kind": self.error_kind,
        }


@dataclass(frozen=True)
class ValidationReport:
    """Ordered per-rule outcomes, one slot per catalogue rule."""

    outcomes: Tuple[RuleOutcome, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return all(o.passed for o in self.outcomes)

    @property
    def violations(self) -> List[RuleOutcome]:
        return [o for o in self.outcomes if o.status == RuleStatus.FAIL]

    @property
    def errors(self) -> List[RuleOutcome]:
        return [o for o in self.outcomes if o.status == RuleStatus.ERROR]

    def outcome(self, rule_id: RuleId) -> RuleOutcome:
        for o in self.outcomes:
            if o.rule_id == rule_id:
                return o
        raise KeyError(rule_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.is_valid,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
