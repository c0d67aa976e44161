"""
Ring-relationship rules (QIE 201, 202, 205-208).

Every rule projects the exterior ring once and reuses its frame for all
other rings, so 2D coordinates of different rings are directly comparable.
Pairwise checks walk ``i < j`` over the ring tuple, each unordered pair once.
"""
from typing import List, Optional, Tuple

import numpy as np

from citygml_validate_polygon.contracts import (
    Point2,
    PolygonRings,
    RuleId,
    RuleOutcome,
    RuleStatus,
    ValidationConfig,
)
from citygml_validate_polygon.projection import project_ring
from citygml_validate_polygon.topology import (
    ring_inside,
    ring_outside,
    rings_equal,
    rings_intersect,
    winding,
)

RingPair = Tuple[List[Point2], List[Point2]]


def _points(ring_2d: np.ndarray) -> List[Point2]:
    return [(float(x), float(y)) for x, y in ring_2d]


def _project_all(rings: PolygonRings) -> Tuple[np.ndarray, List[np.ndarray]]:
    exterior_2d, frame = project_ring(rings.exterior)
    interiors_2d = [project_ring(r, frame)[0] for r in rings.interior]
    return exterior_2d, interiors_2d


def check_intersection_rings(
    rings: PolygonRings,
    config: Optional[ValidationConfig] = None,
) -> RuleOutcome:
    """Exterior/interior and interior/interior ring crossings."""
    if config is None:
        config = ValidationConfig()
    if not rings.interior:
        return RuleOutcome.ok(RuleId.INTERSECTION_RINGS)

    exterior_2d, interiors_2d = _project_all(rings)

    def _crosses(a: np.ndarray, b: np.ndarray) -> bool:
        return rings_intersect(
            a, b,
            method=config.intersection_method,
            tolerance=config.boundary_tolerance,
            inclusive=config.boundary_inclusive,
        )

    intersections: List[RingPair] = []
    for interior_2d in interiors_2d:
        if _crosses(exterior_2d, interior_2d):
            intersections.append((_points(exterior_2d), _points(interior_2d)))

    for i in range(len(interiors_2d)):
        for j in range(i + 1, len(interiors_2d)):
            if _crosses(interiors_2d[i], interiors_2d[j]):
                intersections.append((_points(interiors_2d[i]), _points(interiors_2d[j])))

    if not intersections:
        return RuleOutcome.ok(RuleId.INTERSECTION_RINGS)
    return RuleOutcome.violation(RuleId.INTERSECTION_RINGS, intersections)


def check_duplicated_rings(
    rings: PolygonRings,
    config: Optional[ValidationConfig] = None,
) -> RuleOutcome:
    """Identical rings among exterior and interiors."""
    if config is None:
        config = ValidationConfig()

    all_rings = rings.all_rings()
    _, frame = project_ring(all_rings[0])
    projected = [project_ring(r, frame)[0] for r in all_rings]

    duplicates: List[RingPair] = []
    for i in range(len(projected)):
        for j in range(i + 1, len(projected)):
            if rings_equal(projected[i], projected[j], config.equality_tolerance):
                duplicates.append((_points(projected[i]), _points(projected[j])))

    if not duplicates:
        return RuleOutcome.ok(RuleId.DUPLICATED_RINGS)
    return RuleOutcome.violation(RuleId.DUPLICATED_RINGS, duplicates)


def check_interior_disconnected(
    rings: PolygonRings,
    config: Optional[ValidationConfig] = None,
) -> RuleOutcome:
    # TODO: detect interiors splitting the polygon (e.g. a hole touching the
    # exterior at two points) by differencing the holes and counting parts.
    return RuleOutcome(
        rule_id=RuleId.INTERIOR_DISCONNECTED,
        status=RuleStatus.NOT_IMPLEMENTED,
        message=f"{RuleId.INTERIOR_DISCONNECTED.value}: not implemented",
    )


def check_hole_outside(
    rings: PolygonRings,
    config: Optional[ValidationConfig] = None,
) -> RuleOutcome:
    """Interior rings with no point inside the exterior ring.

    A partially outside ring is left to the intersection rule.
    """
    if config is None:
        config = ValidationConfig()
    if not rings.interior:
        return RuleOutcome.ok(RuleId.HOLE_OUTSIDE)

    exterior_2d, interiors_2d = _project_all(rings)

    outsides: List[RingPair] = []
    for interior_2d in interiors_2d:
        if ring_outside(
            exterior_2d, interior_2d,
            tolerance=config.boundary_tolerance,
            inclusive=config.boundary_inclusive,
        ):
            outsides.append((_points(exterior_2d), _points(interior_2d)))

    if not outsides:
        return RuleOutcome.ok(RuleId.HOLE_OUTSIDE)
    return RuleOutcome.violation(RuleId.HOLE_OUTSIDE, outsides)


def check_inner_rings_nested(
    rings: PolygonRings,
    config: Optional[ValidationConfig] = None,
) -> RuleOutcome:
    """Interior rings lying completely inside another interior ring.

    Both directions are tested for every pair; evidence is
    ``(container, nested)``.
    """
    if config is None:
        config = ValidationConfig()
    if len(rings.interior) < 2:
        return RuleOutcome.ok(RuleId.INNER_RINGS_NESTED)

    _, interiors_2d = _project_all(rings)

    def _inside(container: np.ndarray, candidate: np.ndarray) -> bool:
        return ring_inside(
            container, candidate,
            tolerance=config.boundary_tolerance,
            inclusive=config.boundary_inclusive,
        )

    nested: List[RingPair] = []
    for i in range(len(interiors_2d)):
        for j in range(i + 1, len(interiors_2d)):
            a, b = interiors_2d[i], interiors_2d[j]
            if _inside(a, b):
                nested.append((_points(a), _points(b)))
            if _inside(b, a):
                nested.append((_points(b), _points(a)))

    if not nested:
        return RuleOutcome.ok(RuleId.INNER_RINGS_NESTED)
    return RuleOutcome.violation(RuleId.INNER_RINGS_NESTED, nested)


def check_orientation_rings_same(
    rings: PolygonRings,
    config: Optional[ValidationConfig] = None,
) -> RuleOutcome:
    """Interior rings must wind opposite to the exterior ring."""
    if not rings.interior:
        return RuleOutcome.ok(RuleId.ORIENTATION_RINGS_SAME)

    exterior_2d, interiors_2d = _project_all(rings)
    exterior_winding = winding(exterior_2d)

    matches: List[RingPair] = []
    for interior_2d in interiors_2d:
        if winding(interior_2d) == exterior_winding:
            matches.append((_points(exterior_2d), _points(interior_2d)))

    if not matches:
        return RuleOutcome.ok(RuleId.ORIENTATION_RINGS_SAME)
    return RuleOutcome.violation(RuleId.ORIENTATION_RINGS_SAME, matches)
