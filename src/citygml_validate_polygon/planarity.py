"""
Planarity rules (QIE 203 and 204).

203 measures every point's distance to a plane fitted on the exterior ring.
204 triangulates each ring and compares triangle normals, which catches
folded rings whose points all stay close to a mis-fitted plane.
"""
import logging
from typing import List, Optional, Tuple

from citygml_validate_polygon.contracts import (
    PolygonRings,
    RuleId,
    RuleOutcome,
    TriangulationFailed,
    ValidationConfig,
)
from citygml_validate_polygon.plane import (
    angle_between_deg,
    fit_plane,
    fit_plane_least_squares,
    unit_normal,
)
from citygml_validate_polygon.triangulation import Triangulator, triangulate_ring

logger = logging.getLogger(__name__)


def _triangulate(triangulator: Triangulator, points) -> List[Tuple[int, int, int]]:
    """Call the triangulator, turning any failure into TriangulationFailed."""
    try:
        faces = [tuple(int(i) for i in face) for face in triangulator(points)]
    except TriangulationFailed:
        raise
    except Exception as exc:
        raise TriangulationFailed(f"Unable to triangulate polygon: {exc}") from exc

    for face in faces:
        if len(face) != 3 or not all(0 <= i < len(points) for i in face):
            raise TriangulationFailed(
                f"Unable to triangulate polygon: invalid triangle {face}"
            )
    return faces


def check_distance_plane(
    rings: PolygonRings,
    config: Optional[ValidationConfig] = None,
) -> RuleOutcome:
    """Every point must lie within ``distance_tolerance_m`` of the plane.

    Evidence is a list of ``(point, distance)`` for offending points.
    Raises DegenerateNormal when the plane cannot be fitted.
    """
    if config is None:
        config = ValidationConfig()

    exterior = rings.exterior.points
    if config.plane_fit == "least_squares":
        plane = fit_plane_least_squares(rings.exterior.as_array())
    else:
        plane = fit_plane(exterior[0], exterior[1], exterior[2])

    non_planar: List[Tuple[Tuple[float, float, float], float]] = []
    for ring in rings.all_rings():
        for point in ring.points:
            distance = plane.distance_to(point)
            if distance > config.distance_tolerance_m:
                non_planar.append((point, distance))

    if not non_planar:
        return RuleOutcome.ok(RuleId.NON_PLANAR_POLYGON_DISTANCE_PLANE)
    logger.debug(
        "%d points exceed %.4fm from the polygon plane",
        len(non_planar), config.distance_tolerance_m,
    )
    return RuleOutcome.violation(RuleId.NON_PLANAR_POLYGON_DISTANCE_PLANE, non_planar)


def check_normals_deviation(
    rings: PolygonRings,
    config: Optional[ValidationConfig] = None,
    triangulator: Optional[Triangulator] = None,
) -> RuleOutcome:
    """Triangle normals of each ring must stay within ``angle_tolerance_deg``
    of the ring's first triangle normal.

    A ring the triangulator rejects ends the check with an error outcome
    carrying that ring's points.
    """
    if config is None:
        config = ValidationConfig()
    if triangulator is None:
        triangulator = triangulate_ring

    non_planar = []
    for ring in rings.all_rings():
        points = ring.as_array()
        try:
            faces = _triangulate(triangulator, points)
        except TriangulationFailed as exc:
            logger.warning("Normals deviation check stopped: %s", exc)
            return RuleOutcome.failure(
                RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION, exc, [list(ring.points)],
            )

        reference = None
        max_angle = 0.0
        for face in faces:
            normal = unit_normal(points[face[0]], points[face[1]], points[face[2]])
            if reference is None:
                reference = normal
                continue
            max_angle = max(max_angle, angle_between_deg(reference, normal))

        if max_angle > config.angle_tolerance_deg:
            logger.debug("Ring normals deviate by %.2f deg", max_angle)
            non_planar.append(list(ring.points))

    if not non_planar:
        return RuleOutcome.ok(RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION)
    return RuleOutcome.violation(RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION, non_planar)
