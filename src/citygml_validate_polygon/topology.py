"""
2D topology tests between rings projected into one shared frame.

Built on Shapely. Point containment is boundary-inclusive by default: a
point within ``tolerance`` of the container's boundary counts as inside, so
a hole touching the exterior is not reported as crossing it.
"""
from enum import Enum
from typing import List, Sequence

import numpy as np
import shapely
from shapely.geometry import LinearRing, Point, Polygon


class Winding(Enum):
    CW = "cw"
    CCW = "ccw"


def _polygon(ring_2d: np.ndarray) -> Polygon:
    return Polygon(np.asarray(ring_2d, dtype=float))


def contains_point(
    polygon_2d: np.ndarray,
    point_2d: Sequence[float],
    tolerance: float = 1e-9,
    inclusive: bool = True,
) -> bool:
    """Whether ``point_2d`` lies in the polygon bounded by ``polygon_2d``."""
    return containment_flags(polygon_2d, [point_2d], tolerance, inclusive)[0]


def containment_flags(
    container_2d: np.ndarray,
    points_2d: Sequence[Sequence[float]],
    tolerance: float = 1e-9,
    inclusive: bool = True,
) -> List[bool]:
    """Containment of each point against one container ring."""
    poly = _polygon(container_2d)
    boundary = poly.exterior
    shapely.prepare(poly)
    flags = []
    for x, y in points_2d:
        pt = Point(float(x), float(y))
        on_boundary = boundary.distance(pt) <= tolerance
        if inclusive:
            flags.append(on_boundary or poly.contains(pt))
        else:
            flags.append(not on_boundary and poly.contains(pt))
    return flags


def ring_inside(
    container_2d: np.ndarray,
    candidate_2d: np.ndarray,
    tolerance: float = 1e-9,
    inclusive: bool = True,
) -> bool:
    """Every candidate point is contained by the container."""
    return all(containment_flags(container_2d, candidate_2d, tolerance, inclusive))


def ring_outside(
    container_2d: np.ndarray,
    candidate_2d: np.ndarray,
    tolerance: float = 1e-9,
    inclusive: bool = True,
) -> bool:
    """No candidate point is contained by the container."""
    return not any(containment_flags(container_2d, candidate_2d, tolerance, inclusive))


def rings_intersect(
    a_2d: np.ndarray,
    b_2d: np.ndarray,
    method: str = "sampling",
    tolerance: float = 1e-9,
    inclusive: bool = True,
) -> bool:
    """Whether ring B crosses ring A.

    ``sampling`` tests each point of B against A and reports an intersection
    when the results are mixed. It misses edges that cross between samples.
    ``exact`` reports an intersection when the two polygons overlap without
    one containing the other.
    """
    if method == "exact":
        return bool(_polygon(a_2d).overlaps(_polygon(b_2d)))
    if method != "sampling":
        raise ValueError(f"Unknown intersection method: {method!r}")
    flags = containment_flags(a_2d, b_2d, tolerance, inclusive)
    return any(flags) and not all(flags)


def rings_equal(a_2d: np.ndarray, b_2d: np.ndarray, tolerance: float = 1e-9) -> bool:
    """Geometric equality regardless of start vertex and direction."""
    a = _polygon(a_2d)
    b = _polygon(b_2d)
    if len(a.exterior.coords) != len(b.exterior.coords):
        return False
    return bool(shapely.normalize(a).equals_exact(shapely.normalize(b), tolerance))


def winding(ring_2d: np.ndarray) -> Winding:
    return Winding.CCW if LinearRing(np.asarray(ring_2d, dtype=float)).is_ccw else Winding.CW
