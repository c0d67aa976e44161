"""
Plane fitting for planarity checks.

The default plane comes from three ring points (cross product of the two
edge vectors). A least-squares fit over every point is available through
trimesh for callers that want a better estimate on noisy rings.
"""
import math
from typing import Sequence

import numpy as np
import trimesh

from citygml_validate_polygon.contracts import DegenerateNormal, Plane

_MIN_NORMAL_LENGTH = 1e-12


def unit_normal(
    p1: Sequence[float],
    p2: Sequence[float],
    p3: Sequence[float],
) -> np.ndarray:
    """Unit normal of the triangle (p1, p2, p3).

    Raises:
        DegenerateNormal: if the three points are collinear.
    """
    a = np.asarray(p1, dtype=float)
    n = np.cross(np.asarray(p2, dtype=float) - a, np.asarray(p3, dtype=float) - a)
    length = float(np.linalg.norm(n))
    if length < _MIN_NORMAL_LENGTH:
        raise DegenerateNormal(f"Points {tuple(p1)}, {tuple(p2)}, {tuple(p3)} are collinear")
    return n / length


def fit_plane(
    p1: Sequence[float],
    p2: Sequence[float],
    p3: Sequence[float],
) -> Plane:
    """Plane through three points; offset = -normal . p1."""
    normal = unit_normal(p1, p2, p3)
    offset = -float(np.dot(normal, np.asarray(p1, dtype=float)))
    return Plane(normal=normal, offset=offset)


def fit_plane_least_squares(points: np.ndarray) -> Plane:
    """Least-squares plane over all points.

    Args:
        points: (n, 3) array, n >= 3.

    Raises:
        DegenerateNormal: fewer than 3 points or all points collinear.
    """
    pts = np.asarray(points, dtype=float)
    if len(pts) < 3:
        raise DegenerateNormal(f"Least-squares plane needs 3 points, got {len(pts)}")

    # Collinear when every offset from the farthest point's line is ~0
    offsets = pts - pts[0]
    far = offsets[int(np.argmax(np.linalg.norm(offsets, axis=1)))]
    far_len = float(np.linalg.norm(far))
    spread = float(np.max(np.linalg.norm(np.cross(offsets, far), axis=1))) if far_len else 0.0
    if spread < _MIN_NORMAL_LENGTH * max(1.0, far_len ** 2):
        raise DegenerateNormal("Points are collinear, no unique plane")

    centroid, normal = trimesh.points.plane_fit(pts)
    normal = np.asarray(normal, dtype=float)
    normal = normal / np.linalg.norm(normal)
    return Plane(normal=normal, offset=-float(np.dot(normal, centroid)))


def angle_between_deg(n1: np.ndarray, n2: np.ndarray) -> float:
    """Angle between two unit vectors in degrees."""
    cos_angle = float(np.clip(np.dot(n1, n2), -1.0, 1.0))
    return math.degrees(math.acos(cos_angle))
