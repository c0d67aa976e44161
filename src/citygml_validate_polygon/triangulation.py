"""Default ring triangulator used by the normals-deviation check."""

from __future__ import annotations

import logging
from typing import Callable, List, Tuple

import numpy as np
from shapely.geometry import Polygon
from shapely.ops import triangulate

from citygml_validate_polygon.contracts import DegenerateRing, TriangulationFailed
from citygml_validate_polygon.projection import frame_from_points

logger = logging.getLogger(__name__)

Triangle = Tuple[int, int, int]
# (n, 3) points -> index triples into those points. Any exception raised,
# or a triple with an out-of-range index, is reported as TriangulationFailed
# for the ring being checked.
Triangulator = Callable[[np.ndarray], List[Triangle]]

_MIN_TRIANGLE_AREA = 1e-12


def triangulate_ring(points_3d: np.ndarray) -> List[Triangle]:
    """Triangulate one ring, returning index triples into ``points_3d``.

    The ring is projected into its own frame, Delaunay-triangulated, and
    triangles outside the ring polygon are dropped. Every triangle is
    ordered counter-clockwise in the frame so the 3D normals of a planar
    ring all point the same way.

    Raises:
        TriangulationFailed: ring cannot be framed, is self-intersecting,
            or yields no triangle.
    """
    pts = np.asarray(points_3d, dtype=float)
    try:
        frame = frame_from_points(pts)
    except DegenerateRing as exc:
        raise TriangulationFailed(f"Unable to triangulate polygon: {exc}") from exc

    pts_2d = frame.project(pts)
    polygon = Polygon(pts_2d)
    if not polygon.is_valid:
        raise TriangulationFailed("Unable to triangulate polygon: ring is self-intersecting")

    faces: List[Triangle] = []
    for tri in triangulate(polygon):
        if tri.is_empty or tri.area <= _MIN_TRIANGLE_AREA:
            continue
        if not polygon.covers(tri.representative_point()):
            continue
        coords = np.asarray(tri.exterior.coords[:3], dtype=float)
        # Map Delaunay vertices back to the nearest input index
        idx = [
            int(np.argmin(np.sum((pts_2d - c) ** 2, axis=1)))
            for c in coords
        ]
        if len(set(idx)) < 3:
            continue
        a, b, c = pts_2d[idx[0]], pts_2d[idx[1]], pts_2d[idx[2]]
        cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
        if cross < 0:
            idx = [idx[0], idx[2], idx[1]]
        faces.append((idx[0], idx[1], idx[2]))

    if not faces:
        raise TriangulationFailed("Unable to triangulate polygon: no triangles produced")

    logger.debug("Triangulated ring of %d points into %d triangles", len(pts), len(faces))
    return faces
