"""3D -> 2D ring projection into a shared, reusable frame."""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from citygml_validate_polygon.contracts import DegenerateRing, ProjectionFrame, Ring

_EPS = 1e-12


def _newell_normal(pts: np.ndarray) -> np.ndarray:
    # Area-weighted normal over all edges; the ring winds CCW around it
    nxt = np.roll(pts, -1, axis=0)
    return np.array([
        np.sum((pts[:, 1] - nxt[:, 1]) * (pts[:, 2] + nxt[:, 2])),
        np.sum((pts[:, 2] - nxt[:, 2]) * (pts[:, 0] + nxt[:, 0])),
        np.sum((pts[:, 0] - nxt[:, 0]) * (pts[:, 1] + nxt[:, 1])),
    ])


def frame_from_points(points: np.ndarray) -> ProjectionFrame:
    """Build a projection frame from a ring's own points.

    Origin is the first point, the normal is the Newell normal of the ring
    and ``axis_u`` points from the origin towards the first distinct point.

    Raises:
        DegenerateRing: fewer than 3 points or no non-collinear triple.
    """
    pts = np.asarray(points, dtype=float)
    if len(pts) < 3:
        raise DegenerateRing(f"Ring needs at least 3 points, got {len(pts)}")

    normal = _newell_normal(pts)
    length = float(np.linalg.norm(normal))
    scale = max(1.0, float(np.max(np.abs(pts - pts[0]))) ** 2)
    if length < _EPS * scale:
        raise DegenerateRing("Ring has no three non-collinear points")
    normal = normal / length

    origin = pts[0]
    axis_u = None
    for p in pts[1:]:
        d = p - origin
        d = d - np.dot(d, normal) * normal
        d_len = float(np.linalg.norm(d))
        if d_len > _EPS:
            axis_u = d / d_len
            break
    if axis_u is None:
        raise DegenerateRing("Ring points coincide in projection")

    axis_v = np.cross(normal, axis_u)
    axis_v /= np.linalg.norm(axis_v)
    return ProjectionFrame(
        origin=origin.copy(),
        axis_u=axis_u,
        axis_v=axis_v,
        normal=normal,
    )


def frame_from_ring(ring: Ring) -> ProjectionFrame:
    return frame_from_points(ring.as_array())


def project_ring(
    ring: Ring,
    frame: Optional[ProjectionFrame] = None,
) -> Tuple[np.ndarray, ProjectionFrame]:
    """Project a ring to 2D.

    Without ``frame`` one is derived from the ring and returned so further
    rings can be projected into the same coordinates.

    Returns:
        ((n, 2) points, frame)
    """
    pts = ring.as_array()
    if frame is None:
        frame = frame_from_points(pts)
    return frame.project(pts), frame
