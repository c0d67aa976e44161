"""
Shared test fixtures for polygon validation tests.
"""
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from citygml_validate_polygon import PolygonRings, Ring


def make_ring(points):
    return Ring.from_points(points)


@pytest.fixture
def square_exterior():
    """10x10m square on z=0, counter-clockwise seen from +z."""
    return make_ring([(0, 0, 0), (10, 0, 0), (10, 10, 0), (0, 10, 0)])


@pytest.fixture
def cw_hole():
    """2x2m hole inside the square, clockwise seen from +z."""
    return make_ring([(2, 2, 0), (2, 4, 0), (4, 4, 0), (4, 2, 0)])


@pytest.fixture
def ccw_hole():
    """Same hole wound counter-clockwise."""
    return make_ring([(2, 2, 0), (4, 2, 0), (4, 4, 0), (2, 4, 0)])


@pytest.fixture
def valid_polygon(square_exterior, cw_hole):
    return PolygonRings(exterior=square_exterior, interior=(cw_hole,))


@pytest.fixture
def folded_quad_points():
    """Unit square with triangle (0, 2, 3) rotated 10 deg about diagonal 0-2."""
    theta = np.radians(10.0)
    d = np.array([1.0, 1.0, 0.0]) / np.sqrt(2.0)
    foot = np.array([0.5, 0.5, 0.0])
    r = np.array([0.0, 1.0, 0.0]) - foot
    rotated = foot + r * np.cos(theta) + np.cross(d, r) * np.sin(theta)
    return [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (1.0, 1.0, 0.0), tuple(rotated)]
