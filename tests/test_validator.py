"""Tests for the validation orchestrator."""
import json

import pytest

from citygml_validate_polygon import (
    RULES,
    PolygonRings,
    Ring,
    RuleId,
    RuleStatus,
    TriangulationFailed,
    ValidationConfig,
    report_to_json,
    validate_polygon,
)

CATALOGUE = [
    "GE_P_INTERSECTION_RINGS",
    "GE_P_DUPLICATED_RINGS",
    "GE_P_NON_PLANAR_POLYGON_DISTANCE_PLANE",
    "GE_P_NON_PLANAR_POLYGON_NORMALS_DEVIATION",
    "GE_P_INTERIOR_DISCONNECTED",
    "GE_P_HOLE_OUTSIDE",
    "GE_P_INNER_RINGS_NESTED",
    "GE_P_ORIENTATION_RINGS_SAME",
]


class TestValidatePolygon:
    """Test rule ordering, aggregation and error locality."""

    def test_catalogue_order(self, valid_polygon):
        report = validate_polygon(valid_polygon)
        assert [o.rule_id.value for o in report.outcomes] == CATALOGUE
        assert [rule_id.value for rule_id, _ in RULES] == CATALOGUE

    def test_valid_polygon(self, valid_polygon):
        report = validate_polygon(valid_polygon)
        assert report.is_valid
        assert report.violations == []
        assert report.outcome(RuleId.INTERIOR_DISCONNECTED).status == RuleStatus.NOT_IMPLEMENTED

    def test_same_winding_is_only_violation(self, square_exterior, ccw_hole):
        rings = PolygonRings(exterior=square_exterior, interior=(ccw_hole,))
        report = validate_polygon(rings)
        assert [o.rule_id for o in report.violations] == [RuleId.ORIENTATION_RINGS_SAME]
        assert not report.is_valid

    def test_accepts_extractor_mapping(self):
        report = validate_polygon({
            "exterior": [[(0, 0, 0), (10, 0, 0), (10, 10, 0), (0, 10, 0), (0, 0, 0)]],
            "interior": [[(2, 2, 0), (2, 4, 0), (4, 4, 0), (4, 2, 0), (2, 2, 0)]],
        })
        assert report.is_valid

    def test_does_not_short_circuit(self, square_exterior):
        hole = Ring.from_points([(20, 20, 0), (22, 20, 0), (22, 22, 0), (20, 22, 0)])
        rings = PolygonRings(exterior=square_exterior, interior=(hole,))
        report = validate_polygon(rings)
        failed = {o.rule_id for o in report.violations}
        assert failed == {RuleId.HOLE_OUTSIDE, RuleId.ORIENTATION_RINGS_SAME}
        assert len(report.outcomes) == len(CATALOGUE)

    def test_degenerate_plane_is_local_error(self):
        rings = PolygonRings(exterior=Ring.from_points(
            [(0, 0, 0), (5, 0, 0), (10, 0, 0), (10, 10, 0), (0, 10, 0)]
        ))
        report = validate_polygon(rings)
        outcome = report.outcome(RuleId.NON_PLANAR_POLYGON_DISTANCE_PLANE)
        assert outcome.status == RuleStatus.ERROR
        assert outcome.error_kind == "DegenerateNormal"
        assert report.errors == [outcome]
        others = [o for o in report.outcomes if o is not outcome]
        assert all(o.passed for o in others)

    def test_triangulation_failure_is_local(self, valid_polygon):
        def failing(points):
            raise TriangulationFailed("Unable to triangulate polygon")

        report = validate_polygon(valid_polygon, triangulator=failing)
        outcome = report.outcome(RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION)
        assert outcome.status == RuleStatus.ERROR
        assert outcome.error_kind == "TriangulationFailed"
        assert len(report.errors) == 1
        assert not report.is_valid

    def test_triangulator_value_error_is_local(self, valid_polygon):
        def earcut_like(points):
            raise ValueError("earcut: cannot triangulate")

        report = validate_polygon(valid_polygon, triangulator=earcut_like)
        assert len(report.outcomes) == len(CATALOGUE)
        outcome = report.outcome(RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION)
        assert outcome.status == RuleStatus.ERROR
        assert outcome.error_kind == "TriangulationFailed"
        assert outcome.evidence == (list(valid_polygon.exterior.points),)
        assert report.errors == [outcome]

    def test_collinear_exterior_fails_each_rule_locally(self, cw_hole):
        line = Ring.from_points([(0, 0, 0), (1, 0, 0), (2, 0, 0)])
        rings = PolygonRings(exterior=line, interior=(cw_hole,))
        report = validate_polygon(rings)
        assert len(report.outcomes) == len(CATALOGUE)
        kinds = {o.rule_id: o.error_kind for o in report.errors}
        assert kinds[RuleId.INTERSECTION_RINGS] == "DegenerateRing"
        assert kinds[RuleId.NON_PLANAR_POLYGON_DISTANCE_PLANE] == "DegenerateNormal"
        assert kinds[RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION] == "TriangulationFailed"


class TestDeterminism:
    def test_idempotent(self, square_exterior, ccw_hole):
        rings = PolygonRings(exterior=square_exterior, interior=(ccw_hole,))
        first = validate_polygon(rings)
        second = validate_polygon(rings)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_parallel_matches_sequential(self, square_exterior, ccw_hole):
        hole = Ring.from_points([(8, 4, 0), (12, 4, 0), (12, 6, 0), (8, 6, 0)])
        rings = PolygonRings(exterior=square_exterior, interior=(ccw_hole, hole))
        sequential = validate_polygon(rings)
        parallel = validate_polygon(rings, ValidationConfig(parallel=True, max_workers=4))
        assert [o.rule_id for o in parallel.outcomes] == [o.rule_id for o in sequential.outcomes]
        assert parallel.to_dict() == sequential.to_dict()

    def test_parallel_keeps_errors_local_and_ordered(self, cw_hole):
        line = Ring.from_points([(0, 0, 0), (1, 0, 0), (2, 0, 0)])
        rings = PolygonRings(exterior=line, interior=(cw_hole,))
        sequential = validate_polygon(rings)
        parallel = validate_polygon(rings, ValidationConfig(parallel=True, max_workers=4))
        assert [o.rule_id.value for o in parallel.outcomes] == CATALOGUE
        assert parallel.to_dict() == sequential.to_dict()
        kinds = {o.rule_id: o.error_kind for o in parallel.errors}
        assert kinds[RuleId.INTERSECTION_RINGS] == "DegenerateRing"
        assert kinds[RuleId.NON_PLANAR_POLYGON_DISTANCE_PLANE] == "DegenerateNormal"
        assert kinds[RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION] == "TriangulationFailed"
        assert parallel.outcome(RuleId.INTERIOR_DISCONNECTED).status == RuleStatus.NOT_IMPLEMENTED


class TestReportToJson:
    def test_round_trips_through_json(self, square_exterior, ccw_hole):
        rings = PolygonRings(exterior=square_exterior, interior=(ccw_hole,))
        payload = json.loads(report_to_json(validate_polygon(rings)))
        assert payload["valid"] is False
        assert [o["rule_id"] for o in payload["outcomes"]] == CATALOGUE
        orientation = payload["outcomes"][-1]
        assert orientation["status"] == "fail"
        assert orientation["code"] == 208
        assert orientation["evidence"][0][1][0] == pytest.approx([2.0, 2.0])
