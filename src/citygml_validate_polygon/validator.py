"""
Polygon validation against the CityGML QIE polygon catalogue.

Runs every rule against one immutable ring set and returns a report with
one outcome per rule, in catalogue order. A rule that cannot evaluate its
geometry (degenerate ring, collinear plane points, triangulation failure)
reports an error outcome; the other rules still run.
"""
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, Union

from citygml_validate_polygon.contracts import (
    GeometryError,
    PolygonRings,
    RuleId,
    RuleOutcome,
    ValidationConfig,
    ValidationReport,
)
from citygml_validate_polygon.planarity import check_distance_plane, check_normals_deviation
from citygml_validate_polygon.ring_rules import (
    check_duplicated_rings,
    check_hole_outside,
    check_inner_rings_nested,
    check_interior_disconnected,
    check_intersection_rings,
    check_orientation_rings_same,
)
from citygml_validate_polygon.triangulation import Triangulator

logger = logging.getLogger(__name__)

RuleCheck = Callable[..., RuleOutcome]

RULES: Tuple[Tuple[RuleId, RuleCheck], ...] = (
    (RuleId.INTERSECTION_RINGS, check_intersection_rings),
    (RuleId.DUPLICATED_RINGS, check_duplicated_rings),
    (RuleId.NON_PLANAR_POLYGON_DISTANCE_PLANE, check_distance_plane),
    (RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION, check_normals_deviation),
    (RuleId.INTERIOR_DISCONNECTED, check_interior_disconnected),
    (RuleId.HOLE_OUTSIDE, check_hole_outside),
    (RuleId.INNER_RINGS_NESTED, check_inner_rings_nested),
    (RuleId.ORIENTATION_RINGS_SAME, check_orientation_rings_same),
)


def _run_rule(
    rule: Tuple[RuleId, RuleCheck],
    rings: PolygonRings,
    config: ValidationConfig,
    triangulator: Optional[Triangulator],
) -> RuleOutcome:
    rule_id, check = rule
    try:
        if rule_id == RuleId.NON_PLANAR_POLYGON_NORMALS_DEVIATION and triangulator is not None:
            outcome = check(rings, config, triangulator)
        else:
            outcome = check(rings, config)
    except GeometryError as exc:
        logger.warning("%s could not be evaluated: %s", rule_id.value, exc)
        return RuleOutcome.failure(rule_id, exc)
    logger.debug("%s -> %s", rule_id.value, outcome.status.value)
    return outcome


def validate_polygon(
    rings: Union[PolygonRings, Mapping[str, Sequence[Any]]],
    config: Optional[ValidationConfig] = None,
    triangulator: Optional[Triangulator] = None,
) -> ValidationReport:
    """Validate one polygon against every QIE polygon rule.

    Args:
        rings: Ring set, or the extractor mapping
            ``{"exterior": [ring], "interior": [ring, ...]}``.
        config: Tolerances and strategies.
        triangulator: Replacement for the default ring triangulator.

    Returns:
        ValidationReport with one outcome per rule in catalogue order.
    """
    if config is None:
        config = ValidationConfig()
    if not isinstance(rings, PolygonRings):
        rings = PolygonRings.from_boundaries(rings)

    run = partial(_run_rule, rings=rings, config=config, triangulator=triangulator)
    if config.parallel:
        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            # map() yields in submission order
            outcomes = tuple(executor.map(run, RULES))
    else:
        outcomes = tuple(run(rule) for rule in RULES)

    report = ValidationReport(outcomes=outcomes)
    logger.info(
        "Validated polygon with %d interior rings: %d violations, %d errors",
        len(rings.interior), len(report.violations), len(report.errors),
    )
    return report


def report_to_json(report: ValidationReport, indent: Optional[int] = 2) -> str:
    """Serialize a ValidationReport to a JSON string."""
    return json.dumps(report.to_dict(), indent=indent)
