"""Tests for curve loops and loop helpers."""
import math

import pytest

from georecon.diagnostics import Diagnostics
from georecon.exceptions import CurveConstructionError
from georecon.model.curve_loop import (
    CurveLoop, loop_from_cyclic_curve, polyline_loop, split_unbound_cyclic_curves, thicken
)
from georecon.model.geometry_primitives import Arc, Line, Point, Transform, Vector, ORIGIN


def square(size=1.0):
    return [Point(0.0, 0.0), Point(size, 0.0), Point(size, size), Point(0.0, size)]


def test_append_rejects_non_contiguous_curve():
    loop = CurveLoop()
    loop.append(Line.create_bound(Point(0.0, 0.0), Point(1.0, 0.0)))
    with pytest.raises(CurveConstructionError):
        loop.append(Line.create_bound(Point(1.0, 0.5), Point(1.0, 1.0)))
    assert len(loop) == 1


def test_append_rejects_unbound_curve():
    with pytest.raises(CurveConstructionError):
        CurveLoop().append(Line.create_unbound(ORIGIN, Vector(1.0, 0.0)))


def test_closed_polyline(tol):
    loop = polyline_loop(square(), tol, close=True)
    assert len(loop) == 4
    assert not loop.is_open()
    assert loop.length == pytest.approx(4.0)
    assert loop.is_counterclockwise()


def test_polyline_drops_too_short_segments(tol):
    """A vertex closer than the short curve tolerance to its predecessor is removed."""
    diagnostics = Diagnostics()
    points = [Point(0.0, 0.0), Point(1.0, 0.0), Point(1.0 + 1e-4, 0.0), Point(1.0, 1.0), Point(0.0, 1.0)]
    loop = polyline_loop(points, tol, close=True, diagnostics=diagnostics, entity_id=3)
    assert len(loop) == 4
    assert diagnostics.warnings[0].message.endswith("removing point: 2.")


def test_polyline_with_too_few_points(tol):
    assert polyline_loop([Point(0.0, 0.0), Point(1.0, 0.0)], tol, close=True) is None


def test_open_loop_reports_gap():
    loop = CurveLoop()
    loop.extend([
        Line.create_bound(Point(0.0, 0.0), Point(1.0, 0.0)),
        Line.create_bound(Point(1.0, 0.0), Point(1.0, 1.0)),
    ])
    assert loop.is_open()
    assert loop.closing_gap == pytest.approx(math.sqrt(2.0))


def test_mirrored_loop_keeps_winding(tol):
    loop = polyline_loop(square(), tol, close=True)
    mirrored = loop.transformed(Transform.mirror_x())
    assert mirrored.is_counterclockwise()
    assert not mirrored.is_open()


def test_full_circle_is_split_in_two():
    loop = loop_from_cyclic_curve(Arc.create_unbound(ORIGIN, 2.0))
    assert len(loop) == 2
    assert not loop.is_open()
    assert loop.length == pytest.approx(4.0 * math.pi)


def test_partial_arc_is_not_a_cyclic_loop():
    assert loop_from_cyclic_curve(Arc.create(ORIGIN, 1.0, 0.0, math.pi)) is None
    assert loop_from_cyclic_curve(None) is None


def test_split_unbound_cyclic_curves_keeps_bound_curves():
    line = Line.create_bound(Point(0.0, 0.0), Point(1.0, 0.0))
    curves = split_unbound_cyclic_curves([line, Arc.create_unbound(ORIGIN, 1.0)])
    assert curves[0] is line
    assert len(curves) == 3
    assert all(c.is_bound for c in curves)


def test_thicken_straight_centre_line():
    centre = CurveLoop()
    centre.append(Line.create_bound(Point(0.0, 0.0), Point(2.0, 0.0)))
    outline = thicken(centre, 0.2)
    assert len(outline) == 4
    assert not outline.is_open()
    assert outline.length == pytest.approx(4.4)


def test_thicken_bent_centre_line_trims_offsets():
    centre = CurveLoop()
    centre.extend([
        Line.create_bound(Point(0.0, 0.0), Point(2.0, 0.0)),
        Line.create_bound(Point(2.0, 0.0), Point(2.0, 2.0)),
    ])
    outline = thicken(centre, 0.2)
    assert len(outline) == 6
    assert not outline.is_open()
    # Inner leg 1.9 + 1.9, outer leg 2.1 + 2.1, two caps of 0.2
    assert outline.length == pytest.approx(8.4)
