"""Tests for segment batches."""
import math

from georecon.controller.segments import FalloffReason, SegmentBatch, append_segments
from georecon.model.curve_loop import CurveLoop
from georecon.model.geometry_primitives import Point, ORIGIN


def test_batch_appends_all_curves(tol):
    loop = CurveLoop()
    batch = SegmentBatch(tol)
    batch.add_arc(ORIGIN, 1.0, 0.0, math.pi / 2.0, reverse=True)
    batch.add_line(Point(1.0, 0.0), Point(1.0, 1.0))
    result = batch.append_to(loop)
    assert result.ok
    assert len(loop) == 2
    assert loop.start.is_almost_equal(Point(0.0, 1.0), 1e-12)
    assert len(batch) == 0


def test_too_short_line_leaves_loop_unchanged(tol):
    loop = CurveLoop()
    batch = SegmentBatch(tol)
    batch.add_line(Point(0.0, 0.0), Point(1.0, 0.0))
    batch.add_line(Point(1.0, 0.0), Point(1.0, 1e-4))
    result = batch.append_to(loop)
    assert not result.ok
    assert result.reason == FalloffReason.TOO_SHORT
    assert len(loop) == 0
    assert len(batch) == 0


def test_non_contiguous_batch_is_rejected(tol):
    loop = CurveLoop()
    batch = SegmentBatch(tol)
    batch.add_line(Point(0.0, 0.0), Point(1.0, 0.0))
    batch.add_line(Point(2.0, 0.0), Point(3.0, 0.0))
    result = batch.append_to(loop)
    assert result.reason == FalloffReason.NOT_CONTIGUOUS
    assert len(loop) == 0


def test_append_segments_reports_success(tol):
    loop = CurveLoop()
    batch = SegmentBatch(tol)
    batch.add_line(Point(0.0, 0.0), Point(1.0, 0.0))
    assert append_segments(loop, batch)
    batch.add_line(Point(1.0, 0.0), Point(1.0, 0.0))
    assert not append_segments(loop, batch)
    assert len(loop) == 1
