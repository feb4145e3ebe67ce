"""
Curve Loops
===========
Ordered chains of contiguous curves, and the helpers that create them.

Why is this file needed?
------------------------
1. Contiguity: A loop only accepts a curve that starts where the previous one ended,
   so a loop that exists is always a consistent chain.
2. Construction helpers: Polylines with degenerate vertices, full circles and
   ellipses that must be split in two, and centre lines that must be thickened are
   all turned into loops here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, TYPE_CHECKING

import numpy as np

from georecon.config import EPS, DEFAULT_VERTEX_TOLERANCE, ToleranceContext
from georecon.exceptions import CurveConstructionError
from georecon.model.geometry_primitives import (
    Curve, Line, Point, Transform, Vector, BASIS_Z, intersect_curves
)
from georecon.model.geometry_utils import TWO_PI, signed_area

if TYPE_CHECKING:
    import numpy.typing as npt

    from georecon.diagnostics import Diagnostics, EntityId

logger = logging.getLogger(__name__)


@dataclass
class CurveLoop:
    """
    An ordered sequence of bound curves where each curve starts at the end of the
    previous one. The loop may be open or closed.
    """
    curves: List[Curve] = field(default_factory=list)
    tolerance: float = DEFAULT_VERTEX_TOLERANCE

    def append(self, curve: Curve) -> None:
        if not curve.is_bound:
            raise CurveConstructionError("Only bound curves can be added to a curve loop.")
        if self.curves:
            gap = self.curves[-1].end.distance_to(curve.start)
            if gap > self.tolerance:
                raise CurveConstructionError(
                    f"Curve is not contiguous with the loop (gap {gap:.6g})."
                )
        self.curves.append(curve)

    def extend(self, curves: Sequence[Curve]) -> None:
        for curve in curves:
            self.append(curve)

    def __iter__(self) -> Iterator[Curve]:
        return iter(self.curves)

    def __len__(self) -> int:
        return len(self.curves)

    def __getitem__(self, index: int) -> Curve:
        return self.curves[index]

    @property
    def start(self) -> Point:
        return self.curves[0].start

    @property
    def end(self) -> Point:
        return self.curves[-1].end

    @property
    def closing_gap(self) -> float:
        if not self.curves:
            return 0.0
        return self.end.distance_to(self.start)

    def is_open(self, tolerance: Optional[float] = None) -> bool:
        if not self.curves:
            return True
        return self.closing_gap > (self.tolerance if tolerance is None else tolerance)

    @property
    def length(self) -> float:
        return sum(curve.length for curve in self.curves)

    def copy(self) -> CurveLoop:
        return CurveLoop(list(self.curves), self.tolerance)

    def translated(self, vector: Vector) -> CurveLoop:
        return CurveLoop([c.translated(vector) for c in self.curves], self.tolerance)

    def transformed(self, transform: Transform) -> CurveLoop:
        curves = [c.transformed(transform) for c in self.curves]
        if transform.determinant < 0.0:
            # A mirror flips the winding; restore it
            curves = [c.reversed() for c in reversed(curves)]
        return CurveLoop(curves, self.tolerance)

    def reversed(self) -> CurveLoop:
        return CurveLoop([c.reversed() for c in reversed(self.curves)], self.tolerance)

    def tessellate(self) -> npt.NDArray[np.float64]:
        """Points along the loop, without repeating shared end points."""
        points: List[Point] = []
        for curve in self.curves:
            pts = curve.tessellate()
            points.extend(pts if not points else pts[1:])
        if len(points) > 1 and not self.is_open():
            points = points[:-1]
        return np.array([p.to_array() for p in points])

    def is_counterclockwise(self) -> bool:
        """Winding in the XY plane."""
        return signed_area(self.tessellate()) > 0.0


def _segment_is_too_short(p1: Point, p2: Point, tol: ToleranceContext) -> bool:
    return tol.is_too_short(p1.distance_to(p2))


def _segments_overlap(p1: Point, p2: Point, p3: Point, tol: ToleranceContext) -> bool:
    """True if (p1, p2) and (p2, p3) double back on each other."""
    v12 = p2 - p1
    v23 = p3 - p2
    if v12.dot(v23) >= 0.0 or not v12.is_parallel_to(v23, 1e-6):
        return False
    length = v12.magnitude
    if length < EPS:
        return True
    height = v12.cross(v23).magnitude / length
    return height < tol.vertex_epsilon


def polyline_loop(
    points: Sequence[Point],
    tol: ToleranceContext,
    close: bool,
    diagnostics: Optional[Diagnostics] = None,
    entity_id: EntityId = None,
) -> Optional[CurveLoop]:
    """
    Create a loop of lines through `points`.

    Points that would create a too-short segment, or a segment doubling back over its
    predecessor, are dropped. The input may or may not repeat the first point at the end.

    Args:
        points: The polyline vertices.
        tol: The session tolerances.
        close: If True, the loop gets a segment from the last point back to the first.
        diagnostics: Optional sink for the "removed points" warning.
        entity_id: Id reported with diagnostics.

    Returns:
        The loop, or None if too few usable vertices remain.
    """
    num_points = len(points)
    if num_points < 2:
        return None

    was_already_closed = points[0].is_almost_equal(points[-1], tol.vertex_epsilon)
    was_closed = close or was_already_closed
    min_points = 4 if was_already_closed else (3 if close else 2)
    if num_points < min_points:
        return None

    removed: List[int] = []
    final_points: List[Point] = [points[0]]
    num_to_check = num_points + 1 if close else num_points
    for ii in range(1, num_to_check):
        next_index = ii % num_points
        if next_index == num_points - 1 and was_already_closed:
            next_next_index = 1
        else:
            next_next_index = (ii + 1) % num_points

        # Only check whether the last segment overlaps the first on a closed curve
        check_overlap = (ii < num_to_check - 1) or was_closed
        if (_segment_is_too_short(final_points[-1], points[next_index], tol)
                or (check_overlap and _segments_overlap(final_points[-1], points[next_index], points[next_next_index], tol))):
            removed.append(next_index)
        else:
            final_points.append(points[next_index])

    if was_closed:
        if len(final_points) < 4:
            return None
        if not final_points[-1].is_almost_equal(final_points[0], tol.vertex_epsilon):
            # The last point was dropped; keep it and drop its short neighbours instead
            final_points[-1] = points[0] if close else points[-1]
            while len(final_points) > 1 and _segment_is_too_short(final_points[-1], final_points[-2], tol):
                del final_points[-2]
        if len(final_points) < 4:
            return None

    if removed and diagnostics is not None:
        if len(removed) == 1:
            message = f"Polyline had 1 point that was too close to one of its neighbors, removing point: {removed[0]}."
        else:
            indices = " ".join(str(i) for i in removed)
            message = (f"Polyline had {len(removed)} points that were too close to one of their neighbors, "
                       f"removing points: {indices}.")
        diagnostics.log_warning(entity_id, message)

    if len(final_points) < min_points:
        return None

    loop = CurveLoop(tolerance=tol.vertex_epsilon)
    for p1, p2 in zip(final_points[:-1], final_points[1:]):
        loop.append(Line.create_bound(p1, p2))
    return loop


def split_unbound_cyclic_curves(curves: Sequence[Curve]) -> List[Curve]:
    """Replace every unbound cyclic curve by its two half-period halves."""
    result: List[Curve] = []
    for curve in curves:
        if curve.is_bound or not curve.is_cyclic:
            result.append(curve)
            continue
        start = curve.get_end_parameter(0)
        half = curve.period / 2.0
        result.append(curve.make_bound(start, start + half))
        result.append(curve.make_bound(start + half, start + curve.period))
    return result


def loop_from_cyclic_curve(curve: Optional[Curve], tolerance: float = DEFAULT_VERTEX_TOLERANCE) -> Optional[CurveLoop]:
    """
    Split a full circle or ellipse (period 2*pi) into a two-curve loop.
    Returns None if the curve is not cyclic or does not cover a full period.
    """
    if curve is None or not curve.is_cyclic:
        return None
    period = curve.period
    if abs(period - TWO_PI) > EPS:
        return None

    start = curve.get_end_parameter(0) if curve.is_bound else 0.0
    end = curve.get_end_parameter(1) if curve.is_bound else period
    # Not a closed curve
    if abs((end - start) - period) > 1e-7:
        return None

    loop = CurveLoop(tolerance=tolerance)
    loop.append(curve.make_bound(start, start + period / 2.0))
    loop.append(curve.make_bound(start + period / 2.0, start + period))
    return loop


def _trim_offset_chain(curves: List[Curve], joints: List[Point]) -> List[Curve]:
    """
    Re-bound consecutive offset curves so that each one ends where the next starts.
    Offsets that already touch are kept; others are cut at the intersection of their
    unbound supports closest to the original joint.
    """
    params = [[c.get_end_parameter(0), c.get_end_parameter(1)] for c in curves]
    for ii in range(len(curves) - 1):
        first, second = curves[ii], curves[ii + 1]
        if first.end.is_almost_equal(second.start, 1e-9):
            continue
        hits = intersect_curves(first.make_unbound(), second.make_unbound())
        if not hits:
            raise CurveConstructionError("Offset curves of a thickened centre line do not meet.")
        best = min(hits, key=lambda h: h.point.distance_to(joints[ii]))
        params[ii][1] = best.u
        params[ii + 1][0] = best.v

    trimmed = []
    for curve, (t0, t1) in zip(curves, params):
        if t1 < t0 and curve.is_cyclic:
            t1 += curve.period
        trimmed.append(curve.make_bound(t0, t1))
    return trimmed


def thicken(loop: CurveLoop, thickness: float, normal: Vector = BASIS_Z) -> CurveLoop:
    """
    Turn an open centre-line loop into a closed outline of the given thickness.

    The centre line is offset by half the thickness to each side; the two offsets are
    joined by straight end caps.
    """
    if thickness < EPS:
        raise CurveConstructionError(f"Invalid centre line thickness {thickness:.6g}.")
    if not loop.curves:
        raise CurveConstructionError("Cannot thicken an empty curve loop.")

    half = thickness / 2.0
    joints = [curve.end for curve in loop.curves[:-1]]
    left = _trim_offset_chain([c.offset(half, normal) for c in loop.curves], joints)
    right = _trim_offset_chain([c.offset(-half, normal) for c in loop.curves], joints)

    outline = CurveLoop(tolerance=loop.tolerance)
    outline.extend(left)
    outline.append(Line.create_bound(left[-1].end, right[-1].end))
    outline.extend([c.reversed() for c in reversed(right)])
    outline.append(Line.create_bound(right[0].start, left[0].start))
    return outline
