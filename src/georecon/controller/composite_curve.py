"""
Composite Curve Assembly
========================
Stitches independently authored curve segments into one oriented curve loop.

Why is this file needed?
------------------------
1. Orientation: Segments of a composite curve may be listed with either sense; each
   one is attached to whichever end of the growing chain it is closest to, reversed
   if necessary.
2. Gap repair: Gaps between the vertex tolerance and the gap tolerance are closed by
   stretching an adjacent line or inserting a short connector. Anything larger is an
   unrepairable input error.
3. Short segments: Runs of segments too short to exist on their own are merged into a
   single line once they are long enough.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from georecon.config import EPS, ToleranceContext
from georecon.diagnostics import Diagnostics, EntityId
from georecon.exceptions import GeometryError, UnrepairableGapError
from georecon.model.curve_loop import CurveLoop
from georecon.model.geometry_primitives import Arc, Curve, Ellipse, Line, Point
from georecon.model.geometry_utils import TWO_PI, normalize_angle

logger = logging.getLogger(__name__)

# Largest distance at which a short segment still continues a pending gap
_SMALL_GAP = 10.0 * EPS


def _is_close(a: float, b: float) -> bool:
    return abs(a - b) <= EPS


@dataclass(frozen=True)
class CompositeCurveSegment:
    """One member of a composite curve. `same_sense=False` reverses the curve."""
    curve: Optional[Curve]
    same_sense: bool = True
    entity_id: EntityId = None
    # End points to use when the curve itself is too short to exist
    backup_start: Optional[Point] = None
    backup_end: Optional[Point] = None

    def oriented(self) -> Optional[Curve]:
        if self.curve is None or self.same_sense:
            return self.curve
        return self.curve.reversed()

    def end_points(self) -> Tuple[Optional[Point], Optional[Point]]:
        if self.curve is not None:
            curve = self.oriented()
            return curve.start, curve.end
        if self.same_sense:
            return self.backup_start, self.backup_end
        return self.backup_end, self.backup_start


@dataclass(frozen=True)
class ChainState:
    """
    Fold state of the assembly: the chain in order, its two free end points and
    whether the first curve of the chain may be stretched to close a gap.
    """
    curves: Tuple[Curve, ...]
    chain_start: Point
    chain_end: Point
    can_repair_first: bool

    @classmethod
    def initial(cls, curve: Curve) -> ChainState:
        return cls((curve,), curve.start, curve.end, isinstance(curve, Line))


@dataclass
class ShortGapRepairer:
    """
    Replaces consecutive segments that are individually too short with a single line.
    """
    tol: ToleranceContext
    diagnostics: Diagnostics
    _gap_start: Optional[Point] = None
    _gap_end: Optional[Point] = None
    _first_entity: EntityId = None
    _has_pending: bool = False

    def add_to_gap(self, entity_id: EntityId, start: Optional[Point], end: Optional[Point]) -> Optional[Line]:
        """
        Add a too-short segment to the pending gap.

        Returns:
            A line spanning the gap once it has become long enough, otherwise None.
        """
        if start is None or end is None:
            self.clear()
            return None

        if not self._has_pending:
            self._has_pending = True
            self._first_entity = entity_id
            self._gap_start, self._gap_end = start, end
            return None

        d_end_next_start = self._gap_end.distance_to(start)
        d_end_next_end = self._gap_end.distance_to(end)
        d_start_next_end = self._gap_start.distance_to(end)
        d_start_next_start = self._gap_start.distance_to(start)

        min_start_gap = min(d_start_next_end, d_start_next_start)
        min_end_gap = min(d_end_next_start, d_end_next_end)
        if min(min_start_gap, min_end_gap) > _SMALL_GAP:
            self.clear()
            return None

        if min_end_gap < min_start_gap:
            self._gap_end = end if d_end_next_start < d_end_next_end else start
        else:
            self._gap_start = end if d_start_next_start < d_start_next_end else start

        if self.tol.is_too_short(self._gap_start.distance_to(self._gap_end)):
            return None

        line = Line.create_bound(self._gap_start, self._gap_end)
        self.clear(show_error=False)
        return line

    def clear(self, show_error: bool = True) -> None:
        """Forget the pending gap; report it unless it was turned into a line."""
        if show_error and self._has_pending:
            self.diagnostics.log_error(self._first_entity, "Curve segment is too short, ignoring.", is_fatal=False)
        self._gap_start = self._gap_end = None
        self._first_entity = None
        self._has_pending = False


@dataclass
class CompositeCurveAssembler:
    """Assembles ordered segments into a single `CurveLoop`."""
    tol: ToleranceContext = field(default_factory=ToleranceContext)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def assemble(self, segments: Sequence[Curve], entity_id: EntityId = None) -> CurveLoop:
        """
        Orient, repair and chain `segments`.

        Raises:
            UnrepairableGapError: Two logically adjacent segments cannot be joined.
            GeometryError: No segments were given.
        """
        if not segments:
            self.diagnostics.log_error(entity_id, "Invalid composite curve with no segments.", is_fatal=True)
            raise GeometryError("Invalid composite curve with no segments.")

        state = ChainState.initial(segments[0])
        try:
            for index, segment in enumerate(segments[1:], start=1):
                state = self.step(state, index, segment, entity_id)
        except GeometryError as e:
            self.diagnostics.log_error(entity_id, e.message, is_fatal=True)
            raise

        loop = CurveLoop(tolerance=self.tol.vertex_epsilon)
        loop.extend(state.curves)
        return loop

    def step(self, state: ChainState, index: int, segment: Curve, entity_id: EntityId = None) -> ChainState:
        """Attach one segment to the chain; `index` is its position in the input."""
        loop_start, loop_end = state.chain_start, state.chain_end
        next_start, next_end = segment.start, segment.end

        d_end_next_start = loop_end.distance_to(next_start)
        d_end_next_end = loop_end.distance_to(next_end)
        d_start_next_end = loop_start.distance_to(next_end)
        d_start_next_start = loop_start.distance_to(next_start)

        min_gap = min(d_start_next_end, d_start_next_start, d_end_next_start, d_end_next_end)
        if min_gap > self.tol.gap_epsilon:
            raise UnrepairableGapError(
                f"Composite curve contains a gap of {self.tol.format_length(min_gap)} that is greater than "
                f"the maximum gap size of {self.tol.format_length(self.tol.gap_epsilon)} and cannot be repaired "
                f"(segments {index} and {index + 1}).",
                gap=min_gap,
                threshold=self.tol.gap_epsilon,
                segment_indices=(index, index + 1),
            )

        # First match wins when several distances equal the minimum
        attach_to_end = _is_close(d_end_next_start, min_gap) or _is_close(d_end_next_end, min_gap)
        reverse = _is_close(d_end_next_end, min_gap) or _is_close(d_start_next_start, min_gap)
        if reverse:
            segment = segment.reversed()
            next_start, next_end = next_end, next_start

        curves = list(state.curves)
        if min_gap < self.tol.vertex_epsilon:
            if attach_to_end:
                curves.append(segment)
                return ChainState(tuple(curves), loop_start, next_end, state.can_repair_first)
            curves.insert(0, segment)
            return ChainState(tuple(curves), next_start, loop_end, isinstance(segment, Line))

        if attach_to_end:
            if isinstance(segment, Line):
                segment = self._repair_line(entity_id, loop_end, next_end, min_gap)
            elif isinstance(curves[-1], Line):
                curves[-1] = self._repair_line(entity_id, curves[-1].start, next_start, min_gap)
            else:
                curves.append(self._connector(entity_id, index, loop_end, next_start, min_gap))
            curves.append(segment)
            return ChainState(tuple(curves), loop_start, next_end, state.can_repair_first)

        if isinstance(segment, Line):
            segment = self._repair_line(entity_id, next_start, loop_start, min_gap)
        elif state.can_repair_first:
            curves[0] = self._repair_line(entity_id, next_end, curves[0].end, min_gap)
        else:
            curves.insert(0, self._connector(entity_id, index, next_end, loop_start, min_gap))
        curves.insert(0, segment)
        return ChainState(tuple(curves), next_start, loop_end, isinstance(segment, Line))

    def assemble_composite(
        self,
        segments: Sequence[CompositeCurveSegment],
        entity_id: EntityId = None,
    ) -> CurveLoop:
        """
        Apply sense flags, merge runs of too-short segments, then `assemble`.
        """
        repairer = ShortGapRepairer(self.tol, self.diagnostics)
        curves: List[Curve] = []
        for segment in segments:
            curve = segment.oriented()
            if curve is not None:
                curves.append(curve)
                # A pending gap could not be closed before a regular curve arrived
                repairer.clear()
                continue
            start, end = segment.end_points()
            gap_line = repairer.add_to_gap(segment.entity_id, start, end)
            if gap_line is not None:
                curves.append(gap_line)
        repairer.clear()
        return self.assemble(curves, entity_id)

    def _repair_line(self, entity_id: EntityId, start: Point, end: Point, gap: float) -> Line:
        line = Line.create_bound(start, end)
        self.diagnostics.log_warning(
            entity_id, f"Repaired gap of size {self.tol.format_length(gap)} in composite curve."
        )
        return line

    def _connector(self, entity_id: EntityId, index: int, start: Point, end: Point, gap: float) -> Line:
        if self.tol.is_too_short(gap):
            raise UnrepairableGapError(
                f"Composite curve contains a gap of {self.tol.format_length(gap)} between two non-linear "
                f"segments that is too short to be repaired by a connecting segment "
                f"(segments {index} and {index + 1}).",
                gap=gap,
                threshold=self.tol.short_curve_tolerance,
                segment_indices=(index, index + 1),
            )
        return self._repair_line(entity_id, start, end, gap)


def _directions_match(first: Line, second: Line) -> bool:
    return (first.direction - second.direction).magnitude < 1e-9


def _collapse_conic(first: Arc | Ellipse, last_point: Point, vertex_epsilon: float) -> Curve:
    if last_point.is_almost_equal(first.start, vertex_epsilon):
        return first.make_unbound()
    start = first.get_end_parameter(0)
    end = normalize_angle(first.local_angle(last_point), start)
    if end < start:
        end += TWO_PI
    return first.make_bound(start, end)


def _same_circle(first: Arc, other: Arc, vertex_epsilon: float) -> bool:
    return (other.center.is_almost_equal(first.center, vertex_epsilon)
            and _is_close(other.radius, first.radius)
            and _is_close(abs(other.normal.dot(first.normal)), 1.0))


def _same_ellipse(first: Ellipse, other: Ellipse) -> bool:
    if not _is_close(abs(other.normal.dot(first.normal)), 1.0):
        return False
    if not other.center.is_almost_equal(first.center, 1e-9):
        return False
    if _is_close(first.radius_x, other.radius_x):
        return (_is_close(first.radius_y, other.radius_y)
                and (other.x_axis - first.x_axis).magnitude < 1e-9
                and (other.y_axis - first.y_axis).magnitude < 1e-9)
    # Radii and axes may be swapped
    if _is_close(first.radius_x, other.radius_y):
        return (_is_close(first.radius_y, other.radius_x)
                and (other.x_axis - first.y_axis).magnitude < 1e-9
                and (other.y_axis - first.x_axis).magnitude < 1e-9)
    return False


def collapse_if_uniform(loop: CurveLoop, vertex_epsilon: Optional[float] = None) -> Optional[Curve]:
    """
    Replace a loop of collinear lines, or of pieces of one circle or ellipse, by a
    single curve. Returns None if the loop is not uniform.
    """
    if not loop.curves:
        return None
    eps = loop.tolerance if vertex_epsilon is None else vertex_epsilon
    first = loop.curves[0]
    rest = loop.curves[1:]
    if not rest:
        return first
    last_point = loop.curves[-1].end

    match first:
        case Line():
            if not all(isinstance(c, Line) and _directions_match(first, c) for c in rest):
                return None
            return Line.create_bound(first.start, last_point)
        case Arc():
            if not all(isinstance(c, Arc) and _same_circle(first, c, eps) for c in rest):
                return None
            return _collapse_conic(first, last_point, eps)
        case Ellipse():
            if not all(isinstance(c, Ellipse) and _same_ellipse(first, c) for c in rest):
                return None
            return _collapse_conic(first, last_point, 1e-9)
    return None
