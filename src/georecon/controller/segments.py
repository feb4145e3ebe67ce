"""
Segment Descriptors
===================
Profile boundaries are first described as a list of light-weight segment
descriptors and only then materialized into curves.

Why is this file needed?
------------------------
1. All or nothing: A batch of descriptors is turned into curves and appended to a
   loop only if every curve can be created. A failing batch leaves the loop untouched,
   so a shape builder can try a filleted outline first and fall back to a plain one.
2. Result values: An expected failure ("the fillet does not fit") is returned as a
   `Result` with a `FalloffReason` instead of being raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Generic, List, Optional, TypeVar, Union

from georecon.config import ToleranceContext
from georecon.exceptions import CurveConstructionError
from georecon.model.curve_loop import CurveLoop
from georecon.model.geometry_primitives import Arc, Curve, Line, Point

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FalloffReason(StrEnum):
    """Why an optional construction step was abandoned."""
    TOO_SHORT = "curve too short"
    DEGENERATE = "degenerate curve"
    NOT_CONTIGUOUS = "curves not contiguous"
    INVALID_DIMENSION = "invalid dimension"


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    reason: Optional[FalloffReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, reason: FalloffReason, detail: str = "") -> Result[T]:
        return cls(reason=reason, detail=detail)


@dataclass(frozen=True)
class LineSegment:
    """Straight segment between two points."""
    start: Point
    end: Point


@dataclass(frozen=True)
class ArcSegment:
    """
    Counter-clockwise arc around `center` from `start_angle` to `end_angle`.
    With `reverse` the arc is traversed clockwise (from the end angle to the start).
    """
    center: Point
    radius: float
    start_angle: float
    end_angle: float
    reverse: bool = False


SegmentDescriptor = Union[LineSegment, ArcSegment]


def _materialize(descriptor: SegmentDescriptor, tol: ToleranceContext) -> Result[Curve]:
    match descriptor:
        case LineSegment(start=start, end=end):
            length = start.distance_to(end)
            if tol.is_too_short(length):
                return Result.failure(FalloffReason.TOO_SHORT, f"line of length {tol.format_length(length)}")
            return Result.success(Line.create_bound(start, end))
        case ArcSegment(center=center, radius=radius, start_angle=a0, end_angle=a1, reverse=reverse):
            if tol.is_too_short(radius * abs(a1 - a0)):
                return Result.failure(FalloffReason.TOO_SHORT, f"arc of radius {tol.format_length(radius)}")
            try:
                arc = Arc.create(center, radius, a0, a1)
            except CurveConstructionError as e:
                return Result.failure(FalloffReason.DEGENERATE, e.message)
            return Result.success(arc.reversed() if reverse else arc)
    raise TypeError(f"Unknown segment descriptor {type(descriptor).__name__}")


@dataclass
class SegmentBatch:
    """
    Scratch list of segment descriptors for one stage of a profile outline.
    """
    tol: ToleranceContext
    descriptors: List[SegmentDescriptor] = field(default_factory=list)

    def add_line(self, start: Point, end: Point) -> None:
        self.descriptors.append(LineSegment(start, end))

    def add_arc(self, center: Point, radius: float, start_angle: float, end_angle: float,
                reverse: bool = False) -> None:
        self.descriptors.append(ArcSegment(center, radius, start_angle, end_angle, reverse))

    def __len__(self) -> int:
        return len(self.descriptors)

    def append_to(self, loop: CurveLoop) -> Result[CurveLoop]:
        """
        Materialize every descriptor and append the curves to `loop`.

        The descriptor list is always cleared. On failure the loop is left unchanged.
        """
        descriptors, self.descriptors = self.descriptors, []
        curves: List[Curve] = []
        for descriptor in descriptors:
            result = _materialize(descriptor, self.tol)
            if not result.ok:
                return Result.failure(result.reason, result.detail)
            curves.append(result.value)

        candidate = loop.copy()
        try:
            candidate.extend(curves)
        except CurveConstructionError as e:
            return Result.failure(FalloffReason.NOT_CONTIGUOUS, e.message)
        loop.curves[:] = candidate.curves
        return Result.success(loop)


def append_segments(loop: CurveLoop, batch: SegmentBatch) -> bool:
    """Convenience wrapper returning only whether the batch was appended."""
    result = batch.append_to(loop)
    if not result.ok:
        logger.debug(f"Segment batch discarded: {result.reason} {result.detail}")
    return result.ok
