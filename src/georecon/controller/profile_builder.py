"""
Parametric Profile Builder
==========================
Turns profile parameter sets into closed curve loops.

Why is this file needed?
------------------------
1. Shape formulas: Every standard cross-section family (rectangle, circle, ellipse,
   C, L, I, T, U and Z shapes) is described by a handful of dimensions. The corner
   and fillet points of each family are computed here.
2. Graceful degradation: A fillet that cannot be built (too small, too large, or
   producing a degenerate curve) never loses the profile. The shape is rebuilt as a
   plain polygon from the same vertices and a warning names the removed feature.
3. Arbitrary profiles: Open curves, centre lines with a thickness and closed curves
   with voids are validated and converted to loops.

Builders are looked up by `ProfileShape` in a registry filled by the
`register_shape` decorator.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, NoReturn, Optional, Sequence, Union

from georecon.config import EPS, ToleranceContext
from georecon.controller.cache import Arena
from georecon.controller.segments import FalloffReason, Result, SegmentBatch
from georecon.diagnostics import Diagnostics, EntityId
from georecon.exceptions import CurveConstructionError, InvalidProfileError
from georecon.model.curve_loop import CurveLoop, loop_from_cyclic_curve, split_unbound_cyclic_curves, thicken
from georecon.model.geometry_primitives import Arc, Curve, Ellipse, Point, Vector, BASIS_Z, ORIGIN
from georecon.model.geometry_utils import line_intersection
from georecon.model.profiles import (
    ArbitraryClosedProfile,
    ArbitraryOpenProfile,
    CenterLineProfile,
    CircleHollowProfile,
    CircleProfile,
    CompositeProfile,
    CShapeProfile,
    DerivedProfile,
    EllipseProfile,
    IShapeProfile,
    LShapeProfile,
    Profile,
    ProfileParams,
    ProfileShape,
    RectangleHollowProfile,
    RectangleProfile,
    TShapeProfile,
    UShapeProfile,
    ZShapeProfile,
)

logger = logging.getLogger(__name__)

PI = math.pi
HALF_PI = math.pi / 2.0

ShapeBuilder = Callable[["_ShapeContext", ProfileParams], Profile]
Fill = Callable[[SegmentBatch], None]

_REGISTRY: Dict[ProfileShape, ShapeBuilder] = {}


def register_shape(shape: ProfileShape) -> Callable[[ShapeBuilder], ShapeBuilder]:
    """Function decorator to register the builder of a shape kind."""
    def decorator(func: ShapeBuilder) -> ShapeBuilder:
        _REGISTRY[shape] = func
        return func
    return decorator


def list_shapes() -> List[ProfileShape]:
    return list(_REGISTRY.keys())


# ------------------------------------------------------------------------------
# Shared machinery
# ------------------------------------------------------------------------------
@dataclass
class _ShapeContext:
    """Per-build helpers: tolerances, diagnostics and outline construction."""
    builder: ParametricProfileBuilder
    entity_id: EntityId

    @property
    def tol(self) -> ToleranceContext:
        return self.builder.tol

    def fail(self, message: str, **details: str) -> NoReturn:
        self.builder.diagnostics.log_error(self.entity_id, message, is_fatal=True)
        raise InvalidProfileError(message, details=details or None)

    def warn(self, message: str) -> None:
        self.builder.diagnostics.log_warning(self.entity_id, message)

    def length(self, value: float) -> str:
        return self.tol.format_length(value)

    def require(self, label: str, name: str, value: Optional[float]) -> float:
        if value is None:
            self.fail(f"{label} profile is missing required parameter {name}.", parameter=name)
        if value < EPS:
            self.fail(f"{label} profile has invalid {name}: {value}.", parameter=name, value=repr(value))
        return float(value)

    def new_loop(self) -> CurveLoop:
        return CurveLoop(tolerance=self.tol.vertex_epsilon)

    def batch(self) -> SegmentBatch:
        return SegmentBatch(self.tol)

    def try_outline(self, fill: Fill) -> Result[CurveLoop]:
        batch = self.batch()
        fill(batch)
        loop = self.new_loop()
        result = batch.append_to(loop)
        if result.ok and loop.is_open():
            return Result.failure(FalloffReason.NOT_CONTIGUOUS, "outline is not closed")
        return result

    def outline(self, label: str, fill: Fill) -> CurveLoop:
        result = self.try_outline(fill)
        if not result.ok:
            self.fail(f"Couldn't create the outline of {label} profile: {result.reason} ({result.detail}).")
        return result.value

    def polygon(self, label: str, points: Sequence[Point]) -> CurveLoop:
        def fill(batch: SegmentBatch) -> None:
            for ii, point in enumerate(points):
                batch.add_line(point, points[(ii + 1) % len(points)])
        return self.outline(label, fill)

    def outline_with_fallback(self, label: str, feature: str, fill: Fill, points: Sequence[Point]) -> CurveLoop:
        """Build the filleted outline, or the plain polygon through `points` if that fails."""
        result = self.try_outline(fill)
        if result.ok:
            return result.value
        self.warn(f"Couldn't create {feature} of {label} profile ({result.reason}), removing {feature}.")
        return self.polygon(label, points)

    def append_stage(self, loop: CurveLoop, label: str, feature: str, fill: Fill, fallback: Fill) -> bool:
        """Append one stage of an outline, falling back to straight connectors for this stage only."""
        batch = self.batch()
        fill(batch)
        if batch.append_to(loop).ok:
            return True
        self.warn(f"Couldn't create {feature} of {label} profile, removing {feature}.")
        batch = self.batch()
        fallback(batch)
        result = batch.append_to(loop)
        if not result.ok:
            self.fail(f"Couldn't create the outline of {label} profile: {result.reason} ({result.detail}).")
        return False


def _has_radius(value: Optional[float]) -> bool:
    return value is not None and value > EPS


# ------------------------------------------------------------------------------
# Rectangles, circles and ellipses
# ------------------------------------------------------------------------------
def _rectangle_corners(x_dim: float, y_dim: float) -> List[Point]:
    return [
        Point(-x_dim / 2.0, -y_dim / 2.0),
        Point(x_dim / 2.0, -y_dim / 2.0),
        Point(x_dim / 2.0, y_dim / 2.0),
        Point(-x_dim / 2.0, y_dim / 2.0),
    ]


def _fill_rounded_rectangle(batch: SegmentBatch, corners: Sequence[Point], radius: float) -> None:
    c, r = corners, radius
    centers = [
        c[0] + Vector(r, r),
        c[1] + Vector(-r, r),
        c[2] + Vector(-r, -r),
        c[3] + Vector(r, -r),
    ]
    fillets = [
        c[0] + Vector(0.0, r), c[0] + Vector(r, 0.0),
        c[1] + Vector(-r, 0.0), c[1] + Vector(0.0, r),
        c[2] + Vector(0.0, -r), c[2] + Vector(-r, 0.0),
        c[3] + Vector(r, 0.0), c[3] + Vector(0.0, -r),
    ]
    for ii in range(4):
        batch.add_line(fillets[ii * 2 + 1], fillets[(ii * 2 + 2) % 8])
        start = PI * ((ii + 3) % 4) / 2.0
        batch.add_arc(centers[(ii + 1) % 4], r, start, start + HALF_PI)


def _rectangle_loop(ctx: _ShapeContext, label: str, x_dim: float, y_dim: float,
                    radius: Optional[float], feature: str) -> CurveLoop:
    corners = _rectangle_corners(x_dim, y_dim)
    if _has_radius(radius):
        if radius < min(x_dim, y_dim) / 2.0 - EPS:
            return ctx.outline_with_fallback(
                label, feature, lambda b: _fill_rounded_rectangle(b, corners, radius), corners
            )
        ctx.warn(f"Radius {ctx.length(radius)} of {label} profile doesn't fit, removing {feature}.")
    return ctx.polygon(label, corners)


@register_shape(ProfileShape.RECTANGLE)
def _build_rectangle(ctx: _ShapeContext, p: RectangleProfile) -> Profile:
    x_dim = ctx.require("Rectangle", "x_dim", p.x_dim)
    y_dim = ctx.require("Rectangle", "y_dim", p.y_dim)
    return Profile(_rectangle_loop(ctx, "rectangle", x_dim, y_dim, p.rounding_radius, "rounded corners"))


@register_shape(ProfileShape.RECTANGLE_HOLLOW)
def _build_rectangle_hollow(ctx: _ShapeContext, p: RectangleHollowProfile) -> Profile:
    label = "hollow rectangle"
    x_dim = ctx.require("Hollow rectangle", "x_dim", p.x_dim)
    y_dim = ctx.require("Hollow rectangle", "y_dim", p.y_dim)
    outer = _rectangle_loop(ctx, label, x_dim, y_dim, p.outer_fillet_radius, "outer fillets")

    thickness = p.wall_thickness or 0.0
    if not EPS < thickness < min(x_dim, y_dim) / 2.0 - EPS:
        ctx.warn(f"Wall thickness {ctx.length(thickness)} of {label} profile is invalid, ignoring the void.")
        return Profile(outer)
    inner = _rectangle_loop(
        ctx, label, x_dim - 2.0 * thickness, y_dim - 2.0 * thickness, p.inner_fillet_radius, "inner fillets"
    )
    return Profile(outer, [inner])


def _circle_loop(ctx: _ShapeContext, label: str, radius: float) -> CurveLoop:
    # Two halves: the solid kernel needs bound curves
    def fill(batch: SegmentBatch) -> None:
        batch.add_arc(ORIGIN, radius, 0.0, PI)
        batch.add_arc(ORIGIN, radius, PI, 2.0 * PI)
    return ctx.outline(label, fill)


@register_shape(ProfileShape.CIRCLE)
def _build_circle(ctx: _ShapeContext, p: CircleProfile) -> Profile:
    radius = ctx.require("Circle", "radius", p.radius)
    return Profile(_circle_loop(ctx, "circle", radius))


@register_shape(ProfileShape.CIRCLE_HOLLOW)
def _build_circle_hollow(ctx: _ShapeContext, p: CircleHollowProfile) -> Profile:
    radius = ctx.require("Hollow circle", "radius", p.radius)
    outer = _circle_loop(ctx, "hollow circle", radius)
    thickness = p.wall_thickness or 0.0
    if not EPS < thickness < radius:
        ctx.warn(f"Wall thickness {ctx.length(thickness)} of hollow circle profile is invalid, ignoring the void.")
        return Profile(outer)
    return Profile(outer, [_circle_loop(ctx, "hollow circle", radius - thickness)])


@register_shape(ProfileShape.ELLIPSE)
def _build_ellipse(ctx: _ShapeContext, p: EllipseProfile) -> Profile:
    radius_x = ctx.require("Ellipse", "semi_axis_1", p.semi_axis_1)
    radius_y = ctx.require("Ellipse", "semi_axis_2", p.semi_axis_2)
    loop = ctx.new_loop()
    try:
        loop.append(Ellipse.create(ORIGIN, radius_x, radius_y, 0.0, PI))
        loop.append(Ellipse.create(ORIGIN, radius_x, radius_y, PI, 2.0 * PI))
    except CurveConstructionError as e:
        ctx.fail(f"Couldn't create the outline of ellipse profile: {e.message}")
    return Profile(loop)


# ------------------------------------------------------------------------------
# Structural shapes
# ------------------------------------------------------------------------------
@register_shape(ProfileShape.C_SHAPE)
def _build_c_shape(ctx: _ShapeContext, p: CShapeProfile) -> Profile:
    label = "C-shape"
    d = ctx.require(label, "depth", p.depth)
    w = ctx.require(label, "width", p.width)
    t = ctx.require(label, "wall_thickness", p.wall_thickness)
    g = ctx.require(label, "girth", p.girth)
    cx = p.centre_of_gravity_x or 0.0

    pts = [
        Point(w / 2.0 + cx, -d / 2.0 + g),
        Point(w / 2.0 + cx, -d / 2.0),
        Point(-w / 2.0 + cx, -d / 2.0),
        Point(-w / 2.0 + cx, d / 2.0),
        Point(w / 2.0 + cx, d / 2.0),
        Point(w / 2.0 + cx, d / 2.0 - g),
        Point(w / 2.0 + cx - t, d / 2.0 - g),
        Point(w / 2.0 + cx - t, d / 2.0 - t),
        Point(-w / 2.0 + cx + t, d / 2.0 - t),
        Point(-w / 2.0 + cx + t, -d / 2.0 + t),
        Point(w / 2.0 + cx - t, -d / 2.0 + t),
        Point(w / 2.0 + cx - t, -d / 2.0 + g),
    ]
    r = p.internal_fillet_radius
    if not _has_radius(r):
        return Profile(ctx.polygon(label, pts))

    # Outer fillets share their centres with the inner ones
    outer_r = r + t
    if g <= outer_r + EPS:
        ctx.warn(
            f"Couldn't create fillets of {label} profile (girth {ctx.length(g)} doesn't leave room "
            f"for fillet of radius {ctx.length(outer_r)}), removing fillets."
        )
        return Profile(ctx.polygon(label, pts))

    def fill(batch: SegmentBatch) -> None:
        R = outer_r
        f = [
            pts[1] + Vector(0.0, R), pts[1] + Vector(-R, 0.0),
            pts[2] + Vector(R, 0.0), pts[2] + Vector(0.0, R),
            pts[3] + Vector(0.0, -R), pts[3] + Vector(R, 0.0),
            pts[4] + Vector(-R, 0.0), pts[4] + Vector(0.0, -R),
            pts[7] + Vector(0.0, -r), pts[7] + Vector(-r, 0.0),
            pts[8] + Vector(r, 0.0), pts[8] + Vector(0.0, -r),
            pts[9] + Vector(0.0, r), pts[9] + Vector(r, 0.0),
            pts[10] + Vector(-r, 0.0), pts[10] + Vector(0.0, r),
        ]
        centers = [
            pts[1] + Vector(-R, R),
            pts[2] + Vector(R, R),
            pts[3] + Vector(R, -R),
            pts[4] + Vector(-R, -R),
        ]
        ranges = [(1.5 * PI, 2.0 * PI), (PI, 1.5 * PI), (HALF_PI, PI), (0.0, HALF_PI)]

        batch.add_line(pts[0], f[0])
        for ii in range(4):
            batch.add_arc(centers[ii], R, *ranges[ii], reverse=True)
            if ii < 3:
                batch.add_line(f[2 * ii + 1], f[2 * ii + 2])
        batch.add_line(f[7], pts[5])
        batch.add_line(pts[5], pts[6])
        batch.add_line(pts[6], f[8])
        for jj in range(3):
            batch.add_arc(centers[3 - jj], r, *ranges[3 - jj])
            batch.add_line(f[2 * jj + 9], f[2 * jj + 10])
        batch.add_arc(centers[0], r, *ranges[0])
        batch.add_line(f[15], pts[11])
        batch.add_line(pts[11], pts[0])

    return Profile(ctx.outline_with_fallback(label, "fillets", fill, pts))


@register_shape(ProfileShape.L_SHAPE)
def _build_l_shape(ctx: _ShapeContext, p: LShapeProfile) -> Profile:
    """
    The L outline is built in four stages (first leg, edge fillet, corner fillet,
    closing leg); a fillet that fails is replaced by straight lines in its stage only.
    """
    label = "L-shape"
    depth = ctx.require(label, "depth", p.depth)
    thickness = ctx.require(label, "thickness", p.thickness)
    width = depth if p.width is None else ctx.require(label, "width", p.width)
    cx = p.centre_of_gravity_x or 0.0
    cy = cx if p.centre_of_gravity_y is None else p.centre_of_gravity_y
    fillet = p.fillet_radius or 0.0
    edge = p.edge_radius or 0.0

    filleted_corner = fillet > EPS
    filleted_edge = edge > EPS
    if filleted_edge and thickness < edge - EPS:
        ctx.warn(f"Edge radius {ctx.length(edge)} of {label} profile is larger than its thickness "
                 f"{ctx.length(thickness)}, removing edge fillets.")
        filleted_edge = False
    full_edge = filleted_edge and abs(thickness - edge) < EPS

    orig = Point(-width / 2.0 + cx, -depth / 2.0 + cy)
    lr = orig + Vector(width, 0.0)
    lr_top = lr + Vector(0.0, thickness)
    corner = orig + Vector(thickness, thickness)
    ul_top = Point(orig.x + thickness, orig.y + depth)
    ul = Point(orig.x, orig.y + depth)

    lr_edge_center = lr_top - Vector(edge, edge)
    ul_edge_center = ul_top - Vector(edge, edge)
    lr_edge_start = Point(lr_top.x, lr_top.y - edge)
    lr_edge_end = Point(lr_top.x - edge, lr_top.y)
    ul_edge_start = Point(ul_top.x, ul_top.y - edge)
    ul_edge_end = Point(ul_top.x - edge, ul_top.y)

    fillet_center = corner + Vector(fillet, fillet)
    lr_corner = Point(corner.x + fillet, corner.y)
    ul_corner = Point(corner.x, corner.y + fillet)

    loop = ctx.new_loop()

    # Stage 1: first leg
    def first_leg(batch: SegmentBatch) -> None:
        batch.add_line(orig, lr)
    ctx.append_stage(loop, label, "outline", first_leg, first_leg)

    # Stage 2: edge fillet at the end of the horizontal leg
    if filleted_edge:
        def lr_edge(batch: SegmentBatch) -> None:
            if not full_edge:
                batch.add_line(lr, lr_edge_start)
            batch.add_arc(lr_edge_center, edge, 0.0, HALF_PI)
        ctx.append_stage(loop, label, "edge fillet", lr_edge, lambda b: b.add_line(lr, lr_top))
    else:
        ctx.append_stage(loop, label, "outline", lambda b: b.add_line(lr, lr_top), lambda b: b.add_line(lr, lr_top))

    # Stage 3: inner corner
    corner_start = loop.end
    corner_end = ul_edge_start if filleted_edge else ul_top

    def sharp_corner(batch: SegmentBatch) -> None:
        batch.add_line(corner_start, corner)
        batch.add_line(corner, corner_end)

    if filleted_corner:
        def round_corner(batch: SegmentBatch) -> None:
            batch.add_line(corner_start, lr_corner)
            batch.add_arc(fillet_center, fillet, PI, 1.5 * PI, reverse=True)
            batch.add_line(ul_corner, corner_end)
        ctx.append_stage(loop, label, "corner fillet", round_corner, sharp_corner)
    else:
        ctx.append_stage(loop, label, "outline", sharp_corner, sharp_corner)

    # Stage 4: closing leg
    closing_start = loop.end

    def sharp_close(batch: SegmentBatch) -> None:
        batch.add_line(closing_start, ul)
        batch.add_line(ul, orig)

    if filleted_edge:
        def ul_edge(batch: SegmentBatch) -> None:
            batch.add_arc(ul_edge_center, edge, 0.0, HALF_PI)
            if not full_edge:
                batch.add_line(ul_edge_end, ul)
            batch.add_line(ul, orig)
        ctx.append_stage(loop, label, "edge fillet", ul_edge, sharp_close)
    else:
        ctx.append_stage(loop, label, "outline", sharp_close, sharp_close)

    if loop.is_open():
        ctx.fail(f"Couldn't close the outline of {label} profile.")
    if abs(p.leg_slope) > EPS:
        ctx.warn(f"Leg slope of {label} profile is not supported, ignoring.")
    return Profile(loop)


@register_shape(ProfileShape.I_SHAPE)
def _build_i_shape(ctx: _ShapeContext, p: IShapeProfile) -> Profile:
    label = "I-shape"
    w = ctx.require(label, "overall_width", p.overall_width)
    d = ctx.require(label, "overall_depth", p.overall_depth)
    tw = ctx.require(label, "web_thickness", p.web_thickness)
    ft = ctx.require(label, "flange_thickness", p.flange_thickness)

    # Symmetric in x and y
    pts = [
        Point(-w / 2.0, -d / 2.0),
        Point(w / 2.0, -d / 2.0),
        Point(w / 2.0, -d / 2.0 + ft),
        Point(tw / 2.0, -d / 2.0 + ft),
        Point(tw / 2.0, d / 2.0 - ft),
        Point(w / 2.0, d / 2.0 - ft),
        Point(w / 2.0, d / 2.0),
        Point(-w / 2.0, d / 2.0),
        Point(-w / 2.0, d / 2.0 - ft),
        Point(-tw / 2.0, d / 2.0 - ft),
        Point(-tw / 2.0, -d / 2.0 + ft),
        Point(-w / 2.0, -d / 2.0 + ft),
    ]
    r = p.fillet_radius
    if not _has_radius(r):
        return Profile(ctx.polygon(label, pts))

    def fill(batch: SegmentBatch) -> None:
        f = [
            pts[3] + Vector(r, 0.0), pts[3] + Vector(0.0, r),
            pts[4] + Vector(0.0, -r), pts[4] + Vector(r, 0.0),
            pts[9] + Vector(-r, 0.0), pts[9] + Vector(0.0, -r),
            pts[10] + Vector(0.0, r), pts[10] + Vector(-r, 0.0),
        ]
        centers = [
            pts[3] + Vector(r, r),
            pts[4] + Vector(r, -r),
            pts[9] + Vector(-r, -r),
            pts[10] + Vector(-r, r),
        ]
        ranges = [(PI, 1.5 * PI), (HALF_PI, PI), (0.0, HALF_PI), (1.5 * PI, 2.0 * PI)]

        batch.add_line(pts[0], pts[1])
        batch.add_line(pts[1], pts[2])
        batch.add_line(pts[2], f[0])
        batch.add_arc(centers[0], r, *ranges[0], reverse=True)
        batch.add_line(f[1], f[2])
        batch.add_arc(centers[1], r, *ranges[1], reverse=True)
        batch.add_line(f[3], pts[5])
        batch.add_line(pts[5], pts[6])
        batch.add_line(pts[6], pts[7])
        batch.add_line(pts[7], pts[8])
        batch.add_line(pts[8], f[4])
        batch.add_arc(centers[2], r, *ranges[2], reverse=True)
        batch.add_line(f[5], f[6])
        batch.add_arc(centers[3], r, *ranges[3], reverse=True)
        batch.add_line(f[7], pts[11])
        batch.add_line(pts[11], pts[0])

    return Profile(ctx.outline_with_fallback(label, "fillets", fill, pts))


@register_shape(ProfileShape.T_SHAPE)
def _build_t_shape(ctx: _ShapeContext, p: TShapeProfile) -> Profile:
    label = "T-shape"
    depth = ctx.require(label, "depth", p.depth)
    fw = ctx.require(label, "flange_width", p.flange_width)
    tw = ctx.require(label, "web_thickness", p.web_thickness)
    ft = ctx.require(label, "flange_thickness", p.flange_thickness)
    cy = p.centre_of_gravity_y or 0.0

    web_dx = (depth / 2.0) * math.sin(p.web_slope)
    web_dir = Vector(-math.sin(p.web_slope), math.cos(p.web_slope))
    flange_dy = (fw / 4.0) * math.sin(p.flange_slope)
    flange_dir = Vector(math.cos(p.flange_slope), -math.sin(p.flange_slope))

    p0 = Point(-fw / 2.0, depth / 2.0 + cy)
    p1 = Point(-fw / 2.0, depth / 2.0 + cy - (ft - flange_dy))
    p3 = Point(-tw / 2.0 + web_dx, -depth / 2.0 + cy)
    p4 = Point(-p3.x, p3.y)
    # The sloped flange underside meets the sloped web side
    hit = line_intersection(p1, p1 + flange_dir, p3, p3 + web_dir)
    if hit is None:
        ctx.fail(f"Couldn't calculate the web to flange point of {label} profile.")
    p2 = Point(hit[0], hit[1])
    p5 = Point(-p2.x, p2.y)
    p6 = Point(fw / 2.0, p1.y)
    p7 = Point(fw / 2.0, p0.y)

    if any(_has_radius(r) for r in (p.fillet_radius, p.flange_edge_radius, p.web_edge_radius)):
        ctx.warn(f"Fillets of {label} profile are not supported, removing fillets.")
    return Profile(ctx.polygon(label, [p0, p1, p2, p3, p4, p5, p6, p7]))


@register_shape(ProfileShape.U_SHAPE)
def _build_u_shape(ctx: _ShapeContext, p: UShapeProfile) -> Profile:
    label = "U-shape"
    d = ctx.require(label, "depth", p.depth)
    fw = ctx.require(label, "flange_width", p.flange_width)
    tw = ctx.require(label, "web_thickness", p.web_thickness)
    ft = ctx.require(label, "flange_thickness", p.flange_thickness)
    cx = p.centre_of_gravity_x or 0.0
    slope = math.sin(p.flange_slope)

    # Lower left corner first, counter-clockwise
    p2_y = -d / 2.0 + (ft - slope * (fw / 2.0))
    p3_y = -d / 2.0 + (ft + slope * (fw / 2.0 - tw))
    pts = [
        Point(-fw / 2.0 + cx, -d / 2.0),
        Point(fw / 2.0 + cx, -d / 2.0),
        Point(fw / 2.0 + cx, p2_y),
        Point(-fw / 2.0 + cx + tw, p3_y),
        Point(-fw / 2.0 + cx + tw, -p3_y),
        Point(fw / 2.0 + cx, -p2_y),
        Point(fw / 2.0 + cx, d / 2.0),
        Point(-fw / 2.0 + cx, d / 2.0),
    ]
    if _has_radius(p.fillet_radius) or _has_radius(p.edge_radius):
        ctx.warn(f"Fillets of {label} profile are not supported, removing fillets.")
    return Profile(ctx.polygon(label, pts))


@register_shape(ProfileShape.Z_SHAPE)
def _build_z_shape(ctx: _ShapeContext, p: ZShapeProfile) -> Profile:
    label = "Z-shape"
    d = ctx.require(label, "depth", p.depth)
    fw = ctx.require(label, "flange_width", p.flange_width)
    tw = ctx.require(label, "web_thickness", p.web_thickness)
    ft = ctx.require(label, "flange_thickness", p.flange_thickness)

    pts = [
        Point(-tw / 2.0, -d / 2.0),
        Point(fw - tw / 2.0, -d / 2.0),
        Point(fw - tw / 2.0, ft - d / 2.0),
        Point(tw / 2.0, ft - d / 2.0),
        Point(tw / 2.0, d / 2.0),
        Point(tw / 2.0 - fw, d / 2.0),
        Point(tw / 2.0 - fw, d / 2.0 - ft),
        Point(-tw / 2.0, d / 2.0 - ft),
    ]
    r = p.fillet_radius or 0.0
    e = p.edge_radius or 0.0
    has_fillet = r > EPS
    has_edge = e > EPS
    if not (has_fillet or has_edge):
        return Profile(ctx.polygon(label, pts))

    def fill(batch: SegmentBatch) -> None:
        batch.add_line(pts[0], pts[1])
        if has_edge:
            batch.add_line(pts[1], Point(pts[2].x, pts[2].y - e))
            batch.add_arc(pts[2] + Vector(-e, -e), e, 0.0, HALF_PI)
            next_start = Point(pts[2].x - e, pts[2].y)
        else:
            batch.add_line(pts[1], pts[2])
            next_start = pts[2]
        if has_fillet:
            batch.add_line(next_start, Point(pts[3].x + r, pts[3].y))
            batch.add_arc(pts[3] + Vector(r, r), r, PI, 1.5 * PI, reverse=True)
            next_start = Point(pts[3].x, pts[3].y + r)
        else:
            batch.add_line(next_start, pts[3])
            next_start = pts[3]
        batch.add_line(next_start, pts[4])
        batch.add_line(pts[4], pts[5])
        if has_edge:
            batch.add_line(pts[5], Point(pts[6].x, pts[6].y + e))
            batch.add_arc(pts[6] + Vector(e, e), e, PI, 1.5 * PI)
            next_start = Point(pts[6].x + e, pts[6].y)
        else:
            batch.add_line(pts[5], pts[6])
            next_start = pts[6]
        if has_fillet:
            batch.add_line(next_start, Point(pts[7].x - r, pts[7].y))
            batch.add_arc(pts[7] + Vector(-r, -r), r, 0.0, HALF_PI, reverse=True)
            next_start = Point(pts[7].x, pts[7].y - r)
        else:
            batch.add_line(next_start, pts[7])
            next_start = pts[7]
        batch.add_line(next_start, pts[0])

    return Profile(ctx.outline_with_fallback(label, "fillets", fill, pts))


# ------------------------------------------------------------------------------
# Arbitrary profiles
# ------------------------------------------------------------------------------
def _open_loop(ctx: _ShapeContext, label: str, curve: Union[CurveLoop, Curve, None]) -> CurveLoop:
    match curve:
        case None:
            ctx.fail(f"{label} profile has no curve.")
        case CurveLoop():
            if not curve.curves:
                ctx.fail(f"{label} profile has an empty curve.")
            return curve.copy()
    curves = split_unbound_cyclic_curves([curve])
    if not all(c.is_bound for c in curves):
        ctx.fail(f"{label} profile uses an unbound curve that can't be split.")
    loop = ctx.new_loop()
    loop.extend(curves)
    return loop


def _plane_normal(loop: CurveLoop) -> Vector:
    for curve in loop:
        if isinstance(curve, (Arc, Ellipse)):
            return curve.normal
    return BASIS_Z


@register_shape(ProfileShape.ARBITRARY_OPEN)
def _build_arbitrary_open(ctx: _ShapeContext, p: ArbitraryOpenProfile) -> Profile:
    return Profile(_open_loop(ctx, "Open", p.curve))


@register_shape(ProfileShape.CENTER_LINE)
def _build_center_line(ctx: _ShapeContext, p: CenterLineProfile) -> Profile:
    label = "Centre line"
    thickness = ctx.require(label, "thickness", p.thickness)
    loop = _open_loop(ctx, label, p.curve)
    try:
        return Profile(thicken(loop, thickness, _plane_normal(loop)))
    except CurveConstructionError as e:
        ctx.fail(f"Couldn't thicken the curve of centre line profile: {e.message}")


def _closed_loop(ctx: _ShapeContext, curve: Union[CurveLoop, Curve]) -> Optional[CurveLoop]:
    if isinstance(curve, CurveLoop):
        return curve.copy() if curve.curves else None
    return loop_from_cyclic_curve(curve, ctx.tol.vertex_epsilon)


@register_shape(ProfileShape.ARBITRARY_CLOSED)
def _build_arbitrary_closed(ctx: _ShapeContext, p: ArbitraryClosedProfile) -> Profile:
    outer_ref = p.outer_curve
    if outer_ref is None or outer_ref.curve is None:
        ctx.fail("Couldn't convert the outer curve of arbitrary closed profile.")
    outer = _closed_loop(ctx, outer_ref.curve)
    if outer is None:
        if isinstance(outer_ref.curve, CurveLoop) or outer_ref.curve.is_bound:
            ctx.fail(f"Outer curve #{outer_ref.key} of arbitrary closed profile isn't closed and can't be used.")
        ctx.fail(f"Couldn't split unbound outer curve #{outer_ref.key} of arbitrary closed profile.")

    profile = Profile(outer)
    if p.inner_curves is None:
        return profile
    if not p.inner_curves:
        ctx.warn("Arbitrary profile with voids has no voids.")
        return profile

    used = set()
    for inner_ref in p.inner_curves:
        if inner_ref is None or inner_ref.curve is None:
            ctx.warn("Null or invalid inner curve in arbitrary profile with voids, ignoring.")
            continue
        if inner_ref.key in used:
            ctx.fail(f"Duplicate void #{inner_ref.key} in arbitrary profile with voids.")
        if inner_ref.key == outer_ref.key:
            ctx.fail(f"Inner curve #{inner_ref.key} same as outer curve in arbitrary profile with voids.")
        used.add(inner_ref.key)

        inner = _closed_loop(ctx, inner_ref.curve)
        if inner is None:
            ctx.warn(f"Invalid inner curve #{inner_ref.key} in arbitrary profile with voids, ignoring.")
            continue
        profile.inners.append(inner)
    return profile


@register_shape(ProfileShape.DERIVED)
def _build_derived(ctx: _ShapeContext, p: DerivedProfile) -> Profile:
    if p.parent is None:
        ctx.fail("Derived profile has no parent profile.")
    parent = ctx.builder.build_uncached(p.parent, ctx.entity_id)
    return parent.transformed(p.operator)


# ------------------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------------------
@dataclass
class ParametricProfileBuilder:
    """
    Builds `Profile` values from profile parameters.

    Results are memoized per entity id when an `Arena` is supplied, so a profile
    shared by several extrusions is built once.
    """
    tol: ToleranceContext = field(default_factory=ToleranceContext)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    arena: Optional[Arena[Profile]] = None

    def build(self, params: ProfileParams, entity_id: EntityId = None) -> Profile:
        """
        Build the outer and inner loops of one profile.

        Raises:
            InvalidProfileError: A required dimension is missing or not positive, or the
                profile is otherwise unusable.
        """
        if self.arena is None or entity_id is None:
            return self.build_uncached(params, entity_id)
        return self.arena.memoize(entity_id, lambda: self.build_uncached(params, entity_id))

    def build_all(self, params: ProfileParams, entity_id: EntityId = None) -> List[Profile]:
        """Like `build`, but composite profiles yield one profile per member."""
        if not isinstance(params, CompositeProfile):
            return [self.build(params, entity_id)]
        if not params.profiles:
            ctx = _ShapeContext(self, entity_id)
            ctx.fail("Composite profile has no member profiles.")
        profiles: List[Profile] = []
        for member in params.profiles:
            if isinstance(member, CompositeProfile):
                profiles.extend(self.build_all(member, entity_id))
            else:
                profiles.append(self.build_uncached(member, entity_id))
        return profiles

    def build_uncached(self, params: ProfileParams, entity_id: EntityId = None) -> Profile:
        ctx = _ShapeContext(self, entity_id)
        shape = getattr(params, "shape", None)
        if isinstance(params, CompositeProfile):
            ctx.fail("Composite profile yields several profiles and must be built with build_all().")
        builder = _REGISTRY.get(shape)
        if builder is None:
            ctx.fail(f"Profile shape '{shape}' is not supported.")

        logger.debug(f"Building {shape} profile for #{entity_id}")
        profile = builder(ctx, params)
        placement = getattr(params, "placement", None)
        if placement is not None:
            profile = profile.transformed(placement.to_transform())
        profile.source = params
        return profile
