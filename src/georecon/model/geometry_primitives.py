"""
Geometric Primitives and Curve Evaluation.

Points, vectors, rigid transforms and the three curve kinds (line, circular arc,
ellipse) that profiles and composite curves are made of. Curves are immutable;
every modification (reverse, re-bound, offset, transform) returns a new value.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import List, Optional, Union, TYPE_CHECKING
import numpy as np
import math

from georecon.config import EPS, DEFAULT_TESSELLATION_SEGMENTS
from georecon.exceptions import CurveConstructionError
from georecon.model.geometry_utils import (
    TWO_PI,
    circle_circle_intersection,
    closest_line_parameters,
    line_circle_intersection,
    normalize_angle,
)

if TYPE_CHECKING:
    import numpy.typing as npt

# Parameter slack when deciding whether an intersection lies on a bound curve
_PARAM_TOLERANCE = 1e-7

# Distance below which two curves are considered to touch
_POINT_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Vector:
    """
    A vector in 3D space representing direction and magnitude.
    """
    x: float
    y: float
    z: float = 0.0

    def __add__(self, other: Vector) -> Vector:
        return Vector(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector) -> Vector:
        return Vector(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vector:
        return Vector(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> Vector:
        return self * scalar

    def __truediv__(self, scalar: float) -> Vector:
        if scalar == 0.0: raise ZeroDivisionError
        return Vector(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> Vector:
        return Vector(-self.x, -self.y, -self.z)

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)

    def normalize(self) -> Vector:
        mag = self.magnitude
        if mag == 0.0: return Vector(0.0, 0.0, 0.0)
        return self / mag

    def dot(self, other: Vector) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector) -> Vector:
        return Vector(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x
        )

    def rotate_z(self, angle_rad: float) -> Vector:
        """Rotate vector around Z axis."""
        cos_a = math.cos(angle_rad)
        sin_a = math.sin(angle_rad)
        return Vector(
            self.x * cos_a - self.y * sin_a,
            self.x * sin_a + self.y * cos_a,
            self.z
        )

    def to_array(self) -> npt.NDArray[np.float64]:
        return np.array([self.x, self.y, self.z])

    @classmethod
    def from_array(cls, values: npt.ArrayLike) -> Vector:
        arr = np.asarray(values, dtype=float)
        return cls(float(arr[0]), float(arr[1]), float(arr[2]) if arr.shape[0] > 2 else 0.0)

    def angle_to(self, other: Vector) -> float:
        """Returns the angle in radians between this vector and another."""
        return math.atan2(self.cross(other).magnitude, self.dot(other))

    def is_almost_zero(self, eps: float = EPS) -> bool:
        return self.magnitude < eps

    def is_parallel_to(self, other: Vector, eps: float = 1e-9) -> bool:
        """True for parallel and anti-parallel directions."""
        return self.normalize().cross(other.normalize()).magnitude < eps


BASIS_X = Vector(1.0, 0.0, 0.0)
BASIS_Y = Vector(0.0, 1.0, 0.0)
BASIS_Z = Vector(0.0, 0.0, 1.0)


@dataclass(frozen=True)
class Point:
    """A simple geometric point in 3D space."""
    x: float
    y: float
    z: float = 0.0

    def __add__(self, other: Vector) -> Point:
        # Point + Vector = Point (Translation)
        if isinstance(other, Vector):
            return Point(self.x + other.x, self.y + other.y, self.z + other.z)
        raise TypeError("Can only add a Vector to a Point.")

    def __sub__(self, other: Union[Vector, Point]) -> Union[Vector, Point]:
        # Point - Point = Vector (Direction)
        if isinstance(other, Point):
            return Vector(self.x - other.x, self.y - other.y, self.z - other.z)
        # Point - Vector = Point (Inverse translation)
        if isinstance(other, Vector):
            return Point(self.x - other.x, self.y - other.y, self.z - other.z)
        raise TypeError("Can only subtract a Vector or Point to a Point.")

    def distance_to(self, other: Point) -> float:
        return math.sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2)

    def is_almost_equal(self, other: Point, tolerance: float) -> bool:
        return self.distance_to(other) < tolerance

    def to_array(self) -> npt.NDArray[np.float64]:
        return np.array([self.x, self.y, self.z])

    @classmethod
    def from_array(cls, values: npt.ArrayLike) -> Point:
        arr = np.asarray(values, dtype=float)
        return cls(float(arr[0]), float(arr[1]), float(arr[2]) if arr.shape[0] > 2 else 0.0)


ORIGIN = Point(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Transform:
    """A rigid (possibly mirroring) placement: origin plus three basis vectors."""
    origin: Point = ORIGIN
    basis_x: Vector = BASIS_X
    basis_y: Vector = BASIS_Y
    basis_z: Vector = BASIS_Z

    @classmethod
    def identity(cls) -> Transform:
        return cls()

    @classmethod
    def translation(cls, vector: Vector) -> Transform:
        return cls(origin=ORIGIN + vector)

    @classmethod
    def placement_2d(cls, location: Point, angle_rad: float = 0.0) -> Transform:
        """Placement in the XY plane: a location plus a rotation of the x axis."""
        return cls(
            origin=location,
            basis_x=BASIS_X.rotate_z(angle_rad),
            basis_y=BASIS_Y.rotate_z(angle_rad),
            basis_z=BASIS_Z,
        )

    @classmethod
    def mirror_x(cls) -> Transform:
        """Mirror about the local Y axis (x -> -x)."""
        return cls(basis_x=-BASIS_X)

    def of_point(self, p: Point) -> Point:
        return self.origin + self.basis_x * p.x + self.basis_y * p.y + self.basis_z * p.z

    def of_vector(self, v: Vector) -> Vector:
        return self.basis_x * v.x + self.basis_y * v.y + self.basis_z * v.z

    def multiply(self, other: Transform) -> Transform:
        """Returns the transform applying `other` first, then `self`."""
        return Transform(
            origin=self.of_point(other.origin),
            basis_x=self.of_vector(other.basis_x),
            basis_y=self.of_vector(other.basis_y),
            basis_z=self.of_vector(other.basis_z),
        )

    @property
    def determinant(self) -> float:
        return self.basis_x.dot(self.basis_y.cross(self.basis_z))

    @property
    def is_identity(self) -> bool:
        return self == Transform()


@dataclass(frozen=True)
class Circle:
    """
    Mathematical helper for intersection calculations.
    Not a curve segment; see `Arc` for that.
    """
    center: Point
    radius: float


@dataclass(frozen=True)
class Intersection:
    """One intersection of two curves: parameter on each curve and the point."""
    u: float
    v: float
    point: Point

    def swapped(self) -> Intersection:
        return Intersection(u=self.v, v=self.u, point=self.point)


@dataclass(frozen=True)
class Line:
    """
    A straight line through `origin` along the unit vector `direction`.
    The parameter is the signed distance from `origin`; a bound line spans [t0, t1].
    """
    origin: Point
    direction: Vector
    t0: float = 0.0
    t1: float = 0.0
    bound: bool = True

    @classmethod
    def create_bound(cls, start: Point, end: Point) -> Line:
        length = start.distance_to(end)
        if length < EPS:
            raise CurveConstructionError(
                f"Cannot create a line between coincident points ({start.x:.6g}, {start.y:.6g}, {start.z:.6g})."
            )
        return cls(origin=start, direction=(end - start) / length, t0=0.0, t1=length)

    @classmethod
    def create_unbound(cls, origin: Point, direction: Vector) -> Line:
        if direction.is_almost_zero():
            raise CurveConstructionError("Cannot create a line with a zero direction.")
        return cls(origin=origin, direction=direction.normalize(), bound=False)

    @property
    def start(self) -> Point:
        return self.point_at(self.t0)

    @property
    def end(self) -> Point:
        return self.point_at(self.t1)

    def get_end_point(self, index: int) -> Point:
        return self.start if index == 0 else self.end

    def get_end_parameter(self, index: int) -> float:
        return self.t0 if index == 0 else self.t1

    @property
    def length(self) -> float:
        return self.t1 - self.t0

    @property
    def is_bound(self) -> bool:
        return self.bound

    @property
    def is_cyclic(self) -> bool:
        return False

    @property
    def period(self) -> float:
        return 0.0

    def point_at(self, t: float) -> Point:
        return self.origin + self.direction * t

    def derivative_at(self, t: float) -> Vector:
        return self.direction

    def project(self, p: Point) -> float:
        t = (p - self.origin).dot(self.direction)
        if self.bound:
            t = min(max(t, self.t0), self.t1)
        return t

    def distance_to(self, p: Point) -> float:
        return self.point_at(self.project(p)).distance_to(p)

    def reversed(self) -> Line:
        return Line(origin=self.origin, direction=-self.direction, t0=-self.t1, t1=-self.t0, bound=self.bound)

    def make_bound(self, t0: float, t1: float) -> Line:
        if t1 - t0 < EPS:
            raise CurveConstructionError(f"Invalid line parameter range [{t0:.6g}, {t1:.6g}].")
        return replace(self, t0=t0, t1=t1, bound=True)

    def make_unbound(self) -> Line:
        return replace(self, bound=False)

    def offset(self, distance: float, reference_normal: Vector) -> Line:
        """Parallel copy shifted by `distance` along direction x reference_normal."""
        shift = self.direction.cross(reference_normal)
        if shift.is_almost_zero():
            raise CurveConstructionError("Cannot offset a line along its own direction.")
        return replace(self, origin=self.origin + shift.normalize() * distance)

    def translated(self, vector: Vector) -> Line:
        return replace(self, origin=self.origin + vector)

    def transformed(self, transform: Transform) -> Line:
        direction = transform.of_vector(self.direction)
        scale = direction.magnitude
        return Line(
            origin=transform.of_point(self.origin),
            direction=direction / scale,
            t0=self.t0 * scale,
            t1=self.t1 * scale,
            bound=self.bound,
        )

    def tessellate(self) -> List[Point]:
        return [self.start, self.end]

    def intersect(self, other: Curve) -> List[Intersection]:
        return intersect_curves(self, other)

    def _parameter_on_curve(self, t: float) -> Optional[float]:
        if not self.bound:
            return t
        tol = _PARAM_TOLERANCE * max(1.0, self.length)
        if self.t0 - tol <= t <= self.t1 + tol:
            return t
        return None


@dataclass(frozen=True)
class Arc:
    """
    A circular arc: center + radius * (cos(t) * x_axis + sin(t) * y_axis) for t in
    [start_angle, end_angle]. The arc runs counter-clockwise about `normal`.
    """
    center: Point
    radius: float
    x_axis: Vector = BASIS_X
    y_axis: Vector = BASIS_Y
    start_angle: float = 0.0
    end_angle: float = TWO_PI
    bound: bool = True

    @classmethod
    def create(
        cls,
        center: Point,
        radius: float,
        start_angle: float,
        end_angle: float,
        x_axis: Vector = BASIS_X,
        y_axis: Vector = BASIS_Y,
    ) -> Arc:
        if radius < EPS:
            raise CurveConstructionError(f"Invalid arc radius {radius:.6g}.")
        span = end_angle - start_angle
        if span < EPS or span > TWO_PI + EPS:
            raise CurveConstructionError(
                f"Invalid arc angle range [{start_angle:.6g}, {end_angle:.6g}]."
            )
        return cls(center, radius, x_axis.normalize(), y_axis.normalize(), start_angle, end_angle, True)

    @classmethod
    def create_unbound(
        cls,
        center: Point,
        radius: float,
        x_axis: Vector = BASIS_X,
        y_axis: Vector = BASIS_Y,
    ) -> Arc:
        if radius < EPS:
            raise CurveConstructionError(f"Invalid circle radius {radius:.6g}.")
        return cls(center, radius, x_axis.normalize(), y_axis.normalize(), 0.0, TWO_PI, False)

    @property
    def normal(self) -> Vector:
        return self.x_axis.cross(self.y_axis)

    @property
    def start(self) -> Point:
        return self.point_at(self.start_angle)

    @property
    def end(self) -> Point:
        return self.point_at(self.end_angle)

    def get_end_point(self, index: int) -> Point:
        return self.start if index == 0 else self.end

    def get_end_parameter(self, index: int) -> float:
        return self.start_angle if index == 0 else self.end_angle

    @property
    def length(self) -> float:
        return self.radius * (self.end_angle - self.start_angle)

    @property
    def is_bound(self) -> bool:
        return self.bound

    @property
    def is_cyclic(self) -> bool:
        return True

    @property
    def period(self) -> float:
        return TWO_PI

    def point_at(self, t: float) -> Point:
        return self.center + self.x_axis * (self.radius * math.cos(t)) + self.y_axis * (self.radius * math.sin(t))

    def derivative_at(self, t: float) -> Vector:
        return self.x_axis * (-self.radius * math.sin(t)) + self.y_axis * (self.radius * math.cos(t))

    def local_angle(self, p: Point) -> float:
        v = p - self.center
        return math.atan2(v.dot(self.y_axis), v.dot(self.x_axis))

    def project(self, p: Point) -> float:
        return _clamp_cyclic_parameter(self, self.local_angle(p))

    def distance_to(self, p: Point) -> float:
        return self.point_at(self.project(p)).distance_to(p)

    def reversed(self) -> Arc:
        return Arc(
            self.center, self.radius, self.x_axis, -self.y_axis,
            -self.end_angle, -self.start_angle, self.bound
        )

    def make_bound(self, t0: float, t1: float) -> Arc:
        span = t1 - t0
        if span < EPS or span > TWO_PI + EPS:
            raise CurveConstructionError(f"Invalid arc parameter range [{t0:.6g}, {t1:.6g}].")
        return replace(self, start_angle=t0, end_angle=t1, bound=True)

    def make_unbound(self) -> Arc:
        return replace(self, end_angle=self.start_angle + TWO_PI, bound=False)

    def offset(self, distance: float, reference_normal: Vector) -> Arc:
        """Concentric copy; positive distances move along tangent x reference_normal."""
        sense = self.normal.dot(reference_normal.normalize())
        if abs(abs(sense) - 1.0) > 1e-6:
            raise CurveConstructionError("Arc offset normal is not perpendicular to the arc plane.")
        radius = self.radius + distance * math.copysign(1.0, sense)
        if radius < EPS:
            raise CurveConstructionError(
                f"Offset of {distance:.6g} collapses arc of radius {self.radius:.6g}."
            )
        return replace(self, radius=radius)

    def translated(self, vector: Vector) -> Arc:
        return replace(self, center=self.center + vector)

    def transformed(self, transform: Transform) -> Arc:
        x_axis = transform.of_vector(self.x_axis)
        y_axis = transform.of_vector(self.y_axis)
        return replace(
            self,
            center=transform.of_point(self.center),
            radius=self.radius * x_axis.magnitude,
            x_axis=x_axis.normalize(),
            y_axis=y_axis.normalize(),
        )

    def tessellate(self) -> List[Point]:
        return [self.point_at(t) for t in _tessellation_parameters(self.start_angle, self.end_angle)]

    def intersect(self, other: Curve) -> List[Intersection]:
        return intersect_curves(self, other)

    def _parameter_on_curve(self, t: float) -> Optional[float]:
        return _cyclic_parameter_on_curve(self, t)


@dataclass(frozen=True)
class Ellipse:
    """
    An elliptical arc: center + radius_x * cos(t) * x_axis + radius_y * sin(t) * y_axis.
    """
    center: Point
    radius_x: float
    radius_y: float
    x_axis: Vector = BASIS_X
    y_axis: Vector = BASIS_Y
    start_param: float = 0.0
    end_param: float = TWO_PI
    bound: bool = True

    @classmethod
    def create(
        cls,
        center: Point,
        radius_x: float,
        radius_y: float,
        start_param: float,
        end_param: float,
        x_axis: Vector = BASIS_X,
        y_axis: Vector = BASIS_Y,
    ) -> Ellipse:
        if radius_x < EPS or radius_y < EPS:
            raise CurveConstructionError(f"Invalid ellipse radii {radius_x:.6g}, {radius_y:.6g}.")
        span = end_param - start_param
        if span < EPS or span > TWO_PI + EPS:
            raise CurveConstructionError(
                f"Invalid ellipse parameter range [{start_param:.6g}, {end_param:.6g}]."
            )
        return cls(center, radius_x, radius_y, x_axis.normalize(), y_axis.normalize(), start_param, end_param, True)

    @classmethod
    def create_unbound(
        cls,
        center: Point,
        radius_x: float,
        radius_y: float,
        x_axis: Vector = BASIS_X,
        y_axis: Vector = BASIS_Y,
    ) -> Ellipse:
        if radius_x < EPS or radius_y < EPS:
            raise CurveConstructionError(f"Invalid ellipse radii {radius_x:.6g}, {radius_y:.6g}.")
        return cls(center, radius_x, radius_y, x_axis.normalize(), y_axis.normalize(), 0.0, TWO_PI, False)

    @property
    def normal(self) -> Vector:
        return self.x_axis.cross(self.y_axis)

    @property
    def start(self) -> Point:
        return self.point_at(self.start_param)

    @property
    def end(self) -> Point:
        return self.point_at(self.end_param)

    def get_end_point(self, index: int) -> Point:
        return self.start if index == 0 else self.end

    def get_end_parameter(self, index: int) -> float:
        return self.start_param if index == 0 else self.end_param

    @property
    def length(self) -> float:
        ts = np.linspace(self.start_param, self.end_param, 257)
        pts = np.array([self.point_at(t).to_array() for t in ts])
        return float(np.sum(np.linalg.norm(np.diff(pts, axis=0), axis=1)))

    @property
    def is_bound(self) -> bool:
        return self.bound

    @property
    def is_cyclic(self) -> bool:
        return True

    @property
    def period(self) -> float:
        return TWO_PI

    def point_at(self, t: float) -> Point:
        return (self.center
                + self.x_axis * (self.radius_x * math.cos(t))
                + self.y_axis * (self.radius_y * math.sin(t)))

    def derivative_at(self, t: float) -> Vector:
        return self.x_axis * (-self.radius_x * math.sin(t)) + self.y_axis * (self.radius_y * math.cos(t))

    def local_angle(self, p: Point) -> float:
        """Parameter of the closest point on the full ellipse."""
        v = p - self.center
        px, py = v.dot(self.x_axis), v.dot(self.y_axis)
        t = math.atan2(py / self.radius_y, px / self.radius_x)
        # Newton iterations on (P(t) - p) . P'(t) = 0
        a, b = self.radius_x, self.radius_y
        for _ in range(20):
            c, s = math.cos(t), math.sin(t)
            f = (a * a - b * b) * s * c - px * a * s + py * b * c
            df = (a * a - b * b) * (c * c - s * s) - px * a * c - py * b * s
            if abs(df) < EPS:
                break
            step = f / df
            t -= step
            if abs(step) < 1e-12:
                break
        return t

    def project(self, p: Point) -> float:
        return _clamp_cyclic_parameter(self, self.local_angle(p))

    def distance_to(self, p: Point) -> float:
        return self.point_at(self.project(p)).distance_to(p)

    def reversed(self) -> Ellipse:
        return Ellipse(
            self.center, self.radius_x, self.radius_y, self.x_axis, -self.y_axis,
            -self.end_param, -self.start_param, self.bound
        )

    def make_bound(self, t0: float, t1: float) -> Ellipse:
        span = t1 - t0
        if span < EPS or span > TWO_PI + EPS:
            raise CurveConstructionError(f"Invalid ellipse parameter range [{t0:.6g}, {t1:.6g}].")
        return replace(self, start_param=t0, end_param=t1, bound=True)

    def make_unbound(self) -> Ellipse:
        return replace(self, end_param=self.start_param + TWO_PI, bound=False)

    def offset(self, distance: float, reference_normal: Vector) -> Ellipse:
        raise CurveConstructionError("Offset of an ellipse is not an ellipse and is not supported.")

    def translated(self, vector: Vector) -> Ellipse:
        return replace(self, center=self.center + vector)

    def transformed(self, transform: Transform) -> Ellipse:
        x_axis = transform.of_vector(self.x_axis)
        y_axis = transform.of_vector(self.y_axis)
        return replace(
            self,
            center=transform.of_point(self.center),
            radius_x=self.radius_x * x_axis.magnitude,
            radius_y=self.radius_y * y_axis.magnitude,
            x_axis=x_axis.normalize(),
            y_axis=y_axis.normalize(),
        )

    def tessellate(self) -> List[Point]:
        return [self.point_at(t) for t in _tessellation_parameters(self.start_param, self.end_param)]

    def intersect(self, other: Curve) -> List[Intersection]:
        return intersect_curves(self, other)

    def _parameter_on_curve(self, t: float) -> Optional[float]:
        return _cyclic_parameter_on_curve(self, t)


# Union type for list handling
Curve = Union[Line, Arc, Ellipse]
Conic = Union[Arc, Ellipse]


def _tessellation_parameters(t0: float, t1: float) -> npt.NDArray[np.float64]:
    n_segments = max(2, math.ceil((t1 - t0) / TWO_PI * DEFAULT_TESSELLATION_SEGMENTS))
    return np.linspace(t0, t1, n_segments + 1)


def _clamp_cyclic_parameter(curve: Conic, angle: float) -> float:
    start = curve.get_end_parameter(0)
    end = curve.get_end_parameter(1)
    t = normalize_angle(angle, start)
    if not curve.bound or t <= end:
        return t
    # Outside a bound arc: snap to the closer end
    if (t - end) < (start + TWO_PI - t):
        return end
    return start


def _cyclic_parameter_on_curve(curve: Conic, angle: float) -> Optional[float]:
    start = curve.get_end_parameter(0)
    end = curve.get_end_parameter(1)
    t = normalize_angle(angle, start - _PARAM_TOLERANCE)
    if not curve.bound or t <= end + _PARAM_TOLERANCE:
        return t
    return None


def _conic_frame(conic: Conic) -> tuple[Point, Vector, Vector, Vector]:
    return conic.center, conic.x_axis, conic.y_axis, conic.normal


def _line_line(first: Line, second: Line) -> List[Intersection]:
    params = closest_line_parameters(
        first.origin.to_array(), first.direction.to_array(),
        second.origin.to_array(), second.direction.to_array()
    )
    if params is None:
        # Parallel or coincident lines
        return []
    t, s = params
    p1 = first.point_at(t)
    p2 = second.point_at(s)
    if p1.distance_to(p2) > _POINT_TOLERANCE:
        return []
    return [Intersection(u=t, v=s, point=p1)]


def _line_conic(line: Line, conic: Conic) -> List[Intersection]:
    center, x_axis, y_axis, normal = _conic_frame(conic)
    o = line.origin - center
    d = line.direction
    ox, oy, oz = o.dot(x_axis), o.dot(y_axis), o.dot(normal)
    dx, dy, dz = d.dot(x_axis), d.dot(y_axis), d.dot(normal)

    if isinstance(conic, Arc):
        rx = ry = conic.radius
    else:
        rx, ry = conic.radius_x, conic.radius_y

    if abs(dz) > EPS:
        # The line pierces the conic plane in a single point
        t = -oz / dz
        px, py = (ox + t * dx) / rx, (oy + t * dy) / ry
        if abs(math.hypot(px, py) - 1.0) * min(rx, ry) > _POINT_TOLERANCE:
            return []
        ts = [t]
    elif abs(oz) > _POINT_TOLERANCE:
        return []
    else:
        # Scaling by the radii maps the conic to the unit circle; t is unchanged
        ts = line_circle_intersection(ox / rx, oy / ry, dx / rx, dy / ry, 1.0)

    results = []
    for t in ts:
        px, py = ox + t * dx, oy + t * dy
        angle = math.atan2(py / ry, px / rx)
        results.append(Intersection(u=t, v=angle, point=line.point_at(t)))
    return results


def _arc_arc(first: Arc, second: Arc) -> List[Intersection]:
    center, x_axis, y_axis, normal = _conic_frame(first)
    if not normal.is_parallel_to(second.normal, 1e-9):
        return []
    c = second.center - center
    if abs(c.dot(normal)) > _POINT_TOLERANCE:
        return []

    results = []
    for px, py in circle_circle_intersection(c.dot(x_axis), c.dot(y_axis), first.radius, second.radius):
        point = center + x_axis * px + y_axis * py
        results.append(Intersection(u=math.atan2(py, px), v=second.local_angle(point), point=point))
    return results


def intersect_curves(first: Curve, second: Curve) -> List[Intersection]:
    """
    Intersect two curves. Parallel or coincident lines and concentric circles
    report no intersection.

    Args:
        first: The curve whose parameters are reported as `u`.
        second: The curve whose parameters are reported as `v`.

    Returns:
        Intersections lying on both curves (bound curves filter by their range),
        ordered by the parameter on `first`.
    """
    if isinstance(first, Line) and isinstance(second, Line):
        raw = _line_line(first, second)
    elif isinstance(first, Line):
        raw = _line_conic(first, second)
    elif isinstance(second, Line):
        raw = [i.swapped() for i in _line_conic(second, first)]
    elif isinstance(first, Arc) and isinstance(second, Arc):
        raw = _arc_arc(first, second)
    else:
        raise CurveConstructionError(
            f"Intersection between {type(first).__name__} and {type(second).__name__} is not supported."
        )

    results = []
    for item in raw:
        u = first._parameter_on_curve(item.u)
        v = second._parameter_on_curve(item.v)
        if u is None or v is None:
            continue
        results.append(Intersection(u=u, v=v, point=item.point))
    return sorted(results, key=lambda i: i.u)


def curves_are_coincident(first: Curve, second: Curve, tolerance: float) -> bool:
    """
    True if the unbounded supports of two lines or two arcs are the same.
    Used to recognise a profile edge lying on an (offset) axis curve.
    """
    if isinstance(first, Line) and isinstance(second, Line):
        return (first.direction.is_parallel_to(second.direction, 1e-9)
                and first.make_unbound().distance_to(second.origin) < tolerance)
    if isinstance(first, Arc) and isinstance(second, Arc):
        return (first.normal.is_parallel_to(second.normal, 1e-9)
                and first.center.distance_to(second.center) < tolerance
                and abs(first.radius - second.radius) < tolerance)
    return False
