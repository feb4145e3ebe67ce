from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from math import sqrt, pi, floor
import numpy as np

if TYPE_CHECKING:
    from numpy import typing as npt

    from georecon.model.geometry_primitives import Point

TWO_PI = 2.0 * pi


def normalize_angle(angle: float, start: float = 0.0) -> float:
    """Shift `angle` by whole turns into the half-open range [start, start + 2*pi)."""
    return angle - floor((angle - start) / TWO_PI) * TWO_PI


def cyclic_distance(a: float, b: float, period: float) -> float:
    """
    Signed difference `a - b` reduced to [-period/2, period/2].

    Args:
        a: First parameter value.
        b: Second parameter value.
        period: Period of the curve the parameters belong to. A period of 0 means
            the curve is not cyclic and the plain difference is returned.

    Returns:
        The signed distance between the two parameters along the shorter way round.
    """
    diff = a - b
    if period <= 0.0:
        return diff
    diff = np.fmod(diff, period)
    if diff < -period / 2.0:
        diff += period
    if diff > period / 2.0:
        diff -= period
    return float(diff)


def line_circle_intersection(
    x0: float,
    y0: float,
    vx: float,
    vy: float,
    r: float,
    *,
    eps: float = 1e-9
    ) -> list[float]:
    """
    Compute the line parameters where a 2D line crosses a circle centred at the origin.

    The line is given in parametric form: P(t) = P0 + t * v.

    Args:
        x0, y0: A point on the line, relative to the circle center.
        vx, vy: The line direction vector.
        r: The circle radius (must be non-negative).
        eps: Numerical tolerance for zero checks. Default 1e-9.

    Returns:
        A list containing 0, 1, or 2 line parameters, in increasing order. For
        tangency (discriminant ~ 0) a single parameter is returned.

    Notes:
        - Solves ||P0 + t*v||^2 = r^2, yielding a quadratic a t^2 + b t + c = 0 where:
          a = v.v
          b = 2 v.P0
          c = ||P0||^2 - r^2
    """
    a = vx * vx + vy * vy

    # degenerate direction: no line to intersect
    if abs(a) < eps:
        return []

    b = 2.0 * (vx * x0 + vy * y0)
    c = x0 * x0 + y0 * y0 - r * r
    disc = b * b - 4.0 * a * c

    # No real intersection
    if disc < -eps * max(1.0, r * r):
        return []

    # Tangent
    if abs(disc) <= eps * max(1.0, r * r):
        return [-b / (2.0 * a)]

    sqrt_disc = sqrt(max(0.0, disc))
    t1 = (-b - sqrt_disc) / (2.0 * a)
    t2 = (-b + sqrt_disc) / (2.0 * a)
    return [t1, t2]


def circle_circle_intersection(
    cx: float,
    cy: float,
    r1: float,
    r2: float,
    *,
    eps: float = 1e-9
    ) -> list[tuple[float, float]]:
    """
    Intersection of a circle centred at the origin (radius r1) with a circle
    centred at (cx, cy) (radius r2).

    Returns:
        0, 1 (tangent) or 2 (x, y) points. Concentric circles return no points.
    """
    d = sqrt(cx * cx + cy * cy)
    if d < eps:
        return []
    if d > r1 + r2 + eps or d < abs(r1 - r2) - eps:
        return []

    # Distance from the first center to the chord midpoint
    a = (r1 * r1 - r2 * r2 + d * d) / (2.0 * d)
    h_sq = r1 * r1 - a * a
    mx, my = a * cx / d, a * cy / d
    if h_sq <= eps:
        return [(mx, my)]

    h = sqrt(h_sq)
    ox, oy = -cy * h / d, cx * h / d
    return [(mx + ox, my + oy), (mx - ox, my - oy)]


def line_intersection(p1: Point, p2: Point, p3: Point, p4: Point, eps=1e-12) -> Optional[tuple[float, float]]:
    """
    Intersection of two infinite 2D lines:
      L1 through p1->p2, L2 through p3->p4.
    Returns (x, y) if they intersect in a single point, otherwise None (parallel / coincident).
    """
    x1, y1 = p1.x, p1.y
    x2, y2 = p2.x, p2.y
    x3, y3 = p3.x, p3.y
    x4, y4 = p4.x, p4.y

    # Solve using cross products
    r = (x2 - x1, y2 - y1)
    s = (x4 - x3, y4 - y3)

    def cross(a, b):
        return a[0]*b[1] - a[1]*b[0]

    rxs = cross(r, s)
    q_p = (x3 - x1, y3 - y1)

    if abs(rxs) < eps:
        # parallel (including possibly collinear)
        return None

    t = cross(q_p, s) / rxs  # parameter on L1
    return x1 + t * r[0], y1 + t * r[1]


def closest_line_parameters(
    o1: npt.NDArray[np.float64],
    d1: npt.NDArray[np.float64],
    o2: npt.NDArray[np.float64],
    d2: npt.NDArray[np.float64],
    eps: float = 1e-12
    ) -> Optional[tuple[float, float]]:
    """
    Parameters (t, s) of the closest points of two 3D lines o1 + t*d1 and o2 + s*d2.
    Returns None for parallel lines.
    """
    w0 = o1 - o2
    a = float(np.dot(d1, d1))
    b = float(np.dot(d1, d2))
    c = float(np.dot(d2, d2))
    d = float(np.dot(d1, w0))
    e = float(np.dot(d2, w0))
    denom = a * c - b * b
    if abs(denom) < eps * max(1.0, a * c):
        return None
    t = (b * e - c * d) / denom
    s = (a * e - b * d) / denom
    return t, s


def signed_area(points: npt.NDArray[np.float64]) -> float:
    """Shoelace area of a closed XY polygon; positive for counter-clockwise order."""
    x = points[:, 0]
    y = points[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))
