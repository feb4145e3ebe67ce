"""
Profile Definitions (Data Model)
================================
Typed parameter sets for every supported cross-section family, and the `Profile`
value (outer loop plus voids) that the profile builder produces from them.

Classes:
    ProfileShape: Key of each parameter set, used for dispatch.
    Placement2D: Location and rotation of a parameterized profile.
    *Profile parameter dataclasses: One per shape family.
    Profile: The built cross-section.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import ClassVar, List, Optional, Sequence, Union

from georecon.model.curve_loop import CurveLoop
from georecon.model.geometry_primitives import Curve, Point, Transform, ORIGIN


# ------------------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------------------
class ProfileShape(StrEnum):
    """Shape family of a profile definition."""
    RECTANGLE = "rectangle"
    RECTANGLE_HOLLOW = "rectangle hollow"
    CIRCLE = "circle"
    CIRCLE_HOLLOW = "circle hollow"
    ELLIPSE = "ellipse"
    C_SHAPE = "c shape"
    L_SHAPE = "l shape"
    I_SHAPE = "i shape"
    T_SHAPE = "t shape"
    U_SHAPE = "u shape"
    Z_SHAPE = "z shape"
    ARBITRARY_OPEN = "arbitrary open"
    CENTER_LINE = "center line"
    ARBITRARY_CLOSED = "arbitrary closed"
    DERIVED = "derived"
    COMPOSITE = "composite"


# ------------------------------------------------------------------------------
# Data Structures
# ------------------------------------------------------------------------------
@dataclass(frozen=True)
class Placement2D:
    """Location of the profile origin and rotation (radians) of its x axis."""
    location: Point = ORIGIN
    angle: float = 0.0

    def to_transform(self) -> Transform:
        return Transform.placement_2d(self.location, self.angle)


@dataclass(frozen=True)
class ProfileCurve:
    """
    A curve reference of an arbitrary profile. `handle` identifies the source entity
    so that repeated references to the same curve can be recognised.
    """
    curve: Union[CurveLoop, Curve, None]
    handle: Optional[int] = None

    @property
    def key(self) -> int:
        return self.handle if self.handle is not None else id(self.curve)


# Parameterized shapes. Required dimensions are typed Optional so that an absent
# value can be reported instead of failing at construction.

@dataclass(frozen=True)
class RectangleProfile:
    shape: ClassVar[ProfileShape] = ProfileShape.RECTANGLE
    x_dim: Optional[float]
    y_dim: Optional[float]
    rounding_radius: float = 0.0
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class RectangleHollowProfile:
    shape: ClassVar[ProfileShape] = ProfileShape.RECTANGLE_HOLLOW
    x_dim: Optional[float]
    y_dim: Optional[float]
    wall_thickness: float = 0.0
    inner_fillet_radius: float = 0.0
    outer_fillet_radius: float = 0.0
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class CircleProfile:
    shape: ClassVar[ProfileShape] = ProfileShape.CIRCLE
    radius: Optional[float]
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class CircleHollowProfile:
    shape: ClassVar[ProfileShape] = ProfileShape.CIRCLE_HOLLOW
    radius: Optional[float]
    wall_thickness: float = 0.0
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class EllipseProfile:
    shape: ClassVar[ProfileShape] = ProfileShape.ELLIPSE
    semi_axis_1: Optional[float]
    semi_axis_2: Optional[float]
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class CShapeProfile:
    """Cold-formed channel with lips; opens towards +x."""
    shape: ClassVar[ProfileShape] = ProfileShape.C_SHAPE
    depth: Optional[float]
    width: Optional[float]
    wall_thickness: Optional[float]
    girth: Optional[float]
    internal_fillet_radius: float = 0.0
    centre_of_gravity_x: float = 0.0
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class LShapeProfile:
    """Angle section. `width` defaults to `depth`."""
    shape: ClassVar[ProfileShape] = ProfileShape.L_SHAPE
    depth: Optional[float]
    thickness: Optional[float]
    width: Optional[float] = None
    fillet_radius: float = 0.0
    edge_radius: float = 0.0
    centre_of_gravity_x: float = 0.0
    centre_of_gravity_y: Optional[float] = None
    leg_slope: float = 0.0
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class IShapeProfile:
    shape: ClassVar[ProfileShape] = ProfileShape.I_SHAPE
    overall_width: Optional[float]
    overall_depth: Optional[float]
    web_thickness: Optional[float]
    flange_thickness: Optional[float]
    fillet_radius: float = 0.0
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class TShapeProfile:
    """Tee section; slopes are in radians."""
    shape: ClassVar[ProfileShape] = ProfileShape.T_SHAPE
    depth: Optional[float]
    flange_width: Optional[float]
    web_thickness: Optional[float]
    flange_thickness: Optional[float]
    fillet_radius: float = 0.0
    flange_edge_radius: float = 0.0
    web_edge_radius: float = 0.0
    web_slope: float = 0.0
    flange_slope: float = 0.0
    centre_of_gravity_y: float = 0.0
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class UShapeProfile:
    """Channel section; flange slope in radians."""
    shape: ClassVar[ProfileShape] = ProfileShape.U_SHAPE
    depth: Optional[float]
    flange_width: Optional[float]
    web_thickness: Optional[float]
    flange_thickness: Optional[float]
    fillet_radius: float = 0.0
    edge_radius: float = 0.0
    flange_slope: float = 0.0
    centre_of_gravity_x: float = 0.0
    placement: Optional[Placement2D] = None


@dataclass(frozen=True)
class ZShapeProfile:
    shape: ClassVar[ProfileShape] = ProfileShape.Z_SHAPE
    depth: Optional[float]
    flange_width: Optional[float]
    web_thickness: Optional[float]
    flange_thickness: Optional[float]
    fillet_radius: float = 0.0
    edge_radius: float = 0.0
    placement: Optional[Placement2D] = None


# Arbitrary (curve based) shapes

@dataclass(frozen=True)
class ArbitraryOpenProfile:
    shape: ClassVar[ProfileShape] = ProfileShape.ARBITRARY_OPEN
    curve: Union[CurveLoop, Curve, None]


@dataclass(frozen=True)
class CenterLineProfile:
    """Open curve thickened symmetrically about itself."""
    shape: ClassVar[ProfileShape] = ProfileShape.CENTER_LINE
    curve: Union[CurveLoop, Curve, None]
    thickness: Optional[float]


@dataclass(frozen=True)
class ArbitraryClosedProfile:
    """
    Closed outer curve with optional voids. `inner_curves` is None for a profile
    without voids; an empty sequence is a profile with voids that lists none.
    """
    shape: ClassVar[ProfileShape] = ProfileShape.ARBITRARY_CLOSED
    outer_curve: Optional[ProfileCurve]
    inner_curves: Optional[Sequence[Optional[ProfileCurve]]] = None


# Profiles built from other profiles

@dataclass(frozen=True)
class DerivedProfile:
    """A parent profile placed by a 2D transformation (optionally mirrored)."""
    shape: ClassVar[ProfileShape] = ProfileShape.DERIVED
    parent: ProfileParams
    operator: Transform = field(default_factory=Transform.identity)
    label: Optional[str] = None


@dataclass(frozen=True)
class CompositeProfile:
    """Several disjoint profiles used together (e.g. a double angle)."""
    shape: ClassVar[ProfileShape] = ProfileShape.COMPOSITE
    profiles: Sequence[ProfileParams] = ()
    label: Optional[str] = None


# Union for type hinting
ProfileParams = Union[
    RectangleProfile, RectangleHollowProfile, CircleProfile, CircleHollowProfile,
    EllipseProfile, CShapeProfile, LShapeProfile, IShapeProfile, TShapeProfile,
    UShapeProfile, ZShapeProfile, ArbitraryOpenProfile, CenterLineProfile,
    ArbitraryClosedProfile, DerivedProfile, CompositeProfile,
]


@dataclass
class Profile:
    """
    A built cross-section: one outer loop plus zero or more inner loops (voids).
    """
    outer: CurveLoop
    inners: List[CurveLoop] = field(default_factory=list)
    source: Optional[ProfileParams] = None

    @property
    def loops(self) -> List[CurveLoop]:
        return [self.outer, *self.inners]

    def transformed(self, transform: Transform) -> Profile:
        if transform.is_identity:
            return self
        return Profile(
            outer=self.outer.transformed(transform),
            inners=[loop.transformed(transform) for loop in self.inners],
            source=self.source,
        )
