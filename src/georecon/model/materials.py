"""
Material Layer Definitions
==========================
Defines the material data that drives layered extrusion.
These classes only hold PARAMETERS; the extrusion synthesizer interprets them.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional, Tuple, TYPE_CHECKING

from georecon.config import EPS

if TYPE_CHECKING:
    from georecon.model.profiles import ProfileParams


class LayerSetDirection(StrEnum):
    """Axis along which material layers are stacked."""
    AXIS2 = "axis2"     # across the profile width (walls)
    AXIS3 = "axis3"     # along the extrusion depth (slabs, roofs)


class DirectionSense(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class Material:
    """A named material with an optional RGB colour (0-255 per channel)."""
    name: str
    color: Optional[Tuple[int, int, int]] = None

    @property
    def has_color(self) -> bool:
        return self.color is not None


@dataclass(frozen=True)
class MaterialLayer:
    thickness: float
    material: Optional[Material] = None
    name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return abs(self.thickness) < EPS


@dataclass(frozen=True)
class MaterialLayerSetUsage:
    """
    Ordered layers plus the stacking axis, the sense in which layers are stacked and
    the offset of the first layer from the reference line (or plane).
    """
    layers: Tuple[MaterialLayer, ...]
    direction: LayerSetDirection = LayerSetDirection.AXIS2
    direction_sense: DirectionSense = DirectionSense.POSITIVE
    offset_from_reference_line: float = 0.0

    @property
    def is_positive(self) -> bool:
        return self.direction_sense == DirectionSense.POSITIVE

    @property
    def total_thickness(self) -> float:
        return sum(layer.thickness for layer in self.layers)

    @property
    def non_empty_layers(self) -> Tuple[MaterialLayer, ...]:
        return tuple(layer for layer in self.layers if not layer.is_empty)


@dataclass(frozen=True)
class MaterialProfile:
    """
    Assigns a material to one profile of a member. `offsets` optionally holds the
    (start, end) extension of the extrusion along its direction.
    """
    profile: ProfileParams
    material: Optional[Material] = None
    offsets: Tuple[float, ...] = ()


@dataclass(frozen=True)
class MaterialProfileSetUsage:
    profiles: Tuple[MaterialProfile, ...] = ()
