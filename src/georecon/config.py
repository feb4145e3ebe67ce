"""
Configuration & Tolerances
==========================
This module serves as the central registry for numeric tolerances and unit settings.

Why is this file needed?
------------------------
1. Consistency: Every component compares points and lengths against the same
   tolerances, so "coincident", "repairable gap" and "unrepairable gap" mean the
   same thing everywhere.
2. Reporting: Lengths in warnings and errors are formatted in the display unit of
   the source model, not in internal metres.

Exports:
    EPS (float): Numeric zero used for parameter and angle comparisons.
    GAP_REPAIR_TOLERANCE (float): Largest gap (in metres) that may be repaired.
    ToleranceContext: Immutable tolerance set for one reconstruction session.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from georecon.exceptions import ConfigurationError

# Global Constants
EPS: float = 1.0e-9

# 1/100th of a foot. Gaps up to this size are architecturally insignificant.
GAP_REPAIR_TOLERANCE: float = 0.003048

DEFAULT_VERTEX_TOLERANCE: float = 1.5e-4
DEFAULT_SHORT_CURVE_TOLERANCE: float = 2.4e-3

# Points per full turn when a curve is tessellated
DEFAULT_TESSELLATION_SEGMENTS: int = 64

# Display unit symbol -> number of display units per metre
UNIT_SCALES: Dict[str, float] = {
    "m": 1.0,
    "cm": 100.0,
    "mm": 1000.0,
    "ft": 1.0 / 0.3048,
    "in": 12.0 / 0.3048,
}


@dataclass(frozen=True)
class ToleranceContext:
    """
    Tolerances used by one reconstruction session.
    All lengths are in metres; `length_unit_scale` converts to display units.
    """
    vertex_epsilon: float = DEFAULT_VERTEX_TOLERANCE
    short_curve_tolerance: float = DEFAULT_SHORT_CURVE_TOLERANCE
    length_unit_scale: float = 1.0
    unit_symbol: str = "m"

    def __post_init__(self) -> None:
        if self.vertex_epsilon <= 0.0:
            raise ConfigurationError(
                f"Vertex tolerance must be positive, got {self.vertex_epsilon}.",
                details={"vertex_epsilon": str(self.vertex_epsilon)}
            )
        if self.short_curve_tolerance <= 0.0:
            raise ConfigurationError(
                f"Short curve tolerance must be positive, got {self.short_curve_tolerance}.",
                details={"short_curve_tolerance": str(self.short_curve_tolerance)}
            )
        if self.length_unit_scale <= 0.0:
            raise ConfigurationError(
                f"Length unit scale must be positive, got {self.length_unit_scale}.",
                details={"length_unit_scale": str(self.length_unit_scale)}
            )

    @property
    def gap_epsilon(self) -> float:
        """Largest gap that composite curve assembly will try to repair."""
        return max(self.vertex_epsilon, GAP_REPAIR_TOLERANCE)

    @classmethod
    def from_unit(cls, unit_symbol: str, **kwargs: float) -> ToleranceContext:
        """Create a context whose messages are formatted in the given display unit."""
        if unit_symbol not in UNIT_SCALES:
            raise ConfigurationError(
                f"Unknown length unit '{unit_symbol}'.",
                details={"known_units": ", ".join(UNIT_SCALES)}
            )
        return cls(length_unit_scale=UNIT_SCALES[unit_symbol], unit_symbol=unit_symbol, **kwargs)

    def format_length(self, value: float) -> str:
        return f"{value * self.length_unit_scale:.6g} {self.unit_symbol}"

    def is_almost_zero(self, value: float) -> bool:
        return abs(value) < self.vertex_epsilon

    def is_too_short(self, length: float) -> bool:
        """True if a curve of this length cannot be created."""
        return length < self.short_curve_tolerance + EPS
