"""Custom exception hierarchy for the geometric reconstruction engine."""
from __future__ import annotations

from typing import Dict, Optional, Sequence


class GeoReconError(Exception):
    """Base exception for all reconstruction errors."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(GeoReconError):
    """Raised when tolerance or unit configuration is invalid."""
    pass


class GeometryError(GeoReconError):
    """Raised when geometry operations fail."""
    pass


class CurveConstructionError(GeometryError):
    """Raised when a curve is degenerate, too short, or otherwise cannot be created."""
    pass


class InvalidProfileError(GeometryError):
    """Raised when a profile definition is missing a required dimension or is unusable."""
    pass


class UnrepairableGapError(GeometryError):
    """Raised when two adjacent composite curve segments are too far apart to be joined."""

    def __init__(
        self,
        message: str,
        gap: float,
        threshold: float,
        segment_indices: Sequence[int] = (),
    ) -> None:
        super().__init__(
            message,
            details={
                "gap": repr(gap),
                "threshold": repr(threshold),
                "segments": ", ".join(str(i) for i in segment_indices),
            }
        )
        self.gap = gap
        self.threshold = threshold
        self.segment_indices = tuple(segment_indices)


class LayerDecompositionError(GeometryError):
    """Raised when a profile cannot be split into material layers."""
    pass


class SolidConstructionError(GeometryError):
    """Raised by solid services when a solid or mesh cannot be created."""
    pass
