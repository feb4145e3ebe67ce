"""
Extrusion Solid Synthesizer
===========================
Turns profiles, a direction and a depth into solids, optionally split into
material layers.

Why is this file needed?
------------------------
1. Healing: Profile loops with a tiny closing gap are repaired before extrusion;
   loops that stay open are dropped.
2. Material layers: A layered extrusion is split into one solid per layer, either
   along the extrusion depth (Axis3, slabs) or across the profile width (Axis2, walls).
   When the layers don't fit the geometry the plain extrusion is used instead.
3. Fallback: A solid the kernel rejects is replaced by a coarse mesh.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, NoReturn, Optional, Sequence, Union

from georecon.config import EPS, ToleranceContext
from georecon.controller.solid_service import SolidService
from georecon.diagnostics import Diagnostics, EntityId
from georecon.exceptions import CurveConstructionError, GeometryError, LayerDecompositionError
from georecon.model.curve_loop import CurveLoop
from georecon.model.geometry_primitives import (
    Arc, Curve, Line, Point, Vector, BASIS_Z, curves_are_coincident, intersect_curves
)
from georecon.model.geometry_utils import cyclic_distance
from georecon.model.materials import (
    LayerSetDirection, Material, MaterialLayer, MaterialLayerSetUsage, MaterialProfileSetUsage
)
from georecon.model.profiles import Profile

logger = logging.getLogger(__name__)

LAYER_FALLBACK_MESSAGE = "Couldn't process associated material layer set usage, using body geometry instead."


@dataclass
class ExtrusionResult:
    """One extruded solid (or its mesh fallback) with the material it is made of."""
    solid: Any
    material: Optional[Material] = None
    is_mesh: bool = False
    layer_index: Optional[int] = None


@dataclass
class _LayerPiece:
    loops: List[CurveLoop]
    direction: Vector
    distance: float
    material: Optional[Material]
    layer_index: int


def _layer_material(layer: MaterialLayer, base_material: Optional[Material]) -> Optional[Material]:
    if layer.material is None or not layer.material.has_color:
        return base_material
    return layer.material


def _is_parallel_at(first: Curve, second: Curve, distance: float, tolerance: float) -> bool:
    """True if `second` runs parallel to `first` at the given distance."""
    match first, second:
        case Line(), Line():
            return (first.direction.is_parallel_to(second.direction, 1e-9)
                    and abs(second.make_unbound().distance_to(first.start) - distance) < tolerance)
        case Arc(), Arc():
            return (first.center.distance_to(second.center) < tolerance
                    and abs(abs(first.radius - second.radius) - distance) < tolerance)
    return False


@dataclass
class ExtrusionSolidSynthesizer:
    """
    Builds solids for extruded area solids through a `SolidService`.

    Fatal problems (zero depth, zero direction) are logged once and raised as
    `GeometryError`; everything else degrades to a simpler result with a diagnostic.
    """
    solid_service: SolidService
    tol: ToleranceContext = field(default_factory=ToleranceContext)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def synthesize(
        self,
        profiles: Union[Profile, Sequence[Profile]],
        direction: Vector,
        depth: Optional[float],
        *,
        layer_usage: Optional[MaterialLayerSetUsage] = None,
        profile_usage: Optional[MaterialProfileSetUsage] = None,
        axis_curve: Optional[Curve] = None,
        base_material: Optional[Material] = None,
        entity_id: EntityId = None,
    ) -> List[ExtrusionResult]:
        """
        Extrude each profile and return all solids in order.

        Args:
            profiles: A profile or several disjoint profiles.
            direction: Extrusion direction; normalized here.
            depth: Extrusion length. A negative depth flips the direction.
            layer_usage: Optional material layers to split the solid into.
            profile_usage: Optional per-profile materials and end offsets.
            axis_curve: Wall axis used by Axis2 layer decomposition.
            base_material: Material of the plain extrusion.
            entity_id: Id used in diagnostics.

        Raises:
            GeometryError: The depth or the direction is zero.
            SolidConstructionError: Neither a solid nor a mesh could be created.
        """
        if isinstance(profiles, Profile):
            profiles = [profiles]
        direction, depth = self._validate_extent(direction, depth, entity_id)

        results: List[ExtrusionResult] = []
        for profile in profiles:
            results.extend(self._synthesize_profile(
                profile, direction, depth, layer_usage, profile_usage, axis_curve, base_material, entity_id
            ))
        return results

    def _fail(self, entity_id: EntityId, message: str) -> NoReturn:
        self.diagnostics.log_error(entity_id, message, is_fatal=True)
        raise GeometryError(message)

    def _validate_extent(self, direction: Vector, depth: Optional[float], entity_id: EntityId) -> tuple[Vector, float]:
        if depth is None or abs(depth) < EPS:
            self._fail(entity_id, "Extrusion has zero depth.")
        if direction is None or direction.is_almost_zero():
            self._fail(entity_id, "Extrusion has a zero direction.")
        direction = direction.normalize()
        if depth < 0.0:
            self.diagnostics.log_warning(entity_id, "Extrusion has a negative depth, flipping the direction.")
            direction, depth = -direction, -depth
        return direction, depth

    # --------------------------------------------------------------------------
    # Per profile
    # --------------------------------------------------------------------------
    def _synthesize_profile(
        self,
        profile: Profile,
        direction: Vector,
        depth: float,
        layer_usage: Optional[MaterialLayerSetUsage],
        profile_usage: Optional[MaterialProfileSetUsage],
        axis_curve: Optional[Curve],
        base_material: Optional[Material],
        entity_id: EntityId,
    ) -> List[ExtrusionResult]:
        outer = self.heal_loop(profile.outer, entity_id)
        if outer is None:
            return []
        loops = [outer]
        for inner in profile.inners:
            healed = self.heal_loop(inner, entity_id)
            if healed is not None:
                loops.append(healed)

        material = base_material
        if profile_usage is not None:
            loops, depth, material = self._apply_profile_usage(profile, profile_usage, loops, direction, depth, material)

        if layer_usage is not None:
            non_empty = layer_usage.non_empty_layers
            if len(non_empty) == 1:
                layer = non_empty[0]
                if layer.thickness > 0.0 and layer.material is not None and layer.material.has_color:
                    material = layer.material
            elif len(non_empty) > 1:
                pieces = self._decompose(loops, direction, depth, layer_usage, axis_curve, material, entity_id)
                if pieces is not None:
                    return [self._extrude(p.loops, p.direction, p.distance, p.material, p.layer_index, entity_id)
                            for p in pieces]

        return [self._extrude(loops, direction, depth, material, None, entity_id)]

    @staticmethod
    def _apply_profile_usage(
        profile: Profile,
        usage: MaterialProfileSetUsage,
        loops: List[CurveLoop],
        direction: Vector,
        depth: float,
        material: Optional[Material],
    ) -> tuple[List[CurveLoop], float, Optional[Material]]:
        for item in usage.profiles:
            if item.profile is not profile.source and item.profile != profile.source:
                continue
            if item.material is not None:
                material = item.material
            if len(item.offsets) == 2:
                start, end = item.offsets
                loops = [loop.translated(direction * start) for loop in loops]
                depth = depth - start + end
            break
        return loops, depth, material

    def heal_loop(self, loop: CurveLoop, entity_id: EntityId = None) -> Optional[CurveLoop]:
        """
        Close an open loop with a line from its end back to its start.

        When the gap is too small for a line of its own, the last curve is trimmed back
        first to make room. Returns None, with an error, if the closing line can't be
        created.
        """
        if loop.curves and not loop.is_open(self.tol.vertex_epsilon):
            return loop

        if loop.curves:
            start = loop.start
            curves, end = list(loop.curves), loop.end
            if loop.closing_gap < self.tol.short_curve_tolerance:
                curves, end = self._trim_last_curve(curves, start)
            gap = end.distance_to(start)
            if not self.tol.is_too_short(gap):
                curves.append(Line.create_bound(end, start))
                self.diagnostics.log_warning(entity_id, "Extrusion has an open profile loop, fixing.")
                return CurveLoop(curves, loop.tolerance)
            logger.debug(f"Closing line of length {self.tol.format_length(gap)} is too short.")

        self.diagnostics.log_error(entity_id, "Extrusion has an open profile loop, ignoring.")
        return None

    def _trim_last_curve(self, curves: List[Curve], start: Point) -> tuple[List[Curve], Point]:
        """Cut the last curve back to its last tessellation point far enough from `start`."""
        last = curves[-1]
        points = last.tessellate()
        for jj in range(len(points) - 2, -1, -1):
            point = points[jj]
            if self.tol.is_too_short(point.distance_to(start)):
                continue
            if jj == 0:
                return curves[:-1], point
            try:
                trimmed = last.make_bound(last.get_end_parameter(0), last.project(point))
            except CurveConstructionError as e:
                logger.debug(f"Couldn't trim open loop at point {jj}: {e.message}")
                continue
            return curves[:-1] + [trimmed], point
        return curves, last.end

    # --------------------------------------------------------------------------
    # Solid creation
    # --------------------------------------------------------------------------
    def _extrude(
        self,
        loops: List[CurveLoop],
        direction: Vector,
        distance: float,
        material: Optional[Material],
        layer_index: Optional[int],
        entity_id: EntityId,
    ) -> ExtrusionResult:
        try:
            solid = self.solid_service.create_extrusion(loops, direction, distance)
            if self.solid_service.is_valid(solid):
                return ExtrusionResult(solid, material, False, layer_index)
            failure: Exception = GeometryError("Extrusion produced an invalid solid.")
        except GeometryError as e:
            failure = e

        self.diagnostics.log_warning(entity_id, "Invalid definition for a solid; reverting to mesh.")
        try:
            mesh = self.solid_service.create_mesh_extrusion(loops, direction, distance)
        except GeometryError as mesh_error:
            logger.debug(f"Mesh fallback failed: {mesh_error}")
            raise failure from mesh_error
        return ExtrusionResult(mesh, material, True, layer_index)

    # --------------------------------------------------------------------------
    # Material layers
    # --------------------------------------------------------------------------
    def _decompose(
        self,
        loops: List[CurveLoop],
        direction: Vector,
        depth: float,
        usage: MaterialLayerSetUsage,
        axis_curve: Optional[Curve],
        base_material: Optional[Material],
        entity_id: EntityId,
    ) -> Optional[List[_LayerPiece]]:
        """Layer pieces to extrude, or None to use the plain extrusion."""
        try:
            if any(layer.thickness < 0.0 for layer in usage.layers):
                raise LayerDecompositionError("Material layer set has a negative layer thickness.")
            match usage.direction:
                case LayerSetDirection.AXIS3:
                    return self._decompose_axis3(loops, direction, depth, usage, base_material)
                case LayerSetDirection.AXIS2:
                    return self._decompose_axis2(loops, direction, depth, usage, axis_curve, base_material)
            raise LayerDecompositionError(f"Unknown layer set direction {usage.direction}.")
        except GeometryError as e:
            logger.debug(f"Layer decomposition of #{entity_id} aborted: {e.message}")
            self.diagnostics.log_warning(entity_id, LAYER_FALLBACK_MESSAGE)
            return None

    def _decompose_axis3(
        self,
        loops: List[CurveLoop],
        direction: Vector,
        depth: float,
        usage: MaterialLayerSetUsage,
        base_material: Optional[Material],
    ) -> Optional[List[_LayerPiece]]:
        total = usage.total_thickness
        if not math.isclose(total, depth, abs_tol=self.tol.vertex_epsilon):
            logger.debug(f"Layer thickness {total:.6g} doesn't match extrusion depth {depth:.6g}")
            return None

        layer_direction = direction if usage.is_positive else -direction
        pieces = []
        depth_so_far = 0.0
        for index, layer in enumerate(usage.layers):
            if layer.is_empty:
                continue
            if usage.is_positive:
                offset = usage.offset_from_reference_line + depth_so_far
            else:
                offset = usage.offset_from_reference_line - depth_so_far
            pieces.append(_LayerPiece(
                loops=[loop.translated(direction * offset) for loop in loops],
                direction=layer_direction,
                distance=layer.thickness,
                material=_layer_material(layer, base_material),
                layer_index=index,
            ))
            depth_so_far += layer.thickness
        return pieces

    def _decompose_axis2(
        self,
        loops: List[CurveLoop],
        direction: Vector,
        depth: float,
        usage: MaterialLayerSetUsage,
        axis_curve: Optional[Curve],
        base_material: Optional[Material],
    ) -> List[_LayerPiece]:
        tolerance = self.tol.vertex_epsilon
        if axis_curve is None:
            raise LayerDecompositionError("Layers across the profile width need an axis curve.")
        if len(loops) != 1 or len(loops[0]) != 4:
            raise LayerDecompositionError("Layers across the profile width need one loop of four curves.")

        axis = axis_curve.offset(usage.offset_from_reference_line, -BASIS_Z)
        loop = loops[0]
        matched = next((ii for ii, c in enumerate(loop) if curves_are_coincident(c, axis, tolerance)), None)
        if matched is None:
            raise LayerDecompositionError("No profile curve lies on the axis curve.")

        curve = loop[matched]
        match curve, axis:
            case Line(), Line():
                flipped = curve.direction.dot(axis.direction) < 0.0
            case Arc(), Arc():
                flipped = curve.normal.dot(axis.normal) < 0.0
            case _:
                raise LayerDecompositionError("Unsupported axis curve type.")

        total = usage.total_thickness
        if not _is_parallel_at(curve, loop[(matched + 2) % 4], total, tolerance):
            raise LayerDecompositionError("Profile width doesn't match the material layer set thickness.")

        # Start at the axis curve and keep the loop running along the axis direction
        if flipped:
            oriented = [loop[(matched + 3 * kk) % 4].reversed() for kk in range(4)]
        else:
            oriented = [loop[(matched + kk) % 4] for kk in range(4)]
        normal = -BASIS_Z if usage.is_positive else BASIS_Z
        is_cyclic = axis.is_cyclic

        pieces = []
        depth_so_far = 0.0
        for index, layer in enumerate(usage.layers):
            if layer.is_empty:
                continue
            thickness = layer.thickness
            outline = [
                oriented[0].offset(depth_so_far, normal),
                oriented[1],
                oriented[2].offset(total - (depth_so_far + thickness), normal),
                oriented[3],
            ]
            outline = [c.make_unbound() for c in outline]
            params = [[0.0, 0.0] for _ in range(4)]
            for jj in range(4):
                hits = intersect_curves(outline[jj], outline[(jj + 1) % 4])
                if not hits or len(hits) > 2 or (len(hits) == 2 and not is_cyclic):
                    raise LayerDecompositionError(
                        f"Unexpected number of intersections ({len(hits)}) between layer curves."
                    )
                hit = hits[0]
                if len(hits) == 2:
                    # Keep the corner nearest the original one, measured on the rail curve
                    if jj % 2:
                        original = oriented[(jj + 1) % 4].get_end_parameter(0)
                        candidates = [h.v for h in hits]
                    else:
                        original = oriented[jj].get_end_parameter(1)
                        candidates = [h.u for h in hits]
                    if (abs(cyclic_distance(candidates[1], original, axis.period))
                            < abs(cyclic_distance(candidates[0], original, axis.period))):
                        hit = hits[1]
                params[jj][1] = hit.u
                params[(jj + 1) % 4][0] = hit.v

            layer_loop = CurveLoop(tolerance=tolerance)
            for curve, (start, end) in zip(outline, params):
                if end < start and curve.is_cyclic:
                    end += math.floor(start / curve.period + 1.0) * curve.period
                layer_loop.append(curve.make_bound(start, end))

            pieces.append(_LayerPiece(
                loops=[layer_loop],
                direction=direction,
                distance=depth,
                material=_layer_material(layer, base_material),
                layer_index=index,
            ))
            depth_so_far += thickness
        return pieces
