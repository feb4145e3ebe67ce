"""
Solid Construction Service (Gmsh Adapter)
=========================================
Turns closed curve loops into extruded solids.

Why is this file needed?
------------------------
1. Seam: The extrusion synthesizer only talks to the `SolidService` protocol, so the
   geometry kernel can be replaced (tests use a recording fake).
2. Translation: `GmshSolidService` converts our `Line`, `Arc` and `Ellipse` curves
   into OpenCASCADE entities through the gmsh API.
3. Fallback: When the kernel cannot build a valid solid a coarse volume mesh of the
   same extrusion is generated instead.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence, Tuple

import gmsh

from georecon.exceptions import SolidConstructionError
from georecon.model.curve_loop import CurveLoop
from georecon.model.geometry_primitives import Arc, Curve, Ellipse, Line, Point, Vector

logger = logging.getLogger(__name__)

DimTag = Tuple[int, int]


class SolidService(Protocol):
    """Operations the extrusion synthesizer needs from a geometry kernel."""

    def create_extrusion(self, loops: Sequence[CurveLoop], direction: Vector, distance: float) -> Any:
        """Extrude the face bounded by `loops` (outer first). Raises on failure."""
        ...

    def is_valid(self, solid: Any) -> bool:
        ...

    def create_mesh_extrusion(self, loops: Sequence[CurveLoop], direction: Vector, distance: float) -> Any:
        ...

    def difference(self, solid: Any, cutter: Any) -> Any:
        ...


@dataclass
class GmshSolid:
    """Volumes created in the gmsh OCC model for one extrusion."""
    volumes: List[int]
    distance: float


@dataclass
class GmshMesh:
    """Coarse mesh approximation of an extrusion."""
    volumes: List[int]
    num_nodes: int
    num_elements: int


class PointCache:
    """
    Helper to prevent duplicate points in Gmsh.
    Maps rounded (x, y, z) coordinates to OCC point tags.
    """
    def __init__(self, digits: int = 9):
        self.cache: Dict[Tuple[float, float, float], int] = {}
        self.digits = digits

    def get_or_create(self, pt: Point) -> int:
        key = (round(pt.x, self.digits), round(pt.y, self.digits), round(pt.z, self.digits))
        if key not in self.cache:
            self.cache[key] = gmsh.model.occ.addPoint(pt.x, pt.y, pt.z)
        return self.cache[key]


@dataclass
class GmshSolidService:
    """
    `SolidService` backed by the gmsh OpenCASCADE kernel.

    gmsh is initialized on first use and finalized by `close()`; the service can be
    used as a context manager.
    """
    model_name: str = "georecon"
    _initialized: bool = field(default=False, init=False, repr=False)

    def _ensure_init(self) -> None:
        """Initialize Gmsh if not already initialized."""
        if not self._initialized:
            gmsh.initialize()
            gmsh.option.setNumber("General.Terminal", 0)
            gmsh.model.add(self.model_name)
            self._initialized = True
        # Double-check gmsh state in case it was finalized externally
        elif not gmsh.is_initialized():
            logger.warning("Gmsh was finalized externally, reinitializing")
            gmsh.initialize()
            gmsh.model.add(self.model_name)

    def close(self) -> None:
        if not self._initialized:
            return
        try:
            gmsh.finalize()
        except Exception as finalize_error:
            logger.warning(f"Failed to finalize Gmsh: {finalize_error}")
        finally:
            self._initialized = False

    def __enter__(self) -> GmshSolidService:
        self._ensure_init()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # --------------------------------------------------------------------------
    # Curves and faces
    # --------------------------------------------------------------------------
    @staticmethod
    def _add_curve(curve: Curve, points: PointCache) -> int:
        occ = gmsh.model.occ
        match curve:
            case Line():
                return occ.addLine(points.get_or_create(curve.start), points.get_or_create(curve.end))
            case Arc():
                c = curve.center
                return occ.addCircle(
                    c.x, c.y, c.z, curve.radius,
                    angle1=curve.start_angle, angle2=curve.end_angle,
                    zAxis=list(curve.normal.to_array()), xAxis=list(curve.x_axis.to_array()),
                )
            case Ellipse():
                c = curve.center
                x_axis, r1, r2 = curve.x_axis, curve.radius_x, curve.radius_y
                a1, a2 = curve.start_param, curve.end_param
                # OCC needs the major radius first
                if r1 < r2:
                    x_axis, r1, r2 = curve.y_axis, r2, r1
                    a1, a2 = a1 - math.pi / 2.0, a2 - math.pi / 2.0
                return occ.addEllipse(
                    c.x, c.y, c.z, r1, r2,
                    angle1=a1, angle2=a2,
                    zAxis=list(curve.normal.to_array()), xAxis=list(x_axis.to_array()),
                )
        raise SolidConstructionError(f"Unsupported curve type {type(curve).__name__}.")

    def _add_face(self, loops: Sequence[CurveLoop]) -> int:
        if not loops:
            raise SolidConstructionError("Cannot create a face without curve loops.")
        points = PointCache()
        wire_tags = []
        for loop in loops:
            curve_tags = [self._add_curve(curve, points) for curve in loop]
            wire_tags.append(gmsh.model.occ.addCurveLoop(curve_tags))
        return gmsh.model.occ.addPlaneSurface(wire_tags)

    @staticmethod
    def _volumes(dim_tags: Sequence[DimTag]) -> List[int]:
        return [tag for dim, tag in dim_tags if dim == 3]

    # --------------------------------------------------------------------------
    # SolidService
    # --------------------------------------------------------------------------
    def create_extrusion(self, loops: Sequence[CurveLoop], direction: Vector, distance: float) -> GmshSolid:
        self._ensure_init()
        try:
            face = self._add_face(loops)
            vector = direction.normalize() * distance
            out = gmsh.model.occ.extrude([(2, face)], vector.x, vector.y, vector.z)
            gmsh.model.occ.synchronize()
        except SolidConstructionError:
            raise
        except Exception as e:
            logger.exception("Gmsh extrusion failed")
            raise SolidConstructionError(f"Gmsh extrusion failed: {e}") from e

        volumes = self._volumes(out)
        if not volumes:
            raise SolidConstructionError("Extrusion produced no volume.")
        logger.debug(f"Extruded {len(loops)} loop(s) by {distance:.6g} into volumes {volumes}")
        return GmshSolid(volumes=volumes, distance=distance)

    def is_valid(self, solid: Any) -> bool:
        if not isinstance(solid, GmshSolid) or not solid.volumes:
            return False
        self._ensure_init()
        return all(gmsh.model.occ.getMass(3, tag) > 0.0 for tag in solid.volumes)

    def create_mesh_extrusion(self, loops: Sequence[CurveLoop], direction: Vector, distance: float) -> GmshMesh:
        """Extrude straight-line approximations of the loops and mesh the result."""
        self._ensure_init()
        occ = gmsh.model.occ
        try:
            points = PointCache()
            wire_tags = []
            for loop in loops:
                vertices = [Point.from_array(row) for row in loop.tessellate()]
                tags = [points.get_or_create(p) for p in vertices]
                lines = [occ.addLine(tags[ii], tags[(ii + 1) % len(tags)]) for ii in range(len(tags))]
                wire_tags.append(occ.addCurveLoop(lines))
            face = occ.addPlaneSurface(wire_tags)
            vector = direction.normalize() * distance
            out = occ.extrude([(2, face)], vector.x, vector.y, vector.z, numElements=[1])
            occ.synchronize()
            gmsh.model.mesh.generate(3)

            node_tags, _, _ = gmsh.model.mesh.getNodes()
            _, elem_tags, _ = gmsh.model.mesh.getElements(dim=3)
        except Exception as e:
            logger.exception("Gmsh mesh extrusion failed")
            raise SolidConstructionError(f"Gmsh mesh extrusion failed: {e}") from e

        num_elements = sum(len(tags) for tags in elem_tags)
        logger.info(f"Mesh fallback generated: {len(node_tags)} nodes, {num_elements} elements.")
        return GmshMesh(volumes=self._volumes(out), num_nodes=len(node_tags), num_elements=num_elements)

    def difference(self, solid: GmshSolid, cutter: GmshSolid) -> GmshSolid:
        self._ensure_init()
        try:
            out, _ = gmsh.model.occ.cut(
                [(3, tag) for tag in solid.volumes],
                [(3, tag) for tag in cutter.volumes],
            )
            gmsh.model.occ.synchronize()
        except Exception as e:
            logger.exception("Gmsh boolean difference failed")
            raise SolidConstructionError(f"Gmsh boolean difference failed: {e}") from e
        return GmshSolid(volumes=self._volumes(out), distance=solid.distance)
