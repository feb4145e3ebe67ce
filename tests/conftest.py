"""Shared fixtures for the reconstruction tests."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import pytest

from georecon.config import ToleranceContext
from georecon.diagnostics import Diagnostics
from georecon.exceptions import SolidConstructionError
from georecon.model.curve_loop import CurveLoop
from georecon.model.geometry_primitives import Vector


@dataclass
class FakeSolid:
    loops: List[CurveLoop]
    direction: Vector
    distance: float


@dataclass
class FakeSolidService:
    """Records every request; can be told to reject solids or fail outright."""
    invalid: bool = False
    fail_extrusion: bool = False
    fail_mesh: bool = False
    extrusions: List[FakeSolid] = field(default_factory=list)
    meshes: List[FakeSolid] = field(default_factory=list)

    def create_extrusion(self, loops, direction, distance):
        if self.fail_extrusion:
            raise SolidConstructionError("kernel failure")
        solid = FakeSolid(list(loops), direction, distance)
        self.extrusions.append(solid)
        return solid

    def is_valid(self, solid):
        return not self.invalid

    def create_mesh_extrusion(self, loops, direction, distance):
        if self.fail_mesh:
            raise SolidConstructionError("mesh failure")
        mesh = FakeSolid(list(loops), direction, distance)
        self.meshes.append(mesh)
        return mesh

    def difference(self, solid, cutter):
        return FakeSolid(solid.loops + cutter.loops, solid.direction, solid.distance)


@pytest.fixture
def tol() -> ToleranceContext:
    return ToleranceContext()


@pytest.fixture
def diagnostics() -> Diagnostics:
    return Diagnostics()


@pytest.fixture
def solid_service() -> FakeSolidService:
    return FakeSolidService()
