"""Tests for extrusion, layer decomposition and the solid fallbacks."""
import math

import pytest

from georecon.controller.extrusion import LAYER_FALLBACK_MESSAGE, ExtrusionSolidSynthesizer
from georecon.controller.profile_builder import ParametricProfileBuilder
from georecon.exceptions import GeometryError, SolidConstructionError
from georecon.model.curve_loop import CurveLoop, polyline_loop
from georecon.model.geometry_primitives import Arc, Line, Point, Vector, BASIS_Z
from georecon.model.materials import (
    DirectionSense, LayerSetDirection, Material, MaterialLayer, MaterialLayerSetUsage, MaterialProfile,
    MaterialProfileSetUsage,
)
from georecon.model.profiles import Profile, RectangleProfile

CONCRETE = Material("concrete", (128, 128, 128))
BRICK = Material("brick", (180, 60, 40))
INSULATION = Material("insulation", (250, 230, 0))


@pytest.fixture
def synthesizer(solid_service, tol, diagnostics):
    return ExtrusionSolidSynthesizer(solid_service, tol, diagnostics)


def square(tol, size=1.0):
    points = [Point(0.0, 0.0), Point(size, 0.0), Point(size, size), Point(0.0, size)]
    return Profile(polyline_loop(points, tol, close=True))


def wall(tol):
    points = [Point(0.0, 0.0), Point(5.0, 0.0), Point(5.0, 0.3), Point(0.0, 0.3)]
    return Profile(polyline_loop(points, tol, close=True))


def y_range(loop):
    ys = loop.tessellate()[:, 1]
    return ys.min(), ys.max()


# ------------------------------------------------------------------------------
# Plain extrusion
# ------------------------------------------------------------------------------
def test_plain_extrusion(synthesizer, solid_service, tol, diagnostics):
    results = synthesizer.synthesize(square(tol), Vector(0.0, 0.0, 2.0), 3.0, base_material=CONCRETE)
    assert len(results) == 1
    result = results[0]
    assert not result.is_mesh
    assert result.material == CONCRETE
    assert result.layer_index is None
    solid = solid_service.extrusions[0]
    assert solid.distance == pytest.approx(3.0)
    assert solid.direction == BASIS_Z
    assert diagnostics.records == []


def test_negative_depth_flips_the_direction(synthesizer, solid_service, tol, diagnostics):
    synthesizer.synthesize(square(tol), BASIS_Z, -2.0)
    solid = solid_service.extrusions[0]
    assert solid.distance == pytest.approx(2.0)
    assert solid.direction.z == pytest.approx(-1.0)
    assert diagnostics.messages() == ["Extrusion has a negative depth, flipping the direction."]


@pytest.mark.parametrize("depth", [0.0, None])
def test_zero_depth_is_fatal(synthesizer, solid_service, tol, diagnostics, depth):
    with pytest.raises(GeometryError, match="zero depth"):
        synthesizer.synthesize(square(tol), BASIS_Z, depth, entity_id=3)
    assert diagnostics.errors[0].is_fatal
    assert solid_service.extrusions == []


def test_zero_direction_is_fatal(synthesizer, tol):
    with pytest.raises(GeometryError, match="zero direction"):
        synthesizer.synthesize(square(tol), Vector(0.0, 0.0, 0.0), 1.0)


def test_several_profiles_give_several_solids(synthesizer, tol):
    results = synthesizer.synthesize([square(tol), square(tol, 2.0)], BASIS_Z, 1.0)
    assert len(results) == 2


def test_voids_are_passed_to_the_kernel(synthesizer, solid_service, tol):
    profile = ParametricProfileBuilder(tol).build(RectangleProfile(2.0, 2.0))
    inner = square(tol, 0.5).outer
    synthesizer.synthesize(Profile(profile.outer, [inner]), BASIS_Z, 1.0)
    assert len(solid_service.extrusions[0].loops) == 2


# ------------------------------------------------------------------------------
# Fallbacks
# ------------------------------------------------------------------------------
def test_invalid_solid_reverts_to_mesh(synthesizer, solid_service, tol, diagnostics):
    solid_service.invalid = True
    results = synthesizer.synthesize(square(tol), BASIS_Z, 1.0)
    assert results[0].is_mesh
    assert len(solid_service.meshes) == 1
    assert diagnostics.messages() == ["Invalid definition for a solid; reverting to mesh."]


def test_kernel_failure_reverts_to_mesh(synthesizer, solid_service, tol):
    solid_service.fail_extrusion = True
    results = synthesizer.synthesize(square(tol), BASIS_Z, 1.0)
    assert results[0].is_mesh


def test_kernel_and_mesh_failure_raises_original_error(synthesizer, solid_service, tol):
    solid_service.fail_extrusion = True
    solid_service.fail_mesh = True
    with pytest.raises(SolidConstructionError, match="kernel failure"):
        synthesizer.synthesize(square(tol), BASIS_Z, 1.0)


# ------------------------------------------------------------------------------
# Loop healing
# ------------------------------------------------------------------------------
def open_square(tol, gap):
    loop = CurveLoop(tolerance=tol.vertex_epsilon)
    loop.extend([
        Line.create_bound(Point(0.0, 0.0), Point(1.0, 0.0)),
        Line.create_bound(Point(1.0, 0.0), Point(1.0, 1.0)),
        Line.create_bound(Point(1.0, 1.0), Point(0.0, 1.0)),
        Line.create_bound(Point(0.0, 1.0), Point(0.0, gap)),
    ])
    return loop


def test_small_closing_gap_is_healed(synthesizer, solid_service, tol, diagnostics):
    results = synthesizer.synthesize(Profile(open_square(tol, 0.001)), BASIS_Z, 1.0)
    assert len(results) == 1
    loop = solid_service.extrusions[0].loops[0]
    assert not loop.is_open()
    assert len(loop) == 4
    assert diagnostics.messages() == ["Extrusion has an open profile loop, fixing."]


def test_large_closing_gap_is_closed_with_a_line(synthesizer, solid_service, tol, diagnostics):
    loop = polyline_loop([Point(0.0, 0.0), Point(1.0, 0.0), Point(1.0, 1.0), Point(0.0, 1.0)], tol, close=False)
    results = synthesizer.synthesize(Profile(loop), BASIS_Z, 1.0)
    assert len(results) == 1
    healed = solid_service.extrusions[0].loops[0]
    assert not healed.is_open()
    assert len(healed) == 4
    assert healed.curves[-1].start.distance_to(Point(0.0, 1.0)) == pytest.approx(0.0)
    assert healed.curves[-1].end.distance_to(Point(0.0, 0.0)) == pytest.approx(0.0)
    assert diagnostics.messages() == ["Extrusion has an open profile loop, fixing."]


def test_loop_too_small_to_close_drops_the_profile(synthesizer, solid_service, tol, diagnostics):
    loop = CurveLoop([Line.create_bound(Point(0.0, 0.0), Point(0.002, 0.0))], tol.vertex_epsilon)
    results = synthesizer.synthesize(Profile(loop), BASIS_Z, 1.0)
    assert results == []
    assert solid_service.extrusions == []
    assert diagnostics.messages() == ["Extrusion has an open profile loop, ignoring."]


def test_closed_loop_is_returned_unchanged(synthesizer, tol):
    loop = square(tol).outer
    assert synthesizer.heal_loop(loop) is loop


# ------------------------------------------------------------------------------
# Profile usage
# ------------------------------------------------------------------------------
def test_profile_usage_sets_material_and_end_offsets(synthesizer, solid_service, tol):
    params = RectangleProfile(2.0, 1.0)
    profile = ParametricProfileBuilder(tol).build(params)
    usage = MaterialProfileSetUsage((MaterialProfile(params, BRICK, (0.5, 1.0)),))
    results = synthesizer.synthesize(profile, BASIS_Z, 3.0, profile_usage=usage, base_material=CONCRETE)
    assert results[0].material == BRICK
    solid = solid_service.extrusions[0]
    assert solid.distance == pytest.approx(3.5)
    assert solid.loops[0].start.z == pytest.approx(0.5)


def test_profile_usage_for_another_profile_is_ignored(synthesizer, solid_service, tol):
    profile = ParametricProfileBuilder(tol).build(RectangleProfile(2.0, 1.0))
    usage = MaterialProfileSetUsage((MaterialProfile(RectangleProfile(3.0, 1.0), BRICK, (0.5, 1.0)),))
    results = synthesizer.synthesize(profile, BASIS_Z, 3.0, profile_usage=usage, base_material=CONCRETE)
    assert results[0].material == CONCRETE
    assert solid_service.extrusions[0].distance == pytest.approx(3.0)


# ------------------------------------------------------------------------------
# Material layers
# ------------------------------------------------------------------------------
def test_single_layer_overrides_material(synthesizer, tol):
    usage = MaterialLayerSetUsage((MaterialLayer(0.3, BRICK),))
    results = synthesizer.synthesize(square(tol), BASIS_Z, 1.0, layer_usage=usage, base_material=CONCRETE)
    assert len(results) == 1
    assert results[0].material == BRICK


def test_single_colourless_layer_keeps_base_material(synthesizer, tol):
    usage = MaterialLayerSetUsage((MaterialLayer(0.3, Material("unknown")), MaterialLayer(0.0, BRICK)))
    results = synthesizer.synthesize(square(tol), BASIS_Z, 1.0, layer_usage=usage, base_material=CONCRETE)
    assert len(results) == 1
    assert results[0].material == CONCRETE


def test_layers_along_depth(synthesizer, solid_service, tol, diagnostics):
    usage = MaterialLayerSetUsage(
        (MaterialLayer(4.0, BRICK), MaterialLayer(6.0, INSULATION)), LayerSetDirection.AXIS3
    )
    results = synthesizer.synthesize(square(tol), BASIS_Z, 10.0, layer_usage=usage, base_material=CONCRETE)
    assert [r.material for r in results] == [BRICK, INSULATION]
    assert [r.layer_index for r in results] == [0, 1]
    assert [s.distance for s in solid_service.extrusions] == pytest.approx([4.0, 6.0])
    assert [s.loops[0].start.z for s in solid_service.extrusions] == pytest.approx([0.0, 4.0])
    assert diagnostics.records == []


def test_layers_along_depth_negative_sense(synthesizer, solid_service, tol):
    usage = MaterialLayerSetUsage(
        (MaterialLayer(4.0, BRICK), MaterialLayer(6.0, INSULATION)),
        LayerSetDirection.AXIS3,
        DirectionSense.NEGATIVE,
        offset_from_reference_line=10.0,
    )
    synthesizer.synthesize(square(tol), BASIS_Z, 10.0, layer_usage=usage)
    assert [s.loops[0].start.z for s in solid_service.extrusions] == pytest.approx([10.0, 6.0])
    assert all(s.direction.z == pytest.approx(-1.0) for s in solid_service.extrusions)


def test_layers_along_depth_that_dont_fit_use_plain_extrusion(synthesizer, solid_service, tol, diagnostics):
    usage = MaterialLayerSetUsage(
        (MaterialLayer(4.0, BRICK), MaterialLayer(5.0, INSULATION)), LayerSetDirection.AXIS3
    )
    results = synthesizer.synthesize(square(tol), BASIS_Z, 10.0, layer_usage=usage, base_material=CONCRETE)
    assert len(results) == 1
    assert results[0].material == CONCRETE
    assert diagnostics.records == []


def test_layers_across_wall(synthesizer, solid_service, tol, diagnostics):
    usage = MaterialLayerSetUsage((MaterialLayer(0.1, BRICK), MaterialLayer(0.2, INSULATION)))
    axis = Line.create_bound(Point(0.0, 0.0), Point(5.0, 0.0))
    results = synthesizer.synthesize(wall(tol), BASIS_Z, 3.0, layer_usage=usage, axis_curve=axis)

    assert [r.material for r in results] == [BRICK, INSULATION]
    first, second = (s.loops[0] for s in solid_service.extrusions)
    assert y_range(first) == pytest.approx((0.0, 0.1))
    assert y_range(second) == pytest.approx((0.1, 0.3))
    assert all(s.distance == pytest.approx(3.0) for s in solid_service.extrusions)
    assert not first.is_open()
    assert diagnostics.records == []


def test_layers_across_curved_wall(synthesizer, solid_service, tol, diagnostics):
    outer = Arc.create(Point(0.0, 0.0), 5.3, 0.0, math.pi / 4)
    inner = Arc.create(Point(0.0, 0.0), 5.0, 0.0, math.pi / 4)
    loop = CurveLoop(tolerance=tol.vertex_epsilon)
    loop.extend([
        Line.create_bound(inner.start, outer.start),
        outer,
        Line.create_bound(outer.end, inner.end),
        inner.reversed(),
    ])
    usage = MaterialLayerSetUsage((MaterialLayer(0.1, BRICK), MaterialLayer(0.2, INSULATION)))
    results = synthesizer.synthesize(Profile(loop), BASIS_Z, 3.0, layer_usage=usage, axis_curve=outer)

    assert [r.material for r in results] == [BRICK, INSULATION]
    first, second = (s.loops[0] for s in solid_service.extrusions)
    for layer_loop in (first, second):
        assert len(layer_loop) == 4
        assert not layer_loop.is_open()
    assert sorted(c.radius for c in first if isinstance(c, Arc)) == pytest.approx([5.2, 5.3])
    assert sorted(c.radius for c in second if isinstance(c, Arc)) == pytest.approx([5.0, 5.2])
    assert diagnostics.records == []


def test_layers_across_wall_with_reversed_axis_and_negative_sense(synthesizer, solid_service, tol):
    usage = MaterialLayerSetUsage(
        (MaterialLayer(0.1, BRICK), MaterialLayer(0.2, INSULATION)),
        direction_sense=DirectionSense.NEGATIVE,
    )
    axis = Line.create_bound(Point(5.0, 0.0), Point(0.0, 0.0))
    synthesizer.synthesize(wall(tol), BASIS_Z, 3.0, layer_usage=usage, axis_curve=axis)

    first, second = (s.loops[0] for s in solid_service.extrusions)
    assert y_range(first) == pytest.approx((0.0, 0.1))
    assert y_range(second) == pytest.approx((0.1, 0.3))


def test_layers_across_wall_with_wrong_width(synthesizer, tol, diagnostics):
    usage = MaterialLayerSetUsage((MaterialLayer(0.1, BRICK), MaterialLayer(0.1, INSULATION)))
    axis = Line.create_bound(Point(0.0, 0.0), Point(5.0, 0.0))
    results = synthesizer.synthesize(wall(tol), BASIS_Z, 3.0, layer_usage=usage, axis_curve=axis,
                                     base_material=CONCRETE)
    assert len(results) == 1
    assert results[0].material == CONCRETE
    assert diagnostics.messages() == [LAYER_FALLBACK_MESSAGE]


def test_layers_across_wall_without_axis(synthesizer, tol, diagnostics):
    usage = MaterialLayerSetUsage((MaterialLayer(0.1, BRICK), MaterialLayer(0.2, INSULATION)))
    results = synthesizer.synthesize(wall(tol), BASIS_Z, 3.0, layer_usage=usage)
    assert len(results) == 1
    assert diagnostics.messages() == [LAYER_FALLBACK_MESSAGE]


def test_negative_layer_thickness_uses_plain_extrusion(synthesizer, tol, diagnostics):
    usage = MaterialLayerSetUsage((MaterialLayer(0.4, BRICK), MaterialLayer(-0.1, INSULATION)))
    axis = Line.create_bound(Point(0.0, 0.0), Point(5.0, 0.0))
    results = synthesizer.synthesize(wall(tol), BASIS_Z, 3.0, layer_usage=usage, axis_curve=axis)
    assert len(results) == 1
    assert diagnostics.messages() == [LAYER_FALLBACK_MESSAGE]
