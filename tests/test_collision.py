"""Tests for collision shapes, bounds and the fcl-backed query provider."""

import math

import numpy as np
import pytest
import trimesh

from urdfval.collision import (
    Bounds,
    Box,
    Cylinder,
    FclQueryProvider,
    Mesh,
    Sphere,
    axis_gaps,
    oriented_bounds,
)
from urdfval.kinematics import axis_angle_matrix, make_transform


def _at(x=0.0, y=0.0, z=0.0, yaw_deg=0.0):
    rotation = axis_angle_matrix(np.array([0.0, 0.0, 1.0]), math.radians(yaw_deg))
    return make_transform(np.array([x, y, z]), rotation)


@pytest.fixture
def query():
    return FclQueryProvider()


class TestBounds:
    def test_from_center_size(self):
        bounds = Bounds.from_center_size(np.array([1.0, 0.0, 0.0]), np.array([2.0, 2.0, 2.0]))
        np.testing.assert_allclose(bounds.minimum, [0.0, -1.0, -1.0])
        np.testing.assert_allclose(bounds.center, [1.0, 0.0, 0.0])
        np.testing.assert_allclose(bounds.size, [2.0, 2.0, 2.0])

    def test_touching_bounds_intersect(self):
        a = Bounds.from_center_size(np.zeros(3), np.ones(3))
        b = Bounds.from_center_size(np.array([1.0, 0.0, 0.0]), np.ones(3))
        assert a.intersects(b)
        assert b.intersects(a)

    def test_separated_bounds(self):
        a = Bounds.from_center_size(np.zeros(3), np.ones(3))
        b = Bounds.from_center_size(np.array([0.0, 3.0, 0.0]), np.ones(3))
        assert not a.intersects(b)
        np.testing.assert_allclose(axis_gaps(a, b), [-1.0, 2.0, -1.0])

    def test_closest_point_and_union(self):
        a = Bounds.from_center_size(np.zeros(3), np.ones(3))
        np.testing.assert_allclose(a.closest_point(np.array([2.0, 0.2, -3.0])), [0.5, 0.2, -0.5])
        b = Bounds.from_center_size(np.array([2.0, 0.0, 0.0]), np.ones(3))
        union = a.union(b)
        np.testing.assert_allclose(union.minimum, [-0.5, -0.5, -0.5])
        np.testing.assert_allclose(union.maximum, [2.5, 0.5, 0.5])

    def test_oriented_bounds_grow_with_rotation(self):
        bounds = oriented_bounds(np.array([0.5, 0.5, 0.5]), _at(yaw_deg=45.0))
        half = math.sqrt(2) / 2
        np.testing.assert_allclose(bounds.maximum, [half, half, 0.5])


class TestShapes:
    def test_box_scaled(self):
        assert Box(size=(1.0, 2.0, 3.0)).scaled(np.array([2.0, 1.0, -1.0])) == Box(
            size=(2.0, 2.0, 3.0)
        )

    def test_sphere_scaled_by_largest_axis(self):
        assert Sphere(radius=1.0).scaled(np.array([1.0, 3.0, 2.0])).radius == 3.0

    def test_cylinder_scaled(self):
        cylinder = Cylinder(radius=1.0, length=2.0).scaled(np.array([2.0, 1.0, 0.5]))
        assert cylinder == Cylinder(radius=2.0, length=1.0)

    def test_mesh_scaled(self):
        mesh = Mesh(vertices=np.array([[1.0, 1.0, 1.0]]), faces=np.zeros((0, 3), dtype=np.int32))
        scaled = mesh.scaled(np.array([2.0, 3.0, 4.0]))
        np.testing.assert_allclose(scaled.vertices, [[2.0, 3.0, 4.0]])
        assert scaled.faces is mesh.faces


def _unit_cube_mesh():
    cube = trimesh.creation.box(extents=(1.0, 1.0, 1.0))
    return Mesh(
        vertices=np.asarray(cube.vertices, dtype=np.float64),
        faces=np.asarray(cube.faces, dtype=np.int32),
    )


class TestOverlap:
    def test_identical_boxes(self, query):
        overlapping, depth = query.overlap(Box((1, 1, 1)), _at(), Box((1, 1, 1)), _at())
        assert overlapping
        assert depth == pytest.approx(1.0, abs=1e-6)

    def test_box_box_partial(self, query):
        overlapping, depth = query.overlap(Box((1, 1, 1)), _at(), Box((1, 1, 1)), _at(x=0.75))
        assert overlapping
        assert depth == pytest.approx(0.25, abs=1e-6)

    def test_touching_boxes_do_not_overlap(self, query):
        assert query.overlap(Box((1, 1, 1)), _at(), Box((1, 1, 1)), _at(x=1.0)) == (False, 0.0)

    def test_rotated_box_corner(self, query):
        overlapping, depth = query.overlap(
            Box((1, 1, 1)), _at(), Box((1, 1, 1)), _at(x=1.2, yaw_deg=45.0)
        )
        assert overlapping
        assert depth == pytest.approx(0.5 + math.sqrt(2) / 2 - 1.2, abs=1e-6)

    def test_rotated_box_separated(self, query):
        assert query.overlap(
            Box((1, 1, 1)), _at(), Box((1, 1, 1)), _at(x=1.25, yaw_deg=45.0)
        ) == (False, 0.0)

    def test_diagonal_box_separated_on_its_own_axis(self, query):
        pose = _at(x=0.9, y=0.9, yaw_deg=45.0)
        a = oriented_bounds(np.array([0.5, 0.5, 0.5]), _at())
        b = oriented_bounds(np.array([0.5, 0.5, 0.5]), pose)
        assert a.intersects(b)
        assert query.overlap(Box((1, 1, 1)), _at(), Box((1, 1, 1)), pose) == (False, 0.0)

    def test_sphere_sphere(self, query):
        overlapping, depth = query.overlap(Sphere(0.5), _at(), Sphere(0.5), _at(z=0.8))
        assert overlapping
        assert depth == pytest.approx(0.2, abs=1e-6)
        assert query.overlap(Sphere(0.5), _at(), Sphere(0.5), _at(z=1.5)) == (False, 0.0)

    def test_sphere_box_outside(self, query):
        assert query.overlap(Sphere(0.5), _at(x=1.0), Box((1, 1, 1)), _at()) == (False, 0.0)

    def test_sphere_box_face(self, query):
        overlapping, depth = query.overlap(Sphere(0.5), _at(x=0.9), Box((1, 1, 1)), _at())
        assert overlapping
        assert depth == pytest.approx(0.1, abs=1e-6)

    def test_cylinder_cap_overlap(self, query):
        overlapping, depth = query.overlap(
            Cylinder(radius=0.5, length=1.0), _at(), Box((1, 1, 1)), _at(z=0.9)
        )
        assert overlapping
        assert depth == pytest.approx(0.1, abs=1e-3)

    def test_cylinder_is_round(self, query):
        # The box corner sits inside the cylinder's bounding box but outside its wall.
        assert query.overlap(
            Cylinder(radius=0.5, length=1.0), _at(), Box((1, 1, 1)), _at(x=0.9, y=0.9)
        ) == (False, 0.0)


class TestMeshOverlap:
    def test_mesh_against_box(self, query):
        overlapping, depth = query.overlap(_unit_cube_mesh(), _at(), Box((1, 1, 1)), _at(x=0.75))
        assert overlapping
        assert depth > 0.0

    def test_mesh_against_mesh(self, query):
        overlapping, _ = query.overlap(_unit_cube_mesh(), _at(), _unit_cube_mesh(), _at(x=0.5, z=0.3))
        assert overlapping

    def test_separated_meshes(self, query):
        assert query.overlap(
            _unit_cube_mesh(), _at(), _unit_cube_mesh(), _at(x=1.5)
        ) == (False, 0.0)

    def test_mesh_model_reused(self, query):
        mesh = _unit_cube_mesh()
        query.overlap(mesh, _at(), Box((1, 1, 1)), _at(x=3.0))
        model = query._geometry(mesh)
        query.overlap(mesh, _at(), Box((1, 1, 1)), _at(x=0.5))
        assert query._geometry(mesh) is model


class TestDistanceQueries:
    def test_intersecting_bounds(self, query):
        a = Bounds.from_center_size(np.zeros(3), np.ones(3))
        assert query.bounds_intersect(a, a)

    def test_closest_point_distance_single_axis(self, query):
        a = Bounds.from_center_size(np.zeros(3), np.ones(3))
        b = Bounds.from_center_size(np.array([0.0, 0.0, 2.0]), np.ones(3))
        assert query.closest_point_distance(a, b) == pytest.approx(1.0)

    def test_closest_point_distance_diagonal(self, query):
        a = Bounds.from_center_size(np.zeros(3), np.ones(3))
        b = Bounds.from_center_size(np.array([4.0, 5.0, 0.0]), np.ones(3))
        assert query.closest_point_distance(a, b) == pytest.approx(5.0)
