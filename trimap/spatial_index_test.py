"""Tests for the quadtree point index."""

import math
import random

import numpy as np

from trimap.spatial_index import SpatialIndex, square_intersects_circle


class TestSquareIntersectsCircle:
    def test_circle_inside(self):
        assert square_intersects_circle(0, 0, 2, 0.5, 0.5, 0.1)

    def test_edge_overlap(self):
        assert square_intersects_circle(0, 0, 2, 3, 0, 2)

    def test_far_away(self):
        assert not square_intersects_circle(0, 0, 2, 5, 0, 1)

    def test_corner_region(self):
        # Corner (1, 1) is sqrt(2) ~ 1.414 from (2, 2).
        assert square_intersects_circle(0, 0, 2, 2, 2, 1.5)
        assert not square_intersects_circle(0, 0, 2, 2, 2, 1.4)


class TestInsert:
    def test_insert_and_find(self):
        idx = SpatialIndex()
        assert idx.insert("a", (1.0, 2.0), "payload")
        assert idx.find_nearby((1.0, 2.0), 0.01) == {"a": "payload"}
        assert len(idx) == 1

    def test_duplicate_within_epsilon_rejected(self):
        idx = SpatialIndex(duplicate_epsilon=0.001)
        assert idx.insert("a", (1.0, 2.0))
        assert not idx.insert("b", (1.0005, 2.0))
        assert len(idx) == 1
        assert set(idx.get_all_points()) == {"a"}

    def test_just_outside_epsilon_accepted(self):
        idx = SpatialIndex(duplicate_epsilon=0.001)
        assert idx.insert("a", (1.0, 2.0))
        assert idx.insert("b", (1.002, 2.0))
        assert len(idx) == 2

    def test_non_finite_rejected(self):
        idx = SpatialIndex()
        assert not idx.insert("nan", (math.nan, 0.0))
        assert not idx.insert("inf", (0.0, math.inf))
        assert len(idx) == 0

    def test_split_keeps_all_points(self):
        idx = SpatialIndex(extent=100.0, capacity=4)
        keys = set()
        for i in range(10):
            for j in range(10):
                key = f"{i},{j}"
                assert idx.insert(key, (i * 3.0 - 15, j * 3.0 - 15), key)
                keys.add(key)
        assert idx.depth() > 1
        assert set(idx.get_all_points()) == keys

    def test_min_size_floor_bounds_depth(self):
        """Points packed into a cell smaller than min_size stop splitting."""
        idx = SpatialIndex(extent=1000.0, capacity=2, min_size=0.1)
        for i in range(6):
            for j in range(6):
                assert idx.insert(f"{i},{j}", (0.001 + i * 0.01, 0.001 + j * 0.01))
        # 1000 / 2**14 < 0.1, so no node deeper than 15 levels can exist.
        assert idx.depth() <= 15
        assert len(idx.find_nearby((0.03, 0.03), 1.0)) == 36

    def test_grows_beyond_extent(self):
        idx = SpatialIndex(extent=10.0)
        assert idx.insert("near", (1.0, 1.0))
        assert idx.insert("far", (100.0, -250.0))
        assert idx.insert("other", (-75.0, 40.0))
        assert set(idx.find_nearby((100.0, -250.0), 0.5)) == {"far"}
        assert set(idx.find_nearby((1.0, 1.0), 0.5)) == {"near"}
        assert set(idx.find_nearby((-75.0, 40.0), 0.5)) == {"other"}
        assert len(idx) == 3

    def test_far_point_then_queries_near_origin(self):
        """Growth toward 1e300 adds about a thousand levels above the origin."""
        idx = SpatialIndex(extent=10.0)
        assert idx.insert("far", (1e300, -1e300), "far")
        for i in range(20):
            assert idx.insert(f"n{i}", (i * 0.5, -i * 0.25), i)
        assert idx.depth() > 900
        found = idx.find_nearby((0.0, 0.0), 2.0)
        assert set(found) == {"n0", "n1", "n2", "n3"}
        assert set(idx.find_nearby((1e300, -1e300), 1.0)) == {"far"}
        assert not idx.insert("dup", (0.0002, 0.0))
        assert len(idx.get_all_points()) == 21
        assert len(idx) == 21

    def test_clear(self):
        idx = SpatialIndex()
        idx.insert("a", (0.0, 0.0))
        idx.clear()
        assert len(idx) == 0
        assert idx.find_nearby((0.0, 0.0), 1.0) == {}
        assert idx.insert("a", (0.0, 0.0))


class TestFindNearby:
    def test_radius_inclusive(self):
        idx = SpatialIndex()
        idx.insert("a", (3.0, 4.0))
        assert "a" in idx.find_nearby((0.0, 0.0), 5.0)
        assert "a" not in idx.find_nearby((0.0, 0.0), 4.999)

    def test_query_outside_root(self):
        idx = SpatialIndex(extent=10.0)
        idx.insert("a", (4.0, 4.0))
        assert idx.find_nearby((500.0, 500.0), 1.0) == {}

    def test_matches_brute_force_on_10k_points(self):
        """Quadrant pruning neither misses nor duplicates points."""
        rng = random.Random(1234)
        idx = SpatialIndex(extent=1000.0)
        keys = []
        positions = []
        for i in range(10_000):
            pos = (rng.uniform(-450, 450), rng.uniform(-450, 450))
            if idx.insert(f"p{i}", pos, i):
                keys.append(f"p{i}")
                positions.append(pos)
        assert len(idx) == len(keys)
        xy = np.array(positions)

        for n in range(0, len(keys), 97):
            px, pz = positions[n]
            for radius in (0.01, 2.0, 15.0):
                found = idx.find_nearby((px, pz), radius)
                dist = np.hypot(xy[:, 0] - px, xy[:, 1] - pz)
                expected = {keys[i] for i in np.nonzero(dist <= radius)[0]}
                assert set(found) == expected
                assert keys[n] in found

        # A tiny radius around a known point returns just that point.
        px, pz = positions[0]
        assert set(idx.find_nearby((px, pz), 1e-6)) == {keys[0]}

    def test_positions(self):
        idx = SpatialIndex()
        idx.insert("a", (1.0, -1.0))
        assert idx.positions() == {"a": (1.0, -1.0)}
