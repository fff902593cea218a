import pytest

from trimap.config import AdjacencyPolicy, MapConfig
from trimap.ground import GroundType


class TestMapConfig:
    def test_defaults(self):
        c = MapConfig()
        assert c.triangle_size == 1.0
        assert c.key_precision == 6
        assert c.node_capacity == 8
        assert c.min_node_size == 0.1
        assert c.duplicate_epsilon == 0.001
        assert c.adjacency_policy == AdjacencyPolicy.SHARED_CORNERS
        assert c.required_shared_corners == 2
        assert c.impassable == frozenset({GroundType.WATER})
        assert not c.debug

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"triangle_size": 0},
            {"triangle_size": -1.0},
            {"key_precision": -1},
            {"index_extent": 0},
            {"node_capacity": 0},
            {"min_node_size": 0},
            {"duplicate_epsilon": -0.1},
            {"max_coordinate": 0},
            {"max_coordinate": -5.0},
            {"required_shared_corners": 0},
            {"required_shared_corners": 4},
            {"adjacency_policy": "nearest"},
            {"impassable": {"LAVA"}},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            MapConfig(**kwargs)

    def test_string_coercion(self):
        c = MapConfig(
            adjacency_policy="any_matching_corner",
            impassable=["water", "ROCK"],
        )
        assert c.adjacency_policy is AdjacencyPolicy.ANY_MATCHING_CORNER
        assert c.impassable == frozenset({GroundType.WATER, GroundType.ROCK})

    def test_from_dict_empty(self):
        assert MapConfig.from_dict(None) == MapConfig()
        assert MapConfig.from_dict({}) == MapConfig()

    def test_from_dict_partial(self):
        c = MapConfig.from_dict({"triangle_size": 2.5, "debug": True})
        assert c.triangle_size == 2.5
        assert c.debug
        assert c.node_capacity == 8

    def test_round_trip(self):
        c = MapConfig(
            triangle_size=3.0,
            adjacency_policy=AdjacencyPolicy.ANY_MATCHING_CORNER,
            impassable={GroundType.ROCK, GroundType.WATER},
        )
        d = c.to_dict()
        assert d["adjacency_policy"] == "any_matching_corner"
        assert d["impassable"] == ["ROCK", "WATER"]
        assert MapConfig.from_dict(d) == c
