"""Configuration for a triangle world.

One ``MapConfig`` is handed to the store, validator and world facade at
construction; nothing in the package reads globals or the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .ground import GroundType


class AdjacencyPolicy(str, Enum):
    # New triangles must reuse exactly ``required_shared_corners`` corners.
    SHARED_CORNERS = "shared_corners"
    # Looser variant: at least one existing corner, no count requirement.
    ANY_MATCHING_CORNER = "any_matching_corner"


@dataclass
class MapConfig:
    triangle_size: float = 1.0
    key_precision: int = 6
    index_extent: float = 1000.0
    node_capacity: int = 8
    min_node_size: float = 0.1
    duplicate_epsilon: float = 0.001
    max_coordinate: float = 1_000_000.0
    adjacency_policy: AdjacencyPolicy = AdjacencyPolicy.SHARED_CORNERS
    required_shared_corners: int = 2
    impassable: frozenset[GroundType] = field(
        default_factory=lambda: frozenset({GroundType.WATER})
    )
    debug: bool = False

    def __post_init__(self) -> None:
        if self.triangle_size <= 0:
            raise ValueError(
                f"triangle_size must be positive, got {self.triangle_size}"
            )
        if self.key_precision < 0:
            raise ValueError(
                f"key_precision must be >= 0, got {self.key_precision}"
            )
        if self.index_extent <= 0:
            raise ValueError(
                f"index_extent must be positive, got {self.index_extent}"
            )
        if self.node_capacity < 1:
            raise ValueError(
                f"node_capacity must be >= 1, got {self.node_capacity}"
            )
        if self.min_node_size <= 0:
            raise ValueError(
                f"min_node_size must be positive, got {self.min_node_size}"
            )
        if self.duplicate_epsilon < 0:
            raise ValueError(
                f"duplicate_epsilon must be >= 0, got {self.duplicate_epsilon}"
            )
        if not self.max_coordinate > 0:
            raise ValueError(
                f"max_coordinate must be positive, got {self.max_coordinate}"
            )
        if not 1 <= self.required_shared_corners <= 3:
            raise ValueError(
                "required_shared_corners must be in 1..3, got "
                f"{self.required_shared_corners}"
            )
        self.adjacency_policy = AdjacencyPolicy(self.adjacency_policy)
        self.impassable = frozenset(
            GroundType.parse(g) for g in self.impassable
        )

    @staticmethod
    def from_dict(d: dict | None) -> MapConfig:
        if not d:
            return MapConfig()
        defaults = MapConfig()
        return MapConfig(
            triangle_size=d.get("triangle_size", defaults.triangle_size),
            key_precision=d.get("key_precision", defaults.key_precision),
            index_extent=d.get("index_extent", defaults.index_extent),
            node_capacity=d.get("node_capacity", defaults.node_capacity),
            min_node_size=d.get("min_node_size", defaults.min_node_size),
            duplicate_epsilon=d.get(
                "duplicate_epsilon", defaults.duplicate_epsilon
            ),
            adjacency_policy=d.get(
                "adjacency_policy", defaults.adjacency_policy
            ),
            max_coordinate=d.get("max_coordinate", defaults.max_coordinate),
            required_shared_corners=d.get(
                "required_shared_corners", defaults.required_shared_corners
            ),
            impassable=d.get("impassable", defaults.impassable),
            debug=d.get("debug", defaults.debug),
        )

    def to_dict(self) -> dict:
        return {
            "triangle_size": self.triangle_size,
            "key_precision": self.key_precision,
            "index_extent": self.index_extent,
            "node_capacity": self.node_capacity,
            "min_node_size": self.min_node_size,
            "duplicate_epsilon": self.duplicate_epsilon,
            "adjacency_policy": self.adjacency_policy.value,
            "max_coordinate": self.max_coordinate,
            "required_shared_corners": self.required_shared_corners,
            "impassable": sorted(g.value for g in self.impassable),
            "debug": self.debug,
        }
