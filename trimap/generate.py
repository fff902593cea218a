"""Seeded world growth.

``grow_world`` builds a connected map one triangle at a time, the way a
server seeds a fresh world before players join:

  1. On an empty world, place the first triangle at the origin.
  2. Collect the frontier: empty slots sharing an edge with a placed
     triangle that the validator would accept (adjacency only).
  3. Pick one with the PRNG, roll ground types that honour every vertex
     already fixed (``corner_matcher.matching_ground_types``) and place
     it through the validator.

All randomness comes from one ``PCG32`` so a seed reproduces the same
world. The frontier is sorted before picking so iteration order never
leaks into the result.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence, cast

from .corner_matcher import matching_ground_types
from .errors import ErrorKind
from .geometry import edge_neighbors
from .ground import GROUND_TYPE_IDS, GroundType
from .prng import PCG32
from .world import TriangleWorld

logger = logging.getLogger(__name__)


@dataclass
class GrowthResult:
    placed: int = 0
    attempts: int = 0
    rejections: Counter = field(default_factory=Counter)

    def to_dict(self) -> dict:
        return {
            "placed": self.placed,
            "attempts": self.attempts,
            "rejections": {k.value: v for k, v in self.rejections.items()},
        }


def frontier(world: TriangleWorld) -> list[tuple[int, int]]:
    """Empty edge-neighbour slots the validator would accept, sorted."""
    store = world.store
    candidates: set[tuple[int, int]] = set()
    for center in store.center_points.values():
        for q, r in edge_neighbors(center.grid_pos.q, center.grid_pos.r):
            if not store.has_center_point(q, r):
                candidates.add((q, r))
    return sorted(c for c in candidates if world.can_place_triangle(*c))


def grow_world(
    world: TriangleWorld,
    num_triangles: int,
    seed: int,
    choices: Sequence[GroundType] = GROUND_TYPE_IDS,
    max_attempts: int | None = None,
) -> GrowthResult:
    """Place up to ``num_triangles`` new triangles; stop early if stuck."""
    rng = PCG32(seed)
    result = GrowthResult()
    if max_attempts is None:
        max_attempts = num_triangles * 10

    def _try(q: int, r: int) -> None:
        types = matching_ground_types(world.store, q, r, rng, choices)
        placed = world.place_triangle(q, r, types)
        result.attempts += 1
        if placed:
            result.placed += 1
        else:
            result.rejections[cast(ErrorKind, placed.error)] += 1

    if num_triangles > 0 and len(world) == 0:
        _try(0, 0)

    while result.placed < num_triangles and result.attempts < max_attempts:
        slots = frontier(world)
        if not slots:
            logger.info("Growth stopped: no placeable frontier slot left")
            break
        _try(*rng.choice(slots))

    logger.info(
        "Grew world by %d triangles in %d attempts (seed %d)",
        result.placed,
        result.attempts,
        seed,
    )
    if result.rejections.get(ErrorKind.TERRAIN_MISMATCH):
        logger.warning(
            "%d rolled placements disagreed with fixed vertices",
            result.rejections[ErrorKind.TERRAIN_MISMATCH],
        )
    return result
