"""Placement validation and transactional commit.

``PlacementValidator.place`` runs one placement attempt to completion:

  1. **Occupancy**: A slot with a center is ``ALREADY_OCCUPIED``.
  2. **Adjacency**: The first triangle of an empty world is always
     allowed. After that, under ``AdjacencyPolicy.SHARED_CORNERS`` exactly
     ``required_shared_corners`` (2) of the three corners must already
     exist, which keeps the world one gap-free region. The looser
     ``ANY_MATCHING_CORNER`` policy only needs one.
  3. **Terrain**: Every corner must agree with each placed slot sharing
     that vertex (``corner_matcher.find_mismatch``) and with any corner
     point already stored there.
  4. **Commit**: All writes are planned and position-checked before the
     first one happens, then the center and any new corners are written.
     A write failing at that point is a defect and raises
     ``WorldInconsistencyError``.

Rejections leave the store untouched and come back as a
``PlacementResult``; re-rolling ground types and retrying is the
caller's decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .config import AdjacencyPolicy, MapConfig
from .corner_matcher import corner_name, find_mismatch
from .errors import ErrorKind, PlacementResult, WorldInconsistencyError
from .geometry import (
    Point,
    center_of,
    corner_to_ground_type_index,
    corners_of,
    grid_key,
    is_upward,
)
from .ground import GroundType
from .point_store import PointStore
from .records import CornerPoint

logger = logging.getLogger(__name__)


def normalize_ground_types(
    ground_types: GroundType | str | Sequence[GroundType | str],
) -> list[GroundType]:
    """Expand a single ground type to all four slots, or parse four.

    Raises ValueError for anything else.
    """
    if isinstance(ground_types, (GroundType, str)):
        return [GroundType.parse(ground_types)] * 4
    types = [GroundType.parse(g) for g in ground_types]
    if len(types) != 4:
        raise ValueError(
            "Expected 4 ground types [center, left, right, apex], "
            f"got {len(types)}"
        )
    return types


@dataclass
class _CornerWrite:
    position: Point
    ground_type: GroundType


@dataclass
class _PlacementPlan:
    q: int
    r: int
    ground_types: list[GroundType]
    existing: list[CornerPoint | None]
    new_corners: list[_CornerWrite]


class PlacementValidator:
    def __init__(
        self, store: PointStore, config: MapConfig | None = None
    ) -> None:
        self.store = store
        self.config = config or store.config

    def _check_adjacency(
        self,
        q: int,
        r: int,
        existing: list[CornerPoint | None],
        ground_types: list[GroundType] | None,
    ) -> PlacementResult | None:
        if self.store.center_count == 0:
            return None
        count = sum(1 for c in existing if c is not None)
        if self.config.adjacency_policy == AdjacencyPolicy.SHARED_CORNERS:
            required = self.config.required_shared_corners
            if count != required:
                return PlacementResult.failure(
                    ErrorKind.INSUFFICIENT_ADJACENCY,
                    f"Need exactly {required} existing corners, found {count}",
                )
            return None

        if ground_types is None:
            matched = count > 0
        else:
            upward = is_upward(q, r)
            matched = any(
                c is not None
                and c.ground_type
                == ground_types[corner_to_ground_type_index(i, upward)]
                for i, c in enumerate(existing)
            )
        if not matched:
            return PlacementResult.failure(
                ErrorKind.INSUFFICIENT_ADJACENCY,
                "Need at least one existing corner with a matching ground type",
            )
        return None

    def _check_terrain(
        self,
        q: int,
        r: int,
        existing: list[CornerPoint | None],
        ground_types: list[GroundType],
    ) -> PlacementResult | None:
        mismatch = find_mismatch(self.store, q, r, ground_types)
        if mismatch is not None:
            n = mismatch.neighbor
            return PlacementResult.failure(
                ErrorKind.TERRAIN_MISMATCH,
                f"{corner_name(q, r, mismatch.corner)} corner is "
                f"{mismatch.expected.value} but ({n.q}, {n.r}) has "
                f"{mismatch.found.value}",
            )
        upward = is_upward(q, r)
        for i, corner in enumerate(existing):
            if corner is None:
                continue
            mine = ground_types[corner_to_ground_type_index(i, upward)]
            if corner.ground_type != mine:
                return PlacementResult.failure(
                    ErrorKind.TERRAIN_MISMATCH,
                    f"{corner_name(q, r, i)} corner is {mine.value} but the "
                    f"stored vertex is {corner.ground_type.value}",
                )
        return None

    def _plan(
        self,
        q: int,
        r: int,
        ground_types: list[GroundType] | None,
    ) -> tuple[PlacementResult, _PlacementPlan | None]:
        store = self.store
        if store.has_center_point(q, r):
            return (
                PlacementResult.failure(
                    ErrorKind.ALREADY_OCCUPIED,
                    f"Slot ({q}, {r}) already has a triangle",
                ),
                None,
            )

        positions = corners_of(q, r, store.size)
        existing = [store.get_corner_point(x, z) for x, z in positions]

        rejected = self._check_adjacency(q, r, existing, ground_types)
        if rejected is not None:
            return rejected, None
        if ground_types is None:
            return PlacementResult.success("Valid placement"), None

        rejected = self._check_terrain(q, r, existing, ground_types)
        if rejected is not None:
            return rejected, None

        if not store.position_is_free(center_of(q, r, store.size)):
            return (
                PlacementResult.failure(
                    ErrorKind.DUPLICATE_POSITION,
                    f"Center position of ({q}, {r}) is already taken",
                ),
                None,
            )
        upward = is_upward(q, r)
        new_corners: list[_CornerWrite] = []
        for i, (pos, corner) in enumerate(zip(positions, existing)):
            if corner is not None:
                continue
            if not store.position_is_free(pos):
                return (
                    PlacementResult.failure(
                        ErrorKind.DUPLICATE_POSITION,
                        f"{corner_name(q, r, i)} corner position of "
                        f"({q}, {r}) is already taken",
                    ),
                    None,
                )
            new_corners.append(
                _CornerWrite(
                    pos, ground_types[corner_to_ground_type_index(i, upward)]
                )
            )

        message = (
            "First triangle" if store.center_count == 0 else "Valid placement"
        )
        plan = _PlacementPlan(q, r, ground_types, existing, new_corners)
        return PlacementResult.success(message), plan

    def can_place(
        self,
        q: int,
        r: int,
        ground_types: GroundType | str | Sequence[GroundType | str] | None = None,
    ) -> PlacementResult:
        """Check a placement without writing anything.

        Without ground types only occupancy and adjacency are checked.
        """
        types = (
            normalize_ground_types(ground_types)
            if ground_types is not None
            else None
        )
        result, _ = self._plan(q, r, types)
        return result

    def place(
        self,
        q: int,
        r: int,
        ground_types: GroundType | str | Sequence[GroundType | str],
    ) -> PlacementResult:
        """Validate and, if valid, add the triangle at (q, r)."""
        types = normalize_ground_types(ground_types)
        result, plan = self._plan(q, r, types)
        if plan is None:
            logger.debug(
                "Placement at (%d, %d) rejected: %s (%s)",
                q,
                r,
                result.error.value if result.error else "?",
                result.message,
            )
            return result
        self._commit(plan)
        logger.debug(
            "Placed triangle at (%d, %d): %s",
            q,
            r,
            [gt.value for gt in types],
        )
        if self.config.debug:
            self.store.log_map_state()
        return result

    def _commit(self, plan: _PlacementPlan) -> None:
        store = self.store
        written = store.add_center_point(
            plan.q, plan.r, plan.ground_types[0]
        )
        if not written:
            raise WorldInconsistencyError(
                f"Center write for {grid_key(plan.q, plan.r)} failed after "
                f"validation: {written.message}"
            )
        for write in plan.new_corners:
            x, z = write.position
            written = store.add_corner_point(
                x, z, plan.q, plan.r, write.ground_type
            )
            if not written:
                raise WorldInconsistencyError(
                    f"Corner write at ({x}, {z}) for "
                    f"{grid_key(plan.q, plan.r)} failed after validation: "
                    f"{written.message}"
                )
