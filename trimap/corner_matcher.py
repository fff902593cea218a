"""Shared-vertex lookup and ground-type agreement checks.

Six slots meet at every lattice vertex, alternating orientation, so each
corner of a slot is shared with five others: the slot directly across the
vertex, two diagonal slots and two lateral ones. ``CORNER_NEIGHBORS``
lists them per orientation and local corner as ``(dq, dr, their_corner)``.
The table is checked against ``geometry.corners_of`` in the tests, and the
relation is symmetric: if B is in A's list for some corner, A is in B's.

Nothing here mutates the store. ``validate_ground_types`` is the oracle
``placement.py`` consults before committing; ``matching_ground_types``
lets callers roll ground types that are guaranteed to agree with every
vertex already fixed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .geometry import APEX, LEFT, RIGHT, corner_to_ground_type_index, is_upward
from .ground import GROUND_TYPE_IDS, GroundType
from .point_store import PointStore
from .prng import PCG32

logger = logging.getLogger(__name__)

# orientation (is_upward) -> local corner -> [(dq, dr, their_corner)]
CORNER_NEIGHBORS: dict[bool, dict[int, list[tuple[int, int, int]]]] = {
    True: {
        LEFT: [
            (-1, -1, APEX),
            (-2, -1, RIGHT),
            (0, -1, LEFT),
            (-1, 0, APEX),
            (-2, 0, RIGHT),
        ],
        RIGHT: [
            (1, -1, APEX),
            (0, -1, RIGHT),
            (2, -1, LEFT),
            (1, 0, APEX),
            (2, 0, LEFT),
        ],
        APEX: [
            (0, 1, APEX),
            (-1, 1, RIGHT),
            (1, 1, LEFT),
            (-1, 0, RIGHT),
            (1, 0, LEFT),
        ],
    },
    False: {
        LEFT: [
            (-1, 0, APEX),
            (-2, 0, RIGHT),
            (-1, 1, APEX),
            (-2, 1, RIGHT),
            (0, 1, LEFT),
        ],
        RIGHT: [
            (1, 0, APEX),
            (2, 0, LEFT),
            (1, 1, APEX),
            (0, 1, RIGHT),
            (2, 1, LEFT),
        ],
        APEX: [
            (0, -1, APEX),
            (-1, -1, RIGHT),
            (1, -1, LEFT),
            (-1, 0, RIGHT),
            (1, 0, LEFT),
        ],
    },
}

CORNER_NAMES: dict[bool, dict[int, str]] = {
    True: {LEFT: "bottom-left", RIGHT: "bottom-right", APEX: "top"},
    False: {LEFT: "top-left", RIGHT: "top-right", APEX: "bottom"},
}


@dataclass(frozen=True)
class CornerNeighbor:
    q: int
    r: int
    corner: int


@dataclass(frozen=True)
class CornerMismatch:
    corner: int
    neighbor: CornerNeighbor
    expected: GroundType
    found: GroundType


def corner_name(q: int, r: int, corner_index: int) -> str:
    return CORNER_NAMES[is_upward(q, r)][corner_index]


def get_corner_neighbors(
    q: int, r: int, corner_index: int
) -> list[CornerNeighbor]:
    """Every other slot that shares the given corner's vertex."""
    return [
        CornerNeighbor(q + dq, r + dr, their_corner)
        for dq, dr, their_corner in CORNER_NEIGHBORS[is_upward(q, r)][
            corner_index
        ]
    ]


def neighbor_ground_type(
    store: PointStore, neighbor: CornerNeighbor
) -> GroundType | None:
    """A placed neighbor's ground type at the shared vertex, else None."""
    if not store.has_center_point(neighbor.q, neighbor.r):
        return None
    types = store.get_ground_types_for_triangle(neighbor.q, neighbor.r)
    slot = corner_to_ground_type_index(
        neighbor.corner, is_upward(neighbor.q, neighbor.r)
    )
    return types[slot]


def _corner_mismatch(
    store: PointStore,
    q: int,
    r: int,
    corner_index: int,
    my_ground_type: GroundType,
) -> CornerMismatch | None:
    for neighbor in get_corner_neighbors(q, r, corner_index):
        theirs = neighbor_ground_type(store, neighbor)
        # Absent neighbors (or ones with no data at this vertex) can't
        # contradict anything.
        if theirs is None or theirs == my_ground_type:
            continue
        return CornerMismatch(corner_index, neighbor, my_ground_type, theirs)
    return None


def do_corner_match(
    store: PointStore,
    q: int,
    r: int,
    corner_index: int,
    my_ground_type: GroundType | str,
) -> bool:
    mismatch = _corner_mismatch(
        store, q, r, corner_index, GroundType.parse(my_ground_type)
    )
    if mismatch is not None:
        logger.debug(
            "Corner mismatch at (%d, %d) %s: %s vs (%d, %d) %s",
            q,
            r,
            corner_name(q, r, corner_index),
            mismatch.expected.value,
            mismatch.neighbor.q,
            mismatch.neighbor.r,
            mismatch.found.value,
        )
        return False
    return True


def find_mismatch(
    store: PointStore,
    q: int,
    r: int,
    ground_types: Sequence[GroundType],
) -> CornerMismatch | None:
    """First disagreement between ``ground_types`` and placed neighbors."""
    upward = is_upward(q, r)
    for corner_index in (LEFT, RIGHT, APEX):
        mine = ground_types[corner_to_ground_type_index(corner_index, upward)]
        mismatch = _corner_mismatch(store, q, r, corner_index, mine)
        if mismatch is not None:
            return mismatch
    return None


def validate_ground_types(
    store: PointStore,
    q: int,
    r: int,
    ground_types: Sequence[GroundType | str],
) -> bool:
    """True if all three corners agree with every placed neighbor."""
    if len(ground_types) != 4:
        raise ValueError(
            f"Expected 4 ground types [center, left, right, apex], "
            f"got {len(ground_types)}"
        )
    upward = is_upward(q, r)
    return all(
        do_corner_match(
            store,
            q,
            r,
            corner_index,
            ground_types[corner_to_ground_type_index(corner_index, upward)],
        )
        for corner_index in (LEFT, RIGHT, APEX)
    )


def required_ground_type(
    store: PointStore, q: int, r: int, corner_index: int
) -> GroundType | None:
    """The ground type already fixed at a corner of (q, r), if any."""
    corner = store.corner_points_of(q, r)[corner_index]
    if corner is not None:
        return corner.ground_type
    for neighbor in get_corner_neighbors(q, r, corner_index):
        theirs = neighbor_ground_type(store, neighbor)
        if theirs is not None:
            return theirs
    return None


def matching_ground_types(
    store: PointStore,
    q: int,
    r: int,
    rng: PCG32,
    choices: Sequence[GroundType] = GROUND_TYPE_IDS,
) -> list[GroundType]:
    """Roll [center, left, right, apex] consistent with fixed vertices.

    The center is always rolled first, then each free corner slot in slot
    order, so PRNG consumption depends only on which corners are fixed.
    """
    upward = is_upward(q, r)
    result: list[GroundType | None] = [rng.choice(choices), None, None, None]
    for corner_index in (LEFT, RIGHT, APEX):
        required = required_ground_type(store, q, r, corner_index)
        if required is not None:
            result[corner_to_ground_type_index(corner_index, upward)] = required
    return [gt if gt is not None else rng.choice(choices) for gt in result]
