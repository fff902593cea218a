"""Canonical store of center and corner points.

The world model is two keyed collections:

  * **Centers**, keyed by grid coordinate (``"q,r"``). One per occupied
    slot; overwritten only by an explicit ``add_center_point``.
  * **Corners**, keyed by the quantized world position (``"x,z"`` with
    ``key_precision`` fractional digits), because up to six slots share
    one physical vertex. A corner's ground type is fixed the first time
    it is written: a later write with the same type is a no-op, a
    different type comes back as ``TERRAIN_MISMATCH`` and is never
    applied.

Every point is mirrored into a ``SpatialIndex``. Corner lookups first try
the exact key, then fall back to a radius query so a position that rounds
to a neighbouring key (float noise, network formatting) still resolves to
the stored vertex instead of creating a second one.

Worlds are append-only during a session: ``clear`` is the only deletion.
Placement rules live in ``placement.py``; this module only stores and
answers queries.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterator, Mapping

from .config import MapConfig
from .errors import ErrorKind, StoreResult
from .geometry import (
    Point,
    center_of,
    corner_to_ground_type_index,
    corners_of,
    distance_squared,
    grid_key,
    is_upward,
    slots_containing,
    world_key,
)
from .ground import GroundType
from .records import (
    CenterPoint,
    CornerPoint,
    GridCoordinate,
    Triangle,
    WorldPosition,
)
from .spatial_index import SpatialIndex

logger = logging.getLogger(__name__)

_CENTER = "center"
_CORNER = "corner"


def _index_key(kind: str, key: str) -> str:
    return f"{kind}:{key}"


class PointStore:
    def __init__(self, config: MapConfig | None = None) -> None:
        self.config = config or MapConfig()
        self._centers: dict[str, CenterPoint] = {}
        self._corners: dict[str, CornerPoint] = {}
        self.index = self._new_index()

    def _new_index(self) -> SpatialIndex:
        return SpatialIndex(
            extent=self.config.index_extent,
            capacity=self.config.node_capacity,
            min_size=self.config.min_node_size,
            duplicate_epsilon=self.config.duplicate_epsilon,
        )

    @property
    def size(self) -> float:
        return self.config.triangle_size

    @property
    def center_count(self) -> int:
        return len(self._centers)

    @property
    def corner_count(self) -> int:
        return len(self._corners)

    @property
    def center_points(self) -> Mapping[str, CenterPoint]:
        return MappingProxyType(self._centers)

    @property
    def corner_points(self) -> Mapping[str, CornerPoint]:
        return MappingProxyType(self._corners)

    def corner_key(self, x: float, z: float) -> str:
        return world_key(x, z, self.config.key_precision)

    # -- Lookups ------------------------------------------------------

    def has_center_point(self, q: int, r: int) -> bool:
        return grid_key(q, r) in self._centers

    def get_center_point(self, q: int, r: int) -> CenterPoint | None:
        return self._centers.get(grid_key(q, r))

    def _find_corner_key(self, x: float, z: float) -> str | None:
        key = self.corner_key(x, z)
        if key in self._corners:
            return key
        nearby = self.index.find_nearby((x, z), self.config.duplicate_epsilon)
        best_key = None
        best_dist = float("inf")
        for kind, store_key in nearby.values():
            if kind != _CORNER:
                continue
            dist = distance_squared(
                (x, z), self._corners[store_key].world_pos.as_tuple()
            )
            if dist < best_dist:
                best_key, best_dist = store_key, dist
        return best_key

    def has_corner_point(self, x: float, z: float) -> bool:
        return self._find_corner_key(x, z) is not None

    def get_corner_point(self, x: float, z: float) -> CornerPoint | None:
        key = self._find_corner_key(x, z)
        return self._corners[key] if key is not None else None

    def corner_points_of(self, q: int, r: int) -> list[CornerPoint | None]:
        """Stored corners of a slot, ordered [left, right, apex]."""
        return [
            self.get_corner_point(x, z) for x, z in corners_of(q, r, self.size)
        ]

    def position_is_free(
        self, position: Point, allow_key: str | None = None
    ) -> bool:
        """True if no indexed point other than ``allow_key`` is within epsilon."""
        nearby = self.index.find_nearby(
            position, self.config.duplicate_epsilon
        )
        return all(k == allow_key for k in nearby)

    # -- Writes -------------------------------------------------------

    def add_center_point(
        self, q: int, r: int, ground_type: GroundType | str
    ) -> StoreResult:
        """Insert or overwrite the center of slot (q, r)."""
        gt = GroundType.parse(ground_type)
        key = grid_key(q, r)
        pos = center_of(q, r, self.size)
        index_key = _index_key(_CENTER, key)
        if not self.position_is_free(pos, allow_key=index_key):
            logger.warning(
                "Center (%d, %d) rejected: another point occupies %s",
                q,
                r,
                pos,
            )
            return StoreResult.failure(
                ErrorKind.DUPLICATE_POSITION,
                f"Another point already occupies center position of ({q}, {r})",
            )
        created = key not in self._centers
        if created and not self.index.insert(index_key, pos, (_CENTER, key)):
            return StoreResult.failure(
                ErrorKind.DUPLICATE_POSITION,
                f"Spatial index refused center of ({q}, {r})",
            )
        self._centers[key] = CenterPoint(
            world_pos=WorldPosition(*pos),
            grid_pos=GridCoordinate(q, r),
            ground_type=gt,
        )
        return StoreResult.success(created)

    def add_corner_point(
        self,
        x: float,
        z: float,
        q: int,
        r: int,
        ground_type: GroundType | str,
    ) -> StoreResult:
        """Record the vertex at (x, z), first created by slot (q, r).

        Idempotent when the vertex already exists with the same ground
        type; a different type is a ``TERRAIN_MISMATCH`` and the stored
        vertex is left untouched.
        """
        gt = GroundType.parse(ground_type)
        existing_key = self._find_corner_key(x, z)
        if existing_key is not None:
            existing = self._corners[existing_key]
            if existing.ground_type != gt:
                return StoreResult.failure(
                    ErrorKind.TERRAIN_MISMATCH,
                    f"Corner {existing_key} is {existing.ground_type.value}, "
                    f"not {gt.value}",
                )
            return StoreResult.success(False)

        key = self.corner_key(x, z)
        if not self.index.insert(_index_key(_CORNER, key), (x, z), (_CORNER, key)):
            logger.warning("Corner %s rejected: position already taken", key)
            return StoreResult.failure(
                ErrorKind.DUPLICATE_POSITION,
                f"Another point already occupies corner position {key}",
            )
        self._corners[key] = CornerPoint(
            world_pos=WorldPosition(x, z),
            grid_pos=GridCoordinate(q, r),
            ground_type=gt,
        )
        return StoreResult.success(True)

    def clear(self) -> None:
        self._centers.clear()
        self._corners.clear()
        self.index = self._new_index()
        logger.info("Point store cleared")

    # -- Triangle views -----------------------------------------------

    def get_ground_types_for_triangle(
        self, q: int, r: int
    ) -> list[GroundType | None]:
        """[center, left, right, apex]; None where no point exists yet."""
        center = self._centers.get(grid_key(q, r))
        result: list[GroundType | None] = [
            center.ground_type if center else None,
            None,
            None,
            None,
        ]
        upward = is_upward(q, r)
        for i, corner in enumerate(self.corner_points_of(q, r)):
            if corner is not None:
                result[corner_to_ground_type_index(i, upward)] = (
                    corner.ground_type
                )
        return result

    get_triangle_ground_types = get_ground_types_for_triangle

    def get_triangle(self, q: int, r: int) -> Triangle | None:
        center = self._centers.get(grid_key(q, r))
        if center is None:
            return None
        return Triangle(
            grid_pos=center.grid_pos,
            world_pos=center.world_pos,
            upward=center.grid_pos.upward,
            ground_types=self.get_ground_types_for_triangle(q, r),
        )

    def triangles(self) -> Iterator[Triangle]:
        """Every placed triangle, in insertion order."""
        for center in list(self._centers.values()):
            tri = self.get_triangle(center.grid_pos.q, center.grid_pos.r)
            if tri is not None:
                yield tri

    def get_world_position(self, q: int, r: int) -> WorldPosition | None:
        center = self._centers.get(grid_key(q, r))
        return center.world_pos if center else None

    def get_ground_type_at_world_position(
        self, x: float, z: float
    ) -> GroundType | None:
        """Ground type of the point nearest (x, z) in the covering triangle.

        None when no placed triangle covers the position.
        """
        for q, r in slots_containing(x, z, self.size):
            center = self._centers.get(grid_key(q, r))
            if center is None:
                continue
            candidates: list[tuple[Point, GroundType]] = [
                (center.world_pos.as_tuple(), center.ground_type)
            ]
            for corner in self.corner_points_of(q, r):
                if corner is not None:
                    candidates.append(
                        (corner.world_pos.as_tuple(), corner.ground_type)
                    )
            _, gt = min(
                candidates, key=lambda c: distance_squared((x, z), c[0])
            )
            return gt
        return None

    # -- Diagnostics --------------------------------------------------

    def log_map_state(self) -> None:
        logger.debug(
            "Map state: %d centers, %d corners",
            len(self._centers),
            len(self._corners),
        )
        for key, center in self._centers.items():
            logger.debug(
                "  center %s at (%.3f, %.3f): %s",
                key,
                center.world_pos.x,
                center.world_pos.z,
                center.ground_type.value,
            )
        for key, corner in self._corners.items():
            logger.debug(
                "  corner %s from (%d, %d): %s",
                key,
                corner.grid_pos.q,
                corner.grid_pos.r,
                corner.ground_type.value,
            )
