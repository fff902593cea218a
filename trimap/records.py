"""Data types for the triangle world and its wire records.

Field names in ``to_dict`` follow the record shape exchanged with the
synchronization layer::

    {"worldPos": {"x": .., "z": ..}, "gridPos": {"q": .., "r": ..},
     "groundType": "GRASS"}

Incoming dicts are never turned into records directly; they go through
``ingest.py`` first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .geometry import is_upward
from .ground import GroundType


@dataclass(frozen=True)
class GridCoordinate:
    q: int
    r: int

    @property
    def upward(self) -> bool:
        return is_upward(self.q, self.r)

    def to_dict(self) -> dict:
        return {"q": self.q, "r": self.r}


@dataclass(frozen=True)
class WorldPosition:
    x: float
    z: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.z)

    def to_dict(self) -> dict:
        return {"x": self.x, "z": self.z}


def _point_dict(
    world_pos: WorldPosition, grid_pos: GridCoordinate, gt: GroundType
) -> dict:
    return {
        "worldPos": world_pos.to_dict(),
        "gridPos": grid_pos.to_dict(),
        "groundType": gt.value,
    }


@dataclass(frozen=True)
class CenterPoint:
    world_pos: WorldPosition
    grid_pos: GridCoordinate
    ground_type: GroundType

    def to_dict(self) -> dict:
        return _point_dict(self.world_pos, self.grid_pos, self.ground_type)


@dataclass(frozen=True)
class CornerPoint:
    """A shared vertex. ``grid_pos`` is the triangle that first created it."""

    world_pos: WorldPosition
    grid_pos: GridCoordinate
    ground_type: GroundType

    def to_dict(self) -> dict:
        return _point_dict(self.world_pos, self.grid_pos, self.ground_type)


@dataclass
class Triangle:
    """Derived view of one slot, rebuilt from its center and corners."""

    grid_pos: GridCoordinate
    world_pos: WorldPosition
    upward: bool
    ground_types: list[GroundType | None]

    def to_dict(self) -> dict:
        return {
            "q": self.grid_pos.q,
            "r": self.grid_pos.r,
            "worldPos": self.world_pos.to_dict(),
            "isUpward": self.upward,
            "groundTypes": [
                gt.value if gt is not None else None
                for gt in self.ground_types
            ],
        }


@dataclass(frozen=True)
class CenterUpdate:
    record: CenterPoint

    kind = "center"

    def to_dict(self) -> dict:
        return {"kind": self.kind, **self.record.to_dict()}


@dataclass(frozen=True)
class CornerUpdate:
    record: CornerPoint

    kind = "corner"

    def to_dict(self) -> dict:
        return {"kind": self.kind, **self.record.to_dict()}


PointUpdate = Union[CenterUpdate, CornerUpdate]
