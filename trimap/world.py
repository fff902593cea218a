"""``TriangleWorld``: the surface rendering, agents and sync code talk to.

Bundles one ``MapConfig``, ``PointStore`` and ``PlacementValidator`` and
exposes the queries callers need (world position of a slot, ground type
under a world position, a slot's four ground types) plus placement,
ingestion of network records and snapshots.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from .config import MapConfig
from .errors import PlacementResult
from .ground import GroundType
from .ingest import IngestReport, ingest_records
from .placement import PlacementValidator
from .point_store import PointStore
from .records import Triangle, WorldPosition
from .snapshot import (
    TriangleArrays,
    export_world,
    import_world,
    triangle_arrays,
)


class TriangleWorld:
    def __init__(self, config: MapConfig | None = None) -> None:
        self.config = config or MapConfig()
        self.store = PointStore(self.config)
        self.validator = PlacementValidator(self.store, self.config)

    def __len__(self) -> int:
        return self.store.center_count

    def place_triangle(
        self,
        q: int,
        r: int,
        ground_types: GroundType | str | Sequence[GroundType | str],
    ) -> PlacementResult:
        return self.validator.place(q, r, ground_types)

    def can_place_triangle(
        self,
        q: int,
        r: int,
        ground_types: GroundType | str | Sequence[GroundType | str] | None = None,
    ) -> PlacementResult:
        return self.validator.can_place(q, r, ground_types)

    def get_world_position(self, q: int, r: int) -> WorldPosition | None:
        return self.store.get_world_position(q, r)

    def get_ground_type_at_world_position(
        self, x: float, z: float
    ) -> GroundType | None:
        return self.store.get_ground_type_at_world_position(x, z)

    def get_triangle_ground_types(
        self, q: int, r: int
    ) -> list[GroundType | None]:
        return self.store.get_ground_types_for_triangle(q, r)

    def get_triangle(self, q: int, r: int) -> Triangle | None:
        return self.store.get_triangle(q, r)

    def can_stand_at(self, x: float, z: float) -> bool:
        """False off the map or on an impassable ground type."""
        gt = self.store.get_ground_type_at_world_position(x, z)
        return gt is not None and gt not in self.config.impassable

    def apply_records(
        self, records: Iterable[Any], kind: str | None = None
    ) -> IngestReport:
        return ingest_records(self.store, records, kind)

    def export(self) -> dict:
        return export_world(self.store)

    def load(self, doc: dict) -> IngestReport:
        return import_world(self.store, doc)

    def triangle_arrays(self) -> TriangleArrays:
        return triangle_arrays(self.store)

    def clear(self) -> None:
        self.store.clear()
