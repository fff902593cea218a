"""Validation boundary for point records arriving from the network.

Records are untrusted dicts of the shape::

    {"kind": "center" | "corner",
     "worldPos": {"x": .., "z": ..}, "gridPos": {"q": .., "r": ..},
     "groundType": "GRASS"}

``parse_point_record`` turns one into a ``CenterUpdate`` or
``CornerUpdate`` only if every field is present and finite, both
coordinates lie within ``MapConfig.max_coordinate`` of the origin, the
grid coordinate is integral, the ground type is known, and the world
position is where the grid coordinate says it should be (the center of
the slot, or one of its three corners). Anything else is logged and
dropped; it never reaches the store.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, cast

from .config import MapConfig
from .errors import ErrorKind, StoreResult
from .geometry import center_of, corners_of, distance_squared
from .ground import GroundType
from .point_store import PointStore
from .records import (
    CenterPoint,
    CenterUpdate,
    CornerPoint,
    CornerUpdate,
    GridCoordinate,
    PointUpdate,
    WorldPosition,
)

logger = logging.getLogger(__name__)

KINDS = ("center", "corner")


class _Malformed(Exception):
    pass


def _finite_number(d: Any, field_name: str) -> float:
    if not isinstance(d, dict) or field_name not in d:
        raise _Malformed(f"missing {field_name!r}")
    value = d[field_name]
    # bool is an int subclass but never a coordinate.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _Malformed(f"{field_name!r} is not a number: {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise _Malformed(
            f"{field_name!r} is out of range: {value!r}"
        ) from None
    if not math.isfinite(number):
        raise _Malformed(f"{field_name!r} is not finite: {value!r}")
    return number


def _grid_int(d: Any, field_name: str) -> int:
    value = _finite_number(d, field_name)
    if not value.is_integer():
        raise _Malformed(f"{field_name!r} is not an integer: {value!r}")
    return int(value)


def _parse(
    record: Any, kind: str | None, config: MapConfig
) -> PointUpdate:
    if not isinstance(record, dict):
        raise _Malformed(f"record is not an object: {type(record).__name__}")
    kind = kind or record.get("kind")
    if kind not in KINDS:
        raise _Malformed(f"unknown record kind {kind!r}")

    world = record.get("worldPos")
    grid = record.get("gridPos")
    x = _finite_number(world, "x")
    z = _finite_number(world, "z")
    limit = config.max_coordinate
    if abs(x) > limit or abs(z) > limit:
        raise _Malformed(f"({x}, {z}) is outside the world bound {limit}")
    q = _grid_int(grid, "q")
    r = _grid_int(grid, "r")
    try:
        ground_type = GroundType.parse(record.get("groundType"))
    except ValueError as e:
        raise _Malformed(str(e)) from None

    eps_sq = config.duplicate_epsilon**2
    size = config.triangle_size
    if kind == "center":
        if distance_squared((x, z), center_of(q, r, size)) > eps_sq:
            raise _Malformed(f"({x}, {z}) is not the center of ({q}, {r})")
        return CenterUpdate(
            CenterPoint(
                WorldPosition(x, z), GridCoordinate(q, r), ground_type
            )
        )

    if not any(
        distance_squared((x, z), c) <= eps_sq
        for c in corners_of(q, r, size)
    ):
        raise _Malformed(f"({x}, {z}) is not a corner of ({q}, {r})")
    return CornerUpdate(
        CornerPoint(WorldPosition(x, z), GridCoordinate(q, r), ground_type)
    )


def parse_point_record(
    record: Any,
    kind: str | None = None,
    config: MapConfig | None = None,
) -> PointUpdate | None:
    """Validate an untrusted record; None (and a warning) if malformed.

    ``kind`` overrides the record's own ``"kind"`` field, for channels that
    carry only one kind of point.
    """
    try:
        return _parse(record, kind, config or MapConfig())
    except _Malformed as e:
        logger.warning("Dropped malformed point record (%s): %r", e, record)
        return None


def apply_update(store: PointStore, update: PointUpdate) -> StoreResult:
    rec = update.record
    if isinstance(update, CenterUpdate):
        return store.add_center_point(
            rec.grid_pos.q, rec.grid_pos.r, rec.ground_type
        )
    return store.add_corner_point(
        rec.world_pos.x,
        rec.world_pos.z,
        rec.grid_pos.q,
        rec.grid_pos.r,
        rec.ground_type,
    )


@dataclass
class IngestReport:
    applied: int = 0
    existing: int = 0
    rejected: Counter = field(default_factory=Counter)

    @property
    def total_rejected(self) -> int:
        return sum(self.rejected.values())

    def to_dict(self) -> dict:
        return {
            "applied": self.applied,
            "existing": self.existing,
            "rejected": {k.value: v for k, v in self.rejected.items()},
        }


def ingest_records(
    store: PointStore,
    records: Iterable[Any],
    kind: str | None = None,
) -> IngestReport:
    """Parse and apply records in order; never raises for bad data."""
    report = IngestReport()
    for record in records:
        update = parse_point_record(record, kind, store.config)
        if update is None:
            report.rejected[ErrorKind.MALFORMED_RECORD] += 1
            continue
        result = apply_update(store, update)
        if not result:
            logger.warning(
                "Rejected %s record at (%d, %d): %s",
                update.kind,
                update.record.grid_pos.q,
                update.record.grid_pos.r,
                result.message,
            )
            report.rejected[cast(ErrorKind, result.error)] += 1
        elif result.created:
            report.applied += 1
        else:
            report.existing += 1
    if report.total_rejected:
        logger.info(
            "Ingested %d new records, %d already present, %d rejected",
            report.applied,
            report.existing,
            report.total_rejected,
        )
    return report
