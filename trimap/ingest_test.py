"""Tests for untrusted point-record ingestion."""

import logging

import pytest

from trimap.config import MapConfig
from trimap.errors import ErrorKind
from trimap.geometry import center_of, corners_of
from trimap.ground import GroundType
from trimap.ingest import ingest_records, parse_point_record
from trimap.point_store import PointStore
from trimap.records import CenterUpdate, CornerUpdate


def center_record(q, r, gt="GRASS", **overrides):
    x, z = center_of(q, r)
    rec = {
        "kind": "center",
        "worldPos": {"x": x, "z": z},
        "gridPos": {"q": q, "r": r},
        "groundType": gt,
    }
    rec.update(overrides)
    return rec


def corner_record(q, r, corner, gt="GRASS", **overrides):
    x, z = corners_of(q, r)[corner]
    rec = {
        "kind": "corner",
        "worldPos": {"x": x, "z": z},
        "gridPos": {"q": q, "r": r},
        "groundType": gt,
    }
    rec.update(overrides)
    return rec


class TestParsePointRecord:
    def test_center(self):
        update = parse_point_record(center_record(2, 1, "sand"))
        assert isinstance(update, CenterUpdate)
        assert update.record.ground_type == GroundType.SAND
        assert update.record.grid_pos.q == 2

    def test_corner(self):
        update = parse_point_record(corner_record(1, 0, 2, "ROCK"))
        assert isinstance(update, CornerUpdate)
        assert update.record.world_pos.as_tuple() == corners_of(1, 0)[2]

    def test_integral_floats_accepted(self):
        rec = center_record(3, 3, gridPos={"q": 3.0, "r": 3.0})
        assert parse_point_record(rec).record.grid_pos.r == 3

    def test_kind_override(self):
        rec = center_record(0, 0)
        del rec["kind"]
        assert parse_point_record(rec) is None
        assert isinstance(parse_point_record(rec, kind="center"), CenterUpdate)

    def test_round_trip_to_dict(self):
        rec = corner_record(0, 0, 1, "WOODS")
        assert parse_point_record(rec).to_dict() == rec

    def test_noisy_position_within_epsilon(self):
        x, z = center_of(0, 0)
        rec = center_record(0, 0, worldPos={"x": x + 1e-5, "z": z - 1e-5})
        assert parse_point_record(rec) is not None

    @pytest.mark.parametrize(
        "record",
        [
            None,
            "center",
            [1, 2, 3],
            center_record(0, 0, kind="edge"),
            center_record(0, 0, groundType="LAVA"),
            center_record(0, 0, groundType=None),
            center_record(0, 0, groundType=3),
            center_record(0, 0, worldPos={"x": float("nan"), "z": 0.0}),
            center_record(0, 0, worldPos={"x": 0.0, "z": float("inf")}),
            center_record(0, 0, worldPos={"x": 10**400, "z": 0.0}),
            center_record(0, 0, worldPos={"x": 0.0, "z": -(10**400)}),
            center_record(0, 0, worldPos={"x": "0", "z": 0.0}),
            center_record(0, 0, worldPos={"x": 0.0}),
            center_record(0, 0, worldPos=None),
            center_record(0, 0, gridPos={"q": 0.5, "r": 0}),
            center_record(0, 0, gridPos={"q": True, "r": 0}),
            center_record(0, 0, gridPos={"q": 0}),
            center_record(0, 0, gridPos={"q": 1, "r": 0}),
            corner_record(0, 0, 0, gridPos={"q": 5, "r": 5}),
            corner_record(0, 0, 0, worldPos={"x": 0.0, "z": 0.0}),
        ],
    )
    def test_malformed_records_dropped(self, record):
        assert parse_point_record(record) is None

    def test_drop_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="trimap.ingest"):
            parse_point_record(center_record(0, 0, groundType="LAVA"))
        assert "Dropped malformed point record" in caplog.text

    def test_uses_config_size(self):
        config = MapConfig(triangle_size=2.0)
        x, z = center_of(1, 1, 2.0)
        rec = center_record(1, 1, worldPos={"x": x, "z": z})
        assert parse_point_record(rec) is None
        assert parse_point_record(rec, config=config) is not None

    def test_world_bound(self):
        far = center_record(
            0,
            0,
            worldPos={"x": 1e300, "z": 0.0},
            gridPos={"q": 10**300, "r": 0},
        )
        assert parse_point_record(far) is None

        config = MapConfig(max_coordinate=10.0)
        assert parse_point_record(center_record(4, 2), config=config)
        assert parse_point_record(center_record(40, 2), config=config) is None


class TestIngestRecords:
    def test_applies_valid_records(self):
        store = PointStore()
        records = [center_record(0, 0)] + [
            corner_record(0, 0, i) for i in range(3)
        ]
        report = ingest_records(store, records)
        assert report.applied == 4
        assert report.total_rejected == 0
        assert store.get_ground_types_for_triangle(0, 0) == [
            GroundType.GRASS
        ] * 4

    def test_repeated_records_are_existing(self):
        store = PointStore()
        ingest_records(store, [corner_record(0, 0, 2)])
        # Same vertex described from a neighbouring slot.
        report = ingest_records(store, [corner_record(1, 0, 0)])
        assert report.applied == 0
        assert report.existing == 1
        assert store.corner_count == 1

    def test_conflicting_corner_rejected(self):
        store = PointStore()
        ingest_records(store, [corner_record(0, 0, 2, "GRASS")])
        report = ingest_records(store, [corner_record(1, 0, 0, "WATER")])
        assert report.rejected[ErrorKind.TERRAIN_MISMATCH] == 1
        corner = store.get_corner_point(*corners_of(0, 0)[2])
        assert corner.ground_type == GroundType.GRASS

    def test_center_records_overwrite(self):
        store = PointStore()
        ingest_records(store, [center_record(0, 0, "GRASS")])
        report = ingest_records(store, [center_record(0, 0, "WATER")])
        assert report.existing == 1
        assert store.get_center_point(0, 0).ground_type == GroundType.WATER

    def test_malformed_records_never_reach_store(self):
        store = PointStore()
        report = ingest_records(
            store,
            [
                center_record(0, 0, worldPos={"x": float("nan"), "z": 0}),
                "garbage",
                corner_record(0, 0, 1),
            ],
        )
        assert report.applied == 1
        assert report.rejected[ErrorKind.MALFORMED_RECORD] == 2
        assert store.center_count == 0
        assert len(store.index) == 1

    def test_far_record_rejected_and_store_still_usable(self):
        store = PointStore()
        far = center_record(
            0,
            0,
            worldPos={"x": 1e300, "z": 0.0},
            gridPos={"q": 10**300, "r": 0},
        )
        report = ingest_records(store, [far, center_record(0, 0)])
        assert report.rejected[ErrorKind.MALFORMED_RECORD] == 1
        assert report.applied == 1
        assert store.get_center_point(0, 0) is not None
        x, z = corners_of(0, 0)[0]
        assert store.add_corner_point(x, z, 0, 0, GroundType.GRASS)

    def test_noise_merges_into_existing_vertex(self):
        store = PointStore()
        x, z = corners_of(0, 0)[1]
        ingest_records(store, [corner_record(0, 0, 1)])
        noisy = corner_record(
            0, 0, 1, worldPos={"x": x + 4e-7, "z": z - 4e-7}
        )
        report = ingest_records(store, [noisy])
        assert report.existing == 1
        assert store.corner_count == 1

    def test_kind_override_for_single_kind_channels(self):
        store = PointStore()
        rec = corner_record(0, 0, 0)
        del rec["kind"]
        report = ingest_records(store, [rec], kind="corner")
        assert report.applied == 1

    def test_report_to_dict(self):
        store = PointStore()
        report = ingest_records(
            store, [center_record(0, 0), center_record(0, 0), None]
        )
        assert report.to_dict() == {
            "applied": 1,
            "existing": 1,
            "rejected": {"MalformedRecord": 1},
        }
