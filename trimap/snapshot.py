"""Whole-world export/import and render arrays.

A snapshot is the two point collections, keyed exactly as the store keys
them::

    {"version": 1, "triangle_size": 1.0,
     "centers": {"q,r": record, ...}, "corners": {"x,z": record, ...}}

Import goes through ``ingest.py`` so a snapshot from an untrusted source
gets the same validation as live network records. Writing snapshots to
disk is the caller's business.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .geometry import corners_of
from .ground import ground_type_color
from .ingest import IngestReport, ingest_records
from .point_store import PointStore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def export_world(store: PointStore) -> dict:
    return {
        "version": SNAPSHOT_VERSION,
        "triangle_size": store.size,
        "centers": {k: c.to_dict() for k, c in store.center_points.items()},
        "corners": {k: c.to_dict() for k, c in store.corner_points.items()},
    }


def import_world(store: PointStore, doc: dict) -> IngestReport:
    """Replace the store's contents with a snapshot.

    Raises ValueError if the document itself is unusable (wrong version or
    triangle size, missing collections). Individual bad records are
    dropped and counted in the returned report.
    """
    if not isinstance(doc, dict):
        raise ValueError("Snapshot must be an object")
    version = doc.get("version")
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {version!r}")
    size = doc.get("triangle_size", store.size)
    if size != store.size:
        raise ValueError(
            f"Snapshot triangle size {size} does not match store size "
            f"{store.size}"
        )
    centers = doc.get("centers", {})
    corners = doc.get("corners", {})
    if not isinstance(centers, dict) or not isinstance(corners, dict):
        raise ValueError("Snapshot centers and corners must be objects")

    store.clear()
    report = ingest_records(store, centers.values(), kind="center")
    corner_report = ingest_records(store, corners.values(), kind="corner")
    report.applied += corner_report.applied
    report.existing += corner_report.existing
    report.rejected.update(corner_report.rejected)
    logger.info(
        "Imported snapshot: %d centers, %d corners, %d records dropped",
        store.center_count,
        store.corner_count,
        report.total_rejected,
    )
    return report


@dataclass
class TriangleArrays:
    """Per-triangle arrays for mesh building, one row per placed slot."""

    grid: np.ndarray  # (N, 2) int64: q, r
    centers: np.ndarray  # (N, 2) float64: x, z
    corners: np.ndarray  # (N, 3, 2) float64: left, right, apex
    upward: np.ndarray  # (N,) bool
    ground_types: np.ndarray  # (N, 4) object: GroundType or None
    colors: np.ndarray  # (N, 4) uint32: RGB per slot, red where unknown

    def __len__(self) -> int:
        return len(self.grid)


def triangle_arrays(store: PointStore) -> TriangleArrays:
    triangles = list(store.triangles())
    n = len(triangles)
    grid = np.empty((n, 2), dtype=np.int64)
    centers = np.empty((n, 2), dtype=np.float64)
    corners = np.empty((n, 3, 2), dtype=np.float64)
    upward = np.empty(n, dtype=bool)
    ground_types = np.empty((n, 4), dtype=object)
    colors = np.empty((n, 4), dtype=np.uint32)
    for i, tri in enumerate(triangles):
        q, r = tri.grid_pos.q, tri.grid_pos.r
        grid[i] = (q, r)
        centers[i] = tri.world_pos.as_tuple()
        corners[i] = corners_of(q, r, store.size)
        upward[i] = tri.upward
        for j, gt in enumerate(tri.ground_types):
            ground_types[i, j] = gt
            colors[i, j] = ground_type_color(gt)
    return TriangleArrays(grid, centers, corners, upward, ground_types, colors)
