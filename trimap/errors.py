"""Result values and error kinds.

Rejections are normal outcomes (a player clicking an invalid slot, a
stale network record) and come back as values, never exceptions. Results
are truthy on success so callers can write ``if store.add_corner_point(..)``.

The one exception type, ``WorldInconsistencyError``, marks a programming
defect: a commit that failed after validation said it would succeed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    ALREADY_OCCUPIED = "AlreadyOccupied"
    INSUFFICIENT_ADJACENCY = "InsufficientAdjacency"
    TERRAIN_MISMATCH = "TerrainMismatch"
    MALFORMED_RECORD = "MalformedRecord"
    DUPLICATE_POSITION = "DuplicatePosition"


class WorldInconsistencyError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a single point write."""

    ok: bool
    error: ErrorKind | None = None
    message: str = ""
    created: bool = False

    def __bool__(self) -> bool:
        return self.ok

    @staticmethod
    def success(created: bool, message: str = "") -> StoreResult:
        return StoreResult(ok=True, created=created, message=message)

    @staticmethod
    def failure(error: ErrorKind, message: str) -> StoreResult:
        return StoreResult(ok=False, error=error, message=message)


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of a placement check or attempt."""

    ok: bool
    error: ErrorKind | None = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok

    @staticmethod
    def success(message: str) -> PlacementResult:
        return PlacementResult(ok=True, message=message)

    @staticmethod
    def failure(error: ErrorKind, message: str) -> PlacementResult:
        return PlacementResult(ok=False, error=error, message=message)
