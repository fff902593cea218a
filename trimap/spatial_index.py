"""Quadtree point index for duplicate detection and radius queries.

The point store keys corners by a quantized string, but two computations
of the same physical vertex (or a record that crossed the network with
different float formatting) can round to different keys. ``SpatialIndex``
is the authoritative guard against that: ``insert`` refuses any point
that lands within ``duplicate_epsilon`` of one already stored.

Structure: a square root node centred on the origin. Each node holds up to
``capacity`` points, then splits into four equal quadrants and pushes its
points down. Nodes whose side is at or below ``min_size`` never split and
simply accumulate, so depth stays bounded. Points outside the root square
grow the tree upward (the old root becomes a quadrant of a root twice its
size), so the plane is effectively unbounded.

Queries descend only into quadrants whose square intersects the query
circle; leaves do the exact distance check. A single far point can add
hundreds of levels of growth, so every traversal is iterative.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterator

logger = logging.getLogger(__name__)

Point = tuple[float, float]

# Quadrant offsets (sign of dx, sign of dz): SW, SE, NW, NE.
_QUADRANTS = ((-1, -1), (1, -1), (-1, 1), (1, 1))

# Node bounds of a tree grown far from the origin carry rounding error of
# the order of their size. Containment and pruning widen each square by
# this fraction; leaves still do the exact distance check.
_BOUNDS_SLACK = 1e-9


def square_intersects_circle(
    cx: float,
    cz: float,
    size: float,
    px: float,
    pz: float,
    radius: float,
) -> bool:
    """True if the square (center cx/cz, side size) meets the circle."""
    half = size / 2
    dx = abs(px - cx)
    dz = abs(pz - cz)
    if dx > half + radius or dz > half + radius:
        return False
    if dx <= half or dz <= half:
        return True
    corner_sq = (dx - half) ** 2 + (dz - half) ** 2
    return corner_sq <= radius * radius


class _Node:
    __slots__ = ("cx", "cz", "size", "points", "children")

    def __init__(self, cx: float, cz: float, size: float) -> None:
        self.cx = cx
        self.cz = cz
        self.size = size
        # key -> (position, payload)
        self.points: dict[str, tuple[Point, Any]] = {}
        self.children: list[_Node] = []

    def contains(self, x: float, z: float) -> bool:
        half = self.size / 2 * (1 + _BOUNDS_SLACK)
        return (
            self.cx - half <= x <= self.cx + half
            and self.cz - half <= z <= self.cz + half
        )

    def _child_for(self, x: float, z: float) -> _Node:
        # Children are stored in _QUADRANTS order.
        return self.children[(x >= self.cx) + 2 * (z >= self.cz)]

    def _split(self) -> None:
        quarter = self.size / 4
        self.children = [
            _Node(self.cx + sx * quarter, self.cz + sz * quarter, self.size / 2)
            for sx, sz in _QUADRANTS
        ]
        # At most ``capacity`` points move down, so no child overflows.
        for key, entry in self.points.items():
            x, z = entry[0]
            self._child_for(x, z).points[key] = entry
        self.points = {}

    def insert(
        self,
        key: str,
        entry: tuple[Point, Any],
        capacity: int,
        min_size: float,
    ) -> None:
        x, z = entry[0]
        node = self
        while True:
            if not node.children:
                if len(node.points) < capacity or node.size <= min_size:
                    node.points[key] = entry
                    return
                node._split()
            node = node._child_for(x, z)

    def find_nearby(
        self,
        px: float,
        pz: float,
        radius: float,
        results: dict[str, Any],
    ) -> None:
        r_sq = radius * radius
        stack = [self]
        while stack:
            node = stack.pop()
            if node.children:
                stack.extend(
                    child
                    for child in node.children
                    if square_intersects_circle(
                        child.cx,
                        child.cz,
                        child.size * (1 + _BOUNDS_SLACK),
                        px,
                        pz,
                        radius,
                    )
                )
                continue
            for key, ((x, z), payload) in node.points.items():
                dx = x - px
                dz = z - pz
                if dx * dx + dz * dz <= r_sq:
                    results[key] = payload

    def walk(self) -> Iterator[tuple[str, tuple[Point, Any]]]:
        stack = [self]
        while stack:
            node = stack.pop()
            if node.children:
                stack.extend(reversed(node.children))
            else:
                yield from node.points.items()

    def depth(self) -> int:
        deepest = 0
        stack = [(self, 1)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            stack.extend((child, level + 1) for child in node.children)
        return deepest


class SpatialIndex:
    def __init__(
        self,
        extent: float = 1000.0,
        capacity: int = 8,
        min_size: float = 0.1,
        duplicate_epsilon: float = 0.001,
    ) -> None:
        self.extent = extent
        self.capacity = capacity
        self.min_size = min_size
        self.duplicate_epsilon = duplicate_epsilon
        self._root = _Node(0.0, 0.0, extent)
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def clear(self) -> None:
        self._root = _Node(0.0, 0.0, self.extent)
        self._count = 0

    def _grow_to_contain(self, x: float, z: float) -> None:
        while not self._root.contains(x, z):
            old = self._root
            sx = 1 if x >= old.cx else -1
            sz = 1 if z >= old.cz else -1
            half = old.size / 2
            root = _Node(old.cx + sx * half, old.cz + sz * half, old.size * 2)
            quarter = root.size / 4
            root.children = []
            for qx, qz in _QUADRANTS:
                # The quadrant facing away from the point is the old root.
                if qx == -sx and qz == -sz:
                    root.children.append(old)
                else:
                    root.children.append(
                        _Node(
                            root.cx + qx * quarter,
                            root.cz + qz * quarter,
                            old.size,
                        )
                    )
            self._root = root
            logger.debug(
                "Spatial index grew to side %.1f centred at (%.1f, %.1f)",
                root.size,
                root.cx,
                root.cz,
            )

    def insert(self, key: str, position: Point, payload: Any = None) -> bool:
        """Store a point unless another already sits within epsilon.

        Returns False for duplicates and for non-finite positions.
        """
        x, z = position
        if not (math.isfinite(x) and math.isfinite(z)):
            logger.warning(
                "Spatial index rejected non-finite position %r", position
            )
            return False
        nearby = self.find_nearby(position, self.duplicate_epsilon)
        if nearby:
            logger.debug(
                "Point already exists near (%s, %s): %s",
                x,
                z,
                ", ".join(nearby),
            )
            return False
        self._grow_to_contain(x, z)
        self._root.insert(
            key, ((x, z), payload), self.capacity, self.min_size
        )
        self._count += 1
        return True

    def find_nearby(self, position: Point, radius: float) -> dict[str, Any]:
        """All stored points within ``radius`` (inclusive), key -> payload."""
        results: dict[str, Any] = {}
        px, pz = position
        root = self._root
        if square_intersects_circle(
            root.cx, root.cz, root.size * (1 + _BOUNDS_SLACK), px, pz, radius
        ):
            self._root.find_nearby(px, pz, radius, results)
        return results

    def get_all_points(self) -> dict[str, Any]:
        return {key: payload for key, (_, payload) in self._root.walk()}

    def positions(self) -> dict[str, Point]:
        return {key: pos for key, (pos, _) in self._root.walk()}

    def depth(self) -> int:
        return self._root.depth()
