"""Axial triangle-grid geometry.

Maps integer grid coordinates ``(q, r)`` to world-space points on the x/z
plane. Every slot is an equilateral triangle of side ``2 * size`` and
height ``h = size * sqrt(3)``:

  * Orientation comes from parity alone: ``(q + r)`` even is upward (apex
    at +z), odd is downward. ``is_upward`` is the only place this rule
    lives; every other module calls it.
  * Row ``r`` spans ``z`` in ``[r*h - h/2, r*h + h/2]``. Centers sit a
    sixth of ``h`` below (upward) or above (downward) the row midline, which
    is what makes an upward triangle's apex land exactly on the shared
    corner of the row above.
  * Corners are always returned as ``[left, right, apex]``. For an upward
    triangle that is bottom-left, bottom-right, top; for a downward one
    top-left, top-right, bottom.

Ground types of a triangle are a 4-slot list ``[center, left, right,
apex]``. ``corner_to_ground_type_index`` maps a local corner index to its
slot; the table is derived from ``corners_of`` rather than written by hand.

Also provides the quantization keys used as map keys for world positions
and the point-location helpers used by ``point_store.py`` to answer
"which triangle covers this position".
"""

from __future__ import annotations

import math

Point = tuple[float, float]

SQRT3 = math.sqrt(3.0)

LEFT = 0
RIGHT = 1
APEX = 2
CORNER_INDICES = (LEFT, RIGHT, APEX)

CENTER_SLOT = 0
LEFT_SLOT = 1
RIGHT_SLOT = 2
APEX_SLOT = 3

DEFAULT_PRECISION = 6


def is_upward(q: int, r: int) -> bool:
    return (q + r) % 2 == 0


def triangle_height(size: float = 1.0) -> float:
    return size * SQRT3


def center_of(q: int, r: int, size: float = 1.0) -> Point:
    """World position of the triangle's center."""
    h = triangle_height(size)
    ver_offset = h / 6
    z = r * h + (-ver_offset if is_upward(q, r) else ver_offset)
    return (q * size, z)


def corners_of(q: int, r: int, size: float = 1.0) -> list[Point]:
    """World positions of the three corners, ordered [left, right, apex]."""
    h = triangle_height(size)
    ver_offset = h / 6
    x = q * size
    mid = r * h
    if is_upward(q, r):
        base = mid - h / 3 - ver_offset
        apex = mid + 2 * h / 3 - ver_offset
    else:
        base = mid + h / 3 + ver_offset
        apex = mid - 2 * h / 3 + ver_offset
    return [(x - size, base), (x + size, base), (x, apex)]


def _derive_corner_slots(upward: bool) -> tuple[int, int, int]:
    # Classify each corner of a reference triangle by its x position.
    corners = corners_of(0 if upward else 1, 0)
    xs = sorted(x for x, _ in corners)
    slots = []
    for x, _ in corners:
        if x == xs[0]:
            slots.append(LEFT_SLOT)
        elif x == xs[-1]:
            slots.append(RIGHT_SLOT)
        else:
            slots.append(APEX_SLOT)
    return (slots[0], slots[1], slots[2])


_CORNER_SLOTS: dict[bool, tuple[int, int, int]] = {
    True: _derive_corner_slots(True),
    False: _derive_corner_slots(False),
}


def corner_to_ground_type_index(corner_index: int, upward: bool) -> int:
    """Slot in the [center, left, right, apex] list for a local corner."""
    return _CORNER_SLOTS[upward][corner_index]


def edge_neighbors(q: int, r: int) -> list[tuple[int, int]]:
    """Grid coordinates of the three triangles sharing an edge.

    Order: left, right, then the triangle across the base (below an
    upward triangle, above a downward one).
    """
    dr = -1 if is_upward(q, r) else 1
    return [(q - 1, r), (q + 1, r), (q, r + dr)]


def grid_key(q: int, r: int) -> str:
    return f"{q},{r}"


def quantize(value: float, precision: int = DEFAULT_PRECISION) -> float:
    # + 0.0 folds -0.0 into 0.0 so both format to the same key.
    return round(value, precision) + 0.0


def world_key(x: float, z: float, precision: int = DEFAULT_PRECISION) -> str:
    """Quantization key: the identity of a world position."""
    return (
        f"{quantize(x, precision):.{precision}f},"
        f"{quantize(z, precision):.{precision}f}"
    )


def distance_squared(a: Point, b: Point) -> float:
    dx = a[0] - b[0]
    dz = a[1] - b[1]
    return dx * dx + dz * dz


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def point_in_triangle(
    px: float,
    pz: float,
    corners: list[Point],
    tolerance: float = 1e-9,
) -> bool:
    """Inclusive point-in-triangle test (points on an edge count as inside).

    Works for either winding: the point is inside when it is on the same
    side of all three edges, within ``tolerance``.
    """
    p = (px, pz)
    a, b, c = corners
    d1 = _cross(a, b, p)
    d2 = _cross(b, c, p)
    d3 = _cross(c, a, p)
    has_neg = d1 < -tolerance or d2 < -tolerance or d3 < -tolerance
    has_pos = d1 > tolerance or d2 > tolerance or d3 > tolerance
    return not (has_neg and has_pos)


def slots_containing(
    x: float, z: float, size: float = 1.0
) -> list[tuple[int, int]]:
    """Grid slots whose triangle contains (x, z).

    Usually one slot; two or more when the point lies on a shared edge or
    vertex. Only the row and a handful of columns around ``x / size`` can
    contain the point, so this is O(1).
    """
    h = triangle_height(size)
    row = z / h
    rows = {math.floor(row + 0.5)}
    # On a row boundary both adjacent rows touch the point.
    frac = row + 0.5 - math.floor(row + 0.5)
    if frac < 1e-9:
        rows.add(math.floor(row + 0.5) - 1)
    elif frac > 1 - 1e-9:
        rows.add(math.floor(row + 0.5) + 1)

    base_q = math.floor(x / size)
    result: list[tuple[int, int]] = []
    for r in sorted(rows):
        for q in range(base_q - 1, base_q + 3):
            if point_in_triangle(x, z, corners_of(q, r, size)):
                result.append((q, r))
    return result
