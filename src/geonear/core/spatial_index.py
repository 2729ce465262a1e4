"""
Lightweight spatial indexing (grid bucket) for lon/lat points.

Used to avoid O(N) scans for exact and proximity queries. The index only finds
candidates; exact distance scoring is left to the caller's distance model, so a
candidate list may include points outside the query region but never omits one
inside it.
"""

from __future__ import annotations

import math
from typing import Iterable

from geonear.core.geo import LAT_MAX, LAT_MIN, LON_MAX, LON_MIN, BoundingBox, Coordinate, PlanarDistance
from geonear.errors import InvalidParameter

CellKey = tuple[int, int]
CoordKey = tuple[float, float]


def _coord_key(lon: float, lat: float) -> CoordKey:
    # `+ 0.0` folds -0.0 into 0.0 so both hash to the same bucket.
    return (float(lon) + 0.0, float(lat) + 0.0)


class SpatialGridIndex:
    """Fixed-resolution degree grid plus an exact coordinate bucket map."""

    def __init__(self, *, cell_size_deg: float = 1.0):
        if not float(cell_size_deg) > 0:
            raise InvalidParameter("cell_size_deg", cell_size_deg, "must be > 0")
        self._cell_size = float(cell_size_deg)
        self._coords: dict[int, CoordKey] = {}
        self._buckets: dict[CoordKey, set[int]] = {}
        self._cells: dict[CellKey, set[int]] = {}

    @property
    def cell_size_deg(self) -> float:
        return self._cell_size

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    def __len__(self) -> int:
        return len(self._coords)

    def __contains__(self, point_id: object) -> bool:
        return point_id in self._coords

    def _cell_key(self, lon: float, lat: float) -> CellKey:
        return (int(math.floor(lon / self._cell_size)), int(math.floor(lat / self._cell_size)))

    def insert_coord(self, point_id: int, lon: float, lat: float) -> None:
        key = _coord_key(lon, lat)
        current = self._coords.get(point_id)
        if current == key:
            return
        if current is not None:
            self.remove_coord(point_id)

        self._coords[point_id] = key
        self._buckets.setdefault(key, set()).add(point_id)
        self._cells.setdefault(self._cell_key(*key), set()).add(point_id)

    def remove_coord(self, point_id: int) -> bool:
        key = self._coords.pop(point_id, None)
        if key is None:
            return False

        bucket = self._buckets.get(key)
        if bucket is not None:
            bucket.discard(point_id)
            if not bucket:
                del self._buckets[key]

        cell_key = self._cell_key(*key)
        cell = self._cells.get(cell_key)
        if cell is not None:
            cell.discard(point_id)
            if not cell:
                del self._cells[cell_key]
        return True

    def exact(self, lon: float, lat: float) -> set[int]:
        return set(self._buckets.get(_coord_key(lon, lat), ()))

    def all(self) -> list[int]:
        return list(self._coords)

    def candidates_near(self, origin: Coordinate, radius_hint: float) -> list[int]:
        """Return a superset of the points within planar `radius_hint` degrees of `origin`."""
        return self.candidates_in(PlanarDistance().bounding_boxes(origin, radius_hint))

    def candidates_in(self, boxes: Iterable[BoundingBox]) -> list[int]:
        """Return ids from every cell overlapping any of `boxes` (deduplicated)."""
        seen: set[CellKey] = set()
        out: list[int] = []
        for box in boxes:
            min_lon = max(box.min_lon, LON_MIN)
            max_lon = min(box.max_lon, LON_MAX)
            min_lat = max(box.min_lat, LAT_MIN)
            max_lat = min(box.max_lat, LAT_MAX)
            if min_lon > max_lon or min_lat > max_lat:
                continue

            cx0, cy0 = self._cell_key(min_lon, min_lat)
            cx1, cy1 = self._cell_key(max_lon, max_lat)
            span = (cx1 - cx0 + 1) * (cy1 - cy0 + 1)

            if span > len(self._cells):
                # Walking the box would visit mostly empty cells; filter the occupied ones instead.
                keys: Iterable[CellKey] = [
                    k for k in self._cells if cx0 <= k[0] <= cx1 and cy0 <= k[1] <= cy1
                ]
            else:
                keys = [(cx, cy) for cx in range(cx0, cx1 + 1) for cy in range(cy0, cy1 + 1)]

            for key in keys:
                if key in seen:
                    continue
                cell = self._cells.get(key)
                if not cell:
                    continue
                seen.add(key)
                out.extend(cell)
        return out

    def coordinate_of(self, point_id: int) -> Coordinate | None:
        key = self._coords.get(point_id)
        if key is None:
            return None
        return Coordinate(lon=key[0], lat=key[1])
