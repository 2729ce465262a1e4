"""
GeoPoint store.

Owns the point records and keeps the spatial index in sync with them:
- `insert` / `insert_many` validate coordinates and payloads, assign ids and register points
- `remove` drops a record and prunes its index entries
- `query` evaluates an `Exact` / `Near` / `WithinRadius` query

Ids are assigned from a per-store counter, so they also encode insertion order
(used to break distance ties deterministically). Each store instance is fully
independent; there is no process-wide state.

Stored records are immutable: the payload is deep-copied on insert, and every
point handed back (`get`, iteration, query results) is a detached copy.
"""

from __future__ import annotations

import copy
import itertools
import logging
from typing import Any, Iterable, Iterator, Mapping, Sequence

from pydantic import ValidationError

from geonear.config.overrides import apply_settings_overrides
from geonear.config.settings import Settings, get_settings
from geonear.core.geo import is_valid_coordinate
from geonear.core.locks import ReadWriteLock
from geonear.core.spatial_index import SpatialGridIndex
from geonear.domain.models import Exact, GeoPoint, Near, QueryResult, WithinRadius
from geonear.errors import InvalidCoordinate, InvalidParameter, NotFound
from geonear.query.engine import execute

logger = logging.getLogger(__name__)

# Settings paths that are reported as `InvalidParameter` when an override puts them out of range.
_TUNING_KNOBS: dict[tuple[str, ...], str] = {
    ("index", "cell_size_deg"): "cell_size_deg",
    ("geo", "earth_radius_km"): "earth_radius_km",
}

_RECORD_SHAPE = "expected (lon, lat) or (lon, lat, payload)"


def _resolve_settings(settings: Settings | None, overrides: Mapping[str, Any] | None) -> Settings:
    try:
        return apply_settings_overrides(settings or get_settings(), overrides)
    except ValidationError as exc:
        for err in exc.errors():
            name = _TUNING_KNOBS.get(tuple(str(part) for part in err["loc"]))
            if name is not None:
                raise InvalidParameter(name, err.get("input"), err["msg"]) from exc
        raise


def _coerce_coordinate(lon: Any, lat: Any) -> tuple[float, float]:
    try:
        lon_f = float(lon)
        lat_f = float(lat)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinate(lon, lat) from exc
    if not is_valid_coordinate(lon_f, lat_f):
        raise InvalidCoordinate(lon, lat)
    return lon_f, lat_f


def _coerce_payload(payload: Any) -> dict[Any, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise InvalidParameter("payload", payload, "must be a mapping")
    try:
        return copy.deepcopy(dict(payload))
    except (TypeError, copy.Error) as exc:
        raise InvalidParameter("payload", payload, f"must be deep-copyable ({exc})") from exc


def _prepare(lon: Any, lat: Any, payload: Any) -> GeoPoint:
    """Validate one record into an unnumbered point (id 0); nothing is stored yet."""
    lon_f, lat_f = _coerce_coordinate(lon, lat)
    return GeoPoint(id=0, lon=lon_f, lat=lat_f, payload=_coerce_payload(payload))


def _unpack_record(record: Any) -> tuple[Any, Any, Any]:
    try:
        size = len(record)
    except TypeError as exc:
        raise InvalidParameter("record", record, _RECORD_SHAPE) from exc
    if size == 2:
        lon, lat = record
        return lon, lat, None
    if size == 3:
        lon, lat, payload = record
        return lon, lat, payload
    raise InvalidParameter("record", record, _RECORD_SHAPE)


class GeoPointStore:
    """In-memory point store with a grid spatial index and a reader-writer lock."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        settings_overrides: Mapping[str, Any] | None = None,
    ):
        self._settings = _resolve_settings(settings, settings_overrides)
        self._index = SpatialGridIndex(cell_size_deg=self._settings.index.cell_size_deg)
        self._points: dict[int, GeoPoint] = {}
        self._ids = itertools.count(1)
        self._lock = ReadWriteLock()

    @property
    def settings(self) -> Settings:
        return self._settings

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._points)

    def __contains__(self, point_id: object) -> bool:
        with self._lock.read():
            return point_id in self._points

    def __iter__(self) -> Iterator[GeoPoint]:
        # Iterate over a snapshot so callers may mutate the store while looping.
        with self._lock.read():
            snapshot = [point.detached() for point in self._points.values()]
        return iter(snapshot)

    def _commit(self, prepared: GeoPoint) -> GeoPoint:
        point = prepared.model_copy(update={"id": next(self._ids)})
        self._points[point.id] = point
        self._index.insert_coord(point.id, point.lon, point.lat)
        return point

    def insert(self, lon: float, lat: float, payload: Mapping[Any, Any] | None = None) -> int:
        """Store a point and return its id.

        Raises `InvalidCoordinate` when out of range and `InvalidParameter` when
        the payload is not a (deep-copyable) mapping.
        """
        prepared = _prepare(lon, lat, payload)
        with self._lock.write():
            point = self._commit(prepared)
        logger.debug("Inserted point id=%s lon=%s lat=%s", point.id, point.lon, point.lat)
        return point.id

    def insert_many(self, records: Iterable[Sequence[Any]]) -> list[int]:
        """Bulk-insert `(lon, lat)` or `(lon, lat, payload)` records.

        Every record is fully validated before any is stored, so a bad record
        leaves the store unchanged.
        """
        prepared = [_prepare(*_unpack_record(record)) for record in records]

        with self._lock.write():
            ids = [self._commit(point).id for point in prepared]
        logger.info("Bulk-inserted %d points", len(ids))
        return ids

    def get(self, point_id: int) -> GeoPoint:
        with self._lock.read():
            point = self._points.get(point_id)
        if point is None:
            raise NotFound(point_id)
        return point.detached()

    def remove(self, point_id: int) -> None:
        with self._lock.write():
            point = self._points.pop(point_id, None)
            if point is None:
                raise NotFound(point_id)
            self._index.remove_coord(point_id)
        logger.debug("Removed point id=%s", point_id)

    def clear(self) -> None:
        """Drop every point (ids keep increasing afterwards)."""
        with self._lock.write():
            count = len(self._points)
            self._points.clear()
            self._index = SpatialGridIndex(cell_size_deg=self._settings.index.cell_size_deg)
        logger.info("Cleared store (%d points)", count)

    def query(self, query: Exact | Near | WithinRadius) -> QueryResult:
        with self._lock.read():
            return execute(
                query,
                index=self._index,
                points=self._points,
                earth_radius_km=self._settings.geo.earth_radius_km,
            )
