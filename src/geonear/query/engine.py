from __future__ import annotations

# This module evaluates one query against the current store state.
# The spatial index only proposes candidates; the distance model decides
# membership and ordering. Keeping those apart lets either side change
# (grid resolution, metric) without touching the other.

import heapq
import logging
from typing import Iterable, Mapping

from geonear.core.geo import Coordinate, DistanceModel, distance_model
from geonear.core.spatial_index import SpatialGridIndex
from geonear.core.stats import record_query
from geonear.domain.models import Exact, GeoPoint, Near, QueryResult, ResultItem, WithinRadius

logger = logging.getLogger(__name__)


def _score(
    candidates: Iterable[int],
    *,
    points: Mapping[int, GeoPoint],
    model: DistanceModel,
    center: Coordinate,
    threshold: float | None,
) -> list[tuple[float, int]]:
    """Return `(distance, id)` for every candidate within `threshold` (inclusive)."""
    out: list[tuple[float, int]] = []
    for point_id in candidates:
        point = points.get(point_id)
        if point is None:
            # Index entry without a record; the store keeps both in sync, so skip it.
            continue
        d = model.distance(center, point.coordinate)
        if threshold is not None and d > threshold:
            continue
        out.append((d, point_id))
    return out


def _exact(query: Exact, *, index: SpatialGridIndex, points: Mapping[int, GeoPoint]) -> QueryResult:
    ids = sorted(index.exact(query.lon, query.lat))
    items = [ResultItem(point=points[i].detached()) for i in ids if i in points]
    record_query(candidates=len(ids), results=len(items))
    return QueryResult(items=items, ordered=False)


def _near(
    query: Near,
    *,
    index: SpatialGridIndex,
    points: Mapping[int, GeoPoint],
    earth_radius_km: float,
) -> QueryResult:
    model = distance_model(query.spherical, earth_radius_km=earth_radius_km)
    origin = Coordinate(*query.origin)

    full_scan = query.max_distance is None
    if full_scan:
        candidates = index.all()
    else:
        candidates = index.candidates_in(model.bounding_boxes(origin, query.max_distance))

    scored = _score(candidates, points=points, model=model, center=origin, threshold=query.max_distance)
    # Ids grow with insertion, so (distance, id) breaks distance ties by insertion order.
    if query.limit is not None:
        ranked = heapq.nsmallest(query.limit, scored)
    else:
        ranked = sorted(scored)

    items = [
        ResultItem(point=points[i].detached(), distance=d if query.include_distance else None)
        for d, i in ranked
    ]
    logger.debug(
        "near model=%s origin=%s max_distance=%s candidates=%d matched=%d returned=%d",
        model.name,
        query.origin,
        query.max_distance,
        len(candidates),
        len(scored),
        len(items),
    )
    record_query(candidates=len(candidates), results=len(items), full_scan=full_scan)
    return QueryResult(items=items, ordered=True)


def _within_radius(
    query: WithinRadius,
    *,
    index: SpatialGridIndex,
    points: Mapping[int, GeoPoint],
    earth_radius_km: float,
) -> QueryResult:
    model = distance_model(query.spherical, earth_radius_km=earth_radius_km)
    center = Coordinate(*query.center)

    candidates = index.candidates_in(model.bounding_boxes(center, query.radius))
    scored = _score(candidates, points=points, model=model, center=center, threshold=query.radius)

    # Membership only: results keep index traversal order, no sort.
    items = [ResultItem(point=points[i].detached()) for _, i in scored]
    logger.debug(
        "within_radius model=%s center=%s radius=%s candidates=%d matched=%d",
        model.name,
        query.center,
        query.radius,
        len(candidates),
        len(items),
    )
    record_query(candidates=len(candidates), results=len(items))
    return QueryResult(items=items, ordered=False)


def execute(
    query: Exact | Near | WithinRadius,
    *,
    index: SpatialGridIndex,
    points: Mapping[int, GeoPoint],
    earth_radius_km: float,
) -> QueryResult:
    """Evaluate `query` against a consistent view of the index and the point records.

    The caller is responsible for holding whatever lock keeps `index` and
    `points` stable for the duration of the call.
    """
    if isinstance(query, Exact):
        return _exact(query, index=index, points=points)
    if isinstance(query, Near):
        return _near(query, index=index, points=points, earth_radius_km=earth_radius_km)
    if isinstance(query, WithinRadius):
        return _within_radius(query, index=index, points=points, earth_radius_km=earth_radius_km)
    raise TypeError(f"Unsupported query type: {type(query).__name__}")
