"""geonear: in-memory geospatial point store with exact, near and radius queries."""

from geonear.core.geo import EARTH_RADIUS_KM, km_to_degrees, km_to_radians
from geonear.domain.models import Exact, GeoPoint, Near, QueryResult, ResultItem, WithinRadius, parse_query
from geonear.errors import GeoNearError, InvalidCoordinate, InvalidParameter, NotFound
from geonear.store.point_store import GeoPointStore

__all__ = [
    "EARTH_RADIUS_KM",
    "Exact",
    "GeoNearError",
    "GeoPoint",
    "GeoPointStore",
    "InvalidCoordinate",
    "InvalidParameter",
    "Near",
    "NotFound",
    "QueryResult",
    "ResultItem",
    "WithinRadius",
    "km_to_degrees",
    "km_to_radians",
    "parse_query",
]
