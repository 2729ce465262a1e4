"""
Domain models (Pydantic).

These types represent the stable "contract" between the store, the query
engine and callers:
- stored records (`GeoPoint`)
- the closed set of query shapes (`Exact`, `Near`, `WithinRadius`)
- query output (`QueryResult`), which states explicitly whether it is ordered

Queries are validated at construction. Range and sign problems raise the typed
errors from `geonear.errors` (not pydantic's `ValidationError`) so callers can
tell an out-of-range coordinate from a bad radius.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from geonear.core.geo import Coordinate, is_valid_coordinate
from geonear.errors import InvalidCoordinate, InvalidParameter

LonLat = tuple[float, float]


def _check_coordinate(lon: float, lat: float) -> None:
    if not is_valid_coordinate(lon, lat):
        raise InvalidCoordinate(lon, lat)


def _check_non_negative(name: str, value: float | None) -> None:
    # `not value >= 0` also rejects NaN.
    if value is not None and not value >= 0:
        raise InvalidParameter(name, value, "must be >= 0")


class GeoPoint(BaseModel):
    """A stored point record: id, position in decimal degrees and an opaque payload."""

    model_config = ConfigDict(frozen=True)

    id: int
    lon: float
    lat: float
    payload: dict[Any, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_range(self) -> "GeoPoint":
        _check_coordinate(self.lon, self.lat)
        return self

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lon=self.lon, lat=self.lat)

    def detached(self) -> "GeoPoint":
        """Return a deep copy, so editing its payload cannot reach the stored record."""
        return self.model_copy(deep=True)


class Exact(BaseModel):
    """All points stored at exactly (lon, lat)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["exact"] = "exact"
    lon: float
    lat: float

    @model_validator(mode="after")
    def _validate(self) -> "Exact":
        _check_coordinate(self.lon, self.lat)
        return self


class Near(BaseModel):
    """Points ordered by distance from `origin`, optionally capped by distance and count.

    `max_distance` is in degrees for the planar model and radians when
    `spherical` is set.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["near"] = "near"
    origin: LonLat
    max_distance: float | None = None
    limit: int | None = None
    spherical: bool = False
    include_distance: bool = True

    @model_validator(mode="after")
    def _validate(self) -> "Near":
        _check_coordinate(*self.origin)
        _check_non_negative("max_distance", self.max_distance)
        if self.limit is not None and self.limit <= 0:
            raise InvalidParameter("limit", self.limit, "must be > 0")
        return self


class WithinRadius(BaseModel):
    """Unordered set of points inside the closed disk (or spherical cap) around `center`."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["within_radius"] = "within_radius"
    center: LonLat
    radius: float
    spherical: bool = False

    @model_validator(mode="after")
    def _validate(self) -> "WithinRadius":
        _check_coordinate(*self.center)
        _check_non_negative("radius", self.radius)
        return self


Query = Annotated[Union[Exact, Near, WithinRadius], Field(discriminator="kind")]

_QUERY_ADAPTER: TypeAdapter[Query] = TypeAdapter(Query)


def parse_query(payload: Mapping[str, Any]) -> Exact | Near | WithinRadius:
    """Build a typed query from a plain mapping such as `{"kind": "near", "origin": [0, 0]}`."""
    return _QUERY_ADAPTER.validate_python(dict(payload))


class ResultItem(BaseModel):
    point: GeoPoint
    distance: float | None = None


class QueryResult(BaseModel):
    """Query output. `ordered` is True only for `Near` (ascending distance, then insertion order)."""

    items: list[ResultItem] = Field(default_factory=list)
    ordered: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def points(self) -> list[GeoPoint]:
        return [item.point for item in self.items]

    def ids(self) -> list[int]:
        return [item.point.id for item in self.items]

    def coordinates(self) -> list[LonLat]:
        return [(item.point.lon, item.point.lat) for item in self.items]

    def distances(self) -> list[float | None]:
        return [item.distance for item in self.items]
