"""
Error taxonomy.

Every rejected input surfaces as one of these types so callers (and tests) can
assert on the kind of failure:
- `InvalidCoordinate`: lon/lat outside the valid range
- `InvalidParameter`: negative radius/distance, non-positive limit or tuning knob
- `NotFound`: lookup/removal of an unknown point id

These intentionally do not inherit from `ValueError`: pydantic converts
`ValueError` raised inside validators into `ValidationError`, and we want the
typed error to reach the caller unchanged when a query model is constructed.
"""

from __future__ import annotations

from typing import Any


class GeoNearError(Exception):
    """Base class for all errors raised by geonear."""


class InvalidCoordinate(GeoNearError):
    def __init__(self, lon: Any, lat: Any):
        self.lon = lon
        self.lat = lat
        super().__init__(f"Invalid coordinate lon={lon!r} lat={lat!r}; expected lon in [-180, 180], lat in [-90, 90].")


class InvalidParameter(GeoNearError):
    def __init__(self, name: str, value: Any, reason: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid {name}={value!r}: {reason}")


class NotFound(GeoNearError):
    def __init__(self, point_id: Any):
        self.point_id = point_id
        super().__init__(f"No point with id {point_id!r}.")
