"""Geometric helpers."""
from typing import Iterable

from geopy.distance import great_circle

from .models import Coordinate


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    return great_circle(a.as_tuple(), b.as_tuple()).meters


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def interpolate(a: Coordinate, b: Coordinate, fraction: float) -> Coordinate:
    """Point at `fraction` of the way from a to b, lat and lng interpolated independently."""
    frac = clamp(fraction)
    return Coordinate(
        lat=a.lat + (b.lat - a.lat) * frac,
        lng=a.lng + (b.lng - a.lng) * frac,
    )


def mean_coordinate(coords: Iterable[Coordinate]) -> Coordinate:
    points = list(coords)
    if not points:
        raise ValueError("Cannot average an empty set of coordinates")
    return Coordinate(
        lat=sum(p.lat for p in points) / len(points),
        lng=sum(p.lng for p in points) / len(points),
    )
