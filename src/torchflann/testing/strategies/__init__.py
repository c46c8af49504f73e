"""Hypothesis strategies for spatial index testing."""

from ._coordinates import coordinates
from ._point_clouds import point_clouds
from ._query_points import query_points

__all__ = [
    "coordinates",
    "point_clouds",
    "query_points",
]
