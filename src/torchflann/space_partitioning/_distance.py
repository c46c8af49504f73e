"""Distance metrics used by k-d tree queries.

All metrics work in "metric units": for the default Euclidean metric these
are squared distances, so no square root is taken while searching. Use
`DistanceMetric.to_distance` to present a final value.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import torch
from torch import Tensor

from ._exceptions import InvalidInputError
from ._point_source import PointSource


class DistanceMetric(ABC):
    """Distance between a query point and points held by a `PointSource`.

    A metric must provide a full distance and a per-axis contribution
    `axis_distance` such that the sum of axis contributions from a query to
    the nearest face of a box never exceeds the distance to any point inside
    the box. Queries rely on that lower bound for pruning.

    Subclasses implement `squared_distance`, `axis_distance` and
    `from_radius`. Leaf scans go through `squared_distances`, whose default
    evaluates `squared_distance` once per point; override it with a
    vectorised version when the source holds a tensor.

    Parameters
    ----------
    source : PointSource
        Points the metric measures against.
    dimension : int
        Number of coordinates per point.
    """

    def __init__(self, source: PointSource, dimension: int) -> None:
        self.source = source
        self.dimension = dimension

    @abstractmethod
    def squared_distance(self, query: Tensor, index: int) -> float:
        """Distance from `query` to point `index`, in metric units."""

    def squared_distances(self, query: Tensor, indices: Tensor) -> Tensor:
        """Distances from `query` to every point in `indices`."""
        return torch.tensor(
            [self.squared_distance(query, i) for i in indices.tolist()],
            dtype=torch.float64,
        )

    @abstractmethod
    def axis_distance(self, a: float, b: float, dim: int) -> float:
        """Contribution of coordinate `dim` when `a` and `b` differ only there."""

    @abstractmethod
    def from_radius(self, radius: float) -> float:
        """Convert a search radius into metric units."""

    def to_distance(self, value: float) -> float:
        """Convert a value in metric units back into a distance."""
        raise NotImplementedError


class SquaredEuclideanDistance(DistanceMetric):
    """Squared Euclidean (L2) distance; the default metric."""

    def squared_distance(self, query: Tensor, index: int) -> float:
        indices = torch.tensor([index], dtype=torch.long)
        return self.squared_distances(query, indices).item()

    def squared_distances(self, query: Tensor, indices: Tensor) -> Tensor:
        points = self.source.coordinates(indices, self.dimension)
        diff = points - query
        return (diff * diff).sum(dim=-1)

    def axis_distance(self, a: float, b: float, dim: int) -> float:
        diff = a - b
        return diff * diff

    def from_radius(self, radius: float) -> float:
        return radius * radius

    def to_distance(self, value: float) -> float:
        return math.sqrt(value)


class ManhattanDistance(DistanceMetric):
    """Manhattan (L1) distance."""

    def squared_distance(self, query: Tensor, index: int) -> float:
        indices = torch.tensor([index], dtype=torch.long)
        return self.squared_distances(query, indices).item()

    def squared_distances(self, query: Tensor, indices: Tensor) -> Tensor:
        points = self.source.coordinates(indices, self.dimension)
        return (points - query).abs().sum(dim=-1)

    def axis_distance(self, a: float, b: float, dim: int) -> float:
        return abs(a - b)

    def from_radius(self, radius: float) -> float:
        return radius

    def to_distance(self, value: float) -> float:
        return value


_MINKOWSKI_METRICS = {
    1.0: ManhattanDistance,
    2.0: SquaredEuclideanDistance,
}


def minkowski_metric(
    source: PointSource, dimension: int, p: float = 2.0
) -> DistanceMetric:
    """Build the Minkowski metric of order `p` over `source`.

    Parameters
    ----------
    source : PointSource
        Points to measure against.
    dimension : int
        Number of coordinates per point.
    p : float, default=2.0
        Minkowski p-norm (2.0 = squared Euclidean, 1.0 = Manhattan).

    Raises
    ------
    InvalidInputError
        If `p` is not 1 or 2.
    """
    metric_class = _MINKOWSKI_METRICS.get(float(p))
    if metric_class is None:
        raise InvalidInputError(f"p must be 1.0 or 2.0, got {p}")
    return metric_class(source, dimension)
