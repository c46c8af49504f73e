"""Point source adaptors consumed by the k-d tree index."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

import torch
from torch import Tensor

from ._exceptions import InvalidInputError

if TYPE_CHECKING:
    from ._distance import DistanceMetric


class PointSource(ABC):
    """Read-only provider of point coordinates.

    Subclasses must implement `point_count` and `coordinate`. The remaining
    methods are optional capabilities with conservative defaults:

    - `coordinates` gathers many points at once. The default stacks
      `coordinate` calls; override it when the data already lives in a
      tensor.
    - `dimension` reports the dimensionality, if known.
    - `bounding_box` returns a precomputed ``(d, 2)`` box so the index can
      skip computing the root box.
    - `distance_metric` returns a custom metric replacing the default
      Minkowski metric.

    The index never copies coordinates and assumes they do not change between
    build and query.
    """

    @abstractmethod
    def point_count(self) -> int:
        """Number of points held."""

    @abstractmethod
    def coordinate(self, index: int, dim: int) -> float:
        """Coordinate `dim` of point `index`."""

    def coordinates(self, indices: Tensor, dimension: int) -> Tensor:
        """Gather coordinates for `indices` as an ``(m, dimension)`` tensor."""
        rows = [
            [self.coordinate(int(i), dim) for dim in range(dimension)]
            for i in indices.tolist()
        ]
        return torch.tensor(rows, dtype=torch.float64).reshape(
            len(rows), dimension
        )

    def dimension(self) -> Optional[int]:
        return None

    def bounding_box(self) -> Optional[Tensor]:
        return None

    def distance_metric(self) -> Optional[DistanceMetric]:
        return None


class TensorPointSource(PointSource):
    """Point source backed by an ``(n, d)`` tensor.

    The tensor is referenced, not copied.

    Examples
    --------
    >>> source = TensorPointSource(torch.randn(100, 3))
    >>> source.point_count()
    100
    >>> source.dimension()
    3
    """

    def __init__(self, points: Tensor) -> None:
        if points.dim() != 2:
            raise InvalidInputError(
                f"points must be 2D (n, d), got {points.dim()}D"
            )
        self.points = points

    def point_count(self) -> int:
        return self.points.shape[0]

    def coordinate(self, index: int, dim: int) -> float:
        return self.points[index, dim].item()

    def coordinates(self, indices: Tensor, dimension: int) -> Tensor:
        return self.points[indices]

    def dimension(self) -> Optional[int]:
        return self.points.shape[1]
