"""Axis-aligned bounding boxes over point identifiers."""

from __future__ import annotations

from typing import List, Tuple

import torch
from torch import Tensor

from ._distance import DistanceMetric
from ._exceptions import InvalidInputError
from ._point_source import PointSource


def bounding_box(
    source: PointSource, indices: Tensor, dimension: int
) -> Tensor:
    """Compute the tight bounding box of the points in `indices`.

    Parameters
    ----------
    source : PointSource
        Provider of coordinates.
    indices : Tensor, shape (m,)
        Point identifiers. Must not be empty.
    dimension : int
        Number of coordinates per point.

    Returns
    -------
    Tensor, shape (dimension, 2)
        Column 0 holds the per-dimension minimum, column 1 the maximum.

    Raises
    ------
    InvalidInputError
        If `indices` is empty.

    Examples
    --------
    >>> source = TensorPointSource(torch.tensor([[0.0, 1.0], [2.0, -1.0]]))
    >>> bounding_box(source, torch.arange(2), 2)
    tensor([[ 0.,  2.],
            [-1.,  1.]])
    """
    if indices.numel() == 0:
        raise InvalidInputError("cannot compute bounding box of no points")

    points = source.coordinates(indices, dimension)
    low, high = torch.aminmax(points, dim=0)
    return torch.stack([low, high], dim=1)


def box_distances(
    box: Tensor, query: List[float], metric: DistanceMetric
) -> Tuple[List[float], float]:
    """Lower-bound distance from `query` to `box`, per axis and in total.

    The contribution on an axis is the metric's axis distance to the nearer
    face, or zero when the query lies within the box on that axis.
    """
    distances = []
    for dim, (value, (low, high)) in enumerate(zip(query, box.tolist())):
        if value < low:
            distances.append(metric.axis_distance(value, low, dim))
        elif value > high:
            distances.append(metric.axis_distance(value, high, dim))
        else:
            distances.append(0.0)
    return distances, sum(distances)
