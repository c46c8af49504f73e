"""Sliding-midpoint partitioning of identifier ranges."""

from __future__ import annotations

from typing import Tuple

import torch
from torch import Tensor

from ._point_source import PointSource


def select_split_dimension(box: Tensor) -> int:
    """Dimension of maximum extent in `box`; ties go to the lowest one."""
    extent = box[:, 1] - box[:, 0]
    return int(torch.argmax(extent).item())


def partition(
    indices: Tensor,
    begin: int,
    end: int,
    values: Tensor,
    split_value: float,
) -> Tuple[int, int]:
    """Reorder ``indices[begin:end]`` around `split_value` in place.

    After the call the range holds, in order, the identifiers whose value is
    below, equal to and above `split_value`. Each block keeps its previous
    relative order.

    Parameters
    ----------
    indices : Tensor, shape (n,)
        Identifier array, modified in place.
    begin, end : int
        Range to reorder.
    values : Tensor, shape (end - begin,)
        Coordinate on the split dimension for each identifier in the range,
        in the range's current order.
    split_value : float
        Pivot value.

    Returns
    -------
    lim1 : int
        Number of identifiers below `split_value`.
    lim2 : int
        Number of identifiers below or equal to `split_value`.
    """
    segment = indices[begin:end]
    below = values < split_value
    equal = values == split_value
    above = ~(below | equal)

    indices[begin:end] = torch.cat(
        [segment[below], segment[equal], segment[above]]
    )

    lim1 = int(below.sum().item())
    lim2 = lim1 + int(equal.sum().item())
    return lim1, lim2


def split(
    source: PointSource,
    indices: Tensor,
    begin: int,
    end: int,
    box: Tensor,
    dimension: int,
) -> Tuple[int, float, int]:
    """Split ``indices[begin:end]`` with the sliding-midpoint rule.

    The split dimension is the one of largest extent in `box` and the split
    value is the midpoint of that extent. Points equal to the split value may
    go to either side; the boundary is placed as close to the middle of the
    range as they allow. If the midpoint leaves one side empty, which only
    happens when `box` is larger than the points it describes, the split
    value moves to the median of the range instead.

    Parameters
    ----------
    source : PointSource
        Provider of coordinates.
    indices : Tensor, shape (n,)
        Identifier array, reordered in place.
    begin, end : int
        Range to split. Must hold at least two identifiers.
    box : Tensor, shape (dimension, 2)
        Bounding box enclosing the range.
    dimension : int
        Number of coordinates per point.

    Returns
    -------
    split_dim : int
        Dimension that was split.
    split_value : float
        Value the range was partitioned around.
    offset : int
        Size of the left part. Always in ``[1, end - begin - 1]``.
    """
    count = end - begin
    half = count // 2

    split_dim = select_split_dimension(box)
    values = source.coordinates(indices[begin:end], dimension)[:, split_dim]
    low, high = box[split_dim].to(values.dtype)
    split_value = ((low + high) / 2).item()

    lim1, lim2 = partition(indices, begin, end, values, split_value)
    offset = min(max(half, lim1), lim2)

    if offset == 0 or offset == count:
        values = source.coordinates(indices[begin:end], dimension)[
            :, split_dim
        ]
        split_value = torch.kthvalue(values, half).values.item()
        lim1, lim2 = partition(indices, begin, end, values, split_value)
        offset = min(max(half, lim1), lim2)

    return split_dim, split_value, offset
