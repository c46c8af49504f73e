"""Range search query with tree traversal."""

from __future__ import annotations

from typing import List, Tuple, Union

import torch
from torch import Tensor

from ._exceptions import InvalidInputError
from ._find_neighbors import _check_queries, _search
from ._kd_tree import KdTreeIndex
from ._result_set import RadiusResultSet


def range_search(
    index: KdTreeIndex,
    queries: Tensor,
    radius: float,
    *,
    sorted: bool = False,
) -> Union[Tuple[Tensor, Tensor], Tuple[List[Tensor], List[Tensor]]]:
    """Find all neighbors within radius for each query point.

    Parameters
    ----------
    index : KdTreeIndex
        Spatial index built by kd_tree().
    queries : Tensor, shape (d,) or (m, d)
        Query point or points.
    radius : float
        Search radius (inclusive), in coordinate units. For the default
        Euclidean metric points with squared distance ``<= radius**2`` are
        returned.
    sorted : bool, default=False
        Sort each result by ascending distance. Leave off when only set
        membership matters.

    Returns
    -------
    indices : Tensor or list of Tensor
        Indices of neighbors. A 1D query gives one tensor; a 2D query gives
        one tensor per query point.
    distances : Tensor or list of Tensor
        Distances in metric units, aligned with `indices`.

    Raises
    ------
    InvalidInputError
        If `radius` is negative or the query dimension does not match the
        index.
    NotBuiltError
        If the index has not been built.

    Examples
    --------
    >>> points = torch.randn(1000, 3)
    >>> index = kd_tree(points)
    >>> queries = torch.randn(10, 3)
    >>> indices, distances = range_search(index, queries, radius=1.0)
    >>> for idx, dist in zip(indices, distances):
    ...     print(f"Found {len(idx)} neighbors")
    """
    queries = _check_queries(index, queries)

    if radius < 0:
        raise InvalidInputError(f"radius must be non-negative, got {radius}")

    threshold = index.metric.from_radius(radius)
    dtype = (
        queries.dtype
        if queries.is_floating_point()
        else torch.get_default_dtype()
    )

    all_indices = []
    all_distances = []
    for query in queries.reshape(-1, index.dimension):
        result_set = _search(index, RadiusResultSet(threshold), query, 0.0)
        if sorted:
            result_set.sort()
        all_indices.append(
            torch.tensor(result_set.indices(), dtype=torch.long)
        )
        all_distances.append(
            torch.tensor(result_set.distances(), dtype=dtype)
        )

    if queries.dim() == 1:
        return all_indices[0], all_distances[0]
    return all_indices, all_distances
