"""k-nearest neighbors query with tree traversal."""

from __future__ import annotations

import warnings

import torch
from torch import Tensor

from ._exceptions import InvalidInputError
from ._find_neighbors import _check_queries, _search
from ._kd_tree import KdTreeIndex
from ._result_set import KNNResultSet


def k_nearest_neighbors(
    index: KdTreeIndex,
    queries: Tensor,
    k: int,
    *,
    eps: float = 0.0,
) -> tuple[Tensor, Tensor]:
    """Find k nearest neighbors for each query point using tree traversal.

    Parameters
    ----------
    index : KdTreeIndex
        Spatial index built by kd_tree().
    queries : Tensor, shape (d,) or (m, d)
        Query point or points.
    k : int
        Number of neighbors to find. Values above the number of indexed
        points return every point.
    eps : float, default=0.0
        Approximate search slack; 0 gives exact results.

    Returns
    -------
    indices : Tensor, shape (min(k, n),) or (m, min(k, n))
        Indices of the nearest neighbors, closest first.
    distances : Tensor, shape (min(k, n),) or (m, min(k, n))
        Distances in metric units (squared for the default Euclidean
        metric), ascending. Ties keep the order in which points were found.

    Raises
    ------
    InvalidInputError
        If `k` is not positive, `eps` is negative or the query dimension
        does not match the index.
    NotBuiltError
        If the index has not been built.

    Examples
    --------
    >>> points = torch.randn(1000, 3)
    >>> index = kd_tree(points)
    >>> queries = torch.randn(10, 3)
    >>> indices, distances = k_nearest_neighbors(index, queries, k=5)
    >>> indices.shape
    torch.Size([10, 5])
    """
    queries = _check_queries(index, queries)

    if k <= 0:
        raise InvalidInputError(f"k must be > 0, got {k}")
    if eps < 0:
        raise InvalidInputError(f"eps must be non-negative, got {eps}")

    n = index.point_count
    if k > n:
        warnings.warn(
            f"k ({k}) exceeds the number of indexed points ({n}); "
            f"returning {n} neighbors",
            stacklevel=2,
        )
        k = n

    dtype = (
        queries.dtype
        if queries.is_floating_point()
        else torch.get_default_dtype()
    )

    all_indices = []
    all_distances = []
    for query in queries.reshape(-1, index.dimension):
        result_set = _search(index, KNNResultSet(k), query, eps)
        all_indices.append(result_set.indices())
        all_distances.append(result_set.distances())

    indices = torch.tensor(all_indices, dtype=torch.long).reshape(-1, k)
    distances = torch.tensor(all_distances, dtype=dtype).reshape(-1, k)

    if queries.dim() == 1:
        return indices[0], distances[0]
    return indices, distances
