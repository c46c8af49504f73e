"""Branch-and-bound traversal shared by all k-d tree queries."""

from __future__ import annotations

from torch import Tensor

from ._bounding_box import box_distances
from ._exceptions import InvalidInputError, NotBuiltError
from ._kd_tree import KdTreeIndex


def _check_queries(index: KdTreeIndex, queries: Tensor) -> Tensor:
    if not isinstance(index, KdTreeIndex):
        raise InvalidInputError(
            f"Unsupported index type: {type(index).__name__}"
        )
    if not index.is_built:
        raise NotBuiltError("kd-tree index has not been built")

    if queries.dim() not in (1, 2):
        raise InvalidInputError(
            f"queries must be 1D (d,) or 2D (m, d), got {queries.dim()}D"
        )
    if queries.size(-1) != index.dimension:
        raise InvalidInputError(
            f"Query dimension ({queries.size(-1)}) must match "
            f"tree dimension ({index.dimension})"
        )
    return queries


def find_neighbors(
    index: KdTreeIndex,
    result_set,
    query: Tensor,
    *,
    eps: float = 0.0,
):
    """Offer every point that may belong in `result_set` to it.

    Parameters
    ----------
    index : KdTreeIndex
        Built index.
    result_set : KNNResultSet or RadiusResultSet
        Accumulator to fill. Any object with ``add_point(distance, index)``
        and ``worst_distance()`` works.
    query : Tensor, shape (d,)
        Query point.
    eps : float, default=0.0
        Approximation slack. A subtree is skipped once its lower-bound
        distance times ``1 + eps`` exceeds the worst accepted distance, so
        ``eps=0`` gives exact results.

    Returns
    -------
    result_set
        The same accumulator, filled.

    Notes
    -----
    Traversal is depth-first with an explicit stack. At each internal node
    the child on the query's side of the split is visited first; the other
    child is deferred together with a lower bound on its distance, obtained
    by replacing the split axis term of the parent's bound with the distance
    to the far child's face. The bound is re-checked when the deferred child
    is popped, after the near side had the chance to tighten the result set.
    """
    query = _check_queries(index, query)
    if query.dim() != 1:
        raise InvalidInputError(
            f"query must be 1D (d,), got {query.dim()}D"
        )
    if eps < 0:
        raise InvalidInputError(f"eps must be non-negative, got {eps}")

    return _search(index, result_set, query, eps)


def _search(index: KdTreeIndex, result_set, query: Tensor, eps: float):
    arena = index._arena
    metric = index.metric
    identifiers = index.tree.indices
    point = query.tolist()
    eps_factor = 1.0 + eps

    distances, lower_bound = box_distances(
        index.tree.bounding_box, point, metric
    )
    stack = [(0, lower_bound, distances)]
    while stack:
        node, lower_bound, distances = stack.pop()
        if lower_bound * eps_factor > result_set.worst_distance():
            continue

        dim = arena.split_dim[node]
        if dim < 0:
            leaf = identifiers[arena.starts[node] : arena.ends[node]]
            values = metric.squared_distances(query, leaf).tolist()
            for identifier, value in zip(leaf.tolist(), values):
                result_set.add_point(value, identifier)
            continue

        value = point[dim]
        left_max = arena.left_max[node]
        right_min = arena.right_min[node]
        if (value - left_max) + (value - right_min) < 0:
            near, far = arena.left[node], arena.right[node]
            cut = metric.axis_distance(value, right_min, dim)
        else:
            near, far = arena.right[node], arena.left[node]
            cut = metric.axis_distance(value, left_max, dim)

        far_distances = list(distances)
        far_distances[dim] = cut
        far_bound = sum(far_distances)

        stack.append((far, far_bound, far_distances))
        stack.append((near, lower_bound, distances))

    return result_set
