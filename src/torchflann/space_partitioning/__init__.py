"""Static k-d tree for nearest-neighbor and radius search.

This module provides a build-once, query-many k-d tree with:
- Sliding-midpoint splitting on the dimension of largest extent
- Exact and approximate (eps) k-nearest-neighbor search
- Radius search with optional sorted output
- Pluggable point sources and distance metrics
- Thread-safe concurrent queries on a built index

Note: The index references the point source without copying it. Mutating
the coordinates after build invalidates the tree; rebuild instead.
"""

from ._bounding_box import bounding_box
from ._distance import (
    DistanceMetric,
    ManhattanDistance,
    SquaredEuclideanDistance,
    minkowski_metric,
)
from ._exceptions import (
    InvalidInputError,
    NotBuiltError,
    SpacePartitioningError,
)
from ._find_neighbors import find_neighbors
from ._k_nearest_neighbors import k_nearest_neighbors
from ._kd_tree import KdTree, KdTreeIndex, kd_tree, load_kd_tree, save_kd_tree
from ._partition import partition, select_split_dimension, split
from ._point_source import PointSource, TensorPointSource
from ._range_search import range_search
from ._result_set import KNNResultSet, RadiusResultSet

__all__ = [
    "DistanceMetric",
    "InvalidInputError",
    "KNNResultSet",
    "KdTree",
    "KdTreeIndex",
    "ManhattanDistance",
    "NotBuiltError",
    "PointSource",
    "RadiusResultSet",
    "SpacePartitioningError",
    "SquaredEuclideanDistance",
    "TensorPointSource",
    "bounding_box",
    "find_neighbors",
    "k_nearest_neighbors",
    "kd_tree",
    "load_kd_tree",
    "minkowski_metric",
    "partition",
    "range_search",
    "save_kd_tree",
    "select_split_dimension",
    "split",
]
