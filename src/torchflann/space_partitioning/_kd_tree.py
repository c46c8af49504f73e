"""k-d tree implementation with sliding-midpoint splitting."""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Tuple, Union

import torch
from tensordict import tensorclass
from torch import Tensor

from ._bounding_box import bounding_box
from ._distance import DistanceMetric, minkowski_metric
from ._exceptions import InvalidInputError, NotBuiltError
from ._partition import split
from ._point_source import PointSource, TensorPointSource

_NODE_FIELDS = (
    "split_dim",
    "split_val",
    "left_max",
    "right_min",
    "left",
    "right",
    "starts",
    "ends",
)


@tensorclass
class KdTree:
    """Node arena of a built k-d tree.

    Nodes are addressed by their offset into the per-node tensors. A node is
    a leaf when its `split_dim` is -1 and internal otherwise. Offsets are
    assigned in pre-order, so the root is node 0.

    Use `kd_tree()` to construct instances.

    Attributes
    ----------
    split_dim : Tensor
        Split dimension per node (-1 for leaf), shape [n_nodes].
    split_val : Tensor
        Split value per node (0 for leaf), shape [n_nodes].
    left_max : Tensor
        Largest coordinate on the split dimension in the left subtree,
        shape [n_nodes].
    right_min : Tensor
        Smallest coordinate on the split dimension in the right subtree,
        shape [n_nodes].
    left : Tensor
        Left child offset (-1 for leaf), shape [n_nodes].
    right : Tensor
        Right child offset (-1 for leaf), shape [n_nodes].
    starts : Tensor
        First position in `indices` covered by each node, shape [n_nodes].
    ends : Tensor
        One past the last position in `indices` covered by each node,
        shape [n_nodes].
    indices : Tensor
        Point identifiers permuted so that every leaf covers a contiguous
        range, shape [n].
    bounding_box : Tensor
        Box enclosing all points, shape [d, 2].

    Notes
    -----
    Leaf ranges taken in tree order concatenate to ``[0, n)``.
    """

    split_dim: Tensor
    split_val: Tensor
    left_max: Tensor
    right_min: Tensor
    left: Tensor
    right: Tensor
    starts: Tensor
    ends: Tensor
    indices: Tensor
    bounding_box: Tensor


class _Arena(NamedTuple):
    split_dim: List[int]
    split_val: List[float]
    left_max: List[float]
    right_min: List[float]
    left: List[int]
    right: List[int]
    starts: List[int]
    ends: List[int]


class KdTreeIndex:
    """Static k-d tree index over a `PointSource`.

    The index owns the node arena and the permuted identifier array, and
    references the source and its distance metric. It is immutable once
    built, so any number of threads may query it concurrently.

    Parameters
    ----------
    source : PointSource or Tensor
        Points to index. A tensor of shape (n, d) is wrapped in a
        `TensorPointSource`.
    dimension : int, optional
        Number of coordinates per point. Defaults to ``source.dimension()``.
    leaf_size : int, default=10
        Maximum points per leaf node.
    p : float, default=2.0
        Minkowski p-norm (2.0 = squared Euclidean, 1.0 = Manhattan). Ignored
        when the source supplies its own distance metric.

    Raises
    ------
    InvalidInputError
        If the dimension is unknown or not positive, or `leaf_size` is not
        positive.
    """

    def __init__(
        self,
        source: Union[PointSource, Tensor],
        dimension: Optional[int] = None,
        *,
        leaf_size: int = 10,
        p: float = 2.0,
    ) -> None:
        if isinstance(source, Tensor):
            source = TensorPointSource(source)

        source_dimension = source.dimension()
        if dimension is None:
            dimension = source_dimension
        if dimension is None:
            raise InvalidInputError(
                "dimension must be given for sources that do not report one"
            )
        if dimension <= 0:
            raise InvalidInputError(f"dimension must be > 0, got {dimension}")
        if source_dimension is not None and source_dimension != dimension:
            raise InvalidInputError(
                f"Source dimension ({source_dimension}) must match "
                f"index dimension ({dimension})"
            )
        if leaf_size <= 0:
            raise InvalidInputError(f"leaf_size must be > 0, got {leaf_size}")

        metric = source.distance_metric()
        if metric is None:
            metric = minkowski_metric(source, dimension, p)

        self.source = source
        self.dimension = dimension
        self.leaf_size = leaf_size
        self.p = p
        self.metric: DistanceMetric = metric

        self._tree: Optional[KdTree] = None
        self._arena: Optional[_Arena] = None

    @property
    def is_built(self) -> bool:
        return self._tree is not None

    @property
    def tree(self) -> KdTree:
        if self._tree is None:
            raise NotBuiltError("kd-tree index has not been built")
        return self._tree

    @property
    def point_count(self) -> int:
        return self.tree.indices.shape[0]

    def build(self) -> KdTreeIndex:
        """Build the tree, replacing any previous one.

        Raises
        ------
        InvalidInputError
            If the source holds no points, or its precomputed bounding box
            has the wrong shape.
        """
        self._tree = None
        self._arena = None

        n = self.source.point_count()
        if n <= 0:
            raise InvalidInputError("cannot build a kd-tree over 0 points")

        indices = torch.arange(n, dtype=torch.long)

        root_box = self.source.bounding_box()
        if root_box is None:
            root_box = bounding_box(self.source, indices, self.dimension)
        else:
            root_box = torch.as_tensor(root_box)
            if root_box.shape != (self.dimension, 2):
                raise InvalidInputError(
                    f"bounding box must have shape ({self.dimension}, 2), "
                    f"got {tuple(root_box.shape)}"
                )

        arena = _Arena([], [], [], [], [], [], [], [])

        # (parent, is_left, begin, end, box); children are pushed right first
        # so that offsets come out in pre-order.
        stack = [(-1, False, 0, n, root_box)]
        while stack:
            parent, is_left, begin, end, box = stack.pop()

            node = len(arena.split_dim)
            arena.split_dim.append(-1)
            arena.split_val.append(0.0)
            arena.left_max.append(0.0)
            arena.right_min.append(0.0)
            arena.left.append(-1)
            arena.right.append(-1)
            arena.starts.append(begin)
            arena.ends.append(end)

            if parent >= 0:
                if is_left:
                    arena.left[parent] = node
                else:
                    arena.right[parent] = node

            if end - begin <= self.leaf_size:
                continue

            split_dim, split_value, offset = split(
                self.source, indices, begin, end, box, self.dimension
            )
            middle = begin + offset
            left_box = bounding_box(
                self.source, indices[begin:middle], self.dimension
            )
            right_box = bounding_box(
                self.source, indices[middle:end], self.dimension
            )

            arena.split_dim[node] = split_dim
            arena.split_val[node] = split_value
            arena.left_max[node] = left_box[split_dim, 1].item()
            arena.right_min[node] = right_box[split_dim, 0].item()

            stack.append((node, False, middle, end, right_box))
            stack.append((node, True, begin, middle, left_box))

        # Pruning compares against left_max and right_min, so they must hold
        # the coordinates without rounding.
        value_dtype = torch.promote_types(
            self.source.coordinates(indices[:1], self.dimension).dtype,
            torch.float64,
        )
        tree = KdTree(
            split_dim=torch.tensor(arena.split_dim, dtype=torch.long),
            split_val=torch.tensor(arena.split_val, dtype=value_dtype),
            left_max=torch.tensor(arena.left_max, dtype=value_dtype),
            right_min=torch.tensor(arena.right_min, dtype=value_dtype),
            left=torch.tensor(arena.left, dtype=torch.long),
            right=torch.tensor(arena.right, dtype=torch.long),
            starts=torch.tensor(arena.starts, dtype=torch.long),
            ends=torch.tensor(arena.ends, dtype=torch.long),
            indices=indices,
            bounding_box=root_box.to(value_dtype),
            batch_size=[],
        )
        self._attach(tree)
        return self

    def _attach(self, tree: KdTree) -> None:
        self._arena = _Arena(
            *(getattr(tree, name).tolist() for name in _NODE_FIELDS)
        )
        self._tree = tree

    def leaf_ranges(self) -> List[Tuple[int, int]]:
        """``(begin, end)`` of every leaf, in left-to-right tree order."""
        arena = self._require_arena()
        ranges = []
        stack = [0]
        while stack:
            node = stack.pop()
            if arena.split_dim[node] < 0:
                ranges.append((arena.starts[node], arena.ends[node]))
            else:
                stack.append(arena.right[node])
                stack.append(arena.left[node])
        return ranges

    def depth(self) -> int:
        """Number of nodes on the longest root-to-leaf path."""
        arena = self._require_arena()
        deepest = 0
        stack = [(0, 1)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            if arena.split_dim[node] >= 0:
                stack.append((arena.left[node], level + 1))
                stack.append((arena.right[node], level + 1))
        return deepest

    def memory_usage(self) -> int:
        """Bytes held by the arena tensors."""
        tree = self.tree
        return sum(
            tensor.numel() * tensor.element_size()
            for tensor in (
                *(getattr(tree, name) for name in _NODE_FIELDS),
                tree.indices,
                tree.bounding_box,
            )
        )

    def _require_arena(self) -> _Arena:
        if self._arena is None:
            raise NotBuiltError("kd-tree index has not been built")
        return self._arena

    def __repr__(self) -> str:
        state = (
            f"n_nodes={len(self._arena.split_dim)}"
            if self._arena is not None
            else "unbuilt"
        )
        return (
            f"KdTreeIndex(dimension={self.dimension}, "
            f"leaf_size={self.leaf_size}, {state})"
        )


def kd_tree(
    source: Union[PointSource, Tensor],
    dimension: Optional[int] = None,
    *,
    leaf_size: int = 10,
    p: float = 2.0,
) -> KdTreeIndex:
    """Build a k-d tree from points using sliding-midpoint splitting.

    Parameters
    ----------
    source : PointSource or Tensor, shape (n, d)
        Points to index.
    dimension : int, optional
        Number of coordinates per point. Defaults to ``source.dimension()``.
    leaf_size : int, default=10
        Maximum points per leaf node. Larger leaves give a shallower tree
        but a longer linear scan per visited leaf.
    p : float, default=2.0
        Minkowski p-norm (2.0 = squared Euclidean, 1.0 = Manhattan).

    Returns
    -------
    KdTreeIndex
        Built index.

    Raises
    ------
    InvalidInputError
        If the source is empty or a parameter is out of range.

    Notes
    -----
    Each node splits its range on the dimension of largest extent at the
    midpoint of that extent. Points equal to the midpoint are distributed so
    neither side is empty, which bounds the depth even when many points share
    coordinates. Build is deterministic: identical input and parameters
    produce an identical arena and permutation.

    Examples
    --------
    >>> points = torch.randn(1000, 3)
    >>> index = kd_tree(points, leaf_size=10)
    >>> index.point_count
    1000
    """
    return KdTreeIndex(source, dimension, leaf_size=leaf_size, p=p).build()


def save_kd_tree(index: KdTreeIndex, path) -> None:
    """Write the arena of a built index to `path` with `torch.save`.

    Coordinates are not saved; reattach the arena to the same source with
    `load_kd_tree`.
    """
    tree = index.tree
    state = {
        name: getattr(tree, name)
        for name in (*_NODE_FIELDS, "indices", "bounding_box")
    }
    state["dimension"] = index.dimension
    state["leaf_size"] = index.leaf_size
    state["p"] = float(index.p)
    torch.save(state, path)


def load_kd_tree(source: Union[PointSource, Tensor], path) -> KdTreeIndex:
    """Restore an index saved by `save_kd_tree` without rebuilding it.

    Raises
    ------
    InvalidInputError
        If `source` does not hold the number of points the arena indexes.
    """
    state = torch.load(path, weights_only=True)

    index = KdTreeIndex(
        source,
        state["dimension"],
        leaf_size=state["leaf_size"],
        p=state["p"],
    )

    n = state["indices"].shape[0]
    if index.source.point_count() != n:
        raise InvalidInputError(
            f"Source point count ({index.source.point_count()}) must match "
            f"saved index point count ({n})"
        )

    index._attach(
        KdTree(
            **{
                name: state[name]
                for name in (*_NODE_FIELDS, "indices", "bounding_box")
            },
            batch_size=[],
        )
    )
    return index
