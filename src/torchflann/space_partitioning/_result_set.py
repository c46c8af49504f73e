"""Result accumulators filled by k-d tree traversal."""

from __future__ import annotations

import bisect
import math
from typing import List

from ._exceptions import InvalidInputError


class KNNResultSet:
    """Bounded set of the `capacity` closest points seen so far.

    While fewer than `capacity` points are held the set is accepting and
    `worst_distance` is infinite. Once full it only accepts points strictly
    closer than the current worst, evicting that worst point. Entries stay
    sorted by ascending distance; equal distances keep insertion order.

    Parameters
    ----------
    capacity : int
        Number of neighbors to keep.

    Examples
    --------
    >>> result = KNNResultSet(2)
    >>> result.add_point(4.0, 7)
    True
    >>> result.add_point(1.0, 3)
    True
    >>> result.add_point(9.0, 5)
    False
    >>> result.indices()
    [3, 7]
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise InvalidInputError(f"capacity must be > 0, got {capacity}")
        self.capacity = capacity
        self._indices: List[int] = []
        self._distances: List[float] = []

    def size(self) -> int:
        return len(self._distances)

    def full(self) -> bool:
        return len(self._distances) == self.capacity

    def worst_distance(self) -> float:
        if self.full():
            return self._distances[-1]
        return math.inf

    def add_point(self, distance: float, index: int) -> bool:
        """Offer a point; returns whether it was kept."""
        if self.full() and not distance < self._distances[-1]:
            return False

        position = bisect.bisect_right(self._distances, distance)
        self._distances.insert(position, distance)
        self._indices.insert(position, index)

        if len(self._distances) > self.capacity:
            self._distances.pop()
            self._indices.pop()
        return True

    def indices(self) -> List[int]:
        return list(self._indices)

    def distances(self) -> List[float]:
        return list(self._distances)

    def clear(self) -> None:
        self._indices.clear()
        self._distances.clear()


class RadiusResultSet:
    """Unbounded set of every point within a fixed distance.

    Parameters
    ----------
    radius : float
        Acceptance threshold in metric units (a squared radius for the
        Euclidean metric). Points at exactly this distance are kept.
    """

    def __init__(self, radius: float) -> None:
        if radius < 0:
            raise InvalidInputError(f"radius must be non-negative, got {radius}")
        self.radius = radius
        self._indices: List[int] = []
        self._distances: List[float] = []

    def size(self) -> int:
        return len(self._distances)

    def full(self) -> bool:
        return True

    def worst_distance(self) -> float:
        return self.radius

    def add_point(self, distance: float, index: int) -> bool:
        if distance <= self.radius:
            self._distances.append(distance)
            self._indices.append(index)
            return True
        return False

    def sort(self) -> None:
        """Order entries by ascending distance, keeping ties in place."""
        order = sorted(
            range(len(self._distances)), key=self._distances.__getitem__
        )
        self._distances = [self._distances[i] for i in order]
        self._indices = [self._indices[i] for i in order]

    def indices(self) -> List[int]:
        return list(self._indices)

    def distances(self) -> List[float]:
        return list(self._distances)

    def clear(self) -> None:
        self._indices.clear()
        self._distances.clear()
