# tests/torchflann/space_partitioning/test__distance.py
import math

import pytest
import torch

from torchflann.space_partitioning import (
    DistanceMetric,
    InvalidInputError,
    ManhattanDistance,
    PointSource,
    SquaredEuclideanDistance,
    TensorPointSource,
    bounding_box,
    k_nearest_neighbors,
    kd_tree,
    minkowski_metric,
    range_search,
)
from torchflann.space_partitioning._bounding_box import box_distances


class WeightedEuclideanDistance(DistanceMetric):
    """Squared Euclidean distance with a weight per axis."""

    def __init__(self, source, dimension, weights):
        super().__init__(source, dimension)
        self.weights = weights

    def squared_distance(self, query, index):
        point = self.source.coordinates(torch.tensor([index]), self.dimension)
        return (self.weights * (point[0] - query) ** 2).sum().item()

    def squared_distances(self, query, indices):
        points = self.source.coordinates(indices, self.dimension)
        return (self.weights * (points - query) ** 2).sum(dim=-1)

    def axis_distance(self, a, b, dim):
        return self.weights[dim].item() * (a - b) ** 2

    def from_radius(self, radius):
        return radius * radius

    def to_distance(self, value):
        return math.sqrt(value)


class ScalarManhattanDistance(DistanceMetric):
    """L1 distance defined one point at a time."""

    def squared_distance(self, query, index):
        return sum(
            abs(query[dim].item() - self.source.coordinate(index, dim))
            for dim in range(self.dimension)
        )

    def axis_distance(self, a, b, dim):
        return abs(a - b)

    def from_radius(self, radius):
        return radius


class ScalarMetricPointSource(TensorPointSource):
    """Tensor source that measures with `ScalarManhattanDistance`."""

    def distance_metric(self):
        return ScalarManhattanDistance(self, self.points.shape[1])


class FixedPointSource(PointSource):
    """Smallest source implementing only the required operations."""

    def point_count(self):
        return 1

    def coordinate(self, index, dim):
        return 0.0


class WeightedPointSource(TensorPointSource):
    """Tensor source that measures with `WeightedEuclideanDistance`."""

    def __init__(self, points, weights):
        super().__init__(points)
        self.weights = weights

    def distance_metric(self):
        return WeightedEuclideanDistance(
            self, self.points.shape[1], self.weights
        )


class TestSquaredEuclideanDistance:
    """Tests for the default metric."""

    def test_squared_distance(self):
        """Sum of squared differences, no square root."""
        source = TensorPointSource(torch.tensor([[3.0, 4.0]]))
        metric = SquaredEuclideanDistance(source, 2)
        assert metric.squared_distance(torch.zeros(2), 0) == 25.0

    def test_vectorised_distances(self):
        """squared_distances matches per-point evaluation."""
        points = torch.randn(20, 3, dtype=torch.float64)
        metric = SquaredEuclideanDistance(TensorPointSource(points), 3)
        query = torch.randn(3, dtype=torch.float64)

        distances = metric.squared_distances(query, torch.arange(20))

        for i in range(20):
            assert distances[i].item() == pytest.approx(
                metric.squared_distance(query, i)
            )

    def test_radius_conversion(self):
        """Radius is squared going in and rooted coming out."""
        metric = SquaredEuclideanDistance(TensorPointSource(torch.zeros(1, 1)), 1)
        assert metric.from_radius(3.0) == 9.0
        assert metric.to_distance(9.0) == 3.0
        assert metric.axis_distance(1.0, 4.0, 0) == 9.0


class TestManhattanDistance:
    """Tests for the L1 metric."""

    def test_distance(self):
        """Sum of absolute differences."""
        source = TensorPointSource(torch.tensor([[3.0, -4.0]]))
        metric = ManhattanDistance(source, 2)
        assert metric.squared_distance(torch.zeros(2), 0) == 7.0
        assert metric.axis_distance(1.0, -2.0, 1) == 3.0
        assert metric.from_radius(2.0) == 2.0


class TestMinkowskiMetric:
    """Tests for metric selection by p."""

    def test_selects_by_p(self):
        """p=2 is squared Euclidean, p=1 is Manhattan."""
        source = TensorPointSource(torch.zeros(1, 2))
        assert isinstance(minkowski_metric(source, 2), SquaredEuclideanDistance)
        assert isinstance(minkowski_metric(source, 2, p=1), ManhattanDistance)

    def test_rejects_other_p(self):
        """Unsupported p raises InvalidInputError."""
        with pytest.raises(InvalidInputError, match="p must be"):
            minkowski_metric(TensorPointSource(torch.zeros(1, 2)), 2, p=0.5)


class TestBoxDistances:
    """Tests for the lower bound from a query to a box."""

    def test_inside_box_is_zero(self):
        """A query inside the box has zero lower bound."""
        source = TensorPointSource(torch.zeros(1, 2))
        metric = SquaredEuclideanDistance(source, 2)
        box = torch.tensor([[0.0, 2.0], [0.0, 2.0]])

        distances, total = box_distances(box, [1.0, 1.0], metric)

        assert distances == [0.0, 0.0]
        assert total == 0.0

    def test_nearest_face_per_axis(self):
        """Each axis contributes the distance to its nearer face."""
        source = TensorPointSource(torch.zeros(1, 3))
        metric = SquaredEuclideanDistance(source, 3)
        box = torch.tensor([[0.0, 2.0], [0.0, 2.0], [0.0, 2.0]])

        distances, total = box_distances(box, [-1.0, 5.0, 1.0], metric)

        assert distances == [1.0, 9.0, 0.0]
        assert total == 10.0

    def test_bound_never_exceeds_point_distance(self):
        """The box bound is below the distance to every enclosed point."""
        torch.manual_seed(0)
        points = torch.randn(50, 3, dtype=torch.float64)
        source = TensorPointSource(points)
        metric = SquaredEuclideanDistance(source, 3)
        box = bounding_box(source, torch.arange(50), 3)
        query = torch.tensor([4.0, -3.0, 0.5], dtype=torch.float64)

        _, total = box_distances(box, query.tolist(), metric)

        assert total <= metric.squared_distances(query, torch.arange(50)).min()


class TestCustomMetric:
    """Tests for metrics supplied by the point source."""

    def test_source_metric_overrides_default(self):
        """A source's distance_metric replaces the p-norm metric."""
        weights = torch.tensor([1.0, 4.0], dtype=torch.float64)
        source = WeightedPointSource(
            torch.randn(10, 2, dtype=torch.float64), weights
        )
        index = kd_tree(source, p=1.0)
        assert isinstance(index.metric, WeightedEuclideanDistance)

    def test_knn_with_weighted_metric(self):
        """k-NN under a custom metric matches a brute-force scan."""
        torch.manual_seed(3)
        points = torch.randn(300, 2, dtype=torch.float64)
        weights = torch.tensor([1.0, 9.0], dtype=torch.float64)
        index = kd_tree(WeightedPointSource(points, weights), leaf_size=5)
        query = torch.tensor([0.3, -0.2], dtype=torch.float64)

        indices, distances = k_nearest_neighbors(index, query, k=5)

        bf = (weights * (points - query) ** 2).sum(dim=1)
        bf_dists, bf_indices = torch.topk(bf, k=5, largest=False)
        torch.testing.assert_close(distances, bf_dists)
        torch.testing.assert_close(indices, bf_indices)

    def test_radius_with_weighted_metric(self):
        """Radius search under a custom metric matches brute force."""
        torch.manual_seed(4)
        points = torch.randn(300, 2, dtype=torch.float64)
        weights = torch.tensor([1.0, 9.0], dtype=torch.float64)
        index = kd_tree(WeightedPointSource(points, weights), leaf_size=5)

        indices, _ = range_search(
            index, torch.zeros(2, dtype=torch.float64), radius=1.0
        )

        bf = (weights * points**2).sum(dim=1)
        assert sorted(indices.tolist()) == torch.nonzero(
            bf <= 1.0
        ).flatten().tolist()

    def test_scalar_only_metric_drives_queries(self):
        """A metric with only the per-point distance answers k-NN queries."""
        torch.manual_seed(5)
        points = torch.randn(200, 3, dtype=torch.float64)
        index = kd_tree(ScalarMetricPointSource(points), leaf_size=6)
        query = torch.tensor([0.1, -0.4, 0.2], dtype=torch.float64)

        indices, distances = k_nearest_neighbors(index, query, k=3)

        bf = (points - query).abs().sum(dim=1)
        bf_dists, bf_indices = torch.topk(bf, k=3, largest=False)
        torch.testing.assert_close(distances, bf_dists)
        torch.testing.assert_close(indices, bf_indices)

    def test_default_vectorised_distances(self):
        """squared_distances defaults to one squared_distance per point."""
        points = torch.tensor([[0.0, 0.0], [1.0, -2.0], [3.0, 1.0]])
        metric = ScalarManhattanDistance(TensorPointSource(points), 2)

        distances = metric.squared_distances(
            torch.tensor([1.0, 1.0]), torch.tensor([2, 0, 1])
        )

        torch.testing.assert_close(
            distances, torch.tensor([2.0, 2.0, 3.0], dtype=torch.float64)
        )

    def test_metric_requires_core_operations(self):
        """A metric missing axis_distance cannot be instantiated."""

        class DistanceOnly(DistanceMetric):
            def squared_distance(self, query, index):
                return 0.0

        with pytest.raises(TypeError):
            DistanceOnly(TensorPointSource(torch.zeros(1, 2)), 2)


class TestPointSourceDefaults:
    """Tests for the optional PointSource capabilities."""

    def test_defaults_are_absent(self):
        """Optional capabilities default to None."""
        source = FixedPointSource()
        assert source.dimension() is None
        assert source.bounding_box() is None
        assert source.distance_metric() is None

    def test_default_coordinates_gather(self):
        """coordinates defaults to stacking coordinate calls."""
        coordinates = FixedPointSource().coordinates(torch.tensor([0, 0]), 3)
        assert coordinates.shape == (2, 3)
        assert coordinates.dtype == torch.float64

    def test_required_methods_are_abstract(self):
        """A source missing coordinate cannot be instantiated."""

        class CountOnly(PointSource):
            def point_count(self):
                return 0

        with pytest.raises(TypeError):
            CountOnly()
        with pytest.raises(TypeError):
            PointSource()
