"""Test fixtures for space_partitioning tests."""

import pytest
import torch


def brute_force_squared_distances(
    points: torch.Tensor, query: torch.Tensor
) -> torch.Tensor:
    """Squared Euclidean distance from `query` to every row of `points`."""
    return ((points - query) ** 2).sum(dim=-1)


@pytest.fixture
def brute_force():
    """Fixture: exhaustive squared-distance scan used as ground truth."""
    return brute_force_squared_distances


@pytest.fixture
def axis_points():
    """Fixture: origin plus one point 10 units along each axis.

    Identifiers: 0 = (0, 0, 0), 1 = (10, 0, 0), 2 = (0, 10, 0),
    3 = (0, 0, 10).
    """
    return torch.tensor(
        [
            [0.0, 0.0, 0.0],
            [10.0, 0.0, 0.0],
            [0.0, 10.0, 0.0],
            [0.0, 0.0, 10.0],
        ],
        dtype=torch.float64,
    )


@pytest.fixture
def random_cloud():
    """Fixture: 500 points in [0, 10)^3 quantised to 1000 levels per axis."""
    generator = torch.Generator().manual_seed(0)
    levels = torch.randint(0, 1000, (500, 3), generator=generator)
    return levels.to(torch.float64) * 10.0 / 1000.0


@pytest.fixture
def duplicate_cloud():
    """Fixture: 300 points sharing 2 distinct locations (200 coincident)."""
    locations = torch.tensor(
        [[1.0, 1.0], [1.0, 1.0], [5.0, 1.0]], dtype=torch.float64
    )
    return locations.repeat(100, 1)
