"""torchflann: static k-d tree nearest-neighbor search on PyTorch tensors."""

from . import space_partitioning

__all__ = [
    "space_partitioning",
]

__version__ = "0.1.0"
