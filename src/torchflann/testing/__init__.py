"""Testing helpers for spatial index tests."""

from . import strategies

__all__ = [
    "strategies",
]
