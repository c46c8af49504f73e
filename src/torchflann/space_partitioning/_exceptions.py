"""Space partitioning module exceptions."""


class SpacePartitioningError(Exception):
    """Base exception for spatial index operations."""

    pass


class InvalidInputError(SpacePartitioningError, ValueError):
    """Caller supplied an argument outside the index contract.

    Raised for an empty dataset, non-positive dimension or leaf size,
    non-positive k, negative radius or eps, and query points whose
    dimension does not match the index.
    """

    pass


class NotBuiltError(SpacePartitioningError, RuntimeError):
    """Query attempted on an index whose build has not completed."""

    pass
