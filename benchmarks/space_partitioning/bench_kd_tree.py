"""Benchmark k-d tree construction and 1-NN lookup.

Builds an index over a random 3D point cloud for increasing sizes and times
the build and a single nearest-neighbor query per point of a second cloud.
Prints build seconds and mean per-query seconds for each size.
"""

import argparse
import time

import torch

from torchflann.space_partitioning import k_nearest_neighbors, kd_tree


def random_point_cloud(
    n: int, max_range: float = 10.0, generator: torch.Generator = None
) -> torch.Tensor:
    """Points in [0, max_range)^3 quantised to 1000 levels per axis."""
    levels = torch.randint(0, 1000, (n, 3), generator=generator)
    return max_range * levels.to(torch.float32) / 1000.0


def benchmark_kd_tree(
    n: int, leaf_size: int = 10, generator: torch.Generator = None
) -> tuple[float, float]:
    """Time one build and n single-point queries.

    Parameters
    ----------
    n : int
        Number of points in each cloud.
    leaf_size : int
        Maximum points per leaf.
    generator : torch.Generator, optional
        Source of randomness for the clouds.

    Returns
    -------
    tuple[float, float]
        Build time in seconds and mean query time in seconds.
    """
    source = random_point_cloud(n, generator=generator)
    targets = random_point_cloud(n, generator=generator)

    start = time.perf_counter()
    index = kd_tree(source, leaf_size=leaf_size)
    build_time = time.perf_counter() - start

    query_time = 0.0
    for query in targets:
        start = time.perf_counter()
        k_nearest_neighbors(index, query, k=1)
        query_time += time.perf_counter() - start

    return build_time, query_time / n


def main():
    """Run the benchmark over increasing dataset sizes."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=[1000, 5000, 10000, 50000],
    )
    parser.add_argument("--repetitions", type=int, default=1)
    parser.add_argument("--leaf-size", type=int, default=10)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    generator = torch.Generator()
    if args.seed is None:
        generator.seed()
    else:
        generator.manual_seed(args.seed)

    build_times = []
    query_times = []
    for n in args.sizes:
        build_total = 0.0
        query_total = 0.0
        for _ in range(args.repetitions):
            build_time, query_time = benchmark_kd_tree(
                n, args.leaf_size, generator
            )
            build_total += build_time
            query_total += query_time
        build_times.append(build_total / args.repetitions)
        query_times.append(query_total / args.repetitions)

    print(" ".join(f"{t:g}" for t in build_times))
    print(" ".join(f"{t:g}" for t in query_times))


if __name__ == "__main__":
    main()
