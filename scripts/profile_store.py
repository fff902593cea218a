#!/usr/bin/env python3
"""Profile world growth and the spatial index.

Usage (from the repo root):
    python scripts/profile_store.py profile                    # cProfile top 30 functions
    python scripts/profile_store.py profile --triangles 2000 --seed 7
    python scripts/profile_store.py time-growth --iterations 5 # median growth time
    python scripts/profile_store.py bench-index --points 50000 # insert / radius query timing
    python scripts/profile_store.py dump-json --triangles 20   # print a grown world snapshot
"""

import argparse
import cProfile
import json
import logging
import pstats
import random
import statistics
import sys
import time
from pathlib import Path

# Add the repo root to path so we can import trimap
SCRIPT_DIR = Path(__file__).resolve().parent
ROOT_DIR = SCRIPT_DIR.parent
sys.path.insert(0, str(ROOT_DIR))

from trimap.config import MapConfig  # noqa: E402
from trimap.generate import grow_world  # noqa: E402
from trimap.spatial_index import SpatialIndex  # noqa: E402
from trimap.world import TriangleWorld  # noqa: E402


def _grow(args):
    config = MapConfig(adjacency_policy=args.policy)
    world = TriangleWorld(config)
    result = grow_world(world, args.triangles, seed=args.seed)
    return world, result


def cmd_profile(args):
    """Run cProfile on seeded world growth."""
    top_n = args.top or 30

    print(f"Profiling: {args.triangles} triangles (seed {args.seed})...")
    profiler = cProfile.Profile()
    profiler.enable()
    _, result = _grow(args)
    profiler.disable()

    print(f"\n{'=' * 70}")
    print(f"Top {top_n} functions by cumulative time")
    print(f"Placed {result.placed} in {result.attempts} attempts")
    print(f"{'=' * 70}\n")

    stats = pstats.Stats(profiler)
    stats.sort_stats("cumulative")
    stats.print_stats(top_n)

    if args.output:
        profiler.dump_stats(args.output)
        print(f"\nProfile data written to {args.output}")
        print("Visualize with: snakeviz " + args.output)


def cmd_time_growth(args):
    """Median wall time of growing a world."""
    iterations = args.iterations or 3
    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        world, _ = _grow(args)
        times.append((time.perf_counter() - start) * 1000)
    median = statistics.median(times)
    per_tri = median / max(len(world), 1)
    print(f"{'Triangles':<12} {'Median (ms)':>12} {'ms/triangle':>12}")
    print("-" * 38)
    print(f"{len(world):<12} {median:>12.1f} {per_tri:>12.3f}")
    print(f"\n({iterations} iterations, median reported)")


def cmd_bench_index(args):
    """Time spatial index inserts and radius queries on random points."""
    rng = random.Random(args.seed)
    extent = 1000.0
    points = [
        (rng.uniform(-extent / 2, extent / 2), rng.uniform(-extent / 2, extent / 2))
        for _ in range(args.points)
    ]
    index = SpatialIndex(extent=extent)

    start = time.perf_counter()
    inserted = sum(1 for i, p in enumerate(points) if index.insert(str(i), p))
    insert_ms = (time.perf_counter() - start) * 1000

    queries = points[: args.queries]
    found = 0
    start = time.perf_counter()
    for p in queries:
        found += len(index.find_nearby(p, args.radius))
    query_ms = (time.perf_counter() - start) * 1000

    print(f"Inserted {inserted}/{len(points)} points in {insert_ms:.1f} ms")
    print(f"Tree depth: {index.depth()}")
    print(
        f"{len(queries)} queries (radius {args.radius}) in {query_ms:.1f} ms, "
        f"{found / max(len(queries), 1):.1f} hits avg"
    )


def cmd_dump_json(args):
    """Print a grown world's snapshot as JSON."""
    world, _ = _grow(args)
    print(json.dumps(world.export(), indent=2))


def main():
    parser = argparse.ArgumentParser(
        description="Profile triangle world performance"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command")

    # Common args added to each growth subparser
    def add_growth(p):
        p.add_argument(
            "--triangles",
            type=int,
            default=500,
            help="Triangles to grow (default: 500)",
        )
        p.add_argument("--seed", type=int, default=42, help="PRNG seed")
        p.add_argument(
            "--policy",
            default="shared_corners",
            choices=["shared_corners", "any_matching_corner"],
            help="Adjacency policy",
        )

    p_profile = sub.add_parser("profile", help="cProfile world growth")
    add_growth(p_profile)
    p_profile.add_argument(
        "--top", type=int, help="Number of top functions to show (default: 30)"
    )
    p_profile.add_argument(
        "--output", "-o", help="Write cProfile binary data to file"
    )

    p_time = sub.add_parser("time-growth", help="Time world growth")
    add_growth(p_time)
    p_time.add_argument(
        "--iterations", type=int, help="Iterations (default: 3)"
    )

    p_bench = sub.add_parser("bench-index", help="Benchmark the spatial index")
    p_bench.add_argument("--points", type=int, default=10000)
    p_bench.add_argument("--queries", type=int, default=1000)
    p_bench.add_argument("--radius", type=float, default=5.0)
    p_bench.add_argument("--seed", type=int, default=1234)

    p_dump = sub.add_parser("dump-json", help="Print a grown world as JSON")
    add_growth(p_dump)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "profile":
        cmd_profile(args)
    elif args.command == "time-growth":
        cmd_time_growth(args)
    elif args.command == "bench-index":
        cmd_bench_index(args)
    elif args.command == "dump-json":
        cmd_dump_json(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
