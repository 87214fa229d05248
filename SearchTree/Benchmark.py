"""Insert / delete throughput of the unbalanced and the AVL tree.

Run with something like:

    python -m SearchTree.Benchmark --sizes 100 1000 10000 --seed 7

For every size a fresh key set is drawn, then each kind of tree gets a fresh
instance, a timed bulk insert of the whole set and a timed bulk delete of the
same set. Times are reported in milliseconds per size.
"""

import argparse
import logging
import time

import numpy as np

from SearchTree.config import (
    BENCHMARK_SIZES,
    DEFAULT_SEED,
    KEY_RANGE_FACTOR,
    LOGGING_CONFIG,
    OPERATIONS,
    TREE_KINDS,
)
from SearchTree.TreeArray import BalancedTree, OrderedTree, fill_tree, remove_tree, warmup

logger = logging.getLogger(__name__)

_CONSTRUCTORS = {
    "ordered": OrderedTree,
    "balanced": BalancedTree,
}


def generate_keys(size, rng, range_factor=KEY_RANGE_FACTOR):
    """Draw `size` int64 keys from [0, size * range_factor). Duplicates are kept."""
    if size < 0:
        raise ValueError(f"size must not be negative, got {size}")
    high = max(size * range_factor, 1)
    return rng.integers(0, high, size=size, dtype=np.int64)


def time_bulk(operation, tree, keys):
    start = time.perf_counter()
    operation(tree, keys)
    return time.perf_counter() - start


def run_trial(size, rng, range_factor=KEY_RANGE_FACTOR):
    """Time bulk insert then bulk delete of one key set on a fresh tree of each kind.

    Returns {kind: {"insert": seconds, "delete": seconds}}.
    """
    keys = generate_keys(size, rng, range_factor)
    trial = {}

    for kind in TREE_KINDS:
        tree = _CONSTRUCTORS[kind](keys.size)

        insert_time = time_bulk(fill_tree, tree, keys)
        height = tree.height
        distinct = tree.count
        delete_time = time_bulk(remove_tree, tree, keys)

        if tree.count != 0:
            raise RuntimeError(
                f"{kind} tree still holds {tree.count} keys after deleting every inserted key"
            )

        logger.debug(
            "size=%d kind=%s distinct=%d height=%d insert=%.6fs delete=%.6fs",
            size, kind, distinct, height, insert_time, delete_time,
        )
        trial[kind] = {"insert": insert_time, "delete": delete_time}

    return trial


def run_benchmark(sizes=BENCHMARK_SIZES, seed=DEFAULT_SEED, range_factor=KEY_RANGE_FACTOR):
    """Run one trial per size and collect millisecond timings.

    Returns {kind: {"insert": [ms, ...], "delete": [ms, ...]}} with one entry per size,
    in the order of `sizes`.
    """
    logger.info("Compiling tree operations")
    warmup()

    rng = np.random.default_rng(seed)
    results = {kind: {op: [] for op in OPERATIONS} for kind in TREE_KINDS}

    for size in sizes:
        logger.info("Running trial with %d keys", size)
        trial = run_trial(size, rng, range_factor)
        for kind, timings in trial.items():
            for op, seconds in timings.items():
                results[kind][op].append(seconds * 1000.0)

    return results


def format_results(sizes, results):
    lines = [f"Sizes: {list(sizes)}"]
    for kind, timings in results.items():
        formatted = {op: [round(ms, 3) for ms in values] for op, values in timings.items()}
        lines.append(f"{kind} times (ms): {formatted}")
    return "\n".join(lines)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--sizes", type=int, nargs="+", default=list(BENCHMARK_SIZES),
                        help="key set sizes, one trial each")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED,
                        help="seed for the key generator (random when omitted)")
    parser.add_argument("--range-factor", type=int, default=KEY_RANGE_FACTOR,
                        help="keys are drawn from [0, size * range-factor)")
    parser.add_argument("--log-level", default=LOGGING_CONFIG["level"],
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    if any(size < 0 for size in args.sizes):
        parser.error("--sizes must not be negative")
    if args.range_factor < 1:
        parser.error("--range-factor must be at least 1")

    return args


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(**{**LOGGING_CONFIG, "level": args.log_level})

    results = run_benchmark(args.sizes, args.seed, args.range_factor)
    print(format_results(args.sizes, results))
    return results


if __name__ == "__main__":  # pragma: no cover
    main()
