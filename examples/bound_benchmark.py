"""Compare the plain and Lagrangian upper plane bounds on generated instances.

Every (n, pct) pair is generated with r=100 and seed n + pct + 101, then
solved once per bound variant in a worker process that is terminated after
the time limit. Results are printed as one table row per solve:

    python examples/bound_benchmark.py --time-limit 150
    python examples/bound_benchmark.py --series 50:25 100:100 --bounds lagrangian
"""

from __future__ import annotations

import argparse
import multiprocessing as mp
import time

from quadknap import BoundStrategy, Problem
from quadknap.harness import generate_instance

DEFAULT_SERIES = ["50:25", "60:25", "100:100", "100:50", "200:100", "100:25"]
R = 100


def _solve(n: int, pct: int, bound: str) -> dict:
    inst = generate_instance(n, R, pct, seed=n + pct + 101)
    start = time.time()
    result = Problem(inst).solve(solver_options={"bound": bound})
    bb = result.raw_result["bb_stats"]
    return {
        "value": result.value,
        "time": time.time() - start,
        "nodes": bb.nodes_explored,
        "root": bb.root_bound,
        "symmetric": bb.symmetric_root_bound,
        "fixed": f"{bb.root_fixed_in}/{bb.root_fixed_out}",
    }


def run(series: list[tuple[int, int]], bounds: list[str], time_limit: float) -> None:
    print(
        f"{'n':>4} {'pct':>4} {'bound':>11} {'value':>9} {'time':>8} "
        f"{'nodes':>9} {'root':>9} {'symmetric':>9} {'in/out':>8}"
    )
    for n, pct in series:
        for bound in bounds:
            with mp.Pool(1) as pool:
                pending = pool.apply_async(_solve, (n, pct, bound))
                try:
                    row = pending.get(timeout=time_limit)
                except mp.TimeoutError:
                    print(f"{n:>4} {pct:>4} {bound:>11} TIMEOUT after {time_limit:.0f}s")
                    continue
            print(
                f"{n:>4} {pct:>4} {bound:>11} {row['value']:>9} {row['time']:>7.1f}s "
                f"{row['nodes']:>9} {row['root']:>9} {row['symmetric']:>9} {row['fixed']:>8}"
            )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--series", nargs="+", default=DEFAULT_SERIES, help="n:pct pairs")
    parser.add_argument(
        "--bounds",
        nargs="+",
        default=[b.value for b in BoundStrategy],
        choices=[b.value for b in BoundStrategy],
    )
    parser.add_argument("--time-limit", type=float, default=150.0)
    args = parser.parse_args()

    series = [tuple(int(part) for part in item.split(":")) for item in args.series]
    run(series, args.bounds, args.time_limit)


if __name__ == "__main__":  # pragma: no cover
    main()
