"""
Command-line benchmark driver.

Usage:
  quadknap N R PCT [--trials 10] [--trace trace.txt] [--solver BnB]

Runs a series of generated instances, verifies every solution and appends
the results to the trace file. Exits with status 1 and a
"PROGRAM IS TERMINATED" message on invalid parameters or failed checks.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from ..constants import DEFAULT_MAX_ITEMS, Solver
from ..errors import VerificationError
from .runner import DEFAULT_TRIALS, run_series
from .trace import TraceSink

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def configure_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    console_output: bool = True,
) -> logging.Logger:
    """Attach console and optional file handlers to the package logger."""
    package_logger = logging.getLogger("quadknap")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    package_logger.propagate = False
    return package_logger


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="quadknap",
        description="Generate, solve and verify series of Quadratic Knapsack instances.",
    )
    p.add_argument("n", type=int, help="Number of items")
    p.add_argument("r", type=int, help="Range of coefficients")
    p.add_argument("pct", type=int, help="Density of the profit matrix in percent")
    p.add_argument("--trials", type=int, default=DEFAULT_TRIALS, help="Instances per series")
    p.add_argument("--trace", type=Path, default=Path("trace.txt"), help="Trace file (appended)")
    p.add_argument(
        "--solver",
        choices=[s.value for s in Solver],
        default=Solver.BNB.value,
        help="Solver backend",
    )
    p.add_argument("--max-items", type=int, default=DEFAULT_MAX_ITEMS, help="Largest accepted n")
    p.add_argument("--verbose", action="store_true", help="Log solver progress")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    return p.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(log_file=args.log_file)

    solver_options = {"verbose": True} if args.verbose else {}
    try:
        run_series(
            args.n,
            args.r,
            args.pct,
            trials=args.trials,
            solver=args.solver,
            solver_options=solver_options,
            trace=TraceSink(args.trace),
            max_items=args.max_items,
        )
    except (ValueError, VerificationError) as exc:
        logger.error(str(exc))
        print(exc)
        print("PROGRAM IS TERMINATED !!!")
        return 1
    return 0
