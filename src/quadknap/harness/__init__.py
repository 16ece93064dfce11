"""
Benchmark harness: instance generation, verification, trace output and the
command-line driver. None of it feeds back into the solver.
"""

from .generator import generate_instance, series_seed
from .runner import run_series
from .trace import SeriesStats, TraceSink, TrialRecord
from .verify import verify_solution

__all__ = [
    "SeriesStats",
    "TraceSink",
    "TrialRecord",
    "generate_instance",
    "run_series",
    "series_seed",
    "verify_solution",
]
