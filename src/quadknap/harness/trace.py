"""
Trace file and series statistics for benchmark runs.

A trace file accumulates one block per series: a header line with the
series parameters, one line per trial and a summary with average time,
average optimal value and control sums of the optimal values and
capacities (modulo 1000), which make two runs easy to compare.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

CONTROL_MODULUS = 1000


@dataclass
class TrialRecord:
    trial: int
    capacity: int
    value: int
    time: float


@dataclass
class SeriesStats:
    """Aggregate of the trials of one series (n, r, pct)."""

    n: int
    r: int
    pct: int
    trials: List[TrialRecord] = field(default_factory=list)
    total_time: float = 0.0
    ztot: int = 0
    zsum: int = 0
    csum: int = 0

    def add(self, record: TrialRecord) -> None:
        self.trials.append(record)
        self.total_time += record.time
        self.ztot += record.value
        self.zsum = (self.zsum + record.value) % CONTROL_MODULUS
        self.csum = (self.csum + record.capacity) % CONTROL_MODULUS

    @property
    def count(self) -> int:
        return len(self.trials)

    @property
    def average_time(self) -> float:
        return self.total_time / self.count if self.trials else 0.0

    @property
    def average_value(self) -> float:
        return self.ztot / self.count if self.trials else 0.0

    def summary_lines(self) -> List[str]:
        return [
            f"n          = {self.n}",
            f"r          = {self.r}",
            f"pct        = {self.pct}",
            f"time       = {self.average_time:.2f}",
            f"ztot       = {self.average_value:.1f}",
            f"zsum       = {self.zsum}",
            f"csum       = {self.csum}",
        ]


class TraceSink:
    """Append-only trace file writer. A sink without a path only logs."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else None

    def _write(self, lines: List[str]) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as out:
            for line in lines:
                out.write(line + "\n")

    def begin_series(self, n: int, r: int, pct: int) -> None:
        self._write(["", f"QUADKNAP: n: {n}, r: {r}, pct: {pct}"])

    def record_trial(self, record: TrialRecord) -> None:
        line = f"{record.trial}: c {record.capacity} z {record.value} time {record.time:.2f}"
        logger.info(line)
        self._write([line])

    def end_series(self, stats: SeriesStats) -> None:
        lines = stats.summary_lines()
        for line in lines:
            logger.info(line)
        self._write(lines)
