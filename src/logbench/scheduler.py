#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Rate-controlled log line generation.

A RateScheduler writes timestamped lines to one destination following a
Poisson arrival process. A single wake-up writes every line whose virtual
emission time has already passed, so sustained rates are not bounded by
timer resolution.
"""

import itertools
import logging
import time
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from .config import DEFAULT_TIME_LAYOUT
from .pacing import PacedWorker
from .timelayout import TimeLayout

logger = logging.getLogger(__name__)


class LineSource:
    """Immutable, non-empty sequence of line contents, cycled in order."""

    def __init__(self, lines: Sequence[str]):
        if not lines:
            raise ValueError("Line source must contain at least one line")
        self._lines = tuple(lines)

    @classmethod
    def fixed(cls, line: str) -> "LineSource":
        """A single line repeated on every emission."""
        return cls([line])

    @classmethod
    def from_file(cls, path: str) -> "LineSource":
        """
        Load the lines of a file, line terminators stripped.

        Raises:
            OSError: if the file cannot be read
            ValueError: if the file holds no lines
        """
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            lines = [line.rstrip("\r\n") for line in f]
        if not lines:
            raise ValueError(f"No lines found in {path}")
        logger.debug(f"Loaded {len(lines)} lines from {path}")
        return cls(lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __getitem__(self, index: int) -> str:
        return self._lines[index]

    def cycle(self) -> Iterator[str]:
        return itertools.cycle(self._lines)


class RateScheduler(PacedWorker):
    """Writes '<timestamp> <line>' records to a destination at a Poisson rate."""

    def __init__(
        self,
        dest,
        lines: LineSource,
        rate: float = 0.0,
        time_layout: Union[str, TimeLayout] = DEFAULT_TIME_LAYOUT,
        seed: Optional[int] = None,
        name: Optional[str] = None,
    ):
        """
        Args:
            dest: Destination accepting bytes through write()
            lines: Line contents to cycle through
            rate: Initial rate in lines/second, 0 starts paused
            time_layout: Layout of the timestamp prefix
            seed: Seed for the inter-arrival random generator
            name: Worker name
        """
        super().__init__(rate=rate, seed=seed, name=name)
        self.dest = dest
        self.lines = lines
        self.layout = time_layout if isinstance(time_layout, TimeLayout) else TimeLayout(time_layout)
        self.emitted = 0

        self._line_iter = lines.cycle()
        self._next_at = 0.0

    @classmethod
    def from_file(cls, path: str, dest, **kwargs) -> "RateScheduler":
        """Scheduler cycling through the lines of a file."""
        return cls(dest, LineSource.from_file(path), **kwargs)

    def run(self):
        self._next_at = time.monotonic()
        timeout: Optional[float] = 0.0
        try:
            while not self._stopping:
                self._wait(timeout)
                if self._stopping:
                    break
                timeout = self._emit_due(time.monotonic())
        except OSError as e:
            logger.error(f"Failed to write to {self.dest!r} with error: {e}, {self.name} stopped")
            return
        logger.debug(f"{self.name} stopped after {self.emitted} lines")

    def _on_rate_change(self):
        # Backlog accumulated under the previous rate is dropped
        self._next_at = time.monotonic()

    def _emit_due(self, now: float) -> Optional[float]:
        """
        Write every line due at or before `now`.

        Returns:
            Seconds until the next line is due, or None while paused
        """
        if self._rate <= 0:
            return None
        while self._next_at <= now:
            self._write_line()
            self._next_at += self._next_delay()
        return self._next_at - now

    def _write_line(self):
        stamp = self.layout.format(datetime.now().astimezone())
        record = f"{stamp} {next(self._line_iter)}\n"
        self.dest.write(record.encode("utf-8"))
        self.emitted += 1


class SchedulerGroup:
    """Schedulers driven together, one per destination."""

    def __init__(self, schedulers: Iterable[PacedWorker]):
        self.schedulers: List[PacedWorker] = list(schedulers)

    @classmethod
    def fixed(cls, line: str, dests: Iterable, **kwargs) -> "SchedulerGroup":
        """One scheduler per destination, all repeating the same line."""
        source = LineSource.fixed(line)
        return cls(RateScheduler(dest, source, **kwargs) for dest in dests)

    def __iter__(self):
        return iter(self.schedulers)

    def __len__(self) -> int:
        return len(self.schedulers)

    @property
    def emitted(self) -> int:
        return sum(getattr(scheduler, "emitted", 0) for scheduler in self.schedulers)

    def start(self):
        for scheduler in self.schedulers:
            scheduler.start()

    def set_rate(self, rate: float):
        for scheduler in self.schedulers:
            scheduler.set_rate(rate)

    def stop(self, timeout: Optional[float] = None):
        for scheduler in self.schedulers:
            scheduler.stop(timeout)
