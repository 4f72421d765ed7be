#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Benchmark orchestration.

For every configured rate the generators are switched to that rate, given a
ramp-up period, and the monitored process is then sampled at a fixed
frequency. Per-rate averages are printed as a summary table at the end.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import BenchConfig
from .resource_monitor import ProcessMonitor, human_size
from .scheduler import SchedulerGroup

logger = logging.getLogger(__name__)


@dataclass
class RateResult:
    """Samples collected while generating at one rate."""
    rate: float
    lines: int = 0
    elapsed: float = 0.0
    cpu: List[float] = field(default_factory=list)
    memory: List[int] = field(default_factory=list)

    @property
    def samples(self) -> int:
        return len(self.cpu)

    @property
    def average_cpu(self) -> float:
        return sum(self.cpu) / len(self.cpu) if self.cpu else 0.0

    @property
    def average_memory(self) -> int:
        return sum(self.memory) // len(self.memory) if self.memory else 0

    @property
    def max_memory(self) -> int:
        return max(self.memory) if self.memory else 0

    @property
    def achieved_rate(self) -> float:
        """Lines/second actually written across all files."""
        return self.lines / self.elapsed if self.elapsed > 0 else 0.0


class BenchRunner:
    """Drives the generators through the configured rates while sampling a process."""

    def __init__(
        self,
        config: BenchConfig,
        generators: SchedulerGroup,
        pid: Optional[int] = None,
        monitor_factory: Callable[..., ProcessMonitor] = ProcessMonitor.find,
        console: Optional[Console] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            config: Benchmark settings
            generators: Started generators, one per log file
            pid: Process to sample, defaults to config.pid; None only drives load
            monitor_factory: Builds the monitor for a pid
            console: Rich console for progress output
            sleep: Sleep function, replaceable in tests
        """
        self.config = config
        self.generators = generators
        self.pid = pid if pid is not None else config.pid
        self.monitor_factory = monitor_factory
        self.console = console or Console()
        self._sleep = sleep

    def run(self) -> List[RateResult]:
        """Run every rate in order and print the summary."""
        self.console.print(Panel(
            f"Log files: {', '.join(self.config.log_files)}\n"
            f"Rates: {', '.join(f'{rate:g}' for rate in self.config.rates)} lines/s per file\n"
            f"Monitored pid: {self.pid if self.pid is not None else 'none'}",
            title="LogBench",
            border_style="blue",
        ))

        results = []
        for rate in self.config.rates:
            results.append(self.run_rate(rate))
        self.print_summary(results)
        return results

    def run_rate(self, rate: float) -> RateResult:
        """
        Generate at one rate and sample the monitored process.

        Raises:
            ProcessLookupError: if the monitored process disappears
            PermissionError: if its counters cannot be read
        """
        self.console.print(f"\n[bold]Rate {rate:g} lines/s[/bold] ({len(self.generators)} files)")
        self.generators.set_rate(rate)
        self._sleep(self.config.ramp_up)

        result = RateResult(rate=rate)
        monitor = None
        if self.pid is not None:
            monitor = self.monitor_factory(self.pid, include_children=self.config.include_children)
            monitor.update()

        emitted_before = self.generators.emitted
        started = time.monotonic()
        samples = max(int(self.config.duration / self.config.frequency), 1)
        for _ in range(samples):
            self._sleep(self.config.frequency)
            if monitor is None:
                self.console.print(".", end="")
                continue
            monitor.update()
            cpu = monitor.cpu_percent()
            memory = monitor.memory()
            result.cpu.append(cpu)
            result.memory.append(memory)
            self.console.print(f"CPU: {cpu:.1f}% MEM: {human_size(memory)}")

        result.elapsed = time.monotonic() - started
        result.lines = self.generators.emitted - emitted_before
        if monitor is None:
            self.console.print()
        logger.debug(f"Rate {rate:g}: {result.lines} lines in {result.elapsed:.1f}s")
        return result

    def print_summary(self, results: List[RateResult]):
        table = Table(title="Benchmark Summary", show_header=True)
        table.add_column("Rate (lines/s)", justify="right", style="cyan")
        table.add_column("Written (lines/s)", justify="right")
        table.add_column("Avg CPU", justify="right")
        table.add_column("Avg MEM", justify="right")
        table.add_column("Max MEM", justify="right")

        for result in results:
            if result.samples:
                cpu = f"{result.average_cpu:.1f}%"
                avg_mem = human_size(result.average_memory)
                max_mem = human_size(result.max_memory)
            else:
                cpu = avg_mem = max_mem = "-"
            table.add_row(f"{result.rate:g}", f"{result.achieved_rate:.1f}", cpu, avg_mem, max_mem)

        self.console.print(table)
