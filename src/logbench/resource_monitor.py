#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
CPU and memory accounting for a process and its descendants.

Each sampling pass takes one snapshot of the whole process table with
psutil. CPU usage is the difference in cumulative CPU seconds between the
last two snapshots; memory is read from the latest one.
"""

import time
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

import psutil

logger = logging.getLogger(__name__)

_SIZE_UNITS = ["", "KB", "MB", "GB", "TB", "PB", "EB"]


@dataclass(frozen=True)
class ProcessSample:
    """Counters of one process at snapshot time."""
    pid: int
    ppid: int
    cpu_seconds: Optional[float]  # None when access was denied
    rss: int = 0
    text: int = 0
    data: int = 0


@dataclass
class Snapshot:
    taken_at: float
    processes: Dict[int, ProcessSample] = field(default_factory=dict)


def _sample(info: Dict) -> ProcessSample:
    cpu = info.get("cpu_times")
    mem = info.get("memory_info")
    cpu_seconds = None
    if cpu is not None:
        cpu_seconds = (
            cpu.user + cpu.system
            + getattr(cpu, "children_user", 0.0) + getattr(cpu, "children_system", 0.0)
        )
    return ProcessSample(
        pid=info["pid"],
        ppid=info.get("ppid") or 0,
        cpu_seconds=cpu_seconds,
        rss=getattr(mem, "rss", 0),
        text=getattr(mem, "text", 0),
        data=getattr(mem, "data", 0),
    )


def snapshot_processes() -> Snapshot:
    """Sample every process visible to this user."""
    processes = {}
    for proc in psutil.process_iter(["pid", "ppid", "cpu_times", "memory_info"]):
        try:
            sample = _sample(proc.info)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        processes[sample.pid] = sample
    return Snapshot(taken_at=time.monotonic(), processes=processes)


class ProcessTree:
    """Parent/child index over one snapshot."""

    def __init__(self, snapshot: Snapshot):
        self.snapshot = snapshot
        self._children: Dict[int, List[int]] = defaultdict(list)
        for sample in snapshot.processes.values():
            if sample.ppid != sample.pid:
                self._children[sample.ppid].append(sample.pid)

    def children(self, pid: int) -> List[int]:
        return list(self._children.get(pid, []))

    def descendants(self, pid: int) -> List[int]:
        """All descendants of pid, walked without recursion."""
        found = []
        seen = {pid}
        stack = self.children(pid)
        while stack:
            child = stack.pop()
            if child in seen:
                continue
            seen.add(child)
            found.append(child)
            stack.extend(self.children(child))
        return found

    def subtree(self, pid: int, include_children: bool = True) -> List[int]:
        if not include_children:
            return [pid]
        return [pid] + self.descendants(pid)

    def sum_cpu_seconds(self, pids: Iterable[int]) -> float:
        total = 0.0
        for pid in pids:
            sample = self.snapshot.processes.get(pid)
            if sample is not None and sample.cpu_seconds is not None:
                total += sample.cpu_seconds
        return total

    def sum_memory(self, pids: Iterable[int], kind: str = "rss") -> int:
        total = 0
        for pid in pids:
            sample = self.snapshot.processes.get(pid)
            if sample is not None:
                total += getattr(sample, kind)
        return total


def human_size(size: int) -> str:
    """Format a byte count, e.g. 123456 -> '120KB'."""
    unit = 0
    while size > 10000 and unit < len(_SIZE_UNITS) - 1:
        size //= 1024
        unit += 1
    return f"{size}{_SIZE_UNITS[unit]}"


class ProcessMonitor:
    """Tracks resource usage of one process, optionally with its descendants."""

    def __init__(
        self,
        pid: int,
        snapshot: Snapshot,
        include_children: bool = True,
        snapshot_fn: Callable[[], Snapshot] = snapshot_processes,
    ):
        self.pid = pid
        self.include_children = include_children
        self._snapshot_fn = snapshot_fn
        self._prev: Optional[Snapshot] = None
        self._curr = snapshot
        self._tree = ProcessTree(snapshot)

    @classmethod
    def find(
        cls,
        pid: int,
        include_children: bool = True,
        snapshot_fn: Callable[[], Snapshot] = snapshot_processes,
    ) -> "ProcessMonitor":
        """
        Start monitoring an existing process.

        Raises:
            ProcessLookupError: if no process has this pid
            PermissionError: if the process counters cannot be read
        """
        snapshot = snapshot_fn()
        cls._check(pid, snapshot)
        logger.debug(f"Monitoring process {pid} with {len(snapshot.processes)} processes in snapshot")
        return cls(pid, snapshot, include_children=include_children, snapshot_fn=snapshot_fn)

    @staticmethod
    def _check(pid: int, snapshot: Snapshot):
        sample = snapshot.processes.get(pid)
        if sample is None:
            raise ProcessLookupError(f"Process with pid {pid} not found")
        if sample.cpu_seconds is None:
            raise PermissionError(f"Access denied reading counters of process {pid}")

    def update(self):
        """
        Take a new snapshot, keeping the previous one for CPU deltas.

        Raises:
            ProcessLookupError: if the process no longer exists
        """
        snapshot = self._snapshot_fn()
        if self.pid not in snapshot.processes:
            raise ProcessLookupError(f"Process with pid {self.pid} no longer exists")
        self._prev, self._curr = self._curr, snapshot
        self._tree = ProcessTree(snapshot)

    @property
    def pids(self) -> List[int]:
        return self._tree.subtree(self.pid, self.include_children)

    def cpu_percent(self) -> float:
        """Percent of one core used between the last two snapshots."""
        if self._prev is None:
            return 0.0
        elapsed = self._curr.taken_at - self._prev.taken_at
        if elapsed <= 0:
            return 0.0

        used = 0.0
        for pid in self.pids:
            curr = self._curr.processes.get(pid)
            if curr is None or curr.cpu_seconds is None:
                continue
            prev = self._prev.processes.get(pid)
            before = prev.cpu_seconds if prev is not None and prev.cpu_seconds is not None else 0.0
            # A reused pid can report less than before
            used += max(curr.cpu_seconds - before, 0.0)
        return used / elapsed * 100

    def memory(self) -> int:
        """Resident set size in bytes."""
        return self._tree.sum_memory(self.pids, "rss")

    def code_memory(self) -> int:
        return self._tree.sum_memory(self.pids, "text")

    def data_memory(self) -> int:
        return self._tree.sum_memory(self.pids, "data")

    def memory_human(self) -> str:
        return human_size(self.memory())

    def code_memory_human(self) -> str:
        return human_size(self.code_memory())

    def data_memory_human(self) -> str:
        return human_size(self.data_memory())
