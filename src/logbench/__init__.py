#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
LogBench - log traffic generation for benchmarking log collection agents.

This package writes synthetic log lines at controlled rates, replays
recorded logs against the wall clock, and samples the resource usage of
the agent consuming them.
"""

__version__ = "0.1.0"
__all__ = [
    "TimeLayout",
    "compile_matcher",
    "regex_from_layout",
    "LineSource",
    "RateScheduler",
    "SchedulerGroup",
    "Replayer",
    "RotatingWriter",
    "RotationConfig",
    "ProcessMonitor",
    "BenchConfig",
    "ReplayConfig",
    "parse_number",
]

from .timelayout import TimeLayout, compile_matcher, regex_from_layout
from .rotator import RotatingWriter, RotationConfig
from .config import BenchConfig, ReplayConfig
from .scheduler import LineSource, RateScheduler, SchedulerGroup
from .replayer import Replayer
from .resource_monitor import ProcessMonitor
from .units import parse_number
