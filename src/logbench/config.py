#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Configuration defaults and run configurations for benchmarks and replays.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .replayer import compile_start_pattern
from .rotator import RotationConfig
from .timelayout import compile_matcher

# Line written by the generator when no line or line file is given
FIXED_LOG_LINE = (
    "INFO CloudWatchOutput      Amazon::Monitoring::CloudWatchOutput::new - "
    "CloudWatchOutput sender=data/cloudwatch/current "
    "endpoint=https://monitoring.us-east-1.amazonaws.com maxBytes=76800"
)

# Go reference layout for "Jan  2 15:04:05.000000000"
DEFAULT_TIME_LAYOUT = "Jan _2 15:04:05.000000000"

# lines/second per generated log file
DEFAULT_RATE = 100.0

# Seconds given to the subject process to exit after SIGINT
DEFAULT_STOP_GRACE = 5.0


@dataclass
class BenchConfig:
    """Settings of one benchmark run."""
    log_files: List[str]
    rates: List[float] = field(default_factory=lambda: [DEFAULT_RATE])
    pid: Optional[int] = None
    pipe_output: bool = False
    time_layout: str = DEFAULT_TIME_LAYOUT
    line: str = FIXED_LOG_LINE
    line_file: Optional[str] = None
    duration: float = 10.0  # seconds sampled per rate
    ramp_up: float = 1.0  # seconds before sampling starts
    frequency: float = 1.0  # seconds between samples
    rotation: RotationConfig = field(default_factory=RotationConfig)
    command: List[str] = field(default_factory=list)
    include_children: bool = True
    seed: Optional[int] = None

    def validate(self):
        """
        Check the configuration before any worker starts.

        Raises:
            ValueError: on the first invalid setting
        """
        if not self.log_files:
            raise ValueError("At least one log file is required")
        if not self.rates:
            raise ValueError("At least one rate is required")
        for rate in self.rates:
            if rate < 0:
                raise ValueError(f"Rate must not be negative, got {rate}")
        if self.duration <= 0:
            raise ValueError(f"Test duration must be positive, got {self.duration}")
        if self.ramp_up < 0:
            raise ValueError(f"Ramp up time must not be negative, got {self.ramp_up}")
        if self.frequency <= 0:
            raise ValueError(f"Sampling frequency must be positive, got {self.frequency}")
        if self.pid is not None and self.command:
            raise ValueError("Pass either a pid or a command to run, not both")
        if not self.time_layout:
            raise ValueError("Time layout must not be empty")
        self.rotation.validate()


@dataclass
class ReplayConfig:
    """Settings of one replay run."""
    source: str
    destinations: List[str] = field(default_factory=list)
    time_layout: Optional[str] = None
    multiline_start: Optional[str] = None
    rate: float = 0.0
    rotation: RotationConfig = field(default_factory=RotationConfig)
    seed: Optional[int] = None

    @property
    def from_stdin(self) -> bool:
        return self.source == "-"

    def validate(self):
        """
        Check the configuration before any source or destination is opened.

        Raises:
            ValueError: on the first invalid setting, including a time layout
                or multiline start pattern that does not compile
        """
        if not self.source:
            raise ValueError("A replay source is required")
        if self.rate < 0:
            raise ValueError(f"Rate must not be negative, got {self.rate}")
        if self.from_stdin and len(self.destinations) > 1:
            raise ValueError("Standard input can only be replayed to a single destination")
        matcher = compile_matcher(self.time_layout) if self.time_layout else None
        compile_start_pattern(self.multiline_start, matcher)
        self.rotation.validate()
