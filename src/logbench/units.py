#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Parsing of human-readable rates, sizes and durations.
"""

import re
from typing import Iterable, List

from .pacing import validate_rate

_MULTIPLIERS = {
    "k": 1000.0,
    "m": 1000.0 * 1000,
    "g": 1000.0 * 1000 * 1000,
}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_number(value: str) -> float:
    """
    Parse a number with an optional magnitude suffix.

    Args:
        value: e.g. "100", "1.5k", "10m", "2g"; empty means 0

    Returns:
        The number with the suffix applied (k=10^3, m=10^6, g=10^9)

    Raises:
        ValueError: on an invalid number or an unsupported suffix
    """
    text = value.strip().lower()
    if not text:
        return 0.0

    unit = text[-1]
    if not unit.isdigit():
        text = text[:-1]

    try:
        number = float(text)
    except ValueError:
        raise ValueError(f"Invalid rate value {text}") from None

    if unit.isdigit():
        return number
    if unit not in _MULTIPLIERS:
        raise ValueError(f"Unsupported unit '{unit}' for rate")
    return number * _MULTIPLIERS[unit]


def parse_rates(values: Iterable[str]) -> List[float]:
    """
    Parse rate arguments, each possibly a comma separated list.

    Raises:
        ValueError: on an unparseable or negative rate
    """
    rates = []
    for value in values:
        for item in value.split(","):
            if item.strip():
                rates.append(validate_rate(parse_number(item)))
    return rates


def parse_size(value: str) -> int:
    """Byte size with the same suffixes as rates, e.g. "10m"."""
    size = int(parse_number(value))
    if size < 0:
        raise ValueError(f"Size must not be negative, got {value}")
    return size


def parse_duration(value: str) -> float:
    """
    Parse a duration into seconds.

    Accepts Go style durations ("300ms", "1m30s", "1.5h") or a bare number
    of seconds.

    Raises:
        ValueError: if the duration cannot be parsed
    """
    text = value.strip()
    if not text:
        raise ValueError("Empty duration")

    try:
        return float(text)
    except ValueError:
        pass

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"Invalid duration '{value}'")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0:
        raise ValueError(f"Invalid duration '{value}'")
    return sign * total
