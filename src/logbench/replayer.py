#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Replay of a recorded log against the wall clock.

Events keep the relative spacing of their original timestamps: the first
timestamped event anchors source time to the current time, every later
event is delayed until its offset from that anchor has elapsed, and its
timestamp is rewritten to the moment it is emitted. Events that are already
late are written immediately.
"""

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import IO, Iterator, Optional, Union

from .pacing import PacedWorker
from .timelayout import CompiledMatcher, compile_matcher

logger = logging.getLogger(__name__)

TIMESTAMP_PLACEHOLDER = "{timestamp}"

# Source bytes that are not valid UTF-8 survive the round trip unchanged
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def _decode(line: Union[bytes, str]) -> str:
    if isinstance(line, bytes):
        return line.decode(_ENCODING, _ERRORS)
    return line


class EventReader:
    """
    Splits a line stream into logical events.

    Without a start pattern every line is an event. With one, an event runs
    from a line matching the pattern up to (not including) the next matching
    line; the very first line always opens an event.
    """

    def __init__(self, source: IO, start_pattern: Optional["re.Pattern"] = None):
        self.source = source
        self.start_pattern = start_pattern

    def __iter__(self) -> Iterator[str]:
        lines = (_decode(line) for line in self.source)
        if self.start_pattern is None:
            yield from lines
            return

        event = None
        for line in lines:
            if event is not None and self.start_pattern.search(line):
                yield event
                event = line
            elif event is None:
                event = line
            else:
                event += line
        if event is not None:
            yield event


def compile_start_pattern(pattern: Optional[str], matcher: Optional[CompiledMatcher] = None) -> Optional["re.Pattern"]:
    """
    Compile a multiline start pattern, substituting {timestamp} with the
    timestamp pattern of `matcher`.

    Raises:
        ValueError: on an invalid pattern, or {timestamp} without a matcher
    """
    if not pattern:
        return None
    if TIMESTAMP_PLACEHOLDER in pattern:
        if matcher is None:
            raise ValueError(f"Multiline start pattern '{pattern}' uses {TIMESTAMP_PLACEHOLDER} without a time layout")
        pattern = pattern.replace(TIMESTAMP_PLACEHOLDER, matcher.pattern)
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid multiline start pattern '{pattern}': {e}") from e


@dataclass(frozen=True)
class ReplayClock:
    """
    Anchors source time to the moment the first timestamped event was seen.

    `wall_anchor` is the monotonic time used for delays, `wall_time` the
    matching local datetime used for rewritten timestamps.
    """
    source_anchor: datetime
    wall_anchor: float
    wall_time: datetime

    @classmethod
    def anchored_at(cls, source_anchor: datetime, now: float) -> "ReplayClock":
        return cls(source_anchor=source_anchor, wall_anchor=now, wall_time=datetime.now().astimezone())

    def delay_for(self, timestamp: datetime, now: float) -> float:
        """Seconds until an event stamped `timestamp` is due, negative if late."""
        source_elapsed = (timestamp - self.source_anchor).total_seconds()
        return source_elapsed - (now - self.wall_anchor)

    def emission_time(self, timestamp: datetime) -> datetime:
        """Wall clock datetime at which an event stamped `timestamp` is due."""
        return self.wall_time + (timestamp - self.source_anchor)


@dataclass
class ReplayStats:
    events: int = 0
    rewritten: int = 0
    parse_errors: int = 0
    unmatched: int = 0


class Replayer(PacedWorker):
    """Replays events from a source stream into a destination."""

    def __init__(
        self,
        source: IO,
        dest,
        time_layout: Optional[str] = None,
        multiline_start: Optional[str] = None,
        rate: float = 0.0,
        seed: Optional[int] = None,
        name: Optional[str] = None,
    ):
        """
        Args:
            source: Readable stream of log lines, binary or text
            dest: Destination accepting bytes through write()
            time_layout: Time layout of the event timestamps, optionally inside
                a boundary pattern; enables rebasing and rewriting
            multiline_start: Regex matching the first line of an event; may
                contain {timestamp} for the timestamp pattern
            rate: Events/second when replaying without a time layout. Starting
                at 0 replays as fast as possible; once a rate is in effect,
                set_rate(0) pauses the replay
            seed: Seed for the inter-arrival random generator
            name: Worker name

        Raises:
            ValueError: on an invalid layout or start pattern
        """
        super().__init__(rate=rate, seed=seed, name=name)
        self.source = source
        self.dest = dest
        self.matcher: Optional[CompiledMatcher] = compile_matcher(time_layout) if time_layout else None
        self.start_pattern = compile_start_pattern(multiline_start, self.matcher)
        self.reader = EventReader(source, self.start_pattern)
        self.clock: Optional[ReplayClock] = None
        self.stats = ReplayStats()
        self._flat_rate = False

    def _on_rate_change(self):
        if self.matcher is None:
            self._flat_rate = True

    def run(self):
        self._flat_rate = self._flat_rate or (self.matcher is None and self._rate > 0)
        events = iter(self.reader)
        while not self._stopping:
            self._wait(0)
            if self._stopping:
                break

            try:
                event = next(events)
            except StopIteration:
                logger.info(f"{self.name} reached end of source after {self.stats.events} events, stopped")
                break
            except OSError as e:
                logger.error(f"{self.name} failed to read source with error: {e}, stopped")
                break

            event = self._pace(event)
            if self._stopping:
                break

            try:
                self.dest.write(event.encode(_ENCODING, _ERRORS))
            except OSError as e:
                logger.error(f"{self.name} failed to write event with error: {e}, stopped, event was:\n'{event}'")
                break
            self.stats.events += 1

    def _pace(self, event: str) -> str:
        """Delay the event as its mode requires and return the text to write."""
        if self.matcher is not None:
            return self._rebase(event)
        if self._flat_rate:
            self._sleep_interarrival()
        return event

    def _rebase(self, event: str) -> str:
        match = self.matcher.search(event)
        if match is None:
            self.stats.unmatched += 1
            return event

        start, end = self.matcher.timestamp_span(match)
        text = event[start:end]
        try:
            timestamp = self.matcher.layout.parse(text)
        except ValueError as e:
            self.stats.parse_errors += 1
            logger.warning(f"Failed to parse timestamp '{text}' with layout '{self.matcher.layout.layout}', error: {e}")
            return event

        now = time.monotonic()
        if self.clock is None:
            self.clock = ReplayClock.anchored_at(timestamp, now)

        delay = self.clock.delay_for(timestamp, now)
        if delay > 0:
            emitted_at = self.clock.emission_time(timestamp)
        else:
            emitted_at = datetime.now().astimezone()
        event = event[:start] + self.matcher.layout.format(emitted_at) + event[end:]
        self.stats.rewritten += 1

        if delay > 0:
            self._sleep(delay)
        return event
