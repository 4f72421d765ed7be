#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Background pacing worker shared by the rate scheduler and the replayer.

Every worker owns one thread. Rate changes and stop requests reach that
thread through a single-slot queue, and the caller blocks until the thread
has applied the request, so the worker's own loop is the only code that
ever touches its rate or clock.
"""

import math
import queue
import random
import logging
import threading
import time
from typing import Optional

logger = logging.getLogger(__name__)

SET_RATE = "set_rate"
STOP = "stop"

# How often a blocked sender re-checks that the worker is still alive
_HANDSHAKE_POLL = 0.1


def validate_rate(rate) -> float:
    """
    Check an events/second rate.

    Raises:
        ValueError: if the rate is negative or not a number
    """
    value = float(rate)
    if math.isnan(value) or value < 0:
        raise ValueError(f"Rate must be a non-negative number, got {rate}")
    return value


class PacedWorker:
    """Base class for a rate-controlled emission loop running on its own thread."""

    def __init__(self, rate: float = 0.0, seed: Optional[int] = None, name: Optional[str] = None):
        """
        Args:
            rate: Initial rate in events/second, 0 pauses emission
            seed: Seed for the inter-arrival random generator
            name: Thread name, also used in log messages
        """
        self._rate = validate_rate(rate)
        self._random = random.Random(seed)
        self.name = name or f"{type(self).__name__}-{id(self):x}"

        self._control: "queue.Queue" = queue.Queue(maxsize=1)
        self._handshake = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._finished = threading.Event()
        self._stopping = False

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._finished.is_set()

    def start(self):
        """Start the worker thread."""
        if self._thread is not None or self._finished.is_set():
            raise RuntimeError(f"{self.name} can only be started once")
        self._thread = threading.Thread(target=self._run_worker, daemon=True, name=self.name)
        self._thread.start()

    def set_rate(self, rate: float):
        """
        Change the rate; takes effect before this call returns.

        Raises:
            ValueError: if the rate is negative
        """
        rate = validate_rate(rate)
        if self._thread is None:
            self._rate = rate
            return
        if not self._send(SET_RATE, rate):
            logger.warning(f"{self.name} is not running, rate {rate} not applied")

    def stop(self, timeout: Optional[float] = None):
        """
        Stop the worker. Stopping is terminal.

        Args:
            timeout: Seconds to wait for the worker to acknowledge, None waits forever
        """
        if self._thread is None:
            self._stopping = True
            self._finished.set()
            return
        if self._send(STOP, None, timeout):
            self._thread.join(timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker to finish. Returns True once it has."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self._finished.is_set()

    def run(self):
        """The emission loop, executed on the worker thread."""
        raise NotImplementedError

    def _send(self, kind: str, value, timeout: Optional[float] = None) -> bool:
        with self._handshake:
            if self._finished.is_set():
                return False

            applied = threading.Event()
            try:
                self._control.put((kind, value, applied), timeout=timeout)
            except queue.Full:
                logger.warning(f"{self.name} did not accept '{kind}' within {timeout}s")
                return False

            deadline = None if timeout is None else time.monotonic() + timeout
            while not applied.wait(_HANDSHAKE_POLL):
                if self._finished.is_set():
                    return applied.is_set()
                if deadline is not None and time.monotonic() >= deadline:
                    logger.warning(f"{self.name} did not apply '{kind}' within {timeout}s")
                    return False
            return True

    def _run_worker(self):
        try:
            self.run()
        except Exception as e:
            logger.error(f"{self.name} stopped on unexpected error: {e}", exc_info=True)
        finally:
            self._drop_pending()
            self._finished.set()

    def _drop_pending(self):
        while True:
            try:
                self._control.get_nowait()
            except queue.Empty:
                return

    def _wait(self, timeout: Optional[float]) -> Optional[str]:
        """
        Block until a control message arrives or the timeout elapses.

        Args:
            timeout: Seconds to wait; 0 only polls, None or infinity waits
                for the next control message

        Returns:
            The kind of control message applied, or None on timeout
        """
        try:
            if timeout is not None and timeout <= 0:
                kind, value, applied = self._control.get_nowait()
            else:
                if timeout is not None and timeout > threading.TIMEOUT_MAX:
                    timeout = None
                kind, value, applied = self._control.get(timeout=timeout)
        except queue.Empty:
            return None

        if kind == SET_RATE:
            self._rate = value
            self._on_rate_change()
            logger.debug(f"{self.name} rate set to {value}")
        else:
            self._stopping = True
        applied.set()
        return kind

    def _sleep(self, seconds: float):
        """Sleep while still serving control messages; returns early on stop."""
        deadline = time.monotonic() + seconds
        while not self._stopping:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            self._wait(remaining)

    def _sleep_interarrival(self):
        """
        Sleep one exponential inter-arrival delay while serving control messages.

        A rate change draws a fresh delay at the new rate, so a rate of 0 blocks
        until the next control message. Returns early on stop.
        """
        deadline = time.monotonic() + self._next_delay()
        while not self._stopping:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            if self._wait(remaining) == SET_RATE:
                deadline = time.monotonic() + self._next_delay()

    def _on_rate_change(self):
        """Hook run on the worker thread after the rate changed."""

    def _next_delay(self) -> float:
        """Exponentially distributed inter-arrival delay with mean 1/rate."""
        if self._rate <= 0:
            return math.inf
        return self._random.expovariate(self._rate)
