#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Tests for rate-controlled line generation.

Tests for:
- Poisson rate accuracy and pausing
- Rate changes and stop handshakes
- Line sources and scheduler groups
"""

import unittest
import sys
import os
import tempfile
import threading
import time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from logbench.scheduler import LineSource, RateScheduler, SchedulerGroup
from logbench.timelayout import TimeLayout

LAYOUT = "2006-01-02 15:04:05.000000"


class CollectingDestination:
    """Destination keeping every written record"""

    def __init__(self):
        self.records = []
        self.lock = threading.Lock()

    def write(self, data):
        with self.lock:
            self.records.append(data.decode("utf-8"))
        return len(data)

    def count(self):
        with self.lock:
            return len(self.records)

    def contents(self):
        with self.lock:
            return [record.rstrip("\n").split(" ", 2)[2] for record in self.records]


class FailingDestination:
    def write(self, data):
        raise OSError("disk full")


class TestLineSource(unittest.TestCase):
    """Test line sources"""

    def test_fixed(self):
        """Test a fixed line repeats"""
        source = LineSource.fixed("hello")
        lines = source.cycle()
        self.assertEqual([next(lines) for _ in range(3)], ["hello"] * 3)

    def test_from_file(self):
        """Test lines are loaded without terminators and cycled in order"""
        with tempfile.NamedTemporaryFile("w", suffix=".txt", delete=False) as f:
            f.write("first\r\nsecond\nthird\n")
        try:
            source = LineSource.from_file(f.name)
            self.assertEqual(len(source), 3)
            lines = source.cycle()
            self.assertEqual([next(lines) for _ in range(4)], ["first", "second", "third", "first"])
        finally:
            os.unlink(f.name)

    def test_empty_file(self):
        """Test an empty line file is rejected"""
        with tempfile.NamedTemporaryFile("w", delete=False) as f:
            pass
        try:
            with self.assertRaises(ValueError):
                LineSource.from_file(f.name)
        finally:
            os.unlink(f.name)

    def test_empty_lines(self):
        """Test a source needs at least one line"""
        with self.assertRaises(ValueError):
            LineSource([])


class TestRateScheduler(unittest.TestCase):
    """Test the scheduler worker"""

    def setUp(self):
        self.dest = CollectingDestination()

    def make(self, lines=None, rate=0.0):
        scheduler = RateScheduler(
            self.dest,
            lines or LineSource.fixed("test line"),
            rate=rate,
            time_layout=LAYOUT,
            seed=42,
        )
        self.addCleanup(scheduler.stop, 2.0)
        return scheduler

    def test_rate_accuracy(self):
        """Test the number of lines follows the rate"""
        scheduler = self.make(rate=200)
        scheduler.start()
        time.sleep(1.0)
        scheduler.stop()

        count = self.dest.count()
        self.assertGreater(count, 120)
        self.assertLess(count, 300)
        self.assertEqual(scheduler.emitted, count)

    def test_high_rate_writes_batches(self):
        """Test rates above timer resolution are sustained"""
        scheduler = self.make(rate=10000)
        scheduler.start()
        time.sleep(0.5)
        scheduler.stop()
        self.assertGreater(self.dest.count(), 2000)

    def test_zero_rate_pauses(self):
        """Test nothing is written at rate 0 and writing resumes on a new rate"""
        scheduler = self.make(rate=0)
        scheduler.start()
        time.sleep(0.3)
        self.assertEqual(self.dest.count(), 0)

        scheduler.set_rate(1000)
        time.sleep(0.3)
        scheduler.set_rate(0)
        paused_at = self.dest.count()
        self.assertGreater(paused_at, 0)

        time.sleep(0.3)
        self.assertEqual(self.dest.count(), paused_at)

    def test_rate_change_keeps_line_order(self):
        """Test no line is lost or repeated across rate changes"""
        scheduler = self.make(lines=LineSource(["a", "b", "c"]), rate=500)
        scheduler.start()
        time.sleep(0.2)
        scheduler.set_rate(2000)
        time.sleep(0.2)
        scheduler.set_rate(100)
        time.sleep(0.2)
        scheduler.stop()

        contents = self.dest.contents()
        self.assertGreater(len(contents), 10)
        expected = ["a", "b", "c"] * (len(contents) // 3 + 1)
        self.assertEqual(contents, expected[:len(contents)])

    def test_records_are_timestamped(self):
        """Test every record starts with a timestamp in the layout"""
        scheduler = self.make(rate=500)
        scheduler.start()
        time.sleep(0.1)
        scheduler.stop()

        layout = TimeLayout(LAYOUT)
        for record in self.dest.records:
            self.assertTrue(record.endswith(" test line\n"))
            self.assertIsNotNone(layout.regex.match(record))

    def test_rate_applied_before_return(self):
        """Test set_rate is acknowledged by the worker"""
        scheduler = self.make(rate=0)
        scheduler.start()
        scheduler.set_rate(300)
        self.assertEqual(scheduler.rate, 300)
        scheduler.stop()
        self.assertFalse(scheduler.running)

    def test_stop_is_terminal(self):
        """Test a stopped scheduler ignores rate changes"""
        scheduler = self.make(rate=100)
        scheduler.start()
        scheduler.stop()
        count = self.dest.count()

        with self.assertLogs("logbench.pacing", level="WARNING"):
            scheduler.set_rate(1000)
        time.sleep(0.1)
        self.assertEqual(self.dest.count(), count)
        scheduler.stop()

    def test_start_twice(self):
        """Test a scheduler only starts once"""
        scheduler = self.make()
        scheduler.start()
        with self.assertRaises(RuntimeError):
            scheduler.start()

    def test_negative_rate(self):
        """Test negative rates are rejected"""
        scheduler = self.make()
        with self.assertRaises(ValueError):
            scheduler.set_rate(-1)
        with self.assertRaises(ValueError):
            RateScheduler(self.dest, LineSource.fixed("x"), rate=-5)

    def test_write_failure_stops_worker(self):
        """Test a failing destination ends the worker"""
        scheduler = RateScheduler(FailingDestination(), LineSource.fixed("x"), rate=100)
        with self.assertLogs("logbench.scheduler", level="ERROR") as logs:
            scheduler.start()
            self.assertTrue(scheduler.wait(2.0))
        self.assertIn("disk full", logs.output[0])
        self.assertFalse(scheduler.running)


class TestSchedulerGroup(unittest.TestCase):
    """Test schedulers driven together"""

    def test_fixed_group(self):
        """Test one scheduler per destination sharing rate changes"""
        dests = [CollectingDestination(), CollectingDestination()]
        group = SchedulerGroup.fixed("group line", dests, time_layout=LAYOUT)
        self.assertEqual(len(group), 2)

        group.start()
        group.set_rate(500)
        time.sleep(0.2)
        group.stop()

        for dest in dests:
            self.assertGreater(dest.count(), 0)
        self.assertEqual(group.emitted, sum(dest.count() for dest in dests))
        for scheduler in group:
            self.assertFalse(scheduler.running)


def run_tests():
    """Run all tests"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestLineSource))
    suite.addTests(loader.loadTestsFromTestCase(TestRateScheduler))
    suite.addTests(loader.loadTestsFromTestCase(TestSchedulerGroup))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
