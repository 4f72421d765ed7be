#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Tests for log rotation.
"""

import unittest
import sys
import tempfile
import time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from logbench.rotator import FileRotator, RotatingWriter, RotationConfig


class TestFileRotator(unittest.TestCase):
    """Test backup naming"""

    def test_backup_names(self):
        """Test the index goes before the extension"""
        rotator = FileRotator("/var/log/app.log", keep=3)
        self.assertEqual(rotator.backup_path(0), Path("/var/log/app.log"))
        self.assertEqual(rotator.backup_path(1), Path("/var/log/app.1.log"))
        self.assertEqual(rotator.backup_path(2), Path("/var/log/app.2.log"))

    def test_backup_names_without_extension(self):
        """Test paths without an extension get a numeric suffix"""
        rotator = FileRotator("/var/log/messages", keep=1)
        self.assertEqual(rotator.backup_path(1), Path("/var/log/messages.1"))


class TestRotatingWriter(unittest.TestCase):
    """Test size and time based rotation"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.path = Path(self.tmpdir.name) / "app.log"

    def read(self, name):
        return (Path(self.tmpdir.name) / name).read_bytes()

    def test_size_rotation_keeps_backups(self):
        """Test keep=2 holds the live file and two backups"""
        writer = RotatingWriter.open(str(self.path), RotationConfig(keep=2, size=10))
        with writer:
            for chunk in (b"AAAAAAAAA\n", b"BBBBBBBBB\n", b"CCCCCCCCC\n", b"DDDDDDDDD\n"):
                writer.write(chunk)

        self.assertEqual(self.read("app.log"), b"DDDDDDDDD\n")
        self.assertEqual(self.read("app.1.log"), b"CCCCCCCCC\n")
        self.assertEqual(self.read("app.2.log"), b"BBBBBBBBB\n")
        self.assertFalse((Path(self.tmpdir.name) / "app.3.log").exists())

    def test_size_accumulates(self):
        """Test writes share a file until the size is reached"""
        with RotatingWriter.open(str(self.path), RotationConfig(keep=1, size=12)) as writer:
            writer.write(b"aaaa\n")
            writer.write(b"bbbb\n")
            writer.write(b"cccc\n")

        self.assertEqual(self.read("app.1.log"), b"aaaa\nbbbb\n")
        self.assertEqual(self.read("app.log"), b"cccc\n")

    def test_oversized_write_goes_to_empty_file(self):
        """Test a write larger than the limit does not rotate an empty file"""
        with RotatingWriter.open(str(self.path), RotationConfig(keep=1, size=4)) as writer:
            writer.write(b"larger than four\n")

        self.assertEqual(self.read("app.log"), b"larger than four\n")
        self.assertFalse((Path(self.tmpdir.name) / "app.1.log").exists())

    def test_no_backups(self):
        """Test keep=0 truncates on rotation"""
        with RotatingWriter.open(str(self.path), RotationConfig(keep=0, size=5)) as writer:
            writer.write(b"one\n")
            writer.write(b"two\n")

        self.assertEqual(self.read("app.log"), b"two\n")
        self.assertEqual(sorted(p.name for p in Path(self.tmpdir.name).iterdir()), ["app.log"])

    def test_time_rotation(self):
        """Test files older than the duration are rotated"""
        with RotatingWriter.open(str(self.path), RotationConfig(keep=1, duration=0.05)) as writer:
            writer.write(b"old\n")
            time.sleep(0.1)
            writer.write(b"new\n")

        self.assertEqual(self.read("app.1.log"), b"old\n")
        self.assertEqual(self.read("app.log"), b"new\n")

    def test_without_rotation(self):
        """Test writes are appended when rotation is disabled"""
        with RotatingWriter.open(str(self.path)) as writer:
            for _ in range(100):
                writer.write(b"line\n")
            self.assertEqual(writer.size, 500)
        self.assertEqual(len(self.read("app.log")), 500)

    def test_creates_directories(self):
        """Test missing parent directories are created"""
        nested = Path(self.tmpdir.name) / "a" / "b" / "app.log"
        with RotatingWriter.open(str(nested)) as writer:
            writer.write(b"x\n")
        self.assertEqual(nested.read_bytes(), b"x\n")

    def test_invalid_config(self):
        """Test negative thresholds are rejected"""
        with self.assertRaises(ValueError):
            RotationConfig(keep=-1).validate()
        with self.assertRaises(ValueError):
            RotationConfig(size=-10).validate()
        self.assertFalse(RotationConfig().enabled)
        self.assertTrue(RotationConfig(duration=1).enabled)


def run_tests():
    """Run all tests"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestFileRotator))
    suite.addTests(loader.loadTestsFromTestCase(TestRotatingWriter))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
