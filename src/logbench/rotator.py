#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Log file rotation for generated destinations.

A RotatingWriter swaps the underlying file when a size or time threshold is
crossed; the FileRotator shifts older files to numbered backups
(app.log -> app.1.log -> app.2.log ...) and keeps a fixed count of them.
"""

import os
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


@dataclass
class RotationConfig:
    """Rotation thresholds; zero disables the corresponding trigger."""
    keep: int = 0
    duration: float = 0.0  # seconds
    size: int = 0  # bytes

    @property
    def enabled(self) -> bool:
        return self.duration > 0 or self.size > 0

    def validate(self):
        if self.keep < 0:
            raise ValueError(f"Rotation keep count must not be negative, got {self.keep}")
        if self.duration < 0:
            raise ValueError(f"Rotation time must not be negative, got {self.duration}")
        if self.size < 0:
            raise ValueError(f"Rotation size must not be negative, got {self.size}")


class FileRotator:
    """Creates the log file and shifts it into numbered backups on rotation."""

    def __init__(self, path: str, keep: int = 0):
        """
        Args:
            path: Path of the live log file
            keep: Number of backups to keep, the oldest beyond that is discarded
        """
        self.path = Path(path)
        self.keep = keep
        self._current: Optional[BinaryIO] = None

    def backup_path(self, n: int) -> Path:
        """Path of the n-th backup, the index goes before the extension."""
        if n == 0:
            return self.path
        return self.path.with_name(f"{self.path.stem}.{n}{self.path.suffix}")

    def rotate(self) -> BinaryIO:
        """
        Close the current file, shift backups and open a fresh file.

        Returns:
            The newly created file, opened for binary writing
        """
        if self._current is not None:
            logger.info(f"Rotating {self.path}")
            self._current.close()
            self._shift_backups()
        else:
            self.path.parent.mkdir(parents=True, exist_ok=True)

        self._current = open(self.path, "wb")
        return self._current

    def close(self):
        if self._current is not None:
            self._current.close()
            self._current = None

    def _shift_backups(self):
        for n in range(self.keep - 1, -1, -1):
            source = self.backup_path(n)
            if not source.exists():
                continue
            target = self.backup_path(n + 1)
            try:
                os.replace(source, target)
            except OSError as e:
                logger.error(f"Failed to move {source} to {target}: {e}")
                raise


class RotatingWriter:
    """Byte sink that rotates its file on size or age before writing."""

    def __init__(self, rotator: FileRotator, config: Optional[RotationConfig] = None):
        self.rotator = rotator
        self.config = config or RotationConfig()
        self.size = 0
        self._file: Optional[BinaryIO] = None
        self._deadline: Optional[float] = None
        self.rotate()

    @classmethod
    def open(cls, path: str, config: Optional[RotationConfig] = None) -> "RotatingWriter":
        config = config or RotationConfig()
        return cls(FileRotator(path, config.keep), config)

    def __repr__(self) -> str:
        return f"RotatingWriter({str(self.rotator.path)!r})"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def write(self, data: bytes) -> int:
        now = time.monotonic()

        if self.config.duration > 0:
            if self._deadline is None:
                self._deadline = now + self.config.duration
            if now > self._deadline:
                self.rotate()

        if self.config.size > 0 and self.size > 0 and self.size + len(data) > self.config.size:
            self.rotate()

        written = self._file.write(data)
        self._file.flush()
        self.size += written
        return written

    def rotate(self):
        self._file = self.rotator.rotate()
        self.size = 0
        self._deadline = None

    def close(self):
        self.rotator.close()
