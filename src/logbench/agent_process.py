#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Launching and stopping the agent under test.
"""

import signal
import logging
import subprocess
from typing import List, Optional

from .config import DEFAULT_STOP_GRACE

logger = logging.getLogger(__name__)


class AgentProcess:
    """A subject process started for the duration of a benchmark."""

    def __init__(self, command: List[str], pipe_output: bool = False):
        """
        Args:
            command: Program and arguments
            pipe_output: Pass the agent's stdout/stderr through instead of discarding them
        """
        if not command:
            raise ValueError("Agent command must not be empty")
        self.command = list(command)
        self.pipe_output = pipe_output
        self.process: Optional[subprocess.Popen] = None

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    def start(self) -> int:
        """
        Launch the agent.

        Returns:
            The agent's pid

        Raises:
            OSError: if the command cannot be executed
        """
        output = None if self.pipe_output else subprocess.DEVNULL
        self.process = subprocess.Popen(self.command, stdout=output, stderr=output)
        logger.info(f"Started agent '{' '.join(self.command)}' with pid {self.process.pid}")
        return self.process.pid

    def stop(self, grace: float = DEFAULT_STOP_GRACE) -> Optional[int]:
        """
        Interrupt the agent, killing it if it does not exit within `grace` seconds.

        Returns:
            The agent's exit code, None if it was never started
        """
        if self.process is None:
            return None
        if self.process.poll() is not None:
            return self.process.returncode

        logger.info(f"Stopping agent with pid {self.process.pid}")
        try:
            self.process.send_signal(signal.SIGINT)
            return self.process.wait(timeout=grace)
        except subprocess.TimeoutExpired:
            logger.warning(f"Agent did not exit within {grace}s, killing it")
            self.process.kill()
            return self.process.wait()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
