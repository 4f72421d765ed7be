#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
Tests for starting and stopping the agent under test.
"""

import signal
import subprocess
import unittest
import sys
from pathlib import Path
from unittest import mock

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from logbench.agent_process import AgentProcess


class TestAgentProcess(unittest.TestCase):
    """Test agent lifecycle with a mocked Popen"""

    def setUp(self):
        patcher = mock.patch("logbench.agent_process.subprocess.Popen")
        self.popen = patcher.start()
        self.addCleanup(patcher.stop)
        self.proc = self.popen.return_value
        self.proc.pid = 4321
        self.proc.poll.return_value = None

    def test_start_discards_output(self):
        """Test output goes to /dev/null unless piped"""
        agent = AgentProcess(["agent", "--config", "a.json"])
        self.assertEqual(agent.start(), 4321)
        self.popen.assert_called_once_with(
            ["agent", "--config", "a.json"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        self.assertEqual(agent.pid, 4321)

    def test_start_pipes_output(self):
        AgentProcess(["agent"], pipe_output=True).start()
        self.popen.assert_called_once_with(["agent"], stdout=None, stderr=None)

    def test_graceful_stop(self):
        """Test SIGINT is enough when the agent exits in time"""
        self.proc.wait.return_value = 0
        agent = AgentProcess(["agent"])
        agent.start()

        self.assertEqual(agent.stop(grace=5.0), 0)
        self.proc.send_signal.assert_called_once_with(signal.SIGINT)
        self.proc.wait.assert_called_once_with(timeout=5.0)
        self.proc.kill.assert_not_called()

    def test_stop_escalates_to_kill(self):
        """Test the agent is killed after the grace period"""
        self.proc.wait.side_effect = [subprocess.TimeoutExpired("agent", 5.0), -9]
        agent = AgentProcess(["agent"])
        agent.start()

        with self.assertLogs("logbench.agent_process", level="WARNING"):
            self.assertEqual(agent.stop(grace=5.0), -9)
        self.proc.kill.assert_called_once()

    def test_stop_already_exited(self):
        self.proc.poll.return_value = 3
        self.proc.returncode = 3
        agent = AgentProcess(["agent"])
        agent.start()
        self.assertEqual(agent.stop(), 3)
        self.proc.send_signal.assert_not_called()

    def test_stop_before_start(self):
        self.assertIsNone(AgentProcess(["agent"]).stop())

    def test_empty_command(self):
        with self.assertRaises(ValueError):
            AgentProcess([])


class TestRealAgent(unittest.TestCase):
    """Test with a real child process"""

    def test_interrupt_sleeping_process(self):
        agent = AgentProcess([sys.executable, "-c", "import time; time.sleep(60)"])
        agent.start()
        self.assertIsNotNone(agent.pid)
        self.assertIsNotNone(agent.stop(grace=5.0))
        self.assertIsNotNone(agent.process.poll())

    def test_missing_command(self):
        with self.assertRaises(OSError):
            AgentProcess(["/nonexistent/logbench-agent"]).start()


def run_tests():
    """Run all tests"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestAgentProcess))
    suite.addTests(loader.loadTestsFromTestCase(TestRealAgent))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
