#!/usr/bin/env python3
"""
LogBench - Test Runner

Runs all tests: unit tests of the building blocks and the end-to-end
command line tests.
"""

import sys
from pathlib import Path
import argparse

# Add tests directory to path
TESTS_DIR = Path(__file__).parent
sys.path.insert(0, str(TESTS_DIR))

# Import test modules
import test_timelayout
import test_scheduler
import test_replayer
import test_rotator
import test_units
import test_resource_monitor
import test_agent_process
import test_bench
import test_cli

UNIT_MODULES = [
    ("Time Layouts", test_timelayout),
    ("Units", test_units),
    ("Rotation", test_rotator),
    ("Resource Monitor", test_resource_monitor),
    ("Agent Process", test_agent_process),
]

TIMING_MODULES = [
    ("Scheduler", test_scheduler),
    ("Replayer", test_replayer),
    ("Benchmark", test_bench),
    ("Command Line", test_cli),
]


def print_header(text):
    """Print formatted header"""
    print("\n" + "="*60)
    print(f"  {text}")
    print("="*60 + "\n")


def main():
    parser = argparse.ArgumentParser(description="Run LogBench tests")
    parser.add_argument('--unit', action='store_true', help='Run unit tests only')
    parser.add_argument('--timing', action='store_true', help='Run timing dependent tests only')
    parser.add_argument('--all', action='store_true', help='Run all tests (default)')

    args = parser.parse_args()

    # Default to all tests
    if not any([args.unit, args.timing]):
        args.all = True

    modules = []
    if args.unit or args.all:
        modules.extend(UNIT_MODULES)
    if args.timing or args.all:
        print("Note: timing tests sleep and may take a few seconds")
        modules.extend(TIMING_MODULES)

    results = []
    for name, module in modules:
        print_header(f"{name.upper()} TESTS")
        results.append((name, module.run_tests()))

    # Summary
    print_header("TEST SUMMARY")

    all_passed = True
    for name, result in results:
        status = "✅ PASSED" if result == 0 else "❌ FAILED"
        print(f"{name}: {status}")
        if result != 0:
            all_passed = False

    print()

    if all_passed:
        print("🎉 All tests passed!")
        return 0
    else:
        print("⚠️  Some tests failed. Check output above for details.")
        return 1


if __name__ == '__main__':
    sys.exit(main())
