#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 LogBench
"""
LogBench command line.

  logbench bench  --log /tmp/a.log,/tmp/b.log --rate 100,1k -p 1234
  logbench bench  --log /tmp/a.log --rate 10k -- /usr/bin/agent --config agent.json
  logbench replay recorded.log --dest /tmp/replayed.log --timelayout "2006-01-02 15:04:05.000"
"""

import sys
import argparse
import logging
from typing import Callable, List, Optional

from .agent_process import AgentProcess
from .bench import BenchRunner
from .config import (
    DEFAULT_RATE,
    DEFAULT_TIME_LAYOUT,
    FIXED_LOG_LINE,
    BenchConfig,
    ReplayConfig,
)
from .replayer import Replayer
from .rotator import RotatingWriter, RotationConfig
from .scheduler import LineSource, RateScheduler, SchedulerGroup
from .units import parse_duration, parse_number, parse_rates, parse_size

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Seconds between checks for Ctrl+C while waiting on replayers
_JOIN_POLL = 0.5


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _argument(parse: Callable) -> Callable:
    """Adapt a ValueError-raising parser to an argparse type."""
    def convert(value: str):
        try:
            return parse(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(str(e)) from e
    convert.__name__ = parse.__name__
    return convert


def _split_list(values: Optional[List[str]]) -> List[str]:
    items = []
    for value in values or []:
        items.extend(item.strip() for item in value.split(",") if item.strip())
    return items


def _add_rotation_arguments(parser: argparse.ArgumentParser):
    group = parser.add_argument_group("rotation")
    group.add_argument("--rotate-keep", type=int, default=0,
                       help="Number of rotated files to keep")
    group.add_argument("--rotate-size", type=_argument(parse_size), default=0,
                       help="Rotate when a file would exceed this size, e.g. 10m; 0 disables")
    group.add_argument("--rotate-time", type=_argument(parse_duration), default=0.0,
                       help="Rotate files older than this duration, e.g. 1m; 0 disables")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logbench",
        description="LogBench - log traffic generator and replayer for benchmarking log agents",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="mode", required=True)

    bench = subparsers.add_parser(
        "bench",
        help="Generate log lines at fixed rates while sampling an agent",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    bench.add_argument("--log", action="append", required=True,
                       help="Log file(s) to write, comma separated or repeated")
    bench.add_argument("--rate", action="append",
                       help=f"Lines/second per file, comma separated, k/m/g suffixes allowed (default: {DEFAULT_RATE:g})")
    bench.add_argument("-p", "--pid", type=int,
                       help="Pid of an already running agent to monitor")
    bench.add_argument("-o", "--pipe-output", action="store_true",
                       help="Pass the started agent's output through")
    bench.add_argument("--timelayout", default=DEFAULT_TIME_LAYOUT,
                       help="Layout of the timestamp prefixed to each line")
    lines = bench.add_mutually_exclusive_group()
    lines.add_argument("--line", default=FIXED_LOG_LINE,
                       help="Line written after the timestamp")
    lines.add_argument("--line-file",
                       help="File whose lines are written in turn instead of --line")
    bench.add_argument("-t", "--duration", type=_argument(parse_duration), default=10.0,
                       help="Sampling duration per rate, e.g. 30s")
    bench.add_argument("-r", "--ramp-up", type=_argument(parse_duration), default=1.0,
                       help="Time between changing the rate and sampling")
    bench.add_argument("-f", "--frequency", type=_argument(parse_duration), default=1.0,
                       help="Time between samples")
    bench.add_argument("--seed", type=int, help="Random seed for line pacing")
    bench.add_argument("--no-children", action="store_true",
                       help="Only account for the agent process, not its descendants")
    _add_rotation_arguments(bench)
    bench.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    bench.add_argument("command", nargs=argparse.REMAINDER,
                       help="Agent command to start and monitor, after '--'")

    replay = subparsers.add_parser(
        "replay",
        help="Replay a recorded log against the wall clock",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    replay.add_argument("source", help="Recorded log file, '-' for standard input")
    replay.add_argument("--dest", action="append",
                        help="Destination file(s), comma separated or repeated; standard output if omitted")
    replay.add_argument("--timelayout",
                        help="Timestamp layout, optionally a pattern with the timestamp in a group")
    replay.add_argument("--multiline-start",
                        help="Regex matching the first line of an event; {timestamp} expands to the timestamp pattern")
    replay.add_argument("--rate", type=_argument(parse_number), default=0.0,
                        help="Events/second when no time layout is given; 0 replays as fast as possible")
    replay.add_argument("--seed", type=int, help="Random seed for event pacing")
    _add_rotation_arguments(replay)
    replay.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return parser


def _rotation(args) -> RotationConfig:
    return RotationConfig(keep=args.rotate_keep, duration=args.rotate_time, size=args.rotate_size)


def bench_config(args) -> BenchConfig:
    """
    Raises:
        ValueError: on invalid rates or settings
    """
    command = list(args.command or [])
    if command and command[0] == "--":
        command = command[1:]
    rates = parse_rates(args.rate) if args.rate else [DEFAULT_RATE]
    config = BenchConfig(
        log_files=_split_list(args.log),
        rates=rates,
        pid=args.pid,
        pipe_output=args.pipe_output,
        time_layout=args.timelayout,
        line=args.line,
        line_file=args.line_file,
        duration=args.duration,
        ramp_up=args.ramp_up,
        frequency=args.frequency,
        rotation=_rotation(args),
        command=command,
        include_children=not args.no_children,
        seed=args.seed,
    )
    config.validate()
    return config


def replay_config(args) -> ReplayConfig:
    config = ReplayConfig(
        source=args.source,
        destinations=_split_list(args.dest),
        time_layout=args.timelayout,
        multiline_start=args.multiline_start,
        rate=args.rate,
        rotation=_rotation(args),
        seed=args.seed,
    )
    config.validate()
    return config


def run_bench(config: BenchConfig) -> int:
    if config.line_file:
        source = LineSource.from_file(config.line_file)
    else:
        source = LineSource.fixed(config.line)

    writers = [RotatingWriter.open(path, config.rotation) for path in config.log_files]
    generators = SchedulerGroup(
        RateScheduler(
            writer,
            source,
            rate=0.0,
            time_layout=config.time_layout,
            seed=None if config.seed is None else config.seed + index,
            name=f"generator-{index}",
        )
        for index, writer in enumerate(writers)
    )

    agent = None
    try:
        pid = config.pid
        if config.command:
            agent = AgentProcess(config.command, pipe_output=config.pipe_output)
            pid = agent.start()

        generators.start()
        BenchRunner(config, generators, pid=pid).run()
        return 0
    finally:
        generators.stop()
        for writer in writers:
            writer.close()
        if agent is not None:
            agent.stop()


class _StdoutDestination:
    """Binary standard output, flushed after every event."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout.buffer

    def write(self, data: bytes) -> int:
        written = self.stream.write(data)
        self.stream.flush()
        return written

    def close(self):
        pass


def run_replay(config: ReplayConfig) -> int:
    if config.destinations:
        dests = [RotatingWriter.open(path, config.rotation) for path in config.destinations]
    else:
        dests = [_StdoutDestination()]

    sources = []
    replayers = []
    try:
        for index, dest in enumerate(dests):
            if config.from_stdin:
                source = sys.stdin.buffer
            else:
                source = open(config.source, "rb")
                sources.append(source)
            replayers.append(Replayer(
                source,
                dest,
                time_layout=config.time_layout,
                multiline_start=config.multiline_start,
                rate=config.rate,
                seed=None if config.seed is None else config.seed + index,
                name=f"replayer-{index}",
            ))

        for replayer in replayers:
            replayer.start()
        try:
            for replayer in replayers:
                while not replayer.wait(_JOIN_POLL):
                    pass
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping replayers")
            for replayer in replayers:
                replayer.stop(timeout=_JOIN_POLL)
            raise

        for replayer in replayers:
            stats = replayer.stats
            logger.info(
                f"{replayer.name}: {stats.events} events, {stats.rewritten} rewritten, "
                f"{stats.parse_errors} parse errors"
            )
        return 0
    finally:
        for source in sources:
            source.close()
        for dest in dests:
            dest.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.mode == "bench":
            config = bench_config(args)
        else:
            config = replay_config(args)
    except ValueError as e:
        parser.error(str(e))

    try:
        if args.mode == "bench":
            return run_bench(config)
        return run_replay(config)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except (ValueError, OSError) as e:
        # ProcessLookupError and PermissionError are OSErrors
        logger.error(f"LogBench failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
