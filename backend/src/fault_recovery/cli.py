#!/usr/bin/env python3
"""
Command line simulation of a recovery controller.

Usage:
    python -m backend.src.fault_recovery simulate "network error" "429 Too Many Requests"
    python -m backend.src.fault_recovery simulate --preset github "502 Bad Gateway"
    python -m backend.src.fault_recovery classify "401 Unauthorized"

Each message is reported as a failure of the protected operation; the
virtual clock is then advanced until the scheduled retry fires (or the
controller stops in FAILED/EXHAUSTED).
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from .classification import classify
from .config import PRESETS, RecoveryConfig, preset
from .controller import RecoveryController
from .events import FanOutEventSink, LoggingEventSink, MemoryEventSink
from .exceptions import RecoveryConfigError
from .timers import ManualScheduler
from .types import RecoverySnapshot


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fault-recovery",
        description="Classify failures and simulate recovery schedules",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log controller events")
    subcommands = parser.add_subparsers(dest="command", required=True)

    simulate = subcommands.add_parser("simulate", help="Replay a sequence of failures")
    simulate.add_argument("messages", nargs="+", help="Failure messages, reported in order")
    simulate.add_argument("--preset", choices=sorted(PRESETS), help="Start from a named preset")
    simulate.add_argument("--operation", default=None, help="Operation name")
    simulate.add_argument("--max-retries", type=int, default=None)
    simulate.add_argument("--base-delay-ms", type=int, default=None)
    simulate.add_argument("--rate-limit-delay-ms", type=int, default=None)
    simulate.add_argument("--json", action="store_true", help="Print snapshots as JSON lines")

    classify_cmd = subcommands.add_parser("classify", help="Classify failure messages")
    classify_cmd.add_argument("messages", nargs="+")
    return parser


def _config_from_args(args: argparse.Namespace) -> RecoveryConfig:
    config = preset(args.preset) if args.preset else RecoveryConfig.from_env(
        args.operation or "Simulated operation"
    )
    overrides = {}
    if args.operation:
        overrides["operation_name"] = args.operation
    if args.max_retries is not None:
        overrides["max_retries"] = args.max_retries
    if args.base_delay_ms is not None:
        overrides["base_delay_ms"] = args.base_delay_ms
    if args.rate_limit_delay_ms is not None:
        overrides["rate_limit_delay_ms"] = args.rate_limit_delay_ms
    return config.with_overrides(**overrides) if overrides else config


def format_snapshot(clock: float, snapshot: RecoverySnapshot) -> str:
    line = f"[t={clock:7.1f}s] {snapshot.status.value:<9} attempt={snapshot.attempt}/{snapshot.max_retries}"
    if snapshot.failure is not None:
        line += f" kind={snapshot.failure.kind.value}"
    if snapshot.delay_ms is not None:
        line += f" delay={snapshot.delay_ms}ms"
    if snapshot.seconds_until_retry:
        line += f" retry_in={snapshot.seconds_until_retry}s"
    if snapshot.can_retry_manually:
        line += " (manual retry available)"
    return line


def simulate(args: argparse.Namespace, out=None) -> int:
    out = out or sys.stdout
    config = _config_from_args(args)
    scheduler = ManualScheduler()
    memory = MemoryEventSink()
    controller = RecoveryController(
        config,
        scheduler=scheduler,
        sink=FanOutEventSink(LoggingEventSink(), memory),
    )

    def show(snapshot: RecoverySnapshot) -> None:
        if args.json:
            print(json.dumps({"clock": scheduler.now, **snapshot.to_dict()}), file=out)
        else:
            print(format_snapshot(scheduler.now, snapshot), file=out)

    controller.subscribe(show)
    try:
        for message in args.messages:
            controller.report(message)
            scheduler.run_until_idle()
        if not args.json:
            actions = ", ".join(action.label for action in controller.actions()) or "none"
            print(f"final: {controller.status.value}; actions: {actions}", file=out)
            print(f"events: {', '.join(memory.names())}", file=out)
    finally:
        controller.dispose()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "classify":
        for message in args.messages:
            print(f"{classify(message).value}\t{message}")
        return 0

    try:
        return simulate(args)
    except RecoveryConfigError as exc:
        parser.error(str(exc))
        return 2


if __name__ == "__main__":
    sys.exit(main())
