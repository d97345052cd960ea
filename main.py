"""
JobControl command line runner.

Loads a plan file, registers its jobs with a fresh group, runs the
JobControl loop until every job is terminal (or the loop stops), and
prints a per-bucket summary.

Usage:
    python main.py plan.json
    python main.py plan.json --group nightly --interval 0.5 --timeout 600

Exit codes:
    0 - every job succeeded
    1 - at least one job failed, or the loop stopped with jobs unfinished
    2 - the plan could not be loaded
    130 - interrupted (SIGINT / SIGTERM)
"""

import argparse
import logging
import signal
import sys
import time
from typing import Optional

from dotenv import load_dotenv

from src.infra.logging_config import setup_logging
from src.infra.settings import (
    get_command_log_dir,
    get_group_name,
    get_log_dir,
    get_log_level,
    get_wait_interval,
)
from src.jobcontrol import (
    JobControl,
    JobGroup,
    PlanError,
    ThreadState,
    load_plan,
    register_plan,
)


EXIT_SUCCESS = 0
EXIT_JOBS_FAILED = 1
EXIT_INVALID_PLAN = 2
EXIT_INTERRUPTED = 130

logger = logging.getLogger("src.main")


def positive_float(value: str) -> float:
    """argparse type for intervals and timeouts."""
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return parsed


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a dependency-aware job plan to completion"
    )
    parser.add_argument("plan", help="Path to a JSON plan file")
    parser.add_argument(
        "--group",
        default=None,
        help="Group name / job ID prefix (default: plan's group, then JOBCONTROL_GROUP)",
    )
    parser.add_argument(
        "--interval",
        type=positive_float,
        default=None,
        help="Seconds between ticks (default: JOBCONTROL_WAIT_INTERVAL or 1.0)",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=None,
        help="Give up after this many seconds (default: no limit)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    return parser.parse_args(argv)


def wait_until_done(control: JobControl, interval: float, timeout: Optional[float]) -> bool:
    """
    Block until the group is finished, the loop stops, or timeout expires.

    Unlike JobControl.wait_for_completion(), this returns when the loop
    dies on a fatal error.

    Returns:
        True if every job reached a terminal bucket
    """
    deadline = time.monotonic() + timeout if timeout is not None else None
    while not control.group.all_finished():
        if control.state == ThreadState.STOPPED:
            return False
        if deadline is not None and time.monotonic() >= deadline:
            logger.warning(f"Timed out after {timeout}s with jobs unfinished")
            return False
        time.sleep(interval)
    return True


def print_summary(group: JobGroup) -> None:
    print(f"Group {group.name}:")
    for job in group.all_jobs():
        print(f"  {job.job_id:<10} {job.state.value:<17} {job.name}")
    failed = group.failed_jobs()
    if failed:
        print("Failures:")
        for job in failed:
            print(f"  {job.job_id} ({job.name}): {job.message}")


def main(argv: Optional[list] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.log_level or get_log_level(), log_dir=get_log_dir())

    try:
        plan = load_plan(args.plan)
    except PlanError as e:
        logger.error(f"Invalid plan: {e}")
        return EXIT_INVALID_PLAN

    group = JobGroup(args.group or plan.group or get_group_name())
    interval = args.interval if args.interval is not None else get_wait_interval()
    jobs = register_plan(group, plan, logs_dir=get_command_log_dir())
    logger.info(f"Registered {len(jobs)} jobs in group {group.name}")

    # SIGTERM behaves like Ctrl+C
    signal.signal(signal.SIGTERM, signal.default_int_handler)

    control = JobControl(group, poll_interval=interval)
    control.start()
    try:
        finished = wait_until_done(control, interval, args.timeout)
    except KeyboardInterrupt:
        logger.info("Interrupted - stopping loop, running jobs are left running")
        control.stop()
        print_summary(group)
        return EXIT_INTERRUPTED

    control.stop()
    control.join(timeout=interval + 1.0)
    print_summary(group)

    if control.error is not None:
        logger.error(f"Loop stopped on error: {control.error}")
    if not finished or group.failed_jobs():
        return EXIT_JOBS_FAILED
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
