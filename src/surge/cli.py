from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
import uuid

from surge.analysis import compare_runs, comparison_table
from surge.config import (
    DEFAULT_ENDPOINTS,
    ConfigError,
    ReportFormat,
    RunConfig,
    TestType,
    default_report_path,
    parse_duration,
    parse_endpoint_list,
)
from surge.config.loader import env_duration, env_int, env_str
from surge.loadgen.runner import Orchestrator
from surge.metrics import Aggregator
from surge.report import print_progress, write_report
from surge.storage import Storage, default_storage

logger = logging.getLogger(__name__)

_DEFAULTS = RunConfig()


def _add_run_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--server-addr", default=env_str("SERVER_ADDR", _DEFAULTS.server_addr))
    parser.add_argument(
        "--type",
        dest="test_type",
        choices=[t.value for t in TestType],
        default=env_str("TEST_TYPE", _DEFAULTS.test_type.value),
    )
    parser.add_argument(
        "--duration",
        type=parse_duration,
        default=env_duration("DURATION", _DEFAULTS.duration_sec),
        help="Test duration, e.g. 60s or 5m",
    )
    parser.add_argument("--rps", type=int, default=env_int("TARGET_RPS", _DEFAULTS.target_rps))
    parser.add_argument("--concurrent", type=int, default=env_int("CONCURRENT", _DEFAULTS.concurrency))
    parser.add_argument(
        "--spike-duration",
        type=parse_duration,
        default=env_duration("SPIKE_DURATION", _DEFAULTS.spike_duration_sec),
    )
    parser.add_argument("--spike-rps", type=int, default=env_int("SPIKE_RPS", _DEFAULTS.spike_rps))
    parser.add_argument(
        "--timeout",
        type=parse_duration,
        default=env_duration("TIMEOUT", _DEFAULTS.timeout_sec),
    )
    parser.add_argument(
        "--format",
        dest="report_format",
        choices=[f.value for f in ReportFormat],
        default=env_str("REPORT_FORMAT", _DEFAULTS.report_format.value),
    )
    parser.add_argument(
        "--output",
        default=env_str("REPORT_FILE", ""),
        help="Report file (default results/<type>-test.<ext>, '-' for stdout)",
    )
    parser.add_argument(
        "--endpoints",
        default=env_str("ENDPOINTS", ""),
        help="Comma-separated endpoints, e.g. GET:/,POST:/items",
    )
    parser.add_argument("--dataset-size", type=int, default=env_int("DATASET_SIZE", _DEFAULTS.dataset_size))
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--notes", default="")
    parser.add_argument("--no-save", action="store_true", help="Do not record the run in the history")
    parser.add_argument("--no-progress", action="store_true")


def build_config(args: argparse.Namespace) -> RunConfig:
    endpoints = parse_endpoint_list(args.endpoints) if args.endpoints else DEFAULT_ENDPOINTS
    try:
        test_type = TestType(args.test_type)
        report_format = ReportFormat(args.report_format)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    report_file = args.output or str(default_report_path(test_type, report_format))
    config = RunConfig(
        server_addr=args.server_addr,
        test_type=test_type,
        duration_sec=args.duration,
        target_rps=args.rps,
        concurrency=args.concurrent,
        spike_duration_sec=args.spike_duration,
        spike_rps=args.spike_rps,
        timeout_sec=args.timeout,
        endpoints=endpoints,
        dataset_size=args.dataset_size,
        seed=args.seed,
        report_format=report_format,
        report_file=report_file,
        run_id=uuid.uuid4().hex,
        notes=args.notes,
    )
    config.validate()
    return config


async def _run(config: RunConfig, metrics: Aggregator, show_progress: bool) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)
    progress = asyncio.create_task(print_progress(metrics)) if show_progress else None
    try:
        await Orchestrator(config, metrics).run(stop)
    finally:
        if progress is not None:
            progress.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await progress
    if stop.is_set():
        print("Received interrupt signal, stopped early", file=sys.stderr)


def _cmd_run(args: argparse.Namespace) -> int:
    try:
        config = build_config(args)
    except ConfigError as exc:
        print(f"Error parsing configuration: {exc}", file=sys.stderr)
        return 1
    logger.debug("run config: %s", dict(config.to_metadata()))
    metrics = Aggregator()
    print(
        f"Starting stress test (type: {config.test_type.value}, duration: {config.duration_sec:g}s, "
        f"RPS: {config.target_rps}, concurrent: {config.concurrency})..."
    )
    try:
        asyncio.run(_run(config, metrics, show_progress=not args.no_progress))
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    snapshot = metrics.snapshot()
    write_report(config, snapshot)
    if config.report_file != "-":
        print(f"Report written to {config.report_file}")
    if not args.no_save:
        storage = Storage(args.db) if args.db else default_storage()
        storage.save_run(config, config.run_id or uuid.uuid4().hex, snapshot)
        print(f"Run saved: {config.run_id}")
    return 0


def _cmd_runs(args: argparse.Namespace) -> int:
    storage = Storage(args.db) if args.db else default_storage()
    runs = storage.list_runs()
    if runs.empty:
        print("No runs recorded")
        return 0
    print(runs.to_string(index=False))
    return 0


def _cmd_compare(args: argparse.Namespace) -> int:
    storage = Storage(args.db) if args.db else default_storage()
    base = storage.load_run(args.base)
    if base is None:
        print(f"Unknown run: {args.base}", file=sys.stderr)
        return 2
    candidate = storage.load_run(args.candidate)
    if candidate is None:
        print(f"Unknown run: {args.candidate}", file=sys.stderr)
        return 2
    print(comparison_table(base["metrics"], candidate["metrics"]).to_string(float_format="%.2f"))
    regressions = compare_runs(base["metrics"], candidate["metrics"])
    if not regressions:
        print("No regressions detected")
        return 0
    for reg in regressions:
        print(f"{reg.message} ({reg.delta_pct:.1f}% on {reg.metric})")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="surge", description="HTTP stress test engine")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--db", default=None, help="Run history database path")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a stress test")
    _add_run_args(run)
    run.set_defaults(func=_cmd_run)

    runs = sub.add_parser("runs", help="List recorded runs")
    runs.set_defaults(func=_cmd_runs)

    compare = sub.add_parser("compare", help="Compare two recorded runs")
    compare.add_argument("base")
    compare.add_argument("candidate")
    compare.set_defaults(func=_cmd_compare)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
