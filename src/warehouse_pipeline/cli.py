#!/usr/bin/env python3
"""
Command Line Interface

Usage:
    warehouse-pipeline [--config PATH] [--memory] [run]
    warehouse-pipeline ingest [--run-id ID]
    warehouse-pipeline transform [--run-id ID]
    warehouse-pipeline quality [--run-id ID] [--format json|text]
    warehouse-pipeline log RUN_ID

Exit code is 0 on success and 1 on failure.
"""

import argparse
import json
import sys
from dataclasses import asdict
from datetime import date
from typing import List, Optional

from .common.errors import WarehousePipelineError
from .common.pipeline_orchestrator import create_orchestrator
from .common.run_log import JsonRunLog
from .utils.config import PipelineConfig, get_config
from .utils.logging import setup_logging
from .utils.spark import get_spark_session, stop_spark_session


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="warehouse-pipeline",
        description="Run the CRM/ERP warehouse pipeline (bronze -> silver -> quality)"
    )
    parser.add_argument('--config', type=str,
                        help='YAML configuration file (default: WAREHOUSE_* environment variables)')
    parser.add_argument('--memory', action='store_true',
                        help='Keep layers in memory instead of catalog tables')
    parser.add_argument('--as-of', type=_parse_date, dest='as_of',
                        help='Reference date for date-window rules (default: today)')
    parser.add_argument('--log-level', type=str, dest='log_level',
                        help='Override the configured log level')

    subparsers = parser.add_subparsers(dest='command')

    subparsers.add_parser('run', help='Run the full pipeline (default)')

    for name, help_text in (
        ('ingest', 'Run only the bronze ingestion stage'),
        ('transform', 'Run only the silver transformation stage'),
        ('quality', 'Run only the silver quality gate'),
    ):
        stage_parser = subparsers.add_parser(name, help=help_text)
        stage_parser.add_argument('--run-id', type=str, dest='run_id',
                                  help='Run id to log under (generated when omitted)')
        if name == 'quality':
            stage_parser.add_argument('--format', choices=['json', 'text'], default='text',
                                      help='Report format (default: text)')

    log_parser = subparsers.add_parser('log', help='Print the run log entries of a run')
    log_parser.add_argument('run_id', type=str, help='Run id to look up')

    return parser


def _load_config(args: argparse.Namespace) -> PipelineConfig:
    config = get_config(args.config)
    if args.log_level:
        config.log_level = args.log_level
    return config


def run_pipeline_command(args: argparse.Namespace, config: PipelineConfig) -> int:
    """Run the full pipeline and print the outcome"""
    spark = get_spark_session(config.spark_app_name, config.spark_master, config.get_spark_config())
    try:
        orchestrator = create_orchestrator(spark, config, in_memory=args.memory, as_of=args.as_of)
        result = orchestrator.run_pipeline()
    finally:
        stop_spark_session(spark)

    print("=" * 50)
    if result.success:
        print("🎉 PIPELINE COMPLETED SUCCESSFULLY!")
        print(f"Run ID: {result.run_id}")
        for stage_result in result.stage_results:
            print(f"  ✅ {stage_result.stage_name}: {stage_result.duration_seconds:.2f}s")
        print(f"Total Duration: {result.run.duration_seconds:.2f} seconds.")
        print("=" * 50)
        return 0

    print("❌ PIPELINE FAILED!")
    print(f"Run ID: {result.run_id}")
    print(f"Error: {result.error.cause}")
    print(f"Check the run log with: warehouse-pipeline log {result.run_id}")
    print("=" * 50)
    return 1


def run_stage_command(args: argparse.Namespace, config: PipelineConfig) -> int:
    """Run a single stage for diagnosis"""
    stage_name = {
        'ingest': 'ingestion',
        'transform': 'transformation',
        'quality': 'quality',
    }[args.command]

    spark = get_spark_session(config.spark_app_name, config.spark_master, config.get_spark_config())
    try:
        orchestrator = create_orchestrator(spark, config, in_memory=args.memory, as_of=args.as_of)
        result = orchestrator.run_stage(stage_name, run_id=args.run_id)
        stage = orchestrator.get_stage(stage_name)
    finally:
        stop_spark_session(spark)

    if stage_name == 'quality':
        from .silver.data_quality import generate_report
        if args.format == 'json':
            print(json.dumps([asdict(r) for r in stage.results], indent=2, default=str))
        else:
            print(generate_report(stage.results))

    status = "✅" if result.success else "❌"
    print(f"{status} {stage_name}: {result.message} ({result.duration_seconds:.2f}s)")
    return 0 if result.success else 1


def show_log_command(args: argparse.Namespace, config: PipelineConfig) -> int:
    """Print a run's persisted log entries ordered by start time"""
    run_log = JsonRunLog(config.audit_dir)
    entries = run_log.entries_for_run(args.run_id)
    if not entries:
        print(f"No run log entries found for run {args.run_id} in {config.audit_dir}")
        return 1

    for entry in entries:
        target = entry.entity_name or "-"
        rows = "" if entry.rows_affected is None else f" rows={entry.rows_affected}"
        duration = "" if entry.duration_seconds is None else f" {entry.duration_seconds:.2f}s"
        print(f"{entry.id:>4} {entry.start_time:%Y-%m-%d %H:%M:%S} {entry.stage:<8} "
              f"{entry.status.value:<7} {entry.operation_name} [{target}]{rows}{duration} {entry.message}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args.command = 'run'

    try:
        config = _load_config(args)
        setup_logging("warehouse_pipeline", config.log_level, config.log_format)

        if args.command == 'run':
            return run_pipeline_command(args, config)
        if args.command == 'log':
            return show_log_command(args, config)
        return run_stage_command(args, config)
    except (WarehousePipelineError, FileNotFoundError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
