#!/usr/bin/env python3
"""
Data Quality Runner Script

Runs the silver layer quality gate against the current silver tables and
prints a report of the evaluated rules.

Usage:
    python scripts/run_data_quality.py [--config PATH] [--run-id ID] [--format json|text]

Options:
    --format     Output format (json or text, default: text)
"""

import argparse
import sys
from pathlib import Path

# Add the src directory to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from warehouse_pipeline.cli import main


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Run Data Quality Checks')
    parser.add_argument('--config', type=str, help='YAML configuration file')
    parser.add_argument('--run-id', type=str, dest='run_id', help='Run id to log under')
    parser.add_argument('--format', choices=['json', 'text'], default='text',
                        help='Output format (default: text)')
    args = parser.parse_args()

    argv = ['--config', args.config] if args.config else []
    argv.extend(['quality', '--format', args.format])
    if args.run_id:
        argv.extend(['--run-id', args.run_id])
    sys.exit(main(argv))
