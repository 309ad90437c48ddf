#!/usr/bin/env python3
"""
Bronze Ingestion Runner Script

Loads every registered source file into the bronze layer. Useful to diagnose
ingestion problems without running the later stages.

Usage:
    python scripts/run_bronze_ingestion.py [--config PATH] [--run-id ID]
"""

import argparse
import sys
from pathlib import Path

# Add the src directory to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from warehouse_pipeline.cli import main


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Run Bronze Ingestion')
    parser.add_argument('--config', type=str, help='YAML configuration file')
    parser.add_argument('--run-id', type=str, dest='run_id', help='Run id to log under')
    args = parser.parse_args()

    argv = ['--config', args.config] if args.config else []
    argv.append('ingest')
    if args.run_id:
        argv.extend(['--run-id', args.run_id])
    sys.exit(main(argv))
