#!/usr/bin/env python3
"""
Warehouse Pipeline Runner Script

Runs bronze ingestion, silver transformation and the silver quality gate
under a single run id.

Usage:
    python scripts/run_pipeline.py [--config PATH] [--memory] [--as-of YYYY-MM-DD]
"""

import sys
from pathlib import Path

# Add the src directory to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from warehouse_pipeline.cli import main


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:] + ["run"]))
