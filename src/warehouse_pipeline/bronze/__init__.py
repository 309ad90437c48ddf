"""
Bronze Layer - Raw Data Ingestion

Truncate-then-load of source CSV files, no transformation
"""

from .bronze_loader import BronzeLoader, IngestionStage, LoadReport
from .source_registry import SourceRegistry, SourceEntry

__all__ = ['BronzeLoader', 'IngestionStage', 'LoadReport', 'SourceRegistry', 'SourceEntry']
