"""
Silver Layer Package

Contains modules for silver layer data processing including:
- Per-entity cleansing (deduplication, SCD Type 2 end dates, standardization)
- Data quality gate over the cleansed tables
"""

from .transform_engine import TransformEngine
from .data_quality import QualityGate, generate_report
from .entity_transforms import TransformContext
from .quality_rules import QualityContext, QUALITY_RULES

__all__ = ['TransformEngine', 'QualityGate', 'generate_report', 'TransformContext',
           'QualityContext', 'QUALITY_RULES']
