"""
Shared utilities: configuration, logging and Spark session management
"""

from .config import PipelineConfig, get_config
from .logging import setup_logging
from .spark import get_spark_session, stop_spark_session

__all__ = [
    'PipelineConfig',
    'get_config',
    'setup_logging',
    'get_spark_session',
    'stop_spark_session',
]
