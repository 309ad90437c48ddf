"""
Logging Configuration

Centralized logging setup for the warehouse pipeline.
"""

import logging
import sys
from typing import Optional


DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    name: str = "WarehousePipeline",
    level: str = "INFO",
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration
    
    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format_string: Custom format string
        
    Returns:
        Configured logger
    """
    
    if format_string is None:
        format_string = DEFAULT_LOG_FORMAT
    
    log_level = getattr(logging, level.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")
    
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    
    # Remove existing handlers so repeated setup does not duplicate output
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(console_handler)
    
    logger.propagate = False
    
    return logger
