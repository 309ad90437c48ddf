"""
Spark Session Management

Handles Spark session creation for a single-driver warehouse run. Every
stage runs synchronously on one session; no cluster is required.
"""

import logging
from typing import Optional

from pyspark.sql import SparkSession


def get_spark_session(
    app_name: str = "WarehousePipeline",
    master: str = "local[*]",
    config: Optional[dict] = None
) -> SparkSession:
    """
    Create and configure Spark session with conservative local settings

    Args:
        app_name: Spark application name
        master: Spark master URL
        config: Additional Spark configuration

    Returns:
        Configured SparkSession
    """

    default_config = {
        # === MEMORY MANAGEMENT ===
        "spark.driver.memory": "1g",
        "spark.driver.maxResultSize": "512m",

        # === PARALLELISM ===
        # Source files are small; keep shuffles cheap
        "spark.default.parallelism": "4",
        "spark.sql.shuffle.partitions": "4",

        # === SQL SEMANTICS ===
        # Malformed casts and dates become NULL instead of failing the job
        "spark.sql.ansi.enabled": "false",
        "spark.sql.legacy.timeParserPolicy": "CORRECTED",
        "spark.sql.session.timeZone": "UTC",

        # === UI ===
        "spark.ui.enabled": "false",
        "spark.ui.showConsoleProgress": "false",
    }

    if config:
        default_config.update(config)

    builder = SparkSession.builder \
        .appName(app_name) \
        .master(master)

    for key, value in default_config.items():
        builder = builder.config(key, value)

    spark = builder.getOrCreate()

    # Set log level to reduce noise
    spark.sparkContext.setLogLevel("WARN")

    logging.getLogger(__name__).info(
        f"✅ Spark session created: {app_name} (master={master}, version={spark.version})"
    )

    return spark


def stop_spark_session(spark: SparkSession):
    """
    Stop Spark session gracefully

    Args:
        spark: SparkSession to stop
    """
    logger = logging.getLogger(__name__)
    try:
        spark.stop()
        logger.info("✅ Spark session stopped")
    except Exception as e:
        logger.error(f"❌ Error stopping Spark session: {e}")
