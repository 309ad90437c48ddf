#!/usr/bin/env python3
"""
Pytest configuration and shared fixtures
"""

import pytest
from datetime import date, datetime
from pathlib import Path
import tempfile
import shutil
from pyspark.sql import SparkSession

from warehouse_pipeline.common.entity_catalog import Entity, RAW_SCHEMAS, CLEANSED_SCHEMAS
from warehouse_pipeline.common.layer_store import MemoryLayerStore
from warehouse_pipeline.common.run_log import InMemoryRunLog
from warehouse_pipeline.silver.entity_transforms import TransformContext
from warehouse_pipeline.silver.quality_rules import QualityContext


AS_OF = date(2025, 1, 1)
LOAD_TIME = datetime(2025, 1, 1, 12, 0, 0)


@pytest.fixture(scope="session")
def spark_session():
    """Create a Spark session for testing"""
    spark = SparkSession.builder \
        .appName("TestWarehousePipeline") \
        .master("local[1]") \
        .config("spark.sql.shuffle.partitions", "1") \
        .config("spark.sql.ansi.enabled", "false") \
        .config("spark.sql.legacy.timeParserPolicy", "CORRECTED") \
        .config("spark.sql.session.timeZone", "UTC") \
        .config("spark.ui.enabled", "false") \
        .getOrCreate()

    yield spark

    # Cleanup
    spark.stop()


@pytest.fixture
def spark(spark_session):
    """Alias for spark_session fixture"""
    return spark_session


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def run_log():
    return InMemoryRunLog()


@pytest.fixture
def layer_store(spark):
    return MemoryLayerStore(spark)


@pytest.fixture
def transform_context():
    return TransformContext(as_of=AS_OF, load_time=LOAD_TIME)


@pytest.fixture
def quality_context():
    return QualityContext(as_of=AS_OF)


@pytest.fixture
def raw_df(spark):
    """Build a raw DataFrame for an entity from tuples"""
    def _build(entity: Entity, rows):
        return spark.createDataFrame(rows, RAW_SCHEMAS[entity])
    return _build


@pytest.fixture
def cleansed_df(spark):
    """Build a cleansed DataFrame for an entity from tuples (audit column appended)"""
    def _build(entity: Entity, rows):
        return spark.createDataFrame([tuple(row) + (LOAD_TIME,) for row in rows], CLEANSED_SCHEMAS[entity])
    return _build


# Valid cleansed rows for every entity: the quality gate passes on these
CLEAN_ROWS = {
    Entity.CRM_CUST_INFO: [
        (1, "AW1", "Jon", "Yang", "Married", "Male", date(2024, 1, 1)),
        (2, "AW2", "Eugene", "Huang", "Single", "Male", date(2024, 1, 1)),
    ],
    Entity.CRM_PRD_INFO: [
        (10, "CO_RF", "FR-R92B-58", "Frame", 0, "Road", date(2024, 1, 1), date(2024, 6, 30)),
        (11, "CO_RF", "FR-R92B-58", "Frame", 5, "Road", date(2024, 7, 1), date(9999, 12, 31)),
    ],
    Entity.CRM_SALES_DETAILS: [
        ("SO1", "FR-R92B-58", 1, date(2024, 1, 2), date(2024, 1, 9), date(2024, 1, 14), 20, 2, 10),
    ],
    Entity.ERP_CUST_AZ12: [
        ("AW1", date(1980, 5, 1), "Male"),
        ("AW2", None, "n/a"),
    ],
    Entity.ERP_LOC_A101: [
        ("AW1", "United States"),
        ("AW2", "n/a"),
    ],
    Entity.ERP_PX_CAT_G1V2: [
        ("CO_RF", "Components", "Road Frames", "Yes"),
    ],
}


@pytest.fixture
def clean_silver(layer_store, cleansed_df):
    """Memory store with a valid silver snapshot for every entity"""
    for entity, rows in CLEAN_ROWS.items():
        layer_store.replace("silver", entity.value, cleansed_df(entity, rows))
    return layer_store
