#!/usr/bin/env python3
"""
Unit tests for layer stores
"""

import pytest
from unittest.mock import Mock, call

from warehouse_pipeline.common.entity_catalog import Entity, RAW_SCHEMAS
from warehouse_pipeline.common.layer_store import CatalogLayerStore
from warehouse_pipeline.utils.config import PipelineConfig


class TestCatalogLayerStore:
    """Test catalog table naming and namespace setup"""

    @pytest.fixture
    def config(self):
        return PipelineConfig(catalog="test_catalog", bronze_namespace="raw", silver_namespace="clean")

    def test_table_names_follow_config(self, config):
        store = CatalogLayerStore(Mock(), config)

        assert store.table_name("bronze", "crm_cust_info") == "test_catalog.raw.crm_cust_info"
        assert store.table_name("silver", "erp_loc_a101") == "test_catalog.clean.erp_loc_a101"

    def test_unknown_layer(self, config):
        with pytest.raises(ValueError):
            CatalogLayerStore(Mock(), config).table_name("gold", "crm_cust_info")

    def test_create_namespaces(self, config):
        mock_spark = Mock()

        CatalogLayerStore(mock_spark, config).create_namespaces()

        mock_spark.sql.assert_has_calls([
            call("CREATE NAMESPACE IF NOT EXISTS test_catalog.raw"),
            call("CREATE NAMESPACE IF NOT EXISTS test_catalog.clean"),
        ])

    def test_read_and_exists_use_qualified_name(self, config):
        mock_spark = Mock()
        store = CatalogLayerStore(mock_spark, config)

        store.read("silver", "crm_prd_info")
        store.exists("bronze", "crm_prd_info")

        mock_spark.table.assert_called_once_with("test_catalog.clean.crm_prd_info")
        mock_spark.catalog.tableExists.assert_called_once_with("test_catalog.raw.crm_prd_info")

    def test_truncate_overwrites_with_empty_frame(self, config):
        mock_spark = Mock()
        schema = RAW_SCHEMAS[Entity.ERP_LOC_A101]

        CatalogLayerStore(mock_spark, config).truncate("bronze", "erp_loc_a101", schema)

        mock_spark.createDataFrame.assert_called_once_with([], schema)
        writer = mock_spark.createDataFrame.return_value.write.mode
        writer.assert_called_once_with("overwrite")
        writer.return_value.saveAsTable.assert_called_once_with("test_catalog.raw.erp_loc_a101")

    def test_raw_tables_are_written_as_one_file(self, config):
        mock_spark = Mock()
        df = Mock()

        CatalogLayerStore(mock_spark, config).replace("bronze", "crm_cust_info", df)

        df.coalesce.assert_called_once_with(1)
        df.coalesce.return_value.write.mode.return_value.saveAsTable.assert_called_once_with(
            "test_catalog.raw.crm_cust_info"
        )
        mock_spark.table.return_value.count.assert_called_once()

    def test_cleansed_tables_keep_their_partitioning(self, config):
        df = Mock()

        CatalogLayerStore(Mock(), config).replace("silver", "crm_cust_info", df)

        df.coalesce.assert_not_called()
        df.write.mode.return_value.saveAsTable.assert_called_once_with("test_catalog.clean.crm_cust_info")
