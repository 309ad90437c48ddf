#!/usr/bin/env python3
"""
Unit tests for per-entity cleansing strategies
"""

import pytest
from datetime import date

from warehouse_pipeline.common.entity_catalog import Entity, PROCESS_ORDER
from warehouse_pipeline.silver.entity_transforms import (
    build_entity_specs, get_transform, ENTITY_SPECS, register
)


class TestEntityRegistry:
    """Test entity to strategy binding"""

    def test_every_entity_has_a_transform(self):
        assert {spec.entity for spec in ENTITY_SPECS} == set(Entity)

    def test_specs_are_in_processing_order(self):
        orders = [spec.process_order for spec in ENTITY_SPECS]
        assert orders == sorted(orders)
        assert ENTITY_SPECS[0].entity == Entity.CRM_CUST_INFO
        assert ENTITY_SPECS[-1].entity == Entity.ERP_PX_CAT_G1V2

    def test_filter_by_name(self):
        specs = build_entity_specs(["erp_loc_a101", "CRM_CUST_INFO"])
        assert [spec.name for spec in specs] == ["crm_cust_info", "erp_loc_a101"]

    def test_unknown_entity_is_rejected(self):
        with pytest.raises(ValueError):
            build_entity_specs(["crm_unknown"])

    def test_double_registration_is_rejected(self):
        with pytest.raises(ValueError):
            register(Entity.CRM_CUST_INFO)(lambda raw, context: raw)

    def test_process_order_starts_at_one(self):
        assert PROCESS_ORDER[Entity.CRM_CUST_INFO] == 1
        assert PROCESS_ORDER[Entity.ERP_PX_CAT_G1V2] == 6


class TestCustomerTransform:
    """Test crm_cust_info cleansing"""

    def test_keeps_latest_version_of_customer_seven(self, raw_df, transform_context):
        raw = raw_df(Entity.CRM_CUST_INFO, [
            (7, "AW7", "Old", "Name", "S", "F", date(2024, 1, 1)),
            (7, "AW7", " New ", " Name ", "m", "f", date(2024, 6, 1)),
        ])

        rows = get_transform(Entity.CRM_CUST_INFO)(raw, transform_context).collect()

        assert len(rows) == 1
        row = rows[0]
        assert row["cst_create_date"] == date(2024, 6, 1)
        assert row["cst_firstname"] == "New"
        assert row["cst_lastname"] == "Name"
        assert row["cst_marital_status"] == "Married"
        assert row["cst_gndr"] == "Female"

    def test_null_ids_and_unknown_codes(self, raw_df, transform_context):
        raw = raw_df(Entity.CRM_CUST_INFO, [
            (None, "AW0", "No", "Id", "S", "M", date(2024, 1, 1)),
            (1, "AW1", "A", "B", "X", None, date(2024, 1, 1)),
        ])

        rows = get_transform(Entity.CRM_CUST_INFO)(raw, transform_context).collect()

        assert [row["cst_id"] for row in rows] == [1]
        assert rows[0]["cst_marital_status"] == "n/a"
        assert rows[0]["cst_gndr"] == "n/a"


class TestProductTransform:
    """Test crm_prd_info cleansing"""

    def test_versions_get_chained_end_dates(self, raw_df, transform_context):
        raw = raw_df(Entity.CRM_PRD_INFO, [
            (1, "CO-RF-FR-R92B-58", "Frame", 10, "r", date(2024, 7, 1), None),
            (2, "CO-RF-FR-R92B-58", "Frame", None, "R ", date(2024, 1, 1), date(2023, 1, 1)),
        ])

        rows = sorted(
            get_transform(Entity.CRM_PRD_INFO)(raw, transform_context).collect(),
            key=lambda r: r["prd_start_dt"]
        )

        assert [row["prd_end_dt"] for row in rows] == [date(2024, 6, 30), date(9999, 12, 31)]
        assert rows[0]["prd_cost"] == 0
        assert all(row["cat_id"] == "CO_RF" for row in rows)
        assert all(row["prd_key"] == "FR-R92B-58" for row in rows)
        assert all(row["prd_line"] == "Road" for row in rows)

    def test_product_lines(self, raw_df, transform_context):
        raw = raw_df(Entity.CRM_PRD_INFO, [
            (1, "AA-BB-K1", "a", 1, "M", date(2024, 1, 1), None),
            (2, "AA-BB-K2", "b", 1, "S", date(2024, 1, 1), None),
            (3, "AA-BB-K3", "c", 1, "t", date(2024, 1, 1), None),
            (4, "AA-BB-K4", "d", 1, "Z", date(2024, 1, 1), None),
        ])

        lines = {
            row["prd_id"]: row["prd_line"]
            for row in get_transform(Entity.CRM_PRD_INFO)(raw, transform_context).collect()
        }

        assert lines == {1: "Mountain", 2: "Other Sales", 3: "Touring", 4: "n/a"}


class TestSalesTransform:
    """Test crm_sales_details cleansing"""

    def test_dates_are_parsed_and_measures_repaired(self, raw_df, transform_context):
        raw = raw_df(Entity.CRM_SALES_DETAILS, [
            ("SO1", "BK-1", 1, "20101229", "20110105", "0", 25, 2, 10),
            ("SO2", "BK-2", 2, "32154", "20110105", "20110110", 40, 2, None),
        ])

        rows = {
            row["sls_ord_num"]: row
            for row in get_transform(Entity.CRM_SALES_DETAILS)(raw, transform_context).collect()
        }

        assert rows["SO1"]["sls_order_dt"] == date(2010, 12, 29)
        assert rows["SO1"]["sls_due_dt"] is None
        assert rows["SO1"]["sls_sales"] == 20
        assert rows["SO1"]["sls_price"] == 10

        assert rows["SO2"]["sls_order_dt"] is None
        assert rows["SO2"]["sls_ship_dt"] == date(2011, 1, 5)
        assert rows["SO2"]["sls_price"] == 20


class TestErpTransforms:
    """Test ERP entity cleansing"""

    def test_erp_customers(self, raw_df, transform_context):
        raw = raw_df(Entity.ERP_CUST_AZ12, [
            ("NASAW001", date(1916, 2, 10), " Female\r"),
            ("AW002", date(1980, 1, 1), "m"),
            ("AW003", date(2099, 1, 1), ""),
        ])

        rows = {
            row["cid"]: row
            for row in get_transform(Entity.ERP_CUST_AZ12)(raw, transform_context).collect()
        }

        assert set(rows) == {"AW001", "AW002", "AW003"}
        assert rows["AW001"]["bdate"] is None
        assert rows["AW001"]["gen"] == "Female"
        assert rows["AW002"]["bdate"] == date(1980, 1, 1)
        assert rows["AW002"]["gen"] == "Male"
        assert rows["AW003"]["bdate"] is None
        assert rows["AW003"]["gen"] == "n/a"

    def test_locations(self, raw_df, transform_context):
        raw = raw_df(Entity.ERP_LOC_A101, [
            ("AW-001", "us"),
            ("AW-002", "zz"),
            ("AW-003", None),
            ("AW-004", "DE"),
        ])

        rows = {
            row["cid"]: row["cntry"]
            for row in get_transform(Entity.ERP_LOC_A101)(raw, transform_context).collect()
        }

        assert rows == {
            "AW001": "United States",
            "AW002": "n/a",
            "AW003": "n/a",
            "AW004": "Germany",
        }

    def test_product_categories(self, raw_df, transform_context):
        raw = raw_df(Entity.ERP_PX_CAT_G1V2, [
            ("AC_BR", " Accessories ", "Bike Racks ", "yes"),
            ("AC_BS", "Accessories", "Bike Stands", "No\r\n"),
            ("AC_XX", "Accessories", "Other", "Sometimes"),
        ])

        rows = {
            row["id"]: row
            for row in get_transform(Entity.ERP_PX_CAT_G1V2)(raw, transform_context).collect()
        }

        assert rows["AC_BR"]["cat"] == "Accessories"
        assert rows["AC_BR"]["subcat"] == "Bike Racks"
        assert rows["AC_BR"]["maintenance"] == "Yes"
        assert rows["AC_BS"]["maintenance"] == "No"
        assert rows["AC_XX"]["maintenance"] == "Sometimes"
