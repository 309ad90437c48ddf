#!/usr/bin/env python3
"""
Entity Catalog

Static description of the CRM and ERP entities the warehouse carries: their
processing order and their raw and cleansed schemas.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict

from pyspark.sql import DataFrame
from pyspark.sql.types import (
    StructType, StructField, StringType, IntegerType, DateType, TimestampType
)


class Entity(str, Enum):
    """Entities in processing order"""
    CRM_CUST_INFO = "crm_cust_info"
    CRM_PRD_INFO = "crm_prd_info"
    CRM_SALES_DETAILS = "crm_sales_details"
    ERP_CUST_AZ12 = "erp_cust_az12"
    ERP_LOC_A101 = "erp_loc_a101"
    ERP_PX_CAT_G1V2 = "erp_px_cat_g1v2"

    @classmethod
    def from_name(cls, name: str) -> 'Entity':
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(entity.value for entity in cls)
            raise ValueError(f"Unknown entity '{name}'. Valid entities: {valid}") from None


def _text(name: str) -> StructField:
    return StructField(name, StringType(), True)


def _int(name: str) -> StructField:
    return StructField(name, IntegerType(), True)


def _date(name: str) -> StructField:
    return StructField(name, DateType(), True)


DWH_CREATE_DATE = "dwh_create_date"
_AUDIT = StructField(DWH_CREATE_DATE, TimestampType(), True)

# Raw schemas are load tolerant: everything nullable, sales dates kept as text
RAW_SCHEMAS: Dict[Entity, StructType] = {
    Entity.CRM_CUST_INFO: StructType([
        _int("cst_id"), _text("cst_key"), _text("cst_firstname"), _text("cst_lastname"),
        _text("cst_marital_status"), _text("cst_gndr"), _date("cst_create_date"),
    ]),
    Entity.CRM_PRD_INFO: StructType([
        _int("prd_id"), _text("prd_key"), _text("prd_nm"), _int("prd_cost"),
        _text("prd_line"), _date("prd_start_dt"), _date("prd_end_dt"),
    ]),
    Entity.CRM_SALES_DETAILS: StructType([
        _text("sls_ord_num"), _text("sls_prd_key"), _int("sls_cust_id"),
        _text("sls_order_dt"), _text("sls_ship_dt"), _text("sls_due_dt"),
        _int("sls_sales"), _int("sls_quantity"), _int("sls_price"),
    ]),
    Entity.ERP_CUST_AZ12: StructType([
        _text("cid"), _date("bdate"), _text("gen"),
    ]),
    Entity.ERP_LOC_A101: StructType([
        _text("cid"), _text("cntry"),
    ]),
    Entity.ERP_PX_CAT_G1V2: StructType([
        _text("id"), _text("cat"), _text("subcat"), _text("maintenance"),
    ]),
}

CLEANSED_SCHEMAS: Dict[Entity, StructType] = {
    Entity.CRM_CUST_INFO: StructType([
        _int("cst_id"), _text("cst_key"), _text("cst_firstname"), _text("cst_lastname"),
        _text("cst_marital_status"), _text("cst_gndr"), _date("cst_create_date"), _AUDIT,
    ]),
    Entity.CRM_PRD_INFO: StructType([
        _int("prd_id"), _text("cat_id"), _text("prd_key"), _text("prd_nm"), _int("prd_cost"),
        _text("prd_line"), _date("prd_start_dt"), _date("prd_end_dt"), _AUDIT,
    ]),
    Entity.CRM_SALES_DETAILS: StructType([
        _text("sls_ord_num"), _text("sls_prd_key"), _int("sls_cust_id"),
        _date("sls_order_dt"), _date("sls_ship_dt"), _date("sls_due_dt"),
        _int("sls_sales"), _int("sls_quantity"), _int("sls_price"), _AUDIT,
    ]),
    Entity.ERP_CUST_AZ12: StructType([
        _text("cid"), _date("bdate"), _text("gen"), _AUDIT,
    ]),
    Entity.ERP_LOC_A101: StructType([
        _text("cid"), _text("cntry"), _AUDIT,
    ]),
    Entity.ERP_PX_CAT_G1V2: StructType([
        _text("id"), _text("cat"), _text("subcat"), _text("maintenance"), _AUDIT,
    ]),
}

PROCESS_ORDER: Dict[Entity, int] = {entity: order for order, entity in enumerate(Entity, start=1)}


@dataclass(frozen=True)
class EntitySpec:
    """
    Catalog row binding an entity to its cleansing strategy

    ``transform`` receives the raw snapshot and the transform context and
    returns the cleansed snapshot without the audit column.
    """
    entity: Entity
    process_order: int
    transform: Callable[..., DataFrame]
    raw_schema: StructType
    cleansed_schema: StructType

    @property
    def name(self) -> str:
        return self.entity.value


def raw_schema(entity: Entity) -> StructType:
    return RAW_SCHEMAS[entity]

