#!/usr/bin/env python3
"""
Entity Transforms

One cleansing strategy per entity, registered against the Entity enum. Each
strategy maps the raw snapshot to the cleansed columns, without the audit
column that the transform engine appends.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from pyspark.sql import DataFrame
from pyspark.sql.functions import col

from ..common.entity_catalog import (
    Entity, EntitySpec, PROCESS_ORDER, RAW_SCHEMAS, CLEANSED_SCHEMAS
)
from .transforms import (
    deduplicate_by_key, scd2_chain, standardize_category,
    trim_text, safe_date, repair_sales_amount, repair_unit_price,
    null_default, strip_prefix, remove_characters, date_within, normalize_country,
    product_category_id, product_key
)

MIN_BIRTH_DATE = date(1924, 1, 1)

MARITAL_STATUS = {"S": "Single", "M": "Married"}
CUSTOMER_GENDER = {"F": "Female", "M": "Male"}
PRODUCT_LINE = {"M": "Mountain", "R": "Road", "S": "Other Sales", "T": "Touring"}
ERP_GENDER = {"F": "Female", "FEMALE": "Female", "M": "Male", "MALE": "Male"}
MAINTENANCE = {"YES": "Yes", "NO": "No"}


@dataclass
class TransformContext:
    """Run-level values shared by every entity transform"""
    as_of: date = field(default_factory=date.today)
    load_time: datetime = field(default_factory=datetime.now)


TransformFn = Callable[[DataFrame, TransformContext], DataFrame]

_TRANSFORMS: Dict[Entity, TransformFn] = {}


def register(entity: Entity) -> Callable[[TransformFn], TransformFn]:
    """Bind a transform function to an entity"""
    def decorator(fn: TransformFn) -> TransformFn:
        if entity in _TRANSFORMS:
            raise ValueError(f"Transform for {entity.value} already registered")
        _TRANSFORMS[entity] = fn
        return fn
    return decorator


@register(Entity.CRM_CUST_INFO)
def transform_customers(raw: DataFrame, context: TransformContext) -> DataFrame:
    """Latest version per customer, trimmed names, decoded marital status and gender"""
    deduped = deduplicate_by_key(raw, "cst_id", "cst_create_date")
    return deduped.select(
        col("cst_id"),
        col("cst_key"),
        trim_text("cst_firstname").alias("cst_firstname"),
        trim_text("cst_lastname").alias("cst_lastname"),
        standardize_category("cst_marital_status", MARITAL_STATUS).alias("cst_marital_status"),
        standardize_category("cst_gndr", CUSTOMER_GENDER).alias("cst_gndr"),
        col("cst_create_date"),
    )


@register(Entity.CRM_PRD_INFO)
def transform_products(raw: DataFrame, context: TransformContext) -> DataFrame:
    # Versions are chained on the full source key, before the category prefix is split off
    chained = scd2_chain(raw, "prd_key", "prd_start_dt", "prd_end_dt")
    return chained.select(
        col("prd_id"),
        product_category_id("prd_key").alias("cat_id"),
        product_key("prd_key").alias("prd_key"),
        col("prd_nm"),
        null_default("prd_cost", 0).cast("int").alias("prd_cost"),
        standardize_category("prd_line", PRODUCT_LINE).alias("prd_line"),
        col("prd_start_dt").cast("date").alias("prd_start_dt"),
        col("prd_end_dt").cast("date").alias("prd_end_dt"),
    )


@register(Entity.CRM_SALES_DETAILS)
def transform_sales(raw: DataFrame, context: TransformContext) -> DataFrame:
    """
    Typed order dates and repaired measures

    Both repairs read the raw columns, so a repaired sales value never feeds
    the price derivation.
    """
    return raw.select(
        col("sls_ord_num"),
        col("sls_prd_key"),
        col("sls_cust_id"),
        safe_date("sls_order_dt").alias("sls_order_dt"),
        safe_date("sls_ship_dt").alias("sls_ship_dt"),
        safe_date("sls_due_dt").alias("sls_due_dt"),
        repair_sales_amount("sls_sales", "sls_quantity", "sls_price").cast("int").alias("sls_sales"),
        col("sls_quantity"),
        repair_unit_price("sls_price", "sls_sales", "sls_quantity").cast("int").alias("sls_price"),
    )


@register(Entity.ERP_CUST_AZ12)
def transform_erp_customers(raw: DataFrame, context: TransformContext) -> DataFrame:
    return raw.select(
        strip_prefix("cid", "NAS").alias("cid"),
        date_within("bdate", MIN_BIRTH_DATE, context.as_of).alias("bdate"),
        standardize_category("gen", ERP_GENDER).alias("gen"),
    )


@register(Entity.ERP_LOC_A101)
def transform_locations(raw: DataFrame, context: TransformContext) -> DataFrame:
    return raw.select(
        remove_characters("cid", "-").alias("cid"),
        normalize_country("cntry").alias("cntry"),
    )


@register(Entity.ERP_PX_CAT_G1V2)
def transform_product_categories(raw: DataFrame, context: TransformContext) -> DataFrame:
    # Unknown maintenance values are kept (cleaned) rather than mapped to n/a
    return raw.select(
        col("id"),
        trim_text("cat").alias("cat"),
        trim_text("subcat").alias("subcat"),
        standardize_category("maintenance", MAINTENANCE, passthrough=True).alias("maintenance"),
    )


def get_transform(entity: Entity) -> TransformFn:
    try:
        return _TRANSFORMS[entity]
    except KeyError:
        raise LookupError(f"No transform registered for {entity.value}") from None


def build_entity_specs(only: Optional[List[str]] = None) -> List[EntitySpec]:
    """
    Build the entity catalog in processing order

    Args:
        only: Optional entity names to keep

    Returns:
        List of EntitySpec sorted by process_order
    """
    wanted = {Entity.from_name(name) for name in only} if only else set(Entity)
    specs = [
        EntitySpec(
            entity=entity,
            process_order=PROCESS_ORDER[entity],
            transform=get_transform(entity),
            raw_schema=RAW_SCHEMAS[entity],
            cleansed_schema=CLEANSED_SCHEMAS[entity],
        )
        for entity in Entity
        if entity in wanted
    ]
    return sorted(specs, key=lambda spec: spec.process_order)


ENTITY_SPECS: List[EntitySpec] = build_entity_specs()
