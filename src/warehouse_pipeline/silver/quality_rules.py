#!/usr/bin/env python3
"""
Silver Quality Rules

Closed catalog of checks run against the cleansed layer. Rules are evaluated
in the order they appear in QUALITY_RULES; each carries a stable numeric code
that appears in failure messages.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Tuple

from pyspark.sql import DataFrame
from pyspark.sql.functions import col, lit, abs as spark_abs

from ..common.entity_catalog import Entity
from .entity_transforms import MIN_BIRTH_DATE
from .transforms import CANONICAL_COUNTRIES, NOT_AVAILABLE


@dataclass
class QualityContext:
    """Values a rule may compare against"""
    as_of: date = field(default_factory=date.today)


@dataclass(frozen=True)
class QualityRule:
    """A named, coded check over one cleansed entity"""
    code: int
    name: str
    entity: Entity
    count_violations: Callable[[DataFrame, QualityContext], int]

    @property
    def entity_name(self) -> str:
        return self.entity.value

    def passed_message(self) -> str:
        return f"{self.name} passed."

    def failed_message(self, violation_count: int) -> str:
        return f"[{self.code}] {self.name} | Found {violation_count} failing rows."


def _key_violations(key: str) -> Callable[[DataFrame, QualityContext], int]:
    """Count key groups that are null or occur more than once"""
    def count_violations(df: DataFrame, context: QualityContext) -> int:
        return df.groupBy(key).count() \
            .filter((col("count") > 1) | col(key).isNull()) \
            .count()
    return count_violations


def _not_in(column: str, allowed: Tuple[str, ...]) -> Callable[[DataFrame, QualityContext], int]:
    """Count rows whose value is outside the allowed set; nulls are not counted"""
    def count_violations(df: DataFrame, context: QualityContext) -> int:
        return df.filter(~col(column).isin(list(allowed))).count()
    return count_violations


def _end_before_start(df: DataFrame, context: QualityContext) -> int:
    return df.filter(col("prd_end_dt").isNotNull() & (col("prd_end_dt") < col("prd_start_dt"))).count()


def _future_order_dates(df: DataFrame, context: QualityContext) -> int:
    return df.filter(col("sls_order_dt") > lit(context.as_of)).count()


def _ship_before_order(df: DataFrame, context: QualityContext) -> int:
    return df.filter(col("sls_ship_dt") < col("sls_order_dt")).count()


def _inconsistent_sales_totals(df: DataFrame, context: QualityContext) -> int:
    expected = col("sls_quantity") * col("sls_price")
    return df.filter(spark_abs(col("sls_sales") - expected) > 0.01).count()


def _birth_dates_out_of_range(df: DataFrame, context: QualityContext) -> int:
    return df.filter(
        (col("bdate") < lit(MIN_BIRTH_DATE)) | (col("bdate") > lit(context.as_of))
    ).count()


QUALITY_RULES: List[QualityRule] = [
    QualityRule(
        50001, "PK check for silver.crm_cust_info (NULLs or Duplicates)",
        Entity.CRM_CUST_INFO, _key_violations("cst_id"),
    ),
    QualityRule(
        50002, "Standardization check for cst_marital_status",
        Entity.CRM_CUST_INFO, _not_in("cst_marital_status", ("Single", "Married", NOT_AVAILABLE)),
    ),
    QualityRule(
        50003, "PK check for silver.crm_prd_info (NULLs or Duplicates)",
        Entity.CRM_PRD_INFO, _key_violations("prd_id"),
    ),
    QualityRule(
        50004, "Date range check for silver.crm_prd_info (end_dt < start_dt)",
        Entity.CRM_PRD_INFO, _end_before_start,
    ),
    QualityRule(
        50005, "Future date check for silver.crm_sales_details",
        Entity.CRM_SALES_DETAILS, _future_order_dates,
    ),
    QualityRule(
        50006, "Ship date validation for silver.crm_sales_details",
        Entity.CRM_SALES_DETAILS, _ship_before_order,
    ),
    QualityRule(
        50007, "Sales total consistency for silver.crm_sales_details",
        Entity.CRM_SALES_DETAILS, _inconsistent_sales_totals,
    ),
    QualityRule(
        50008, "Out-of-range birth dates for silver.erp_cust_az12",
        Entity.ERP_CUST_AZ12, _birth_dates_out_of_range,
    ),
    QualityRule(
        50009, "Standardization check for gen in silver.erp_cust_az12",
        Entity.ERP_CUST_AZ12, _not_in("gen", ("Female", "Male", NOT_AVAILABLE)),
    ),
    QualityRule(
        50010, "Standardization check for cntry in silver.erp_loc_a101",
        Entity.ERP_LOC_A101, _not_in("cntry", CANONICAL_COUNTRIES + (NOT_AVAILABLE,)),
    ),
    QualityRule(
        50011, "Standardization check for maintenance in silver.erp_px_cat_g1v2",
        Entity.ERP_PX_CAT_G1V2, _not_in("maintenance", ("Yes", "No", NOT_AVAILABLE)),
    ),
]


def get_rule(code: int) -> QualityRule:
    for rule in QUALITY_RULES:
        if rule.code == code:
            return rule
    raise LookupError(f"No quality rule with code {code}")
