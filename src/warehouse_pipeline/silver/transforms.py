#!/usr/bin/env python3
"""
Silver Transform Primitives

Reusable cleansing building blocks. DataFrame-level helpers take and return
DataFrames; column-level helpers take and return Columns so they can be
composed inside a single select.
"""

from datetime import date
from typing import Dict, Optional, Union

from pyspark.sql import DataFrame, Column
from pyspark.sql.window import Window
from pyspark.sql.functions import (
    col, lit, when, trim, upper, abs as spark_abs, length, lead, date_sub,
    regexp_replace, to_date, row_number, coalesce, substring,
    monotonically_increasing_id
)

NOT_AVAILABLE = "n/a"
OPEN_END_DATE = date(9999, 12, 31)
INPUT_SEQUENCE_COL = "_input_seq"

ColumnOrName = Union[Column, str]


def _col(column: ColumnOrName) -> Column:
    return col(column) if isinstance(column, str) else column


def with_input_sequence(df: DataFrame, sequence_col: str = INPUT_SEQUENCE_COL) -> DataFrame:
    """
    Tag every row with its position in the raw input

    The ids are increasing in read order, which is what the dedup tie-break
    relies on. Read order matches the source file because raw tables are
    written as a single file (see CatalogLayerStore.replace).
    """
    return df.withColumn(sequence_col, monotonically_increasing_id())


def deduplicate_by_key(df: DataFrame, key: str, recency: str,
                       sequence_col: str = INPUT_SEQUENCE_COL) -> DataFrame:
    """
    Keep the most recent row per key

    Rows with a null key are dropped. Within a key, rows are ordered by
    recency descending with nulls last; ties go to the earliest raw row.

    Args:
        df: Raw DataFrame
        key: Business key column
        recency: Column deciding which version is newest
        sequence_col: Raw input order column, added when missing

    Returns:
        DataFrame with exactly one row per non-null key
    """
    added_sequence = sequence_col not in df.columns
    if added_sequence:
        df = with_input_sequence(df, sequence_col)

    window_spec = Window.partitionBy(key).orderBy(
        col(recency).desc_nulls_last(), col(sequence_col).asc()
    )

    deduped = df.filter(col(key).isNotNull()) \
        .withColumn("_rn", row_number().over(window_spec)) \
        .filter(col("_rn") == 1) \
        .drop("_rn")

    if added_sequence:
        deduped = deduped.drop(sequence_col)
    return deduped


def scd2_chain(df: DataFrame, key: str, start: str, end: str) -> DataFrame:
    """
    Derive validity end dates for versioned rows

    Per key, ordered by start date ascending, each version ends the day
    before the next version starts. The last version ends on 9999-12-31.
    """
    window_spec = Window.partitionBy(key).orderBy(col(start).asc())
    next_start = lead(col(start)).over(window_spec)

    return df.withColumn(
        end,
        when(next_start.isNull(), lit(OPEN_END_DATE)).otherwise(date_sub(next_start, 1))
    )


def clean_text(column: ColumnOrName) -> Column:
    """Remove tab, CR and LF characters and surrounding spaces"""
    return trim(regexp_replace(_col(column), "[\t\r\n]", ""))


def trim_text(column: ColumnOrName) -> Column:
    return trim(_col(column))


def standardize_category(column: ColumnOrName,
                         mapping: Dict[str, str],
                         fallback: Optional[str] = NOT_AVAILABLE,
                         passthrough: bool = False) -> Column:
    """
    Map coded values to canonical labels

    The value is cleaned and upper-cased before an exact match against the
    mapping keys (which must be upper case).

    Args:
        column: Source column
        mapping: Upper-case code to canonical label
        fallback: Label for unmatched values, including null
        passthrough: Return unmatched values cleaned instead of the fallback

    Returns:
        Standardized column
    """
    cleaned = clean_text(column)
    normalized = upper(cleaned)

    result = None
    for code, label in mapping.items():
        condition = normalized == lit(code)
        result = when(condition, lit(label)) if result is None else result.when(condition, lit(label))

    default = cleaned if passthrough else lit(fallback)
    if result is None:
        return default
    return result.otherwise(default)


def safe_date(column: ColumnOrName, fmt: str = "yyyyMMdd", width: int = 8) -> Column:
    """
    Parse fixed-width numeric text as a date

    '0', values of the wrong width, non-digit text and impossible dates all
    become null.
    """
    value = _col(column).cast("string")
    malformed = (
        value.isNull()
        | (value == lit("0"))
        | (length(value) != width)
        | ~value.rlike(r"^[0-9]+$")
    )
    return when(malformed, lit(None).cast("date")).otherwise(to_date(value, fmt))


def repair_sales_amount(sales: ColumnOrName, quantity: ColumnOrName, price: ColumnOrName) -> Column:
    """
    Recompute sales as quantity * |price| when missing, non-positive or inconsistent
    """
    sales, quantity, price = _col(sales), _col(quantity), _col(price)
    expected = quantity * spark_abs(price)
    return when(
        sales.isNull() | (sales <= 0) | (sales != expected),
        expected
    ).otherwise(sales)


def repair_unit_price(price: ColumnOrName, sales: ColumnOrName, quantity: ColumnOrName) -> Column:
    """
    Derive price as sales / quantity when missing or non-positive

    Integer division; a zero quantity yields null.
    """
    price, sales, quantity = _col(price), _col(sales), _col(quantity)
    safe_quantity = when(quantity == 0, lit(None)).otherwise(quantity)
    return when(
        price.isNull() | (price <= 0),
        (sales / safe_quantity).cast("int")
    ).otherwise(price)


def null_default(column: ColumnOrName, default) -> Column:
    return coalesce(_col(column), lit(default))


def strip_prefix(column: ColumnOrName, prefix: str) -> Column:
    value = _col(column)
    return when(
        value.startswith(prefix),
        value.substr(lit(len(prefix) + 1), length(value))
    ).otherwise(value)


def remove_characters(column: ColumnOrName, characters: str) -> Column:
    return regexp_replace(_col(column), f"[{characters}]", "")


def date_within(column: ColumnOrName, lower: date, upper_bound: date) -> Column:
    """Null out dates outside [lower, upper_bound]"""
    value = _col(column)
    return when(
        (value < lit(lower)) | (value > lit(upper_bound)),
        lit(None).cast("date")
    ).otherwise(value)


COUNTRY_CODES = {
    "US": "United States",
    "USA": "United States",
    "DE": "Germany",
}

CANONICAL_COUNTRIES = (
    "Australia",
    "Canada",
    "France",
    "Germany",
    "United Kingdom",
    "United States",
)


def normalize_country(column: ColumnOrName) -> Column:
    """
    Standardize country codes and names

    Known codes map to their full name, canonical names (any case) map to
    themselves, anything else including empty values becomes 'n/a'.
    """
    mapping = dict(COUNTRY_CODES)
    mapping.update({name.upper(): name for name in CANONICAL_COUNTRIES})
    return standardize_category(column, mapping, fallback=NOT_AVAILABLE)


def product_category_id(prd_key: ColumnOrName) -> Column:
    """First five characters of the product key with '-' replaced by '_'"""
    return regexp_replace(substring(_col(prd_key), 1, 5), "-", "_")


def product_key(prd_key: ColumnOrName) -> Column:
    """Product key without its category prefix"""
    value = _col(prd_key)
    return value.substr(lit(7), length(value))
