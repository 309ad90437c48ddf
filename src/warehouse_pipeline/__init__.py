"""
Warehouse Pipeline Package

Staged ELT pipeline for the CRM/ERP data warehouse.
- Bronze Layer: Raw CSV ingestion (truncate-then-load, loosely typed)
- Silver Layer: Cleansing, standardization and SCD2 history
- Quality Gate: Fail-fast validation of the silver layer
"""

__version__ = "1.0.0"
__author__ = "Data Warehouse Engineering Team"
