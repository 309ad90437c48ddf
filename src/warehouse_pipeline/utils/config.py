"""
Configuration Management

Handles configuration for the warehouse pipeline.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, fields

from ..common.errors import PipelineConfigError


@dataclass
class PipelineConfig:
    """
    Configuration class for the warehouse pipeline
    """

    # Spark configuration
    spark_master: str = "local[*]"
    spark_app_name: str = "WarehousePipeline"

    # Catalog configuration
    catalog: str = "spark_catalog"
    bronze_namespace: str = "bronze"
    silver_namespace: str = "silver"

    # Storage configuration
    warehouse_dir: str = "spark-warehouse"
    audit_dir: str = "etl_log"

    # Source registry
    sources_file: str = "pipeline_configs/sources.yml"
    data_root: Optional[str] = None

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def from_file(cls, config_path: str) -> 'PipelineConfig':
        """
        Load configuration from YAML file

        Args:
            config_path: Path to configuration file

        Returns:
            PipelineConfig instance
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise PipelineConfigError(f"Configuration file {config_path} must contain a mapping")

        known = {field.name for field in fields(cls)}
        unknown = sorted(set(config_data) - known)
        if unknown:
            raise PipelineConfigError(f"Unknown configuration keys in {config_path}: {unknown}")

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'PipelineConfig':
        """
        Load configuration from environment variables

        Returns:
            PipelineConfig instance
        """
        return cls(
            spark_master=os.getenv("WAREHOUSE_SPARK_MASTER", "local[*]"),
            spark_app_name=os.getenv("WAREHOUSE_SPARK_APP_NAME", "WarehousePipeline"),
            catalog=os.getenv("WAREHOUSE_CATALOG", "spark_catalog"),
            bronze_namespace=os.getenv("WAREHOUSE_BRONZE_NAMESPACE", "bronze"),
            silver_namespace=os.getenv("WAREHOUSE_SILVER_NAMESPACE", "silver"),
            warehouse_dir=os.getenv("WAREHOUSE_DIR", "spark-warehouse"),
            audit_dir=os.getenv("WAREHOUSE_AUDIT_DIR", "etl_log"),
            sources_file=os.getenv("WAREHOUSE_SOURCES_FILE", "pipeline_configs/sources.yml"),
            data_root=os.getenv("WAREHOUSE_DATA_ROOT"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary

        Returns:
            Configuration dictionary
        """
        return {
            "spark_master": self.spark_master,
            "spark_app_name": self.spark_app_name,
            "catalog": self.catalog,
            "bronze_namespace": self.bronze_namespace,
            "silver_namespace": self.silver_namespace,
            "warehouse_dir": self.warehouse_dir,
            "audit_dir": self.audit_dir,
            "sources_file": self.sources_file,
            "data_root": self.data_root,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }

    def get_spark_config(self) -> Dict[str, str]:
        """
        Get Spark-specific configuration

        Returns:
            Spark configuration dictionary
        """
        return {
            "spark.sql.warehouse.dir": str(Path(self.warehouse_dir).resolve()),
        }

    def get_table_names(self) -> Dict[str, str]:
        """
        Get fully qualified namespace prefixes for each layer

        Returns:
            Dictionary of layer name to qualified namespace
        """
        return {
            "bronze": f"{self.catalog}.{self.bronze_namespace}",
            "silver": f"{self.catalog}.{self.silver_namespace}",
        }

    def save_to_file(self, config_path: str):
        """
        Save configuration to YAML file

        Args:
            config_path: Path to save configuration file
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    def __str__(self) -> str:
        """String representation of configuration"""
        return f"PipelineConfig(app_name={self.spark_app_name}, catalog={self.catalog})"


def get_config(config_path: Optional[str] = None) -> PipelineConfig:
    """
    Get configuration from file or environment

    Args:
        config_path: Optional path to configuration file

    Returns:
        PipelineConfig instance
    """
    if config_path:
        if not Path(config_path).exists():
            raise PipelineConfigError(f"Configuration file not found: {config_path}")
        return PipelineConfig.from_file(config_path)
    return PipelineConfig.from_env()
