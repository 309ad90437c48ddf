#!/usr/bin/env python3
"""
Source Registry

YAML-based list of source files feeding the bronze layer, one entry per
entity, in load order.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Any, Optional

import yaml

from ..common.entity_catalog import Entity
from ..common.errors import PipelineConfigError

ROOT_PLACEHOLDER = "${ROOT}"
DATA_ROOT_ENV = "WAREHOUSE_DATA_ROOT"


@dataclass(frozen=True)
class SourceEntry:
    """Location of the source file for one bronze table"""
    entity_name: str
    location: str


class SourceRegistry:
    """
    Ordered mapping of entity to source file location

    Expected file layout::

        version: "1.0"
        root_data_path: datasets
        sources:
          - entity: crm_cust_info
            file: ${ROOT}/source_crm/cust_info.csv

    ``${ROOT}`` is replaced by the data root, which is resolved in order from
    the explicit ``data_root`` argument, the ``WAREHOUSE_DATA_ROOT``
    environment variable and ``root_data_path`` in the file. A relative root
    is resolved against the registry file's directory.
    """

    def __init__(self, entries: List[SourceEntry]):
        self.logger = logging.getLogger(__name__)
        self._entries = list(entries)

        seen = set()
        for entry in self._entries:
            if entry.entity_name in seen:
                raise PipelineConfigError(f"Duplicate source entry for entity '{entry.entity_name}'")
            seen.add(entry.entity_name)

    @classmethod
    def from_file(cls, sources_file: str, data_root: Optional[str] = None) -> 'SourceRegistry':
        """
        Load the registry from a YAML file

        Args:
            sources_file: Path to the sources YAML
            data_root: Optional override for the data root

        Returns:
            SourceRegistry instance
        """
        path = Path(sources_file)
        if not path.exists():
            raise PipelineConfigError(f"Source registry not found: {path}")

        with open(path, 'r') as f:
            try:
                config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise PipelineConfigError(f"Invalid YAML in source registry {path}: {e}") from e

        cls._validate_config(config, path)

        root = data_root or os.getenv(DATA_ROOT_ENV) or config.get("root_data_path") or "."
        root_path = Path(root)
        if not root_path.is_absolute():
            root_path = (path.parent / root_path).resolve()

        entries = [
            SourceEntry(
                entity_name=Entity.from_name(source["entity"]).value,
                location=str(source["file"]).replace(ROOT_PLACEHOLDER, str(root_path)),
            )
            for source in config["sources"]
        ]

        registry = cls(entries)
        registry.logger.info(f"Loaded {len(entries)} source entries from {path} (root: {root_path})")
        return registry

    @staticmethod
    def _validate_config(config: Any, path: Path):
        """Validate source registry structure"""
        if not isinstance(config, dict) or "sources" not in config:
            raise PipelineConfigError(f"Missing required configuration section 'sources' in {path}")

        sources = config["sources"]
        if not isinstance(sources, list) or not sources:
            raise PipelineConfigError(f"Section 'sources' in {path} must be a non-empty list")

        for index, source in enumerate(sources):
            if not isinstance(source, dict):
                raise PipelineConfigError(f"Source #{index} in {path} must be a mapping")
            for required in ("entity", "file"):
                if required not in source:
                    raise PipelineConfigError(f"Source #{index} in {path} missing required field: {required}")
            try:
                Entity.from_name(source["entity"])
            except ValueError as e:
                raise PipelineConfigError(str(e)) from e

    def entries(self, only: Optional[List[str]] = None) -> List[SourceEntry]:
        """
        Get source entries in registry order

        Args:
            only: Optional entity names to keep
        """
        if not only:
            return list(self._entries)
        wanted = {Entity.from_name(name).value for name in only}
        return [entry for entry in self._entries if entry.entity_name in wanted]

    def location_for(self, entity_name: str) -> Optional[str]:
        for entry in self._entries:
            if entry.entity_name == entity_name:
                return entry.location
        return None

    def __len__(self) -> int:
        return len(self._entries)
