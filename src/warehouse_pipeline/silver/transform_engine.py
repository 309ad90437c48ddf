#!/usr/bin/env python3
"""
Silver Transform Engine

Rebuilds every cleansed snapshot from its raw snapshot, one entity at a time
in catalog order, stopping at the first entity that fails.
"""

from typing import List, Optional

from pyspark.sql import DataFrame
from pyspark.sql.functions import col, lit

from ..common.base_stage import BaseStage, persisted
from ..common.entity_catalog import EntitySpec, DWH_CREATE_DATE
from ..common.errors import TransformFailure
from ..common.layer_store import LayerStore, BRONZE, SILVER
from ..common.run_log import RunLog
from ..utils.config import PipelineConfig
from .entity_transforms import TransformContext, build_entity_specs


class TransformEngine(BaseStage):
    """
    Silver transformation stage

    Each entity's cleansed table is truncated before it is rebuilt, so an
    entity that fails is left empty rather than half written.
    """

    stage_name = "transformation"
    stage_label = "Silver"
    operation_name = "silver.load_silver"
    success_message = "Silver layer transformation completed successfully."

    def __init__(self,
                 run_log: RunLog,
                 layer_store: LayerStore,
                 config: Optional[PipelineConfig] = None,
                 context: Optional[TransformContext] = None,
                 only: Optional[List[str]] = None,
                 entity_specs: Optional[List[EntitySpec]] = None):
        super().__init__(run_log, layer_store, config)
        self.context = context
        self.entity_specs = entity_specs if entity_specs is not None else build_entity_specs(only)

    def _run(self, run_id: str) -> int:
        context = self.context or TransformContext()
        total_rows = 0

        for spec in sorted(self.entity_specs, key=lambda s: s.process_order):
            with self.run_log.track(run_id, self.stage_label, self.operation_name,
                                    entity=spec.name,
                                    schema_name=SILVER,
                                    message="Transforming data...") as tracked:
                rows = self.transform_entity(spec, context)
                tracked.rows_affected = rows
                tracked.message = f"Successfully transformed {rows} rows."

            self._record_metric(f"{spec.name}_rows", rows)
            total_rows += rows

        self._record_metric("entities_transformed", len(self.entity_specs))
        return total_rows

    def transform_entity(self, spec: EntitySpec, context: TransformContext) -> int:
        """
        Replace one cleansed snapshot

        Args:
            spec: Entity to rebuild
            context: Run-level transform values

        Returns:
            Number of rows written
        """
        try:
            self.layer_store.truncate(SILVER, spec.name, spec.cleansed_schema)
            raw = self.layer_store.read(BRONZE, spec.name)

            with persisted(raw) as cached:
                cleansed = self._conform(spec, spec.transform(cached, context), context)
                rows = self.layer_store.replace(SILVER, spec.name, cleansed)
        except Exception as e:
            raise TransformFailure(spec.name, str(e)) from e

        self.logger.info(f"🔄 {BRONZE}.{spec.name} -> {SILVER}.{spec.name}: {rows} rows")
        return rows

    @staticmethod
    def _conform(spec: EntitySpec, df: DataFrame, context: TransformContext) -> DataFrame:
        """Append the audit column and cast to the cleansed schema's column order and types"""
        df = df.withColumn(DWH_CREATE_DATE, lit(context.load_time).cast("timestamp"))
        return df.select([
            col(field.name).cast(field.dataType).alias(field.name)
            for field in spec.cleansed_schema.fields
        ])
