#!/usr/bin/env python3
"""
Pipeline Orchestrator

Runs the warehouse stages in fixed order under a single run id and decides
the outcome of the run.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from pyspark.sql import SparkSession

from .base_stage import BaseStage, StageResult
from .errors import OrchestrationFailure
from .layer_store import LayerStore, CatalogLayerStore, MemoryLayerStore
from .run_log import Run, RunLog, JsonRunLog
from ..utils.config import PipelineConfig

PIPELINE_STAGE_LABEL = "Pipeline"
PIPELINE_OPERATION = "orchestration.run_pipeline"


@dataclass
class RunResult:
    """Outcome of one pipeline run"""
    run: Run
    stage_results: List[StageResult] = field(default_factory=list)
    error: Optional[OrchestrationFailure] = None

    @property
    def run_id(self) -> str:
        return self.run.run_id

    @property
    def success(self) -> bool:
        return self.error is None

    def raise_for_status(self):
        """Raise the run's OrchestrationFailure if it failed"""
        if self.error is not None:
            raise self.error


class PipelineOrchestrator:
    """
    Sequential stage runner

    Stages run strictly in order: ingestion, transformation, quality, then an
    optional aggregation stage. The first failed stage fails the run and no
    later stage is started. There is no automatic retry.
    """

    def __init__(self,
                 run_log: RunLog,
                 ingestion: BaseStage,
                 transformation: BaseStage,
                 quality: BaseStage,
                 aggregation: Optional[BaseStage] = None):
        self.run_log = run_log
        self.logger = logging.getLogger(__name__)

        self._stages: Dict[str, BaseStage] = {
            "ingestion": ingestion,
            "transformation": transformation,
            "quality": quality,
        }
        if aggregation is not None:
            self._stages["aggregation"] = aggregation

    @property
    def stage_names(self) -> List[str]:
        return list(self._stages)

    def get_stage(self, stage_name: str) -> BaseStage:
        if stage_name not in self._stages:
            raise ValueError(f"Unknown stage '{stage_name}'. Valid stages: {self.stage_names}")
        return self._stages[stage_name]

    def run_pipeline(self, run_id: Optional[str] = None) -> RunResult:
        """
        Execute all stages under one run

        Args:
            run_id: Optional externally supplied run id

        Returns:
            RunResult; failures are reported, not raised
        """
        run = Run(run_id=run_id or str(uuid.uuid4()))

        self.logger.info("=" * 50)
        self.logger.info("🚀 Starting Data Warehouse ELT Pipeline...")
        self.logger.info("=" * 50)
        self.logger.info(f"Generated Master Run ID: {run.run_id}")
        self.logger.info(f"Pipeline Start Time: {run.start_time:%Y-%m-%d %H:%M:%S}")

        handle = self.run_log.begin(run.run_id, PIPELINE_STAGE_LABEL, PIPELINE_OPERATION,
                                    message="Pipeline started.")
        run.start()

        stage_results: List[StageResult] = []
        for stage_name, stage in self._stages.items():
            self.logger.info(f"--> Executing {stage_name} stage...")
            result = self._execute_stage(stage_name, stage, run.run_id)
            stage_results.append(result)

            if not result.success:
                failure = OrchestrationFailure(run.run_id, stage_name, result.error)
                self.run_log.fail(handle, result.message)
                run.finish(False)
                self._log_failure(run, failure)
                return RunResult(run=run, stage_results=stage_results, error=failure)

            self.logger.info(f"✅ {stage_name} stage completed successfully.")

        self.run_log.complete(handle, message="Pipeline completed successfully.")
        run.finish(True)

        self.logger.info("=" * 50)
        self.logger.info("🎉 PIPELINE COMPLETED SUCCESSFULLY!")
        self.logger.info(f"Total Duration: {run.duration_seconds:.2f} seconds.")
        self.logger.info("=" * 50)
        return RunResult(run=run, stage_results=stage_results)

    def run_stage(self, stage_name: str, run_id: Optional[str] = None) -> StageResult:
        """
        Execute a single stage outside a full run, for diagnosis

        Args:
            stage_name: One of stage_names
            run_id: Run id to log under; generated when omitted

        Returns:
            StageResult of the stage
        """
        stage = self.get_stage(stage_name)

        run_id = run_id or str(uuid.uuid4())
        self.logger.info(f"Running {stage_name} stage alone with run id {run_id}")
        return self._execute_stage(stage_name, stage, run_id)

    def _execute_stage(self, stage_name: str, stage: BaseStage, run_id: str) -> StageResult:
        start_time = datetime.now()
        try:
            return stage.execute(run_id)
        except Exception as e:
            # Stages report their own failures; this covers errors raised before a stage's work begins
            self.logger.error(f"❌ Stage {stage_name} raised: {e}")
            return StageResult(
                stage_name=stage_name,
                success=False,
                message=str(e),
                start_time=start_time,
                end_time=datetime.now(),
                error=e,
            )

    def _log_failure(self, run: Run, failure: OrchestrationFailure):
        self.logger.error("=" * 50)
        self.logger.error("❌ PIPELINE FAILED!")
        self.logger.error(f"Error occurred at: {run.end_time:%Y-%m-%d %H:%M:%S}")
        self.logger.error(f"Total Duration before failure: {run.duration_seconds:.2f} seconds.")
        self.logger.error(f"Check the run log with RunID: {run.run_id} for details.")
        self.logger.error(f"Error: {failure}")
        self.logger.error("=" * 50)


def create_orchestrator(spark: SparkSession,
                        config: PipelineConfig,
                        run_log: Optional[RunLog] = None,
                        layer_store: Optional[LayerStore] = None,
                        in_memory: bool = False,
                        as_of: Optional[date] = None,
                        aggregation: Optional[BaseStage] = None) -> PipelineOrchestrator:
    """
    Wire the default stages from configuration

    Args:
        spark: Spark session
        config: Pipeline configuration
        run_log: Run log to use; a JsonRunLog under config.audit_dir by default
        layer_store: Layer store to use; catalog tables by default
        in_memory: Use a MemoryLayerStore when no layer_store is given
        as_of: Reference date for date-window rules; today by default
        aggregation: Optional stage run after quality

    Returns:
        Configured PipelineOrchestrator
    """
    from ..bronze.bronze_loader import BronzeLoader, IngestionStage
    from ..bronze.source_registry import SourceRegistry
    from ..silver.data_quality import QualityGate
    from ..silver.entity_transforms import TransformContext
    from ..silver.quality_rules import QualityContext
    from ..silver.transform_engine import TransformEngine

    run_log = run_log or JsonRunLog(config.audit_dir)

    if layer_store is None:
        if in_memory:
            layer_store = MemoryLayerStore(spark)
        else:
            layer_store = CatalogLayerStore(spark, config)
            layer_store.create_namespaces()

    as_of = as_of or date.today()
    registry = SourceRegistry.from_file(config.sources_file, data_root=config.data_root)

    return PipelineOrchestrator(
        run_log=run_log,
        ingestion=IngestionStage(run_log, layer_store, registry, BronzeLoader(spark, layer_store), config),
        transformation=TransformEngine(run_log, layer_store, config, context=TransformContext(as_of=as_of)),
        quality=QualityGate(run_log, layer_store, config, context=QualityContext(as_of=as_of)),
        aggregation=aggregation,
    )
