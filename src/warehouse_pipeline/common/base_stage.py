#!/usr/bin/env python3
"""
Base Stage Classes

Provides the result type and base class shared by the ingestion,
transformation and quality stages.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, Iterator

from pyspark.sql import DataFrame

from .run_log import RunLog
from .layer_store import LayerStore
from ..utils.config import PipelineConfig


@dataclass
class StageResult:
    """Result of a stage execution"""
    stage_name: str
    success: bool
    message: str
    start_time: datetime
    end_time: datetime
    duration_seconds: float = 0.0
    error: Optional[Exception] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.start_time and self.end_time:
            self.duration_seconds = (self.end_time - self.start_time).total_seconds()


@contextmanager
def persisted(df: DataFrame) -> Iterator[DataFrame]:
    """
    Cache a DataFrame for the duration of a block

    The cache is released on every exit path.
    """
    cached = df.persist()
    try:
        yield cached
    finally:
        cached.unpersist()


class BaseStage(ABC):
    """
    Base class for all pipeline stages

    A stage opens one stage-level run log entry, runs its work through
    ``_run`` and reports the outcome as a StageResult. Nothing raised inside
    ``_run`` escapes ``execute``.
    """

    stage_name: str = "stage"
    stage_label: str = "Pipeline"
    operation_name: str = "stage"
    success_message: str = "Stage completed successfully."

    def __init__(self,
                 run_log: RunLog,
                 layer_store: LayerStore,
                 config: Optional[PipelineConfig] = None):
        self.run_log = run_log
        self.layer_store = layer_store
        self.config = config or PipelineConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._metrics: Dict[str, Any] = {}

    @abstractmethod
    def _run(self, run_id: str) -> Optional[int]:
        """
        Do the stage's work

        Failures are raised as WarehousePipelineError subclasses.

        Returns:
            Total rows affected, if meaningful for the stage
        """
        pass

    def execute(self, run_id: str) -> StageResult:
        """
        Execute the stage for a run

        Args:
            run_id: Identifier threaded through every log entry

        Returns:
            StageResult: success, or failure carrying the typed error
        """
        start_time = datetime.now()
        self._metrics = {}
        self.logger.info(f"🚀 Starting {self.stage_name} stage (run {run_id})")

        handle = self.run_log.begin(run_id, self.stage_label, self.operation_name)

        try:
            rows_affected = self._run(run_id)
        except Exception as e:
            self.run_log.fail(handle, str(e))
            return self._end_execution(start_time, False, str(e), error=e)

        self.run_log.complete(handle, rows_affected=rows_affected, message=self.success_message)
        return self._end_execution(start_time, True, self.success_message)

    def _record_metric(self, name: str, value: Any):
        """Record a metric"""
        self._metrics[name] = value

    def _end_execution(self, start_time: datetime, success: bool, message: str,
                       error: Optional[Exception] = None) -> StageResult:
        result = StageResult(
            stage_name=self.stage_name,
            success=success,
            message=message,
            start_time=start_time,
            end_time=datetime.now(),
            error=error,
            metrics=self._metrics.copy(),
        )

        status_emoji = "✅" if success else "❌"
        self.logger.info(f"{status_emoji} {self.stage_name} stage finished in {result.duration_seconds:.2f}s")
        return result
