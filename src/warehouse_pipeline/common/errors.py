#!/usr/bin/env python3
"""
Pipeline Error Taxonomy

Every failure the pipeline can report belongs to one of these types. Stage
components do not raise them across stage boundaries; they travel inside a
StageResult so the orchestrator decides whether the run halts.
"""

from typing import Optional


class WarehousePipelineError(Exception):
    """Base exception for all warehouse pipeline failures"""


class PipelineConfigError(WarehousePipelineError):
    """Raised for invalid runtime configuration or source registry content"""


class RunLogError(WarehousePipelineError):
    """Raised when a run log entry would be opened or closed out of order"""


class IngestionFailure(WarehousePipelineError):
    """A source file could not be read or loaded into its raw table"""

    def __init__(self, entity_name: str, location: Optional[str], message: str):
        self.entity_name = entity_name
        self.location = location
        self.message = message
        super().__init__(f"Ingestion of '{entity_name}' from '{location}' failed: {message}")


class TransformFailure(WarehousePipelineError):
    """A per-entity cleansing rule raised an unexpected condition"""

    def __init__(self, entity_name: str, message: str):
        self.entity_name = entity_name
        self.message = message
        super().__init__(f"Transformation of '{entity_name}' failed: {message}")


class QualityViolation(WarehousePipelineError):
    """
    A named quality rule counted one or more violating rows

    ``violation_count`` is None when the rule could not be evaluated at all.
    """

    def __init__(self, rule_name: str, rule_code: int, violation_count: Optional[int],
                 detail: Optional[str] = None):
        self.rule_name = rule_name
        self.rule_code = rule_code
        self.violation_count = violation_count
        self.detail = detail
        if violation_count is None:
            message = f"[{rule_code}] {rule_name} | Could not be evaluated: {detail}"
        else:
            message = f"[{rule_code}] {rule_name} | Found {violation_count} failing rows."
        super().__init__(message)


class OrchestrationFailure(WarehousePipelineError):
    """Top-level failure recorded when any stage of a run fails"""

    def __init__(self, run_id: str, stage_name: str, cause: Optional[Exception]):
        self.run_id = run_id
        self.stage_name = stage_name
        self.cause = cause
        super().__init__(f"Run {run_id} failed in stage '{stage_name}': {cause}")
