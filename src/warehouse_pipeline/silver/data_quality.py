#!/usr/bin/env python3
"""
Data Quality Gate

Runs the silver quality rule catalog in order and stops at the first rule
that finds violations.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..common.base_stage import BaseStage
from ..common.errors import QualityViolation
from ..common.layer_store import LayerStore, SILVER
from ..common.run_log import RunLog
from ..utils.config import PipelineConfig
from .quality_rules import QualityRule, QualityContext, QUALITY_RULES


@dataclass
class RuleResult:
    """Result of evaluating a single quality rule"""
    rule_code: int
    rule_name: str
    entity_name: str
    passed: bool
    message: str
    violation_count: Optional[int] = None
    execution_time_seconds: float = 0.0


class QualityGate(BaseStage):
    """
    Silver quality stage

    Every evaluated rule gets its own run log entry. Rules after the first
    failing one are never evaluated or logged.
    """

    stage_name = "quality"
    stage_label = "Tests"
    operation_name = "tests.run_silver_layer_checks"
    success_message = "All data quality tests for Silver layer passed successfully."

    def __init__(self,
                 run_log: RunLog,
                 layer_store: LayerStore,
                 config: Optional[PipelineConfig] = None,
                 context: Optional[QualityContext] = None,
                 rules: Optional[List[QualityRule]] = None):
        super().__init__(run_log, layer_store, config)
        self.context = context
        self.rules = list(rules) if rules is not None else list(QUALITY_RULES)
        self.results: List[RuleResult] = []

    def _run(self, run_id: str) -> None:
        context = self.context or QualityContext()
        self.results = []

        for rule in self.rules:
            self.evaluate(run_id, rule, context)

        self._record_metric("rules_passed", len(self.results))
        return None

    def evaluate(self, run_id: str, rule: QualityRule, context: QualityContext) -> RuleResult:
        """
        Evaluate one rule and record its outcome

        Raises:
            QualityViolation: the rule found violations or could not be evaluated
        """
        handle = self.run_log.begin(run_id, self.stage_label, rule.name,
                                    entity=rule.entity_name, schema_name=SILVER)
        start = time.time()

        try:
            df = self.layer_store.read(SILVER, rule.entity_name)
            violation_count = rule.count_violations(df, context)
        except Exception as e:
            violation = QualityViolation(rule.name, rule.code, None, str(e))
            self._record_result(rule, False, str(violation), None, start)
            self.run_log.fail(handle, str(violation))
            raise violation from e

        if violation_count > 0:
            violation = QualityViolation(rule.name, rule.code, violation_count)
            self._record_result(rule, False, str(violation), violation_count, start)
            self.run_log.fail(handle, str(violation))
            raise violation

        result = self._record_result(rule, True, rule.passed_message(), 0, start)
        self.run_log.complete(handle, rows_affected=0, message=result.message)
        return result

    def _record_result(self, rule: QualityRule, passed: bool, message: str,
                       violation_count: Optional[int], start: float) -> RuleResult:
        result = RuleResult(
            rule_code=rule.code,
            rule_name=rule.name,
            entity_name=rule.entity_name,
            passed=passed,
            message=message,
            violation_count=violation_count,
            execution_time_seconds=time.time() - start,
        )
        self.results.append(result)
        return result


def generate_report(results: List[RuleResult]) -> str:
    """Generate a human-readable quality report"""
    if not results:
        return "No quality check results available"

    passed = sum(1 for result in results if result.passed)
    report_lines = [
        "=" * 60,
        "DATA QUALITY REPORT",
        "=" * 60,
        f"Rules Evaluated: {len(results)}",
        f"Passed: {passed}",
        f"Failed: {len(results) - passed}",
        "",
        "DETAILED RESULTS:",
        "-" * 40
    ]

    for result in results:
        status_symbol = "✅" if result.passed else "❌"
        report_lines.extend([
            f"{status_symbol} [{result.rule_code}] {result.rule_name}",
            f"   Entity: {result.entity_name}",
            f"   Message: {result.message}",
            f"   Execution Time: {result.execution_time_seconds:.2f}s",
            ""
        ])

    return "\n".join(report_lines)
