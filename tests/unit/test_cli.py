#!/usr/bin/env python3
"""
Unit tests for the command line interface
"""

import logging
from datetime import date, datetime
from unittest.mock import Mock, patch

import pytest
import yaml

from warehouse_pipeline.cli import build_parser, main
from warehouse_pipeline.common.base_stage import StageResult
from warehouse_pipeline.common.errors import OrchestrationFailure, IngestionFailure
from warehouse_pipeline.common.pipeline_orchestrator import RunResult
from warehouse_pipeline.common.run_log import JsonRunLog, Run


@pytest.fixture(autouse=True)
def reset_cli_logging():
    """main() binds a handler to the captured stdout; drop it afterwards"""
    yield
    logger = logging.getLogger("warehouse_pipeline")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.propagate = True


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "pipeline.yml"
    path.write_text(yaml.dump({"audit_dir": str(temp_dir / "etl_log")}))
    return path


def _run_result(success: bool) -> RunResult:
    run = Run(run_id="run-42")
    run.start()
    run.finish(success)
    now = datetime.now()
    if success:
        return RunResult(run=run, stage_results=[
            StageResult(stage_name="ingestion", success=True, message="ok", start_time=now, end_time=now)
        ])
    cause = IngestionFailure("crm_cust_info", "/missing.csv", "Source file does not exist")
    return RunResult(run=run, stage_results=[], error=OrchestrationFailure("run-42", "ingestion", cause))


class TestParser:
    """Test argument parsing"""

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.command is None
        assert args.memory is False
        assert args.as_of is None

    def test_global_options(self):
        args = build_parser().parse_args(["--memory", "--as-of", "2025-01-01", "quality", "--format", "json"])

        assert args.memory is True
        assert args.as_of == date(2025, 1, 1)
        assert args.command == "quality"
        assert args.format == "json"

    def test_invalid_as_of(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--as-of", "01/01/2025"])


class TestCommands:
    """Test command dispatch and exit codes"""

    @pytest.mark.parametrize("success,exit_code", [(True, 0), (False, 1)])
    def test_run_command_exit_code(self, config_file, capsys, success, exit_code):
        orchestrator = Mock()
        orchestrator.run_pipeline.return_value = _run_result(success)

        with patch("warehouse_pipeline.cli.get_spark_session") as get_spark, \
                patch("warehouse_pipeline.cli.stop_spark_session") as stop_spark, \
                patch("warehouse_pipeline.cli.create_orchestrator", return_value=orchestrator):
            assert main(["--config", str(config_file), "--memory"]) == exit_code

        get_spark.assert_called_once()
        stop_spark.assert_called_once_with(get_spark.return_value)

        output = capsys.readouterr().out
        assert "Run ID: run-42" in output
        if not success:
            assert "Source file does not exist" in output

    def test_stage_command_passes_run_id(self, config_file):
        orchestrator = Mock()
        now = datetime.now()
        orchestrator.run_stage.return_value = StageResult(
            stage_name="transformation", success=True, message="done", start_time=now, end_time=now
        )

        with patch("warehouse_pipeline.cli.get_spark_session"), \
                patch("warehouse_pipeline.cli.stop_spark_session"), \
                patch("warehouse_pipeline.cli.create_orchestrator", return_value=orchestrator):
            assert main(["--config", str(config_file), "transform", "--run-id", "diag-1"]) == 0

        orchestrator.run_stage.assert_called_once_with("transformation", run_id="diag-1")

    def test_log_command(self, config_file, temp_dir, capsys):
        run_log = JsonRunLog(str(temp_dir / "etl_log"))
        handle = run_log.begin("run-7", "Bronze", "bronze.load_bronze", entity="crm_cust_info")
        run_log.complete(handle, rows_affected=5, message="Successfully loaded 5 rows.")

        assert main(["--config", str(config_file), "log", "run-7"]) == 0

        output = capsys.readouterr().out
        assert "bronze.load_bronze [crm_cust_info] rows=5" in output
        assert "Successfully loaded 5 rows." in output

    def test_log_command_unknown_run(self, config_file):
        assert main(["--config", str(config_file), "log", "nope"]) == 1

    def test_configuration_error_exit_code(self, temp_dir, capsys):
        path = temp_dir / "bad.yml"
        path.write_text(yaml.dump({"not_a_setting": 1}))

        assert main(["--config", str(path), "log", "run-1"]) == 1
        assert "Unknown configuration keys" in capsys.readouterr().err

    def test_missing_config_file_exit_code(self, temp_dir, capsys):
        with patch("warehouse_pipeline.cli.get_spark_session") as get_spark:
            assert main(["--config", str(temp_dir / "typo.yml")]) == 1

        get_spark.assert_not_called()
        assert "Configuration file not found" in capsys.readouterr().err
