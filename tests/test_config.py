"""
Configuration Tests
===================

Tests for settings loading and command-line overrides.
"""

import asyncio
import itertools
import logging

import pytest
from pydantic import ValidationError

from histo_subscriber import main as main_module
from histo_subscriber.config import Settings, load_config
from histo_subscriber.main import (
    EXIT_CONFIG,
    EXIT_FATAL,
    EXIT_OK,
    apply_cli_overrides,
    main,
    parse_args,
    run,
)
from histo_subscriber.report import NullReportSink, ReportingError
from histo_subscriber.stream import IterableFrameSource


ENV_VARS = (
    "HISTO_SUB_ADDRESS",
    "HISTO_SUB_BIND",
    "HISTO_SUB_EXPECTED_TYPE",
    "HISTO_SUB_MAX_QUEUE_SIZE",
    "HISTO_SUB_REPORT_FORMAT",
    "HISTO_SUB_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Isolate tests from the caller's environment and working directory."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self):
        settings = load_config()

        assert settings.subscriber.address == "tcp://*:5024"
        assert settings.subscriber.bind is True
        assert settings.subscriber.expected_type == "TH1F"
        assert settings.subscriber.max_queue_size == 100
        assert settings.report.format == "text"
        assert settings.logging.level == "INFO"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(
            "subscriber:\n"
            "  address: tcp://127.0.0.1:6000\n"
            "  bind: false\n"
            "  expected_type: TH1D\n"
            "report:\n"
            "  format: json\n"
        )

        settings = load_config(str(path))

        assert settings.subscriber.address == "tcp://127.0.0.1:6000"
        assert settings.subscriber.bind is False
        assert settings.subscriber.expected_type == "TH1D"
        assert settings.report.format == "json"

    def test_config_yaml_in_working_directory(self, tmp_path):
        (tmp_path / "config.yaml").write_text("subscriber:\n  max_queue_size: 7\n")

        assert load_config().subscriber.max_queue_size == 7

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(str(path)) == Settings()

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("subscriber:\n  address: tcp://*:6000\n")
        monkeypatch.setenv("HISTO_SUB_ADDRESS", "tcp://*:7000")
        monkeypatch.setenv("HISTO_SUB_BIND", "no")
        monkeypatch.setenv("HISTO_SUB_MAX_QUEUE_SIZE", "5")
        monkeypatch.setenv("HISTO_SUB_LOG_LEVEL", "DEBUG")

        settings = load_config(str(path))

        assert settings.subscriber.address == "tcp://*:7000"
        assert settings.subscriber.bind is False
        assert settings.subscriber.max_queue_size == 5
        assert settings.logging.level == "DEBUG"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_empty_address_rejected(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("subscriber:\n  address: ''\n")

        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_invalid_queue_size_rejected(self, monkeypatch):
        monkeypatch.setenv("HISTO_SUB_MAX_QUEUE_SIZE", "0")

        with pytest.raises(ValidationError):
            load_config()


class TestCommandLine:
    """Tests for argument parsing and overrides."""

    def test_flags_override_settings(self):
        args = parse_args(
            [
                "--address", "tcp://publisher:5024",
                "--connect",
                "--expected-type", "TH1D",
                "--format", "json",
                "--log-level", "WARNING",
            ]
        )

        settings = apply_cli_overrides(Settings(), args)

        assert settings.subscriber.address == "tcp://publisher:5024"
        assert settings.subscriber.bind is False
        assert settings.subscriber.expected_type == "TH1D"
        assert settings.report.format == "json"
        assert settings.logging.level == "WARNING"

    def test_no_flags_keep_settings(self):
        settings = Settings()

        assert apply_cli_overrides(settings, parse_args([])) == settings

    def test_unknown_format_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["--format", "xml"])

    def test_main_missing_config_file(self, tmp_path, capsys):
        status = main(["--config", str(tmp_path / "missing.yaml")])

        assert status == EXIT_CONFIG
        assert "invalid configuration" in capsys.readouterr().err

    def test_main_empty_address(self, capsys):
        assert main(["--address", ""]) == EXIT_CONFIG

    def test_undecodable_type_is_config_error(self):
        settings = apply_cli_overrides(
            Settings(), parse_args(["--expected-type", "TH2F"])
        )

        assert asyncio.run(run(settings)) == EXIT_CONFIG


class FailingSink:
    """Sink whose output is gone."""

    def report(self, iteration, frame, checksum, decoded):
        raise ReportingError("stdout closed")


class TestRunExitStatus:
    """Exit status of the subscriber run."""

    def test_unbindable_address_is_fatal(self, caplog):
        settings = apply_cli_overrides(Settings(), parse_args(["--address", "bogus://x"]))

        with caplog.at_level(logging.CRITICAL, logger="histo_subscriber.main"):
            status = asyncio.run(run(settings))

        assert status == EXIT_FATAL
        assert any(
            record.levelno == logging.CRITICAL and "Transport error" in record.getMessage()
            for record in caplog.records
        )

    def test_reporting_error_is_fatal(self, monkeypatch, caplog, sample_payload):
        monkeypatch.setattr(
            main_module,
            "ZmqFrameSource",
            lambda **kwargs: IterableFrameSource(itertools.repeat(sample_payload)),
        )
        monkeypatch.setattr(main_module, "create_report_sink", lambda fmt: FailingSink())

        with caplog.at_level(logging.CRITICAL, logger="histo_subscriber.main"):
            status = asyncio.run(run(Settings()))

        assert status == EXIT_FATAL
        assert "Reporting error" in caplog.text

    def test_exhausted_source_is_fatal(self, monkeypatch, sample_payload):
        monkeypatch.setattr(
            main_module,
            "ZmqFrameSource",
            lambda **kwargs: IterableFrameSource([sample_payload]),
        )
        monkeypatch.setattr(main_module, "create_report_sink", lambda fmt: NullReportSink())

        assert asyncio.run(run(Settings())) == EXIT_FATAL

    def test_clean_stop(self, monkeypatch, sample_payload):
        pipelines = []
        original = main_module.SubscriberPipeline

        def make_pipeline(**kwargs):
            pipeline = original(**kwargs)
            pipeline.stop()
            pipelines.append(pipeline)
            return pipeline

        monkeypatch.setattr(
            main_module,
            "ZmqFrameSource",
            lambda **kwargs: IterableFrameSource(itertools.repeat(sample_payload)),
        )
        monkeypatch.setattr(main_module, "SubscriberPipeline", make_pipeline)

        assert asyncio.run(run(Settings())) == EXIT_OK
        assert pipelines[0].iteration == 0
