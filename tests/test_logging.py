"""Tests for package logger configuration."""

import logging

import pytest

from vaultlink._logging import PACKAGE_LOGGER, configure_logging, resolve_level
from vaultlink.cli import cli


@pytest.fixture
def package_logger():
    """Package logger restored to its unconfigured state afterwards."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers.clear()
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


class TestResolveLevel:
    def test_explicit_level_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv("VAULTLINK_LOG_LEVEL", "ERROR")

        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level() == logging.ERROR

    def test_defaults_to_info(self, monkeypatch):
        monkeypatch.delenv("VAULTLINK_LOG_LEVEL", raising=False)

        assert resolve_level() == logging.INFO

    def test_unknown_name_means_info(self, monkeypatch):
        monkeypatch.setenv("VAULTLINK_LOG_LEVEL", "chatty")

        assert resolve_level() == logging.INFO


class TestConfigureLogging:
    def test_single_handler_without_propagation(self, package_logger, monkeypatch):
        monkeypatch.setenv("VAULTLINK_LOG_LEVEL", "WARNING")

        configure_logging()
        configure_logging()

        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.WARNING
        assert package_logger.propagate is False

    def test_explicit_level_updates_configured_logger(self, package_logger):
        configure_logging("INFO")
        configure_logging("DEBUG")
        configure_logging()

        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.DEBUG

    def test_cli_log_level_option(self, package_logger, runner, tmp_vault):
        result = runner.invoke(cli, ["--log-level", "debug", "scan"])

        assert result.exit_code == 0, result.output
        assert package_logger.level == logging.DEBUG

    def test_cli_rejects_unknown_level(self, package_logger, runner, tmp_vault):
        result = runner.invoke(cli, ["--log-level", "chatty", "scan"])

        assert result.exit_code == 2
