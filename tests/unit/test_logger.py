"""Tests for package logging setup."""

import logging

import pytest

from blackjack_table.config import Settings
from blackjack_table.logger import (
    PACKAGE_LOGGER,
    ModuleNameFilter,
    reset_logging,
    setup_logging,
)


@pytest.fixture(autouse=True)
def clean_logging():
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = package_logger.level
    yield
    reset_logging()
    package_logger.setLevel(level)


def _flush(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()


def test_engine_records_reach_package_files(tmp_path):
    package_logger = setup_logging(Settings(log_dir=str(tmp_path), log_level="INFO"), console=False)

    logging.getLogger("blackjack_table.services.blackjack").info("dealt table c1")
    logging.getLogger("blackjack_table.services.blackjack").error("deal failed")
    _flush(package_logger)

    main_log = (tmp_path / "blackjack.log").read_text(encoding="utf-8")
    errors_log = (tmp_path / "errors.log").read_text(encoding="utf-8")
    assert "[blackjack] dealt table c1" in main_log
    assert "deal failed" in errors_log
    assert "dealt table c1" not in errors_log


def test_root_logger_untouched(tmp_path):
    root_handlers = list(logging.getLogger().handlers)

    package_logger = setup_logging(Settings(log_dir=str(tmp_path), log_level="INFO"), console=False)

    assert logging.getLogger().handlers == root_handlers
    assert package_logger.propagate is False


def test_second_setup_replaces_handlers(tmp_path):
    setup_logging(Settings(log_dir=str(tmp_path / "first"), log_level="INFO"))

    package_logger = setup_logging(Settings(log_dir=str(tmp_path / "second"), log_level="DEBUG"), console=False)

    assert len(package_logger.handlers) == 2
    assert package_logger.level == logging.DEBUG
    assert all("second" in handler.baseFilename for handler in package_logger.handlers)


def test_reset_restores_propagation(tmp_path):
    setup_logging(Settings(log_dir=str(tmp_path), log_level="INFO"), console=False)

    reset_logging()

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    assert package_logger.handlers == []
    assert package_logger.propagate is True


def test_module_name_filter():
    record = logging.LogRecord("blackjack_table.services.wallet_service", logging.INFO, "", 0, "x", None, None)
    ModuleNameFilter().filter(record)
    assert record.module_name == "wallet_service"
