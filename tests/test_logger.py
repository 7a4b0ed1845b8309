"""Unit tests for logger setup."""

from __future__ import annotations

import logging
from pathlib import Path

from utils.logger import setup_logger


def test_setup_logger_writes_file_for_child_loggers(tmp_path: Path) -> None:
    """Stage loggers propagate into the configured parent's log file."""
    setup_logger("motor_sales_test", log_file="pipeline.log", log_dir=str(tmp_path))

    logging.getLogger("motor_sales_test.silver").info("cleaned 3 records")
    for handler in logging.getLogger("motor_sales_test").handlers:
        handler.flush()

    assert "cleaned 3 records" in (tmp_path / "pipeline.log").read_text(encoding="utf-8")


def test_setup_logger_without_log_dir_is_console_only(tmp_path: Path) -> None:
    """Passing no log directory keeps a single console handler, even on repeat calls."""
    setup_logger("motor_sales_console", log_dir=str(tmp_path))
    logger = setup_logger("motor_sales_console", log_dir=None)

    assert len(logger.handlers) == 1
    assert not isinstance(logger.handlers[0], logging.FileHandler)
