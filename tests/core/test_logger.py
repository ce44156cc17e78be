"""Tests for loguru sink setup."""

from loguru import logger

from runlog.core.logger import setup_logger


def test_file_sink_created_with_parent_dirs(tmp_path):
    log_file = tmp_path / "logs" / "runlog.log"

    setup_logger(level="DEBUG", log_file=str(log_file))
    try:
        logger.info("[TEST] file sink line")
        logger.complete()
        assert "[TEST] file sink line" in log_file.read_text(encoding="utf-8")
    finally:
        setup_logger()


def test_level_filters_console(capsys):
    setup_logger(level="WARNING")
    try:
        logger.info("[TEST] hidden")
        logger.warning("[TEST] shown")
        err = capsys.readouterr().err
        assert "[TEST] shown" in err
        assert "[TEST] hidden" not in err
    finally:
        setup_logger()
