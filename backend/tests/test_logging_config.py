from __future__ import annotations

import logging

from backend.logging_config import setup_logging


def _reset_backend_logger():
    logger = logging.getLogger("backend")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    return logger


def test_console_only_by_default(monkeypatch):
    monkeypatch.delenv("LOG_DIR", raising=False)
    logger = _reset_backend_logger()

    assert setup_logging(level="debug") is None
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1

    _reset_backend_logger()


def test_file_handler_when_log_dir_given(tmp_path):
    logger = _reset_backend_logger()

    log_file = setup_logging(level="INFO", log_dir=tmp_path / "logs")

    assert log_file is not None
    assert log_file.parent == tmp_path / "logs"
    assert log_file.name.startswith("run_")
    logging.getLogger("backend.tests").warning("hello from the tests")
    for handler in logger.handlers:
        handler.flush()
    assert "hello from the tests" in log_file.read_text(encoding="utf-8")

    _reset_backend_logger()


def test_repeated_setup_adds_no_handlers():
    logger = _reset_backend_logger()

    setup_logging(level="INFO", log_dir=None)
    count = len(logger.handlers)
    setup_logging(level="INFO", log_dir=None)

    assert len(logger.handlers) == count
    _reset_backend_logger()
