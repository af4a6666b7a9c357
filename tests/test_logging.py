"""
Tests for logging setup.
"""

import logging

from tablestack.logging_config import get_log_file_path, setup_logging


def _ours(logger):
    return [h for h in logger.handlers if getattr(h, "_tablestack", False)]


def test_file_handler_written(tmp_path):
    log_file = setup_logging(tmp_path, verbose=False)
    logging.getLogger("tablestack.core.stack_tables").info("hello from the engine")

    for h in _ours(logging.getLogger("tablestack")):
        h.flush()

    assert log_file == get_log_file_path(tmp_path)
    assert "hello from the engine" in log_file.read_text()


def test_repeat_calls_do_not_duplicate_handlers(tmp_path):
    setup_logging(tmp_path, verbose=True)
    setup_logging(tmp_path, verbose=True)

    assert len(_ours(logging.getLogger("tablestack"))) == 2


def test_no_file_handler(tmp_path):
    assert setup_logging(None) is None
    assert _ours(logging.getLogger("tablestack")) == []
