import logging

import pytest

from logging_setup import LabeledFormatter, get_logger, reset_logging, setup_logging


@pytest.fixture(autouse=True)
def _reset():
    reset_logging()
    yield
    reset_logging()


def _record(level, msg="hello", name="gridspace.test"):
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def test_formatter_labels_levels():
    fmt = LabeledFormatter()
    assert fmt.format(_record(logging.WARNING)) == "WARN gridspace.test: hello"
    assert fmt.format(_record(logging.INFO, "x")) == "INFO gridspace.test: x"


def test_get_logger_children():
    assert get_logger("workspace").name == "gridspace.workspace"
    assert get_logger().name == "gridspace"
    assert get_logger("gridspace").name == "gridspace"


def test_setup_logging_writes_to_file(tmp_path):
    log_path = tmp_path / "gridspace.log"
    root = setup_logging("debug", str(log_path))
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1

    # second call keeps the first configuration
    setup_logging("error")
    assert root.level == logging.DEBUG

    get_logger("workspace").info("workspace cleared")
    for handler in root.handlers:
        handler.flush()
    assert "INFO gridspace.workspace: workspace cleared" in log_path.read_text()


def test_setup_logging_unknown_level_falls_back_to_info():
    root = setup_logging("chatty")
    assert root.level == logging.INFO
