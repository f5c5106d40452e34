import logging

import pytest

from ateleslie.logging_config import QUIET_LOGGERS, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_each_process_writes_its_own_file(tmp_path, restore_root_logger):
    setup_logging(log_dir=str(tmp_path), log_level="DEBUG", process="worker")
    logging.getLogger("ateleslie.tests").info("sweep finished")

    assert (tmp_path / "worker.log").exists()
    assert "sweep finished" in (tmp_path / "worker.log").read_text()
    assert not (tmp_path / "api.log").exists()

    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
