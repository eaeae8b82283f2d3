import sys

import pytest
from loguru import logger

from codeflow.utils.config import Config
from codeflow.utils.logger import setup_logger, setup_logger_from_config


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_file_sink_receives_messages(tmp_path, restore_logger):
    log_file = tmp_path / "logs" / "codeflow.log"

    setup_logger("DEBUG", str(log_file), enable_console=False)
    logger.debug("Processing: app.ts")

    content = log_file.read_text(encoding="utf-8")
    assert "Processing: app.ts" in content
    assert "DEBUG" in content


def test_level_filters_file_sink(tmp_path, restore_logger):
    log_file = tmp_path / "codeflow.log"

    setup_logger("WARNING", str(log_file), enable_console=False)
    logger.info("hidden")
    logger.warning("shown")

    content = log_file.read_text(encoding="utf-8")
    assert "hidden" not in content
    assert "shown" in content


def test_setup_from_config_uses_log_keys(tmp_path, restore_logger):
    log_file = tmp_path / "from-config.log"
    config = Config()
    config.update({"log_level": "warning", "log_file": str(log_file)})

    handler_ids = setup_logger_from_config(config, enable_console=False)
    logger.info("hidden")
    logger.warning("shown")

    assert len(handler_ids) == 1
    content = log_file.read_text(encoding="utf-8")
    assert "shown" in content
    assert "hidden" not in content
