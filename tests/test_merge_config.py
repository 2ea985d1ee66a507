"""Tests for JSON configuration and file logging."""

import json
import logging

import merge_config
from merge_config import DEFAULT_CONFIG, load_config, save_config
from merge_logging import LOGGER_NAME, get_logger, read_log, setup_logging
from merge_models import ResolutionMode


def test_missing_file_gives_defaults():
    assert load_config() == DEFAULT_CONFIG


def test_save_then_load_merges_over_defaults():
    save_config({"default_mode": "line", "result_height": 12})
    config = load_config()
    assert config["default_mode"] == "line"
    assert config["theme"] == DEFAULT_CONFIG["theme"]
    assert merge_config.get_default_mode() == ResolutionMode.LINE
    assert merge_config.get_result_height() == 12


def test_corrupt_file_gives_defaults():
    path = merge_config.config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{not json")
    assert load_config() == DEFAULT_CONFIG


def test_invalid_values_fall_back():
    merge_config.config_path().parent.mkdir(parents=True, exist_ok=True)
    merge_config.config_path().write_text(json.dumps({"default_mode": "word", "result_height": "tall"}))
    assert merge_config.get_default_mode() == ResolutionMode.BLOCK
    assert merge_config.get_result_height() == DEFAULT_CONFIG["result_height"]


def test_log_file_receives_child_loggers(tmp_path):
    log_file = setup_logging(tmp_path / "other-logs", "INFO")
    get_logger("sync").info("loaded 3 files")
    get_logger("git").debug("hidden at INFO")
    text = read_log()
    assert log_file.exists()
    assert "INFO    | loaded 3 files" in text
    assert "hidden" not in text


def test_setup_logging_replaces_handler(tmp_path):
    setup_logging(tmp_path / "a")
    setup_logging(tmp_path / "b")
    assert len(logging.getLogger(LOGGER_NAME).handlers) == 1


def test_read_log_tail(tmp_path):
    setup_logging(tmp_path / "tail")
    logger = get_logger("test")
    for i in range(10):
        logger.info("line %d", i)
    assert read_log(2).splitlines()[-1].endswith("line 9")
    assert len(read_log(2).splitlines()) == 2
