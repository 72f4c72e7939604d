"""Unit tests for logging configuration and plugin log levels."""

import logging

import pytest

from spotify_flexbar import logging_config
from spotify_flexbar.logging_config import (
    LOG_LEVELS,
    PLUGIN_LOGGER_NAME,
    get_log_level,
    log_with_context,
    set_log_level,
    setup_logging,
    update_log_level_from_config,
)


@pytest.fixture(autouse=True)
def restore_level(monkeypatch):
    plugin_logger = logging.getLogger(PLUGIN_LOGGER_NAME)
    previous = plugin_logger.level
    monkeypatch.setattr(logging_config, "_current_level_name", "INFO")
    yield
    plugin_logger.setLevel(previous)


class TestSetLogLevel:
    """Tests for applying plugin log levels."""

    def test_applies_level_to_plugin_logger(self):
        assert set_log_level("DEBUG") is True

        assert get_log_level() == "DEBUG"
        assert logging.getLogger(PLUGIN_LOGGER_NAME).level == logging.DEBUG

    def test_accepts_aliases(self):
        assert set_log_level("warning") is True
        assert get_log_level() == "WARN"

    def test_off_silences_plugin_logger(self):
        set_log_level("OFF")

        child = logging.getLogger(f"{PLUGIN_LOGGER_NAME}.core.poll_loop")
        assert not child.isEnabledFor(logging.CRITICAL)
        assert LOG_LEVELS["OFF"] > logging.CRITICAL

    def test_invalid_level_is_rejected(self):
        assert set_log_level("LOUD") is False
        assert get_log_level() == "INFO"

    def test_does_not_touch_third_party_loggers(self):
        httpx_level = logging.getLogger("httpx").level

        set_log_level("DEBUG")

        assert logging.getLogger("httpx").level == httpx_level


class TestUpdateFromConfig:
    """Tests for reading logLevel from the host's plugin config."""

    def test_reads_log_level(self):
        assert update_log_level_from_config({"logLevel": "ERROR"}) == "ERROR"

    @pytest.mark.parametrize("config", [None, {}, {"logLevel": "nope"}, {"logLevel": 3}])
    def test_falls_back_to_info(self, config):
        set_log_level("DEBUG")

        assert update_log_level_from_config(config) == "INFO"


def test_log_with_context_attaches_fields(caplog):
    logger = logging.getLogger(f"{PLUGIN_LOGGER_NAME}.test")

    with caplog.at_level(logging.INFO, logger=PLUGIN_LOGGER_NAME):
        log_with_context(logger, "info", "Track changed", key_id="key-1", event_type="track_changed")

    record = caplog.records[-1]
    assert record.getMessage() == "Track changed"
    assert record.key_id == "key-1"
    assert record.event_type == "track_changed"


def test_setup_logging_writes_json_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("DEBUG", log_dir=tmp_path)
        logging.getLogger(f"{PLUGIN_LOGGER_NAME}.test").info("hello", extra={"event_type": "test_event"})
        for handler in root.handlers:
            handler.flush()

        content = (tmp_path / "plugin.log").read_text(encoding="utf-8")
        assert '"message": "hello"' in content
        assert '"event_type": "test_event"' in content
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
