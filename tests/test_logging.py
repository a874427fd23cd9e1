"""Tests for logging setup."""

import logging

from warehouse_connector.utils.logging import (
    CONSOLE_HANDLER_NAME,
    FILE_HANDLER_NAME,
    setup_logging
)


def installed_handlers(name):
    return [h for h in logging.getLogger().handlers if h.get_name() == name]


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_single_console_handler(self):
        setup_logging(log_level="INFO", log_format="console")
        setup_logging(log_level="INFO", log_format="console")

        assert len(installed_handlers(CONSOLE_HANDLER_NAME)) == 1
        stream_handlers = [
            h for h in logging.getLogger().handlers
            if type(h) is logging.StreamHandler
        ]
        assert stream_handlers == []

    def test_level_applied_to_root_logger(self):
        setup_logging(log_level="warning", log_format="json")

        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "connector.log"

        setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))

        assert len(installed_handlers(FILE_HANDLER_NAME)) == 1
        assert log_file.parent.is_dir()

        setup_logging(log_level="INFO", log_format="json")

        assert installed_handlers(FILE_HANDLER_NAME) == []
