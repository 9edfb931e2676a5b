"""
Unit tests for logging setup (rotator/__init__.py).
"""

import logging
from logging.handlers import RotatingFileHandler, SysLogHandler
from unittest.mock import patch

from rotator import configure_logging


class TestConfigureLogging:
    """Test configure_logging handler selection."""

    def test_verbose_levels(self):
        assert configure_logging(0).level == logging.WARNING
        assert configure_logging(1).level == logging.INFO
        assert configure_logging(2).level == logging.DEBUG

    def test_stderr_only_by_default(self):
        logger = configure_logging(1)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_reconfigure_replaces_handlers(self):
        configure_logging(1)
        logger = configure_logging(2)

        assert len(logger.handlers) == 1

    def test_logfile_handler(self, tmp_path):
        logfile = tmp_path / 'logs' / 'rotator.log'

        logger = configure_logging(1, logfile=str(logfile))
        logger.info("hello")

        assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
        assert 'hello' in logfile.read_text()

    @patch('rotator.SysLogHandler')
    def test_syslog_handler(self, mock_syslog):
        mock_syslog.LOG_DAEMON = SysLogHandler.LOG_DAEMON
        mock_syslog.return_value.level = logging.NOTSET

        configure_logging(2, syslog=True)

        mock_syslog.assert_called_once_with(address='/dev/log', facility=SysLogHandler.LOG_DAEMON)
        mock_syslog.return_value.setLevel.assert_called_once_with(logging.DEBUG)

    @patch('rotator.SysLogHandler')
    def test_syslog_unavailable_is_not_fatal(self, mock_syslog):
        mock_syslog.side_effect = OSError("no /dev/log")

        logger = configure_logging(1, syslog=True)

        assert len(logger.handlers) == 1
