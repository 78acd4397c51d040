"""Tests for process priority and logging setup."""

from unittest.mock import patch

import psutil
from loguru import logger

from servicehost.config import HostSettings, ProcessPriority
from servicehost.host.priority import apply_priority
from servicehost.log import configure_logging


class TestApplyPriority:
    def test_sets_nice_value(self):
        with patch("servicehost.host.priority.psutil.Process") as process:
            assert apply_priority(ProcessPriority.BELOW_NORMAL, pid=99) is True

        process.assert_called_once_with(99)
        process.return_value.nice.assert_called_once_with(10)

    def test_access_denied(self, log_messages):
        with patch("servicehost.host.priority.psutil.Process") as process:
            process.return_value.nice.side_effect = psutil.AccessDenied(pid=99)
            assert apply_priority(ProcessPriority.HIGH, pid=99) is False

        assert any("Cannot set priority high" in m for m in log_messages)


class TestConfigureLogging:
    def test_file_sink(self, tmp_path):
        with patch("servicehost.daemon.resolve.get_log_dir", return_value=tmp_path):
            configure_logging(HostSettings(log_file=True), "worker")
            logger.info("hello file")
            logger.remove()

        assert "hello file" in (tmp_path / "worker.log").read_text()

    def test_level_filters(self, capsys):
        configure_logging(HostSettings(log_level="warning"))
        logger.info("quiet")
        logger.warning("loud")

        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "loud" in err
