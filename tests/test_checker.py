import subprocess
from unittest.mock import patch

import pytest

from rds_port_forward.checker import ConfigChecker
from rds_port_forward.exceptions import SessionError


class TestConfigChecker:
    @patch("rds_port_forward.checker.subprocess.run")
    def test_plugin_present(self, mock_run):
        assert ConfigChecker.check_session_manager_plugin() is True
        assert mock_run.call_args[0][0] == ["session-manager-plugin", "--version"]

    @patch("rds_port_forward.checker.subprocess.run")
    def test_plugin_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        assert ConfigChecker.check_session_manager_plugin() is False

    @patch("rds_port_forward.checker.subprocess.run")
    def test_plugin_broken(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(1, "session-manager-plugin")
        with pytest.raises(SessionError, match="Session manager plugin"):
            ConfigChecker().validate_all()
