"""Unit tests for aws_session_monitor.runner module."""

import subprocess
import pytest
from unittest.mock import Mock, patch

from aws_session_monitor.exceptions import (
    CommandNotFoundError,
    CommandTimeoutError,
    NonZeroExitError,
    ProcessError,
)
from aws_session_monitor.runner import CommandRunner


class TestRunExternal:
    """Tests for CommandRunner.run_external()."""

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_success_returns_stdout(self, mock_run):
        """Test R-01: Captured stdout is returned."""
        mock_run.return_value = Mock(returncode=0, stdout='{"Account": "123"}', stderr='')

        result = CommandRunner().run_external('aws', ['sts', 'get-caller-identity'])

        assert result == '{"Account": "123"}'
        mock_run.assert_called_once_with(
            ['aws', 'sts', 'get-caller-identity'],
            capture_output=True,
            text=True,
            timeout=30,
        )

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_non_zero_exit(self, mock_run):
        """Test R-02: Non-zero exit carries stderr."""
        mock_run.return_value = Mock(returncode=255, stdout='', stderr='Token has expired\n')

        with pytest.raises(NonZeroExitError) as exc_info:
            CommandRunner().run_external('aws', ['sts', 'get-caller-identity'])

        assert exc_info.value.returncode == 255
        assert str(exc_info.value) == 'Token has expired'

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_non_zero_exit_without_output(self, mock_run):
        """Test R-03: Message falls back to the exit code."""
        mock_run.return_value = Mock(returncode=2, stdout='', stderr='')

        with pytest.raises(NonZeroExitError, match='exit code 2'):
            CommandRunner().run_external('aws', ['sso', 'logout'])

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_cli_not_found(self, mock_run):
        """Test R-04: AWS CLI not installed."""
        mock_run.side_effect = FileNotFoundError()

        with pytest.raises(CommandNotFoundError, match='install'):
            CommandRunner().run_external('aws', ['sso', 'login'])

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_timeout(self, mock_run):
        """Test R-05: Timeout becomes CommandTimeoutError."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd='aws', timeout=5)

        with pytest.raises(CommandTimeoutError):
            CommandRunner().run_external('aws', ['sts', 'get-caller-identity'], timeout=5)

    def test_errors_are_process_errors(self):
        """Test R-06: All three failures share a base class."""
        for error in (CommandNotFoundError, CommandTimeoutError, NonZeroExitError):
            assert issubclass(error, ProcessError)


class TestAwsCommands:
    """Tests for the AWS CLI helpers."""

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_sso_login_is_interactive(self, mock_run):
        """Test R-07: Login output goes to the terminal with the long timeout."""
        mock_run.return_value = Mock(returncode=0, stdout=None, stderr=None)

        result = CommandRunner().sso_login('sso-dev')

        assert result == ''
        mock_run.assert_called_once_with(
            ['aws', 'sso', 'login', '--profile', 'sso-dev'],
            capture_output=False,
            text=True,
            timeout=120,
        )

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_sso_logout(self, mock_run):
        """Test R-08: Logout command."""
        mock_run.return_value = Mock(returncode=0, stdout='', stderr='')

        CommandRunner().sso_logout('sso-dev')

        assert mock_run.call_args[0][0] == ['aws', 'sso', 'logout', '--profile', 'sso-dev']

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_get_caller_identity(self, mock_run):
        """Test R-09: Identity check command."""
        mock_run.return_value = Mock(returncode=0, stdout='{}', stderr='')

        CommandRunner().get_caller_identity('admin-role')

        assert mock_run.call_args[0][0] == ['aws', 'sts', 'get-caller-identity', '--profile', 'admin-role']

    @patch('aws_session_monitor.runner.subprocess.run')
    def test_aws_path_override(self, mock_run, monkeypatch):
        """Test R-10: AWS_CLI_PATH selects the executable."""
        monkeypatch.setenv('AWS_CLI_PATH', '/usr/local/bin/aws')
        mock_run.return_value = Mock(returncode=0, stdout='', stderr='')

        CommandRunner().sso_logout('sso-dev')

        assert mock_run.call_args[0][0][0] == '/usr/local/bin/aws'
