"""Running AWS CLI commands."""

import logging
import subprocess

from . import config as settings
from .exceptions import CommandNotFoundError, CommandTimeoutError, NonZeroExitError

logger = logging.getLogger(__name__)


class CommandRunner:
    """Executes external commands with a hard timeout."""

    def __init__(self, aws_path=None, default_timeout=settings.DEFAULT_COMMAND_TIMEOUT):
        self.aws_path = aws_path or settings.aws_cli_path()
        self.default_timeout = default_timeout

    def run_external(self, command, args, timeout=None, capture=True):
        """
        Run a command and return its standard output.

        Args:
            command: Executable name or path
            args: List of arguments
            timeout: Seconds before the command is killed, defaults to default_timeout
            capture: If False, output goes straight to the terminal (interactive commands)

        Returns:
            str: Captured stdout, or '' when capture is False

        Raises:
            CommandNotFoundError: If the executable does not exist
            CommandTimeoutError: If the command runs past the timeout
            NonZeroExitError: If the command exits with a non-zero status
        """
        argv = [command] + list(args)
        timeout = timeout or self.default_timeout
        logger.info("Running command: %s", ' '.join(argv))

        try:
            result = subprocess.run(
                argv,
                capture_output=capture,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise CommandNotFoundError(f'{command} not found. Please install the AWS CLI.') from e
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(f'{" ".join(argv)} timed out after {timeout}s') from e

        if result.returncode != 0:
            stderr = result.stderr if capture else ''
            logger.warning("Command %s exited with %s", ' '.join(argv), result.returncode)
            raise NonZeroExitError(result.returncode, stderr or '')

        return result.stdout if capture else ''

    def aws(self, args, timeout=None, capture=True):
        return self.run_external(self.aws_path, args, timeout=timeout, capture=capture)

    def sso_login(self, profile_name):
        # Interactive: the CLI opens a browser and prints a device code
        return self.aws(
            ['sso', 'login', '--profile', profile_name],
            timeout=settings.LOGIN_TIMEOUT,
            capture=False,
        )

    def sso_logout(self, profile_name):
        return self.aws(['sso', 'logout', '--profile', profile_name])

    def get_caller_identity(self, profile_name):
        """Call sts get-caller-identity, which also makes the CLI cache fresh credentials."""
        return self.aws(['sts', 'get-caller-identity', '--profile', profile_name])
