"""Exceptions raised by aws_session_monitor."""


class SessionMonitorError(Exception):
    """Base class for all errors raised by this package."""


class CredentialParseError(SessionMonitorError):
    """A cache file could not be turned into a credential record."""


class MalformedCredentialError(CredentialParseError):
    """The content is not one of the supported credential shapes."""


class BadDateError(CredentialParseError):
    """An expiration field is not a recognised ISO-8601 timestamp."""


class ExpiredCredentialError(CredentialParseError):
    """The credential parsed correctly but has already expired."""

    def __init__(self, expires_at):
        super().__init__(f'Credential expired at {expires_at.isoformat()}')
        self.expires_at = expires_at


class ProcessError(SessionMonitorError):
    """An external command could not be completed."""


class CommandNotFoundError(ProcessError):
    """The executable does not exist."""


class CommandTimeoutError(ProcessError):
    """The command did not finish within its time bound."""


class NonZeroExitError(ProcessError):
    """The command exited with a non-zero status."""

    def __init__(self, returncode, stderr=''):
        message = stderr.strip() or f'Command failed with exit code {returncode}'
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class RenewalError(SessionMonitorError):
    """Session renewal could not be completed."""


class NoActiveProfileError(RenewalError):
    """Renewal was requested without a profile to renew."""

    def __init__(self):
        super().__init__('No active profile selected')


class RenewalFailedError(RenewalError):
    """One step of the renewal sequence failed."""

    def __init__(self, step, message):
        super().__init__(f'Session renewal failed during {step}: {message}')
        self.step = step
        self.message = message
