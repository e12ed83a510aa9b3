"""Renewing an SSO session through the AWS CLI."""

import logging

from .events import SessionRenewed
from .exceptions import NoActiveProfileError, ProcessError, RenewalFailedError
from .profiles import clear_cache

logger = logging.getLogger(__name__)


class SessionRenewer:
    """
    Runs the logout / login sequence for a profile and restarts monitoring.

    Steps run strictly in order and the first failure aborts the rest; nothing
    already done is rolled back and nothing is retried.
    """

    def __init__(self, monitor, runner, mapping, bus, cache_clearer=clear_cache):
        self.monitor = monitor
        self.runner = runner
        self.mapping = mapping
        self.bus = bus
        self.cache_clearer = cache_clearer

    def renew(self, profile_name=None):
        """
        Renew the session of profile_name, or of the monitored profile.

        Blocks while the user completes the browser login.

        Args:
            profile_name: Profile to renew, defaults to the active profile

        Returns:
            Future: the monitor's pending resolution for the renewed profile

        Raises:
            NoActiveProfileError: If no profile is given and none is active
            RenewalFailedError: If any step fails
        """
        profile_name = profile_name or self.monitor.active_profile_name
        if not profile_name:
            raise NoActiveProfileError()

        logger.info("Renewing session for %s", profile_name)

        self._step('logout', self.runner.sso_logout, profile_name)
        self._step('clear cache', self.cache_clearer)
        self._step('clear mapping', self.mapping.remove, profile_name)
        self._step('login', self.runner.sso_login, profile_name)
        self._step('identity check', self.runner.get_caller_identity, profile_name)

        pending = self.monitor.start(profile_name)
        self.bus.publish(SessionRenewed())
        logger.info("Session for %s renewed", profile_name)
        return pending

    def _step(self, step, func, *args):
        try:
            return func(*args)
        except (ProcessError, OSError) as e:
            logger.error("Renewal step '%s' failed: %s", step, e)
            raise RenewalFailedError(step, str(e)) from e
