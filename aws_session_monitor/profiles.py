"""AWS profile discovery and configuration."""

import configparser
import logging
import shutil
from dataclasses import dataclass

from . import config as settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SSOProfile:
    name: str
    start_url: str
    region: str
    account_id: str
    role_name: str
    sso_session: str = None

    @property
    def role_arn(self):
        return f'arn:aws:iam::{self.account_id}:role/{self.role_name}'


@dataclass(frozen=True)
class IAMRoleProfile:
    name: str
    source_profile: str
    role_arn: str
    sso_session: str = None
    region: str = None

    @property
    def role_name(self):
        """Role name taken from the last path segment of the role ARN."""
        return self.role_arn.rsplit('/', 1)[-1]


def _section_name(profile_name):
    return 'default' if profile_name == 'default' else f'profile {profile_name}'


class ProfileRepository:
    """Read-only view of profiles defined in the AWS config file."""

    def __init__(self, config_path=None):
        self._config_path = config_path

    @property
    def config_path(self):
        return self._config_path or settings.aws_config_file()

    def _read(self):
        parser = configparser.ConfigParser(interpolation=None)
        path = self.config_path
        if path.exists():
            try:
                parser.read(path)
            except configparser.Error as e:
                logger.warning("Could not parse %s: %s", path, e)
                return configparser.ConfigParser(interpolation=None)
        return parser

    def _profile_section(self, parser, profile_name):
        for section in (_section_name(profile_name), profile_name):
            if parser.has_section(section):
                return parser[section]
        return None

    def list_profiles(self):
        """Get the sorted names of all profiles in the config file."""
        parser = self._read()
        profiles = set()
        for section in parser.sections():
            if section.startswith('profile '):
                profiles.add(section[len('profile '):].strip())
            elif section == 'default':
                profiles.add(section)
        return sorted(profiles)

    def get_profile(self, profile_name):
        """
        Look up a profile by name.

        Args:
            profile_name: Name of the AWS profile

        Returns:
            SSOProfile, IAMRoleProfile, or None if the profile is not defined
            or is neither an SSO nor a role-assumption profile
        """
        parser = self._read()
        section = self._profile_section(parser, profile_name)
        if section is None:
            return None

        if 'role_arn' in section:
            source_profile = section.get('source_profile')
            if not source_profile:
                return None
            return IAMRoleProfile(
                name=profile_name,
                source_profile=source_profile,
                role_arn=section['role_arn'],
                sso_session=section.get('sso_session'),
                region=section.get('region'),
            )

        account_id = section.get('sso_account_id')
        role_name = section.get('sso_role_name')
        if not account_id or not role_name:
            return None

        session_name = section.get('sso_session')
        if session_name:
            session_section = f'sso-session {session_name}'
            if not parser.has_section(session_section):
                logger.debug("Profile %s references missing %s", profile_name, session_section)
                return None
            start_url = parser[session_section].get('sso_start_url')
            region = parser[session_section].get('sso_region')
        else:
            # Legacy profiles carry the SSO settings inline
            start_url = section.get('sso_start_url')
            region = section.get('sso_region')

        if not start_url or not region:
            return None

        return SSOProfile(
            name=profile_name,
            start_url=start_url,
            region=region,
            account_id=account_id,
            role_name=role_name,
            sso_session=session_name,
        )

    def get_session_name_for_profile(self, profile_name):
        """Return the sso_session a profile uses, following source_profile once."""
        parser = self._read()
        section = self._profile_section(parser, profile_name)
        if section is None:
            return None

        session_name = section.get('sso_session')
        if session_name:
            return session_name

        source_profile = section.get('source_profile')
        if source_profile and source_profile != profile_name:
            source_section = self._profile_section(parser, source_profile)
            if source_section is not None:
                return source_section.get('sso_session')
        return None


def clear_cache(cache_dir=None):
    """
    Remove every entry of the AWS CLI credential cache directory.

    The directory itself is kept (and created if missing) with owner-only
    permissions.

    Args:
        cache_dir: Directory to clear, defaults to ~/.aws/cli/cache

    Raises:
        OSError: If an entry cannot be removed
    """
    cache_dir = cache_dir or settings.cli_cache_dir()

    if not cache_dir.exists():
        cache_dir.mkdir(parents=True, exist_ok=True)
        cache_dir.chmod(0o700)
        logger.info("Created AWS CLI cache directory %s", cache_dir)
        return

    for entry in cache_dir.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
    logger.info("Cleared AWS CLI cache %s", cache_dir)
