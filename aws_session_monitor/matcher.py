"""Locating the cached credential file that belongs to a profile."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from . import config as settings
from .credentials import parse_credential
from .exceptions import CredentialParseError
from .fingerprint import cache_file_name, sso_token_file_name
from .profiles import IAMRoleProfile, SSOProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheFile:
    path: object
    raw_bytes: bytes
    last_modified: datetime
    credential: object

    @property
    def name(self):
        return self.path.name

    @property
    def expires_at(self):
        return self.credential.expires_at


def _utcnow():
    return datetime.now(timezone.utc)


def read_cache_file(path, now):
    """
    Read and parse one cache file.

    Returns:
        CacheFile

    Raises:
        OSError: If the file cannot be read
        CredentialParseError: If it holds no valid credential
    """
    stat = path.stat()
    raw = path.read_bytes()
    credential = parse_credential(raw, now=now)
    return CacheFile(
        path=path,
        raw_bytes=raw,
        last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        credential=credential,
    )


def list_cache_files(cache_dir):
    """
    List the visible *.json files of a cache directory, newest first.

    An unreadable or missing directory yields an empty list.
    """
    try:
        entries = list(cache_dir.iterdir())
    except OSError as e:
        logger.debug("Cannot list cache directory %s: %s", cache_dir, e)
        return []

    candidates = []
    for entry in entries:
        if entry.name.startswith('.') or entry.suffix != '.json':
            continue
        try:
            if not entry.is_file():
                continue
            mtime = entry.stat().st_mtime
        except OSError:
            continue
        candidates.append((mtime, entry))

    candidates.sort(key=lambda item: item[0], reverse=True)
    return [entry for _, entry in candidates]


def _string_values(data):
    for value in data.values():
        if isinstance(value, str):
            yield value


def _matches_sso_profile(profile, data, text):
    if data.get('RoleArn') == profile.role_arn:
        return 'role-arn'

    marker = f'[profile {profile.name}]'
    if any(marker in value for value in _string_values(data)):
        return 'embedded-config'

    # Last resort, may match another profile sharing account and role
    if profile.account_id in text and profile.role_name in text and profile.start_url in text:
        return 'content'

    return None


def _matches_iam_profile(profile, data):
    assumed_role_user = data.get('AssumedRoleUser')
    if not isinstance(assumed_role_user, dict):
        return None
    arn = assumed_role_user.get('Arn')
    if isinstance(arn, str) and profile.role_name and profile.role_name in arn:
        return 'assumed-role-arn'
    return None


class CacheMatcher:
    """
    Resolves a profile to its currently valid credential cache file.

    Strategies are tried in order: the remembered mapping, the file name the
    AWS CLI derives from the profile's identity (SSO only), and finally a scan
    of the cache directory. A hit from either of the last two is remembered.
    """

    def __init__(self, mapping, profiles, cache_dir=None, token_cache_dir=None, clock=_utcnow):
        self.mapping = mapping
        self.profiles = profiles
        self._cache_dir = cache_dir
        self._token_cache_dir = token_cache_dir
        self.clock = clock

    @property
    def cache_dir(self):
        return self._cache_dir or settings.cli_cache_dir()

    @property
    def token_cache_dir(self):
        return self._token_cache_dir or settings.sso_cache_dir()

    def resolve(self, profile):
        """
        Find the cache file holding a valid credential for profile.

        Args:
            profile: SSOProfile or IAMRoleProfile

        Returns:
            CacheFile, or None when no valid cached credential exists
        """
        now = self.clock()

        cache_file = self._from_known_mapping(profile, now)
        if cache_file is not None:
            return cache_file

        if isinstance(profile, SSOProfile):
            cache_file = self._from_fingerprint(profile, now)
            if cache_file is not None:
                return cache_file

        return self._scan(profile, now)

    def _from_known_mapping(self, profile, now):
        file_name = self.mapping.get(profile.name)
        if file_name is None:
            return None

        path = self.cache_dir / file_name
        try:
            cache_file = read_cache_file(path, now)
        except FileNotFoundError:
            logger.debug("Mapped cache file %s for %s is gone", file_name, profile.name)
        except (OSError, CredentialParseError) as e:
            logger.debug("Mapped cache file %s for %s is unusable: %s", file_name, profile.name, e)
        else:
            logger.debug("Resolved %s from known mapping %s", profile.name, file_name)
            return cache_file

        self.mapping.remove(profile.name)
        return None

    def fingerprint_components(self, profile):
        """Identity components the AWS CLI hashes to name an SSO profile's cache file."""
        session_name = profile.sso_session or self.profiles.get_session_name_for_profile(profile.name)
        components = {'accountId': profile.account_id, 'roleName': profile.role_name}
        if session_name:
            components['sessionName'] = session_name
        else:
            components['startUrl'] = profile.start_url
        return components

    def _from_fingerprint(self, profile, now):
        file_name = cache_file_name(self.fingerprint_components(profile))
        path = self.cache_dir / file_name
        try:
            cache_file = read_cache_file(path, now)
        except (OSError, CredentialParseError) as e:
            logger.debug("No usable fingerprint file %s for %s: %s", file_name, profile.name, e)
            return None

        logger.debug("Resolved %s from fingerprint %s", profile.name, file_name)
        self.mapping.set(profile.name, file_name)
        return cache_file

    def _scan(self, profile, now):
        for path in list_cache_files(self.cache_dir):
            try:
                raw = path.read_bytes()
                data = json.loads(raw)
            except (OSError, ValueError) as e:
                logger.debug("Skipping unreadable cache file %s: %s", path.name, e)
                continue
            if not isinstance(data, dict):
                continue

            if isinstance(profile, SSOProfile):
                rule = _matches_sso_profile(profile, data, raw.decode('utf-8', errors='replace'))
            elif isinstance(profile, IAMRoleProfile):
                rule = _matches_iam_profile(profile, data)
            else:
                rule = None
            if rule is None:
                continue

            try:
                cache_file = read_cache_file(path, now)
            except (OSError, CredentialParseError) as e:
                logger.debug("Candidate %s for %s rejected: %s", path.name, profile.name, e)
                continue

            logger.debug("Resolved %s by %s match on %s", profile.name, rule, path.name)
            self.mapping.set(profile.name, path.name)
            return cache_file

        return None

    def find_sso_token(self, profile):
        """
        Find the SSO login token an SSO profile authenticates with.

        Returns:
            CacheFile, or None if there is no valid token
        """
        if not isinstance(profile, SSOProfile):
            return None

        now = self.clock()
        session_name = profile.sso_session or self.profiles.get_session_name_for_profile(profile.name)
        path = self.token_cache_dir / sso_token_file_name(session_name, profile.start_url)
        try:
            return read_cache_file(path, now)
        except (OSError, CredentialParseError) as e:
            logger.debug("No usable SSO token at %s: %s", path.name, e)

        for path in list_cache_files(self.token_cache_dir):
            try:
                data = json.loads(path.read_bytes())
            except (OSError, ValueError):
                continue
            if not isinstance(data, dict):
                continue
            if data.get('startUrl') != profile.start_url or data.get('region') != profile.region:
                continue
            try:
                return read_cache_file(path, now)
            except (OSError, CredentialParseError):
                continue

        return None
