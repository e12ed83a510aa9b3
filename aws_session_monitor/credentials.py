"""Parsing of AWS CLI credential cache records."""

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from .exceptions import BadDateError, ExpiredCredentialError, MalformedCredentialError

_CREDENTIAL_KEYS = ('AccessKeyId', 'SecretAccessKey', 'SessionToken', 'Expiration')
_ASSUMED_ROLE_KEYS = ('AssumedRoleId', 'Arn')

_TIMESTAMP_FORMATS = (
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%S.%f%z',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M:%S.%f',
)

# strptime's %f accepts at most six digits
_FRACTION_RE = re.compile(r'(\.\d{6})\d+')


@dataclass(frozen=True)
class SSOCredential:
    expires_at: datetime


@dataclass(frozen=True)
class AssumedRoleCredential:
    expires_at: datetime
    assumed_role_arn: str


def parse_timestamp(value):
    """
    Parse an ISO-8601 timestamp as written by the AWS CLI.

    Fractional seconds and the timezone designator are optional. A timestamp
    without a designator is taken to be UTC.

    Args:
        value: Timestamp string

    Returns:
        datetime: Timezone-aware UTC datetime

    Raises:
        BadDateError: If the value matches none of the accepted forms
    """
    if not isinstance(value, str):
        raise BadDateError(f'Expected a timestamp string, got {type(value).__name__}')

    text = value.strip()
    if text.endswith('UTC'):
        text = text[:-3] + '+00:00'
    text = _FRACTION_RE.sub(r'\1', text)

    for fmt in _TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        try:
            return parsed.astimezone(timezone.utc)
        except OverflowError:
            # Valid in its own offset but outside datetime's range in UTC
            raise BadDateError(f'Timestamp out of range: {value!r}')

    raise BadDateError(f'Unrecognised timestamp: {value!r}')


def _credentials_block(data):
    credentials = data.get('Credentials')
    if not isinstance(credentials, dict):
        return None
    if not all(key in credentials for key in _CREDENTIAL_KEYS):
        return None
    return credentials


def decode_record(data):
    """
    Build a credential record from an already-decoded JSON object.

    Expiry is not checked here; see parse_credential().
    """
    if not isinstance(data, dict):
        raise MalformedCredentialError('Credential cache content is not a JSON object')

    credentials = _credentials_block(data)

    # SSO role credentials written by the CLI
    if credentials is not None and 'ProviderType' in data:
        return SSOCredential(expires_at=parse_timestamp(credentials['Expiration']))

    # Credentials from sts:AssumeRole
    assumed_role_user = data.get('AssumedRoleUser')
    if credentials is not None and isinstance(assumed_role_user, dict):
        if all(key in assumed_role_user for key in _ASSUMED_ROLE_KEYS):
            return AssumedRoleCredential(
                expires_at=parse_timestamp(credentials['Expiration']),
                assumed_role_arn=assumed_role_user['Arn'],
            )

    # SSO login token from ~/.aws/sso/cache
    if 'accessToken' in data and 'expiresAt' in data:
        return SSOCredential(expires_at=parse_timestamp(data['expiresAt']))

    raise MalformedCredentialError('Unsupported credential cache format')


def parse_credential(raw, now=None):
    """
    Parse the raw content of a credential cache file.

    Args:
        raw: File content as bytes or str
        now: Reference time, defaults to the current UTC time

    Returns:
        SSOCredential or AssumedRoleCredential

    Raises:
        MalformedCredentialError: If the content is not a supported shape
        BadDateError: If the expiration cannot be parsed
        ExpiredCredentialError: If the credential has already expired
    """
    try:
        data = json.loads(raw)
    except (ValueError, TypeError) as e:
        raise MalformedCredentialError(f'Invalid JSON: {e}') from e

    record = decode_record(data)

    if now is None:
        now = datetime.now(timezone.utc)
    if record.expires_at <= now:
        raise ExpiredCredentialError(record.expires_at)

    return record


def format_remaining(seconds):
    """Format a remaining duration as HH:MM:SS."""
    total = max(0, int(seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    return f'{hours:02d}:{minutes:02d}:{secs:02d}'


def format_expires_in(expires_at, now=None):
    """Human readable time left until expires_at, e.g. '2h 15m'."""
    if now is None:
        now = datetime.now(timezone.utc)

    time_left = (expires_at - now).total_seconds()
    if time_left <= 0:
        return 'Expired'

    hours = int(time_left // 3600)
    minutes = int((time_left % 3600) // 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_age(last_modified, now=None):
    """Get the age of a cache file from its modification time."""
    if now is None:
        now = datetime.now(timezone.utc)

    age = now - last_modified
    days = age.days
    hours = age.seconds // 3600

    if days > 0:
        return f"{days}d {hours}h"
    elif hours > 0:
        return f"{hours}h"
    else:
        minutes = age.seconds // 60
        return f"{minutes}m"
