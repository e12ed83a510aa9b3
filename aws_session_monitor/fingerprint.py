"""Deterministic fingerprints used to predict AWS CLI cache file names."""

import hashlib
import json


def fingerprint(components):
    """
    Hash a mapping of identity components the way the AWS CLI names cache files.

    The mapping is serialized as compact JSON with sorted keys, so the result
    does not depend on insertion order or locale.

    Args:
        components: Mapping of string keys to string values

    Returns:
        str: Lowercase hex SHA-1 digest
    """
    canonical = json.dumps(components, sort_keys=True, separators=(',', ':'))
    return hashlib.sha1(canonical.encode('utf-8')).hexdigest()


def cache_file_name(components):
    """Return the expected cache file name for the given components."""
    return f'{fingerprint(components)}.json'


def sso_token_file_name(session_name=None, start_url=None):
    """Return the SSO token cache file name for a session name or start URL."""
    key = session_name or start_url
    if not key:
        raise ValueError('Either session_name or start_url is required')
    return f"{hashlib.sha1(key.encode('utf-8')).hexdigest()}.json"
