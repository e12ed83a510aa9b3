"""Shared pytest fixtures for aws_session_monitor tests."""

import json
import pytest
from pathlib import Path
from datetime import datetime, timezone, timedelta

from aws_session_monitor.events import EventBus
from aws_session_monitor.mapping import ProfileCacheMapping


NOW = datetime(2025, 11, 24, 12, 0, 0, tzinfo=timezone.utc)


def iso(dt):
    return dt.strftime('%Y-%m-%dT%H:%M:%SZ')


def sso_credential(expires_at, **extra):
    """SSO role credentials as cached by the AWS CLI."""
    data = {
        'ProviderType': 'sso',
        'Credentials': {
            'AccessKeyId': 'ASIAEXAMPLE',
            'SecretAccessKey': 'secret',
            'SessionToken': 'token',
            'Expiration': iso(expires_at),
        },
    }
    data.update(extra)
    return data


def assumed_role_credential(expires_at, arn='arn:aws:sts::123456789012:assumed-role/Admin/botocore-session-1'):
    """Credentials returned by sts:AssumeRole as cached by the AWS CLI."""
    return {
        'Credentials': {
            'AccessKeyId': 'ASIAEXAMPLE',
            'SecretAccessKey': 'secret',
            'SessionToken': 'token',
            'Expiration': iso(expires_at),
        },
        'AssumedRoleUser': {
            'AssumedRoleId': 'AROAEXAMPLE:botocore-session-1',
            'Arn': arn,
        },
        'ResponseMetadata': {'HTTPStatusCode': 200},
    }


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's own AWS settings out of the tests."""
    for name in ('AWS_CONFIG_FILE', 'AWS_SESSION_MONITOR_HOME', 'AWS_CLI_PATH', 'AWS_SESSION_MONITOR_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_aws_dir(tmp_path, monkeypatch):
    """Create a temporary AWS directory for testing."""
    aws_dir = tmp_path / '.aws'
    aws_dir.mkdir()

    # Mock Path.home() to return tmp_path
    monkeypatch.setattr(Path, 'home', lambda: tmp_path)

    return aws_dir


@pytest.fixture
def mock_config_file(mock_aws_dir):
    """Create a mock config file with SSO, role and plain profiles."""
    config_path = mock_aws_dir / 'config'
    config_path.write_text(
        "[default]\n"
        "region = us-east-1\n"
        "\n"
        "[sso-session corp]\n"
        "sso_start_url = https://example.awsapps.com/start\n"
        "sso_region = us-east-1\n"
        "\n"
        "[profile sso-dev]\n"
        "sso_session = corp\n"
        "sso_account_id = 123456789012\n"
        "sso_role_name = Developer\n"
        "region = us-east-1\n"
        "\n"
        "[profile legacy-sso]\n"
        "sso_start_url = https://legacy.awsapps.com/start\n"
        "sso_region = eu-west-1\n"
        "sso_account_id = 210987654321\n"
        "sso_role_name = ReadOnly\n"
        "\n"
        "[profile admin-role]\n"
        "source_profile = sso-dev\n"
        "role_arn = arn:aws:iam::123456789012:role/Admin\n"
        "region = us-east-1\n"
        "\n"
        "[profile prod]\n"
        "region = us-east-1\n"
        "output = json\n"
    )
    return config_path


@pytest.fixture
def cache_dir(mock_aws_dir):
    """The AWS CLI credential cache directory."""
    path = mock_aws_dir / 'cli' / 'cache'
    path.mkdir(parents=True)
    return path


@pytest.fixture
def write_cache(cache_dir):
    """Write a JSON document into the cache directory and return its path."""
    def _write(name, data):
        path = cache_dir / name
        if isinstance(data, (dict, list)):
            path.write_text(json.dumps(data))
        else:
            path.write_text(data)
        return path
    return _write


@pytest.fixture
def mapping(tmp_path):
    """A mapping store in a temporary file that never saves in the background."""
    store = ProfileCacheMapping(path=tmp_path / 'state' / 'cache_mappings.json', debounce_interval=3600)
    yield store
    store.close()


@pytest.fixture
def bus_events():
    """An EventBus together with the list of every event it delivered."""
    bus = EventBus()
    received = []
    bus.subscribe(received.append)
    return bus, received


@pytest.fixture
def future():
    """Factory for datetimes relative to the fixed test clock."""
    return lambda **kwargs: NOW + timedelta(**kwargs)
