"""Paths, environment overrides and monitoring constants."""

import os
from pathlib import Path

APP_NAME = 'aws-session-monitor'

# Warning thresholds in seconds, descending
WARNING_THRESHOLDS = (3600, 1800, 600, 300, 60)

TICK_INTERVAL = 1.0
REVALIDATE_INTERVAL = 60.0
SAVE_DEBOUNCE_INTERVAL = 2.0

# Superseded resolutions may still be waiting on the CLI; a newer one must not queue behind them
CONNECT_WORKERS = 4

DEFAULT_COMMAND_TIMEOUT = 30
LOGIN_TIMEOUT = 120

STATUS_NO_SESSION = 'Session: --:--:--'
STATUS_CONNECTING = 'Session: connecting...'
STATUS_EXPIRED = 'Session: expired'
STATUS_NOT_AUTHENTICATED = 'Session: not authenticated'
STATUS_PROFILE_NOT_FOUND = 'Session: profile not found'


def aws_dir():
    """Return the AWS CLI configuration directory."""
    return Path.home() / '.aws'


def aws_config_file():
    """Return the AWS config file, honouring AWS_CONFIG_FILE."""
    override = os.environ.get('AWS_CONFIG_FILE')
    if override:
        return Path(override).expanduser()
    return aws_dir() / 'config'


def cli_cache_dir():
    """Directory where the AWS CLI caches role credentials."""
    return aws_dir() / 'cli' / 'cache'


def sso_cache_dir():
    """Directory where the AWS CLI caches SSO login tokens."""
    return aws_dir() / 'sso' / 'cache'


def app_dir():
    """Return the directory holding this tool's own state."""
    override = os.environ.get('AWS_SESSION_MONITOR_HOME')
    if override:
        return Path(override).expanduser()
    return Path.home() / f'.{APP_NAME}'


def mapping_file():
    return app_dir() / 'cache_mappings.json'


def aws_cli_path():
    return os.environ.get('AWS_CLI_PATH', 'aws')


def log_level(default='WARNING'):
    return os.environ.get('AWS_SESSION_MONITOR_LOG_LEVEL', default).upper()
