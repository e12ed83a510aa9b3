"""Command-line interface for AWS Session Monitor."""

import argparse
import logging
import shutil
import sys
import threading

from tabulate import tabulate

from . import config as settings
from .account_info import get_identity
from .credentials import format_age, format_expires_in
from .events import SessionExpired, SessionUpdate, SessionWarning
from .exceptions import RenewalError
from .monitor import SessionStatus
from .profiles import IAMRoleProfile, SSOProfile
from .service import SessionGateway

logger = logging.getLogger(__name__)

_TERMINAL_TEXTS = (settings.STATUS_NOT_AUTHENTICATED, settings.STATUS_PROFILE_NOT_FOUND)


def configure_logging(verbose=False):
    level = 'DEBUG' if verbose else settings.log_level()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def _rule():
    return "=" * min(80, shutil.get_terminal_size().columns)


def profile_type(profile):
    if isinstance(profile, SSOProfile):
        return 'SSO'
    if isinstance(profile, IAMRoleProfile):
        return 'IAM Role'
    return 'Other'


def sso_token_status(gateway, profile):
    if not isinstance(profile, SSOProfile):
        return 'N/A'
    token = gateway.matcher.find_sso_token(profile)
    if token is None:
        return '✗ Login required'
    return format_expires_in(token.expires_at)


def list_profiles(gateway):
    """List all profiles with the state of their cached credentials."""
    print("\n🔍 AWS Session Status")
    print(_rule())
    print()

    names = gateway.profiles.list_profiles()
    if not names:
        print(f"❌ No AWS profiles found in {gateway.profiles.config_path}")
        return 1

    table_data = []
    for name in names:
        profile = gateway.profiles.get_profile(name)
        if profile is None:
            table_data.append([name, 'Other', 'N/A', '⚠ Unsupported', 'N/A', 'N/A', 'N/A'])
            continue

        sso_token = sso_token_status(gateway, profile)
        cache_file = gateway.matcher.resolve(profile)
        if cache_file is None:
            table_data.append([name, profile_type(profile), 'N/A', '✗ No Session', 'N/A', 'N/A', sso_token])
            continue

        table_data.append([
            name,
            profile_type(profile),
            cache_file.name,
            '✓ Active',
            format_age(cache_file.last_modified),
            format_expires_in(cache_file.expires_at),
            sso_token,
        ])

    headers = ['Profile', 'Type', 'Cache File', 'Status', 'Age', 'Expires In', 'SSO Token']
    print(tabulate(table_data, headers=headers, tablefmt='fancy_grid'))

    active_count = sum(1 for row in table_data if row[3] == '✓ Active')
    print(f"\n📊 Summary: ✓ {active_count} active  |  ✗ {len(table_data) - active_count} without session\n")
    return 0


def watch_profile(gateway, profile_name):
    """Monitor a profile until its session ends or the user interrupts."""
    finished = threading.Event()

    def on_event(event):
        if isinstance(event, SessionUpdate):
            print(f"\r{event.text}    ", end='', flush=True)
            if event.text in _TERMINAL_TEXTS:
                finished.set()
        elif isinstance(event, SessionWarning):
            minutes = event.threshold // 60
            print(f"\n⚠️  Session for {profile_name} expires in less than {minutes} minute(s)")
        elif isinstance(event, SessionExpired):
            print(f"\n✗ Session for {profile_name} expired. Run with --renew {profile_name}")
            finished.set()

    print(f"\n⏱  Watching session for profile: {profile_name} (Ctrl-C to stop)\n")
    with gateway.subscribe(on_event):
        gateway.connect(profile_name)
        try:
            while not finished.wait(0.5):
                pass
        except KeyboardInterrupt:
            print()
            gateway.disconnect()
            return 0

    print()
    return 0 if gateway.monitor.status is SessionStatus.EXPIRED else 1


def renew_profile(gateway, profile_name):
    """Renew the SSO session for a profile."""
    print("\n🔄 AWS Session Renewal")
    print(_rule())
    print()
    print(f"🔐 Renewing session for profile: {profile_name}")
    print("   Please follow the instructions in your browser...\n")

    try:
        pending = gateway.renew(profile_name)
        pending.result()
    except RenewalError as e:
        print("❌ Failed!")
        print(f"   {e}\n")
        return 1

    expires_at = gateway.monitor.expires_at
    gateway.disconnect()
    if expires_at is None:
        print("❌ Login finished but no cached credential was found.\n")
        return 1

    print("✅ Success!")
    print(f"   Session expires in {format_expires_in(expires_at)}\n")
    return 0


def show_identity(profile_name):
    info = get_identity(profile_name)
    rows = [
        ['Profile', info['profile']],
        ['Status', info['status']],
        ['Account ID', info['account_id']],
        ['Principal', f"{info['principal']} ({info['principal_type']})"],
        ['ARN', info['arn']],
    ]
    print(tabulate(rows, tablefmt='fancy_grid'))
    return 0 if info['status'] == 'Active' else 1


def main(argv=None):
    """Main function to parse arguments and route to appropriate command."""
    parser = argparse.ArgumentParser(
        description='AWS SSO and role session monitor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  aws-session-monitor                     # List profiles, cached sessions and SSO token expiry
  aws-session-monitor --watch myprofile   # Count down the session of 'myprofile'
  aws-session-monitor --renew myprofile   # Log out, log in again and verify
  aws-session-monitor --whoami myprofile  # Show the identity behind 'myprofile'
        """
    )

    group = parser.add_mutually_exclusive_group()
    group.add_argument('--watch', metavar='PROFILE', help='Monitor the session of a profile')
    group.add_argument('--renew', metavar='PROFILE', help='Renew the SSO session of a profile')
    group.add_argument('--whoami', metavar='PROFILE', help='Show the caller identity of a profile')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.whoami:
        return show_identity(args.whoami)

    with SessionGateway() as gateway:
        if args.watch:
            return watch_profile(gateway, args.watch)
        if args.renew:
            return renew_profile(gateway, args.renew)
        return list_profiles(gateway)


if __name__ == '__main__':
    sys.exit(main())
