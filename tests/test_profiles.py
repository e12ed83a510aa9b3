"""Unit tests for aws_session_monitor.profiles module."""

import pytest

from aws_session_monitor.profiles import (
    IAMRoleProfile,
    ProfileRepository,
    SSOProfile,
    clear_cache,
)


class TestListProfiles:
    """Tests for ProfileRepository.list_profiles()."""

    def test_list_profiles(self, mock_config_file):
        """Test P-01: Profiles are listed without prefixes, sorted."""
        profiles = ProfileRepository().list_profiles()

        assert profiles == ['admin-role', 'default', 'legacy-sso', 'prod', 'sso-dev']

    def test_sso_session_blocks_excluded(self, mock_config_file):
        """Test P-02: sso-session sections are not profiles."""
        assert 'corp' not in ProfileRepository().list_profiles()

    def test_no_config_file(self, mock_aws_dir):
        """Test P-03: Missing config file."""
        assert ProfileRepository().list_profiles() == []

    def test_config_file_env_override(self, mock_aws_dir, tmp_path, monkeypatch):
        """Test P-04: AWS_CONFIG_FILE is honoured."""
        other = tmp_path / 'other-config'
        other.write_text("[profile elsewhere]\nregion = us-west-2\n")
        monkeypatch.setenv('AWS_CONFIG_FILE', str(other))

        assert ProfileRepository().list_profiles() == ['elsewhere']

    def test_unparseable_config(self, mock_aws_dir):
        """Test P-05: A broken config file yields no profiles."""
        (mock_aws_dir / 'config').write_text("this is not = an ini file\n[unterminated\n")

        assert ProfileRepository().list_profiles() == []


class TestGetProfile:
    """Tests for ProfileRepository.get_profile()."""

    def test_sso_profile_with_session(self, mock_config_file):
        """Test P-06: SSO settings are taken from the sso-session block."""
        profile = ProfileRepository().get_profile('sso-dev')

        assert profile == SSOProfile(
            name='sso-dev',
            start_url='https://example.awsapps.com/start',
            region='us-east-1',
            account_id='123456789012',
            role_name='Developer',
            sso_session='corp',
        )
        assert profile.role_arn == 'arn:aws:iam::123456789012:role/Developer'

    def test_legacy_sso_profile(self, mock_config_file):
        """Test P-07: Inline sso_start_url profiles."""
        profile = ProfileRepository().get_profile('legacy-sso')

        assert isinstance(profile, SSOProfile)
        assert profile.start_url == 'https://legacy.awsapps.com/start'
        assert profile.region == 'eu-west-1'
        assert profile.sso_session is None

    def test_iam_role_profile(self, mock_config_file):
        """Test P-08: role_arn + source_profile."""
        profile = ProfileRepository().get_profile('admin-role')

        assert isinstance(profile, IAMRoleProfile)
        assert profile.source_profile == 'sso-dev'
        assert profile.role_arn == 'arn:aws:iam::123456789012:role/Admin'
        assert profile.role_name == 'Admin'

    def test_plain_profile(self, mock_config_file):
        """Test P-09: Profiles without SSO or role settings are not descriptors."""
        assert ProfileRepository().get_profile('prod') is None
        assert ProfileRepository().get_profile('default') is None

    def test_missing_profile(self, mock_config_file):
        """Test P-10: Unknown profile."""
        assert ProfileRepository().get_profile('nope') is None

    def test_missing_session_block(self, mock_aws_dir):
        """Test P-11: sso_session pointing at nothing."""
        (mock_aws_dir / 'config').write_text(
            "[profile broken]\n"
            "sso_session = ghost\n"
            "sso_account_id = 123456789012\n"
            "sso_role_name = Developer\n"
        )

        assert ProfileRepository().get_profile('broken') is None

    def test_role_without_source(self, mock_aws_dir):
        """Test P-12: role_arn without source_profile is not supported."""
        (mock_aws_dir / 'config').write_text(
            "[profile web]\n"
            "role_arn = arn:aws:iam::123456789012:role/Web\n"
            "web_identity_token_file = /tmp/token\n"
        )

        assert ProfileRepository().get_profile('web') is None


class TestGetSessionName:
    """Tests for ProfileRepository.get_session_name_for_profile()."""

    def test_direct_session(self, mock_config_file):
        """Test P-14: Profile's own sso_session."""
        assert ProfileRepository().get_session_name_for_profile('sso-dev') == 'corp'

    def test_via_source_profile(self, mock_config_file):
        """Test P-15: Role profile inherits the source profile's session."""
        assert ProfileRepository().get_session_name_for_profile('admin-role') == 'corp'

    def test_no_session(self, mock_config_file):
        """Test P-16: Legacy profile has no session name."""
        assert ProfileRepository().get_session_name_for_profile('legacy-sso') is None
        assert ProfileRepository().get_session_name_for_profile('nope') is None


class TestClearCache:
    """Tests for clear_cache() function."""

    def test_clears_entries(self, cache_dir):
        """Test P-17: Files and subdirectories are removed, directory kept."""
        (cache_dir / 'a.json').write_text('{}')
        (cache_dir / '.hidden').write_text('x')
        (cache_dir / 'nested').mkdir()
        (cache_dir / 'nested' / 'b.json').write_text('{}')

        clear_cache()

        assert cache_dir.exists()
        assert list(cache_dir.iterdir()) == []

    def test_creates_missing_directory(self, mock_aws_dir):
        """Test P-18: Missing cache directory is created."""
        clear_cache()

        assert (mock_aws_dir / 'cli' / 'cache').is_dir()

    def test_explicit_directory(self, tmp_path):
        """Test P-19: Directory argument."""
        target = tmp_path / 'custom'
        target.mkdir()
        (target / 'x.json').write_text('{}')

        clear_cache(target)

        assert list(target.iterdir()) == []
