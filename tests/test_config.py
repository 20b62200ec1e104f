from pathlib import Path

import pytest

from quotabar.cli import parse_args
from quotabar.config import Config
from quotabar.models import UsagePeriod

_ENV_VARS = [
    "QUOTABAR_SESSION_KEY",
    "QUOTABAR_ORGANIZATION_ID",
    "QUOTABAR_USAGE_PERIOD",
    "QUOTABAR_REFRESH_INTERVAL_MS",
    "QUOTABAR_WARNING_THRESHOLD",
    "QUOTABAR_SHOW_IN_INDICATOR",
    "QUOTABAR_HEADLESS",
    "QUOTABAR_AUTO_INSTALL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: "pytest.MonkeyPatch") -> "None":
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfigFromEnv:
    def test_defaults(self) -> "None":
        config = Config.from_env()
        assert config.session_key == ""
        assert config.organization_id == ""
        assert config.usage_period is UsagePeriod.FIVE_HOUR
        assert config.refresh_interval_ms == 300_000
        assert config.warning_threshold == 80
        assert config.show_in_indicator is True
        assert config.headless is False
        assert config.auto_install is True

    def test_reads_env_vars(self, monkeypatch: "pytest.MonkeyPatch") -> "None":
        monkeypatch.setenv("QUOTABAR_SESSION_KEY", "sk-test-123")
        monkeypatch.setenv("QUOTABAR_ORGANIZATION_ID", "org-abc")
        monkeypatch.setenv("QUOTABAR_USAGE_PERIOD", "seven-day")
        monkeypatch.setenv("QUOTABAR_REFRESH_INTERVAL_MS", "0")
        monkeypatch.setenv("QUOTABAR_WARNING_THRESHOLD", "65.5")
        monkeypatch.setenv("QUOTABAR_SHOW_IN_INDICATOR", "false")
        monkeypatch.setenv("QUOTABAR_HEADLESS", "yes")
        config = Config.from_env()
        assert config.session_key == "sk-test-123"
        assert config.organization_id == "org-abc"
        assert config.usage_period is UsagePeriod.SEVEN_DAY
        assert config.refresh_interval_ms == 0
        assert config.warning_threshold == 65.5
        assert config.show_in_indicator is False
        assert config.headless is True

    def test_invalid_numbers_fall_back(self, monkeypatch: "pytest.MonkeyPatch") -> "None":
        monkeypatch.setenv("QUOTABAR_REFRESH_INTERVAL_MS", "five minutes")
        monkeypatch.setenv("QUOTABAR_WARNING_THRESHOLD", "high")
        config = Config.from_env()
        assert config.refresh_interval_ms == 300_000
        assert config.warning_threshold == 80

    def test_organization_from_cookie_header(
        self, monkeypatch: "pytest.MonkeyPatch"
    ) -> "None":
        monkeypatch.setenv(
            "QUOTABAR_SESSION_KEY", "sessionKey=sk-abc; lastActiveOrg=org-from-cookie"
        )
        config = Config.from_env()
        assert config.organization_id == "org-from-cookie"
        assert config.credentials_configured is True

    def test_env_file_overrides_environment(
        self, monkeypatch: "pytest.MonkeyPatch", tmp_path: "Path"
    ) -> "None":
        # set through monkeypatch so the values loaded from the file
        # are rolled back after the test
        monkeypatch.setenv("QUOTABAR_SESSION_KEY", "sk-env")
        monkeypatch.setenv("QUOTABAR_ORGANIZATION_ID", "org-env")
        env_file = tmp_path / "quotabar.env"
        env_file.write_text(
            "QUOTABAR_SESSION_KEY=sk-file\nQUOTABAR_ORGANIZATION_ID=org-file\n"
        )
        config = Config.from_env(str(env_file))
        assert config.session_key == "sk-file"
        assert config.organization_id == "org-file"
        assert config.env_file == str(env_file)


class TestConfigProperties:
    def test_credentials_configured(self) -> "None":
        assert Config(session_key="sk", organization_id="org").credentials_configured
        assert not Config(session_key="sk").credentials_configured
        assert not Config(organization_id="org").credentials_configured

    def test_refresh_interval_seconds(self) -> "None":
        assert Config(refresh_interval_ms=1500).refresh_interval_seconds == 1.5


class TestParseArgs:
    def test_defaults(self) -> "None":
        config = parse_args([])
        assert config.listen_address == ":9187"
        assert config.log_level == "info"
        assert config.log_format == "console"

    def test_flags(self) -> "None":
        config = parse_args(
            ["--web.listen-address", "", "--log.level", "debug", "--log.format", "json"]
        )
        assert config.listen_address == ""
        assert config.log_level == "debug"
        assert config.log_format == "json"
