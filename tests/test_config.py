"""Tests for Settings and its startup validation."""

from zoneinfo import ZoneInfo

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from doorman.config import Settings
from doorman.timeparse import DEFAULT_DATE_FORMAT


def _settings(tmp_path, **overrides) -> Settings:
    values = {
        "twilio_account_sid": "AC123",
        "twilio_auth_token": "token",
        "phone_number": "+15559998888",
        "base_url": "https://gate.example.org",
        "static_dir": str(tmp_path),
    }
    values.update(overrides)
    return Settings(**values)


class TestDefaults:
    def test_defaults(self):
        s = Settings()
        assert s.timezone == "America/Los_Angeles"
        assert s.date_format == DEFAULT_DATE_FORMAT
        assert s.twilio_api_base == "https://api.twilio.com/2010-04-01"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PHONE_NUMBER", "+15551112222")
        monkeypatch.setenv("KEEPALIVE_INTERVAL", "0")
        s = Settings()
        assert s.phone_number == "+15551112222"
        assert s.keepalive_interval == 0

    def test_tzinfo(self, tmp_path):
        s = _settings(tmp_path, timezone="Europe/London")
        assert s.tzinfo == ZoneInfo("Europe/London")


class TestValidateStartup:
    def test_valid(self, tmp_path):
        assert _settings(tmp_path).validate_startup() == []

    @pytest.mark.parametrize(
        "field, env_name",
        [
            ("twilio_account_sid", "TWILIO_ACCOUNT_SID"),
            ("twilio_auth_token", "TWILIO_AUTH_TOKEN"),
            ("phone_number", "PHONE_NUMBER"),
            ("base_url", "BASE_URL"),
        ],
    )
    def test_missing_required(self, tmp_path, field, env_name):
        with pytest.raises(ValueError, match=env_name):
            _settings(tmp_path, **{field: ""}).validate_startup()

    def test_unknown_timezone(self, tmp_path):
        with pytest.raises(ValueError, match="TIMEZONE"):
            _settings(tmp_path, timezone="Mars/Olympus_Mons").validate_startup()

    def test_placeholder_warns(self, tmp_path):
        warnings = _settings(tmp_path, twilio_account_sid="AC...").validate_startup()
        assert any("TWILIO_ACCOUNT_SID" in w for w in warnings)

    def test_trailing_slash_warns(self, tmp_path):
        warnings = _settings(tmp_path, base_url="https://gate.example.org/").validate_startup()
        assert any("BASE_URL" in w for w in warnings)

    def test_missing_static_dir_warns(self, tmp_path):
        warnings = _settings(tmp_path, static_dir=str(tmp_path / "nope")).validate_startup()
        assert any("Static directory" in w for w in warnings)
