"""Tests for settings and logging helpers."""

import pytest
from pydantic import ValidationError

from foundation_client.core.config import FoundationSettings, get_settings
from foundation_client.core.logging import REDACTED, redact


class TestSettings:

    def test_defaults(self):
        settings = get_settings()

        assert settings.foundation.port == 8000
        assert settings.foundation.timeout_seconds == 55.0
        assert settings.foundation.network_details_timeout == 45
        assert settings.foundation.mock is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FOUNDATION_PORT", "9443")
        monkeypatch.setenv("FOUNDATION_MOCK", "1")

        settings = get_settings()

        assert settings.foundation.port == 9443
        assert settings.foundation.mock is True

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    @pytest.mark.parametrize("base_path", ["/foundation/", "foundation", "/foundation"])
    def test_base_url(self, base_path):
        settings = FoundationSettings(base_path=base_path)

        assert settings.base_url("10.0.0.5") == "http://10.0.0.5:8000/foundation/"

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            FoundationSettings(port=0)


class TestRedact:

    def test_passwords_are_masked(self):
        payload = {
            "ucsm_password": "secret",
            "blocks": [{"nodes": [{"ipmi_user": "ADMIN", "ipmi_password": "ADMIN"}]}],
        }

        redacted = redact(payload)

        assert redacted["ucsm_password"] == REDACTED
        assert redacted["blocks"][0]["nodes"][0] == {"ipmi_user": "ADMIN", "ipmi_password": REDACTED}
        assert payload["ucsm_password"] == "secret"

    def test_missing_passwords_stay_none(self):
        assert redact({"xs_master_password": None}) == {"xs_master_password": None}
