import pytest

from relay.server.settings import RelayServerSettings
from shared.validators import parse_string_list


class TestParseStringList:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ('["http://a.com","http://b.com"]', ["http://a.com", "http://b.com"]),
            ("http://a.com , http://b.com", ["http://a.com", "http://b.com"]),
            ("http://a.com,,http://b.com,", ["http://a.com", "http://b.com"]),
            (["http://a.com"], ["http://a.com"]),
        ],
    )
    def test_accepted_forms(self, raw, expected):
        assert parse_string_list(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", ",,,", "[]", []])
    def test_empty_values_raise(self, raw):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list(raw)

    def test_empty_allowed_when_requested(self):
        assert parse_string_list("[]", allow_empty=True) == []

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError, match="Invalid JSON array"):
            parse_string_list("[not valid json")

    def test_non_string_items_raise(self):
        with pytest.raises(ValueError, match="must be an array of strings"):
            parse_string_list('["http://a.com", 123]')


class TestStringListEnvSource:
    """cors_origins must survive pydantic-settings' own JSON decoding of env vars."""

    def test_comma_separated_env_value(self, monkeypatch):
        monkeypatch.setenv("RELAY_CORS_ORIGINS", "http://a.com,http://b.com")
        settings = RelayServerSettings()
        assert settings.cors_origins == ["http://a.com", "http://b.com"]

    def test_json_env_value(self, monkeypatch):
        monkeypatch.setenv("RELAY_CORS_ORIGINS", '["http://a.com"]')
        settings = RelayServerSettings()
        assert settings.cors_origins == ["http://a.com"]

    def test_other_fields_still_parsed_from_env(self, monkeypatch):
        monkeypatch.setenv("RELAY_RATE_LIMIT_BURST", "7")
        settings = RelayServerSettings()
        assert settings.rate_limit_burst == 7
