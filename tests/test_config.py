"""Tests for configuration loading."""

import pytest

from proofgate import ConfigError, Profile, load_config


class TestLoadConfig:
    """Tests for load_config."""

    def test_loads_required_values(self, env):
        """All required variables present yields a config."""
        config = load_config(env)

        assert config.application_id == "0xApp"
        assert config.provider_id == "github-username"
        assert config.profile is Profile.PRODUCTION
        assert config.always_valid is False
        assert config.port == 3000

    def test_callback_url_derived_from_base(self, env):
        """Callback URL is <base>/receive-proofs."""
        env["PUBLIC_BASE_URL"] = "https://rp.example.com/"
        config = load_config(env)

        assert config.callback_url == "https://rp.example.com/receive-proofs"

    @pytest.mark.parametrize(
        "name",
        ["RECLAIM_APP_ID", "RECLAIM_APP_SECRET", "RECLAIM_PROVIDER_ID", "PUBLIC_BASE_URL"],
    )
    def test_missing_required(self, env, name):
        """Absent required variable names the field."""
        del env[name]

        with pytest.raises(ConfigError) as exc:
            load_config(env)

        assert exc.value.field == name

    def test_blank_required(self, env):
        """Whitespace-only counts as missing."""
        env["RECLAIM_PROVIDER_ID"] = "   "

        with pytest.raises(ConfigError) as exc:
            load_config(env)

        assert exc.value.field == "RECLAIM_PROVIDER_ID"

    def test_secret_not_in_repr(self, env):
        """The secret never shows up in repr."""
        config = load_config(env)

        assert "s3cr3t-value" not in repr(config)

    def test_config_is_immutable(self, env):
        """Config cannot be changed after construction."""
        config = load_config(env)

        with pytest.raises(AttributeError):
            config.provider_id = "other"

    def test_always_valid_refused_in_production(self, env):
        """The debug verifier cannot be enabled in production."""
        env["PROOFGATE_ALWAYS_VALID"] = "true"

        with pytest.raises(ConfigError) as exc:
            load_config(env)

        assert exc.value.field == "PROOFGATE_ALWAYS_VALID"

    def test_always_valid_in_development(self, env):
        """The debug verifier is allowed under the development profile."""
        env["PROOFGATE_PROFILE"] = "development"
        env["PROOFGATE_ALWAYS_VALID"] = "1"

        config = load_config(env)

        assert config.profile is Profile.DEVELOPMENT
        assert config.always_valid is True

    def test_unknown_profile(self, env):
        env["PROOFGATE_PROFILE"] = "staging"

        with pytest.raises(ConfigError):
            load_config(env)

    def test_invalid_numbers(self, env):
        """Non-numeric optional values are config errors."""
        env["SESSION_TTL_SECONDS"] = "ten"

        with pytest.raises(ConfigError) as exc:
            load_config(env)

        assert exc.value.field == "SESSION_TTL_SECONDS"

    def test_invalid_boolean(self, env):
        env["REQUIRE_KNOWN_SESSION"] = "maybe"

        with pytest.raises(ConfigError):
            load_config(env)

    def test_cors_origins(self, env):
        env["CORS_ALLOW_ORIGINS"] = "http://localhost:3001, https://app.example.com"
        config = load_config(env)

        assert config.cors_allow_origins == ("http://localhost:3001", "https://app.example.com")
