"""Tests for environment validation into ReportConfig."""

from pathlib import Path

import pytest
from pydantic import SecretStr

from image_report.core.config import DEFAULT_HOST, ReportConfig, validate
from image_report.core.exceptions import ConfigurationError


class TestRequiredFields:
    """Required variables must be present and non-empty."""

    def test_minimal_env_validates(self, base_env):
        """API key and image are enough for a valid configuration."""
        config = validate(base_env)

        assert isinstance(config.api_key, SecretStr)
        assert config.api_key.get_secret_value() == "abcdef123456"
        assert config.image == "img1"
        assert config.host == DEFAULT_HOST
        assert config.verbose is False
        assert config.stream_timeout is None

    def test_missing_api_key_raises(self):
        """Missing CF_API_KEY raises ConfigurationError naming the variable."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate({"CF_IMAGE": "img1"})

        assert "CF_API_KEY" in str(exc_info.value)

    def test_blank_api_key_counts_as_missing(self):
        """Whitespace-only values are treated as absent."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate({"CF_API_KEY": "   ", "CF_IMAGE": "img1"})

        assert "CF_API_KEY" in str(exc_info.value)

    def test_missing_image_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate({"CF_API_KEY": "abcdef123456"})

        assert "CF_IMAGE" in str(exc_info.value)

    def test_all_missing_fields_reported_together(self):
        """One error lists every missing required variable."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate({})

        message = str(exc_info.value)
        assert "CF_API_KEY" in message
        assert "CF_IMAGE" in message

    def test_unrelated_variables_ignored(self, base_env):
        env = {**base_env, "PATH": "/usr/bin", "HOME": "/root"}

        config = validate(env)

        assert config.image == "img1"


class TestOptionalFields:
    """Optional variables and their normalization."""

    def test_host_trailing_slash_removed(self, base_env):
        config = validate({**base_env, "CF_HOST": "https://proxy.example.com/"})

        assert config.host == "https://proxy.example.com"

    def test_host_without_scheme_rejected(self, base_env):
        with pytest.raises(ConfigurationError) as exc_info:
            validate({**base_env, "CF_HOST": "proxy.example.com"})

        assert "CF_HOST" in str(exc_info.value)

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_verbose_truthy_values(self, base_env, value):
        assert validate({**base_env, "VERBOSE": value}).verbose is True

    @pytest.mark.parametrize("value", ["0", "false", "off"])
    def test_verbose_falsy_values(self, base_env, value):
        assert validate({**base_env, "VERBOSE": value}).verbose is False

    def test_stream_timeout_parsed(self, base_env):
        config = validate({**base_env, "CF_STREAM_TIMEOUT": "2.5"})

        assert config.stream_timeout == 2.5

    def test_stream_timeout_must_be_positive(self, base_env):
        with pytest.raises(ConfigurationError) as exc_info:
            validate({**base_env, "CF_STREAM_TIMEOUT": "0"})

        assert "CF_STREAM_TIMEOUT" in str(exc_info.value)

    def test_config_is_immutable(self, base_env):
        config = validate(base_env)

        with pytest.raises(Exception):
            config.image = "other"  # type: ignore[misc]


class TestEnrichers:
    """Enabled enrichers pull in their own required variables."""

    def test_git_enricher_requires_branch_and_repo(self, base_env):
        with pytest.raises(ConfigurationError) as exc_info:
            validate({**base_env, "CF_ENRICHERS": "git"})

        message = str(exc_info.value)
        assert "CF_GIT_BRANCH" in message
        assert "CF_GIT_REPO" in message

    def test_git_enricher_with_fields_validates(self, base_env):
        config = validate(
            {
                **base_env,
                "CF_ENRICHERS": "git",
                "CF_GIT_BRANCH": "main",
                "CF_GIT_REPO": "org/app",
            }
        )

        assert config.enabled_enrichers == ("git",)

    def test_jira_enricher_requires_jira_fields(self, base_env):
        env = {
            **base_env,
            "CF_ENRICHERS": "jira",
            "CF_JIRA_PROJECT_PREFIX": "SEC",
        }

        with pytest.raises(ConfigurationError) as exc_info:
            validate(env)

        message = str(exc_info.value)
        assert "CF_JIRA_MESSAGE" in message
        assert "CF_JIRA_INTEGRATION" in message
        assert "CF_JIRA_PROJECT_PREFIX" not in message

    def test_enricher_names_normalized(self, base_env):
        env = {
            **base_env,
            "CF_ENRICHERS": " Git , git,",
            "CF_GIT_BRANCH": "main",
            "CF_GIT_REPO": "org/app",
        }

        config = validate(env)

        assert config.enrichers == "git"
        assert config.enabled_enrichers == ("git",)

    def test_unknown_enricher_rejected(self, base_env):
        with pytest.raises(ConfigurationError) as exc_info:
            validate({**base_env, "CF_ENRICHERS": "slack"})

        assert "slack" in str(exc_info.value)


class TestPayload:
    """Payload views used for logging and request construction."""

    def test_as_payload_keeps_key_secret(self, base_env):
        payload = validate({**base_env, "CF_CI_TYPE": "github-actions"}).as_payload()

        assert payload["CF_IMAGE"] == "img1"
        assert payload["CF_CI_TYPE"] == "github-actions"
        assert isinstance(payload["CF_API_KEY"], SecretStr)
        assert "abcdef123456" not in str(payload["CF_API_KEY"])
        assert "CF_GIT_BRANCH" not in payload

    def test_forwarded_fields_exclude_local_settings(self, base_env):
        env = {
            **base_env,
            "CF_HOST": "https://proxy.example.com",
            "VERBOSE": "1",
            "CF_STREAM_TIMEOUT": "10",
            "CF_WORKFLOW_NAME": "build",
        }

        forwarded = validate(env).forwarded_fields()

        assert forwarded == {"CF_IMAGE": "img1", "CF_WORKFLOW_NAME": "build"}


class TestDotEnv:
    """A .env file fills gaps but never overrides the passed mapping."""

    def test_dotenv_supplies_missing_values(self, tmp_path: Path):
        (tmp_path / ".env").write_text('CF_API_KEY="from-dotenv-key"\nCF_IMAGE=dotenv-image\n')

        config = validate({"CF_IMAGE": "env-image"})

        assert config.api_key.get_secret_value() == "from-dotenv-key"
        assert config.image == "env-image"

    def test_env_names_cover_every_field(self):
        names = ReportConfig.env_names()

        assert {"CF_API_KEY", "CF_IMAGE", "CF_HOST", "VERBOSE"} <= names
