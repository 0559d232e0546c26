"""Image report configuration with Pydantic Settings.

The configuration is read from an explicit mapping (normally ``os.environ``)
rather than from ambient process state, so callers and tests decide exactly
which variables a session sees. A ``.env`` file in the working directory can
fill in variables the mapping does not provide.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import pydantic_settings
from pydantic import Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import DotEnvSettingsSource, PydanticBaseSettingsSource
from pydantic_settings.main import SettingsConfigDict

from image_report.core.exceptions import ConfigurationError

__all__ = [
    "DEFAULT_HOST",
    "ENRICHERS",
    "ReportConfig",
    "is_truthy",
    "validate",
]

DEFAULT_HOST = "https://g.codefresh.io"

# Variables each enricher needs before the service can use it
ENRICHERS: Dict[str, tuple[str, ...]] = {
    "git": ("CF_GIT_BRANCH", "CF_GIT_REPO"),
    "jira": ("CF_JIRA_PROJECT_PREFIX", "CF_JIRA_MESSAGE", "CF_JIRA_INTEGRATION"),
}

_TRUTHY = {"1", "true", "yes", "on"}

# Fields that are used locally and never forwarded to the service
_LOCAL_FIELDS = {"api_key", "host", "verbose", "stream_timeout"}


class ReportConfig(pydantic_settings.BaseSettings):
    """Validated settings for one image report session"""

    # Credentials and target
    api_key: SecretStr = Field(alias="CF_API_KEY")
    image: str = Field(alias="CF_IMAGE", min_length=1)
    host: str = Field(default=DEFAULT_HOST, alias="CF_HOST")

    # Enrichment
    enrichers: str = Field(default="", alias="CF_ENRICHERS")
    container_registry_integration: Optional[str] = Field(
        default=None, alias="CF_CONTAINER_REGISTRY_INTEGRATION"
    )
    git_branch: Optional[str] = Field(default=None, alias="CF_GIT_BRANCH")
    git_repo: Optional[str] = Field(default=None, alias="CF_GIT_REPO")
    git_provider: Optional[str] = Field(default=None, alias="CF_GIT_PROVIDER")
    jira_project_prefix: Optional[str] = Field(default=None, alias="CF_JIRA_PROJECT_PREFIX")
    jira_message: Optional[str] = Field(default=None, alias="CF_JIRA_MESSAGE")
    jira_integration: Optional[str] = Field(default=None, alias="CF_JIRA_INTEGRATION")

    # CI context
    runtime_name: Optional[str] = Field(default=None, alias="CF_RUNTIME_NAME")
    workflow_name: Optional[str] = Field(default=None, alias="CF_WORKFLOW_NAME")
    ci_type: Optional[str] = Field(default=None, alias="CF_CI_TYPE")
    workflow_url: Optional[str] = Field(default=None, alias="CF_WORKFLOW_URL")

    # Client behaviour
    verbose: bool = Field(default=False, alias="VERBOSE")
    stream_timeout: Optional[float] = Field(default=None, alias="CF_STREAM_TIMEOUT", gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[pydantic_settings.BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # The caller's mapping replaces the process environment
        del env_settings, file_secret_settings
        return (
            init_settings,
            DotEnvSettingsSource(
                settings_cls,
                env_file=settings_cls.model_config.get("env_file"),
                env_ignore_empty=True,
                case_sensitive=False,
            ),
        )

    @classmethod
    def env_names(cls) -> set[str]:
        """Environment variable names understood by this configuration."""
        return {field.alias for field in cls.model_fields.values() if field.alias}

    @field_validator("api_key", mode="before")
    @classmethod
    def _require_api_key(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("host")
    @classmethod
    def _normalize_host(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value

    @field_validator("enrichers")
    @classmethod
    def _normalize_enrichers(cls, value: str) -> str:
        names = [name.strip().lower() for name in value.split(",") if name.strip()]
        unknown = sorted(set(names) - set(ENRICHERS))
        if unknown:
            raise ValueError(
                f"unknown enrichers {unknown}, supported: {sorted(ENRICHERS)}"
            )
        return ",".join(dict.fromkeys(names))

    @field_validator("verbose", mode="before")
    @classmethod
    def _parse_verbose(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return is_truthy(value)

    @model_validator(mode="after")
    def _check_enricher_requirements(self) -> "ReportConfig":
        payload = self.as_payload()
        missing = [
            name
            for enricher in self.enabled_enrichers
            for name in ENRICHERS[enricher]
            if not payload.get(name)
        ]
        if missing:
            raise ValueError(
                f"enrichers {list(self.enabled_enrichers)} require {', '.join(missing)}"
            )
        return self

    @property
    def enabled_enrichers(self) -> tuple[str, ...]:
        """Enabled enricher names, in the order they were configured."""
        return tuple(name for name in self.enrichers.split(",") if name)

    def as_payload(self) -> Dict[str, Any]:
        """Return the configured ``CF_*`` values keyed by variable name.

        The API key stays a SecretStr so the payload can be logged safely.
        Unset optional values are left out.
        """
        payload: Dict[str, Any] = {}
        for name, field in type(self).model_fields.items():
            if name in ("verbose", "stream_timeout"):
                continue
            value = getattr(self, name)
            if value is None or value == "":
                continue
            payload[field.alias or name] = value
        return payload

    def forwarded_fields(self) -> Dict[str, str]:
        """Values the report service receives as query parameters."""
        fields = type(self).model_fields
        return {
            fields[name].alias or name: str(getattr(self, name))
            for name in fields
            if name not in _LOCAL_FIELDS and getattr(self, name) not in (None, "")
        }


def is_truthy(value: Any) -> bool:
    """Return True for the usual spellings of an enabled boolean variable."""
    return str(value).strip().lower() in _TRUTHY


def validate(env: Mapping[str, Optional[str]]) -> ReportConfig:
    """Validate a raw environment mapping into a ReportConfig.

    Args:
        env: Variable name to value mapping, usually ``os.environ``.
            Blank values count as missing.

    Returns:
        The validated, immutable configuration.

    Raises:
        ConfigurationError: If a required variable is missing or empty, or a
            value is malformed. The message names every offending variable.
    """
    known = ReportConfig.env_names()
    values = {
        key: value
        for key, value in env.items()
        if key in known and value is not None and value.strip()
    }
    try:
        return ReportConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(_describe(e)) from e


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        problems.append(f"{location}: {message}" if location else message)
    return "Invalid configuration: " + "; ".join(problems)
