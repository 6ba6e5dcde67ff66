"""Configuration management for worktrack clients.

Configurations are immutable pydantic models. They can be built directly,
staged through ``ClientConfigBuilder``, or read from the environment with the
``from_env`` constructors. Invalid values raise ``ConfigurationError``.
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type
from urllib.parse import urlsplit

from pydantic import ConfigDict, Field, SecretStr, field_validator

from .api_clients.errors import ConfigurationError
from .api_clients.retry_policy import RetryConfig
from .api_clients.validation import ValidatedModel

logger = logging.getLogger(__name__)

DEFAULT_TRACKER_URL = "https://st-api.yandex-team.ru"
DEFAULT_TRACKER_API_VERSION = "v3"
DEFAULT_LLM_URL = "https://openrouter.ai/api/v1"


class Language(str, Enum):
    """Language of server-side messages, sent as ``Accept-Language``."""

    RUSSIAN = "ru"
    ENGLISH = "en"


def validate_base_url(value: str) -> str:
    """Check that ``value`` is an absolute http(s) URL and trim trailing slashes."""
    value = value.strip()
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"base URL must be an absolute http(s) URL, got {value!r}")
    if parts.query or parts.fragment:
        raise ValueError("base URL must not contain a query or fragment")
    return value.rstrip("/")


class Credentials(ValidatedModel):
    """Secret token plus optional organisation and attribution data."""

    model_config = ConfigDict(frozen=True)

    token: SecretStr = Field(..., description="API token, never logged")
    org_id: Optional[str] = Field(default=None, description="Organisation id")
    site_url: Optional[str] = Field(
        default=None, description="Site URL sent as HTTP-Referer"
    )
    app_name: Optional[str] = Field(default=None, description="App name sent as X-Title")
    auth_scheme: str = Field(
        default="Bearer", description="Authorization scheme, e.g. Bearer or OAuth"
    )

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("token must not be empty")
        return v

    @field_validator("auth_scheme")
    @classmethod
    def validate_auth_scheme(cls, v: str) -> str:
        v = v.strip()
        if not v or " " in v:
            raise ValueError("auth_scheme must be a single non-empty word")
        return v

    @field_validator("org_id", "site_url", "app_name")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class ClientConfig(ValidatedModel):
    """Connection settings shared by all clients."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(..., description="Service root URL")
    api_version: Optional[str] = Field(
        default=None, description="Version path segment, omitted when None"
    )
    timeout: float = Field(default=30.0, gt=0, description="Per-attempt timeout in seconds")
    language: Language = Field(default=Language.ENGLISH)
    credentials: Credentials
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("base_url")
    @classmethod
    def check_base_url(cls, v: str) -> str:
        return validate_base_url(v)

    @field_validator("api_version")
    @classmethod
    def normalize_api_version(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().strip("/")
        if "/" in v:
            raise ValueError("api_version must be a single path segment")
        return v or None


class TrackerConfig(ClientConfig):
    """Issue tracker connection settings."""

    base_url: str = Field(default=DEFAULT_TRACKER_URL)
    api_version: Optional[str] = Field(default=DEFAULT_TRACKER_API_VERSION)
    language: Language = Field(default=Language.RUSSIAN)

    @classmethod
    def with_token(
        cls, token: str, org_id: Optional[str] = None, **overrides: Any
    ) -> "TrackerConfig":
        """Default tracker configuration for an OAuth token."""
        credentials = Credentials(token=token, org_id=org_id, auth_scheme="OAuth")
        return cls(credentials=credentials, **overrides)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TrackerConfig":
        """Build from TRACKER_* environment variables.

        Raises:
            ConfigurationError: If TRACKER_OAUTH_TOKEN is missing or a value is invalid
        """
        env = os.environ if environ is None else environ
        token = _require_env(env, "TRACKER_OAUTH_TOKEN")

        overrides: Dict[str, Any] = {}
        if _optional_env(env, "TRACKER_BASE_URL"):
            overrides["base_url"] = _optional_env(env, "TRACKER_BASE_URL")
        if _optional_env(env, "TRACKER_API_VERSION"):
            overrides["api_version"] = _optional_env(env, "TRACKER_API_VERSION")
        language = _optional_env(env, "TRACKER_LANGUAGE")
        if language:
            overrides["language"] = _parse_language(language)

        config = cls.with_token(
            token, org_id=_optional_env(env, "TRACKER_ORG_ID"), **overrides
        )
        logger.debug(f"Loaded tracker configuration for {config.base_url}")
        return config


class LLMConfig(ClientConfig):
    """LLM completion API connection settings."""

    base_url: str = Field(default=DEFAULT_LLM_URL)
    timeout: float = Field(default=120.0, gt=0)
    model: str = Field(..., min_length=1, description="Model identifier")

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("model must not be empty")
        return v

    @classmethod
    def with_token(cls, token: str, model: str, **overrides: Any) -> "LLMConfig":
        """Default LLM configuration for a bearer token."""
        credential_fields = {
            key: overrides.pop(key)
            for key in ("site_url", "app_name")
            if key in overrides
        }
        credentials = Credentials(token=token, **credential_fields)
        return cls(credentials=credentials, model=model, **overrides)

    @classmethod
    def from_env(
        cls,
        model: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "LLMConfig":
        """Build from OPEN_ROUTER_* and LLM_* environment variables.

        Args:
            model: Model to use; read from LLM_MODEL when not given
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigurationError: If the token or the model is missing
        """
        env = os.environ if environ is None else environ
        token = _require_env(env, "OPEN_ROUTER_TOKEN")
        model = model or _require_env(env, "LLM_MODEL")

        overrides: Dict[str, Any] = {}
        if _optional_env(env, "LLM_BASE_URL"):
            overrides["base_url"] = _optional_env(env, "LLM_BASE_URL")

        config = cls.with_token(
            token,
            model,
            site_url=_optional_env(env, "OPEN_ROUTER_SITE_URL"),
            app_name=_optional_env(env, "OPEN_ROUTER_APP_NAME"),
            **overrides,
        )
        logger.debug(f"Loaded LLM configuration for model {config.model}")
        return config


class ClientConfigBuilder:
    """Staged construction of a client configuration.

    Each ``with_*`` call checks its own argument immediately; ``build()``
    validates the combination.

    Example:
        config = (
            ClientConfigBuilder(token)
            .with_base_url("https://tracker.example.com")
            .with_timeout(10)
            .build()
        )
    """

    def __init__(self, token: str, config_class: Type[ClientConfig] = ClientConfig):
        self._config_class = config_class
        self._values: Dict[str, Any] = {}
        self._credentials: Dict[str, Any] = {"token": token}

    def with_base_url(self, base_url: str) -> "ClientConfigBuilder":
        try:
            self._values["base_url"] = validate_base_url(base_url)
        except ValueError as e:
            raise ConfigurationError(str(e))
        return self

    def with_api_version(self, api_version: Optional[str]) -> "ClientConfigBuilder":
        self._values["api_version"] = api_version
        return self

    def with_timeout(self, timeout: float) -> "ClientConfigBuilder":
        if timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        self._values["timeout"] = timeout
        return self

    def with_language(self, language: Any) -> "ClientConfigBuilder":
        self._values["language"] = _parse_language(language)
        return self

    def with_retry(self, retry: RetryConfig) -> "ClientConfigBuilder":
        self._values["retry"] = retry
        return self

    def with_model(self, model: str) -> "ClientConfigBuilder":
        if not issubclass(self._config_class, LLMConfig):
            raise ConfigurationError(
                f"{self._config_class.__name__} does not take a model"
            )
        self._values["model"] = model
        return self

    def with_org_id(self, org_id: str) -> "ClientConfigBuilder":
        self._credentials["org_id"] = org_id
        return self

    def with_site_url(self, site_url: str) -> "ClientConfigBuilder":
        self._credentials["site_url"] = site_url
        return self

    def with_app_name(self, app_name: str) -> "ClientConfigBuilder":
        self._credentials["app_name"] = app_name
        return self

    def with_auth_scheme(self, auth_scheme: str) -> "ClientConfigBuilder":
        self._credentials["auth_scheme"] = auth_scheme
        return self

    def build(self) -> ClientConfig:
        """Validate and return the configuration.

        Raises:
            ConfigurationError: If required values are missing or invalid
        """
        credentials = dict(self._credentials)
        if issubclass(self._config_class, TrackerConfig):
            credentials.setdefault("auth_scheme", "OAuth")
        return self._config_class(
            credentials=Credentials(**credentials), **self._values
        )


def _optional_env(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _require_env(env: Mapping[str, str], name: str) -> str:
    value = _optional_env(env, name)
    if value is None:
        raise ConfigurationError(f"{name} environment variable is not set")
    return value


def _parse_language(value: Any) -> Language:
    if isinstance(value, Language):
        return value
    try:
        return Language(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unsupported language {value!r}; expected one of: "
            + ", ".join(lang.value for lang in Language)
        )
