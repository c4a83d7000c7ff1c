"""Centralised application configuration.

Settings are loaded from environment variables or the `.env` file in the
project root. Using pydantic's BaseSettings provides convenient parsing
and type checking. The completions service instantiates each settings
class once when starting up and hands the instances to the relay; they
are frozen so nothing can mutate them afterwards.

Three groups live here:

- ``Settings``: service-wide toggles (logging, access key, tracing).
- ``OpenAIApiSettings``: how to reach the Azure OpenAI deployment
  (configuration section ``OpenAIApi``).
- ``PromptSettings``: the few-shot preamble sent ahead of every prompt
  (configuration section ``Prompts``).
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_BASE_CONFIG = dict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    case_sensitive=False,
    populate_by_name=True,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(**_BASE_CONFIG)

    # Logging
    log_level: str = Field(
        default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level")
    )

    # Platform access key (x-functions-key). Unset means the host enforces it.
    function_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FUNCTION_KEY", "FUNCTIONS_KEY"),
    )

    # Logging/observability
    langfuse_enabled: bool = Field(False, validation_alias="LANGFUSE_ENABLED")
    langfuse_host: str = Field("", validation_alias="LANGFUSE_HOST")
    langfuse_public_key: str = Field("", validation_alias="LANGFUSE_PUBLIC_KEY")
    langfuse_secret_key: str = Field("", validation_alias="LANGFUSE_SECRET_KEY")
    trace_name: str = Field("completions-trace", validation_alias="TRACE_NAME")


class OpenAIApiSettings(BaseSettings):
    """Settings for the Azure OpenAI chat-completion API.

    Attributes:
        version: API version passed as ``api-version``.
        deployment_id: Model deployment identifier.
        instance: API instance (resource) name.
        endpoint: Endpoint URL template, e.g. ``https://{0}.openai.azure.com/``.
        auth_key: API key. Never logged.
    """

    model_config = SettingsConfigDict(frozen=True, **_BASE_CONFIG)

    version: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAIAPI__VERSION", "OPENAI_API_VERSION"),
    )
    deployment_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "OPENAIAPI__DEPLOYMENTID", "AZURE_OPENAI_DEPLOYMENT_ID"
        ),
    )
    instance: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAIAPI__INSTANCE", "AZURE_OPENAI_INSTANCE"),
    )
    endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAIAPI__ENDPOINT", "AZURE_OPENAI_ENDPOINT"),
    )
    auth_key: str | None = Field(
        default=None,
        repr=False,
        validation_alias=AliasChoices("OPENAIAPI__AUTHKEY", "AZURE_OPENAI_API_KEY"),
    )

    def endpoint_url(self) -> str:
        """Return the endpoint with the instance name substituted in."""
        if not self.endpoint:
            raise ValueError("OpenAI API endpoint is not configured")
        return self.endpoint.format(self.instance or "")


class PromptSettings(BaseSettings):
    """Few-shot preamble: one system instruction and three example exchanges.

    ``users`` and ``assistants`` are read from JSON arrays, e.g.
    ``PROMPTS__USERS='["first", "second", "third"]'``.
    """

    model_config = SettingsConfigDict(frozen=True, **_BASE_CONFIG)

    system: str = Field(default="", validation_alias="PROMPTS__SYSTEM")
    users: tuple[str, ...] = Field(default=(), validation_alias="PROMPTS__USERS")
    assistants: tuple[str, ...] = Field(
        default=(), validation_alias="PROMPTS__ASSISTANTS"
    )
