"""Configuration management for Shot Guide.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the SHOTGUIDE_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (SHOTGUIDE_* prefix)
2. .env file in the project root
3. Default values defined in ShotguideConfig

The API key is the one exception to the prefix rule: it is also read from
``GEMINI_API_KEY`` or ``API_KEY`` so an existing Gemini setup works unchanged.

Example .env file:
    SHOTGUIDE_API_KEY=your-key
    SHOTGUIDE_TEXT_MODEL=gemini-2.5-flash
    SHOTGUIDE_IMAGE_MODEL=gemini-2.5-flash-image
    SHOTGUIDE_TEXT_BACKEND=schema

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Only the application entry point reads it; the generation pipeline receives
its configuration explicitly so that core logic never performs an ambient
lookup.

Usage Example
-------------
    from shotguide.core.config import config

    config.require_api_key()
    url = config.generate_content_url(config.text_model)

Backend Variants
----------------
``text_backend`` selects how the output contract reaches the text model:
- ``schema``: sent as a first-class response schema (preferred)
- ``instructed``: folded into the prompt as plain-text instructions, for
  gateways that reject ``responseSchema``
"""

from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


class ShotguideConfig(BaseSettings):
    """Main configuration for Shot Guide.

    Attributes
    ----------
    Backend Settings:
        api_key : str
            Key appended to every backend request. Required before any call.
        base_url : str
            Gateway host for both backends (no trailing path).
        text_model : str
            Model identifier for shooting-plan generation
        image_model : str
            Model identifier for sketch generation
        text_backend : Literal["schema", "instructed"]
            How the output contract is transmitted to the text model
        temperature : float
            Sampling temperature for plan generation
        http_timeout : float | None
            Per-request timeout in seconds for the shared HTTP client.
            ``None`` waits indefinitely.

    Plan Settings:
        invalid_plan_policy : Literal["drop", "fail"]
            What to do with a record missing required fields
        orientation_order : Literal["portrait_first", "landscape_first"]
            Which orientation group the backend is told to emit first
        max_per_orientation : int
            Upper bound for the portrait and landscape counts
        camera_body, lens, guidance_language : str
            Persona details embedded in the system instruction

    Export Settings:
        export_background : str
            Background colour of exported contact sheets
        export_prefix : str
            Filename prefix for exported PNG/PDF files

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port (1024-65535)
        log_level : str
            Root logging level used by ``main()``

    Examples
    --------
    Create a custom configuration:

        >>> custom = ShotguideConfig(api_key="test", text_backend="instructed")
        >>> custom.generate_content_url(custom.text_model)
        'https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SHOTGUIDE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend settings
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("shotguide_api_key", "gemini_api_key", "api_key"),
        description="API key for the generative backends",
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Gateway host shared by the text and image backends",
    )
    text_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used to generate shooting plans",
    )
    image_model: str = Field(
        default="gemini-2.5-flash-image",
        description="Model used to draw composition sketches",
    )
    text_backend: Literal["schema", "instructed"] = Field(
        default="schema",
        description="Contract transmission: response schema or prompt instructions",
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    http_timeout: float | None = Field(
        default=None,
        description="Seconds before an HTTP call is abandoned (None = no timeout)",
    )

    # Plan settings
    invalid_plan_policy: Literal["drop", "fail"] = Field(
        default="drop",
        description="Drop invalid records with a warning, or fail the batch",
    )
    orientation_order: Literal["portrait_first", "landscape_first"] = Field(
        default="portrait_first",
        description="Which orientation group comes first in the plan list",
    )
    max_per_orientation: int = Field(default=5, ge=1, le=10)
    camera_body: str = Field(default="Sony A7R3")
    lens: str = Field(default="24-70mm F4")
    guidance_language: str = Field(
        default="Simplified Chinese",
        description="Language of all guidance text in generated plans",
    )

    # Export settings
    export_background: str = Field(default="#0a0a0a")
    export_prefix: str = Field(default="ShotGuide")

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: str = Field(default="INFO")

    @field_validator("api_key", mode="before")
    @classmethod
    def _normalise_api_key(cls, value: object) -> object:
        # .env files edited on Windows can carry a BOM or surrounding quotes.
        if not isinstance(value, str):
            return value
        value = value.strip().lstrip("\ufeff")
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1].strip()
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") or DEFAULT_BASE_URL

    def require_api_key(self) -> str:
        """Return the API key, failing fast when it is not configured.

        Returns:
            The configured API key.

        Raises:
            ConfigurationError: If no key was provided through the
                environment, the .env file, or constructor arguments.
        """
        if not self.api_key:
            raise ConfigurationError(
                "API key is not configured. Set SHOTGUIDE_API_KEY (or GEMINI_API_KEY)."
            )
        return self.api_key

    def generate_content_url(self, model: str) -> str:
        """Build the ``generateContent`` endpoint URL for *model*.

        The key is sent separately as a query parameter by the caller so it
        never appears in log lines that print this URL.
        """
        return f"{self.base_url}/v1beta/models/{model}:generateContent"


# Global configuration instance
# Loaded from SHOTGUIDE_* environment variables and the .env file. Only the
# application entry point should read it directly.
config = ShotguideConfig()
