"""
Configuration management for the Webcal feed service.

Uses Pydantic Settings for type-safe environment variable loading.
Configured via .env file in project root.
"""

from functools import lru_cache
from typing import Literal, Optional
from urllib.parse import urlsplit

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    See .env.example for available options.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("python_env", "node_env"),
        description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=3000,
        validation_alias=AliasChoices("api_port", "port"),
        description="API server port"
    )
    api_reload: bool = Field(
        default=False,
        description="Enable auto-reload in development"
    )
    cors_allow_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the API from a browser"
    )

    # Public origin used in feed URLs
    production_domain: str = Field(
        default="",
        description="Public host (and optional port) serving feeds in production"
    )
    render: bool = Field(
        default=False,
        description="Set by the Render platform on its instances"
    )
    render_external_url: str = Field(
        default="",
        description="External URL assigned by the Render platform"
    )

    # Feeds
    default_owner: str = Field(
        default="Anonymous",
        description="Owner name used when a feed is created without one"
    )
    feed_ttl_seconds: int = Field(
        default=1800,
        ge=60,
        description="Refresh interval advertised to subscribing calendar clients"
    )
    prodid_company: str = Field(
        default="WebCal Service",
        description="Company part of the calendar PRODID"
    )
    prodid_product: str = Field(
        default="Calendar Feed",
        description="Product part of the calendar PRODID"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode (explicitly or on Render)."""
        return self.python_env == "production" or self.render

    @property
    def product_id(self) -> str:
        """iCalendar PRODID built from the configured company and product."""
        return f"-//{self.prodid_company}//{self.prodid_product}//EN"

    def _render_origin(self) -> Optional[tuple[str, str]]:
        """Split RENDER_EXTERNAL_URL into (protocol, host), if usable."""
        if not self.render_external_url:
            return None
        parts = urlsplit(self.render_external_url)
        if not parts.scheme or not parts.netloc:
            return None
        return parts.scheme, parts.netloc

    @property
    def public_protocol(self) -> str:
        """
        Protocol used when building public feed URLs.

        Production always serves over https. Otherwise the Render external
        URL wins, falling back to plain http for local development.
        """
        if self.is_production and self.production_domain:
            return "https"
        render_origin = self._render_origin()
        if render_origin:
            return render_origin[0]
        return "http"

    @property
    def public_domain(self) -> str:
        """Host (and optional port) used when building public feed URLs."""
        if self.is_production and self.production_domain:
            return self.production_domain
        render_origin = self._render_origin()
        if render_origin:
            return render_origin[1]
        return f"localhost:{self.api_port}"

    def validate_production_config(self) -> None:
        """
        Validate configuration for production environment.

        Raises:
            ValueError: If required production settings are missing or invalid
        """
        if not self.is_production:
            return

        errors = []

        if not self.production_domain and self._render_origin() is None:
            errors.append(
                "Production requires a public domain. "
                "Set PRODUCTION_DOMAIN or RENDER_EXTERNAL_URL."
            )

        if errors:
            raise ValueError("Production configuration errors:\n- " + "\n- ".join(errors))


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure we only load settings once.
    Use this function throughout the application to access settings.

    Returns:
        Settings instance loaded from environment

    Example:
        >>> from webcal.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.public_domain)
    """
    return Settings()
