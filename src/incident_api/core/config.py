"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )
    admin_api_key: str | None = Field(
        default=None,
        description="Shared secret for admin-only endpoints (sent as X-Admin-Key)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated allowed CORS origins for browser map clients",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with daily rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log records on stderr instead of colored text",
    )

    # Geocoding: per-request caps
    geocode_max_per_request: int = Field(
        default=100,
        description="Default number of incidents geocoded per request",
        ge=0,
    )
    geocode_max_per_request_cap: int = Field(
        default=200,
        description="Hard server-side cap on incidents geocoded per request",
        ge=0,
    )
    geocode_concurrency: int = Field(
        default=3,
        description="Default number of concurrent geocode workers per request",
        gt=0,
    )
    geocode_concurrency_cap: int = Field(
        default=5,
        description="Hard server-side cap on concurrent geocode workers per request",
        gt=0,
    )

    # Geocoding: cache tiers
    geocode_memory_ttl_seconds: int = Field(
        default=259200,
        description="In-process geocode cache TTL in seconds (3 days)",
        gt=0,
    )
    geocode_memory_max_entries: int = Field(
        default=10000,
        description="Maximum number of entries held in the in-process geocode cache",
        gt=0,
    )
    geocode_edge_url: str | None = Field(
        default=None,
        description="Redis URL of the shared edge store (rediss://... for Upstash); disabled when unset",
    )
    geocode_edge_ttl_seconds: int = Field(
        default=2592000,
        description="Edge store TTL in seconds (30 days)",
        gt=0,
    )
    geocode_edge_timeout: float = Field(
        default=2.0,
        description="Edge store socket timeout in seconds",
        gt=0,
    )
    geocode_remote_kv_url: str | None = Field(
        default=None,
        description="Base URL of the optional distributed HTTP key-value store; disabled when unset",
    )
    geocode_remote_kv_token: str | None = Field(
        default=None,
        description="Optional bearer token for the distributed HTTP key-value store",
    )
    geocode_remote_kv_timeout: float = Field(
        default=3.0,
        description="Distributed HTTP key-value store request timeout in seconds",
        gt=0,
    )

    # Geocoding: providers
    geocoder_fallback_order: str = Field(
        default="apple,census,nominatim",
        description="Comma-separated provider priority order",
    )
    geocoder_jurisdiction_suffix: str = Field(
        default="Riverside County, CA",
        description="Suffix appended to queries sent to the census and nominatim geocoders",
    )

    # Geocoding: Apple Maps Server API
    apple_mapkit_team_id: str | None = Field(
        default=None,
        description="Apple developer team ID (token issuer)",
    )
    apple_mapkit_key_id: str | None = Field(
        default=None,
        description="Apple Maps private key ID",
    )
    apple_mapkit_private_key: str | None = Field(
        default=None,
        description="Apple Maps ES256 private key in PEM format",
    )
    apple_token_ttl_seconds: int = Field(
        default=1800,
        description="Lifetime of the signed auth assertion in seconds",
        gt=60,
    )
    apple_token_timeout: float = Field(
        default=5.0,
        description="Apple token exchange timeout in seconds",
        gt=0,
    )
    apple_timeout: float = Field(
        default=10.0,
        description="Apple geocode request timeout in seconds",
        gt=0,
    )

    # Geocoding: US Census Bureau
    census_geocoder_base: str = Field(
        default="https://geocoding.geo.census.gov/geocoder/locations/onelineaddress",
        description="Census one-line address endpoint",
    )
    census_timeout: float = Field(
        default=10.0,
        description="Census request timeout in seconds",
        gt=0,
    )

    # Geocoding: Nominatim (OpenStreetMap)
    nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        description="Nominatim search endpoint",
    )
    nominatim_timeout: float = Field(
        default=10.0,
        description="Nominatim request timeout in seconds",
        gt=0,
    )
    nominatim_email: str = Field(
        default="",
        description="Email for Nominatim usage policy compliance",
    )
    nominatim_user_agent: str = Field(
        default="incident-map-api/0.1 (incident-tracker)",
        description="User-Agent sent to Nominatim",
    )

    # Upstream incident feed
    feed_url: str = Field(
        default="https://publicaccess.riversidesheriff.org/api/publicaccess/incidents",
        description="Upstream JSON incident endpoint",
    )
    feed_page_size: int = Field(
        default=1000,
        description="Incidents requested per upstream page",
        gt=0,
    )
    feed_max_pages: int = Field(
        default=10,
        description="Maximum upstream pages fetched per request",
        gt=0,
    )
    feed_timeout: float = Field(
        default=15.0,
        description="Upstream feed request timeout in seconds",
        gt=0,
    )
    feed_cache_ttl_seconds: int = Field(
        default=60,
        description="In-process memoization of upstream pages in seconds",
        ge=0,
    )

    @field_validator("geocode_edge_url", "geocode_remote_kv_url")
    @classmethod
    def validate_optional_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def validate_caps(self) -> "Settings":
        if self.geocode_max_per_request > self.geocode_max_per_request_cap:
            msg = "geocode_max_per_request must not exceed geocode_max_per_request_cap"
            raise ValueError(msg)
        if self.geocode_concurrency > self.geocode_concurrency_cap:
            msg = "geocode_concurrency must not exceed geocode_concurrency_cap"
            raise ValueError(msg)
        return self

    @property
    def geocoder_fallback_order_list(self) -> list[str]:
        """Parse fallback order string into a list of provider names.

        Returns:
            List of provider names in fallback order.
        """
        if not self.geocoder_fallback_order.strip():
            return []
        return [p.strip().lower() for p in self.geocoder_fallback_order.split(",") if p.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse the CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Whether this deployment is the production environment."""
        return self.environment.strip().lower() == "production"


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
