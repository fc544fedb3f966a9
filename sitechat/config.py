"""Configuration management for SiteChat using Pydantic Settings."""

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database settings
    database_url: str = Field(
        default="postgresql+asyncpg://postgres@localhost/sitechat",
        description="Database URL with an async driver",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL queries to console",
    )
    auto_create_tables: bool = Field(
        default=True,
        description="Create missing tables on application startup",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    environment: str = Field(
        default="development",
        description="Environment (development or production)",
    )

    # CORS settings
    cors_allowed_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins for API requests",
    )

    # API Security settings
    api_key: SecretStr | None = Field(
        default=None,
        description="API key guarding owner endpoints (required in production)",
    )
    require_api_key: bool = Field(
        default=False,
        description="Require API key authentication for owner endpoints",
    )

    # Embed settings
    base_url: str = Field(
        default="http://localhost:5008",
        description="Public base URL used when building chatbot embed codes",
    )

    # Crawl policy
    crawl_max_pages: int = Field(
        default=20,
        description="Maximum number of distinct pages visited per scan",
    )
    crawl_delay_ms: int = Field(
        default=500,
        description="Politeness pause between successive page fetches",
    )
    crawl_time_budget_seconds: float = Field(
        default=300.0,
        description="Overall wall-clock budget for a single scan",
    )
    min_page_content_length: int = Field(
        default=50,
        description="Pages with extracted content at or below this length are dropped",
    )

    # Fetch policy
    fetch_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for a static HTTP page fetch",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent with every fetch",
    )

    # Headless browser settings
    render_seed_page: bool = Field(
        default=True,
        description="Render the seed page in a headless browser to discover SPA links",
    )
    render_timeout_ms: int = Field(
        default=30000,
        description="Navigation timeout for rendered fetches",
    )
    render_grace_ms: int = Field(
        default=2000,
        description="Extra wait after network idle so client-side rendering can finish",
    )
    browser_headless: bool = Field(
        default=True,
        description="Run Chromium headless",
    )
    browser_max_contexts: int = Field(
        default=2,
        description="Maximum concurrently open browser contexts across all scans",
    )

    # Scan execution
    scan_in_background: bool = Field(
        default=False,
        description="Return from scan requests immediately and crawl in a background task",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a standard logging level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(
                f"Invalid log_level: {v}. Allowed values: {', '.join(sorted(allowed_levels))}"
            )
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment name."""
        if v.lower() not in {"development", "production"}:
            raise ValueError(f"Invalid environment: {v}. Use development or production")
        return v.lower()

    @field_validator(
        "crawl_max_pages",
        "fetch_timeout_seconds",
        "crawl_time_budget_seconds",
        "render_timeout_ms",
        "browser_max_contexts",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Crawl limits must be positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("crawl_delay_ms", "render_grace_ms", "min_page_content_length")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Delays and thresholds cannot be negative."""
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @model_validator(mode="after")
    def validate_api_key(self) -> "Settings":
        """Validate API key is set when required in production."""
        if (
            self.require_api_key
            and self.environment == "production"
            and not self.api_key
        ):
            raise ValueError(
                "API_KEY must be set when REQUIRE_API_KEY=true in production environment. "
                "Set API_KEY environment variable or set REQUIRE_API_KEY=false."
            )
        return self


# Global settings instance
settings = Settings()
