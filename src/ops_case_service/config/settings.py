"""Service configuration settings."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    service_name: str = "ops-case-service"
    environment: str = "development"
    port: int = 8003

    # Upstream case application (owns persistence and auth)
    upstream_base_url: str = "http://localhost:3000"
    upstream_timeout_seconds: float = 10.0
    upstream_page_limit: int = 100

    # Business calendar
    reference_timezone: str = "Asia/Ho_Chi_Minh"
    internal_organization_name: str = "Smart Services"

    # Pagination defaults
    default_page_size: int = 15
    max_page_size: int = 100

    # Reference data cache TTLs (seconds)
    case_types_ttl_seconds: int = 2 * 60
    employees_ttl_seconds: int = 5 * 60
    partners_ttl_seconds: int = 10 * 60
    evaluation_configs_ttl_seconds: int = 10 * 60

    # CORS configuration
    cors_origins: str = "*"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
