"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Cardiac Risk Calculator"
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Risk algorithm
    algorithm_version: str = "2008"
    # Flat +0.2 log-hazard term for family history; not part of the published
    # Framingham coefficient set.
    include_family_history_modifier: bool = True

    # Calculations slower than this are logged as a warning (observational only)
    calculation_warning_ms: float = 100.0


settings = Settings()
