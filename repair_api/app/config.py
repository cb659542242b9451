"""Configuration module for the appliance repair diagnostics API.

All third-party credentials are optional: a missing LLM key disables the
LLM step, missing search keys disable web enrichment.
"""

import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All sensitive configuration is loaded from environment variables
    to avoid hardcoding secrets in the codebase.
    """

    # API Metadata
    app_name: str = "Appliance Repair Diagnostics API"
    app_version: str = "0.3.0"
    debug_mode: bool = False

    # Database Configuration
    db_host: str = os.getenv("DB_HOST", "postgres")
    db_port: int = int(os.getenv("DB_PORT", "5432"))
    db_name: str = os.getenv("DB_NAME", "appliance_repair")
    db_user: str = os.getenv("DB_USER", "repair_app_user")
    db_password: str = os.getenv("DB_PASSWORD", "")
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "10"))

    # LLM Configuration
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
    llm_base_url: Optional[str] = os.getenv("LLM_BASE_URL")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))
    llm_max_tokens: int = int(os.getenv("LLM_MAX_TOKENS", "1500"))

    # Web Search Configuration (first configured key wins)
    serpapi_api_key: Optional[str] = os.getenv("SERPAPI_API_KEY")
    serper_api_key: Optional[str] = os.getenv("SERPER_API_KEY")
    search_timeout_seconds: float = float(
        os.getenv("SEARCH_TIMEOUT_SECONDS", "10")
    )

    # Rate Limiting
    diagnosis_rate_limit: int = int(os.getenv("DIAGNOSIS_RATE_LIMIT", "5"))
    diagnosis_rate_window_seconds: int = int(
        os.getenv("DIAGNOSIS_RATE_WINDOW_SECONDS", "3600")
    )
    spare_parts_rate_limit: int = int(os.getenv("SPARE_PARTS_RATE_LIMIT", "20"))
    spare_parts_rate_window_seconds: int = int(
        os.getenv("SPARE_PARTS_RATE_WINDOW_SECONDS", "60")
    )

    # Logging Configuration
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")

    @property
    def database_url(self) -> str:
        """Construct database connection URL.

        Returns:
            Database connection string for SQLAlchemy.
        """
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key)

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
