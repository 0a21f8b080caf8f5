"""
GlucoTrack Configuration Management
Handles all application settings using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import List


class Settings(BaseSettings):
    """Application settings with validation"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )

    # Environment
    environment: str = Field(default="development", pattern="^(development|production|test)$")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # API Server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000, ge=1, le=65535)
    api_reload: bool = Field(default=True)

    # Database
    database_url: str = Field(default="sqlite:///./glucose.db")
    database_echo: bool = Field(default=False)

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_enabled: bool = Field(default=True)
    cache_ttl: int = Field(default=3600, ge=0, le=86400)

    # Celery
    celery_broker_url: str = Field(default="redis://localhost:6379/1")
    celery_result_backend: str = Field(default="redis://localhost:6379/2")
    celery_task_always_eager: bool = Field(default=False)
    task_time_limit: int = Field(default=120, ge=10, le=1800)
    task_soft_time_limit: int = Field(default=100, ge=5, le=1700)

    # Extraction
    # Plausibility range in mg/dL; mmol/L values are converted before the check
    extraction_min_value: float = Field(default=30.0, ge=0.0)
    extraction_max_value: float = Field(default=500.0, gt=0.0)
    extraction_text_mode: str = Field(default="lenient", pattern="^(strict|lenient)$")
    extraction_pdf_mode: str = Field(default="strict", pattern="^(strict|lenient)$")
    extraction_max_text_chars: int = Field(default=500_000, ge=1_000, le=10_000_000)

    # Uploads
    upload_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)

    # Dashboard defaults
    normal_range_min: float = Field(default=70.0, ge=0.0)
    normal_range_max: float = Field(default=140.0, gt=0.0)
    default_unit: str = Field(default="mg/dL", pattern="^(mg/dL|mmol/L)$")

    # Security
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )
    cors_allow_credentials: bool = Field(default=True)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @model_validator(mode="after")
    def validate_ranges(self) -> "Settings":
        """Validate that configured ranges are not inverted"""
        if self.extraction_min_value >= self.extraction_max_value:
            raise ValueError("extraction_min_value must be less than extraction_max_value")
        if self.normal_range_min >= self.normal_range_max:
            raise ValueError("normal_range_min must be less than normal_range_max")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test"""
        return self.environment == "test"

    @property
    def plausible_range(self) -> tuple:
        """Extraction plausibility range as a (low, high) tuple in mg/dL"""
        return (self.extraction_min_value, self.extraction_max_value)


# Global settings instance
settings = Settings()
