"""Engine configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATASET_PATH = Path(__file__).parent / "data" / "foods.json"


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NUTRIMATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Reference dataset
    food_dataset_path: Path = DEFAULT_DATASET_PATH

    # Matching
    min_similarity: float = Field(0.5, ge=0.0, le=1.0)
    fuzzy_match_limit: int = Field(5, ge=1)
    match_cache_size: int = Field(1024, ge=0)
    match_cache_ttl_seconds: float = Field(300.0, ge=0.0)  # 0 disables the cache

    # Gram conversion fallbacks
    standard_amount_grams: float = Field(100.0, gt=0)
    default_serving_grams: float = Field(100.0, gt=0)

    # Target evaluation
    deficiency_threshold: float = Field(0.7, ge=0.0, le=1.0)

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str | None = None  # "text" or "json"; None auto-detects

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def json_logs(self) -> bool | None:
        """Explicit log format preference, or None to auto-detect."""
        if self.log_format is None:
            return None
        return self.log_format.lower() == "json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
