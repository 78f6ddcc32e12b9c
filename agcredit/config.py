"""
Engine configuration using pydantic-settings.

Loads tuning parameters for extraction and ratio calculation from
environment variables with sensible defaults.
"""
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Metrics where a decrease is an improvement
LOWER_IS_BETTER_METRICS = (
    "current_liabilities",
    "total_liabilities",
    "debt_to_equity",
    "financial_leverage",
)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    # Period detection
    default_period_count: int = 3
    header_scan_rows: int = 10
    unaligned_scan_rows: int = 30
    min_header_year_tokens: int = 2

    # Numeric coercion
    unaligned_positive_only: bool = True
    aligned_positive_only: bool = False

    # Keyword matching: "document_order" or "keyword_priority"
    keyword_match_policy: str = "document_order"

    # Proxies for debt service and interest when the statement lacks them
    debt_service_proxy_rate: float = 0.10
    interest_proxy_rate: float = 0.05
    prefer_reported_debt_service: bool = False

    # Trends
    trend_stable_threshold_pct: float = 2.0
    lower_is_better_metrics: List[str] = list(LOWER_IS_BETTER_METRICS)

    @field_validator("keyword_match_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
