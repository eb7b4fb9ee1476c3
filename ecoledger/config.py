"""Configuration for the reward ledger and task lifecycle."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Reward policy and ledger settings."""

    # Reward policy (flat amounts, not scaled by waste type or quantity)
    reward_collection_points: int = Field(default=75, ge=0)
    reward_report_points: int = Field(default=10, ge=0)

    # Ledger history paging
    ledger_page_limit: int = Field(default=50, ge=1)
    ledger_max_limit: int = Field(default=500, ge=1)

    # Account deletion cascade retries
    delete_retry_attempts: int = Field(default=3, ge=1)
    delete_retry_base_delay: float = Field(default=0.1, ge=0)

    # Leaderboard score weights
    leaderboard_report_weight: int = 10
    leaderboard_collection_weight: int = 15

    class Config:
        env_file = ".env"
        env_prefix = "ECOLEDGER_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
