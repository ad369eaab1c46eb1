"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    bot_token: str
    database_url: str

    debug: bool = False

    # Economy
    starting_cash: int = 5000  # Balance of a freshly created wallet
    daily_amount: int = 1000  # Payout of /daily, once per 24h

    # Duels
    duel_timeout_seconds: float = 60.0  # Total lifetime of a match, not per turn
    duel_policy_delay_seconds: float = 1.2  # Pause before a computer opponent moves
    duel_win_xp: int = 60
    duel_loss_xp: int = 25
    duel_draw_xp: int = 0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
