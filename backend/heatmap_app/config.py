"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Bybit API
    bybit_base_url: str = "https://api.bybit.com"
    bybit_category: str = "linear"
    request_timeout: float = 30.0

    # Evaluation
    default_symbol: str = "BTCUSDT"
    bar_limit: int = 500
    markov_window_bars: int = 400

    # Optional signals.yaml (timeframes, fusion weights, quantum overrides)
    signal_config_path: str = ""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
