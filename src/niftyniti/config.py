"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class QuoteSourceSettings(BaseSettings):
    """Upstream market-data (Yahoo Finance chart API) settings."""

    model_config = SettingsConfigDict(env_prefix="QUOTES_")

    base_url: str = "https://query1.finance.yahoo.com"
    symbol: str = "^NSEI"  # NIFTY 50
    timeout_seconds: float = 10.0
    exchange_timezone: str = "Asia/Kolkata"  # dates are truncated in exchange local time
    user_agent: str = "Mozilla/5.0 (compatible; niftyniti/0.1)"


class PredictionSettings(BaseSettings):
    """Prediction service (feature manifest + forecast) settings.

    The default feature names are used whenever the manifest endpoint is
    unreachable or returns something unusable.
    """

    model_config = SettingsConfigDict(env_prefix="PREDICTION_")

    base_url: str = "https://niftyniti.onrender.com"
    timeout_seconds: float = 30.0  # free-tier host cold starts are slow
    default_feature_names: list[str] = ["Prev_Close", "5MA", "10MA", "Return"]
    persist_results: bool = True


class MockSettings(BaseSettings):
    """Synthetic series generator parameters."""

    model_config = SettingsConfigDict(env_prefix="MOCK_")

    base_price: float = 24400.0
    max_step: float = 200.0  # max absolute daily drift is max_step / 2


class DatabaseSettings(BaseSettings):
    """SQLite persistence for blog posts and daily predictions."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    db_path: str = "data/niftyniti.db"


class ApiSettings(BaseSettings):
    """JSON API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    default_range: Literal["1D", "1M", "3M", "6M", "1Y"] = "3M"
    blog_page_size: int = 10
    prediction_history_limit: int = 30


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    quotes: QuoteSourceSettings = QuoteSourceSettings()
    prediction: PredictionSettings = PredictionSettings()
    mock: MockSettings = MockSettings()
    database: DatabaseSettings = DatabaseSettings()
    api: ApiSettings = ApiSettings()
