from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    downtime_db_url: str = "sqlite+aiosqlite:///data/downtime.db"

    # Logging
    downtime_log_level: str = "info"

    # CORS
    downtime_cors_origins: str = "http://localhost:3000"

    # Aggregation
    downtime_concurrency_limit: int = 8  # Max simultaneous per-monitor range queries
    downtime_max_window_days: int = 366

    model_config = {"env_prefix": "", "case_sensitive": False, "env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
