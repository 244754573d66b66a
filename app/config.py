from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Supabase settings
    SUPABASE_URL: str
    SUPABASE_JWKS_URL: str | None = None
    SUPABASE_DB_URL: str

    # Redis settings (feed cache)
    UPSTASH_REDIS_REST_URL: str
    UPSTASH_REDIS_REST_TOKEN: str

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 3
    DB_POOL_MAX_SIZE: int = 12
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    # =================================================================
    # ATTENTION FEED SETTINGS
    # =================================================================
    ATTENTION_DEFAULT_WINDOW_HOURS: int = 24
    ATTENTION_MAX_WINDOW_HOURS: int = 720  # 30 days
    ATTENTION_COLLECTOR_TIMEOUT_S: float = 10.0
    ATTENTION_COLLECTOR_ROW_LIMIT: int = 30
    ATTENTION_SMALL_ROW_LIMIT: int = 20  # notifications, suggestions, trades, thoughts
    ATTENTION_FEED_CACHE_ENABLED: bool = True
    ATTENTION_FEED_CACHE_TTL_S: int = 30

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # derive sensible defaults if not provided
    def jwks_url(self) -> str:
        if self.SUPABASE_JWKS_URL:
            return self.SUPABASE_JWKS_URL
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/auth/v1/.well-known/jwks.json"

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Development runs with a smaller pool and a shorter acquire timeout.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 2, "max_size": 6, "timeout": 15.0})

        return config


settings = Settings()
