from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # ── Server ──────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    # Allowed CORS origin for the client app ("*" = any)
    frontend_url: str = "*"
    # Largest JSON body accepted (bytes).  Default = 10 MB.
    max_body_bytes: int = 10 * 1024 * 1024

    # ── Rate limiting (per client address) ──────────────────────────────
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 100

    # ── Aggregation horizons ────────────────────────────────────────────
    active_window_seconds: int = 30 * 60
    user_retention_seconds: int = 60 * 60
    session_retention_seconds: int = 24 * 60 * 60
    recent_days: int = 7

    # ── Maintenance ─────────────────────────────────────────────────────
    cleanup_interval_seconds: int = 60 * 60
    # Disable to drive cleanup manually (tests, one-off scripts)
    cleanup_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
