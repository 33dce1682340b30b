from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./keyledger.db",
        alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=10, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    db_pool_timeout_seconds: float = Field(default=10.0, alias="DB_POOL_TIMEOUT_SECONDS")
    db_statement_timeout_seconds: float = Field(default=5.0, alias="DB_STATEMENT_TIMEOUT_SECONDS")

    admin_key_pepper: str = Field(default="dev_admin_pepper_change_me", alias="ADMIN_KEY_PEPPER")
    admin_api_allowlist: str = Field(default="", alias="ADMIN_API_ALLOWLIST")
    admin_api_trusted_proxies: str = Field(default="", alias="ADMIN_API_TRUSTED_PROXIES")

    pending_page_size: int = Field(default=100, ge=1, le=500, alias="PENDING_PAGE_SIZE")
    premium_code_prefix: str = Field(default="PRM-", alias="PREMIUM_CODE_PREFIX")
    replace_code_on_redeem: bool = Field(default=False, alias="REPLACE_CODE_ON_REDEEM")

    discord_webhook_url: str = Field(default="", alias="DISCORD_WEBHOOK_URL")
    notify_webhook_url: str = Field(default="", alias="NOTIFY_WEBHOOK_URL")
    notify_timeout_seconds: float = Field(default=5.0, alias="NOTIFY_TIMEOUT_SECONDS")

    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-1.5-flash", alias="GEMINI_MODEL")
    gemini_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_URL",
    )
    refine_timeout_seconds: float = Field(default=15.0, alias="REFINE_TIMEOUT_SECONDS")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
