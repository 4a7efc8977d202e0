from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed runtime settings."""

    app_name: str = "PaperDesk"
    env: str = "dev"
    log_level: str = "INFO"
    default_symbol: str = "AAPL"
    user_id: str = "local"

    initial_cash: float = Field(default=100_000, gt=0)
    transaction_cost_pct: float = Field(default=0.2, ge=0, lt=100)
    history_window: int = Field(default=30, ge=2)
    tick_interval_seconds: float = Field(default=1.8, gt=0)
    database_url: str | None = None

    @field_validator("database_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    model_config = SettingsConfigDict(
        env_prefix="PAPERDESK_",
        env_file=".env",
        env_file_encoding="utf-8-sig",
        extra="ignore",
    )
