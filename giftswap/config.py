"""Runtime settings loaded from GIFTSWAP_* environment variables or ``.env``."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .engine_core.state import GameConfig


class Settings(BaseSettings):
    """Application settings. Per-session game rules start from the default_* values."""

    model_config = SettingsConfigDict(
        env_prefix="GIFTSWAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Server ───────────────────────────────────────────────────────────
    env: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])

    # ── Store ────────────────────────────────────────────────────────────
    store_retry_attempts: int = Field(default=2, ge=0, description="Retries after a transient store failure")
    store_retry_delay_seconds: float = Field(default=1.0, ge=0)
    conflict_retry_attempts: int = Field(default=3, ge=0, description="Re-validations after losing a commit race")
    session_code_attempts: int = Field(default=5, ge=1)

    # ── Game defaults ────────────────────────────────────────────────────
    default_max_steals_per_gift: int = Field(default=2, ge=1)
    default_randomize_order: bool = True
    default_allow_immediate_stealback: bool = False
    default_turn_timer_enabled: bool = False
    default_turn_timer_seconds: int = Field(default=60, ge=10, le=600)

    def default_game_config(self) -> GameConfig:
        return GameConfig(
            max_steals_per_gift=self.default_max_steals_per_gift,
            randomize_order=self.default_randomize_order,
            allow_immediate_stealback=self.default_allow_immediate_stealback,
            turn_timer_enabled=self.default_turn_timer_enabled,
            turn_timer_seconds=self.default_turn_timer_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
