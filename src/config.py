"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Every field can be set with a DICE_ prefixed variable, for example
    DICE_HISTORY_CAPACITY=500 or DICE_RNG_SEED=42.
    """

    model_config = SettingsConfigDict(
        env_prefix="DICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Engine Limits
    # ==========================================================================
    history_capacity: int = Field(default=1000, gt=0)  # Rolls kept in history
    reroll_max: int = Field(default=2, ge=0)  # Re-draws per die
    explode_max: int = Field(default=100, ge=0)  # Extra dice per term
    max_dice_count: int = Field(default=100, ge=1)  # Dice per term
    max_die_sides: int = Field(default=1000, ge=1)
    max_depth: int = Field(default=50, ge=1, le=100)  # Parentheses and unary minus
    max_terms: int = Field(default=1000, ge=1)  # Numbers and dice per expression

    # ==========================================================================
    # Random Source
    # ==========================================================================
    # None = unseeded fallback generator
    rng_seed: int | None = None
    # False = skip the CSPRNG and always use the seedable fallback
    prefer_crypto: bool = True

    # Debug
    debug: bool = False
    log_level: LogLevel = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @property
    def effective_log_level(self) -> str:
        """Log level with debug mode taken into account."""
        return "DEBUG" if self.debug else self.log_level


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
