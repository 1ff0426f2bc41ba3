"""Configuration architecture using pydantic-settings for typed environment loading."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CipherConfig(BaseSettings):
    """Seed cipher key-derivation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CIPHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Brute-force resistance floor; lowering it below 100k is rejected
    pbkdf2_iterations: int = Field(default=100_000, ge=100_000)


class FeedConfig(BaseSettings):
    """Market data feed configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FEED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = "https://api.dexscreener.com"
    timeout_seconds: float = Field(default=5.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = Field(default=1.0, ge=0)


class StorageConfig(BaseSettings):
    """Document store and audit trail locations."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Path("data/vaultkeeper.db")
    audit_dir: Path = Path("data/audit")


class RefreshConfig(BaseSettings):
    """Periodic price refresh configuration."""

    model_config = SettingsConfigDict(
        env_prefix="REFRESH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    interval_seconds: float = Field(default=300.0, gt=0)


class Settings:
    """Root settings aggregating all configuration sections."""

    def __init__(self) -> None:
        self.cipher = CipherConfig()
        self.feed = FeedConfig()
        self.storage = StorageConfig()
        self.refresh = RefreshConfig()


def load_settings() -> Settings:
    """Build a fresh settings instance from the environment.

    Callers construct settings once at process start and pass the
    sections to the components that need them.
    """
    return Settings()
