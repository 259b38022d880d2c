from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file, media directory next to the repo).
    - Every field can be overridden with a `WISHLIST_`-prefixed env var.
    """

    model_config = SettingsConfigDict(env_prefix="WISHLIST_", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    media_root: str | None = None
    log_level: str = "INFO"
    seed_demo_data: bool = True

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "wishlist.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "security_config.yaml"

    def resolved_media_root(self) -> Path:
        if self.media_root:
            return Path(self.media_root)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "media"


@lru_cache
def get_settings() -> Settings:
    return Settings()
